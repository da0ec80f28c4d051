"""Intel-only executables inspection module.

Finds Mach-O executables built for x86_64 without an arm64 slice. On
Apple silicon those only run under Rosetta 2. The architectures are read
from the Mach-O header (thin or universal), so no external tool is
needed. Informational only: every record is report-only.
"""

import logging
import os
import stat
import struct
from collections import Counter
from collections.abc import Iterator, Sequence
from pathlib import Path

from reclaim.attribution.models import Candidate, Domain, Verdict
from reclaim.context import RunContext
from reclaim.inspection.base import InspectionModule
from reclaim.inspection.models import FlaggedRecord

logger = logging.getLogger(__name__)

MH_MAGIC = 0xFEEDFACE
MH_MAGIC_64 = 0xFEEDFACF
FAT_MAGIC = 0xCAFEBABE
FAT_MAGIC_64 = 0xCAFEBABF

CPU_TYPE_X86_64 = 0x01000007
CPU_TYPE_ARM64 = 0x0100000C

_ARCH_NAMES = {
    7: "i386",
    12: "arm",
    CPU_TYPE_X86_64: "x86_64",
    CPU_TYPE_ARM64: "arm64",
}

# Java class files share FAT_MAGIC; their version field reads as a count above this
_MAX_FAT_ARCHS = 30

# Number of sources listed in the notes
TOP_SOURCES = 10


def mach_o_architectures(path: Path) -> frozenset[str] | None:
    """Read the CPU architectures of a Mach-O file.

    Args:
        path: File to read.

    Returns:
        Architecture names ("x86_64", "arm64", ...), or None if the file
        is not a Mach-O binary or cannot be read.
    """
    try:
        with open(path, "rb") as f:
            header = f.read(8)
            if len(header) < 8:
                return None

            (magic,) = struct.unpack(">I", header[:4])
            if magic in (FAT_MAGIC, FAT_MAGIC_64):
                (count,) = struct.unpack(">I", header[4:8])
                if not 0 < count <= _MAX_FAT_ARCHS:
                    return None
                entry_size = 32 if magic == FAT_MAGIC_64 else 20
                table = f.read(count * entry_size)
                if len(table) < count * entry_size:
                    return None
                cpu_types = [
                    struct.unpack_from(">i", table, i * entry_size)[0] for i in range(count)
                ]
            elif struct.unpack("<I", header[:4])[0] in (MH_MAGIC, MH_MAGIC_64):
                cpu_types = [struct.unpack("<i", header[4:8])[0]]
            elif magic in (MH_MAGIC, MH_MAGIC_64):
                cpu_types = [struct.unpack(">i", header[4:8])[0]]
            else:
                return None
    except OSError as e:
        logger.debug("Cannot read %s: %s", path, e)
        return None

    return frozenset(_ARCH_NAMES.get(cpu, f"cpu-{cpu:#x}") for cpu in cpu_types)


def enclosing_bundle(path: str) -> str | None:
    """Return the outermost ``.app`` bundle containing a path, if any."""
    parts = path.split("/")
    for i, part in enumerate(parts):
        if part.endswith(".app"):
            return "/".join(parts[: i + 1])
    return None


class IntelModule(InspectionModule):
    """Reports executables that lack an arm64 slice."""

    name = "intel"
    domain = Domain.INTEL
    default_threshold = 0
    reports_installed_owners = True

    def default_roots(self, home: Path) -> tuple[Path, ...]:
        return (
            Path("/Applications"),
            home / "Applications",
            home / "Library",
            Path("/opt"),
        )

    def iter_candidates(self, root: Path, context: RunContext) -> Iterator[Candidate]:
        for dirpath, dirnames, filenames in os.walk(root, followlinks=False):
            dirnames.sort()
            for filename in sorted(filenames):
                path = os.path.join(dirpath, filename)
                try:
                    st = os.lstat(path)
                except OSError:
                    continue
                if not stat.S_ISREG(st.st_mode) or not st.st_mode & 0o111:
                    continue

                architectures = mach_o_architectures(Path(path))
                if architectures is None:
                    continue

                bundle = enclosing_bundle(path)
                yield Candidate(
                    path=path,
                    size_bytes=st.st_size,
                    mtime=st.st_mtime,
                    identifier_hint=Path(bundle).stem if bundle else filename,
                    details={
                        "architectures": ", ".join(sorted(architectures)),
                        "source": bundle or dirpath,
                    },
                )

    def is_report_only(self, candidate: Candidate, context: RunContext) -> bool:
        return True

    def flag_reason(
        self,
        candidate: Candidate,
        verdict: Verdict,
        threshold: int,
        context: RunContext,
    ) -> str | None:
        architectures = set(candidate.details.get("architectures", "").split(", "))
        if "x86_64" not in architectures or "arm64" in architectures:
            return None
        return f"Intel-only ({candidate.details['architectures']})"

    def notes(self, records: Sequence[FlaggedRecord], context: RunContext) -> tuple[str, ...]:
        if not records:
            return ("No Intel-only executables found",)

        sources = Counter(record.candidate.details.get("source", "?") for record in records)
        notes = [f"{len(records)} Intel-only executables need Rosetta 2 on Apple silicon"]
        for source, count in sources.most_common(TOP_SOURCES):
            notes.append(f"{source}: {count} file(s)")
        return tuple(notes)
