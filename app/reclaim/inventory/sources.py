"""Inventory sources: the metadata stores describing installed software.

Each source knows how to enumerate one kind of installation. The
InventoryIndex consults every source exactly once per run.
"""

import logging
import os
import plistlib
from abc import ABC, abstractmethod
from collections.abc import Iterator
from pathlib import Path

from reclaim.inventory.models import EntryKind, InstallSource, InventoryEntry, normalize_name
from reclaim.utils.shell import command_exists, run_command

logger = logging.getLogger(__name__)

# Locations whose bundles are shipped with the operating system. Newer
# macOS releases expose some system apps in /Applications as symlinks
# into the Cryptex volume.
SYSTEM_APP_ROOTS: tuple[str, ...] = (
    "/System/Applications",
    "/System/Cryptexes/App/System/Applications",
)

# Bundles are discovered at most this many levels below a root
# (/Applications/X.app and /Applications/Utilities/Y.app)
_MAX_BUNDLE_DEPTH = 2


class InventorySource(ABC):
    """Abstract base class for inventory sources.

    Example:
        >>> source = AppBundleSource(Path("/Applications"), InstallSource.USER)
        >>> if source.is_available():
        ...     for entry in source.collect():
        ...         print(entry.identifier)
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Short name used in logs and diagnostics."""

    @abstractmethod
    def is_available(self) -> bool:
        """Check whether the underlying metadata store can be read.

        Returns:
            True if collect() can be called.
        """

    @abstractmethod
    def collect(self) -> Iterator[InventoryEntry]:
        """Yield every installed item known to this source.

        Yields:
            InventoryEntry instances in discovery order.

        Raises:
            OSError: If the store cannot be read.
        """

    def executables(self) -> Iterator[str]:
        """Yield basenames of executables provided by this source.

        Sources without executables yield nothing.
        """
        yield from ()


class AppBundleSource(InventorySource):
    """Enumerates ``*.app`` bundles below an applications folder.

    Args:
        root: Applications folder to walk.
        source: Install source reported for bundles found here.
        system_roots: Bundles resolving into these folders are reported
            as SYSTEM regardless of ``source``.
    """

    def __init__(
        self,
        root: Path,
        source: InstallSource,
        *,
        system_roots: tuple[str, ...] = SYSTEM_APP_ROOTS,
    ) -> None:
        self._root = root
        self._source = source
        self._system_roots = system_roots

    @property
    def name(self) -> str:
        return f"apps:{self._root}"

    def is_available(self) -> bool:
        return self._root.is_dir()

    def collect(self) -> Iterator[InventoryEntry]:
        for bundle in self._find_bundles(self._root, depth=1):
            entry = self._read_bundle(bundle)
            if entry is not None:
                yield entry

    def _find_bundles(self, directory: Path, depth: int) -> Iterator[Path]:
        """Walk a folder in sorted order yielding bundle paths.

        Bundles are not descended into. Symlinked bundles are yielded as-is
        so both the link and its target can be registered.
        """
        try:
            children = sorted(directory.iterdir())
        except PermissionError:
            logger.warning("Permission denied reading applications folder: %s", directory)
            return

        for child in children:
            if child.suffix == ".app" and child.is_dir():
                yield child
            elif depth < _MAX_BUNDLE_DEPTH and child.is_dir() and not child.is_symlink():
                yield from self._find_bundles(child, depth + 1)

    def _read_bundle(self, bundle: Path) -> InventoryEntry | None:
        """Build an inventory entry from a bundle's Info.plist.

        Args:
            bundle: Path to the .app bundle (possibly a symlink).

        Returns:
            InventoryEntry, or None if the bundle has no usable name.
        """
        display_name = bundle.name[: -len(".app")]
        if not display_name:
            return None

        target = bundle.resolve()
        source = self._source
        if any(_is_within(str(target), root) for root in self._system_roots):
            source = InstallSource.SYSTEM

        identifier = _read_bundle_identifier(target)
        if identifier is None:
            logger.debug("No CFBundleIdentifier for %s, keying by name", bundle)
            identifier = f"app:{normalize_name(display_name)}"

        roots = (str(bundle),) if target == bundle else (str(bundle), str(target))
        return InventoryEntry(
            identifier=identifier,
            display_name=display_name,
            source=source,
            kind=EntryKind.APP,
            roots=roots,
        )


class HomebrewSource(InventorySource):
    """Enumerates Homebrew formulae and casks.

    Formulae and casks are keyed ``brew:formula:<name>`` and
    ``brew:cask:<name>``. The executables linked into the Homebrew
    prefix are exposed through executables().

    Args:
        brew: Name or path of the brew executable.
    """

    def __init__(self, brew: str = "brew") -> None:
        self._brew = brew
        self._prefix: Path | None = None

    @property
    def name(self) -> str:
        return "homebrew"

    def is_available(self) -> bool:
        return command_exists(self._brew)

    def collect(self) -> Iterator[InventoryEntry]:
        prefix = self.prefix()

        for formula in self._list("--formula"):
            roots = (
                (str(prefix / "Cellar" / formula), str(prefix / "opt" / formula))
                if prefix is not None
                else ()
            )
            yield InventoryEntry(
                identifier=f"brew:formula:{formula}",
                display_name=formula,
                source=InstallSource.PACKAGE_MANAGER,
                kind=EntryKind.BREW_FORMULA,
                roots=roots,
            )

        for cask in self._list("--cask"):
            roots = (str(prefix / "Caskroom" / cask),) if prefix is not None else ()
            yield InventoryEntry(
                identifier=f"brew:cask:{cask}",
                display_name=cask,
                source=InstallSource.PACKAGE_MANAGER,
                kind=EntryKind.BREW_CASK,
                roots=roots,
            )

    def executables(self) -> Iterator[str]:
        prefix = self.prefix()
        if prefix is None:
            logger.debug("Homebrew prefix unknown, no executables indexed")
            return

        names: set[str] = set()
        for bin_dir in (prefix / "bin", prefix / "sbin"):
            try:
                children = list(bin_dir.iterdir())
            except OSError:
                continue
            for child in children:
                if os.access(child, os.X_OK) and not child.is_dir():
                    names.add(child.name)
        yield from sorted(names)

    def prefix(self) -> Path | None:
        """Query and cache ``brew --prefix``."""
        if self._prefix is None:
            result = run_command([self._brew, "--prefix"], timeout=30.0)
            prefix = result.stdout.strip()
            if result.success and prefix:
                self._prefix = Path(prefix)
            else:
                logger.warning("brew --prefix failed: %s", result.stderr.strip())
        return self._prefix

    def _list(self, kind_flag: str) -> list[str]:
        """Run ``brew list`` for one package kind."""
        result = run_command([self._brew, "list", kind_flag, "-1"], timeout=60.0)
        if not result.success:
            logger.warning("brew list %s failed: %s", kind_flag, result.stderr.strip())
            return []
        return result.lines()


def default_sources(home: Path) -> list[InventorySource]:
    """Build the standard source list in lookup priority order.

    Args:
        home: User home directory.

    Returns:
        Sources for system apps, user apps and Homebrew.
    """
    return [
        AppBundleSource(Path("/System/Applications"), InstallSource.SYSTEM),
        AppBundleSource(Path("/Applications"), InstallSource.USER),
        AppBundleSource(home / "Applications", InstallSource.USER),
        HomebrewSource(),
    ]


def _read_bundle_identifier(bundle: Path) -> str | None:
    """Read CFBundleIdentifier from a bundle's Info.plist.

    Args:
        bundle: Resolved bundle path.

    Returns:
        The identifier, or None if the plist is missing or unreadable.
    """
    plist_path = bundle / "Contents" / "Info.plist"
    try:
        with open(plist_path, "rb") as f:
            data = plistlib.load(f)
    except FileNotFoundError:
        return None
    except (OSError, plistlib.InvalidFileException, ValueError) as e:
        logger.debug("Cannot read %s: %s", plist_path, e)
        return None

    identifier = data.get("CFBundleIdentifier") if isinstance(data, dict) else None
    if isinstance(identifier, str) and identifier.strip():
        return identifier.strip()
    return None


def _is_within(path: str, root: str) -> bool:
    """Check whether ``path`` equals ``root`` or lies below it."""
    return path == root or path.startswith(root.rstrip("/") + "/")
