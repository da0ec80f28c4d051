"""Heuristic attribution rules.

Heuristics are consulted only after the inventory lookups failed. Each
rule is a named predicate returning a HeuristicMatch or None, and each
inspection domain has an ordered chain of rules. The chains are data:
adding a convention means adding a rule to a tuple, not another branch.
"""

import os
import re
from collections.abc import Callable
from dataclasses import dataclass

from reclaim.attribution.models import Candidate, Domain
from reclaim.inventory.index import InventoryIndex

# Reverse-DNS shaped names with at least three components ("com.vendor.App")
BUNDLE_ID_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9-]*(\.[A-Za-z0-9][A-Za-z0-9_-]*){2,}$")

_SHIPIT_SUFFIX = ".ShipIt"

# Vendor label prefixes whose helpers outlive or live apart from the app bundle
KNOWN_VENDOR_PREFIXES: tuple[tuple[str, str], ...] = (
    ("com.dropbox.", "Dropbox"),
    ("com.getdropbox.", "Dropbox"),
    ("us.zoom.", "Zoom"),
    ("com.google.keystone.", "Google Keystone"),
    ("com.google.GoogleUpdater.", "Google Updater"),
    ("com.microsoft.autoupdate", "Microsoft AutoUpdate"),
    ("com.adobe.", "Adobe"),
)

# Explicit updater helpers whose parent app cannot be derived from the name
KNOWN_SHIPIT_OWNERS: dict[str, tuple[str, str]] = {
    "com.microsoft.VSCode.ShipIt": ("com.microsoft.VSCode", "Visual Studio Code"),
}

# Shared vendor cache folders and the app they are usually attributed to
SHARED_VENDOR_CACHES: dict[str, tuple[str, str]] = {
    "Google": ("com.google.Chrome", "Google (shared)"),
    "Microsoft": ("com.microsoft.edgemac", "Microsoft (shared)"),
}

# Path fragments of package-manager and toolchain data. Fragments starting
# with "/" are absolute prefixes; the rest match a path component sequence.
TOOLCHAIN_LOCATIONS: tuple[tuple[str, str, str], ...] = (
    ("/opt/homebrew", "toolchain:homebrew", "Homebrew"),
    ("/usr/local/Homebrew", "toolchain:homebrew", "Homebrew"),
    ("/usr/local", "toolchain:homebrew", "Homebrew"),
    (".cargo", "toolchain:rust", "Rust (cargo)"),
    (".rustup", "toolchain:rust", "Rust (rustup)"),
    (".npm", "toolchain:npm", "Node (npm)"),
    (".pnpm", "toolchain:pnpm", "Node (pnpm)"),
    ("Library/pnpm", "toolchain:pnpm", "Node (pnpm)"),
    (".yarn", "toolchain:yarn", "Node (yarn)"),
    ("Library/Caches/Yarn", "toolchain:yarn", "Node (yarn)"),
    (".cache/pip", "toolchain:pip", "Python (pip)"),
    ("Library/Caches/pip", "toolchain:pip", "Python (pip)"),
    (".gradle", "toolchain:gradle", "Gradle"),
    (".m2", "toolchain:maven", "Maven"),
    ("Library/Developer/Xcode", "toolchain:xcode", "Xcode"),
    ("Library/Developer/CoreSimulator", "toolchain:xcode", "Xcode"),
)


@dataclass(frozen=True, slots=True)
class HeuristicMatch:
    """Owner suggested by a heuristic rule.

    Attributes:
        owner: Owner identifier.
        reason: Explanation of the match.
        owner_name: Owner display name, if known.
        present: The suggested owner is installed on disk.
    """

    owner: str
    reason: str
    owner_name: str | None = None
    present: bool = False


Predicate = Callable[[Candidate, InventoryIndex], HeuristicMatch | None]


@dataclass(frozen=True, slots=True)
class HeuristicRule:
    """A named attribution heuristic.

    Attributes:
        name: Rule name, recorded on the verdict.
        predicate: Function returning a match or None.
    """

    name: str
    predicate: Predicate

    def __call__(self, candidate: Candidate, index: InventoryIndex) -> HeuristicMatch | None:
        return self.predicate(candidate, index)


def _hint_or_name(candidate: Candidate) -> str:
    return candidate.identifier_hint or candidate.name


def _match_normalized_name(candidate: Candidate, index: InventoryIndex) -> HeuristicMatch | None:
    """Folder or file name equals an installed app's normalized name."""
    for value in dict.fromkeys((candidate.name, _hint_or_name(candidate))):
        entry = index.resolve_name(value.removesuffix(".log"))
        if entry is not None:
            return HeuristicMatch(
                owner=entry.identifier,
                owner_name=entry.display_name,
                reason=f"name '{value}' matches installed '{entry.display_name}'",
                present=entry.is_present(),
            )
    return None


def _match_label_components(candidate: Candidate, index: InventoryIndex) -> HeuristicMatch | None:
    """Full label or its last component matches an installed app name."""
    label = _hint_or_name(candidate)
    components = [c for c in label.split(".") if c]
    if not components:
        return None
    for value in dict.fromkeys((label, components[-1])):
        entry = index.resolve_name(value)
        if entry is not None:
            return HeuristicMatch(
                owner=entry.identifier,
                owner_name=entry.display_name,
                reason=f"label '{label}' matches installed '{entry.display_name}'",
                present=entry.is_present(),
            )
    return None


def _match_installed_prefix(candidate: Candidate, index: InventoryIndex) -> HeuristicMatch | None:
    """Label starts with an installed app's bundle id."""
    label = _hint_or_name(candidate)
    if "." not in label:
        return None
    found = index.owner_by_prefix(label)
    if found is None:
        return None
    entry, prefix = found
    strength = "strong" if prefix.count(".") >= 2 else "weak"
    return HeuristicMatch(
        owner=entry.identifier,
        owner_name=entry.display_name,
        reason=f"label prefix '{prefix}' matches installed app ({strength} match)",
        present=entry.is_present(),
    )


def _match_known_vendor(candidate: Candidate, _index: InventoryIndex) -> HeuristicMatch | None:
    """Label starts with a well-known vendor prefix."""
    label = _hint_or_name(candidate).lower()
    for prefix, vendor in KNOWN_VENDOR_PREFIXES:
        if label.startswith(prefix.lower()):
            return HeuristicMatch(
                owner=prefix.rstrip("."),
                owner_name=vendor,
                reason=f"known {vendor} label prefix '{prefix}'",
            )
    return None


def _match_shipit(candidate: Candidate, index: InventoryIndex) -> HeuristicMatch | None:
    """``<bundle id>.ShipIt`` updater folders belong to the parent app."""
    leaf = candidate.name
    if not leaf.endswith(_SHIPIT_SUFFIX):
        return None

    if leaf in KNOWN_SHIPIT_OWNERS:
        parent_id, parent_name = KNOWN_SHIPIT_OWNERS[leaf]
    else:
        parent_id, parent_name = leaf[: -len(_SHIPIT_SUFFIX)], None
    if not parent_id:
        return None

    entry = index.resolve(parent_id)
    if entry is not None:
        return HeuristicMatch(
            owner=entry.identifier,
            owner_name=entry.display_name,
            reason=f"updater folder of installed '{entry.display_name}'",
            present=entry.is_present(),
        )
    return HeuristicMatch(
        owner=parent_id,
        owner_name=parent_name,
        reason=f"updater folder of '{parent_name or parent_id}'",
    )


def _match_shared_vendor_cache(
    candidate: Candidate, index: InventoryIndex
) -> HeuristicMatch | None:
    """Vendor-wide cache folders shared by several apps."""
    if candidate.name not in SHARED_VENDOR_CACHES:
        return None
    app_id, shared_name = SHARED_VENDOR_CACHES[candidate.name]
    entry = index.resolve(app_id)
    if entry is not None:
        return HeuristicMatch(
            owner=entry.identifier,
            owner_name=entry.display_name,
            reason=f"shared {candidate.name} cache used by installed '{entry.display_name}'",
            present=entry.is_present(),
        )
    return HeuristicMatch(
        owner=f"vendor:{candidate.name.lower()}",
        owner_name=shared_name,
        reason=f"shared {candidate.name} cache with no installed {candidate.name} app",
    )


def _match_toolchain(candidate: Candidate, _index: InventoryIndex) -> HeuristicMatch | None:
    """Path lies in a package-manager or developer toolchain location."""
    path = candidate.path.rstrip("/") + "/"
    for fragment, owner, owner_name in TOOLCHAIN_LOCATIONS:
        if fragment.startswith("/"):
            hit = path.startswith(fragment.rstrip("/") + "/")
        else:
            hit = "/" + fragment.strip("/") + "/" in path
        if hit:
            return HeuristicMatch(
                owner=owner,
                owner_name=owner_name,
                reason=f"{owner_name} toolchain location",
                present=True,
            )
    return None


def _match_support_vendor(candidate: Candidate, _index: InventoryIndex) -> HeuristicMatch | None:
    """Plain vendor folders directly under Application Support."""
    parent = os.path.dirname(candidate.path.rstrip("/"))
    if not parent.endswith("/Library/Application Support"):
        return None
    if BUNDLE_ID_PATTERN.match(candidate.name):
        return None
    return HeuristicMatch(
        owner=f"vendor:{candidate.name}",
        owner_name=candidate.name,
        reason=f"vendor folder '{candidate.name}' under Application Support",
    )


def _match_bundle_id_shape(candidate: Candidate, _index: InventoryIndex) -> HeuristicMatch | None:
    """Bundle-id shaped name with no installed app: the app it names."""
    hint = _hint_or_name(candidate)
    if not BUNDLE_ID_PATTERN.match(hint):
        return None
    return HeuristicMatch(
        owner=hint,
        reason=f"named after bundle id '{hint}' with no installed app",
    )


def _match_program_owner(candidate: Candidate, index: InventoryIndex) -> HeuristicMatch | None:
    """Launch job program lives inside an installed item."""
    program = candidate.details.get("program")
    if not program or not os.path.isabs(program):
        return None
    entry = index.owns_path(program)
    if entry is None:
        return None
    return HeuristicMatch(
        owner=entry.identifier,
        owner_name=entry.display_name,
        reason=f"program inside installed '{entry.display_name}'",
        present=entry.is_present(),
    )


def _match_brew_bin(candidate: Candidate, index: InventoryIndex) -> HeuristicMatch | None:
    """Executable name is provided by Homebrew."""
    if candidate.name not in index.brew_bins():
        return None
    return HeuristicMatch(
        owner=f"brew:bin:{candidate.name}",
        owner_name=candidate.name,
        reason=f"'{candidate.name}' is provided by Homebrew",
        present=True,
    )


NORMALIZED_NAME = HeuristicRule("normalized-name", _match_normalized_name)
LABEL_COMPONENTS = HeuristicRule("label-components", _match_label_components)
INSTALLED_PREFIX = HeuristicRule("installed-label-prefix", _match_installed_prefix)
KNOWN_VENDOR = HeuristicRule("known-vendor-prefix", _match_known_vendor)
SHIPIT_UPDATER = HeuristicRule("shipit-updater", _match_shipit)
SHARED_VENDOR_CACHE = HeuristicRule("shared-vendor-cache", _match_shared_vendor_cache)
TOOLCHAIN = HeuristicRule("toolchain-location", _match_toolchain)
SUPPORT_VENDOR = HeuristicRule("application-support-vendor", _match_support_vendor)
BUNDLE_ID_SHAPE = HeuristicRule("bundle-id-shape", _match_bundle_id_shape)
PROGRAM_OWNER = HeuristicRule("program-owner", _match_program_owner)
BREW_BIN = HeuristicRule("brew-bin", _match_brew_bin)

# Ordered heuristic chains per domain; the first rule to match wins.
HEURISTIC_CHAINS: dict[Domain, tuple[HeuristicRule, ...]] = {
    Domain.LAUNCHD: (PROGRAM_OWNER, LABEL_COMPONENTS, INSTALLED_PREFIX, KNOWN_VENDOR),
    Domain.BINARIES: (BREW_BIN, NORMALIZED_NAME),
    Domain.CACHES: (
        SHIPIT_UPDATER,
        SHARED_VENDOR_CACHE,
        NORMALIZED_NAME,
        INSTALLED_PREFIX,
        KNOWN_VENDOR,
        TOOLCHAIN,
        BUNDLE_ID_SHAPE,
    ),
    Domain.LEFTOVERS: (
        SHIPIT_UPDATER,
        NORMALIZED_NAME,
        INSTALLED_PREFIX,
        KNOWN_VENDOR,
        BUNDLE_ID_SHAPE,
    ),
    Domain.LOGS: (SHIPIT_UPDATER, NORMALIZED_NAME, INSTALLED_PREFIX, KNOWN_VENDOR, BUNDLE_ID_SHAPE),
    Domain.DISK: (
        TOOLCHAIN,
        SHIPIT_UPDATER,
        NORMALIZED_NAME,
        INSTALLED_PREFIX,
        SUPPORT_VENDOR,
        BUNDLE_ID_SHAPE,
    ),
    Domain.BREW: (TOOLCHAIN,),
    Domain.STARTUP: (PROGRAM_OWNER, LABEL_COMPONENTS, INSTALLED_PREFIX, KNOWN_VENDOR),
    Domain.INTEL: (NORMALIZED_NAME, INSTALLED_PREFIX, KNOWN_VENDOR),
    Domain.PERMISSIONS: (),
}
