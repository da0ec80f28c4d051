"""Inventory domain models.

This module defines the records describing installed software as seen
by the inventory sources: application bundles and Homebrew packages.
"""

import os
import re
from dataclasses import dataclass
from enum import Enum

_NON_ALNUM = re.compile(r"[^a-z0-9]")


class InstallSource(str, Enum):
    """Where an installed item came from.

    Attributes:
        SYSTEM: Shipped with the operating system.
        USER: Installed by the user (e.g. /Applications).
        PACKAGE_MANAGER: Installed through a package manager (Homebrew).
    """

    SYSTEM = "system"
    USER = "user"
    PACKAGE_MANAGER = "package-manager"


class EntryKind(str, Enum):
    """Kind of installed item."""

    APP = "app"
    BREW_FORMULA = "brew-formula"
    BREW_CASK = "brew-cask"


@dataclass(frozen=True, slots=True)
class InventoryEntry:
    """A single installed item known to the inventory.

    Attributes:
        identifier: Stable identifier, e.g. a bundle id ("com.example.App")
            or a package key ("brew:formula:wget").
        display_name: Human readable name.
        source: Install source of the item.
        kind: Kind of installed item.
        roots: Filesystem locations owned by the item (bundle path,
            Cellar directory, ...). Used for path ownership lookups.
    """

    identifier: str
    display_name: str
    source: InstallSource
    kind: EntryKind
    roots: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        """Validate entry data after initialization."""
        if not self.identifier:
            msg = "Inventory identifier cannot be empty"
            raise ValueError(msg)
        if not self.display_name:
            msg = "Inventory display name cannot be empty"
            raise ValueError(msg)
        for root in self.roots:
            if not os.path.isabs(root):
                msg = f"Inventory root must be absolute, got {root!r}"
                raise ValueError(msg)

    def is_present(self) -> bool:
        """Check whether the item is still installed on disk.

        Entries without roots (nothing to check) count as present.

        Returns:
            True if any root still exists.
        """
        if not self.roots:
            return True
        return any(os.path.lexists(root) for root in self.roots)


def normalize_name(name: str) -> str:
    """Normalize an application name for fuzzy matching.

    Lowercases, drops a trailing ".app" and keeps only ASCII letters
    and digits, so "Visual Studio Code.app" becomes "visualstudiocode".

    Args:
        name: Display name, bundle name or folder name.

    Returns:
        Normalized key (may be empty).
    """
    lowered = name.strip().lower()
    if lowered.endswith(".app"):
        lowered = lowered[: -len(".app")]
    return _NON_ALNUM.sub("", lowered)
