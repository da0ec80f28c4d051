"""Installed-software inventory.

This module provides the inventory index consulted by every inspection
module, and the sources it is built from.
"""

from reclaim.inventory.index import InventoryIndex, InventoryNotReadyError
from reclaim.inventory.models import EntryKind, InstallSource, InventoryEntry, normalize_name
from reclaim.inventory.sources import (
    AppBundleSource,
    HomebrewSource,
    InventorySource,
    default_sources,
)

__all__ = [
    "AppBundleSource",
    "EntryKind",
    "HomebrewSource",
    "InstallSource",
    "InventoryEntry",
    "InventoryIndex",
    "InventoryNotReadyError",
    "InventorySource",
    "default_sources",
    "normalize_name",
]
