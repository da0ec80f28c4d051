"""Installed-software inventory index.

The index is built lazily from a list of InventorySource objects the
first time it is queried, then frozen for the rest of the run. Every
inspection module consults the same index through the run context.
"""

import logging
import os
import subprocess
import threading
from collections.abc import Mapping, Sequence
from types import MappingProxyType

from reclaim.inventory.models import EntryKind, InventoryEntry, normalize_name
from reclaim.inventory.sources import InventorySource

logger = logging.getLogger(__name__)

# Shortest reverse-DNS prefix accepted for label prefix ownership ("com.vendor")
_MIN_PREFIX_COMPONENTS = 2


class InventoryNotReadyError(RuntimeError):
    """Raised when the index is queried while it is still being populated."""


class InventoryIndex:
    """Compute-once, read-many snapshot of installed software.

    Population happens on the first lookup (or an explicit call to
    ensure_ready()) and is guarded by a lock: concurrent callers block
    until it has finished and never observe a partially built index.
    A lookup issued from inside population on the populating thread
    raises InventoryNotReadyError instead of deadlocking.

    Args:
        sources: Inventory sources, in priority order. When two sources
            report the same identifier the first one wins.
    """

    def __init__(self, sources: Sequence[InventorySource]) -> None:
        self._sources = tuple(sources)
        self._lock = threading.Lock()
        self._ready = False
        self._populating_thread: int | None = None

        self._entries: tuple[InventoryEntry, ...] = ()
        self._by_id: Mapping[str, InventoryEntry] = MappingProxyType({})
        self._by_lower_id: Mapping[str, InventoryEntry] = MappingProxyType({})
        self._by_name: Mapping[str, InventoryEntry] = MappingProxyType({})
        self._by_path: Mapping[str, InventoryEntry] = MappingProxyType({})
        self._brew_bins: frozenset[str] = frozenset()
        self._unavailable: tuple[str, ...] = ()

    # -- lifecycle ---------------------------------------------------------

    def is_ready(self) -> bool:
        """Report whether population has completed. Never triggers it."""
        return self._ready

    def ensure_ready(self) -> None:
        """Populate the index if that has not happened yet.

        Raises:
            InventoryNotReadyError: If called re-entrantly during population.
        """
        if self._ready:
            return
        if self._populating_thread == threading.get_ident():
            msg = "Inventory index queried while it is being populated"
            raise InventoryNotReadyError(msg)

        with self._lock:
            if self._ready:
                return
            self._populating_thread = threading.get_ident()
            try:
                self._populate()
            finally:
                self._populating_thread = None

    def _populate(self) -> None:
        """Collect from every source and freeze the lookup tables."""
        entries: list[InventoryEntry] = []
        by_id: dict[str, InventoryEntry] = {}
        by_lower_id: dict[str, InventoryEntry] = {}
        by_name: dict[str, InventoryEntry] = {}
        by_path: dict[str, InventoryEntry] = {}
        brew_bins: set[str] = set()
        unavailable: list[str] = []

        for source in self._sources:
            if not source.is_available():
                logger.info("Inventory source unavailable: %s", source.name)
                unavailable.append(source.name)
                continue

            try:
                collected = list(source.collect())
                executables = list(source.executables())
            except (OSError, subprocess.SubprocessError, ValueError) as e:
                logger.warning("Inventory source %s failed: %s", source.name, e)
                unavailable.append(source.name)
                continue

            for entry in collected:
                if entry.identifier in by_id:
                    logger.debug("Duplicate inventory identifier ignored: %s", entry.identifier)
                    continue
                entries.append(entry)
                by_id[entry.identifier] = entry
                by_lower_id.setdefault(entry.identifier.lower(), entry)
                name_key = normalize_name(entry.display_name)
                if name_key:
                    by_name.setdefault(name_key, entry)
                for root in entry.roots:
                    by_path.setdefault(os.path.normpath(root), entry)

            brew_bins.update(executables)
            logger.debug("Inventory source %s: %d entries", source.name, len(collected))

        self._entries = tuple(entries)
        self._by_id = MappingProxyType(by_id)
        self._by_lower_id = MappingProxyType(by_lower_id)
        self._by_name = MappingProxyType(by_name)
        self._by_path = MappingProxyType(by_path)
        self._brew_bins = frozenset(brew_bins)
        self._unavailable = tuple(unavailable)
        self._ready = True
        logger.info("Inventory ready: %d entries", len(entries))

    # -- lookups -----------------------------------------------------------

    def resolve(self, identifier: str) -> InventoryEntry | None:
        """Look up an installed item by identifier.

        Exact matches win over case-insensitive ones.

        Args:
            identifier: Bundle id or package key.

        Returns:
            The matching entry, or None.
        """
        self.ensure_ready()
        if not identifier:
            return None
        return self._by_id.get(identifier) or self._by_lower_id.get(identifier.lower())

    def resolve_name(self, name: str) -> InventoryEntry | None:
        """Look up an installed item by normalized display name.

        Args:
            name: Folder name, label component or display name.

        Returns:
            The matching entry, or None.
        """
        self.ensure_ready()
        key = normalize_name(name)
        if not key:
            return None
        return self._by_name.get(key)

    def owns_path(self, path: str) -> InventoryEntry | None:
        """Find the installed item owning a path.

        The path itself and then each ancestor is looked up in the
        path-prefix mapping; the nearest hit wins.

        Args:
            path: Absolute filesystem path.

        Returns:
            The owning entry, or None.
        """
        self.ensure_ready()
        current = os.path.normpath(path)
        while True:
            entry = self._by_path.get(current)
            if entry is not None:
                return entry
            parent = os.path.dirname(current)
            if parent == current:
                return None
            current = parent

    def owner_by_prefix(self, label: str) -> tuple[InventoryEntry, str] | None:
        """Find the installed app whose bundle id is the longest prefix of a label.

        For "com.vendor.App.agent" the candidates tried are
        "com.vendor.App.agent", "com.vendor.App" and "com.vendor".

        Args:
            label: Reverse-DNS style label.

        Returns:
            Tuple of (entry, matched prefix), or None.
        """
        self.ensure_ready()
        components = label.split(".")
        for count in range(len(components), _MIN_PREFIX_COMPONENTS - 1, -1):
            prefix = ".".join(components[:count])
            entry = self._by_lower_id.get(prefix.lower())
            if entry is not None and entry.kind == EntryKind.APP:
                return entry, prefix
        return None

    # -- snapshot views ----------------------------------------------------

    def entries(self) -> tuple[InventoryEntry, ...]:
        """Return all entries in discovery order."""
        self.ensure_ready()
        return self._entries

    def brew_bins(self) -> frozenset[str]:
        """Return executable basenames provided by Homebrew."""
        self.ensure_ready()
        return self._brew_bins

    def unavailable_sources(self) -> tuple[str, ...]:
        """Return names of sources that could not be read."""
        self.ensure_ready()
        return self._unavailable

    def stats(self) -> dict[str, int]:
        """Count entries per install source and kind.

        Returns:
            Mapping such as {"user": 12, "brew-formula": 40, ...}.
        """
        self.ensure_ready()
        counts: dict[str, int] = {}
        for entry in self._entries:
            counts[entry.source.value] = counts.get(entry.source.value, 0) + 1
            counts[entry.kind.value] = counts.get(entry.kind.value, 0) + 1
        counts["brew-bins"] = len(self._brew_bins)
        return counts
