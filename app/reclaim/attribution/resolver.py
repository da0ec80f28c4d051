"""Attribution resolver: turns a Candidate into a confidence-rated Verdict.

Lookup order, first match wins:

0. Protected identifiers short-circuit to a non-flaggable verdict.
1. Path ownership in the inventory (the path or its nearest ancestor,
   also for a symlink's resolved target) -> inventory-matched.
2. The candidate's identifier hint, and its Team-ID, ``group.`` and
   sub-identifier variants, resolving in the inventory -> inventory-matched.
3. The domain's heuristic chain -> heuristic.
4. Otherwise no owner.

Inventory evidence is always consulted before heuristics, so the
resolver errs on the side of reporting an owner rather than an orphan.
"""

import logging
import os
import re
from collections.abc import Iterable, Iterator, Mapping

from reclaim.attribution.heuristics import HEURISTIC_CHAINS, HeuristicRule
from reclaim.attribution.models import Candidate, Confidence, Domain, Verdict
from reclaim.attribution.protected import matching_pattern
from reclaim.inventory.index import InventoryIndex
from reclaim.inventory.models import InventoryEntry

logger = logging.getLogger(__name__)

_TEAM_ID_PREFIX = re.compile(r"^[A-Z0-9]{10}\.")
_GROUP_PREFIX = "group."

# Sub-identifier prefixes shorter than this are vendor-level, not app-level
_MIN_SUB_IDENTIFIER_COMPONENTS = 3


def identifier_variants(hint: str) -> Iterator[str]:
    """Yield lookup variants of an identifier hint, most specific first.

    For "ABCDE12345.group.com.vendor.App.helper" this yields the hint
    itself, the forms without Team-ID and ``group.`` prefixes, and then
    the sub-identifier prefixes down to three components.

    Args:
        hint: Identifier suggested by a candidate.

    Yields:
        Unique identifier strings.
    """
    seen: set[str] = set()
    bases: list[str] = [hint]

    stripped = _TEAM_ID_PREFIX.sub("", hint)
    bases.append(stripped)
    if stripped.startswith(_GROUP_PREFIX):
        bases.append(stripped[len(_GROUP_PREFIX) :])

    for base in bases:
        if base and base not in seen:
            seen.add(base)
            yield base

    for base in bases:
        components = base.split(".")
        for count in range(len(components) - 1, _MIN_SUB_IDENTIFIER_COMPONENTS - 1, -1):
            prefix = ".".join(components[:count])
            if prefix not in seen:
                seen.add(prefix)
                yield prefix


class AttributionResolver:
    """Resolves candidate ownership against the inventory index.

    Args:
        index: Inventory index shared by the run.
        extra_protected: Additional protected identifier patterns.
        chains: Heuristic chains per domain.
    """

    def __init__(
        self,
        index: InventoryIndex,
        *,
        extra_protected: Iterable[str] = (),
        chains: Mapping[Domain, tuple[HeuristicRule, ...]] = HEURISTIC_CHAINS,
    ) -> None:
        self._index = index
        self._extra_protected = tuple(extra_protected)
        self._chains = chains

    @property
    def index(self) -> InventoryIndex:
        """The inventory index consulted by this resolver."""
        return self._index

    def protected_pattern(self, *values: str | None) -> str | None:
        """Return the protected pattern matching any of the values.

        Args:
            values: Identifiers or display names to check.

        Returns:
            The first matching pattern, or None.
        """
        for value in values:
            pattern = matching_pattern(value, self._extra_protected)
            if pattern is not None:
                return pattern
        return None

    def is_protected(self, *values: str | None) -> bool:
        """Check whether any of the values is a protected identifier."""
        return self.protected_pattern(*values) is not None

    def attribute(self, candidate: Candidate, domain: Domain) -> Verdict:
        """Decide who owns a candidate.

        Args:
            candidate: Filesystem item to attribute.
            domain: Inspection domain, selecting the heuristic chain.

        Returns:
            The verdict for the candidate.

        Raises:
            InventoryNotReadyError: If the index is being populated
                on this thread.
        """
        hint = candidate.identifier_hint

        pattern = self.protected_pattern(hint, candidate.name)
        if pattern is not None:
            return Verdict(
                confidence=Confidence.NONE,
                reason=f"protected identifier (matches '{pattern}')",
                rule="protected",
                protected=True,
            )

        entry = self._index.owns_path(candidate.path)
        if entry is None and os.path.islink(candidate.path):
            target = os.path.realpath(candidate.path)
            entry = self._index.owns_path(target)
        if entry is not None:
            return self._matched(entry, rule="path", reason=f"path owned by {entry.display_name}")

        if hint:
            for variant in identifier_variants(hint):
                entry = self._index.resolve(variant)
                if entry is not None:
                    return self._matched(
                        entry,
                        rule="identifier",
                        reason=f"identifier '{variant}' is installed as {entry.display_name}",
                    )

        for rule in self._chains.get(domain, ()):
            match = rule(candidate, self._index)
            if match is None:
                continue
            pattern = self.protected_pattern(match.owner, match.owner_name)
            if pattern is not None:
                return Verdict(
                    confidence=Confidence.HEURISTIC,
                    owner=match.owner,
                    owner_name=match.owner_name,
                    rule=rule.name,
                    reason=f"{match.reason}; owner protected (matches '{pattern}')",
                    protected=True,
                    owner_present=match.present,
                )
            logger.debug("Heuristic %s matched %s: %s", rule.name, candidate.path, match.reason)
            return Verdict(
                confidence=Confidence.HEURISTIC,
                owner=match.owner,
                owner_name=match.owner_name,
                rule=rule.name,
                reason=match.reason,
                owner_present=match.present,
            )

        return Verdict(confidence=Confidence.NONE, reason="no installed owner found")

    def _matched(self, entry: InventoryEntry, *, rule: str, reason: str) -> Verdict:
        """Build an inventory-matched verdict, honouring protected owners."""
        pattern = self.protected_pattern(entry.identifier, entry.display_name)
        if pattern is not None:
            reason = f"{reason}; owner protected (matches '{pattern}')"
        return Verdict(
            confidence=Confidence.INVENTORY_MATCHED,
            owner=entry.identifier,
            owner_name=entry.display_name,
            rule=rule,
            reason=reason,
            protected=pattern is not None,
            owner_present=entry.is_present(),
        )
