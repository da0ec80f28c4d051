"""Ownership attribution for filesystem candidates.

This module provides the attribution resolver, its heuristic chains and
the protected identifier set.
"""

from reclaim.attribution.heuristics import HEURISTIC_CHAINS, HeuristicMatch, HeuristicRule
from reclaim.attribution.models import Candidate, Confidence, Domain, Verdict
from reclaim.attribution.protected import PROTECTED_IDENTIFIER_PATTERNS, is_protected_identifier
from reclaim.attribution.resolver import AttributionResolver, identifier_variants

__all__ = [
    "HEURISTIC_CHAINS",
    "PROTECTED_IDENTIFIER_PATTERNS",
    "AttributionResolver",
    "Candidate",
    "Confidence",
    "Domain",
    "HeuristicMatch",
    "HeuristicRule",
    "Verdict",
    "identifier_variants",
    "is_protected_identifier",
]
