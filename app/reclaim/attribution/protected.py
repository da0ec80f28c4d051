"""Protected identifiers that must never be flagged or relocated.

This module defines identifier patterns for security and endpoint
protection software, operating-system components and package-manager
managed services. Anything attributed to one of them is excluded from
every inspection module, whatever its size or age.
"""

import fnmatch
from collections.abc import Iterable

# Protected identifier patterns (glob-style, matched case-insensitively
# against both identifiers and display names).
PROTECTED_IDENTIFIER_PATTERNS: tuple[str, ...] = (
    # Security and endpoint protection
    "*malwarebytes*",
    "*mbam*",
    "*bitdefender*",
    "*crowdstrike*",
    "*sentinel*",
    "*sophos*",
    "*carbonblack*",
    "*defender*",
    "*endpoint*",
    # Operating system
    "com.apple.*",
    "group.com.apple.*",
    "??????????.com.apple.*",
    "apple",
    # Package-manager managed services
    "homebrew.mxcl.*",
    # reclaim itself
    "reclaim",
    "*.reclaim",
)


def is_protected_identifier(value: str | None, extra: Iterable[str] = ()) -> bool:
    """Check if an identifier or display name is protected.

    Args:
        value: Bundle id, label, folder name or display name.
        extra: Additional patterns (e.g. from user configuration).

    Returns:
        True if the value matches any protected pattern.
    """
    return matching_pattern(value, extra) is not None


def matching_pattern(value: str | None, extra: Iterable[str] = ()) -> str | None:
    """Return the first protected pattern matching a value.

    Args:
        value: Identifier or display name.
        extra: Additional patterns.

    Returns:
        The matching pattern, or None.
    """
    if not value:
        return None

    lowered = value.strip().lower()
    for pattern in (*PROTECTED_IDENTIFIER_PATTERNS, *extra):
        if fnmatch.fnmatchcase(lowered, pattern.lower()):
            return pattern

    return None
