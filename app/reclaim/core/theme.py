"""Color theme for reclaim output.

The bundled ``data/theme.toml`` supplies every color; a user theme at
``~/.config/reclaim/theme.toml`` may override any subset of them.
"""

import logging
import sys
import tomllib
from functools import cache
from importlib import resources
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator
from rich.theme import Theme

from reclaim.core.paths import get_user_theme_path

logger = logging.getLogger(__name__)

_HEX_DIGITS = frozenset("0123456789abcdefABCDEF")


class ThemeColors(BaseModel):
    """Hex colors used by the CLI, one per semantic role."""

    model_config = ConfigDict(extra="forbid")

    text: str = "#ffffff"
    muted: str = "#b2bec3"
    header: str = "#69B9A1"
    border: str = "#29526d"

    success: str = "#03b971"
    warning: str = "#f5b332"
    error: str = "#f53263"
    info: str = "#0ec1c8"

    # what happened to an item
    moved: str = "#c1ff62"
    skipped: str = "#b2bec3"
    failed: str = "#f53263"

    # how its owner was determined
    confidence_matched: str = "#03b971"
    confidence_heuristic: str = "#faf870"
    confidence_none: str = "#d44ebc"

    size: str = "#0ec1c8"

    @field_validator("*", mode="before")
    @classmethod
    def check_hex(cls, v: object, info: Any) -> str:
        """Accept only #RGB or #RRGGBB strings."""
        field = info.field_name
        if not isinstance(v, str):
            msg = f"{field}: color must be a string"
            raise ValueError(msg)
        value = v.strip()
        if value[:1] != "#":
            msg = f"{field}: color must start with '#'"
            raise ValueError(msg)
        digits = value[1:]
        if len(digits) not in (3, 6):
            msg = f"{field}: color must be #RGB or #RRGGBB format"
            raise ValueError(msg)
        if not set(digits) <= _HEX_DIGITS:
            msg = f"{field}: invalid hex color '{value}'"
            raise ValueError(msg)
        return value


def get_bundled_theme_path() -> Path:
    """Return the path of the theme shipped with the package."""
    return Path(str(resources.files("reclaim.data").joinpath("theme.toml")))


def _load_toml_colors(path: Path) -> dict[str, str] | None:
    """Read the ``[colors]`` table of a theme file.

    Args:
        path: Theme file.

    Returns:
        The string-valued colors, or None when the file is missing,
        unreadable, not TOML, or has a ``colors`` key that is not a table.
    """
    try:
        with open(path, "rb") as f:
            document = tomllib.load(f)
    except FileNotFoundError:
        return None
    except tomllib.TOMLDecodeError as e:
        logger.warning("Theme file %s is not valid TOML: %s", path, e)
        print(f"Warning: Failed to parse {path}: {e}", file=sys.stderr)
        return None
    except OSError as e:
        logger.warning("Cannot read theme file %s: %s", path, e)
        return None

    table = document.get("colors", {})
    if not isinstance(table, dict):
        logger.warning("Ignoring %s: 'colors' is not a table", path)
        return None
    return {str(k): v for k, v in table.items() if isinstance(v, str)}


def load_theme() -> ThemeColors:
    """Merge the bundled theme with the user's overrides.

    Returns:
        Validated colors. Built-in defaults when the merged theme is invalid.
    """
    colors = _load_toml_colors(get_bundled_theme_path())
    if colors is None:
        logger.error("Bundled theme missing or unreadable; the installation may be broken")
        colors = {}

    overrides = _load_toml_colors(get_user_theme_path())
    if overrides:
        logger.debug("Applying %d user theme override(s)", len(overrides))
        colors.update(overrides)

    try:
        return ThemeColors.model_validate(colors)
    except ValidationError as e:
        logger.warning("Invalid theme, falling back to defaults: %s", e)
        print(f"Warning: Invalid theme configuration: {e}", file=sys.stderr)
        return ThemeColors()


def get_rich_theme(colors: ThemeColors | None = None) -> Theme:
    """Build the Rich theme the consoles render with.

    Args:
        colors: Colors to use. Loaded from the theme files when omitted.

    Returns:
        Rich Theme with one style per role plus the composite styles
        used by tables (``bold_header``, ``path``, ``confidence.*``).
    """
    c = colors if colors is not None else load_theme()
    return Theme(
        {
            "text": c.text,
            "muted": c.muted,
            "dim": c.muted,
            "header": c.header,
            "bold_header": f"bold {c.header}",
            "border": c.border,
            "success": c.success,
            "warning": c.warning,
            "error": f"bold {c.error}",
            "info": c.info,
            "moved": c.moved,
            "skipped": c.skipped,
            "failed": f"bold {c.failed}",
            "confidence.inventory-matched": c.confidence_matched,
            "confidence.heuristic": c.confidence_heuristic,
            "confidence.none": c.confidence_none,
            "size": c.size,
            "path": f"bold {c.text}",
        }
    )


@cache
def get_theme() -> Theme:
    """Return the Rich theme, built on first use."""
    return get_rich_theme()
