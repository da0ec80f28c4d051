"""User configuration for reclaim.

The configuration lives in ``~/.config/reclaim/config.toml``. A missing
file is not an error: every field has a default, so the tool works out
of the box and the file only records deliberate overrides.
"""

import os
import tomllib
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Annotated, Any, Literal

import tomli_w
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from reclaim.core.paths import get_backup_root, get_config_path

# Names of the inspection modules that accept a threshold override
ModuleNameType = Literal[
    "permissions",
    "launchd",
    "startup",
    "binaries",
    "brew",
    "caches",
    "leftovers",
    "logs",
    "disk",
    "intel",
]

_MB = 1024 * 1024


class ConfigError(Exception):
    """Base exception for configuration errors."""


class ConfigNotFoundError(ConfigError):
    """Raised when the configuration file is not found."""


class ConfigParseError(ConfigError):
    """Raised when the configuration file cannot be parsed."""


class ConfigValidationError(ConfigError):
    """Raised when the configuration content is invalid."""


class Settings(BaseModel):
    """Validated reclaim configuration.

    Attributes:
        backup_root: Directory holding backup sessions. None means the
            XDG state default (~/.local/state/reclaim/backups).
        thresholds_mb: Per-module size threshold overrides in megabytes.
        protected_identifiers: Additional glob patterns for identifiers
            that must never be flagged.
        leftovers_allowlist: Paths under ~/Library that are always
            reported by the leftovers module, regardless of name or size.
        disk_top_n: Number of largest disk consumers shown by the CLI.
    """

    model_config = ConfigDict(extra="forbid")

    backup_root: Annotated[str | None, Field(description="Backup session root")] = None
    thresholds_mb: Annotated[
        dict[ModuleNameType, float],
        Field(description="Per-module size threshold overrides (MB)"),
    ] = {}
    protected_identifiers: Annotated[
        list[str],
        Field(description="Extra protected identifier patterns"),
    ] = []
    leftovers_allowlist: Annotated[
        list[str],
        Field(description="Paths always reported as leftovers"),
    ] = []
    disk_top_n: Annotated[int, Field(ge=1, description="Disk consumers to display")] = 20

    @field_validator("thresholds_mb")
    @classmethod
    def validate_thresholds(cls, v: dict[str, float]) -> dict[str, float]:
        """Reject negative thresholds."""
        for module, value in v.items():
            if value < 0:
                msg = f"Threshold for '{module}' cannot be negative"
                raise ValueError(msg)
        return v

    @field_validator("protected_identifiers")
    @classmethod
    def validate_patterns(cls, v: list[str]) -> list[str]:
        """Reject blank identifier patterns."""
        cleaned = [pattern.strip() for pattern in v]
        if any(not pattern for pattern in cleaned):
            msg = "Protected identifier patterns cannot be empty"
            raise ValueError(msg)
        return cleaned

    def threshold_bytes(self, module: str, default: int) -> int:
        """Resolve the size threshold for a module.

        Args:
            module: Inspection module name.
            default: Module default threshold in bytes.

        Returns:
            The configured override converted to bytes, or the default.
        """
        override = self.thresholds_mb.get(module)  # type: ignore[call-overload]
        if override is None:
            return default
        return int(override * _MB)

    def resolved_backup_root(self) -> Path:
        """Return the backup root with ``~`` expanded."""
        if self.backup_root is None:
            return get_backup_root()
        return Path(self.backup_root).expanduser()

    def allowlist_paths(self) -> tuple[Path, ...]:
        """Return the leftovers allowlist with ``~`` expanded."""
        return tuple(Path(entry).expanduser() for entry in self.leftovers_allowlist)


def load_config(path: Path | None = None) -> Settings:
    """Load and validate configuration from a TOML file.

    Args:
        path: Path to the configuration file. If None, uses the default path.

    Returns:
        Validated Settings object.

    Raises:
        ConfigNotFoundError: If the file doesn't exist.
        ConfigParseError: If the TOML syntax is invalid.
        ConfigValidationError: If the content doesn't match the schema.
    """
    config_path = path or get_config_path()

    if not config_path.exists():
        raise ConfigNotFoundError(f"Config not found: {config_path}")

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigParseError(f"Invalid TOML syntax: {e}") from e
    except OSError as e:
        raise ConfigError(f"Failed to read config: {e}") from e

    try:
        return Settings.model_validate(data)
    except ValidationError as e:
        raise ConfigValidationError(f"Invalid config content: {e}") from e


def load_config_or_default(path: Path | None = None) -> Settings:
    """Load configuration, falling back to defaults when the file is absent.

    Args:
        path: Path to the configuration file. If None, uses the default path.

    Returns:
        Validated Settings object.

    Raises:
        ConfigParseError: If the TOML syntax is invalid.
        ConfigValidationError: If the content doesn't match the schema.
    """
    try:
        return load_config(path)
    except ConfigNotFoundError:
        return Settings()


def save_config(settings: Settings, path: Path | None = None) -> Path:
    """Save configuration to a TOML file.

    The file is written atomically through a temporary file in the same
    directory followed by os.replace().

    Args:
        settings: Settings to save.
        path: Destination path. If None, uses the default path.

    Returns:
        Path where the configuration was saved.

    Raises:
        ConfigError: If the file cannot be written.
    """
    config_path = path or get_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)

    data = _settings_to_dict(settings)

    tmp_path: Path | None = None
    try:
        with NamedTemporaryFile(
            mode="wb",
            dir=config_path.parent,
            delete=False,
            suffix=".tmp",
        ) as f:
            tmp_path = Path(f.name)
            tomli_w.dump(data, f)
        os.replace(str(tmp_path), str(config_path))
    except OSError as e:
        if tmp_path is not None and tmp_path.exists():
            tmp_path.unlink()
        raise ConfigError(f"Failed to write config: {e}") from e

    return config_path


def _settings_to_dict(settings: Settings) -> dict[str, Any]:
    """Convert Settings to a TOML-serializable dictionary.

    TOML has no null, so unset optional fields are omitted.
    """
    data = settings.model_dump(exclude_none=True)
    data["thresholds_mb"] = dict(settings.thresholds_mb)
    return data
