# src/chkjam/core/config.py
"""
Configuration schema and loading for chkjam.

Uses Pydantic for validation and Dynaconf for multi-source loading.
Settings are frozen (immutable) after construction.
"""

import os
import re
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

from chkjam.core.checkpoint.format import CURRENT_VERSION
from chkjam.core.checkpoint.recovery import DEFAULT_EXTENSION, JamPaths

_EXTENSION_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")


class PersistenceSettings(BaseModel):
    """Where checkpoints live and how they are written.

    enforce_version makes records of any version other than format_version
    count as failed slots during recovery.
    """

    model_config = {"frozen": True}

    data_dir: Path = Field(
        default=Path(".chkjam"),
        description="Directory holding the two checkpoint slot files",
    )
    extension: str = Field(
        default=DEFAULT_EXTENSION,
        description="File extension of the slot files (0.<ext>, 1.<ext>)",
    )
    format_version: int = Field(
        default=CURRENT_VERSION,
        ge=0,
        lt=2**32,
        description="Format version stamped on written records",
    )
    enforce_version: bool = Field(
        default=False,
        description="Reject records whose version differs from format_version",
    )
    fsync: bool = Field(
        default=True,
        description="fsync slot files and their directory after each write",
    )

    @field_validator("extension")
    @classmethod
    def validate_extension(cls, v: str) -> str:
        """Extension must be a bare name, no dots or path separators."""
        if not _EXTENSION_PATTERN.match(v):
            raise ValueError(f"extension must match {_EXTENSION_PATTERN.pattern}, got {v!r}")
        return v

    @property
    def expected_version(self) -> int | None:
        """Version recovery should require, or None when any version is accepted."""
        return self.format_version if self.enforce_version else None

    def jam_paths(self) -> JamPaths:
        return JamPaths.new(self.data_dir, self.extension)


class LoggingSettings(BaseModel):
    """Logging output configuration."""

    model_config = {"frozen": True}

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    json_output: bool = False

    @field_validator("level", mode="before")
    @classmethod
    def normalize_level(cls, v: Any) -> Any:
        return v.upper() if isinstance(v, str) else v


class ChkjamSettings(BaseModel):
    """Top-level chkjam configuration."""

    model_config = {"frozen": True}

    persistence: PersistenceSettings = Field(default_factory=PersistenceSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


# Regex pattern for ${VAR} or ${VAR:-default} syntax
_ENV_VAR_PATTERN = re.compile(r"\$\{([A-Z_][A-Z0-9_]*)(?::-([^}]*))?\}")


def _expand_env_vars(config: dict[str, Any]) -> dict[str, Any]:
    """Recursively expand ${VAR} and ${VAR:-default} patterns in config values.

    Args:
        config: Configuration dict (may contain nested structures)

    Returns:
        New dict with environment variables expanded
    """

    def _expand_string(value: str) -> str:
        def replacer(match: re.Match[str]) -> str:
            var_name = match.group(1)
            default = match.group(2)  # None if no default specified
            env_value = os.environ.get(var_name)
            if env_value is not None:
                return env_value
            if default is not None:
                return default
            # No env var and no default - keep original (validation will report it)
            return match.group(0)

        return _ENV_VAR_PATTERN.sub(replacer, value)

    def _expand_value(value: Any) -> Any:
        if isinstance(value, str):
            return _expand_string(value)
        elif isinstance(value, dict):
            return {k: _expand_value(v) for k, v in value.items()}
        elif isinstance(value, list):
            return [_expand_value(item) for item in value]
        else:
            return value

    return {k: _expand_value(v) for k, v in config.items()}


def _lower_keys(value: Any) -> Any:
    if isinstance(value, dict):
        return {str(k).lower(): _lower_keys(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_lower_keys(item) for item in value]
    return value


def load_settings(config_path: Path) -> ChkjamSettings:
    """Load settings from YAML file with environment variable overrides.

    Uses Dynaconf for multi-source loading with precedence:
    1. Environment variables (CHKJAM_*) - highest priority
    2. Config file (YAML)
    3. Defaults from Pydantic schema - lowest priority

    Environment variable format: CHKJAM_PERSISTENCE__DATA_DIR for nested keys.

    Args:
        config_path: Path to YAML configuration file

    Returns:
        Validated ChkjamSettings instance

    Raises:
        ValidationError: If configuration fails Pydantic validation
        FileNotFoundError: If config file doesn't exist
    """
    from dynaconf import Dynaconf

    # Explicit check for file existence (Dynaconf silently accepts missing files)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    dynaconf_settings = Dynaconf(
        envvar_prefix="CHKJAM",
        settings_files=[str(config_path)],
        environments=False,  # No [default]/[production] sections
        load_dotenv=False,  # Don't auto-load .env
        merge_enabled=True,  # Deep merge nested dicts
    )

    # Dynaconf returns uppercase keys; convert to lowercase for Pydantic
    # Also filter out internal Dynaconf settings
    internal_keys = {"LOAD_DOTENV", "ENVIRONMENTS", "SETTINGS_FILES"}
    raw_config = {k.lower(): _lower_keys(v) for k, v in dynaconf_settings.as_dict().items() if k not in internal_keys}

    raw_config = _expand_env_vars(raw_config)

    return ChkjamSettings(**raw_config)
