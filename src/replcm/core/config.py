# src/replcm/core/config.py
"""
Configuration schema and loading for replcm.

Uses Pydantic for validation and Dynaconf for multi-source loading.
Settings are frozen (immutable) after construction and read once at
startup; there is no hot reload.
"""

import re
from datetime import timedelta
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

from replcm.contracts.enums import ChecksumAlgorithm


class ChangeManagerSettings(BaseModel):
    """Change manager (recycle + clearer) configuration.

    Example YAML:
        change_manager:
          enabled: true
          cm_root: /warehouse/cmroot
          retain_seconds: 86400         # purge entries older than one day
          clear_interval_seconds: 3600  # sweep every hour
          checksum_algorithm: md5
    """

    model_config = {"frozen": True}

    enabled: bool = Field(default=True, description="Recycle dropped data instead of leaving it to be deleted")
    cm_root: Path = Field(
        default=Path(".replcm/cmroot"),
        description="Root directory holding recycled files",
    )
    retain_seconds: float = Field(default=86400.0, gt=0, description="Age after which recycled entries are purged")
    clear_interval_seconds: float = Field(default=3600.0, gt=0, description="Interval between clearer sweeps")
    checksum_algorithm: ChecksumAlgorithm = Field(
        default=ChecksumAlgorithm.MD5,
        description="Content signature used in recycled file names",
    )

    @field_validator("cm_root")
    @classmethod
    def validate_cm_root_not_empty(cls, v: Path) -> Path:
        """An empty path would recycle into the working directory."""
        if str(v).strip() in ("", "."):
            raise ValueError("cm_root must name a dedicated directory")
        return v

    @property
    def retain(self) -> timedelta:
        """Retention age as a timedelta."""
        return timedelta(seconds=self.retain_seconds)


class WarehouseSettings(BaseModel):
    """Warehouse layout used to derive default table/partition locations."""

    model_config = {"frozen": True}

    root: Path = Field(
        default=Path(".replcm/warehouse"),
        description="Warehouse root; databases default to <root>/<name>.db",
    )


class LoggingSettings(BaseModel):
    """Logging output configuration."""

    model_config = {"frozen": True}

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    json_output: bool = False

    @field_validator("level", mode="before")
    @classmethod
    def normalize_level(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.upper()
        return v


class ReplcmSettings(BaseModel):
    """Top-level replcm configuration.

    All settings are validated and frozen after construction.
    """

    model_config = {"frozen": True}

    change_manager: ChangeManagerSettings = Field(
        default_factory=ChangeManagerSettings,
        description="Recycle and clearer configuration",
    )
    warehouse: WarehouseSettings = Field(
        default_factory=WarehouseSettings,
        description="Warehouse layout configuration",
    )
    logging: LoggingSettings = Field(
        default_factory=LoggingSettings,
        description="Logging configuration",
    )


# Regex pattern for ${VAR} or ${VAR:-default} syntax
_ENV_VAR_PATTERN = re.compile(r"\$\{([A-Z_][A-Z0-9_]*)(?::-([^}]*))?\}")


def _expand_env_vars(config: dict[str, Any]) -> dict[str, Any]:
    """Recursively expand ${VAR} and ${VAR:-default} patterns in config values.

    Args:
        config: Configuration dict (may contain nested structures)

    Returns:
        New dict with environment variables expanded
    """
    import os

    def _expand_string(value: str) -> str:
        def replacer(match: re.Match[str]) -> str:
            var_name = match.group(1)
            default = match.group(2)
            env_value = os.environ.get(var_name)
            if env_value is not None:
                return env_value
            if default is not None:
                return default
            # No env var and no default - keep original so validation reports it
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
    """Lower-case dict keys recursively (Dynaconf upper-cases env-provided keys)."""
    if isinstance(value, dict):
        return {str(k).lower(): _lower_keys(v) for k, v in value.items()}
    return value


def load_settings(config_path: Path) -> ReplcmSettings:
    """Load settings from YAML file with environment variable overrides.

    Precedence:
    1. Environment variables (REPLCM_*) - highest priority
    2. Config file (settings.yaml)
    3. Defaults from Pydantic schema - lowest priority

    Environment variable format: REPLCM_CHANGE_MANAGER__RETAIN_SECONDS for
    nested keys.

    Raises:
        ValidationError: If configuration fails Pydantic validation
        FileNotFoundError: If config file doesn't exist
    """
    # Dynaconf silently accepts missing files
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    return _build_settings([str(config_path)])


def load_env_settings() -> ReplcmSettings:
    """Load settings from REPLCM_* environment variables over the defaults.

    Used when no settings file exists.

    Raises:
        ValidationError: If configuration fails Pydantic validation
    """
    return _build_settings([])


def _build_settings(settings_files: list[str]) -> ReplcmSettings:
    from dynaconf import Dynaconf

    dynaconf_settings = Dynaconf(
        envvar_prefix="REPLCM",
        settings_files=settings_files,
        environments=False,
        load_dotenv=False,
        merge_enabled=True,
    )

    internal_keys = {"LOAD_DOTENV", "ENVIRONMENTS", "SETTINGS_FILES"}
    raw_config = {k: v for k, v in dynaconf_settings.as_dict().items() if k not in internal_keys}
    raw_config = _lower_keys(raw_config)
    raw_config = _expand_env_vars(raw_config)

    return ReplcmSettings(**raw_config)


def resolve_config(settings: ReplcmSettings) -> dict[str, Any]:
    """Convert validated settings to a JSON-safe dict (all defaults included)."""
    return settings.model_dump(mode="json")
