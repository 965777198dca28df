"""Pillbox configuration loading and validation.

Reads pillbox.toml from a config directory, resolves ``${VAR}`` references
against the environment, validates every section, and returns a
PillboxConfig dataclass.
"""

from __future__ import annotations

import os
import re
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from pillbox.inventory import MAX_ALERT_DAYS_AHEAD

CONFIG_FILENAME = "pillbox.toml"

DEFAULT_PORT = 8200
DEFAULT_CORS_ORIGINS: tuple[str, ...] = ("http://localhost:5173",)

# Pattern matching ${VAR_NAME}: alphanumeric + underscore variable names.
_ENV_VAR_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")
_DB_SCHEMA_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_LOG_FORMATS = ("text", "json")


class ConfigError(Exception):
    """Raised when pillbox configuration is missing, malformed, or invalid."""


@dataclass
class LoggingConfig:
    """Logging configuration from [pillbox.logging] section."""

    level: str = "INFO"
    format: str = "text"  # "text" or "json"
    log_root: str | None = None


@dataclass
class DatabaseConfig:
    """Database selection from [pillbox.db]; credentials come from the environment."""

    name: str = "pillbox"
    schema: str | None = None


@dataclass
class ApiConfig:
    """HTTP settings from [pillbox.api]."""

    cors_origins: list[str] = field(default_factory=lambda: list(DEFAULT_CORS_ORIGINS))
    static_dir: str | None = None


@dataclass
class ScheduleSettings:
    """Engine bounds from the [schedule] section."""

    max_range_days: int = 30
    next_dose_horizon_days: int = 30
    refill_days_ahead: int = 1


@dataclass
class PillboxConfig:
    """Top-level configuration."""

    name: str = "pillbox"
    port: int = DEFAULT_PORT
    db: DatabaseConfig = field(default_factory=DatabaseConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    api: ApiConfig = field(default_factory=ApiConfig)
    schedule: ScheduleSettings = field(default_factory=ScheduleSettings)


def resolve_env_vars(value: Any) -> Any:
    """Recursively resolve ``${VAR_NAME}`` references in config values.

    Walks dicts, lists, and strings.  Non-string leaf values (int, bool,
    float, None) are returned unchanged.

    Raises
    ------
    ConfigError
        If a referenced environment variable is not set.
    """
    if isinstance(value, dict):
        return {k: resolve_env_vars(v) for k, v in value.items()}

    if isinstance(value, list):
        return [resolve_env_vars(item) for item in value]

    if isinstance(value, str):
        return _resolve_string(value)

    return value


def _resolve_string(s: str) -> str:
    """Replace all ``${VAR_NAME}`` occurrences in *s* with env var values.

    Collects all missing variable names and reports them in a single error.
    """
    missing: list[str] = []

    def _replace(match: re.Match) -> str:
        var_name = match.group(1)
        env_value = os.environ.get(var_name)
        if env_value is None:
            missing.append(var_name)
            return match.group(0)
        return env_value

    result = _ENV_VAR_PATTERN.sub(_replace, s)

    if missing:
        vars_str = ", ".join(missing)
        raise ConfigError(
            f"Unresolved environment variable(s) in config value: {vars_str} (original: {s!r})"
        )

    return result


def _positive_int(
    section: dict[str, Any], key: str, default: int, label: str, maximum: int | None = None
) -> int:
    raw = section.get(key, default)
    if isinstance(raw, bool) or not isinstance(raw, int) or raw <= 0:
        raise ConfigError(f"{label} must be a positive integer, got {raw!r}")
    if maximum is not None and raw > maximum:
        raise ConfigError(f"{label} must be at most {maximum}, got {raw}")
    return raw


def _parse_db(section: dict[str, Any], name: str) -> DatabaseConfig:
    """Parse the optional [pillbox.db] sub-section."""
    db_name = str(section.get("name", name)).strip()
    if not db_name:
        raise ConfigError("pillbox.db.name must be a non-empty string")

    schema_raw = section.get("schema")
    schema: str | None = None
    if schema_raw is not None:
        if not isinstance(schema_raw, str):
            raise ConfigError("pillbox.db.schema must be a string when set")
        schema = schema_raw.strip()
        if _DB_SCHEMA_PATTERN.fullmatch(schema) is None:
            raise ConfigError(
                f"Invalid pillbox.db.schema: {schema_raw!r}. "
                "Expected a valid SQL identifier-style value."
            )
    return DatabaseConfig(name=db_name, schema=schema)


def _parse_logging(section: dict[str, Any]) -> LoggingConfig:
    """Parse the optional [pillbox.logging] sub-section."""
    log_level = str(section.get("level", "INFO")).upper()
    log_format = str(section.get("format", "text")).lower()
    if log_format not in _LOG_FORMATS:
        raise ConfigError(
            f"Invalid pillbox.logging.format: {log_format!r}. Expected 'text' or 'json'."
        )
    return LoggingConfig(level=log_level, format=log_format, log_root=section.get("log_root"))


def _parse_api(section: dict[str, Any]) -> ApiConfig:
    """Parse the optional [pillbox.api] sub-section."""
    origins = section.get("cors_origins", list(DEFAULT_CORS_ORIGINS))
    if not isinstance(origins, list) or not all(isinstance(o, str) for o in origins):
        raise ConfigError("pillbox.api.cors_origins must be a list of strings")
    return ApiConfig(cors_origins=origins, static_dir=section.get("static_dir"))


def _parse_schedule(section: dict[str, Any]) -> ScheduleSettings:
    """Parse the optional top-level [schedule] section."""
    defaults = ScheduleSettings()
    return ScheduleSettings(
        max_range_days=_positive_int(
            section, "max_range_days", defaults.max_range_days, "schedule.max_range_days"
        ),
        next_dose_horizon_days=_positive_int(
            section,
            "next_dose_horizon_days",
            defaults.next_dose_horizon_days,
            "schedule.next_dose_horizon_days",
        ),
        refill_days_ahead=_positive_int(
            section,
            "refill_days_ahead",
            defaults.refill_days_ahead,
            "schedule.refill_days_ahead",
            maximum=MAX_ALERT_DAYS_AHEAD,
        ),
    )


def load_config(config_dir: Path) -> PillboxConfig:
    """Load and validate a pillbox.toml from *config_dir*.

    Raises
    ------
    ConfigError
        If the file is missing, contains invalid TOML, or lacks required fields.
    """
    toml_path = Path(config_dir) / CONFIG_FILENAME

    if not toml_path.exists():
        raise ConfigError(f"Config file not found: {toml_path}")

    try:
        data = tomllib.loads(toml_path.read_bytes().decode())
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Invalid TOML in {toml_path}: {exc}") from exc

    data = resolve_env_vars(data)

    section = data.get("pillbox")
    if not isinstance(section, dict):
        raise ConfigError("Missing [pillbox] section in config")

    name = str(section.get("name", "pillbox"))
    port = section.get("port", DEFAULT_PORT)
    if isinstance(port, bool) or not isinstance(port, int) or not 0 < port < 65536:
        raise ConfigError(f"pillbox.port must be a valid TCP port, got {port!r}")

    return PillboxConfig(
        name=name,
        port=port,
        db=_parse_db(section.get("db", {}), name),
        logging=_parse_logging(section.get("logging", {})),
        api=_parse_api(section.get("api", {})),
        schedule=_parse_schedule(data.get("schedule", {})),
    )
