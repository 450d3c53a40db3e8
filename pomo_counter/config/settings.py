"""Application settings with Pydantic Settings validation.

Secrets (database password) are loaded from the .env file.
Non-sensitive configuration is loaded from config/*.yaml files, merged and
validated against JSON schemas in config/schemas/.
"""

import json
from pathlib import Path
from typing import Any, Final, Literal, cast

import pytz
import yaml
from jsonschema import ValidationError as JSONSchemaValidationError
from jsonschema import validate
from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from pomo_counter.config.logging_config import get_logger

POSTGRES_MIN_CONNECTIONS_DEFAULT: Final[int] = 1
POSTGRES_MAX_CONNECTIONS_DEFAULT: Final[int] = 10
POSTGRES_STATEMENT_TIMEOUT_MS_DEFAULT: Final[int] = 10_000
POSTGRES_CONNECT_TIMEOUT_SECONDS_DEFAULT: Final[int] = 10
POSTGRES_APPLICATION_NAME_DEFAULT: Final[str] = "pomo_counter"

RESCAN_PROGRESS_INTERVAL_DEFAULT: Final[int] = 100

CONFIG_DIR: Final[Path] = Path("config")
SCHEMA_DIR: Final[Path] = CONFIG_DIR / "schemas"

logger = cast(Any, get_logger(__name__))


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep merge two dictionaries.

    Args:
        base: Base dictionary
        override: Dictionary to merge into base (takes precedence)

    Returns:
        Merged dictionary
    """
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def load_schema(schema_name: str, schema_dir: Path = SCHEMA_DIR) -> dict[str, Any]:
    """Load a JSON Schema from the schema directory.

    Args:
        schema_name: Schema name without extension (e.g., "main")
        schema_dir: Directory holding ``<name>.schema.json`` files

    Returns:
        JSON Schema dictionary or empty dict if not found
    """
    schema_path = schema_dir / f"{schema_name}.schema.json"
    if not schema_path.exists():
        return {}

    try:
        with open(schema_path, encoding="utf-8") as f:
            return cast(dict[str, Any], json.load(f))
    except (json.JSONDecodeError, OSError) as e:
        logger.warning("config_schema_load_failed", schema=schema_name, error=str(e))
        return {}


def validate_config_section(
    config: dict[str, Any],
    schema_name: str,
    file_path: str = "",
    schema_dir: Path = SCHEMA_DIR,
) -> None:
    """Validate a config section against its JSON Schema.

    Args:
        config: Configuration dictionary to validate
        schema_name: Name of schema to validate against
        file_path: Optional file path for error messages
        schema_dir: Directory holding the schemas

    Raises:
        ValueError: If validation fails
    """
    schema = load_schema(schema_name, schema_dir)
    if not schema:
        return

    try:
        validate(instance=config, schema=schema)
        logger.debug("config_validation_succeeded", schema=schema_name)
    except JSONSchemaValidationError as e:
        error_msg = f"Config validation failed for {schema_name}"
        if file_path:
            error_msg += f" (file: {file_path})"
        error_msg += f": {e.message}"
        raise ValueError(error_msg) from e


def load_all_configs(config_dir: Path = CONFIG_DIR) -> dict[str, Any]:
    """Load and merge all YAML configs from the config directory.

    Loading order (later overrides earlier):
    1. main.yaml
    2. All other *.yaml files (sorted alphabetically)

    Each file is validated against the schema named after its stem.

    Returns:
        Merged configuration dictionary

    Raises:
        ValueError: If a file fails schema validation
    """
    merged_config: dict[str, Any] = {}
    if not config_dir.is_dir():
        logger.info("config_load_complete", file_count=0)
        return merged_config

    schema_dir = config_dir / "schemas"
    main_path = config_dir / "main.yaml"
    yaml_files = [main_path] if main_path.exists() else []
    yaml_files += sorted(f for f in config_dir.glob("*.yaml") if f.name != "main.yaml")

    for yaml_file in yaml_files:
        schema_name = yaml_file.stem
        try:
            with open(yaml_file, encoding="utf-8") as f:
                file_config = yaml.safe_load(f) or {}
        except (yaml.YAMLError, OSError) as e:
            logger.warning("config_file_load_failed", path=str(yaml_file), error=str(e))
            continue

        try:
            validate_config_section(file_config, schema_name, str(yaml_file), schema_dir)
        except ValueError as e:
            logger.error(
                "config_validation_failed",
                path=str(yaml_file),
                schema=schema_name,
                error=str(e),
            )
            raise

        merged_config = deep_merge(merged_config, file_config)
        logger.debug("config_file_loaded", path=str(yaml_file), schema=schema_name)

    logger.info("config_load_complete", file_count=len(yaml_files))
    return merged_config


class Settings(BaseSettings):
    """Application settings.

    Environment values win over YAML values, which win over field defaults.
    """

    model_config = SettingsConfigDict(
        env_file=".env" if Path(".env").exists() else None,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # === SECRETS (from .env) ===

    postgres_password: SecretStr | None = Field(
        default=None, description="PostgreSQL password (from .env, optional)"
    )

    # === DATABASE ===

    database_type: Literal["sqlite", "postgres"] = Field(
        default="sqlite", description="Database type: sqlite or postgres"
    )
    db_path: str = Field(
        default="data/pomo_counter.db", description="SQLite database path"
    )
    postgres_host: str = Field(default="localhost", description="PostgreSQL host")
    postgres_port: int = Field(default=5432, description="PostgreSQL port")
    postgres_database: str = Field(
        default="pomo_counter", description="PostgreSQL database name"
    )
    postgres_user: str = Field(default="postgres", description="PostgreSQL user")
    postgres_min_connections: int = Field(
        default=POSTGRES_MIN_CONNECTIONS_DEFAULT,
        ge=1,
        description="Minimum number of connections in PostgreSQL pool",
    )
    postgres_max_connections: int = Field(
        default=POSTGRES_MAX_CONNECTIONS_DEFAULT,
        ge=1,
        description="Maximum number of connections in PostgreSQL pool",
    )
    postgres_statement_timeout_ms: int = Field(
        default=POSTGRES_STATEMENT_TIMEOUT_MS_DEFAULT,
        description="PostgreSQL statement timeout in milliseconds",
    )
    postgres_connect_timeout_seconds: int = Field(
        default=POSTGRES_CONNECT_TIMEOUT_SECONDS_DEFAULT,
        description="PostgreSQL connection timeout in seconds",
    )
    postgres_application_name: str = Field(
        default=POSTGRES_APPLICATION_NAME_DEFAULT,
        description="Application name for PostgreSQL connections",
    )
    postgres_ssl_mode: str | None = Field(
        default=None,
        description="Optional SSL mode for PostgreSQL connections (e.g., require)",
    )

    # === PROCESSING ===

    tz_default: str = Field(
        default="Europe/Amsterdam", description="Timezone challenge weeks follow"
    )
    rescan_prune_missing: bool = Field(
        default=False,
        description="Delete ledger rows absent from a full-thread rescan",
    )
    rescan_progress_interval: int = Field(
        default=RESCAN_PROGRESS_INTERVAL_DEFAULT,
        ge=1,
        description="Log rescan progress every N messages",
    )

    # === LOGGING ===

    log_level: str = Field(default="INFO", description="Logging level")
    json_logs: bool = Field(default=False, description="Emit JSON log lines")

    @field_validator("tz_default")
    @classmethod
    def _validate_timezone(cls, value: str) -> str:
        if value not in pytz.all_timezones_set:
            raise ValueError(f"Unknown timezone: {value}")
        return value

    def __init__(self, **data: Any):
        """Initialize settings with auto-loaded configs from all YAML files."""
        config = load_all_configs()

        super().__init__(**data)
        self._apply_yaml_defaults(config)

    def _apply_yaml_defaults(self, config: dict[str, Any]) -> None:
        """Apply YAML-sourced defaults without overriding env-provided values."""

        fields_from_env = set(self.model_fields_set)

        def _assign(field_name: str, value: Any) -> None:
            if value is None:
                return
            if field_name in fields_from_env:
                return

            object.__setattr__(self, field_name, value)
            self.model_fields_set.add(field_name)

        database_config = config.get("database") or {}
        _assign("database_type", database_config.get("type"))
        _assign("db_path", database_config.get("path"))

        postgres_config = database_config.get("postgres") or {}
        _assign("postgres_host", postgres_config.get("host"))
        _assign("postgres_port", postgres_config.get("port"))
        _assign("postgres_database", postgres_config.get("database"))
        _assign("postgres_user", postgres_config.get("user"))
        _assign("postgres_min_connections", postgres_config.get("min_connections"))
        _assign("postgres_max_connections", postgres_config.get("max_connections"))
        _assign("postgres_ssl_mode", postgres_config.get("ssl_mode"))

        processing_config = config.get("processing") or {}
        _assign("tz_default", processing_config.get("tz_default"))

        rescan_config = config.get("rescan") or {}
        _assign("rescan_prune_missing", rescan_config.get("prune_missing"))
        _assign("rescan_progress_interval", rescan_config.get("progress_interval"))

        logging_config = config.get("logging") or {}
        _assign("log_level", logging_config.get("level"))
        _assign("json_logs", logging_config.get("json"))


# Global settings instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get or create global settings instance.

    Returns:
        Settings instance
    """
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
