"""Configuration management for the sheet migrator."""

import asyncio
import json
import os
import re
from pathlib import Path
from typing import Any

import structlog
import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..constants import DEFAULT_HEADER_ROWS, DEFAULT_IDENTITY_PREFIX
from ..models.rules import ClassifierRule
from .exceptions import ConfigurationError
from .settings import RetrySettings

logger = structlog.get_logger()

DEFAULT_CONFIG_FILE = "config/migrator.yml"


class StoreConfig(BaseModel):
    """Remote store connection settings."""

    model_config = ConfigDict(frozen=True)

    spreadsheet_id: str = ""
    credentials_file: str | None = None
    credentials_json: str | None = Field(default=None, repr=False)

    def service_account_info(self) -> dict[str, Any] | None:
        """Parse inline service-account JSON, if provided."""
        if not self.credentials_json:
            return None
        try:
            info = json.loads(self.credentials_json)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Service account JSON is not valid JSON: {e}") from e
        if not isinstance(info, dict):
            raise ConfigurationError("Service account JSON must be an object")
        return info


class MigrationSettings(BaseModel):
    """Collections, identity layout and safety toggles for a run."""

    model_config = ConfigDict(frozen=True)

    source_collections: tuple[str, ...] = ()
    destination_collections: tuple[str, ...] = ()
    identity_column: int = Field(default=26, ge=1)
    header_rows: int = Field(default=DEFAULT_HEADER_ROWS, ge=0)
    move_rows: bool = True  # False = copy-only, sources are never deleted
    require_destination_identity: bool = True
    require_unchanged_checksum: bool = True
    create_missing_destinations: bool = True
    reconcile_orphans: bool = False
    identity_prefix: str = DEFAULT_IDENTITY_PREFIX

    @property
    def first_data_row(self) -> int:
        return self.header_rows + 1


class MigratorConfig(BaseSettings):
    """Main configuration, constructed once and passed into the engine."""

    store: StoreConfig = Field(default_factory=StoreConfig)
    migration: MigrationSettings = Field(default_factory=MigrationSettings)
    rules: tuple[ClassifierRule, ...] = ()
    retry: RetrySettings = Field(default_factory=RetrySettings)
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    config_file: str = Field(default=DEFAULT_CONFIG_FILE, alias="MIGRATOR_CONFIG")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
        frozen=True,
    )


def load_config(config_path: str | None = None) -> MigratorConfig:
    """Load configuration from multiple sources (synchronous interface).

    Args:
        config_path: Optional path to YAML config file

    Returns:
        Loaded and validated configuration

    Note:
        For async code, use load_config_async() instead.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(load_config_async(config_path))
    raise RuntimeError(
        "load_config() cannot be called from within an async context. "
        "Use 'await load_config_async()' instead."
    )


async def load_config_async(config_path: str | None = None) -> MigratorConfig:
    """Load configuration from multiple sources (async interface).

    Precedence, lowest first: user config, project config, environment.

    Args:
        config_path: Optional path to YAML config file

    Returns:
        Loaded and validated configuration

    Raises:
        ConfigurationError: If a file cannot be parsed or the result is invalid
    """
    load_dotenv()

    data: dict[str, Any] = {}

    user_config_path = Path.home() / ".config" / "sheet-migrator" / "migrator.yml"
    _merge_config(data, await _load_config_file(user_config_path))

    project_config_path = Path(
        config_path or os.getenv("MIGRATOR_CONFIG", DEFAULT_CONFIG_FILE)
    )
    _merge_config(data, await _load_config_file(project_config_path))
    data["config_file"] = str(project_config_path)

    _apply_env_overrides(data)

    try:
        config = MigratorConfig(**data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration in {project_config_path}: {e}") from e

    validate_config(config)
    logger.info(
        "Configuration loaded",
        path=str(project_config_path),
        sources=list(config.migration.source_collections),
        destinations=list(config.migration.destination_collections),
        rules=len(config.rules),
    )
    return config


def validate_config(config: MigratorConfig) -> None:
    """Check cross-field consistency of a configuration.

    Raises:
        ConfigurationError: Listing every problem found
    """
    migration = config.migration
    problems: list[str] = []

    if not migration.source_collections:
        problems.append("at least one source collection is required")
    if not migration.destination_collections:
        problems.append("at least one destination collection is required")
    if not config.rules:
        problems.append("at least one classifier rule is required")

    for label, names in (
        ("source", migration.source_collections),
        ("destination", migration.destination_collections),
    ):
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            problems.append(f"duplicate {label} collections: {', '.join(duplicates)}")

    for index, rule in enumerate(config.rules, start=1):
        if rule.destination not in migration.destination_collections:
            problems.append(
                f"rule {index} targets undeclared destination '{rule.destination}'"
            )
        if migration.identity_column in rule.columns + rule.exclusion_columns:
            problems.append(
                f"rule {index} reads the identity column {migration.identity_column}"
            )

    if problems:
        raise ConfigurationError("Invalid configuration: " + "; ".join(problems))


async def _load_config_file(config_path: Path) -> dict[str, Any]:
    """Load a YAML file, returning an empty mapping when it does not exist."""
    if not config_path.exists():
        return {}
    return await _load_yaml_config(config_path)


def _apply_env_overrides(data: dict[str, Any]) -> None:
    """Apply environment variable overrides (highest priority)."""
    store = data.setdefault("store", {})
    if spreadsheet_id := os.getenv("SPREADSHEET_ID"):
        store["spreadsheet_id"] = spreadsheet_id
    if credentials_json := os.getenv("GOOGLE_SERVICE_ACCOUNT_JSON"):
        store["credentials_json"] = credentials_json
    if credentials_file := os.getenv("GOOGLE_APPLICATION_CREDENTIALS"):
        store["credentials_file"] = credentials_file
    if log_level := os.getenv("LOG_LEVEL"):
        data["log_level"] = log_level


async def _load_yaml_config(config_path: Path) -> dict[str, Any]:
    """Load YAML configuration file."""
    try:
        content = await asyncio.to_thread(config_path.read_text)
        content = _expand_yaml_config(content)
        loaded = yaml.safe_load(content)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Failed to load config from {config_path}: {e}") from e

    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ConfigurationError(f"Config file {config_path} must contain a mapping")
    return loaded


def _expand_yaml_config(content: str) -> str:
    """Securely expand environment variables with allowlist."""

    allowed_env_vars = {
        "HOME",
        "USER",
        "XDG_CONFIG_HOME",
        "SPREADSHEET_ID",
        "GOOGLE_APPLICATION_CREDENTIALS",
        "MIGRATOR_CONFIG",
        "LOG_LEVEL",
    }

    def replace_if_allowed(match: re.Match[str]) -> str:
        var_name = match.group(1) or match.group(2)
        original_pattern = match.group(0)

        if var_name in allowed_env_vars:
            return os.getenv(var_name, original_pattern)  # Keep original if not found
        logger.warning(
            "Environment variable not in allowlist, skipping expansion",
            variable=var_name,
            pattern=original_pattern,
        )
        return original_pattern

    return re.sub(r"\$\{([^}]+)\}|\$([A-Za-z_][A-Za-z0-9_]*)", replace_if_allowed, content)


def _merge_config(base: dict[str, Any], update: dict[str, Any]) -> None:
    """Merge configuration dictionaries with deep merging."""
    for key, value in update.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _merge_config(base[key], value)
        else:
            base[key] = value
