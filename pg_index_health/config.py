"""Configuration loading and management for pg-index-health."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path

import yaml

from pg_index_health.connection import ConnectionCredentials
from pg_index_health.context import (
    DEFAULT_BLOAT_PERCENTAGE_THRESHOLD,
    DEFAULT_REMAINING_PERCENTAGE_THRESHOLD,
    DEFAULT_SCHEMA_NAME,
    SchemaContext,
)
from pg_index_health.filters import Exclusions

CONFIG_FILE_NAME = "pg-index-health.yaml"


@dataclass
class ConnectionConfig:
    """Where the cluster is and how to log in."""

    urls: list[str] = field(default_factory=list)
    user: str | None = None
    password: str | None = None  # None = fall back to PGPASSWORD
    timeout_seconds: float = 30.0

    def credentials(self) -> ConnectionCredentials:
        return ConnectionCredentials(tuple(self.urls), self.user, self.password)


@dataclass
class ContextConfig:
    schema: str = DEFAULT_SCHEMA_NAME
    bloat_percentage_threshold: float = DEFAULT_BLOAT_PERCENTAGE_THRESHOLD
    remaining_percentage_threshold: float = DEFAULT_REMAINING_PERCENTAGE_THRESHOLD

    def schema_context(self) -> SchemaContext:
        return SchemaContext(
            self.schema,
            self.bloat_percentage_threshold,
            self.remaining_percentage_threshold,
        )


@dataclass
class DiagnosticsConfig:
    """Configuration for which diagnostics to include/exclude."""

    exclude: set[str] = field(default_factory=set)
    include_only: set[str] | None = None  # None = no whitelist, run all minus exclude


@dataclass
class Config:
    """Complete configuration for pg-index-health."""

    connection: ConnectionConfig = field(default_factory=ConnectionConfig)
    context: ContextConfig = field(default_factory=ContextConfig)
    exclusions: Exclusions = field(default_factory=Exclusions)
    diagnostics: DiagnosticsConfig = field(default_factory=DiagnosticsConfig)


def find_config_file() -> str | None:
    """Search for pg-index-health.yaml in cwd, then home dir.

    Returns:
        Path to config file if found, None otherwise.
    """
    for directory in (Path.cwd(), Path.home()):
        candidate = directory / CONFIG_FILE_NAME
        if candidate.is_file():
            return str(candidate)
    return None


def load_config(config_path: str | None = None, auto_discover: bool = True) -> Config:
    """Load configuration from YAML file.

    Args:
        config_path: Explicit path to config file. If None and auto_discover is True,
                     searches default locations.
        auto_discover: If True and config_path is None, search for config file.

    Returns:
        Config object. Returns default config if no file found.
    """
    if config_path is None and auto_discover:
        config_path = find_config_file()

    if config_path is None:
        return Config()

    if not os.path.isfile(config_path):
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file {config_path} should contain a mapping")

    return _parse_config(data)


def _as_list(value) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    return [str(v) for v in value]


def _parse_config(data: dict) -> Config:
    """Parse YAML data into Config object."""
    config = Config()

    conn_data = data.get("connection") or {}
    config.connection = ConnectionConfig(
        urls=_as_list(conn_data.get("urls", conn_data.get("url"))),
        user=conn_data.get("user"),
        password=conn_data.get("password"),
        timeout_seconds=float(conn_data.get("timeout_seconds", 30.0)),
    )

    ctx_data = data.get("context") or {}
    config.context = ContextConfig(
        schema=ctx_data.get("schema", DEFAULT_SCHEMA_NAME),
        bloat_percentage_threshold=float(
            ctx_data.get("bloat_percentage_threshold", DEFAULT_BLOAT_PERCENTAGE_THRESHOLD)
        ),
        remaining_percentage_threshold=float(
            ctx_data.get("remaining_percentage_threshold", DEFAULT_REMAINING_PERCENTAGE_THRESHOLD)
        ),
    )

    exc_data = data.get("exclusions") or {}
    config.exclusions = Exclusions(
        table_names=exc_data.get("tables"),
        index_names=exc_data.get("indexes"),
        sequence_names=exc_data.get("sequences"),
        column_names=exc_data.get("columns"),
        constraint_names=exc_data.get("constraints"),
        table_size_threshold_bytes=int(exc_data.get("table_size_threshold_bytes", 0)),
        index_size_threshold_bytes=int(exc_data.get("index_size_threshold_bytes", 0)),
        bloat_size_threshold_bytes=int(exc_data.get("bloat_size_threshold_bytes", 0)),
        bloat_percentage_threshold=float(exc_data.get("bloat_percentage_threshold", 0.0)),
        skip_migration_tables=bool(exc_data.get("skip_migration_tables", False)),
    )

    if "diagnostics" in data:
        config.diagnostics = _parse_diagnostics_config(data["diagnostics"] or {})

    return config


def _parse_diagnostics_config(data: dict) -> DiagnosticsConfig:
    """Parse diagnostics selection section."""
    exclude = set(data.get("exclude", []))

    include_only = None
    if "include_only" in data:
        include_only = set(data["include_only"])

    return DiagnosticsConfig(exclude=exclude, include_only=include_only)


def merge_cli_with_config(
    config: Config,
    cli_urls: list[str] | None = None,
    cli_user: str | None = None,
    cli_password: str | None = None,
    cli_schema: str | None = None,
    cli_timeout: float | None = None,
    cli_exclude: set[str] | None = None,
    cli_include_only: set[str] | None = None,
) -> Config:
    """Merge CLI arguments with config file settings.

    CLI arguments take precedence over config file. The loaded config is
    left untouched; a new one is returned.

    Args:
        config: Loaded configuration.
        cli_urls: Connection URLs (replace the configured ones).
        cli_user: Database user.
        cli_password: Database password.
        cli_schema: Target schema.
        cli_timeout: Per-call timeout in seconds.
        cli_exclude: Diagnostics to exclude (from --exclude flag).
        cli_include_only: Diagnostics to include only (from --include-only flag).
    """
    connection = replace(
        config.connection,
        urls=list(cli_urls) if cli_urls else list(config.connection.urls),
        user=cli_user or config.connection.user,
        password=cli_password or config.connection.password,
        timeout_seconds=cli_timeout if cli_timeout is not None else config.connection.timeout_seconds,
    )

    context = replace(config.context, schema=cli_schema) if cli_schema else config.context

    # CLI exclude adds to config exclude
    diagnostics = DiagnosticsConfig(
        exclude=config.diagnostics.exclude | (cli_exclude or set()),
        include_only=config.diagnostics.include_only,
    )

    # CLI include_only completely overrides config
    if cli_include_only is not None:
        diagnostics.include_only = cli_include_only

    return Config(
        connection=connection,
        context=context,
        exclusions=config.exclusions,
        diagnostics=diagnostics,
    )
