"""
Configuration management for the entity type registry.

All configuration is done via environment variables. This module provides
typed configuration classes with validation.

Invariants:
    - All settings have sensible defaults for local development
    - Production deployments MUST set an explicit DATA_DIR

How to change safely:
    - Add new settings with defaults that maintain backward compatibility
    - Keep the env var names stable; they are part of the deployment contract
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from .schema.naming import DEFAULT_FIELDS_TABLE_SUFFIX

logger = logging.getLogger(__name__)


class ExecutorBackend(Enum):
    """Supported Schema Executor backends."""

    SQLITE = "sqlite"
    MEMORY = "memory"


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


@dataclass(frozen=True)
class StorageConfig:
    """SQLite storage configuration.

    The registry table, every fields table and every entity table live in
    the same database file.

    Attributes:
        data_dir: Directory for the SQLite database
        database_file: Database file name inside data_dir
        wal_mode: SQLite WAL mode enabled
        busy_timeout_ms: SQLite busy timeout in milliseconds
    """

    data_dir: str = "/var/lib/entity-types"
    database_file: str = "entity_types.db"
    wal_mode: bool = True
    busy_timeout_ms: int = 5000

    @property
    def database_path(self) -> Path:
        return Path(self.data_dir) / self.database_file

    @classmethod
    def from_env(cls) -> StorageConfig:
        """Load configuration from environment variables."""
        return cls(
            data_dir=os.getenv("DATA_DIR", "/var/lib/entity-types"),
            database_file=os.getenv("REGISTRY_DB_FILE", "entity_types.db"),
            wal_mode=_env_flag("SQLITE_WAL_MODE", "true"),
            busy_timeout_ms=int(os.getenv("SQLITE_BUSY_TIMEOUT_MS", "5000")),
        )


@dataclass(frozen=True)
class MaterializerConfig:
    """Schema Materializer configuration.

    Attributes:
        executor: Which Schema Executor backend applies table creation
        fields_table_suffix: Appended to the type name before deriving the
            fields table name
        compensate_on_failure: Drop tables created by a registration that
            later fails
        check_table_collisions: Refuse to register when a derived table
            already exists
    """

    executor: ExecutorBackend = ExecutorBackend.SQLITE
    fields_table_suffix: str = DEFAULT_FIELDS_TABLE_SUFFIX
    compensate_on_failure: bool = True
    check_table_collisions: bool = True

    @classmethod
    def from_env(cls) -> MaterializerConfig:
        """Load configuration from environment variables.

        Raises:
            ValueError: If SCHEMA_EXECUTOR names an unknown backend
        """
        backend_str = os.getenv("SCHEMA_EXECUTOR", "sqlite").lower()
        try:
            executor = ExecutorBackend(backend_str)
        except ValueError:
            raise ValueError(
                f"Invalid SCHEMA_EXECUTOR '{backend_str}'. Must be one of: sqlite, memory"
            )
        return cls(
            executor=executor,
            fields_table_suffix=os.getenv("FIELDS_TABLE_SUFFIX", DEFAULT_FIELDS_TABLE_SUFFIX),
            compensate_on_failure=_env_flag("COMPENSATE_ON_FAILURE", "true"),
            check_table_collisions=_env_flag("CHECK_TABLE_COLLISIONS", "true"),
        )


@dataclass(frozen=True)
class ObservabilityConfig:
    """Logging configuration.

    Attributes:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_format: Log format (json, text)
    """

    log_level: str = "INFO"
    log_format: str = "text"

    @classmethod
    def from_env(cls) -> ObservabilityConfig:
        """Load configuration from environment variables."""
        return cls(
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_format=os.getenv("LOG_FORMAT", "text"),
        )


@dataclass
class RegistryConfig:
    """Complete registry configuration.

    Attributes:
        storage: SQLite storage configuration
        materializer: Schema Materializer configuration
        observability: Logging configuration
    """

    storage: StorageConfig = field(default_factory=StorageConfig)
    materializer: MaterializerConfig = field(default_factory=MaterializerConfig)
    observability: ObservabilityConfig = field(default_factory=ObservabilityConfig)

    @classmethod
    def from_env(cls) -> RegistryConfig:
        """Load complete configuration from environment variables.

        Raises:
            ValueError: If configuration is invalid.
        """
        config = cls(
            storage=StorageConfig.from_env(),
            materializer=MaterializerConfig.from_env(),
            observability=ObservabilityConfig.from_env(),
        )
        config.validate()
        return config

    def validate(self) -> None:
        """Validate configuration consistency.

        Raises:
            ValueError: If configuration is invalid.
        """
        if not self.storage.database_file:
            raise ValueError("REGISTRY_DB_FILE cannot be empty")
        if self.storage.busy_timeout_ms < 0:
            raise ValueError("SQLITE_BUSY_TIMEOUT_MS must be >= 0")
        if not self.materializer.fields_table_suffix:
            raise ValueError("FIELDS_TABLE_SUFFIX cannot be empty")
        if self.observability.log_format not in ("json", "text"):
            raise ValueError("LOG_FORMAT must be one of: json, text")

        if not os.path.exists(self.storage.data_dir):
            logger.warning(
                f"Data directory does not exist: {self.storage.data_dir}. "
                "It will be created on first write."
            )

    def log_config(self) -> None:
        """Log configuration."""
        logger.info(
            "Registry configuration loaded",
            extra={
                "database_path": str(self.storage.database_path),
                "schema_executor": self.materializer.executor.value,
                "fields_table_suffix": self.materializer.fields_table_suffix,
                "compensate_on_failure": self.materializer.compensate_on_failure,
                "check_table_collisions": self.materializer.check_table_collisions,
                "log_level": self.observability.log_level,
            },
        )
