"""Configuration management for dbmapper projects."""

import os
import re
from pathlib import Path
from typing import Any, Dict, List, Optional

import toml
from pydantic import BaseModel, ConfigDict, Field, field_validator

from dbmapper.managers.relationship import (
    DEFAULT_AUDIT_COLUMN_NAMES,
    DEFAULT_AUDIT_COLUMN_TYPES,
    DEFAULT_AUDIT_NAME_MARKERS,
    AuditPredicate,
    make_audit_predicate,
)

CONFIG_DIR_NAME = ".dbmapper"
CONFIG_FILE_NAME = "config.toml"

_PACKAGE_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)*$")


class ProjectConfig(BaseModel):
    """Configuration for a dbmapper project stored in .dbmapper/config.toml."""

    model_config = ConfigDict(
        extra="allow"
    )  # Allow additional fields for extensibility

    database_url: Optional[str] = Field(
        default=None, description="SQLAlchemy database URL"
    )
    entity_dir: str = Field(
        default="models", description="Directory for generated mapped types"
    )
    repository_dir: str = Field(
        default="repositories", description="Directory for generated repositories"
    )
    entity_package: str = Field(
        default="models", description="Import path of the generated mapped types"
    )
    skip_existing: bool = Field(
        default=True, description="Never overwrite files that already exist"
    )
    detect_many_to_many: bool = Field(
        default=True, description="Map pure join tables as many-to-many collections"
    )
    generate_bidirectional: bool = Field(
        default=True, description="Generate inverse collections and back_populates"
    )
    audit_column_names: List[str] = Field(
        default_factory=lambda: list(DEFAULT_AUDIT_COLUMN_NAMES),
        description="Column names a join table may carry besides its keys",
    )
    audit_name_markers: List[str] = Field(
        default_factory=lambda: list(DEFAULT_AUDIT_NAME_MARKERS),
        description="Name substrings marking a timestamp column as audit data",
    )
    audit_column_types: List[str] = Field(
        default_factory=lambda: list(DEFAULT_AUDIT_COLUMN_TYPES),
        description="Data types eligible for the audit name match",
    )

    @field_validator("entity_package")
    @classmethod
    def _check_package(cls, value: str) -> str:
        if not _PACKAGE_PATTERN.match(value):
            raise ValueError(
                f"Invalid entity package '{value}'. Use a dotted Python path such as 'app.models'"
            )
        return value

    def audit_predicate(self) -> AuditPredicate:
        """Build the join-table audit column predicate from these settings."""
        return make_audit_predicate(
            names=self.audit_column_names,
            name_markers=self.audit_name_markers,
            column_types=self.audit_column_types,
        )


class Config:
    """Manages dbmapper project configuration."""

    def __init__(self, project_dir: Optional[Path] = None):
        """Initialize config manager.

        Args:
            project_dir: Path to project directory. If None, uses DBMAPPER_PROJECT_DIR env var or current directory.
        """
        if project_dir is None:
            env_dir = os.environ.get("DBMAPPER_PROJECT_DIR")
            if env_dir:
                project_dir = Path(env_dir)

        self.project_dir = Path(project_dir) if project_dir else Path.cwd()
        self.config_dir = self.project_dir / CONFIG_DIR_NAME
        self.config_path = self.config_dir / CONFIG_FILE_NAME
        self._config: Optional[ProjectConfig] = None

    @property
    def exists(self) -> bool:
        """Check if config file exists."""
        return self.config_path.exists()

    def load(self) -> ProjectConfig:
        """Load configuration from disk, with environment variable overrides."""
        if not self.exists:
            raise FileNotFoundError(f"Config file not found at {self.config_path}")

        with open(self.config_path, "r") as f:
            data = toml.load(f)

        self._apply_env_overrides(data)

        self._config = ProjectConfig(**data)
        return self._config

    def _apply_env_overrides(self, data: Dict[str, Any]) -> None:
        """Apply environment variable overrides to configuration data."""
        if env_url := os.environ.get("DBMAPPER_DATABASE_URL"):
            data["database_url"] = env_url

        if env_package := os.environ.get("DBMAPPER_ENTITY_PACKAGE"):
            data["entity_package"] = env_package

    def save(self, config: Optional[ProjectConfig] = None) -> None:
        """Save configuration to disk.

        Args:
            config: Configuration to save. If None, saves current config.
        """
        if config:
            self._config = config

        if not self._config:
            raise ValueError("No configuration to save")

        self.config_dir.mkdir(parents=True, exist_ok=True)

        config_dict = self._config.model_dump(exclude_none=True)
        with open(self.config_path, "w") as f:
            toml.dump(config_dict, f)

    def init_project(self, database_url: Optional[str] = None) -> ProjectConfig:
        """Write a default configuration for a new project.

        Args:
            database_url: SQLAlchemy URL to store in the new config

        Returns:
            The new configuration

        Raises:
            FileExistsError: If the project is already initialized
        """
        if self.exists:
            raise FileExistsError(f"Project already initialized at {self.config_dir}")

        config = ProjectConfig(database_url=database_url)
        self.save(config)
        return config

    def resolve_path(self, path: str) -> Path:
        """Resolve a configured directory relative to the project directory."""
        resolved = Path(path)
        return resolved if resolved.is_absolute() else self.project_dir / resolved


def get_project_root(start_path: Path) -> Path:
    """Find the project root by looking for a .dbmapper directory.

    Args:
        start_path: Path to start searching from

    Returns:
        Path to project root

    Raises:
        FileNotFoundError: If no project root found
    """
    current = Path(start_path).resolve()

    while current != current.parent:
        if (current / CONFIG_DIR_NAME).exists():
            return current
        current = current.parent

    raise FileNotFoundError(f"No dbmapper project found from {start_path}")
