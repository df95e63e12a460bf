"""Configuration management for MDM engine projects."""

import os
from pathlib import Path
from typing import Optional, Dict, Any
import toml
from pydantic import BaseModel, Field, ConfigDict

CONFIG_DIR_NAME = ".mdm"


class ProjectConfig(BaseModel):
    """Configuration for an MDM project stored in .mdm/config.toml."""

    model_config = ConfigDict(
        extra="allow"
    )  # Allow additional fields for extensibility

    tenant: str = Field(default="default", description="Tenant that owns new data models")
    store_file: str = Field(
        default="engine.db", description="SQLite file inside the .mdm directory"
    )
    attachments_dir: str = Field(
        default="attachments", description="Directory for locally stored attachments"
    )
    log_level: str = Field(default="INFO", description="Logging level for the API server")
    api_keys: Dict[str, Dict[str, Any]] = Field(
        default_factory=dict, description="API key configurations"
    )


class Config:
    """Manages MDM project configuration."""

    def __init__(self, project_dir: Optional[Path] = None):
        """Initialize config manager.

        Args:
            project_dir: Path to project directory. If None, uses MDM_PROJECT_DIR env var or current directory.
        """
        # Check environment variable first
        if project_dir is None:
            env_dir = os.environ.get("MDM_PROJECT_DIR")
            if env_dir:
                project_dir = Path(env_dir)

        self.project_dir = Path(project_dir) if project_dir else Path.cwd()
        self.config_dir = self.project_dir / CONFIG_DIR_NAME
        self.config_path = self.config_dir / "config.toml"
        self._config: Optional[ProjectConfig] = None

    @property
    def exists(self) -> bool:
        """Check if config file exists."""
        return self.config_path.exists()

    @property
    def store_path(self) -> Path:
        """Path of the engine database for this project."""
        config = self._config or self.load()
        return self.config_dir / config.store_file

    @property
    def attachments_path(self) -> Path:
        config = self._config or self.load()
        return self.config_dir / config.attachments_dir

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
        if env_tenant := os.environ.get("MDM_TENANT"):
            data["tenant"] = env_tenant

        if env_level := os.environ.get("MDM_LOG_LEVEL"):
            data["log_level"] = env_level.upper()

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

        with open(self.config_path, "w") as f:
            toml.dump(self._config.model_dump(), f)

    def init_project(self, tenant: str = "default") -> ProjectConfig:
        """Initialize a new MDM project with default configuration.

        Delegates to the ProjectInitializer for the actual work.
        """
        from mdmengine.core.initializer import ProjectInitializer

        initializer = ProjectInitializer(self.project_dir)
        config = initializer.init_project(tenant=tenant)

        self._config = config
        return config
