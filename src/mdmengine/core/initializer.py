"""Project initialization for the MDM engine."""

import logging
from pathlib import Path
from typing import Optional

import toml

from mdmengine.config import CONFIG_DIR_NAME, ProjectConfig
from mdmengine.errors import ValidationError
from mdmengine.infrastructure.store_pool import get_store

logger = logging.getLogger(__name__)


class ProjectInitializer:
    """Handles initialization of MDM projects."""

    def __init__(self, project_dir: Optional[Path] = None):
        """Initialize the project initializer.

        Args:
            project_dir: Path to project directory. If None, uses current directory.
        """
        self.project_dir = Path(project_dir) if project_dir else Path.cwd()
        self.config_dir = self.project_dir / CONFIG_DIR_NAME
        self.config_path = self.config_dir / "config.toml"

    def init_project(self, tenant: str = "default") -> ProjectConfig:
        """Initialize a new MDM project with default configuration.

        Creates the .mdm directory, writes config.toml, creates the engine
        database with its tables and the attachments directory.

        Args:
            tenant: Tenant that owns data models created in this project

        Returns:
            The created ProjectConfig

        Raises:
            FileExistsError: If project already exists at the location
            ValidationError: If the tenant name is empty
        """
        if not tenant or not tenant.strip():
            raise ValidationError("Tenant name cannot be empty", reason="name")

        if self.config_path.exists():
            raise FileExistsError(f"Project already exists at {self.config_dir}")

        self.config_dir.mkdir(parents=True, exist_ok=True)

        config = ProjectConfig(tenant=tenant.strip())
        self._save_config(config)

        (self.config_dir / config.attachments_dir).mkdir(parents=True, exist_ok=True)

        # Opening the store creates the schema
        get_store(self.config_dir / config.store_file)

        logger.info(f"Initialized MDM project at {self.project_dir}")
        return config

    def _save_config(self, config: ProjectConfig) -> None:
        """Save configuration to disk."""
        self.config_dir.mkdir(parents=True, exist_ok=True)

        with open(self.config_path, "w") as f:
            toml.dump(config.model_dump(), f)


def init_project(project_dir: Optional[Path] = None, tenant: str = "default") -> ProjectConfig:
    """Initialize a new MDM project.

    Args:
        project_dir: Directory to initialize. Defaults to the current directory.
        tenant: Tenant that owns data models created in this project

    Returns:
        The created ProjectConfig
    """
    initializer = ProjectInitializer(project_dir)
    return initializer.init_project(tenant=tenant)
