"""Path utilities for MDM projects."""

from pathlib import Path

from mdmengine.config import CONFIG_DIR_NAME


def get_project_root(start_path: Path) -> Path:
    """Find the project root by looking for the .mdm directory.

    Args:
        start_path: Path to start searching from

    Returns:
        Path to project root

    Raises:
        FileNotFoundError: If no project root found
    """
    current = Path(start_path).resolve()

    while True:
        if (current / CONFIG_DIR_NAME).is_dir():
            return current
        if current == current.parent:
            break
        current = current.parent

    raise FileNotFoundError(f"No MDM project found from {start_path}")


def get_config_dir(project_root: Path) -> Path:
    return Path(project_root) / CONFIG_DIR_NAME
