"""Entry point for working with an MDM project from Python."""

from pathlib import Path
from typing import Any, List, Optional

from mdmengine.config import Config
from mdmengine.core.path_utils import get_project_root
from mdmengine.managers.base import EngineContext


def connect(
    project_dir: Optional[Path] = None,
    tenant: Optional[str] = None,
    allowed_spaces: Optional[List[str]] = None,
    caller: Optional[str] = None,
    storage: Optional[Any] = None,
) -> EngineContext:
    """Connect to a local MDM project.

    Args:
        project_dir: Path to project directory (optional, will search for .mdm)
        tenant: Tenant to work in (default: the project's configured tenant)
        allowed_spaces: Spaces the caller may see; None means unrestricted
        caller: Caller identity recorded on records and views
        storage: Attachment storage provider (default: local attachments dir)

    Returns:
        EngineContext exposing ``data_models``, ``attributes``, ``records``
        and ``views`` managers

    Examples:
        # Connect using current directory
        engine = connect()
        model = engine.data_models.create_data_model("Customers")

        # Connect as a caller restricted to two spaces
        engine = connect(allowed_spaces=["sales", "support"], caller="u-42")
    """
    if project_dir is None:
        try:
            project_dir = get_project_root(Path.cwd())
        except FileNotFoundError:
            raise ValueError("No .mdm directory found. Run 'mdm init' first.")

    config = Config(project_dir).load()
    return EngineContext(
        project_root=Path(project_dir),
        tenant=tenant or config.tenant,
        allowed_spaces=allowed_spaces,
        caller=caller,
        storage=storage,
    )
