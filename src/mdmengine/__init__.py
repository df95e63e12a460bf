"""MDM Engine - runtime-defined data models with computed combination columns."""

from mdmengine.core.database import connect
from mdmengine.core.initializer import init_project
from mdmengine.managers.base import EngineContext

try:
    from importlib.metadata import version
    __version__ = version("mdm-engine")
except Exception:
    # Package metadata is not available when running from a source checkout
    __version__ = "0.1.0"

__all__ = ["connect", "init_project", "EngineContext"]
