"""Core MDM engine functionality."""

from mdmengine.core.database import connect
from mdmengine.core.initializer import init_project

__all__ = ["connect", "init_project"]
