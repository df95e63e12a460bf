"""Persistence layer for the MDM engine."""

from mdmengine.infrastructure.store import EngineStore
from mdmengine.infrastructure.store_pool import StorePool, get_store

__all__ = ["EngineStore", "StorePool", "get_store"]
