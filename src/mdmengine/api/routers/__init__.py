"""API routers package."""

from mdmengine.api.routers import (
    data_models,
    attributes,
    records,
    views,
)

__all__ = [
    "data_models",
    "attributes",
    "records",
    "views",
]
