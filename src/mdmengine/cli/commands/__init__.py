"""CLI command modules."""

from . import model, attribute, record, view

__all__ = [
    "model",
    "attribute",
    "record",
    "view",
]
