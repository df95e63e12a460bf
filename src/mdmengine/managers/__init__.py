"""Manager classes for the MDM engine."""

from mdmengine.managers.base import BaseManager, EngineContext
from mdmengine.managers.data_model import DataModelManager
from mdmengine.managers.attribute import AttributeManager
from mdmengine.managers.combo import ComboResolver
from mdmengine.managers.record import RecordManager
from mdmengine.managers.view import ViewConfigManager

__all__ = [
    "BaseManager",
    "EngineContext",
    "DataModelManager",
    "AttributeManager",
    "ComboResolver",
    "RecordManager",
    "ViewConfigManager",
]
