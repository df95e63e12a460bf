"""Base manager class and shared context for all engine managers."""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Type, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from mdmengine.config import Config
from mdmengine.errors import AccessDeniedError, NotFoundError, ValidationError
from mdmengine.infrastructure.store import EngineStore
from mdmengine.infrastructure.store_pool import get_store
from mdmengine.models.base import utcnow

M = TypeVar("M", bound=BaseModel)


@dataclass
class EngineContext:
    """Shared context for all managers.

    Attributes:
        project_root: Path to project root directory
        tenant: Tenant owning the data models (default: "default")
        allowed_spaces: Spaces the caller may see; None means unrestricted
        caller: Opaque caller identity, recorded as record creator and view owner
        storage: Optional attachment storage provider
    """

    project_root: Path
    tenant: str = "default"
    allowed_spaces: Optional[List[str]] = None
    caller: Optional[str] = None
    storage: Optional[Any] = None

    def __post_init__(self):
        """Ensure project_root is a Path object."""
        if not isinstance(self.project_root, Path):
            self.project_root = Path(self.project_root)

    # Manager properties for convenient access
    # These use lazy imports to avoid circular dependencies

    @property
    def data_models(self) -> "DataModelManager":
        """Access DataModelManager for this context."""
        from mdmengine.managers.data_model import DataModelManager
        return DataModelManager(self)

    @property
    def attributes(self) -> "AttributeManager":
        """Access AttributeManager for this context."""
        from mdmengine.managers.attribute import AttributeManager
        return AttributeManager(self)

    @property
    def records(self) -> "RecordManager":
        """Access RecordManager for this context."""
        from mdmengine.managers.record import RecordManager
        return RecordManager(self)

    @property
    def views(self) -> "ViewConfigManager":
        """Access ViewConfigManager for this context."""
        from mdmengine.managers.view import ViewConfigManager
        return ViewConfigManager(self)


class BaseManager:
    """Base class for all engine managers.

    Provides shared initialization, store access and the visibility rules
    every manager applies to data models.
    """

    def __init__(self, context: EngineContext):
        """Initialize base manager with an engine context.

        Args:
            context: EngineContext with project, tenant and caller information
        """
        self.context = context
        self.project_root = context.project_root
        self.tenant = context.tenant
        self.allowed_spaces = context.allowed_spaces
        self.caller = context.caller

        self.config = Config(context.project_root)
        self.store: EngineStore = get_store(self.config.store_path)

    @staticmethod
    def _now():
        return utcnow()

    @staticmethod
    def _parse(model_cls: Type[M], data: Any) -> M:
        """Validate input into ``model_cls``, raising the engine's ValidationError."""
        if isinstance(data, model_cls):
            return data
        if isinstance(data, BaseModel):
            data = data.model_dump(exclude_unset=True)
        try:
            return model_cls.model_validate(data)
        except PydanticValidationError as e:
            first = e.errors()[0]
            location = ".".join(str(part) for part in first.get("loc", ()))
            raise ValidationError(
                f"Invalid {model_cls.__name__}: {location}: {first.get('msg')}",
                attribute=location or None,
                reason="invalid",
            ) from e

    def _check_spaces(self, space_ids: Iterable[str]) -> None:
        """Reject spaces outside the caller's allowed set."""
        if self.allowed_spaces is None:
            return
        denied = [s for s in space_ids if s not in self.allowed_spaces]
        if denied:
            raise AccessDeniedError(
                f"Caller may not use space(s): {', '.join(denied)}", reason="space"
            )

    def _is_visible(self, model_id: str) -> bool:
        if self.allowed_spaces is None:
            return True
        linked = self.store.get_spaces(model_id)
        return any(space in self.allowed_spaces for space in linked)

    def _require_model_row(self, model_id: str) -> Dict[str, Any]:
        """Fetch a data model row of this tenant that the caller may see.

        Raises:
            NotFoundError: If the model does not exist, belongs to another
                tenant or is not linked to any of the caller's spaces
        """
        row = self.store.get_data_model(model_id)
        if not row or row["tenant"] != self.tenant or not self._is_visible(model_id):
            raise NotFoundError(f"Data model '{model_id}' not found")
        return row
