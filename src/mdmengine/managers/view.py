"""Table view configuration management."""

import logging
from typing import Any, Dict, List, Optional, Union

from mdmengine.errors import NotFoundError, UnknownAttributeError, ValidationError
from mdmengine.managers.attribute import AttributeManager
from mdmengine.managers.base import BaseManager, EngineContext
from mdmengine.models import (
    Attribute,
    AttributePatch,
    AttributeSpec,
    AttributeType,
    ComboColumnSpec,
    ComboSpec,
    ViewConfig,
)

logger = logging.getLogger(__name__)


def _dedupe(ids: List[str]) -> List[str]:
    seen: List[str] = []
    for attr_id in ids:
        if attr_id not in seen:
            seen.append(attr_id)
    return seen


class ViewConfigManager(BaseManager):
    """Persists per-viewer column order, hidden columns and combo authoring state.

    Views reference attributes by id. References that no longer resolve are
    removed when an attribute is deleted and filtered out whenever a view is
    read.
    """

    def __init__(self, context: EngineContext):
        super().__init__(context)
        self._attributes = AttributeManager(context)

    def _load(self, view_id: str):
        """Return (view row, attributes of its model) or raise NotFoundError."""
        row = self.store.get_view(view_id)
        if not row:
            raise NotFoundError(f"View '{view_id}' not found")
        try:
            self._require_model_row(row["data_model_id"])
        except NotFoundError:
            raise NotFoundError(f"View '{view_id}' not found") from None
        return row, self._attributes.load_attributes(row["data_model_id"])

    @staticmethod
    def _to_view(row: Dict[str, Any], attributes: List[Attribute]) -> ViewConfig:
        known = {a.id for a in attributes}
        combos = {a.id for a in attributes if a.is_combo}
        row = dict(row)
        row["column_order"] = [i for i in row["column_order"] or [] if i in known]
        row["hidden_columns"] = [i for i in row["hidden_columns"] or [] if i in known]
        row["combo_columns"] = [i for i in row["combo_columns"] or [] if i in combos]
        return ViewConfig(**row)

    def _save(self, view: ViewConfig) -> ViewConfig:
        view.touch(self._now())
        self.store.update_view(
            view.id,
            {
                "column_order": view.column_order,
                "hidden_columns": view.hidden_columns,
                "combo_columns": view.combo_columns,
                "updated_at": view.updated_at,
            },
        )
        return view

    def create_view(
        self, model_id: str, owner: Optional[str] = None, name: str = "default"
    ) -> ViewConfig:
        """Create an empty view of a data model for ``owner`` (defaults to the caller)."""
        self._require_model_row(model_id)
        name = (name or "").strip()
        if not name:
            raise ValidationError("View name cannot be empty", attribute="name", reason="name")
        view = ViewConfig(data_model_id=model_id, owner=owner or self.caller, name=name)
        with self.store.transaction():
            self.store.insert_view(view.model_dump())
        logger.info(f"Created view '{name}' ({view.id}) of data model {model_id}")
        return view

    def get_view(self, view_id: str) -> ViewConfig:
        """Get a view with stale attribute references filtered out."""
        row, attributes = self._load(view_id)
        return self._to_view(row, attributes)

    def list_views(self, model_id: str, owner: Optional[str] = None) -> List[ViewConfig]:
        self._require_model_row(model_id)
        attributes = self._attributes.load_attributes(model_id)
        return [self._to_view(row, attributes) for row in self.store.list_views(model_id, owner)]

    def delete_view(self, view_id: str) -> None:
        """Delete a view; the data model is not affected."""
        with self.store.transaction():
            self._load(view_id)
            self.store.delete_view(view_id)
        logger.info(f"Deleted view {view_id}")

    def visible_columns(self, view_id: str) -> List[Attribute]:
        """Attributes in display order for a view.

        Columns listed in ``column_order`` come first, then the remaining
        attributes by display_order; hidden columns are left out.
        """
        row, attributes = self._load(view_id)
        view = self._to_view(row, attributes)
        by_id = {a.id: a for a in attributes}
        ordered = [by_id[i] for i in view.column_order]
        ordered.extend(a for a in attributes if a.id not in view.column_order)
        hidden = set(view.hidden_columns)
        return [a for a in ordered if a.id not in hidden]

    def reorder_columns(self, view_id: str, ordered_attribute_ids: List[str]) -> ViewConfig:
        """Replace the stored column order.

        Ids that aren't attributes of the view's model are dropped silently;
        repeated ids keep their first position.
        """
        with self.store.transaction():
            row, attributes = self._load(view_id)
            view = self._to_view(row, attributes)
            known = {a.id for a in attributes}
            dropped = [i for i in ordered_attribute_ids if i not in known]
            view.column_order = _dedupe([i for i in ordered_attribute_ids if i in known])
            self._save(view)

        if dropped:
            logger.debug(f"Dropped unknown column id(s) from view {view_id}: {dropped}")
        return view

    def set_column_hidden(self, view_id: str, attribute_id: str, hidden: bool) -> ViewConfig:
        """Hide or show one column.

        Raises:
            UnknownAttributeError: If the attribute isn't part of the view's model
        """
        with self.store.transaction():
            row, attributes = self._load(view_id)
            if attribute_id not in {a.id for a in attributes}:
                raise UnknownAttributeError(
                    f"Attribute '{attribute_id}' does not belong to this view's data model",
                    attribute=attribute_id,
                )
            view = self._to_view(row, attributes)
            if hidden and attribute_id not in view.hidden_columns:
                view.hidden_columns.append(attribute_id)
            elif not hidden and attribute_id in view.hidden_columns:
                view.hidden_columns.remove(attribute_id)
            self._save(view)
        return view

    def upsert_combo_spec(
        self, view_id: str, spec: Union[ComboColumnSpec, Dict[str, Any]]
    ) -> Attribute:
        """Create or update a combination column from a view.

        The COMBO attribute and the view change are written in one
        transaction; a cycle or an unknown member rejects both.

        Returns:
            The created or updated COMBO attribute
        """
        spec = self._parse(ComboColumnSpec, spec)
        combo = ComboSpec(strategy=spec.strategy, separator=spec.separator, members=spec.members)

        with self.store.transaction():
            row, attributes = self._load(view_id)
            model_id = row["data_model_id"]

            if spec.attribute_id:
                existing = next((a for a in attributes if a.id == spec.attribute_id), None)
                if existing is None:
                    raise UnknownAttributeError(
                        f"Attribute '{spec.attribute_id}' does not belong to this view's data model",
                        attribute=spec.attribute_id,
                    )
                if not existing.is_combo:
                    raise ValidationError(
                        f"Attribute '{existing.code}' is not a combination column",
                        attribute=existing.code,
                        reason="combo",
                    )
                changes: Dict[str, Any] = {"code": spec.code, "combo": combo}
                if spec.display_name:
                    changes["display_name"] = spec.display_name
                attr = self._attributes.update_attribute(
                    spec.attribute_id, AttributePatch(**changes)
                )
            else:
                attr = self._attributes.add_attribute(
                    model_id,
                    AttributeSpec(
                        code=spec.code,
                        type=AttributeType.COMBO.value,
                        display_name=spec.display_name,
                        combo=combo,
                    ),
                )

            view = self._to_view(self.store.get_view(view_id), self._attributes.load_attributes(model_id))
            if attr.id not in view.combo_columns:
                view.combo_columns.append(attr.id)
            if view.column_order and attr.id not in view.column_order:
                view.column_order.append(attr.id)
            self._save(view)

        logger.info(f"Saved combination column '{attr.code}' from view {view_id}")
        return attr

    def remove_combo_column(self, view_id: str, attribute_id: str) -> ViewConfig:
        """Delete a combination column and drop it from the view atomically.

        Raises:
            UnknownAttributeError: If the attribute isn't part of the view's model
            ValidationError: If the attribute is not a combination column
        """
        with self.store.transaction():
            row, attributes = self._load(view_id)
            attr = next((a for a in attributes if a.id == attribute_id), None)
            if attr is None:
                raise UnknownAttributeError(
                    f"Attribute '{attribute_id}' does not belong to this view's data model",
                    attribute=attribute_id,
                )
            if not attr.is_combo:
                raise ValidationError(
                    f"Attribute '{attr.code}' is not a combination column",
                    attribute=attr.code,
                    reason="combo",
                )
            # Deleting the attribute scrubs it from every view of the model
            self._attributes.delete_attribute(attribute_id)

        logger.info(f"Removed combination column '{attr.code}' from view {view_id}")
        return self.get_view(view_id)
