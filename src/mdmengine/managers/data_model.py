"""Data model management for the schema registry."""

import logging
from typing import Any, Dict, List, Optional, Union

from mdmengine.errors import NotFoundError, ValidationError
from mdmengine.managers.base import BaseManager, EngineContext
from mdmengine.models import DataModel, DataModelPatch, SlugSource, SourceType
from mdmengine.utils.name_validator import slugify, validate_model_name, validate_slug

logger = logging.getLogger(__name__)


def _unique_spaces(space_ids: Optional[List[str]]) -> List[str]:
    seen: List[str] = []
    for space in space_ids or []:
        space = str(space).strip()
        if space and space not in seen:
            seen.append(space)
    return seen


class DataModelManager(BaseManager):
    """Creates, updates and deletes data models and their space links."""

    def __init__(self, context: EngineContext):
        super().__init__(context)

    def _to_model(self, row: Dict[str, Any]) -> DataModel:
        return DataModel(**row, space_ids=self.store.get_spaces(row["id"]))

    def _ensure_free(self, column: str, value: str, model_id: Optional[str] = None) -> None:
        existing = self.store.find_data_model(self.tenant, column, value)
        if existing and existing["id"] != model_id:
            raise ValidationError(
                f"A data model with {column} '{value}' already exists",
                attribute=column,
                reason="duplicate",
            )

    @staticmethod
    def _source_type(value: Union[str, SourceType, None]) -> str:
        if value is None:
            return SourceType.INTERNAL.value
        try:
            return SourceType(str(getattr(value, "value", value)).upper()).value
        except ValueError:
            raise ValidationError(
                f"Invalid source type '{value}'. Valid types: INTERNAL, EXTERNAL",
                attribute="source_type",
                reason="invalid",
            )

    def create_data_model(
        self,
        name: str,
        display_name: Optional[str] = None,
        description: Optional[str] = None,
        source_type: Union[str, SourceType, None] = SourceType.INTERNAL,
        space_ids: Optional[List[str]] = None,
        slug: Optional[str] = None,
    ) -> DataModel:
        """Create a data model and link it to spaces in one transaction.

        Args:
            name: Internal name, unique within the tenant
            display_name: Human readable name (defaults to ``name``)
            description: Optional description
            source_type: INTERNAL or EXTERNAL
            space_ids: Spaces the model is visible in
            slug: Explicit slug; derived from ``name`` when omitted

        Returns:
            The created DataModel

        Raises:
            ValidationError: If the name is empty or the name/slug is taken
            AccessDeniedError: If a space is outside the caller's allowed set
        """
        name = validate_model_name(name)
        if slug:
            slug = validate_slug(slug)
            slug_source = SlugSource.SUPPLIED.value
        else:
            slug = slugify(name)
            slug_source = SlugSource.AUTO.value
            if not slug:
                raise ValidationError(
                    f"Cannot derive a slug from name '{name}'; supply one explicitly",
                    attribute="slug",
                    reason="invalid",
                )

        spaces = _unique_spaces(space_ids)
        self._check_spaces(spaces)

        model = DataModel(
            tenant=self.tenant,
            name=name,
            display_name=(display_name or "").strip() or name,
            description=description,
            slug=slug,
            slug_source=slug_source,
            source_type=self._source_type(source_type),
            space_ids=spaces,
        )

        with self.store.transaction():
            self._ensure_free("name", name)
            self._ensure_free("slug", slug)
            row = model.model_dump(exclude={"space_ids"})
            row["created_at"] = model.created_at
            self.store.insert_data_model(row)
            self.store.link_spaces(model.id, spaces)

        logger.info(f"Created data model '{name}' ({model.id}) in tenant '{self.tenant}'")
        return model

    def get_data_model(self, model_id: str) -> DataModel:
        """Get a data model by id.

        Raises:
            NotFoundError: If the model doesn't exist or isn't visible to the caller
        """
        return self._to_model(self._require_model_row(model_id))

    def get_data_model_by_slug(self, slug: str) -> DataModel:
        row = self.store.find_data_model(self.tenant, "slug", slug)
        if not row or not self._is_visible(row["id"]):
            raise NotFoundError(f"Data model with slug '{slug}' not found")
        return self._to_model(row)

    def list_data_models(self, space_id: Optional[str] = None) -> List[DataModel]:
        """List data models visible to the caller, optionally within one space.

        Raises:
            AccessDeniedError: If ``space_id`` is outside the caller's allowed set
        """
        if space_id is not None:
            self._check_spaces([space_id])
            spaces: Optional[List[str]] = [space_id]
        else:
            spaces = self.allowed_spaces
        rows = self.store.list_data_models(self.tenant, spaces)
        return [self._to_model(row) for row in rows]

    def update_data_model(
        self, model_id: str, patch: Union[DataModelPatch, Dict[str, Any]]
    ) -> DataModel:
        """Apply a partial update.

        An explicit ``slug`` marks the slug as edited. A ``name`` change
        re-derives the slug only while it is still auto-derived.
        """
        patch = self._parse(DataModelPatch, patch)
        changes = patch.model_dump(exclude_unset=True)

        with self.store.transaction():
            row = self._require_model_row(model_id)
            fields: Dict[str, Any] = {}

            if "name" in changes:
                name = validate_model_name(changes["name"])
                if name != row["name"]:
                    self._ensure_free("name", name, model_id)
                    fields["name"] = name
                    if "slug" not in changes and row["slug_source"] == SlugSource.AUTO.value:
                        derived = slugify(name)
                        if derived and derived != row["slug"]:
                            self._ensure_free("slug", derived, model_id)
                            fields["slug"] = derived

            if changes.get("slug"):
                slug = validate_slug(changes["slug"])
                self._ensure_free("slug", slug, model_id)
                fields["slug"] = slug
                fields["slug_source"] = SlugSource.EDITED.value

            if changes.get("display_name"):
                fields["display_name"] = changes["display_name"].strip()
            if "description" in changes:
                fields["description"] = changes["description"]
            if changes.get("source_type") is not None:
                fields["source_type"] = self._source_type(changes["source_type"])
            if changes.get("is_active") is not None:
                fields["is_active"] = changes["is_active"]

            if fields:
                fields["updated_at"] = self._now()
                self.store.update_data_model(model_id, fields)

        if fields:
            logger.info(f"Updated data model {model_id}: {', '.join(sorted(fields))}")
        return self.get_data_model(model_id)

    def delete_data_model(self, model_id: str) -> None:
        """Delete a data model.

        Cascades to attributes, options, records, values and view configs.
        """
        with self.store.transaction():
            row = self._require_model_row(model_id)
            self.store.delete_data_model(model_id)
        logger.info(f"Deleted data model '{row['name']}' ({model_id})")

    def link_spaces(self, model_id: str, space_ids: List[str]) -> DataModel:
        """Link a model to spaces; already linked spaces are left alone."""
        spaces = _unique_spaces(space_ids)
        self._check_spaces(spaces)
        with self.store.transaction():
            self._require_model_row(model_id)
            self.store.link_spaces(model_id, spaces)
        return self._to_model(self.store.get_data_model(model_id))

    def unlink_spaces(self, model_id: str, space_ids: List[str]) -> DataModel:
        """Unlink a model from spaces; spaces that aren't linked are ignored."""
        spaces = _unique_spaces(space_ids)
        self._check_spaces(spaces)
        with self.store.transaction():
            self._require_model_row(model_id)
            self.store.unlink_spaces(model_id, spaces)
        return self._to_model(self.store.get_data_model(model_id))

    def replace_spaces(self, model_id: str, space_ids: List[str]) -> DataModel:
        """Make ``space_ids`` the model's space set.

        Links to spaces outside the caller's allowed set are kept, since the
        caller can neither see nor manage them.
        """
        spaces = _unique_spaces(space_ids)
        self._check_spaces(spaces)
        with self.store.transaction():
            self._require_model_row(model_id)
            current = self.store.get_spaces(model_id)
            removable = [
                s for s in current
                if s not in spaces
                and (self.allowed_spaces is None or s in self.allowed_spaces)
            ]
            self.store.unlink_spaces(model_id, removable)
            self.store.link_spaces(model_id, [s for s in spaces if s not in current])
        logger.info(f"Replaced spaces of data model {model_id}: {spaces}")
        return self._to_model(self.store.get_data_model(model_id))
