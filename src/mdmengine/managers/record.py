"""Record and value management (entity-attribute-value storage)."""

import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

from mdmengine.core.attribute_types import coerce_value, stored_members
from mdmengine.errors import (
    AttributeTypeError,
    NotFoundError,
    UnknownAttributeError,
    ValidationError,
)
from mdmengine.integrations import LocalFileStorage
from mdmengine.managers.attribute import AttributeManager
from mdmengine.managers.base import BaseManager, EngineContext
from mdmengine.managers.combo import ComboResolver
from mdmengine.models import (
    Attribute,
    AttributeType,
    DataRecord,
    DataRecordValue,
    ResolvedRecord,
)

logger = logging.getLogger(__name__)


class RecordManager(BaseManager):
    """Creates, updates, deletes and renders data records."""

    def __init__(self, context: EngineContext):
        super().__init__(context)
        self._attributes = AttributeManager(context)
        self._storage = context.storage

    @property
    def storage(self):
        """Attachment storage; defaults to the project's attachments directory."""
        if self._storage is None:
            self._storage = LocalFileStorage(self.config.attachments_path)
        return self._storage

    def _require_record_row(self, record_id: str) -> Dict[str, Any]:
        row = self.store.get_record(record_id)
        if not row:
            raise NotFoundError(f"Record '{record_id}' not found")
        try:
            self._require_model_row(row["data_model_id"])
        except NotFoundError:
            raise NotFoundError(f"Record '{record_id}' not found") from None
        return row

    @staticmethod
    def _coerce_values(
        attributes: List[Attribute], values: Mapping[str, Any]
    ) -> Dict[str, Optional[str]]:
        """Coerce caller values keyed by code into stored text keyed by attribute id.

        Raises:
            UnknownAttributeError: A code isn't defined on the model
            ImmutableAttributeError: A code names a combination column
        """
        by_code = {a.code: a for a in attributes}
        coerced: Dict[str, Optional[str]] = {}
        for code, raw in values.items():
            attr = by_code.get(code)
            if attr is None:
                raise UnknownAttributeError(
                    f"Unknown attribute '{code}' for this data model", attribute=code
                )
            coerced[attr.id] = coerce_value(attr, raw)
        return coerced

    def _check_constraints(
        self,
        attributes: List[Attribute],
        merged: Mapping[str, Optional[str]],
        record_id: Optional[str] = None,
    ) -> None:
        """Enforce required and unique flags on a record's final values."""
        for attr in attributes:
            if attr.is_combo:
                continue
            value = merged.get(attr.id)
            if attr.is_required and value is None:
                raise ValidationError(
                    f"Attribute '{attr.code}' is required",
                    attribute=attr.code,
                    reason="required",
                )
            if attr.is_unique and value is not None and self.store.value_taken(
                attr.id, value, exclude_record_id=record_id
            ):
                raise ValidationError(
                    f"Value '{value}' of attribute '{attr.code}' is already used by another record",
                    attribute=attr.code,
                    reason="unique",
                )

    def _write_values(
        self, record_id: str, values: Mapping[str, Optional[str]], now
    ) -> None:
        for attr_id, value in values.items():
            if value is None:
                self.store.delete_value(record_id, attr_id)
            else:
                cell = DataRecordValue(
                    record_id=record_id, attribute_id=attr_id, value=value, created_at=now
                )
                self.store.upsert_value(cell.model_dump())

    def _render(
        self,
        row: Dict[str, Any],
        attributes: List[Attribute],
        stored: Mapping[str, str],
        resolver: Optional[ComboResolver] = None,
    ) -> ResolvedRecord:
        resolver = resolver or ComboResolver(attributes)
        values = {
            a.code: stored[a.id]
            for a in attributes
            if not a.is_combo and a.id in stored
        }
        derived, diagnostics = resolver.resolve_all(stored)
        return ResolvedRecord(**row, values=values, derived=derived, diagnostics=diagnostics)

    def create_record(
        self,
        model_id: str,
        name: Optional[str] = None,
        values: Optional[Mapping[str, Any]] = None,
    ) -> ResolvedRecord:
        """Create a record with its values in one transaction.

        Omitted attributes with a default value receive it.

        Raises:
            UnknownAttributeError: A code isn't defined on the model
            ImmutableAttributeError: A value targets a combination column
            AttributeTypeError: A value doesn't coerce to its attribute's type
            ValidationError: Required, unique, format or option check failed
        """
        values = values or {}
        with self.store.transaction():
            self._require_model_row(model_id)
            attributes = self._attributes.load_attributes(model_id)
            coerced = self._coerce_values(attributes, values)
            for attr in attributes:
                if attr.id not in coerced and attr.default_value is not None and not attr.is_combo:
                    coerced[attr.id] = attr.default_value
            self._check_constraints(attributes, coerced)

            now = self._now()
            record = DataRecord(
                data_model_id=model_id,
                name=name,
                created_by=self.caller,
                created_at=now,
            )
            self.store.insert_record(record.model_dump())
            self._write_values(record.id, coerced, now)

        logger.debug(f"Created record {record.id} in data model {model_id}")
        stored = {k: v for k, v in coerced.items() if v is not None}
        return self._render(record.model_dump(), attributes, stored)

    def update_record(
        self,
        record_id: str,
        values: Optional[Mapping[str, Any]] = None,
        name: Optional[str] = None,
    ) -> ResolvedRecord:
        """Update a record; only supplied codes are touched.

        An empty value (None, "" or []) clears the attribute.
        """
        values = values or {}
        with self.store.transaction():
            row = self._require_record_row(record_id)
            model_id = row["data_model_id"]
            attributes = self._attributes.load_attributes(model_id)
            coerced = self._coerce_values(attributes, values)

            merged: Dict[str, Optional[str]] = dict(self.store.get_values([record_id])[record_id])
            merged.update(coerced)
            changed = {
                attr_id: value for attr_id, value in coerced.items()
                if value is not None
            }
            self._check_constraints(
                [a for a in attributes if a.id in changed or a.is_required],
                merged,
                record_id=record_id,
            )

            now = self._now()
            self._write_values(record_id, coerced, now)
            fields: Dict[str, Any] = {"updated_at": now}
            if name is not None:
                fields["name"] = name
            self.store.update_record(record_id, fields)

        logger.debug(f"Updated record {record_id}: {len(coerced)} value(s)")
        return self.get_record(record_id)

    def delete_record(self, record_id: str) -> None:
        """Delete a record and its values."""
        with self.store.transaction():
            self._require_record_row(record_id)
            self.store.delete_record(record_id)
        logger.debug(f"Deleted record {record_id}")

    def get_record(self, record_id: str) -> ResolvedRecord:
        """Get a record with stored values and combination columns rendered.

        Dangling combo members render as "" and are reported in
        ``diagnostics`` instead of failing.
        """
        row = self._require_record_row(record_id)
        attributes = self._attributes.load_attributes(row["data_model_id"])
        stored = self.store.get_values([record_id])[record_id]
        return self._render(row, attributes, stored)

    def list_records(
        self, model_id: str, limit: Optional[int] = None, offset: int = 0
    ) -> List[ResolvedRecord]:
        """List a model's records in creation order, rendered like get_record."""
        self._require_model_row(model_id)
        attributes = self._attributes.load_attributes(model_id)
        resolver = ComboResolver(attributes)
        rows = self.store.list_records(model_id, limit=limit, offset=offset)
        stored = self.store.get_values([row["id"] for row in rows])
        return [self._render(row, attributes, stored[row["id"]], resolver) for row in rows]

    def count_records(self, model_id: str) -> int:
        self._require_model_row(model_id)
        return self.store.count_records(model_id)

    def _attachment_attribute(self, row: Dict[str, Any], code: str) -> Attribute:
        for attr in self._attributes.load_attributes(row["data_model_id"]):
            if attr.code == code:
                if attr.type != AttributeType.ATTACHMENT:
                    raise AttributeTypeError(
                        f"Attribute '{code}' is {attr.type}, not ATTACHMENT", attribute=code
                    )
                return attr
        raise UnknownAttributeError(f"Unknown attribute '{code}' for this data model", attribute=code)

    @staticmethod
    def _check_file(attr: Attribute, filename: str, content: bytes) -> None:
        if attr.allowed_file_types:
            extension = Path(filename).suffix.lower().lstrip(".")
            if extension not in attr.allowed_file_types:
                raise ValidationError(
                    f"File type '{extension or filename}' is not allowed for '{attr.code}'. "
                    f"Allowed: {', '.join(attr.allowed_file_types)}",
                    attribute=attr.code,
                    reason="file_type",
                )
        if attr.max_file_size is not None and len(content) > attr.max_file_size:
            raise ValidationError(
                f"File is {len(content)} bytes; '{attr.code}' accepts at most {attr.max_file_size}",
                attribute=attr.code,
                reason="file_size",
            )

    def attach_file(
        self, record_id: str, code: str, filename: str, content: bytes
    ) -> Tuple[str, ResolvedRecord]:
        """Upload a file and append its reference to an ATTACHMENT value.

        The upload is removed again if the record can't be updated.

        Returns:
            Tuple of (storage reference, updated record)
        """
        row = self._require_record_row(record_id)
        attr = self._attachment_attribute(row, code)
        self._check_file(attr, filename, content)

        reference = self.storage.upload(filename, content)
        try:
            with self.store.transaction():
                current = self.store.get_values([record_id])[record_id].get(attr.id)
                members = stored_members(current) + [reference]
                self._write_values(record_id, {attr.id: coerce_value(attr, members)}, self._now())
                self.store.update_record(record_id, {"updated_at": self._now()})
        except Exception:
            self.storage.delete(reference)
            raise

        logger.debug(f"Attached {reference} to record {record_id} ({code})")
        return reference, self.get_record(record_id)

    def detach_file(self, record_id: str, code: str, reference: str) -> ResolvedRecord:
        """Remove a reference from an ATTACHMENT value and delete the blob."""
        row = self._require_record_row(record_id)
        attr = self._attachment_attribute(row, code)

        with self.store.transaction():
            current = self.store.get_values([record_id])[record_id].get(attr.id)
            members = stored_members(current)
            if reference not in members:
                raise NotFoundError(
                    f"Attachment '{reference}' is not attached to '{code}'", attribute=code
                )
            members.remove(reference)
            self._write_values(record_id, {attr.id: coerce_value(attr, members)}, self._now())
            self.store.update_record(record_id, {"updated_at": self._now()})

        self.storage.delete(reference)
        logger.debug(f"Detached {reference} from record {record_id} ({code})")
        return self.get_record(record_id)
