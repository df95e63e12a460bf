"""Attribute management for the schema registry."""

import logging
from typing import Any, Dict, List, Optional, Union

from mdmengine.core.attribute_types import coerce_value
from mdmengine.errors import (
    NotFoundError,
    UnknownAttributeError,
    ValidationError,
)
from mdmengine.managers.base import BaseManager, EngineContext
from mdmengine.managers.combo import ComboResolver
from mdmengine.models.base import new_id
from mdmengine.models import (
    Attribute,
    AttributeOption,
    AttributePatch,
    AttributeSpec,
    AttributeType,
    ComboSpec,
    ComboStrategy,
    MemberRef,
    OptionSpec,
)
from mdmengine.utils.name_validator import validate_code
from mdmengine.utils.type_utils import normalize_type, requires_options

logger = logging.getLogger(__name__)

EXPORT_VERSION = 1


class AttributeManager(BaseManager):
    """Manages the attributes of data models, including combination columns."""

    def __init__(self, context: EngineContext):
        super().__init__(context)

    def load_attributes(self, model_id: str) -> List[Attribute]:
        """Load a model's attributes with their options, in column order.

        Performs no visibility check; callers check the model first.
        """
        rows = self.store.list_attributes(model_id)
        options: Dict[str, List[Dict[str, Any]]] = {row["id"]: [] for row in rows}
        for option in self.store.list_options(list(options)):
            options[option["attribute_id"]].append(option)
        return [self._to_attribute(row, options[row["id"]]) for row in rows]

    @staticmethod
    def _to_attribute(row: Dict[str, Any], options: List[Dict[str, Any]]) -> Attribute:
        row = dict(row)
        combo = row.pop("combo_spec", None)
        return Attribute(**row, combo=combo, options=options)

    @staticmethod
    def _to_row(attr: Attribute) -> Dict[str, Any]:
        row = attr.model_dump(exclude={"options", "combo"})
        row["combo_spec"] = attr.combo.model_dump() if attr.combo else None
        return row

    def _require_attribute_row(self, attribute_id: str) -> Dict[str, Any]:
        row = self.store.get_attribute(attribute_id)
        if not row:
            raise NotFoundError(f"Attribute '{attribute_id}' not found")
        try:
            self._require_model_row(row["data_model_id"])
        except NotFoundError:
            raise NotFoundError(f"Attribute '{attribute_id}' not found") from None
        return row

    @staticmethod
    def _build_options(attribute_id: str, options: Optional[List[OptionSpec]]) -> List[AttributeOption]:
        built = []
        for index, option in enumerate(options or []):
            value = option.value.strip()
            built.append(
                AttributeOption(
                    attribute_id=attribute_id,
                    value=value,
                    label=(option.label or "").strip() or value,
                    color=option.color,
                    display_order=option.display_order if option.display_order is not None else index,
                )
            )
        return built

    @staticmethod
    def _normalize_file_types(file_types: Optional[List[str]]) -> Optional[List[str]]:
        if file_types is None:
            return None
        normalized = []
        for file_type in file_types:
            file_type = file_type.strip().lower().lstrip(".")
            if file_type and file_type not in normalized:
                normalized.append(file_type)
        return normalized

    def _resolve_members(self, candidate: Attribute, others: List[Attribute]) -> ComboSpec:
        """Point every member at an attribute id of the same model.

        Members may be given by id or by code. A member naming the candidate
        itself is kept so that the cycle check reports it.
        """
        by_id = {a.id: a for a in others}
        by_code = {a.code: a for a in others}
        members = []
        for member in candidate.combo.members:
            if member.attribute_id == candidate.id or (
                not member.attribute_id and member.code == candidate.code
            ):
                members.append(MemberRef(attribute_id=candidate.id, code=candidate.code))
                continue
            target = by_id.get(member.attribute_id) if member.attribute_id else by_code.get(member.code)
            if target is None:
                raise UnknownAttributeError(
                    f"Combination column '{candidate.code}' references unknown "
                    f"attribute '{member.attribute_id or member.code}'",
                    attribute=candidate.code,
                )
            members.append(MemberRef(attribute_id=target.id, code=target.code))

        strategy = candidate.combo.strategy
        if strategy == ComboStrategy.LEFT_RIGHT and len(members) != 2:
            raise ValidationError(
                f"LEFT_RIGHT combination column '{candidate.code}' needs exactly two members, "
                f"got {len(members)}",
                attribute=candidate.code,
                reason="arity",
            )
        if strategy == ComboStrategy.GROUPING and not members:
            raise ValidationError(
                f"GROUPING combination column '{candidate.code}' needs at least one member",
                attribute=candidate.code,
                reason="arity",
            )
        return ComboSpec(strategy=strategy, separator=candidate.combo.separator, members=members)

    def _validate_candidate(
        self, attr: Attribute, attributes: List[Attribute], check_members: bool = True
    ) -> Attribute:
        """Check a new or edited attribute against the rest of its model.

        ``attributes`` is the model's current attribute list, which may still
        contain the stored version of ``attr``. With ``check_members`` off an
        unchanged combo definition is trusted as stored, dangling members
        included.
        """
        if requires_options(attr.type):
            if not attr.options:
                raise ValidationError(
                    f"Attribute '{attr.code}' of type {attr.type} needs at least one option",
                    attribute=attr.code,
                    reason="options",
                )
        elif attr.options:
            raise ValidationError(
                f"Options only apply to SELECT and MULTI_SELECT attributes, not {attr.type}",
                attribute=attr.code,
                reason="options",
            )
        values = attr.option_values()
        if len(set(values)) != len(values) or any(not v for v in values):
            raise ValidationError(
                f"Option values of attribute '{attr.code}' must be non-empty and distinct",
                attribute=attr.code,
                reason="options",
            )

        if attr.max_file_size is not None and attr.max_file_size <= 0:
            raise ValidationError(
                f"max_file_size of attribute '{attr.code}' must be positive",
                attribute=attr.code,
                reason="invalid",
            )

        if attr.is_combo:
            if attr.combo is None:
                raise ValidationError(
                    f"COMBO attribute '{attr.code}' needs a combination definition",
                    attribute=attr.code,
                    reason="combo",
                )
            if attr.is_required or attr.is_unique or attr.default_value is not None:
                raise ValidationError(
                    f"Combination column '{attr.code}' is computed; it takes no "
                    f"required flag, unique flag or default value",
                    attribute=attr.code,
                    reason="computed",
                )
            if check_members:
                others = [a for a in attributes if a.id != attr.id]
                attr.combo = self._resolve_members(attr, others)
                ComboResolver(attributes).check_acyclic(attr)
        else:
            if attr.combo is not None:
                raise ValidationError(
                    f"Only COMBO attributes take a combination definition, '{attr.code}' "
                    f"is {attr.type}",
                    attribute=attr.code,
                    reason="combo",
                )
            if attr.default_value is not None:
                attr.default_value = coerce_value(attr, attr.default_value)
        return attr

    @staticmethod
    def _ensure_code_free(code: str, attributes: List[Attribute], attribute_id: Optional[str] = None) -> None:
        if any(a.code == code and a.id != attribute_id for a in attributes):
            raise ValidationError(
                f"Attribute code '{code}' already exists in this data model",
                attribute=code,
                reason="duplicate",
            )

    def _persist_new(self, attr: Attribute) -> None:
        self.store.insert_attribute(self._to_row(attr))
        self.store.replace_options(attr.id, [o.model_dump() for o in attr.options])

    def add_attribute(
        self, model_id: str, spec: Union[AttributeSpec, Dict[str, Any]]
    ) -> Attribute:
        """Add an attribute to a data model.

        Options are created in the same transaction. For COMBO attributes the
        members are resolved and the cycle check runs before anything is
        written.

        Returns:
            The created Attribute

        Raises:
            ValidationError: Invalid or duplicate code, missing options, bad combo arity
            UnknownAttributeError: A combo member doesn't exist on the model
            CyclicReferenceError: The combo would reference itself transitively
        """
        spec = self._parse(AttributeSpec, spec)
        validate_code(spec.code)
        attr_type = normalize_type(spec.type)

        with self.store.transaction():
            self._require_model_row(model_id)
            attributes = self.load_attributes(model_id)
            self._ensure_code_free(spec.code, attributes)

            attr = Attribute(
                data_model_id=model_id,
                code=spec.code,
                display_name=(spec.display_name or "").strip() or spec.code,
                description=spec.description,
                type=attr_type,
                is_required=spec.is_required,
                is_unique=spec.is_unique,
                display_order=(
                    spec.display_order
                    if spec.display_order is not None
                    else self.store.next_display_order(model_id)
                ),
                default_value=spec.default_value,
                allowed_file_types=self._normalize_file_types(spec.allowed_file_types),
                max_file_size=spec.max_file_size,
                combo=spec.combo,
            )
            attr.options = self._build_options(attr.id, spec.options)
            attr = self._validate_candidate(attr, attributes)
            self._persist_new(attr)

        logger.info(f"Added {attr.type} attribute '{attr.code}' to data model {model_id}")
        return attr

    def get_attribute(self, attribute_id: str) -> Attribute:
        """Get an attribute by id.

        Raises:
            NotFoundError: If the attribute doesn't exist or its model isn't visible
        """
        row = self._require_attribute_row(attribute_id)
        options = self.store.list_options([attribute_id])
        return self._to_attribute(row, options)

    def list_attributes(self, model_id: str) -> List[Attribute]:
        """List attributes ordered by display_order, ties broken by id."""
        self._require_model_row(model_id)
        return self.load_attributes(model_id)

    def update_attribute(
        self, attribute_id: str, patch: Union[AttributePatch, Dict[str, Any]]
    ) -> Attribute:
        """Apply a partial update to an attribute.

        Supplied options replace the existing ones. Combo edits re-run the
        cycle check. Converting an attribute to COMBO drops its stored
        values; other type changes leave stored values untouched until the
        next write.
        """
        patch = self._parse(AttributePatch, patch)
        changes = patch.model_dump(exclude_unset=True)

        with self.store.transaction():
            row = self._require_attribute_row(attribute_id)
            model_id = row["data_model_id"]
            attributes = self.load_attributes(model_id)
            current = next(a for a in attributes if a.id == attribute_id)
            attr = current.model_copy(deep=True)

            if "code" in changes and changes["code"] != current.code:
                validate_code(changes["code"])
                self._ensure_code_free(changes["code"], attributes, attribute_id)
                attr.code = changes["code"]

            if changes.get("type") is not None:
                attr.type = normalize_type(changes["type"]).value

            type_changed = attr.type != current.type
            if type_changed and attr.is_combo:
                for flag in ("is_required", "is_unique"):
                    if flag not in changes:
                        setattr(attr, flag, False)
                if "default_value" not in changes:
                    attr.default_value = None
            if type_changed and not attr.is_combo and "combo" not in changes:
                attr.combo = None
            if type_changed and not requires_options(attr.type) and "options" not in changes:
                attr.options = []

            if changes.get("display_name"):
                attr.display_name = changes["display_name"].strip()
            for field in ("description", "default_value", "max_file_size"):
                if field in changes:
                    setattr(attr, field, changes[field])
            for field in ("is_required", "is_unique", "display_order"):
                if changes.get(field) is not None:
                    setattr(attr, field, changes[field])
            if "allowed_file_types" in changes:
                attr.allowed_file_types = self._normalize_file_types(changes["allowed_file_types"])
            if "options" in changes:
                attr.options = self._build_options(attribute_id, patch.options)
            if "combo" in changes:
                attr.combo = patch.combo

            attr = self._validate_candidate(
                attr, attributes, check_members="combo" in changes or type_changed
            )

            if attr.is_unique and not current.is_unique and self.store.has_duplicate_values(attribute_id):
                raise ValidationError(
                    f"Attribute '{attr.code}' already holds duplicate values",
                    attribute=attr.code,
                    reason="unique",
                )

            attr.touch(self._now())
            fields = self._to_row(attr)
            fields.pop("id")
            fields.pop("created_at")
            self.store.update_attribute(attribute_id, fields)
            if attr.options != current.options or "options" in changes:
                self.store.replace_options(attribute_id, [o.model_dump() for o in attr.options])
            if attr.is_combo and not current.is_combo:
                dropped = self.store.delete_values_for_attribute(attribute_id)
                logger.info(f"Dropped {dropped} stored value(s) of '{attr.code}' on conversion to COMBO")

        logger.info(f"Updated attribute '{attr.code}' ({attribute_id})")
        return attr

    def delete_attribute(self, attribute_id: str) -> None:
        """Delete an attribute with its options and stored values.

        The attribute is removed from every view of the model. Combination
        columns that list it as a member keep the reference, which renders
        as an empty string with a dangling-reference diagnostic.
        """
        with self.store.transaction():
            row = self._require_attribute_row(attribute_id)
            model_id = row["data_model_id"]
            dependents = [
                a.code
                for a in self.load_attributes(model_id)
                if attribute_id in ComboResolver.member_ids(a)
            ]
            self.store.scrub_attribute_from_views(model_id, attribute_id, self._now())
            self.store.delete_attribute(attribute_id)

        logger.info(f"Deleted attribute '{row['code']}' from data model {model_id}")
        if dependents:
            logger.warning(
                f"Combination column(s) {', '.join(dependents)} still reference "
                f"deleted attribute '{row['code']}'"
            )

    def reorder_attributes(self, model_id: str, ordered_ids: List[str]) -> List[Attribute]:
        """Set display_order from ``ordered_ids``.

        Attributes not listed keep their relative order after the listed ones.

        Raises:
            UnknownAttributeError: If an id doesn't belong to the model
        """
        with self.store.transaction():
            self._require_model_row(model_id)
            attributes = self.load_attributes(model_id)
            known = {a.id for a in attributes}
            ordered: List[str] = []
            for attr_id in ordered_ids:
                if attr_id not in known:
                    raise UnknownAttributeError(
                        f"Attribute '{attr_id}' does not belong to data model {model_id}",
                        attribute=attr_id,
                    )
                if attr_id not in ordered:
                    ordered.append(attr_id)
            ordered.extend(a.id for a in attributes if a.id not in ordered)

            current = {a.id: a.display_order for a in attributes}
            now = self._now()
            for position, attr_id in enumerate(ordered):
                if current[attr_id] != position:
                    self.store.update_attribute(
                        attr_id, {"display_order": position, "updated_at": now}
                    )

        logger.info(f"Reordered {len(ordered)} attribute(s) of data model {model_id}")
        return self.load_attributes(model_id)

    def duplicate_attribute(self, attribute_id: str, new_code: Optional[str] = None) -> Attribute:
        """Copy an attribute (options and combo definition included) to a new code.

        Without ``new_code`` the copy is named ``<code>_copy``, numbered if taken.
        """
        with self.store.transaction():
            row = self._require_attribute_row(attribute_id)
            model_id = row["data_model_id"]
            attributes = self.load_attributes(model_id)
            source = next(a for a in attributes if a.id == attribute_id)

            if new_code is None:
                taken = {a.code for a in attributes}
                new_code = f"{source.code}_copy"
                counter = 2
                while new_code in taken:
                    new_code = f"{source.code}_copy{counter}"
                    counter += 1
            validate_code(new_code)
            self._ensure_code_free(new_code, attributes)

            copy = source.model_copy(deep=True)
            copy.id = new_id()
            copy.code = new_code
            copy.display_name = f"{source.display_name} (copy)"
            copy.display_order = self.store.next_display_order(model_id)
            copy.created_at = self._now()
            copy.updated_at = None
            copy.options = [
                AttributeOption(
                    attribute_id=copy.id,
                    value=o.value,
                    label=o.label,
                    color=o.color,
                    display_order=o.display_order,
                )
                for o in source.options
            ]
            copy = self._validate_candidate(copy, attributes)
            self._persist_new(copy)

        logger.info(f"Duplicated attribute '{source.code}' as '{new_code}'")
        return copy

    def export_attributes(self, model_id: str) -> Dict[str, Any]:
        """Export a model's attribute definitions as a JSON-serializable document.

        Combo members are exported by code so the document can be imported
        into another data model.
        """
        model = self._require_model_row(model_id)
        attributes = self.load_attributes(model_id)
        codes = {a.id: a.code for a in attributes}

        exported = []
        for attr in attributes:
            entry: Dict[str, Any] = {
                "code": attr.code,
                "type": attr.type,
                "display_name": attr.display_name,
                "description": attr.description,
                "is_required": attr.is_required,
                "is_unique": attr.is_unique,
                "display_order": attr.display_order,
                "default_value": attr.default_value,
                "allowed_file_types": attr.allowed_file_types,
                "max_file_size": attr.max_file_size,
            }
            if attr.options:
                entry["options"] = [
                    {
                        "value": o.value,
                        "label": o.label,
                        "color": o.color,
                        "display_order": o.display_order,
                    }
                    for o in attr.options
                ]
            if attr.combo:
                entry["combo"] = {
                    "strategy": attr.combo.strategy,
                    "separator": attr.combo.separator,
                    "members": [
                        codes.get(m.attribute_id, m.code) for m in attr.combo.members
                    ],
                }
            exported.append(entry)

        return {"version": EXPORT_VERSION, "data_model": model["slug"], "attributes": exported}

    def import_attributes(
        self, model_id: str, document: Union[Dict[str, Any], List[Dict[str, Any]]]
    ) -> List[Attribute]:
        """Create the attributes described by an exported document.

        All attributes are created in one transaction; any failure leaves the
        model unchanged. Combination columns are created once all of their
        members exist, so the document order doesn't matter.
        """
        entries = document.get("attributes", []) if isinstance(document, dict) else document
        specs = [self._parse(AttributeSpec, entry) for entry in entries]
        is_combo = [normalize_type(s.type) == AttributeType.COMBO for s in specs]
        plain = [s for s, combo in zip(specs, is_combo) if not combo]
        pending = [s for s, combo in zip(specs, is_combo) if combo]

        created: List[Attribute] = []
        with self.store.transaction():
            self._require_model_row(model_id)
            for spec in plain:
                created.append(self.add_attribute(model_id, spec))

            while pending:
                existing = {a.code for a in self.load_attributes(model_id)}
                ready = [
                    s for s in pending
                    if s.combo is None
                    or all(m.attribute_id or m.code in existing for m in s.combo.members)
                ]
                # A spec that can never become ready reports its own error
                for spec in ready or pending[:1]:
                    created.append(self.add_attribute(model_id, spec))
                    pending.remove(spec)

        logger.info(f"Imported {len(created)} attribute(s) into data model {model_id}")
        return created
