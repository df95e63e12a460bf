"""Tests for ViewConfigManager."""

import pytest
import tempfile
import shutil
from pathlib import Path

from mdmengine import connect, init_project
from mdmengine.errors import (
    CyclicReferenceError,
    NotFoundError,
    UnknownAttributeError,
    ValidationError,
)


class TestViewConfigManager:
    """Test table view configuration."""

    @pytest.fixture
    def temp_project(self):
        """Create a temporary project."""
        temp = tempfile.mkdtemp()
        project_dir = Path(temp)
        init_project(project_dir)
        yield project_dir
        shutil.rmtree(temp)

    @pytest.fixture
    def engine(self, temp_project):
        return connect(temp_project, caller="viewer-1")

    @pytest.fixture
    def setup(self, engine):
        """Model with three plain attributes and an empty view."""
        model = engine.data_models.create_data_model("People")
        attrs = {
            code: engine.attributes.add_attribute(model.id, {"code": code, "type": "TEXT"})
            for code in ("first_name", "last_name", "city")
        }
        view = engine.views.create_view(model.id)
        return model, attrs, view

    def test_create_view(self, engine, setup):
        model, _, view = setup
        assert view.owner == "viewer-1"
        assert view.name == "default"
        assert view.column_order == []
        assert view.hidden_columns == []
        assert view.combo_columns == []

        other = engine.views.create_view(model.id, owner="viewer-2", name="Compact")
        assert other.owner == "viewer-2"
        assert engine.views.get_view(other.id).name == "Compact"

    def test_create_view_empty_name(self, engine, setup):
        model, _, _ = setup
        with pytest.raises(ValidationError):
            engine.views.create_view(model.id, name="  ")

    def test_list_views(self, engine, setup):
        model, _, view = setup
        other = engine.views.create_view(model.id, owner="viewer-2")

        assert [v.id for v in engine.views.list_views(model.id)] == [view.id, other.id]
        assert [v.id for v in engine.views.list_views(model.id, owner="viewer-2")] == [other.id]

    def test_default_columns(self, engine, setup):
        _, attrs, view = setup
        columns = engine.views.visible_columns(view.id)
        assert [a.code for a in columns] == ["first_name", "last_name", "city"]

    def test_reorder_columns(self, engine, setup):
        _, attrs, view = setup
        updated = engine.views.reorder_columns(
            view.id,
            [attrs["city"].id, "not-an-attribute", attrs["city"].id, attrs["first_name"].id],
        )
        assert updated.column_order == [attrs["city"].id, attrs["first_name"].id]
        assert engine.views.get_view(view.id).column_order == updated.column_order

        # Unlisted columns follow in display order
        columns = engine.views.visible_columns(view.id)
        assert [a.code for a in columns] == ["city", "first_name", "last_name"]

    def test_hide_and_unhide(self, engine, setup):
        _, attrs, view = setup
        engine.views.set_column_hidden(view.id, attrs["last_name"].id, True)
        engine.views.set_column_hidden(view.id, attrs["last_name"].id, True)

        stored = engine.views.get_view(view.id)
        assert stored.hidden_columns == [attrs["last_name"].id]
        assert [a.code for a in engine.views.visible_columns(view.id)] == ["first_name", "city"]

        engine.views.set_column_hidden(view.id, attrs["last_name"].id, False)
        assert engine.views.get_view(view.id).hidden_columns == []

    def test_hide_unknown_attribute(self, engine, setup):
        _, _, view = setup
        with pytest.raises(UnknownAttributeError):
            engine.views.set_column_hidden(view.id, "nope", True)

    def test_view_changes_leave_schema_alone(self, engine, setup):
        model, attrs, view = setup
        engine.views.reorder_columns(view.id, [attrs["city"].id])
        engine.views.set_column_hidden(view.id, attrs["first_name"].id, True)

        listed = engine.attributes.list_attributes(model.id)
        assert [a.code for a in listed] == ["first_name", "last_name", "city"]

    def test_deleted_attribute_scrubbed(self, engine, setup):
        _, attrs, view = setup
        engine.views.reorder_columns(view.id, [attrs["city"].id, attrs["first_name"].id])
        engine.views.set_column_hidden(view.id, attrs["city"].id, True)

        engine.attributes.delete_attribute(attrs["city"].id)

        stored = engine.views.get_view(view.id)
        assert stored.column_order == [attrs["first_name"].id]
        assert stored.hidden_columns == []
        assert [a.code for a in engine.views.visible_columns(view.id)] == [
            "first_name",
            "last_name",
        ]

    def test_stale_ids_filtered_on_read(self, engine, setup):
        _, attrs, view = setup
        engine.views.reorder_columns(view.id, [attrs["last_name"].id])
        # Simulate a view written before the attribute disappeared
        engine.views.store.update_view(view.id, {"column_order": ["gone", attrs["last_name"].id]})

        assert engine.views.get_view(view.id).column_order == [attrs["last_name"].id]

    def test_upsert_combo_creates_column(self, engine, setup):
        model, attrs, view = setup
        engine.views.reorder_columns(view.id, [attrs["city"].id])

        combo = engine.views.upsert_combo_spec(
            view.id,
            {
                "code": "full_name",
                "display_name": "Full name",
                "strategy": "LEFT_RIGHT",
                "separator": " ",
                "members": ["first_name", "last_name"],
            },
        )
        assert combo.is_combo
        assert combo.display_name == "Full name"

        stored = engine.views.get_view(view.id)
        assert stored.combo_columns == [combo.id]
        assert stored.column_order == [attrs["city"].id, combo.id]

        record = engine.records.create_record(
            model.id, values={"first_name": "Jane", "last_name": "Doe"}
        )
        assert record.derived["full_name"] == "Jane Doe"

    def test_upsert_combo_keeps_empty_order(self, engine, setup):
        _, _, view = setup
        engine.views.upsert_combo_spec(
            view.id, {"code": "both", "strategy": "GROUPING", "members": ["city", "first_name"]}
        )
        stored = engine.views.get_view(view.id)
        assert stored.column_order == []
        assert len(stored.combo_columns) == 1
        assert engine.views.visible_columns(view.id)[-1].code == "both"

    def test_upsert_combo_updates_column(self, engine, setup):
        model, attrs, view = setup
        combo = engine.views.upsert_combo_spec(
            view.id, {"code": "full_name", "members": ["first_name", "last_name"]}
        )

        updated = engine.views.upsert_combo_spec(
            view.id,
            {
                "attribute_id": combo.id,
                "code": "full_name",
                "strategy": "GROUPING",
                "separator": ", ",
                "members": ["last_name", "first_name", "city"],
            },
        )
        assert updated.id == combo.id
        assert updated.combo.strategy == "GROUPING"
        assert engine.views.get_view(view.id).combo_columns == [combo.id]

        record = engine.records.create_record(
            model.id, values={"first_name": "Jane", "last_name": "Doe", "city": "Oslo"}
        )
        assert record.derived["full_name"] == "Doe, Jane, Oslo"

    def test_upsert_combo_unknown_member_rolls_back(self, engine, setup):
        model, _, view = setup
        with pytest.raises(UnknownAttributeError):
            engine.views.upsert_combo_spec(
                view.id, {"code": "broken", "members": ["first_name", "missing"]}
            )

        codes = [a.code for a in engine.attributes.list_attributes(model.id)]
        assert "broken" not in codes
        assert engine.views.get_view(view.id).combo_columns == []

    def test_upsert_combo_cycle_rolls_back(self, engine, setup):
        model, _, view = setup
        inner = engine.views.upsert_combo_spec(
            view.id, {"code": "inner", "members": ["first_name", "last_name"]}
        )
        outer = engine.views.upsert_combo_spec(
            view.id, {"code": "outer", "members": ["inner", "city"]}
        )

        with pytest.raises(CyclicReferenceError):
            engine.views.upsert_combo_spec(
                view.id,
                {"attribute_id": inner.id, "code": "inner", "members": ["outer", "city"]},
            )

        stored = engine.attributes.get_attribute(inner.id)
        assert [m.code for m in stored.combo.members] == ["first_name", "last_name"]
        assert engine.views.get_view(view.id).combo_columns == [inner.id, outer.id]

    def test_upsert_on_plain_attribute(self, engine, setup):
        _, attrs, view = setup
        with pytest.raises(ValidationError) as exc:
            engine.views.upsert_combo_spec(
                view.id,
                {"attribute_id": attrs["city"].id, "code": "city", "members": ["first_name"]},
            )
        assert exc.value.reason == "combo"

    def test_remove_combo_column(self, engine, setup):
        model, _, view = setup
        combo = engine.views.upsert_combo_spec(
            view.id, {"code": "full_name", "members": ["first_name", "last_name"]}
        )

        updated = engine.views.remove_combo_column(view.id, combo.id)
        assert updated.combo_columns == []
        with pytest.raises(NotFoundError):
            engine.attributes.get_attribute(combo.id)

    def test_remove_combo_rejects_plain(self, engine, setup):
        _, attrs, view = setup
        with pytest.raises(ValidationError):
            engine.views.remove_combo_column(view.id, attrs["city"].id)
        assert engine.attributes.get_attribute(attrs["city"].id).code == "city"

        with pytest.raises(UnknownAttributeError):
            engine.views.remove_combo_column(view.id, "missing")

    def test_delete_view(self, engine, setup):
        model, attrs, view = setup
        engine.views.delete_view(view.id)

        with pytest.raises(NotFoundError):
            engine.views.get_view(view.id)
        assert len(engine.attributes.list_attributes(model.id)) == 3

    def test_view_of_invisible_model(self, engine, setup, temp_project):
        _, _, view = setup
        restricted = connect(temp_project, allowed_spaces=["other"])
        with pytest.raises(NotFoundError):
            restricted.views.get_view(view.id)
