"""Tests for DataModelManager."""

import pytest
import tempfile
import shutil
from pathlib import Path

from mdmengine import connect, init_project
from mdmengine.errors import AccessDeniedError, NotFoundError, ValidationError


class TestDataModelManager:
    """Test data model management functionality."""

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
        return connect(temp_project)

    def test_create_data_model(self, engine):
        """Test creating a data model with defaults."""
        model = engine.data_models.create_data_model("Customer Accounts")

        assert model.name == "Customer Accounts"
        assert model.display_name == "Customer Accounts"
        assert model.slug == "customer-accounts"
        assert model.slug_source == "auto"
        assert model.source_type == "INTERNAL"
        assert model.tenant == "default"
        assert model.is_active

        fetched = engine.data_models.get_data_model(model.id)
        assert fetched.slug == "customer-accounts"
        assert engine.data_models.get_data_model_by_slug("customer-accounts").id == model.id

    def test_create_with_details(self, engine):
        model = engine.data_models.create_data_model(
            "Vendors",
            display_name="Our Vendors",
            description="Supplier master",
            source_type="external",
            space_ids=["procurement", " procurement ", "finance"],
            slug="Supplier List",
        )
        assert model.display_name == "Our Vendors"
        assert model.source_type == "EXTERNAL"
        assert model.slug == "supplier-list"
        assert model.slug_source == "supplied"
        assert sorted(model.space_ids) == ["finance", "procurement"]
        assert engine.data_models.get_data_model(model.id).space_ids == ["finance", "procurement"]

    def test_create_invalid_source_type(self, engine):
        with pytest.raises(ValidationError) as exc:
            engine.data_models.create_data_model("Vendors", source_type="cloud")
        assert "INTERNAL, EXTERNAL" in str(exc.value)

    @pytest.mark.parametrize("name", ["", "   "])
    def test_create_empty_name(self, engine, name):
        with pytest.raises(ValidationError):
            engine.data_models.create_data_model(name)

    def test_name_without_slug_characters(self, engine):
        with pytest.raises(ValidationError) as exc:
            engine.data_models.create_data_model("!!!")
        assert exc.value.attribute == "slug"

        model = engine.data_models.create_data_model("!!!", slug="bangs")
        assert model.slug == "bangs"

    def test_duplicate_name(self, engine):
        engine.data_models.create_data_model("Customers")
        with pytest.raises(ValidationError) as exc:
            engine.data_models.create_data_model("Customers")
        assert exc.value.reason == "duplicate"
        assert "already exists" in str(exc.value)

    def test_duplicate_slug(self, engine):
        engine.data_models.create_data_model("Customer List")
        with pytest.raises(ValidationError) as exc:
            engine.data_models.create_data_model("customer list")
        assert exc.value.attribute == "slug"

    def test_rename_rederives_auto_slug(self, engine):
        model = engine.data_models.create_data_model("Customers")
        updated = engine.data_models.update_data_model(model.id, {"name": "Clients"})
        assert updated.name == "Clients"
        assert updated.slug == "clients"
        assert updated.slug_source == "auto"
        assert updated.updated_at is not None

    def test_rename_keeps_supplied_slug(self, engine):
        model = engine.data_models.create_data_model("Customers", slug="crm")
        updated = engine.data_models.update_data_model(model.id, {"name": "Clients"})
        assert updated.slug == "crm"

    def test_edited_slug_survives_rename(self, engine):
        model = engine.data_models.create_data_model("Customers")
        edited = engine.data_models.update_data_model(model.id, {"slug": "Key Accounts"})
        assert edited.slug == "key-accounts"
        assert edited.slug_source == "edited"

        renamed = engine.data_models.update_data_model(model.id, {"name": "Clients"})
        assert renamed.slug == "key-accounts"

    def test_update_to_taken_name(self, engine):
        engine.data_models.create_data_model("Customers")
        other = engine.data_models.create_data_model("Vendors")
        with pytest.raises(ValidationError):
            engine.data_models.update_data_model(other.id, {"name": "Customers"})

    def test_update_other_fields(self, engine):
        model = engine.data_models.create_data_model("Customers")
        updated = engine.data_models.update_data_model(
            model.id,
            {"display_name": "All Customers", "description": "CRM", "is_active": False},
        )
        assert updated.display_name == "All Customers"
        assert updated.description == "CRM"
        assert not updated.is_active

    def test_update_rejects_unknown_fields(self, engine):
        model = engine.data_models.create_data_model("Customers")
        with pytest.raises(ValidationError) as exc:
            engine.data_models.update_data_model(model.id, {"tenant": "other"})
        assert exc.value.reason == "invalid"

    def test_list_data_models(self, engine):
        engine.data_models.create_data_model("Vendors", space_ids=["s1"])
        engine.data_models.create_data_model("Customers", space_ids=["s2"])

        assert [m.name for m in engine.data_models.list_data_models()] == ["Customers", "Vendors"]
        assert [m.name for m in engine.data_models.list_data_models(space_id="s1")] == ["Vendors"]

    def test_delete_data_model(self, engine):
        model = engine.data_models.create_data_model("Customers")
        engine.attributes.add_attribute(model.id, {"code": "name", "type": "TEXT"})
        record = engine.records.create_record(model.id, values={"name": "Acme"})

        engine.data_models.delete_data_model(model.id)

        with pytest.raises(NotFoundError):
            engine.data_models.get_data_model(model.id)
        with pytest.raises(NotFoundError):
            engine.records.get_record(record.id)

    def test_get_missing(self, engine):
        with pytest.raises(NotFoundError):
            engine.data_models.get_data_model("missing")
        with pytest.raises(NotFoundError):
            engine.data_models.get_data_model_by_slug("missing")

    def test_link_and_unlink_spaces(self, engine):
        model = engine.data_models.create_data_model("Customers", space_ids=["s1"])
        linked = engine.data_models.link_spaces(model.id, ["s2", "s1"])
        assert linked.space_ids == ["s1", "s2"]

        unlinked = engine.data_models.unlink_spaces(model.id, ["s1", "s9"])
        assert unlinked.space_ids == ["s2"]

        replaced = engine.data_models.replace_spaces(model.id, ["s3"])
        assert replaced.space_ids == ["s3"]

    def test_tenant_isolation(self, engine, temp_project):
        model = engine.data_models.create_data_model("Customers")
        other = connect(temp_project, tenant="other")

        assert other.data_models.list_data_models() == []
        with pytest.raises(NotFoundError):
            other.data_models.get_data_model(model.id)

        # Names only need to be unique within a tenant
        assert other.data_models.create_data_model("Customers").slug == "customers"


class TestSpaceAccess:
    """Test visibility rules for callers restricted to spaces."""

    @pytest.fixture
    def temp_project(self):
        temp = tempfile.mkdtemp()
        project_dir = Path(temp)
        init_project(project_dir)
        yield project_dir
        shutil.rmtree(temp)

    @pytest.fixture
    def models(self, temp_project):
        admin = connect(temp_project)
        return {
            "sales": admin.data_models.create_data_model("Leads", space_ids=["sales"]),
            "shared": admin.data_models.create_data_model(
                "Accounts", space_ids=["sales", "finance"]
            ),
            "finance": admin.data_models.create_data_model("Invoices", space_ids=["finance"]),
        }

    @pytest.fixture
    def sales(self, temp_project):
        return connect(temp_project, allowed_spaces=["sales"], caller="sales-user")

    def test_list_only_visible(self, sales, models):
        names = [m.name for m in sales.data_models.list_data_models()]
        assert names == ["Accounts", "Leads"]

    def test_invisible_model_not_found(self, sales, models):
        with pytest.raises(NotFoundError):
            sales.data_models.get_data_model(models["finance"].id)
        with pytest.raises(NotFoundError):
            sales.attributes.list_attributes(models["finance"].id)

    def test_list_foreign_space_denied(self, sales, models):
        with pytest.raises(AccessDeniedError):
            sales.data_models.list_data_models(space_id="finance")

    def test_create_in_foreign_space_denied(self, sales):
        with pytest.raises(AccessDeniedError) as exc:
            sales.data_models.create_data_model("Budget", space_ids=["finance"])
        assert "finance" in str(exc.value)

    def test_replace_keeps_foreign_links(self, sales, models, temp_project):
        updated = sales.data_models.replace_spaces(models["shared"].id, [])
        # The caller can't see or remove the finance link
        assert updated.space_ids == ["finance"]

        admin = connect(temp_project)
        assert admin.data_models.get_data_model(models["shared"].id).space_ids == ["finance"]

    def test_unlinked_model_becomes_invisible(self, sales, models):
        sales.data_models.unlink_spaces(models["sales"].id, ["sales"])
        with pytest.raises(NotFoundError):
            sales.data_models.get_data_model(models["sales"].id)
