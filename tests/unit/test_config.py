"""Tests for project configuration and initialization."""

import pytest
import tempfile
import shutil
from pathlib import Path

import toml

from mdmengine import connect, init_project
from mdmengine.config import Config, ProjectConfig
from mdmengine.core.path_utils import get_project_root
from mdmengine.errors import ValidationError


class TestConfig:
    """Test configuration management."""

    @pytest.fixture
    def temp_dir(self):
        """Create a temporary directory."""
        temp = tempfile.mkdtemp()
        yield Path(temp)
        shutil.rmtree(temp)

    def test_init_project(self, temp_dir):
        """Test initializing a new project."""
        config = Config(temp_dir)
        project_config = config.init_project()

        assert (temp_dir / ".mdm").exists()
        assert (temp_dir / ".mdm" / "config.toml").exists()
        assert (temp_dir / ".mdm" / "engine.db").exists()
        assert (temp_dir / ".mdm" / "attachments").is_dir()
        assert project_config.tenant == "default"

    def test_init_project_with_tenant(self, temp_dir):
        init_project(temp_dir, tenant="acme")
        assert Config(temp_dir).load().tenant == "acme"

    def test_init_existing_project(self, temp_dir):
        """Test initializing when project already exists."""
        init_project(temp_dir)
        with pytest.raises(FileExistsError):
            init_project(temp_dir)

    def test_init_empty_tenant(self, temp_dir):
        with pytest.raises(ValidationError):
            init_project(temp_dir, tenant="  ")

    def test_load_missing_config(self, temp_dir):
        with pytest.raises(FileNotFoundError):
            Config(temp_dir).load()

    def test_save_and_reload(self, temp_dir):
        """Test saving and loading configuration."""
        config = Config(temp_dir)
        config.init_project()

        data = config.load()
        data.log_level = "DEBUG"
        data.api_keys["k1"] = {"name": "ci", "created_at": "2024-01-01T00:00:00", "active": True}
        config.save(data)

        reloaded = Config(temp_dir).load()
        assert reloaded.log_level == "DEBUG"
        assert reloaded.api_keys["k1"]["name"] == "ci"

        with open(temp_dir / ".mdm" / "config.toml") as f:
            raw = toml.load(f)
        assert raw["tenant"] == "default"

    def test_save_without_config(self, temp_dir):
        with pytest.raises(ValueError):
            Config(temp_dir).save()

    def test_store_and_attachment_paths(self, temp_dir):
        config = Config(temp_dir)
        config.init_project()
        assert config.store_path == temp_dir / ".mdm" / "engine.db"
        assert config.attachments_path == temp_dir / ".mdm" / "attachments"

    def test_extra_fields_allowed(self):
        config = ProjectConfig(tenant="t", custom_setting="x")
        assert config.model_dump()["custom_setting"] == "x"


class TestEnvironmentOverrides:
    """Test environment variable overrides."""

    @pytest.fixture
    def temp_project(self):
        temp = tempfile.mkdtemp()
        project_dir = Path(temp)
        init_project(project_dir)
        yield project_dir
        shutil.rmtree(temp)

    def test_project_dir_from_env(self, temp_project, monkeypatch):
        monkeypatch.setenv("MDM_PROJECT_DIR", str(temp_project))
        config = Config()
        assert config.project_dir == temp_project
        assert config.exists

    def test_tenant_override(self, temp_project, monkeypatch):
        monkeypatch.setenv("MDM_TENANT", "override")
        assert Config(temp_project).load().tenant == "override"

    def test_log_level_override(self, temp_project, monkeypatch):
        monkeypatch.setenv("MDM_LOG_LEVEL", "warning")
        assert Config(temp_project).load().log_level == "WARNING"


class TestProjectDiscovery:
    """Test finding the project root and connecting."""

    @pytest.fixture
    def temp_project(self):
        temp = tempfile.mkdtemp()
        project_dir = Path(temp)
        init_project(project_dir)
        yield project_dir
        shutil.rmtree(temp)

    def test_get_project_root_from_subdirectory(self, temp_project):
        nested = temp_project / "a" / "b"
        nested.mkdir(parents=True)
        assert get_project_root(nested) == temp_project.resolve()

    def test_get_project_root_missing(self):
        temp = tempfile.mkdtemp()
        try:
            with pytest.raises(FileNotFoundError):
                get_project_root(Path(temp))
        finally:
            shutil.rmtree(temp)

    def test_connect_uses_configured_tenant(self, temp_project):
        engine = connect(temp_project)
        assert engine.tenant == "default"
        assert engine.allowed_spaces is None

        restricted = connect(temp_project, tenant="other", allowed_spaces=["s1"], caller="u1")
        assert restricted.tenant == "other"
        assert restricted.allowed_spaces == ["s1"]
        assert restricted.caller == "u1"

    def test_connect_from_cwd(self, temp_project, monkeypatch):
        monkeypatch.chdir(temp_project)
        engine = connect()
        assert engine.project_root.resolve() == temp_project.resolve()

    def test_connect_outside_project(self, monkeypatch):
        temp = tempfile.mkdtemp()
        try:
            monkeypatch.chdir(temp)
            with pytest.raises(ValueError) as exc:
                connect()
            assert "mdm init" in str(exc.value)
        finally:
            monkeypatch.undo()
            shutil.rmtree(temp)
