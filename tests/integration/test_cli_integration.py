"""Fast integration tests for CLI commands using CliRunner."""

import json
import re
import pytest
import tempfile
import shutil
import os
from pathlib import Path
from typer.testing import CliRunner

# Import the app directly
from mdmengine.cli.main import app

runner = CliRunner()

UUID = r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}"


class TestCLIIntegration:
    """Fast CLI integration tests using CliRunner."""

    @pytest.fixture
    def temp_project(self):
        """Create a temporary project directory."""
        temp_dir = tempfile.mkdtemp()
        project_path = Path(temp_dir)
        yield project_path
        shutil.rmtree(temp_dir)

    def run_in_project(self, command, temp_project, input=None):
        """Run a command in the project directory."""
        original_cwd = os.getcwd()
        os.chdir(temp_project)
        try:
            return runner.invoke(app, command, input=input)
        finally:
            os.chdir(original_cwd)

    @pytest.fixture
    def people(self, temp_project):
        """Initialized project with a people model, two names and a full_name combo."""
        self.run_in_project(["init"], temp_project)
        for command in (
            ["model", "create", "People", "--space", "sales"],
            ["attribute", "add", "people", "first_name", "text", "--required"],
            ["attribute", "add", "people", "last_name", "text"],
            ["attribute", "combo", "people", "full_name", "first_name", "last_name"],
        ):
            result = self.run_in_project(command, temp_project)
            assert result.exit_code == 0, result.stdout
        return temp_project

    def create_record(self, temp_project, *values):
        result = self.run_in_project(["record", "create", "people", *values], temp_project)
        assert result.exit_code == 0, result.stdout
        return re.search(f"Created record ({UUID})", result.stdout).group(1)

    def test_project_initialization(self, temp_project):
        """Test project initialization workflow."""
        result = self.run_in_project(["init", "--tenant", "acme"], temp_project)
        assert result.exit_code == 0
        assert "Initialized MDM project" in result.stdout
        assert "Tenant: acme" in result.stdout

        assert (temp_project / ".mdm" / "config.toml").exists()
        assert (temp_project / ".mdm" / "engine.db").exists()
        assert (temp_project / ".mdm" / "attachments").is_dir()

        result = self.run_in_project(["init"], temp_project)
        assert result.exit_code == 1
        assert "Project already exists" in result.stdout

        result = self.run_in_project(["version"], temp_project)
        assert result.exit_code == 0
        assert "MDM engine version" in result.stdout

    def test_status_command(self, people):
        result = self.run_in_project(["status"], people)
        assert result.exit_code == 0
        assert "MDM Status" in result.stdout
        assert "Tenant: default" in result.stdout
        assert "Data models: 1" in result.stdout
        assert "API keys: 0" in result.stdout

    def test_status_with_env_vars(self, people, monkeypatch):
        monkeypatch.setenv("MDM_TENANT", "other")

        result = self.run_in_project(["status"], people)
        assert result.exit_code == 0
        assert "Tenant: other" in result.stdout
        assert "Data models: 0" in result.stdout
        assert "MDM_TENANT=other" in result.stdout

    def test_outside_project(self, temp_project):
        result = self.run_in_project(["model", "list"], temp_project)
        assert result.exit_code == 1
        assert "Not in an MDM project directory" in result.stdout

    def test_model_workflow(self, temp_project):
        self.run_in_project(["init"], temp_project)

        result = self.run_in_project(
            ["model", "create", "Customer Accounts", "--space", "sales"], temp_project
        )
        assert result.exit_code == 0
        assert "slug: customer-accounts" in result.stdout

        result = self.run_in_project(["model", "create", "Customer Accounts"], temp_project)
        assert result.exit_code == 1
        assert "already exists" in result.stdout

        result = self.run_in_project(["model", "list"], temp_project)
        assert result.exit_code == 0
        assert "customer-accounts" in result.stdout

        result = self.run_in_project(["model", "link", "customer-accounts", "finance"], temp_project)
        assert result.exit_code == 0
        assert "finance, sales" in result.stdout

        result = self.run_in_project(["model", "unlink", "customer-accounts", "sales"], temp_project)
        assert result.exit_code == 0
        assert "spaces: finance" in result.stdout

        result = self.run_in_project(["model", "list", "--space", "finance"], temp_project)
        assert "customer-accounts" in result.stdout

        result = self.run_in_project(["model", "show", "customer-accounts"], temp_project)
        assert result.exit_code == 0
        assert "Slug: customer-accounts" in result.stdout
        assert "Records: 0" in result.stdout

        result = self.run_in_project(
            ["model", "delete", "customer-accounts"], temp_project, input="n\n"
        )
        assert "Cancelled" in result.stdout

        result = self.run_in_project(["model", "delete", "customer-accounts", "-f"], temp_project)
        assert result.exit_code == 0
        assert "Deleted data model 'Customer Accounts'" in result.stdout

        result = self.run_in_project(["model", "show", "customer-accounts"], temp_project)
        assert result.exit_code == 1
        assert "not found" in result.stdout

    def test_model_create_missing_name(self, temp_project):
        self.run_in_project(["init"], temp_project)
        result = self.run_in_project(["model", "create"], temp_project)
        assert result.exit_code == 1
        assert "Missing argument 'NAME'" in result.stdout

    def test_attribute_workflow(self, people):
        result = self.run_in_project(
            ["attribute", "add", "people", "tier", "select", "-o", "gold:Gold", "-o", "silver"],
            people,
        )
        assert result.exit_code == 0
        assert "Added SELECT attribute 'tier'" in result.stdout

        result = self.run_in_project(["attribute", "list", "people"], people)
        assert result.exit_code == 0
        assert "Attributes model=people" in result.stdout

        result = self.run_in_project(["attribute", "add", "people", "tier", "text"], people)
        assert result.exit_code == 1
        assert "already exists" in result.stdout

        result = self.run_in_project(["attribute", "add", "people", "x", "blob"], people)
        assert result.exit_code == 1
        assert "Invalid type" in result.stdout

        result = self.run_in_project(["attribute", "drop", "people", "tier", "-f"], people)
        assert result.exit_code == 0
        assert "Dropped attribute 'tier'" in result.stdout

    def test_combo_errors(self, people):
        result = self.run_in_project(
            ["attribute", "combo", "people", "loop", "loop", "first_name"], people
        )
        assert result.exit_code == 1
        assert "cycle" in result.stdout

        result = self.run_in_project(
            ["attribute", "combo", "people", "bad", "first_name", "nope"], people
        )
        assert result.exit_code == 1
        assert "unknown" in result.stdout

        result = self.run_in_project(["attribute", "combo", "people", "empty"], people)
        assert result.exit_code == 1
        assert "At least one member is required" in result.stdout

    def test_export_import(self, people):
        result = self.run_in_project(["attribute", "export", "people"], people)
        assert result.exit_code == 0
        document = json.loads(result.stdout)
        assert [a["code"] for a in document["attributes"]] == [
            "first_name",
            "last_name",
            "full_name",
        ]

        (people / "people.json").write_text(result.stdout)
        self.run_in_project(["model", "create", "Contacts"], people)
        result = self.run_in_project(["attribute", "import", "contacts", "people.json"], people)
        assert result.exit_code == 0
        assert "Imported 3 attribute(s) into 'contacts'" in result.stdout

        result = self.run_in_project(["attribute", "import", "contacts", "missing.json"], people)
        assert result.exit_code == 1
        assert "File not found" in result.stdout

    def test_record_workflow(self, people):
        record_id = self.create_record(people, "first_name=Jane", "last_name=Doe")

        result = self.run_in_project(["record", "show", record_id], people)
        assert result.exit_code == 0
        assert "Jane Doe" in result.stdout

        result = self.run_in_project(["record", "update", record_id, "first_name=John"], people)
        assert result.exit_code == 0
        result = self.run_in_project(["record", "show", record_id], people)
        assert "John Doe" in result.stdout

        self.create_record(people, "first_name=Ann")
        result = self.run_in_project(["record", "list", "people", "--limit", "1"], people)
        assert result.exit_code == 0
        assert "(1 of 2)" in result.stdout

        result = self.run_in_project(["record", "delete", record_id, "-f"], people)
        assert result.exit_code == 0
        result = self.run_in_project(["record", "show", record_id], people)
        assert result.exit_code == 1

    def test_record_errors(self, people):
        result = self.run_in_project(["record", "create", "people", "last_name=Doe"], people)
        assert result.exit_code == 1
        assert "is required" in result.stdout

        result = self.run_in_project(
            ["record", "create", "people", "first_name=Jane", "full_name=x"], people
        )
        assert result.exit_code == 1
        assert "combination column" in result.stdout

        result = self.run_in_project(["record", "create", "people", "first_name"], people)
        assert result.exit_code == 1
        assert "Format: code=value" in result.stdout

    def test_view_workflow(self, people):
        self.create_record(people, "first_name=Jane", "last_name=Doe")

        result = self.run_in_project(["view", "create", "people", "--name", "compact"], people)
        assert result.exit_code == 0
        assert "Created view 'compact'" in result.stdout
        view_id = re.search(f"id: ({UUID})", result.stdout).group(1)

        result = self.run_in_project(
            ["view", "order", view_id, "full_name", "nope", "first_name"], people
        )
        assert result.exit_code == 0
        assert "Ignoring unknown column(s): nope" in result.stdout

        result = self.run_in_project(["view", "hide", view_id, "last_name"], people)
        assert result.exit_code == 0
        assert "Hid column 'last_name'" in result.stdout

        result = self.run_in_project(["view", "show", view_id], people)
        assert result.exit_code == 0
        assert "Jane Doe" in result.stdout
        assert "1 hidden column(s)" in result.stdout

        result = self.run_in_project(["view", "unhide", view_id, "last_name"], people)
        assert result.exit_code == 0
        result = self.run_in_project(["view", "show", view_id], people)
        assert "hidden column" not in result.stdout

        result = self.run_in_project(["view", "hide", view_id, "nope"], people)
        assert result.exit_code == 1
        assert "not found" in result.stdout
