"""Utility functions for CLI commands."""

import os
import typer
from pathlib import Path
from typing import Dict, List, Optional
from rich.console import Console

from mdmengine.config import Config
from mdmengine.core.attribute_types import display_value
from mdmengine.core.database import connect
from mdmengine.core.path_utils import get_project_root
from mdmengine.errors import EngineError, NotFoundError
from mdmengine.managers.base import EngineContext
from mdmengine.models import Attribute, DataModel, ResolvedRecord

console = Console()


def get_config_with_data():
    """Get config and load data from current directory.

    Returns:
        tuple: (config, config_data)
    """
    try:
        project_root = get_project_root(Path.cwd())
    except FileNotFoundError:
        console.print("[red]❌ Not in an MDM project directory[/red]")
        raise typer.Exit(1)

    config = Config(project_root)
    try:
        config_data = config.load()
    except FileNotFoundError:
        console.print("[red]❌ Config file not found. Run 'mdm init' first.[/red]")
        raise typer.Exit(1)

    return config, config_data


def get_engine() -> EngineContext:
    """Connect to the project in the current directory as an unrestricted caller."""
    config, config_data = get_config_with_data()
    return connect(
        project_dir=config.project_dir,
        tenant=config_data.tenant,
        caller=os.environ.get("USER"),
    )


def fail(error: Exception):
    """Print an engine error and exit with status 1."""
    if isinstance(error, EngineError) and error.attribute:
        console.print(f"[red]❌ {error.message} ({error.attribute})[/red]")
    else:
        console.print(f"[red]❌ {error}[/red]")
    raise typer.Exit(1)


def resolve_model(engine: EngineContext, ref: str) -> DataModel:
    """Look a data model up by slug, then by id."""
    try:
        return engine.data_models.get_data_model_by_slug(ref)
    except NotFoundError:
        pass
    try:
        return engine.data_models.get_data_model(ref)
    except NotFoundError:
        fail(NotFoundError(f"Data model '{ref}' not found"))


def attribute_by_code(attributes: List[Attribute], code: str) -> Attribute:
    for attr in attributes:
        if attr.code == code:
            return attr
    fail(NotFoundError(f"Attribute '{code}' not found"))


def parse_assignments(pairs: Optional[List[str]]) -> Dict[str, str]:
    """Parse ``code=value`` arguments; a bare ``code=`` clears the value."""
    values: Dict[str, str] = {}
    for pair in pairs or []:
        if "=" not in pair:
            console.print(f"[red]❌ Invalid value '{pair}'[/red]")
            console.print("[yellow]Format: code=value[/yellow]")
            raise typer.Exit(1)
        code, value = pair.split("=", 1)
        values[code.strip()] = value
    return values


def record_cells(record: ResolvedRecord, attributes: List[Attribute]) -> List[str]:
    """Render a record's cells in attribute order for a Rich table."""
    cells = []
    for attr in attributes:
        if attr.is_combo:
            cells.append(record.derived.get(attr.code, ""))
        else:
            cells.append(display_value(attr, record.values.get(attr.code)))
    return cells


def validate_required_arg(
    value: Optional[str], arg_name: str, ctx: typer.Context
) -> str:
    """Validate a required argument and show help if missing.

    Raises:
        typer.Exit: If value is None
    """
    if value is None:
        console.print(ctx.get_help())
        console.print(f"\n[red]❌ Error: Missing argument '{arg_name.upper()}'.[/red]")
        raise typer.Exit(1)
    return value


def show_env_config():
    """Display active environment variable configuration."""
    env_vars = {
        "MDM_PROJECT_DIR": os.environ.get("MDM_PROJECT_DIR"),
        "MDM_TENANT": os.environ.get("MDM_TENANT"),
        "MDM_LOG_LEVEL": os.environ.get("MDM_LOG_LEVEL"),
    }

    active = {k: v for k, v in env_vars.items() if v}
    if active:
        console.print("\n[yellow]Active environment variables:[/yellow]")
        for key, value in active.items():
            console.print(f"  {key}={value}")
    else:
        console.print("\n[dim]No MDM environment variables set[/dim]")
