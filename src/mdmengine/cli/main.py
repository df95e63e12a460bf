"""Main CLI entry point for the MDM engine."""

import typer
from typing import Optional
from pathlib import Path

# Import command groups
from mdmengine.cli.commands import (
    model,
    attribute,
    record,
    view,
)

app = typer.Typer(
    name="mdm",
    help="MDM engine - dynamic data models, attributes and records",
    add_completion=False,
    invoke_without_command=True,
)


@app.callback()
def main(ctx: typer.Context):
    """
    MDM engine - dynamic data models, attributes and records
    """
    if ctx.invoked_subcommand is None:
        # No subcommand was invoked, show help
        print(ctx.get_help())
        raise typer.Exit(0)


# Add command groups
app.add_typer(model.app, name="model", help="Data model management commands")
app.add_typer(attribute.app, name="attribute", help="Attribute management commands")
app.add_typer(record.app, name="record", help="Record management commands")
app.add_typer(view.app, name="view", help="Table view commands")


@app.command()
def init(
    path: Optional[Path] = typer.Argument(
        None, help="Directory to initialize project in (default: current directory)"
    ),
    tenant: Optional[str] = typer.Option(
        "default", "--tenant", "-t", help="Tenant that owns the project's data models"
    ),
):
    """Initialize a new MDM project."""
    from mdmengine.core.initializer import init_project
    from mdmengine.errors import ValidationError

    project_path = path or Path.cwd()

    try:
        init_project(project_dir=project_path, tenant=tenant)
        typer.secho(
            f"✅ Initialized MDM project in {project_path}", fg=typer.colors.GREEN
        )
        typer.secho(f"   Tenant: {tenant}", fg=typer.colors.CYAN)
    except FileExistsError:
        typer.secho(f"❌ Project already exists in {project_path}", fg=typer.colors.RED)
        raise typer.Exit(1)
    except ValidationError as e:
        typer.secho(f"❌ {e}", fg=typer.colors.RED)
        raise typer.Exit(1)


@app.command()
def version():
    """Show MDM engine version."""
    from mdmengine import __version__

    typer.echo(f"MDM engine version {__version__}")


@app.command()
def status():
    """Show project status including configuration and environment variables."""
    from mdmengine.cli.utils import get_config_with_data, get_engine, show_env_config
    from rich.console import Console

    console = Console()

    config, config_data = get_config_with_data()
    try:
        models = get_engine().data_models.list_data_models()
    except Exception as e:
        console.print(f"[red]❌ Error: {e}[/red]")
        raise typer.Exit(1)

    console.print("\n[bold]MDM Status[/bold]")
    console.print(f"Project: {config.project_dir}")
    console.print(f"Tenant: {config_data.tenant}")
    console.print(f"Store: {config.store_path}")
    console.print(f"Data models: {len(models)}")
    console.print(f"API keys: {len(config_data.api_keys)}")

    show_env_config()


if __name__ == "__main__":
    app()
