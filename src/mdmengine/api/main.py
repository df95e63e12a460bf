"""Main entry point for the MDM engine API server."""

import logging
import os
import uvicorn
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console

from mdmengine.api.auth import APIKeyManager
from mdmengine.config import Config, CONFIG_DIR_NAME
from mdmengine.core.path_utils import get_project_root


cli = typer.Typer(
    name="mdm-server",
    help="MDM engine API server",
    add_completion=False,
)
console = Console()


def _project_path(project_dir: Optional[Path]) -> Path:
    """Resolve the project directory or exit with an error."""
    if project_dir:
        project_path = Path(project_dir)
    else:
        try:
            project_path = get_project_root(Path.cwd())
        except FileNotFoundError:
            project_path = None

    if not project_path or not (project_path / CONFIG_DIR_NAME).exists():
        console.print("[red]❌ No MDM project found[/red]")
        console.print("[yellow]Run 'mdm init' to create a project[/yellow]")
        raise typer.Exit(1)
    return project_path


@cli.command()
def serve(
    host: str = typer.Option("0.0.0.0", "--host", "-h", help="Host to bind to"),
    port: int = typer.Option(8000, "--port", "-p", help="Port to bind to"),
    reload: bool = typer.Option(False, "--reload", "-r", help="Enable auto-reload"),
    project_dir: Optional[Path] = typer.Option(
        None, "--project-dir", "-d", help="Project directory"
    ),
    create_key: bool = typer.Option(
        False, "--create-key", help="Create a write API key on startup"
    ),
):
    """Start the MDM engine API server."""
    project_path = _project_path(project_dir)
    log_level = Config(project_path).load().log_level.upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    console.print("[green]Starting MDM engine API server[/green]")
    console.print(f"Project: {project_path}")
    console.print(f"Host: {host}:{port}")

    if create_key:
        manager = APIKeyManager(project_path)
        api_key = manager.create_key("Initial API Key", permissions="write")
        console.print("\n[bold green]Created API key:[/bold green]")
        console.print(f"[yellow]Key: {api_key.key}[/yellow]")
        console.print(f"[yellow]Permissions: {api_key.permissions}[/yellow]")
        console.print("\n[bold]Save this key - it won't be shown again![/bold]\n")

    # The app resolves the project through the environment
    os.environ["MDM_PROJECT_DIR"] = str(project_path.resolve())
    uvicorn.run(
        "mdmengine.api.app:app",
        host=host,
        port=port,
        reload=reload,
        log_level=log_level.lower(),
    )


@cli.command()
def create_key(
    name: str = typer.Argument(..., help="Name for the API key, used as the caller identity"),
    permissions: str = typer.Option(
        "read", "--permissions", "-p", help="Permissions (read/write)"
    ),
    spaces: Optional[List[str]] = typer.Option(
        None, "--space", "-s", help="Restrict the key to a space (repeatable)"
    ),
    project_dir: Optional[Path] = typer.Option(
        None, "--project-dir", "-d", help="Project directory"
    ),
):
    """Create a new API key."""
    project_path = _project_path(project_dir)

    if permissions not in ["read", "write"]:
        console.print("[red]❌ Invalid permissions. Must be 'read' or 'write'[/red]")
        raise typer.Exit(1)

    manager = APIKeyManager(project_path)
    try:
        api_key = manager.create_key(name, permissions=permissions, spaces=spaces or None)
    except ValueError as e:
        console.print(f"[red]❌ {e}[/red]")
        raise typer.Exit(1)

    console.print(f"[green]✅ Created API key '{name}'[/green]")
    console.print(f"[yellow]Key: {api_key.key}[/yellow]")
    console.print(f"[yellow]Permissions: {api_key.permissions}[/yellow]")
    if api_key.spaces:
        console.print(f"[yellow]Spaces: {', '.join(api_key.spaces)}[/yellow]")
    console.print("\n[bold]Save this key - it won't be shown again![/bold]")


@cli.command()
def list_keys(
    project_dir: Optional[Path] = typer.Option(
        None, "--project-dir", "-d", help="Project directory"
    ),
):
    """List all API keys."""
    manager = APIKeyManager(_project_path(project_dir))
    keys = manager.list_keys()

    if not keys:
        console.print("[yellow]No API keys found[/yellow]")
        return

    console.print("\n[bold]API Keys:[/bold]")
    for key in keys:
        status = "[green]Active[/green]" if key.active else "[red]Revoked[/red]"
        spaces = f"Spaces: {', '.join(key.spaces)}" if key.spaces else "All spaces"
        console.print(f"\n{key.name} - {status}")
        console.print(f"  Key: {key.key}")
        console.print(f"  Permissions: {key.permissions}")
        console.print(f"  {spaces}")
        console.print(f"  Created: {key.created_at}")


@cli.command()
def revoke_key(
    key: str = typer.Argument(..., help="API key to revoke"),
    project_dir: Optional[Path] = typer.Option(
        None, "--project-dir", "-d", help="Project directory"
    ),
):
    """Revoke an API key."""
    manager = APIKeyManager(_project_path(project_dir))
    if not manager.revoke_key(key):
        console.print("[red]❌ API key not found[/red]")
        raise typer.Exit(1)
    console.print("[green]✅ Revoked API key[/green]")


if __name__ == "__main__":
    cli()
