"""Data model management commands for the MDM CLI."""

import typer
from typing import List, Optional
from rich.console import Console
from rich.table import Table as RichTable

from mdmengine.cli.utils import fail, get_engine, resolve_model, validate_required_arg
from mdmengine.errors import EngineError

app = typer.Typer(help="Data model management commands", invoke_without_command=True)
console = Console()


@app.callback()
def callback(ctx: typer.Context):
    """Show help when no subcommand is provided."""
    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())
        raise typer.Exit(0)


@app.command(name="list")
def list_models(
    space: Optional[str] = typer.Option(None, "--space", "-s", help="Only models in this space"),
):
    """List data models."""
    engine = get_engine()
    try:
        models = engine.data_models.list_data_models(space_id=space)
    except EngineError as e:
        fail(e)

    if not models:
        console.print("[yellow]No data models found[/yellow]")
        return

    table = RichTable(title=f"Data models tenant={engine.tenant}", title_justify="left")
    table.add_column("Slug", style="cyan")
    table.add_column("Name", style="green")
    table.add_column("Source", style="yellow")
    table.add_column("Attributes", style="magenta")
    table.add_column("Spaces")

    for model in models:
        count = len(engine.attributes.list_attributes(model.id))
        table.add_row(
            model.slug,
            model.display_name,
            model.source_type,
            str(count),
            ", ".join(model.space_ids) or "-",
        )

    console.print(table)


@app.command()
def create(
    ctx: typer.Context,
    name: Optional[str] = typer.Argument(None, help="Name of the data model"),
    display_name: Optional[str] = typer.Option(None, "--display-name", help="Human readable name"),
    description: Optional[str] = typer.Option(None, "--description", help="Description"),
    source_type: str = typer.Option("INTERNAL", "--source-type", help="INTERNAL or EXTERNAL"),
    slug: Optional[str] = typer.Option(None, "--slug", help="Explicit slug (derived from name by default)"),
    spaces: Optional[List[str]] = typer.Option(None, "--space", "-s", help="Space to link (repeatable)"),
):
    """Create a new data model.

    Examples:
        mdm model create Customers --space sales
        mdm model create "Product Catalog" --slug products --source-type external
    """
    name = validate_required_arg(name, "name", ctx)
    engine = get_engine()
    try:
        model = engine.data_models.create_data_model(
            name,
            display_name=display_name,
            description=description,
            source_type=source_type,
            space_ids=spaces or [],
            slug=slug,
        )
    except EngineError as e:
        fail(e)

    console.print(f"[green]✅ Created data model '{model.name}' (slug: {model.slug})[/green]")
    console.print(f"[dim]id: {model.id}[/dim]")


@app.command()
def show(
    ctx: typer.Context,
    ref: Optional[str] = typer.Argument(None, help="Slug or id of the data model"),
):
    """Show a data model and its attributes."""
    ref = validate_required_arg(ref, "ref", ctx)
    engine = get_engine()
    model = resolve_model(engine, ref)
    attributes = engine.attributes.list_attributes(model.id)

    console.print(f"\n[bold]{model.display_name}[/bold] ({model.name})")
    console.print(f"ID: {model.id}")
    console.print(f"Slug: {model.slug} [dim]({model.slug_source})[/dim]")
    console.print(f"Source: {model.source_type}")
    console.print(f"Active: {'yes' if model.is_active else 'no'}")
    console.print(f"Spaces: {', '.join(model.space_ids) or '-'}")
    console.print(f"Records: {engine.records.count_records(model.id)}")
    if model.description:
        console.print(f"Description: {model.description}")

    if not attributes:
        console.print("\n[yellow]No attributes defined[/yellow]")
        return

    table = RichTable(title="Attributes", title_justify="left")
    table.add_column("#", style="dim")
    table.add_column("Code", style="cyan")
    table.add_column("Type", style="green")
    table.add_column("Flags", style="yellow")
    for attr in attributes:
        flags = [f for f, on in (("required", attr.is_required), ("unique", attr.is_unique)) if on]
        table.add_row(str(attr.display_order), attr.code, attr.type, ", ".join(flags) or "-")
    console.print(table)


@app.command()
def delete(
    ctx: typer.Context,
    ref: Optional[str] = typer.Argument(None, help="Slug or id of the data model"),
    force: bool = typer.Option(
        False, "--force", "-f", help="Force deletion without confirmation"
    ),
):
    """Delete a data model with all of its attributes and records."""
    ref = validate_required_arg(ref, "ref", ctx)
    engine = get_engine()
    model = resolve_model(engine, ref)

    if not force:
        confirm = typer.confirm(
            f"Are you sure you want to delete data model '{model.name}' and all its records?"
        )
        if not confirm:
            console.print("[yellow]Cancelled[/yellow]")
            raise typer.Exit(0)

    try:
        engine.data_models.delete_data_model(model.id)
    except EngineError as e:
        fail(e)
    console.print(f"[green]✅ Deleted data model '{model.name}'[/green]")


@app.command()
def link(
    ref: str = typer.Argument(..., help="Slug or id of the data model"),
    spaces: List[str] = typer.Argument(..., help="Spaces to link"),
):
    """Link a data model to spaces."""
    engine = get_engine()
    model = resolve_model(engine, ref)
    try:
        model = engine.data_models.link_spaces(model.id, spaces)
    except EngineError as e:
        fail(e)
    console.print(f"[green]✅ '{model.slug}' spaces: {', '.join(model.space_ids)}[/green]")


@app.command()
def unlink(
    ref: str = typer.Argument(..., help="Slug or id of the data model"),
    spaces: List[str] = typer.Argument(..., help="Spaces to unlink"),
):
    """Unlink a data model from spaces."""
    engine = get_engine()
    model = resolve_model(engine, ref)
    try:
        model = engine.data_models.unlink_spaces(model.id, spaces)
    except EngineError as e:
        fail(e)
    console.print(
        f"[green]✅ '{model.slug}' spaces: {', '.join(model.space_ids) or '-'}[/green]"
    )
