"""Record management commands for the MDM CLI."""

import typer
from typing import List, Optional
from rich.console import Console
from rich.table import Table as RichTable

from mdmengine.cli.utils import (
    fail,
    get_engine,
    parse_assignments,
    record_cells,
    resolve_model,
    validate_required_arg,
)
from mdmengine.errors import EngineError

app = typer.Typer(help="Record management commands", invoke_without_command=True)
console = Console()


@app.callback()
def callback(ctx: typer.Context):
    """Show help when no subcommand is provided."""
    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())
        raise typer.Exit(0)


def _print_record(engine, record) -> None:
    attributes = engine.attributes.list_attributes(record.data_model_id)
    console.print(f"\n[bold]{record.name or record.id}[/bold]")
    console.print(f"ID: {record.id}")
    if record.created_by:
        console.print(f"Created by: {record.created_by}")

    table = RichTable(show_header=True, title_justify="left")
    table.add_column("Attribute", style="cyan")
    table.add_column("Type", style="yellow")
    table.add_column("Value", style="green")
    for attr, cell in zip(attributes, record_cells(record, attributes)):
        table.add_row(attr.code, attr.type, cell)
    console.print(table)

    for diagnostic in record.diagnostics:
        console.print(f"[yellow]⚠ {diagnostic.message}[/yellow]")


@app.command()
def create(
    ctx: typer.Context,
    model_ref: Optional[str] = typer.Argument(None, help="Slug or id of the data model"),
    values: Optional[List[str]] = typer.Argument(None, help="Values as code=value"),
    name: Optional[str] = typer.Option(None, "--name", "-n", help="Record label"),
):
    """Create a record.

    Multi-valued attributes take comma separated values.

    Examples:
        mdm record create people first_name=Jane last_name=Doe
        mdm record create products sku=A-1 tags=new,sale --name "Widget"
    """
    model_ref = validate_required_arg(model_ref, "model", ctx)
    assignments = parse_assignments(values)
    engine = get_engine()
    model = resolve_model(engine, model_ref)
    try:
        record = engine.records.create_record(model.id, name=name, values=assignments)
    except EngineError as e:
        fail(e)

    console.print(f"[green]✅ Created record {record.id} in '{model.slug}'[/green]")


@app.command()
def show(
    ctx: typer.Context,
    record_id: Optional[str] = typer.Argument(None, help="Record id"),
):
    """Show a record with its combination columns rendered."""
    record_id = validate_required_arg(record_id, "record_id", ctx)
    engine = get_engine()
    try:
        record = engine.records.get_record(record_id)
    except EngineError as e:
        fail(e)
    _print_record(engine, record)


@app.command(name="list")
def list_records(
    ctx: typer.Context,
    model_ref: Optional[str] = typer.Argument(None, help="Slug or id of the data model"),
    limit: Optional[int] = typer.Option(None, "--limit", "-l", help="Limit number of records"),
    offset: int = typer.Option(0, "--offset", help="Records to skip"),
):
    """List the records of a data model."""
    model_ref = validate_required_arg(model_ref, "model", ctx)
    engine = get_engine()
    model = resolve_model(engine, model_ref)
    attributes = engine.attributes.list_attributes(model.id)
    records = engine.records.list_records(model.id, limit=limit, offset=offset)

    if not records:
        console.print("[yellow]No records found[/yellow]")
        return

    total = engine.records.count_records(model.id)
    table = RichTable(
        title=f"Records model={model.slug} ({len(records)} of {total})", title_justify="left"
    )
    table.add_column("ID", style="dim")
    for attr in attributes:
        table.add_column(attr.display_name, style="magenta" if attr.is_combo else "cyan")

    for record in records:
        table.add_row(record.id[:8], *record_cells(record, attributes))

    console.print(table)


@app.command()
def update(
    ctx: typer.Context,
    record_id: Optional[str] = typer.Argument(None, help="Record id"),
    values: Optional[List[str]] = typer.Argument(None, help="Values as code=value; code= clears"),
    name: Optional[str] = typer.Option(None, "--name", "-n", help="New record label"),
):
    """Update values of a record; attributes not given are left as they are."""
    record_id = validate_required_arg(record_id, "record_id", ctx)
    assignments = parse_assignments(values)
    engine = get_engine()
    try:
        engine.records.update_record(record_id, values=assignments, name=name)
    except EngineError as e:
        fail(e)
    console.print(f"[green]✅ Updated record {record_id}[/green]")


@app.command()
def delete(
    ctx: typer.Context,
    record_id: Optional[str] = typer.Argument(None, help="Record id"),
    force: bool = typer.Option(
        False, "--force", "-f", help="Force deletion without confirmation"
    ),
):
    """Delete a record."""
    record_id = validate_required_arg(record_id, "record_id", ctx)

    if not force:
        confirm = typer.confirm(f"Are you sure you want to delete record '{record_id}'?")
        if not confirm:
            console.print("[yellow]Cancelled[/yellow]")
            raise typer.Exit(0)

    engine = get_engine()
    try:
        engine.records.delete_record(record_id)
    except EngineError as e:
        fail(e)
    console.print(f"[green]✅ Deleted record {record_id}[/green]")
