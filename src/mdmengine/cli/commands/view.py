"""Table view commands for the MDM CLI."""

import typer
from typing import List, Optional
from rich.console import Console
from rich.table import Table as RichTable

from mdmengine.cli.utils import (
    attribute_by_code,
    fail,
    get_engine,
    record_cells,
    resolve_model,
    validate_required_arg,
)
from mdmengine.errors import EngineError

app = typer.Typer(help="Table view commands", invoke_without_command=True)
console = Console()


@app.callback()
def callback(ctx: typer.Context):
    """Show help when no subcommand is provided."""
    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())
        raise typer.Exit(0)


def _load(engine, view_id: str):
    """Return (view, attributes of its model)."""
    try:
        view = engine.views.get_view(view_id)
    except EngineError as e:
        fail(e)
    return view, engine.attributes.list_attributes(view.data_model_id)


@app.command()
def create(
    ctx: typer.Context,
    model_ref: Optional[str] = typer.Argument(None, help="Slug or id of the data model"),
    name: str = typer.Option("default", "--name", "-n", help="View name"),
    owner: Optional[str] = typer.Option(None, "--owner", help="Viewer the view belongs to"),
):
    """Create a table view of a data model."""
    model_ref = validate_required_arg(model_ref, "model", ctx)
    engine = get_engine()
    model = resolve_model(engine, model_ref)
    try:
        view = engine.views.create_view(model.id, owner=owner, name=name)
    except EngineError as e:
        fail(e)
    console.print(f"[green]✅ Created view '{view.name}' of '{model.slug}'[/green]")
    console.print(f"[dim]id: {view.id}[/dim]")


@app.command()
def show(
    ctx: typer.Context,
    view_id: Optional[str] = typer.Argument(None, help="View id"),
    limit: Optional[int] = typer.Option(20, "--limit", "-l", help="Limit number of records"),
):
    """Render a data model's records through a view."""
    view_id = validate_required_arg(view_id, "view_id", ctx)
    engine = get_engine()
    view, _ = _load(engine, view_id)
    columns = engine.views.visible_columns(view_id)
    records = engine.records.list_records(view.data_model_id, limit=limit)

    table = RichTable(title=f"View '{view.name}'", title_justify="left")
    for attr in columns:
        table.add_column(attr.display_name, style="magenta" if attr.is_combo else "cyan")
    for record in records:
        table.add_row(*record_cells(record, columns))
    console.print(table)

    if view.hidden_columns:
        console.print(f"[dim]{len(view.hidden_columns)} hidden column(s)[/dim]")


@app.command()
def order(
    ctx: typer.Context,
    view_id: Optional[str] = typer.Argument(None, help="View id"),
    codes: Optional[List[str]] = typer.Argument(None, help="Attribute codes in display order"),
):
    """Set the column order of a view; unlisted columns follow."""
    view_id = validate_required_arg(view_id, "view_id", ctx)
    engine = get_engine()
    _, attributes = _load(engine, view_id)
    by_code = {a.code: a.id for a in attributes}
    unknown = [c for c in codes or [] if c not in by_code]
    if unknown:
        console.print(f"[yellow]Ignoring unknown column(s): {', '.join(unknown)}[/yellow]")

    try:
        engine.views.reorder_columns(view_id, [by_code[c] for c in codes or [] if c in by_code])
    except EngineError as e:
        fail(e)
    console.print("[green]✅ Updated column order[/green]")


def _set_hidden(view_id: str, code: str, hidden: bool) -> None:
    engine = get_engine()
    _, attributes = _load(engine, view_id)
    attr = attribute_by_code(attributes, code)
    try:
        engine.views.set_column_hidden(view_id, attr.id, hidden)
    except EngineError as e:
        fail(e)


@app.command()
def hide(
    view_id: str = typer.Argument(..., help="View id"),
    code: str = typer.Argument(..., help="Attribute code"),
):
    """Hide a column in a view."""
    _set_hidden(view_id, code, True)
    console.print(f"[green]✅ Hid column '{code}'[/green]")


@app.command()
def unhide(
    view_id: str = typer.Argument(..., help="View id"),
    code: str = typer.Argument(..., help="Attribute code"),
):
    """Show a hidden column again."""
    _set_hidden(view_id, code, False)
    console.print(f"[green]✅ Column '{code}' is visible[/green]")
