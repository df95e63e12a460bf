"""Attribute management commands for the MDM CLI."""

import json
import typer
from pathlib import Path
from typing import List, Optional
from rich.console import Console
from rich.table import Table as RichTable

from mdmengine.cli.utils import (
    attribute_by_code,
    fail,
    get_engine,
    resolve_model,
    validate_required_arg,
)
from mdmengine.errors import EngineError

app = typer.Typer(help="Attribute management commands", invoke_without_command=True)
console = Console()


@app.callback()
def callback(ctx: typer.Context):
    """Show help when no subcommand is provided."""
    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())
        raise typer.Exit(0)


def _describe(attr, by_id) -> str:
    if attr.is_combo and attr.combo:
        members = [by_id[m.attribute_id].code if m.attribute_id in by_id else "?" for m in attr.combo.members]
        return f"{attr.combo.strategy}({', '.join(members)}) sep={attr.combo.separator!r}"
    if attr.options:
        return ", ".join(o.value for o in attr.options)
    return ""


@app.command(name="list")
def list_attributes(
    ctx: typer.Context,
    model_ref: Optional[str] = typer.Argument(None, help="Slug or id of the data model"),
):
    """List the attributes of a data model."""
    model_ref = validate_required_arg(model_ref, "model", ctx)
    engine = get_engine()
    model = resolve_model(engine, model_ref)
    attributes = engine.attributes.list_attributes(model.id)

    if not attributes:
        console.print("[yellow]No attributes found[/yellow]")
        return

    by_id = {a.id: a for a in attributes}
    table = RichTable(title=f"Attributes model={model.slug}", title_justify="left")
    table.add_column("Code", style="cyan")
    table.add_column("Name", style="green")
    table.add_column("Type", style="yellow")
    table.add_column("Required")
    table.add_column("Unique")
    table.add_column("Details", style="dim")

    for attr in attributes:
        table.add_row(
            attr.code,
            attr.display_name,
            attr.type,
            "✓" if attr.is_required else "",
            "✓" if attr.is_unique else "",
            _describe(attr, by_id),
        )

    console.print(table)


@app.command()
def add(
    ctx: typer.Context,
    model_ref: Optional[str] = typer.Argument(None, help="Slug or id of the data model"),
    code: Optional[str] = typer.Argument(None, help="Attribute code"),
    type: Optional[str] = typer.Argument(None, help="Attribute type"),
    display_name: Optional[str] = typer.Option(None, "--display-name", help="Column header"),
    required: bool = typer.Option(False, "--required", help="Value must be present"),
    unique: bool = typer.Option(False, "--unique", help="Value must be unique across records"),
    default: Optional[str] = typer.Option(None, "--default", help="Default for new records"),
    options: Optional[List[str]] = typer.Option(
        None, "--option", "-o", help="Option for SELECT types, as value[:label] (repeatable)"
    ),
    file_types: Optional[List[str]] = typer.Option(
        None, "--file-type", help="Allowed attachment extension (repeatable)"
    ),
    max_file_size: Optional[int] = typer.Option(None, "--max-file-size", help="Max attachment bytes"),
):
    """Add an attribute to a data model.

    Types: TEXT, TEXTAREA, NUMBER, BOOLEAN, DATE, EMAIL, URL, PHONE, SELECT,
    MULTI_SELECT, USER, MULTI_USER, ATTACHMENT
    Type aliases: string, int, float, bool, multiselect, file, etc.

    Examples:
        mdm attribute add customers email email --required --unique
        mdm attribute add customers tier select -o gold:Gold -o silver:Silver
    """
    model_ref = validate_required_arg(model_ref, "model", ctx)
    code = validate_required_arg(code, "code", ctx)
    type = validate_required_arg(type, "type", ctx)

    parsed_options = []
    for index, option in enumerate(options or []):
        value, _, label = option.partition(":")
        parsed_options.append({"value": value, "label": label or None, "display_order": index})

    engine = get_engine()
    model = resolve_model(engine, model_ref)
    try:
        attr = engine.attributes.add_attribute(
            model.id,
            {
                "code": code,
                "type": type,
                "display_name": display_name,
                "is_required": required,
                "is_unique": unique,
                "default_value": default,
                "options": parsed_options or None,
                "allowed_file_types": file_types or None,
                "max_file_size": max_file_size,
            },
        )
    except EngineError as e:
        fail(e)

    console.print(f"[green]✅ Added {attr.type} attribute '{attr.code}' to '{model.slug}'[/green]")


@app.command()
def combo(
    ctx: typer.Context,
    model_ref: Optional[str] = typer.Argument(None, help="Slug or id of the data model"),
    code: Optional[str] = typer.Argument(None, help="Code of the combination column"),
    members: Optional[List[str]] = typer.Argument(None, help="Member attribute codes"),
    strategy: str = typer.Option("GROUPING", "--strategy", help="GROUPING or LEFT_RIGHT"),
    separator: str = typer.Option(" ", "--separator", help="Text between member values"),
    display_name: Optional[str] = typer.Option(None, "--display-name", help="Column header"),
):
    """Add a combination column built from other attributes.

    Examples:
        mdm attribute combo people full_name first_name last_name
        mdm attribute combo people address street city zip --separator ", "
    """
    model_ref = validate_required_arg(model_ref, "model", ctx)
    code = validate_required_arg(code, "code", ctx)
    if not members:
        console.print("[red]❌ At least one member is required[/red]")
        raise typer.Exit(1)

    engine = get_engine()
    model = resolve_model(engine, model_ref)
    try:
        attr = engine.attributes.add_attribute(
            model.id,
            {
                "code": code,
                "type": "COMBO",
                "display_name": display_name,
                "combo": {"strategy": strategy, "separator": separator, "members": members},
            },
        )
    except EngineError as e:
        fail(e)

    console.print(
        f"[green]✅ Added combination column '{attr.code}' ({' + '.join(members)})[/green]"
    )


@app.command()
def drop(
    ctx: typer.Context,
    model_ref: Optional[str] = typer.Argument(None, help="Slug or id of the data model"),
    code: Optional[str] = typer.Argument(None, help="Attribute code"),
    force: bool = typer.Option(
        False, "--force", "-f", help="Force deletion without confirmation"
    ),
):
    """Drop an attribute and every stored value of it."""
    model_ref = validate_required_arg(model_ref, "model", ctx)
    code = validate_required_arg(code, "code", ctx)
    engine = get_engine()
    model = resolve_model(engine, model_ref)
    attr = attribute_by_code(engine.attributes.list_attributes(model.id), code)

    if not force:
        confirm = typer.confirm(
            f"Are you sure you want to drop attribute '{code}' and its values?"
        )
        if not confirm:
            console.print("[yellow]Cancelled[/yellow]")
            raise typer.Exit(0)

    try:
        engine.attributes.delete_attribute(attr.id)
    except EngineError as e:
        fail(e)
    console.print(f"[green]✅ Dropped attribute '{code}'[/green]")


@app.command(name="export")
def export_attributes(
    model_ref: str = typer.Argument(..., help="Slug or id of the data model"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write to file instead of stdout"),
):
    """Export attribute definitions as JSON."""
    engine = get_engine()
    model = resolve_model(engine, model_ref)
    document = json.dumps(engine.attributes.export_attributes(model.id), indent=2)
    if output:
        output.write_text(document)
        console.print(f"[green]✅ Exported attributes of '{model.slug}' to {output}[/green]")
    else:
        typer.echo(document)


@app.command(name="import")
def import_attributes(
    model_ref: str = typer.Argument(..., help="Slug or id of the data model"),
    source: Path = typer.Argument(..., help="JSON file written by 'mdm attribute export'"),
):
    """Create attributes from an exported JSON document."""
    if not source.exists():
        console.print(f"[red]❌ File not found: {source}[/red]")
        raise typer.Exit(1)

    engine = get_engine()
    model = resolve_model(engine, model_ref)
    try:
        created = engine.attributes.import_attributes(model.id, json.loads(source.read_text()))
    except json.JSONDecodeError as e:
        console.print(f"[red]❌ Invalid JSON: {e}[/red]")
        raise typer.Exit(1)
    except EngineError as e:
        fail(e)
    console.print(f"[green]✅ Imported {len(created)} attribute(s) into '{model.slug}'[/green]")
