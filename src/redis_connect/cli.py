"""Typer CLI for inspecting and validating Redis connector configs."""

from __future__ import annotations

import json

import typer
from rich.console import Console
from rich.table import Table

from redis_connect.config.loader import load_properties
from redis_connect.config.models import ConnectorKind
from redis_connect.connector.factory import create_connector
from redis_connect.errors import ConnectorStartError, PartitionContractError

console = Console()
app = typer.Typer(name="redis-connect", help="Redis connector configuration tools")

_KIND_HELP = "Connector kind: sink or source"


def _load(config_path: str) -> dict[str, str]:
    try:
        return load_properties(config_path)
    except FileNotFoundError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(1) from exc
    except (TypeError, ValueError) as exc:
        console.print(f"[red]Could not load config:[/red] {exc}")
        raise typer.Exit(1) from exc


@app.command()
def options(
    kind: ConnectorKind = typer.Option(ConnectorKind.SINK, "--kind", help=_KIND_HELP),
) -> None:
    """List every recognized option with its type and default."""
    schema = create_connector(kind).schema()
    table = Table(title=f"Redis {kind} options")
    table.add_column("Name", style="cyan")
    table.add_column("Type")
    table.add_column("Default")
    table.add_column("Importance")
    table.add_column("Description")
    for row in schema.option_table():
        table.add_row(
            row["name"],
            row["type"],
            row["default"],
            row["importance"],
            row["documentation"],
        )
    console.print(table)


@app.command()
def validate(
    config_path: str = typer.Argument(..., help="Path to connector YAML/properties"),
    kind: ConnectorKind = typer.Option(ConnectorKind.SINK, "--kind", help=_KIND_HELP),
    strict: bool = typer.Option(False, "--strict", help="Reject unknown keys"),
) -> None:
    """Validate a connector configuration and report every error."""
    raw = _load(config_path)
    result = create_connector(kind, strict=strict).validate(raw)
    errors = result.errors()
    if not errors:
        console.print(f"[green]Valid[/green]: {len(raw)} properties ({kind})")
        return

    table = Table(title="Configuration errors")
    table.add_column("Option", style="cyan")
    table.add_column("Value")
    table.add_column("Error", style="red")
    for name, messages in errors.items():
        for message in messages:
            table.add_row(name, str(result[name].value), message)
    console.print(table)
    raise typer.Exit(1)


@app.command()
def tasks(
    config_path: str = typer.Argument(..., help="Path to connector YAML/properties"),
    max_tasks: int = typer.Option(1, "--max-tasks", help="Maximum number of tasks"),
    kind: ConnectorKind = typer.Option(ConnectorKind.SINK, "--kind", help=_KIND_HELP),
) -> None:
    """Print the per-task configurations the connector would hand out."""
    raw = _load(config_path)
    connector = create_connector(kind)
    try:
        connector.start(raw)
        task_configs = connector.task_configs(max_tasks)
    except (ConnectorStartError, PartitionContractError) as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(1) from exc
    finally:
        connector.stop()
    console.print_json(json.dumps(task_configs))
