"""Persona listing commands."""

from __future__ import annotations

import json

import typer
from rich.table import Table

from .core import app, console, make_runtime

personas_app = typer.Typer(help="Inspect configured personas")
app.add_typer(personas_app, name="personas")


@personas_app.command("list")
def personas_list(
    json_output: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
) -> None:
    """List configured personas."""
    runtime = make_runtime()
    listing = runtime.registry.list_available()

    if json_output:
        console.print(json.dumps(listing, indent=2, ensure_ascii=False))
        return

    table = Table(title=f"Personas ({len(listing)})")
    table.add_column("ID", style="cyan")
    table.add_column("Name", style="green")
    table.add_column("School", style="magenta")
    table.add_column("Club", style="yellow")
    table.add_column("Role", style="dim")
    for item in listing:
        table.add_row(
            str(item["id"]),
            f"{item['name']} ({item['nameEn']})" if item.get("nameEn") else str(item["name"]),
            str(item.get("school") or "-"),
            str(item.get("club") or "-"),
            str(item.get("role") or "-"),
        )
    console.print(table)


@personas_app.command("show")
def personas_show(persona_id: str = typer.Argument(..., help="Persona id")) -> None:
    """Print a persona's effective system prompt."""
    runtime = make_runtime()
    persona = runtime.personas.get(persona_id)
    if persona is None:
        console.print(f"[red]Unknown persona: {persona_id}[/red]")
        raise typer.Exit(1)
    console.print(f"[bold]{persona.name}[/bold] [dim]({persona.id})[/dim]\n")
    console.print(persona.build_system_prompt())
    if persona.example_dialogues:
        console.print(f"\n[dim]{len(persona.example_dialogues)} example dialogue(s)[/dim]")
