"""Mood inspection and trigger commands."""

from __future__ import annotations

import asyncio

import typer
from rich.table import Table

from anima.mood.models import MoodTrigger

from .core import app, console, require_persona, runtime_context

mood_app = typer.Typer(help="Inspect and nudge persona moods")
app.add_typer(mood_app, name="mood")


@mood_app.command("show")
def mood_show(persona_id: str = typer.Option("arona", "--persona", "-p", help="Persona id")) -> None:
    """Show a persona's current mood."""

    async def run() -> None:
        async with runtime_context() as runtime:
            require_persona(runtime, persona_id)
            info = runtime.registry.get_mood(persona_id) or {}
            console.print(
                f"{info['displayName']} [dim]({info['state']})[/dim] "
                f"intensity={info['intensity']:.2f} - {info['description']}"
            )

    asyncio.run(run())


@mood_app.command("trigger")
def mood_trigger(
    trigger_id: str = typer.Argument(..., help="Trigger id, e.g. received_gift"),
    persona_id: str = typer.Option("arona", "--persona", "-p", help="Persona id"),
    multiplier: float = typer.Option(1.0, "--multiplier", "-x", help="Strength multiplier"),
) -> None:
    """Apply a mood trigger to a persona."""

    async def run() -> None:
        async with runtime_context() as runtime:
            require_persona(runtime, persona_id)
            outcome = runtime.registry.trigger_mood(persona_id, trigger_id, multiplier)
            if "error" in outcome:
                console.print(f"[red]{outcome['error']}[/red]")
                raise typer.Exit(1)
            console.print(
                f"[green]✓[/green] {persona_id}: {outcome['newState']} "
                f"(intensity {outcome['newIntensity']:.2f})"
            )

    asyncio.run(run())


@mood_app.command("triggers")
def mood_triggers() -> None:
    """List available mood triggers."""
    table = Table(title="Mood triggers")
    table.add_column("Trigger", style="cyan")
    table.add_column("Valence", justify="right")
    table.add_column("Suggested state", style="green")
    for trigger in MoodTrigger:
        table.add_row(
            trigger.value,
            f"{trigger.valence_delta:+.1f}",
            f"{trigger.suggested_state.display_name} ({trigger.suggested_state.value})",
        )
    console.print(table)
