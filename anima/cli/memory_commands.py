"""Short-term memory inspection commands."""

from __future__ import annotations

import typer
from rich.table import Table

from .core import app, console, make_runtime

memory_app = typer.Typer(help="Inspect persona short-term memory")
app.add_typer(memory_app, name="memory")


def _store(persona_id: str):
    from anima.memory.short_term import ShortTermMemory

    runtime = make_runtime()
    persona = runtime.personas.get(persona_id)
    if persona is None:
        console.print(f"[red]Unknown persona: {persona_id}[/red]")
        raise typer.Exit(1)
    cfg = runtime.config.memory
    return ShortTermMemory(
        persona.key,
        cfg.storage_path,
        retention_days=cfg.retention_days,
        max_entries_per_day=cfg.max_entries_per_day,
    )


@memory_app.command("show")
def memory_show(
    persona_id: str = typer.Option("arona", "--persona", "-p", help="Persona id"),
    limit: int = typer.Option(20, "--limit", "-l", help="Maximum entries to render"),
) -> None:
    """Render the recent short-term memory summary."""
    store = _store(persona_id)
    summary = store.build_summary(limit)
    if not summary:
        console.print("[dim]No recent memories.[/dim]")
        return
    console.print(summary)
    console.print(f"\n[dim]{store.total_entries} entries over {store.day_count} day(s)[/dim]")


@memory_app.command("search")
def memory_search(
    keyword: str = typer.Argument(..., help="Substring to look for"),
    persona_id: str = typer.Option("arona", "--persona", "-p", help="Persona id"),
    limit: int = typer.Option(10, "--limit", "-l", help="Maximum number of results"),
) -> None:
    """Search short-term memory by keyword."""
    hits = _store(persona_id).search(keyword, limit)
    table = Table(title=f"Memory matches for '{keyword}' ({len(hits)})")
    table.add_column("When", style="dim")
    table.add_column("Type", style="magenta")
    table.add_column("Importance", justify="right")
    table.add_column("Content", style="green")
    for entry in hits:
        table.add_row(
            entry.timestamp.astimezone().strftime("%Y-%m-%d %H:%M"),
            entry.type,
            f"{entry.importance:.2f}",
            entry.content,
        )
    console.print(table)
