"""Shared CLI application context and setup helpers."""

from __future__ import annotations

import sys
from contextlib import asynccontextmanager
from typing import AsyncIterator

import typer
from dotenv import load_dotenv
from loguru import logger
from rich.console import Console

from anima import __logo__, __version__
from anima.utils.helpers import get_data_path

app = typer.Typer(
    name="anima",
    help=f"{__logo__} anima - stateful conversational personas",
    no_args_is_help=True,
)

console = Console()


def version_callback(value: bool) -> None:
    if value:
        console.print(f"{__logo__} anima v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(None, "--version", "-v", callback=version_callback, is_eager=True),
    verbose: bool = typer.Option(False, "--verbose", help="Log debug output to stderr"),
) -> None:
    """anima - stateful conversational personas."""
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "WARNING")
    load_env_file()


def load_env_file() -> bool:
    """Load ``<data dir>/.env``; variables already set in the environment win."""
    return load_dotenv(get_data_path() / ".env", override=False)


@app.command()
def onboard() -> None:
    """Initialize anima configuration and persona templates."""
    from anima.config.loader import get_config_path, save_config
    from anima.config.schema import Config
    from anima.persona.catalog import PersonaCatalog

    config_path = get_config_path()

    if config_path.exists():
        console.print(f"[yellow]Config already exists at {config_path}[/yellow]")
        if not typer.confirm("Overwrite?"):
            raise typer.Exit()

    config = Config()
    save_config(config)
    console.print(f"[green]✓[/green] Created config at {config_path}")

    catalog = PersonaCatalog(config.personas.path, seed_defaults=True)
    count = catalog.load()
    console.print(f"[green]✓[/green] {count} persona(s) in {catalog.directory}")
    console.print(f"[green]✓[/green] Memory directory {config.memory.storage_path}")

    console.print(f"\n{__logo__} anima is ready!")
    console.print("\nNext steps:")
    console.print(f"  1. Add your API key to [cyan]{config_path}[/cyan] (llm.apiKey)")
    console.print('  2. Chat: [cyan]anima chat -p arona -m "你好"[/cyan]')


def make_runtime():
    """Load config and compose a runtime for one command."""
    from anima.app.bootstrap import build_runtime
    from anima.config.loader import load_config

    return build_runtime(load_config())


@asynccontextmanager
async def runtime_context() -> AsyncIterator:
    runtime = make_runtime()
    try:
        yield runtime
    finally:
        await runtime.aclose()


def require_persona(runtime, persona_id: str):
    """Resolve an agent or exit with an error listing known personas."""
    agent = runtime.registry.get(persona_id)
    if agent is None:
        known = ", ".join(sorted(runtime.personas.ids())) or "none"
        console.print(f"[red]Unknown persona: {persona_id}[/red] [dim](known: {known})[/dim]")
        raise typer.Exit(1)
    return agent
