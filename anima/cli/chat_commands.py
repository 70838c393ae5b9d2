"""Direct persona chat command."""

from __future__ import annotations

import asyncio
import json

import typer

from anima import __logo__

from .core import app, console, require_persona, runtime_context


def _print_reply(name: str, result) -> None:
    if result.success:
        console.print(f"\n{__logo__} [bold]{name}[/bold]: {result.content}\n")
        return
    hint = " [dim](retryable)[/dim]" if result.retryable else ""
    console.print(f"\n[red]Error ({result.error_kind}):[/red] {result.error}{hint}\n")


@app.command()
def chat(
    persona_id: str = typer.Option("arona", "--persona", "-p", help="Persona id"),
    message: str = typer.Option(None, "--message", "-m", help="Message to send"),
    perception: str = typer.Option(None, "--perception", help="Perception snapshot as JSON"),
) -> None:
    """Talk to a persona (one-shot with -m, interactive otherwise)."""
    snapshot = None
    if perception:
        try:
            snapshot = json.loads(perception)
        except json.JSONDecodeError as e:
            console.print(f"[red]Invalid --perception JSON:[/red] {e}")
            raise typer.Exit(1)

    async def run() -> None:
        async with runtime_context() as runtime:
            agent = require_persona(runtime, persona_id)
            name = agent.persona.name

            if message:
                result = await runtime.registry.chat(persona_id, message, snapshot)
                _print_reply(name, result)
                if not result.success:
                    raise typer.Exit(1)
                return

            console.print(f"{__logo__} Chatting with {name} (Ctrl+C or /quit to exit)\n")
            while True:
                try:
                    user_input = await asyncio.to_thread(console.input, "[bold blue]老师:[/bold blue] ")
                except (KeyboardInterrupt, EOFError):
                    console.print("\nGoodbye!")
                    break
                text = user_input.strip()
                if not text:
                    continue
                if text in {"/quit", "/exit"}:
                    break
                runtime.registry.tick()
                _print_reply(name, await runtime.registry.chat(persona_id, text, snapshot))
                console.print(f"[dim]mood: {agent.mood.describe()}[/dim]")

    asyncio.run(run())
