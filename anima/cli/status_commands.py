"""Configuration status command."""

from __future__ import annotations

from .core import app, console


@app.command()
def status() -> None:
    """Show configuration and throttle settings."""
    from anima.config.loader import get_config_path, load_config

    config_path = get_config_path()
    config = load_config()

    console.print(f"Config: {config_path} {'[green]✓[/green]' if config_path.exists() else '[red]✗[/red]'}")
    console.print(f"Endpoint: {config.llm.chat_completions_url}")
    console.print(f"Model: {config.llm.model}")
    key_state = "[green]configured[/green]" if config.llm.api_key_configured else "[red]not set[/red]"
    console.print(f"API key: {key_state}")
    console.print(
        f"Throttle: {config.throttle.max_concurrent} concurrent, "
        f"{config.throttle.rate_limit_rpm}/min, wait {config.throttle.acquire_timeout_seconds:g}s"
    )
    console.print(f"Personas: {config.personas.path}")
    console.print(f"Memory: {config.memory.storage_path} (retention {config.memory.retention_days} days)")
