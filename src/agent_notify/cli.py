"""
CLI — inspect configuration and try notifications from a terminal.

Commands:
    agent-notify config path     — Show which config file would be read
    agent-notify config show     — Print the merged configuration
    agent-notify render          — Render a template against sample variables
    agent-notify test            — Send a test notification through a backend
"""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.syntax import Syntax

from agent_notify import __version__

console = Console()

_EVENT_CHOICES = click.Choice([
    "session.idle",
    "subagent.complete",
    "session.error",
    "permission.asked",
    "question.asked",
])


@click.group()
@click.version_option(version=__version__)
@click.option("--verbose", "-v", is_flag=True, help="Log decisions to stderr")
def main(verbose: bool) -> None:
    """agent-notify — notifications for coding-agent sessions."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------


@main.group()
def config() -> None:
    """Inspect notification configuration."""
    pass


@config.command(name="path")
@click.option("--backend", "backend_key", default=None, help="Backend config key")
def config_path(backend_key):
    """Show the config file location and whether it exists."""
    from agent_notify.config import get_config_path

    path = get_config_path(backend_key)
    status = "[green]exists[/green]" if path.exists() else "[dim]not found, defaults apply[/dim]"
    console.print(f"{path} ({status})")


@config.command(name="show")
@click.option("--backend", "backend_key", default=None, help="Backend config key")
def config_show(backend_key):
    """Print the merged configuration as JSON."""
    from agent_notify.config import load_config, serialize_config
    from agent_notify.errors import ConfigError

    try:
        cfg = load_config(backend_key)
    except ConfigError as exc:
        console.print(f"[red]Error: {exc}[/red]")
        sys.exit(1)

    console.print(Syntax(serialize_config(cfg), "json"))


# ---------------------------------------------------------------------------
# Templates
# ---------------------------------------------------------------------------


@main.command()
@click.argument("template")
@click.option("--event", "event_name", type=_EVENT_CHOICES, default="session.idle")
@click.option("--project", default=None, help="Project name (default: current directory)")
@click.option("--session", "session_id", default="ses_example")
def render(template, event_name, project, session_id):
    """Render TEMPLATE with sample variables, without running it."""
    from agent_notify.events import EventMetadata, NotificationEvent, build_template_variables
    from agent_notify.templates import render_template

    metadata = EventMetadata(
        session_id=session_id,
        project_name=project or Path.cwd().name,
    )
    variables = build_template_variables(NotificationEvent(event_name), metadata)
    click.echo(render_template(template, variables))


# ---------------------------------------------------------------------------
# Test delivery
# ---------------------------------------------------------------------------


@main.command()
@click.option("--backend", "backend_key", default=None, help="Backend config key")
@click.option("--event", "event_name", type=_EVENT_CHOICES, default="session.idle")
def test(backend_key, event_name):
    """Send one test notification through the configured backend.

    The backend is chosen by the ``type`` field of the config's
    ``backend`` section (``console`` when absent).
    """
    from agent_notify.backends import create_backend
    from agent_notify.config import get_backend_config, load_config
    from agent_notify.errors import BackendError, ConfigError
    from agent_notify.events import EventMetadata, NotificationEvent
    from agent_notify.pipeline import NotificationPipeline

    try:
        cfg = load_config(backend_key)
    except ConfigError as exc:
        console.print(f"[red]Error: {exc}[/red]")
        sys.exit(1)

    options = get_backend_config(cfg, backend_key or "default")
    backend_name = options.get("type", "console")
    try:
        backend = create_backend(backend_name, options)
    except BackendError as exc:
        console.print(f"[red]Error: {exc}[/red]")
        sys.exit(1)

    async def _lookup(session_id: str) -> None:
        return None

    async def _test():
        pipeline = NotificationPipeline(
            backend, cfg, session_lookup=_lookup, directory=str(Path.cwd())
        )
        kind = NotificationEvent(event_name)
        context = await pipeline.build_context(
            kind, EventMetadata(session_id="test-notification", project_name=pipeline.project_name)
        )
        await backend.connect()
        try:
            await backend.send(context)
        finally:
            await backend.disconnect()

    try:
        asyncio.run(_test())
    except BackendError as exc:
        console.print(f"[red]Error: {exc}[/red]")
        sys.exit(1)
    console.print(f"[green]>[/green] Test notification sent via {backend_name}.")
