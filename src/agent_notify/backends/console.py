"""
Console backend — Rich terminal output for notifications.

Useful as a default sink and for checking templates with `agent-notify test`.
"""

from __future__ import annotations

from rich.console import Console
from rich.panel import Panel

from agent_notify.backend import NotificationBackend
from agent_notify.events import NotificationContext, NotificationEvent

_EVENT_STYLE = {
    NotificationEvent.SESSION_IDLE: "green",
    NotificationEvent.SUBAGENT_COMPLETE: "cyan",
    NotificationEvent.SESSION_ERROR: "red",
    NotificationEvent.PERMISSION_ASKED: "yellow",
    NotificationEvent.QUESTION_ASKED: "magenta",
}

_EVENT_EMOJI = {
    NotificationEvent.SESSION_IDLE: "\u2705",          # check
    NotificationEvent.SUBAGENT_COMPLETE: "\U0001f916",  # robot
    NotificationEvent.SESSION_ERROR: "\U0001f6a8",      # rotating light
    NotificationEvent.PERMISSION_ASKED: "\U0001f510",   # lock with key
    NotificationEvent.QUESTION_ASKED: "\u2753",        # question mark
}


class ConsoleBackend(NotificationBackend):
    """Rich terminal output backend."""

    name: str = "console"

    def __init__(self, console: Console | None = None) -> None:
        self._console = console or Console()

    async def send(self, context: NotificationContext) -> None:
        emoji = _EVENT_EMOJI.get(context.event, "\u2139\ufe0f")
        style = _EVENT_STYLE.get(context.event, "blue")
        project = context.metadata.project_name

        if context.event == NotificationEvent.SESSION_ERROR:
            body = context.message
            if context.metadata.error:
                body += f"\n[dim]{context.metadata.error}[/dim]"
            self._console.print(
                Panel(body, title=f"{emoji} {context.title}", border_style=style)
            )
            return

        heading = f"{emoji} {context.title}"
        if project:
            heading += f" [dim]({project})[/dim]"
        self._console.print(f"\n[bold {style}]{heading}[/bold {style}]")
        if context.message:
            self._console.print(f"  {context.message}")
