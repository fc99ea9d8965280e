"""
Template resolution — turn user shell commands into notification text.

Two layers: ``exec_command``/``exec_template`` raise on failure, and
``resolve_field`` sits on top of them through ``try_exec_template`` so a
broken user command degrades to the built-in text instead of aborting
the notification.
"""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Optional, Protocol, Union

from agent_notify.errors import CommandError
from agent_notify.events import NotificationContext, build_template_variables

logger = logging.getLogger(__name__)

TEMPLATE_VARIABLES = (
    "event",
    "time",
    "project",
    "session_id",
    "error",
    "permission_type",
    "permission_patterns",
)

_PLACEHOLDER = re.compile(r"\{([A-Za-z_][A-Za-z0-9_]*)\}")

TemplateContext = Union[NotificationContext, Mapping[str, str]]


@dataclass(frozen=True)
class CommandResult:
    exit_code: int
    stdout: str
    stderr: str = ""


class CommandExecutor(Protocol):
    """Host capability for running a shell command."""

    async def run(self, command: str) -> CommandResult:
        ...


class ShellExecutor:
    """Run commands through the system shell."""

    def __init__(self, cwd: Optional[str] = None) -> None:
        self.cwd = cwd

    async def run(self, command: str) -> CommandResult:
        proc = await asyncio.create_subprocess_shell(
            command,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=self.cwd,
        )
        stdout, stderr = await proc.communicate()
        return CommandResult(
            exit_code=proc.returncode or 0,
            stdout=stdout.decode(errors="replace"),
            stderr=stderr.decode(errors="replace"),
        )


def _variables(context: TemplateContext) -> Mapping[str, str]:
    if isinstance(context, NotificationContext):
        return build_template_variables(context.event, context.metadata)
    return context


def render_template(template: str, context: TemplateContext) -> str:
    """Replace ``{name}`` placeholders; unknown names become empty strings."""
    variables = _variables(context)

    def replace(match: re.Match[str]) -> str:
        name = match.group(1)
        if name not in TEMPLATE_VARIABLES:
            return ""
        value = variables.get(name, "")
        return value if isinstance(value, str) else ""

    return _PLACEHOLDER.sub(replace, template)


async def exec_command(executor: CommandExecutor, command: str) -> str:
    """Run ``command`` and return trimmed stdout.

    Raises:
        CommandError: If the command exits non-zero.
    """
    result = await executor.run(command)
    if result.exit_code != 0:
        raise CommandError(command, result.exit_code, result.stderr)
    return result.stdout.strip()


async def exec_template(
    executor: CommandExecutor, template: str, context: TemplateContext
) -> str:
    return await exec_command(executor, render_template(template, context))


async def try_exec_template(
    executor: CommandExecutor, template: str, context: TemplateContext
) -> str | None:
    """Like ``exec_template`` but returns None on failure or blank output."""
    try:
        output = await exec_template(executor, template, context)
    except Exception:
        logger.debug("Template command failed: %s", template, exc_info=True)
        return None
    return output or None


async def resolve_field(
    executor: CommandExecutor,
    template: str | None,
    variables: TemplateContext,
    fallback: str,
) -> str:
    """Template output, or ``fallback`` when there is no template or it fails."""
    if template is None:
        return fallback
    output = await try_exec_template(executor, template, variables)
    return fallback if output is None else output
