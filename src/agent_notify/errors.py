"""Exceptions raised by agent-notify."""

from __future__ import annotations


class NotifyError(Exception):
    """Base exception for all agent-notify errors."""


class ConfigError(NotifyError):
    """Configuration could not be loaded."""


class ConfigNotFoundError(ConfigError):
    """Config file does not exist and the caller asked for it to be required."""


class ConfigParseError(ConfigError):
    """Config text is not valid JSON."""


class ConfigShapeError(ConfigError):
    """Config is valid JSON but not a JSON object."""


class CommandError(NotifyError):
    """A template command exited with a non-zero status."""

    def __init__(self, command: str, exit_code: int, stderr: str = "") -> None:
        self.command = command
        self.exit_code = exit_code
        self.stderr = stderr
        super().__init__(f"Command exited with status {exit_code}: {command}")


class BackendError(NotifyError):
    """A delivery backend failed or could not be created."""
