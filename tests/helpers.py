"""Shared fakes for the test suite."""

from agent_notify.backend import NotificationBackend
from agent_notify.events import NotificationContext
from agent_notify.templates import CommandResult


class MockBackend(NotificationBackend):
    """In-memory backend that records every context it is sent."""

    def __init__(self, name: str = "mock"):
        self.name = name
        self.sent: list[NotificationContext] = []

    async def send(self, context: NotificationContext) -> None:
        self.sent.append(context)


class FailingBackend(NotificationBackend):
    name = "failing"

    def __init__(self):
        self.attempts = 0

    async def send(self, context: NotificationContext) -> None:
        self.attempts += 1
        raise RuntimeError("Network failure")


class FakeExecutor:
    """Command executor that records commands and returns a canned result."""

    def __init__(self, result: CommandResult | None = None, error: Exception | None = None):
        self.result = result or CommandResult(exit_code=0, stdout="")
        self.error = error
        self.commands: list[str] = []

    async def run(self, command: str) -> CommandResult:
        self.commands.append(command)
        if self.error is not None:
            raise self.error
        return self.result


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def session_lookup(parent_id: str | None = None):
    """Async host session lookup returning a session with the given parent."""

    calls: list[str] = []

    async def lookup(session_id: str):
        calls.append(session_id)
        return {"id": session_id, "parentID": parent_id}

    lookup.calls = calls
    return lookup


def failing_lookup():
    calls: list[str] = []

    async def lookup(session_id: str):
        calls.append(session_id)
        raise ConnectionError("Connection refused")

    lookup.calls = calls
    return lookup
