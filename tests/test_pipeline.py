"""Tests for the notification decision pipeline."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from agent_notify.config import NotificationConfig
from agent_notify.events import NotificationEvent
from agent_notify.pipeline import NotificationPipeline, project_name_from
from agent_notify.rate_limiter import RateLimiter
from agent_notify.templates import CommandResult

from helpers import FailingBackend, FakeExecutor, failing_lookup, session_lookup

PROJECT_DIR = "/home/user/my-project"


def _config(**data) -> NotificationConfig:
    return NotificationConfig.model_validate(data)


def _pipeline(backend, config=None, *, lookup=None, executor=None, rate_limiter=None):
    return NotificationPipeline(
        backend,
        config or _config(),
        session_lookup=lookup or session_lookup(),
        directory=PROJECT_DIR,
        executor=executor or FakeExecutor(),
        rate_limiter=rate_limiter,
    )


def _idle(session_id="root-session"):
    return {"type": "session.idle", "properties": {"sessionID": session_id}}


def _error(session_id="root-session", message="something broke"):
    return {
        "type": "session.error",
        "properties": {
            "sessionID": session_id,
            "error": {"name": "UnknownError", "data": {"message": message}},
        },
    }


def _permission(pattern=("/tmp/*.txt",), event_type="permission.asked"):
    return {
        "type": event_type,
        "properties": {
            "sessionID": "sess-perm",
            "type": "file.write",
            "pattern": list(pattern),
        },
    }


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------


class TestConstruction:
    def test_project_name(self, backend):
        assert _pipeline(backend).project_name == "my-project"

    @pytest.mark.parametrize(
        "directory, expected",
        [("/home/user/my-project/", "my-project"), ("", ""), ("relative/dir", "dir")],
    )
    def test_project_name_from(self, directory, expected):
        assert project_name_from(directory) == expected

    def test_no_cooldown_no_limiter(self, backend):
        assert _pipeline(backend).rate_limiter is None

    def test_limiter_built_from_cooldown(self, backend):
        pipeline = _pipeline(backend, _config(cooldown={"duration": "PT30S", "edge": "trailing"}))
        assert pipeline.rate_limiter.duration_ms == 30_000
        assert pipeline.rate_limiter.edge == "trailing"


# ---------------------------------------------------------------------------
# Basic delivery
# ---------------------------------------------------------------------------


class TestDelivery:
    @pytest.mark.asyncio
    async def test_idle_uses_defaults(self, backend):
        await _pipeline(backend).handle_event(_idle())

        assert len(backend.sent) == 1
        context = backend.sent[0]
        assert context.event is NotificationEvent.SESSION_IDLE
        assert context.title == "Agent Idle"
        assert context.message == "The agent has finished and is waiting for input."
        assert context.metadata.session_id == "root-session"
        assert context.metadata.project_name == "my-project"
        assert context.metadata.is_subagent is False

    @pytest.mark.asyncio
    async def test_error_carries_message(self, backend):
        await _pipeline(backend).handle_event(_error())

        context = backend.sent[0]
        assert context.event is NotificationEvent.SESSION_ERROR
        assert context.title == "Agent Error"
        assert context.metadata.error == "something broke"

    @pytest.mark.asyncio
    async def test_permission(self, backend):
        await _pipeline(backend).handle_event(_permission())

        context = backend.sent[0]
        assert context.event is NotificationEvent.PERMISSION_ASKED
        assert context.metadata.permission_type == "file.write"
        assert context.metadata.permission_patterns == ["/tmp/*.txt"]

    @pytest.mark.asyncio
    async def test_permission_updated_alias(self, backend):
        await _pipeline(backend).handle_event(_permission(event_type="permission.updated"))
        assert backend.sent[0].event is NotificationEvent.PERMISSION_ASKED

    @pytest.mark.asyncio
    async def test_mixed_type_patterns_still_notify(self, backend):
        await _pipeline(backend).handle_event(_permission(pattern=("a", 1)))

        assert len(backend.sent) == 1
        assert backend.sent[0].metadata.permission_patterns is None

    @pytest.mark.asyncio
    async def test_question_tool(self, backend):
        pipeline = _pipeline(backend)
        await pipeline.handle_tool_before({"tool": "question", "sessionID": "q-1"})

        context = backend.sent[0]
        assert context.event is NotificationEvent.QUESTION_ASKED
        assert context.title == "Question Asked"
        assert context.metadata.session_id == "q-1"

    @pytest.mark.asyncio
    async def test_other_tools_ignored(self, backend):
        await _pipeline(backend).handle_tool_before({"tool": "bash", "sessionID": "s"})
        assert backend.sent == []

    @pytest.mark.asyncio
    async def test_empty_session_id_skips_lookup(self, backend):
        lookup = AsyncMock(return_value={"parentID": "p"})
        await _pipeline(backend, lookup=lookup).handle_event(
            {"type": "session.idle", "properties": {}}
        )

        lookup.assert_not_awaited()
        assert len(backend.sent) == 1
        assert backend.sent[0].metadata.session_id == ""


# ---------------------------------------------------------------------------
# Dropping
# ---------------------------------------------------------------------------


class TestDropping:
    @pytest.mark.asyncio
    async def test_globally_disabled(self, backend):
        lookup = AsyncMock()
        pipeline = _pipeline(backend, _config(enabled=False), lookup=lookup)

        await pipeline.handle_event(_idle())
        await pipeline.handle_event(_error())
        await pipeline.handle_tool_before({"tool": "question"})

        assert backend.sent == []
        lookup.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_event_touches_nothing(self, backend):
        lookup = AsyncMock()
        limiter = MagicMock(spec=RateLimiter)
        pipeline = _pipeline(backend, lookup=lookup, rate_limiter=limiter)

        await pipeline.handle_event({"type": "message.updated", "properties": {"sessionID": "s"}})
        await pipeline.handle_event("not an event")

        assert backend.sent == []
        lookup.assert_not_awaited()
        limiter.should_allow.assert_not_called()
        limiter.debounce.assert_not_called()

    @pytest.mark.asyncio
    async def test_disabled_kind_checked_before_lookup(self, backend):
        lookup = AsyncMock(return_value={"parentID": None})
        config = _config(events={"session.idle": {"enabled": False}})
        pipeline = _pipeline(backend, config, lookup=lookup)

        await pipeline.handle_event(_idle())

        assert backend.sent == []
        lookup.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_disabled_error_kind_skips_lookup(self, backend):
        lookup = AsyncMock()
        config = _config(events={"session.error": {"enabled": False}})
        await _pipeline(backend, config, lookup=lookup).handle_event(_error())

        assert backend.sent == []
        lookup.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_disabled_kind_leaves_others(self, backend):
        config = _config(events={"permission.asked": {"enabled": False}})
        pipeline = _pipeline(backend, config)

        await pipeline.handle_event(_permission())
        await pipeline.handle_event(_idle())

        assert [c.event for c in backend.sent] == [NotificationEvent.SESSION_IDLE]

    @pytest.mark.asyncio
    async def test_disabled_question(self, backend):
        config = _config(events={"question.asked": {"enabled": False}})
        await _pipeline(backend, config).handle_tool_before({"tool": "question"})
        assert backend.sent == []


# ---------------------------------------------------------------------------
# Sub-agent handling
# ---------------------------------------------------------------------------


class TestSubagents:
    @pytest.mark.asyncio
    async def test_child_idle_suppressed_by_default(self, backend):
        lookup = session_lookup(parent_id="parent-1")
        await _pipeline(backend, lookup=lookup).handle_event(_idle("child-1"))

        assert backend.sent == []
        assert lookup.calls == ["child-1"]

    @pytest.mark.asyncio
    async def test_child_idle_in_always_mode(self, backend):
        lookup = AsyncMock(return_value={"parentID": "parent-1"})
        config = _config(subagentNotifications="always")
        await _pipeline(backend, config, lookup=lookup).handle_event(_idle("child-1"))

        assert backend.sent[0].event is NotificationEvent.SESSION_IDLE
        lookup.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_child_idle_in_separate_mode(self, backend):
        config = _config(subagentNotifications="separate")
        pipeline = _pipeline(backend, config, lookup=session_lookup(parent_id="parent-1"))

        await pipeline.handle_event(_idle("child-1"))

        context = backend.sent[0]
        assert context.event is NotificationEvent.SUBAGENT_COMPLETE
        assert context.title == "Sub-agent Complete"
        assert context.metadata.is_subagent is True

    @pytest.mark.asyncio
    async def test_separate_mode_respects_subagent_switch(self, backend):
        config = _config(
            subagentNotifications="separate",
            events={"subagent.complete": {"enabled": False}},
        )
        pipeline = _pipeline(backend, config, lookup=session_lookup(parent_id="parent-1"))

        await pipeline.handle_event(_idle("child-1"))
        assert backend.sent == []

    @pytest.mark.asyncio
    async def test_separate_mode_child_with_idle_disabled(self, backend):
        config = _config(
            subagentNotifications="separate",
            events={"session.idle": {"enabled": False}},
        )
        child = _pipeline(backend, config, lookup=session_lookup(parent_id="parent-1"))
        root = _pipeline(backend, config, lookup=session_lookup())

        await child.handle_event(_idle("child-1"))
        await root.handle_event(_idle("root-1"))

        assert [c.event for c in backend.sent] == [NotificationEvent.SUBAGENT_COMPLETE]

    @pytest.mark.asyncio
    async def test_lookup_failure_treated_as_root(self, backend):
        await _pipeline(backend, lookup=failing_lookup()).handle_event(_idle())
        assert backend.sent[0].event is NotificationEvent.SESSION_IDLE

    @pytest.mark.asyncio
    async def test_child_error_suppressed_in_never_mode(self, backend):
        lookup = session_lookup(parent_id="parent-1")
        await _pipeline(backend, lookup=lookup).handle_event(_error("child-1"))
        assert backend.sent == []

    @pytest.mark.asyncio
    async def test_child_error_in_separate_mode(self, backend):
        config = _config(subagentNotifications="separate")
        pipeline = _pipeline(backend, config, lookup=session_lookup(parent_id="parent-1"))

        await pipeline.handle_event(_error("child-1"))

        context = backend.sent[0]
        assert context.event is NotificationEvent.SESSION_ERROR
        assert context.metadata.is_subagent is True

    @pytest.mark.asyncio
    async def test_permission_never_looked_up(self, backend):
        lookup = AsyncMock(return_value={"parentID": "parent-1"})
        await _pipeline(backend, lookup=lookup).handle_event(_permission())

        assert len(backend.sent) == 1
        lookup.assert_not_awaited()


# ---------------------------------------------------------------------------
# Templates
# ---------------------------------------------------------------------------


class TestTemplates:
    @pytest.mark.asyncio
    async def test_title_from_command(self, backend):
        executor = FakeExecutor(CommandResult(exit_code=0, stdout="Done in my-project\n"))
        config = _config(templates={"session.idle": {"titleCmd": "echo Done in {project}"}})

        await _pipeline(backend, config, executor=executor).handle_event(_idle())

        context = backend.sent[0]
        assert context.title == "Done in my-project"
        assert context.message == "The agent has finished and is waiting for input."
        assert executor.commands == ["echo Done in my-project"]

    @pytest.mark.asyncio
    async def test_failing_command_falls_back(self, backend):
        executor = FakeExecutor(CommandResult(exit_code=1, stdout=""))
        config = _config(templates={"session.idle": {"titleCmd": "exit 1"}})

        await _pipeline(backend, config, executor=executor).handle_event(_idle())

        assert backend.sent[0].title == "Agent Idle"
        assert executor.commands == ["exit 1"]

    @pytest.mark.asyncio
    async def test_error_variable_in_message(self, backend):
        executor = FakeExecutor(CommandResult(exit_code=0, stdout="msg"))
        config = _config(templates={"session.error": {"messageCmd": "echo {error}"}})

        await _pipeline(backend, config, executor=executor).handle_event(_error(message="oops"))

        assert executor.commands == ["echo oops"]
        assert backend.sent[0].message == "msg"
        assert backend.sent[0].title == "Agent Error"

    @pytest.mark.asyncio
    async def test_templates_for_other_kinds_not_run(self, backend):
        executor = FakeExecutor(CommandResult(exit_code=0, stdout="x"))
        config = _config(templates={"session.error": {"titleCmd": "echo err"}})

        await _pipeline(backend, config, executor=executor).handle_event(_idle())

        assert executor.commands == []


# ---------------------------------------------------------------------------
# Rate limiting
# ---------------------------------------------------------------------------


class TestRateLimiting:
    @pytest.mark.asyncio
    async def test_leading_cooldown(self, backend, clock):
        config = _config(cooldown={"duration": "PT30S", "edge": "leading"})
        limiter = RateLimiter.from_config(config.cooldown, clock=clock)
        pipeline = _pipeline(backend, config, rate_limiter=limiter)

        await pipeline.handle_event(_idle())
        clock.advance(0.001)
        await pipeline.handle_event(_idle())
        assert len(backend.sent) == 1

        clock.advance(31)
        await pipeline.handle_event(_idle())
        assert len(backend.sent) == 2

    @pytest.mark.asyncio
    async def test_cooldown_is_per_kind(self, backend, clock):
        limiter = RateLimiter(30_000, "leading", clock=clock)
        pipeline = _pipeline(backend, rate_limiter=limiter)

        await pipeline.handle_event(_idle())
        await pipeline.handle_event(_error())
        await pipeline.handle_event(_idle())

        assert [c.event for c in backend.sent] == [
            NotificationEvent.SESSION_IDLE,
            NotificationEvent.SESSION_ERROR,
        ]

    @pytest.mark.asyncio
    async def test_zero_duration_never_limits(self, backend):
        pipeline = _pipeline(backend, _config(cooldown={"duration": "PT0S", "edge": "trailing"}))

        for _ in range(3):
            await pipeline.handle_event(_idle())

        assert len(backend.sent) == 3

    @pytest.mark.asyncio
    async def test_trailing_delivers_last_after_quiet_period(self, backend):
        pipeline = _pipeline(backend, rate_limiter=RateLimiter(20, "trailing"))

        for n in range(3):
            await pipeline.handle_event(_idle(f"sess-{n}"))
        assert backend.sent == []

        await asyncio.sleep(0.1)
        assert len(backend.sent) == 1
        assert backend.sent[0].metadata.session_id == "sess-2"
        await pipeline.aclose()

    @pytest.mark.asyncio
    async def test_aclose_drops_pending(self, backend):
        pipeline = _pipeline(backend, rate_limiter=RateLimiter(50, "trailing"))

        await pipeline.handle_event(_idle())
        await pipeline.aclose()
        await asyncio.sleep(0.1)

        assert backend.sent == []

    @pytest.mark.asyncio
    async def test_dropped_kind_does_not_consume_cooldown(self, backend, clock):
        limiter = RateLimiter(30_000, "leading", clock=clock)
        pipeline = _pipeline(
            backend, lookup=session_lookup(parent_id="parent-1"), rate_limiter=limiter
        )

        await pipeline.handle_event(_idle("child-1"))
        assert limiter.should_allow(NotificationEvent.SESSION_IDLE.value) is True


# ---------------------------------------------------------------------------
# Backend failures
# ---------------------------------------------------------------------------


class TestBackendFailure:
    @pytest.mark.asyncio
    async def test_failure_does_not_propagate(self):
        failing = FailingBackend()
        pipeline = _pipeline(failing)

        await pipeline.handle_event(_idle())
        await pipeline.handle_event(_error())

        assert failing.attempts == 2

    @pytest.mark.asyncio
    async def test_failure_is_logged(self, caplog):
        await _pipeline(FailingBackend()).handle_event(_idle())
        assert "Failed to send session.idle notification via failing" in caplog.text

    @pytest.mark.asyncio
    async def test_one_send_per_event(self, backend):
        pipeline = _pipeline(backend)
        backend.send = AsyncMock()

        await pipeline.handle_event(_idle())
        backend.send.assert_awaited_once()
