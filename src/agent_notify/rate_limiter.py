"""
RateLimiter — per-event-kind cooldown with throttle or debounce semantics.

One limiter is created per pipeline and owns all timer state. Each key
(an event kind) has independent state; firing one key never affects
another. Time comes from an injectable monotonic clock so the limiter
can be driven deterministically in tests.
"""

from __future__ import annotations

import asyncio
import logging
import re
import time
from datetime import timedelta
from typing import TYPE_CHECKING, Awaitable, Callable, Literal

from pydantic import TypeAdapter, ValidationError

if TYPE_CHECKING:
    from agent_notify.config import CooldownConfig

logger = logging.getLogger(__name__)

Edge = Literal["leading", "trailing"]

_DURATION_ADAPTER = TypeAdapter(timedelta)
_ISO_DURATION = re.compile(r"^-?P")


def parse_iso8601_duration(text: str) -> int:
    """Parse an ISO-8601 duration such as ``PT30S`` or ``PT5M`` into milliseconds."""
    if not isinstance(text, str):
        raise ValueError(f"Duration must be a string, got {type(text).__name__}")
    if not _ISO_DURATION.match(text):
        raise ValueError(f"Invalid ISO-8601 duration: {text!r}")
    try:
        delta = _DURATION_ADAPTER.validate_python(text)
    except ValidationError as exc:
        raise ValueError(f"Invalid ISO-8601 duration: {text!r}") from exc
    if delta < timedelta(0):
        raise ValueError(f"Duration must not be negative: {text!r}")
    return delta // timedelta(milliseconds=1)


class RateLimiter:
    """Decides per key whether a new occurrence may proceed now.

    ``leading`` edge is a throttle: the first call in a window passes and
    later calls are refused until the window elapses.

    ``trailing`` edge is a debounce. ``should_allow`` reports whether the
    previous debounced firing has resolved (a prior call exists and a full
    quiet period has passed since it), so callers relying on it alone must
    call again to observe the transition. ``debounce`` is the push variant:
    it schedules the firing itself once the quiet period elapses.
    """

    def __init__(
        self,
        duration_ms: int,
        edge: Edge = "leading",
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if duration_ms < 0:
            raise ValueError("duration_ms must not be negative")
        if edge not in ("leading", "trailing"):
            raise ValueError(f"Unknown edge: {edge!r}")
        self.duration_ms = duration_ms
        self.edge: Edge = edge
        self._clock = clock
        self._last: dict[str, float] = {}  # leading: last firing, trailing: last call
        self._pending: dict[str, asyncio.Task[None]] = {}

    @classmethod
    def from_config(
        cls, cooldown: CooldownConfig, *, clock: Callable[[], float] = time.monotonic
    ) -> RateLimiter:
        return cls(cooldown.duration_ms, cooldown.edge, clock=clock)

    @property
    def disabled(self) -> bool:
        return self.duration_ms == 0

    @property
    def window(self) -> float:
        """Cooldown window in seconds."""
        return self.duration_ms / 1000

    def should_allow(self, key: str) -> bool:
        if self.disabled:
            return True

        now = self._clock()
        if self.edge == "leading":
            last = self._last.get(key)
            if last is not None and now - last < self.window:
                return False
            self._last[key] = now
            return True

        previous = self._last.get(key)
        self._last[key] = now
        return previous is not None and now - previous >= self.window

    # ------------------------------------------------------------------
    # Trailing-edge firing
    # ------------------------------------------------------------------

    def debounce(self, key: str, fire: Callable[[], Awaitable[None]]) -> None:
        """Schedule ``fire`` after a quiet period, replacing any pending firing for ``key``.

        Must be called from within a running event loop.
        """
        existing = self._pending.pop(key, None)
        if existing and not existing.done():
            existing.cancel()
        self._pending[key] = asyncio.create_task(self._fire_later(key, fire))

    def pending(self, key: str) -> bool:
        task = self._pending.get(key)
        return task is not None and not task.done()

    async def _fire_later(self, key: str, fire: Callable[[], Awaitable[None]]) -> None:
        await asyncio.sleep(self.window)

        if self._pending.get(key) is asyncio.current_task():
            del self._pending[key]
        try:
            await fire()
        except Exception:
            logger.exception("Debounced firing failed for %s", key)

    async def aclose(self) -> None:
        """Cancel every pending trailing-edge firing."""
        tasks = list(self._pending.values())
        self._pending.clear()
        for task in tasks:
            if not task.done():
                task.cancel()
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass


def create_rate_limiter(duration: str, edge: Edge = "leading") -> RateLimiter:
    """Build a limiter from an ISO-8601 duration string."""
    return RateLimiter(parse_iso8601_duration(duration), edge)
