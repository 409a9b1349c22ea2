"""Manage per-draft auto-pick timers."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

import structlog

from draft.logic.timer import DeadlineTimer

if TYPE_CHECKING:
    from datetime import datetime

    from draft.logic.clock import Clock

logger = structlog.get_logger()

# Callback type: (draft_id, overall_pick) -> Awaitable[None]
ExpiryCallback = Callable[[str, int], Awaitable[None]]


class AutoPickScheduler:
    """Own one deadline timer per draft and report when a turn runs out.

    This class does NOT inspect draft events or submit picks itself; the
    caller (DraftService) decides when to arm and cancel, and handles the
    expiry callback.
    """

    def __init__(self, on_expired: ExpiryCallback, clock: Clock, grace_seconds: float = 0.0) -> None:
        self._timers: dict[str, DeadlineTimer] = {}
        self._on_expired = on_expired
        self._clock = clock
        self._grace_seconds = grace_seconds

    @property
    def active_count(self) -> int:
        return sum(1 for timer in self._timers.values() if timer.is_running)

    def is_armed(self, draft_id: str) -> bool:
        timer = self._timers.get(draft_id)
        return timer is not None and timer.is_running

    def arm(self, draft_id: str, overall_pick: int, deadline: datetime) -> None:
        """Fire the expiry callback for ``overall_pick`` once ``deadline`` (plus grace) passes."""
        delay = (deadline - self._clock.now()).total_seconds() + self._grace_seconds
        timer = self._timers.setdefault(draft_id, DeadlineTimer())
        timer.start(delay, lambda did=draft_id, n=overall_pick: self._on_expired(did, n))
        logger.debug("auto-pick timer armed", draft_id=draft_id, overall_pick=overall_pick, delay=round(delay, 3))

    def cancel(self, draft_id: str) -> None:
        """Cancel a draft's pending timer, keeping its slot for the next arm()."""
        timer = self._timers.get(draft_id)
        if timer is not None:
            timer.cancel()

    def cleanup_draft(self, draft_id: str) -> None:
        """Cancel and forget a draft's timer."""
        timer = self._timers.pop(draft_id, None)
        if timer is not None:
            timer.cancel()

    def shutdown(self) -> None:
        for timer in self._timers.values():
            timer.cancel()
        self._timers.clear()
