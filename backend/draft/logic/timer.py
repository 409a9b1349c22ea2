"""
Pick timer: deadline arithmetic plus a cancellable asyncio trigger.

The draft record stores only the deadline of the current turn. Remaining
time is always recomputed from that deadline and an injected ``now``, so any
observer can tell when a turn expired without holding timer state. On expiry
any observer may submit the auto-pick built here: apply() accepts only the
first one for a given pick number and rejects the rest as stale turns.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import structlog

from draft.logic.state import PickRequest

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable
    from datetime import datetime

    from draft.logic.state import Draft

logger = structlog.get_logger()


def remaining(draft: Draft, now: datetime) -> float | None:
    """Seconds left on the current pick, or None when no timer applies."""
    if not draft.settings.has_timer or not draft.is_active or draft.timer_deadline is None:
        return None
    return max(0.0, (draft.timer_deadline - now).total_seconds())


def is_expired(draft: Draft, now: datetime) -> bool:
    left = remaining(draft, now)
    return left is not None and left <= 0


def build_auto_pick(
    draft: Draft,
    selection_id: str,
    *,
    category_id: str | None = None,
    selection_title: str = "",
) -> PickRequest:
    """Build the auto-pick request for the turn that is currently on the clock."""
    picker_id = draft.current_picker_id
    if picker_id is None:
        raise ValueError(f"draft {draft.id} has no current picker")
    return PickRequest(
        requester_id=picker_id,
        selection_id=selection_id,
        expected_overall_pick=draft.current_overall_pick,
        is_auto_pick=True,
        category_id=category_id,
        selection_title=selection_title,
    )


class DeadlineTimer:
    """
    Fire a callback once after a delay.

    Starting a new countdown cancels the previous one, so at most one
    callback is pending per timer.
    """

    def __init__(self) -> None:
        self._active_task: asyncio.Task[None] | None = None

    @property
    def is_running(self) -> bool:
        return self._active_task is not None and not self._active_task.done()

    def start(self, seconds: float, on_timeout: Callable[[], Awaitable[None]]) -> None:
        self.cancel()
        self._active_task = asyncio.create_task(self._run_timer(max(0.0, seconds), on_timeout))

    def cancel(self) -> None:
        task = self._active_task
        # a timeout callback may re-arm its own timer; it must not cancel itself mid-callback
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
        self._active_task = None

    async def _run_timer(self, seconds: float, on_timeout: Callable[[], Awaitable[None]]) -> None:
        try:
            await asyncio.sleep(seconds)
            await on_timeout()
        except asyncio.CancelledError:
            pass
        except (RuntimeError, OSError, ConnectionError, ValueError):  # fmt: skip
            logger.exception("pick timer callback failed")
