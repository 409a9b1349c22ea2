"""Fan-out of committed draft snapshots to live subscribers."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from collections.abc import Callable

    from draft.logic.state import Draft

logger = structlog.get_logger()

_CLOSED = None


class DraftSubscription:
    """
    Async iterator over committed snapshots of one draft.

    Snapshots arrive in commit order. A consumer that falls behind still sees
    every snapshot, it just sees them later. Call close() to stop receiving;
    iteration then ends once buffered snapshots are drained.
    """

    def __init__(self, draft_id: str, on_close: Callable[[DraftSubscription], None]) -> None:
        self.draft_id = draft_id
        self._on_close = on_close
        self._queue: asyncio.Queue[Draft | None] = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def deliver(self, draft: Draft) -> None:
        if not self._closed:
            self._queue.put_nowait(draft)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(_CLOSED)
        self._on_close(self)

    async def next(self, timeout: float | None = None) -> Draft | None:
        """Wait for the next snapshot. Return None once closed or when ``timeout`` elapses."""
        try:
            draft = await asyncio.wait_for(self._queue.get(), timeout)
        except TimeoutError:
            return None
        if draft is _CLOSED:
            # leave the end marker for later next() calls and async iteration
            self._queue.put_nowait(_CLOSED)
        return draft

    def __aiter__(self) -> DraftSubscription:
        return self

    async def __anext__(self) -> Draft:
        draft = await self._queue.get()
        if draft is _CLOSED:
            self._queue.put_nowait(_CLOSED)
            raise StopAsyncIteration
        return draft

    def __enter__(self) -> DraftSubscription:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class SubscriptionHub:
    """Tracks open subscriptions per draft id and publishes snapshots to them."""

    def __init__(self) -> None:
        self._subscribers: dict[str, list[DraftSubscription]] = {}

    def subscribe(self, draft_id: str) -> DraftSubscription:
        subscription = DraftSubscription(draft_id, self._remove)
        self._subscribers.setdefault(draft_id, []).append(subscription)
        logger.debug("draft subscription opened", draft_id=draft_id)
        return subscription

    def subscriber_count(self, draft_id: str) -> int:
        return len(self._subscribers.get(draft_id, ()))

    def publish(self, draft: Draft) -> None:
        for subscription in list(self._subscribers.get(draft.id, ())):
            subscription.deliver(draft)

    def close_all(self) -> None:
        for subscriptions in list(self._subscribers.values()):
            for subscription in list(subscriptions):
                subscription.close()

    def _remove(self, subscription: DraftSubscription) -> None:
        subscriptions = self._subscribers.get(subscription.draft_id)
        if subscriptions is None:
            return
        if subscription in subscriptions:
            subscriptions.remove(subscription)
        if not subscriptions:
            del self._subscribers[subscription.draft_id]
        logger.debug("draft subscription closed", draft_id=subscription.draft_id)
