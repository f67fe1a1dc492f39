"""Change notification for cache scopes, feeding the continuously-updated views."""
from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator, Awaitable, Callable, TypeVar

LOG = logging.getLogger(__name__)

T = TypeVar("T")

CITIES_SCOPE = "cities"


def locations_scope(city_id: str) -> str:
    """Scope key for the locations of one city."""
    return f"locations:{city_id}"


class ScopeNotifier:
    """
    Fan-out of "scope changed" signals to subscribers.

    Each subscriber owns a one-slot queue: signals arriving while one is already
    pending are coalesced, so a slow reader re-reads once instead of once per write.
    Must be used from the event loop thread.
    """

    def __init__(self) -> None:
        self._subscribers: dict[str, set[asyncio.Queue[None]]] = {}

    def subscribe(self, scope: str) -> asyncio.Queue[None]:
        queue: asyncio.Queue[None] = asyncio.Queue(maxsize=1)
        self._subscribers.setdefault(scope, set()).add(queue)
        return queue

    def unsubscribe(self, scope: str, queue: asyncio.Queue[None]) -> None:
        subs = self._subscribers.get(scope)
        if subs is None:
            return
        subs.discard(queue)
        if not subs:
            del self._subscribers[scope]

    def subscriber_count(self, scope: str) -> int:
        return len(self._subscribers.get(scope, ()))

    def _signal(self, queue: asyncio.Queue[None]) -> None:
        if queue.full():
            return
        queue.put_nowait(None)

    def publish(self, scope: str) -> None:
        """Signal every subscriber of scope."""
        for queue in list(self._subscribers.get(scope, ())):
            self._signal(queue)

    def publish_prefix(self, prefix: str) -> None:
        """Signal every subscriber of every scope starting with prefix."""
        for scope, subs in list(self._subscribers.items()):
            if scope.startswith(prefix):
                for queue in list(subs):
                    self._signal(queue)


async def watch_scope(
    notifier: ScopeNotifier,
    scope: str,
    read: Callable[[], Awaitable[T]],
) -> AsyncIterator[T]:
    """
    Yield read() now and again after every change to scope. Never ends on its own;
    the subscription is released when the consumer closes the iterator.
    """
    queue = notifier.subscribe(scope)
    try:
        yield await read()
        while True:
            await queue.get()
            yield await read()
    finally:
        notifier.unsubscribe(scope, queue)
        LOG.debug("watch on %s closed", scope)
