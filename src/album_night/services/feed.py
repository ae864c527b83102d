"""Change notifications and snapshot refresh for connected devices."""

import asyncio
import logging
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Protocol

from album_night.domain.errors import StoreUnavailable
from album_night.domain.models import SessionSnapshot

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChangeNotification:
    """Signals that a table changed for a session; carries no row data."""

    session_code: str
    table: str


class ChangeNotifier(Protocol):
    """Interface used by services to announce writes."""

    def publish(self, notification: ChangeNotification) -> None:
        """Announce a change to every subscriber of the session."""


@dataclass
class Subscription:
    """A single listener's queue of notifications."""

    session_code: str
    queue: asyncio.Queue[ChangeNotification] = field(default_factory=asyncio.Queue)

    async def listen(self) -> AsyncIterator[ChangeNotification]:
        """Yield notifications as they arrive."""
        while True:
            yield await self.queue.get()


@dataclass
class ChangeFeed(ChangeNotifier):
    """In-process fan-out of change notifications keyed by session code."""

    _subscribers: dict[str, list[Subscription]] = field(default_factory=dict)

    def publish(self, notification: ChangeNotification) -> None:
        """Queue the notification for every subscriber of its session."""
        for subscription in self._subscribers.get(notification.session_code, []):
            subscription.queue.put_nowait(notification)

    def subscriber_count(self, session_code: str) -> int:
        """Return how many listeners a session has."""
        return len(self._subscribers.get(session_code, []))

    @asynccontextmanager
    async def subscribe(self, session_code: str) -> AsyncIterator[Subscription]:
        """Register a listener for the duration of the context."""
        subscription = Subscription(session_code=session_code)
        self._subscribers.setdefault(session_code, []).append(subscription)
        logger.info(
            "Feed subscribed: %s (listeners: %d)",
            session_code,
            self.subscriber_count(session_code),
        )
        try:
            yield subscription
        finally:
            listeners = self._subscribers.get(session_code, [])
            if subscription in listeners:
                listeners.remove(subscription)
            if not listeners:
                self._subscribers.pop(session_code, None)
            logger.info("Feed unsubscribed: %s", session_code)


@dataclass
class SnapshotWatcher:
    """Pull-after-push refresh: re-read the whole snapshot on every change."""

    feed: ChangeFeed
    load_snapshot: Callable[[str], SessionSnapshot]
    retry_delay_seconds: float = 1.0

    async def watch(self, session_code: str) -> AsyncIterator[SessionSnapshot]:
        """Yield the current snapshot, then a fresh one after each change."""
        async with self.feed.subscribe(session_code) as subscription:
            yield await self._refresh(session_code)
            async for _notification in subscription.listen():
                _drain(subscription)
                yield await self._refresh(session_code)

    async def _refresh(self, session_code: str) -> SessionSnapshot:
        while True:
            try:
                return await asyncio.to_thread(self.load_snapshot, session_code)
            except StoreUnavailable:
                logger.warning(
                    "Snapshot refresh failed for %s, retrying in %.1fs",
                    session_code,
                    self.retry_delay_seconds,
                )
                await asyncio.sleep(self.retry_delay_seconds)


def _drain(subscription: Subscription) -> None:
    """Collapse queued notifications; one refetch covers all of them."""
    while not subscription.queue.empty():
        subscription.queue.get_nowait()
