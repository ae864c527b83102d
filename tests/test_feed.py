"""Tests for change notifications and snapshot refresh."""

import asyncio
import threading

from album_night.domain.errors import StoreUnavailable
from album_night.services.feed import ChangeFeed, ChangeNotification, SnapshotWatcher
from album_night.services.participants import ParticipantService
from album_night.services.sessions import SessionService
from tests.conftest import InMemorySessionStore


def test_publish_reaches_only_subscribers_of_that_session() -> None:
    async def scenario() -> tuple[list[ChangeNotification], int]:
        feed = ChangeFeed()
        async with (
            feed.subscribe("AAAAAA") as first,
            feed.subscribe("BBBBBB") as other,
        ):
            feed.publish(ChangeNotification("AAAAAA", "scores"))
            feed.publish(ChangeNotification("AAAAAA", "sessions"))
            received = [first.queue.get_nowait(), first.queue.get_nowait()]
            return received, other.queue.qsize()

    received, other_size = asyncio.run(scenario())

    assert [n.table for n in received] == ["scores", "sessions"]
    assert other_size == 0


def test_leaving_subscription_unregisters() -> None:
    async def scenario() -> tuple[int, int]:
        feed = ChangeFeed()
        async with feed.subscribe("AAAAAA"):
            inside = feed.subscriber_count("AAAAAA")
        feed.publish(ChangeNotification("AAAAAA", "scores"))
        return inside, feed.subscriber_count("AAAAAA")

    assert asyncio.run(scenario()) == (1, 0)


def test_watcher_refetches_after_each_change(store: InMemorySessionStore) -> None:
    feed = ChangeFeed()
    sessions = SessionService(store=store, notifier=feed)
    participants = ParticipantService(store=store, notifier=feed)
    code = sessions.create_session().session.code
    watcher = SnapshotWatcher(feed=feed, load_snapshot=sessions.get_snapshot)

    async def scenario() -> list[tuple[str, int]]:
        seen = []
        stream = watcher.watch(code)
        snapshot = await anext(stream)
        seen.append((snapshot.session.title, len(snapshot.songs)))
        sessions.rename(code, "Born Sinner")
        sessions.replace_songs(code, ["Villuminati", "Kerney Sermon"])
        snapshot = await anext(stream)
        seen.append((snapshot.session.title, len(snapshot.songs)))
        participants.claim(code, "james")
        snapshot = await anext(stream)
        claimed = sum(p.claimed for p in snapshot.participants)
        seen.append((snapshot.session.title, claimed))
        await stream.aclose()
        return seen

    assert asyncio.run(scenario()) == [
        ("Album Night", 0),
        ("Born Sinner", 2),
        ("Born Sinner", 1),
    ]
    assert feed.subscriber_count(code) == 0


def test_watcher_retries_reads_while_store_is_down(
    store: InMemorySessionStore,
) -> None:
    feed = ChangeFeed()
    sessions = SessionService(store=store, notifier=feed)
    code = sessions.create_session().session.code
    attempts = []

    def flaky_load(session_code: str):  # type: ignore[no-untyped-def]
        attempts.append(session_code)
        if len(attempts) < 3:
            raise StoreUnavailable("connection refused")
        return sessions.get_snapshot(session_code)

    watcher = SnapshotWatcher(
        feed=feed, load_snapshot=flaky_load, retry_delay_seconds=0
    )

    async def scenario():  # type: ignore[no-untyped-def]
        stream = watcher.watch(code)
        snapshot = await anext(stream)
        await stream.aclose()
        return snapshot

    snapshot = asyncio.run(scenario())

    assert snapshot.session.code == code
    assert len(attempts) == 3


def test_watcher_reads_without_blocking_the_event_loop(
    store: InMemorySessionStore,
) -> None:
    feed = ChangeFeed()
    sessions = SessionService(store=store, notifier=feed)
    code = sessions.create_session().session.code
    release = threading.Event()

    def slow_load(session_code: str):  # type: ignore[no-untyped-def]
        release.wait(timeout=5)
        return sessions.get_snapshot(session_code)

    watcher = SnapshotWatcher(feed=feed, load_snapshot=slow_load)

    async def scenario():  # type: ignore[no-untyped-def]
        stream = watcher.watch(code)
        pending = asyncio.ensure_future(anext(stream))
        await asyncio.sleep(0.05)
        loop_was_free = not pending.done()
        release.set()
        snapshot = await pending
        await stream.aclose()
        return loop_was_free, snapshot

    loop_was_free, snapshot = asyncio.run(scenario())

    assert loop_was_free is True
    assert snapshot.session.code == code
