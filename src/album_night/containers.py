"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import ClientOptions, create_client

from album_night.adapters.supabase_session_store import SupabaseSessionStore
from album_night.config import Settings
from album_night.services.feed import ChangeFeed, SnapshotWatcher
from album_night.services.participants import ParticipantService
from album_night.services.results import ResultsService
from album_night.services.sessions import SessionService
from album_night.services.store import SessionStore


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    change_feed: ChangeFeed
    session_service: SessionService
    participant_service: ParticipantService
    results_service: ResultsService
    snapshot_watcher: SnapshotWatcher
    close_resources: Callable[[], Awaitable[None]]


def wire_services(
    settings: Settings, store: SessionStore, feed: ChangeFeed
) -> AppContainer:
    """Build the services around an already-created store."""
    session_service = SessionService(
        store=store,
        notifier=feed,
        default_title=settings.default_session_title,
        strict_lock=settings.strict_lock,
    )
    participant_service = ParticipantService(store=store, notifier=feed)
    results_service = ResultsService(load_snapshot=session_service.get_snapshot)
    snapshot_watcher = SnapshotWatcher(
        feed=feed,
        load_snapshot=session_service.get_snapshot,
        retry_delay_seconds=settings.feed_retry_delay_seconds,
    )

    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        change_feed=feed,
        session_service=session_service,
        participant_service=participant_service,
        results_service=results_service,
        snapshot_watcher=snapshot_watcher,
        close_resources=close_resources,
    )


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url,
        resolved_settings.supabase_service_key,
        options=ClientOptions(
            postgrest_client_timeout=resolved_settings.store_timeout_seconds
        ),
    )
    store = SupabaseSessionStore(supabase_client)
    return wire_services(resolved_settings, store, ChangeFeed())
