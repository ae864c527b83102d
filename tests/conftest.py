"""Shared test fixtures."""

from dataclasses import dataclass, field, replace
from datetime import UTC, datetime

import pytest

from album_night.config import Settings
from album_night.containers import AppContainer, wire_services
from album_night.domain.errors import (
    GuardViolation,
    PartialSequenceFailure,
    SessionNotFound,
    StoreUnavailable,
)
from album_night.domain.models import (
    Participant,
    ParticipantId,
    ScoreRow,
    SessionRecord,
    SessionSnapshot,
    SessionStatus,
    Song,
)
from album_night.domain.roster import RosterSlot
from album_night.services.feed import ChangeFeed, ChangeNotification
from album_night.services.participants import ParticipantService
from album_night.services.sessions import SessionService
from album_night.services.store import SessionStore


@dataclass
class InMemorySessionStore(SessionStore):
    """In-memory session store for tests."""

    sessions: dict[str, SessionRecord] = field(default_factory=dict)
    participants: dict[tuple[str, ParticipantId], Participant] = field(
        default_factory=dict
    )
    songs: dict[str, list[Song]] = field(default_factory=dict)
    scores: dict[tuple[str, int, ParticipantId], ScoreRow] = field(
        default_factory=dict
    )
    session_updates: list[dict[str, object]] = field(default_factory=list)
    failing: set[str] = field(default_factory=set)

    def _check(self, operation: str) -> None:
        if operation in self.failing:
            raise StoreUnavailable(f"Failed to {operation}: connection refused")

    def create_session(self, code: str, title: str) -> SessionRecord:
        self._check("create session")
        session = SessionRecord(
            code=code,
            title=title,
            status=SessionStatus.LOBBY,
            song_index=0,
            locked=False,
            created_at=datetime.now(tz=UTC),
        )
        self.sessions[code] = session
        return session

    def create_participants(
        self, code: str, slots: tuple[RosterSlot, ...]
    ) -> list[Participant]:
        self._check("create participants")
        created = []
        for slot in slots:
            participant = Participant(
                session_code=code,
                participant_id=slot.participant_id,
                name=slot.name,
                avatar_url=None,
                claimed=False,
                claimed_at=None,
            )
            self.participants[(code, slot.participant_id)] = participant
            created.append(participant)
        return created

    def get_session(self, code: str) -> SessionRecord | None:
        self._check("load session")
        return self.sessions.get(code)

    def list_participants(self, code: str) -> list[Participant]:
        self._check("list participants")
        return [p for (key, _), p in self.participants.items() if key == code]

    def list_songs(self, code: str) -> list[Song]:
        self._check("list songs")
        return list(self.songs.get(code, []))

    def list_scores(self, code: str) -> list[ScoreRow]:
        self._check("list scores")
        return [row for (key, _, _), row in self.scores.items() if key == code]

    def upsert_score(
        self,
        code: str,
        song_index: int,
        participant_id: ParticipantId,
        score: int,
    ) -> ScoreRow:
        self._check("submit score")
        row = ScoreRow(
            session_code=code,
            song_index=song_index,
            participant_id=participant_id,
            score=score,
            submitted_at=datetime.now(tz=UTC),
        )
        self.scores[(code, song_index, participant_id)] = row
        return row

    def replace_songs(self, code: str, titles: list[str]) -> list[Song]:
        self._check("delete songs")
        self.songs[code] = []
        if not titles:
            return []
        if "insert songs" in self.failing:
            raise PartialSequenceFailure(
                "replace_songs", ["delete songs"], "insert songs"
            )
        self.songs[code] = [
            Song(session_code=code, order_index=index, title=title)
            for index, title in enumerate(titles)
        ]
        return list(self.songs[code])

    def update_session(self, code: str, fields: dict[str, object]) -> SessionRecord:
        self._check("update session")
        if code not in self.sessions:
            raise SessionNotFound(code)
        self.session_updates.append(dict(fields))
        updated = replace(self.sessions[code], **fields)
        self.sessions[code] = updated
        return updated

    def claim_participant(
        self, code: str, participant_id: ParticipantId, claimed_at: datetime
    ) -> Participant:
        current = self.participants[(code, participant_id)]
        if current.claimed:
            raise GuardViolation(f"Slot {participant_id} was claimed by another device")
        claimed = replace(current, claimed=True, claimed_at=claimed_at)
        self.participants[(code, participant_id)] = claimed
        return claimed

    def release_participant(
        self, code: str, participant_id: ParticipantId
    ) -> Participant:
        current = self.participants[(code, participant_id)]
        released = replace(current, claimed=False, claimed_at=None)
        self.participants[(code, participant_id)] = released
        return released

    def reset_session(self, code: str) -> SessionRecord:
        self._check("delete scores")
        for key in [key for key in self.scores if key[0] == code]:
            del self.scores[key]
        for key, participant in list(self.participants.items()):
            if key[0] == code:
                self.participants[key] = replace(
                    participant, claimed=False, claimed_at=None
                )
        reset = replace(
            self.sessions[code],
            status=SessionStatus.LOBBY,
            song_index=0,
            locked=False,
        )
        self.sessions[code] = reset
        return reset


@dataclass
class RecordingNotifier:
    """Notifier that keeps every published change."""

    notifications: list[ChangeNotification] = field(default_factory=list)

    def publish(self, notification: ChangeNotification) -> None:
        self.notifications.append(notification)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key="service.key.signature",
        admin_token="admin-token",
        feed_retry_delay_seconds=0,
    )


@pytest.fixture
def store() -> InMemorySessionStore:
    return InMemorySessionStore()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def session_service(
    store: InMemorySessionStore, notifier: RecordingNotifier
) -> SessionService:
    return SessionService(store=store, notifier=notifier)


@pytest.fixture
def participant_service(
    store: InMemorySessionStore, notifier: RecordingNotifier
) -> ParticipantService:
    return ParticipantService(store=store, notifier=notifier)


@pytest.fixture
def container(settings: Settings, store: InMemorySessionStore) -> AppContainer:
    return wire_services(settings, store, ChangeFeed())


def claim_all(service: ParticipantService, code: str) -> None:
    for participant_id in ParticipantId:
        service.claim(code, participant_id.value)


def start_with_songs(
    session_service: SessionService,
    participant_service: ParticipantService,
    titles: list[str],
) -> SessionSnapshot:
    """Create a session, seat everyone and open scoring for the first song."""
    code = session_service.create_session().session.code
    session_service.replace_songs(code, titles)
    claim_all(participant_service, code)
    return session_service.start_album(code).snapshot
