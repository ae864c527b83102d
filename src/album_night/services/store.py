"""Persistence contract for sessions, roster, songs and scores."""

from datetime import datetime
from typing import Protocol

from album_night.domain.models import (
    Participant,
    ParticipantId,
    ScoreRow,
    SessionRecord,
    SessionSnapshot,
    Song,
)
from album_night.domain.roster import RosterSlot


class SessionStore(Protocol):
    """Record store shared by every device of a session.

    Each method touches a single record or a single collection filter, except
    ``replace_songs`` and ``reset_session`` which run a fixed sequence of such
    writes and raise ``PartialSequenceFailure`` when they stop partway.
    """

    def create_session(self, code: str, title: str) -> SessionRecord:
        """Insert a new lobby session and return it."""

    def create_participants(
        self, code: str, slots: tuple[RosterSlot, ...]
    ) -> list[Participant]:
        """Insert the unclaimed roster for a session."""

    def get_session(self, code: str) -> SessionRecord | None:
        """Return a session by code, if present."""

    def list_participants(self, code: str) -> list[Participant]:
        """Return the session's roster."""

    def list_songs(self, code: str) -> list[Song]:
        """Return the session's songs ordered by index."""

    def list_scores(self, code: str) -> list[ScoreRow]:
        """Return every score submitted in the session."""

    def upsert_score(
        self,
        code: str,
        song_index: int,
        participant_id: ParticipantId,
        score: int,
    ) -> ScoreRow:
        """Insert or overwrite the score for one song and participant."""

    def replace_songs(self, code: str, titles: list[str]) -> list[Song]:
        """Delete every song of the session, then insert the new titles."""

    def update_session(self, code: str, fields: dict[str, object]) -> SessionRecord:
        """Apply a partial update to the session record."""

    def claim_participant(
        self, code: str, participant_id: ParticipantId, claimed_at: datetime
    ) -> Participant:
        """Mark a roster slot as claimed."""

    def release_participant(
        self, code: str, participant_id: ParticipantId
    ) -> Participant:
        """Mark a roster slot as unclaimed."""

    def reset_session(self, code: str) -> SessionRecord:
        """Clear scores, unclaim the roster and return the session to lobby."""


def load_snapshot(store: SessionStore, code: str) -> SessionSnapshot | None:
    """Read the session and its collections, or None if the session is gone."""
    session = store.get_session(code)
    if session is None:
        return None
    songs = sorted(store.list_songs(code), key=lambda song: song.order_index)
    return SessionSnapshot(
        session=session,
        participants=store.list_participants(code),
        songs=songs,
        scores=store.list_scores(code),
    )
