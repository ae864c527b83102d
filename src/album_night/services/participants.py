"""Participant join and score submission."""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime

from album_night.domain.errors import GuardViolation, SessionNotFound
from album_night.domain.models import (
    Participant,
    ParticipantId,
    ScoreRow,
    SessionRecord,
    SessionStatus,
)
from album_night.domain.roster import (
    normalize_code,
    parse_participant_id,
    validate_score,
    validate_song_index,
)
from album_night.services.feed import ChangeNotification, ChangeNotifier
from album_night.services.store import SessionStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class JoinResult:
    """Outcome of binding a device to a roster slot."""

    participant: Participant
    rejoined: bool


@dataclass
class ParticipantService:
    """Handles participant-initiated writes; never changes session status."""

    store: SessionStore
    notifier: ChangeNotifier

    def claim(
        self, code: str, participant_id: str, rejoin: bool = False
    ) -> JoinResult:
        """Bind a device to a slot, or rebind it after a disconnect."""
        session = self._load(code)
        slot_id = parse_participant_id(participant_id)
        participant = self._participant(session.code, slot_id)
        if participant.claimed:
            if not rejoin:
                raise GuardViolation(f"{participant.name} is already taken")
            logger.info("Session %s: %s rejoined", session.code, slot_id)
            return JoinResult(participant=participant, rejoined=True)
        claimed = self.store.claim_participant(
            session.code, slot_id, datetime.now(tz=UTC)
        )
        self._publish(session.code, "participants")
        logger.info("Session %s: %s claimed", session.code, slot_id)
        return JoinResult(participant=claimed, rejoined=False)

    def release(self, code: str, participant_id: str) -> Participant:
        """Free a slot so another device can claim it."""
        session = self._load(code)
        slot_id = parse_participant_id(participant_id)
        released = self.store.release_participant(session.code, slot_id)
        self._publish(session.code, "participants")
        logger.info("Session %s: %s released", session.code, slot_id)
        return released

    def submit_score(
        self, code: str, participant_id: str, song_index: int, score: object
    ) -> ScoreRow:
        """Record a score for the song the device is showing.

        The device's ``song_index`` must match the session's current song, so
        a device that missed an advance cannot land its rating on the next song.
        """
        normalized = normalize_code(code)
        slot_id = parse_participant_id(participant_id)
        target_index = validate_song_index(song_index)
        value = validate_score(score)
        session = self._load(normalized)
        if session.status != SessionStatus.IN_SONG or session.locked:
            logger.info(
                "Session %s: rejected score from %s (status=%s, locked=%s)",
                session.code,
                slot_id,
                session.status,
                session.locked,
            )
            raise GuardViolation("Scoring is closed for this song")
        if target_index != session.song_index:
            logger.info(
                "Session %s: rejected score from %s for song %d (current %d)",
                session.code,
                slot_id,
                target_index,
                session.song_index,
            )
            raise GuardViolation("The album has moved on to another song")
        participant = self._participant(session.code, slot_id)
        if not participant.claimed:
            raise GuardViolation(f"Join as {participant.name} before scoring")
        # The guard is read before the write, so a lock landing in between
        # still admits this score.
        row = self.store.upsert_score(session.code, session.song_index, slot_id, value)
        self._publish(session.code, "scores")
        return row

    def _load(self, code: str) -> SessionRecord:
        normalized = normalize_code(code)
        session = self.store.get_session(normalized)
        if session is None:
            raise SessionNotFound(normalized)
        return session

    def _participant(self, code: str, participant_id: ParticipantId) -> Participant:
        for participant in self.store.list_participants(code):
            if participant.participant_id == participant_id:
                return participant
        raise GuardViolation(f"Slot {participant_id} does not exist in {code}")

    def _publish(self, code: str, table: str) -> None:
        self.notifier.publish(ChangeNotification(session_code=code, table=table))
