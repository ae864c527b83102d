"""Session state machine driven by the admin device."""

import logging
from dataclasses import dataclass

from album_night.domain.errors import (
    GuardViolation,
    PartialSequenceFailure,
    SessionNotFound,
    StoreUnavailable,
    ValidationError,
)
from album_night.domain.models import SessionRecord, SessionSnapshot, SessionStatus
from album_night.domain.roster import (
    ROSTER,
    ROSTER_SIZE,
    generate_code,
    normalize_code,
    parse_song_lines,
    validate_title,
)
from album_night.services.feed import ChangeNotification, ChangeNotifier
from album_night.services.store import SessionStore, load_snapshot

logger = logging.getLogger(__name__)

_MAX_CODE_ATTEMPTS = 5


@dataclass(frozen=True)
class TransitionResult:
    """Snapshot after an admin command, plus an optional advisory warning."""

    snapshot: SessionSnapshot
    warning: str | None = None


@dataclass
class SessionService:
    """Owns every admin transition of a session.

    Each transition checks the source status, then writes its whole field set
    in a single ``update_session`` call so concurrent readers never observe a
    half-applied transition.
    """

    store: SessionStore
    notifier: ChangeNotifier
    default_title: str = "Album Night"
    strict_lock: bool = False

    def create_session(self, title: str | None = None) -> SessionSnapshot:
        """Create a lobby session with an unclaimed roster."""
        resolved_title = self.default_title
        if title is not None:
            resolved_title = validate_title(title)
        for _ in range(_MAX_CODE_ATTEMPTS):
            code = generate_code()
            if self.store.get_session(code) is None:
                break
        else:
            raise GuardViolation("Could not allocate a free session code")
        self.store.create_session(code, resolved_title)
        try:
            self.store.create_participants(code, ROSTER)
        except StoreUnavailable as exc:
            logger.warning("Session %s created without a roster: %s", code, exc)
            raise PartialSequenceFailure(
                f"create_session {code}", ["create session"], "create participants"
            ) from exc
        logger.info("Session %s created", code)
        return self.get_snapshot(code)

    def get_snapshot(self, code: str) -> SessionSnapshot:
        """Return the full snapshot for a session."""
        normalized = normalize_code(code)
        snapshot = load_snapshot(self.store, normalized)
        if snapshot is None:
            raise SessionNotFound(normalized)
        return snapshot

    def rename(self, code: str, title: str) -> TransitionResult:
        """Change the album title while in the lobby."""
        session = self._load(code)
        resolved_title = validate_title(title)
        _require(session, {SessionStatus.LOBBY}, "rename the album")
        self.store.update_session(session.code, {"title": resolved_title})
        self._publish(session.code, "sessions")
        return TransitionResult(self.get_snapshot(session.code))

    def replace_songs(self, code: str, titles: list[str]) -> TransitionResult:
        """Replace the whole song list while in the lobby."""
        session = self._load(code)
        _require(session, {SessionStatus.LOBBY}, "replace the song list")
        cleaned = [title.strip() for title in titles if title and title.strip()]
        self.store.replace_songs(session.code, cleaned)
        self._publish(session.code, "songs")
        logger.info("Session %s: %d songs imported", session.code, len(cleaned))
        return TransitionResult(self.get_snapshot(session.code))

    def import_songs(self, code: str, text: str) -> TransitionResult:
        """Replace the song list from pasted text, one title per line."""
        return self.replace_songs(code, parse_song_lines(text))

    def start_album(self, code: str) -> TransitionResult:
        """Open scoring for the first song."""
        session = self._load(code)
        _require(session, {SessionStatus.LOBBY}, "start the album")
        if not self.store.list_songs(session.code):
            raise ValidationError("Add at least one song before starting the album")
        return self._transition(
            session,
            {"status": SessionStatus.IN_SONG, "song_index": 0, "locked": False},
        )

    def lock_scores(self, code: str) -> TransitionResult:
        """Freeze scoring for the current song and begin its reveal."""
        session = self._load(code)
        _require(session, {SessionStatus.IN_SONG}, "lock scores")
        submitted = sum(
            1
            for row in self.store.list_scores(session.code)
            if row.song_index == session.song_index
        )
        warning = None
        if submitted < ROSTER_SIZE:
            warning = f"Only {submitted}/{ROSTER_SIZE} scores submitted"
            if self.strict_lock:
                raise GuardViolation(f"{warning}; waiting for every participant")
        result = self._transition(
            session, {"status": SessionStatus.REVEALING, "locked": True}
        )
        return TransitionResult(result.snapshot, warning=warning)

    def advance(self, code: str) -> TransitionResult:
        """Move to the next song, or to results after the last one."""
        session = self._load(code)
        _require(session, {SessionStatus.REVEALING}, "advance")
        next_index = session.song_index + 1
        if next_index < len(self.store.list_songs(session.code)):
            fields: dict[str, object] = {
                "status": SessionStatus.IN_SONG,
                "song_index": next_index,
                "locked": False,
            }
        else:
            fields = {"status": SessionStatus.RESULTS, "locked": False}
        return self._transition(session, fields)

    def show_awards(self, code: str) -> TransitionResult:
        """Start the final awards reveal."""
        session = self._load(code)
        _require(session, {SessionStatus.RESULTS}, "show awards")
        return self._transition(session, {"status": SessionStatus.FINAL_REVEAL})

    def finish(self, code: str) -> TransitionResult:
        """Mark the session complete."""
        session = self._load(code)
        _require(session, {SessionStatus.FINAL_REVEAL}, "finish the session")
        return self._transition(session, {"status": SessionStatus.COMPLETE})

    def reset(self, code: str) -> TransitionResult:
        """Clear every score and claim and return to the lobby.

        Roster slots missing after an interrupted ``create_session`` are
        inserted again.
        """
        session = self._load(code)
        self.store.reset_session(session.code)
        self._restore_roster(session.code)
        for table in ("scores", "participants", "sessions"):
            self._publish(session.code, table)
        logger.info("Session %s: %s -> lobby (reset)", session.code, session.status)
        return TransitionResult(self.get_snapshot(session.code))

    def _load(self, code: str) -> SessionRecord:
        normalized = normalize_code(code)
        session = self.store.get_session(normalized)
        if session is None:
            raise SessionNotFound(normalized)
        return session

    def _transition(
        self, session: SessionRecord, fields: dict[str, object]
    ) -> TransitionResult:
        updated = self.store.update_session(session.code, fields)
        self._publish(session.code, "sessions")
        logger.info(
            "Session %s: %s -> %s (song %d)",
            session.code,
            session.status,
            updated.status,
            updated.song_index,
        )
        return TransitionResult(self.get_snapshot(session.code))

    def _publish(self, code: str, table: str) -> None:
        self.notifier.publish(ChangeNotification(session_code=code, table=table))

    def _restore_roster(self, code: str) -> None:
        present = {p.participant_id for p in self.store.list_participants(code)}
        missing = tuple(slot for slot in ROSTER if slot.participant_id not in present)
        if missing:
            self.store.create_participants(code, missing)
            logger.info("Session %s: restored %d roster slots", code, len(missing))


def _require(
    session: SessionRecord, allowed: set[SessionStatus], action: str
) -> None:
    if session.status not in allowed:
        expected = " or ".join(sorted(status.value for status in allowed))
        raise GuardViolation(
            f"Cannot {action} while session is {session.status}; expected {expected}"
        )
