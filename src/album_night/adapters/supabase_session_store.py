"""Supabase-backed session store."""

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum

import httpx
from postgrest.exceptions import APIError
from supabase import Client

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
    SessionStatus,
    Song,
)
from album_night.domain.roster import RosterSlot
from album_night.services.store import SessionStore

_SESSION_COLUMNS = "code, title, status, song_index, locked, created_at"
_PARTICIPANT_COLUMNS = (
    "session_code, participant_id, name, avatar_url, claimed, claimed_at"
)
_SONG_COLUMNS = "session_code, order_index, title"
_SCORE_COLUMNS = "session_code, song_index, participant_id, score, submitted_at"
_SCORE_CONFLICT = "session_code,song_index,participant_id"


@dataclass
class SupabaseSessionStore(SessionStore):
    """Supabase implementation of the session store."""

    client: Client

    def create_session(self, code: str, title: str) -> SessionRecord:
        """Insert a session row and return it."""
        response = _execute(
            self.client.table("sessions").insert(
                {
                    "code": code,
                    "title": title,
                    "status": SessionStatus.LOBBY.value,
                    "song_index": 0,
                    "locked": False,
                }
            ),
            "create session",
        )
        if not response.data:
            raise StoreUnavailable("Failed to create session")
        return _parse_session(response.data[0])

    def create_participants(
        self, code: str, slots: tuple[RosterSlot, ...]
    ) -> list[Participant]:
        """Insert the unclaimed roster rows."""
        response = _execute(
            self.client.table("participants").insert(
                [
                    {
                        "session_code": code,
                        "participant_id": slot.participant_id.value,
                        "name": slot.name,
                        "avatar_url": None,
                        "claimed": False,
                    }
                    for slot in slots
                ]
            ),
            "create participants",
        )
        return [_parse_participant(row) for row in response.data or []]

    def get_session(self, code: str) -> SessionRecord | None:
        """Return a session by code, if present."""
        response = _execute(
            self.client.table("sessions")
            .select(_SESSION_COLUMNS)
            .eq("code", code)
            .limit(1),
            "load session",
        )
        if not response.data:
            return None
        return _parse_session(response.data[0])

    def list_participants(self, code: str) -> list[Participant]:
        """Return the roster for a session."""
        response = _execute(
            self.client.table("participants")
            .select(_PARTICIPANT_COLUMNS)
            .eq("session_code", code),
            "list participants",
        )
        participants = [_parse_participant(row) for row in response.data or []]
        order = list(ParticipantId)
        return sorted(participants, key=lambda p: order.index(p.participant_id))

    def list_songs(self, code: str) -> list[Song]:
        """Return songs ordered by index."""
        response = _execute(
            self.client.table("songs")
            .select(_SONG_COLUMNS)
            .eq("session_code", code)
            .order("order_index", desc=False),
            "list songs",
        )
        return [_parse_song(row) for row in response.data or []]

    def list_scores(self, code: str) -> list[ScoreRow]:
        """Return every score in the session."""
        response = _execute(
            self.client.table("scores")
            .select(_SCORE_COLUMNS)
            .eq("session_code", code)
            .order("song_index", desc=False),
            "list scores",
        )
        return [_parse_score(row) for row in response.data or []]

    def upsert_score(
        self,
        code: str,
        song_index: int,
        participant_id: ParticipantId,
        score: int,
    ) -> ScoreRow:
        """Insert or overwrite a score keyed by song and participant."""
        response = _execute(
            self.client.table("scores").upsert(
                {
                    "session_code": code,
                    "song_index": song_index,
                    "participant_id": participant_id.value,
                    "score": score,
                    "submitted_at": datetime.now(tz=UTC).isoformat(),
                },
                on_conflict=_SCORE_CONFLICT,
            ),
            "submit score",
        )
        if not response.data:
            raise StoreUnavailable("Failed to store score")
        return _parse_score(response.data[0])

    def replace_songs(self, code: str, titles: list[str]) -> list[Song]:
        """Delete the session's songs, then insert the new list."""
        _execute(
            self.client.table("songs").delete().eq("session_code", code),
            "delete songs",
        )
        if not titles:
            return []
        try:
            response = _execute(
                self.client.table("songs").insert(
                    [
                        {"session_code": code, "order_index": index, "title": title}
                        for index, title in enumerate(titles)
                    ]
                ),
                "insert songs",
            )
        except StoreUnavailable as exc:
            raise PartialSequenceFailure(
                "replace_songs", ["delete songs"], "insert songs"
            ) from exc
        return [_parse_song(row) for row in response.data or []]

    def update_session(self, code: str, fields: dict[str, object]) -> SessionRecord:
        """Apply a partial update and return the stored row."""
        response = _execute(
            self.client.table("sessions").update(_to_row(fields)).eq("code", code),
            "update session",
        )
        if not response.data:
            raise SessionNotFound(code)
        return _parse_session(response.data[0])

    def claim_participant(
        self, code: str, participant_id: ParticipantId, claimed_at: datetime
    ) -> Participant:
        """Claim a slot only if it is still free."""
        response = _execute(
            self.client.table("participants")
            .update({"claimed": True, "claimed_at": claimed_at.isoformat()})
            .eq("session_code", code)
            .eq("participant_id", participant_id.value)
            .eq("claimed", False),
            "claim participant",
        )
        if not response.data:
            raise GuardViolation(f"Slot {participant_id} was claimed by another device")
        return _parse_participant(response.data[0])

    def release_participant(
        self, code: str, participant_id: ParticipantId
    ) -> Participant:
        """Unclaim a single slot."""
        response = _execute(
            self.client.table("participants")
            .update({"claimed": False, "claimed_at": None})
            .eq("session_code", code)
            .eq("participant_id", participant_id.value),
            "release participant",
        )
        if not response.data:
            raise SessionNotFound(code)
        return _parse_participant(response.data[0])

    def reset_session(self, code: str) -> SessionRecord:
        """Clear scores, unclaim the roster and reset the session row."""
        steps = [
            (
                "delete scores",
                lambda: self.client.table("scores").delete().eq("session_code", code),
            ),
            (
                "unclaim participants",
                lambda: self.client.table("participants")
                .update({"claimed": False, "claimed_at": None})
                .eq("session_code", code),
            ),
            (
                "reset session",
                lambda: self.client.table("sessions")
                .update(
                    {
                        "status": SessionStatus.LOBBY.value,
                        "song_index": 0,
                        "locked": False,
                    }
                )
                .eq("code", code),
            ),
        ]
        completed: list[str] = []
        response = None
        for name, build_query in steps:
            try:
                response = _execute(build_query(), name)
            except StoreUnavailable as exc:
                if not completed:
                    raise
                raise PartialSequenceFailure("reset_session", completed, name) from exc
            completed.append(name)
        if response is None or not response.data:
            raise SessionNotFound(code)
        return _parse_session(response.data[0])


def _execute(query, action: str):  # type: ignore[no-untyped-def]
    """Run a PostgREST query, translating transport and API failures."""
    try:
        return query.execute()
    except (APIError, httpx.HTTPError) as exc:
        raise StoreUnavailable(f"Failed to {action}: {exc}") from exc


def _to_row(fields: dict[str, object]) -> dict[str, object]:
    return {
        key: value.value if isinstance(value, Enum) else value
        for key, value in fields.items()
    }


def _parse_datetime(raw: object) -> datetime | None:
    if isinstance(raw, str) and raw:
        return datetime.fromisoformat(raw)
    return None


def _parse_session(row: dict[str, object]) -> SessionRecord:
    return SessionRecord(
        code=str(row["code"]),
        title=str(row.get("title") or ""),
        status=SessionStatus(row["status"]),
        song_index=int(row.get("song_index") or 0),
        locked=bool(row.get("locked")),
        created_at=_parse_datetime(row.get("created_at")),
    )


def _parse_participant(row: dict[str, object]) -> Participant:
    return Participant(
        session_code=str(row["session_code"]),
        participant_id=ParticipantId(row["participant_id"]),
        name=str(row.get("name") or ""),
        avatar_url=row.get("avatar_url"),
        claimed=bool(row.get("claimed")),
        claimed_at=_parse_datetime(row.get("claimed_at")),
    )


def _parse_song(row: dict[str, object]) -> Song:
    return Song(
        session_code=str(row["session_code"]),
        order_index=int(row["order_index"]),
        title=str(row.get("title") or ""),
    )


def _parse_score(row: dict[str, object]) -> ScoreRow:
    return ScoreRow(
        session_code=str(row["session_code"]),
        song_index=int(row["song_index"]),
        participant_id=ParticipantId(row["participant_id"]),
        score=int(row["score"]),
        submitted_at=_parse_datetime(row.get("submitted_at")),
    )
