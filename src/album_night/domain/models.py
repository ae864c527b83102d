"""Domain models for album night sessions."""

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum


class SessionStatus(StrEnum):
    """Lifecycle states of a session, in play order."""

    LOBBY = "lobby"
    IN_SONG = "in_song"
    REVEALING = "revealing"
    RESULTS = "results"
    FINAL_REVEAL = "final_reveal"
    COMPLETE = "complete"


class ParticipantId(StrEnum):
    """Fixed participant slot identifiers."""

    JAMES = "james"
    LEE = "lee"
    BEN = "ben"
    STEPH = "steph"


@dataclass(frozen=True)
class SessionRecord:
    """Represents a persisted session."""

    code: str
    title: str
    status: SessionStatus
    song_index: int
    locked: bool
    created_at: datetime | None = None


@dataclass(frozen=True)
class Participant:
    """One roster slot of a session."""

    session_code: str
    participant_id: ParticipantId
    name: str
    avatar_url: str | None
    claimed: bool
    claimed_at: datetime | None


@dataclass(frozen=True)
class Song:
    """A track in the session's ordered song list."""

    session_code: str
    order_index: int
    title: str


@dataclass(frozen=True)
class ScoreRow:
    """One participant's rating of one song."""

    session_code: str
    song_index: int
    participant_id: ParticipantId
    score: int
    submitted_at: datetime | None = None


@dataclass(frozen=True)
class SessionSnapshot:
    """Full read view of a session at one point in time."""

    session: SessionRecord
    participants: list[Participant]
    songs: list[Song]
    scores: list[ScoreRow]

    @property
    def current_song(self) -> Song | None:
        """Return the song at the session's index, if the album has started."""
        if self.session.status == SessionStatus.LOBBY:
            return None
        if 0 <= self.session.song_index < len(self.songs):
            return self.songs[self.session.song_index]
        return None

    def scores_for_song(self, song_index: int) -> list[ScoreRow]:
        """Return the scores submitted for one song."""
        return [row for row in self.scores if row.song_index == song_index]

    def submitted_count(self, song_index: int) -> int:
        """Return how many participants scored the song."""
        return len(self.scores_for_song(song_index))

    def participant(self, participant_id: ParticipantId) -> Participant | None:
        """Return the roster slot for an id, if present."""
        for participant in self.participants:
            if participant.participant_id == participant_id:
                return participant
        return None
