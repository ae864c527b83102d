"""Domain models for derived statistics."""

from dataclasses import dataclass

from album_night.domain.models import Participant, ParticipantId, Song
from album_night.domain.roster import ROSTER_SIZE


@dataclass(frozen=True)
class SongStats:
    """Aggregates for one song."""

    song: Song
    average: float
    spread: int
    count: int

    @property
    def complete(self) -> bool:
        """Whether every roster slot scored the song."""
        return self.count == ROSTER_SIZE


@dataclass(frozen=True)
class ParticipantAward:
    """A participant-level award and the average that won it."""

    participant: Participant
    average: float


@dataclass(frozen=True)
class SongAward:
    """A song-level award and the value that won it."""

    song: Song
    value: float


@dataclass(frozen=True)
class Awards:
    """End-of-album awards."""

    stan: ParticipantAward | None
    hater: ParticipantAward | None
    highest_rated: SongAward | None
    lowest_rated: SongAward | None
    most_divisive: SongAward | None
    album_average: float
    participant_averages: dict[ParticipantId, float]


@dataclass(frozen=True)
class SongRanking:
    """A song's place when the album is ordered by average."""

    rank: int
    song: Song
    average: float
    scores: dict[ParticipantId, int]
