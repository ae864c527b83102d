"""Read surface for TV and results displays."""

from collections.abc import Callable
from dataclasses import dataclass

from album_night.domain.models import (
    Participant,
    ScoreRow,
    SessionRecord,
    SessionSnapshot,
    Song,
)
from album_night.domain.roster import participant_color
from album_night.domain.stats import (
    Awards,
    ParticipantAward,
    SongAward,
    SongRanking,
    SongStats,
)
from album_night.services.scoring import (
    compute_awards,
    compute_song_rankings,
    compute_song_stats,
)


@dataclass
class ResultsService:
    """Combines a snapshot with its derived aggregates."""

    load_snapshot: Callable[[str], SessionSnapshot]

    def awards(self, code: str) -> Awards:
        """Return the awards for a session's current scores."""
        snapshot = self.load_snapshot(code)
        return compute_awards(snapshot.participants, snapshot.scores, snapshot.songs)

    def board(self, code: str) -> dict[str, object]:
        """Return the JSON-ready board for a session."""
        return build_board(self.load_snapshot(code))


def build_board(snapshot: SessionSnapshot) -> dict[str, object]:
    """Serialize a snapshot and its aggregates for display devices."""
    session = snapshot.session
    current = snapshot.current_song
    awards = compute_awards(snapshot.participants, snapshot.scores, snapshot.songs)
    return {
        "session": serialize_session(session),
        "participants": [serialize_participant(p) for p in snapshot.participants],
        "songs": [serialize_song(song) for song in snapshot.songs],
        "scores": [serialize_score(row) for row in snapshot.scores],
        "current_song": serialize_song(current) if current else None,
        "submitted_count": (
            snapshot.submitted_count(current.order_index) if current else 0
        ),
        "song_stats": [
            serialize_song_stats(entry)
            for entry in compute_song_stats(snapshot.songs, snapshot.scores)
        ],
        "song_rankings": [
            serialize_song_ranking(entry)
            for entry in compute_song_rankings(snapshot.songs, snapshot.scores)
        ],
        "awards": serialize_awards(awards),
    }


def serialize_session(session: SessionRecord) -> dict[str, object]:
    return {
        "code": session.code,
        "title": session.title,
        "status": session.status.value,
        "song_index": session.song_index,
        "locked": session.locked,
        "created_at": session.created_at.isoformat() if session.created_at else None,
    }


def serialize_participant(participant: Participant) -> dict[str, object]:
    return {
        "participant_id": participant.participant_id.value,
        "name": participant.name,
        "avatar_url": participant.avatar_url,
        "color": participant_color(participant.participant_id),
        "claimed": participant.claimed,
        "claimed_at": (
            participant.claimed_at.isoformat() if participant.claimed_at else None
        ),
    }


def serialize_song(song: Song) -> dict[str, object]:
    return {"order_index": song.order_index, "title": song.title}


def serialize_score(row: ScoreRow) -> dict[str, object]:
    return {
        "song_index": row.song_index,
        "participant_id": row.participant_id.value,
        "score": row.score,
        "submitted_at": row.submitted_at.isoformat() if row.submitted_at else None,
    }


def serialize_song_stats(entry: SongStats) -> dict[str, object]:
    return {
        "order_index": entry.song.order_index,
        "title": entry.song.title,
        "average": entry.average,
        "spread": entry.spread,
        "count": entry.count,
        "complete": entry.complete,
    }


def serialize_song_ranking(entry: SongRanking) -> dict[str, object]:
    return {
        "rank": entry.rank,
        "order_index": entry.song.order_index,
        "title": entry.song.title,
        "average": entry.average,
        "scores": {
            participant_id.value: score
            for participant_id, score in entry.scores.items()
        },
    }


def serialize_awards(awards: Awards) -> dict[str, object]:
    return {
        "stan": _participant_award(awards.stan),
        "hater": _participant_award(awards.hater),
        "highest_rated": _song_award(awards.highest_rated),
        "lowest_rated": _song_award(awards.lowest_rated),
        "most_divisive": _song_award(awards.most_divisive),
        "album_average": awards.album_average,
        "participant_averages": {
            participant_id.value: average
            for participant_id, average in awards.participant_averages.items()
        },
    }


def _participant_award(award: ParticipantAward | None) -> dict[str, object] | None:
    if award is None:
        return None
    return {
        "participant_id": award.participant.participant_id.value,
        "name": award.participant.name,
        "average": award.average,
    }


def _song_award(award: SongAward | None) -> dict[str, object] | None:
    if award is None:
        return None
    return {
        "order_index": award.song.order_index,
        "title": award.song.title,
        "value": award.value,
    }
