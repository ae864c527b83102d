"""Pure statistics over a session's scores.

Every function takes plain values and returns new values; none of them touch
the store. A result of ``0`` from an average means "no data" and is never a
real rating, since valid scores start at 1.
"""

from collections.abc import Iterable, Sequence

from album_night.domain.models import Participant, ParticipantId, ScoreRow, Song
from album_night.domain.stats import (
    Awards,
    ParticipantAward,
    SongAward,
    SongRanking,
    SongStats,
)

LOW_TIER_MAX = 4
MEDIUM_TIER_MAX = 7


def mean(values: Sequence[float]) -> float:
    """Return the arithmetic mean, or 0 for no values."""
    if not values:
        return 0
    return sum(values) / len(values)


def compute_song_average(scores: Sequence[ScoreRow]) -> float:
    """Return the mean score for a song, or 0 when nobody scored it."""
    return mean([row.score for row in scores])


def compute_spread(scores: Sequence[ScoreRow]) -> int:
    """Return max minus min, or 0 for empty or single-score lists."""
    if not scores:
        return 0
    values = [row.score for row in scores]
    return max(values) - min(values)


def compute_participant_average(scores: Sequence[ScoreRow]) -> float:
    """Return the mean of one participant's scores, or 0 if none."""
    return mean([row.score for row in scores])


def compute_participant_averages(
    participants: Iterable[Participant], scores: Iterable[ScoreRow]
) -> dict[ParticipantId, float]:
    """Return each roster slot's average, keyed in roster order."""
    by_participant: dict[ParticipantId, list[ScoreRow]] = {
        participant.participant_id: [] for participant in participants
    }
    for row in scores:
        bucket = by_participant.get(row.participant_id)
        if bucket is not None:
            bucket.append(row)
    return {
        participant_id: compute_participant_average(rows)
        for participant_id, rows in by_participant.items()
    }


def compute_song_stats(
    songs: Iterable[Song], scores: Iterable[ScoreRow]
) -> list[SongStats]:
    """Return average, spread and submission count per song, in input order."""
    by_index: dict[int, list[ScoreRow]] = {}
    for row in scores:
        by_index.setdefault(row.song_index, []).append(row)
    stats = []
    for song in songs:
        song_scores = by_index.get(song.order_index, [])
        stats.append(
            SongStats(
                song=song,
                average=compute_song_average(song_scores),
                spread=compute_spread(song_scores),
                count=len(song_scores),
            )
        )
    return stats


def compute_song_rankings(
    songs: Iterable[Song], scores: Iterable[ScoreRow]
) -> list[SongRanking]:
    """Return every song ordered by average, highest first.

    Songs with equal averages keep their album order.
    """
    score_rows = list(scores)
    ordered = sorted(
        compute_song_stats(songs, score_rows), key=lambda entry: -entry.average
    )
    rankings = []
    for rank, entry in enumerate(ordered, start=1):
        rankings.append(
            SongRanking(
                rank=rank,
                song=entry.song,
                average=entry.average,
                scores={
                    row.participant_id: row.score
                    for row in score_rows
                    if row.song_index == entry.song.order_index
                },
            )
        )
    return rankings


def compute_awards(
    participants: Sequence[Participant],
    scores: Sequence[ScoreRow],
    songs: Sequence[Song],
) -> Awards:
    """Derive the end-of-album awards.

    Ties go to whichever participant or song comes first in the input
    sequence. Song awards only consider songs every slot scored, and the
    album average is the mean of per-participant averages rather than of the
    raw scores.
    """
    averages = compute_participant_averages(participants, scores)

    stan: ParticipantAward | None = None
    hater: ParticipantAward | None = None
    for participant in participants:
        average = averages.get(participant.participant_id, 0)
        if average <= 0:
            continue
        if stan is None or average > stan.average:
            stan = ParticipantAward(participant=participant, average=average)
        if hater is None or average < hater.average:
            hater = ParticipantAward(participant=participant, average=average)

    complete = [entry for entry in compute_song_stats(songs, scores) if entry.complete]
    highest: SongStats | None = None
    lowest: SongStats | None = None
    divisive: SongStats | None = None
    for entry in complete:
        if highest is None or entry.average > highest.average:
            highest = entry
        if lowest is None or entry.average < lowest.average:
            lowest = entry
        if divisive is None or entry.spread > divisive.spread:
            divisive = entry

    return Awards(
        stan=stan,
        hater=hater,
        highest_rated=_song_award(highest, highest.average if highest else 0),
        lowest_rated=_song_award(lowest, lowest.average if lowest else 0),
        most_divisive=_song_award(divisive, divisive.spread if divisive else 0),
        album_average=mean([value for value in averages.values() if value > 0]),
        participant_averages=averages,
    )


def reaction_tier(score: int) -> str:
    """Bucket a score into the reaction tier shown during reveal."""
    if score <= LOW_TIER_MAX:
        return "low"
    if score <= MEDIUM_TIER_MAX:
        return "medium"
    return "high"


def _song_award(entry: SongStats | None, value: float) -> SongAward | None:
    if entry is None:
        return None
    return SongAward(song=entry.song, value=value)
