"""Fixed roster, session codes and input validation."""

import secrets
from dataclasses import dataclass

from album_night.domain.errors import ValidationError
from album_night.domain.models import ParticipantId

CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
CODE_LENGTH = 6
MIN_SCORE = 1
MAX_SCORE = 10
ROSTER_SIZE = 4


@dataclass(frozen=True)
class RosterSlot:
    """Display metadata for one participant slot."""

    participant_id: ParticipantId
    name: str
    color: str


ROSTER: tuple[RosterSlot, ...] = (
    RosterSlot(ParticipantId.JAMES, "James", "#D4AF37"),
    RosterSlot(ParticipantId.LEE, "Lee", "#2E8B57"),
    RosterSlot(ParticipantId.BEN, "Ben", "#CD853F"),
    RosterSlot(ParticipantId.STEPH, "Steph", "#8B4513"),
)

_DEFAULT_COLOR = "#D4AF37"


def participant_color(participant_id: ParticipantId) -> str:
    """Return the display color for a slot."""
    for slot in ROSTER:
        if slot.participant_id == participant_id:
            return slot.color
    return _DEFAULT_COLOR


def generate_code() -> str:
    """Return a random human-shareable session code."""
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH))


def normalize_code(raw: str) -> str:
    """Return the canonical form of a session code or raise ValidationError."""
    code = raw.strip().upper() if isinstance(raw, str) else ""
    if len(code) != CODE_LENGTH or any(char not in CODE_ALPHABET for char in code):
        raise ValidationError(f"Malformed session code: {raw!r}")
    return code


def parse_participant_id(raw: str) -> ParticipantId:
    """Return the roster id for a raw value or raise ValidationError."""
    try:
        return ParticipantId(str(raw).strip().lower())
    except ValueError:
        raise ValidationError(f"Unknown participant: {raw!r}") from None


def validate_score(value: object) -> int:
    """Return the score if it is an integer within range."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"Score must be a whole number, got {value!r}")
    if not MIN_SCORE <= value <= MAX_SCORE:
        raise ValidationError(
            f"Score must be between {MIN_SCORE} and {MAX_SCORE}, got {value}"
        )
    return value


def validate_song_index(value: object) -> int:
    """Return the song index if it is a non-negative integer."""
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValidationError(f"Song index must be a whole number, got {value!r}")
    return value


def validate_title(raw: str) -> str:
    """Return a trimmed title or raise ValidationError when blank."""
    title = raw.strip() if isinstance(raw, str) else ""
    if not title:
        raise ValidationError("Title must not be blank")
    return title


def parse_song_lines(text: str) -> list[str]:
    """Split a pasted track list into titles, one per non-blank line."""
    return [line.strip() for line in text.splitlines() if line.strip()]
