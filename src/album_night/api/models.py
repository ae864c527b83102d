"""Pydantic models for request payloads."""

from pydantic import BaseModel, Field


class CreateSessionRequest(BaseModel):
    """Payload for creating a session."""

    title: str | None = None


class ClaimRequest(BaseModel):
    """Payload for binding a device to a roster slot."""

    rejoin: bool = False


class ScoreRequest(BaseModel):
    """Payload for a participant's score."""

    participant_id: str
    song_index: int = Field(strict=True)
    score: int = Field(strict=True)


class TitleRequest(BaseModel):
    """Payload for renaming the album."""

    title: str


class SongsRequest(BaseModel):
    """Payload for replacing the song list.

    ``text`` is a pasted list with one title per line; ``titles`` is used
    as-is when given.
    """

    text: str | None = None
    titles: list[str] | None = None
