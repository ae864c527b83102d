"""Admin control surface with simple token auth."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status

from album_night.api.models import CreateSessionRequest, SongsRequest, TitleRequest
from album_night.domain.errors import ValidationError
from album_night.services.results import build_board

if TYPE_CHECKING:
    from album_night.containers import AppContainer
    from album_night.services.sessions import TransitionResult

router = APIRouter(prefix="/admin", tags=["admin"])


def _get_admin_token(request: Request) -> str:
    container: AppContainer = request.app.state.container
    return container.settings.admin_token


async def require_admin(
    x_admin_token: str | None = Header(default=None),
    admin_token: str = Depends(_get_admin_token),
) -> None:
    """Ensure requests include a valid admin token."""
    if not x_admin_token or x_admin_token != admin_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)


def _container(request: Request) -> AppContainer:
    return request.app.state.container


def _result(result: TransitionResult) -> dict[str, object]:
    return {"board": build_board(result.snapshot), "warning": result.warning}


@router.get("/health", dependencies=[Depends(require_admin)])
async def admin_health() -> dict[str, str]:
    """Admin health check endpoint."""
    return {"status": "ok"}


@router.post("/sessions", dependencies=[Depends(require_admin)])
async def create_session(
    payload: CreateSessionRequest, request: Request
) -> dict[str, object]:
    """Create a lobby session with a fresh code."""
    snapshot = _container(request).session_service.create_session(payload.title)
    return {"board": build_board(snapshot), "warning": None}


@router.put("/sessions/{code}/title", dependencies=[Depends(require_admin)])
async def rename(
    code: str, payload: TitleRequest, request: Request
) -> dict[str, object]:
    """Rename the album."""
    return _result(_container(request).session_service.rename(code, payload.title))


@router.put("/sessions/{code}/songs", dependencies=[Depends(require_admin)])
async def replace_songs(
    code: str, payload: SongsRequest, request: Request
) -> dict[str, object]:
    """Replace the song list from a paste or an explicit list."""
    service = _container(request).session_service
    if payload.titles is not None:
        return _result(service.replace_songs(code, payload.titles))
    if payload.text is not None:
        return _result(service.import_songs(code, payload.text))
    raise ValidationError("Provide either 'text' or 'titles'")


@router.post("/sessions/{code}/start", dependencies=[Depends(require_admin)])
async def start_album(code: str, request: Request) -> dict[str, object]:
    """Start scoring the first song."""
    return _result(_container(request).session_service.start_album(code))


@router.post("/sessions/{code}/lock", dependencies=[Depends(require_admin)])
async def lock_scores(code: str, request: Request) -> dict[str, object]:
    """Lock in scores for the current song."""
    return _result(_container(request).session_service.lock_scores(code))


@router.post("/sessions/{code}/next", dependencies=[Depends(require_admin)])
async def advance(code: str, request: Request) -> dict[str, object]:
    """Advance to the next song or to results."""
    return _result(_container(request).session_service.advance(code))


@router.post("/sessions/{code}/awards", dependencies=[Depends(require_admin)])
async def show_awards(code: str, request: Request) -> dict[str, object]:
    """Start the awards reveal."""
    return _result(_container(request).session_service.show_awards(code))


@router.post("/sessions/{code}/complete", dependencies=[Depends(require_admin)])
async def finish(code: str, request: Request) -> dict[str, object]:
    """Complete the session."""
    return _result(_container(request).session_service.finish(code))


@router.post("/sessions/{code}/reset", dependencies=[Depends(require_admin)])
async def reset(code: str, request: Request) -> dict[str, object]:
    """Clear all scores and claims and return to the lobby."""
    return _result(_container(request).session_service.reset(code))


@router.post(
    "/sessions/{code}/participants/{participant_id}/release",
    dependencies=[Depends(require_admin)],
)
async def release_participant(
    code: str, participant_id: str, request: Request
) -> dict[str, object]:
    """Free a roster slot."""
    container = _container(request)
    container.participant_service.release(code, participant_id)
    return {"board": container.results_service.board(code), "warning": None}
