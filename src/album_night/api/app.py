"""FastAPI application factory."""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, WebSocket, WebSocketDisconnect, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from album_night.api.admin import router as admin_router
from album_night.api.models import ClaimRequest, ScoreRequest
from album_night.app_logging import configure_logging
from album_night.containers import AppContainer
from album_night.domain.errors import (
    AlbumNightError,
    ErrorKind,
    PartialSequenceFailure,
)
from album_night.services.feed import SnapshotWatcher
from album_night.services.results import (
    build_board,
    serialize_awards,
    serialize_participant,
    serialize_score,
)

_UNPROCESSABLE = 422
_POLICY_VIOLATION = 1008

_STATUS_BY_KIND = {
    ErrorKind.INVALID_INPUT: _UNPROCESSABLE,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.NOT_ALLOWED: status.HTTP_409_CONFLICT,
    ErrorKind.UNAVAILABLE: status.HTTP_503_SERVICE_UNAVAILABLE,
    ErrorKind.PARTIAL_FAILURE: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    app.include_router(admin_router)

    @app.exception_handler(AlbumNightError)
    async def album_night_error(
        _request: Request, exc: AlbumNightError
    ) -> JSONResponse:
        if exc.kind in {ErrorKind.UNAVAILABLE, ErrorKind.PARTIAL_FAILURE}:
            logger.warning("Store failure: %s", exc.message)
        return JSONResponse(
            status_code=_STATUS_BY_KIND[exc.kind], content=error_body(exc)
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_error(
        _request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=_UNPROCESSABLE,
            content={
                "error": ErrorKind.INVALID_INPUT.value,
                "detail": str(exc.errors()[0].get("msg")) if exc.errors() else "",
            },
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.get("/sessions/{code}")
    async def session_board(code: str, request: Request) -> dict[str, object]:
        """Return the snapshot and aggregates for display devices."""
        state_container: AppContainer = request.app.state.container
        return state_container.results_service.board(code)

    @app.get("/sessions/{code}/awards")
    async def session_awards(code: str, request: Request) -> dict[str, object]:
        """Return the awards computed from current scores."""
        state_container: AppContainer = request.app.state.container
        return serialize_awards(state_container.results_service.awards(code))

    @app.post("/sessions/{code}/participants/{participant_id}/claim")
    async def claim_participant(
        code: str, participant_id: str, payload: ClaimRequest, request: Request
    ) -> dict[str, object]:
        """Bind this device to a roster slot."""
        state_container: AppContainer = request.app.state.container
        result = state_container.participant_service.claim(
            code, participant_id, rejoin=payload.rejoin
        )
        return {
            "participant": serialize_participant(result.participant),
            "rejoined": result.rejoined,
        }

    @app.post("/sessions/{code}/scores")
    async def submit_score(
        code: str, payload: ScoreRequest, request: Request
    ) -> dict[str, object]:
        """Record this device's score for the current song."""
        state_container: AppContainer = request.app.state.container
        row = state_container.participant_service.submit_score(
            code, payload.participant_id, payload.song_index, payload.score
        )
        return {"score": serialize_score(row)}

    @app.websocket("/sessions/{code}/feed")
    async def session_feed(websocket: WebSocket, code: str) -> None:
        """Push a fresh board to the device after every change."""
        state_container: AppContainer = websocket.app.state.container
        await websocket.accept()
        pusher = asyncio.create_task(
            _push_boards(websocket, state_container.snapshot_watcher, code)
        )
        try:
            while True:
                await websocket.receive_text()
        except WebSocketDisconnect:
            logger.info("Feed client for %s disconnected", code)
        finally:
            pusher.cancel()

    return app


async def _push_boards(
    websocket: WebSocket, watcher: SnapshotWatcher, code: str
) -> None:
    try:
        async for snapshot in watcher.watch(code):
            await websocket.send_json(build_board(snapshot))
    except AlbumNightError as exc:
        await websocket.send_json(error_body(exc))
        await websocket.close(code=_POLICY_VIOLATION)


def error_body(exc: AlbumNightError) -> dict[str, object]:
    """Return the tagged error payload sent to devices."""
    body: dict[str, object] = {"error": exc.kind.value, "detail": exc.message}
    if isinstance(exc, PartialSequenceFailure):
        body["completed_steps"] = exc.completed_steps
        body["failed_step"] = exc.failed_step
    return body
