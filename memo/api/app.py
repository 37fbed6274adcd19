"""
FastAPI Application - REST API for game front ends.

Endpoints:
    GET    /api/health                        Health check
    GET    /api/v1/game                       Get the table
    POST   /api/v1/game/flip/{index}          Flip a card
    POST   /api/v1/game/reset                 Play again
    PUT    /api/v1/settings                   Apply settings (new session)
    PUT    /api/v1/players/{id}/name          Rename a player
    DELETE /api/v1/data                       Wipe saved data
    GET    /api/v1/notices                    Pending error notices
    POST   /api/v1/notices/{id}/retry         Retry a failed operation
    DELETE /api/v1/notices/{id}               Dismiss a notice
    WS     /api/v1/game/ws                    Live table updates

Mismatched cards flip back on their own after the reveal delay; clients
see that through GET /game or the WebSocket.

All responses are JSON with explicit Pydantic schemas.
"""

from contextlib import asynccontextmanager
from typing import Annotated, Union
import asyncio
import logging
import os

from .. import __version__

logger = logging.getLogger(__name__)

# Environment configuration
MEMO_ENV = os.getenv("MEMO_ENV", "development")
MEMO_DATA_DIR = os.getenv("MEMO_DATA_DIR", None)
ALLOWED_ORIGINS = os.getenv("ALLOWED_ORIGINS", "*").split(",")


def create_app(service=None):
    """
    Create the FastAPI application.

    Args:
        service: Optional APIService instance (creates new if not provided)

    Returns:
        FastAPI application instance
    """
    from fastapi import FastAPI, Path, WebSocket, WebSocketDisconnect
    from fastapi.middleware.cors import CORSMiddleware
    from fastapi.responses import JSONResponse

    from .service import APIService, snapshot_to_response
    from .schemas import (
        # Request models
        SettingsRequest,
        RenamePlayerRequest,
        # Response models
        GameStateResponse,
        FlipResponse,
        RenamePlayerResponse,
        ResetDataResponse,
        NoticeListResponse,
        RetryResponse,
        DismissNoticeResponse,
        ErrorResponse,
        HealthResponse,
    )

    api_service = service or APIService(data_dir=MEMO_DATA_DIR)

    # WebSocket connections
    ws_connections: list[WebSocket] = []

    async def broadcast(message: dict):
        """Send a message to every connected client, dropping dead ones."""
        dead_connections = []
        for ws in ws_connections:
            try:
                await ws.send_json(message)
            except Exception:
                dead_connections.append(ws)
        for ws in dead_connections:
            ws_connections.remove(ws)

    def on_snapshot(snapshot):
        if not ws_connections:
            return
        payload = snapshot_to_response(snapshot).model_dump(mode="json")
        try:
            asyncio.get_running_loop().create_task(
                broadcast({"type": "state_update", "payload": payload})
            )
        except RuntimeError:
            logger.debug("No running loop; skipping broadcast")

    @asynccontextmanager
    async def lifespan(app):
        await api_service.start()
        unsubscribe = api_service.engine.subscribe(on_snapshot)
        logger.info("Memo API started (%s)", MEMO_ENV)
        try:
            yield
        finally:
            unsubscribe()
            await api_service.shutdown()

    app = FastAPI(
        title="Memo Game API",
        description="""
Memory-matching card game for 1-4 players.

## Turn flow

1. `POST /game/flip/{index}` twice.
2. **Match**: the pair stays up, the player scores and goes again.
3. **Mismatch**: both cards turn back after about a second and the turn passes.
4. Flips while a pair is waiting to turn back are ignored (`accepted=false`).

## Error Codes

| Code | Description |
|------|-------------|
| `PLAYER_NOT_FOUND` | No player with that id |
| `NOTICE_NOT_FOUND` | No pending notice with that id |
| `VALIDATION_ERROR` | Malformed request |
        """,
        version=__version__,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # =========================================================================
    # Error helpers
    # =========================================================================

    def make_error_response(error: ErrorResponse, status_code: int = 404) -> JSONResponse:
        return JSONResponse(status_code=status_code, content=error.model_dump(mode="json"))

    @app.get("/api/health", response_model=HealthResponse, tags=["Meta"])
    async def health() -> HealthResponse:
        return HealthResponse(status="ok", service="memo", version=__version__)

    # =========================================================================
    # Game Endpoints
    # =========================================================================

    @app.get(
        "/api/v1/game",
        response_model=GameStateResponse,
        tags=["Game"],
        summary="Get the current table",
    )
    async def get_game() -> GameStateResponse:
        return api_service.get_state()

    @app.post(
        "/api/v1/game/flip/{index}",
        response_model=FlipResponse,
        tags=["Game"],
        summary="Flip a card",
    )
    async def flip_card(
        index: Annotated[int, Path(description="Card position on the table")],
    ) -> FlipResponse:
        """
        Flip the card at `index`.

        Flips the rules do not allow (game over, card already up, pair
        pending) are ignored: `accepted=false` with a `reason`.
        """
        return await api_service.flip_card(index)

    @app.post(
        "/api/v1/game/reset",
        response_model=GameStateResponse,
        tags=["Game"],
        summary="Play again with the same settings",
    )
    async def reset_game() -> GameStateResponse:
        return await api_service.reset_game()

    # =========================================================================
    # Settings & Players
    # =========================================================================

    @app.put(
        "/api/v1/settings",
        response_model=GameStateResponse,
        tags=["Settings"],
        summary="Apply settings and start a new game",
    )
    async def apply_settings(body: SettingsRequest) -> GameStateResponse:
        """Player count is clamped to 1-4; unknown themes fall back to Animals."""
        return await api_service.apply_settings(body)

    @app.put(
        "/api/v1/players/{player_id}/name",
        response_model=RenamePlayerResponse,
        responses={404: {"model": ErrorResponse}},
        tags=["Settings"],
        summary="Rename a player",
    )
    async def rename_player(
        player_id: int,
        body: RenamePlayerRequest,
    ) -> Union[RenamePlayerResponse, JSONResponse]:
        response = await api_service.rename_player(player_id, body)
        if isinstance(response, ErrorResponse):
            return make_error_response(response)
        return response

    @app.delete(
        "/api/v1/data",
        response_model=ResetDataResponse,
        tags=["Settings"],
        summary="Erase saved names, records and settings",
    )
    async def reset_all_data() -> ResetDataResponse:
        return await api_service.reset_all_data()

    # =========================================================================
    # Notices
    # =========================================================================

    @app.get("/api/v1/notices", response_model=NoticeListResponse, tags=["Notices"])
    async def list_notices() -> NoticeListResponse:
        return api_service.list_notices()

    @app.post(
        "/api/v1/notices/{notice_id}/retry",
        response_model=RetryResponse,
        responses={404: {"model": ErrorResponse}},
        tags=["Notices"],
        summary="Retry the operation behind a notice",
    )
    async def retry_notice(notice_id: int) -> Union[RetryResponse, JSONResponse]:
        response = await api_service.retry_notice(notice_id)
        if isinstance(response, ErrorResponse):
            return make_error_response(response)
        return response

    @app.delete(
        "/api/v1/notices/{notice_id}",
        response_model=DismissNoticeResponse,
        responses={404: {"model": ErrorResponse}},
        tags=["Notices"],
        summary="Dismiss a notice",
    )
    async def dismiss_notice(notice_id: int) -> Union[DismissNoticeResponse, JSONResponse]:
        response = api_service.dismiss_notice(notice_id)
        if isinstance(response, ErrorResponse):
            return make_error_response(response)
        return response

    # =========================================================================
    # WebSocket
    # =========================================================================

    @app.websocket("/api/v1/game/ws")
    async def game_updates(websocket: WebSocket):
        """Push the table to the client after every change."""
        await websocket.accept()
        ws_connections.append(websocket)
        await websocket.send_json({
            "type": "state_update",
            "payload": api_service.get_state().model_dump(mode="json"),
        })
        try:
            while True:
                await websocket.receive_text()
        except WebSocketDisconnect:
            pass
        finally:
            if websocket in ws_connections:
                ws_connections.remove(websocket)

    app.state.service = api_service
    return app


# For running directly: uvicorn memo.api.app:app
app = create_app()
