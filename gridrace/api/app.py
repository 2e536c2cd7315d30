"""
FastAPI Application - WebSocket game server.

Endpoints:
    WS     /ws                 Bidirectional game channel (one per client)
    GET    /api/v1/sessions    List live sessions
    GET    /health             Health check

Clients send JSON intents tagged by "type" over /ws and receive state
snapshots, per-register animation logs, acknowledgements and errors.
Every connection gets a fresh id; a returning player sends "reconnect"
with the game code and player id from its earlier acknowledgement.
"""

from contextlib import asynccontextmanager
import json
import uuid

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware

from .. import __version__
from ..config import Settings
from ..logging_config import get_logger, setup_logging
from .schemas import ErrorCode, HealthResponse, SessionListResponse, SessionSummary
from .service import GameService, error_message


def create_app(service: GameService | None = None, settings: Settings | None = None) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        service: Optional GameService instance (creates new if not provided)
        settings: Settings for a new service (read from the environment if omitted)

    Returns:
        FastAPI application instance
    """
    if service is None:
        settings = settings or Settings.from_env()
        service = GameService(settings=settings)
    settings = service.settings
    setup_logging(settings.log_level)
    logger = get_logger("api")

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Server starting (%s)", settings.env)
        yield
        await service.manager.close()
        logger.info("Server stopped")

    app = FastAPI(
        title="Gridrace API",
        description="Real-time server for the Gridrace robot programming race.",
        version=__version__,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.service = service

    # =========================================================================
    # WebSocket Endpoint
    # =========================================================================

    @app.websocket("/ws")
    async def websocket_endpoint(websocket: WebSocket):
        """
        Game channel.

        Messages from client: create, join, reconnect, leave, start,
        program, submit, power_down, vote_disconnect, set_theme, add_ai,
        remove_ai, restart, ping.

        Messages from server: created, joined, reconnected, state,
        animation, error, pong.
        """
        await websocket.accept()
        conn_id = str(uuid.uuid4())
        service.hub.register(conn_id, websocket)
        logger.debug("Connection %s opened", conn_id)

        try:
            while True:
                data = await websocket.receive_text()
                try:
                    message = json.loads(data)
                except json.JSONDecodeError:
                    await service.hub.send(conn_id, error_message("Invalid JSON", ErrorCode.INVALID_MESSAGE))
                    continue
                await service.handle_message(conn_id, message)
        except WebSocketDisconnect:
            logger.debug("Connection %s closed", conn_id)
        finally:
            await service.disconnect(conn_id)

    # =========================================================================
    # Sessions
    # =========================================================================

    @app.get(
        "/api/v1/sessions",
        response_model=SessionListResponse,
        tags=["Sessions"],
        summary="List live sessions",
    )
    async def list_sessions() -> SessionListResponse:
        sessions = [
            SessionSummary(
                game_id=s.code,
                phase=s.state.phase.value,
                player_count=s.state.num_players,
                max_players=s.state.max_players,
                created_at=s.created_at,
            )
            for s in service.manager.list_sessions()
        ]
        return SessionListResponse(sessions=sessions, total=len(sessions))

    # =========================================================================
    # Health Check
    # =========================================================================

    @app.get(
        "/health",
        response_model=HealthResponse,
        tags=["System"],
        summary="Health check",
    )
    async def health_check() -> HealthResponse:
        """Health check endpoint for load balancers."""
        return HealthResponse(
            status="healthy",
            service="gridrace",
            version=__version__,
            active_sessions=len(service.manager.list_sessions()),
        )

    @app.get("/", tags=["System"])
    async def root():
        """Root endpoint with API info."""
        return {
            "name": "Gridrace API",
            "version": __version__,
            "docs": "/api/docs",
            "health": "/health",
            "websocket": "/ws",
        }

    return app
