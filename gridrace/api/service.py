"""
API Service - Glue between WebSocket connections and the session manager.

The service:
1. Keeps the connection id -> socket map (the manager's Transport)
2. Validates inbound messages into intents
3. Dispatches each intent to the matching SessionManager operation
4. Reports rejected operations to the caller only

This layer knows nothing about FastAPI beyond needing an object with an
async `send_json` per connection.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Protocol

from pydantic import ValidationError

from ..config import Settings
from ..engine_core.events import AnimationEvent
from ..errors import GameError
from ..logging_config import get_logger
from ..session import GameSession, SessionManager, Transport
from .schemas import (
    AddAIIntent,
    AnimationMessage,
    CreateIntent,
    ErrorCode,
    ErrorMessage,
    GameSnapshot,
    JoinIntent,
    LeaveIntent,
    PingIntent,
    PowerDownIntent,
    ProgramIntent,
    ReconnectIntent,
    RemoveAIIntent,
    RestartIntent,
    SetThemeIntent,
    StartIntent,
    StateMessage,
    SubmitIntent,
    VoteDisconnectIntent,
    parse_intent,
)


logger = get_logger("api")


class Socket(Protocol):
    async def send_json(self, data: Any) -> None: ...


class ConnectionHub(Transport):
    """
    Outbound fan-out to live sockets.

    A socket that fails to send is dropped from the hub; the session
    learns about it when the endpoint reports the disconnect.
    """

    def __init__(self) -> None:
        self._sockets: dict[str, Socket] = {}

    def register(self, conn_id: str, socket: Socket) -> None:
        self._sockets[conn_id] = socket

    def unregister(self, conn_id: str) -> None:
        self._sockets.pop(conn_id, None)

    def __len__(self) -> int:
        return len(self._sockets)

    async def send(self, conn_id: str, message: dict[str, Any]) -> None:
        socket = self._sockets.get(conn_id)
        if socket is None:
            return
        try:
            await socket.send_json(message)
        except Exception as exc:
            logger.warning("Dropping connection %s after send failure: %s", conn_id, exc)
            self.unregister(conn_id)

    async def broadcast_state(self, session: GameSession) -> None:
        message = StateMessage(state=GameSnapshot.from_state(session.state)).model_dump(
            mode="json", by_alias=True,
        )
        for conn_id in list(session.connections):
            await self.send(conn_id, message)

    async def broadcast_animation(
        self,
        session: GameSession,
        register_index: int,
        events: list[AnimationEvent],
    ) -> None:
        message = AnimationMessage(
            register_index=register_index,
            events=[e.to_dict() for e in events],
        ).model_dump(mode="json", by_alias=True)
        for conn_id in list(session.connections):
            await self.send(conn_id, message)


def error_message(message: str, kind: ErrorCode) -> dict[str, Any]:
    return ErrorMessage(message=message, kind=kind).model_dump(mode="json", by_alias=True)


@dataclass
class GameService:
    """
    Main service for the game server.

    Usage:
        service = GameService()
        service.hub.register(conn_id, websocket)
        await service.handle_message(conn_id, {"type": "create", "playerName": "Ada"})
        ...
        await service.disconnect(conn_id)
    """
    settings: Settings = field(default_factory=Settings)
    hub: ConnectionHub = field(default_factory=ConnectionHub)
    manager: SessionManager | None = None

    def __post_init__(self):
        if self.manager is None:
            self.manager = SessionManager(self.hub, self.settings)
        self._handlers: dict[type, Callable[[str, Any], Awaitable[None]]] = {
            CreateIntent: self._on_create,
            JoinIntent: self._on_join,
            ReconnectIntent: self._on_reconnect,
            LeaveIntent: self._on_leave,
            StartIntent: self._on_start,
            ProgramIntent: self._on_program,
            SubmitIntent: self._on_submit,
            PowerDownIntent: self._on_power_down,
            VoteDisconnectIntent: self._on_vote,
            SetThemeIntent: self._on_set_theme,
            AddAIIntent: self._on_add_ai,
            RemoveAIIntent: self._on_remove_ai,
            RestartIntent: self._on_restart,
            PingIntent: self._on_ping,
        }

    async def handle_message(self, conn_id: str, data: Any) -> None:
        """Validate and dispatch one inbound message. Never raises GameError."""
        try:
            intent = parse_intent(data)
        except ValidationError as exc:
            logger.debug("Invalid message from %s: %s", conn_id, exc.errors())
            await self.hub.send(conn_id, error_message("Invalid message", ErrorCode.INVALID_MESSAGE))
            return

        handler = self._handlers[type(intent)]
        try:
            await handler(conn_id, intent)
        except GameError as exc:
            await self.hub.send(conn_id, error_message(exc.message, ErrorCode(exc.kind.value)))
        except Exception:
            logger.exception("Unhandled error processing %s from %s", intent.type, conn_id)
            await self.hub.send(conn_id, error_message("Internal server error", ErrorCode.INTERNAL_ERROR))

    async def disconnect(self, conn_id: str) -> None:
        self.hub.unregister(conn_id)
        await self.manager.handle_disconnect(conn_id)

    # =========================================================================
    # Intent handlers
    # =========================================================================

    async def _on_create(self, conn_id: str, intent: CreateIntent) -> None:
        await self.manager.create_game(conn_id, intent.player_name)

    async def _on_join(self, conn_id: str, intent: JoinIntent) -> None:
        await self.manager.join_game(conn_id, intent.game_id, intent.player_name)

    async def _on_reconnect(self, conn_id: str, intent: ReconnectIntent) -> None:
        await self.manager.reconnect(conn_id, intent.game_id, intent.player_id)

    async def _on_leave(self, conn_id: str, intent: LeaveIntent) -> None:
        await self.manager.leave_game(conn_id)

    async def _on_start(self, conn_id: str, intent: StartIntent) -> None:
        await self.manager.start_game(conn_id)

    async def _on_program(self, conn_id: str, intent: ProgramIntent) -> None:
        await self.manager.program_register(conn_id, intent.register_index, intent.card_id)

    async def _on_submit(self, conn_id: str, intent: SubmitIntent) -> None:
        await self.manager.submit_program(conn_id)

    async def _on_power_down(self, conn_id: str, intent: PowerDownIntent) -> None:
        await self.manager.toggle_power_down(conn_id)

    async def _on_vote(self, conn_id: str, intent: VoteDisconnectIntent) -> None:
        await self.manager.vote_disconnect(conn_id, intent.option)

    async def _on_set_theme(self, conn_id: str, intent: SetThemeIntent) -> None:
        await self.manager.set_theme(conn_id, intent.theme)

    async def _on_add_ai(self, conn_id: str, intent: AddAIIntent) -> None:
        await self.manager.add_ai(conn_id, intent.difficulty)

    async def _on_remove_ai(self, conn_id: str, intent: RemoveAIIntent) -> None:
        await self.manager.remove_ai(conn_id, intent.player_id)

    async def _on_restart(self, conn_id: str, intent: RestartIntent) -> None:
        await self.manager.restart_game(conn_id)

    async def _on_ping(self, conn_id: str, intent: PingIntent) -> None:
        await self.hub.send(conn_id, {"type": "pong"})
