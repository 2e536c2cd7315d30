"""
API Module - Network interface for clients.

Exposes sessions over a single WebSocket channel:
1. Clients create or join a game by code
2. Program registers and submit
3. Receive state snapshots and per-register animation logs
4. Reconnect with their player id after a dropped connection

All state is session-scoped. No persistent user accounts required.
"""

from .schemas import (
    GameSnapshot,
    StateMessage,
    AnimationMessage,
    AckMessage,
    ErrorMessage,
    ErrorCode,
    HealthResponse,
    SessionListResponse,
    parse_intent,
)
from .service import ConnectionHub, GameService
from .app import create_app

__all__ = [
    # Messages
    "GameSnapshot",
    "StateMessage",
    "AnimationMessage",
    "AckMessage",
    "ErrorMessage",
    "ErrorCode",
    "HealthResponse",
    "SessionListResponse",
    "parse_intent",
    # Service
    "ConnectionHub",
    "GameService",
    "create_app",
]
