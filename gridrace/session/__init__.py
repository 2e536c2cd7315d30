"""
Session Module - Live multiplayer matches.

A session represents one match from lobby to finish:
- Created when a host asks for a new game (four-letter code)
- Holds the authoritative GameState
- Runs paced rounds and disconnect timers
- Deleted when its last human leaves

Sessions are EPHEMERAL:
- No persistence to database
- A server restart ends every match
"""

from .manager import GameSession, SessionManager, Transport
from .round_runner import RoundOutcome, RoundRunner
from .timers import DelayedTasks

__all__ = [
    "SessionManager",
    "GameSession",
    "Transport",
    "RoundRunner",
    "RoundOutcome",
    "DelayedTasks",
]
