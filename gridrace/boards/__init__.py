"""
Boards - Built-in race courses.

Each board module exposes a factory returning a fresh Board; boards are
looked up by id when a session is created.
"""

from __future__ import annotations
from typing import Callable

from ..engine_core.board import Board
from .factory_floor import BOARD_ID as FACTORY_FLOOR, create_factory_floor

DEFAULT_BOARD = FACTORY_FLOOR

BOARDS: dict[str, Callable[[], Board]] = {
    FACTORY_FLOOR: create_factory_floor,
}


def get_board(board_id: str | None = None) -> Board:
    """Build a board by id; the default course when no id is given."""
    factory = BOARDS.get(board_id or DEFAULT_BOARD)
    if factory is None:
        raise ValueError(f"Unknown board: {board_id}")
    return factory()


def list_boards() -> list[str]:
    return sorted(BOARDS)


__all__ = [
    "BOARDS",
    "DEFAULT_BOARD",
    "FACTORY_FLOOR",
    "create_factory_floor",
    "get_board",
    "list_boards",
]
