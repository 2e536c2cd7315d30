"""
Pytest fixtures for Gridrace tests.
"""

import itertools
import random

import pytest

from ..boards import create_factory_floor
from ..engine_core.board import Board, Direction, Position, create_empty_board
from ..engine_core.cards import Card, CardType
from ..engine_core.state import GameState, Player, create_player


@pytest.fixture
def rng() -> random.Random:
    """Seeded RNG so shuffles and AI picks are repeatable."""
    return random.Random(1234)


@pytest.fixture
def open_board() -> Board:
    """10x10 board of plain floor: no walls, lasers or checkpoints."""
    return create_empty_board(10, 10, name="Open", board_id="open")


@pytest.fixture
def small_board() -> Board:
    return create_empty_board(5, 5, name="Small", board_id="small")


@pytest.fixture
def factory_floor() -> Board:
    return create_factory_floor()


@pytest.fixture
def make_state():
    """Factory for a state on a given board."""
    def _make(board: Board, **kwargs) -> GameState:
        return GameState(game_id="TEST", board=board, **kwargs)
    return _make


@pytest.fixture
def add_player():
    """
    Factory that seats a player with their robot at (x, y).

    The spawn position is the starting tile unless given.
    """
    def _add(
        state: GameState,
        player_id: str,
        x: int,
        y: int,
        direction: Direction = Direction.NORTH,
        spawn: Position | None = None,
        **kwargs,
    ) -> Player:
        seat = state.num_players
        player = create_player(player_id, player_id.title(), seat, spawn or Position(x, y), **kwargs)
        player.robot.position = Position(x, y)
        player.robot.direction = direction
        state.players.append(player)
        if not state.host_id:
            state.host_id = player_id
        return player
    return _add


@pytest.fixture
def make_card():
    """Factory for cards with unique ids."""
    counter = itertools.count(1)

    def _make(card_type: CardType, priority: int = 0) -> Card:
        return Card(card_id=f"c{next(counter)}", type=card_type, priority=priority)
    return _make
