"""
Factory Floor - The built-in 12x12 race course.

Three checkpoints wind from the spawn row past a belt line, up beside an
express column and back across the top. Two board lasers cover rows 4
and 6.
"""

from __future__ import annotations

from ..engine_core.board import (
    Board,
    Checkpoint,
    Direction,
    Laser,
    Rotation,
    SpawnPoint,
    Tile,
    Wall,
    create_empty_board,
)

BOARD_ID = "factory_floor"


def create_factory_floor() -> Board:
    board = create_empty_board(12, 12, name="Factory Floor", board_id=BOARD_ID)

    board.spawn_points = [
        SpawnPoint(1, 10, 1),
        SpawnPoint(3, 10, 2),
        SpawnPoint(5, 10, 3),
        SpawnPoint(7, 10, 4),
        SpawnPoint(9, 10, 5),
        SpawnPoint(10, 10, 6),
    ]

    board.checkpoints = [
        Checkpoint(5, 7, 1),
        Checkpoint(9, 3, 2),
        Checkpoint(2, 1, 3),
    ]

    for x, y in [(3, 5), (8, 6), (6, 2)]:
        board.set_tile(x, y, Tile.pit())

    # Belt line along row 8
    for x in range(2, 7):
        board.set_tile(x, 8, Tile.conveyor(Direction.EAST, speed=1))

    # Express column up x=10
    for y in range(4, 8):
        board.set_tile(10, y, Tile.conveyor(Direction.NORTH, speed=2))

    board.set_tile(4, 4, Tile.gear(Rotation.CW))
    board.set_tile(7, 4, Tile.gear(Rotation.CCW))

    board.set_tile(1, 5, Tile.repair())
    board.set_tile(10, 1, Tile.repair())

    board.walls = [
        Wall(5, 5, Direction.NORTH),
        Wall(5, 5, Direction.EAST),
        Wall(2, 3, Direction.SOUTH),
        Wall(8, 2, Direction.WEST),
    ]

    board.lasers = [
        Laser(0, 4, Direction.EAST, strength=1),
        Laser(11, 6, Direction.WEST, strength=1),
    ]

    return board
