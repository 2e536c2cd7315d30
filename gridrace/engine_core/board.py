"""
Board Model - Static factory floor data and pure query helpers.

A board is immutable for the duration of a match. It holds:
- A grid of typed tiles (floor, pit, repair, conveyor, gear, battery)
- Walls, attached to one side of one tile
- Board-mounted lasers
- Checkpoints (visited in order) and spawn points

Everything here is a pure function of the board data. The executor and
the bot simulator both build on the same step/conveyor/beam helpers so a
single robot moves identically in both.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator
import uuid


class Direction(Enum):
    """Cardinal facing / movement direction."""
    NORTH = "north"
    EAST = "east"
    SOUTH = "south"
    WEST = "west"


class Rotation(Enum):
    """A quarter or half turn."""
    CW = "cw"
    CCW = "ccw"
    UTURN = "uturn"


# Clockwise order; rotation is an index offset into this list
DIRECTIONS: list[Direction] = [Direction.NORTH, Direction.EAST, Direction.SOUTH, Direction.WEST]

_ROTATION_OFFSETS = {
    Rotation.CW: 1,
    Rotation.CCW: 3,
    Rotation.UTURN: 2,
}

_DELTAS = {
    Direction.NORTH: (0, -1),
    Direction.EAST: (1, 0),
    Direction.SOUTH: (0, 1),
    Direction.WEST: (-1, 0),
}


def rotate_direction(direction: Direction, rotation: Rotation) -> Direction:
    """Rotate a direction by a quarter turn either way or a U-turn."""
    index = DIRECTIONS.index(direction)
    return DIRECTIONS[(index + _ROTATION_OFFSETS[rotation]) % 4]


def get_direction_delta(direction: Direction) -> tuple[int, int]:
    """Unit vector (dx, dy) for a direction. North is -y."""
    return _DELTAS[direction]


@dataclass(frozen=True)
class Position:
    """A tile coordinate."""
    x: int
    y: int

    def step(self, direction: Direction) -> Position:
        dx, dy = get_direction_delta(direction)
        return Position(self.x + dx, self.y + dy)

    def distance_to(self, other: Position) -> int:
        """Manhattan distance."""
        return abs(self.x - other.x) + abs(self.y - other.y)


# =============================================================================
# Tiles and board features
# =============================================================================

class TileType(Enum):
    FLOOR = "floor"
    PIT = "pit"
    REPAIR = "repair"
    CONVEYOR = "conveyor"
    GEAR = "gear"
    BATTERY = "battery"


@dataclass(frozen=True)
class Tile:
    """
    A board tile.

    The payload fields are only meaningful for some tile types:
    - conveyor: direction, speed (1 or 2), turn (corner conveyors)
    - gear: rotation
    """
    type: TileType = TileType.FLOOR
    direction: Direction | None = None
    speed: int = 1
    turn: Rotation | None = None
    rotation: Rotation | None = None

    @classmethod
    def floor(cls) -> Tile:
        return cls(TileType.FLOOR)

    @classmethod
    def pit(cls) -> Tile:
        return cls(TileType.PIT)

    @classmethod
    def repair(cls) -> Tile:
        return cls(TileType.REPAIR)

    @classmethod
    def battery(cls) -> Tile:
        return cls(TileType.BATTERY)

    @classmethod
    def conveyor(
        cls,
        direction: Direction,
        speed: int = 1,
        turn: Rotation | None = None,
    ) -> Tile:
        if speed not in (1, 2):
            raise ValueError(f"Conveyor speed must be 1 or 2, got {speed}")
        return cls(TileType.CONVEYOR, direction=direction, speed=speed, turn=turn)

    @classmethod
    def gear(cls, rotation: Rotation) -> Tile:
        if rotation == Rotation.UTURN:
            raise ValueError("Gears rotate a quarter turn")
        return cls(TileType.GEAR, rotation=rotation)

    @property
    def is_express(self) -> bool:
        return self.type == TileType.CONVEYOR and self.speed == 2


@dataclass(frozen=True)
class Wall:
    """A wall on one side of one tile."""
    x: int
    y: int
    side: Direction


@dataclass(frozen=True)
class Laser:
    """A board-mounted laser. Fires from (x, y) in `direction`."""
    x: int
    y: int
    direction: Direction
    strength: int = 1


@dataclass(frozen=True)
class Checkpoint:
    x: int
    y: int
    order: int  # 1, 2, 3, ...

    @property
    def position(self) -> Position:
        return Position(self.x, self.y)


@dataclass(frozen=True)
class SpawnPoint:
    x: int
    y: int
    order: int

    @property
    def position(self) -> Position:
        return Position(self.x, self.y)


@dataclass
class Board:
    """
    Static board data for one match.

    tiles is indexed [y][x].
    """
    board_id: str
    name: str
    width: int
    height: int
    tiles: list[list[Tile]]
    walls: list[Wall] = field(default_factory=list)
    lasers: list[Laser] = field(default_factory=list)
    checkpoints: list[Checkpoint] = field(default_factory=list)
    spawn_points: list[SpawnPoint] = field(default_factory=list)

    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def tile_at(self, x: int, y: int) -> Tile | None:
        """Tile at (x, y), or None when off the board."""
        if not self.in_bounds(x, y):
            return None
        return self.tiles[y][x]

    def set_tile(self, x: int, y: int, tile: Tile) -> None:
        """Place a tile while building a board. Out-of-bounds is ignored."""
        if self.in_bounds(x, y):
            self.tiles[y][x] = tile

    def has_wall(self, x: int, y: int, side: Direction) -> bool:
        return any(w.x == x and w.y == y and w.side == side for w in self.walls)

    def checkpoint_at(self, x: int, y: int) -> Checkpoint | None:
        for checkpoint in self.checkpoints:
            if checkpoint.x == x and checkpoint.y == y:
                return checkpoint
        return None

    def next_checkpoint(self, last_checkpoint: int) -> Checkpoint | None:
        """The checkpoint a robot must reach next, or None when finished."""
        for checkpoint in self.checkpoints:
            if checkpoint.order == last_checkpoint + 1:
                return checkpoint
        return None

    def spawn_position(self, seat: int) -> Position:
        """Spawn position for a seat; falls back to the top row."""
        ordered = sorted(self.spawn_points, key=lambda s: s.order)
        if seat < len(ordered):
            return ordered[seat].position
        return Position(seat % self.width, 0)


def create_empty_board(
    width: int,
    height: int,
    name: str = "Custom Board",
    board_id: str | None = None,
) -> Board:
    """Create a board of plain floor tiles."""
    return Board(
        board_id=board_id or str(uuid.uuid4()),
        name=name,
        width=width,
        height=height,
        tiles=[[Tile.floor() for _ in range(width)] for _ in range(height)],
    )


# =============================================================================
# Queries
# =============================================================================

def is_hazard(board: Board, x: int, y: int) -> bool:
    """True if (x, y) is off the board or a pit."""
    tile = board.tile_at(x, y)
    return tile is None or tile.type == TileType.PIT


def is_pit(board: Board, x: int, y: int) -> bool:
    tile = board.tile_at(x, y)
    return tile is not None and tile.type == TileType.PIT


def is_wall_blocking(board: Board, x: int, y: int, direction: Direction) -> bool:
    """
    Check if a wall blocks leaving (x, y) towards `direction`.

    Walls belong to a single tile side, so both the exit side of the
    source tile and the entry side of the destination tile are checked.
    """
    if board.has_wall(x, y, direction):
        return True
    dx, dy = get_direction_delta(direction)
    opposite = rotate_direction(direction, Rotation.UTURN)
    return board.has_wall(x + dx, y + dy, opposite)


class StepResult(Enum):
    """Outcome of trying to step one tile."""
    BLOCKED = "blocked"  # wall in the way, robot stays
    OFF_BOARD = "off_board"  # robot falls off the edge
    MOVED = "moved"  # destination is on the board


def try_step(board: Board, position: Position, direction: Direction) -> tuple[StepResult, Position]:
    """
    Resolve the board-only part of a one-tile step.

    Walls are checked before bounds, matching the movement rules.
    Occupancy and pits are the caller's concern.
    """
    if is_wall_blocking(board, position.x, position.y, direction):
        return StepResult.BLOCKED, position
    target = position.step(direction)
    if not board.in_bounds(target.x, target.y):
        return StepResult.OFF_BOARD, target
    return StepResult.MOVED, target


def conveyor_target(board: Board, position: Position) -> tuple[Tile, Position] | None:
    """
    Where a conveyor under `position` would carry a robot.

    Returns None if there is no conveyor, or the move is blocked by a
    wall or the board edge. Conveyors never push robots off the board.
    """
    tile = board.tile_at(position.x, position.y)
    if tile is None or tile.type != TileType.CONVEYOR or tile.direction is None:
        return None
    result, target = try_step(board, position, tile.direction)
    if result != StepResult.MOVED:
        return None
    return tile, target


def trace_beam(board: Board, origin: Position, direction: Direction) -> Iterator[Position]:
    """
    Yield the tiles a beam covers, starting at `origin`.

    The beam stops after the first tile whose exit towards `direction`
    is walled, or at the board edge.
    """
    current = origin
    while board.in_bounds(current.x, current.y):
        yield current
        if is_wall_blocking(board, current.x, current.y, direction):
            return
        current = current.step(direction)


def laser_damage_at(board: Board, x: int, y: int) -> int:
    """Total board-laser strength covering (x, y), ignoring robots."""
    target = Position(x, y)
    total = 0
    for laser in board.lasers:
        if any(p == target for p in trace_beam(board, Position(laser.x, laser.y), laser.direction)):
            total += laser.strength
    return total


def is_in_laser_path(board: Board, x: int, y: int) -> bool:
    return laser_damage_at(board, x, y) > 0
