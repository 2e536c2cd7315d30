"""
Tests for the board model.

Tests:
- Direction arithmetic
- Wall, edge and conveyor stepping
- Laser beam tracing
- Checkpoint and spawn lookups
"""

import pytest

from ..engine_core.board import (
    Direction,
    Laser,
    Position,
    Rotation,
    StepResult,
    Tile,
    TileType,
    Wall,
    conveyor_target,
    create_empty_board,
    get_direction_delta,
    is_hazard,
    is_wall_blocking,
    laser_damage_at,
    rotate_direction,
    trace_beam,
    try_step,
)


class TestDirections:

    @pytest.mark.parametrize("start,rotation,expected", [
        (Direction.NORTH, Rotation.CW, Direction.EAST),
        (Direction.NORTH, Rotation.CCW, Direction.WEST),
        (Direction.WEST, Rotation.CW, Direction.NORTH),
        (Direction.EAST, Rotation.UTURN, Direction.WEST),
        (Direction.SOUTH, Rotation.UTURN, Direction.NORTH),
    ])
    def test_rotate(self, start, rotation, expected):
        assert rotate_direction(start, rotation) == expected

    def test_north_is_negative_y(self):
        assert get_direction_delta(Direction.NORTH) == (0, -1)
        assert Position(3, 3).step(Direction.SOUTH) == Position(3, 4)

    def test_manhattan_distance(self):
        assert Position(1, 1).distance_to(Position(4, 5)) == 7


class TestStepping:

    def test_plain_step(self, open_board):
        assert try_step(open_board, Position(2, 2), Direction.EAST) == (StepResult.MOVED, Position(3, 2))

    def test_wall_on_source_side_blocks(self, open_board):
        open_board.walls.append(Wall(2, 2, Direction.EAST))
        result, position = try_step(open_board, Position(2, 2), Direction.EAST)
        assert result == StepResult.BLOCKED
        assert position == Position(2, 2)

    def test_wall_on_destination_side_blocks(self, open_board):
        open_board.walls.append(Wall(3, 2, Direction.WEST))
        assert is_wall_blocking(open_board, 2, 2, Direction.EAST)
        assert try_step(open_board, Position(2, 2), Direction.EAST)[0] == StepResult.BLOCKED

    def test_wall_checked_before_edge(self, small_board):
        small_board.walls.append(Wall(0, 0, Direction.NORTH))
        assert try_step(small_board, Position(0, 0), Direction.NORTH)[0] == StepResult.BLOCKED

    def test_off_board(self, small_board):
        result, target = try_step(small_board, Position(0, 0), Direction.NORTH)
        assert result == StepResult.OFF_BOARD
        assert target == Position(0, -1)

    def test_hazards(self, small_board):
        small_board.set_tile(2, 2, Tile.pit())
        assert is_hazard(small_board, 2, 2)
        assert is_hazard(small_board, -1, 0)
        assert not is_hazard(small_board, 1, 1)


class TestConveyors:

    def test_conveyor_carries_one_tile(self, open_board):
        open_board.set_tile(4, 4, Tile.conveyor(Direction.SOUTH))
        tile, target = conveyor_target(open_board, Position(4, 4))
        assert target == Position(4, 5)
        assert not tile.is_express

    def test_conveyor_stops_at_edge(self, small_board):
        small_board.set_tile(4, 0, Tile.conveyor(Direction.EAST, speed=2))
        assert conveyor_target(small_board, Position(4, 0)) is None

    def test_conveyor_stops_at_wall(self, open_board):
        open_board.set_tile(4, 4, Tile.conveyor(Direction.EAST))
        open_board.walls.append(Wall(4, 4, Direction.EAST))
        assert conveyor_target(open_board, Position(4, 4)) is None

    def test_floor_is_not_a_conveyor(self, open_board):
        assert conveyor_target(open_board, Position(1, 1)) is None

    def test_invalid_tiles_rejected(self):
        with pytest.raises(ValueError):
            Tile.conveyor(Direction.NORTH, speed=3)
        with pytest.raises(ValueError):
            Tile.gear(Rotation.UTURN)


class TestLasers:

    def test_beam_runs_to_edge(self, small_board):
        beam = list(trace_beam(small_board, Position(0, 2), Direction.EAST))
        assert beam == [Position(x, 2) for x in range(5)]

    def test_beam_stops_after_walled_tile(self, small_board):
        small_board.walls.append(Wall(2, 2, Direction.EAST))
        beam = list(trace_beam(small_board, Position(0, 2), Direction.EAST))
        assert beam[-1] == Position(2, 2)

    def test_strengths_add_up(self, small_board):
        small_board.lasers = [
            Laser(0, 1, Direction.EAST, strength=1),
            Laser(3, 4, Direction.NORTH, strength=2),
        ]
        assert laser_damage_at(small_board, 3, 1) == 3
        assert laser_damage_at(small_board, 1, 1) == 1
        assert laser_damage_at(small_board, 1, 3) == 0

    def test_factory_floor_lasers(self, factory_floor):
        assert laser_damage_at(factory_floor, 5, 4) == 1
        assert laser_damage_at(factory_floor, 0, 6) == 1
        assert laser_damage_at(factory_floor, 5, 5) == 0


class TestLookups:

    def test_next_checkpoint_in_order(self, factory_floor):
        assert factory_floor.next_checkpoint(0).order == 1
        assert factory_floor.next_checkpoint(2).position == Position(2, 1)
        assert factory_floor.next_checkpoint(3) is None

    def test_spawn_points_by_seat(self, factory_floor):
        assert factory_floor.spawn_position(0) == Position(1, 10)
        assert factory_floor.spawn_position(5) == Position(10, 10)

    def test_spawn_fallback_past_listed_points(self, factory_floor):
        assert factory_floor.spawn_position(7) == Position(7, 0)

    def test_tile_lookup(self, factory_floor):
        assert factory_floor.tile_at(3, 5).type == TileType.PIT
        assert factory_floor.tile_at(10, 5).is_express
        assert factory_floor.tile_at(12, 0) is None

    def test_empty_board_is_floor(self):
        board = create_empty_board(3, 2)
        assert board.width == 3 and board.height == 2
        assert all(t.type == TileType.FLOOR for row in board.tiles for t in row)
