"""
Heuristic Evaluator - Single-robot simulation and position scoring.

The simulator replays a card sequence for one robot using the same
step, conveyor and beam helpers as the RoundExecutor, so for a robot
alone on the board both agree on where it ends up and whether it
survives. Other robots are ignored for tractability.

The evaluator assigns a numeric score to a simulated position:
- Destroyed dominates everything else
- Distance to the next checkpoint, bonus for standing on it
- Laser exposure and accumulated damage
- Repair tiles when damaged

Weights can be adjusted per difficulty profile.
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Sequence

from ..engine_core.board import (
    Board,
    Direction,
    Position,
    Rotation,
    StepResult,
    TileType,
    conveyor_target,
    is_in_laser_path,
    is_pit,
    laser_damage_at,
    rotate_direction,
    try_step,
)
from ..engine_core.cards import Card, CardType, MOVE_STEPS, CARD_ROTATIONS
from ..engine_core.state import MAX_DAMAGE

if TYPE_CHECKING:
    from ..engine_core.state import Robot


@dataclass(frozen=True)
class SimulatedPosition:
    """Where a robot would be after a (partial) program."""
    x: int
    y: int
    direction: Direction
    damage: int
    is_destroyed: bool = False

    @property
    def position(self) -> Position:
        return Position(self.x, self.y)

    @classmethod
    def from_robot(cls, robot: Robot) -> SimulatedPosition:
        return cls(
            x=robot.position.x,
            y=robot.position.y,
            direction=robot.direction,
            damage=robot.damage,
        )


# =============================================================================
# Simulation
# =============================================================================

def _move(board: Board, sim: SimulatedPosition, direction: Direction, steps: int) -> SimulatedPosition:
    position = sim.position
    for _ in range(steps):
        result, target = try_step(board, position, direction)
        if result == StepResult.BLOCKED:
            break
        if result == StepResult.OFF_BOARD:
            return replace(sim, x=position.x, y=position.y, is_destroyed=True)
        position = target
        if is_pit(board, position.x, position.y):
            return replace(sim, x=position.x, y=position.y, is_destroyed=True)
    return replace(sim, x=position.x, y=position.y)


def simulate_card(
    board: Board,
    sim: SimulatedPosition,
    card: Card,
    previous: Card | None = None,
) -> SimulatedPosition:
    """Apply one card's own effect, without board elements."""
    if card.type in MOVE_STEPS:
        return _move(board, sim, sim.direction, MOVE_STEPS[card.type])
    if card.type == CardType.BACKUP:
        return _move(board, sim, rotate_direction(sim.direction, Rotation.UTURN), 1)
    if card.type in CARD_ROTATIONS:
        return replace(sim, direction=rotate_direction(sim.direction, CARD_ROTATIONS[card.type]))
    if card.type == CardType.AGAIN:
        if previous is None or previous.type == CardType.AGAIN:
            return sim
        return simulate_card(board, sim, previous)
    # powerUp: no movement
    return sim


def _conveyor_step(board: Board, sim: SimulatedPosition, express_only: bool) -> SimulatedPosition:
    tile = board.tile_at(sim.x, sim.y)
    if tile is None or tile.type != TileType.CONVEYOR:
        return sim
    if express_only and not tile.is_express:
        return sim
    belt = conveyor_target(board, sim.position)
    if belt is not None:
        target = belt[1]
        sim = replace(sim, x=target.x, y=target.y)
        if is_pit(board, target.x, target.y):
            return replace(sim, is_destroyed=True)
    # Corners turn on the all-belts pass, blocked or not
    if not express_only and tile.turn is not None:
        sim = replace(sim, direction=rotate_direction(sim.direction, tile.turn))
    return sim


def simulate_board_elements(board: Board, sim: SimulatedPosition) -> SimulatedPosition:
    """Conveyors (express first), gears, board lasers and repair, in executor order."""
    sim = _conveyor_step(board, sim, express_only=True)
    if sim.is_destroyed:
        return sim
    sim = _conveyor_step(board, sim, express_only=False)
    if sim.is_destroyed:
        return sim

    tile = board.tile_at(sim.x, sim.y)
    if tile and tile.type == TileType.GEAR and tile.rotation is not None:
        sim = replace(sim, direction=rotate_direction(sim.direction, tile.rotation))

    damage = laser_damage_at(board, sim.x, sim.y)
    if damage:
        sim = replace(sim, damage=min(MAX_DAMAGE, sim.damage + damage))
        if sim.damage >= MAX_DAMAGE:
            return replace(sim, is_destroyed=True)

    if tile and tile.type == TileType.REPAIR and sim.damage > 0:
        sim = replace(sim, damage=sim.damage - 1)
    return sim


def simulate_card_sequence(
    board: Board,
    robot: Robot,
    cards: Sequence[Card | None],
) -> SimulatedPosition:
    """
    Replay a register program for a lone robot.

    Empty slots are skipped; the simulation stops once destroyed.
    """
    sim = SimulatedPosition.from_robot(robot)
    previous: Card | None = None
    for card in cards:
        if sim.is_destroyed:
            break
        if card is None:
            previous = None
            continue
        sim = simulate_card(board, sim, card, previous)
        previous = card
        if sim.is_destroyed:
            break
        sim = simulate_board_elements(board, sim)
    return sim


def distance_to_checkpoint(board: Board, position: Position, last_checkpoint: int) -> int:
    """Manhattan distance to the next required checkpoint; 0 when none is left."""
    checkpoint = board.next_checkpoint(last_checkpoint)
    if checkpoint is None:
        return 0
    return position.distance_to(checkpoint.position)


# =============================================================================
# Scoring
# =============================================================================

@dataclass
class EvaluationWeights:
    """
    Weights for the heuristic evaluator.

    Higher values = more importance.
    """
    destroyed: float = -1000.0
    distance: float = -10.0  # Per tile from the next checkpoint
    on_checkpoint: float = 500.0
    laser_exposure: float = -50.0
    damage: float = -5.0  # Per point of projected damage
    repair_when_damaged: float = 30.0


class HeuristicEvaluator:
    """
    Scores simulated positions for a robot.

    Used by the search policies:
    1. Tentatively place cards
    2. Simulate the resulting program
    3. Score the final position
    4. Keep the best
    """

    def __init__(self, weights: EvaluationWeights | None = None):
        self.weights = weights or EvaluationWeights()

    def evaluate(self, board: Board, sim: SimulatedPosition, last_checkpoint: int) -> float:
        """Higher is better. Destroyed positions get the destroyed weight alone."""
        w = self.weights
        if sim.is_destroyed:
            return w.destroyed

        score = 0.0
        score += w.distance * distance_to_checkpoint(board, sim.position, last_checkpoint)

        checkpoint = board.next_checkpoint(last_checkpoint)
        if checkpoint and checkpoint.position == sim.position:
            score += w.on_checkpoint

        if is_in_laser_path(board, sim.x, sim.y):
            score += w.laser_exposure

        score += w.damage * sim.damage

        tile = board.tile_at(sim.x, sim.y)
        if tile and tile.type == TileType.REPAIR and sim.damage > 0:
            score += w.repair_when_damaged

        return score

    def evaluate_program(self, board: Board, robot: Robot, cards: Sequence[Card | None]) -> float:
        """Simulate a program and score where it ends."""
        sim = simulate_card_sequence(board, robot, cards)
        return self.evaluate(board, sim, robot.last_checkpoint)


def evaluate_position(board: Board, sim: SimulatedPosition, robot: Robot) -> float:
    """Score with the default weights."""
    return HeuristicEvaluator().evaluate(board, sim, robot.last_checkpoint)
