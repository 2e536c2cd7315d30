"""
Round Executor - Deterministic resolution of programmed registers.

One call resolves one register index across all players:
1. Respawn robots destroyed in an earlier register (registers 1-4)
2. Collect each eligible player's card at that index
3. Order: card priority descending (legacy) or clockwise from the
   priority token holder (token ruleset)
4. Execute each card, one tile at a time, with push chains
5. Board elements, in fixed order: conveyors (express first), gears,
   lasers, checkpoints and repair, batteries
6. Winner check

Design principles:
- Every effect commits fully or not at all; a push chain is planned
  before any robot in it moves
- Destruction is immediate (lives decrement on the spot); respawn waits
  for the next register or cleanup
- Animation events are emitted inline as effects commit
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Callable

from ..logging_config import get_logger
from .board import (
    Direction,
    Position,
    Rotation,
    StepResult,
    TileType,
    DIRECTIONS,
    conveyor_target,
    is_pit,
    is_wall_blocking,
    rotate_direction,
    trace_beam,
    try_step,
)
from .cards import Card, CardType, MOVE_STEPS, CARD_ROTATIONS
from .events import AnimationEvent, AnimationTimeline, EventType
from .state import (
    GameState,
    GamePhase,
    Player,
    Ruleset,
    MAX_DAMAGE,
    MAX_ENERGY,
    REGISTERS_COUNT,
    RESPAWN_DAMAGE,
)


logger = get_logger("executor")

CardHandler = Callable[[Player, Card, int, AnimationTimeline], None]


@dataclass
class RoundExecutor:
    """
    Resolves registers against a live GameState.

    Stateless apart from the state it mutates; a fresh timeline is
    created for every register.
    """
    state: GameState
    _handlers: dict[CardType, CardHandler] = field(init=False, repr=False)

    def __post_init__(self):
        self._handlers = {
            CardType.MOVE1: self._handle_move,
            CardType.MOVE2: self._handle_move,
            CardType.MOVE3: self._handle_move,
            CardType.BACKUP: self._handle_backup,
            CardType.ROTATE_LEFT: self._handle_rotate,
            CardType.ROTATE_RIGHT: self._handle_rotate,
            CardType.UTURN: self._handle_rotate,
            CardType.POWER_UP: self._handle_power_up,
            CardType.AGAIN: self._handle_again,
        }

    # =========================================================================
    # Register resolution
    # =========================================================================

    def execute_register(self, register_index: int) -> list[AnimationEvent]:
        """Resolve one register for every player and return its event log."""
        if not 0 <= register_index < REGISTERS_COUNT:
            raise ValueError(f"Register index out of range: {register_index}")

        state = self.state
        timeline = AnimationTimeline()
        state.current_register = register_index

        if register_index > 0:
            respawn_destroyed_robots(state, timeline)

        timeline.emit(EventType.REGISTER_START, registerIndex=register_index)

        for player, card in self.ordered_moves(register_index):
            # An earlier mover may have destroyed this robot
            if player.robot.is_destroyed or player.robot.sat_out:
                continue
            timeline.emit(
                EventType.PLAYER_CARD,
                playerId=player.player_id,
                playerName=player.name,
                playerColor=player.color,
                card={"id": card.card_id, "type": card.type.value, "priority": card.priority},
            )
            timeline.advance("card_display")
            self.execute_card(player, card, register_index, timeline)
            timeline.advance("between_players")

        self._run_conveyors(timeline)
        self._run_gears(timeline)
        self._run_lasers(timeline)
        self._run_checkpoints(timeline)
        self._run_batteries(timeline)

        timeline.advance("register_pause")
        timeline.emit(EventType.REGISTER_END, registerIndex=register_index)

        winner = state.check_winner()
        if winner:
            state.winner_id = winner.player_id
            state.phase = GamePhase.FINISHED
            logger.info("Winner after register %d: %s", register_index, winner.name)

        return timeline.events

    def ordered_moves(self, register_index: int) -> list[tuple[Player, Card]]:
        """Eligible (player, card) pairs in resolution order."""
        state = self.state
        moves: list[tuple[Player, Card]] = []
        for player in state.players:
            robot = player.robot
            if robot.is_destroyed or robot.sat_out or robot.is_powered_down:
                continue
            card = player.registers[register_index]
            if card is not None:
                moves.append((player, card))

        if state.ruleset == Ruleset.TOKEN:
            order = execution_order(state)
            moves.sort(key=lambda m: order.index(m[0].player_id))
        else:
            # Stable sort keeps seat order for equal priorities
            moves.sort(key=lambda m: -m[1].priority)
        return moves

    def execute_card(
        self,
        player: Player,
        card: Card,
        register_index: int,
        timeline: AnimationTimeline,
    ) -> None:
        handler = self._handlers.get(card.type)
        if handler is None:
            raise ValueError(f"No handler for card type: {card.type}")
        handler(player, card, register_index, timeline)

    # =========================================================================
    # Card handlers
    # =========================================================================

    def _handle_move(self, player: Player, card: Card, register_index: int, timeline: AnimationTimeline):
        self._move_robot(player, player.robot.direction, MOVE_STEPS[card.type], timeline)

    def _handle_backup(self, player: Player, card: Card, register_index: int, timeline: AnimationTimeline):
        direction = rotate_direction(player.robot.direction, Rotation.UTURN)
        self._move_robot(player, direction, 1, timeline)

    def _handle_rotate(self, player: Player, card: Card, register_index: int, timeline: AnimationTimeline):
        robot = player.robot
        rotation = CARD_ROTATIONS[card.type]
        from_direction = robot.direction
        robot.direction = rotate_direction(robot.direction, rotation)
        timeline.emit(
            EventType.ROBOT_ROTATE,
            playerId=player.player_id,
            fromDirection=from_direction.value,
            toDirection=robot.direction.value,
            rotation=rotation.value,
        )
        timeline.advance("robot_rotation")

    def _handle_power_up(self, player: Player, card: Card, register_index: int, timeline: AnimationTimeline):
        robot = player.robot
        if robot.energy < MAX_ENERGY:
            robot.energy += 1
            timeline.emit(
                EventType.ENERGY_GAINED,
                playerId=player.player_id,
                amount=1,
                source="power_up",
            )

    def _handle_again(self, player: Player, card: Card, register_index: int, timeline: AnimationTimeline):
        """Repeat the previous register's card; nothing to repeat in register 0."""
        if register_index == 0:
            return
        previous = player.registers[register_index - 1]
        if previous is None or previous.type == CardType.AGAIN:
            return
        self.execute_card(player, previous, register_index, timeline)

    # =========================================================================
    # Movement and pushing
    # =========================================================================

    def _move_robot(self, player: Player, direction: Direction, steps: int, timeline: AnimationTimeline):
        state = self.state
        robot = player.robot

        for _ in range(steps):
            origin = robot.position
            result, target = try_step(state.board, origin, direction)

            if result == StepResult.BLOCKED:
                break

            if result == StepResult.OFF_BOARD:
                timeline.emit(
                    EventType.ROBOT_DESTROYED,
                    playerId=player.player_id,
                    reason="off_board",
                    x=origin.x,
                    y=origin.y,
                )
                destroy_robot(player)
                break

            occupant = state.robot_at(target, exclude=player.player_id)
            if occupant and not self._push_chain(occupant, direction, player.player_id, timeline):
                break

            robot.position = target
            timeline.emit(
                EventType.ROBOT_MOVE,
                playerId=player.player_id,
                fromX=origin.x,
                fromY=origin.y,
                toX=target.x,
                toY=target.y,
                direction=direction.value,
            )
            timeline.advance("robot_move_per_tile")

            if is_pit(state.board, target.x, target.y):
                timeline.emit(
                    EventType.ROBOT_DESTROYED,
                    playerId=player.player_id,
                    reason="pit",
                    x=target.x,
                    y=target.y,
                )
                destroy_robot(player)
                break

    def _push_chain(
        self,
        first: Player,
        direction: Direction,
        pushed_by: str,
        timeline: AnimationTimeline,
    ) -> bool:
        """
        Push `first` and every robot lined up behind it one tile.

        Returns False, moving nobody, if a wall blocks any link. A robot
        pushed off the board is destroyed and the push still succeeds.
        """
        state = self.state
        chain: list[Player] = [first]
        current = first
        while True:
            result, target = try_step(state.board, current.robot.position, direction)
            if result == StepResult.BLOCKED:
                return False
            if result == StepResult.OFF_BOARD:
                break
            following = state.robot_at(target, exclude=current.player_id)
            if following is None:
                break
            chain.append(following)
            current = following

        # Far end first so no two robots ever share a tile
        for pushed in reversed(chain):
            origin = pushed.robot.position
            result, target = try_step(state.board, origin, direction)
            timeline.emit(
                EventType.ROBOT_PUSHED,
                playerId=pushed.player_id,
                pushedByPlayerId=pushed_by,
                fromX=origin.x,
                fromY=origin.y,
                toX=target.x,
                toY=target.y,
                direction=direction.value,
            )
            if result == StepResult.OFF_BOARD:
                timeline.emit(
                    EventType.ROBOT_DESTROYED,
                    playerId=pushed.player_id,
                    reason="off_board",
                    x=origin.x,
                    y=origin.y,
                )
                destroy_robot(pushed)
                continue
            pushed.robot.position = target
            if is_pit(state.board, target.x, target.y):
                timeline.emit(
                    EventType.ROBOT_DESTROYED,
                    playerId=pushed.player_id,
                    reason="pit",
                    x=target.x,
                    y=target.y,
                )
                destroy_robot(pushed)
        return True

    # =========================================================================
    # Board elements
    # =========================================================================

    def _run_conveyors(self, timeline: AnimationTimeline):
        """Express belts move first, then every belt (express included) moves once."""
        express = self._conveyor_pass(timeline, express_only=True)
        if express:
            timeline.emit(EventType.CONVEYOR_MOVE, movements=express)
            timeline.advance("conveyor_move")

        regular = self._conveyor_pass(timeline, express_only=False)
        if regular:
            timeline.emit(EventType.CONVEYOR_MOVE, movements=regular)
            timeline.advance("conveyor_move")

    def _conveyor_pass(self, timeline: AnimationTimeline, express_only: bool) -> list[dict]:
        """
        Move every robot standing on a belt one tile.

        Corner belts turn their robot on the all-belts pass only, and
        turn it even when the belt is blocked.
        """
        state = self.state
        movements: list[dict] = []
        for player in state.players:
            robot = player.robot
            if robot.is_destroyed:
                continue
            tile = state.board.tile_at(robot.position.x, robot.position.y)
            if tile is None or tile.type != TileType.CONVEYOR:
                continue
            if express_only and not tile.is_express:
                continue
            turn = tile.turn if not express_only else None

            belt = conveyor_target(state.board, robot.position)
            # Conveyors never push
            if belt is not None and not state.robot_at(belt[1], exclude=player.player_id):
                target = belt[1]
                origin = robot.position
                robot.position = target
                movement = {
                    "playerId": player.player_id,
                    "fromX": origin.x,
                    "fromY": origin.y,
                    "toX": target.x,
                    "toY": target.y,
                    "direction": tile.direction.value,
                }
                if turn is not None:
                    movement["rotation"] = turn.value
                movements.append(movement)

                if is_pit(state.board, target.x, target.y):
                    timeline.emit(
                        EventType.ROBOT_DESTROYED,
                        playerId=player.player_id,
                        reason="pit",
                        x=target.x,
                        y=target.y,
                    )
                    destroy_robot(player)
                    continue

            if turn is not None:
                robot.direction = rotate_direction(robot.direction, turn)
        return movements

    def _run_gears(self, timeline: AnimationTimeline):
        state = self.state
        rotations = []
        for player in state.players:
            robot = player.robot
            if robot.is_destroyed:
                continue
            tile = state.board.tile_at(robot.position.x, robot.position.y)
            if tile is None or tile.type != TileType.GEAR or tile.rotation is None:
                continue
            from_direction = robot.direction
            robot.direction = rotate_direction(robot.direction, tile.rotation)
            rotations.append({
                "playerId": player.player_id,
                "rotation": tile.rotation.value,
                "fromDirection": from_direction.value,
                "toDirection": robot.direction.value,
            })
        if rotations:
            timeline.emit(EventType.GEAR_ROTATE, rotations=rotations)
            timeline.advance("gear_rotation")

    def _run_lasers(self, timeline: AnimationTimeline):
        """All beams are traced against the same positions, then damage lands."""
        state = self.state
        board = state.board
        beams: list[dict] = []
        hits: list[tuple[Player, int]] = []

        for laser in board.lasers:
            origin = Position(laser.x, laser.y)
            end, target = self._trace(origin, laser.direction, shooter_id=None)
            beams.append({
                "sourceType": "board",
                "startX": laser.x,
                "startY": laser.y,
                "endX": end.x,
                "endY": end.y,
                "direction": laser.direction.value,
                "strength": laser.strength,
            })
            if target:
                hits.append((target, laser.strength))

        for shooter in state.players:
            robot = shooter.robot
            if robot.is_destroyed:
                continue
            position = robot.position
            end, target = position, None
            if not is_wall_blocking(board, position.x, position.y, robot.direction):
                start = position.step(robot.direction)
                if board.in_bounds(start.x, start.y):
                    end, target = self._trace(start, robot.direction, shooter_id=shooter.player_id)
            beams.append({
                "sourceType": "robot",
                "sourcePlayerId": shooter.player_id,
                "startX": position.x,
                "startY": position.y,
                "endX": end.x,
                "endY": end.y,
                "direction": robot.direction.value,
                "strength": 1,
            })
            if target:
                hits.append((target, 1))

        if beams:
            timeline.emit(EventType.LASER_FIRE, lasers=beams)

        for target, damage in hits:
            robot = target.robot
            if robot.is_destroyed:
                continue
            robot.damage = min(MAX_DAMAGE, robot.damage + damage)
            timeline.emit(
                EventType.LASER_HIT,
                playerId=target.player_id,
                damage=damage,
                x=robot.position.x,
                y=robot.position.y,
            )
            if robot.damage >= MAX_DAMAGE:
                timeline.emit(
                    EventType.ROBOT_DESTROYED,
                    playerId=target.player_id,
                    reason="damage",
                    x=robot.position.x,
                    y=robot.position.y,
                )
                destroy_robot(target)

        if beams:
            timeline.advance("laser_fire")

    def _trace(
        self,
        origin: Position,
        direction: Direction,
        shooter_id: str | None,
    ) -> tuple[Position, Player | None]:
        """Follow a beam to the first robot hit; returns (end tile, robot hit)."""
        end = origin
        for position in trace_beam(self.state.board, origin, direction):
            end = position
            target = self.state.robot_at(position, exclude=shooter_id)
            if target:
                return position, target
        return end, None

    def _run_checkpoints(self, timeline: AnimationTimeline):
        board = self.state.board
        for player in self.state.players:
            robot = player.robot
            if robot.is_destroyed:
                continue
            position = robot.position
            checkpoint = board.checkpoint_at(position.x, position.y)
            if checkpoint and checkpoint.order == robot.last_checkpoint + 1:
                robot.last_checkpoint = checkpoint.order
                robot.spawn_position = position
                timeline.emit(
                    EventType.CHECKPOINT_REACHED,
                    playerId=player.player_id,
                    checkpointNumber=checkpoint.order,
                    x=position.x,
                    y=position.y,
                )
                logger.debug("%s reached checkpoint %d", player.name, checkpoint.order)

            tile = board.tile_at(position.x, position.y)
            if tile and tile.type == TileType.REPAIR and robot.damage > 0:
                robot.damage -= 1

    def _run_batteries(self, timeline: AnimationTimeline):
        board = self.state.board
        for player in self.state.players:
            robot = player.robot
            if robot.is_destroyed or robot.is_powered_down:
                continue
            tile = board.tile_at(robot.position.x, robot.position.y)
            if tile and tile.type == TileType.BATTERY and robot.energy < MAX_ENERGY:
                robot.energy += 1
                timeline.emit(
                    EventType.ENERGY_GAINED,
                    playerId=player.player_id,
                    amount=1,
                    source="battery",
                )


# =============================================================================
# Module-level entry points
# =============================================================================

def destroy_robot(player: Player) -> None:
    """Take a robot off the board for the rest of the round and spend a life."""
    robot = player.robot
    if robot.is_destroyed:
        return
    robot.is_destroyed = True
    robot.sat_out = True
    robot.lives = max(0, robot.lives - 1)
    logger.debug("%s destroyed, %d lives left", player.name, robot.lives)


def execution_order(state: GameState) -> list[str]:
    """Player ids clockwise from the priority token holder."""
    ids = [p.player_id for p in state.players]
    start = state.seat_of(state.priority_player_id) if state.priority_player_id else -1
    if start < 0:
        return ids
    return ids[start:] + ids[:start]


def _respawn_position(state: GameState, player: Player) -> Position:
    """The spawn tile, or the first free neighbour (N, E, S, W) when it is taken."""
    spawn = player.robot.spawn_position
    if state.robot_at(spawn, exclude=player.player_id) is None:
        return spawn
    for direction in DIRECTIONS:
        candidate = spawn.step(direction)
        if not state.board.in_bounds(candidate.x, candidate.y):
            continue
        if is_pit(state.board, candidate.x, candidate.y):
            continue
        if state.robot_at(candidate, exclude=player.player_id) is None:
            return candidate
    return spawn


def respawn_destroyed_robots(state: GameState, timeline: AnimationTimeline | None = None) -> list[Player]:
    """
    Return destroyed robots that still have lives to the board.

    Respawned robots take RESPAWN_DAMAGE and keep sat_out until cleanup,
    so they play no further cards this round.
    """
    respawned = []
    for player in state.players:
        robot = player.robot
        if not robot.is_destroyed or robot.lives <= 0:
            continue
        robot.position = _respawn_position(state, player)
        robot.damage = RESPAWN_DAMAGE
        robot.is_destroyed = False
        respawned.append(player)
        if timeline is not None:
            timeline.emit(
                EventType.ROBOT_RESPAWNED,
                playerId=player.player_id,
                x=robot.position.x,
                y=robot.position.y,
                direction=robot.direction.value,
            )
        logger.debug("%s respawned at (%d, %d)", player.name, robot.position.x, robot.position.y)
    return respawned


def process_power_down(state: GameState) -> None:
    """End last round's shutdown and apply announced ones for the next round."""
    for player in state.players:
        robot = player.robot
        if robot.is_destroyed:
            continue
        robot.is_powered_down = False
        if robot.will_power_down:
            robot.is_powered_down = True
            robot.will_power_down = False
            robot.damage = 0


def pass_priority_token(state: GameState) -> None:
    """Hand the priority token to the next seat clockwise."""
    if not state.players:
        state.priority_player_id = None
        return
    seat = state.seat_of(state.priority_player_id) if state.priority_player_id else -1
    state.priority_player_id = state.players[(seat + 1) % len(state.players)].player_id


def cleanup_round(state: GameState) -> None:
    """
    End-of-round bookkeeping before the next deal.

    Respawns robots destroyed in the last register, clears sat_out,
    applies power-down and passes the priority token.
    """
    respawn_destroyed_robots(state)
    for player in state.players:
        player.robot.sat_out = False
    process_power_down(state)
    pass_priority_token(state)


def execute_register(state: GameState, register_index: int) -> list[AnimationEvent]:
    return RoundExecutor(state).execute_register(register_index)


def run_round(state: GameState) -> list[list[AnimationEvent]]:
    """
    Resolve registers 0-4 back to back, then clean up.

    Stops early when a winner is found. Used headless; the session
    manager paces registers itself.
    """
    executor = RoundExecutor(state)
    state.phase = GamePhase.EXECUTING
    logs = []
    for register_index in range(REGISTERS_COUNT):
        logs.append(executor.execute_register(register_index))
        if state.phase == GamePhase.FINISHED:
            return logs
    state.phase = GamePhase.CLEANUP
    cleanup_round(state)
    return logs
