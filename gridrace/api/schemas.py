"""
Pydantic Schemas for API - The wire contract for clients.

Inbound messages are JSON objects tagged by "type" (one per intent) and
validated into the Intent union below. Outbound messages are state
snapshots, animation logs, acknowledgements and errors.

Field names are camelCase on the wire (registerIndex, playerId, ...);
snake_case is accepted on input as well.

Error messages carry the short human-readable text clients display and
pattern-match on (e.g. "not found").
"""

from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel

from ..engine_core.board import Board
from ..engine_core.cards import Card
from ..engine_core.state import AIDifficulty, GameState, Player, VoteOption


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# Enums
# =============================================================================

class IntentType(str, Enum):
    """Inbound message types."""
    CREATE = "create"
    JOIN = "join"
    RECONNECT = "reconnect"
    LEAVE = "leave"
    START = "start"
    PROGRAM = "program"
    SUBMIT = "submit"
    POWER_DOWN = "power_down"
    VOTE_DISCONNECT = "vote_disconnect"
    SET_THEME = "set_theme"
    ADD_AI = "add_ai"
    REMOVE_AI = "remove_ai"
    RESTART = "restart"
    PING = "ping"


class ErrorCode(str, Enum):
    """Error kinds reported to clients."""
    AUTHORIZATION = "authorization"
    PRECONDITION = "precondition"
    NOT_FOUND = "not_found"
    INVALID_MESSAGE = "invalid_message"
    INTERNAL_ERROR = "internal_error"


# =============================================================================
# Inbound intents
# =============================================================================

PlayerName = Annotated[str, Field(min_length=1, max_length=20)]


class CreateIntent(CamelModel):
    type: Literal["create"]
    player_name: PlayerName


class JoinIntent(CamelModel):
    type: Literal["join"]
    game_id: str
    player_name: PlayerName


class ReconnectIntent(CamelModel):
    type: Literal["reconnect"]
    game_id: str
    player_id: str


class LeaveIntent(CamelModel):
    type: Literal["leave"]


class StartIntent(CamelModel):
    type: Literal["start"]


class ProgramIntent(CamelModel):
    """Place a hand card in a register; card_id null clears it."""
    type: Literal["program"]
    # Range is checked by the session; out-of-range indices are ignored there
    register_index: int
    card_id: Optional[str] = None


class SubmitIntent(CamelModel):
    type: Literal["submit"]


class PowerDownIntent(CamelModel):
    type: Literal["power_down"]


class VoteDisconnectIntent(CamelModel):
    type: Literal["vote_disconnect"]
    option: VoteOption


class SetThemeIntent(CamelModel):
    type: Literal["set_theme"]
    theme: str


class AddAIIntent(CamelModel):
    type: Literal["add_ai"]
    difficulty: AIDifficulty = AIDifficulty.MEDIUM


class RemoveAIIntent(CamelModel):
    type: Literal["remove_ai"]
    player_id: str


class RestartIntent(CamelModel):
    type: Literal["restart"]


class PingIntent(CamelModel):
    type: Literal["ping"]


Intent = Annotated[
    Union[
        CreateIntent,
        JoinIntent,
        ReconnectIntent,
        LeaveIntent,
        StartIntent,
        ProgramIntent,
        SubmitIntent,
        PowerDownIntent,
        VoteDisconnectIntent,
        SetThemeIntent,
        AddAIIntent,
        RemoveAIIntent,
        RestartIntent,
        PingIntent,
    ],
    Field(discriminator="type"),
]

intent_adapter: TypeAdapter = TypeAdapter(Intent)


def parse_intent(data: Any):
    """Validate a decoded JSON message into one of the intent models."""
    return intent_adapter.validate_python(data)


# =============================================================================
# Snapshot models
# =============================================================================

class CardInfo(CamelModel):
    id: str
    type: str
    priority: int

    @classmethod
    def from_card(cls, card: Card) -> "CardInfo":
        return cls(id=card.card_id, type=card.type.value, priority=card.priority)


class PositionInfo(CamelModel):
    x: int
    y: int


class RobotInfo(CamelModel):
    id: str
    position: PositionInfo
    direction: str
    damage: int
    lives: int
    last_checkpoint: int
    spawn_position: PositionInfo
    is_destroyed: bool
    energy: int
    is_powered_down: bool
    will_power_down: bool


class PlayerInfo(CamelModel):
    id: str
    name: str
    color: str
    is_ai: bool
    ai_difficulty: Optional[str] = None
    is_ready: bool
    is_connected: bool
    disconnected_at: Optional[float] = None
    hand: list[CardInfo] = Field(default_factory=list)
    registers: list[Optional[CardInfo]] = Field(default_factory=list)
    locked_registers: int = 0
    robot: RobotInfo

    @classmethod
    def from_player(cls, player: Player) -> "PlayerInfo":
        robot = player.robot
        return cls(
            id=player.player_id,
            name=player.name,
            color=player.color,
            is_ai=player.is_ai,
            ai_difficulty=player.ai_difficulty.value if player.ai_difficulty else None,
            is_ready=player.is_ready,
            is_connected=player.is_connected,
            disconnected_at=player.disconnected_at,
            hand=[CardInfo.from_card(c) for c in player.hand],
            registers=[CardInfo.from_card(c) if c else None for c in player.registers],
            locked_registers=player.locked_count,
            robot=RobotInfo(
                id=robot.robot_id,
                position=PositionInfo(x=robot.position.x, y=robot.position.y),
                direction=robot.direction.value,
                damage=robot.damage,
                lives=robot.lives,
                last_checkpoint=robot.last_checkpoint,
                spawn_position=PositionInfo(x=robot.spawn_position.x, y=robot.spawn_position.y),
                is_destroyed=robot.is_destroyed,
                energy=robot.energy,
                is_powered_down=robot.is_powered_down,
                will_power_down=robot.will_power_down,
            ),
        )


class TileInfo(CamelModel):
    type: str
    direction: Optional[str] = None
    speed: Optional[int] = None
    turn_direction: Optional[str] = None
    rotation: Optional[str] = None


class BoardInfo(CamelModel):
    id: str
    name: str
    width: int
    height: int
    tiles: list[list[TileInfo]]
    walls: list[dict[str, Any]]
    lasers: list[dict[str, Any]]
    checkpoints: list[dict[str, Any]]
    spawn_points: list[dict[str, Any]]

    @classmethod
    def from_board(cls, board: Board) -> "BoardInfo":
        tiles = []
        for row in board.tiles:
            tiles.append([
                TileInfo(
                    type=tile.type.value,
                    direction=tile.direction.value if tile.direction else None,
                    speed=tile.speed if tile.direction else None,
                    turn_direction=tile.turn.value if tile.turn else None,
                    rotation=tile.rotation.value if tile.rotation else None,
                )
                for tile in row
            ])
        return cls(
            id=board.board_id,
            name=board.name,
            width=board.width,
            height=board.height,
            tiles=tiles,
            walls=[{"x": w.x, "y": w.y, "side": w.side.value} for w in board.walls],
            lasers=[
                {"x": l.x, "y": l.y, "direction": l.direction.value, "strength": l.strength}
                for l in board.lasers
            ],
            checkpoints=[{"x": c.x, "y": c.y, "order": c.order} for c in board.checkpoints],
            spawn_points=[{"x": s.x, "y": s.y, "order": s.order} for s in board.spawn_points],
        )


class VoteInfo(CamelModel):
    player_id: str
    player_name: str
    started_at: float
    ends_at: float
    votes: dict[str, str] = Field(default_factory=dict)


class GameSnapshot(CamelModel):
    """Full state broadcast to every member after each change."""
    id: str
    phase: str
    ruleset: str
    theme: str
    board: BoardInfo
    players: list[PlayerInfo]
    current_register: int
    turn: int
    host_id: str
    max_players: int
    winner_id: Optional[str] = None
    priority_player_id: Optional[str] = None
    disconnect_vote: Optional[VoteInfo] = None

    @classmethod
    def from_state(cls, state: GameState) -> "GameSnapshot":
        vote = state.disconnect_vote
        return cls(
            id=state.game_id,
            phase=state.phase.value,
            ruleset=state.ruleset.value,
            theme=state.theme,
            board=BoardInfo.from_board(state.board),
            players=[PlayerInfo.from_player(p) for p in state.players],
            current_register=state.current_register,
            turn=state.turn,
            host_id=state.host_id,
            max_players=state.max_players,
            winner_id=state.winner_id,
            priority_player_id=state.priority_player_id,
            disconnect_vote=VoteInfo(
                player_id=vote.player_id,
                player_name=vote.player_name,
                started_at=vote.started_at,
                ends_at=vote.ends_at,
                votes={pid: option.value for pid, option in vote.votes.items()},
            ) if vote else None,
        )


# =============================================================================
# Outbound messages
# =============================================================================

class StateMessage(CamelModel):
    type: Literal["state"] = "state"
    state: GameSnapshot


class AnimationMessage(CamelModel):
    type: Literal["animation"] = "animation"
    register_index: int
    events: list[dict[str, Any]]


class AckMessage(CamelModel):
    type: Literal["created", "joined", "reconnected"]
    game_id: str
    player_id: str


class ErrorMessage(CamelModel):
    type: Literal["error"] = "error"
    message: str
    kind: ErrorCode


# =============================================================================
# REST responses
# =============================================================================

class SessionSummary(CamelModel):
    game_id: str
    phase: str
    player_count: int
    max_players: int
    created_at: float


class SessionListResponse(CamelModel):
    sessions: list[SessionSummary]
    total: int


class HealthResponse(CamelModel):
    status: str
    service: str
    version: str
    active_sessions: int = 0
