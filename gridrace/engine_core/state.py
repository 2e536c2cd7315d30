"""
Game State - Robots, players and the per-session match state.

Design principles:
- Mutable in place: the session manager and executor own the state and
  commit each effect as it resolves
- Plain data: transport layers serialize it, nothing here knows JSON
- A card lives in one zone at a time (see cards.py)
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
import time
import uuid

from .board import Board, Direction, Position
from .cards import Card, CardPile


MAX_DAMAGE = 10
STARTING_LIVES = 3
REGISTERS_COUNT = 5
BASE_HAND_SIZE = 9
MAX_ENERGY = 10
RESPAWN_DAMAGE = 2

PLAYER_COLORS = [
    "#e74c3c",  # Red
    "#3498db",  # Blue
    "#2ecc71",  # Green
    "#f39c12",  # Orange
    "#9b59b6",  # Purple
    "#1abc9c",  # Teal
    "#e91e63",  # Pink
    "#00bcd4",  # Cyan
]

AI_NAMES = ["Sparky", "Bolt", "Gizmo", "Whirr", "Clank", "Servo", "Buzzy", "Zappy"]

THEMES = ["industrial", "candy", "neon", "nature", "space", "ocean", "lava", "ice", "jungle"]
DEFAULT_THEME = "industrial"


class GamePhase(Enum):
    """
    Match phases.

    lobby -> programming -> executing -> cleanup -> programming ...
    executing -> finished when a robot reaches the last checkpoint.
    finished -> lobby on host restart.
    """
    LOBBY = "lobby"
    PROGRAMMING = "programming"
    EXECUTING = "executing"
    CLEANUP = "cleanup"
    FINISHED = "finished"


class Ruleset(Enum):
    LEGACY = "legacy"  # shared deck, card priority order
    TOKEN = "token"  # personal decks, clockwise from the priority token


class AIDifficulty(Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class VoteOption(Enum):
    """What to do with a player who stayed disconnected."""
    REMOVE = "remove"
    RANDOM_CARDS = "random-cards"
    STOP_GAME = "stop-game"


def hand_size(damage: int) -> int:
    """Cards dealt per round: one fewer for every point of damage."""
    return max(0, BASE_HAND_SIZE - damage)


def locked_register_count(damage: int) -> int:
    """Registers locked by damage: one at 5 damage, two at 6, and so on."""
    return max(0, min(REGISTERS_COUNT, damage - 4))


@dataclass
class Robot:
    """
    A player's robot.

    sat_out marks a robot destroyed earlier in the current round; it is
    back on the board after respawning but plays no more cards until the
    round ends.
    """
    robot_id: str
    player_id: str
    position: Position
    spawn_position: Position
    direction: Direction = Direction.NORTH
    damage: int = 0
    lives: int = STARTING_LIVES
    last_checkpoint: int = 0
    is_destroyed: bool = False
    energy: int = 0

    is_powered_down: bool = False
    will_power_down: bool = False
    sat_out: bool = False

    @property
    def is_eliminated(self) -> bool:
        """Out of lives; permanently removed from play."""
        return self.is_destroyed and self.lives <= 0


def create_robot(player_id: str, spawn: Position) -> Robot:
    return Robot(
        robot_id=str(uuid.uuid4()),
        player_id=player_id,
        position=spawn,
        spawn_position=spawn,
    )


@dataclass
class Player:
    """A participant, human or AI, and their card zones."""
    player_id: str
    name: str
    color: str
    robot: Robot
    hand: list[Card] = field(default_factory=list)
    registers: list[Card | None] = field(default_factory=lambda: [None] * REGISTERS_COUNT)
    is_ready: bool = False
    is_connected: bool = True
    disconnected_at: float | None = None
    is_ai: bool = False
    ai_difficulty: AIDifficulty | None = None

    # Set when a disconnect vote chose random cards; cleared on reconnect
    auto_program: bool = False

    # Personal deck (token ruleset only)
    pile: CardPile | None = None

    @property
    def locked_count(self) -> int:
        return locked_register_count(self.robot.damage)

    def is_locked(self, register_index: int) -> bool:
        return register_index >= REGISTERS_COUNT - self.locked_count

    def empty_registers(self) -> list[int]:
        return [i for i, card in enumerate(self.registers) if card is None]

    def program_complete(self) -> bool:
        """Every register is filled, or there is nothing left to place."""
        return not self.empty_registers() or not self.hand

    def zone_cards(self) -> list[Card]:
        """All cards the player holds across hand and registers."""
        return list(self.hand) + [c for c in self.registers if c is not None]


def create_player(
    player_id: str,
    name: str,
    seat: int,
    spawn: Position,
    is_ai: bool = False,
    ai_difficulty: AIDifficulty | None = None,
) -> Player:
    return Player(
        player_id=player_id,
        name=name,
        color=PLAYER_COLORS[seat % len(PLAYER_COLORS)],
        robot=create_robot(player_id, spawn),
        is_ai=is_ai,
        ai_difficulty=ai_difficulty if is_ai else None,
    )


@dataclass
class DisconnectVote:
    """An open vote about a disconnected player."""
    player_id: str
    player_name: str
    started_at: float
    ends_at: float
    votes: dict[str, VoteOption] = field(default_factory=dict)

    def tally(self) -> VoteOption:
        """Plurality wins; ties and an empty ballot fall back to random cards."""
        counts = {option: 0 for option in VoteOption}
        for vote in self.votes.values():
            counts[vote] += 1
        best = max(counts.values())
        leaders = [option for option, count in counts.items() if count == best]
        if best == 0 or len(leaders) > 1:
            return VoteOption.RANDOM_CARDS
        return leaders[0]


@dataclass
class GameState:
    """
    Complete state of one match.

    hostId always references a player in `players`; the session manager
    migrates it on leave.
    """
    game_id: str
    board: Board
    phase: GamePhase = GamePhase.LOBBY
    players: list[Player] = field(default_factory=list)
    current_register: int = 0
    turn: int = 0
    host_id: str = ""
    max_players: int = 8
    winner_id: str | None = None
    priority_player_id: str | None = None

    ruleset: Ruleset = Ruleset.LEGACY
    theme: str = DEFAULT_THEME
    disconnect_vote: DisconnectVote | None = None
    created_at: float = field(default_factory=time.time)

    # Legacy shared deck
    deck: CardPile | None = None

    @property
    def num_players(self) -> int:
        return len(self.players)

    def get_player(self, player_id: str) -> Player | None:
        for p in self.players:
            if p.player_id == player_id:
                return p
        return None

    def seat_of(self, player_id: str) -> int:
        for i, p in enumerate(self.players):
            if p.player_id == player_id:
                return i
        return -1

    def robot_at(self, position: Position, exclude: str | None = None) -> Player | None:
        """The player whose robot is on `position` (destroyed robots excluded)."""
        for p in self.players:
            if p.player_id == exclude or p.robot.is_destroyed:
                continue
            if p.robot.position == position:
                return p
        return None

    def pile_for(self, player: Player) -> CardPile | None:
        """The pile a player draws from and discards to under this ruleset."""
        if self.ruleset == Ruleset.TOKEN:
            return player.pile
        return self.deck

    def check_winner(self) -> Player | None:
        """First robot that has captured every checkpoint."""
        total = len(self.board.checkpoints)
        if total == 0:
            return None
        for p in self.players:
            if p.robot.last_checkpoint >= total:
                return p
        return None
