"""
Engine Core - Deterministic board, card and round resolution.

The engine is the runtime that:
1. Holds the static board and the mutable GameState
2. Deals cards and moves them between zones
3. Resolves programmed registers via the RoundExecutor
4. Emits an animation log as a side product
"""

from .board import Board, Direction, Position, Rotation, Tile, TileType, create_empty_board
from .cards import Card, CardType, CardPile, create_deck, create_personal_deck, deal_cards, shuffle
from .state import GameState, GamePhase, Player, Robot, Ruleset, AIDifficulty
from .events import AnimationEvent, AnimationTimeline, EventType
from .executor import RoundExecutor, execute_register, respawn_destroyed_robots, cleanup_round, run_round
from .programming import deal_hands, program_register, setup_decks

__all__ = [
    "Board",
    "Direction",
    "Position",
    "Rotation",
    "Tile",
    "TileType",
    "create_empty_board",
    "Card",
    "CardType",
    "CardPile",
    "create_deck",
    "create_personal_deck",
    "deal_cards",
    "shuffle",
    "GameState",
    "GamePhase",
    "Player",
    "Robot",
    "Ruleset",
    "AIDifficulty",
    "AnimationEvent",
    "AnimationTimeline",
    "EventType",
    "RoundExecutor",
    "execute_register",
    "respawn_destroyed_robots",
    "cleanup_round",
    "run_round",
    "deal_hands",
    "program_register",
    "setup_decks",
]
