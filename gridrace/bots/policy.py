"""
Bot Policy - Interface for AI register programming.

A BotPolicy takes a game state and one player and returns a decision:
- A full register assignment built from the player's hand
- Whether to announce a power-down for the next round

Policies never mutate the state they are given. They read the hand and
registers and return new lists; the session manager applies them.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING
import random

from ..engine_core.cards import Card, CardType, MOVE_STEPS
from .personality import DifficultyProfile, EASY

if TYPE_CHECKING:
    from ..engine_core.state import GameState, Player


@dataclass
class BotDecision:
    """
    A decision made by a bot.

    registers keeps locked cards where they are and fills empty slots;
    a slot stays None only when the hand ran out.
    """
    registers: list[Card | None]
    power_down: bool = False
    explanation: str = ""

    evaluated_sequences: int = 0
    best_score: float = 0.0

    def chosen_cards(self) -> list[Card]:
        return [c for c in self.registers if c is not None]


class BotPolicy(ABC):
    """
    Abstract base class for bot policies.

    Implementations range from a weighted coin flip to bounded
    exhaustive search.
    """

    def __init__(self, profile: DifficultyProfile, rng: random.Random | None = None):
        self.profile = profile
        self.rng = rng or random.Random()

    @abstractmethod
    def choose_registers(self, state: GameState, player: Player) -> BotDecision:
        """
        Fill the player's empty registers from their hand.

        Args:
            state: Current game state (read only)
            player: The AI player being programmed

        Returns:
            BotDecision with the complete register assignment
        """
        pass

    def should_power_down(self, state: GameState, player: Player) -> bool:
        """Default: never power down."""
        return False

    def decide(self, state: GameState, player: Player) -> BotDecision:
        decision = self.choose_registers(state, player)
        decision.power_down = self.should_power_down(state, player)
        return decision


def movement_preference(card: Card) -> int:
    """Static ranking: forward movement > backup > everything else."""
    if card.type in MOVE_STEPS:
        return 2
    if card.type == CardType.BACKUP:
        return 1
    return 0


class EasyPolicy(BotPolicy):
    """
    Easy policy - coin flip between random and movement-first.

    For each empty register, with `randomness` probability pick any
    remaining card, otherwise the remaining card ranked highest by
    movement preference. Never powers down.
    """

    def __init__(self, profile: DifficultyProfile = EASY, rng: random.Random | None = None):
        super().__init__(profile, rng)

    def choose_registers(self, state: GameState, player: Player) -> BotDecision:
        available = list(player.hand)
        registers = list(player.registers)

        for i in player.empty_registers():
            if not available:
                break
            if self.rng.random() < self.profile.randomness:
                card = available.pop(self.rng.randrange(len(available)))
            else:
                # max() keeps the first of equal-ranked cards
                card = max(available, key=movement_preference)
                available.remove(card)
            registers[i] = card

        return BotDecision(
            registers=registers,
            explanation="Preferred movement cards with random picks",
            evaluated_sequences=0,
        )
