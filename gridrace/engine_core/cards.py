"""
Cards - Programming card taxonomy, distributions and decks.

Two rulesets are supported:
- Legacy: one shared 84-card deck, every card has a distinct priority
  that decides resolution order within a register.
- Token: each player owns a 20-card personal deck; priority is unused
  and order follows the priority token instead.

Zones:
A card instance lives in exactly one of hand, register, draw pile or
discard pile. CardPile owns the last two; dealing and discarding only
ever move cards between zones, never copy them.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
import math
import random
import uuid

from .board import Rotation


class CardType(Enum):
    """Closed set of programming card types."""
    MOVE1 = "move1"
    MOVE2 = "move2"
    MOVE3 = "move3"
    BACKUP = "backup"
    ROTATE_LEFT = "rotateLeft"
    ROTATE_RIGHT = "rotateRight"
    UTURN = "uturn"
    POWER_UP = "powerUp"
    AGAIN = "again"


# Forward steps per movement card; backup is handled as one step in reverse
MOVE_STEPS: dict[CardType, int] = {
    CardType.MOVE1: 1,
    CardType.MOVE2: 2,
    CardType.MOVE3: 3,
}

CARD_ROTATIONS: dict[CardType, Rotation] = {
    CardType.ROTATE_LEFT: Rotation.CCW,
    CardType.ROTATE_RIGHT: Rotation.CW,
    CardType.UTURN: Rotation.UTURN,
}

# Legacy shared deck
CARD_DISTRIBUTION: dict[CardType, int] = {
    CardType.MOVE1: 18,
    CardType.MOVE2: 12,
    CardType.MOVE3: 6,
    CardType.BACKUP: 6,
    CardType.ROTATE_LEFT: 18,
    CardType.ROTATE_RIGHT: 18,
    CardType.UTURN: 6,
}

PRIORITY_RANGES: dict[CardType, tuple[int, int]] = {
    CardType.UTURN: (10, 60),
    CardType.ROTATE_LEFT: (70, 410),
    CardType.ROTATE_RIGHT: (80, 420),
    CardType.BACKUP: (430, 480),
    CardType.MOVE1: (490, 660),
    CardType.MOVE2: (670, 780),
    CardType.MOVE3: (790, 840),
}

# Token ruleset personal deck
PERSONAL_DECK_DISTRIBUTION: dict[CardType, int] = {
    CardType.MOVE1: 5,
    CardType.MOVE2: 3,
    CardType.MOVE3: 1,
    CardType.BACKUP: 1,
    CardType.ROTATE_LEFT: 3,
    CardType.ROTATE_RIGHT: 3,
    CardType.UTURN: 1,
    CardType.POWER_UP: 1,
    CardType.AGAIN: 2,
}


@dataclass
class Card:
    """
    A card instance.

    Identity is the card_id: two cards of the same type are different
    cards. Equality and hashing follow identity so zone membership
    checks are by instance.
    """
    card_id: str
    type: CardType
    priority: int = 0

    def __hash__(self):
        return hash(self.card_id)

    def __eq__(self, other):
        if not isinstance(other, Card):
            return False
        return self.card_id == other.card_id

    @property
    def is_movement(self) -> bool:
        return self.type in MOVE_STEPS


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def shuffle(cards: list[Card], rng: random.Random | None = None) -> list[Card]:
    """Return a uniformly shuffled copy; the input is left untouched."""
    rng = rng or random.Random()
    result = list(cards)
    rng.shuffle(result)
    return result


def create_deck(rng: random.Random | None = None) -> list[Card]:
    """
    Create the shuffled legacy shared deck.

    Priorities are spread linearly across each type's range; a type with
    a single card takes the minimum.
    """
    deck: list[Card] = []
    for card_type, count in CARD_DISTRIBUTION.items():
        low, high = PRIORITY_RANGES[card_type]
        step = (high - low) / (count - 1) if count > 1 else 0
        for i in range(count):
            deck.append(Card(
                card_id=str(uuid.uuid4()),
                type=card_type,
                priority=_round_half_up(low + step * i),
            ))
    return shuffle(deck, rng)


def create_personal_deck(rng: random.Random | None = None) -> list[Card]:
    """Create a shuffled 20-card personal deck (priority unused)."""
    deck = [
        Card(card_id=str(uuid.uuid4()), type=card_type, priority=0)
        for card_type, count in PERSONAL_DECK_DISTRIBUTION.items()
        for _ in range(count)
    ]
    return shuffle(deck, rng)


def deal_cards(deck: list[Card], count: int) -> list[Card]:
    """
    Remove and return up to `count` cards from the front of `deck`.

    Mutates `deck`. Returns a short list when the deck runs out.
    """
    count = max(0, count)
    dealt = deck[:count]
    del deck[:count]
    return dealt


@dataclass
class CardPile:
    """
    A draw pile with its discard pile.

    Used for the legacy shared deck and for each personal deck.
    When the draw pile runs dry the discard pile is shuffled back in.
    """
    draw_pile: list[Card] = field(default_factory=list)
    discard_pile: list[Card] = field(default_factory=list)
    rng: random.Random = field(default_factory=random.Random, repr=False, compare=False)

    @classmethod
    def shared(cls, rng: random.Random | None = None) -> CardPile:
        rng = rng or random.Random()
        return cls(draw_pile=create_deck(rng), rng=rng)

    @classmethod
    def personal(cls, rng: random.Random | None = None) -> CardPile:
        rng = rng or random.Random()
        return cls(draw_pile=create_personal_deck(rng), rng=rng)

    @property
    def total(self) -> int:
        return len(self.draw_pile) + len(self.discard_pile)

    def draw(self, count: int) -> list[Card]:
        """Draw up to `count` cards, recycling the discard pile once if needed."""
        cards = deal_cards(self.draw_pile, count)
        if len(cards) < count and self.discard_pile:
            self.draw_pile.extend(shuffle(self.discard_pile, self.rng))
            self.discard_pile.clear()
            cards.extend(deal_cards(self.draw_pile, count - len(cards)))
        return cards

    def discard(self, cards: list[Card]) -> None:
        self.discard_pile.extend(cards)
