"""
Programming - Dealing hands and moving cards between hand and registers.

These are the only functions that move cards between zones during the
programming phase. Each move is a transfer: a card leaves one zone as
it enters another, so the total over hand, registers and piles never
changes.
"""

from __future__ import annotations
import random

from .cards import Card, CardPile
from .state import (
    GameState,
    Player,
    Ruleset,
    REGISTERS_COUNT,
    hand_size,
)


def setup_decks(state: GameState, rng: random.Random | None = None) -> None:
    """Fresh piles for a new match: one shared deck, or one deck per player."""
    rng = rng or random.Random()
    if state.ruleset == Ruleset.TOKEN:
        state.deck = None
        for player in state.players:
            player.pile = CardPile.personal(random.Random(rng.random()))
    else:
        state.deck = CardPile.shared(rng)
        for player in state.players:
            player.pile = None


def return_cards(state: GameState, player: Player, keep_locked: bool = True) -> None:
    """
    Move a player's hand and unlocked registers back to their pile.

    Locked registers keep their cards for the next round.
    """
    pile = state.pile_for(player)
    returned: list[Card] = list(player.hand)
    player.hand = []
    for i, card in enumerate(player.registers):
        if card is None:
            continue
        if keep_locked and player.is_locked(i):
            continue
        returned.append(card)
        player.registers[i] = None
    if pile is not None:
        pile.discard(returned)


def deal_hands(state: GameState) -> None:
    """
    Deal every player a hand for the coming round.

    Hand size shrinks with damage. Eliminated and powered-down robots get
    no cards, as does anyone whose hand size reaches zero; all of them
    are marked ready straight away.
    """
    for player in state.players:
        robot = player.robot
        sitting_out = robot.is_eliminated or robot.is_powered_down
        return_cards(state, player, keep_locked=not sitting_out)

        size = 0 if sitting_out else hand_size(robot.damage)
        pile = state.pile_for(player)
        player.hand = pile.draw(size) if pile is not None and size > 0 else []
        player.is_ready = not player.hand


def program_register(player: Player, register_index: int, card_id: str | None) -> bool:
    """
    Place a hand card into a register, or clear it with card_id=None.

    A card already in the register goes back to the hand. Moving a card
    from one unlocked register to another is allowed. Returns False and
    changes nothing for out-of-range indices, locked registers, a ready
    player, or a card the player does not hold.
    """
    if not 0 <= register_index < REGISTERS_COUNT:
        return False
    if player.is_ready or player.is_locked(register_index):
        return False

    if card_id is None:
        displaced = player.registers[register_index]
        if displaced is not None:
            player.registers[register_index] = None
            player.hand.append(displaced)
        return True

    card = next((c for c in player.hand if c.card_id == card_id), None)
    if card is not None:
        player.hand.remove(card)
    else:
        source = next(
            (i for i, c in enumerate(player.registers) if c is not None and c.card_id == card_id),
            None,
        )
        if source is None or player.is_locked(source):
            return False
        card = player.registers[source]
        player.registers[source] = None

    displaced = player.registers[register_index]
    if displaced is not None:
        player.hand.append(displaced)
    player.registers[register_index] = card
    return True


def fill_empty_registers(player: Player, rng: random.Random | None = None) -> None:
    """Fill every empty register with a random hand card."""
    rng = rng or random.Random()
    for i in player.empty_registers():
        if not player.hand:
            break
        card = player.hand.pop(rng.randrange(len(player.hand)))
        player.registers[i] = card


def apply_program(player: Player, registers: list[Card | None]) -> None:
    """Move chosen hand cards into the matching empty registers."""
    for i, card in enumerate(registers):
        if card is None or player.registers[i] is not None:
            continue
        if card in player.hand:
            player.hand.remove(card)
            player.registers[i] = card


def all_ready(state: GameState) -> bool:
    return bool(state.players) and all(p.is_ready for p in state.players)
