"""
Tests for cards and decks.

Tests:
- Legacy and personal deck composition
- Priority spread
- Dealing from a short deck
- Discard recycling without losing or duplicating cards
"""

from collections import Counter
import random

from ..engine_core.cards import (
    CARD_DISTRIBUTION,
    CARD_ROTATIONS,
    PERSONAL_DECK_DISTRIBUTION,
    PRIORITY_RANGES,
    CardPile,
    CardType,
    create_deck,
    create_personal_deck,
    deal_cards,
    shuffle,
)


class TestDecks:

    def test_legacy_deck_composition(self, rng):
        deck = create_deck(rng)
        assert len(deck) == 84
        assert Counter(c.type for c in deck) == Counter(CARD_DISTRIBUTION)

    def test_legacy_ids_unique(self, rng):
        deck = create_deck(rng)
        assert len({c.card_id for c in deck}) == len(deck)

    def test_priorities_within_ranges(self, rng):
        for card in create_deck(rng):
            low, high = PRIORITY_RANGES[card.type]
            assert low <= card.priority <= high

    def test_priority_endpoints_present(self, rng):
        priorities = {c.priority for c in create_deck(rng) if c.type == CardType.MOVE3}
        assert 790 in priorities
        assert 840 in priorities

    def test_personal_deck(self, rng):
        deck = create_personal_deck(rng)
        assert len(deck) == 20
        assert Counter(c.type for c in deck) == Counter(PERSONAL_DECK_DISTRIBUTION)
        assert all(c.priority == 0 for c in deck)

    def test_shuffle_returns_copy(self, rng):
        deck = create_deck(rng)
        original = list(deck)
        shuffled = shuffle(deck, random.Random(7))
        assert deck == original
        assert Counter(shuffled) == Counter(original)

    def test_rotation_cards(self):
        assert set(CARD_ROTATIONS) == {CardType.ROTATE_LEFT, CardType.ROTATE_RIGHT, CardType.UTURN}


class TestDealing:

    def test_deal_removes_from_front(self, rng):
        deck = create_deck(rng)
        front = deck[:9]
        hand = deal_cards(deck, 9)
        assert hand == front
        assert len(deck) == 75

    def test_short_deck_returns_fewer(self, rng):
        deck = create_personal_deck(rng)
        hand = deal_cards(deck, 25)
        assert len(hand) == 20
        assert deck == []

    def test_negative_count_deals_nothing(self, rng):
        deck = create_personal_deck(rng)
        assert deal_cards(deck, -3) == []
        assert len(deck) == 20


class TestCardPile:

    def test_draw_recycles_discards(self, rng):
        pile = CardPile.personal(rng)
        first = pile.draw(15)
        pile.discard(first)
        second = pile.draw(9)
        assert len(second) == 9
        assert pile.total == 11
        assert len({c.card_id for c in second}) == 9

    def test_total_is_conserved(self, rng):
        pile = CardPile.shared(rng)
        everything = set(pile.draw_pile)
        hands = [pile.draw(9) for _ in range(8)]
        held = [c for hand in hands for c in hand]
        assert len(held) + pile.total == 84
        for hand in hands:
            pile.discard(hand)
        assert set(pile.draw_pile) | set(pile.discard_pile) == everything

    def test_exhausted_pile(self, rng):
        pile = CardPile.personal(rng)
        assert len(pile.draw(30)) == 20
        assert pile.draw(5) == []
