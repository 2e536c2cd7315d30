"""
Tests for dealing and register programming.

Tests:
- Hand size and register locking from damage
- Locked registers survive a deal
- Silent rejection of stale or invalid placements
- Card conservation across deal, program and return
"""

import pytest

from ..engine_core.programming import (
    all_ready,
    apply_program,
    deal_hands,
    fill_empty_registers,
    program_register,
    return_cards,
    setup_decks,
)
from ..engine_core.state import Ruleset, hand_size, locked_register_count


def held_ids(state):
    ids = []
    for player in state.players:
        ids.extend(c.card_id for c in player.zone_cards())
    piles = [state.deck] if state.deck else [p.pile for p in state.players]
    for pile in piles:
        ids.extend(c.card_id for c in pile.draw_pile + pile.discard_pile)
    return ids


@pytest.fixture
def two_players(factory_floor, make_state, add_player, rng):
    state = make_state(factory_floor)
    add_player(state, "a", 1, 10)
    add_player(state, "b", 3, 10)
    setup_decks(state, rng)
    return state


class TestDamageRules:

    @pytest.mark.parametrize("damage,size,locked", [
        (0, 9, 0),
        (4, 5, 0),
        (5, 4, 1),
        (6, 3, 2),
        (9, 0, 5),
    ])
    def test_hand_and_locks(self, damage, size, locked):
        assert hand_size(damage) == size
        assert locked_register_count(damage) == locked

    def test_locked_registers_are_the_last(self, two_players):
        player = two_players.players[0]
        player.robot.damage = 6
        assert [player.is_locked(i) for i in range(5)] == [False, False, False, True, True]


class TestDealing:

    def test_deal_full_hands(self, two_players):
        deal_hands(two_players)
        for player in two_players.players:
            assert len(player.hand) == 9
            assert not player.is_ready
        assert two_players.deck.total == 84 - 18

    def test_damaged_hand_keeps_locked_cards(self, two_players):
        deal_hands(two_players)
        player = two_players.players[0]
        for i in range(5):
            program_register(player, i, player.hand[0].card_id)
        locked_cards = player.registers[3:]

        player.robot.damage = 6
        deal_hands(two_players)

        assert len(player.hand) == 3
        assert player.registers[:3] == [None, None, None]
        assert player.registers[3:] == locked_cards

    def test_powered_down_gets_no_cards(self, two_players):
        player = two_players.players[1]
        player.robot.is_powered_down = True
        deal_hands(two_players)
        assert player.hand == []
        assert player.is_ready

    def test_token_ruleset_personal_decks(self, factory_floor, make_state, add_player, rng):
        state = make_state(factory_floor, ruleset=Ruleset.TOKEN)
        add_player(state, "a", 1, 10)
        add_player(state, "b", 3, 10)
        setup_decks(state, rng)
        deal_hands(state)

        assert state.deck is None
        for player in state.players:
            assert player.pile.total == 11
            assert len(player.hand) == 9

    def test_cards_are_conserved(self, two_players, rng):
        before = sorted(held_ids(two_players))
        for _ in range(4):
            deal_hands(two_players)
            for player in two_players.players:
                fill_empty_registers(player, rng)
            assert sorted(held_ids(two_players)) == before
            two_players.players[0].robot.damage += 2
        assert len(before) == 84


class TestProgramRegister:

    @pytest.fixture
    def dealt(self, two_players):
        deal_hands(two_players)
        return two_players.players[0]

    def test_place_and_clear(self, dealt):
        card = dealt.hand[0]
        assert program_register(dealt, 2, card.card_id)
        assert dealt.registers[2] == card
        assert card not in dealt.hand

        assert program_register(dealt, 2, None)
        assert dealt.registers[2] is None
        assert card in dealt.hand

    def test_displaced_card_returns_to_hand(self, dealt):
        first, second = dealt.hand[0], dealt.hand[1]
        program_register(dealt, 0, first.card_id)
        program_register(dealt, 0, second.card_id)
        assert dealt.registers[0] == second
        assert first in dealt.hand

    def test_move_between_registers(self, dealt):
        card = dealt.hand[0]
        program_register(dealt, 0, card.card_id)
        assert program_register(dealt, 4, card.card_id)
        assert dealt.registers[0] is None
        assert dealt.registers[4] == card

    @pytest.mark.parametrize("index", [-1, 5, 99])
    def test_out_of_range_ignored(self, dealt, index):
        before = list(dealt.hand)
        assert not program_register(dealt, index, dealt.hand[0].card_id)
        assert dealt.hand == before

    def test_unknown_card_ignored(self, dealt):
        assert not program_register(dealt, 0, "not-a-card")
        assert dealt.registers[0] is None

    def test_ready_player_ignored(self, dealt):
        dealt.is_ready = True
        assert not program_register(dealt, 0, dealt.hand[0].card_id)

    def test_locked_register_ignored(self, dealt):
        dealt.robot.damage = 5
        assert not program_register(dealt, 4, dealt.hand[0].card_id)
        assert dealt.registers[4] is None


class TestReadiness:

    def test_fill_and_complete(self, two_players, rng):
        deal_hands(two_players)
        player = two_players.players[0]
        assert not player.program_complete()
        fill_empty_registers(player, rng)
        assert player.program_complete()
        assert len(player.hand) == 4

    def test_all_ready(self, two_players):
        deal_hands(two_players)
        assert not all_ready(two_players)
        for player in two_players.players:
            player.is_ready = True
        assert all_ready(two_players)

    def test_return_cards_to_pile(self, two_players):
        deal_hands(two_players)
        player = two_players.players[0]
        program_register(player, 0, player.hand[0].card_id)
        return_cards(two_players, player, keep_locked=False)
        assert player.zone_cards() == []
        assert two_players.deck.total == 84 - 9

    def test_apply_program_fills_empty_slots(self, two_players):
        deal_hands(two_players)
        player = two_players.players[0]
        kept = player.hand[0]
        program_register(player, 0, kept.card_id)
        chosen = [player.hand[0], player.hand[1], player.hand[2], None, player.hand[3]]

        apply_program(player, chosen)

        assert player.registers[0] == kept
        assert player.registers[1:3] == chosen[1:3]
        assert player.registers[3] is None
        assert player.registers[4] == chosen[4]
        assert chosen[0] in player.hand
        assert len(player.hand) == 9 - 4
