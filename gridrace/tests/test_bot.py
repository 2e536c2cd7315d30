"""
Tests for AI register programming.

Tests:
- Every difficulty fills exactly the empty registers from its hand
- Locked registers and the game state are left alone
- Search finds the obvious program
- Power-down decisions per difficulty
"""

import random

import pytest

from ..bots import (
    EasyPolicy,
    HardPolicy,
    MediumPolicy,
    create_policy,
    make_ai_decision,
    simulate_card_sequence,
)
from ..bots.evaluator import HeuristicEvaluator, SimulatedPosition
from ..bots.personality import HARD, MEDIUM, DifficultyProfile
from ..engine_core.board import Checkpoint, Direction, Position, Tile
from ..engine_core.cards import CardType
from ..engine_core.state import AIDifficulty


@pytest.fixture
def race(open_board, make_state, add_player):
    """One AI robot two tiles south of the first checkpoint."""
    open_board.checkpoints = [Checkpoint(5, 3, 1), Checkpoint(1, 1, 2)]
    state = make_state(open_board)
    player = add_player(state, "bot", 5, 5, Direction.NORTH, is_ai=True, ai_difficulty=AIDifficulty.HARD)
    return state, player


def give_hand(player, make_card, types):
    player.hand = [make_card(t) for t in types]


MIXED_HAND = [
    CardType.MOVE1, CardType.MOVE2, CardType.ROTATE_LEFT,
    CardType.ROTATE_RIGHT, CardType.UTURN, CardType.BACKUP,
    CardType.MOVE3, CardType.ROTATE_LEFT, CardType.MOVE1,
]


class TestTotality:

    @pytest.mark.parametrize("difficulty", list(AIDifficulty))
    def test_fills_every_empty_register(self, race, make_card, difficulty):
        state, player = race
        give_hand(player, make_card, MIXED_HAND)

        decision = create_policy(difficulty, random.Random(3)).decide(state, player)

        assert all(card is not None for card in decision.registers)
        chosen = decision.chosen_cards()
        assert len(set(chosen)) == 5
        assert all(card in player.hand for card in chosen)

    @pytest.mark.parametrize("difficulty", list(AIDifficulty))
    def test_locked_registers_untouched(self, race, make_card, difficulty):
        state, player = race
        player.robot.damage = 6
        locked = [make_card(CardType.UTURN), make_card(CardType.BACKUP)]
        player.registers[3:] = locked
        give_hand(player, make_card, MIXED_HAND[:3])

        decision = create_policy(difficulty, random.Random(5)).decide(state, player)

        assert decision.registers[3:] == locked
        assert set(decision.registers[:3]) == set(player.hand)

    @pytest.mark.parametrize("difficulty", list(AIDifficulty))
    def test_state_is_not_mutated(self, race, make_card, difficulty):
        state, player = race
        give_hand(player, make_card, MIXED_HAND)
        hand_before = list(player.hand)
        position_before = player.robot.position

        create_policy(difficulty, random.Random(8)).decide(state, player)

        assert player.hand == hand_before
        assert player.registers == [None] * 5
        assert player.robot.position == position_before

    def test_short_hand_leaves_slots_empty(self, race, make_card):
        state, player = race
        give_hand(player, make_card, [CardType.MOVE1, CardType.MOVE2])

        decision = HardPolicy(rng=random.Random(1)).decide(state, player)

        assert len(decision.chosen_cards()) == 2
        assert decision.registers.count(None) == 3

    def test_empty_hand(self, race):
        state, player = race
        decision = MediumPolicy(rng=random.Random(1)).decide(state, player)
        assert decision.registers == [None] * 5


class TestChoices:

    def test_easy_without_randomness_prefers_movement(self, race, make_card):
        state, player = race
        give_hand(player, make_card, MIXED_HAND)
        policy = EasyPolicy(DifficultyProfile(name="Calm", randomness=0.0))

        decision = policy.decide(state, player)

        types = {c.type for c in decision.chosen_cards()}
        assert types == {CardType.MOVE1, CardType.MOVE2, CardType.MOVE3, CardType.BACKUP}
        assert not decision.power_down

    def test_hard_reaches_checkpoint(self, race, make_card):
        state, player = race
        give_hand(player, make_card, [
            CardType.MOVE2, CardType.UTURN, CardType.ROTATE_LEFT,
            CardType.ROTATE_LEFT, CardType.ROTATE_RIGHT,
        ])

        decision = HardPolicy(rng=random.Random(1)).decide(state, player)

        final = simulate_card_sequence(state.board, player.robot, decision.registers)
        assert final.position == Position(5, 3)
        assert decision.evaluated_sequences == 120

    def test_hard_respects_sequence_cap(self, race, make_card):
        state, player = race
        give_hand(player, make_card, MIXED_HAND)
        profile = DifficultyProfile(name="Capped", max_sequences=10)

        decision = HardPolicy(profile, random.Random(1)).decide(state, player)

        assert decision.evaluated_sequences == 10

    def test_hard_avoids_pit(self, race, make_card):
        state, player = race
        state.board.set_tile(5, 4, Tile.pit())
        give_hand(player, make_card, [
            CardType.MOVE1, CardType.MOVE1, CardType.ROTATE_RIGHT,
            CardType.ROTATE_RIGHT, CardType.ROTATE_LEFT, CardType.UTURN,
        ])

        decision = HardPolicy(rng=random.Random(1)).decide(state, player)

        final = simulate_card_sequence(state.board, player.robot, decision.registers)
        assert not final.is_destroyed

    def test_medium_without_randomness_is_greedy(self, race, make_card):
        state, player = race
        give_hand(player, make_card, MIXED_HAND)
        profile = DifficultyProfile(name="Greedy", lookahead=3)

        decision = MediumPolicy(profile, random.Random(1)).decide(state, player)

        # move2 from (5,5) facing north lands on the checkpoint
        assert decision.registers[0].type == CardType.MOVE2


class TestPowerDown:

    def test_hard_powers_down_when_hurt_and_far(self, race):
        state, player = race
        player.robot.position = Position(9, 9)
        player.robot.damage = 8
        assert HardPolicy(rng=random.Random(1)).should_power_down(state, player)

    def test_hard_keeps_going_near_checkpoint(self, race):
        state, player = race
        player.robot.damage = 8
        assert not HardPolicy(rng=random.Random(1)).should_power_down(state, player)

    def test_medium_threshold(self, race):
        state, player = race
        certain = DifficultyProfile(name="Sure", power_down_damage=6, power_down_probability=1.0)
        policy = MediumPolicy(certain, random.Random(1))
        player.robot.damage = 5
        assert not policy.should_power_down(state, player)
        player.robot.damage = 6
        assert policy.should_power_down(state, player)

    def test_easy_never_powers_down(self, race):
        state, player = race
        player.robot.damage = 9
        assert not EasyPolicy(rng=random.Random(1)).should_power_down(state, player)


class TestEvaluator:

    def test_destroyed_scores_lowest(self, race):
        state, player = race
        evaluator = HeuristicEvaluator()
        alive = SimulatedPosition(5, 9, Direction.NORTH, damage=9)
        dead = SimulatedPosition(5, 4, Direction.NORTH, damage=0, is_destroyed=True)
        assert evaluator.evaluate(state.board, dead, 0) < evaluator.evaluate(state.board, alive, 0)

    def test_on_checkpoint_scores_highest(self, race):
        state, player = race
        evaluator = HeuristicEvaluator()
        on = SimulatedPosition(5, 3, Direction.NORTH, damage=0)
        near = SimulatedPosition(5, 4, Direction.NORTH, damage=0)
        assert evaluator.evaluate(state.board, on, 0) > evaluator.evaluate(state.board, near, 0)


class TestFacade:

    def test_make_ai_decision_uses_player_difficulty(self, race, make_card):
        state, player = race
        give_hand(player, make_card, MIXED_HAND)
        decision = make_ai_decision(state, player, random.Random(2))
        assert decision.evaluated_sequences > 0
        assert "programs" in decision.explanation

    def test_unknown_difficulty_defaults_to_medium(self):
        policy = create_policy(None)
        assert isinstance(policy, MediumPolicy)
        assert policy.profile is MEDIUM

    def test_hard_profile(self):
        assert create_policy(AIDifficulty.HARD).profile is HARD
