"""
Bots module - AI players.

Provides:
- BotPolicy: Interface for register programming
- EasyPolicy, MediumPolicy, HardPolicy: the three difficulty tiers
- HeuristicEvaluator: Scores simulated positions
- DifficultyProfile: Tunable behavior per tier
"""

from __future__ import annotations
from typing import TYPE_CHECKING
import random

from ..engine_core.state import AIDifficulty
from .policy import BotPolicy, BotDecision, EasyPolicy
from .evaluator import (
    HeuristicEvaluator,
    EvaluationWeights,
    SimulatedPosition,
    simulate_card_sequence,
    evaluate_position,
)
from .personality import DifficultyProfile, PROFILES, get_profile
from .search import MediumPolicy, HardPolicy

if TYPE_CHECKING:
    from ..engine_core.state import GameState, Player


POLICIES: dict[AIDifficulty, type[BotPolicy]] = {
    AIDifficulty.EASY: EasyPolicy,
    AIDifficulty.MEDIUM: MediumPolicy,
    AIDifficulty.HARD: HardPolicy,
}


def create_policy(difficulty: AIDifficulty | None, rng: random.Random | None = None) -> BotPolicy:
    difficulty = difficulty or AIDifficulty.MEDIUM
    return POLICIES[difficulty](get_profile(difficulty), rng)


def make_ai_decision(
    state: GameState,
    player: Player,
    rng: random.Random | None = None,
) -> BotDecision:
    """Program an AI player's registers at its own difficulty (medium by default)."""
    return create_policy(player.ai_difficulty, rng).decide(state, player)


__all__ = [
    "BotPolicy",
    "BotDecision",
    "EasyPolicy",
    "MediumPolicy",
    "HardPolicy",
    "HeuristicEvaluator",
    "EvaluationWeights",
    "SimulatedPosition",
    "simulate_card_sequence",
    "evaluate_position",
    "DifficultyProfile",
    "PROFILES",
    "get_profile",
    "POLICIES",
    "create_policy",
    "make_ai_decision",
]
