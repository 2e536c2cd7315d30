"""
Difficulty Profiles - Tunable behavior per AI difficulty.

Profiles adjust:
- Randomness (chance of ignoring the best choice)
- Search breadth (lookahead window, permutation cap)
- Power-down policy (damage threshold, probability, distance gate)
- Evaluation weights
"""

from __future__ import annotations
from dataclasses import dataclass, field

from ..engine_core.state import AIDifficulty
from .evaluator import EvaluationWeights


@dataclass
class DifficultyProfile:
    """
    How one difficulty tier plays.

    power_down_damage of None means the tier never powers down.
    """
    name: str
    description: str = ""

    weights: EvaluationWeights = field(default_factory=EvaluationWeights)

    randomness: float = 0.0  # Probability of a random pick instead of the best
    lookahead: int = 0  # Registers simulated past the one being chosen
    max_sequences: int = 0  # Permutation cap for exhaustive search

    power_down_damage: int | None = None
    power_down_probability: float = 1.0
    power_down_min_distance: int = 0  # Only power down when farther than this


# ============================================================================
# Predefined Profiles
# ============================================================================

EASY = DifficultyProfile(
    name="Easy",
    description="Mostly prefers movement cards, often plays at random",
    randomness=0.4,
)


MEDIUM = DifficultyProfile(
    name="Medium",
    description="Greedy register-by-register choice with short lookahead",
    randomness=0.15,
    lookahead=3,
    power_down_damage=6,
    power_down_probability=0.3,
)


HARD = DifficultyProfile(
    name="Hard",
    description="Searches whole programs, powers down when badly hurt and far away",
    max_sequences=1000,
    power_down_damage=7,
    power_down_min_distance=4,
)


PROFILES: dict[AIDifficulty, DifficultyProfile] = {
    AIDifficulty.EASY: EASY,
    AIDifficulty.MEDIUM: MEDIUM,
    AIDifficulty.HARD: HARD,
}


def get_profile(difficulty: AIDifficulty | None) -> DifficultyProfile:
    """Profile for a difficulty; medium when unspecified."""
    return PROFILES.get(difficulty or AIDifficulty.MEDIUM, MEDIUM)
