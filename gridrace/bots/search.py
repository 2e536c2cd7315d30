"""
Search Policies - Medium (greedy lookahead) and hard (bounded permutations).

Both simulate candidate programs for the AI's robot alone on the board
and score them with the HeuristicEvaluator. Locked registers are part of
every simulated program but are never reassigned.
"""

from __future__ import annotations
from itertools import permutations
from typing import TYPE_CHECKING
import random

from ..engine_core.cards import Card
from ..engine_core.state import REGISTERS_COUNT
from ..logging_config import get_logger
from .evaluator import HeuristicEvaluator, distance_to_checkpoint
from .personality import DifficultyProfile, MEDIUM, HARD
from .policy import BotDecision, BotPolicy

if TYPE_CHECKING:
    from ..engine_core.state import GameState, Player


logger = get_logger("bots")


class MediumPolicy(BotPolicy):
    """
    Greedy per-register selection.

    For each empty register, try every remaining card there, simulate the
    program up to `lookahead` registers from that point, and keep the
    best. With `randomness` probability a random other card is played
    instead.
    """

    def __init__(self, profile: DifficultyProfile = MEDIUM, rng: random.Random | None = None):
        super().__init__(profile, rng)
        self.evaluator = HeuristicEvaluator(profile.weights)

    def choose_registers(self, state: GameState, player: Player) -> BotDecision:
        board = state.board
        robot = player.robot
        available = list(player.hand)
        registers = list(player.registers)
        evaluated = 0
        best_score = float("-inf")

        for i in player.empty_registers():
            if not available:
                break

            best_card: Card | None = None
            best_score = float("-inf")
            window = i + min(self.profile.lookahead, REGISTERS_COUNT - i)
            for card in available:
                trial = list(registers)
                trial[i] = card
                score = self.evaluator.evaluate_program(board, robot, trial[:window])
                evaluated += 1
                if score > best_score:
                    best_score = score
                    best_card = card

            if len(available) > 1 and self.rng.random() < self.profile.randomness:
                others = [c for c in available if c != best_card]
                best_card = self.rng.choice(others)

            available.remove(best_card)
            registers[i] = best_card

        return BotDecision(
            registers=registers,
            explanation=f"Greedy choice with {self.profile.lookahead}-register lookahead",
            evaluated_sequences=evaluated,
            best_score=best_score,
        )

    def should_power_down(self, state: GameState, player: Player) -> bool:
        threshold = self.profile.power_down_damage
        if threshold is None or player.robot.damage < threshold:
            return False
        return self.rng.random() < self.profile.power_down_probability


class HardPolicy(BotPolicy):
    """
    Bounded exhaustive search over whole programs.

    Enumerates ordered selections of hand cards for the empty registers,
    stops after `max_sequences` candidates, and keeps the best full
    program found. Ties keep the earliest candidate, so the result is
    deterministic for a given hand order.
    """

    def __init__(self, profile: DifficultyProfile = HARD, rng: random.Random | None = None):
        super().__init__(profile, rng)
        self.evaluator = HeuristicEvaluator(profile.weights)

    def choose_registers(self, state: GameState, player: Player) -> BotDecision:
        board = state.board
        robot = player.robot
        registers = list(player.registers)
        slots = player.empty_registers()
        length = min(len(slots), len(player.hand))

        if length == 0:
            return BotDecision(registers=registers, explanation="Nothing to program")

        best_program: list[Card | None] = registers
        best_score = float("-inf")
        examined = 0

        for sequence in permutations(player.hand, length):
            if examined >= self.profile.max_sequences:
                break
            examined += 1

            program = list(registers)
            for slot, card in zip(slots, sequence):
                program[slot] = card
            score = self.evaluator.evaluate_program(board, robot, program)
            if score > best_score:
                best_score = score
                best_program = program

        logger.debug(
            "%s examined %d programs, best score %.1f", player.name, examined, best_score,
        )
        return BotDecision(
            registers=best_program,
            explanation=f"Best of {examined} programs",
            evaluated_sequences=examined,
            best_score=best_score,
        )

    def should_power_down(self, state: GameState, player: Player) -> bool:
        threshold = self.profile.power_down_damage
        robot = player.robot
        if threshold is None or robot.damage < threshold:
            return False
        distance = distance_to_checkpoint(state.board, robot.position, robot.last_checkpoint)
        return distance > self.profile.power_down_min_distance
