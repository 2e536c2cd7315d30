"""
Round Runner - The paced, suspending round loop.

Once every player is ready the session manager hands the round to a
RoundRunner task:
1. Resolve register 0..4, one per lock acquisition
2. After each register broadcast the animation log and a state snapshot
3. Sleep the pacing delay outside the lock, so intents for this session
   (and every other session) keep flowing
4. Stop at once if a winner appears or the match is stopped
5. Otherwise clean up, deal the next hands and return to programming

This is the only long-running coroutine in the core.
"""

from __future__ import annotations
import asyncio
from dataclasses import dataclass
from typing import TYPE_CHECKING, Awaitable, Callable

from ..engine_core.executor import RoundExecutor, cleanup_round
from ..engine_core.programming import deal_hands
from ..engine_core.state import GamePhase, REGISTERS_COUNT
from ..logging_config import get_logger

if TYPE_CHECKING:
    from .manager import GameSession, Transport


SessionHook = Callable[["GameSession"], Awaitable[None]]


@dataclass
class RoundOutcome:
    registers_run: int
    winner_id: str | None = None
    interrupted: bool = False


class RoundRunner:
    """
    Drives one round of one session.

    `after_deal` runs under the session lock once new hands are dealt;
    the manager uses it to program AI players and possibly start the
    next round. `on_finish`, if given, runs under the lock when a
    register produces a winner.
    """

    def __init__(
        self,
        transport: Transport,
        register_delay: float,
        after_deal: SessionHook,
        on_finish: SessionHook | None = None,
    ):
        self.transport = transport
        self.register_delay = register_delay
        self.after_deal = after_deal
        self.on_finish = on_finish

    async def run(self, session: GameSession) -> RoundOutcome:
        log = get_logger("round", session.code)
        executor = RoundExecutor(session.state)
        log.info("Round %d started", session.state.turn)

        for register_index in range(REGISTERS_COUNT):
            async with session.lock:
                state = session.state
                if state.phase != GamePhase.EXECUTING:
                    log.info("Round %d interrupted at register %d", state.turn, register_index)
                    return RoundOutcome(registers_run=register_index, interrupted=True)

                events = executor.execute_register(register_index)
                await self.transport.broadcast_animation(session, register_index, events)
                await self.transport.broadcast_state(session)

                if state.phase == GamePhase.FINISHED:
                    log.info("Match won by %s", state.winner_id)
                    if self.on_finish is not None:
                        await self.on_finish(session)
                    return RoundOutcome(registers_run=register_index + 1, winner_id=state.winner_id)

            await asyncio.sleep(self.register_delay)

        async with session.lock:
            state = session.state
            if state.phase != GamePhase.EXECUTING:
                return RoundOutcome(registers_run=REGISTERS_COUNT, interrupted=True)

            state.phase = GamePhase.CLEANUP
            await self.transport.broadcast_state(session)

            cleanup_round(state)
            deal_hands(state)
            state.turn += 1
            state.current_register = 0
            state.phase = GamePhase.PROGRAMMING
            log.info("Round %d finished, dealing round %d", state.turn - 1, state.turn)

            await self.after_deal(session)
            await self.transport.broadcast_state(session)

        return RoundOutcome(registers_run=REGISTERS_COUNT)
