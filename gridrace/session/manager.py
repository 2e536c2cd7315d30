"""
Session Manager - Owns live game sessions and drives their phase machine.

LIFECYCLE:
1. A host creates a session (lobby) and receives a four-letter code
2. Guests join by code; the host may add or remove AI players
3. Host starts the match: decks are built, hands dealt, AI programs
4. Programming: players fill registers and submit
5. Everyone ready: the RoundRunner resolves registers 0..4
6. Cleanup deals the next round, or the match finishes on a winner
7. Host may restart a finished match back to the lobby
8. The session is deleted when its last human leaves; a match with no
   connected human, or a finished one, expires its absent players after
   the removal timeout

CONCURRENCY:
- Sessions are independent; each has its own asyncio.Lock
- Every mutating operation runs under that lock, so two intents for the
  same session never interleave
- The round loop releases the lock while it sleeps between registers
- Disconnect timers are cancelable tasks keyed by (code, player_id);
  reconnect cancels them under the lock before marking the player
  connected, and timer callbacks re-check state under the lock

ERRORS:
- Authorization, precondition and not-found failures raise GameError
  subclasses for the transport to report to the caller only
- Stale or malformed programming intents are dropped silently
- Operations from a connection that is not in a session are ignored
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any
import asyncio
import random
import time
import uuid

from ..boards import get_board
from ..bots import make_ai_decision
from ..config import Settings
from ..engine_core.events import AnimationEvent
from ..engine_core.programming import (
    all_ready,
    apply_program,
    deal_hands,
    fill_empty_registers,
    program_register as place_card,
    return_cards,
    setup_decks,
)
from ..engine_core.state import (
    AI_NAMES,
    AIDifficulty,
    DisconnectVote,
    GamePhase,
    GameState,
    Player,
    VoteOption,
    PLAYER_COLORS,
    THEMES,
    create_player,
    create_robot,
)
from ..errors import AuthorizationError, NotFoundError, PreconditionError
from ..logging_config import get_logger
from .round_runner import RoundRunner
from .timers import DelayedTasks


CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
CODE_LENGTH = 4

VOTE_KEY = "vote"


def _is_running(state: GameState) -> bool:
    return state.phase in (GamePhase.PROGRAMMING, GamePhase.EXECUTING, GamePhase.CLEANUP)


class Transport(ABC):
    """
    Outbound side of the wire, implemented by the API layer.

    The manager never formats snapshots itself; it tells the transport
    what happened and to whom.
    """

    @abstractmethod
    async def send(self, conn_id: str, message: dict[str, Any]) -> None:
        """Unicast a message (acks) to one connection."""
        pass

    @abstractmethod
    async def broadcast_state(self, session: GameSession) -> None:
        """Send the full state snapshot to every connection in the session."""
        pass

    @abstractmethod
    async def broadcast_animation(
        self,
        session: GameSession,
        register_index: int,
        events: list[AnimationEvent],
    ) -> None:
        """Send one register's animation log to every connection in the session."""
        pass


@dataclass
class GameSession:
    """
    One live match.

    connections maps connection id -> player id. A player has at most one
    connection; AI players have none.
    """
    code: str
    state: GameState
    connections: dict[str, str] = field(default_factory=dict)
    lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)
    round_task: asyncio.Task | None = field(default=None, repr=False)
    rng: random.Random = field(default_factory=random.Random, repr=False)
    created_at: float = field(default_factory=time.time)
    # Set while a running match has no connected human left
    abandoned: bool = False

    def connection_of(self, player_id: str) -> str | None:
        for conn_id, pid in self.connections.items():
            if pid == player_id:
                return conn_id
        return None

    def humans(self) -> list[Player]:
        return [p for p in self.state.players if not p.is_ai]

    def connected_humans(self) -> list[Player]:
        return [p for p in self.humans() if p.is_connected]


class SessionManager:
    """
    Manages game sessions.

    Responsibilities:
    - Create sessions and hand out collision-free codes
    - Map connections to (session, player)
    - Validate and apply intents under the session lock
    - Start paced rounds and disconnect timers

    No persistence - sessions are in-memory only.
    """

    def __init__(
        self,
        transport: Transport,
        settings: Settings | None = None,
        rng: random.Random | None = None,
    ):
        self.transport = transport
        self.settings = settings or Settings()
        self.rng = rng or random.Random()
        self.timers = DelayedTasks()
        self.runner = RoundRunner(
            transport, self.settings.register_delay, self._after_deal, self._release_disconnected,
        )
        self._sessions: dict[str, GameSession] = {}
        self._conn_to_game: dict[str, str] = {}
        self.logger = get_logger("session")

    # =========================================================================
    # Lookup
    # =========================================================================

    def get_session(self, code: str) -> GameSession | None:
        return self._sessions.get(code.upper())

    def list_sessions(self) -> list[GameSession]:
        return list(self._sessions.values())

    def session_for(self, conn_id: str) -> tuple[GameSession, str] | None:
        """The session and player a connection is bound to, if any."""
        code = self._conn_to_game.get(conn_id)
        if code is None:
            return None
        session = self._sessions.get(code)
        if session is None:
            return None
        player_id = session.connections.get(conn_id)
        if player_id is None:
            return None
        return session, player_id

    def _generate_code(self) -> str:
        while True:
            code = "".join(self.rng.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH))
            if code not in self._sessions:
                return code

    def _bind(self, session: GameSession, conn_id: str, player_id: str) -> None:
        # A player keeps only their newest connection
        stale = session.connection_of(player_id)
        if stale is not None:
            del session.connections[stale]
            self._conn_to_game.pop(stale, None)
        session.connections[conn_id] = player_id
        self._conn_to_game[conn_id] = session.code

    def _unbind(self, conn_id: str) -> None:
        code = self._conn_to_game.pop(conn_id, None)
        session = self._sessions.get(code) if code else None
        if session:
            session.connections.pop(conn_id, None)

    @staticmethod
    def _require_host(session: GameSession, player_id: str, message: str) -> None:
        if session.state.host_id != player_id:
            raise AuthorizationError(message)

    # =========================================================================
    # Lobby
    # =========================================================================

    async def create_game(self, conn_id: str, player_name: str) -> tuple[str, str]:
        """Create a session with the caller as host. Returns (code, player_id)."""
        if self.session_for(conn_id):
            await self.leave_game(conn_id)

        code = self._generate_code()
        board = get_board()
        state = GameState(
            game_id=code,
            board=board,
            max_players=self.settings.max_players,
            ruleset=self.settings.ruleset,
        )
        player_id = str(uuid.uuid4())
        host = create_player(player_id, player_name, 0, board.spawn_position(0))
        state.players.append(host)
        state.host_id = player_id

        session = GameSession(code=code, state=state, rng=random.Random(self.rng.random()))
        self._sessions[code] = session

        async with session.lock:
            self._bind(session, conn_id, player_id)
            get_logger("session", code).info("Created by %s", player_name)
            await self.transport.send(conn_id, {"type": "created", "gameId": code, "playerId": player_id})
            await self.transport.broadcast_state(session)
        return code, player_id

    async def join_game(self, conn_id: str, code: str, player_name: str) -> str:
        """Join a lobby by code. Returns the new player id."""
        session = self.get_session(code)
        if session is None:
            raise NotFoundError("Game not found")

        current = self.session_for(conn_id)
        if current and current[0] is not session:
            await self.leave_game(conn_id)

        async with session.lock:
            state = session.state
            if self._sessions.get(session.code) is not session:
                raise NotFoundError("Game not found")

            # Repeated join from a connection already seated here: re-ack that seat
            existing = session.connections.get(conn_id)
            if existing is not None:
                await self.transport.send(conn_id, {"type": "joined", "gameId": session.code, "playerId": existing})
                await self.transport.broadcast_state(session)
                return existing

            if state.phase != GamePhase.LOBBY:
                raise PreconditionError("Game already in progress")
            if state.num_players >= state.max_players:
                raise PreconditionError("Game is full")

            player_id = str(uuid.uuid4())
            seat = state.num_players
            player = create_player(player_id, player_name, seat, state.board.spawn_position(seat))
            player.color = self._free_color(state)
            state.players.append(player)
            self._bind(session, conn_id, player_id)

            get_logger("session", session.code).info("%s joined", player_name)
            await self.transport.send(conn_id, {"type": "joined", "gameId": session.code, "playerId": player_id})
            await self.transport.broadcast_state(session)
        return player_id

    async def reconnect(self, conn_id: str, code: str, player_id: str) -> None:
        """Rebind a returning player to a new connection."""
        session = self.get_session(code)
        if session is None:
            raise NotFoundError("Game not found")

        current = self.session_for(conn_id)
        if current and (current[0] is not session or current[1] != player_id):
            await self.handle_disconnect(conn_id)

        async with session.lock:
            if self._sessions.get(session.code) is not session:
                raise NotFoundError("Game not found")
            player = session.state.get_player(player_id)
            if player is None:
                raise NotFoundError("Player not found in game")

            # Cancel pending cleanup before anything else can observe the player
            self.timers.cancel((session.code, player_id))
            vote = session.state.disconnect_vote
            if vote and vote.player_id == player_id:
                self.timers.cancel((session.code, VOTE_KEY))
                session.state.disconnect_vote = None

            self._bind(session, conn_id, player_id)
            player.is_connected = True
            player.disconnected_at = None
            player.auto_program = False
            if session.abandoned:
                self._rearm_votes(session)

            get_logger("session", session.code).info("%s reconnected", player.name)
            await self.transport.send(
                conn_id, {"type": "reconnected", "gameId": session.code, "playerId": player_id},
            )
            await self.transport.broadcast_state(session)

    async def leave_game(self, conn_id: str) -> None:
        found = self.session_for(conn_id)
        if found is None:
            return
        session, player_id = found
        async with session.lock:
            self._unbind(conn_id)
            await self._remove_player(session, player_id)

    async def _remove_player(self, session: GameSession, player_id: str) -> None:
        """Remove a player; caller holds the session lock."""
        state = session.state
        player = state.get_player(player_id)
        if player is None:
            return
        log = get_logger("session", session.code)

        self.timers.cancel((session.code, player_id))
        conn_id = session.connection_of(player_id)
        if conn_id is not None:
            self._unbind(conn_id)
        if state.disconnect_vote and state.disconnect_vote.player_id == player_id:
            self.timers.cancel((session.code, VOTE_KEY))
            state.disconnect_vote = None

        return_cards(state, player, keep_locked=False)
        state.players.remove(player)
        log.info("%s left", player.name)

        if not session.humans():
            self._delete_session(session)
            return

        if state.host_id == player_id:
            state.host_id = session.humans()[0].player_id
            log.info("Host migrated to %s", state.get_player(state.host_id).name)

        if state.priority_player_id == player_id:
            state.priority_player_id = state.players[0].player_id

        if _is_running(state) and state.num_players < 2:
            state.phase = GamePhase.FINISHED
            state.winner_id = state.players[0].player_id
            log.info("Match finished, not enough players left")
            await self._release_disconnected(session)
        elif state.phase == GamePhase.PROGRAMMING:
            self._maybe_start_round(session)

        await self.transport.broadcast_state(session)

    def _delete_session(self, session: GameSession) -> None:
        code = session.code
        self._sessions.pop(code, None)
        for conn_id in list(session.connections):
            self._conn_to_game.pop(conn_id, None)
        session.connections.clear()
        self.timers.cancel_matching(lambda key: isinstance(key, tuple) and key[0] == code)
        if session.round_task and not session.round_task.done():
            if session.round_task is not asyncio.current_task():
                session.round_task.cancel()
        session.state.phase = GamePhase.FINISHED
        get_logger("session", code).info("Deleted (no players left)")

    @staticmethod
    def _free_color(state: GameState) -> str:
        used = {p.color for p in state.players}
        for color in PLAYER_COLORS:
            if color not in used:
                return color
        return PLAYER_COLORS[state.num_players % len(PLAYER_COLORS)]

    # =========================================================================
    # Host controls
    # =========================================================================

    async def add_ai(self, conn_id: str, difficulty: AIDifficulty = AIDifficulty.MEDIUM) -> str | None:
        found = self.session_for(conn_id)
        if found is None:
            return None
        session, player_id = found
        async with session.lock:
            state = session.state
            self._require_host(session, player_id, "Only the host can add AI players")
            if state.phase != GamePhase.LOBBY:
                raise PreconditionError("Cannot add AI after game starts")
            if state.num_players >= state.max_players:
                raise PreconditionError("Game is full")

            used = {p.name for p in state.players}
            name = next((n for n in AI_NAMES if n not in used), f"Bot {state.num_players + 1}")
            ai_id = f"ai-{uuid.uuid4().hex[:8]}"
            seat = state.num_players
            ai = create_player(
                ai_id, name, seat, state.board.spawn_position(seat),
                is_ai=True, ai_difficulty=difficulty,
            )
            ai.color = self._free_color(state)
            state.players.append(ai)

            get_logger("session", session.code).info("Added AI %s (%s)", name, difficulty.value)
            await self.transport.broadcast_state(session)
            return ai_id

    async def remove_ai(self, conn_id: str, ai_player_id: str) -> None:
        found = self.session_for(conn_id)
        if found is None:
            return
        session, player_id = found
        async with session.lock:
            state = session.state
            self._require_host(session, player_id, "Only the host can remove AI players")
            if state.phase != GamePhase.LOBBY:
                raise PreconditionError("Cannot remove AI after game starts")
            target = state.get_player(ai_player_id)
            if target is None or not target.is_ai:
                raise NotFoundError("AI player not found")

            state.players.remove(target)
            self._reseat(state)
            await self.transport.broadcast_state(session)

    @staticmethod
    def _reseat(state: GameState) -> None:
        """Give every robot the spawn point of its current seat."""
        for seat, player in enumerate(state.players):
            spawn = state.board.spawn_position(seat)
            player.robot.position = spawn
            player.robot.spawn_position = spawn

    async def set_theme(self, conn_id: str, theme: str) -> None:
        found = self.session_for(conn_id)
        if found is None:
            return
        session, player_id = found
        async with session.lock:
            self._require_host(session, player_id, "Only the host can change the theme")
            if session.state.phase != GamePhase.LOBBY:
                raise PreconditionError("Cannot change theme after game starts")
            if theme not in THEMES:
                raise PreconditionError("Invalid theme")
            session.state.theme = theme
            await self.transport.broadcast_state(session)

    async def start_game(self, conn_id: str) -> None:
        found = self.session_for(conn_id)
        if found is None:
            return
        session, player_id = found
        async with session.lock:
            state = session.state
            self._require_host(session, player_id, "Only the host can start the game")
            if state.phase != GamePhase.LOBBY:
                raise PreconditionError("Game already in progress")
            if state.num_players < 2:
                raise PreconditionError("Need at least 2 players")

            self._reseat(state)
            setup_decks(state, session.rng)
            state.priority_player_id = state.players[0].player_id
            state.turn = 1
            state.current_register = 0
            state.winner_id = None
            deal_hands(state)
            state.phase = GamePhase.PROGRAMMING

            get_logger("session", session.code).info("Match started with %d players", state.num_players)
            await self._after_deal(session)
            await self.transport.broadcast_state(session)

    async def restart_game(self, conn_id: str) -> None:
        """Return a finished match to the lobby with fresh robots."""
        found = self.session_for(conn_id)
        if found is None:
            return
        session, player_id = found
        async with session.lock:
            state = session.state
            self._require_host(session, player_id, "Only the host can restart the game")
            if state.phase != GamePhase.FINISHED:
                raise PreconditionError("Game is not finished")

            for seat, player in enumerate(state.players):
                player.robot = create_robot(player.player_id, state.board.spawn_position(seat))
                player.hand = []
                player.registers = [None] * len(player.registers)
                player.is_ready = False
                player.pile = None
                player.auto_program = False
            state.deck = None
            state.phase = GamePhase.LOBBY
            state.turn = 0
            state.current_register = 0
            state.winner_id = None
            state.priority_player_id = None
            state.disconnect_vote = None

            get_logger("session", session.code).info("Restarted")
            await self.transport.broadcast_state(session)

    # =========================================================================
    # Programming
    # =========================================================================

    async def program_register(self, conn_id: str, register_index: int, card_id: str | None) -> bool:
        """Place or clear one register. Stale intents are dropped silently."""
        found = self.session_for(conn_id)
        if found is None:
            return False
        session, player_id = found
        async with session.lock:
            state = session.state
            if state.phase != GamePhase.PROGRAMMING:
                return False
            player = state.get_player(player_id)
            if player is None or not place_card(player, register_index, card_id):
                return False
            await self.transport.broadcast_state(session)
            return True

    async def submit_program(self, conn_id: str) -> None:
        found = self.session_for(conn_id)
        if found is None:
            return
        session, player_id = found
        async with session.lock:
            state = session.state
            player = state.get_player(player_id)
            if state.phase != GamePhase.PROGRAMMING or player is None or player.is_ready:
                return
            if not player.program_complete():
                raise PreconditionError("All registers must be filled")
            player.is_ready = True
            await self.transport.broadcast_state(session)
            self._maybe_start_round(session)

    async def toggle_power_down(self, conn_id: str) -> None:
        """Announce (or withdraw) a power-down for next round."""
        found = self.session_for(conn_id)
        if found is None:
            return
        session, player_id = found
        async with session.lock:
            player = session.state.get_player(player_id)
            if session.state.phase != GamePhase.PROGRAMMING or player is None:
                return
            player.robot.will_power_down = not player.robot.will_power_down
            await self.transport.broadcast_state(session)

    async def _after_deal(self, session: GameSession) -> None:
        """Program AI and auto-programmed players, then start the round if all are ready."""
        state = session.state
        log = get_logger("bots", session.code)
        for player in state.players:
            if player.is_ready:
                continue
            if player.is_ai:
                decision = make_ai_decision(state, player, session.rng)
                apply_program(player, decision.registers)
                player.robot.will_power_down = decision.power_down
                player.is_ready = True
                log.debug(
                    "%s programmed %s (%s)",
                    player.name,
                    [c.type.value if c else None for c in player.registers],
                    decision.explanation,
                )
            elif player.auto_program:
                fill_empty_registers(player, session.rng)
                player.is_ready = True
        self._maybe_start_round(session)

    def _maybe_start_round(self, session: GameSession) -> None:
        """Kick off the round task once everyone is ready. Caller holds the lock."""
        state = session.state
        if state.phase != GamePhase.PROGRAMMING or not all_ready(state):
            return
        state.phase = GamePhase.EXECUTING
        state.current_register = 0
        session.round_task = asyncio.get_running_loop().create_task(self.runner.run(session))

    # =========================================================================
    # Disconnects
    # =========================================================================

    async def handle_disconnect(self, conn_id: str) -> None:
        """
        Mark the player disconnected and schedule the follow-up.

        In the lobby (or after the match) the player is removed after a
        timeout; during a match a vote on what to do starts after a delay,
        unless nobody is left to vote, in which case the match is abandoned.
        """
        found = self.session_for(conn_id)
        if found is None:
            return
        session, player_id = found
        async with session.lock:
            self._unbind(conn_id)
            player = session.state.get_player(player_id)
            if player is None:
                return
            player.is_connected = False
            player.disconnected_at = time.time()
            log = get_logger("session", session.code)
            log.info("%s disconnected", player.name)
            await self.transport.broadcast_state(session)

            if session.state.phase in (GamePhase.LOBBY, GamePhase.FINISHED):
                self._schedule_removal(session, player_id)
            elif not session.connected_humans():
                await self._abandon(session)
            else:
                self._schedule_vote(session, player_id, self.settings.vote_delay)

    def _schedule_removal(self, session: GameSession, player_id: str) -> None:
        self.timers.schedule(
            (session.code, player_id),
            self.settings.lobby_removal_timeout,
            lambda: self._remove_if_still_gone(session, player_id),
        )

    async def _release_disconnected(self, session: GameSession) -> None:
        """
        Put every disconnected human on the removal timer.

        Runs when a match finishes or is abandoned; any pending vote is
        dropped since nobody is left to decide it. Caller holds the lock.
        """
        state = session.state
        if state.disconnect_vote is not None:
            self.timers.cancel((session.code, VOTE_KEY))
            state.disconnect_vote = None
        for player in session.humans():
            if not player.is_connected:
                self._schedule_removal(session, player.player_id)

    async def _abandon(self, session: GameSession) -> None:
        """No human is connected to a running match: stop auto-play and expire the seats."""
        session.abandoned = True
        for player in session.humans():
            player.auto_program = False
        get_logger("session", session.code).info("Abandoned, removing in %ss", self.settings.lobby_removal_timeout)
        await self._release_disconnected(session)

    def _rearm_votes(self, session: GameSession) -> None:
        """A human is back: the other absent players return to the vote path."""
        session.abandoned = False
        if not _is_running(session.state):
            return
        for player in session.humans():
            if not player.is_connected:
                self._schedule_vote(session, player.player_id, self.settings.vote_delay)

    def _schedule_vote(self, session: GameSession, player_id: str, delay: float) -> None:
        self.timers.schedule(
            (session.code, player_id),
            delay,
            lambda: self._start_vote(session, player_id),
        )

    async def _remove_if_still_gone(self, session: GameSession, player_id: str) -> None:
        async with session.lock:
            player = session.state.get_player(player_id)
            if player is None or player.is_connected or self._sessions.get(session.code) is not session:
                return
            await self._remove_player(session, player_id)

    async def _start_vote(self, session: GameSession, player_id: str) -> None:
        async with session.lock:
            state = session.state
            player = state.get_player(player_id)
            if player is None or player.is_connected or self._sessions.get(session.code) is not session:
                return
            if not _is_running(state):
                return
            if not self._eligible_voters(session, player_id):
                await self._abandon(session)
                await self.transport.broadcast_state(session)
                return
            if state.disconnect_vote is not None:
                # One vote at a time; try again once the current one resolves
                self._schedule_vote(session, player_id, self.settings.vote_duration)
                return

            now = time.time()
            state.disconnect_vote = DisconnectVote(
                player_id=player_id,
                player_name=player.name,
                started_at=now,
                ends_at=now + self.settings.vote_duration,
            )
            get_logger("session", session.code).info("Vote started on %s", player.name)
            await self.transport.broadcast_state(session)

            self.timers.schedule(
                (session.code, VOTE_KEY),
                self.settings.vote_duration,
                lambda: self._resolve_vote_locked(session),
            )

    @staticmethod
    def _eligible_voters(session: GameSession, target_id: str) -> list[Player]:
        return [p for p in session.connected_humans() if p.player_id != target_id]

    async def vote_disconnect(self, conn_id: str, option: VoteOption) -> None:
        found = self.session_for(conn_id)
        if found is None:
            return
        session, player_id = found
        async with session.lock:
            vote = session.state.disconnect_vote
            if vote is None or vote.player_id == player_id:
                return
            vote.votes[player_id] = option
            voters = {p.player_id for p in self._eligible_voters(session, vote.player_id)}
            if voters and voters.issubset(vote.votes):
                self.timers.cancel((session.code, VOTE_KEY))
                await self._resolve_vote(session)
            else:
                await self.transport.broadcast_state(session)

    async def _resolve_vote_locked(self, session: GameSession) -> None:
        async with session.lock:
            await self._resolve_vote(session)

    async def _resolve_vote(self, session: GameSession) -> None:
        """Apply the vote result. Caller holds the session lock."""
        state = session.state
        vote = state.disconnect_vote
        if vote is None:
            return
        state.disconnect_vote = None
        result = vote.tally()
        log = get_logger("session", session.code)
        log.info("Vote on %s resolved: %s", vote.player_name, result.value)

        player = state.get_player(vote.player_id)
        if player is None or player.is_connected:
            await self.transport.broadcast_state(session)
            return

        if result == VoteOption.REMOVE:
            await self._remove_player(session, player.player_id)
            return

        if result == VoteOption.STOP_GAME:
            state.phase = GamePhase.FINISHED
            state.winner_id = None
            await self._release_disconnected(session)
        else:
            player.auto_program = True
            if state.phase == GamePhase.PROGRAMMING and not player.is_ready:
                fill_empty_registers(player, session.rng)
                player.is_ready = True
                self._maybe_start_round(session)
        await self.transport.broadcast_state(session)

    # =========================================================================
    # Shutdown
    # =========================================================================

    async def close(self) -> None:
        """Cancel every timer and round task."""
        self.timers.cancel_matching(lambda key: True)
        tasks = [s.round_task for s in self._sessions.values() if s.round_task and not s.round_task.done()]
        for task in tasks:
            task.cancel()
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
