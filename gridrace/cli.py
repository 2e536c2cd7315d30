"""
Gridrace CLI - Command-line interface for the server.

Usage:
    gridrace serve [--host HOST] [--port PORT]     Run the WebSocket server
    gridrace simulate [--players N] [--difficulty D] [--seed S]
                                                   Play a headless AI-only match
    gridrace boards                                List available boards
"""

import argparse
import random
import sys


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Gridrace - Robot programming race server",
        prog="gridrace",
    )
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Serve command
    serve_parser = subparsers.add_parser("serve", help="Run the WebSocket server")
    serve_parser.add_argument("--host", default="0.0.0.0", help="Bind address")
    serve_parser.add_argument("--port", type=int, default=8000, help="Bind port")
    serve_parser.add_argument("--reload", action="store_true", help="Reload on code changes")

    # Simulate command
    sim_parser = subparsers.add_parser("simulate", help="Play a headless AI-only match")
    sim_parser.add_argument("--players", type=int, default=4, help="Number of AI robots (2-8)")
    sim_parser.add_argument(
        "--difficulty", choices=["easy", "medium", "hard"], default="medium",
        help="AI difficulty for every robot",
    )
    sim_parser.add_argument("--ruleset", choices=["legacy", "token"], default="legacy")
    sim_parser.add_argument("--seed", type=int, default=None, help="Random seed")
    sim_parser.add_argument("--max-turns", type=int, default=100, help="Give up after this many rounds")

    # Boards command
    subparsers.add_parser("boards", help="List available boards")

    args = parser.parse_args(argv)

    if args.command == "serve":
        cmd_serve(args)
    elif args.command == "simulate":
        cmd_simulate(args)
    elif args.command == "boards":
        cmd_boards(args)
    else:
        parser.print_help()
        sys.exit(1)


def cmd_serve(args):
    """Run the server with uvicorn."""
    import uvicorn

    uvicorn.run(
        "gridrace.api.app:create_app",
        factory=True,
        host=args.host,
        port=args.port,
        reload=args.reload,
    )


def cmd_simulate(args):
    """Play AI robots against each other until someone wins."""
    from .boards import get_board
    from .bots import make_ai_decision
    from .engine_core.executor import run_round
    from .engine_core.programming import apply_program, deal_hands, setup_decks
    from .engine_core.state import (
        AI_NAMES, AIDifficulty, GamePhase, GameState, Ruleset, create_player,
    )
    from .logging_config import setup_logging

    if not 2 <= args.players <= 8:
        print("Error: --players must be between 2 and 8")
        sys.exit(1)

    setup_logging()
    rng = random.Random(args.seed)
    board = get_board()
    state = GameState(game_id="SIM", board=board, ruleset=Ruleset(args.ruleset))
    difficulty = AIDifficulty(args.difficulty)
    for seat in range(args.players):
        state.players.append(create_player(
            f"ai-{seat + 1}", AI_NAMES[seat % len(AI_NAMES)], seat, board.spawn_position(seat),
            is_ai=True, ai_difficulty=difficulty,
        ))
    state.host_id = state.players[0].player_id
    state.priority_player_id = state.host_id

    setup_decks(state, rng)
    print(f"Simulating {args.players} {difficulty.value} robots on {board.name}")
    print("=" * 50)

    for turn in range(1, args.max_turns + 1):
        state.turn = turn
        deal_hands(state)
        for player in state.players:
            if not player.hand:
                continue
            decision = make_ai_decision(state, player, rng)
            apply_program(player, decision.registers)
            player.robot.will_power_down = decision.power_down

        run_round(state)

        standings = ", ".join(
            f"{p.name} cp{p.robot.last_checkpoint} dmg{p.robot.damage} L{p.robot.lives}"
            for p in state.players
        )
        print(f"Round {turn:3d}: {standings}")

        if state.phase == GamePhase.FINISHED:
            winner = state.get_player(state.winner_id)
            print("=" * 50)
            print(f"{winner.name} wins after {turn} rounds")
            return

        if all(p.robot.is_eliminated for p in state.players):
            print("=" * 50)
            print("Every robot was eliminated")
            return

    print("=" * 50)
    print(f"No winner after {args.max_turns} rounds")


def cmd_boards(args):
    """List registered boards."""
    from .boards import get_board, list_boards

    for board_id in list_boards():
        board = get_board(board_id)
        print(f"{board.board_id:16s} {board.name} ({board.width}x{board.height}, "
              f"{len(board.checkpoints)} checkpoints)")


if __name__ == "__main__":
    main()
