#!/usr/bin/env python
"""
Play Chukrum against the bot in a terminal.

Examples:
    python -m chukrum.tools.play --difficulty hard
    python -m chukrum.tools.play --rounds 3 --seed 7 --transcript game.jsonl
"""

import argparse
import asyncio
import logging

from chukrum.adapters import CLIAdapter, TranscriptAdapter
from chukrum.engine import SoloEngine


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Play Chukrum against the bot.")
    parser.add_argument(
        "-d",
        "--difficulty",
        choices=["easy", "normal", "hard"],
        default="normal",
        help="bot difficulty (default: normal)",
    )
    parser.add_argument(
        "-r", "--rounds", type=int, default=1, help="number of rounds to play (default: 1)"
    )
    parser.add_argument("--seed", type=int, help="random seed for reproducible deals")
    parser.add_argument(
        "--queen-peek",
        choices=["own_only", "either"],
        default="own_only",
        help="which hand a Queen may peek (default: own_only)",
    )
    parser.add_argument(
        "--think-delay",
        type=float,
        default=1.0,
        help="seconds the bot waits before moving (default: 1.0)",
    )
    parser.add_argument("--name", default="You", help="your display name")
    parser.add_argument("--transcript", help="append a JSON-lines transcript to this file")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    return parser.parse_args(argv)


async def main(argv=None):
    args = parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    adapter = CLIAdapter()
    if args.transcript:
        adapter = TranscriptAdapter(args.transcript, inner=adapter)

    engine = SoloEngine(
        adapter,
        {
            "difficulty": args.difficulty,
            "seed": args.seed,
            "queen_peek": args.queen_peek,
            "think_delay": args.think_delay,
            "player_name": args.name,
        },
    )
    await engine.initialize()

    wins = 0
    try:
        for _ in range(args.rounds):
            state = await engine.play_round()
            if state.result.winner_index == SoloEngine.HUMAN:
                wins += 1
    except (TimeoutError, ValueError):
        print("\nGame aborted.")
    finally:
        await engine.shutdown()

    print(f"You won {wins} of {engine.rounds_played} round(s).")


def run():
    asyncio.run(main())


if __name__ == "__main__":
    run()
