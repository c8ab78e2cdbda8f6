#!/usr/bin/env python
"""
Bot tier simulations and shuffle checks.

Examples:
    # Hard against normal, 1000 rounds
    python -m chukrum.tools.simulate --first hard --second normal --rounds 1000

    # Every pairing of tiers, reproducibly
    python -m chukrum.tools.simulate --all --rounds 500 --seed 42

    # Shuffle fidelity over 20000 shuffles
    python -m chukrum.tools.simulate --shuffle-check 20000
"""

import argparse
import itertools
import json
import logging
import random

from chukrum.analysis import shuffle_fidelity, simulate

TIERS = ["easy", "normal", "hard"]


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Simulate Chukrum bot tiers.")
    parser.add_argument("--first", choices=TIERS, default="hard", help="seat 0 tier")
    parser.add_argument("--second", choices=TIERS, default="normal", help="seat 1 tier")
    parser.add_argument("--all", action="store_true", help="run every pairing of tiers")
    parser.add_argument(
        "-r", "--rounds", type=int, default=1000, help="rounds per pairing (default: 1000)"
    )
    parser.add_argument("--seed", type=int, help="random seed for reproducible results")
    parser.add_argument(
        "--shuffle-check",
        type=int,
        metavar="N",
        help="run the shuffle fidelity test over N shuffles instead",
    )
    parser.add_argument("--json", action="store_true", help="print results as JSON")
    parser.add_argument("-v", "--verbose", action="store_true", help="info logging")
    return parser.parse_args(argv)


def _print_summary(summary):
    rate = summary["first_win_rate"]
    ci = rate["confidence_interval"]
    print(f"\n{summary['first']} vs {summary['second']} ({summary['rounds']} rounds)")
    print(
        f"  {summary['first']} win rate: {rate['win_rate']:.3f} "
        f"[{ci['lower']:.3f}, {ci['upper']:.3f}]  ties: {rate['tie_rate']:.3f}"
    )
    print(
        f"  mean score: {summary['first_scores']['mean']:.2f} vs "
        f"{summary['second_scores']['mean']:.2f}"
    )
    print(f"  average turns: {summary['average_turns']:.1f}")
    for reason, count in sorted(summary["end_reasons"].items()):
        print(f"  {reason}: {count}")


def main(argv=None):
    args = parse_args(argv)
    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING)

    if args.shuffle_check:
        result = shuffle_fidelity(args.shuffle_check, rng=random.Random(args.seed))
        if args.json:
            print(json.dumps(result.to_dict(), indent=2))
        else:
            verdict = "uniform" if result.passed else "NOT uniform"
            print(
                f"chi2={result.chi_square:.1f} dof={result.degrees_of_freedom} "
                f"p={result.p_value:.4f}: {verdict}"
            )
        return 0 if result.passed else 1

    pairings = (
        list(itertools.combinations_with_replacement(TIERS, 2))
        if args.all
        else [(args.first, args.second)]
    )
    summaries = [
        simulate(first, second, rounds=args.rounds, seed=args.seed).summary()
        for first, second in pairings
    ]

    if args.json:
        print(json.dumps(summaries, indent=2))
    else:
        for summary in summaries:
            _print_summary(summary)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
