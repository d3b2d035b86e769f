#!/usr/bin/env python3
"""
Store new coefficients for the logistic win predictor.

Fit on every completed match in the database:
    python scripts/train_win_predictor.py --fit

Store coefficients worked out elsewhere:
    python scripts/train_win_predictor.py --intercept 0.05 --elo-diff 0.0057 --win-streak-diff 0.12

Use a different model name (default: WIN_PREDICTOR_MODEL_NAME):
    python scripts/train_win_predictor.py --fit --name experimental
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

# Add src to path so this script can be run directly
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from playbook.config import settings
from playbook.errors import PlaybookError
from playbook.prediction import train_win_predictor
from playbook.store import SqlAlchemyStore

logger = logging.getLogger("train_win_predictor")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Replace the stored win-predictor coefficients.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--name",
        default=settings.win_predictor_model_name,
        help="Model name to store the coefficients under.",
    )
    parser.add_argument(
        "--fit",
        action="store_true",
        help="Fit the coefficients on all completed matches.",
    )
    parser.add_argument("--intercept", type=float, default=None)
    parser.add_argument("--elo-diff", type=float, default=None)
    parser.add_argument("--win-streak-diff", type=float, default=None)
    return parser


def main() -> int:
    args = _build_parser().parse_args()
    logging.basicConfig(level=settings.log_level, format=settings.log_format)

    given = {
        "intercept": args.intercept,
        "elo_diff": args.elo_diff,
        "win_streak_diff": args.win_streak_diff,
    }
    explicit = any(value is not None for value in given.values())
    if args.fit == explicit:
        print("ERROR: pass either --fit or all of --intercept/--elo-diff/--win-streak-diff")
        return 1

    try:
        model = train_win_predictor(SqlAlchemyStore(), args.name, given if explicit else None)
    except PlaybookError as exc:
        logger.error("Could not store '%s': %s", args.name, exc)
        return 1

    print(f"Stored '{model.name}':")
    for key, value in model.to_coefficients().items():
        print(f"  {key:<16} {value:.6f}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
