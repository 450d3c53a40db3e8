"""Generate a week's leaderboard and print it as JSON.

Usage:
    python scripts/generate_leaderboard.py --week-id 3
    python scripts/generate_leaderboard.py --week-id 3 --seed 7 --mark-posted
"""

import argparse
import random
import sys

from pomo_counter.adapters.repository_factory import create_repository
from pomo_counter.config.logging_config import setup_logging
from pomo_counter.config.settings import get_settings
from pomo_counter.domain.models import ReportKind
from pomo_counter.services.leaderboard_builder import rank_badge
from pomo_counter.use_cases.generate_leaderboard import generate_leaderboard_use_case


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Generate a weekly leaderboard")
    parser.add_argument("--week-id", type=int, required=True, help="Week to report")
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Seed for reward draws (default: random)",
    )
    parser.add_argument(
        "--mark-posted",
        action="store_true",
        help="Set the week's leaderboard-posted flag after a DATA report",
    )
    parser.add_argument(
        "--text",
        action="store_true",
        help="Print a plain-text table instead of JSON",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """Generate the report and print it."""
    args = build_parser().parse_args(argv)

    settings = get_settings()
    setup_logging(log_level=settings.log_level, json_logs=settings.json_logs)

    repository = create_repository(settings)
    try:
        report = generate_leaderboard_use_case(
            repository,
            args.week_id,
            rng=random.Random(args.seed) if args.seed is not None else None,
        )
        if args.mark_posted and report.kind == ReportKind.DATA:
            repository.mark_leaderboard_posted(args.week_id)
    finally:
        repository.close()

    if args.text:
        print(report.title)
        print(report.description)
        for entry in report.entries:
            reward = f" {entry.reward_emoji}" if entry.reward_emoji else ""
            print(
                f"{rank_badge(entry.rank)} {entry.user_id}: "
                f"{entry.weekly_points} pts this week, "
                f"{entry.total_points} pts total{reward}"
            )
        if report.footer:
            print(report.footer)
    else:
        print(report.model_dump_json(indent=2))

    return 1 if report.kind == ReportKind.ERROR else 0


if __name__ == "__main__":
    sys.exit(main())
