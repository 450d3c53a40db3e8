"""Rescan a challenge week from exported chat history.

The history file holds one JSON object per line with ``message_id``,
``user_id`` and ``content`` keys, in thread order.

Usage:
    python scripts/rescan_week.py --week-id 3 --history week3.jsonl
    python scripts/rescan_week.py --week-id 3 --history week3.jsonl --prune-missing
"""

import argparse
import json
import signal
import sys
import threading
from collections.abc import Iterator
from pathlib import Path
from types import FrameType
from typing import Any

from pomo_counter.adapters.repository_factory import create_repository
from pomo_counter.config.logging_config import get_logger, setup_logging
from pomo_counter.config.settings import get_settings
from pomo_counter.domain.exceptions import PomoCounterError
from pomo_counter.domain.models import HistoricalMessage
from pomo_counter.use_cases.message_ledger import MessageLedger
from pomo_counter.use_cases.rescan_week import rescan_week_use_case

logger = get_logger(__name__)


def read_history(path: Path) -> Iterator[HistoricalMessage | tuple[Any, ...]]:
    """Yield history messages from a JSON-lines file, skipping blank lines.

    A line that does not parse is logged and passed on as a raw
    ``(message_id, user_id, content)`` tuple, so the rescan records it as a
    failed message and carries on with the rest of the file.
    """
    with open(path, encoding="utf-8") as f:
        for line_number, line in enumerate(f, start=1):
            if not line.strip():
                continue
            try:
                data = json.loads(line)
                message = HistoricalMessage(**data)
            except (json.JSONDecodeError, TypeError, ValueError) as e:
                logger.warning(
                    "history_line_invalid",
                    path=str(path),
                    line_number=line_number,
                    error=str(e),
                )
                yield _raw_history_tuple(line)
                continue
            yield message


def _raw_history_tuple(line: str) -> tuple[Any, ...]:
    try:
        data = json.loads(line)
    except json.JSONDecodeError:
        return (None, None, line.strip())
    if not isinstance(data, dict):
        return (None, None, data)
    return (data.get("message_id"), data.get("user_id"), data.get("content"))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Rescan a challenge week")
    parser.add_argument("--week-id", type=int, required=True, help="Week to rescan")
    parser.add_argument(
        "--history",
        type=Path,
        required=True,
        help="JSON-lines file with message_id, user_id, content",
    )
    parser.add_argument(
        "--prune-missing",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Delete ledger rows not present in the history (default: from config)",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """Run the rescan and print a summary."""
    args = build_parser().parse_args(argv)

    settings = get_settings()
    setup_logging(log_level=settings.log_level, json_logs=settings.json_logs)

    if not args.history.exists():
        print(f"❌ History file not found: {args.history}")
        return 1

    stop_event = threading.Event()

    def _request_stop(signum: int, frame: FrameType | None) -> None:
        logger.warning("rescan_stop_requested", signal=signum)
        stop_event.set()

    previous_handler = signal.signal(signal.SIGINT, _request_stop)

    prune_missing = args.prune_missing
    if prune_missing is None:
        prune_missing = settings.rescan_prune_missing

    repository = create_repository(settings)
    try:
        result = rescan_week_use_case(
            MessageLedger(repository),
            args.week_id,
            read_history(args.history),
            stop_event=stop_event,
            prune_missing=prune_missing,
            progress_interval=settings.rescan_progress_interval,
        )
    except PomoCounterError as e:
        print(f"❌ Rescan failed: {e}")
        return 1
    finally:
        repository.close()
        signal.signal(signal.SIGINT, previous_handler)

    print(f"✓ Succeeded: {result.succeeded}")
    print(f"✓ Skipped: {result.skipped}")
    print(f"✓ Deleted: {result.deleted}")
    print(f"✗ Failed: {result.failed}")
    for failure in result.failures:
        label = failure.message_id if failure.message_id is not None else "?"
        print(f"   • {label}: {failure.error}")
    if result.cancelled:
        print("\n⚠ Rescan cancelled before the end of the history")
    return 0 if not result.failed else 2


if __name__ == "__main__":
    sys.exit(main())
