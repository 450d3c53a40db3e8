"""Rescan week use case.

Replays a week's chat history through the ledger with forced reprocessing.
"""

from collections.abc import Iterable
from threading import Event as StopEvent
from time import perf_counter
from typing import Any

from pomo_counter.config.logging_config import get_logger
from pomo_counter.config.settings import RESCAN_PROGRESS_INTERVAL_DEFAULT
from pomo_counter.domain.exceptions import WeekNotFoundError
from pomo_counter.domain.models import (
    HistoricalMessage,
    ProcessingStatus,
    RescanFailure,
    RescanResult,
)
from pomo_counter.observability.tracing import correlation_scope
from pomo_counter.use_cases.message_ledger import MessageLedger

logger = get_logger(__name__)

RescanItem = HistoricalMessage | tuple[Any, ...]


def _readable_message_id(item: RescanItem) -> int | None:
    if isinstance(item, HistoricalMessage):
        return item.message_id
    try:
        candidate = item[0]
    except (IndexError, TypeError):
        return None
    return candidate if isinstance(candidate, int) else None


def _to_historical_message(item: RescanItem) -> HistoricalMessage:
    if isinstance(item, HistoricalMessage):
        return item
    message_id, user_id, content = item
    return HistoricalMessage(
        message_id=message_id, user_id=user_id, content=content or ""
    )


def rescan_week_use_case(
    ledger: MessageLedger,
    week_id: int,
    messages: Iterable[RescanItem],
    *,
    stop_event: StopEvent | None = None,
    prune_missing: bool = False,
    progress_interval: int = RESCAN_PROGRESS_INTERVAL_DEFAULT,
    correlation_id: str | None = None,
) -> RescanResult:
    """Rebuild a week's ledger rows from chat history.

    1. Resolve the week (missing -> WeekNotFoundError)
    2. For each message, in order:
       a. Stop early if stop_event is set
       b. Normalize the tuple and process_for_week(force_reprocess=True)
       c. PROCESSED -> succeeded, other statuses -> skipped,
          exception (malformed tuples included) -> failed (logged, recorded,
          rescan continues)
    3. If prune_missing and the run was not cancelled, delete this week's rows
       whose message id was not supplied. Pruning is skipped when a failed
       entry had no readable message id, since its row cannot be told apart
       from an obsolete one.

    Args:
        ledger: Message ledger bound to a repository
        week_id: Week to rescan
        messages: Ordered (message_id, user_id, content) history
        stop_event: Cancellation flag checked between messages
        prune_missing: Delete rows absent from the supplied history; only
            meaningful when the history covers the whole thread
        progress_interval: Log progress every N messages
        correlation_id: Correlation id to bind for the run

    Returns:
        RescanResult with counts and per-message failures

    Raises:
        WeekNotFoundError: If the week does not exist
        RepositoryError: If pruning fails

    Example:
        >>> result = rescan_week_use_case(ledger, 3, [(1001, 42, "🍅")])
        >>> result.succeeded
        1
    """
    with correlation_scope(correlation_id, prefix="rescan") as bound_correlation_id:
        week = ledger.repository.get_week(week_id)
        if week is None:
            raise WeekNotFoundError(week_id)

        stage_start = perf_counter()
        result = RescanResult(week_id=week_id)
        seen_message_ids: set[int] = set()
        unidentified_failures = False

        logger.info(
            "rescan_started",
            correlation_id=bound_correlation_id,
            week_id=week_id,
            week_number=week.week_number,
            prune_missing=prune_missing,
        )

        for item in messages:
            if stop_event is not None and stop_event.is_set():
                result.cancelled = True
                logger.warning(
                    "rescan_cancelled",
                    week_id=week_id,
                    total_processed=result.total_processed,
                )
                break

            result.total_processed += 1
            message_id = _readable_message_id(item)
            if message_id is None:
                unidentified_failures = True
            else:
                seen_message_ids.add(message_id)

            try:
                message = _to_historical_message(item)
                outcome = ledger.process_for_week(
                    week,
                    message.message_id,
                    message.user_id,
                    message.content,
                    force_reprocess=True,
                )
            except Exception as exc:
                result.failed += 1
                result.failures.append(
                    RescanFailure(message_id=message_id, error=str(exc))
                )
                logger.warning(
                    "rescan_message_failed",
                    week_id=week_id,
                    message_id=message_id,
                    error=str(exc),
                    error_type=type(exc).__name__,
                )
                continue

            if outcome.status == ProcessingStatus.PROCESSED:
                result.succeeded += 1
            else:
                result.skipped += 1

            if result.total_processed % progress_interval == 0:
                logger.info(
                    "rescan_progress",
                    week_id=week_id,
                    total_processed=result.total_processed,
                    succeeded=result.succeeded,
                    failed=result.failed,
                )

        if prune_missing and not result.cancelled and unidentified_failures:
            logger.warning(
                "rescan_prune_skipped",
                week_id=week_id,
                reason="history contains entries without a readable message id",
            )
        elif prune_missing and not result.cancelled:
            result.deleted = ledger.repository.delete_week_message_logs_except(
                week_id, seen_message_ids
            )
            if result.deleted:
                logger.info(
                    "rescan_obsolete_logs_deleted",
                    week_id=week_id,
                    deleted=result.deleted,
                )

        logger.info(
            "rescan_finished",
            correlation_id=bound_correlation_id,
            week_id=week_id,
            duration_seconds=perf_counter() - stage_start,
            succeeded=result.succeeded,
            failed=result.failed,
            skipped=result.skipped,
            deleted=result.deleted,
            total_processed=result.total_processed,
            cancelled=result.cancelled,
        )
        return result
