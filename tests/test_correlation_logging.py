from __future__ import annotations

import structlog
from structlog.testing import capture_logs

from pomo_counter.config.logging_config import (
    add_app_context,
    bind_context,
    clear_context,
)
from pomo_counter.observability.tracing import CORRELATION_ID_KEY, correlation_scope
from pomo_counter.use_cases.rescan_week import rescan_week_use_case


def test_correlation_scope_binds_and_unbinds() -> None:
    with correlation_scope("run-1") as correlation_id:
        assert correlation_id == "run-1"
        assert structlog.contextvars.get_contextvars()[CORRELATION_ID_KEY] == "run-1"

    assert CORRELATION_ID_KEY not in structlog.contextvars.get_contextvars()


def test_correlation_scope_generates_id() -> None:
    with correlation_scope() as correlation_id:
        assert correlation_id
        assert structlog.contextvars.get_contextvars()[CORRELATION_ID_KEY] == (
            correlation_id
        )


def test_clear_context_drops_bound_values() -> None:
    bind_context(week_id=3)

    clear_context()

    assert structlog.contextvars.get_contextvars() == {}


def test_app_context_processor() -> None:
    event = add_app_context(None, "info", {"event": "x"})  # type: ignore[arg-type]

    assert event["app"] == "pomo_counter"


def test_generated_id_carries_prefix() -> None:
    with correlation_scope(prefix="rescan") as correlation_id:
        assert correlation_id.startswith("rescan-")


def test_nested_scope_restores_outer_id() -> None:
    with correlation_scope("outer"):
        with correlation_scope("inner"):
            assert structlog.contextvars.get_contextvars()[CORRELATION_ID_KEY] == (
                "inner"
            )
        assert structlog.contextvars.get_contextvars()[CORRELATION_ID_KEY] == "outer"

    assert CORRELATION_ID_KEY not in structlog.contextvars.get_contextvars()


def test_rescan_generates_prefixed_correlation_id(seeded, ledger) -> None:
    with capture_logs() as logs:
        rescan_week_use_case(ledger, seeded.week1.id, [])

    started = next(log for log in logs if log["event"] == "rescan_started")
    assert started["correlation_id"].startswith("rescan-")
