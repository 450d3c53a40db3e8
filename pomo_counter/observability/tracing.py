"""Correlation identifiers for use-case runs.

A rescan or leaderboard run binds one id so every log line it emits (ledger
writes included) can be grouped afterwards.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from uuid import uuid4

import structlog

from pomo_counter.config.logging_config import bind_context, unbind_context

CORRELATION_ID_KEY = "correlation_id"


def new_correlation_id(prefix: str | None = None) -> str:
    """Generate an id, optionally tagged with the kind of run (``rescan-...``)."""
    token = uuid4().hex[:16]
    return f"{prefix}-{token}" if prefix else token


@contextmanager
def correlation_scope(
    existing_id: str | None = None, *, prefix: str | None = None
) -> Iterator[str]:
    """Bind a correlation id for the lifetime of the context.

    Nested scopes restore the outer id on exit.
    """
    outer_id = structlog.contextvars.get_contextvars().get(CORRELATION_ID_KEY)
    correlation_id = existing_id or new_correlation_id(prefix)
    bind_context(**{CORRELATION_ID_KEY: correlation_id})
    try:
        yield correlation_id
    finally:
        if outer_id is None:
            unbind_context(CORRELATION_ID_KEY)
        else:
            bind_context(**{CORRELATION_ID_KEY: outer_id})


__all__ = ["CORRELATION_ID_KEY", "correlation_scope", "new_correlation_id"]
