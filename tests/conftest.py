"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import os
import subprocess
from collections.abc import Generator
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path

import pytest

from pomo_counter.adapters.repository_factory import create_repository
from pomo_counter.config.settings import Settings
from pomo_counter.domain.models import Challenge, Emoji, EmojiCategory, Week
from pomo_counter.domain.protocols import RepositoryProtocol
from pomo_counter.use_cases.message_ledger import MessageLedger

SERVER_ID = 900_000_000_000_000_001
GOAL_THREAD_ID = 910_000_000_000_000_000
WEEK1_THREAD_ID = 910_000_000_000_000_001
WEEK2_THREAD_ID = 910_000_000_000_000_002
UNTRACKED_CHANNEL_ID = 999


@dataclass
class SeededChallenge:
    """Challenge with a goal week, two active weeks and a catalog."""

    challenge: Challenge
    goal_week: Week
    week1: Week
    week2: Week
    emojis: dict[str, Emoji] = field(default_factory=dict)


@pytest.fixture
def settings(
    tmp_path_factory: pytest.TempPathFactory, request: pytest.FixtureRequest
) -> Settings:
    """Create settings configured for the requested database backend."""

    base_settings = Settings()

    if request.node.get_closest_marker("postgres"):
        if os.environ.get("TEST_POSTGRES", "0") != "1":
            pytest.skip("PostgreSQL tests disabled (TEST_POSTGRES!=1)")
        if not os.environ.get("POSTGRES_PASSWORD"):
            pytest.skip("POSTGRES_PASSWORD not set for PostgreSQL tests")
        return base_settings.model_copy(update={"database_type": "postgres"})

    temp_dir = tmp_path_factory.mktemp("db")
    db_path = temp_dir / "test.sqlite"
    return base_settings.model_copy(
        update={"database_type": "sqlite", "db_path": str(db_path)}
    )


@pytest.fixture
def repo(settings: Settings) -> Generator[RepositoryProtocol, None, None]:
    """Provide a repository instance for the configured backend."""

    if settings.database_type == "postgres":
        _reset_postgres_schema()

    repository = create_repository(settings)

    try:
        yield repository
    finally:
        repository.close()

        if settings.database_type == "sqlite":
            db_path = Path(settings.db_path)
            if db_path.exists():
                db_path.unlink()


def _reset_postgres_schema() -> None:
    subprocess.run(
        ["alembic", "downgrade", "base"], check=True, capture_output=True
    )
    subprocess.run(["alembic", "upgrade", "head"], check=True, capture_output=True)


@pytest.fixture
def seeded(repo: RepositoryProtocol) -> SeededChallenge:
    """Challenge starting Monday 2025-01-06 with weeks 0-2 and a catalog.

    Catalog (server-wide): 🍅 pomodoro 25, ⭐ bonus 5, 🎯 goal 10,
    🏆 reward, <:focus:123> pomodoro 50.
    """
    challenge = repo.add_challenge(
        Challenge(
            server_id=SERVER_ID,
            quarter_number=1,
            theme="Deep Work",
            start_date=date(2025, 1, 6),
            end_date=date(2025, 3, 30),
            week_count=12,
            is_current=True,
            is_started=True,
        )
    )
    assert challenge.id is not None

    goal_week = repo.add_week(
        Week(
            challenge_id=challenge.id,
            week_number=0,
            thread_id=GOAL_THREAD_ID,
            goal_thread_id=GOAL_THREAD_ID,
        )
    )
    week1 = repo.add_week(
        Week(challenge_id=challenge.id, week_number=1, thread_id=WEEK1_THREAD_ID)
    )
    week2 = repo.add_week(
        Week(challenge_id=challenge.id, week_number=2, thread_id=WEEK2_THREAD_ID)
    )

    emojis = {
        "tomato": repo.add_emoji(
            Emoji(
                server_id=SERVER_ID,
                emoji_code="🍅",
                point_value=25,
                category=EmojiCategory.POMODORO,
            )
        ),
        "star": repo.add_emoji(
            Emoji(
                server_id=SERVER_ID,
                emoji_code=":star:",
                point_value=5,
                category=EmojiCategory.BONUS,
            )
        ),
        "dart": repo.add_emoji(
            Emoji(
                server_id=SERVER_ID,
                emoji_code="🎯",
                point_value=10,
                category=EmojiCategory.GOAL,
            )
        ),
        "trophy": repo.add_emoji(
            Emoji(
                server_id=SERVER_ID,
                emoji_code=":trophy:",
                point_value=1,
                category=EmojiCategory.REWARD,
            )
        ),
        "focus": repo.add_emoji(
            Emoji(
                server_id=SERVER_ID,
                emoji_code="<:focus:123>",
                point_value=50,
                category=EmojiCategory.POMODORO,
            )
        ),
    }

    return SeededChallenge(
        challenge=challenge,
        goal_week=goal_week,
        week1=week1,
        week2=week2,
        emojis=emojis,
    )


@pytest.fixture
def ledger(repo: RepositoryProtocol) -> MessageLedger:
    """Message ledger over the test repository."""
    return MessageLedger(repo)
