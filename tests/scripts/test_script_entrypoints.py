from __future__ import annotations

import json

import pytest
from structlog.testing import capture_logs

from tests.conftest import WEEK1_THREAD_ID


def _load(name: str):
    return __import__(f"scripts.{name}", fromlist=["main"])


def _write_history(path, rows) -> None:
    path.write_text(
        "\n".join(json.dumps(row, ensure_ascii=False) for row in rows) + "\n\n",
        encoding="utf-8",
    )


@pytest.fixture
def rescan_module(mocker, settings):
    module = _load("rescan_week")
    mocker.patch.object(module, "get_settings", return_value=settings)
    mocker.patch.object(module, "setup_logging")
    return module


@pytest.fixture
def leaderboard_module(mocker, settings):
    module = _load("generate_leaderboard")
    mocker.patch.object(module, "get_settings", return_value=settings)
    mocker.patch.object(module, "setup_logging")
    return module


def test_read_history_skips_blank_lines(tmp_path) -> None:
    module = _load("rescan_week")
    history = tmp_path / "week.jsonl"
    _write_history(
        history,
        [
            {"message_id": 1, "user_id": 2, "content": "🍅"},
            {"message_id": 3, "user_id": 4},
        ],
    )

    messages = list(module.read_history(history))

    assert [m.message_id for m in messages] == [1, 3]
    assert messages[1].content == ""


def test_read_history_passes_bad_lines_on(tmp_path) -> None:
    module = _load("rescan_week")
    history = tmp_path / "week.jsonl"
    history.write_text(
        '{"message_id": 1, "user_id": 2}\n'
        "not json\n"
        '{"message_id": 5, "user_id": 2, "content": 7}\n',
        encoding="utf-8",
    )

    with capture_logs() as logs:
        messages = list(module.read_history(history))

    assert messages[0].message_id == 1
    assert messages[1] == (None, None, "not json")
    assert messages[2] == (5, 2, 7)
    invalid = [log for log in logs if log["event"] == "history_line_invalid"]
    assert [log["line_number"] for log in invalid] == [2, 3]


def test_rescan_script_continues_past_bad_line(
    rescan_module, seeded, repo, tmp_path, capsys
) -> None:
    history = tmp_path / "week.jsonl"
    history.write_text(
        '{"message_id": 30, "user_id": 1, "content": "🍅"}\n'
        '{"message_id": 31, "user_id": 1, "content": 12345}\n'
        '{"message_id": 32, "user_id": 1, "content": "🍅"}\n',
        encoding="utf-8",
    )

    exit_code = rescan_module.main(
        ["--week-id", str(seeded.week1.id), "--history", str(history)]
    )

    assert exit_code == 2
    assert repo.get_message_log(30) is not None
    assert repo.get_message_log(31) is None
    assert repo.get_message_log(32) is not None
    output = capsys.readouterr().out
    assert "Succeeded: 2" in output
    assert "Failed: 1" in output
    assert "• 31:" in output


def test_rescan_script_books_history(rescan_module, seeded, repo, tmp_path, capsys):
    history = tmp_path / "week.jsonl"
    _write_history(
        history,
        [
            {"message_id": 10, "user_id": 1, "content": "🍅 🍅"},
            {"message_id": 11, "user_id": 2, "content": "chat only"},
        ],
    )

    exit_code = rescan_module.main(
        ["--week-id", str(seeded.week1.id), "--history", str(history)]
    )

    assert exit_code == 0
    assert repo.get_message_log(10).pomodoro_points == 50
    output = capsys.readouterr().out
    assert "Succeeded: 1" in output
    assert "Skipped: 1" in output
    rescan_module.setup_logging.assert_called_once()


def test_rescan_script_prunes_when_asked(rescan_module, seeded, ledger, repo, tmp_path):
    ledger.process(20, 1, "🍅", WEEK1_THREAD_ID)
    history = tmp_path / "week.jsonl"
    _write_history(history, [{"message_id": 21, "user_id": 1, "content": "🍅"}])

    exit_code = rescan_module.main(
        [
            "--week-id",
            str(seeded.week1.id),
            "--history",
            str(history),
            "--prune-missing",
        ]
    )

    assert exit_code == 0
    assert repo.get_message_log(20) is None
    assert repo.get_message_log(21) is not None


def test_rescan_script_missing_file(rescan_module, seeded, tmp_path) -> None:
    exit_code = rescan_module.main(
        ["--week-id", str(seeded.week1.id), "--history", str(tmp_path / "nope")]
    )

    assert exit_code == 1


def test_rescan_script_unknown_week(rescan_module, seeded, tmp_path, capsys) -> None:
    history = tmp_path / "week.jsonl"
    _write_history(history, [{"message_id": 1, "user_id": 1, "content": "🍅"}])

    exit_code = rescan_module.main(["--week-id", "987654", "--history", str(history)])

    assert exit_code == 1
    assert "Rescan failed" in capsys.readouterr().out


def test_leaderboard_script_prints_json(
    leaderboard_module, seeded, ledger, repo, capsys
) -> None:
    ledger.process(30, 1, "🍅", WEEK1_THREAD_ID)

    exit_code = leaderboard_module.main(
        ["--week-id", str(seeded.week1.id), "--seed", "3", "--mark-posted"]
    )

    assert exit_code == 0
    output = capsys.readouterr().out
    report = json.loads(output[output.index('{\n  "kind"') :])
    assert report["kind"] == "data"
    assert report["entries"][0]["user_id"] == 1
    assert report["entries"][0]["weekly_points"] == 25
    assert repo.get_week(seeded.week1.id).leaderboard_posted


def test_leaderboard_script_text_output(
    leaderboard_module, seeded, ledger, capsys
) -> None:
    ledger.process(31, 7, "🍅 :star:", WEEK1_THREAD_ID)

    exit_code = leaderboard_module.main(["--week-id", str(seeded.week1.id), "--text"])

    assert exit_code == 0
    output = capsys.readouterr().out
    assert "🥇 7: 30 pts this week, 30 pts total" in output


def test_leaderboard_script_error_exit_code(leaderboard_module, seeded, repo) -> None:
    exit_code = leaderboard_module.main(["--week-id", "987654", "--mark-posted"])

    assert exit_code == 1
