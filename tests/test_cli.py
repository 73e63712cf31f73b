"""Tests for cli.py using click's CliRunner."""

import json
import logging
from datetime import datetime, timedelta

import pytest
import structlog
from click.testing import CliRunner

from driftoff import log
from driftoff.cli import main


@pytest.fixture(autouse=True)
def _quiet_logging(monkeypatch):
    # Keep log lines out of the captured command output
    monkeypatch.setattr(log, "configure_logging", lambda **kw: None)
    structlog.configure(wrapper_class=structlog.make_filtering_bound_logger(logging.CRITICAL))
    yield
    structlog.reset_defaults()


def _invoke(tmp_path, *args):
    return CliRunner().invoke(main, ["--data-dir", str(tmp_path), *args])


class TestScore:
    def test_sleepy_features(self, tmp_path):
        result = _invoke(
            tmp_path, "score", "--lux", "0", "--stillness", "1", "--heart-rate", "40",
            "--session", "30", "--screen-off", "15", "--at", "02:30",
        )
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["score"] == pytest.approx(100.0)
        assert data["state"] == "likely_sleeping"
        assert set(data["contributions"]) == {
            "light", "stillness", "time", "heart_rate", "session", "screen_off",
        }

    def test_bad_time(self, tmp_path):
        result = _invoke(tmp_path, "score", "--at", "late")
        assert result.exit_code != 0


class TestFeedback:
    def test_adjusts_multiplier(self, tmp_path):
        result = _invoke(tmp_path, "feedback", "5", "--feeling", "great")
        assert result.exit_code == 0, result.output
        assert "1.10" in result.output
        assert (tmp_path / "feedback.json").exists()

    def test_rating_range(self, tmp_path):
        assert _invoke(tmp_path, "feedback", "9").exit_code != 0

    def test_reset_needs_no_rating(self, tmp_path):
        _invoke(tmp_path, "feedback", "1")
        result = _invoke(tmp_path, "feedback", "--reset")
        assert result.exit_code == 0, result.output
        assert "1.00" in result.output

    def test_rating_required_without_reset(self, tmp_path):
        result = _invoke(tmp_path, "feedback")
        assert result.exit_code != 0
        assert "RATING" in result.output


class TestAnalytics:
    def test_empty_sessions(self, tmp_path):
        result = _invoke(tmp_path, "sessions")
        assert result.exit_code == 0
        assert "No sessions" in result.output

    def test_summary_json(self, tmp_path):
        result = _invoke(tmp_path, "summary")
        assert result.exit_code == 0
        assert json.loads(result.output)["total_nights"] == 0


class TestReplay:
    def test_replay_and_save(self, tmp_path):
        start = datetime.now().replace(hour=2, minute=0, second=0, microsecond=0)
        frames = tmp_path / "night.jsonl"
        with open(frames, "w") as f:
            for i in range(25):
                f.write(json.dumps({
                    "timestamp": (start + timedelta(seconds=15 * i)).isoformat(),
                    "lux": 0, "stillness": 1, "screen_off_minutes": 15,
                    "session_minutes": 30, "heart_rate": 40, "camera_sleeping": True,
                }) + "\n")

        result = _invoke(tmp_path, "replay", str(frames), "--save")
        assert result.exit_code == 0, result.output
        assert "Hibernated: yes" in result.output
        assert "1 session(s) kept" in result.output

        listed = _invoke(tmp_path, "sessions")
        assert "[hibernated]" in listed.output
