"""Tests for providers/replay.py and providers/device.py."""

import json
from datetime import datetime, timedelta

import pytest

from driftoff.analytics.store import AnalyticsStore
from driftoff.providers.device import DeviceState, SimulatedDevice
from driftoff.providers.replay import ReplayFeed, SensorFrame, load_frames, replay_frames
from tests.conftest import make_settings

START = datetime(2026, 3, 11, 2, 0)


def _sleepy_frame(i: int, **overrides) -> dict:
    frame = {
        "timestamp": (START + timedelta(seconds=15 * i)).isoformat(),
        "lux": 0.0,
        "stillness": 1.0,
        "screen_off_minutes": 15,
        "session_minutes": 30,
        "heart_rate": 40,
        "camera_sleeping": True,
    }
    frame.update(overrides)
    return frame


def _write(path, rows) -> None:
    with open(path, "w") as f:
        for row in rows:
            f.write((row if isinstance(row, str) else json.dumps(row)) + "\n")


class TestLoadFrames:
    def test_parses_and_skips_bad_lines(self, tmp_path):
        path = tmp_path / "night.jsonl"
        _write(path, [
            _sleepy_frame(0),
            "{not json",
            "",
            {"lux": 3.0},  # no timestamp
            {"timestamp": "tonight"},
            _sleepy_frame(1, noise_db=32.5),
        ])
        frames = load_frames(path)
        assert len(frames) == 2
        assert frames[0].timestamp == START
        assert frames[1].noise_db == 32.5

    def test_defaults(self):
        frame = SensorFrame.from_dict({"timestamp": START.isoformat()})
        assert frame.lux == 100.0
        assert frame.stillness == 0.5
        assert frame.heart_rate is None
        assert frame.camera_sleeping is None


class TestReplayFeed:
    def test_requires_frames(self):
        with pytest.raises(ValueError):
            ReplayFeed([])

    def test_advance(self):
        frames = [SensorFrame.from_dict(_sleepy_frame(i)) for i in range(2)]
        feed = ReplayFeed(frames)
        assert feed.now() == START
        assert feed.advance()
        assert feed.now() == START + timedelta(seconds=15)
        assert not feed.advance()

    def test_camera_verdict_follows_frame(self):
        import asyncio

        feed = ReplayFeed([SensorFrame.from_dict(_sleepy_frame(0, camera_sleeping=None))])
        assert asyncio.run(feed.verify(10)) is None
        feed = ReplayFeed([SensorFrame.from_dict(_sleepy_frame(0))])
        assert asyncio.run(feed.verify(10)).is_sleeping


class TestReplayFrames:
    def test_empty(self):
        report = replay_frames([], make_settings())
        assert report.ticks == []

    def test_sleepy_night_hibernates_and_saves_session(self):
        frames = [SensorFrame.from_dict(_sleepy_frame(i)) for i in range(25)]
        report = replay_frames(frames, make_settings())
        assert len(report.ticks) == 25
        assert report.hibernated
        assert len(report.sessions) == 1
        session = report.sessions[0]
        assert session.sleep_start == START + timedelta(seconds=30)
        assert session.total_sleep_min == 5
        assert session.hibernation_activated
        assert session.camera_verifications == 1

    def test_uses_given_store(self):
        store = AnalyticsStore(today=lambda: START.date())
        frames = [SensorFrame.from_dict(_sleepy_frame(i)) for i in range(25)]
        report = replay_frames(frames, make_settings(), store=store)
        assert [s.id for s in store.load_sessions()] == [s.id for s in report.sessions]

    def test_daytime_frames_stay_in_standby(self):
        noon = START.replace(hour=12)
        frames = [
            SensorFrame.from_dict(_sleepy_frame(0, timestamp=(noon + timedelta(seconds=15 * i)).isoformat()))
            for i in range(5)
        ]
        report = replay_frames(frames, make_settings())
        assert all(t.mode.value == "standby" for t in report.ticks)
        assert report.sessions == []


class TestSimulatedDevice:
    def test_save_and_restore(self):
        device = SimulatedDevice(DeviceState(brightness=200, volume=0.8))
        device.save_settings()
        device.apply_brightness(0.1)
        device.apply_volume(0.0)
        device.enable_dnd()
        assert device.state == DeviceState(brightness=25, volume=0.0, dnd=True)
        device.restore_settings()
        assert device.state == DeviceState(brightness=200, volume=0.8, dnd=False)

    def test_restore_without_save_is_noop(self):
        device = SimulatedDevice()
        device.apply_volume(0.2)
        device.restore_settings()
        assert device.state.volume == 0.2

    def test_levels_clamped(self):
        device = SimulatedDevice()
        device.apply_brightness(2.0, max_level=100)
        device.apply_volume(-1.0)
        assert device.state.brightness == 100
        assert device.state.volume == 0.0

    def test_history(self):
        device = SimulatedDevice()
        device.enable_dnd()
        device.enable_dnd()
        assert device.history == [("dnd", True)]
