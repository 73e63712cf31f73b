"""Shared fakes and helpers for the driftoff test suite."""

from __future__ import annotations

from datetime import date, datetime, timedelta

import pytest

from driftoff.analytics.session import Session, SessionRecorder
from driftoff.analytics.store import AnalyticsStore
from driftoff.monitor.controller import MonitoringController
from driftoff.monitor.scheduler import TickScheduler
from driftoff.providers.collector import FeatureCollector
from driftoff.providers.protocol import CameraVerdict
from driftoff.scoring.calculator import ScoreCalculator
from driftoff.scoring.model import HeuristicScoreModel
from driftoff.settings import SleepSettings


# ---------------------------------------------------------------------------
# Clock
# ---------------------------------------------------------------------------


class MutableClock:
    """Callable clock the test moves by hand."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta) -> datetime:
        self.now += timedelta(**delta)
        return self.now

    def set(self, hour: int, minute: int = 0) -> datetime:
        self.now = self.now.replace(hour=hour, minute=minute, second=0)
        return self.now


# Centre of the default 22:00-07:00 window: time proximity 1.0
NIGHT = datetime(2026, 3, 10, 2, 30)


# ---------------------------------------------------------------------------
# Collaborators
# ---------------------------------------------------------------------------


class FakeSensors:
    """Sensor provider with settable readings; names in *failing* raise."""

    def __init__(
        self,
        lux: float = 0.0,
        stillness: float = 1.0,
        screen_off: float = 15.0,
        session: float = 30.0,
        screen_on: float = 0.0,
        movement: float = 0.0,
        heart_rate: float | None = 40.0,
    ) -> None:
        self.lux = lux
        self.still = stillness
        self.screen_off = screen_off
        self.session = session
        self.screen_on = screen_on
        self.movement = movement
        self.heart_rate = heart_rate
        self.failing: set[str] = set()
        self.started = 0
        self.stopped = 0

    def _read(self, name: str, value):
        if name in self.failing:
            raise RuntimeError(f"{name} sensor offline")
        return value

    def start(self) -> None:
        self.started += 1

    def stop(self) -> None:
        self.stopped += 1

    def ambient_light(self) -> float:
        return self._read("ambient_light", self.lux)

    def stillness(self) -> float:
        return self._read("stillness", self.still)

    def screen_off_minutes(self) -> float:
        return self._read("screen_off_minutes", self.screen_off)

    def screen_on_minutes(self) -> float:
        return self._read("screen_on_minutes", self.screen_on)

    def session_minutes(self) -> float:
        return self._read("session_minutes", self.session)

    def movement_magnitude(self) -> float:
        return self._read("movement", self.movement)

    def latest_bpm(self) -> float | None:
        return self._read("heart_rate", self.heart_rate)


class FakeNoise:
    def __init__(self, db: float | None = 30.0, permission: bool = True) -> None:
        self.db = db
        self.permission = permission
        self.samples = 0

    def has_permission(self) -> bool:
        return self.permission

    def sample_db(self) -> float | None:
        self.samples += 1
        return self.db


class FakeCamera:
    def __init__(
        self,
        sleeping: bool | None = True,
        permission: bool = True,
        error: Exception | None = None,
        on_verify=None,
    ) -> None:
        self.sleeping = sleeping
        self.permission = permission
        self.error = error
        self.on_verify = on_verify
        self.calls = 0
        self.shut_down = False

    def has_permission(self) -> bool:
        return self.permission

    async def verify(self, duration_s: int) -> CameraVerdict | None:
        self.calls += 1
        if self.on_verify is not None:
            self.on_verify()
        if self.error is not None:
            raise self.error
        if self.sleeping is None:
            return None
        return CameraVerdict(
            is_sleeping=self.sleeping,
            confidence=0.95,
            eye_open_probability=0.05 if self.sleeping else 0.9,
            face_detected=True,
        )

    def shutdown(self) -> None:
        self.shut_down = True


class RecordingDevice:
    """Device effect sink that records every call."""

    def __init__(self) -> None:
        self.calls: list[tuple] = []
        self.brightness: float | None = None
        self.volume: float | None = None
        self.dnd = False
        self.fail_on: set[str] = set()

    def _call(self, name: str, *args) -> None:
        if name in self.fail_on:
            raise RuntimeError(f"{name} failed")
        self.calls.append((name, *args))

    def count(self, name: str) -> int:
        return sum(1 for c in self.calls if c[0] == name)

    def save_settings(self) -> None:
        self._call("save")

    def restore_settings(self) -> None:
        self._call("restore")
        self.brightness = None
        self.volume = None
        self.dnd = False

    def apply_brightness(self, level: float, max_level: int = 255) -> None:
        self._call("brightness", level, max_level)
        self.brightness = level

    def apply_volume(self, level: float) -> None:
        self._call("volume", level)
        self.volume = level

    def enable_dnd(self) -> None:
        self._call("dnd")
        self.dnd = True


class ConstantModel:
    """Score model that always predicts the same value."""

    def __init__(self, value: float) -> None:
        self.value = value

    def predict(self, features) -> float:
        return self.value


class CountingScheduler(TickScheduler):
    """Scheduler that skips the real wait and stops after *max_ticks* sleeps."""

    def __init__(self, max_ticks: int) -> None:
        super().__init__()
        self.max_ticks = max_ticks
        self.sleeps: list[float] = []

    async def sleep(self, seconds: float) -> bool:
        if self.cancelled:
            return False
        self.sleeps.append(seconds)
        if len(self.sleeps) > self.max_ticks:
            self.cancel()
            return False
        return True


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------


def make_settings(**overrides) -> SleepSettings:
    return SleepSettings(_env_file=None, **overrides)


def make_session(**overrides) -> Session:
    start = overrides.pop("monitoring_start", datetime(2026, 3, 10, 22, 0))
    defaults = dict(
        date=start.date(),
        monitoring_start=start,
        total_sleep_min=420,
    )
    defaults.update(overrides)
    return Session(**defaults)


def make_controller(
    clock: MutableClock | None = None,
    sensors: FakeSensors | None = None,
    device: RecordingDevice | None = None,
    camera: FakeCamera | None = None,
    settings: SleepSettings | None = None,
    model=None,
    store: AnalyticsStore | None = None,
    scheduler: TickScheduler | None = None,
    multiplier=None,
) -> MonitoringController:
    clock = clock or MutableClock(NIGHT)
    sensors = sensors or FakeSensors()
    calculator = ScoreCalculator(
        model or HeuristicScoreModel(),
        FeatureCollector(sensors, heart_rate=sensors),
        multiplier=multiplier,
    )
    store = store or AnalyticsStore(today=lambda: clock().date())
    return MonitoringController(
        calculator,
        sensors,
        device or RecordingDevice(),
        SessionRecorder(store=store, clock=clock),
        settings or make_settings(),
        camera=camera,
        scheduler=scheduler,
        clock=clock,
    )


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def clock() -> MutableClock:
    return MutableClock(NIGHT)


@pytest.fixture
def settings() -> SleepSettings:
    return make_settings()


@pytest.fixture
def today() -> date:
    return NIGHT.date()
