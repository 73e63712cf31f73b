"""Replay recorded sensor frames through the full monitoring controller.

A frame file is JSONL, one tick per line::

    {"timestamp": "2026-01-05T23:10:00", "lux": 3.5, "stillness": 0.92,
     "screen_off_minutes": 12, "session_minutes": 25, "heart_rate": 58}

Only ``timestamp`` is required.  The optional keys are ``screen_on_minutes``,
``movement``, ``noise_db`` and ``camera_sleeping``; a frame without
``camera_sleeping`` behaves like a device without camera permission.  The
controller's clock follows the frame timestamps, so a night of data
replays in well under a second.
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Callable, Sequence

import structlog

from driftoff.analytics.session import Session, SessionRecorder
from driftoff.analytics.store import AnalyticsStore
from driftoff.monitor.controller import MonitoringController
from driftoff.monitor.status import MonitorMode
from driftoff.providers.collector import FeatureCollector
from driftoff.providers.device import SimulatedDevice
from driftoff.providers.protocol import CameraVerdict
from driftoff.scoring.calculator import ScoreCalculator
from driftoff.scoring.model import HeuristicScoreModel
from driftoff.scoring.smoothing import DrowsinessState
from driftoff.settings import SleepSettings

logger = structlog.get_logger()


@dataclass(frozen=True)
class SensorFrame:
    timestamp: datetime
    lux: float = 100.0
    stillness: float = 0.5
    screen_off_minutes: float = 0.0
    screen_on_minutes: float = 0.0
    session_minutes: float = 0.0
    movement: float = 0.0
    heart_rate: float | None = None
    noise_db: float | None = None
    camera_sleeping: bool | None = None

    @classmethod
    def from_dict(cls, raw: dict) -> "SensorFrame":
        def _opt(key: str) -> float | None:
            value = raw.get(key)
            return None if value is None else float(value)

        camera = raw.get("camera_sleeping")
        return cls(
            timestamp=datetime.fromisoformat(raw["timestamp"]),
            lux=float(raw.get("lux", 100.0)),
            stillness=float(raw.get("stillness", 0.5)),
            screen_off_minutes=float(raw.get("screen_off_minutes", 0.0)),
            screen_on_minutes=float(raw.get("screen_on_minutes", 0.0)),
            session_minutes=float(raw.get("session_minutes", 0.0)),
            movement=float(raw.get("movement", 0.0)),
            heart_rate=_opt("heart_rate"),
            noise_db=_opt("noise_db"),
            camera_sleeping=None if camera is None else bool(camera),
        )


def load_frames(path: str | Path) -> list[SensorFrame]:
    """Read a JSONL frame file, skipping blank and malformed lines."""
    frames: list[SensorFrame] = []
    with open(path) as f:
        for line_num, line in enumerate(f, 1):
            line = line.strip()
            if not line:
                continue
            try:
                frames.append(SensorFrame.from_dict(json.loads(line)))
            except (json.JSONDecodeError, KeyError, TypeError, ValueError) as exc:
                logger.warning("frame_skipped", line=line_num, error=str(exc))
    return frames


class ReplayFeed:
    """Serves one frame per tick to every collaborator slot.

    Acts as sensor, heart-rate, noise and camera provider at once.
    """

    def __init__(self, frames: Sequence[SensorFrame]) -> None:
        if not frames:
            raise ValueError("replay needs at least one frame")
        self.frames = list(frames)
        self.index = 0
        self.running = False

    @property
    def frame(self) -> SensorFrame:
        return self.frames[self.index]

    def advance(self) -> bool:
        """Move to the next frame; False once the last frame is reached."""
        if self.index + 1 >= len(self.frames):
            return False
        self.index += 1
        return True

    def now(self) -> datetime:
        return self.frame.timestamp

    # SensorProvider
    def start(self) -> None:
        self.running = True

    def stop(self) -> None:
        self.running = False

    def ambient_light(self) -> float:
        return self.frame.lux

    def stillness(self) -> float:
        return self.frame.stillness

    def screen_off_minutes(self) -> float:
        return self.frame.screen_off_minutes

    def screen_on_minutes(self) -> float:
        return self.frame.screen_on_minutes

    def session_minutes(self) -> float:
        return self.frame.session_minutes

    def movement_magnitude(self) -> float:
        return self.frame.movement

    # HeartRateProvider
    def latest_bpm(self) -> float | None:
        return self.frame.heart_rate

    # NoiseProvider / CameraVerifier
    def has_permission(self) -> bool:
        return True

    def sample_db(self) -> float | None:
        return self.frame.noise_db

    async def verify(self, duration_s: int) -> CameraVerdict | None:
        sleeping = self.frame.camera_sleeping
        if sleeping is None:
            return None
        return CameraVerdict(
            is_sleeping=sleeping,
            confidence=0.9,
            eye_open_probability=0.1 if sleeping else 0.8,
            face_detected=True,
        )

    def shutdown(self) -> None:
        pass


@dataclass(frozen=True)
class ReplayTick:
    timestamp: datetime
    score: float
    state: DrowsinessState
    mode: MonitorMode


@dataclass
class ReplayReport:
    ticks: list[ReplayTick] = field(default_factory=list)
    device_history: list[tuple[str, object]] = field(default_factory=list)
    sessions: list[Session] = field(default_factory=list)

    @property
    def hibernated(self) -> bool:
        return any(t.mode is MonitorMode.HIBERNATING for t in self.ticks)

    def __repr__(self) -> str:
        return (
            f"ReplayReport(ticks={len(self.ticks)}, sessions={len(self.sessions)}, "
            f"hibernated={self.hibernated})"
        )


def replay_frames(
    frames: Sequence[SensorFrame],
    settings: SleepSettings,
    store: AnalyticsStore | None = None,
    multiplier: Callable[[], float] | None = None,
) -> ReplayReport:
    """Drive a MonitoringController over *frames*, one tick per frame."""
    report = ReplayReport()
    if not frames:
        return report

    feed = ReplayFeed(frames)
    store = store or AnalyticsStore(today=lambda: feed.now().date())
    device = SimulatedDevice()
    calculator = ScoreCalculator(
        HeuristicScoreModel(),
        FeatureCollector(feed, heart_rate=feed, noise=feed),
        multiplier=multiplier,
    )
    recorder = SessionRecorder(store=store, clock=feed.now)
    controller = MonitoringController(
        calculator,
        feed,
        device,
        recorder,
        settings,
        camera=feed,
        clock=feed.now,
    )
    before = {s.id for s in store.load_sessions()}

    async def _drive() -> None:
        controller.start()
        try:
            while True:
                await controller.step()
                status = controller.status.current
                report.ticks.append(
                    ReplayTick(feed.now(), status.score, status.state, controller.mode)
                )
                if not feed.advance():
                    break
        finally:
            controller.stop()

    asyncio.run(_drive())

    report.device_history = list(device.history)
    report.sessions = [s for s in store.load_sessions() if s.id not in before]
    logger.info("replay_finished", ticks=len(report.ticks), sessions=len(report.sessions))
    return report
