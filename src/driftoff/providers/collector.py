"""Pull features from every collaborator and build a FeatureSnapshot."""

from __future__ import annotations

from datetime import datetime
from typing import Callable, TypeVar

import structlog

from driftoff.providers.protocol import HeartRateProvider, NoiseProvider, SensorProvider
from driftoff.scoring.features import DEFAULT_HEART_RATE, FeatureSnapshot
from driftoff.settings import SleepSettings, time_proximity

logger = structlog.get_logger()

T = TypeVar("T")

# Neutral values used when a sensor read fails
DEFAULT_LUX = 100.0
DEFAULT_STILLNESS = 0.5


def read_or_default(name: str, read: Callable[[], T], default: T) -> T:
    """Call *read*, falling back to *default* if the collaborator fails."""
    try:
        value = read()
    except Exception as exc:
        logger.warning("feature_unavailable", feature=name, error=str(exc))
        return default
    return default if value is None else value


class FeatureCollector:
    """Fail-soft feature acquisition for one scoring tick."""

    def __init__(
        self,
        sensors: SensorProvider,
        heart_rate: HeartRateProvider | None = None,
        noise: NoiseProvider | None = None,
    ) -> None:
        self.sensors = sensors
        self.heart_rate = heart_rate
        self.noise = noise

    def _sample_noise(self, settings: SleepSettings) -> float | None:
        if not settings.audio_sampling or self.noise is None:
            return None
        if not read_or_default("noise_permission", self.noise.has_permission, False):
            return None
        return read_or_default("ambient_noise", self.noise.sample_db, None)

    def _heart_rate(self) -> float:
        if self.heart_rate is None:
            return DEFAULT_HEART_RATE
        bpm = read_or_default("heart_rate", self.heart_rate.latest_bpm, None)
        if bpm is None or bpm <= 0:
            return DEFAULT_HEART_RATE
        return float(bpm)

    def collect(self, settings: SleepSettings, now: datetime) -> FeatureSnapshot:
        s = self.sensors
        return FeatureSnapshot(
            ambient_light_lux=float(read_or_default("ambient_light", s.ambient_light, DEFAULT_LUX)),
            stillness=float(read_or_default("stillness", s.stillness, DEFAULT_STILLNESS)),
            time_proximity=time_proximity(settings, now),
            heart_rate_bpm=self._heart_rate(),
            session_minutes=float(read_or_default("session_minutes", s.session_minutes, 0.0)),
            screen_off_minutes=float(read_or_default("screen_off_minutes", s.screen_off_minutes, 0.0)),
            ambient_noise_db=self._sample_noise(settings),
            timestamp=now,
        )
