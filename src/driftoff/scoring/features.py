"""Per-tick feature snapshot and feature normalization.

Every normalizer maps one raw signal onto [0, 1] where 1 means "more
drowsy".  The model layer only ever sees normalized values.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime

DEFAULT_HEART_RATE = 60.0

# Light: score = exp(-lux / LIGHT_SCALE_LUX); darkness → 1, daylight → 0
LIGHT_SCALE_LUX = 50.0

# Heart rate normalization bounds (bpm)
MIN_HR = 40.0
MAX_HR = 100.0

# Ambient noise normalization bounds (dB)
QUIET_DB = 35.0
LOUD_DB = 70.0

# Duration saturation points (minutes)
SESSION_SATURATION_MIN = 30.0
SCREEN_OFF_SATURATION_MIN = 15.0


@dataclass(frozen=True)
class FeatureSnapshot:
    """Normalized-ready input signals captured for one scoring tick."""

    ambient_light_lux: float
    stillness: float  # 0-1, 1 = phone completely still
    time_proximity: float  # 0-1, 1 = centre of the sleep window
    heart_rate_bpm: float = DEFAULT_HEART_RATE
    session_minutes: float = 0.0
    screen_off_minutes: float = 0.0
    ambient_noise_db: float | None = None  # None when audio sampling is off
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def has_audio(self) -> bool:
        return self.ambient_noise_db is not None


def _clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def light_score(lux: float) -> float:
    """Darkness favours drowsiness: 0 lux → 1.0, bright light → ~0."""
    return _clamp(math.exp(-max(lux, 0.0) / LIGHT_SCALE_LUX), 0.0, 1.0)


def unit_score(value: float) -> float:
    """Clamp an already-normalized signal onto [0, 1]."""
    return _clamp(value, 0.0, 1.0)


def heart_rate_score(bpm: float) -> float:
    """40 bpm → 1.0, 100 bpm → 0.0, linear in between."""
    clamped = _clamp(bpm, MIN_HR, MAX_HR)
    return 1.0 - (clamped - MIN_HR) / (MAX_HR - MIN_HR)


def duration_score(minutes: float, saturation_min: float) -> float:
    """Linear ramp from 0 that saturates at 1 after *saturation_min*."""
    return _clamp(minutes / saturation_min, 0.0, 1.0)


def noise_score(db: float) -> float:
    """Quiet rooms favour drowsiness: 35 dB → 1.0, 70 dB → 0.0."""
    if db <= QUIET_DB:
        return 1.0
    if db >= LOUD_DB:
        return 0.0
    return 1.0 - (db - QUIET_DB) / (LOUD_DB - QUIET_DB)


def normalize_features(snapshot: FeatureSnapshot) -> dict[str, float]:
    """Map every present signal of *snapshot* onto [0, 1].

    The ``"audio"`` key is only present when the snapshot carries a noise
    reading.
    """
    scores = {
        "light": light_score(snapshot.ambient_light_lux),
        "stillness": unit_score(snapshot.stillness),
        "time": unit_score(snapshot.time_proximity),
        "heart_rate": heart_rate_score(snapshot.heart_rate_bpm),
        "session": duration_score(snapshot.session_minutes, SESSION_SATURATION_MIN),
        "screen_off": duration_score(snapshot.screen_off_minutes, SCREEN_OFF_SATURATION_MIN),
    }
    if snapshot.ambient_noise_db is not None:
        scores["audio"] = noise_score(snapshot.ambient_noise_db)
    return scores
