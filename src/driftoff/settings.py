"""User settings for sleep monitoring.

Settings are loaded from the environment (``DRIFTOFF_*``), an optional
``.env`` file and an optional JSON file, then validated once at this
boundary. The scoring core trusts whatever it is handed.
"""

from __future__ import annotations

import json
from datetime import datetime, time
from pathlib import Path

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class SleepSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="DRIFTOFF_",
        env_file=".env",
        extra="ignore",
        frozen=True,
    )

    # On/off switch persisted for the host app; the controller runs whenever
    # it is started and never reads this field.
    enabled: bool = False

    # Schedule
    start_hour: int = Field(22, ge=0, le=23)
    start_minute: int = Field(0, ge=0, le=59)
    end_hour: int = Field(7, ge=0, le=23)
    end_minute: int = Field(0, ge=0, le=59)

    # Device adjustments
    adjust_brightness: bool = True
    target_brightness: float = Field(0.1, ge=0.0, le=1.0)
    max_brightness: int = Field(255, ge=1)
    adjust_volume: bool = True
    target_volume: float = Field(0.0, ge=0.0, le=1.0)
    enable_dnd: bool = True

    # Scoring thresholds
    drowsy_threshold: int = Field(50, ge=0, le=100)
    sleeping_threshold: int = Field(70, ge=0, le=100)

    # Camera verification (opt-out)
    camera_verification: bool = True
    camera_verification_duration_s: int = Field(10, ge=1)

    # Ambient noise sampling (opt-in)
    audio_sampling: bool = False

    @model_validator(mode="after")
    def validate_threshold_order(self) -> "SleepSettings":
        """Reject thresholds whose ordering makes classification ambiguous."""
        if self.sleeping_threshold <= self.drowsy_threshold:
            raise ValueError(
                f"sleeping_threshold ({self.sleeping_threshold}) must be greater "
                f"than drowsy_threshold ({self.drowsy_threshold})"
            )
        return self

    @property
    def window_start(self) -> time:
        return time(self.start_hour, self.start_minute)

    @property
    def window_end(self) -> time:
        return time(self.end_hour, self.end_minute)


def load_settings(path: str | Path | None = None) -> SleepSettings:
    """Build settings from the environment, overlaid with a JSON file if given."""
    if path is None:
        return SleepSettings()
    overrides = json.loads(Path(path).read_text())
    return SleepSettings(**overrides)


# ---------------------------------------------------------------------------
# Sleep window helpers
# ---------------------------------------------------------------------------

MINUTES_PER_DAY = 24 * 60


def is_within_sleep_window(settings: SleepSettings, now: datetime | time) -> bool:
    """True if *now* falls strictly inside the configured window.

    A window whose start is later than its end wraps past midnight
    (e.g. 22:00 → 07:00).
    """
    current = now.time() if isinstance(now, datetime) else now
    start = settings.window_start
    end = settings.window_end

    if start > end:
        return current > start or current < end
    return start < current < end


def time_proximity(settings: SleepSettings, now: datetime | time) -> float:
    """How close *now* is to the centre of the sleep window.

    Returns 1.0 at the centre, falling linearly to 0.0 at either edge,
    and 0.0 anywhere outside the window.
    """
    current = now.time() if isinstance(now, datetime) else now
    current_min = current.hour * 60 + current.minute

    start_min = settings.start_hour * 60 + settings.start_minute
    end_min = settings.end_hour * 60 + settings.end_minute

    # Overnight window: unroll the end past midnight
    if end_min < start_min:
        end_min += MINUTES_PER_DAY
    if current_min < start_min and end_min > MINUTES_PER_DAY:
        current_min += MINUTES_PER_DAY

    if current_min < start_min or current_min > end_min:
        return 0.0

    duration = end_min - start_min
    if duration == 0:
        return 0.0
    centre = start_min + duration // 2
    max_distance = duration / 2.0
    distance = abs(current_min - centre)
    return 1.0 - min(max(distance / max_distance, 0.0), 1.0)
