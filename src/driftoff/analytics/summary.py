"""Rolling analytics over persisted sleep sessions.

Summaries are derived on demand and never stored.  Trend detection
compares the mean sleep duration of the earlier half of the sessions
(by date) against the later half.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Sequence

import numpy as np

from driftoff.analytics.session import Session

MIN_TREND_SESSIONS = 4
TREND_DELTA_MIN = 15.0
NO_TIME = "--:--"


class SleepTrend(str, Enum):
    IMPROVING = "improving"
    DECLINING = "declining"
    STABLE = "stable"
    INSUFFICIENT_DATA = "insufficient_data"


@dataclass
class AnalyticsSummary:
    """Aggregate statistics over a window of sessions."""

    total_nights: int = 0
    average_sleep_min: int = 0
    average_time_to_sleep_min: int = 0
    average_disturbances: float = 0.0
    best_night: date | None = None
    worst_night: date | None = None
    trend: SleepTrend = SleepTrend.INSUFFICIENT_DATA
    average_bedtime: str = NO_TIME
    average_wake_time: str = NO_TIME

    def to_dict(self) -> dict[str, Any]:
        d = asdict(self)
        d["best_night"] = self.best_night.isoformat() if self.best_night else None
        d["worst_night"] = self.worst_night.isoformat() if self.worst_night else None
        d["trend"] = self.trend.value
        return d

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    def __repr__(self) -> str:
        return (
            f"AnalyticsSummary(nights={self.total_nights}, "
            f"avg_sleep={self.average_sleep_min}min, trend={self.trend.value})"
        )


def classify_trend(sessions: Sequence[Session]) -> SleepTrend:
    """Compare earlier vs later half of *sessions* by mean sleep duration.

    With an odd count the later half gets the extra session.
    """
    if len(sessions) < MIN_TREND_SESSIONS:
        return SleepTrend.INSUFFICIENT_DATA

    ordered = sorted(sessions, key=lambda s: s.date)
    mid = len(ordered) // 2
    earlier = np.mean([s.total_sleep_min for s in ordered[:mid]])
    later = np.mean([s.total_sleep_min for s in ordered[mid:]])

    diff = float(later - earlier)
    if diff > TREND_DELTA_MIN:
        return SleepTrend.IMPROVING
    if diff < -TREND_DELTA_MIN:
        return SleepTrend.DECLINING
    return SleepTrend.STABLE


def format_clock(minutes: int) -> str:
    """Minutes since midnight → ``h:mm AM``/``h:mm PM``."""
    hour, minute = divmod(minutes % (24 * 60), 60)
    suffix = "AM" if hour < 12 else "PM"
    hour12 = hour % 12 or 12
    return f"{hour12}:{minute:02d} {suffix}"


def average_clock_time(times: Sequence[datetime]) -> str:
    """Arithmetic mean of clock times (minutes since midnight), formatted."""
    if not times:
        return NO_TIME
    avg = int(np.mean([t.hour * 60 + t.minute for t in times]))
    return format_clock(avg)


def build_analytics_summary(sessions: Sequence[Session]) -> AnalyticsSummary:
    """Summarize *sessions*; an empty input yields a zero-valued summary."""
    if not sessions:
        return AnalyticsSummary()

    durations = [s.total_sleep_min for s in sessions]
    # max()/min() keep the first of equal nights in input order
    best = max(sessions, key=lambda s: s.total_sleep_min)
    worst = min(sessions, key=lambda s: s.total_sleep_min)

    return AnalyticsSummary(
        total_nights=len(sessions),
        average_sleep_min=int(np.mean(durations)),
        average_time_to_sleep_min=int(np.mean([s.minutes_to_sleep for s in sessions])),
        average_disturbances=float(np.mean([s.disturbances for s in sessions])),
        best_night=best.date,
        worst_night=worst.date,
        trend=classify_trend(sessions),
        average_bedtime=average_clock_time(
            [s.sleep_start for s in sessions if s.sleep_start is not None]
        ),
        average_wake_time=average_clock_time(
            [s.sleep_end for s in sessions if s.sleep_end is not None]
        ),
    )
