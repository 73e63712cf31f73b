"""Sleep-session records and the recorder that builds them.

A :class:`Session` is an immutable record.  While monitoring is running,
the open session lives inside :class:`SessionRecorder` and is only changed
through its methods; ``end_session`` computes the derived metrics and
hands the finished record to the analytics store.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from typing import TYPE_CHECKING, Callable

import numpy as np
import structlog

if TYPE_CHECKING:
    from driftoff.analytics.store import AnalyticsStore

logger = structlog.get_logger()


@dataclass(frozen=True)
class Session:
    """One night's (or one attempt's) monitoring record."""

    date: date
    monitoring_start: datetime
    sleep_start: datetime | None = None
    sleep_end: datetime | None = None
    monitoring_end: datetime | None = None
    total_sleep_min: int = 0
    minutes_to_sleep: int = 0
    disturbances: int = 0
    average_score: float = 0.0
    peak_score: float = 0.0
    hibernation_activated: bool = False
    camera_verifications: int = 0
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def __repr__(self) -> str:
        return (
            f"Session({self.date.isoformat()}: sleep={self.total_sleep_min}min, "
            f"to_sleep={self.minutes_to_sleep}min, "
            f"disturbances={self.disturbances}, peak={self.peak_score:.0f})"
        )


def minutes_between(start: datetime, end: datetime) -> int:
    """Whole minutes from *start* to *end*, truncated toward zero."""
    return int((end - start).total_seconds() / 60)


def finalize_session(session: Session, scores: list[float], now: datetime) -> Session:
    """Compute the derived metrics of *session* as of close time *now*."""
    if session.sleep_start is not None:
        total_sleep = minutes_between(session.sleep_start, session.sleep_end or now)
        to_sleep = minutes_between(session.monitoring_start, session.sleep_start)
    else:
        total_sleep = 0
        to_sleep = 0

    if scores:
        arr = np.asarray(scores, dtype=np.float64)
        avg, peak = float(np.mean(arr)), float(np.max(arr))
    else:
        avg, peak = 0.0, 0.0

    return replace(
        session,
        monitoring_end=now,
        total_sleep_min=total_sleep,
        minutes_to_sleep=to_sleep,
        average_score=avg,
        peak_score=peak,
    )


class SessionRecorder:
    """Tracks the timeline of the single open session."""

    def __init__(
        self,
        store: AnalyticsStore | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.store = store
        self.clock = clock
        self._session: Session | None = None
        self._scores: list[float] = []

    @property
    def active(self) -> bool:
        return self._session is not None

    @property
    def current(self) -> Session | None:
        """Read-only view of the open session (None if none is open)."""
        return self._session

    @property
    def sleep_confirmed(self) -> bool:
        return self._session is not None and self._session.sleep_start is not None

    @property
    def camera_attempts(self) -> int:
        return self._session.camera_verifications if self._session else 0

    def _update(self, **changes) -> None:
        if self._session is not None:
            self._session = replace(self._session, **changes)

    def start_session(self) -> Session:
        """Open a new session, closing any session that is still open."""
        if self._session is not None:
            self.end_session()
        now = self.clock()
        self._session = Session(date=now.date(), monitoring_start=now)
        self._scores = []
        logger.info("session_started", session_id=self._session.id, at=now.isoformat())
        return self._session

    def record_score(self, score: float) -> None:
        if self._session is not None:
            self._scores.append(float(score))

    def confirm_sleep_start(self) -> None:
        """Mark sleep onset; later confirmations keep the first time."""
        if self._session is None or self._session.sleep_start is not None:
            return
        now = self.clock()
        self._update(sleep_start=now)
        logger.info("sleep_confirmed", session_id=self._session.id, at=now.isoformat())

    def record_camera_verification(self) -> None:
        if self._session is not None:
            self._update(camera_verifications=self._session.camera_verifications + 1)

    def record_disturbance(self) -> None:
        """Count a mid-sleep awakening (ignored before sleep is confirmed)."""
        if self.sleep_confirmed:
            self._update(disturbances=self._session.disturbances + 1)
            logger.info("disturbance_recorded", total=self._session.disturbances)

    def record_wake(self) -> None:
        """Stamp the sleep end time (ignored before sleep is confirmed)."""
        if self.sleep_confirmed:
            now = self.clock()
            self._update(sleep_end=now)
            logger.info("wake_recorded", at=now.isoformat())

    def mark_hibernation(self) -> None:
        self._update(hibernation_activated=True)

    def end_session(self) -> Session | None:
        """Close the open session and hand it to the store.

        Returns the finalized session, or None if no session was open.
        Whether the store keeps it depends on the minimum-sleep rule.
        """
        if self._session is None:
            return None
        final = finalize_session(self._session, self._scores, self.clock())
        self._session = None
        self._scores = []

        saved = self.store.save_session(final) if self.store is not None else False
        logger.info(
            "session_ended",
            session_id=final.id,
            total_sleep_min=final.total_sleep_min,
            saved=saved,
        )
        return final
