"""Persistent store of closed sleep sessions.

Sessions live in a single text file using the format in
:mod:`driftoff.analytics.codec`.  Without a path the store keeps the same
encoded text in memory, which is what the tests and dry runs use.
"""

from __future__ import annotations

from datetime import date, timedelta
from pathlib import Path
from typing import Callable

import structlog

from driftoff.analytics.codec import decode_sessions, encode_sessions
from driftoff.analytics.session import Session
from driftoff.analytics.summary import AnalyticsSummary, build_analytics_summary

logger = structlog.get_logger()

MIN_SLEEP_DURATION_MIN = 3
RETENTION_DAYS = 30


class AnalyticsStore:
    def __init__(
        self,
        path: str | Path | None = None,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.path = Path(path) if path is not None else None
        self.today = today
        self._text = ""

    # -- raw storage -------------------------------------------------------

    def _read_text(self) -> str:
        if self.path is None:
            return self._text
        if not self.path.exists():
            return ""
        return self.path.read_text()

    def _write_text(self, text: str) -> None:
        if self.path is None:
            self._text = text
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(text)
        tmp.replace(self.path)

    # -- sessions ----------------------------------------------------------

    def load_sessions(self) -> list[Session]:
        """Every stored session, in storage order."""
        return decode_sessions(self._read_text())

    def save_session(self, session: Session) -> bool:
        """Persist *session* if it clears the minimum-sleep rule.

        Sessions older than the retention window are pruned before the new
        one is appended.  Returns True if the session was stored.
        """
        if session.total_sleep_min < MIN_SLEEP_DURATION_MIN:
            logger.info(
                "session_discarded",
                session_id=session.id,
                total_sleep_min=session.total_sleep_min,
                minimum=MIN_SLEEP_DURATION_MIN,
            )
            return False

        cutoff = self.today() - timedelta(days=RETENTION_DAYS)
        sessions = [s for s in self.load_sessions() if s.date >= cutoff]
        sessions.append(session)
        self._write_text(encode_sessions(sessions))
        logger.info("session_saved", session_id=session.id, date=session.date.isoformat())
        return True

    def recent_sessions(self, days: int = 7) -> list[Session]:
        """Sessions dated within the last *days* days, newest first."""
        cutoff = self.today() - timedelta(days=days)
        recent = [s for s in self.load_sessions() if s.date >= cutoff]
        return sorted(recent, key=lambda s: s.date, reverse=True)

    def analytics_summary(self, days: int = 7) -> AnalyticsSummary:
        return build_analytics_summary(self.recent_sessions(days))
