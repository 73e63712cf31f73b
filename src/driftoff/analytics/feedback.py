"""Morning feedback and the adaptive score multiplier it drives.

Each rating nudges a multiplier that scales raw drowsiness scores:
poor nights make the app less eager, good nights make it more eager.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import date
from enum import Enum
from pathlib import Path
from typing import Callable

import structlog

from driftoff.scoring.calculator import DEFAULT_MULTIPLIER, MAX_MULTIPLIER, MIN_MULTIPLIER

logger = structlog.get_logger()

# Rating (1-5 stars) → multiplier adjustment
RATING_ADJUSTMENTS = {
    1: -0.15,
    2: -0.08,
    3: 0.0,
    4: 0.05,
    5: 0.10,
}


class WakeUpFeeling(str, Enum):
    TERRIBLE = "terrible"
    POOR = "poor"
    OKAY = "okay"
    GOOD = "good"
    GREAT = "great"


@dataclass(frozen=True)
class UserFeedback:
    date: date
    rating: int  # 1-5
    feeling: WakeUpFeeling
    notes: str | None = None


@dataclass
class FeedbackState:
    adaptive_multiplier: float = DEFAULT_MULTIPLIER
    last_feedback_date: str | None = None
    last_rating: int | None = None
    last_feeling: str | None = None
    feedback_count: int = 0


class FeedbackStore:
    """JSON-backed feedback state (in memory when no path is given)."""

    def __init__(
        self,
        path: str | Path | None = None,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.path = Path(path) if path is not None else None
        self.today = today
        self._state = self._load()

    def _load(self) -> FeedbackState:
        if self.path is None or not self.path.exists():
            return FeedbackState()
        try:
            raw = json.loads(self.path.read_text())
            return FeedbackState(**raw)
        except (json.JSONDecodeError, TypeError) as exc:
            logger.warning("feedback_state_unreadable", path=str(self.path), error=str(exc))
            return FeedbackState()

    def _save(self) -> None:
        if self.path is None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(asdict(self._state), indent=2))

    @property
    def state(self) -> FeedbackState:
        return self._state

    def adaptive_multiplier(self) -> float:
        return self._state.adaptive_multiplier

    def has_feedback_today(self) -> bool:
        return self._state.last_feedback_date == self.today().isoformat()

    def submit_feedback(self, feedback: UserFeedback) -> float:
        """Apply *feedback* to the multiplier and return the new value."""
        if feedback.rating not in RATING_ADJUSTMENTS:
            raise ValueError(f"rating must be 1-5, got {feedback.rating}")

        current = self._state.adaptive_multiplier
        updated = current + RATING_ADJUSTMENTS[feedback.rating]
        updated = round(max(MIN_MULTIPLIER, min(MAX_MULTIPLIER, updated)), 4)

        self._state = FeedbackState(
            adaptive_multiplier=updated,
            last_feedback_date=feedback.date.isoformat(),
            last_rating=feedback.rating,
            last_feeling=feedback.feeling.value,
            feedback_count=self._state.feedback_count + 1,
        )
        self._save()
        logger.info("feedback_submitted", rating=feedback.rating, multiplier=updated)
        return updated

    def reset_multiplier(self) -> None:
        self._state.adaptive_multiplier = DEFAULT_MULTIPLIER
        self._save()
