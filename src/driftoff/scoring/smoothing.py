"""Score smoothing and hysteresis-based state classification.

Raw scores are noisy from tick to tick.  Two stateful filters sit between
the model and the controller:

  - :class:`ScoreSmoother` -- exponential moving average (alpha = 0.3)
  - :class:`StateClassifier` -- maps a smoothed score to a state, but only
    adopts a new state once it has been the candidate for
    ``MIN_STATE_HOLD_TICKS`` consecutive ticks
"""

from __future__ import annotations

from enum import Enum

EMA_ALPHA = 0.3
MIN_STATE_HOLD_TICKS = 3
RELAXING_THRESHOLD = 30.0


class DrowsinessState(str, Enum):
    """Discrete drowsiness level, ordered by severity."""

    AWAKE = "awake"
    RELAXING = "relaxing"
    DROWSY = "drowsy"
    LIKELY_SLEEPING = "likely_sleeping"

    @property
    def severity(self) -> int:
        return _SEVERITY[self]

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, DrowsinessState):
            return NotImplemented
        return self.severity < other.severity

    def __le__(self, other: object) -> bool:
        if not isinstance(other, DrowsinessState):
            return NotImplemented
        return self.severity <= other.severity

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, DrowsinessState):
            return NotImplemented
        return self.severity > other.severity

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, DrowsinessState):
            return NotImplemented
        return self.severity >= other.severity


_SEVERITY = {
    DrowsinessState.AWAKE: 0,
    DrowsinessState.RELAXING: 1,
    DrowsinessState.DROWSY: 2,
    DrowsinessState.LIKELY_SLEEPING: 3,
}


class ScoreSmoother:
    """Exponential moving average over successive adjusted scores."""

    def __init__(self, alpha: float = EMA_ALPHA) -> None:
        self.alpha = alpha
        self.previous: float | None = None

    def update(self, score: float) -> float:
        if self.previous is None:
            smoothed = score
        else:
            smoothed = self.alpha * score + (1.0 - self.alpha) * self.previous
        self.previous = smoothed
        return smoothed

    def reset(self) -> None:
        self.previous = None


def candidate_state(
    score: float,
    drowsy_threshold: float,
    sleeping_threshold: float,
) -> DrowsinessState:
    """Un-filtered state for *score*.

    Thresholds are checked from most to least severe, so a misconfigured
    pair (sleeping <= drowsy) makes DROWSY unreachable rather than raising.
    """
    if score >= sleeping_threshold:
        return DrowsinessState.LIKELY_SLEEPING
    if score >= drowsy_threshold:
        return DrowsinessState.DROWSY
    if score >= RELAXING_THRESHOLD:
        return DrowsinessState.RELAXING
    return DrowsinessState.AWAKE


class StateClassifier:
    """Hysteresis filter: a candidate must hold for N ticks to be adopted."""

    def __init__(self, min_hold_ticks: int = MIN_STATE_HOLD_TICKS) -> None:
        self.min_hold_ticks = min_hold_ticks
        self.pending: DrowsinessState | None = None
        self.hold_count = 0
        self.current = DrowsinessState.AWAKE

    def update(
        self,
        score: float,
        drowsy_threshold: float,
        sleeping_threshold: float,
    ) -> DrowsinessState:
        candidate = candidate_state(score, drowsy_threshold, sleeping_threshold)

        if candidate == self.pending:
            self.hold_count += 1
        else:
            self.pending = candidate
            self.hold_count = 1

        if self.hold_count >= self.min_hold_ticks:
            self.current = candidate
        return self.current

    def reset(self) -> None:
        self.pending = None
        self.hold_count = 0
        self.current = DrowsinessState.AWAKE
