"""One scoring cycle: collect → predict → adapt → smooth → classify."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Callable

from driftoff.scoring.features import FeatureSnapshot
from driftoff.scoring.model import ScoreModel
from driftoff.scoring.smoothing import DrowsinessState, ScoreSmoother, StateClassifier
from driftoff.settings import SleepSettings

if TYPE_CHECKING:
    from driftoff.providers.collector import FeatureCollector

DEFAULT_MULTIPLIER = 1.0
MIN_MULTIPLIER = 0.5
MAX_MULTIPLIER = 1.5


@dataclass(frozen=True)
class ScoreResult:
    """Outcome of one scoring tick."""

    score: float  # smoothed, 0-100
    state: DrowsinessState
    features: FeatureSnapshot
    should_verify_with_camera: bool
    adaptive_multiplier: float = DEFAULT_MULTIPLIER
    raw_score: float = 0.0  # model output before the multiplier

    def __repr__(self) -> str:
        return (
            f"ScoreResult(score={self.score:.1f}, state={self.state.name}, "
            f"raw={self.raw_score:.1f}, x{self.adaptive_multiplier:.2f})"
        )


def apply_multiplier(raw_score: float, multiplier: float) -> float:
    """Scale a raw score by the (bounded) adaptive multiplier, clamped to 0-100."""
    m = max(MIN_MULTIPLIER, min(MAX_MULTIPLIER, multiplier))
    return max(0.0, min(100.0, raw_score * m))


class ScoreCalculator:
    """Owns the model plus the smoothing/hysteresis state for one monitoring run."""

    def __init__(
        self,
        model: ScoreModel,
        collector: FeatureCollector,
        multiplier: Callable[[], float] | None = None,
        smoother: ScoreSmoother | None = None,
        classifier: StateClassifier | None = None,
    ) -> None:
        self.model = model
        self.collector = collector
        self.multiplier = multiplier or (lambda: DEFAULT_MULTIPLIER)
        self.smoother = smoother or ScoreSmoother()
        self.classifier = classifier or StateClassifier()

    def score(self, features: FeatureSnapshot, settings: SleepSettings) -> ScoreResult:
        """Run the scoring pipeline on an already-collected snapshot."""
        multiplier = self.multiplier()
        raw = self.model.predict(features)
        adjusted = apply_multiplier(raw, multiplier)
        smoothed = self.smoother.update(adjusted)
        state = self.classifier.update(
            smoothed, settings.drowsy_threshold, settings.sleeping_threshold
        )
        return ScoreResult(
            score=smoothed,
            state=state,
            features=features,
            should_verify_with_camera=(
                settings.camera_verification
                and state == DrowsinessState.LIKELY_SLEEPING
            ),
            adaptive_multiplier=multiplier,
            raw_score=raw,
        )

    def calculate(self, settings: SleepSettings, now: datetime) -> ScoreResult:
        """Collect fresh features and score them."""
        return self.score(self.collector.collect(settings, now), settings)

    def reset(self) -> None:
        """Forget smoothing and hysteresis history."""
        self.smoother.reset()
        self.classifier.reset()
