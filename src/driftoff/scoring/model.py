"""Drowsiness score models.

A model turns one :class:`FeatureSnapshot` into a raw 0-100 score.  Only
the fixed-weight heuristic is implemented; anything with a matching
``predict`` can be dropped into :class:`ScoreCalculator` instead.
"""

from __future__ import annotations

from typing import Protocol

import numpy as np
import structlog

from driftoff.scoring.features import FeatureSnapshot, normalize_features

logger = structlog.get_logger()


class ScoreModel(Protocol):
    def predict(self, features: FeatureSnapshot) -> float:
        """Return a drowsiness score in [0, 100]."""
        ...


# ---------------------------------------------------------------------------
# Heuristic weights
# ---------------------------------------------------------------------------

# Without audio (sums to 1.0)
WEIGHTS = {
    "light": 0.25,
    "stillness": 0.20,
    "time": 0.20,
    "heart_rate": 0.15,
    "session": 0.10,
    "screen_off": 0.10,
}

# With ambient noise available (sums to 1.0)
WEIGHTS_AUDIO = {
    "light": 0.22,
    "stillness": 0.18,
    "time": 0.18,
    "heart_rate": 0.12,
    "session": 0.10,
    "screen_off": 0.10,
    "audio": 0.10,
}


class HeuristicScoreModel:
    """Weighted sum of normalized features, scaled to 0-100."""

    def __init__(
        self,
        weights: dict[str, float] | None = None,
        audio_weights: dict[str, float] | None = None,
    ) -> None:
        self.weights = dict(weights or WEIGHTS)
        self.audio_weights = dict(audio_weights or WEIGHTS_AUDIO)

    def weights_for(self, features: FeatureSnapshot) -> dict[str, float]:
        return self.audio_weights if features.has_audio else self.weights

    def breakdown(self, features: FeatureSnapshot) -> dict[str, float]:
        """Weighted contribution of each feature (0-1 scale, before ×100)."""
        scores = normalize_features(features)
        weights = self.weights_for(features)
        return {name: scores[name] * w for name, w in weights.items()}

    def predict(self, features: FeatureSnapshot) -> float:
        contributions = self.breakdown(features)
        total = float(np.sum(list(contributions.values())))
        score = float(np.clip(total * 100.0, 0.0, 100.0))

        logger.debug(
            "score_breakdown",
            score=round(score, 1),
            audio=features.has_audio,
            **{name: round(v, 3) for name, v in contributions.items()},
        )
        return score
