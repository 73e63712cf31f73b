"""Drowsiness scoring: features, model, smoothing and hysteresis.

Modules:
    features   -- FeatureSnapshot and per-feature normalization
    model      -- ScoreModel protocol and the fixed-weight heuristic
    smoothing  -- EMA smoother and hysteresis state classifier
    calculator -- One full scoring cycle producing a ScoreResult
"""

from driftoff.scoring.features import FeatureSnapshot, normalize_features
from driftoff.scoring.model import ScoreModel, HeuristicScoreModel, WEIGHTS, WEIGHTS_AUDIO
from driftoff.scoring.smoothing import (
    DrowsinessState,
    ScoreSmoother,
    StateClassifier,
    candidate_state,
)
from driftoff.scoring.calculator import ScoreCalculator, ScoreResult, apply_multiplier

__all__ = [
    # features
    "FeatureSnapshot",
    "normalize_features",
    # model
    "ScoreModel",
    "HeuristicScoreModel",
    "WEIGHTS",
    "WEIGHTS_AUDIO",
    # smoothing
    "DrowsinessState",
    "ScoreSmoother",
    "StateClassifier",
    "candidate_state",
    # calculator
    "ScoreCalculator",
    "ScoreResult",
    "apply_multiplier",
]
