"""
Review Suspicion Scoring
========================

Deterministic heuristic scoring of submitted reviews.

Components:
    - SuspicionScorer: weighted heuristic signals -> DetectionResult
    - ScoringConfig: weights and thresholds (DEFAULT_CONFIG)

Usage:
    from src.scoring import SuspicionScorer

    scorer = SuspicionScorer()
    result = scorer.score(submission, history, distribution)

    print(result.is_suspicious, result.flags)
"""

from .scoring_config import (
    ScoringConfig,
    SignalWeights,
    DEFAULT_CONFIG,
)
from .suspicion_scorer import (
    SuspicionScorer,
    SignalScore,
    ScoringDegraded,
)

__all__ = [
    "SuspicionScorer",
    "SignalScore",
    "ScoringDegraded",
    "ScoringConfig",
    "SignalWeights",
    "DEFAULT_CONFIG",
]
