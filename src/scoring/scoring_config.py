"""
Thresholds and weights for review suspicion scoring.

All calibration lives here so the scorer carries no magic numbers.
Each signal yields a partial score in [0, 1]; the suspicion score is
the weighted sum of partials, clipped to [0, 1].

DEFAULT TABLE:

    signal                      weight   trigger
    duplicate_content           0.45     similarity >= 0.85
    low_effort_extreme_rating   0.20     rating 1 or 5 and < 8 tokens
    rating_outlier              0.25     |z| > 2 (needs >= 5 ratings)
    burst_submission            0.35     >= 3 submissions in 10 minutes
    generic_language            0.15     generic ratio / template >= 0.7
    new_account_rapid_review    0.20     account < 1 hour + another trigger

A review is suspicious when score >= 0.6 or at least 2 signals trigger.
"""

from dataclasses import dataclass, field
from typing import Dict, Tuple


@dataclass(frozen=True)
class SignalWeights:
    """Weight of each signal's partial score in the aggregate."""
    duplicate_content: float = 0.45
    low_effort_extreme_rating: float = 0.20
    rating_outlier: float = 0.25
    burst_submission: float = 0.35
    generic_language: float = 0.15
    new_account_rapid_review: float = 0.20

    def as_dict(self) -> Dict[str, float]:
        return {
            "duplicate_content": self.duplicate_content,
            "low_effort_extreme_rating": self.low_effort_extreme_rating,
            "rating_outlier": self.rating_outlier,
            "burst_submission": self.burst_submission,
            "generic_language": self.generic_language,
            "new_account_rapid_review": self.new_account_rapid_review,
        }


@dataclass(frozen=True)
class DuplicateContentConfig:
    """
    Lexical similarity against the author's own prior reviews.

    Similarity is difflib's ratio over normalised text (lowercase,
    punctuation stripped, whitespace collapsed).
    """
    similarity_threshold: float = 0.85
    # Very short texts ("ok", "great") are near-identical by construction
    min_chars: int = 10


@dataclass(frozen=True)
class LowEffortConfig:
    """Extreme rating with almost no explanation."""
    extreme_ratings: Tuple[int, ...] = (1, 5)
    min_tokens: int = 8


@dataclass(frozen=True)
class RatingOutlierConfig:
    """
    Z-score of the rating against the event's existing distribution.

    partial = min(|z| / z_saturation, 1). Skipped below min_count ratings
    or when the distribution has zero spread.
    """
    z_threshold: float = 2.0
    z_saturation: float = 4.0
    min_count: int = 5


@dataclass(frozen=True)
class BurstConfig:
    """Many submissions from the same author in a short trailing window."""
    window_seconds: int = 600
    min_submissions: int = 3


@dataclass(frozen=True)
class GenericLanguageConfig:
    """
    Template-like praise.

    ratio = generic phrases found / max(words / 5, 1). A template opener
    scores template_score on its own.
    """
    phrases: Tuple[str, ...] = (
        "great event",
        "awesome experience",
        "highly recommend",
        "loved it",
        "amazing time",
        "perfect event",
        "will definitely attend again",
        "exceeded expectations",
        "fantastic organization",
        "well organized",
        "good value for money",
        "worth every penny",
    )
    template_patterns: Tuple[str, ...] = (
        r"^(great|good|awesome|amazing|fantastic)\s+(event|experience|time)",
        r"^(highly|definitely)\s+(recommend|worth)",
        r"^(loved|enjoyed)\s+(the|this)\s+(event|experience)",
        r"^(perfect|excellent)\s+(organization|event)",
    )
    template_score: float = 0.75
    trigger_threshold: float = 0.7


@dataclass(frozen=True)
class NewAccountConfig:
    """Young account whose review also tripped another signal."""
    max_account_age_seconds: int = 3600


@dataclass(frozen=True)
class ScoringConfig:
    """
    Global scoring configuration.

    Single entry point for calibration.
    """
    weights: SignalWeights = field(default_factory=SignalWeights)
    duplicate_content: DuplicateContentConfig = field(default_factory=DuplicateContentConfig)
    low_effort: LowEffortConfig = field(default_factory=LowEffortConfig)
    rating_outlier: RatingOutlierConfig = field(default_factory=RatingOutlierConfig)
    burst: BurstConfig = field(default_factory=BurstConfig)
    generic_language: GenericLanguageConfig = field(default_factory=GenericLanguageConfig)
    new_account: NewAccountConfig = field(default_factory=NewAccountConfig)

    suspicion_threshold: float = 0.6
    min_flags_for_suspicious: int = 2

    def validate(self) -> bool:
        """Check configuration consistency."""
        for name, weight in self.weights.as_dict().items():
            assert weight >= 0, f"Weight for {name} must be non-negative, got {weight}"
        assert 0.0 <= self.suspicion_threshold <= 1.0, \
            f"suspicion_threshold must be in [0, 1], got {self.suspicion_threshold}"
        assert self.min_flags_for_suspicious >= 1, "min_flags_for_suspicious must be >= 1"
        assert 0.0 < self.duplicate_content.similarity_threshold <= 1.0, \
            "similarity_threshold must be in (0, 1]"
        assert self.rating_outlier.z_saturation >= self.rating_outlier.z_threshold > 0, \
            "z_saturation must be >= z_threshold > 0"
        assert self.burst.window_seconds > 0 and self.burst.min_submissions >= 1, \
            "burst window and minimum must be positive"
        assert self.low_effort.min_tokens >= 1, "min_tokens must be >= 1"
        return True


DEFAULT_CONFIG = ScoringConfig()
