"""
Review Suspicion Scorer - deterministic heuristic scoring.

Decides how likely a submitted review is inauthentic or low-effort.

PHILOSOPHY:
- No ML, no I/O: identical inputs always produce identical results
- Every signal is explainable (partial score + trigger per signal)
- Safe to run concurrently across unrelated reviews (no shared state)

SIGNALS (evaluation order):
    1. duplicate_content          (needs author history)
    2. low_effort_extreme_rating
    3. rating_outlier             (needs event distribution)
    4. burst_submission           (needs author history)
    5. generic_language           (skipped in degraded mode)
    6. new_account_rapid_review   (needs author history)

When author history is unavailable the scorer runs signals 2 and 3
only and marks the result as degraded.

USAGE:
    scorer = SuspicionScorer()
    result = scorer.score(submission, history, distribution, now=now)

    print(result.suspicion_score)
    print(result.flags)
"""

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from difflib import SequenceMatcher
from typing import Iterable, List, Optional

from ..reviews.review_models import (
    AuthorHistory,
    DetectionResult,
    FlagCode,
    RatingDistribution,
    ReviewSubmission,
    utcnow,
)
from .scoring_config import DEFAULT_CONFIG, ScoringConfig

logger = logging.getLogger(__name__)


_TOKEN_RE = re.compile(r"[a-z0-9']+")


class ScoringDegraded(Exception):
    """Author history lookup failed. Scoring continues without history signals."""

    def __init__(self, author_id: str, cause: Exception):
        self.author_id = author_id
        self.cause = cause
        super().__init__(f"History unavailable for author {author_id}: {cause}")


@dataclass(frozen=True)
class SignalScore:
    """Outcome of one signal."""
    code: str
    partial: float          # 0.0 to 1.0
    triggered: bool
    detail: str = ""


def tokenize(text: str) -> List[str]:
    return _TOKEN_RE.findall(text.lower())


def normalize_text(text: str) -> str:
    """Lowercase, strip punctuation, collapse whitespace."""
    return " ".join(tokenize(text))


def text_similarity(a: str, b: str) -> float:
    """Normalised lexical similarity in [0, 1]."""
    if not a or not b:
        return 0.0
    return SequenceMatcher(None, a, b).ratio()


def _as_utc(ts: datetime) -> datetime:
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts


class SuspicionScorer:
    """
    Heuristic review scorer - 100% deterministic.

    RULE:
    suspicious iff score >= suspicion_threshold or
    at least min_flags_for_suspicious signals trigger.
    """

    def __init__(self, config: Optional[ScoringConfig] = None):
        self.config = config or DEFAULT_CONFIG
        self.config.validate()
        self._templates = [
            re.compile(p, re.IGNORECASE) for p in self.config.generic_language.template_patterns
        ]

    # =========================================================================
    # MAIN ENTRY POINT
    # =========================================================================

    def score(
        self,
        review: ReviewSubmission,
        author_history: Optional[AuthorHistory],
        distribution: Optional[RatingDistribution] = None,
        now: Optional[datetime] = None,
    ) -> DetectionResult:
        """
        Score a validated submission.

        Args:
            review: The candidate review.
            author_history: Author snapshot, or None when the lookup failed.
            distribution: The event's existing ratings, or None if unknown.
            now: Reference time for the burst window and computed_at.

        Returns:
            DetectionResult with score, ordered flags and per-signal partials.
        """
        now = _as_utc(now or utcnow())
        degraded = author_history is None

        signals: List[SignalScore] = []
        if not degraded:
            signals.append(self.score_duplicate_content(review.content, author_history.prior_review_texts))
        signals.append(self.score_low_effort(review.rating, review.content))
        signals.append(self.score_rating_outlier(review.rating, distribution))
        if not degraded:
            signals.append(self.score_burst(author_history.recent_submission_timestamps, now))
            signals.append(self.score_generic_language(review.content))
            others_triggered = any(s.triggered for s in signals)
            signals.append(self.score_new_account(author_history.account_age_seconds, others_triggered))

        weights = self.config.weights.as_dict()
        total = sum(weights[s.code] * s.partial for s in signals)
        suspicion_score = round(min(max(total, 0.0), 1.0), 4)

        flags = tuple(s.code for s in signals if s.triggered)
        is_suspicious = (
            suspicion_score >= self.config.suspicion_threshold
            or len(flags) >= self.config.min_flags_for_suspicious
        )

        logger.debug(
            "Scored review by %s: score=%.4f flags=%s degraded=%s",
            review.author_id, suspicion_score, list(flags), degraded,
        )

        return DetectionResult(
            is_suspicious=is_suspicious,
            suspicion_score=suspicion_score,
            flags=flags,
            computed_at=now,
            signal_scores={s.code: round(s.partial, 4) for s in signals},
            degraded=degraded,
        )

    # =========================================================================
    # SIGNALS
    # =========================================================================

    def score_duplicate_content(self, content: str, prior_texts: Iterable[str]) -> SignalScore:
        """Best similarity against the author's own prior reviews."""
        cfg = self.config.duplicate_content
        current = normalize_text(content)
        if len(current) < cfg.min_chars:
            return SignalScore(FlagCode.DUPLICATE_CONTENT.value, 0.0, False, "content too short to compare")

        best = 0.0
        for prior in prior_texts:
            best = max(best, text_similarity(current, normalize_text(prior)))
            if best >= 1.0:
                break

        triggered = best >= cfg.similarity_threshold
        return SignalScore(
            FlagCode.DUPLICATE_CONTENT.value, best, triggered,
            f"max similarity {best:.2f}",
        )

    def score_low_effort(self, rating: int, content: str) -> SignalScore:
        """Extreme rating with fewer than min_tokens words."""
        cfg = self.config.low_effort
        token_count = len(tokenize(content))
        triggered = rating in cfg.extreme_ratings and token_count < cfg.min_tokens
        return SignalScore(
            FlagCode.LOW_EFFORT_EXTREME_RATING.value,
            1.0 if triggered else 0.0,
            triggered,
            f"rating {rating}, {token_count} tokens",
        )

    def score_rating_outlier(
        self,
        rating: int,
        distribution: Optional[RatingDistribution],
    ) -> SignalScore:
        """Z-score against the event distribution. 0 when not meaningful."""
        cfg = self.config.rating_outlier
        code = FlagCode.RATING_OUTLIER.value

        if distribution is None or distribution.count < cfg.min_count:
            return SignalScore(code, 0.0, False, "not enough ratings")
        if distribution.stddev <= 0:
            return SignalScore(code, 0.0, False, "no spread in existing ratings")

        z = (rating - distribution.mean) / distribution.stddev
        partial = min(abs(z) / cfg.z_saturation, 1.0)
        return SignalScore(code, partial, abs(z) > cfg.z_threshold, f"z={z:.2f}")

    def score_burst(self, timestamps: Iterable[datetime], now: datetime) -> SignalScore:
        """Prior submissions inside the trailing window."""
        cfg = self.config.burst
        window_start = now - timedelta(seconds=cfg.window_seconds)
        count = sum(1 for ts in timestamps if window_start <= _as_utc(ts) <= now)
        return SignalScore(
            FlagCode.BURST_SUBMISSION.value,
            min(count / cfg.min_submissions, 1.0),
            count >= cfg.min_submissions,
            f"{count} submissions in {cfg.window_seconds}s",
        )

    def score_generic_language(self, content: str) -> SignalScore:
        """Stock praise phrases and template openers."""
        cfg = self.config.generic_language
        text = content.lower().strip()
        words = len(text.split())

        phrase_hits = sum(1 for phrase in cfg.phrases if phrase in text)
        ratio = min(phrase_hits / max(words / 5, 1), 1.0) if words else 0.0
        template = any(p.search(text) for p in self._templates)

        partial = max(ratio, cfg.template_score if template else 0.0)
        return SignalScore(
            FlagCode.GENERIC_LANGUAGE.value,
            partial,
            partial >= cfg.trigger_threshold,
            f"{phrase_hits} generic phrases, template={template}",
        )

    def score_new_account(
        self,
        account_age_seconds: Optional[float],
        others_triggered: bool,
    ) -> SignalScore:
        """Only counts alongside another triggered signal."""
        cfg = self.config.new_account
        code = FlagCode.NEW_ACCOUNT_RAPID_REVIEW.value

        if account_age_seconds is None:
            return SignalScore(code, 0.0, False, "account age unknown")

        triggered = account_age_seconds < cfg.max_account_age_seconds and others_triggered
        return SignalScore(
            code,
            1.0 if triggered else 0.0,
            triggered,
            f"account age {account_age_seconds:.0f}s",
        )
