"""
Tests for the review SuspicionScorer.

Covers each heuristic signal in isolation, the aggregate decision rule,
degraded scoring without author history, and determinism.

Usage:
    pytest tests/test_suspicion_scorer.py -v
"""

from datetime import datetime, timedelta, timezone

import pytest

from src.reviews.review_models import (
    AuthorHistory,
    EventRef,
    FlagCode,
    RatingDistribution,
    ReviewSubmission,
)
from src.scoring import DEFAULT_CONFIG, ScoringConfig, SignalWeights, SuspicionScorer
from src.scoring.suspicion_scorer import normalize_text, text_similarity, tokenize


NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)

DETAILED_TEXT = "The venue was spacious and the sound system worked well all night long."


# ============================================================================
# TEST DATA
# ============================================================================

def make_submission(
    rating: int = 4,
    title: str = "Nice evening",
    content: str = DETAILED_TEXT,
    author_id: str = "user-1",
    event_id: str = "evt-1",
) -> ReviewSubmission:
    return ReviewSubmission(
        author_id=author_id,
        event=EventRef.local(event_id),
        rating=rating,
        title=title,
        content=content,
    )


def make_history(
    prior_texts=(),
    account_age_seconds=90 * 24 * 3600,
    timestamps=(),
) -> AuthorHistory:
    return AuthorHistory(
        prior_review_texts=tuple(prior_texts),
        account_age_seconds=account_age_seconds,
        recent_submission_timestamps=tuple(timestamps),
    )


STABLE_DISTRIBUTION = RatingDistribution(mean=4.0, stddev=0.8, count=10)


# ============================================================================
# AGGREGATE DECISION
# ============================================================================

class TestAggregateScore:
    """Weighted sum and the suspicious decision rule."""

    def setup_method(self):
        self.scorer = SuspicionScorer()

    def test_clean_review_scores_zero(self):
        result = self.scorer.score(make_submission(), make_history(), STABLE_DISTRIBUTION, now=NOW)
        assert result.suspicion_score == 0.0
        assert result.flags == ()
        assert result.is_suspicious is False
        assert result.degraded is False
        assert result.computed_at == NOW

    def test_great_scenario_is_flagged(self):
        """5 stars, one-word text, 2-minute-old account, 4 reviews in the last minute."""
        history = make_history(
            account_age_seconds=120,
            timestamps=[NOW - timedelta(seconds=s) for s in (10, 20, 30, 40)],
        )
        result = self.scorer.score(
            make_submission(rating=5, title="Great!", content="Great!"),
            history,
            None,
            now=NOW,
        )
        assert result.suspicion_score == pytest.approx(0.75)
        assert result.flags == (
            FlagCode.LOW_EFFORT_EXTREME_RATING.value,
            FlagCode.BURST_SUBMISSION.value,
            FlagCode.NEW_ACCOUNT_RAPID_REVIEW.value,
        )
        assert result.is_suspicious is True

    def test_single_weak_flag_is_not_suspicious(self):
        """Duplicate content alone scores 0.45 with one flag."""
        history = make_history(prior_texts=[DETAILED_TEXT.upper()])
        result = self.scorer.score(make_submission(), history, STABLE_DISTRIBUTION, now=NOW)
        assert result.flags == (FlagCode.DUPLICATE_CONTENT.value,)
        assert result.suspicion_score == pytest.approx(0.45)
        assert result.is_suspicious is False

    def test_two_flags_make_review_suspicious(self):
        """Duplicate content on a new account: two flags."""
        history = make_history(prior_texts=[DETAILED_TEXT], account_age_seconds=300)
        result = self.scorer.score(make_submission(), history, STABLE_DISTRIBUTION, now=NOW)
        assert result.flags == (
            FlagCode.DUPLICATE_CONTENT.value,
            FlagCode.NEW_ACCOUNT_RAPID_REVIEW.value,
        )
        assert result.suspicion_score == pytest.approx(0.65)
        assert result.is_suspicious is True

    def test_score_is_clipped_to_one(self):
        """All signals firing cannot exceed 1.0."""
        history = make_history(
            prior_texts=["Great event, highly recommend, loved it!"],
            account_age_seconds=60,
            timestamps=[NOW - timedelta(seconds=5)] * 5,
        )
        result = self.scorer.score(
            make_submission(rating=1, content="Great event, highly recommend, loved it!"),
            history,
            RatingDistribution(mean=4.8, stddev=0.4, count=30),
            now=NOW,
        )
        assert result.suspicion_score == 1.0
        assert len(result.flags) == 6

    def test_score_is_rounded_to_four_decimals(self):
        history = make_history(timestamps=[NOW - timedelta(seconds=30)])
        result = self.scorer.score(make_submission(), history, STABLE_DISTRIBUTION, now=NOW)
        # 0.35 * 1/3
        assert result.suspicion_score == 0.1167

    def test_same_inputs_same_result(self):
        history = make_history(prior_texts=["Something else entirely about parking."])
        first = self.scorer.score(make_submission(), history, STABLE_DISTRIBUTION, now=NOW)
        second = self.scorer.score(make_submission(), history, STABLE_DISTRIBUTION, now=NOW)
        assert first == second

    def test_signal_scores_follow_evaluation_order(self):
        result = self.scorer.score(make_submission(), make_history(), STABLE_DISTRIBUTION, now=NOW)
        assert list(result.signal_scores) == [code.value for code in FlagCode]


# ============================================================================
# INDIVIDUAL SIGNALS
# ============================================================================

class TestDuplicateContent:

    def setup_method(self):
        self.scorer = SuspicionScorer()

    def test_identical_after_normalisation(self):
        signal = self.scorer.score_duplicate_content(
            "Loved the DJ set, the crowd was great!",
            ["loved the dj set   the crowd was great"],
        )
        assert signal.partial == pytest.approx(1.0)
        assert signal.triggered is True

    def test_unrelated_text_does_not_trigger(self):
        signal = self.scorer.score_duplicate_content(
            DETAILED_TEXT,
            ["Parking was a nightmare and the queue took an hour."],
        )
        assert signal.triggered is False
        assert signal.partial < 0.85

    def test_short_text_is_not_compared(self):
        signal = self.scorer.score_duplicate_content("Great!", ["Great!"])
        assert signal.partial == 0.0
        assert signal.triggered is False

    def test_no_prior_reviews(self):
        signal = self.scorer.score_duplicate_content(DETAILED_TEXT, [])
        assert signal.partial == 0.0


class TestLowEffort:

    def setup_method(self):
        self.scorer = SuspicionScorer()

    @pytest.mark.parametrize("rating", [1, 5])
    def test_extreme_rating_short_text(self, rating):
        assert self.scorer.score_low_effort(rating, "Terrible.").triggered is True

    def test_middle_rating_short_text(self):
        assert self.scorer.score_low_effort(3, "Fine.").triggered is False

    def test_extreme_rating_detailed_text(self):
        assert self.scorer.score_low_effort(5, DETAILED_TEXT).triggered is False


class TestRatingOutlier:

    def setup_method(self):
        self.scorer = SuspicionScorer()

    def test_far_from_mean_triggers(self):
        signal = self.scorer.score_rating_outlier(1, RatingDistribution(mean=4.5, stddev=0.5, count=20))
        assert signal.triggered is True
        assert signal.partial == 1.0

    def test_partial_scales_with_z(self):
        # z = -1.25 -> 1.25 / 4
        signal = self.scorer.score_rating_outlier(3, RatingDistribution(mean=4.0, stddev=0.8, count=10))
        assert signal.partial == pytest.approx(0.3125)
        assert signal.triggered is False

    def test_too_few_ratings(self):
        signal = self.scorer.score_rating_outlier(1, RatingDistribution(mean=5.0, stddev=0.1, count=4))
        assert signal.partial == 0.0

    def test_zero_spread(self):
        signal = self.scorer.score_rating_outlier(1, RatingDistribution(mean=5.0, stddev=0.0, count=50))
        assert signal.partial == 0.0
        assert signal.triggered is False

    def test_unknown_distribution(self):
        assert self.scorer.score_rating_outlier(1, None).partial == 0.0


class TestBurstSubmission:

    def setup_method(self):
        self.scorer = SuspicionScorer()

    def test_three_in_window_triggers(self):
        stamps = [NOW - timedelta(minutes=m) for m in (1, 2, 3)]
        signal = self.scorer.score_burst(stamps, NOW)
        assert signal.triggered is True
        assert signal.partial == 1.0

    def test_old_submissions_ignored(self):
        stamps = [NOW - timedelta(minutes=1), NOW - timedelta(minutes=2), NOW - timedelta(minutes=20)]
        signal = self.scorer.score_burst(stamps, NOW)
        assert signal.triggered is False
        assert signal.partial == pytest.approx(2 / 3)

    def test_naive_timestamps_treated_as_utc(self):
        stamps = [(NOW - timedelta(minutes=m)).replace(tzinfo=None) for m in (1, 2, 3)]
        assert self.scorer.score_burst(stamps, NOW).triggered is True


class TestGenericLanguage:

    def setup_method(self):
        self.scorer = SuspicionScorer()

    def test_stock_phrases_trigger(self):
        signal = self.scorer.score_generic_language("Great event, highly recommend, loved it!")
        assert signal.triggered is True
        assert signal.partial == 1.0

    def test_template_opener_alone(self):
        signal = self.scorer.score_generic_language(
            "Amazing experience with the band playing until late and a lovely crowd around us all evening"
        )
        assert signal.partial == pytest.approx(0.75)
        assert signal.triggered is True

    def test_specific_text_passes(self):
        assert self.scorer.score_generic_language(DETAILED_TEXT).partial == 0.0


class TestNewAccount:

    def setup_method(self):
        self.scorer = SuspicionScorer()

    def test_new_account_alone_does_not_trigger(self):
        signal = self.scorer.score_new_account(60, others_triggered=False)
        assert signal.triggered is False
        assert signal.partial == 0.0

    def test_new_account_with_other_signal(self):
        assert self.scorer.score_new_account(60, others_triggered=True).triggered is True

    def test_old_account(self):
        assert self.scorer.score_new_account(7200, others_triggered=True).triggered is False

    def test_unknown_age_is_skipped(self):
        assert self.scorer.score_new_account(None, others_triggered=True).triggered is False


# ============================================================================
# DEGRADED MODE
# ============================================================================

class TestDegradedScoring:
    """Author history unavailable."""

    def setup_method(self):
        self.scorer = SuspicionScorer()

    def test_history_signals_are_skipped(self):
        result = self.scorer.score(make_submission(), None, STABLE_DISTRIBUTION, now=NOW)
        assert result.degraded is True
        assert set(result.signal_scores) == {
            FlagCode.LOW_EFFORT_EXTREME_RATING.value,
            FlagCode.RATING_OUTLIER.value,
        }

    def test_history_free_signals_still_count(self):
        result = self.scorer.score(
            make_submission(rating=5, content="Great!"), None, None, now=NOW,
        )
        assert result.flags == (FlagCode.LOW_EFFORT_EXTREME_RATING.value,)
        assert result.suspicion_score == pytest.approx(0.2)
        assert result.is_suspicious is False

    def test_generic_language_is_skipped(self):
        result = self.scorer.score(
            make_submission(rating=5, content="Great event, highly recommend, loved it"),
            None, None, now=NOW,
        )
        assert result.flags == (FlagCode.LOW_EFFORT_EXTREME_RATING.value,)
        assert FlagCode.GENERIC_LANGUAGE.value not in result.signal_scores
        assert result.suspicion_score == pytest.approx(0.2)
        assert result.is_suspicious is False


# ============================================================================
# CONFIG + HELPERS
# ============================================================================

class TestScoringConfig:

    def test_default_config_is_valid(self):
        assert DEFAULT_CONFIG.validate() is True

    def test_negative_weight_rejected(self):
        config = ScoringConfig(weights=SignalWeights(burst_submission=-0.1))
        with pytest.raises(AssertionError):
            SuspicionScorer(config)

    def test_custom_threshold(self):
        scorer = SuspicionScorer(ScoringConfig(suspicion_threshold=0.4))
        history = make_history(prior_texts=[DETAILED_TEXT])
        result = scorer.score(make_submission(), history, STABLE_DISTRIBUTION, now=NOW)
        assert result.is_suspicious is True


class TestTextHelpers:

    def test_tokenize(self):
        assert tokenize("Didn't LOVE it, 10/10!") == ["didn't", "love", "it", "10", "10"]

    def test_normalize_text(self):
        assert normalize_text("  Great   show!!  ") == "great show"

    def test_similarity_bounds(self):
        assert text_similarity("abc", "abc") == 1.0
        assert text_similarity("", "abc") == 0.0
