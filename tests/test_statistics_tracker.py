"""Tests for the StatisticsTracker class."""

import pytest

from production_sheet.learning.similarity import PatternMatch, SimilarityResult
from production_sheet.models.pattern import PatternContext, TrainingExample
from production_sheet.models.program import ProgramItem
from production_sheet.learning.statistics_tracker import StatisticsTracker


@pytest.fixture
def tracker():
    """Create a fresh StatisticsTracker for each test."""
    return StatisticsTracker()


def make_match(score, confidence=0.8):
    example = TrainingExample(
        id="ex",
        program_item=ProgramItem(title="SASB 1 Piano Solo"),
        user_values={"camera": "2"},
        context=PatternContext(),
    )
    return PatternMatch(
        example=example,
        similarity=SimilarityResult(score=score, breakdown={}, confidence=confidence),
        weight=score,
    )


def record(tracker, outcomes, field="camera"):
    for correct in outcomes:
        tracker.update_prediction_stats(field, "2", "2" if correct else "3", 0.5)


class TestUpdatePredictionStats:
    """Test suite for recording prediction outcomes."""

    def test_counts_increment_exactly(self, tracker):
        """Test that one correct and one incorrect prediction update the counters."""
        tracker.update_prediction_stats("camera", "2", "2", 0.9)
        tracker.update_prediction_stats("camera", "2", "3", 0.9)

        stats = tracker.field_statistics["camera"]
        assert stats.total_predictions == 2
        assert stats.correct_predictions == 1
        assert stats.accuracy == 0.5
        assert stats.common_values == {"2": 1, "3": 1}
        assert len(tracker.accuracy_history) == 2

    def test_blank_actual_not_counted_as_value(self, tracker):
        """Test that a blank confirmed value never becomes a frequency key."""
        tracker.update_prediction_stats("camera", "", "", 0.0)
        tracker.update_prediction_stats("camera", "", "   ", 0.0)

        stats = tracker.field_statistics["camera"]
        assert stats.total_predictions == 2
        assert stats.common_values == {}

    def test_unknown_field_ignored(self, tracker):
        tracker.update_prediction_stats("lighting", "on", "on", 1.0)
        assert "lighting" not in tracker.field_statistics
        assert len(tracker.accuracy_history) == 0

    def test_pattern_strength(self, tracker):
        """Test the moving strength of a predicted value."""
        tracker.update_prediction_stats("mic", "Amb", "Amb", 0.5)
        tracker.update_prediction_stats("mic", "Amb", "Lectern", 0.5)
        assert tracker.field_statistics["mic"].pattern_strength["Amb"] == pytest.approx(0.09)

    def test_total_items_is_per_item(self, tracker):
        """Test that updating every field for one item counts as one item."""
        for name in ("camera", "scene", "mic", "notes", "stream"):
            tracker.update_prediction_stats(name, "", "x", 0.0)
        assert tracker.total_items() == 1
        assert tracker.get_system_performance().total_predictions == 1


class TestCalculateConfidence:
    """Test suite for calculate_confidence."""

    def test_no_matches_is_zero(self, tracker):
        assert tracker.calculate_confidence({"camera": "2"}, [], "camera") == 0.0

    def test_untracked_field(self, tracker):
        """Test confidence for strong matches on a field without history."""
        confidence = tracker.calculate_confidence({"camera": "2"}, [make_match(1.0)], "camera")
        assert confidence == pytest.approx(1.0 * (0.7 + 0.3 * 0.5))

    def test_below_minimum_is_zero(self, tracker):
        """Test that weak confidence is zeroed."""
        assert tracker.calculate_confidence({"camera": "2"}, [make_match(0.3)], "camera") == 0.0

    def test_frequency_boost(self, tracker):
        """Test that a commonly confirmed value raises confidence."""
        record(tracker, [True] * 4)
        confidence = tracker.calculate_confidence({"camera": "2"}, [make_match(0.7)], "camera")
        assert confidence == pytest.approx(min(1.0, 0.7 + 0.2) * 1.0)

    def test_confidence_bounded(self, tracker):
        record(tracker, [True] * 10)
        matches = [make_match(1.0), make_match(0.95, confidence=0.0)]
        assert 0.0 <= tracker.calculate_confidence({"camera": "2"}, matches, "camera") <= 1.0


class TestAccuracyTrend:
    """Test suite for calculate_accuracy_trend."""

    def test_insufficient_data(self, tracker):
        record(tracker, [True] * 39)
        assert tracker.calculate_accuracy_trend() == "insufficient_data"

    def test_improving(self, tracker):
        record(tracker, [False] * 20 + [True] * 20)
        assert tracker.calculate_accuracy_trend() == "improving"

    def test_declining(self, tracker):
        record(tracker, [True] * 20 + [False] * 20)
        assert tracker.calculate_accuracy_trend() == "declining"

    def test_stable(self, tracker):
        record(tracker, [True, False] * 20)
        assert tracker.calculate_accuracy_trend() == "stable"


class TestPerformanceAndPersistence:
    """Test suite for reporting and snapshots."""

    def test_system_performance(self, tracker):
        record(tracker, [True, True, False, True])
        performance = tracker.get_system_performance()

        assert performance.overall_accuracy == 0.75
        assert performance.recent_accuracy == 0.75
        assert performance.field_accuracies["camera"] == 0.75
        assert performance.trend == "insufficient_data"

    def test_snapshot_round_trip(self, tracker):
        """Test that a snapshot restores counters and history."""
        record(tracker, [True, False, True])
        tracker.update_prediction_stats("scene", "1", "", 0.4)

        restored = StatisticsTracker()
        restored.load_snapshot(tracker.to_snapshot())

        assert restored.field_statistics["camera"].total_predictions == 3
        assert restored.field_statistics["camera"].common_values == {"2": 2, "3": 1}
        assert restored.field_statistics["scene"].common_values == {}
        assert len(restored.accuracy_history) == 4

    def test_load_drops_blank_keys_and_unknown_fields(self, tracker):
        """Test loading a legacy snapshot with blank frequency keys."""
        tracker.load_snapshot(
            {
                "field_statistics": {
                    "camera": {"total_predictions": 2, "common_values": {"": 1, "2": 1}},
                    "lighting": {"total_predictions": 9},
                },
                "unexpected": True,
            }
        )
        assert tracker.field_statistics["camera"].common_values == {"2": 1}
        assert "lighting" not in tracker.field_statistics

    def test_top_values_and_reset(self, tracker):
        record(tracker, [True, True, False])
        top = tracker.get_top_values("camera")
        assert top[0]["value"] == "2"
        assert top[0]["count"] == 2

        tracker.reset_statistics()
        assert tracker.total_items() == 0
        assert tracker.get_top_values("camera") == []
