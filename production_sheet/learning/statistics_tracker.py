"""Per-field accuracy tracking and confidence scoring."""

import logging
from collections import deque
from datetime import datetime
from typing import Any

from ..config import MIN_CONFIDENCE, STATISTICS_CONFIG, TECH_FIELDS
from ..models.snapshots import StatisticsSnapshot
from ..models.statistics import AccuracyHistoryEntry, FieldStatistics, SystemPerformance
from .similarity import PatternMatch

logger = logging.getLogger(__name__)

TREND_THRESHOLD = 0.05
DEFAULT_MATCH_WEIGHT = 0.5
UNTRACKED_ACCURACY = 0.5


class StatisticsTracker:
    """Maintains accuracy, value frequencies and history for every tech field."""

    def __init__(self, min_confidence: float = MIN_CONFIDENCE) -> None:
        self.min_confidence = min_confidence
        self.field_statistics: dict[str, FieldStatistics] = {
            name: FieldStatistics() for name in TECH_FIELDS
        }
        self.accuracy_history: deque[AccuracyHistoryEntry] = deque(
            maxlen=STATISTICS_CONFIG["history_limit"]
        )

    def update_prediction_stats(
        self, field: str, predicted: str, actual: str, confidence: float
    ) -> None:
        """Record the outcome of one field prediction.

        Args:
            field: Tech field name
            predicted: Value the system predicted
            actual: Value the user confirmed
            confidence: Confidence attached to the prediction

        """
        stats = self.field_statistics.get(field)
        if stats is None:
            logger.warning(f"Ignoring statistics for unknown field '{field}'")
            return

        predicted = predicted or ""
        actual = actual or ""
        was_correct = predicted == actual

        stats.total_predictions += 1
        if was_correct:
            stats.correct_predictions += 1
        stats.accuracy = stats.correct_predictions / stats.total_predictions

        # Blank values never become frequency keys
        if actual.strip():
            stats.common_values[actual] = stats.common_values.get(actual, 0) + 1

        if predicted.strip():
            strength = stats.pattern_strength.get(predicted, 0.0) * 0.9
            stats.pattern_strength[predicted] = strength + (0.1 if was_correct else 0.0)

        self.accuracy_history.append(
            AccuracyHistoryEntry(
                field=field,
                predicted=predicted,
                actual=actual,
                confidence=float(confidence or 0.0),
                correct=was_correct,
            )
        )

        logger.debug(
            f"{field}: {'CORRECT' if was_correct else 'INCORRECT'} prediction, "
            f"accuracy now {stats.accuracy:.1%}"
        )

    def field_accuracy(self, field: str) -> float:
        """Historical accuracy of a field, 0.5 until the field has any history."""
        stats = self.field_statistics.get(field)
        if stats is None or stats.total_predictions == 0:
            return UNTRACKED_ACCURACY
        return stats.accuracy

    def calculate_frequency_boost(self, value: str, field: str) -> float:
        stats = self.field_statistics.get(field)
        if stats is None or not value or stats.total_predictions == 0:
            return 0.0
        frequency = stats.common_values.get(value, 0)
        return min(0.2, frequency / stats.total_predictions * 0.4)

    def calculate_confidence(
        self,
        prediction: dict[str, str],
        matching_patterns: list[PatternMatch],
        field: str,
    ) -> float:
        """Score how reliable a pattern-derived prediction is.

        Args:
            prediction: Map of field to predicted value
            matching_patterns: Matches that produced the prediction
            field: Tech field being scored

        Returns:
            Confidence in [0, 1], exactly 0 when there are no matches

        """
        if not matching_patterns:
            return 0.0

        weighted_sum = 0.0
        total_weight = 0.0
        for match in matching_patterns:
            weight = match.similarity.confidence or DEFAULT_MATCH_WEIGHT
            weighted_sum += match.similarity.score * weight
            total_weight += weight
        confidence = weighted_sum / total_weight if total_weight > 0 else 0.0

        confidence = min(1.0, confidence + self.calculate_frequency_boost(prediction.get(field, ""), field))
        confidence *= 0.7 + 0.3 * self.field_accuracy(field)

        if confidence < self.min_confidence:
            confidence = 0.0

        return max(0.0, min(1.0, confidence))

    def total_items(self) -> int:
        # Each learned item updates every field once
        return max((s.total_predictions for s in self.field_statistics.values()), default=0)

    def get_system_performance(self) -> SystemPerformance:
        """Aggregate accuracy across fields.

        Returns:
            SystemPerformance with cumulative and recent accuracy and trend

        """
        total_evaluated = sum(s.total_predictions for s in self.field_statistics.values())
        total_correct = sum(s.correct_predictions for s in self.field_statistics.values())
        overall = total_correct / total_evaluated if total_evaluated else 0.0

        recent = list(self.accuracy_history)[-STATISTICS_CONFIG["recent_window"]:]
        recent_accuracy = sum(1 for e in recent if e.correct) / len(recent) if recent else 0.0

        return SystemPerformance(
            overall_accuracy=overall,
            total_predictions=self.total_items(),
            recent_accuracy=recent_accuracy,
            field_accuracies={name: s.accuracy for name, s in self.field_statistics.items()},
            trend=self.calculate_accuracy_trend(),
        )

    def calculate_accuracy_trend(self) -> str:
        window = STATISTICS_CONFIG["trend_window"]
        if len(self.accuracy_history) < window * 2:
            return "insufficient_data"

        history = list(self.accuracy_history)
        recent = history[-window:]
        older = history[-2 * window:-window]

        recent_rate = sum(1 for e in recent if e.correct) / len(recent)
        older_rate = sum(1 for e in older if e.correct) / len(older)
        difference = recent_rate - older_rate

        if difference > TREND_THRESHOLD:
            return "improving"
        if difference < -TREND_THRESHOLD:
            return "declining"
        return "stable"

    def get_recommended_threshold(self, field: str) -> float:
        stats = self.field_statistics.get(field)
        if stats is None or stats.total_predictions < 10:
            return self.min_confidence
        if stats.accuracy > 0.8:
            return max(0.3, self.min_confidence - 0.1)
        if stats.accuracy < 0.5:
            return min(0.8, self.min_confidence + 0.2)
        return self.min_confidence

    def get_top_values(self, field: str, limit: int = 5) -> list[dict[str, Any]]:
        """Most frequently confirmed values for a field."""
        stats = self.field_statistics.get(field)
        if stats is None or not stats.common_values:
            return []

        ranked = sorted(stats.common_values.items(), key=lambda kv: kv[1], reverse=True)[:limit]
        return [
            {
                "value": value,
                "count": count,
                "percentage": count / stats.total_predictions * 100 if stats.total_predictions else 0.0,
            }
            for value, count in ranked
        ]

    def generate_detailed_report(self) -> dict[str, Any]:
        performance = self.get_system_performance()
        return {
            "system_overview": {
                "total_predictions": performance.total_predictions,
                "overall_accuracy": performance.overall_accuracy,
                "recent_accuracy": performance.recent_accuracy,
                "trend": performance.trend,
            },
            "field_breakdown": [
                {
                    "field": name,
                    "accuracy": stats.accuracy,
                    "total_predictions": stats.total_predictions,
                    "recommended_threshold": self.get_recommended_threshold(name),
                    "top_values": self.get_top_values(name, 3),
                }
                for name, stats in self.field_statistics.items()
            ],
            "recent_performance": [
                {
                    "field": e.field,
                    "predicted": e.predicted,
                    "actual": e.actual,
                    "correct": e.correct,
                    "confidence": round(e.confidence, 2),
                }
                for e in list(self.accuracy_history)[-10:]
            ],
        }

    def reset_statistics(self) -> None:
        self.accuracy_history.clear()
        self.field_statistics = {name: FieldStatistics() for name in TECH_FIELDS}
        logger.info("Statistics reset")

    def to_snapshot(self) -> dict[str, Any]:
        """Serialize for persistence, keeping only recent history."""
        history = list(self.accuracy_history)[-STATISTICS_CONFIG["persisted_history_limit"]:]
        return {
            "field_statistics": {name: s.to_dict() for name, s in self.field_statistics.items()},
            "accuracy_history": [
                {
                    "field": e.field,
                    "predicted": e.predicted,
                    "actual": e.actual,
                    "confidence": e.confidence,
                    "correct": e.correct,
                    "timestamp": e.timestamp.isoformat(),
                }
                for e in history
            ],
            "last_updated": datetime.now().isoformat(),
        }

    def load_snapshot(self, data: dict[str, Any]) -> None:
        """Restore state from a persisted snapshot; unknown fields are dropped."""
        snapshot = StatisticsSnapshot.model_validate(data)

        for name in TECH_FIELDS:
            stored = snapshot.field_statistics.get(name)
            if stored is None:
                continue
            self.field_statistics[name] = FieldStatistics(
                total_predictions=stored.total_predictions,
                correct_predictions=stored.correct_predictions,
                accuracy=stored.accuracy,
                common_values={k: v for k, v in stored.common_values.items() if k.strip()},
                pattern_strength={k: v for k, v in stored.pattern_strength.items() if k.strip()},
            )

        self.accuracy_history.clear()
        for entry in snapshot.accuracy_history:
            self.accuracy_history.append(
                AccuracyHistoryEntry(
                    field=entry.field,
                    predicted=entry.predicted,
                    actual=entry.actual,
                    confidence=entry.confidence,
                    correct=entry.correct,
                    timestamp=entry.timestamp,
                )
            )
        logger.info(
            f"Statistics loaded: {self.total_items()} items, {len(self.accuracy_history)} history entries"
        )
