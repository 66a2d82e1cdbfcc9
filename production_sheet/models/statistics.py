"""Accuracy and frequency statistics models."""

from dataclasses import dataclass
from dataclasses import field as dataclass_field
from datetime import datetime
from typing import Any


@dataclass
class FieldStatistics:
    """Running accuracy and value frequencies for one tech field."""

    total_predictions: int = 0
    correct_predictions: int = 0
    accuracy: float = 0.0
    common_values: dict[str, int] = dataclass_field(default_factory=dict)
    pattern_strength: dict[str, float] = dataclass_field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_predictions": self.total_predictions,
            "correct_predictions": self.correct_predictions,
            "accuracy": self.accuracy,
            "common_values": {k: v for k, v in self.common_values.items() if k.strip()},
            "pattern_strength": {k: v for k, v in self.pattern_strength.items() if k.strip()},
        }


@dataclass
class AccuracyHistoryEntry:
    """One evaluated prediction."""

    field: str
    predicted: str
    actual: str
    confidence: float
    correct: bool
    timestamp: datetime = dataclass_field(default_factory=datetime.now)


@dataclass
class SystemPerformance:
    """Aggregate performance across every tech field."""

    overall_accuracy: float
    total_predictions: int
    recent_accuracy: float
    field_accuracies: dict[str, float]
    trend: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "overall_accuracy": self.overall_accuracy,
            "total_predictions": self.total_predictions,
            "recent_accuracy": self.recent_accuracy,
            "field_accuracies": dict(self.field_accuracies),
            "trend": self.trend,
        }
