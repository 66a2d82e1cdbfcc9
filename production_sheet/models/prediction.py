"""Prediction models returned by the learning coordinator."""

from dataclasses import dataclass
from enum import Enum
from typing import Any


class PredictionSource(str, Enum):
    """Where a field prediction came from."""

    RULE_BASED = "rule-based"
    RULE_BASED_FALLBACK = "rule-based-fallback"
    PATTERN_MATCHING = "pattern-matching"
    HYBRID = "hybrid"
    NEURAL_PRIMARY = "neural-primary"
    ERROR = "error"


@dataclass
class FieldPrediction:
    """Predicted value for one tech field."""

    value: str
    confidence: float
    source: PredictionSource
    explanation: str = ""

    # Confidence breakdown
    pattern_confidence: float | None = None
    neural_confidence: float | None = None
    pattern_count: int = 0

    def __post_init__(self) -> None:
        self.confidence = max(0.0, min(1.0, float(self.confidence)))

    @property
    def is_error(self) -> bool:
        return self.source == PredictionSource.ERROR

    def to_dict(self) -> dict[str, Any]:
        return {
            "value": self.value,
            "confidence": self.confidence,
            "source": self.source.value,
            "explanation": self.explanation,
            "pattern_confidence": self.pattern_confidence,
            "neural_confidence": self.neural_confidence,
            "pattern_count": self.pattern_count,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FieldPrediction":
        try:
            source = PredictionSource(data.get("source", PredictionSource.RULE_BASED.value))
        except ValueError:
            source = PredictionSource.RULE_BASED
        return cls(
            value=str(data.get("value") or ""),
            confidence=float(data.get("confidence") or 0.0),
            source=source,
            explanation=str(data.get("explanation") or ""),
            pattern_confidence=data.get("pattern_confidence"),
            neural_confidence=data.get("neural_confidence"),
            pattern_count=int(data.get("pattern_count") or 0),
        )


@dataclass(frozen=True)
class PredictionContext:
    """Service-level context supplied with each prediction or correction."""

    is_third_sunday: bool = False
    position: int = 0
