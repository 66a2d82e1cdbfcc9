"""Schemas for documents written to and read from the persistence gateway.

Every model ignores unknown keys and defaults missing ones so that snapshots
written by older versions keep loading.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .pattern import utc_now_iso

_LEGACY_PHASES = {
    "rule-based": "RULE_BASED",
    "rule_based": "RULE_BASED",
    "pattern-learning": "PATTERN_LEARNING",
    "pattern_learning": "PATTERN_LEARNING",
    "hybrid": "HYBRID",
    "neural-primary": "NEURAL_PRIMARY",
    "neural_primary": "NEURAL_PRIMARY",
    "autonomous": "NEURAL_PRIMARY",
}


class SnapshotModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class ProgramItemSnapshot(SnapshotModel):
    title: str = ""
    type: str = ""
    performer: str = ""
    notes: str = ""
    index: int = 0

    @field_validator("title", "type", "performer", "notes", mode="before")
    @classmethod
    def _none_to_blank(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("index", mode="before")
    @classmethod
    def _coerce_index(cls, value: Any) -> Any:
        return value or 0


class PatternContextSnapshot(SnapshotModel):
    is_third_sunday: bool = False
    timestamp: str = Field(default_factory=utc_now_iso)
    position: int = 0


class TrainingExampleSnapshot(SnapshotModel):
    id: str
    program_item: ProgramItemSnapshot = Field(default_factory=ProgramItemSnapshot)
    user_values: dict[str, str] = Field(default_factory=dict)
    context: PatternContextSnapshot = Field(default_factory=PatternContextSnapshot)

    @field_validator("user_values", mode="before")
    @classmethod
    def _stringify_values(cls, value: Any) -> Any:
        if not isinstance(value, dict):
            return {}
        return {str(k): "" if v is None else str(v) for k, v in value.items()}


class PatternStoreSnapshot(SnapshotModel):
    examples: list[TrainingExampleSnapshot] = Field(default_factory=list)
    last_updated: str | None = None


class FieldStatisticsSnapshot(SnapshotModel):
    total_predictions: int = 0
    correct_predictions: int = 0
    accuracy: float = 0.0
    common_values: dict[str, int] = Field(default_factory=dict)
    pattern_strength: dict[str, float] = Field(default_factory=dict)


class AccuracyHistorySnapshot(SnapshotModel):
    field: str
    predicted: str = ""
    actual: str = ""
    confidence: float = 0.0
    correct: bool = False
    timestamp: datetime = Field(default_factory=datetime.now)


class StatisticsSnapshot(SnapshotModel):
    field_statistics: dict[str, FieldStatisticsSnapshot] = Field(default_factory=dict)
    accuracy_history: list[AccuracyHistorySnapshot] = Field(default_factory=list)
    last_updated: str | None = None


class EncoderSnapshot(SnapshotModel):
    word_to_index: dict[str, int] = Field(default_factory=dict)
    max_features: int = 100
    is_built: bool = False


class NetworkSnapshot(SnapshotModel):
    input_size: int
    hidden_size: int
    output_size: int
    weights_input_hidden: list[list[float]]
    weights_hidden_output: list[list[float]]
    hidden_bias: list[float]
    output_bias: list[float]
    learning_rate: float = 0.01
    feature_encoder: EncoderSnapshot = Field(default_factory=EncoderSnapshot)


class SessionStatsSnapshot(SnapshotModel):
    total_predictions: int = 0
    correct_predictions: int = 0
    user_corrections: int = 0
    average_confidence: float = 0.0


class SystemStateSnapshot(SnapshotModel):
    current_phase: str = "RULE_BASED"
    session_stats: SessionStatsSnapshot = Field(default_factory=SessionStatsSnapshot)
    last_updated: str | None = None

    @field_validator("current_phase", mode="before")
    @classmethod
    def _coerce_phase(cls, value: Any) -> str:
        """Map legacy or unknown phase labels onto the current enum names."""
        if not isinstance(value, str):
            return "RULE_BASED"
        if value in _LEGACY_PHASES.values():
            return value
        return _LEGACY_PHASES.get(value.lower(), "RULE_BASED")
