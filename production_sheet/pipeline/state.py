from typing import Any, TypedDict

from ..models.prediction import FieldPrediction
from ..models.program import ProgramItem


class ItemState(TypedDict):
    """State that flows through the per-item LangGraph workflow."""

    # Input fields
    line: str
    index: int
    is_third_sunday: bool

    # Parsed item
    item: ProgramItem | None

    # Baseline rules
    rule_values: dict[str, str] | None
    matched_rule: str | None
    suggestions: list[dict[str, Any]] | None

    # Learned predictions
    predictions: dict[str, FieldPrediction] | None
    phase: str | None
    example_count: int | None

    # Merged result
    final_values: dict[str, str] | None
    ai_fields: list[str] | None
    is_unmatched: bool | None

    # Workflow control
    error: str | None
