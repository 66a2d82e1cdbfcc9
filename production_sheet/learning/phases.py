"""Learning phases and the transition table between them."""

import math
from dataclasses import dataclass
from enum import Enum

from ..config import PHASE_ACCURACY_GATES, PHASE_DESCRIPTIONS, PHASE_THRESHOLDS, PHASE_WEIGHTS
from ..models.statistics import SystemPerformance


class LearningPhase(str, Enum):
    """How much the predictor relies on learned models, in escalating order."""

    RULE_BASED = "RULE_BASED"
    PATTERN_LEARNING = "PATTERN_LEARNING"
    HYBRID = "HYBRID"
    NEURAL_PRIMARY = "NEURAL_PRIMARY"

    @property
    def rank(self) -> int:
        return _ORDER.index(self)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, LearningPhase):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, LearningPhase):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, LearningPhase):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, LearningPhase):
            return NotImplemented
        return self.rank >= other.rank


_ORDER: list[LearningPhase] = list(LearningPhase)


@dataclass(frozen=True)
class PhaseSpec:
    """Entry requirements and blend weights of one phase."""

    phase: LearningPhase
    min_examples: int
    max_examples: float
    ai_weight: float
    rules_weight: float
    min_accuracy: float | None
    description: str


def _build_phase_table() -> list[PhaseSpec]:
    starts = [0] + [PHASE_THRESHOLDS[phase.value] for phase in _ORDER[1:]]
    ends = starts[1:] + [math.inf]

    table = []
    for phase, start, end in zip(_ORDER, starts, ends):
        ai_weight, rules_weight = PHASE_WEIGHTS[phase.value]
        table.append(
            PhaseSpec(
                phase=phase,
                min_examples=start,
                max_examples=end,
                ai_weight=ai_weight,
                rules_weight=rules_weight,
                min_accuracy=PHASE_ACCURACY_GATES.get(phase.value),
                description=PHASE_DESCRIPTIONS[phase.value],
            )
        )
    return table


def validate_phase_table(table: list[PhaseSpec]) -> None:
    """Check the ranges are sorted, contiguous and start at zero.

    Raises:
        ValueError: If the table is malformed

    """
    if not table or table[0].min_examples != 0:
        raise ValueError("Phase table must start at zero examples")
    for previous, current in zip(table, table[1:]):
        if current.phase.rank != previous.phase.rank + 1:
            raise ValueError(f"Phase {current.phase.value} is out of order")
        if previous.max_examples != current.min_examples:
            raise ValueError(
                f"Phase ranges {previous.phase.value} and {current.phase.value} are not contiguous"
            )
        if current.min_examples <= previous.min_examples:
            raise ValueError(f"Phase {current.phase.value} does not start after {previous.phase.value}")
    if table[-1].max_examples != math.inf:
        raise ValueError("Last phase must be open-ended")


PHASE_TABLE: list[PhaseSpec] = _build_phase_table()
validate_phase_table(PHASE_TABLE)


def get_phase_spec(phase: LearningPhase) -> PhaseSpec:
    return PHASE_TABLE[phase.rank]


def next_phase(current: LearningPhase, performance: SystemPerformance) -> LearningPhase:
    """Evaluate one transition from the current phase.

    Advances at most one step and never moves backwards.

    Args:
        current: Phase the coordinator is in
        performance: Current system performance

    Returns:
        The next phase if its requirements are met, otherwise the current phase

    """
    if current.rank + 1 >= len(PHASE_TABLE):
        return current

    candidate = PHASE_TABLE[current.rank + 1]
    if performance.total_predictions < candidate.min_examples:
        return current
    if candidate.min_accuracy is not None and not performance.overall_accuracy > candidate.min_accuracy:
        return current
    return candidate.phase


def phase_progress(current: LearningPhase, total_predictions: int) -> dict[str, float | int]:
    """Progress toward the next phase's example threshold."""
    if current.rank + 1 >= len(PHASE_TABLE):
        return {"current": total_predictions, "required": total_predictions, "percentage": 100.0}

    required = PHASE_TABLE[current.rank + 1].min_examples
    return {
        "current": total_predictions,
        "required": required,
        "percentage": min(100.0, total_predictions / required * 100),
    }


def next_phase_requirements(current: LearningPhase) -> dict[str, object]:
    if current.rank + 1 >= len(PHASE_TABLE):
        return {
            "next_phase": None,
            "description": "Learning system is fully trained and keeps learning from corrections",
        }

    candidate = PHASE_TABLE[current.rank + 1]
    return {
        "next_phase": candidate.phase.value,
        "predictions": candidate.min_examples,
        "accuracy": candidate.min_accuracy,
        "description": candidate.description,
    }
