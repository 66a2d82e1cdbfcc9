"""Node that merges rule values with trusted learned predictions."""

import logging

from ...config import TECH_FIELDS, should_use_ai
from ...constants import UNMATCHED_NOTE
from ...models.prediction import PredictionSource
from ...utils.error_handling import check_state_for_errors
from ..state import ItemState

logger = logging.getLogger(__name__)

# Rule-based predictions only restate the rule table
LEARNED_SOURCES = frozenset(
    {PredictionSource.PATTERN_MATCHING, PredictionSource.HYBRID, PredictionSource.NEURAL_PRIMARY}
)


def merge_values(state: ItemState) -> dict:
    """Start from the rule values and replace fields the learner is sure about.

    Args:
        state: The item state after rules and predictions

    Returns:
        Updated state dict with final values

    """
    if check_state_for_errors(state):
        return {}

    rule_values = state.get("rule_values") or {}
    final_values = {name: rule_values.get(name, "") for name in TECH_FIELDS}
    example_count = state.get("example_count") or 0

    ai_fields = []
    for name, prediction in (state.get("predictions") or {}).items():
        if name not in final_values or prediction.source not in LEARNED_SOURCES:
            continue
        if not prediction.value or not should_use_ai(name, prediction.confidence, example_count):
            continue
        final_values[name] = prediction.value
        ai_fields.append(name)

    is_unmatched = state.get("matched_rule") is None and not ai_fields
    if ai_fields and "notes" not in ai_fields and final_values["notes"] == UNMATCHED_NOTE:
        final_values["notes"] = ""

    if ai_fields:
        logger.info(f"Learned values used for {', '.join(ai_fields)} on '{state['item'].title}'")

    return {
        "final_values": final_values,
        "ai_fields": ai_fields,
        "is_unmatched": is_unmatched,
    }
