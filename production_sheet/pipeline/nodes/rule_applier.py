"""Node that applies the baseline rule table."""

import logging

from ...processing.rule_engine import RuleEngine
from ...utils.error_handling import check_state_for_errors
from ..state import ItemState

logger = logging.getLogger(__name__)


def apply_rules(state: ItemState, rule_engine: RuleEngine) -> dict:
    """Look up rule values for the parsed item."""
    if check_state_for_errors(state):
        return {}

    item = state["item"]
    result = rule_engine.apply_rules(item.title, state.get("is_third_sunday", False))

    suggestions = [] if result.matched else rule_engine.get_suggestions(item.title)
    if not result.matched:
        logger.info(f"No rule for '{item.title}', {len(suggestions)} suggestions")

    return {
        "rule_values": result.values,
        "matched_rule": result.rule,
        "suggestions": suggestions,
    }
