import logging
from functools import partial
from typing import cast

from langgraph.graph import END, StateGraph
from langgraph.graph.state import CompiledStateGraph

from ..learning.coordinator import LearningCoordinator
from ..processing.rule_engine import RuleEngine
from .nodes.item_parser import parse_item
from .nodes.merger import merge_values
from .nodes.predictor import predict_fields
from .nodes.rule_applier import apply_rules
from .state import ItemState

logger = logging.getLogger(__name__)


def get_compiled_workflow(
    rule_engine: RuleEngine | None = None,
    coordinator: LearningCoordinator | None = None,
) -> CompiledStateGraph:
    """Build the per-item workflow.

    Args:
        rule_engine: Rule table to apply, a fresh RuleEngine when omitted
        coordinator: Learning coordinator; prediction is skipped without one

    Returns:
        Compiled LangGraph workflow

    """
    rule_engine = rule_engine or RuleEngine()

    workflow = StateGraph(ItemState)

    workflow.add_node("parse_item", parse_item)
    workflow.add_node("apply_rules", partial(apply_rules, rule_engine=rule_engine))
    workflow.add_node("merge", merge_values)
    if coordinator is not None:
        workflow.add_node("predict", partial(predict_fields, coordinator=coordinator))

    def route_after_parse(state: ItemState) -> str:
        if state.get("error"):
            logger.debug(f"Stopping at line {state.get('index')}: {state.get('error')}")
            return "end"
        return "apply_rules"

    def route_after_rules(state: ItemState) -> str:
        return "predict" if coordinator is not None else "merge"

    workflow.add_conditional_edges(
        "parse_item",
        route_after_parse,
        {"apply_rules": "apply_rules", "end": END},
    )

    if coordinator is not None:
        workflow.add_conditional_edges(
            "apply_rules",
            route_after_rules,
            {"predict": "predict", "merge": "merge"},
        )
        workflow.add_edge("predict", "merge")
    else:
        workflow.add_edge("apply_rules", "merge")

    workflow.set_entry_point("parse_item")
    workflow.set_finish_point("merge")

    return workflow.compile()


def create_initial_state(line: str, index: int = 0, is_third_sunday: bool = False) -> ItemState:
    """Create initial state for one running-order line.

    Args:
        line: Raw running-order line
        index: Position of the line in the program
        is_third_sunday: Whether the service is a third-Sunday service

    Returns:
        Initial item state

    """
    return {
        "line": line,
        "index": index,
        "is_third_sunday": is_third_sunday,
        "item": None,
        "rule_values": None,
        "matched_rule": None,
        "suggestions": None,
        "predictions": None,
        "phase": None,
        "example_count": None,
        "final_values": None,
        "ai_fields": None,
        "is_unmatched": None,
        "error": None,
    }


def process_item(
    app: CompiledStateGraph,
    line: str,
    index: int = 0,
    is_third_sunday: bool = False,
) -> ItemState:
    """Run one line through a compiled workflow.

    Args:
        app: Workflow from get_compiled_workflow
        line: Raw running-order line
        index: Position of the line in the program
        is_third_sunday: Whether the service is a third-Sunday service

    Returns:
        Item state after processing

    """
    result = app.invoke(create_initial_state(line, index, is_third_sunday))
    return cast(ItemState, result)
