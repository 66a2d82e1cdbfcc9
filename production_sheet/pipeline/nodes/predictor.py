"""Node that asks the learning coordinator for field predictions."""

import logging

from ...learning.coordinator import LearningCoordinator
from ...models.prediction import PredictionContext
from ...utils.error_handling import check_state_for_errors
from ..state import ItemState

logger = logging.getLogger(__name__)


def predict_fields(state: ItemState, coordinator: LearningCoordinator) -> dict:
    """Attach learned predictions; a failure leaves the rule values in place."""
    if check_state_for_errors(state):
        return {}

    item = state["item"]
    context = PredictionContext(
        is_third_sunday=state.get("is_third_sunday", False),
        position=item.index,
    )

    try:
        predictions = coordinator.predict(item, context)
    except Exception as e:
        logger.error(f"Prediction failed for '{item.title}', keeping rule values: {e}")
        return {"predictions": None, "phase": None, "example_count": 0}

    return {
        "predictions": predictions,
        "phase": coordinator.current_phase.value,
        "example_count": coordinator.example_count,
    }
