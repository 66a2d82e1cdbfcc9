"""Standardized error handling utilities for the Production Sheet Assistant."""

from typing import Any

from ..models.prediction import FieldPrediction, PredictionSource


def create_error_prediction(field: str, error: Exception | str) -> FieldPrediction:
    """Create the prediction substituted for a field whose prediction failed.

    Args:
        field: Tech field that failed
        error: The error that occurred

    Returns:
        Blank, zero-confidence prediction tagged as an error

    """
    error_message = str(error) if isinstance(error, Exception) else error
    return FieldPrediction(
        value="",
        confidence=0.0,
        source=PredictionSource.ERROR,
        explanation=f"Prediction failed for {field}: {error_message}",
    )


def create_error_response(error: Exception | str) -> dict[str, Any]:
    """Create a standardized error response for LangGraph nodes.

    Args:
        error: The error that occurred

    Returns:
        Dictionary with error information and safe defaults

    """
    error_message = str(error) if isinstance(error, Exception) else error

    return {
        "error": error_message,
        "predictions": None,
    }


def check_state_for_errors(state: dict[str, Any]) -> bool:
    """Check if a state contains errors.

    Args:
        state: The item state to check

    Returns:
        True if state contains errors, False otherwise

    """
    return bool(state.get("error"))
