"""LangGraph workflow components for per-item sheet generation."""

from .state import ItemState
from .workflow import create_initial_state, get_compiled_workflow, process_item

__all__ = ["ItemState", "create_initial_state", "get_compiled_workflow", "process_item"]
