"""LangGraph nodes for per-item sheet generation."""

from .item_parser import parse_item
from .merger import merge_values
from .predictor import predict_fields
from .rule_applier import apply_rules

__all__ = ["apply_rules", "merge_values", "parse_item", "predict_fields"]
