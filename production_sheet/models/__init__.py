"""Domain models for the Production Sheet Assistant."""

from .features import STRUCTURAL_FLAGS, FeatureSet
from .pattern import PatternContext, TrainingExample
from .prediction import FieldPrediction, PredictionContext, PredictionSource
from .program import AIMetadata, ProgramItem, SheetRow
from .statistics import AccuracyHistoryEntry, FieldStatistics, SystemPerformance

__all__ = [
    "STRUCTURAL_FLAGS",
    "AIMetadata",
    "AccuracyHistoryEntry",
    "FeatureSet",
    "FieldPrediction",
    "FieldStatistics",
    "PatternContext",
    "PredictionContext",
    "PredictionSource",
    "ProgramItem",
    "SheetRow",
    "SystemPerformance",
    "TrainingExample",
]
