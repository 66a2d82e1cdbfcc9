"""Learning subsystem: features, similarity, statistics, neural network and phases."""

from .coordinator import FeedbackItem, LearningCoordinator, SessionStats
from .feature_extractor import TextFeatureExtractor, normalize
from .neural import FeatureEncoder, NeuralPredictor
from .pattern_store import PatternStore
from .phases import PHASE_TABLE, LearningPhase, next_phase
from .similarity import PatternMatch, SimilarityEngine, SimilarityResult
from .statistics_tracker import StatisticsTracker

__all__ = [
    "PHASE_TABLE",
    "FeatureEncoder",
    "FeedbackItem",
    "LearningCoordinator",
    "LearningPhase",
    "NeuralPredictor",
    "PatternMatch",
    "PatternStore",
    "SessionStats",
    "SimilarityEngine",
    "SimilarityResult",
    "StatisticsTracker",
    "TextFeatureExtractor",
    "next_phase",
    "normalize",
]
