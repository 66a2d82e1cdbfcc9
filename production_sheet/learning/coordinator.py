"""Coordinates rules, pattern matching, statistics and the neural network.

The coordinator is an explicitly constructed service: the application builds
one instance and passes it to whatever needs predictions. All state mutation
happens under one re-entrant lock.
"""

import logging
import threading
import time
from collections import Counter
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Iterable

from pydantic import ValidationError as SnapshotValidationError

from ..config import PERFORMANCE_CONFIG, STORAGE_KEYS, TECH_FIELDS, NEURAL_CONFIG
from ..exceptions import InitializationError, PersistenceError
from ..models.prediction import FieldPrediction, PredictionContext, PredictionSource
from ..models.program import ProgramItem
from ..models.snapshots import SystemStateSnapshot
from ..processing.rule_engine import RuleEngine
from ..services.storage import Storage
from ..utils.error_handling import create_error_prediction
from .feature_extractor import TextFeatureExtractor
from .neural import NeuralPredictor
from .pattern_store import PatternStore
from .phases import (
    LearningPhase,
    get_phase_spec,
    next_phase,
    next_phase_requirements,
    phase_progress,
)
from .similarity import PatternMatch, SimilarityEngine
from .statistics_tracker import StatisticsTracker

logger = logging.getLogger(__name__)

RULE_BASED_CONFIDENCE = 0.3
PATTERN_BLEND = 0.7
NEURAL_BLEND = 0.3


@dataclass
class SessionStats:
    """Counters for the current session only."""

    total_predictions: int = 0
    correct_predictions: int = 0
    user_corrections: int = 0
    average_confidence: float = 0.0

    def record_prediction(self, predictions: dict[str, FieldPrediction]) -> None:
        confidences = [p.confidence for p in predictions.values() if p.confidence > 0]
        average = sum(confidences) / len(confidences) if confidences else 0.0
        self.total_predictions += 1
        self.average_confidence += (average - self.average_confidence) / self.total_predictions


@dataclass
class FeedbackItem:
    """One correction for batch learning."""

    item: ProgramItem
    user_values: dict[str, str]
    ai_predictions: dict[str, Any] | None = None
    context: PredictionContext | None = None


def _coerce_prediction(prediction: Any) -> FieldPrediction | None:
    if prediction is None or isinstance(prediction, FieldPrediction):
        return prediction
    if isinstance(prediction, dict):
        try:
            return FieldPrediction.from_dict(prediction)
        except (TypeError, ValueError) as e:
            logger.warning(f"Ignoring malformed prediction: {e}")
    return None


class LearningCoordinator:
    """Four-phase predictor that learns from user corrections."""

    def __init__(
        self,
        storage: Storage,
        rule_engine: RuleEngine | None = None,
        extractor: TextFeatureExtractor | None = None,
        similarity: SimilarityEngine | None = None,
        statistics: StatisticsTracker | None = None,
        neural: NeuralPredictor | None = None,
        patterns: PatternStore | None = None,
    ) -> None:
        self.storage = storage
        self.rule_engine = rule_engine or RuleEngine()
        self.extractor = extractor or TextFeatureExtractor()
        self.similarity = similarity or SimilarityEngine(self.extractor)
        self.statistics = statistics or StatisticsTracker()
        self.neural = neural or NeuralPredictor()
        self.patterns = patterns or PatternStore(self.extractor)

        self.phase = LearningPhase.RULE_BASED
        self.is_initialized = False
        self.rules_only = False
        self.session_stats = SessionStats()
        self.last_error: str | None = None
        self.last_error_at: datetime | None = None
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def initialize(self) -> None:
        """Load persisted state and settle the learning phase.

        A bootstrap failure leaves the session in rules-only mode.
        """
        with self._lock:
            if self.is_initialized:
                return

            logger.info("Initializing learning system...")
            try:
                self._load_system_data()
            except InitializationError as e:
                self._record_error(e)
                self.rules_only = True
                self.phase = LearningPhase.RULE_BASED
                logger.error(f"Learning system unavailable, using rules only for this session: {e}")
            else:
                self._advance_phase()
                if self.phase >= LearningPhase.HYBRID and not self.neural.is_initialized:
                    self._bootstrap_neural()
                logger.info(f"✅ Learning system initialized - phase {self.phase.value}")

            self.is_initialized = True

    def _load_system_data(self) -> None:
        try:
            pattern_data = self.storage.load(STORAGE_KEYS["patterns"])
            statistics_data = self.storage.load(STORAGE_KEYS["statistics"])
            network_data = self.storage.load(STORAGE_KEYS["neural_network"])
            state_data = self.storage.load(STORAGE_KEYS["system_state"])
        except PersistenceError as e:
            raise InitializationError(f"Could not load learning data: {e}") from e

        try:
            if pattern_data:
                self.patterns.load_snapshot(pattern_data)
            if statistics_data:
                self.statistics.load_snapshot(statistics_data)
            if network_data:
                self.neural.deserialize(network_data)
            if state_data:
                state = SystemStateSnapshot.model_validate(state_data)
                # Restored phase can only move forward from the default
                self.phase = max(self.phase, LearningPhase(state.current_phase))
        except (SnapshotValidationError, ValueError) as e:
            raise InitializationError(f"Stored learning data is unreadable: {e}") from e

    # ------------------------------------------------------------------
    # Prediction
    # ------------------------------------------------------------------

    @property
    def current_phase(self) -> LearningPhase:
        return LearningPhase.RULE_BASED if self.rules_only else self.phase

    @property
    def example_count(self) -> int:
        """Number of items learned so far."""
        return self.statistics.total_items()

    def predict(
        self, item: ProgramItem, context: PredictionContext | None = None
    ) -> dict[str, FieldPrediction]:
        """Predict every tech field for a program item.

        Args:
            item: Program item to predict
            context: Service context, defaults to an ordinary Sunday

        Returns:
            One FieldPrediction per tech field; failed fields carry source 'error'

        """
        context = context or PredictionContext(position=item.index)
        with self._lock:
            if not self.is_initialized:
                self.initialize()

            start = time.perf_counter()
            phase = self.current_phase
            if phase == LearningPhase.RULE_BASED:
                predictions = self._predict_rule_based(item, context)
            elif phase == LearningPhase.PATTERN_LEARNING:
                predictions = self._predict_pattern_based(item, context)
            elif phase == LearningPhase.HYBRID:
                predictions = self._predict_hybrid(item, context)
            else:
                predictions = self._predict_neural_primary(item, context)

            self.session_stats.record_prediction(predictions)

        elapsed_ms = (time.perf_counter() - start) * 1000
        if elapsed_ms > PERFORMANCE_CONFIG["max_prediction_time_ms"]:
            logger.warning(f"Prediction for '{item.title}' took {elapsed_ms:.0f}ms")
        logger.debug(f"Predicted '{item.title}' in phase {phase.value} ({elapsed_ms:.1f}ms)")
        return predictions

    def _predict_rule_based(
        self, item: ProgramItem, context: PredictionContext
    ) -> dict[str, FieldPrediction]:
        try:
            result = self.rule_engine.apply_rules(item.text, context.is_third_sunday)
        except Exception as e:
            self._record_error(e)
            return {name: create_error_prediction(name, e) for name in TECH_FIELDS}

        values = result.values if result.matched else {}
        explanation = f"Rule '{result.rule}'" if result.matched else "No rule matched"
        predictions = {
            name: FieldPrediction(
                value=values.get(name, ""),
                confidence=RULE_BASED_CONFIDENCE,
                source=PredictionSource.RULE_BASED,
                explanation=explanation,
            )
            for name in TECH_FIELDS
        }

        title = item.title.lower()
        performer = item.performer.lower()
        if any(word in performer or word in title for word in ("piano", "organ")):
            predictions["mic"] = FieldPrediction(
                value="N/A",
                confidence=0.8,
                source=PredictionSource.RULE_BASED,
                explanation="Instrumental performer needs no vocal mic",
            )
        if any(word in title for word in ("prayer", "closing", "benediction")):
            predictions["stream"] = FieldPrediction(
                value="OFF",
                confidence=0.7,
                source=PredictionSource.RULE_BASED,
                explanation="Stream is usually off for this item",
            )
        return predictions

    def _find_matches(self, item: ProgramItem, context: PredictionContext) -> list[PatternMatch]:
        matches = self.similarity.find_similar_patterns(
            item.text, self.patterns.all(), context.is_third_sunday
        )
        return matches[: PERFORMANCE_CONFIG["max_patterns_to_analyze"]]

    def _predict_pattern_based(
        self, item: ProgramItem, context: PredictionContext
    ) -> dict[str, FieldPrediction]:
        predictions: dict[str, FieldPrediction] = {}
        matches: list[PatternMatch] | None = None
        rule_predictions: dict[str, FieldPrediction] | None = None

        for name in TECH_FIELDS:
            try:
                if matches is None:
                    matches = self._find_matches(item, context)

                if matches:
                    value = matches[0].example.value_for(name)
                    confidence = self.statistics.calculate_confidence({name: value}, matches, name)
                    predictions[name] = FieldPrediction(
                        value=value,
                        confidence=confidence,
                        source=PredictionSource.PATTERN_MATCHING,
                        explanation=f"Based on {len(matches)} similar patterns",
                        pattern_confidence=confidence,
                        pattern_count=len(matches),
                    )
                else:
                    if rule_predictions is None:
                        rule_predictions = self._predict_rule_based(item, context)
                    fallback = rule_predictions[name]
                    predictions[name] = FieldPrediction(
                        value=fallback.value,
                        confidence=fallback.confidence,
                        source=(
                            fallback.source
                            if fallback.is_error
                            else PredictionSource.RULE_BASED_FALLBACK
                        ),
                        explanation=f"No similar patterns; {fallback.explanation}",
                    )
            except Exception as e:
                logger.error(f"Error predicting {name} for '{item.title}': {e}")
                self._record_error(e)
                predictions[name] = create_error_prediction(name, e)

        return predictions

    def _neural_confidences(self, item: ProgramItem) -> dict[str, float] | None:
        try:
            return self.neural.predict_confidences(item)
        except Exception as e:
            logger.warning(f"Neural prediction unavailable: {e}")
            self._record_error(e)
            return None

    def _predict_hybrid(
        self, item: ProgramItem, context: PredictionContext
    ) -> dict[str, FieldPrediction]:
        pattern_predictions = self._predict_pattern_based(item, context)
        neural = self._neural_confidences(item)

        predictions: dict[str, FieldPrediction] = {}
        for name in TECH_FIELDS:
            pattern = pattern_predictions[name]
            if pattern.is_error:
                predictions[name] = pattern
                continue
            try:
                neural_confidence = neural[name] if neural is not None else None
                if neural_confidence is None:
                    confidence = pattern.confidence
                else:
                    confidence = PATTERN_BLEND * pattern.confidence + NEURAL_BLEND * neural_confidence
                predictions[name] = FieldPrediction(
                    value=pattern.value,
                    confidence=confidence,
                    source=PredictionSource.HYBRID,
                    explanation="Combined pattern matching and neural network",
                    pattern_confidence=pattern.confidence,
                    neural_confidence=neural_confidence,
                    pattern_count=pattern.pattern_count,
                )
            except Exception as e:
                self._record_error(e)
                predictions[name] = create_error_prediction(name, e)
        return predictions

    def _predict_neural_primary(
        self, item: ProgramItem, context: PredictionContext
    ) -> dict[str, FieldPrediction]:
        pattern_predictions = self._predict_pattern_based(item, context)
        neural = self._neural_confidences(item)

        predictions: dict[str, FieldPrediction] = {}
        for name in TECH_FIELDS:
            pattern = pattern_predictions[name]
            if pattern.is_error:
                predictions[name] = pattern
                continue
            try:
                neural_confidence = neural[name] if neural is not None else None
                predictions[name] = FieldPrediction(
                    value=pattern.value,
                    confidence=neural_confidence if neural_confidence is not None else pattern.confidence,
                    source=PredictionSource.NEURAL_PRIMARY,
                    explanation="Neural network confidence with pattern values",
                    pattern_confidence=pattern.confidence,
                    neural_confidence=neural_confidence,
                    pattern_count=pattern.pattern_count,
                )
            except Exception as e:
                self._record_error(e)
                predictions[name] = create_error_prediction(name, e)
        return predictions

    # ------------------------------------------------------------------
    # Learning
    # ------------------------------------------------------------------

    def learn_from_feedback(
        self,
        item: ProgramItem,
        ai_predictions: dict[str, Any] | None,
        user_values: dict[str, str],
        context: PredictionContext | None = None,
    ) -> None:
        """Learn from the values a user settled on for an item.

        Safe to call without prior predictions; missing predictions count as
        blank. Never raises: failures are recorded for status reporting.

        Args:
            item: Program item the user edited
            ai_predictions: Predictions previously returned for the item, if any
            user_values: Final values per tech field
            context: Service context of the edit

        """
        with self._lock:
            if not self.is_initialized:
                self.initialize()
            if self._learn(item, ai_predictions, user_values, context):
                self.save_system_data()

    def learn_from_batch(self, entries: Iterable[FeedbackItem]) -> int:
        """Learn from several corrections, isolating failures per item.

        Returns:
            Number of items learned successfully

        """
        learned = 0
        with self._lock:
            if not self.is_initialized:
                self.initialize()
            for entry in entries:
                if self._learn(entry.item, entry.ai_predictions, entry.user_values, entry.context):
                    learned += 1
            if learned:
                self.save_system_data()
        logger.info(f"Batch learning completed: {learned} items learned")
        return learned

    def _learn(
        self,
        item: ProgramItem,
        ai_predictions: dict[str, Any] | None,
        user_values: dict[str, str],
        context: PredictionContext | None,
    ) -> bool:
        context = context or PredictionContext(position=item.index)
        try:
            predictions = ai_predictions or {}
            user_values = user_values or {}
            outcomes = []
            for name in TECH_FIELDS:
                prediction = _coerce_prediction(predictions.get(name))
                outcomes.append(
                    (
                        name,
                        prediction.value if prediction else "",
                        str(user_values.get(name) or ""),
                        prediction.confidence if prediction else 0.0,
                    )
                )

            for name, predicted, actual, confidence in outcomes:
                self.statistics.update_prediction_stats(name, predicted, actual, confidence)
                if predicted == actual:
                    self.session_stats.correct_predictions += 1
                else:
                    self.session_stats.user_corrections += 1

            self.patterns.add(item, user_values, context)

            if self.current_phase in (LearningPhase.HYBRID, LearningPhase.NEURAL_PRIMARY):
                self.neural.train_single(item, user_values)

            self._advance_phase()
        except Exception as e:
            logger.error(f"Error learning from '{getattr(item, 'title', item)}': {e}")
            self._record_error(e)
            return False

        logger.debug(f"Learned from '{item.title}'")
        return True

    def _advance_phase(self) -> None:
        if self.rules_only:
            return

        performance = self.statistics.get_system_performance()
        while True:
            candidate = next_phase(self.phase, performance)
            if candidate == self.phase:
                return
            logger.info(
                f"🎓 Advancing from {self.phase.value} to {candidate.value} "
                f"({performance.total_predictions} items, {performance.overall_accuracy:.1%} accuracy)"
            )
            self.phase = candidate
            if candidate == LearningPhase.HYBRID:
                self._bootstrap_neural()

    def _bootstrap_neural(self) -> None:
        """Build the vocabulary and batch-train on every stored pattern."""
        examples = self.patterns.all()
        if not examples:
            return
        try:
            self.neural.build_vocabulary([e.program_item for e in examples])
            self.neural.train_batch(
                [(e.program_item, e.user_values) for e in examples],
                epochs=int(NEURAL_CONFIG["bootstrap_epochs"]),
            )
            logger.info(f"Neural network trained with {len(examples)} examples")
        except Exception as e:
            logger.error(f"Error initializing neural training: {e}")
            self._record_error(e)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save_system_data(self) -> bool:
        """Persist patterns, statistics, network and phase.

        Returns:
            True if every document reached the primary store
        """
        with self._lock:
            if self.rules_only:
                # Saving now would overwrite data that failed to load
                logger.warning("Rules-only session, learning data not saved")
                return False

            documents = {
                STORAGE_KEYS["patterns"]: self.patterns.to_snapshot(),
                STORAGE_KEYS["statistics"]: self.statistics.to_snapshot(),
                STORAGE_KEYS["system_state"]: {
                    "current_phase": self.phase.value,
                    "session_stats": asdict(self.session_stats),
                    "last_updated": datetime.now().isoformat(),
                },
            }
            network = self.neural.serialize()
            if network is not None:
                documents[STORAGE_KEYS["neural_network"]] = network

            all_primary = True
            try:
                for key, data in documents.items():
                    all_primary = self.storage.save(key, data) and all_primary
            except PersistenceError as e:
                logger.error(f"Learning data not saved: {e}")
                self._record_error(e)
                return False

        if not all_primary:
            logger.warning("Learning data saved to local fallback only")
        return all_primary

    def reset_learning_data(self) -> None:
        """Discard every learned example, statistic and weight, in memory and stored."""
        with self._lock:
            self.patterns.clear()
            self.statistics.reset_statistics()
            self.neural = NeuralPredictor(
                hidden_size=self.neural.hidden_size,
                learning_rate=self.neural.learning_rate,
                momentum=self.neural.momentum,
            )
            self.phase = LearningPhase.RULE_BASED
            self.session_stats = SessionStats()

            for key in STORAGE_KEYS.values():
                try:
                    self.storage.delete(key)
                except PersistenceError as e:
                    logger.error(f"Could not delete stored '{key}': {e}")
                    self._record_error(e)
        logger.info("Learning data reset")

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def _record_error(self, error: Exception | str) -> None:
        self.last_error = str(error) or type(error).__name__
        self.last_error_at = datetime.now()

    def get_system_status(self) -> dict[str, Any]:
        with self._lock:
            performance = self.statistics.get_system_performance()
            try:
                storage_status = self.storage.status()
            except PersistenceError as e:
                storage_status = {"is_primary_available": False, "has_fallback": False, "error": str(e)}

            phase = self.current_phase
            spec = get_phase_spec(phase)
            return {
                "is_initialized": self.is_initialized,
                "rules_only": self.rules_only,
                "current_phase": phase.value,
                "phase_description": spec.description,
                "ai_weight": spec.ai_weight,
                "rules_weight": spec.rules_weight,
                "performance": performance.to_dict(),
                "session_stats": asdict(self.session_stats),
                "phase_progress": phase_progress(phase, performance.total_predictions),
                "next_phase_requirements": next_phase_requirements(phase),
                "pattern_count": len(self.patterns),
                "neural_initialized": self.neural.is_initialized,
                "storage": storage_status,
                "has_error": self.last_error is not None,
                "last_error_message": self.last_error,
                "last_error_at": self.last_error_at.isoformat() if self.last_error_at else None,
            }

    def generate_recommendations(self) -> list[dict[str, str]]:
        performance = self.statistics.get_system_performance()
        recommendations = []

        if performance.overall_accuracy < 0.5:
            recommendations.append(
                {
                    "type": "accuracy",
                    "severity": "high",
                    "message": "Overall accuracy is below 50%.",
                    "action": "Review recent corrections for inconsistent values",
                }
            )
        if performance.total_predictions < get_phase_spec(LearningPhase.PATTERN_LEARNING).min_examples:
            recommendations.append(
                {
                    "type": "data",
                    "severity": "medium",
                    "message": "More corrections are needed before patterns are used.",
                    "action": "Keep confirming or correcting production sheets",
                }
            )
        if performance.trend == "declining":
            recommendations.append(
                {
                    "type": "performance",
                    "severity": "medium",
                    "message": "Accuracy is declining.",
                    "action": "Consider resetting the neural network or reviewing recent patterns",
                }
            )
        return recommendations

    def get_detailed_report(self) -> dict[str, Any]:
        with self._lock:
            content_types = Counter(e.features.content_type for e in self.patterns.all())
            return {
                "system_status": self.get_system_status(),
                "statistics_report": self.statistics.generate_detailed_report(),
                "patterns": {
                    "total_patterns": len(self.patterns),
                    "by_content_type": dict(content_types),
                },
                "neural_network": {
                    "is_initialized": self.neural.is_initialized,
                    "input_size": self.neural.input_size,
                    "hidden_size": self.neural.hidden_size,
                    "output_size": self.neural.output_size,
                    "vocabulary_size": len(self.neural.encoder.word_to_index),
                },
                "recommendations": self.generate_recommendations(),
            }
