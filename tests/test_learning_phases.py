"""Tests for learning phases and transitions."""

import math

import pytest

from production_sheet.learning.phases import (
    PHASE_TABLE,
    LearningPhase,
    PhaseSpec,
    next_phase,
    next_phase_requirements,
    phase_progress,
    validate_phase_table,
)
from production_sheet.models.statistics import SystemPerformance


def performance(total, accuracy):
    return SystemPerformance(
        overall_accuracy=accuracy,
        total_predictions=total,
        recent_accuracy=accuracy,
        field_accuracies={},
        trend="stable",
    )


class TestPhaseTable:
    """Test suite for the phase table."""

    def test_ranges_are_contiguous(self):
        """Test the configured thresholds."""
        assert [spec.min_examples for spec in PHASE_TABLE] == [0, 50, 200, 300]
        assert PHASE_TABLE[-1].max_examples == math.inf
        assert [spec.phase for spec in PHASE_TABLE] == list(LearningPhase)

    def test_weights_sum_to_one(self):
        for spec in PHASE_TABLE:
            assert spec.ai_weight + spec.rules_weight == pytest.approx(1.0)

    def test_gap_rejected(self):
        """Test that a malformed table is rejected."""
        broken = list(PHASE_TABLE)
        first = broken[0]
        broken[0] = PhaseSpec(
            phase=first.phase,
            min_examples=0,
            max_examples=40,
            ai_weight=first.ai_weight,
            rules_weight=first.rules_weight,
            min_accuracy=None,
            description=first.description,
        )
        with pytest.raises(ValueError):
            validate_phase_table(broken)

    def test_phases_are_ordered(self):
        assert LearningPhase.RULE_BASED < LearningPhase.PATTERN_LEARNING < LearningPhase.HYBRID
        assert max(LearningPhase.HYBRID, LearningPhase.RULE_BASED) == LearningPhase.HYBRID


class TestNextPhase:
    """Test suite for next_phase."""

    def test_stays_below_threshold(self):
        assert next_phase(LearningPhase.RULE_BASED, performance(49, 1.0)) == LearningPhase.RULE_BASED

    def test_pattern_learning_needs_no_accuracy(self):
        assert next_phase(LearningPhase.RULE_BASED, performance(50, 0.0)) == LearningPhase.PATTERN_LEARNING

    def test_advances_one_step_only(self):
        """Test that plenty of data still moves a single phase."""
        assert next_phase(LearningPhase.RULE_BASED, performance(500, 1.0)) == LearningPhase.PATTERN_LEARNING

    def test_hybrid_accuracy_gate(self):
        """Test that the hybrid gate requires accuracy strictly above 0.6."""
        assert next_phase(LearningPhase.PATTERN_LEARNING, performance(200, 0.6)) == LearningPhase.PATTERN_LEARNING
        assert next_phase(LearningPhase.PATTERN_LEARNING, performance(200, 0.61)) == LearningPhase.HYBRID

    def test_neural_primary_gate(self):
        assert next_phase(LearningPhase.HYBRID, performance(300, 0.8)) == LearningPhase.HYBRID
        assert next_phase(LearningPhase.HYBRID, performance(300, 0.85)) == LearningPhase.NEURAL_PRIMARY

    def test_never_moves_backwards(self):
        """Test that poor performance does not demote a phase."""
        for phase in LearningPhase:
            assert next_phase(phase, performance(0, 0.0)) == phase

    def test_final_phase(self):
        assert next_phase(LearningPhase.NEURAL_PRIMARY, performance(10_000, 1.0)) == LearningPhase.NEURAL_PRIMARY


class TestProgress:
    """Test suite for progress reporting."""

    def test_progress(self):
        progress = phase_progress(LearningPhase.RULE_BASED, 25)
        assert progress["required"] == 50
        assert progress["percentage"] == 50.0

    def test_requirements(self):
        requirements = next_phase_requirements(LearningPhase.PATTERN_LEARNING)
        assert requirements["next_phase"] == "HYBRID"
        assert requirements["accuracy"] == 0.6
        assert next_phase_requirements(LearningPhase.NEURAL_PRIMARY)["next_phase"] is None
