"""Tests for running-order processing through the item workflow."""

import pytest

from production_sheet.constants import EXAMPLE_PROGRAM, UNMATCHED_NOTE
from production_sheet.learning.coordinator import FeedbackItem, LearningCoordinator
from production_sheet.learning.phases import LearningPhase
from production_sheet.models.prediction import FieldPrediction, PredictionSource
from production_sheet.models.program import ProgramItem
from production_sheet.pipeline.nodes.merger import merge_values
from production_sheet.pipeline.workflow import create_initial_state, get_compiled_workflow, process_item
from production_sheet.processing.program_processor import ProgramProcessor
from production_sheet.services.storage import InMemoryStorage

PIANO_VALUES = {"camera": "2", "scene": "1", "mic": "Amb", "notes": "", "stream": ""}


@pytest.fixture
def processor():
    """Create a rules-only ProgramProcessor."""
    return ProgramProcessor()


@pytest.fixture
def trained_coordinator():
    """Coordinator that has confirmed 50 piano songs on camera 2."""
    coordinator = LearningCoordinator(InMemoryStorage())
    correct = {name: {"value": value, "confidence": 0.9} for name, value in PIANO_VALUES.items()}
    coordinator.learn_from_batch(
        [
            FeedbackItem(
                item=ProgramItem(title=f"SASB {n} Piano Solo", performer="piano"),
                user_values=PIANO_VALUES,
                ai_predictions=correct,
            )
            for n in range(50)
        ]
    )
    return coordinator


class TestWorkflow:
    """Test suite for the per-item workflow."""

    def test_rules_only_item(self):
        state = process_item(get_compiled_workflow(), "SOF 456 WG", index=3)

        assert state["error"] is None
        assert state["item"].performer == "wg"
        assert state["item"].index == 3
        assert state["matched_rule"] == "songs:wg"
        assert state["final_values"]["mic"] == "2,3,4"
        assert state["predictions"] is None

    def test_blank_line_stops_early(self):
        state = process_item(get_compiled_workflow(), "   ")
        assert state["error"]
        assert state["final_values"] is None

    def test_initial_state(self):
        state = create_initial_state("Offering", 2, True)
        assert state["line"] == "Offering"
        assert state["is_third_sunday"] is True
        assert state["error"] is None


class TestMergeValues:
    """Test suite for the merge node."""

    def make_state(self, prediction, example_count=50):
        state = create_initial_state("SASB 1 Piano Solo")
        state.update(
            item=ProgramItem(title="SASB 1 Piano Solo"),
            rule_values={"camera": "3", "scene": "1", "mic": "Amb", "notes": ""},
            matched_rule="songs:piano",
            predictions={"camera": prediction},
            example_count=example_count,
        )
        return state

    def test_confident_learned_value_used(self):
        prediction = FieldPrediction("2", 0.9, PredictionSource.PATTERN_MATCHING)
        result = merge_values(self.make_state(prediction))
        assert result["final_values"]["camera"] == "2"
        assert result["ai_fields"] == ["camera"]

    def test_rule_based_prediction_ignored(self):
        prediction = FieldPrediction("2", 0.9, PredictionSource.RULE_BASED)
        result = merge_values(self.make_state(prediction))
        assert result["final_values"]["camera"] == "3"
        assert result["ai_fields"] == []

    def test_low_confidence_or_few_examples_ignored(self):
        """Test both the field threshold and the minimum example count."""
        weak = FieldPrediction("2", 0.79, PredictionSource.HYBRID)
        assert merge_values(self.make_state(weak))["ai_fields"] == []

        strong = FieldPrediction("2", 0.95, PredictionSource.HYBRID)
        assert merge_values(self.make_state(strong, example_count=4))["ai_fields"] == []


class TestProgramProcessor:
    """Test suite for ProgramProcessor."""

    def test_example_program(self, processor):
        """Test that every line of the example program matches a rule."""
        program = processor.process_program(EXAMPLE_PROGRAM)

        assert len(program.rows) == 10
        assert program.missing_indices == []
        assert program.rows[0].item.title == "Opening Prayer"
        assert program.rows[1].matched_rule == "songs:band"
        assert program.summary.auto_fill_rate == 100.0

    def test_blank_lines_skipped(self, processor):
        program = processor.process_program("Offering\n\n   \nBenediction\n")
        assert [row.item.title for row in program.rows] == ["Offering", "Benediction"]
        assert [row.item.index for row in program.rows] == [0, 1]

    def test_unmatched_line(self, processor):
        """Test that an unknown line is flagged for manual input."""
        program = processor.process_program("Opening Prayer\nTea and coffee")
        row = program.rows[1]

        assert row.is_unmatched is True
        assert row.notes == UNMATCHED_NOTE
        assert program.missing_indices == [1]
        assert program.summary.manual_items == 1

    def test_third_sunday(self, processor):
        program = processor.process_program("YP Spot", is_third_sunday=True)
        assert program.rows[0].mic == "Handheld"

    def test_learned_values_applied(self, trained_coordinator):
        """Test that confident pattern predictions replace rule values."""
        assert trained_coordinator.current_phase == LearningPhase.PATTERN_LEARNING
        processor = ProgramProcessor(coordinator=trained_coordinator)

        row = processor.process_program("SASB 234 Piano Solo").rows[0]

        assert row.matched_rule == "songs:piano"
        assert row.camera == "2"
        assert "camera" in row.ai_fields
        assert row.ai_metadata.phase == "PATTERN_LEARNING"
        assert row.ai_metadata.predictions["camera"].source == PredictionSource.PATTERN_MATCHING

    def test_learn_from_edit(self, trained_coordinator):
        processor = ProgramProcessor(coordinator=trained_coordinator)
        row = processor.process_program("Tea and coffee").rows[0]

        updated = processor.learn_from_edit(row, {"camera": "1", "scene": "1", "mic": "AV"})

        assert updated.camera == "1"
        assert updated.mic == "AV"
        assert trained_coordinator.example_count == 51
        assert trained_coordinator.patterns.all()[-1].user_values["camera"] == "1"

    def test_learn_from_edit_without_coordinator(self, processor):
        row = processor.process_program("Offering").rows[0]
        updated = processor.learn_from_edit(row, {"camera": "2"})
        assert updated.camera == "2"
        assert row.camera == "1"
