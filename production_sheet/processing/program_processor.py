"""Turns a running order into production sheet rows and feeds edits back."""

import logging
from dataclasses import dataclass, field

from ..config import TECH_FIELDS
from ..learning.coordinator import LearningCoordinator
from ..models.prediction import PredictionContext
from ..models.program import AIMetadata, SheetRow
from ..pipeline.state import ItemState
from ..pipeline.workflow import get_compiled_workflow, process_item
from ..utils.statistics import SheetStatistics, calculate_sheet_statistics
from .rule_engine import RuleEngine

logger = logging.getLogger(__name__)


@dataclass
class ProcessedProgram:
    """Rows of a generated sheet and the rows still missing settings."""

    rows: list[SheetRow] = field(default_factory=list)
    missing_indices: list[int] = field(default_factory=list)
    is_third_sunday: bool = False

    @property
    def summary(self) -> SheetStatistics:
        return calculate_sheet_statistics(self.rows)


class ProgramProcessor:
    """Runs each running-order line through the item workflow."""

    def __init__(
        self,
        coordinator: LearningCoordinator | None = None,
        rule_engine: RuleEngine | None = None,
    ) -> None:
        self.coordinator = coordinator
        self.rule_engine = rule_engine or (coordinator.rule_engine if coordinator else RuleEngine())
        self._app = get_compiled_workflow(self.rule_engine, coordinator)

    def process_program(self, text: str, is_third_sunday: bool = False) -> ProcessedProgram:
        """Generate a production sheet from running-order text.

        Args:
            text: Running order, one item per line
            is_third_sunday: Whether the service is a third-Sunday service

        Returns:
            ProcessedProgram with one row per non-blank line

        """
        lines = [line for line in (text or "").splitlines() if line.strip()]
        program = ProcessedProgram(is_third_sunday=is_third_sunday)

        for index, line in enumerate(lines):
            state = process_item(self._app, line, index, is_third_sunday)
            if state.get("error"):
                logger.warning(f"Line {index} skipped: {state['error']}")
                continue

            row = self._build_row(state)
            if not self.rule_engine.validate_row(row.tech_values())["valid"]:
                program.missing_indices.append(len(program.rows))
            program.rows.append(row)

        logger.info(
            f"Processed {len(program.rows)} items, {len(program.missing_indices)} need manual input"
        )
        return program

    def _build_row(self, state: ItemState) -> SheetRow:
        values = state.get("final_values") or {}
        predictions = state.get("predictions")
        metadata = None
        if predictions:
            metadata = AIMetadata(predictions=predictions, phase=state.get("phase") or "")

        return SheetRow(
            item=state["item"],
            matched_rule=state.get("matched_rule"),
            is_unmatched=bool(state.get("is_unmatched")),
            suggestions=list(state.get("suggestions") or []),
            ai_fields=list(state.get("ai_fields") or []),
            ai_metadata=metadata,
            **{name: values.get(name, "") for name in TECH_FIELDS},
        )

    def learn_from_edit(
        self,
        row: SheetRow,
        final_values: dict[str, str],
        edit_type: str = "manual",
        is_third_sunday: bool = False,
    ) -> SheetRow:
        """Record the values a user settled on for a row.

        Args:
            row: Row as generated
            final_values: Tech values after the edit
            edit_type: How the values were reached, e.g. "manual" or "confirmed"
            is_third_sunday: Whether the service is a third-Sunday service

        Returns:
            The row with the final values applied

        """
        updated = row.with_values(final_values)
        if self.coordinator is None:
            return updated

        predictions = row.ai_metadata.predictions if row.ai_metadata else None
        logger.debug(f"Learning from {edit_type} edit of '{row.item.title}'")
        self.coordinator.learn_from_feedback(
            row.item,
            predictions,
            updated.tech_values(),
            PredictionContext(is_third_sunday=is_third_sunday, position=row.item.index),
        )
        return updated
