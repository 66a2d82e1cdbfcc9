"""Utility functions for summarizing a production sheet."""

from collections import Counter
from dataclasses import dataclass, field

from ..models.program import SheetRow

USAGE_FIELDS = ("camera", "scene", "mic")


@dataclass
class SheetStatistics:
    """Container for production sheet summary statistics."""

    total_items: int
    auto_filled_items: int
    manual_items: int
    ai_filled_items: int
    auto_fill_rate: float
    usage: dict[str, dict[str, int]] = field(default_factory=dict)

    def to_display_string(self) -> str:
        """Format statistics for a one-line summary."""
        return (
            f"Items: {self.total_items} | Auto: {self.auto_filled_items} | "
            f"Manual: {self.manual_items} | AI: {self.ai_filled_items} | "
            f"Auto-fill: {self.auto_fill_rate:.0f}%"
        )


def calculate_sheet_statistics(rows: list[SheetRow]) -> SheetStatistics:
    """Calculate statistics for a list of sheet rows.

    Args:
        rows: Rows of a processed production sheet

    Returns:
        SheetStatistics object containing calculated statistics

    """
    total = len(rows)

    if total == 0:
        return SheetStatistics(
            total_items=0,
            auto_filled_items=0,
            manual_items=0,
            ai_filled_items=0,
            auto_fill_rate=0.0,
            usage={name: {} for name in USAGE_FIELDS},
        )

    auto_filled = sum(1 for row in rows if not row.is_unmatched)
    ai_filled = sum(1 for row in rows if row.ai_fields)

    usage = {}
    for name in USAGE_FIELDS:
        counts = Counter(getattr(row, name) for row in rows if getattr(row, name))
        usage[name] = dict(counts)

    return SheetStatistics(
        total_items=total,
        auto_filled_items=auto_filled,
        manual_items=total - auto_filled,
        ai_filled_items=ai_filled,
        auto_fill_rate=auto_filled / total * 100,
        usage=usage,
    )
