"""Training example models stored by the pattern store."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from .features import FeatureSet
from .program import ProgramItem


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class PatternContext:
    """Context captured when a correction was made."""

    is_third_sunday: bool = False
    timestamp: str = field(default_factory=utc_now_iso)
    position: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "is_third_sunday": self.is_third_sunday,
            "timestamp": self.timestamp,
            "position": self.position,
        }


@dataclass
class TrainingExample:
    """A stored correction: item text, confirmed values and context."""

    id: str
    program_item: ProgramItem
    user_values: dict[str, str]
    context: PatternContext
    features: FeatureSet = field(default_factory=FeatureSet)

    @property
    def text(self) -> str:
        return self.program_item.text

    def value_for(self, field_name: str) -> str:
        return self.user_values.get(field_name, "")

    def to_dict(self) -> dict[str, Any]:
        # Features are derived data and are rebuilt on load
        return {
            "id": self.id,
            "program_item": self.program_item.to_dict(),
            "user_values": dict(self.user_values),
            "context": self.context.to_dict(),
        }
