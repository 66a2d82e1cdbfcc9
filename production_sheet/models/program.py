"""Program item and production sheet row models."""

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any

from ..config import TECH_FIELDS
from .prediction import FieldPrediction


@dataclass(frozen=True)
class ProgramItem:
    """A single line of a service running order."""

    title: str
    type: str = ""
    performer: str = ""
    notes: str = ""
    index: int = 0

    @property
    def text(self) -> str:
        """Text used for feature extraction and matching."""
        return self.title

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "type": self.type,
            "performer": self.performer,
            "notes": self.notes,
            "index": self.index,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProgramItem":
        """Build an item from a stored dictionary, tolerating missing keys."""
        return cls(
            title=str(data.get("title") or data.get("program_item") or ""),
            type=str(data.get("type") or ""),
            performer=str(data.get("performer") or ""),
            notes=str(data.get("notes") or ""),
            index=int(data.get("index") or 0),
        )


@dataclass
class AIMetadata:
    """Learned predictions attached to a sheet row for later feedback."""

    predictions: dict[str, FieldPrediction]
    phase: str
    predicted_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "predictions": {name: p.to_dict() for name, p in self.predictions.items()},
            "phase": self.phase,
            "predicted_at": self.predicted_at.isoformat(),
        }


@dataclass
class SheetRow:
    """One row of the production sheet."""

    item: ProgramItem
    camera: str = ""
    scene: str = ""
    mic: str = ""
    notes: str = ""
    stream: str = ""

    matched_rule: str | None = None
    is_unmatched: bool = False
    suggestions: list[dict[str, Any]] = field(default_factory=list)
    ai_fields: list[str] = field(default_factory=list)
    ai_metadata: AIMetadata | None = None

    def tech_values(self) -> dict[str, str]:
        """Return the current value of every tech field."""
        return {name: getattr(self, name) for name in TECH_FIELDS}

    def with_values(self, values: dict[str, str]) -> "SheetRow":
        """Return a copy with the given tech values applied."""
        updates = {name: str(value) for name, value in values.items() if name in TECH_FIELDS}
        return replace(self, **updates)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"program_item": self.item.title, "index": self.item.index}
        data.update(self.tech_values())
        data["matched_rule"] = self.matched_rule
        data["is_unmatched"] = self.is_unmatched
        data["ai_fields"] = list(self.ai_fields)
        if self.ai_metadata is not None:
            data["ai_metadata"] = self.ai_metadata.to_dict()
        return data
