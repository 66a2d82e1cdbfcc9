"""In-memory corpus of training examples with per-bucket retention."""

import logging
import time
from collections import OrderedDict
from datetime import datetime
from typing import Any
from uuid import uuid4

from pydantic import ValidationError as SnapshotValidationError

from ..config import LEARNING_CONFIG
from ..models.pattern import PatternContext, TrainingExample
from ..models.prediction import PredictionContext
from ..models.program import ProgramItem
from ..models.snapshots import PatternStoreSnapshot
from .feature_extractor import TextFeatureExtractor

logger = logging.getLogger(__name__)


def generate_example_id() -> str:
    return f"{int(time.time() * 1000)}_{uuid4().hex[:9]}"


class PatternStore:
    """Holds training examples, bucketed by content type.

    Each bucket keeps at most ``max_per_bucket`` examples; the oldest are
    evicted first. Iteration order is insertion order across buckets.
    """

    def __init__(
        self,
        extractor: TextFeatureExtractor | None = None,
        max_per_bucket: int = int(LEARNING_CONFIG["max_examples_per_pattern"]),
    ) -> None:
        self.extractor = extractor or TextFeatureExtractor()
        self.max_per_bucket = max_per_bucket
        self._examples: OrderedDict[str, TrainingExample] = OrderedDict()

    def __len__(self) -> int:
        return len(self._examples)

    def all(self) -> list[TrainingExample]:
        return list(self._examples.values())

    def add(
        self,
        item: ProgramItem,
        user_values: dict[str, str],
        context: PredictionContext,
    ) -> TrainingExample:
        """Store a new correction.

        Args:
            item: Program item that was corrected
            user_values: Values the user confirmed
            context: Service context of the correction

        Returns:
            The stored training example

        """
        example = TrainingExample(
            id=generate_example_id(),
            program_item=item,
            user_values={k: "" if v is None else str(v) for k, v in user_values.items()},
            context=PatternContext(
                is_third_sunday=context.is_third_sunday,
                position=context.position or item.index,
            ),
            features=self.extractor.extract_features(item.text),
        )
        self._insert(example)
        return example

    def _insert(self, example: TrainingExample) -> None:
        self._examples[example.id] = example
        self._enforce_bucket_limit(example.features.content_type)

    def _enforce_bucket_limit(self, bucket: str) -> None:
        in_bucket = [key for key, e in self._examples.items() if e.features.content_type == bucket]
        for key in in_bucket[: max(0, len(in_bucket) - self.max_per_bucket)]:
            del self._examples[key]
            logger.debug(f"Evicted oldest '{bucket}' example {key}")

    def clear(self) -> None:
        self._examples.clear()

    def to_snapshot(self) -> dict[str, Any]:
        return {
            "examples": [example.to_dict() for example in self._examples.values()],
            "last_updated": datetime.now().isoformat(),
        }

    def load_snapshot(self, data: dict[str, Any] | list[dict[str, Any]]) -> int:
        """Replace the corpus with persisted examples, recomputing features.

        Args:
            data: Stored snapshot, or a bare list of examples from older versions

        Returns:
            Number of examples loaded

        """
        if isinstance(data, list):
            data = {"examples": data}

        try:
            snapshot = PatternStoreSnapshot.model_validate(data)
        except SnapshotValidationError as e:
            logger.error(f"Ignoring unreadable pattern snapshot: {e}")
            return 0

        self._examples.clear()
        for stored in snapshot.examples:
            item = ProgramItem(**stored.program_item.model_dump())
            self._insert(
                TrainingExample(
                    id=stored.id,
                    program_item=item,
                    user_values=dict(stored.user_values),
                    context=PatternContext(**stored.context.model_dump()),
                    features=self.extractor.extract_features(item.text),
                )
            )

        logger.info(f"Loaded {len(self._examples)} patterns")
        return len(self._examples)
