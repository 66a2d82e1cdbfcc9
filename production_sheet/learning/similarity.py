"""Multi-factor similarity between item texts and recency-weighted ranking."""

import logging
import math
import time
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timezone

from ..config import LEARNING_CONFIG, SIMILARITY_WEIGHTS, TEXT_ANALYSIS_CONFIG
from ..constants import IMPORTANT_KEYWORDS
from ..models.features import STRUCTURAL_FLAGS, FeatureSet
from ..models.pattern import TrainingExample
from .feature_extractor import TextFeatureExtractor

logger = logging.getLogger(__name__)

_IMPORTANT = frozenset(IMPORTANT_KEYWORDS)

# (attribute, weight, neutral value that does not count as a match)
_SEMANTIC_FACTORS: tuple[tuple[str, float, str], ...] = (
    ("content_type", 0.8, "other"),
    ("performer_type", 0.6, "unknown"),
    ("song_type", 0.4, "unknown"),
)
_KEYWORD_FACTOR_WEIGHT = 1.0


@dataclass
class SimilarityResult:
    """Overall score with its sub-score breakdown and a reliability estimate."""

    score: float
    breakdown: dict[str, float]
    confidence: float


@dataclass
class PatternMatch:
    """A stored example that cleared the similarity threshold."""

    example: TrainingExample
    similarity: SimilarityResult
    weight: float

    @property
    def score(self) -> float:
        return self.similarity.score


@dataclass
class PatternSummary:
    total_matches: int = 0
    avg_similarity: float = 0.0
    avg_confidence: float = 0.0
    top_content_types: list[tuple[str, float]] = field(default_factory=list)
    top_performers: list[tuple[str, float]] = field(default_factory=list)


def _jaccard(first: set[str], second: set[str]) -> float | None:
    union = first | second
    if not union:
        return None
    return len(first & second) / len(union)


def _parse_timestamp(timestamp: str | datetime | float | int) -> datetime:
    if isinstance(timestamp, datetime):
        parsed = timestamp
    elif isinstance(timestamp, (int, float)):
        seconds = timestamp / 1000 if timestamp > 1e11 else timestamp
        parsed = datetime.fromtimestamp(seconds, tz=timezone.utc)
    else:
        parsed = datetime.fromisoformat(str(timestamp).replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class SimilarityEngine:
    """Scores how alike two item texts are and ranks stored examples."""

    def __init__(
        self,
        extractor: TextFeatureExtractor | None = None,
        threshold: float = float(TEXT_ANALYSIS_CONFIG["similarity_threshold"]),
        recency_weight: float = float(LEARNING_CONFIG["recency_weight"]),
    ) -> None:
        self.extractor = extractor or TextFeatureExtractor()
        self.threshold = threshold
        self.recency_weight = recency_weight

    def similarity(
        self,
        text1: str,
        text2: str,
        features1: FeatureSet,
        features2: FeatureSet,
        context1: bool,
        context2: bool,
    ) -> SimilarityResult:
        """Compute the weighted similarity of two texts.

        Args:
            text1: First item text
            text2: Second item text
            features1: Features of the first text
            features2: Features of the second text
            context1: Third-Sunday flag for the first text
            context2: Third-Sunday flag for the second text

        Returns:
            SimilarityResult with score, breakdown and confidence

        """
        breakdown = {
            "textual": self.textual_similarity(features1, features2),
            "structural": self.structural_similarity(features1, features2),
            "semantic": self.semantic_similarity(features1, features2),
            "contextual": self.contextual_similarity(context1, context2),
        }
        score = sum(breakdown[name] * weight for name, weight in SIMILARITY_WEIGHTS.items())
        score = max(0.0, min(1.0, score))

        return SimilarityResult(
            score=score,
            breakdown=breakdown,
            confidence=self.match_confidence(breakdown, features1, features2),
        )

    def textual_similarity(self, features1: FeatureSet, features2: FeatureSet) -> float:
        words1, words2 = features1.word_set, features2.word_set
        score = _jaccard(words1, words2)
        if score is None:
            # Two empty texts
            return 1.0
        shared_keywords = len((words1 & words2) & _IMPORTANT)
        return min(score + 0.1 * shared_keywords, 1.0)

    def structural_similarity(self, features1: FeatureSet, features2: FeatureSet) -> float:
        total = 0.0
        factors = 0

        max_words = max(features1.word_count, features2.word_count)
        if max_words > 0:
            total += 1 - abs(features1.word_count - features2.word_count) / max_words
            factors += 1

        for flag1, flag2 in zip(features1.flags(), features2.flags()):
            total += 1.0 if flag1 == flag2 else 0.0
            factors += 1

        return total / factors if factors else 0.0

    def semantic_similarity(self, features1: FeatureSet, features2: FeatureSet) -> float:
        """Weighted agreement over the classifiers both texts actually carry.

        A factor only counts when at least one side is classified, so two
        identical texts always score 1.0.
        """
        achieved = 0.0
        possible = 0.0

        for attribute, weight, neutral in _SEMANTIC_FACTORS:
            value1 = getattr(features1, attribute)
            value2 = getattr(features2, attribute)
            if value1 == neutral and value2 == neutral:
                continue
            possible += weight
            if value1 == value2:
                achieved += weight

        keyword_overlap = _jaccard(
            set(features1.important_keywords), set(features2.important_keywords)
        )
        if keyword_overlap is not None:
            possible += _KEYWORD_FACTOR_WEIGHT
            achieved += _KEYWORD_FACTOR_WEIGHT * keyword_overlap

        if possible == 0:
            return 1.0
        return achieved / possible

    def contextual_similarity(self, context1: bool, context2: bool) -> float:
        return 1.0 if bool(context1) == bool(context2) else 0.3

    def match_confidence(
        self, breakdown: dict[str, float], features1: FeatureSet, features2: FeatureSet
    ) -> float:
        confidence = sum(breakdown.values()) / len(breakdown)

        if features1.content_type == features2.content_type and features1.content_type != "other":
            confidence += 0.1
        if (
            features1.performer_type == features2.performer_type
            and features1.performer_type != "unknown"
        ):
            confidence += 0.1

        longest = max(features1.char_count, features2.char_count)
        if longest > 0:
            ratio = min(features1.char_count, features2.char_count) / longest
            if ratio < 0.5:
                confidence *= 0.8

        return max(0.0, min(1.0, confidence))

    def calculate_weight(
        self,
        score: float,
        timestamp: str | datetime | float | int,
        now: datetime | None = None,
    ) -> float:
        """Discount a similarity score by the age of the example.

        Args:
            score: Raw similarity score
            timestamp: When the example was recorded
            now: Reference time, defaults to the current time

        Returns:
            Recency-weighted score

        """
        reference = now or datetime.now(timezone.utc)
        if reference.tzinfo is None:
            reference = reference.replace(tzinfo=timezone.utc)
        try:
            recorded = _parse_timestamp(timestamp)
        except (TypeError, ValueError, OverflowError, OSError):
            logger.debug(f"Unreadable example timestamp {timestamp!r}, treating as current")
            recorded = reference

        days = max(0.0, (reference - recorded).total_seconds() / 86400)
        decay = math.exp(-days / float(TEXT_ANALYSIS_CONFIG["recency_decay_days"]))
        return score * ((1 - self.recency_weight) + self.recency_weight * decay)

    def find_similar_patterns(
        self,
        item_text: str,
        corpus: list[TrainingExample],
        is_third_sunday: bool = False,
        now: datetime | None = None,
    ) -> list[PatternMatch]:
        """Rank stored examples similar to the item text.

        Args:
            item_text: Raw text of the item being predicted
            corpus: Stored training examples
            is_third_sunday: Context flag for the item
            now: Reference time for recency weighting

        Returns:
            Matches scoring above the threshold, highest weight first

        """
        start = time.perf_counter()
        item_features = self.extractor.extract_features(item_text)
        normalized = self.extractor.normalize(item_text)

        matches = []
        for example in corpus:
            result = self.similarity(
                normalized,
                self.extractor.normalize(example.text),
                item_features,
                example.features,
                is_third_sunday,
                example.context.is_third_sunday,
            )
            if result.score > self.threshold:
                matches.append(
                    PatternMatch(
                        example=example,
                        similarity=result,
                        weight=self.calculate_weight(result.score, example.context.timestamp, now),
                    )
                )

        # sorted() is stable, so equal weights keep corpus order
        matches = sorted(matches, key=lambda m: m.weight, reverse=True)

        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.debug(
            f"Pattern matching over {len(corpus)} examples found {len(matches)} matches "
            f"in {elapsed_ms:.2f}ms"
        )
        return matches

    def get_pattern_summary(self, matches: list[PatternMatch]) -> PatternSummary:
        """Summarize a set of matches by similarity and weighted categories."""
        if not matches:
            return PatternSummary()

        content_types: dict[str, float] = defaultdict(float)
        performers: dict[str, float] = defaultdict(float)
        for match in matches:
            content_types[match.example.features.content_type] += match.weight
            performers[match.example.features.performer_type] += match.weight

        def top(weights: dict[str, float]) -> list[tuple[str, float]]:
            return sorted(weights.items(), key=lambda kv: kv[1], reverse=True)[:3]

        return PatternSummary(
            total_matches=len(matches),
            avg_similarity=sum(m.similarity.score for m in matches) / len(matches),
            avg_confidence=sum(m.similarity.confidence for m in matches) / len(matches),
            top_content_types=top(content_types),
            top_performers=top(performers),
        )
