"""Turns raw running-order text into normalized tokens and features."""

import logging
import re
from re import Pattern

from ..constants import (
    CONTENT_TYPE_KEYWORDS,
    IMPORTANT_KEYWORDS,
    PERFORMER_KEYWORDS,
    PERFORMER_TYPE_KEYWORDS,
    SONG_NUMBER_REGEX,
    SONG_TYPE_KEYWORDS,
)
from ..exceptions import FeatureExtractionError
from ..models.features import FeatureSet

logger = logging.getLogger(__name__)

SONG_NUMBER_PATTERN: Pattern = re.compile(SONG_NUMBER_REGEX, re.IGNORECASE)
_SONG_PREFIX_PATTERN: Pattern = re.compile(r"\b(sasb|sof)\s*(\d+)")
_PUNCTUATION_PATTERN: Pattern = re.compile(r"[^\w\s-]|_")
_DIGIT_RUN_PATTERN: Pattern = re.compile(r"\d+")
_WHITESPACE_PATTERN: Pattern = re.compile(r"\s+")
_PARENTHESES_PATTERN: Pattern = re.compile(r"\([^)]*\)")
_PERSON_NAME_PATTERN: Pattern = re.compile(r"^[A-Z][a-z]+$")

_SINGLE_KEYWORDS = frozenset(k for k in IMPORTANT_KEYWORDS if " " not in k)
_PHRASE_KEYWORDS = tuple(k for k in IMPORTANT_KEYWORDS if " " in k)


def _compile_buckets(table: list[tuple[str, list[str]]]) -> list[tuple[str, Pattern]]:
    return [
        (label, re.compile(r"\b(?:" + "|".join(re.escape(k) for k in keywords) + ")"))
        for label, keywords in table
    ]


_CONTENT_TYPES = _compile_buckets(CONTENT_TYPE_KEYWORDS)
_PERFORMER_TYPES = _compile_buckets(PERFORMER_TYPE_KEYWORDS)
_SONG_TYPES = _compile_buckets(SONG_TYPE_KEYWORDS)


def _fold_digits(text: str) -> str:
    # Unicode digits the ASCII-oriented patterns below would otherwise miss
    return "".join("0" if ch.isdigit() else ch for ch in text)


def _coerce_text(text: object) -> str:
    if text is None:
        return ""
    if not isinstance(text, str):
        raise FeatureExtractionError(f"Unsupported text input of type {type(text).__name__}")
    return text


def normalize(text: str | None) -> str:
    """Normalize item text for comparison.

    Lower-cases, strips punctuation except hyphens, joins song-book prefixes
    to their numbers and replaces every digit run with ``NUM``.

    Args:
        text: Raw item text

    Returns:
        Normalized text containing no digit characters

    """
    normalized = _fold_digits(_coerce_text(text)).lower().strip()
    normalized = _WHITESPACE_PATTERN.sub(" ", normalized)
    normalized = _PUNCTUATION_PATTERN.sub(" ", normalized)
    normalized = _SONG_PREFIX_PATTERN.sub(r"\1\2", normalized)
    normalized = _DIGIT_RUN_PATTERN.sub("NUM", normalized)
    return _WHITESPACE_PATTERN.sub(" ", normalized).strip()


def tokenize(text: str | None) -> list[str]:
    normalized = normalize(text)
    return normalized.split(" ") if normalized else []


def classify(text: str, buckets: list[tuple[str, Pattern]], default: str) -> str:
    """Return the label of the first bucket with a keyword in the text."""
    lowered = text.lower()
    for label, pattern in buckets:
        if pattern.search(lowered):
            return label
    return default


def classify_content_type(text: str) -> str:
    if SONG_NUMBER_PATTERN.search(text):
        return "song"
    return classify(text, _CONTENT_TYPES, "other")


def classify_performer_type(text: str) -> str:
    return classify(text, _PERFORMER_TYPES, "unknown")


def classify_song_type(text: str) -> str:
    return classify(text, _SONG_TYPES, "unknown")


def detect_person_name(text: str) -> bool:
    """Capitalized words that are not known keywords are treated as names."""
    for word in text.split():
        if _PERSON_NAME_PATTERN.match(word) and word.lower() not in IMPORTANT_KEYWORDS:
            return True
    return False


def detect_performer(text: str) -> bool:
    lowered = text.lower()
    return any(keyword in lowered for keyword in PERFORMER_KEYWORDS)


def find_important_keywords(words: list[str], normalized: str) -> list[str]:
    """Collect important keywords, matching multi-word keywords as phrases."""
    found = [word for word in words if word in _SINGLE_KEYWORDS]
    padded = f" {normalized} "
    found.extend(phrase for phrase in _PHRASE_KEYWORDS if f" {phrase} " in padded)
    return found


class TextFeatureExtractor:
    """Extracts comparable features from program item text."""

    def normalize(self, text: str | None) -> str:
        return normalize(text)

    def extract_features(self, text: str | None) -> FeatureSet:
        """Extract features from raw text.

        Empty or unusable input produces a neutral feature set instead of an error.

        Args:
            text: Raw item text

        Returns:
            FeatureSet for the text

        """
        try:
            return self._extract(_coerce_text(text))
        except FeatureExtractionError as e:
            logger.warning(f"Falling back to neutral features: {e}")
            return FeatureSet()

    def _extract(self, text: str) -> FeatureSet:
        normalized = normalize(text)
        words = normalized.split(" ") if normalized else []
        unique_words = list(dict.fromkeys(words))
        stripped = text.strip()

        return FeatureSet(
            word_count=len(words),
            char_count=len(normalized),
            words=unique_words,
            unique_word_count=len(unique_words),
            important_keywords=find_important_keywords(words, normalized),
            has_numbers=any(ch.isdigit() for ch in text),
            has_song_number=bool(SONG_NUMBER_PATTERN.search(text)),
            has_person_name=detect_person_name(text),
            has_performer=detect_performer(text),
            starts_with_number=stripped[:1].isdigit(),
            ends_with_dash=stripped.endswith("-"),
            has_parentheses=bool(_PARENTHESES_PATTERN.search(text)),
            content_type=classify_content_type(text),
            performer_type=classify_performer_type(text),
            song_type=classify_song_type(text),
        )
