"""Feature set derived from a program item's text."""

from dataclasses import dataclass, field

# Boolean features compared when scoring structural similarity
STRUCTURAL_FLAGS: tuple[str, ...] = (
    "has_numbers",
    "has_song_number",
    "has_person_name",
    "has_performer",
    "starts_with_number",
    "ends_with_dash",
    "has_parentheses",
)


@dataclass
class FeatureSet:
    """Counts, keyword hits, structure flags and classifications for one text."""

    word_count: int = 0
    char_count: int = 0
    words: list[str] = field(default_factory=list)
    unique_word_count: int = 0
    important_keywords: list[str] = field(default_factory=list)

    has_numbers: bool = False
    has_song_number: bool = False
    has_person_name: bool = False
    has_performer: bool = False
    starts_with_number: bool = False
    ends_with_dash: bool = False
    has_parentheses: bool = False

    content_type: str = "other"
    performer_type: str = "unknown"
    song_type: str = "unknown"

    @property
    def word_set(self) -> set[str]:
        return set(self.words)

    def flags(self) -> tuple[bool, ...]:
        """Structural flags in a fixed order."""
        return tuple(getattr(self, name) for name in STRUCTURAL_FLAGS)
