"""Keyword rules that supply baseline tech values for running-order lines."""

import logging
import re
from dataclasses import dataclass, field

from ..config import FIELD_CONFIGS
from ..constants import (
    AUTO_FILL_RULES,
    ITEM_PERFORMERS,
    ITEM_TYPE_DEFAULTS,
    PERFORMER_DEFAULTS,
    SONG_NUMBER_REGEX,
    UNMATCHED_NOTE,
)

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")
_SONG_NUMBER = re.compile(SONG_NUMBER_REGEX, re.IGNORECASE)

# Item types recognised by substring, checked in order
_ITEM_TYPE_MARKERS: list[tuple[str, tuple[str, ...]]] = [
    ("welcome", ("welcome",)),
    ("prayer", ("prayer",)),
    ("message", ("message",)),
    ("reading", ("reading",)),
    ("announcements", ("announcement",)),
    ("offering", ("offering",)),
]


@dataclass
class ParsedItem:
    """Song number, item type and trailing performer found in a line."""

    has_song_number: bool = False
    song_number: str | None = None
    item_type: str | None = None
    performer: str | None = None
    has_video: bool = False


@dataclass
class RuleResult:
    """Values produced by the rule table for one line."""

    values: dict[str, str] = field(default_factory=dict)
    rule: str | None = None

    @property
    def matched(self) -> bool:
        return self.rule is not None


def clean_item_text(text: str) -> str:
    return _WHITESPACE.sub(" ", text or "").strip()


def contains_any(text: str, keywords: list[str]) -> bool:
    return any(keyword in text for keyword in keywords)


def parse_item_text(text: str) -> ParsedItem:
    """Extract song number, item type and performer from a running-order line.

    Args:
        text: Cleaned line text

    Returns:
        ParsedItem describing the line

    """
    info = ParsedItem()
    lowered = text.lower()

    song_match = _SONG_NUMBER.search(text)
    if song_match:
        info.has_song_number = True
        info.song_number = re.sub(r"\D", "", song_match.group(0))

    last_words = lowered.split()[-3:]
    for performer in ITEM_PERFORMERS:
        if any(performer in word for word in last_words):
            info.performer = performer
            break

    if "video" in lowered or "https://" in text or "youtube" in lowered:
        info.has_video = True
        info.item_type = "video"
    else:
        for item_type, markers in _ITEM_TYPE_MARKERS:
            if contains_any(lowered, list(markers)):
                info.item_type = item_type
                break

    return info


def detect_by_item_type(parsed: ParsedItem) -> tuple[str, dict[str, str]] | None:
    if parsed.item_type and parsed.item_type in ITEM_TYPE_DEFAULTS:
        return f"item_type:{parsed.item_type}", dict(ITEM_TYPE_DEFAULTS[parsed.item_type])
    if parsed.performer and parsed.performer in PERFORMER_DEFAULTS:
        return f"performer:{parsed.performer}", dict(PERFORMER_DEFAULTS[parsed.performer])
    return None


class RuleEngine:
    """Deterministic keyword-to-defaults mapping."""

    def apply_rules(self, item_text: str, is_third_sunday: bool = False) -> RuleResult:
        """Look up baseline tech values for a line.

        Args:
            item_text: Raw running-order line
            is_third_sunday: Whether the service is a third-Sunday service

        Returns:
            RuleResult with the matched rule name, or rule None when unmatched

        """
        text = clean_item_text(item_text)
        lowered = text.lower()
        parsed = parse_item_text(text)
        rules = AUTO_FILL_RULES

        if contains_any(lowered, rules["songs"]["keywords"]) or parsed.has_song_number:
            if parsed.performer == "piano" or "piano" in lowered:
                return RuleResult(dict(rules["songs"]["piano"]), "songs:piano")
            if parsed.performer in ("wg", "worship group") or contains_any(lowered, ["wg", "worship group"]):
                return RuleResult(dict(rules["songs"]["wg"]), "songs:wg")
            if parsed.performer == "band" or "band" in lowered:
                return RuleResult(dict(rules["band"]["default"]), "songs:band")
            return RuleResult(dict(rules["songs"]["default"]), "songs")

        if contains_any(lowered, rules["offering"]["keywords"]):
            if "announcement" in lowered:
                return RuleResult(dict(rules["offering"]["with_announcements"]), "offering:announcements")
            return RuleResult(dict(rules["offering"]["default"]), "offering")

        for name in ("announcements", "yp_spot", "bible_reading", "benediction", "message", "prayer", "band"):
            rule = rules[name]
            if contains_any(lowered, rule["keywords"]):
                if is_third_sunday and "third_sunday" in rule:
                    return RuleResult(dict(rule["third_sunday"]), f"{name}:third_sunday")
                return RuleResult(dict(rule["default"]), name)

        if parsed.item_type or parsed.performer:
            detected = detect_by_item_type(parsed)
            if detected is not None:
                rule_name, values = detected
                return RuleResult(values, rule_name)

        logger.debug(f"No rule matched '{text}'")
        return RuleResult({"notes": UNMATCHED_NOTE}, None)

    def get_suggestions(self, text: str) -> list[dict[str, object]]:
        """Rank rules whose keywords partially appear in an unmatched line."""
        lowered = text.lower()
        suggestions = []
        for rule_name, rule in AUTO_FILL_RULES.items():
            for keyword in rule["keywords"]:
                if keyword[:3] in lowered:
                    suggestions.append(
                        {
                            "rule": rule_name,
                            "keyword": keyword,
                            "confidence": string_similarity(lowered, keyword),
                        }
                    )
        return sorted(suggestions, key=lambda s: s["confidence"], reverse=True)

    def validate_row(self, values: dict[str, str]) -> dict[str, object]:
        issues = []
        warnings = []
        for name in ("camera", "scene", "mic"):
            value = (values.get(name) or "").strip()
            if not value:
                issues.append(f"Missing {name} setting")
            elif value not in FIELD_CONFIGS[name]["valid_values"]:
                warnings.append(f"Unusual {name} value '{value}'")
        return {"valid": not issues, "issues": issues, "warnings": warnings}


def edit_distance(first: str, second: str) -> int:
    previous = list(range(len(second) + 1))
    for i, char1 in enumerate(first, start=1):
        current = [i]
        for j, char2 in enumerate(second, start=1):
            cost = 0 if char1 == char2 else 1
            current.append(min(previous[j] + 1, current[j - 1] + 1, previous[j - 1] + cost))
        previous = current
    return previous[-1]


def string_similarity(first: str, second: str) -> float:
    longer, shorter = (first, second) if len(first) > len(second) else (second, first)
    if not longer:
        return 1.0
    return (len(longer) - edit_distance(longer, shorter)) / len(longer)
