"""Tests for the RuleEngine class and line parsing."""

import pytest

from production_sheet.constants import UNMATCHED_NOTE
from production_sheet.processing.rule_engine import (
    RuleEngine,
    clean_item_text,
    parse_item_text,
    string_similarity,
)


@pytest.fixture
def engine():
    return RuleEngine()


class TestParseItemText:
    """Test suite for parse_item_text."""

    def test_song_with_performer(self):
        parsed = parse_item_text("SOF 456 - Here I Am to Worship WG")
        assert parsed.has_song_number is True
        assert parsed.song_number == "456"
        assert parsed.performer == "wg"

    def test_item_type(self):
        assert parse_item_text("Welcome everyone").item_type == "welcome"
        assert parse_item_text("Watch https://example.org/clip").item_type == "video"
        assert parse_item_text("Tea and coffee").item_type is None

    def test_clean_item_text(self):
        assert clean_item_text("  Opening   Prayer \t") == "Opening Prayer"


class TestApplyRules:
    """Test suite for RuleEngine.apply_rules."""

    @pytest.mark.parametrize(
        "text,rule,camera,mic",
        [
            ("SOF 456 - Here I Am to Worship WG", "songs:wg", "2", "2,3,4"),
            ("SASB 234 Piano Solo", "songs:piano", "3", "Amb"),
            ("SASB 123 Band", "songs:band", "2", "Amb"),
            ("SASB 789", "songs", "2", "Amb"),
            ("Offering", "offering", "1", "AV"),
            ("Offering and Announcements", "offering:announcements", "2/1", "2/AV"),
            ("Welcome & Announcements", "announcements", "4", "Lectern"),
            ("YP Spot - Youth Testimony", "yp_spot", "3", "Headset"),
            ("Bible Reading - John 3:16", "bible_reading", "4", "Lectern"),
            ("Benediction", "benediction", "3", "Lectern"),
            ("Message - Pastor John", "message", "4", "Lectern"),
            ("Opening Prayer", "prayer", "4", "Lectern"),
            ("Welcome to church", "item_type:welcome", "3", "2"),
        ],
    )
    def test_rules(self, engine, text, rule, camera, mic):
        """Test the rule matched for typical running-order lines."""
        result = engine.apply_rules(text)
        assert result.rule == rule
        assert result.values["camera"] == camera
        assert result.values["mic"] == mic

    def test_third_sunday_variants(self, engine):
        """Test rules that change on third-Sunday services."""
        assert engine.apply_rules("YP Spot", is_third_sunday=True).values["mic"] == "Handheld"
        assert engine.apply_rules("Bible Reading", is_third_sunday=True).rule == "bible_reading:third_sunday"
        assert engine.apply_rules("Opening Prayer", is_third_sunday=True).rule == "prayer"

    def test_unmatched(self, engine):
        result = engine.apply_rules("Tea and coffee")
        assert result.matched is False
        assert result.values == {"notes": UNMATCHED_NOTE}


class TestSuggestionsAndValidation:
    """Test suite for suggestions and row validation."""

    def test_suggestions_ranked(self, engine):
        suggestions = engine.get_suggestions("Offer up")
        assert suggestions
        assert suggestions[0]["rule"] == "offering"
        confidences = [s["confidence"] for s in suggestions]
        assert confidences == sorted(confidences, reverse=True)

    def test_validate_row(self, engine):
        assert engine.validate_row({"camera": "2", "scene": "1", "mic": "Amb"})["valid"] is True
        result = engine.validate_row({"camera": "2", "scene": " ", "mic": ""})
        assert result["valid"] is False
        assert result["issues"] == ["Missing scene setting", "Missing mic setting"]
        assert engine.validate_row({"camera": "9", "scene": "1", "mic": "Amb"})["warnings"] == [
            "Unusual camera value '9'"
        ]

    def test_string_similarity(self):
        assert string_similarity("", "") == 1.0
        assert string_similarity("offering", "offering") == 1.0
        assert string_similarity("kitten", "sitting") == pytest.approx(4 / 7)
