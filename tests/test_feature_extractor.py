"""Tests for text normalization and feature extraction."""

import pytest

from production_sheet.learning.feature_extractor import (
    TextFeatureExtractor,
    classify_content_type,
    classify_performer_type,
    classify_song_type,
    normalize,
    tokenize,
)


@pytest.fixture
def extractor():
    """Create a TextFeatureExtractor for testing."""
    return TextFeatureExtractor()


class TestNormalize:
    """Test suite for normalize."""

    def test_song_prefix_joined_and_digits_replaced(self):
        """Test that song-book references collapse to a single token."""
        assert normalize("SASB 123 - Amazing Grace!") == "sasbNUM - amazing grace"
        assert normalize("sof456") == "sofNUM"

    def test_normalized_text_has_no_digits(self):
        """Test that no digit survives normalization."""
        for text in ["Psalm 23:1-6", "SASB 001", "Item ٣ (Arabic digit)", "2024 Review"]:
            assert not any(ch.isdigit() for ch in normalize(text))

    def test_punctuation_removed_hyphen_kept(self):
        """Test punctuation handling."""
        assert normalize("Welcome,  &  Notices...") == "welcome notices"
        assert normalize("Call-to-worship") == "call-to-worship"
        assert normalize("snake_case") == "snake case"

    def test_empty_and_none(self):
        """Test that empty input normalizes to an empty string."""
        assert normalize("") == ""
        assert normalize(None) == ""
        assert tokenize("   ") == []


class TestClassifiers:
    """Test suite for the content, performer and song classifiers."""

    def test_song_number_wins(self):
        """Test that a song-book reference marks the item as a song."""
        assert classify_content_type("SASB 234 Prayer of Dedication") == "song"

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("Opening Prayer", "prayer"),
            ("Bible Reading - John 3:16", "reading"),
            ("Message - Pastor John", "message"),
            ("Welcome & Announcements", "announcement"),
            ("Offering", "offering"),
            ("Video presentation", "media"),
            ("YP Spot - Youth Testimony", "youth"),
            ("Benediction", "benediction"),
            ("Tea and coffee", "other"),
        ],
    )
    def test_content_type(self, text, expected):
        """Test content type buckets."""
        assert classify_content_type(text) == expected

    def test_keywords_match_word_starts_only(self):
        """Test that a keyword inside another word does not match."""
        assert classify_content_type("Psong") == "other"

    def test_performer_and_song_type(self):
        """Test performer and song type buckets."""
        assert classify_performer_type("SOF 456 WG") == "worship_group"
        assert classify_performer_type("Piano Solo") == "piano"
        assert classify_performer_type("Opening Prayer") == "unknown"
        assert classify_song_type("SASB 123") == "sasb"
        assert classify_song_type("Closing hymn") == "hymn"


class TestTextFeatureExtractor:
    """Test suite for TextFeatureExtractor."""

    def test_extract_song_features(self, extractor):
        """Test features of a typical song line."""
        features = extractor.extract_features("SASB 234 Piano Solo")

        assert features.words == ["sasbNUM", "piano", "solo"]
        assert features.word_count == 3
        assert features.has_numbers is True
        assert features.has_song_number is True
        assert features.has_performer is True
        assert features.content_type == "song"
        assert features.performer_type == "piano"
        assert features.song_type == "sasb"
        assert "piano" in features.important_keywords

    def test_multi_word_keyword_found(self, extractor):
        """Test that phrase keywords are detected."""
        features = extractor.extract_features("Chorus by the Worship Group")
        assert "worship group" in features.important_keywords

    def test_structure_flags(self, extractor):
        """Test starts-with-number, trailing dash and parentheses flags."""
        features = extractor.extract_features("3 Notices (brief) -")
        assert features.starts_with_number is True
        assert features.ends_with_dash is True
        assert features.has_parentheses is True

    def test_person_name(self, extractor):
        """Test capitalized non-keyword words count as names."""
        assert extractor.extract_features("Message - Pastor John").has_person_name is True
        assert extractor.extract_features("offering").has_person_name is False

    def test_empty_text_gives_neutral_features(self, extractor):
        """Test that empty input yields empty features without raising."""
        features = extractor.extract_features("")
        assert features.words == []
        assert features.word_count == 0
        assert features.content_type == "other"

    def test_unsupported_input_gives_neutral_features(self, extractor):
        """Test that a non-string input is tolerated."""
        features = extractor.extract_features(12345)
        assert features.word_count == 0
        assert features.performer_type == "unknown"
