"""Fixed vocabularies and rule tables used across the Production Sheet Assistant."""

# Keywords that carry extra weight when comparing item texts
IMPORTANT_KEYWORDS: list[str] = [
    "sasb", "sof", "song", "hymn", "worship", "prayer", "reading", "message",
    "sermon", "offering", "announcement", "band", "piano", "wg", "worship group",
    "yp", "young people", "youth", "video", "presentation", "benediction",
]

# Substrings that mark an item as having a named performer group
PERFORMER_KEYWORDS: list[str] = [
    "band", "piano", "wg", "worship group", "choir", "solo", "quartet",
]

# Classifier buckets, checked in order; a keyword matches at the start of a word
CONTENT_TYPE_KEYWORDS: list[tuple[str, list[str]]] = [
    ("song", ["song", "hymn", "chorus"]),
    ("prayer", ["prayer"]),
    ("reading", ["reading", "scripture"]),
    ("message", ["message", "sermon"]),
    ("announcement", ["announcement"]),
    ("offering", ["offering"]),
    ("media", ["video", "presentation"]),
    ("youth", ["yp", "youth", "young people"]),
    ("benediction", ["benediction", "blessing"]),
]

PERFORMER_TYPE_KEYWORDS: list[tuple[str, list[str]]] = [
    ("band", ["band"]),
    ("piano", ["piano"]),
    ("worship_group", ["wg", "worship group"]),
    ("choir", ["choir"]),
    ("solo", ["solo"]),
    ("quartet", ["quartet"]),
]

SONG_TYPE_KEYWORDS: list[tuple[str, list[str]]] = [
    ("sasb", ["sasb"]),
    ("sof", ["sof"]),
    ("hymn", ["hymn"]),
    ("chorus", ["chorus"]),
    ("worship", ["worship"]),
]

# Names and placements recognised at the end of a running-order line
ITEM_PERFORMERS: list[str] = [
    "wg", "worship group", "band", "piano", "pam", "nigel", "nige", "toni",
    "elizabeth", "emma", "verity", "hope", "handheld", "lectern", "amb",
]

UNMATCHED_NOTE = "Unmatched - requires manual input"

# Baseline auto-fill table, evaluated top to bottom
AUTO_FILL_RULES: dict[str, dict] = {
    "songs": {
        "keywords": ["sasb", "sof", "song", "hymn", "chorus", "worship"],
        "default": {"camera": "2", "scene": "1", "mic": "Amb", "notes": ""},
        "wg": {"camera": "2", "scene": "1", "mic": "2,3,4", "notes": ""},
        "piano": {"camera": "3", "scene": "1", "mic": "Amb", "notes": ""},
    },
    "offering": {
        "keywords": ["offering"],
        "default": {"camera": "1", "scene": "1", "mic": "AV", "notes": ""},
        "with_announcements": {"camera": "2/1", "scene": "1", "mic": "2/AV", "notes": ""},
    },
    "announcements": {
        "keywords": ["announcement"],
        "default": {"camera": "4", "scene": "1", "mic": "Lectern", "notes": ""},
    },
    "yp_spot": {
        "keywords": ["yp", "young people", "youth"],
        "default": {"camera": "3", "scene": "2", "mic": "Headset", "notes": ""},
        "third_sunday": {"camera": "3", "scene": "2", "mic": "Handheld", "notes": ""},
    },
    "bible_reading": {
        "keywords": ["bible reading", "scripture", "reading"],
        "default": {"camera": "4", "scene": "1", "mic": "Lectern", "notes": ""},
        "third_sunday": {"camera": "2", "scene": "1", "mic": "2", "notes": ""},
    },
    "benediction": {
        "keywords": ["benediction"],
        "default": {"camera": "3", "scene": "1", "mic": "Lectern", "notes": ""},
    },
    "message": {
        "keywords": ["message", "sermon", "address"],
        "default": {"camera": "4", "scene": "3", "mic": "Lectern", "notes": ""},
    },
    "prayer": {
        "keywords": ["prayer"],
        "default": {"camera": "4", "scene": "1", "mic": "Lectern", "notes": ""},
    },
    "band": {
        "keywords": ["band"],
        "default": {"camera": "2", "scene": "1", "mic": "Amb", "notes": ""},
    },
}

# Settings for lines recognised only by item type or trailing performer
ITEM_TYPE_DEFAULTS: dict[str, dict[str, str]] = {
    "video": {"camera": "1", "scene": "1", "mic": "AV", "notes": ""},
    "welcome": {"camera": "3", "scene": "1", "mic": "2", "notes": ""},
    "prayer": {"camera": "4", "scene": "1", "mic": "Lectern", "notes": ""},
    "message": {"camera": "4", "scene": "3", "mic": "Lectern", "notes": ""},
    "reading": {"camera": "4", "scene": "1", "mic": "Lectern", "notes": ""},
    "announcements": {"camera": "4", "scene": "1", "mic": "Lectern", "notes": ""},
    "offering": {"camera": "1", "scene": "1", "mic": "AV", "notes": ""},
}

PERFORMER_DEFAULTS: dict[str, dict[str, str]] = {
    "wg": {"camera": "2", "scene": "1", "mic": "2,3,4", "notes": ""},
    "worship group": {"camera": "2", "scene": "1", "mic": "2,3,4", "notes": ""},
    "band": {"camera": "2", "scene": "1", "mic": "Amb", "notes": ""},
    "piano": {"camera": "3", "scene": "1", "mic": "Amb", "notes": ""},
    "handheld": {"camera": "3", "scene": "2", "mic": "Handheld", "notes": ""},
    "lectern": {"camera": "4", "scene": "1", "mic": "Lectern", "notes": ""},
}

EXAMPLE_PROGRAM = """Opening Prayer
SASB 123 Band
Welcome & Announcements
SOF 456 WG
Bible Reading - John 3:16
YP Spot - Youth Testimony
Message - Pastor John
Offering
SASB 789
Closing Prayer"""

# Song-book reference such as "SASB 123" or "SOF456"
SONG_NUMBER_REGEX = r"\b(sasb|sof)\s*\d+"
