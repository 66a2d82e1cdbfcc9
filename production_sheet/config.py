"""Configuration settings for the Production Sheet Assistant."""

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Technical fields predicted for every program item (order fixes neural output units)
TECH_FIELDS: tuple[str, ...] = ("camera", "scene", "mic", "notes", "stream")

# Learning behaviour
LEARNING_CONFIG: dict[str, float | int] = {
    "min_confidence_threshold": 0.75,  # Below this the AI value is not auto-filled
    "min_examples_required": 5,
    "recency_weight": 0.7,
    "max_examples_per_pattern": 100,
}

# Confidence scores below this are reported as zero
MIN_CONFIDENCE = 0.3

# Text analysis
TEXT_ANALYSIS_CONFIG: dict[str, float | int] = {
    "similarity_threshold": 0.6,
    "min_word_length": 2,
    "recency_decay_days": 30,
}

SIMILARITY_WEIGHTS: dict[str, float] = {
    "textual": 0.4,
    "structural": 0.2,
    "semantic": 0.3,
    "contextual": 0.1,
}

# Neural network
NEURAL_CONFIG: dict[str, float | int] = {
    "hidden_nodes": 64,
    "learning_rate": 0.01,
    "momentum": 0.9,
    "max_features": 100,
    "reserved_features": 10,
    "basic_features": 8,
    "bootstrap_epochs": 20,
}

# Performance
PERFORMANCE_CONFIG: dict[str, float | int] = {
    "max_prediction_time_ms": 2000,
    "max_patterns_to_analyze": 50,
}

# Statistics
STATISTICS_CONFIG: dict[str, int] = {
    "history_limit": 1000,
    "persisted_history_limit": 500,
    "recent_window": 100,
    "trend_window": 20,
}

# Phase thresholds over cumulative learned items; the single source for every transition
PHASE_THRESHOLDS: dict[str, int] = {
    "PATTERN_LEARNING": 50,
    "HYBRID": 200,
    "NEURAL_PRIMARY": 300,
}

# Overall accuracy a phase requires before it can be entered (strictly greater than)
PHASE_ACCURACY_GATES: dict[str, float] = {
    "HYBRID": 0.6,
    "NEURAL_PRIMARY": 0.8,
}

PHASE_WEIGHTS: dict[str, tuple[float, float]] = {
    # phase: (ai_weight, rules_weight)
    "RULE_BASED": (0.2, 0.8),
    "PATTERN_LEARNING": (0.4, 0.6),
    "HYBRID": (0.6, 0.4),
    "NEURAL_PRIMARY": (0.85, 0.15),
}

PHASE_DESCRIPTIONS: dict[str, str] = {
    "RULE_BASED": "Learning basics, mostly using rules",
    "PATTERN_LEARNING": "Starting to learn patterns from data",
    "HYBRID": "Balancing pattern matching with the neural network",
    "NEURAL_PRIMARY": "Neural network as primary confidence source",
}

# Per-field auto-fill settings
FIELD_CONFIGS: dict[str, dict] = {
    "camera": {"valid_values": ["1", "2", "3", "4"], "min_confidence": 0.8},
    "scene": {"valid_values": ["1", "2", "3"], "min_confidence": 0.75},
    "mic": {
        "valid_values": [
            "Amb", "Lectern", "Headset", "Handheld", "AV",
            "2", "3", "4", "2,3,4", "2/AV", "2/1",
        ],
        "min_confidence": 0.7,
    },
    "stream": {"valid_values": ["1", "2", ""], "min_confidence": 0.6},
    "notes": {"valid_values": [], "min_confidence": 0.5},
}

# Persistence
STORAGE_KEYS: dict[str, str] = {
    "patterns": "patterns",
    "statistics": "statistics",
    "neural_network": "neural_network",
    "system_state": "system_state",
}
DEFAULT_COLLECTION = "ai_data"
DATA_SOURCE_TAG = "ai-system"

# Logging configuration
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_LEVEL = "INFO"


def should_use_ai(field: str, confidence: float, example_count: int) -> bool:
    """Decide whether a learned value is trusted enough to replace the rule value.

    Args:
        field: Tech field name
        confidence: Confidence of the learned prediction
        example_count: Number of learned items so far

    Returns:
        True if the learned value should be used

    """
    field_config = FIELD_CONFIGS.get(field)
    if field_config is None:
        return False
    return (
        confidence >= field_config["min_confidence"]
        and example_count >= LEARNING_CONFIG["min_examples_required"]
    )


@dataclass
class AssistantSettings:
    """Runtime settings read from the environment."""

    storage_dir: Path = Path(".production_sheet")
    firestore_project: str | None = None
    firestore_collection: str = DEFAULT_COLLECTION
    credentials_path: str | None = None
    log_level: str = LOG_LEVEL
    hidden_nodes: int = int(NEURAL_CONFIG["hidden_nodes"])
    random_seed: int | None = None

    @property
    def use_firestore(self) -> bool:
        return bool(self.firestore_project)

    @classmethod
    def from_env(cls, env_file: str | Path | None = None) -> "AssistantSettings":
        """Load settings from environment variables, reading a .env file first.

        Args:
            env_file: Optional explicit .env path

        Returns:
            Populated settings

        """
        if env_file:
            load_dotenv(env_file)
        else:
            load_dotenv()

        seed = os.getenv("SHEET_RANDOM_SEED")
        return cls(
            storage_dir=Path(os.getenv("SHEET_STORAGE_DIR", ".production_sheet")),
            firestore_project=os.getenv("SHEET_FIRESTORE_PROJECT") or None,
            firestore_collection=os.getenv("SHEET_FIRESTORE_COLLECTION", DEFAULT_COLLECTION),
            credentials_path=os.getenv("GOOGLE_APPLICATION_CREDENTIALS") or None,
            log_level=os.getenv("SHEET_LOG_LEVEL", LOG_LEVEL).upper(),
            hidden_nodes=int(os.getenv("SHEET_HIDDEN_NODES", str(NEURAL_CONFIG["hidden_nodes"]))),
            random_seed=int(seed) if seed else None,
        )
