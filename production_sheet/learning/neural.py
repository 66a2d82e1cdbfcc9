"""Small feed-forward network that scores per-field confidence.

The network never chooses field values. Its sigmoid outputs are read as a
confidence signal per tech field, trained on whether the user filled the
field at all.
"""

import logging
import re
from collections import Counter
from dataclasses import dataclass
from typing import Any

import numpy as np
from pydantic import ValidationError as SnapshotValidationError

from ..config import NEURAL_CONFIG, TECH_FIELDS, TEXT_ANALYSIS_CONFIG
from ..exceptions import PredictionError, TrainingError
from ..models.program import ProgramItem
from ..models.snapshots import EncoderSnapshot, NetworkSnapshot

logger = logging.getLogger(__name__)

_NON_WORD = re.compile(r"[^\w\s]")
_HAS_DIGIT = re.compile(r"\d")


@dataclass
class ForwardResult:
    output: np.ndarray
    hidden_activation: np.ndarray


def _item_texts(item: ProgramItem) -> list[str]:
    return [item.title or "", item.type or "", item.performer or "", item.notes or ""]


def _sigmoid(x: np.ndarray) -> np.ndarray:
    return 1.0 / (1.0 + np.exp(-np.clip(x, -500, 500)))


class FeatureEncoder:
    """Encodes program items as fixed-width numeric vectors.

    Before a vocabulary is built, a short heuristic vector is produced so the
    network can still run on a cold start.
    """

    def __init__(
        self,
        max_features: int = int(NEURAL_CONFIG["max_features"]),
        reserved_features: int = int(NEURAL_CONFIG["reserved_features"]),
    ) -> None:
        self.max_features = max_features
        self.reserved_features = reserved_features
        self.word_to_index: dict[str, int] = {}
        self.is_built = False

    @property
    def vocabulary_limit(self) -> int:
        return self.max_features - self.reserved_features

    @property
    def encoded_size(self) -> int:
        return self.max_features if self.is_built else int(NEURAL_CONFIG["basic_features"])

    @staticmethod
    def tokenize(text: str) -> list[str]:
        min_length = TEXT_ANALYSIS_CONFIG["min_word_length"]
        return [w for w in _NON_WORD.sub(" ", text.lower()).split() if len(w) >= min_length]

    def build_vocabulary(self, items: list[ProgramItem]) -> None:
        """Keep the most common tokens across every text field of the items.

        Args:
            items: Program items to learn the vocabulary from

        """
        counts: Counter[str] = Counter()
        for item in items:
            for text in _item_texts(item):
                counts.update(self.tokenize(text))

        # most_common keeps first-seen order among equal counts
        words = [word for word, _ in counts.most_common(self.vocabulary_limit)]
        self.word_to_index = {word: index for index, word in enumerate(words)}
        self.is_built = True
        logger.info(f"Vocabulary built: {len(self.word_to_index)} words")

    def encode(self, item: ProgramItem) -> np.ndarray:
        if not self.is_built:
            return self.encode_basic(item)

        features = np.zeros(self.max_features)
        for text in _item_texts(item):
            for word in self.tokenize(text):
                index = self.word_to_index.get(word)
                if index is not None:
                    features[index] = 1.0

        special = self.vocabulary_limit
        title = item.title or ""
        features[special] = 1.0 if _HAS_DIGIT.search(title) else 0.0
        features[special + 1] = min(1.0, len(title) / 50)
        features[special + 2] = 1.0 if (item.performer or "").strip() else 0.0
        features[special + 3] = min(1.0, item.index / 20) if item.index else 0.0
        return features

    def encode_basic(self, item: ProgramItem) -> np.ndarray:
        title = item.title or ""
        performer = item.performer or ""
        return np.array(
            [
                1.0 if title else 0.0,
                1.0 if re.search(r"song|hymn|music", title, re.IGNORECASE) else 0.0,
                1.0 if re.search(r"prayer|scripture|sermon", title, re.IGNORECASE) else 0.0,
                1.0 if re.search(r"piano|organ|guitar", performer, re.IGNORECASE) else 0.0,
                1.0 if re.search(r"choir|ensemble|quartet", performer, re.IGNORECASE) else 0.0,
                1.0 if _HAS_DIGIT.search(title) else 0.0,
                1.0 if performer else 0.0,
                1.0 if item.type else 0.0,
            ]
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "word_to_index": dict(self.word_to_index),
            "max_features": self.max_features,
            "is_built": self.is_built,
        }

    def load(self, snapshot: EncoderSnapshot) -> None:
        self.word_to_index = dict(snapshot.word_to_index)
        self.max_features = snapshot.max_features
        self.is_built = snapshot.is_built


class NeuralPredictor:
    """One hidden ReLU layer, sigmoid outputs, one output per tech field."""

    def __init__(
        self,
        hidden_size: int = int(NEURAL_CONFIG["hidden_nodes"]),
        learning_rate: float = float(NEURAL_CONFIG["learning_rate"]),
        momentum: float = float(NEURAL_CONFIG["momentum"]),
        seed: int | None = None,
        encoder: FeatureEncoder | None = None,
    ) -> None:
        self.hidden_size = hidden_size
        self.output_size = len(TECH_FIELDS)
        self.learning_rate = learning_rate
        self.momentum = momentum
        self.encoder = encoder or FeatureEncoder()
        self._rng = np.random.default_rng(seed)

        self.input_size = 0
        self.weights_input_hidden: np.ndarray | None = None
        self.weights_hidden_output: np.ndarray | None = None
        self.hidden_bias: np.ndarray | None = None
        self.output_bias: np.ndarray | None = None
        self._delta_input_hidden: np.ndarray | None = None
        self._delta_hidden_output: np.ndarray | None = None
        self.is_initialized = False

    def initialize_network(self, input_size: int) -> None:
        """Xavier-initialize weights for the given input width."""
        self.input_size = input_size
        limit = np.sqrt(2.0 / (input_size + self.hidden_size))

        self.weights_input_hidden = self._rng.uniform(-limit, limit, (input_size, self.hidden_size))
        self.weights_hidden_output = self._rng.uniform(
            -limit, limit, (self.hidden_size, self.output_size)
        )
        self.hidden_bias = np.zeros(self.hidden_size)
        self.output_bias = np.zeros(self.output_size)
        self._reset_momentum()

        self.is_initialized = True
        logger.info(
            f"Network initialized: {self.input_size} -> {self.hidden_size} -> {self.output_size}"
        )

    def _reset_momentum(self) -> None:
        self._delta_input_hidden = np.zeros((self.input_size, self.hidden_size))
        self._delta_hidden_output = np.zeros((self.hidden_size, self.output_size))

    def forward(self, features: np.ndarray | list[float]) -> ForwardResult:
        """Run one forward pass, initializing the network on first use.

        Args:
            features: Encoded feature vector

        Returns:
            ForwardResult with sigmoid outputs and hidden activations

        Raises:
            PredictionError: If the vector width differs from the network input

        """
        inputs = np.asarray(features, dtype=float)
        if not self.is_initialized:
            self.initialize_network(inputs.shape[0])
        if inputs.shape != (self.input_size,):
            raise PredictionError(
                f"Feature vector has {inputs.size} values, network expects {self.input_size}"
            )

        hidden = np.maximum(0.0, inputs @ self.weights_input_hidden + self.hidden_bias)
        output = _sigmoid(hidden @ self.weights_hidden_output + self.output_bias)
        return ForwardResult(output=output, hidden_activation=hidden)

    def predict_confidences(self, item: ProgramItem) -> dict[str, float] | None:
        """Per-field confidence for an item, or None before the network exists."""
        if not self.is_initialized:
            return None
        result = self.forward(self.encoder.encode(item))
        return {name: float(result.output[i]) for i, name in enumerate(TECH_FIELDS)}

    def create_target_vector(self, target_values: dict[str, str]) -> np.ndarray:
        if not isinstance(target_values, dict):
            raise TrainingError(f"Target values must be a mapping, got {type(target_values).__name__}")
        return np.array(
            [1.0 if str(target_values.get(name) or "").strip() else 0.0 for name in TECH_FIELDS]
        )

    def train_single(self, item: ProgramItem, target_values: dict[str, str]) -> float | None:
        """Backpropagate one example with momentum.

        Training is best-effort: problems are logged and the call returns None.

        Args:
            item: Program item the user corrected
            target_values: Values the user confirmed

        Returns:
            Squared error before the update, or None if nothing was trained

        """
        if not self.is_initialized:
            logger.warning("Cannot train: network not initialized")
            return None

        try:
            target = self.create_target_vector(target_values)
            features = self.encoder.encode(item)
            result = self.forward(features)
        except (TrainingError, PredictionError) as e:
            logger.warning(f"Skipping training example: {e}")
            return None

        self._backpropagate(features, result.hidden_activation, result.output, target)
        return float(np.sum((target - result.output) ** 2))

    def _backpropagate(
        self,
        inputs: np.ndarray,
        hidden: np.ndarray,
        output: np.ndarray,
        target: np.ndarray,
    ) -> None:
        output_error = (target - output) * output * (1.0 - output)
        hidden_error = (self.weights_hidden_output @ output_error) * (hidden > 0)

        delta_hidden_output = (
            self.learning_rate * np.outer(hidden, output_error)
            + self.momentum * self._delta_hidden_output
        )
        delta_input_hidden = (
            self.learning_rate * np.outer(inputs, hidden_error)
            + self.momentum * self._delta_input_hidden
        )

        self.weights_hidden_output += delta_hidden_output
        self.weights_input_hidden += delta_input_hidden
        self._delta_hidden_output = delta_hidden_output
        self._delta_input_hidden = delta_input_hidden

        self.hidden_bias += self.learning_rate * hidden_error
        self.output_bias += self.learning_rate * output_error

    def train_batch(
        self, examples: list[tuple[ProgramItem, dict[str, str]]], epochs: int = 10
    ) -> list[float]:
        """Train example by example for a fixed number of epochs.

        Args:
            examples: (item, target values) pairs
            epochs: Number of passes; a hard cap, not a stopping rule

        Returns:
            Mean squared error per epoch

        """
        if not examples:
            logger.warning("No training examples provided")
            return []

        if not self.is_initialized:
            self.forward(self.encoder.encode(examples[0][0]))

        logger.info(f"Starting batch training: {len(examples)} examples, {epochs} epochs")
        history = []
        for epoch in range(epochs):
            order = self._rng.permutation(len(examples))
            total_error = 0.0
            for index in order:
                item, target_values = examples[index]
                self.train_single(item, target_values)
                try:
                    output = self.forward(self.encoder.encode(item)).output
                    target = self.create_target_vector(target_values)
                except (TrainingError, PredictionError):
                    continue
                total_error += float(np.sum((target - output) ** 2))

            average_error = total_error / (len(examples) * self.output_size)
            history.append(average_error)
            if epoch % 5 == 0:
                logger.info(f"Epoch {epoch}: average error = {average_error:.4f}")

        logger.info("Batch training completed")
        return history

    def build_vocabulary(self, items: list[ProgramItem]) -> None:
        """Build the encoder vocabulary, resizing the network if needed."""
        self.encoder.build_vocabulary(items)
        if self.is_initialized and self.input_size != self.encoder.encoded_size:
            logger.info(
                f"Encoder width changed from {self.input_size} to {self.encoder.encoded_size}, "
                f"reinitializing network"
            )
            self.initialize_network(self.encoder.encoded_size)

    def serialize(self) -> dict[str, Any] | None:
        if not self.is_initialized:
            return None
        return {
            "input_size": self.input_size,
            "hidden_size": self.hidden_size,
            "output_size": self.output_size,
            "weights_input_hidden": self.weights_input_hidden.tolist(),
            "weights_hidden_output": self.weights_hidden_output.tolist(),
            "hidden_bias": self.hidden_bias.tolist(),
            "output_bias": self.output_bias.tolist(),
            "learning_rate": self.learning_rate,
            "feature_encoder": self.encoder.to_dict(),
        }

    def deserialize(self, data: dict[str, Any] | None) -> bool:
        """Restore weights and vocabulary from a serialized network.

        Args:
            data: Output of serialize(), possibly from an older version

        Returns:
            True if the network was restored

        """
        if not data:
            return False

        try:
            snapshot = NetworkSnapshot.model_validate(data)
            weights_input_hidden = np.array(snapshot.weights_input_hidden, dtype=float)
            weights_hidden_output = np.array(snapshot.weights_hidden_output, dtype=float)
            if weights_input_hidden.shape != (snapshot.input_size, snapshot.hidden_size) or (
                weights_hidden_output.shape != (snapshot.hidden_size, snapshot.output_size)
            ):
                raise ValueError("weight matrix shapes do not match stored dimensions")
            if len(snapshot.hidden_bias) != snapshot.hidden_size or (
                len(snapshot.output_bias) != snapshot.output_size
            ):
                raise ValueError("bias lengths do not match stored dimensions")
            if snapshot.output_size != len(TECH_FIELDS):
                raise ValueError(f"stored network has {snapshot.output_size} outputs")
        except (SnapshotValidationError, ValueError) as e:
            logger.error(f"Error loading network: {e}")
            return False

        self.input_size = snapshot.input_size
        self.hidden_size = snapshot.hidden_size
        self.output_size = snapshot.output_size
        self.weights_input_hidden = weights_input_hidden
        self.weights_hidden_output = weights_hidden_output
        self.hidden_bias = np.array(snapshot.hidden_bias, dtype=float)
        self.output_bias = np.array(snapshot.output_bias, dtype=float)
        self.learning_rate = snapshot.learning_rate
        self.encoder.load(snapshot.feature_encoder)
        self._reset_momentum()

        self.is_initialized = True
        logger.info("Network loaded from saved data")
        return True
