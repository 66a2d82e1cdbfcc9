"""Tests for the FeatureEncoder and NeuralPredictor classes."""

import numpy as np
import pytest

from production_sheet.exceptions import PredictionError, TrainingError
from production_sheet.learning.neural import FeatureEncoder, NeuralPredictor
from production_sheet.models.program import ProgramItem

FILLED = {"camera": "2", "scene": "1", "mic": "Amb", "notes": "", "stream": ""}


@pytest.fixture
def items():
    return [
        ProgramItem(title="SASB 234 Piano Solo", performer="piano"),
        ProgramItem(title="Opening Prayer", type="prayer"),
        ProgramItem(title="Message - Pastor John", type="message", index=6),
    ]


@pytest.fixture
def network():
    """Create a seeded NeuralPredictor with a small hidden layer."""
    return NeuralPredictor(hidden_size=8, seed=42)


class TestFeatureEncoder:
    """Test suite for FeatureEncoder."""

    def test_basic_encoding_before_vocabulary(self, items):
        """Test the 8-value heuristic vector used on a cold start."""
        encoder = FeatureEncoder()
        vector = encoder.encode(items[0])

        assert vector.shape == (8,)
        assert encoder.encoded_size == 8
        assert list(vector) == [1.0, 0.0, 0.0, 1.0, 0.0, 1.0, 1.0, 0.0]

    def test_vocabulary_encoding(self, items):
        """Test the full-width encoding after building a vocabulary."""
        encoder = FeatureEncoder()
        encoder.build_vocabulary(items)
        vector = encoder.encode(items[0])

        assert vector.shape == (100,)
        assert vector[encoder.word_to_index["piano"]] == 1.0
        assert vector[encoder.vocabulary_limit] == 1.0  # title has digits
        assert vector[encoder.vocabulary_limit + 2] == 1.0  # performer present

    def test_vocabulary_limit(self):
        encoder = FeatureEncoder(max_features=15, reserved_features=10)
        encoder.build_vocabulary([ProgramItem(title=" ".join(f"word{i}" for i in range(20)))])
        assert len(encoder.word_to_index) == 5

    def test_tokenize_drops_short_words(self):
        assert FeatureEncoder.tokenize("A song, by WG!") == ["song", "by", "wg"]


class TestNeuralPredictor:
    """Test suite for NeuralPredictor."""

    def test_lazy_initialization(self, network):
        """Test that the first forward pass sizes the network."""
        assert network.is_initialized is False
        result = network.forward(np.zeros(8))

        assert network.is_initialized is True
        assert network.input_size == 8
        assert result.output.shape == (5,)
        assert np.all((result.output > 0) & (result.output < 1))

    def test_width_mismatch_raises(self, network):
        network.forward(np.zeros(8))
        with pytest.raises(PredictionError):
            network.forward(np.zeros(9))

    def test_predict_before_initialization(self, network, items):
        assert network.predict_confidences(items[0]) is None

    def test_train_uninitialized_is_noop(self, network, items):
        """Test that training an uninitialized network does nothing."""
        assert network.train_single(items[0], FILLED) is None
        assert network.is_initialized is False

    def test_target_vector(self, network):
        assert list(network.create_target_vector(FILLED)) == [1.0, 1.0, 1.0, 0.0, 0.0]
        with pytest.raises(TrainingError):
            network.create_target_vector(["camera"])

    def test_training_reduces_error(self, network, items):
        """Test that batch training moves outputs toward the targets."""
        network.build_vocabulary(items)
        history = network.train_batch([(item, FILLED) for item in items], epochs=30)

        assert len(history) == 30
        assert history[-1] < history[0]

    def test_vocabulary_change_reinitializes(self, network, items):
        network.forward(network.encoder.encode(items[0]))
        assert network.input_size == 8

        network.build_vocabulary(items)
        assert network.input_size == 100

    def test_serialize_round_trip(self, network, items):
        """Test that weights and vocabulary survive serialization."""
        network.build_vocabulary(items)
        network.train_batch([(item, FILLED) for item in items], epochs=3)
        data = network.serialize()

        restored = NeuralPredictor(hidden_size=4)
        assert restored.deserialize(data) is True
        assert restored.hidden_size == 8
        assert restored.encoder.word_to_index == network.encoder.word_to_index

        original = network.predict_confidences(items[1])
        loaded = restored.predict_confidences(items[1])
        assert np.allclose(list(original.values()), list(loaded.values()))

    def test_serialize_uninitialized(self, network):
        assert network.serialize() is None

    def test_deserialize_rejects_bad_shapes(self, network):
        """Test that inconsistent stored dimensions are rejected."""
        data = {
            "input_size": 3,
            "hidden_size": 2,
            "output_size": 5,
            "weights_input_hidden": [[0.0, 0.0]],
            "weights_hidden_output": [[0.0] * 5] * 2,
            "hidden_bias": [0.0, 0.0],
            "output_bias": [0.0] * 5,
        }
        assert network.deserialize(data) is False
        assert network.is_initialized is False

    def test_deserialize_rejects_bad_bias_lengths(self, network):
        """Test that bias vectors must match the stored layer sizes."""
        data = {
            "input_size": 2,
            "hidden_size": 4,
            "output_size": 5,
            "weights_input_hidden": [[0.0] * 4] * 2,
            "weights_hidden_output": [[0.0] * 5] * 4,
            "hidden_bias": [0.0] * 3,
            "output_bias": [0.0] * 5,
        }
        assert network.deserialize(data) is False
        assert network.is_initialized is False

        data["hidden_bias"] = [0.0] * 4
        data["output_bias"] = [0.0] * 2
        assert network.deserialize(data) is False
