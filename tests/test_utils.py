"""
Tests for Utility Functions

Tests for seeding, parameter counting and .npz checkpointing.
"""

import os
import tempfile

import numpy as np
import pytest

from rnn_vs_transformer.config import RNNConfig, TransformerConfig
from rnn_vs_transformer.rnn import SimpleRNN
from rnn_vs_transformer.transformer import TransformerEncoder
from rnn_vs_transformer.utils import (
    count_parameters,
    load_parameters,
    save_parameters,
    set_seed,
)


class TestSeedAndCount:
    """set_seed and count_parameters"""

    def test_set_seed_reproducible(self):
        """Re-seeding repeats the random stream."""
        set_seed(5)
        first = np.random.randn(4)
        set_seed(5)
        second = np.random.randn(4)

        np.testing.assert_array_equal(first, second)

    def test_count_parameters(self):
        """Counts every value across arrays."""
        params = {"a": np.zeros((3, 4)), "b": np.zeros(5)}

        assert count_parameters(params) == 17

    def test_count_matches_model(self):
        """Agrees with the model's own count."""
        rnn = SimpleRNN(RNNConfig(input_dim=3, hidden_dim=5))

        assert count_parameters(rnn.get_parameters()) == rnn.count_parameters()


class TestCheckpointing:
    """save_parameters / load_parameters"""

    @pytest.fixture
    def small_encoder(self):
        set_seed(0)
        config = TransformerConfig(
            vocab_size=12, embedding_dim=8, num_heads=2, num_layers=1, max_sequence_length=8
        )
        return TransformerEncoder(config)

    def test_save_creates_file(self, small_encoder):
        """save_parameters writes the .npz file."""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "encoder.npz")
            save_parameters(small_encoder.get_parameters(), path)

            assert os.path.exists(path)

    def test_round_trip_restores_model(self, small_encoder):
        """Saved weights and config rebuild an identical encoder."""
        token_ids = np.array([[4, 5, 6, 7]])
        expected = small_encoder.forward(token_ids)

        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "encoder.npz")
            save_parameters(small_encoder.get_parameters(), path, config=small_encoder.config)
            params, config_dict = load_parameters(path)

        set_seed(99)
        restored = TransformerEncoder(TransformerConfig(**config_dict))
        restored.set_parameters(params)

        np.testing.assert_allclose(restored.forward(token_ids), expected)

    def test_config_is_optional(self, small_encoder):
        """Without a config, None comes back."""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "encoder.npz")
            save_parameters(small_encoder.get_parameters(), path)
            params, config_dict = load_parameters(path)

        assert config_dict is None
        assert set(params) == set(small_encoder.get_parameters())

    def test_dict_config(self):
        """Plain dict configs are stored too."""
        rnn = SimpleRNN(RNNConfig(input_dim=2, hidden_dim=3))

        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "rnn.npz")
            save_parameters(rnn.get_parameters(), path, config={"note": "tiny"})
            _, config_dict = load_parameters(path)

        assert config_dict == {"note": "tiny"}

    def test_load_missing_file(self, tmp_path):
        """A missing file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            load_parameters(str(tmp_path / "missing.npz"))
