"""
Tests for activation functions.

Tests cover:
- Softmax normalization and numerical stability
- tanh and its output-based gradient (used by BPTT)
- Sigmoid stability at extreme inputs
- GELU / ReLU reference values
- Activation lookup by name
"""

import numpy as np
import pytest


class TestSoftmax:
    """Softmax turns attention scores into weights that sum to 1."""

    def test_softmax_sums_to_one(self):
        """Each row of the output should sum to 1."""
        from rnn_vs_transformer.activations import softmax

        logits = np.random.randn(4, 7)
        probabilities = softmax(logits)

        assert np.allclose(np.sum(probabilities, axis=-1), 1.0)

    def test_softmax_known_values(self):
        """softmax([1, 2, 3]) has well-known values."""
        from rnn_vs_transformer.activations import softmax

        probabilities = softmax(np.array([1.0, 2.0, 3.0]))

        np.testing.assert_allclose(
            probabilities, [0.09003057, 0.24472847, 0.66524096], rtol=1e-6
        )

    def test_softmax_shift_invariance(self):
        """Adding a constant to every score must not change the weights."""
        from rnn_vs_transformer.activations import softmax

        logits = np.random.randn(3, 5)

        np.testing.assert_allclose(softmax(logits), softmax(logits + 100.0))

    def test_softmax_large_values_are_stable(self):
        """Very large scores should not overflow to NaN."""
        from rnn_vs_transformer.activations import softmax

        probabilities = softmax(np.array([1000.0, 1001.0, 1002.0]))

        assert np.all(np.isfinite(probabilities))
        assert np.isclose(np.sum(probabilities), 1.0)

    def test_softmax_other_axis(self):
        """Softmax along axis 0 normalizes columns."""
        from rnn_vs_transformer.activations import softmax

        probabilities = softmax(np.random.randn(5, 3), axis=0)

        assert np.allclose(np.sum(probabilities, axis=0), 1.0)

    def test_softmax_backward_matches_numerical_gradient(self):
        """Analytical softmax gradient should match finite differences."""
        from rnn_vs_transformer.activations import softmax, softmax_backward

        np.random.seed(0)
        logits = np.random.randn(5)
        upstream = np.random.randn(5)

        analytical = softmax_backward(upstream, softmax(logits))

        epsilon = 1e-6
        numerical = np.zeros_like(logits)
        for i in range(len(logits)):
            shifted_up = logits.copy()
            shifted_up[i] += epsilon
            shifted_down = logits.copy()
            shifted_down[i] -= epsilon
            numerical[i] = (
                np.sum(upstream * softmax(shifted_up))
                - np.sum(upstream * softmax(shifted_down))
            ) / (2 * epsilon)

        np.testing.assert_allclose(analytical, numerical, atol=1e-6)


class TestTanh:
    """tanh keeps RNN hidden states bounded."""

    def test_tanh_range(self):
        """Outputs should lie in [-1, 1] even for huge inputs."""
        from rnn_vs_transformer.activations import tanh

        output = tanh(np.array([-1e6, -1.0, 0.0, 1.0, 1e6]))

        assert np.all(output <= 1.0) and np.all(output >= -1.0)
        assert output[2] == 0.0

    def test_tanh_backward_matches_numerical_gradient(self):
        """1 - tanh^2 should match finite differences."""
        from rnn_vs_transformer.activations import tanh, tanh_backward

        x = np.linspace(-3, 3, 13)
        upstream = np.ones_like(x)

        analytical = tanh_backward(upstream, tanh(x))
        epsilon = 1e-6
        numerical = (tanh(x + epsilon) - tanh(x - epsilon)) / (2 * epsilon)

        np.testing.assert_allclose(analytical, numerical, atol=1e-6)

    def test_tanh_gradient_at_most_one(self):
        """The tanh derivative never exceeds 1, the root of vanishing gradients."""
        from rnn_vs_transformer.activations import tanh, tanh_backward

        x = np.random.randn(100) * 5
        gradient = tanh_backward(np.ones_like(x), tanh(x))

        assert np.all(gradient <= 1.0)
        assert np.all(gradient >= 0.0)


class TestOtherActivations:
    """Sigmoid, GELU and ReLU."""

    def test_sigmoid_known_values(self):
        """Sigmoid matches reference values at 0 and +/-2."""
        from rnn_vs_transformer.activations import sigmoid

        output = sigmoid(np.array([0.0, 2.0, -2.0]))

        np.testing.assert_allclose(output, [0.5, 0.88079708, 0.11920292], rtol=1e-6)

    def test_sigmoid_extreme_inputs(self):
        """Sigmoid must not overflow for very large magnitudes."""
        from rnn_vs_transformer.activations import sigmoid

        output = sigmoid(np.array([-1000.0, 1000.0]))

        assert np.all(np.isfinite(output))
        np.testing.assert_allclose(output, [0.0, 1.0], atol=1e-12)

    def test_gelu_reference_values(self):
        """GELU matches the tanh-approximation reference values."""
        from rnn_vs_transformer.activations import gelu

        output = gelu(np.array([-1.0, 0.0, 1.0]))

        np.testing.assert_allclose(output, [-0.1588, 0.0, 0.8412], atol=1e-3)

    def test_relu(self):
        """ReLU zeroes negatives and keeps positives."""
        from rnn_vs_transformer.activations import relu

        np.testing.assert_array_equal(
            relu(np.array([-2.0, 0.0, 3.0])), np.array([0.0, 0.0, 3.0])
        )


class TestGetActivation:
    """Activation lookup by name."""

    def test_known_names(self):
        """Known names return the matching function."""
        from rnn_vs_transformer.activations import get_activation, tanh

        assert get_activation("tanh") is tanh
        np.testing.assert_array_equal(get_activation("identity")(np.array([2.0])), [2.0])

    def test_unknown_name_raises(self):
        """An unknown name raises ValueError."""
        from rnn_vs_transformer.activations import get_activation

        with pytest.raises(ValueError, match="Unknown activation"):
            get_activation("swish")
