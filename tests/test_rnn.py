"""
Tests for the recurrent network.

Tests cover:
- The raw rnn_cell formula
- Sequential processing and step counting
- Causality (later words never change earlier states)
- Backpropagation through time against numerical gradients
- Vanishing gradients measured by gradient_flow
"""

import numpy as np
import pytest


def _small_rnn(input_dim=3, hidden_dim=4, recurrent_scale=1.0, seed=0):
    from rnn_vs_transformer.config import RNNConfig
    from rnn_vs_transformer.rnn import SimpleRNN

    np.random.seed(seed)
    return SimpleRNN(
        RNNConfig(input_dim=input_dim, hidden_dim=hidden_dim, recurrent_scale=recurrent_scale)
    )


class TestRNNCell:
    """h_t = tanh(x_t W_xh^T + h_{t-1} W_hh^T + b_h)"""

    def test_rnn_cell_formula(self):
        """The cell matches the tanh formula on hand-picked numbers."""
        from rnn_vs_transformer.rnn import rnn_cell

        x_t = np.array([[1.0, 2.0]])
        h_prev = np.array([[0.5]])
        W_xh = np.array([[0.1, -0.2]])
        W_hh = np.array([[0.3]])
        b_h = np.array([0.05])

        expected = np.tanh(0.1 * 1.0 - 0.2 * 2.0 + 0.3 * 0.5 + 0.05)

        np.testing.assert_allclose(rnn_cell(x_t, h_prev, W_xh, W_hh, b_h), [[expected]])

    def test_cell_rejects_wrong_sizes(self):
        """Wrong word or hidden sizes raise ValueError."""
        from rnn_vs_transformer.rnn import RNNCell

        cell = RNNCell(input_dim=3, hidden_dim=2)

        with pytest.raises(ValueError):
            cell.forward(np.ones((1, 4)), np.zeros((1, 2)))
        with pytest.raises(ValueError):
            cell.forward(np.ones((1, 3)), np.zeros((1, 5)))


class TestSimpleRNNForward:
    """Sequential forward pass."""

    def test_output_shapes(self):
        """States are (batch, seq, hidden); the final state is the last one."""
        rnn = _small_rnn()
        states, final = rnn.forward(np.random.randn(2, 5, 3))

        assert states.shape == (2, 5, 4)
        assert final.shape == (2, 4)
        np.testing.assert_array_equal(states[:, -1, :], final)

    def test_unbatched_input(self):
        """2-D input gives 2-D states and a 1-D final state."""
        rnn = _small_rnn()
        states, final = rnn.forward(np.random.randn(6, 3))

        assert states.shape == (6, 4)
        assert final.shape == (4,)

    def test_sequential_steps_equal_length(self):
        """Every word costs one dependent step."""
        rnn = _small_rnn()

        for length in (1, 7, 20):
            rnn.forward(np.random.randn(1, length, 3))
            assert rnn.sequential_steps == length

    def test_matches_manual_process_word_loop(self):
        """forward() is exactly a loop over process_word."""
        rnn = _small_rnn()
        inputs = np.random.randn(1, 4, 3)

        states, _ = rnn.forward(inputs)

        hidden = rnn.initial_state(1)
        for t in range(4):
            hidden = rnn.process_word(inputs[:, t, :], hidden)
            np.testing.assert_allclose(states[:, t, :], hidden)

    def test_hidden_states_bounded(self):
        """tanh keeps every hidden value within [-1, 1]."""
        rnn = _small_rnn(recurrent_scale=5.0)
        states, _ = rnn.forward(np.random.randn(1, 30, 3) * 10)

        assert np.all(np.abs(states) <= 1.0)

    def test_later_inputs_do_not_change_earlier_states(self):
        """Changing later words leaves earlier states untouched."""
        rnn = _small_rnn()
        inputs = np.random.randn(1, 6, 3)
        states, _ = rnn.forward(inputs)

        changed = inputs.copy()
        changed[:, 4:, :] += 5.0
        changed_states, _ = rnn.forward(changed)

        np.testing.assert_allclose(states[:, :4], changed_states[:, :4])
        assert not np.allclose(states[:, 4:], changed_states[:, 4:])

    def test_initial_hidden_is_used(self):
        """A non-zero starting state changes the first step."""
        rnn = _small_rnn()
        inputs = np.random.randn(1, 3, 3)

        zero_start, _ = rnn.forward(inputs)
        other_start, _ = rnn.forward(inputs, initial_hidden=np.ones((1, 4)))

        assert not np.allclose(zero_start[:, 0], other_start[:, 0])

    def test_shared_initial_hidden_is_broadcast(self):
        """A single (hidden_dim,) state starts every sequence in the batch."""
        rnn = _small_rnn()
        inputs = np.random.randn(2, 3, 3)
        start = np.random.randn(4)

        shared, _ = rnn.forward(inputs, initial_hidden=start)
        explicit, _ = rnn.forward(inputs, initial_hidden=np.tile(start, (2, 1)))

        np.testing.assert_allclose(shared, explicit)

    def test_initial_hidden_wrong_shape_raises(self):
        """Starting states that fit neither the batch nor the hidden size are rejected."""
        rnn = _small_rnn()
        inputs = np.random.randn(2, 3, 3)

        with pytest.raises(ValueError, match="initial_hidden"):
            rnn.forward(inputs, initial_hidden=np.ones(5))
        with pytest.raises(ValueError, match="initial_hidden"):
            rnn.forward(inputs, initial_hidden=np.ones((3, 4)))

    def test_rejects_bad_rank(self):
        """1-D input raises ValueError."""
        rnn = _small_rnn()

        with pytest.raises(ValueError):
            rnn.forward(np.random.randn(3))


class TestBackpropagationThroughTime:
    """BPTT against finite differences."""

    def _loss(self, rnn, inputs, projection):
        states, _ = rnn.forward(inputs)
        return np.sum(states * projection)

    def test_backward_before_forward_raises(self):
        """backward before forward raises RuntimeError."""
        rnn = _small_rnn()

        with pytest.raises(RuntimeError):
            rnn.backward(np.ones((1, 2, 4)))

    def test_backward_shape_mismatch_raises(self):
        """A gradient for a different sequence length raises ValueError."""
        rnn = _small_rnn()
        rnn.forward(np.random.randn(1, 3, 3))

        with pytest.raises(ValueError):
            rnn.backward(np.ones((1, 4, 4)))

    def test_input_gradient_matches_numerical(self):
        """Input gradients match central finite differences."""
        rnn = _small_rnn()
        inputs = np.random.randn(2, 4, 3)
        projection = np.random.randn(2, 4, 4)

        rnn.forward(inputs)
        analytical = rnn.backward(projection)

        epsilon = 1e-6
        numerical = np.zeros_like(inputs)
        for index in np.ndindex(*inputs.shape):
            up = inputs.copy()
            up[index] += epsilon
            down = inputs.copy()
            down[index] -= epsilon
            numerical[index] = (
                self._loss(rnn, up, projection) - self._loss(rnn, down, projection)
            ) / (2 * epsilon)

        np.testing.assert_allclose(analytical, numerical, atol=1e-6)

    def test_parameter_gradients_match_numerical(self):
        """Weight and bias gradients match central finite differences."""
        rnn = _small_rnn()
        inputs = np.random.randn(2, 4, 3)
        projection = np.random.randn(2, 4, 4)

        rnn.forward(inputs)
        rnn.backward(projection)
        gradients = {name: grad.copy() for name, grad in rnn.get_gradients().items()}

        epsilon = 1e-6
        for name, param in rnn.get_parameters().items():
            numerical = np.zeros_like(param)
            for index in np.ndindex(*param.shape):
                original = param[index]
                param[index] = original + epsilon
                loss_up = self._loss(rnn, inputs, projection)
                param[index] = original - epsilon
                loss_down = self._loss(rnn, inputs, projection)
                param[index] = original
                numerical[index] = (loss_up - loss_down) / (2 * epsilon)

            np.testing.assert_allclose(gradients[name], numerical, atol=1e-6, err_msg=name)

    def test_backward_after_shared_initial_hidden(self):
        """BPTT works when one starting state is shared by a batch."""
        rnn = _small_rnn()
        inputs = np.random.randn(2, 4, 3)
        start = np.random.randn(4)
        projection = np.random.randn(2, 4, 4)

        def loss(values):
            states, _ = rnn.forward(values, initial_hidden=start)
            return np.sum(states * projection)

        rnn.forward(inputs, initial_hidden=start)
        analytical = rnn.backward(projection)
        gradients = {name: grad.copy() for name, grad in rnn.get_gradients().items()}

        assert analytical.shape == inputs.shape
        assert gradients["W_hh"].shape == (4, 4)

        epsilon = 1e-6
        numerical = np.zeros_like(inputs)
        for index in np.ndindex(*inputs.shape):
            up = inputs.copy()
            up[index] += epsilon
            down = inputs.copy()
            down[index] -= epsilon
            numerical[index] = (loss(up) - loss(down)) / (2 * epsilon)

        np.testing.assert_allclose(analytical, numerical, atol=1e-6)

    def test_hidden_gradient_norms_recorded(self):
        """One gradient norm is stored per position."""
        rnn = _small_rnn()
        rnn.forward(np.random.randn(1, 5, 3))
        rnn.backward(np.ones((1, 5, 4)))

        assert len(rnn.hidden_gradient_norms) == 5
        assert all(norm > 0 for norm in rnn.hidden_gradient_norms)


class TestGradientFlow:
    """Vanishing gradients."""

    def test_shape(self):
        """One norm per input position."""
        from rnn_vs_transformer.rnn import gradient_flow

        rnn = _small_rnn()
        norms = gradient_flow(rnn, np.random.randn(2, 6, 3))

        assert norms.shape == (6,)

    def test_empty_sequence(self):
        """No words means no positions to report."""
        from rnn_vs_transformer.rnn import gradient_flow

        rnn = _small_rnn()

        assert gradient_flow(rnn, np.zeros((0, 3))).shape == (0,)
        assert gradient_flow(rnn, np.zeros((2, 0, 3))).shape == (0,)

    def test_small_recurrent_weights_vanish(self):
        """Early words barely influence the final state."""
        from rnn_vs_transformer.rnn import gradient_flow

        rnn = _small_rnn(input_dim=8, hidden_dim=8, recurrent_scale=0.1)
        norms = gradient_flow(rnn, np.random.randn(20, 8))

        assert norms[0] < norms[-1] * 1e-6

    def test_influence_shrinks_with_distance(self):
        """Influence on the final state grows towards the end of the sentence."""
        from rnn_vs_transformer.rnn import gradient_flow

        rnn = _small_rnn(input_dim=8, hidden_dim=8, recurrent_scale=0.3)
        norms = gradient_flow(rnn, np.random.randn(12, 8))

        assert norms[0] < norms[5] < norms[-1]


class TestParameters:
    """get/set parameters."""

    def test_set_parameters_round_trip(self):
        """Copied parameters give identical outputs."""
        source = _small_rnn(seed=1)
        target = _small_rnn(seed=2)
        inputs = np.random.randn(1, 3, 3)

        target.set_parameters(source.get_parameters())

        np.testing.assert_allclose(source.forward(inputs)[0], target.forward(inputs)[0])

    def test_set_parameters_shape_check(self):
        """Wrongly shaped parameters raise ValueError."""
        rnn = _small_rnn()

        with pytest.raises(ValueError):
            rnn.set_parameters({"W_hh": np.ones((2, 2))})

    def test_count_parameters(self):
        """Parameter count is W_xh + W_hh + b_h."""
        rnn = _small_rnn(input_dim=3, hidden_dim=4)

        assert rnn.count_parameters() == 4 * 3 + 4 * 4 + 4
