"""
Recurrent Neural Network (the "before" picture)

An RNN reads a sentence the way a person reads a ticker tape: one word at a
time, keeping a running summary (the hidden state) and updating it with each
new word.

    h_t = tanh(x_t @ W_xh^T + h_{t-1} @ W_hh^T + b_h)

Two engineering consequences follow directly from that formula, and both are
measurable with this module:

    1. Sequential: h_t cannot be computed until h_{t-1} exists, so a sentence
       of n words needs n dependent steps no matter how many cores you own.
    2. Long paths: information from word 1 reaches word n only after passing
       through n - 1 tanh squashes and W_hh multiplications, so its gradient
       shrinks (or blows up) geometrically.

Functions:
    rnn_cell: One recurrence step on raw arrays
    gradient_flow: Gradient of the final state w.r.t. every input position

Classes:
    RNNCell: Parameters plus a single-step forward
    SimpleRNN: Full sequence loop with backpropagation through time (BPTT)

Reference:
    "Learning long-term dependencies with gradient descent is difficult"
    (Bengio, Simard & Frasconi, 1994)
"""

import logging
from typing import Dict, List, Optional, Tuple

import numpy as np

from rnn_vs_transformer.activations import tanh, tanh_backward
from rnn_vs_transformer.config import RNNConfig

logger = logging.getLogger(__name__)


def rnn_cell(
    x_t: np.ndarray,
    h_prev: np.ndarray,
    W_xh: np.ndarray,
    W_hh: np.ndarray,
    b_h: np.ndarray,
) -> np.ndarray:
    """
    Compute one RNN step.

    Args:
        x_t: Current word vector(s), shape (..., input_dim)
        h_prev: Previous hidden state, shape (..., hidden_dim)
        W_xh: Input weights, shape (hidden_dim, input_dim)
        W_hh: Recurrent weights, shape (hidden_dim, hidden_dim)
        b_h: Bias, shape (hidden_dim,)

    Returns:
        New hidden state, shape (..., hidden_dim), values in [-1, 1]
    """
    return tanh(x_t @ W_xh.T + h_prev @ W_hh.T + b_h)


class RNNCell:
    """
    Holds the three RNN parameters and applies ``rnn_cell``.

    The same weights are reused at every timestep; that sharing is what lets
    one small cell handle sentences of any length.

    Attributes:
        W_xh: Input-to-hidden weights (hidden_dim, input_dim), Xavier init
        W_hh: Hidden-to-hidden weights (hidden_dim, hidden_dim), scaled
            normal init ``recurrent_scale / sqrt(hidden_dim)``
        b_h: Hidden bias (hidden_dim,)
    """

    def __init__(self, input_dim: int, hidden_dim: int, recurrent_scale: float = 1.0):
        self.input_dim = input_dim
        self.hidden_dim = hidden_dim

        input_std = np.sqrt(2.0 / (input_dim + hidden_dim))
        self.W_xh = np.random.randn(hidden_dim, input_dim) * input_std
        self.W_hh = (
            np.random.randn(hidden_dim, hidden_dim) * recurrent_scale / np.sqrt(hidden_dim)
        )
        self.b_h = np.zeros(hidden_dim)

    def forward(self, x_t: np.ndarray, h_prev: np.ndarray) -> np.ndarray:
        """Advance the hidden state by one word."""
        if x_t.shape[-1] != self.input_dim:
            raise ValueError(
                f"Expected word vectors of size {self.input_dim}, got {x_t.shape[-1]}"
            )
        if h_prev.shape[-1] != self.hidden_dim:
            raise ValueError(
                f"Expected hidden state of size {self.hidden_dim}, got {h_prev.shape[-1]}"
            )
        return rnn_cell(x_t, h_prev, self.W_xh, self.W_hh, self.b_h)

    def get_parameters(self) -> Dict[str, np.ndarray]:
        """Return dictionary of learnable parameters."""
        return {"W_xh": self.W_xh, "W_hh": self.W_hh, "b_h": self.b_h}


class SimpleRNN:
    """
    A vanilla (Elman) RNN over whole sequences.

    ``forward`` literally loops over positions and calls ``process_word``;
    there is no way to vectorize across time because each step consumes the
    previous step's output. ``sequential_steps`` records how many of those
    dependent steps the last call needed.

    Example:
        rnn = SimpleRNN(RNNConfig(input_dim=8, hidden_dim=16))
        states, final = rnn.forward(np.random.randn(2, 5, 8))
        states.shape   # (2, 5, 16)
        rnn.sequential_steps  # 5
    """

    def __init__(self, config: Optional[RNNConfig] = None):
        self.config = config or RNNConfig()
        self.config.validate()

        self.cell = RNNCell(
            self.config.input_dim,
            self.config.hidden_dim,
            recurrent_scale=self.config.recurrent_scale,
        )

        self.sequential_steps = 0
        self.hidden_gradient_norms: List[float] = []

        self.W_xh_gradient: Optional[np.ndarray] = None
        self.W_hh_gradient: Optional[np.ndarray] = None
        self.b_h_gradient: Optional[np.ndarray] = None

        self._inputs_cache: Optional[np.ndarray] = None
        self._states_cache: Optional[List[np.ndarray]] = None

    def initial_state(self, batch_size: int = 1) -> np.ndarray:
        """The "empty memory" before the first word: all zeros."""
        return np.zeros((batch_size, self.config.hidden_dim))

    def process_word(self, word_vector: np.ndarray, hidden_state: np.ndarray) -> np.ndarray:
        """Read one word and return the updated hidden state."""
        self.sequential_steps += 1
        return self.cell.forward(word_vector, hidden_state)

    def _expand_initial_hidden(self, initial_hidden: np.ndarray, batch_size: int) -> np.ndarray:
        # (hidden_dim,) and (1, hidden_dim) are shared by every sequence in the batch
        hidden = np.asarray(initial_hidden, dtype=np.float64)
        if hidden.ndim == 1:
            hidden = hidden[np.newaxis, :]
        if hidden.ndim != 2 or hidden.shape[1] != self.config.hidden_dim or (
            hidden.shape[0] not in (1, batch_size)
        ):
            raise ValueError(
                f"Expected initial_hidden of shape ({self.config.hidden_dim},), "
                f"(1, {self.config.hidden_dim}) or ({batch_size}, {self.config.hidden_dim}), "
                f"got {np.shape(initial_hidden)}"
            )
        return np.broadcast_to(hidden, (batch_size, self.config.hidden_dim)).copy()

    def forward(
        self, inputs: np.ndarray, initial_hidden: Optional[np.ndarray] = None
    ) -> Tuple[np.ndarray, np.ndarray]:
        """
        Run the RNN over a sequence.

        Args:
            inputs: Word vectors, shape (batch, seq_len, input_dim) or (seq_len, input_dim)
            initial_hidden: Optional starting state (batch, hidden_dim), or one
                (hidden_dim,) state shared by the batch; zeros if omitted

        Returns:
            hidden_states: Every h_t, shape (batch, seq_len, hidden_dim)
                           (or (seq_len, hidden_dim) for 2-D input)
            final_hidden: h_T, shape (batch, hidden_dim) (or (hidden_dim,))

        Raises:
            ValueError: If ``inputs`` or ``initial_hidden`` has the wrong shape.
        """
        unbatched = inputs.ndim == 2
        if unbatched:
            inputs = inputs[np.newaxis, :, :]
        if inputs.ndim != 3:
            raise ValueError(
                f"Expected inputs of shape (batch, seq_len, input_dim), got {inputs.shape}"
            )

        batch_size, sequence_length, _ = inputs.shape
        if initial_hidden is None:
            hidden = self.initial_state(batch_size)
        else:
            hidden = self._expand_initial_hidden(initial_hidden, batch_size)

        self.sequential_steps = 0
        states = [hidden]
        for t in range(sequence_length):
            # h_t needs h_{t-1}: this loop cannot be parallelized
            hidden = self.process_word(inputs[:, t, :], hidden)
            states.append(hidden)

        self._inputs_cache = inputs
        self._states_cache = states

        if sequence_length:
            hidden_states = np.stack(states[1:], axis=1)
        else:
            hidden_states = np.zeros((batch_size, 0, self.config.hidden_dim))

        if unbatched:
            return hidden_states[0], hidden[0]
        return hidden_states, hidden

    def backward(self, upstream_hidden_gradients: np.ndarray) -> np.ndarray:
        """
        Backpropagation through time.

        Walks the sequence in reverse. At each step the gradient arriving at
        h_t is the sum of what the loss sends directly and what h_{t+1} sends
        back through W_hh:

            dh_t      = upstream_t + da_{t+1} @ W_hh
            da_t      = dh_t * (1 - h_t^2)
            dW_xh    += da_t^T @ x_t
            dW_hh    += da_t^T @ h_{t-1}
            db_h     += sum(da_t)
            dx_t      = da_t @ W_xh

        The norm of every dh_t is stored in ``hidden_gradient_norms`` (ordered
        by position) so vanishing or exploding gradients can be inspected.

        Args:
            upstream_hidden_gradients: d loss / d h_t for every t, same shape as
                the ``hidden_states`` returned by ``forward``

        Returns:
            d loss / d inputs, same shape as the forward ``inputs``

        Raises:
            RuntimeError: If called before ``forward``.
            ValueError: If the gradient shape does not match the last forward.
        """
        if self._states_cache is None:
            raise RuntimeError("SimpleRNN.backward called before forward")

        inputs = self._inputs_cache
        states = self._states_cache
        unbatched = upstream_hidden_gradients.ndim == 2
        if unbatched:
            upstream_hidden_gradients = upstream_hidden_gradients[np.newaxis, :, :]

        batch_size, sequence_length, _ = inputs.shape
        expected_shape = (batch_size, sequence_length, self.config.hidden_dim)
        if upstream_hidden_gradients.shape != expected_shape:
            raise ValueError(
                f"Expected gradient of shape {expected_shape}, "
                f"got {upstream_hidden_gradients.shape}"
            )

        W_xh, W_hh = self.cell.W_xh, self.cell.W_hh
        d_W_xh = np.zeros_like(W_xh)
        d_W_hh = np.zeros_like(W_hh)
        d_b_h = np.zeros_like(self.cell.b_h)
        d_inputs = np.zeros_like(inputs)

        norms = [0.0] * sequence_length
        d_hidden_next = np.zeros((batch_size, self.config.hidden_dim))
        for t in reversed(range(sequence_length)):
            d_hidden = upstream_hidden_gradients[:, t, :] + d_hidden_next
            norms[t] = float(np.linalg.norm(d_hidden))

            # states[t + 1] is h_t, states[t] is h_{t-1}
            d_pre_activation = tanh_backward(d_hidden, states[t + 1])
            d_W_xh += d_pre_activation.T @ inputs[:, t, :]
            d_W_hh += d_pre_activation.T @ states[t]
            d_b_h += np.sum(d_pre_activation, axis=0)
            d_inputs[:, t, :] = d_pre_activation @ W_xh
            d_hidden_next = d_pre_activation @ W_hh

        self.W_xh_gradient = d_W_xh
        self.W_hh_gradient = d_W_hh
        self.b_h_gradient = d_b_h
        self.hidden_gradient_norms = norms

        if unbatched:
            return d_inputs[0]
        return d_inputs

    def get_parameters(self) -> Dict[str, np.ndarray]:
        """Return dictionary of learnable parameters."""
        return self.cell.get_parameters()

    def get_gradients(self) -> Dict[str, np.ndarray]:
        """Return dictionary of parameter gradients from the last ``backward``."""
        return {
            "W_xh": self.W_xh_gradient,
            "W_hh": self.W_hh_gradient,
            "b_h": self.b_h_gradient,
        }

    def set_parameters(self, params: Dict[str, np.ndarray]) -> None:
        """Load parameters produced by ``get_parameters``."""
        for name in ("W_xh", "W_hh", "b_h"):
            if name not in params:
                continue
            value = np.asarray(params[name], dtype=np.float64)
            current = getattr(self.cell, name)
            if value.shape != current.shape:
                raise ValueError(
                    f"Parameter {name} has shape {value.shape}, expected {current.shape}"
                )
            setattr(self.cell, name, value)

    def count_parameters(self) -> int:
        return sum(param.size for param in self.get_parameters().values())


def gradient_flow(rnn: SimpleRNN, inputs: np.ndarray) -> np.ndarray:
    """
    Measure how strongly the final hidden state depends on each input word.

    Runs forward, sends a gradient of ones into the last hidden state only,
    and reports ||d h_T / d x_t|| for every position t (averaged over the
    batch). With small recurrent weights the early positions come out orders
    of magnitude smaller than the late ones: the vanishing gradient problem.

    Args:
        rnn: The network to measure
        inputs: (batch, seq_len, input_dim) or (seq_len, input_dim)

    Returns:
        Array of shape (seq_len,); empty for an empty sequence
    """
    hidden_states, _ = rnn.forward(inputs)
    if hidden_states.shape[-2] == 0:
        return np.zeros(0)
    upstream = np.zeros_like(hidden_states)
    upstream[..., -1, :] = 1.0

    d_inputs = rnn.backward(upstream)
    if d_inputs.ndim == 2:
        d_inputs = d_inputs[np.newaxis, :, :]

    norms = np.mean(np.linalg.norm(d_inputs, axis=-1), axis=0)
    if norms.size > 1 and norms[-1] > 0:
        logger.debug(
            "Gradient ratio first/last position: %.3e", norms[0] / norms[-1]
        )
    return norms
