"""
Activation Functions

The non-linearities used across the walkthrough:

    - tanh squashes the RNN hidden state into [-1, 1] at every timestep
    - softmax turns attention scores into weights that sum to 1
    - GELU sits inside the transformer feed-forward network
    - sigmoid and ReLU are used by the single-neuron examples

Only the functions that take part in a backward pass (tanh, softmax) ship
gradients. The transformer stack in this package is forward-only.

Reference:
    - "Attention Is All You Need" (Vaswani et al., 2017) - Softmax in attention
    - "Gaussian Error Linear Units" (Hendrycks & Gimpel, 2016) - GELU activation
"""

import numpy as np


def softmax(logits: np.ndarray, axis: int = -1) -> np.ndarray:
    """
    Convert scores into a probability distribution along ``axis``.

    Formula:
        softmax(x)_i = exp(x_i - max(x)) / sum_j exp(x_j - max(x))

    Subtracting the maximum leaves the result unchanged but keeps ``exp``
    from overflowing, so scores of 1000 and 1001 work just as well as 0 and 1.

    Args:
        logits: Array of any shape.
        axis: Axis to normalize over. Attention uses the last axis (keys).

    Returns:
        Array of the same shape whose values along ``axis`` sum to 1.

    Example:
        >>> softmax(np.array([1.0, 2.0, 3.0]))
        array([0.09003057, 0.24472847, 0.66524096])
    """
    shifted = logits - np.max(logits, axis=axis, keepdims=True)
    exponentials = np.exp(shifted)
    return exponentials / np.sum(exponentials, axis=axis, keepdims=True)


def softmax_backward(
    upstream_gradient: np.ndarray, softmax_output: np.ndarray
) -> np.ndarray:
    """
    Gradient of softmax with respect to its input (last axis).

    Uses the vector form of the Jacobian product:
        d_x = s * (upstream - sum(upstream * s))

    Args:
        upstream_gradient: Gradient w.r.t. the softmax output.
        softmax_output: The forward output ``s``.

    Returns:
        Gradient w.r.t. the logits, same shape as the inputs.
    """
    weighted_sum = np.sum(upstream_gradient * softmax_output, axis=-1, keepdims=True)
    return softmax_output * (upstream_gradient - weighted_sum)


def tanh(x: np.ndarray) -> np.ndarray:
    """
    Hyperbolic tangent, the classic RNN squashing function.

    Every hidden state passes through tanh, so its values stay in [-1, 1]
    no matter how long the sentence is. The price is a derivative that is
    at most 1, which is where vanishing gradients come from.
    """
    return np.tanh(x)


def tanh_backward(upstream_gradient: np.ndarray, tanh_output: np.ndarray) -> np.ndarray:
    """
    Gradient of tanh expressed through its forward output.

    d tanh(x) / dx = 1 - tanh(x)^2

    Taking the output rather than the input means the RNN only has to cache
    the hidden states it already produced.

    Args:
        upstream_gradient: Gradient w.r.t. the tanh output.
        tanh_output: The forward output ``tanh(x)``.

    Returns:
        Gradient w.r.t. ``x``.
    """
    return upstream_gradient * (1.0 - np.square(tanh_output))


def sigmoid(x: np.ndarray) -> np.ndarray:
    """
    Logistic sigmoid, 1 / (1 + exp(-x)), stable for large magnitudes.

    Positive and negative inputs are handled separately so that ``exp`` is
    only ever called on non-positive numbers.
    """
    x = np.asarray(x, dtype=np.float64)
    result = np.empty_like(x)
    positive = x >= 0
    result[positive] = 1.0 / (1.0 + np.exp(-x[positive]))
    exp_x = np.exp(x[~positive])
    result[~positive] = exp_x / (1.0 + exp_x)
    return result


def gelu(x: np.ndarray) -> np.ndarray:
    """
    GELU activation (tanh approximation), as used in GPT-2 and BERT.

        GELU(x) ≈ 0.5 * x * (1 + tanh(sqrt(2/pi) * (x + 0.044715 * x^3)))

    Example:
        >>> gelu(np.array([-1.0, 0.0, 1.0])).round(3)
        array([-0.159,  0.   ,  0.841])
    """
    sqrt_2_over_pi = np.sqrt(2.0 / np.pi)
    inner = sqrt_2_over_pi * (x + 0.044715 * np.power(x, 3))
    return 0.5 * x * (1.0 + np.tanh(inner))


def relu(x: np.ndarray) -> np.ndarray:
    """ReLU(x) = max(0, x)."""
    return np.maximum(0, x)


ACTIVATIONS = {
    "identity": lambda x: x,
    "relu": relu,
    "sigmoid": sigmoid,
    "tanh": tanh,
    "gelu": gelu,
}


def get_activation(name: str):
    """
    Look up an activation function by name.

    Raises:
        ValueError: If the name is not one of ``ACTIVATIONS``.
    """
    if name not in ACTIVATIONS:
        raise ValueError(
            f"Unknown activation '{name}'. Choose from: {sorted(ACTIVATIONS)}"
        )
    return ACTIVATIONS[name]
