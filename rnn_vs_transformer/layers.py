"""
Neural Network Layers

The reusable pieces shared by the house-price model, the RNN and the
transformer. ``Linear`` carries a backward pass because gradient descent on
house prices needs one; the normalization and lookup layers are used only on
the forward-only transformer path.

Classes:
    Linear: Fully connected layer (y = x @ W^T + b)
    LayerNorm: Per-token normalization used inside transformer blocks
    Embedding: Token ID to dense vector lookup table
    PositionalEncoding: Sinusoidal position signal added to embeddings

Reference:
    - "Attention Is All You Need" (Vaswani et al., 2017) Sections 3.4, 3.5
    - "Layer Normalization" (Ba et al., 2016)
"""

from typing import Dict, Optional

import numpy as np


class Linear:
    """
    Fully Connected (Linear) Layer.

    Computes y = x @ W^T + b. With one output this is exactly the house-price
    formula ``price = w_size * size + w_bedrooms * bedrooms + ... + b``; with
    many outputs it becomes the Q/K/V projections of attention.

    Attributes:
        weights: Weight matrix of shape (output_features, input_features)
        bias: Bias vector of shape (output_features,) or None
        weight_gradient: Gradient of the loss w.r.t. ``weights``
        bias_gradient: Gradient of the loss w.r.t. ``bias``

    Weight Initialization:
        Xavier/Glorot: W ~ N(0, sqrt(2 / (fan_in + fan_out)))
    """

    def __init__(
        self, input_features: int, output_features: int, use_bias: bool = True
    ):
        self.input_features = input_features
        self.output_features = output_features
        self.use_bias = use_bias

        weight_std = np.sqrt(2.0 / (input_features + output_features))
        self.weights = np.random.randn(output_features, input_features) * weight_std
        self.bias = np.zeros(output_features) if use_bias else None

        self.weight_gradient: Optional[np.ndarray] = None
        self.bias_gradient: Optional[np.ndarray] = None

        self._input_cache: Optional[np.ndarray] = None

    def forward(self, input_tensor: np.ndarray) -> np.ndarray:
        """
        Forward pass: y = x @ W^T + b

        Args:
            input_tensor: Array of shape (..., input_features)

        Returns:
            Array of shape (..., output_features)

        Raises:
            ValueError: If the last dimension is not ``input_features``.
        """
        if input_tensor.shape[-1] != self.input_features:
            raise ValueError(
                f"Expected last dimension {self.input_features}, "
                f"got input of shape {input_tensor.shape}"
            )
        self._input_cache = input_tensor

        output_tensor = input_tensor @ self.weights.T
        if self.use_bias:
            output_tensor = output_tensor + self.bias
        return output_tensor

    def backward(self, upstream_gradient: np.ndarray) -> np.ndarray:
        """
        Backward pass: store weight/bias gradients and return the input gradient.

        Derivation (forward y = x @ W^T + b):
            d_W = upstream^T @ x      (summed over all leading dimensions)
            d_b = sum(upstream)
            d_x = upstream @ W

        Args:
            upstream_gradient: Gradient w.r.t. the output, shape (..., output_features)

        Returns:
            Gradient w.r.t. the input, shape (..., input_features)

        Raises:
            RuntimeError: If called before ``forward``.
        """
        if self._input_cache is None:
            raise RuntimeError("Linear.backward called before forward")

        input_tensor = self._input_cache
        input_2d = input_tensor.reshape(-1, self.input_features)
        upstream_2d = upstream_gradient.reshape(-1, self.output_features)

        self.weight_gradient = upstream_2d.T @ input_2d
        if self.use_bias:
            self.bias_gradient = np.sum(upstream_2d, axis=0)

        input_gradient = upstream_2d @ self.weights
        return input_gradient.reshape(input_tensor.shape)

    def get_parameters(self) -> Dict[str, np.ndarray]:
        """Return dictionary of learnable parameters."""
        params = {"weight": self.weights}
        if self.use_bias:
            params["bias"] = self.bias
        return params

    def get_gradients(self) -> Dict[str, np.ndarray]:
        """Return dictionary of parameter gradients."""
        grads = {"weight": self.weight_gradient}
        if self.use_bias:
            grads["bias"] = self.bias_gradient
        return grads

    def set_parameters(self, params: Dict[str, np.ndarray]) -> None:
        """
        Replace parameters from a dictionary produced by ``get_parameters``.

        Raises:
            ValueError: If an array does not match the existing shape.
        """
        if "weight" in params:
            weight = np.asarray(params["weight"], dtype=np.float64)
            if weight.shape != self.weights.shape:
                raise ValueError(
                    f"Weight shape {weight.shape} does not match {self.weights.shape}"
                )
            self.weights = weight
        if self.use_bias and "bias" in params:
            bias = np.asarray(params["bias"], dtype=np.float64)
            if bias.shape != self.bias.shape:
                raise ValueError(
                    f"Bias shape {bias.shape} does not match {self.bias.shape}"
                )
            self.bias = bias


class LayerNorm:
    """
    Layer Normalization.

    Formula:
        y = gamma * (x - mean) / sqrt(var + eps) + beta

    Mean and variance are taken over the feature axis of each token on its
    own, so every position is normalized independently of its neighbours.

    Reference: "Layer Normalization" (Ba et al., 2016)
    """

    def __init__(self, normalized_shape: int, epsilon: float = 1e-5):
        self.normalized_shape = normalized_shape
        self.epsilon = epsilon
        self.gamma = np.ones(normalized_shape)
        self.beta = np.zeros(normalized_shape)

    def forward(self, input_tensor: np.ndarray) -> np.ndarray:
        """Normalize over the last axis, then scale by gamma and shift by beta."""
        mean = np.mean(input_tensor, axis=-1, keepdims=True)
        variance = np.var(input_tensor, axis=-1, keepdims=True)
        normalized = (input_tensor - mean) / np.sqrt(variance + self.epsilon)
        return self.gamma * normalized + self.beta

    def get_parameters(self) -> Dict[str, np.ndarray]:
        """Return dictionary of learnable parameters."""
        return {"gamma": self.gamma, "beta": self.beta}


class Embedding:
    """
    Embedding Layer (Lookup Table).

    Row ``i`` of the table is the vector for word id ``i``. This is how
    "cat" stops being a string and becomes something a model can multiply.

    Reference: "Attention Is All You Need" Section 3.4
    """

    def __init__(self, vocabulary_size: int, embedding_dimension: int):
        self.vocabulary_size = vocabulary_size
        self.embedding_dimension = embedding_dimension

        scale = 1.0 / np.sqrt(embedding_dimension)
        self.embedding_table = (
            np.random.randn(vocabulary_size, embedding_dimension) * scale
        )

    def forward(self, token_ids: np.ndarray) -> np.ndarray:
        """
        Look up embeddings for token IDs.

        Args:
            token_ids: Integer array of any shape with values in [0, vocabulary_size)

        Returns:
            Array of shape (*token_ids.shape, embedding_dimension)

        Raises:
            IndexError: If any id falls outside the table.
        """
        token_ids = np.asarray(token_ids)
        if token_ids.size and (
            token_ids.min() < 0 or token_ids.max() >= self.vocabulary_size
        ):
            raise IndexError(
                f"Token ids must be in [0, {self.vocabulary_size}), "
                f"got range [{token_ids.min()}, {token_ids.max()}]"
            )
        return self.embedding_table[token_ids]

    def get_parameters(self) -> Dict[str, np.ndarray]:
        """Return dictionary of learnable parameters."""
        return {"embedding_table": self.embedding_table}


class PositionalEncoding:
    """
    Sinusoidal Positional Encoding.

    Attention on its own is order-blind: "dog bites man" and "man bites dog"
    produce the same set of pairwise scores. An RNN gets order for free by
    reading left to right; a transformer has to be told, so each position
    adds a fixed pattern of sines and cosines:

        PE(pos, 2i)   = sin(pos / 10000^(2i/d_model))
        PE(pos, 2i+1) = cos(pos / 10000^(2i/d_model))

    Reference: "Attention Is All You Need" Section 3.5
    """

    def __init__(self, max_sequence_length: int, embedding_dimension: int):
        self.max_sequence_length = max_sequence_length
        self.embedding_dimension = embedding_dimension
        self.encoding_table = self._create_encoding_table()

    def _create_encoding_table(self) -> np.ndarray:
        positions = np.arange(self.max_sequence_length)[:, np.newaxis]
        dimension_indices = np.arange(self.embedding_dimension)[np.newaxis, :]

        # 2 * (i // 2) gives the [0, 0, 2, 2, 4, 4, ...] exponent pattern
        angle_rates = 1.0 / np.power(
            10000.0, (2 * (dimension_indices // 2)) / self.embedding_dimension
        )
        angles = positions * angle_rates

        encoding_table = np.zeros_like(angles)
        encoding_table[:, 0::2] = np.sin(angles[:, 0::2])
        encoding_table[:, 1::2] = np.cos(angles[:, 1::2])
        return encoding_table

    def get_encoding(self, sequence_length: int) -> np.ndarray:
        """
        Return the first ``sequence_length`` rows of the table.

        Raises:
            ValueError: If the sequence is longer than the precomputed table.
        """
        if sequence_length > self.max_sequence_length:
            raise ValueError(
                f"Sequence length {sequence_length} exceeds maximum "
                f"{self.max_sequence_length}"
            )
        return self.encoding_table[:sequence_length]

    def forward(self, embeddings: np.ndarray) -> np.ndarray:
        """Add position information to (seq, d) or (batch, seq, d) embeddings."""
        sequence_length = embeddings.shape[-2]
        return embeddings + self.get_encoding(sequence_length)
