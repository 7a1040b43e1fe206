"""
Attention Mechanism

Where an RNN passes a single hidden state down the sentence, attention lets
every word look directly at every other word and decide how relevant each one
is. For "The cat sat on the mat", the word "sat" can put most of its weight on
"cat" in a single step, without the information having to survive a trip
through every word in between.

    Attention(Q, K, V) = softmax(Q @ K^T / sqrt(d_k)) @ V

All rows of that formula are computed by the same matrix product, which is
why a transformer layer handles every position at once.

Reference: "Attention Is All You Need" (Vaswani et al., 2017) Section 3.2
           https://arxiv.org/abs/1706.03762

Functions:
    calculate_relevance: Relevance of every word to one query word
    scaled_dot_product_attention: Core attention computation
    create_causal_mask: Lower-triangular "no peeking ahead" mask
    create_padding_mask: Hide <pad> positions from every query

Classes:
    SelfAttention: Single-head self-attention with learned projections
    MultiHeadAttention: Several heads in parallel plus an output projection
"""

from typing import Dict, Optional, Tuple

import numpy as np

from rnn_vs_transformer.activations import softmax
from rnn_vs_transformer.layers import Linear

# Large negative score given to masked positions so softmax sends them to ~0
MASK_FILL_VALUE = -1e9


def calculate_relevance(
    query_vector: np.ndarray, key_vectors: np.ndarray, scale: bool = True
) -> np.ndarray:
    """
    Score how relevant each key is to a single query, as a distribution.

    This is one row of the attention matrix:
        relevance = softmax(keys @ query / sqrt(d))

    Args:
        query_vector: Vector of shape (d,) for the word doing the looking
        key_vectors: Matrix of shape (n, d), one row per candidate word
        scale: Divide the dot products by sqrt(d)

    Returns:
        Weights of shape (n,) that are non-negative and sum to 1

    Example:
        >>> query = np.array([1.0, 0.0])
        >>> keys = np.array([[1.0, 0.0], [0.0, 1.0]])
        >>> calculate_relevance(query, keys, scale=False).round(2)
        array([0.73, 0.27])
    """
    query_vector = np.asarray(query_vector, dtype=np.float64)
    key_vectors = np.asarray(key_vectors, dtype=np.float64)
    if query_vector.ndim != 1 or key_vectors.ndim != 2:
        raise ValueError(
            f"Expected query of shape (d,) and keys of shape (n, d), got "
            f"{query_vector.shape} and {key_vectors.shape}"
        )
    if key_vectors.shape[1] != query_vector.shape[0]:
        raise ValueError(
            f"Query dimension {query_vector.shape[0]} does not match key "
            f"dimension {key_vectors.shape[1]}"
        )

    scores = key_vectors @ query_vector
    if scale:
        scores = scores / np.sqrt(query_vector.shape[0])
    return softmax(scores)


def scaled_dot_product_attention(
    query: np.ndarray,
    key: np.ndarray,
    value: np.ndarray,
    mask: Optional[np.ndarray] = None,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Compute Scaled Dot-Product Attention.

    Step-by-step:
        1. scores = Q @ K^T              (every query against every key)
        2. scores /= sqrt(d_k)           (keep softmax out of its flat tails)
        3. masked scores -> -1e9         (blocked positions)
        4. weights = softmax(scores)     (each row sums to 1)
        5. output = weights @ V          (weighted mix of values)

    A row whose keys are all masked ends up with equal weights on every key,
    because every score in it is the same fill value.

    Args:
        query: (..., seq_len_q, d_k). Any number of leading batch/head axes.
        key: (..., seq_len_k, d_k)
        value: (..., seq_len_k, d_v)
        mask: Optional boolean array broadcastable to (..., seq_len_q, seq_len_k).
              True = may attend, False = blocked.

    Returns:
        output: (..., seq_len_q, d_v)
        attention_weights: (..., seq_len_q, seq_len_k)
    """
    if query.shape[-1] != key.shape[-1]:
        raise ValueError(
            f"Query and key dimensions differ: {query.shape[-1]} vs {key.shape[-1]}"
        )
    if key.shape[-2] != value.shape[-2]:
        raise ValueError(
            f"Key and value lengths differ: {key.shape[-2]} vs {value.shape[-2]}"
        )

    d_k = query.shape[-1]
    scores = np.matmul(query, np.swapaxes(key, -1, -2)) / np.sqrt(d_k)

    if mask is not None:
        scores = np.where(mask, scores, MASK_FILL_VALUE)

    attention_weights = softmax(scores, axis=-1)
    output = np.matmul(attention_weights, value)
    return output, attention_weights


def create_causal_mask(sequence_length: int) -> np.ndarray:
    """
    Create a causal (autoregressive) attention mask.

    Position i may attend to positions 0..i only, which gives attention the
    same left-to-right visibility an RNN has, while still computing all rows
    at once.

    Example (sequence_length=3):
        [[True, False, False],
         [True, True,  False],
         [True, True,  True ]]
    """
    return np.tril(np.ones((sequence_length, sequence_length), dtype=bool))


def create_padding_mask(keep_mask: np.ndarray) -> np.ndarray:
    """
    Turn a (batch, seq_len) keep-mask into a key mask of shape (batch, 1, seq_len).

    The singleton query axis broadcasts, so no query can attend to a padded key.
    """
    keep_mask = np.asarray(keep_mask, dtype=bool)
    if keep_mask.ndim != 2:
        raise ValueError(f"Expected keep_mask of shape (batch, seq_len), got {keep_mask.shape}")
    return keep_mask[:, np.newaxis, :]


class SelfAttention:
    """
    Single-head self-attention.

    Each word vector is projected three ways:
        - Query (Q): "What am I looking for?"
        - Key (K):   "What do I contain?"
        - Value (V): "What do I pass on if chosen?"

    The attention weights from the last call are kept in
    ``attention_weights`` so they can be printed or summarized.
    """

    def __init__(self, embedding_dimension: int, head_dimension: Optional[int] = None):
        self.embedding_dimension = embedding_dimension
        self.head_dimension = head_dimension or embedding_dimension

        self.query_projection = Linear(embedding_dimension, self.head_dimension, use_bias=False)
        self.key_projection = Linear(embedding_dimension, self.head_dimension, use_bias=False)
        self.value_projection = Linear(embedding_dimension, self.head_dimension, use_bias=False)

        self.attention_weights: Optional[np.ndarray] = None

    def forward(self, inputs: np.ndarray, mask: Optional[np.ndarray] = None) -> np.ndarray:
        """
        Args:
            inputs: (seq_len, d) or (batch, seq_len, d)
            mask: Optional boolean mask broadcastable to (..., seq_len, seq_len)

        Returns:
            Context vectors of shape (..., seq_len, head_dimension)
        """
        query = self.query_projection.forward(inputs)
        key = self.key_projection.forward(inputs)
        value = self.value_projection.forward(inputs)

        output, self.attention_weights = scaled_dot_product_attention(
            query, key, value, mask=mask
        )
        return output

    def get_parameters(self) -> Dict[str, np.ndarray]:
        """Return all learnable parameters."""
        return {
            "query_weight": self.query_projection.weights,
            "key_weight": self.key_projection.weights,
            "value_weight": self.value_projection.weights,
        }


class MultiHeadAttention:
    """
    Multi-Head Attention Layer.

        MultiHead(Q, K, V) = Concat(head_1, ..., head_h) @ W^O
        where head_i = Attention(Q @ W^Q_i, K @ W^K_i, V @ W^V_i)

    Architecture:
        1. Project Q, K, V to d_model
        2. Split into h heads of size d_model / h
        3. Attend in every head at once (one batched matmul)
        4. Concatenate heads and apply the output projection

    Attributes:
        attention_weights: Weights from the last call, shape
            (batch, num_heads, seq_len_q, seq_len_k)

    Reference: "Attention Is All You Need" Section 3.2.2
    """

    def __init__(self, embedding_dimension: int, num_heads: int):
        """
        Raises:
            ValueError: If embedding_dimension is not divisible by num_heads
        """
        if num_heads < 1:
            raise ValueError(f"num_heads must be >= 1, got {num_heads}")
        if embedding_dimension % num_heads != 0:
            raise ValueError(
                f"Embedding dimension ({embedding_dimension}) must be divisible by "
                f"number of heads ({num_heads})"
            )

        self.embedding_dimension = embedding_dimension
        self.num_heads = num_heads
        self.head_dimension = embedding_dimension // num_heads

        self.query_projection = Linear(embedding_dimension, embedding_dimension)
        self.key_projection = Linear(embedding_dimension, embedding_dimension)
        self.value_projection = Linear(embedding_dimension, embedding_dimension)
        self.output_projection = Linear(embedding_dimension, embedding_dimension)

        self.attention_weights: Optional[np.ndarray] = None

    def _split_heads(self, tensor: np.ndarray) -> np.ndarray:
        # (batch, seq, d_model) -> (batch, heads, seq, head_dim)
        batch_size, sequence_length, _ = tensor.shape
        tensor = tensor.reshape(batch_size, sequence_length, self.num_heads, self.head_dimension)
        return tensor.transpose(0, 2, 1, 3)

    def forward(
        self,
        query: np.ndarray,
        key: Optional[np.ndarray] = None,
        value: Optional[np.ndarray] = None,
        mask: Optional[np.ndarray] = None,
    ) -> np.ndarray:
        """
        Forward pass. ``key`` and ``value`` default to ``query`` (self-attention).

        Args:
            query: (batch, seq_len_q, d_model) or (seq_len_q, d_model)
            key: (batch, seq_len_k, d_model), defaults to query
            value: (batch, seq_len_k, d_model), defaults to key
            mask: Boolean mask of shape (seq_q, seq_k), (batch, seq_q, seq_k)
                  or (batch, 1, seq_k)

        Returns:
            Output with the same shape as ``query``
        """
        key = query if key is None else key
        value = key if value is None else value

        unbatched = query.ndim == 2
        if unbatched:
            query, key, value = (t[np.newaxis, :, :] for t in (query, key, value))
        if query.ndim != 3:
            raise ValueError(
                f"Expected query of shape (batch, seq_len, d_model), got {query.shape}"
            )

        batch_size, seq_len_q, _ = query.shape

        heads_query = self._split_heads(self.query_projection.forward(query))
        heads_key = self._split_heads(self.key_projection.forward(key))
        heads_value = self._split_heads(self.value_projection.forward(value))

        if mask is not None and mask.ndim == 3:
            # Insert the head axis so (batch, q, k) broadcasts over heads
            mask = mask[:, np.newaxis, :, :]

        attended, self.attention_weights = scaled_dot_product_attention(
            heads_query, heads_key, heads_value, mask=mask
        )

        # (batch, heads, seq_q, head_dim) -> (batch, seq_q, d_model)
        concatenated = attended.transpose(0, 2, 1, 3).reshape(
            batch_size, seq_len_q, self.embedding_dimension
        )
        output = self.output_projection.forward(concatenated)

        if unbatched:
            self.attention_weights = self.attention_weights[0]
            return output[0]
        return output

    def get_parameters(self) -> Dict[str, np.ndarray]:
        """Return all learnable parameters."""
        params = {}
        for prefix, layer in (
            ("query", self.query_projection),
            ("key", self.key_projection),
            ("value", self.value_projection),
            ("output", self.output_projection),
        ):
            params.update({f"{prefix}_{k}": v for k, v in layer.get_parameters().items()})
        return params
