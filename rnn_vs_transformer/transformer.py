"""
Transformer Components

A transformer block is attention followed by a small per-position network,
each wrapped in LayerNorm and a residual connection. Unlike the RNN loop, a
block takes the whole sentence in one call: the number of dependent steps is
the number of stacked blocks, not the number of words.

Architecture (Pre-LN):
    x -> LayerNorm -> MultiHeadAttention -> + x
      -> LayerNorm -> FeedForward ---------> + (residual) -> output

Reference: "Attention Is All You Need" (Vaswani et al., 2017) Sections 3.1, 3.3
           "On Layer Normalization in the Transformer Architecture" (Xiong et al., 2020)

Classes:
    FeedForwardNetwork: Position-wise two-layer network with GELU
    TransformerBlock: One attention + FFN block
    TransformerEncoder: Embedding, positional encoding and N blocks

Functions:
    transformer_block: Run a freshly initialized block over a sequence
"""

from typing import Dict, List, Optional

import numpy as np

from rnn_vs_transformer.activations import gelu
from rnn_vs_transformer.attention import (
    MultiHeadAttention,
    create_causal_mask,
    create_padding_mask,
)
from rnn_vs_transformer.config import TransformerConfig
from rnn_vs_transformer.layers import Embedding, LayerNorm, Linear, PositionalEncoding


class FeedForwardNetwork:
    """
    Position-wise Feed-Forward Network.

        FFN(x) = Linear_2(GELU(Linear_1(x)))

    Applied to each position independently; attention mixes information
    between positions, the FFN processes what each position gathered.

    Reference: "Attention Is All You Need" Section 3.3
    """

    def __init__(self, embedding_dimension: int, hidden_dimension: Optional[int] = None):
        self.embedding_dimension = embedding_dimension
        self.hidden_dimension = hidden_dimension or (4 * embedding_dimension)

        self.linear_1 = Linear(embedding_dimension, self.hidden_dimension)
        self.linear_2 = Linear(self.hidden_dimension, embedding_dimension)

    def forward(self, input_tensor: np.ndarray) -> np.ndarray:
        return self.linear_2.forward(gelu(self.linear_1.forward(input_tensor)))

    def get_parameters(self) -> Dict[str, np.ndarray]:
        """Return all learnable parameters."""
        params = {}
        params.update({f"ffn_linear1_{k}": v for k, v in self.linear_1.get_parameters().items()})
        params.update({f"ffn_linear2_{k}": v for k, v in self.linear_2.get_parameters().items()})
        return params


class TransformerBlock:
    """
    Single Transformer Block (Pre-LN).

    Components:
        1. Pre-attention LayerNorm
        2. Multi-head self-attention (optionally causal)
        3. Residual connection
        4. Pre-FFN LayerNorm
        5. Feed-forward network
        6. Residual connection

    Output shape always equals input shape, so blocks stack freely.
    """

    def __init__(
        self,
        embedding_dimension: int,
        num_heads: int,
        ffn_hidden_dimension: Optional[int] = None,
    ):
        self.embedding_dimension = embedding_dimension
        self.num_heads = num_heads

        self.attention_layer_norm = LayerNorm(embedding_dimension)
        self.ffn_layer_norm = LayerNorm(embedding_dimension)
        self.self_attention = MultiHeadAttention(embedding_dimension, num_heads)
        self.feed_forward = FeedForwardNetwork(embedding_dimension, ffn_hidden_dimension)

    @property
    def attention_weights(self) -> Optional[np.ndarray]:
        """Attention weights from the most recent forward call."""
        return self.self_attention.attention_weights

    def forward(
        self,
        input_tensor: np.ndarray,
        use_causal_mask: bool = False,
        attention_mask: Optional[np.ndarray] = None,
    ) -> np.ndarray:
        """
        Args:
            input_tensor: (batch, seq_len, d_model) or (seq_len, d_model)
            use_causal_mask: Stop positions from attending to later positions
            attention_mask: Optional extra boolean mask, combined with the
                causal mask by logical AND

        Returns:
            Tensor of the same shape as ``input_tensor``
        """
        sequence_length = input_tensor.shape[-2]

        mask = attention_mask
        if use_causal_mask:
            causal_mask = create_causal_mask(sequence_length)
            mask = causal_mask if attention_mask is None else causal_mask & attention_mask

        normed = self.attention_layer_norm.forward(input_tensor)
        post_attention = input_tensor + self.self_attention.forward(normed, mask=mask)

        normed = self.ffn_layer_norm.forward(post_attention)
        return post_attention + self.feed_forward.forward(normed)

    def get_parameters(self) -> Dict[str, np.ndarray]:
        """Return all learnable parameters."""
        params = {}
        params.update({f"attn_norm_{k}": v for k, v in self.attention_layer_norm.get_parameters().items()})
        params.update({f"attn_{k}": v for k, v in self.self_attention.get_parameters().items()})
        params.update({f"ffn_norm_{k}": v for k, v in self.ffn_layer_norm.get_parameters().items()})
        params.update(self.feed_forward.get_parameters())
        return params


def transformer_block(
    inputs: np.ndarray, num_heads: int = 1, use_causal_mask: bool = False
) -> np.ndarray:
    """
    Pass a whole sequence through one randomly initialized block.

    ``output = transformer_block(all_words)`` handles every word in the same
    call, in contrast to calling ``process_word`` once per word.
    """
    block = TransformerBlock(inputs.shape[-1], num_heads)
    return block.forward(inputs, use_causal_mask=use_causal_mask)


class TransformerEncoder:
    """
    Token ids in, contextual vectors out.

        token ids -> Embedding + PositionalEncoding -> [TransformerBlock] x N -> LayerNorm

    Attributes:
        sequential_steps: Dependent steps in the last forward call. Equal to
            the number of layers, whatever the sentence length.

    Example:
        encoder = TransformerEncoder(TransformerConfig(vocab_size=20))
        hidden = encoder.forward(np.array([[4, 5, 6]]))   # (1, 3, 16)
        maps = encoder.attention_maps()                    # one per layer
    """

    def __init__(self, config: Optional[TransformerConfig] = None):
        self.config = config or TransformerConfig()
        self.config.validate()

        self.token_embedding = Embedding(self.config.vocab_size, self.config.embedding_dim)
        self.positional_encoding = PositionalEncoding(
            self.config.max_sequence_length, self.config.embedding_dim
        )
        self.blocks: List[TransformerBlock] = [
            TransformerBlock(
                self.config.embedding_dim,
                self.config.num_heads,
                self.config.ffn_hidden_dim,
            )
            for _ in range(self.config.num_layers)
        ]
        self.final_layer_norm = LayerNorm(self.config.embedding_dim)
        self.sequential_steps = 0

    def forward(
        self, token_ids: np.ndarray, attention_mask: Optional[np.ndarray] = None
    ) -> np.ndarray:
        """
        Args:
            token_ids: Integer ids, shape (batch, seq_len) or (seq_len,)
            attention_mask: Optional keep-mask of shape (batch, seq_len),
                False at padding positions (as from ``Vocabulary.batch_encode``)

        Returns:
            Hidden vectors of shape (batch, seq_len, embedding_dim)
            (or (seq_len, embedding_dim) for 1-D input)
        """
        token_ids = np.asarray(token_ids)
        unbatched = token_ids.ndim == 1
        if unbatched:
            token_ids = token_ids[np.newaxis, :]
            if attention_mask is not None:
                attention_mask = np.asarray(attention_mask)[np.newaxis, :]

        mask = None
        if attention_mask is not None:
            if np.shape(attention_mask) != token_ids.shape:
                raise ValueError(
                    f"attention_mask shape {np.shape(attention_mask)} does not match "
                    f"token ids shape {token_ids.shape}"
                )
            mask = create_padding_mask(attention_mask)

        hidden = self.positional_encoding.forward(self.token_embedding.forward(token_ids))

        self.sequential_steps = 0
        for block in self.blocks:
            # Every position is updated inside this single call
            hidden = block.forward(
                hidden, use_causal_mask=self.config.causal, attention_mask=mask
            )
            self.sequential_steps += 1

        hidden = self.final_layer_norm.forward(hidden)
        return hidden[0] if unbatched else hidden

    def attention_maps(self) -> List[np.ndarray]:
        """Attention weights of every layer from the last forward call."""
        return [block.attention_weights for block in self.blocks]

    def get_parameters(self) -> Dict[str, np.ndarray]:
        """Return every learnable parameter under a unique name."""
        params = {"token_embedding": self.token_embedding.embedding_table}
        for index, block in enumerate(self.blocks):
            params.update({f"block{index}_{k}": v for k, v in block.get_parameters().items()})
        params.update({f"final_norm_{k}": v for k, v in self.final_layer_norm.get_parameters().items()})
        return params

    def set_parameters(self, params: Dict[str, np.ndarray]) -> None:
        """
        Copy values into the existing parameter arrays.

        Raises:
            ValueError: If a known name arrives with the wrong shape.
        """
        current = self.get_parameters()
        for name, value in params.items():
            if name not in current:
                continue
            if current[name].shape != np.shape(value):
                raise ValueError(
                    f"Parameter {name} has shape {np.shape(value)}, "
                    f"expected {current[name].shape}"
                )
            current[name][...] = value

    def count_parameters(self) -> int:
        """Count total number of parameters in the model."""
        return sum(param.size for param in self.get_parameters().values())
