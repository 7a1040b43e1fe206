"""
Configuration Dataclasses

Every model in the walkthrough is driven by a small dataclass so that the
hyperparameters can be printed, saved alongside the weights and compared
between the RNN and the transformer.

Classes:
    HousePriceConfig: Gradient-descent settings for the linear price model
    RNNConfig: Sizes for the vanilla recurrent network
    TransformerConfig: Sizes for the transformer encoder

Typical configurations:
    - House prices: 3 features, learning_rate=0.1, 200 epochs
    - Toy sentence models: embedding_dim=16, hidden_dim=16, 2 heads, 2 layers
"""

from dataclasses import dataclass


@dataclass
class HousePriceConfig:
    """
    Settings for ``HousePriceModel``.

    Attributes:
        num_features: Number of input columns (size, bedrooms, age)
        learning_rate: Gradient descent step size on standardized features
        num_epochs: Full passes over the training data
        log_every: Log the loss every N epochs (0 disables progress logs)
    """

    num_features: int = 3
    learning_rate: float = 0.1
    num_epochs: int = 200
    log_every: int = 50

    def validate(self) -> None:
        """Raise ValueError if any setting is out of range."""
        if self.num_features < 1:
            raise ValueError(f"num_features must be >= 1, got {self.num_features}")
        if self.learning_rate <= 0:
            raise ValueError(
                f"learning_rate must be positive, got {self.learning_rate}"
            )
        if self.num_epochs < 0:
            raise ValueError(f"num_epochs must be >= 0, got {self.num_epochs}")
        if self.log_every < 0:
            raise ValueError(f"log_every must be >= 0, got {self.log_every}")


@dataclass
class RNNConfig:
    """
    Settings for ``SimpleRNN``.

    Attributes:
        input_dim: Size of each word vector fed in at a timestep
        hidden_dim: Size of the running hidden state
        recurrent_scale: Multiplier on the initial recurrent weights. Values
            below 1 make gradients vanish faster, values above 1 make them
            explode.
    """

    input_dim: int = 16
    hidden_dim: int = 16
    recurrent_scale: float = 1.0

    def validate(self) -> None:
        """Raise ValueError if any setting is out of range."""
        if self.input_dim < 1:
            raise ValueError(f"input_dim must be >= 1, got {self.input_dim}")
        if self.hidden_dim < 1:
            raise ValueError(f"hidden_dim must be >= 1, got {self.hidden_dim}")
        if self.recurrent_scale <= 0:
            raise ValueError(
                f"recurrent_scale must be positive, got {self.recurrent_scale}"
            )


@dataclass
class TransformerConfig:
    """
    Settings for ``TransformerEncoder``.

    Attributes:
        vocab_size: Number of token ids the embedding table holds
        embedding_dim: Model dimension (d_model)
        num_heads: Attention heads per block
        num_layers: Number of stacked transformer blocks
        ffn_hidden_dim: Feed-forward inner size (defaults to 4 * embedding_dim)
        max_sequence_length: Longest sequence the positional table covers
        causal: Whether blocks apply a causal mask
    """

    vocab_size: int = 64
    embedding_dim: int = 16
    num_heads: int = 2
    num_layers: int = 2
    ffn_hidden_dim: int = 0
    max_sequence_length: int = 64
    causal: bool = False

    def __post_init__(self):
        if not self.ffn_hidden_dim:
            self.ffn_hidden_dim = 4 * self.embedding_dim

    @property
    def head_dim(self) -> int:
        return self.embedding_dim // self.num_heads

    def validate(self) -> None:
        """Raise ValueError if any setting is out of range."""
        if self.vocab_size < 1:
            raise ValueError(f"vocab_size must be >= 1, got {self.vocab_size}")
        if self.embedding_dim < 1:
            raise ValueError(f"embedding_dim must be >= 1, got {self.embedding_dim}")
        if self.num_heads < 1:
            raise ValueError(f"num_heads must be >= 1, got {self.num_heads}")
        if self.embedding_dim % self.num_heads != 0:
            raise ValueError(
                f"Embedding dimension ({self.embedding_dim}) must be divisible by "
                f"number of heads ({self.num_heads})"
            )
        if self.num_layers < 1:
            raise ValueError(f"num_layers must be >= 1, got {self.num_layers}")
        if self.max_sequence_length < 1:
            raise ValueError(
                f"max_sequence_length must be >= 1, got {self.max_sequence_length}"
            )
