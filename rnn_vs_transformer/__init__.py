"""
RNNs vs Transformers, Executable Edition

This package turns the "From House Prices to Transformers" walkthrough into
runnable NumPy code. It starts from a linear house-price model, builds up to a
recurrent network that reads a sentence one word at a time, and finishes with
self-attention and transformer blocks that look at every word at once.

Modules:
    activations: Activation functions (softmax, tanh, GELU, etc.)
    layers: Neural network layers (Linear, LayerNorm, Embedding)
    house_prices: Linear regression on synthetic house prices
    vocabulary: Word-level vocabulary for toy sentences
    rnn: Vanilla recurrent network with backpropagation through time
    attention: Relevance scores, scaled dot-product and multi-head attention
    transformer: Transformer blocks and encoder stack
    comparison: Sequential steps, path lengths, cost estimates and timings
    explain: Human-readable attention summaries
    optimizer: Gradient descent and gradient clipping
    config: Configuration dataclasses
    utils: Seeding and parameter save/load

Reference:
    "Attention Is All You Need" (Vaswani et al., 2017)
    https://arxiv.org/abs/1706.03762
"""

__version__ = "1.0.0"
__author__ = "Educational RNN vs Transformer Project"
