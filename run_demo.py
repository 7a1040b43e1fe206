#!/usr/bin/env python3
"""
From House Prices to Transformers: Demo Script

Walks through the whole story in order:
1. House prices: a prediction is a weighted sum, learned by gradient descent
2. RNN: read a sentence one word at a time and watch gradients vanish
3. Attention: every word scores every other word in one matrix product
4. Transformer: attention + feed-forward blocks over the whole sentence
5. Engineering reality: steps, path lengths, cost and timing side by side

Usage:
    python run_demo.py [mode] [--seed N] [--sentence TEXT] [--save-dir DIR]

    Modes:
        all          - Run every stage (default)
        house        - Linear regression on synthetic house prices
        rnn          - Sequential processing and vanishing gradients
        attention    - Relevance scores and attention weights
        transformer  - Transformer encoder over a sentence
        compare      - RNN vs transformer measurements

Example:
    python run_demo.py compare --verbose
"""

import argparse
import logging
import os
import sys
from typing import List, Optional

import numpy as np

from rnn_vs_transformer.attention import calculate_relevance, create_causal_mask
from rnn_vs_transformer.comparison import compare_architectures, format_comparison_table
from rnn_vs_transformer.config import HousePriceConfig, RNNConfig, TransformerConfig
from rnn_vs_transformer.explain import (
    attention_summary,
    describe_links,
    format_attention_table,
    toy_sentence_attention,
)
from rnn_vs_transformer.house_prices import (
    TRUE_BIAS,
    TRUE_WEIGHTS,
    HousePriceModel,
    make_house_dataset,
)
from rnn_vs_transformer.layers import Embedding
from rnn_vs_transformer.rnn import SimpleRNN, gradient_flow
from rnn_vs_transformer.transformer import TransformerEncoder
from rnn_vs_transformer.utils import save_parameters, set_seed
from rnn_vs_transformer.vocabulary import Vocabulary

DEFAULT_SENTENCE = "The cat sat on the mat because it was tired."
MODES = ["all", "house", "rnn", "attention", "transformer", "compare"]


def print_header(text: str):
    """Print a formatted header."""
    print()
    print("=" * 70)
    print(text)
    print("=" * 70)
    print()


def print_section(text: str):
    """Print a section divider."""
    print()
    print("-" * 70)
    print(text)
    print("-" * 70)


def demo_house_prices(save_dir: Optional[str] = None) -> HousePriceModel:
    """Stage 1: the weighted sum that everything else is built from."""
    print_header("1. HOUSE PRICES - A prediction is a weighted sum")

    features, prices = make_house_dataset(num_samples=200, noise_std=5000.0, seed=0)
    print(f"Dataset: {features.shape[0]} houses, features = size_sqft, bedrooms, age_years")
    print(f"True rule: price = {TRUE_WEIGHTS.tolist()} . features + {TRUE_BIAS:,.0f}")

    config = HousePriceConfig()
    model = HousePriceModel(config)
    history = model.fit(features, prices)
    print(f"Loss (standardized): first epoch {history[0]:.4f} -> last epoch {history[-1]:.4f}")

    weights, bias = model.original_unit_weights()
    print_section("Learned weights (dollars per unit)")
    for name, learned, true in zip(model.feature_names, weights, TRUE_WEIGHTS):
        print(f"  {name:<10} learned {learned:>10.2f}   true {true:>10.2f}")
    print(f"  {'bias':<10} learned {bias:>10.2f}   true {TRUE_BIAS:>10.2f}")

    house = np.array([2000.0, 3.0, 10.0])
    print_section("Explaining one prediction (2000 sqft, 3 bedrooms, 10 years)")
    for name, value in model.explain(house).items():
        print(f"  {name:<10} {value:>12,.0f}")
    print(f"  {'= price':<10} {model.predict(house)[0]:>12,.0f}")

    if save_dir:
        path = os.path.join(save_dir, "house_prices.npz")
        save_parameters(model.linear.get_parameters(), path, config=config)
        print(f"\nSaved parameters to {path}")
    return model


def demo_rnn(sentence: str, save_dir: Optional[str] = None) -> SimpleRNN:
    """Stage 2: one word at a time."""
    print_header("2. RNN - Reading one word at a time")

    vocabulary = Vocabulary().build([sentence])
    token_ids = np.array(vocabulary.encode(sentence))
    words = Vocabulary.tokenize(sentence)

    config = RNNConfig(input_dim=16, hidden_dim=16)
    embedding = Embedding(vocabulary.size, config.input_dim)
    rnn = SimpleRNN(config)

    word_vectors = embedding.forward(token_ids)
    hidden = rnn.initial_state(batch_size=1)
    for word, vector in zip(words, word_vectors):
        hidden = rnn.process_word(vector[np.newaxis, :], hidden)
        print(f"  after {word!r:<12} hidden[:4] = {hidden[0, :4].round(3)}")
    print(f"\nSequential steps for {len(words)} words: {rnn.sequential_steps}")

    print_section("Vanishing gradients: d h_last / d word_t")
    for scale in (0.5, 1.0, 2.0):
        scaled_rnn = SimpleRNN(RNNConfig(input_dim=16, hidden_dim=16, recurrent_scale=scale))
        norms = gradient_flow(scaled_rnn, word_vectors)
        print(
            f"  recurrent_scale={scale:<4} first word {norms[0]:.2e}   "
            f"last word {norms[-1]:.2e}"
        )
    print("\nThe first word's influence on the final state shrinks with distance.")

    if save_dir:
        path = os.path.join(save_dir, "rnn.npz")
        save_parameters(rnn.get_parameters(), path, config=config)
        print(f"\nSaved parameters to {path}")
    return rnn


def demo_attention(sentence: str):
    """Stage 3: every word looks at every word."""
    print_header("3. ATTENTION - Every word looks at every word")

    query = np.array([1.0, 0.0, 1.0])
    keys = np.array([[1.0, 0.0, 1.0], [0.0, 1.0, 0.0], [0.5, 0.5, 0.5]])
    relevance = calculate_relevance(query, keys)
    print("calculate_relevance for one query against three keys:")
    print(f"  {relevance.round(3)} (sums to {relevance.sum():.1f})")

    words, weights = toy_sentence_attention(sentence)
    print_section("Self-attention weights (untrained embeddings)")
    print(format_attention_table(words, weights))

    print_section("Strongest link per word")
    for line in describe_links(attention_summary(words, weights, exclude_self=True)):
        print(f"  {line}")

    print_section("Causal mask (Y = may attend)")
    mask = create_causal_mask(min(len(words), 6))
    for row in mask:
        print("  " + " ".join("Y" if allowed else "-" for allowed in row))


def demo_transformer(sentence: str, save_dir: Optional[str] = None) -> TransformerEncoder:
    """Stage 4: blocks over the whole sentence."""
    print_header("4. TRANSFORMER - Whole sentence per step")

    vocabulary = Vocabulary().build([sentence])
    token_ids, keep_mask = vocabulary.batch_encode([sentence, "the cat sat"])

    config = TransformerConfig(
        vocab_size=vocabulary.size,
        embedding_dim=16,
        num_heads=2,
        num_layers=2,
        max_sequence_length=max(64, token_ids.shape[1]),
    )
    encoder = TransformerEncoder(config)
    hidden = encoder.forward(token_ids, attention_mask=keep_mask)

    print(f"Input ids shape:    {token_ids.shape} (shorter sentence padded)")
    print(f"Output shape:       {hidden.shape}")
    print(f"Parameters:         {encoder.count_parameters():,}")
    print(f"Sequential steps:   {encoder.sequential_steps} (one per layer, any length)")

    words = Vocabulary.tokenize(sentence)
    n = len(words)
    last_layer = encoder.attention_maps()[-1][0][:, :n, :n]
    print_section("Last layer, head-averaged, strongest links")
    for line in describe_links(attention_summary(words, last_layer, exclude_self=True)):
        print(f"  {line}")

    if save_dir:
        path = os.path.join(save_dir, "transformer.npz")
        save_parameters(encoder.get_parameters(), path, config=config)
        print(f"\nSaved parameters to {path}")
    return encoder


def demo_compare(sequence_lengths: Optional[List[int]] = None):
    """Stage 5: the engineering trade-off in numbers."""
    print_header("5. ENGINEERING REALITY - RNN vs Transformer")

    reports = compare_architectures(sequence_lengths or [8, 32, 128], dim=32, num_heads=4)
    print(format_comparison_table(reports))
    print()
    print("- The RNN's dependent steps grow with n; the transformer's stay at 1.")
    print("- Attention does more arithmetic and stores an n x n matrix,")
    print("  but all of it can run in parallel.")
    return reports


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="From House Prices to Transformers demo")
    parser.add_argument(
        "mode",
        nargs="?",
        default="all",
        choices=MODES,
        help="Demo stage to run",
    )
    parser.add_argument("--seed", type=int, default=42, help="Random seed")
    parser.add_argument("--sentence", default=DEFAULT_SENTENCE, help="Sentence to analyse")
    parser.add_argument("--save-dir", default=None, help="Directory to save parameters into")
    parser.add_argument("--verbose", action="store_true", help="Show INFO logs")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )

    if not Vocabulary.tokenize(args.sentence):
        parser.error("--sentence must contain at least one word")

    if args.save_dir:
        os.makedirs(args.save_dir, exist_ok=True)

    set_seed(args.seed)

    if args.mode in ("all", "house"):
        demo_house_prices(args.save_dir)
    if args.mode in ("all", "rnn"):
        demo_rnn(args.sentence, args.save_dir)
    if args.mode in ("all", "attention"):
        demo_attention(args.sentence)
    if args.mode in ("all", "transformer"):
        demo_transformer(args.sentence, args.save_dir)
    if args.mode in ("all", "compare"):
        demo_compare()

    print("\nDone!")
    return 0


if __name__ == "__main__":
    sys.exit(main())
