"""
Reading Attention Weights

An attention matrix is just numbers until it is labelled. These helpers turn
a (words x words) weight matrix into statements like "sat attends to cat at
0.90" and into a printable grid.

Functions:
    attention_summary: Top-k attended words for every word
    describe_links: Sentences describing attention links
    format_attention_table: Text grid with words on both axes
    toy_sentence_attention: Embed a sentence and run single-head self-attention
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy as np

from rnn_vs_transformer.attention import SelfAttention
from rnn_vs_transformer.layers import Embedding, PositionalEncoding
from rnn_vs_transformer.utils import set_seed
from rnn_vs_transformer.vocabulary import Vocabulary


@dataclass(frozen=True)
class AttentionLink:
    """``source`` puts ``weight`` of its attention on ``target``."""

    source: str
    target: str
    weight: float


def _as_square_matrix(words: Sequence[str], weights: np.ndarray) -> np.ndarray:
    weights = np.asarray(weights, dtype=np.float64)
    # Average any leading batch/head axes into a single map
    while weights.ndim > 2:
        weights = weights.mean(axis=0)
    n = len(words)
    if weights.shape != (n, n):
        raise ValueError(
            f"Got {n} words but attention weights of shape {weights.shape}"
        )
    return weights


def attention_summary(
    words: Sequence[str],
    weights: np.ndarray,
    top_k: int = 1,
    exclude_self: bool = False,
) -> List[AttentionLink]:
    """
    For every word, list the ``top_k`` words it attends to most.

    Args:
        words: The n words labelling both axes
        weights: (n, n) attention weights, or (..., n, n) which is averaged
        top_k: Links to keep per word
        exclude_self: Skip the word attending to its own position

    Returns:
        Links ordered by source position, then by descending weight. Ties keep
        the earlier target position first.
    """
    if top_k < 1:
        raise ValueError(f"top_k must be >= 1, got {top_k}")
    weights = _as_square_matrix(words, weights)

    links = []
    for i, source in enumerate(words):
        order = np.argsort(-weights[i], kind="stable")
        kept = 0
        for j in order:
            if exclude_self and j == i:
                continue
            links.append(AttentionLink(source, words[j], float(weights[i, j])))
            kept += 1
            if kept == top_k:
                break
    return links


def describe_links(links: Sequence[AttentionLink]) -> List[str]:
    """["sat attends to cat at 0.90", ...]"""
    return [f"{link.source} attends to {link.target} at {link.weight:.2f}" for link in links]


def format_attention_table(
    words: Sequence[str], weights: np.ndarray, precision: int = 2
) -> str:
    """Render the weights as a grid: rows attend, columns are attended to."""
    weights = _as_square_matrix(words, weights)
    width = max(max((len(word) for word in words), default=0), precision + 2, 4)

    lines = [" " * width + " " + " ".join(f"{word:>{width}}" for word in words)]
    for word, row in zip(words, weights):
        cells = " ".join(f"{value:>{width}.{precision}f}" for value in row)
        lines.append(f"{word:>{width}} {cells}")
    return "\n".join(lines)


def toy_sentence_attention(
    sentence: str,
    vocabulary: Optional[Vocabulary] = None,
    embedding_dimension: int = 16,
    seed: int = 0,
) -> Tuple[List[str], np.ndarray]:
    """
    Embed a sentence with random (untrained) vectors and run self-attention.

    The weights are not meaningful linguistically since nothing is trained,
    but every number shown is produced by the real attention computation.

    Returns:
        words: Tokens of the sentence
        weights: (n, n) attention matrix whose rows sum to 1

    Raises:
        ValueError: If the sentence has no tokens.
    """
    words = Vocabulary.tokenize(sentence)
    if not words:
        raise ValueError("Sentence contains no words")
    if vocabulary is None:
        vocabulary = Vocabulary().build([sentence])

    set_seed(seed)
    token_ids = np.array(vocabulary.encode(sentence))
    embedding = Embedding(vocabulary.size, embedding_dimension)
    positions = PositionalEncoding(max(len(words), 1), embedding_dimension)
    attention = SelfAttention(embedding_dimension)

    attention.forward(positions.forward(embedding.forward(token_ids)))
    return words, attention.attention_weights
