"""
RNN vs Transformer: The Engineering Reality

The two architectures differ less in what they compute than in how the work
is shaped:

    +--------------------------+--------------------+----------------------+
    |                          | RNN                | Transformer layer    |
    +--------------------------+--------------------+----------------------+
    | Dependent steps          | n                  | 1                    |
    | Longest path between     | n - 1              | 1                    |
    |   two positions          |                    |                      |
    | Multiply-adds            | 2 n d^2            | 4 n d^2 + 2 n^2 d    |
    | Activation memory        | n d                | n d + n^2            |
    +--------------------------+--------------------+----------------------+

Attention does *more* arithmetic, and its memory grows with n^2, yet it wins
on modern hardware because all of that arithmetic is independent and can be
spread across thousands of cores. The RNN's work is smaller but strictly
serial.

Functions:
    sequential_steps: Dependent steps to process a sequence
    max_path_length: Longest route information must travel between positions
    estimate_operations: Multiply-add count for one layer
    estimate_activation_memory: Floats held during one forward pass
    time_forward: Average wall-clock time of a callable
    compare_architectures: Measure both architectures across sequence lengths
    format_comparison_table: Render reports as text

Classes:
    ComparisonReport: Numbers for one sequence length
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence

import numpy as np

from rnn_vs_transformer.config import RNNConfig
from rnn_vs_transformer.rnn import SimpleRNN
from rnn_vs_transformer.transformer import TransformerBlock

logger = logging.getLogger(__name__)

ARCHITECTURES = ("rnn", "transformer")


def _check_architecture(architecture: str) -> str:
    architecture = architecture.lower()
    if architecture not in ARCHITECTURES:
        raise ValueError(
            f"Unknown architecture '{architecture}'. Choose from: {ARCHITECTURES}"
        )
    return architecture


def _check_length(sequence_length: int) -> None:
    if sequence_length < 1:
        raise ValueError(f"sequence_length must be >= 1, got {sequence_length}")


def sequential_steps(architecture: str, sequence_length: int, num_layers: int = 1) -> int:
    """
    Number of steps that must run one after another.

    RNN: every word in every layer waits for the previous word.
    Transformer: each layer is one step; the words inside it are parallel.
    """
    architecture = _check_architecture(architecture)
    _check_length(sequence_length)
    if num_layers < 1:
        raise ValueError(f"num_layers must be >= 1, got {num_layers}")

    if architecture == "rnn":
        return sequence_length * num_layers
    return num_layers


def max_path_length(architecture: str, sequence_length: int) -> int:
    """
    Longest number of computation steps between any two positions in one layer.

    For an RNN, word 0 reaches word n-1 only through n-1 recurrences. In
    self-attention every pair is connected directly.
    """
    architecture = _check_architecture(architecture)
    _check_length(sequence_length)

    if sequence_length == 1:
        return 0
    if architecture == "rnn":
        return sequence_length - 1
    return 1


def estimate_operations(architecture: str, sequence_length: int, dim: int) -> int:
    """
    Multiply-adds for one layer with model/hidden size ``dim``.

    RNN:
        per word: x @ W_xh^T and h @ W_hh^T  -> 2 d^2
    Self-attention:
        Q, K, V and output projections       -> 4 n d^2
        Q @ K^T and weights @ V              -> 2 n^2 d
    """
    architecture = _check_architecture(architecture)
    _check_length(sequence_length)
    if dim < 1:
        raise ValueError(f"dim must be >= 1, got {dim}")

    n, d = sequence_length, dim
    if architecture == "rnn":
        return 2 * n * d * d
    return 4 * n * d * d + 2 * n * n * d


def estimate_activation_memory(architecture: str, sequence_length: int, dim: int) -> int:
    """
    Floats kept for one forward pass: hidden states, plus the n x n attention
    matrix for a transformer layer.
    """
    architecture = _check_architecture(architecture)
    _check_length(sequence_length)
    if dim < 1:
        raise ValueError(f"dim must be >= 1, got {dim}")

    if architecture == "rnn":
        return sequence_length * dim
    return sequence_length * dim + sequence_length * sequence_length


def time_forward(fn: Callable[[], object], warmup: int = 2, iterations: int = 5) -> float:
    """
    Mean wall-clock seconds per call of ``fn`` after ``warmup`` untimed calls.
    """
    if iterations < 1:
        raise ValueError(f"iterations must be >= 1, got {iterations}")
    for _ in range(warmup):
        fn()
    start = time.perf_counter()
    for _ in range(iterations):
        fn()
    return (time.perf_counter() - start) / iterations


@dataclass
class ComparisonReport:
    """
    Side-by-side numbers for one sequence length.

    The ``*_sequential_steps`` fields are counted from real forward calls,
    not from the formulas, so they double as a check on the models.
    """

    sequence_length: int
    dim: int
    rnn_sequential_steps: int
    transformer_sequential_steps: int
    rnn_path_length: int
    transformer_path_length: int
    rnn_operations: int
    transformer_operations: int
    rnn_memory: int
    transformer_memory: int
    rnn_seconds: Optional[float] = None
    transformer_seconds: Optional[float] = None

    @property
    def step_ratio(self) -> float:
        """How many times more dependent steps the RNN needs."""
        return self.rnn_sequential_steps / self.transformer_sequential_steps


def compare_architectures(
    sequence_lengths: Sequence[int],
    dim: int = 32,
    num_heads: int = 4,
    measure_time: bool = True,
    warmup: int = 1,
    iterations: int = 3,
) -> List[ComparisonReport]:
    """
    Run one RNN layer and one transformer block over random sequences.

    Args:
        sequence_lengths: Lengths to test, e.g. [8, 32, 128]
        dim: Word vector / hidden size shared by both models
        num_heads: Attention heads in the transformer block
        measure_time: Also time the forward passes
        warmup: Untimed calls before timing
        iterations: Timed calls to average

    Returns:
        One ``ComparisonReport`` per sequence length, in the given order.
    """
    if not sequence_lengths:
        raise ValueError("sequence_lengths must not be empty")

    rnn = SimpleRNN(RNNConfig(input_dim=dim, hidden_dim=dim))
    block = TransformerBlock(dim, num_heads)

    reports = []
    for sequence_length in sequence_lengths:
        _check_length(sequence_length)
        inputs = np.random.randn(1, sequence_length, dim)

        rnn.forward(inputs)
        block.forward(inputs)

        report = ComparisonReport(
            sequence_length=sequence_length,
            dim=dim,
            rnn_sequential_steps=rnn.sequential_steps,
            transformer_sequential_steps=sequential_steps("transformer", sequence_length),
            rnn_path_length=max_path_length("rnn", sequence_length),
            transformer_path_length=max_path_length("transformer", sequence_length),
            rnn_operations=estimate_operations("rnn", sequence_length, dim),
            transformer_operations=estimate_operations("transformer", sequence_length, dim),
            rnn_memory=estimate_activation_memory("rnn", sequence_length, dim),
            transformer_memory=estimate_activation_memory("transformer", sequence_length, dim),
        )

        if measure_time:
            report.rnn_seconds = time_forward(
                lambda: rnn.forward(inputs), warmup=warmup, iterations=iterations
            )
            report.transformer_seconds = time_forward(
                lambda: block.forward(inputs), warmup=warmup, iterations=iterations
            )
            logger.info(
                "n=%d rnn=%.6fs transformer=%.6fs",
                sequence_length,
                report.rnn_seconds,
                report.transformer_seconds,
            )

        reports.append(report)

    return reports


def format_comparison_table(reports: Sequence[ComparisonReport]) -> str:
    """Render reports as a fixed-width text table, one row per length."""
    header = (
        f"{'n':>6} | {'steps RNN':>9} {'TF':>4} | {'path RNN':>8} {'TF':>3} | "
        f"{'ops RNN':>12} {'TF':>12} | {'mem RNN':>9} {'TF':>9} | {'ms RNN':>8} {'TF':>8}"
    )
    lines = [header, "-" * len(header)]
    for report in reports:
        rnn_ms = f"{report.rnn_seconds * 1000:8.3f}" if report.rnn_seconds is not None else f"{'-':>8}"
        tf_ms = (
            f"{report.transformer_seconds * 1000:8.3f}"
            if report.transformer_seconds is not None
            else f"{'-':>8}"
        )
        lines.append(
            f"{report.sequence_length:>6} | "
            f"{report.rnn_sequential_steps:>9} {report.transformer_sequential_steps:>4} | "
            f"{report.rnn_path_length:>8} {report.transformer_path_length:>3} | "
            f"{report.rnn_operations:>12,} {report.transformer_operations:>12,} | "
            f"{report.rnn_memory:>9,} {report.transformer_memory:>9,} | "
            f"{rnn_ms} {tf_ms}"
        )
    return "\n".join(lines)
