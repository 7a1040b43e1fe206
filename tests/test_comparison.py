"""
Tests for the RNN vs transformer comparison.

Tests cover:
- Sequential step counts
- Path lengths between positions
- Operation and memory estimates
- Timing helper
- Full comparison reports and table rendering
"""

import numpy as np
import pytest


class TestSequentialSteps:
    """RNN steps grow with length; transformer steps do not."""

    def test_rnn_steps_equal_length(self):
        """RNN steps are length times layers."""
        from rnn_vs_transformer.comparison import sequential_steps

        assert sequential_steps("rnn", 10) == 10
        assert sequential_steps("rnn", 10, num_layers=3) == 30

    def test_transformer_steps_equal_layers(self):
        """Transformer steps equal the number of layers."""
        from rnn_vs_transformer.comparison import sequential_steps

        assert sequential_steps("transformer", 10) == 1
        assert sequential_steps("transformer", 1000, num_layers=6) == 6

    def test_architecture_name_is_case_insensitive(self):
        """Architecture names are matched case-insensitively."""
        from rnn_vs_transformer.comparison import sequential_steps

        assert sequential_steps("RNN", 4) == 4

    def test_invalid_arguments(self):
        """Unknown names and non-positive sizes raise ValueError."""
        from rnn_vs_transformer.comparison import sequential_steps

        with pytest.raises(ValueError, match="Unknown architecture"):
            sequential_steps("lstm", 5)
        with pytest.raises(ValueError):
            sequential_steps("rnn", 0)
        with pytest.raises(ValueError):
            sequential_steps("transformer", 5, num_layers=0)


class TestPathLength:
    """How far information travels between two words."""

    def test_rnn_path_grows(self):
        """RNN path length is n - 1."""
        from rnn_vs_transformer.comparison import max_path_length

        assert max_path_length("rnn", 2) == 1
        assert max_path_length("rnn", 50) == 49

    def test_transformer_path_constant(self):
        """Attention connects every pair in one step."""
        from rnn_vs_transformer.comparison import max_path_length

        assert max_path_length("transformer", 2) == 1
        assert max_path_length("transformer", 50) == 1

    def test_single_word_has_no_path(self):
        """A single word has nothing to travel to."""
        from rnn_vs_transformer.comparison import max_path_length

        assert max_path_length("rnn", 1) == 0
        assert max_path_length("transformer", 1) == 0


class TestEstimates:
    """Operation and memory formulas."""

    def test_operation_counts(self):
        """Multiply-add counts follow the documented formulas."""
        from rnn_vs_transformer.comparison import estimate_operations

        assert estimate_operations("rnn", 10, 4) == 2 * 10 * 16
        assert estimate_operations("transformer", 10, 4) == 4 * 10 * 16 + 2 * 100 * 4

    def test_transformer_does_more_arithmetic(self):
        """Attention always does more arithmetic than the RNN."""
        from rnn_vs_transformer.comparison import estimate_operations

        for n in (1, 16, 256):
            assert estimate_operations("transformer", n, 32) > estimate_operations("rnn", n, 32)

    def test_memory_quadratic_in_length(self):
        """Transformer memory adds the n x n attention matrix."""
        from rnn_vs_transformer.comparison import estimate_activation_memory

        assert estimate_activation_memory("rnn", 100, 8) == 800
        assert estimate_activation_memory("transformer", 100, 8) == 800 + 10000

    def test_invalid_dim(self):
        """A non-positive dimension raises ValueError."""
        from rnn_vs_transformer.comparison import (
            estimate_activation_memory,
            estimate_operations,
        )

        with pytest.raises(ValueError):
            estimate_operations("rnn", 4, 0)
        with pytest.raises(ValueError):
            estimate_activation_memory("transformer", 4, 0)


class TestTimeForward:
    """Wall-clock helper."""

    def test_calls_function_warmup_plus_iterations(self):
        """The function runs warmup + iterations times."""
        from rnn_vs_transformer.comparison import time_forward

        calls = []
        seconds = time_forward(lambda: calls.append(1), warmup=2, iterations=3)

        assert len(calls) == 5
        assert seconds >= 0.0

    def test_invalid_iterations(self):
        """At least one timed iteration is required."""
        from rnn_vs_transformer.comparison import time_forward

        with pytest.raises(ValueError):
            time_forward(lambda: None, iterations=0)


class TestCompareArchitectures:
    """End-to-end comparison."""

    def test_reports_per_length(self):
        """Reports come back in order with step counts from real forward calls."""
        from rnn_vs_transformer.comparison import compare_architectures

        np.random.seed(0)
        reports = compare_architectures([3, 12], dim=8, num_heads=2, measure_time=False)

        assert [report.sequence_length for report in reports] == [3, 12]
        assert reports[0].rnn_sequential_steps == 3
        assert reports[1].rnn_sequential_steps == 12
        assert all(report.transformer_sequential_steps == 1 for report in reports)
        assert reports[1].step_ratio == 12.0
        assert reports[1].rnn_path_length == 11
        assert reports[0].rnn_seconds is None

    def test_measure_time(self):
        """Timing fills in both seconds fields."""
        from rnn_vs_transformer.comparison import compare_architectures

        (report,) = compare_architectures([4], dim=8, num_heads=2, warmup=0, iterations=1)

        assert report.rnn_seconds >= 0.0
        assert report.transformer_seconds >= 0.0

    def test_empty_lengths_raise(self):
        """An empty list of lengths raises ValueError."""
        from rnn_vs_transformer.comparison import compare_architectures

        with pytest.raises(ValueError):
            compare_architectures([])

    def test_invalid_length_raises(self):
        """A zero length raises ValueError."""
        from rnn_vs_transformer.comparison import compare_architectures

        with pytest.raises(ValueError):
            compare_architectures([4, 0], dim=8, num_heads=2, measure_time=False)

    def test_format_table(self):
        """The table has a header, a rule and one row per length."""
        from rnn_vs_transformer.comparison import (
            compare_architectures,
            format_comparison_table,
        )

        reports = compare_architectures([5, 20], dim=8, num_heads=2, measure_time=False)
        table = format_comparison_table(reports)
        lines = table.splitlines()

        assert len(lines) == 4
        assert "steps RNN" in lines[0]
        assert lines[2].strip().startswith("5 |")
        assert lines[3].strip().startswith("20 |")
        assert "-" in lines[2].split("|")[-1]
