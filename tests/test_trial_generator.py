"""Unit tests for stimulus sequence generation."""
import random

import pytest

from config.settings import ConfigError
from game.trial_generator import (
    generate_digit_sequence,
    generate_nback_sequence,
    generate_span_sequence,
    nback_targets,
)


class TestSpanSequence:
    @pytest.mark.parametrize("length", [1, 2, 5, 9])
    def test_distinct_cells_within_grid(self, length):
        for seed in range(200):
            seq = generate_span_sequence(random.Random(seed), length, grid_size=9)
            assert len(seq) == length
            assert len(set(seq)) == length
            assert all(0 <= cell < 9 for cell in seq)

    def test_same_seed_same_sequence(self):
        a = generate_span_sequence(random.Random(3), 4)
        b = generate_span_sequence(random.Random(3), 4)
        assert a == b

    @pytest.mark.parametrize("length", [0, 10])
    def test_length_outside_grid_rejected(self, length):
        with pytest.raises(ConfigError):
            generate_span_sequence(random.Random(0), length, grid_size=9)


class TestNBackSequence:
    def test_length_and_symbol_range(self):
        seq = generate_nback_sequence(random.Random(1), total_trials=30, n=2, target_probability=0.33)
        assert len(seq) == 30
        assert all(1 <= s <= 9 for s in seq)

    def test_target_rate_approximates_probability(self):
        seq = generate_nback_sequence(random.Random(42), total_trials=20000, n=2, target_probability=0.33)
        targets = nback_targets(seq, 2)
        rate = sum(targets[2:]) / (len(seq) - 2)
        assert rate == pytest.approx(0.33, abs=0.02)

    def test_zero_probability_has_no_accidental_targets(self):
        for seed in range(50):
            seq = generate_nback_sequence(random.Random(seed), total_trials=100, n=3, target_probability=0.0)
            assert not any(nback_targets(seq, 3))

    def test_full_probability_repeats_every_position(self):
        seq = generate_nback_sequence(random.Random(0), total_trials=20, n=2, target_probability=1.0)
        assert nback_targets(seq, 2) == [False, False] + [True] * 18

    def test_first_n_positions_are_never_targets(self):
        seq = [5, 5, 5, 5]
        assert nback_targets(seq, 2) == [False, False, True, True]

    def test_two_symbols_is_enough(self):
        seq = generate_nback_sequence(random.Random(0), 50, n=1, target_probability=0.0, symbols=(1, 2))
        assert all(seq[i] != seq[i - 1] for i in range(1, 50))

    def test_single_symbol_rejected(self):
        with pytest.raises(ConfigError):
            generate_nback_sequence(random.Random(0), 10, n=2, target_probability=0.3, symbols=(4, 4))


class TestDigitSequence:
    def test_digits_in_range_with_repeats_allowed(self):
        seen_repeat = False
        for seed in range(200):
            seq = generate_digit_sequence(random.Random(seed), 6)
            assert len(seq) == 6
            assert all(0 <= d <= 9 for d in seq)
            seen_repeat = seen_repeat or len(set(seq)) < 6
        assert seen_repeat

    def test_length_beyond_ten_is_fine(self):
        assert len(generate_digit_sequence(random.Random(1), 12)) == 12

    def test_zero_length_rejected(self):
        with pytest.raises(ConfigError):
            generate_digit_sequence(random.Random(0), 0)
