"""
Tests for the statistics helpers.
"""

import random

import numpy as np
import pytest

from chukrum.analysis import (
    confidence_interval,
    position_counts,
    score_summary,
    shuffle_fidelity,
    win_rate,
)
from chukrum.common.deck import Deck


class TestShuffleFidelity:
    """Tests for the position x card uniformity check."""

    def test_counts_are_a_permutation_table(self):
        counts = position_counts(50, rng=random.Random(1))
        assert counts.shape == (52, 52)
        assert np.all(counts.sum(axis=0) == 50)
        assert np.all(counts.sum(axis=1) == 50)

    def test_seeded_shuffle_is_uniform(self):
        result = shuffle_fidelity(2000, rng=random.Random(2024))
        assert result.passed
        assert result.degrees_of_freedom == 51 * 51
        assert result.to_dict()["samples"] == 2000

    def test_missing_shuffle_is_detected(self, monkeypatch):
        monkeypatch.setattr(Deck, "shuffle", lambda self: self)
        result = shuffle_fidelity(200, rng=random.Random(0))
        assert not result.passed
        assert result.p_value < 1e-6

    def test_requires_samples(self):
        with pytest.raises(ValueError):
            shuffle_fidelity(0)


class TestIntervals:
    """Tests for confidence intervals and summaries."""

    def test_interval_contains_the_mean(self):
        ci = confidence_interval([1, 0, 1, 1, 0, 1, 0, 1], 0.95)
        assert ci.contains(0.625)
        assert 0.0 < ci.lower < ci.upper < 1.1

    def test_degenerate_samples_collapse(self):
        assert confidence_interval([]).to_dict() == {
            "lower": 0.0,
            "upper": 0.0,
            "confidence": 0.95,
        }
        single = confidence_interval([4.0])
        assert single.lower == single.upper == 4.0
        same = confidence_interval([1, 1, 1])
        assert same.lower == same.upper == 1.0

    def test_win_rate(self):
        summary = win_rate(["win", "loss", "win", "tie"])
        assert summary["win_rate"] == 0.5
        assert summary["loss_rate"] == 0.25
        assert summary["tie_rate"] == 0.25
        assert summary["sample_size"] == 4

    def test_empty_win_rate(self):
        assert win_rate([])["sample_size"] == 0

    def test_score_summary(self):
        summary = score_summary([10, 20, 30])
        assert summary["mean"] == 20.0
        assert (summary["min"], summary["max"]) == (10, 30)
        assert score_summary([])["sample_size"] == 0
