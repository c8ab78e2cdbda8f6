"""
Statistical checks for the Chukrum engine.

This module provides a shuffle-fidelity test (is every card equally likely at
every deck position?) and confidence intervals for bot win rates collected by
the simulation module.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence
import random

import numpy as np
import scipy.stats as stats

from chukrum.common.constants import DECK_SIZE
from chukrum.common.deck import Deck


@dataclass
class ConfidenceInterval:
    """
    Represents a confidence interval with lower and upper bounds.

    Attributes:
        lower: The lower bound of the confidence interval
        upper: The upper bound of the confidence interval
        confidence: The confidence level (e.g., 0.95 for 95% confidence)
    """

    lower: float
    upper: float
    confidence: float

    def contains(self, value: float) -> bool:
        """Check if the interval contains a value."""
        return self.lower <= value <= self.upper

    def to_dict(self) -> Dict[str, float]:
        return {"lower": self.lower, "upper": self.upper, "confidence": self.confidence}


@dataclass
class ShuffleFidelityResult:
    """Outcome of a chi-square test on position x card frequencies."""

    chi_square: float
    p_value: float
    degrees_of_freedom: int
    samples: int
    alpha: float

    @property
    def passed(self) -> bool:
        """True when uniformity is not rejected at ``alpha``."""
        return self.p_value >= self.alpha

    def to_dict(self) -> Dict[str, Any]:
        return {
            "chi_square": self.chi_square,
            "p_value": self.p_value,
            "degrees_of_freedom": self.degrees_of_freedom,
            "samples": self.samples,
            "alpha": self.alpha,
            "passed": self.passed,
        }


def position_counts(num_shuffles: int, rng: Optional[random.Random] = None) -> np.ndarray:
    """
    Shuffle a fresh deck repeatedly and count where each card lands.

    Returns:
        A ``DECK_SIZE x DECK_SIZE`` array; row is the deck position, column
        the card's index in the unshuffled deck
    """
    rng = rng or random.Random()
    reference = Deck().cards
    index_of = {card: i for i, card in enumerate(reference)}

    counts = np.zeros((DECK_SIZE, DECK_SIZE), dtype=np.int64)
    for _ in range(num_shuffles):
        shuffled = Deck(rng=rng).shuffle().cards
        columns = np.fromiter((index_of[card] for card in shuffled), dtype=np.int64)
        counts[np.arange(DECK_SIZE), columns] += 1
    return counts


def shuffle_fidelity(
    num_shuffles: int = 5000,
    rng: Optional[random.Random] = None,
    alpha: float = 0.001,
) -> ShuffleFidelityResult:
    """
    Test that the shuffle places every card at every position uniformly.

    Every row and column of the frequency table sums to ``num_shuffles``, so
    the independence test's expected count is the uniform ``n / 52`` per cell.

    Args:
        num_shuffles: Number of shuffles to sample
        rng: Random source
        alpha: Significance level for ``passed``

    Returns:
        A ShuffleFidelityResult
    """
    if num_shuffles < 1:
        raise ValueError("num_shuffles must be positive")

    counts = position_counts(num_shuffles, rng)
    chi2, p_value, dof, _ = stats.chi2_contingency(counts)
    return ShuffleFidelityResult(
        chi_square=float(chi2),
        p_value=float(p_value),
        degrees_of_freedom=int(dof),
        samples=num_shuffles,
        alpha=alpha,
    )


def confidence_interval(
    values: Sequence[float], confidence: float = 0.95
) -> ConfidenceInterval:
    """
    Calculate a t-distribution confidence interval for the mean of ``values``.

    With fewer than two values the interval collapses to the mean.
    """
    if len(values) == 0:
        return ConfidenceInterval(0.0, 0.0, confidence)

    mean = float(np.mean(values))
    if len(values) < 2 or np.all(np.asarray(values) == values[0]):
        return ConfidenceInterval(mean, mean, confidence)

    std_err = stats.sem(values)
    margin = std_err * stats.t.ppf((1 + confidence) / 2, len(values) - 1)
    return ConfidenceInterval(float(mean - margin), float(mean + margin), confidence)


def win_rate(outcomes: List[str], confidence: float = 0.95) -> Dict[str, Any]:
    """
    Summarise a list of ``"win"``, ``"loss"`` or ``"tie"`` outcomes.

    Returns:
        Rates, a confidence interval for the win rate and the sample size
    """
    total = len(outcomes)
    if total == 0:
        return {
            "win_rate": 0.0,
            "loss_rate": 0.0,
            "tie_rate": 0.0,
            "confidence_interval": ConfidenceInterval(0.0, 0.0, confidence).to_dict(),
            "sample_size": 0,
        }

    binary = [1 if outcome == "win" else 0 for outcome in outcomes]
    return {
        "win_rate": sum(binary) / total,
        "loss_rate": outcomes.count("loss") / total,
        "tie_rate": outcomes.count("tie") / total,
        "confidence_interval": confidence_interval(binary, confidence).to_dict(),
        "sample_size": total,
    }


def score_summary(scores: Sequence[int]) -> Dict[str, float]:
    """Mean, spread and range of final hand scores."""
    if len(scores) == 0:
        return {"mean": 0.0, "std": 0.0, "min": 0, "max": 0, "sample_size": 0}
    values = np.asarray(scores, dtype=float)
    return {
        "mean": float(np.mean(values)),
        "std": float(np.std(values)),
        "min": int(np.min(values)),
        "max": int(np.max(values)),
        "sample_size": len(scores),
    }
