"""
Statistics and simulations for the Chukrum engine.
"""

from chukrum.analysis.statistics import (
    ConfidenceInterval as ConfidenceInterval,
    ShuffleFidelityResult as ShuffleFidelityResult,
    confidence_interval as confidence_interval,
    position_counts as position_counts,
    score_summary as score_summary,
    shuffle_fidelity as shuffle_fidelity,
    win_rate as win_rate,
)
from chukrum.analysis.simulation import (
    SimulationResult as SimulationResult,
    play_round as play_round,
    simulate as simulate,
)

__all__ = [
    "ConfidenceInterval",
    "ShuffleFidelityResult",
    "confidence_interval",
    "position_counts",
    "score_summary",
    "shuffle_fidelity",
    "win_rate",
    "SimulationResult",
    "play_round",
    "simulate",
]
