"""
Difficulty tiers for the scripted opponent.

Every tier runs the same algorithm in :mod:`chukrum.bot.strategy`; a tier is
only a set of thresholds and switches.
"""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Dict, Union


class Difficulty(Enum):
    EASY = "easy"
    NORMAL = "normal"
    HARD = "hard"

    @classmethod
    def from_str(cls, name: str) -> "Difficulty":
        for difficulty in cls:
            if difficulty.value == name.lower():
                return difficulty
        raise ValueError(f"Unknown difficulty: {name}")


class ChukrumMode(Enum):
    """How the bot decides to call Chukrum."""

    NEVER = auto()
    STANDARD = auto()
    STRICT = auto()


class TargetMode(Enum):
    """How the bot picks an opponent card for a Queen or King."""

    RANDOM = auto()
    INFERENCE = auto()


@dataclass(frozen=True)
class DifficultyProfile:
    """
    Parameters of one difficulty tier.

    Attributes:
        difficulty: The tier these parameters belong to
        special_swap_threshold: A peeked own card worth more than this is
            swapped away with a Queen or King
        low_card_value: Drawn cards at or below this value are attractive
        low_card_probability: Chance of accepting an attractive card into an
            unknown position
        explore_any_position: Accepted low cards may land on any position,
            known or not
        compare_known: Replace the worst remembered card when the drawn card
            is lower
        early_game_turns: Turns counted as early game (0 disables)
        early_swap_ceiling: Early game, swap cards up to this value into an
            unknown position
        late_swap_ceiling: Later, swap cards up to this value into an
            unknown position (None disables)
        chukrum_mode: Chukrum calling rule
        chukrum_acceptance: Random acceptance applied after a STANDARD call
            decision
        target_mode: Queen/King target choice when not omniscient
        omniscient_probability: Chance of targeting the opponent's true
            lowest card
        panic_enabled: Whether the once-per-round panic shuffle exists
        panic_margin: Score deficit that triggers the panic shuffle
        panic_min_turns: Own turns before the panic shuffle may trigger
        reactive_match: Match-discard remembered cards outside its own turn
        moves_first: The bot seat starts the round
    """

    difficulty: Difficulty
    special_swap_threshold: int
    low_card_value: int
    low_card_probability: float
    explore_any_position: bool = False
    compare_known: bool = True
    early_game_turns: int = 0
    early_swap_ceiling: int = 0
    late_swap_ceiling: Union[int, None] = None
    chukrum_mode: ChukrumMode = ChukrumMode.STANDARD
    chukrum_acceptance: float = 1.0
    target_mode: TargetMode = TargetMode.INFERENCE
    omniscient_probability: float = 0.0
    panic_enabled: bool = False
    panic_margin: int = 10
    panic_min_turns: int = 5
    reactive_match: bool = False
    moves_first: bool = False


PROFILES: Dict[Difficulty, DifficultyProfile] = {
    Difficulty.EASY: DifficultyProfile(
        difficulty=Difficulty.EASY,
        special_swap_threshold=15,
        low_card_value=4,
        low_card_probability=0.3,
        explore_any_position=True,
        compare_known=False,
        chukrum_mode=ChukrumMode.NEVER,
        chukrum_acceptance=0.0,
        target_mode=TargetMode.RANDOM,
    ),
    Difficulty.NORMAL: DifficultyProfile(
        difficulty=Difficulty.NORMAL,
        special_swap_threshold=9,
        low_card_value=4,
        low_card_probability=0.5,
        chukrum_mode=ChukrumMode.STANDARD,
        chukrum_acceptance=0.3,
        target_mode=TargetMode.INFERENCE,
    ),
    Difficulty.HARD: DifficultyProfile(
        difficulty=Difficulty.HARD,
        special_swap_threshold=5,
        low_card_value=3,
        low_card_probability=1.0,
        early_game_turns=4,
        early_swap_ceiling=8,
        late_swap_ceiling=5,
        chukrum_mode=ChukrumMode.STRICT,
        target_mode=TargetMode.INFERENCE,
        omniscient_probability=0.75,
        panic_enabled=True,
        panic_margin=10,
        panic_min_turns=5,
        reactive_match=True,
        moves_first=True,
    ),
}


def get_profile(difficulty: Union[Difficulty, str]) -> DifficultyProfile:
    """Look up the profile of a tier by enum or name."""
    if isinstance(difficulty, str):
        difficulty = Difficulty.from_str(difficulty)
    return PROFILES[difficulty]
