"""
Scripted opponent for single-player Chukrum.
"""

from chukrum.bot.difficulty import (
    Difficulty as Difficulty,
    DifficultyProfile as DifficultyProfile,
    ChukrumMode as ChukrumMode,
    TargetMode as TargetMode,
    PROFILES as PROFILES,
    get_profile as get_profile,
)
from chukrum.bot.memory import OpponentMemory as OpponentMemory
from chukrum.bot.strategy import (
    OpponentStrategy as OpponentStrategy,
    should_call_chukrum as should_call_chukrum,
)

__all__ = [
    "Difficulty",
    "DifficultyProfile",
    "ChukrumMode",
    "TargetMode",
    "PROFILES",
    "get_profile",
    "OpponentMemory",
    "OpponentStrategy",
    "should_call_chukrum",
]
