"""
Chukrum round module.

This module provides the round state models and the pure state transitions
that implement the turn cycle, the special-card powers, match-discards and
the Chukrum call.
"""

from chukrum.round.state import (
    RoundState as RoundState,
    PlayerState as PlayerState,
    RoundRules as RoundRules,
    RoundPhase as RoundPhase,
    RoundResult as RoundResult,
    TurnStep as TurnStep,
    Power as Power,
    QueenPeekRule as QueenPeekRule,
    ActionKind as ActionKind,
    ActionRecord as ActionRecord,
    AwaitingFirstPeek as AwaitingFirstPeek,
    AwaitingSecondPeek as AwaitingSecondPeek,
    ReadyToResolve as ReadyToResolve,
    PeekMarker as PeekMarker,
)
from chukrum.round.actions import (
    ChukrumAction as ChukrumAction,
    ActionChoice as ActionChoice,
    valid_actions as valid_actions,
)
from chukrum.round.transitions import (
    StateTransitionEngine as StateTransitionEngine,
    apply_action as apply_action,
    captured_events as captured_events,
)

__all__ = [
    "RoundState",
    "PlayerState",
    "RoundRules",
    "RoundPhase",
    "RoundResult",
    "TurnStep",
    "Power",
    "QueenPeekRule",
    "ActionKind",
    "ActionRecord",
    "AwaitingFirstPeek",
    "AwaitingSecondPeek",
    "ReadyToResolve",
    "PeekMarker",
    "StateTransitionEngine",
    "apply_action",
    "captured_events",
    "ChukrumAction",
    "ActionChoice",
    "valid_actions",
]
