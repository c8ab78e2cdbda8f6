"""
Player-facing actions and the positions each one may take right now.
"""

from dataclasses import dataclass
from enum import Enum
from itertools import product
from typing import Dict, List, Tuple

from chukrum.round.state import (
    AwaitingFirstPeek,
    AwaitingSecondPeek,
    Power,
    QueenPeekRule,
    ReadyToResolve,
    RoundPhase,
    RoundState,
    TurnStep,
)


class ChukrumAction(Enum):
    """Actions a player can choose. The value is the transition name."""

    DRAW = "draw"
    DISCARD = "discard"
    SWAP = "swap"
    PEEK_OWN = "peek_own"
    PEEK_OPPONENT = "peek_opponent"
    CROSS_SWAP = "cross_swap"
    MATCH = "match"
    CHUKRUM = "chukrum"


@dataclass(frozen=True)
class ActionChoice:
    """An action plus its position arguments, e.g. ``CROSS_SWAP (0, 2)``."""

    action: ChukrumAction
    positions: Tuple[int, ...] = ()

    def __str__(self) -> str:
        if not self.positions:
            return self.action.value
        return f"{self.action.value} {' '.join(str(p + 1) for p in self.positions)}"


def valid_actions(
    state: RoundState, player_index: int
) -> Dict[ChukrumAction, List[Tuple[int, ...]]]:
    """
    Get valid actions for a player.

    Args:
        state: Current round state
        player_index: Seat asking

    Returns:
        Dictionary mapping actions to lists of valid position tuples
    """
    if state.is_ended:
        return {}

    actions: Dict[ChukrumAction, List[Tuple[int, ...]]] = {}
    own = state.hand_of(player_index)
    theirs = state.hand_of(state.opponent_of(player_index))

    can_match = state.discard_pile and state.drawn_card is None and len(own) > 0
    if can_match and (
        state.rules.match_discard_any_turn
        or state.current_player_index == player_index
    ):
        actions[ChukrumAction.MATCH] = [(p,) for p in own.positions()]

    if state.current_player_index != player_index:
        return actions

    if state.step == TurnStep.IDLE:
        actions[ChukrumAction.DRAW] = [()]
        if state.phase == RoundPhase.PLAYING:
            actions[ChukrumAction.CHUKRUM] = [()]
        return actions

    special = state.special_action
    if special is None:
        actions[ChukrumAction.DISCARD] = [()]
        actions[ChukrumAction.SWAP] = [(p,) for p in own.positions()]
        return actions

    if isinstance(special, AwaitingFirstPeek):
        if own.positions():
            actions[ChukrumAction.PEEK_OWN] = [(p,) for p in own.positions()]
        opponent_peek = special.power == Power.KING or (
            special.power == Power.QUEEN
            and state.rules.queen_peek == QueenPeekRule.EITHER
        )
        if opponent_peek and theirs.positions():
            actions[ChukrumAction.PEEK_OPPONENT] = [(p,) for p in theirs.positions()]
        if not actions.get(ChukrumAction.PEEK_OWN) and not actions.get(
            ChukrumAction.PEEK_OPPONENT
        ):
            actions[ChukrumAction.DISCARD] = [()]
    elif isinstance(special, AwaitingSecondPeek):
        if special.own_position is None and own.positions():
            actions[ChukrumAction.PEEK_OWN] = [(p,) for p in own.positions()]
        elif special.opponent_position is None and theirs.positions():
            actions[ChukrumAction.PEEK_OPPONENT] = [(p,) for p in theirs.positions()]
        else:
            actions[ChukrumAction.DISCARD] = [()]
    elif isinstance(special, ReadyToResolve):
        actions[ChukrumAction.DISCARD] = [()]
        if special.power != Power.JACK:
            own_options = (
                [special.own_position]
                if special.own_position is not None
                else own.positions()
            )
            their_options = (
                [special.opponent_position]
                if special.opponent_position is not None
                else theirs.positions()
            )
            pairs = list(product(own_options, their_options))
            if pairs:
                actions[ChukrumAction.CROSS_SWAP] = pairs

    return actions
