"""
State transition functions for a Chukrum round.

This module provides pure functions for transitioning between round states,
without modifying the original state objects. An action attempted outside its
legal phase or sub-state returns the very same state object; callers detect a
rejected action with ``new_state is state``.
"""

from typing import Callable, List, Optional, Sequence, Tuple
from contextlib import contextmanager
from dataclasses import replace
from enum import Enum
import logging
import random
import threading
import time

from chukrum.common.card import Card
from chukrum.common.deck import fresh_shuffled_deck
from chukrum.common.hand import Hand
from chukrum.events import EventBus, EngineEventType
from chukrum.round.state import (
    ActionKind,
    ActionRecord,
    AwaitingFirstPeek,
    AwaitingSecondPeek,
    PeekMarker,
    PlayerState,
    Power,
    QueenPeekRule,
    ReadyToResolve,
    RoundPhase,
    RoundResult,
    RoundRules,
    RoundState,
    TurnStep,
)

logger = logging.getLogger(__name__)


_capture = threading.local()


def _emit(event_type: EngineEventType, data: dict) -> None:
    sink = getattr(_capture, "sink", None)
    if sink is not None:
        sink.append((event_type, data))
        return
    EventBus.get_instance().emit(event_type, data)


@contextmanager
def captured_events():
    """
    Collect the events transitions emit on this thread instead of publishing them.

    Yields the list the ``(event_type, data)`` pairs are appended to. Used
    where a transition may be computed more than once before it takes effect.
    """
    previous = getattr(_capture, "sink", None)
    sink: List[Tuple[EngineEventType, dict]] = []
    _capture.sink = sink
    try:
        yield sink
    finally:
        _capture.sink = previous


def _reject(state: RoundState, action: str, player_index: int, reason: str) -> RoundState:
    logger.debug(f"Rejected {action} by seat {player_index}: {reason}")
    _emit(
        EngineEventType.ACTION_REJECTED,
        {
            "round_id": state.id,
            "action": action,
            "player_index": player_index,
            "reason": reason,
        },
    )
    return state


def _name(state: RoundState, player_index: int) -> str:
    return state.players[player_index].name


def _with_hand(state: RoundState, player_index: int, hand: Hand):
    players = list(state.players)
    players[player_index] = replace(players[player_index], hand=hand)
    return tuple(players)


class StateTransitionEngine:
    """
    Pure functions for state transitions in Chukrum.

    This class contains static methods that implement round state transitions.
    Each method takes a state and returns a new state, without modifying the
    original.
    """

    @staticmethod
    def new_round(
        players: Sequence[PlayerState],
        rules: Optional[RoundRules] = None,
        starting_index: int = 0,
        rng: Optional[random.Random] = None,
        deck: Optional[List[Card]] = None,
        round_id: Optional[str] = None,
    ) -> RoundState:
        """
        Shuffle and deal a new round.

        Args:
            players: The two seats; existing hands are discarded
            rules: Round rules (defaults apply if None)
            starting_index: Seat that moves first
            rng: Random source for the shuffle
            deck: Pre-arranged deck, top card last (skips the shuffle)
            round_id: Identifier to reuse, for example a shared record's id

        Returns:
            A round in the PLAYING phase with both hands dealt
        """
        if len(players) != 2:
            raise ValueError("Chukrum is played by exactly two players")
        round_rules = rules or RoundRules()

        cards = list(deck) if deck is not None else fresh_shuffled_deck(rng)
        if len(cards) < 2 * round_rules.hand_size:
            raise ValueError("Not enough cards to deal both hands")

        seats = []
        for player in players:
            dealt = [cards.pop() for _ in range(round_rules.hand_size)]
            seats.append(replace(player, hand=Hand(dealt)))

        kwargs = {}
        if round_id is not None:
            kwargs["id"] = round_id

        state = RoundState(
            players=tuple(seats),
            deck=tuple(cards),
            discard_pile=(),
            current_player_index=starting_index,
            rules=round_rules,
            notice=f"{seats[starting_index].name} goes first",
            **kwargs,
        )

        logger.info(
            f"Round {state.id} dealt; {seats[starting_index].name} moves first"
        )
        _emit(
            EngineEventType.ROUND_STARTED,
            {
                "round_id": state.id,
                "player_ids": [p.id for p in seats],
                "player_names": [p.name for p in seats],
                "starting_index": starting_index,
                "deck_size": len(state.deck),
                "timestamp": state.timestamp,
            },
        )
        return state

    @staticmethod
    def draw(state: RoundState, player_index: int) -> RoundState:
        """
        Pop the top of the deck into the actor's drawn card.

        On an empty deck the round ends instead.
        """
        if state.is_ended:
            return _reject(state, "draw", player_index, "round has ended")
        if player_index != state.current_player_index:
            return _reject(state, "draw", player_index, "not this player's turn")
        if state.step != TurnStep.IDLE or state.drawn_card is not None:
            return _reject(state, "draw", player_index, "a card is already drawn")

        if not state.deck:
            return StateTransitionEngine.end_round(state, "Deck is empty")

        card = state.deck[-1]
        power = Power.for_rank(card.rank)
        special = AwaitingFirstPeek(power) if power else None

        new_state = replace(
            state,
            deck=state.deck[:-1],
            step=TurnStep.CARD_DRAWN,
            drawn_card=card,
            special_action=special,
            peek_markers=(),
            notice="",
            last_action=ActionRecord(
                player_index,
                ActionKind.DRAW,
                text=f"{_name(state, player_index)} drew a card",
            ),
            timestamp=time.time(),
        )

        _emit(
            EngineEventType.CARD_DRAWN,
            {
                "round_id": state.id,
                "player_index": player_index,
                "card": str(card),
                "special": power.name if power else None,
                "deck_remaining": len(new_state.deck),
            },
        )
        return new_state

    @staticmethod
    def discard(state: RoundState, player_index: int) -> RoundState:
        """
        Put the drawn card on the discard pile and complete the turn.

        A Jack, Queen or King may be discarded only after its mandatory peeks.
        """
        if not StateTransitionEngine._holds_drawn_card(state, player_index):
            return _reject(state, "discard", player_index, "no drawn card to discard")
        if not StateTransitionEngine._peeks_satisfied(state, player_index):
            return _reject(state, "discard", player_index, "peek first")

        card = state.drawn_card
        new_state = replace(
            state,
            discard_pile=state.discard_pile + (card,),
            drawn_card=None,
            last_action=ActionRecord(
                player_index,
                ActionKind.DISCARD,
                card=card,
                text=f"{_name(state, player_index)} discarded {card}",
            ),
        )
        StateTransitionEngine._emit_action(new_state)
        return StateTransitionEngine._complete_turn(new_state)

    @staticmethod
    def swap_own(state: RoundState, player_index: int, position: int) -> RoundState:
        """Replace hand[position] with the drawn plain card; the old card is discarded."""
        if not StateTransitionEngine._holds_drawn_card(state, player_index):
            return _reject(state, "swap_own", player_index, "no drawn card")
        if state.special_action is not None:
            return _reject(
                state, "swap_own", player_index, "special cards cannot be swapped in"
            )
        hand = state.hand_of(player_index)
        if not hand.is_valid_position(position):
            return _reject(state, "swap_own", player_index, f"bad position {position}")

        new_hand, old = hand.replace_at(position, state.drawn_card)
        new_state = replace(
            state,
            players=_with_hand(state, player_index, new_hand),
            discard_pile=state.discard_pile + (old,),
            drawn_card=None,
            last_action=ActionRecord(
                player_index,
                ActionKind.SWAP_OWN,
                own_position=position,
                card=old,
                text=(
                    f"{_name(state, player_index)} swapped card {position + 1}"
                    f" and discarded {old}"
                ),
            ),
        )
        StateTransitionEngine._emit_action(new_state)
        return StateTransitionEngine._complete_turn(new_state)

    @staticmethod
    def peek_own(state: RoundState, player_index: int, position: int) -> RoundState:
        """Reveal one of the actor's own cards to the actor."""
        if not StateTransitionEngine._holds_drawn_card(state, player_index):
            return _reject(state, "peek_own", player_index, "no drawn card")
        hand = state.hand_of(player_index)
        if not hand.is_valid_position(position):
            return _reject(state, "peek_own", player_index, f"bad position {position}")

        special = state.special_action
        if isinstance(special, AwaitingFirstPeek):
            if special.power == Power.KING:
                next_special = AwaitingSecondPeek(Power.KING, own_position=position)
            else:
                next_special = ReadyToResolve(special.power, own_position=position)
        elif (
            isinstance(special, AwaitingSecondPeek)
            and special.own_position is None
        ):
            next_special = ReadyToResolve(
                special.power,
                own_position=position,
                opponent_position=special.opponent_position,
            )
        else:
            return _reject(state, "peek_own", player_index, "no peek available")

        return StateTransitionEngine._reveal(
            state, player_index, player_index, position, next_special
        )

    @staticmethod
    def peek_opponent(state: RoundState, player_index: int, position: int) -> RoundState:
        """Reveal one of the opponent's cards to the actor (Queen variant or King)."""
        if not StateTransitionEngine._holds_drawn_card(state, player_index):
            return _reject(state, "peek_opponent", player_index, "no drawn card")
        opponent = state.opponent_of(player_index)
        if not state.hand_of(opponent).is_valid_position(position):
            return _reject(
                state, "peek_opponent", player_index, f"bad position {position}"
            )

        special = state.special_action
        if isinstance(special, AwaitingFirstPeek) and special.power == Power.KING:
            next_special = AwaitingSecondPeek(Power.KING, opponent_position=position)
        elif (
            isinstance(special, AwaitingFirstPeek)
            and special.power == Power.QUEEN
            and state.rules.queen_peek == QueenPeekRule.EITHER
        ):
            next_special = ReadyToResolve(Power.QUEEN, opponent_position=position)
        elif (
            isinstance(special, AwaitingSecondPeek)
            and special.opponent_position is None
        ):
            next_special = ReadyToResolve(
                special.power,
                own_position=special.own_position,
                opponent_position=position,
            )
        else:
            return _reject(state, "peek_opponent", player_index, "no peek available")

        return StateTransitionEngine._reveal(
            state, player_index, opponent, position, next_special
        )

    @staticmethod
    def cross_swap(
        state: RoundState, player_index: int, own_position: int, opponent_position: int
    ) -> RoundState:
        """
        Exchange a card of the actor with a card of the opponent.

        For a Queen the peeked side must match its peeked position; for a King
        both positions must be the peeked ones. The Queen or King is discarded.
        """
        if not StateTransitionEngine._holds_drawn_card(state, player_index):
            return _reject(state, "cross_swap", player_index, "no drawn card")
        special = state.special_action
        if not isinstance(special, ReadyToResolve) or special.power == Power.JACK:
            return _reject(state, "cross_swap", player_index, "swap not available")
        if (
            special.own_position is not None
            and special.own_position != own_position
        ):
            return _reject(state, "cross_swap", player_index, "must use the peeked card")
        if (
            special.opponent_position is not None
            and special.opponent_position != opponent_position
        ):
            return _reject(state, "cross_swap", player_index, "must use the peeked card")

        opponent = state.opponent_of(player_index)
        own_hand = state.hand_of(player_index)
        their_hand = state.hand_of(opponent)
        if not own_hand.is_valid_position(own_position):
            return _reject(state, "cross_swap", player_index, "bad own position")
        if not their_hand.is_valid_position(opponent_position):
            return _reject(state, "cross_swap", player_index, "bad opponent position")

        new_own, given = own_hand.replace_at(own_position, their_hand[opponent_position])
        new_theirs, _ = their_hand.replace_at(opponent_position, given)

        players = list(state.players)
        players[player_index] = replace(players[player_index], hand=new_own)
        players[opponent] = replace(players[opponent], hand=new_theirs)

        card = state.drawn_card
        new_state = replace(
            state,
            players=tuple(players),
            discard_pile=state.discard_pile + (card,),
            drawn_card=None,
            last_action=ActionRecord(
                player_index,
                ActionKind.CROSS_SWAP,
                own_position=own_position,
                opponent_position=opponent_position,
                card=card,
                text=(
                    f"{_name(state, player_index)} used a {card.rank} to swap their"
                    f" card {own_position + 1} with {_name(state, opponent)}'s"
                    f" card {opponent_position + 1}"
                ),
            ),
        )
        _emit(
            EngineEventType.CARDS_SWAPPED,
            {
                "round_id": state.id,
                "player_index": player_index,
                "own_position": own_position,
                "opponent_position": opponent_position,
                "power": special.power.name,
            },
        )
        StateTransitionEngine._emit_action(new_state)
        return StateTransitionEngine._complete_turn(new_state)

    @staticmethod
    def match_discard(state: RoundState, player_index: int, position: int) -> RoundState:
        """
        Try to discard hand[position] onto a top discard of the same rank.

        A wrong guess draws a penalty card, or only sets a notice when the
        deck is empty. Emptying the hand ends the round at once.
        """
        if state.is_ended:
            return _reject(state, "match_discard", player_index, "round has ended")
        if not state.discard_pile:
            return _reject(state, "match_discard", player_index, "nothing to match")
        if state.drawn_card is not None:
            return _reject(state, "match_discard", player_index, "a card is drawn")
        if (
            not state.rules.match_discard_any_turn
            and player_index != state.current_player_index
        ):
            return _reject(state, "match_discard", player_index, "not this player's turn")
        hand = state.hand_of(player_index)
        if not hand.is_valid_position(position):
            return _reject(state, "match_discard", player_index, f"bad position {position}")

        name = _name(state, player_index)
        top = state.top_discard
        card = hand[position]

        if card.rank == top.rank:
            new_hand, removed = hand.remove_at(position)
            new_state = replace(
                state,
                players=_with_hand(state, player_index, new_hand),
                discard_pile=state.discard_pile + (removed,),
                notice=f"Match! {name} discarded {removed}",
                last_action=ActionRecord(
                    player_index,
                    ActionKind.MATCH_DISCARD,
                    own_position=position,
                    card=removed,
                    text=f"{name} matched {removed}",
                ),
                timestamp=time.time(),
            )
            _emit(
                EngineEventType.MATCH_DISCARD,
                {
                    "round_id": state.id,
                    "player_index": player_index,
                    "position": position,
                    "card": str(removed),
                    "hand_size": len(new_hand),
                },
            )
            if len(new_hand) == 0:
                return StateTransitionEngine.end_round(
                    new_state, f"{name} has no cards left"
                )
            return new_state

        if not state.deck:
            return replace(
                state,
                notice=f"Wrong match by {name}; the deck is empty so no penalty",
                last_action=ActionRecord(
                    player_index,
                    ActionKind.MATCH_MISS,
                    own_position=position,
                    text=f"{name} missed a match",
                ),
            )

        penalty = state.deck[-1]
        new_hand = hand.append(penalty)
        new_state = replace(
            state,
            players=_with_hand(state, player_index, new_hand),
            deck=state.deck[:-1],
            notice=f"Wrong match! {name} draws a penalty card",
            last_action=ActionRecord(
                player_index,
                ActionKind.MATCH_PENALTY,
                own_position=position,
                text=f"{name} missed a match and took a penalty card",
            ),
            timestamp=time.time(),
        )
        _emit(
            EngineEventType.PENALTY_CARD,
            {
                "round_id": state.id,
                "player_index": player_index,
                "hand_size": len(new_hand),
                "deck_remaining": len(new_state.deck),
            },
        )
        return new_state

    @staticmethod
    def call_chukrum(state: RoundState, player_index: int) -> RoundState:
        """Start the final round; the opponent moves next."""
        if state.phase != RoundPhase.PLAYING:
            return _reject(state, "call_chukrum", player_index, "Chukrum already called")
        if player_index != state.current_player_index:
            return _reject(state, "call_chukrum", player_index, "not this player's turn")
        if state.step != TurnStep.IDLE or state.drawn_card is not None:
            return _reject(state, "call_chukrum", player_index, "a card is drawn")

        name = _name(state, player_index)
        new_state = replace(
            state,
            phase=RoundPhase.FINAL_ROUND,
            chukrum_caller_index=player_index,
            final_round_turns_remaining=state.rules.final_round_turns,
            current_player_index=state.opponent_of(player_index),
            turn_number=state.turn_number + 1,
            peek_markers=(),
            notice=f"{name} called CHUKRUM! Final round",
            last_action=ActionRecord(
                player_index, ActionKind.CALL_CHUKRUM, text=f"{name} called Chukrum"
            ),
            timestamp=time.time(),
        )

        logger.info(f"Round {state.id}: {name} called Chukrum")
        _emit(
            EngineEventType.CHUKRUM_CALLED,
            {"round_id": state.id, "player_index": player_index, "player_name": name},
        )
        _emit(
            EngineEventType.FINAL_ROUND_STARTED,
            {
                "round_id": state.id,
                "turns_remaining": new_state.final_round_turns_remaining,
            },
        )
        return new_state

    @staticmethod
    def panic_shuffle(
        state: RoundState, player_index: int, rng: Optional[random.Random] = None
    ) -> RoundState:
        """
        Reorder the opponent's hand positions at random.

        The actor forfeits its drawn card to the discard pile and the turn
        completes. Hand lengths are unchanged.
        """
        if not StateTransitionEngine._holds_drawn_card(state, player_index):
            return _reject(state, "panic_shuffle", player_index, "no drawn card")
        if state.special_action is not None:
            return _reject(state, "panic_shuffle", player_index, "special card pending")
        opponent = state.opponent_of(player_index)
        their_hand = state.hand_of(opponent)
        if len(their_hand) < 2:
            return _reject(state, "panic_shuffle", player_index, "nothing to shuffle")

        rng = rng or random.Random()
        identity = their_hand.positions()
        order = identity[:]
        rng.shuffle(order)
        if order == identity:
            order = order[1:] + order[:1]

        card = state.drawn_card
        new_state = replace(
            state,
            players=_with_hand(state, opponent, their_hand.reordered(order)),
            discard_pile=state.discard_pile + (card,),
            drawn_card=None,
            last_action=ActionRecord(
                player_index,
                ActionKind.PANIC,
                card=card,
                text=(
                    f"{_name(state, player_index)} shuffled"
                    f" {_name(state, opponent)}'s cards"
                ),
            ),
        )
        _emit(
            EngineEventType.HAND_SHUFFLED,
            {
                "round_id": state.id,
                "player_index": player_index,
                "target_index": opponent,
                "forfeited": str(card),
            },
        )
        return StateTransitionEngine._complete_turn(new_state)

    @staticmethod
    def end_round(state: RoundState, reason: str = "") -> RoundState:
        """
        Score both hands and move to ENDED. Lower score wins; ties are explicit.
        """
        if state.is_ended:
            return state

        # A card still in hand at the end is returned to the discard pile
        discard_pile = state.discard_pile
        if state.drawn_card is not None:
            discard_pile = discard_pile + (state.drawn_card,)

        scores = state.scores()
        if scores[0] < scores[1]:
            winner = 0
        elif scores[1] < scores[0]:
            winner = 1
        else:
            winner = None

        result = RoundResult(scores=(scores[0], scores[1]), winner_index=winner, reason=reason)
        if winner is None:
            outcome = "It's a tie"
        else:
            outcome = f"{_name(state, winner)} wins"

        new_state = replace(
            state,
            phase=RoundPhase.ENDED,
            step=TurnStep.IDLE,
            drawn_card=None,
            special_action=None,
            discard_pile=discard_pile,
            final_round_turns_remaining=0,
            action_token=None,
            result=result,
            notice=f"{reason}. {outcome}!" if reason else f"{outcome}!",
            timestamp=time.time(),
        )

        logger.info(f"Round {state.id} ended ({reason or 'final round'}): scores {scores}")
        _emit(
            EngineEventType.ROUND_ENDED,
            {
                "round_id": state.id,
                "player_ids": [p.id for p in state.players],
                "scores": list(result.scores),
                "winner_index": winner,
                "winner_id": state.players[winner].id if winner is not None else None,
                "reason": reason,
            },
        )
        return new_state

    @staticmethod
    def claim_action_token(state: RoundState, token: str) -> RoundState:
        """Mark a deferred action as in flight; refused while another is pending."""
        if state.action_token is not None or state.is_ended:
            return state
        return replace(state, action_token=token)

    @staticmethod
    def release_action_token(state: RoundState, token: str) -> RoundState:
        if state.action_token != token:
            return state
        return replace(state, action_token=None)

    # Internal helpers

    @staticmethod
    def _holds_drawn_card(state: RoundState, player_index: int) -> bool:
        return (
            not state.is_ended
            and player_index == state.current_player_index
            and state.step == TurnStep.CARD_DRAWN
            and state.drawn_card is not None
        )

    @staticmethod
    def _peeks_satisfied(state: RoundState, player_index: int) -> bool:
        special = state.special_action
        if special is None or isinstance(special, ReadyToResolve):
            return True
        own_empty = len(state.hand_of(player_index)) == 0
        their_empty = len(state.hand_of(state.opponent_of(player_index))) == 0
        if isinstance(special, AwaitingSecondPeek):
            if special.own_position is None:
                return own_empty
            return their_empty
        # Awaiting the first peek
        if special.power == Power.KING:
            return own_empty and their_empty
        if special.power == Power.QUEEN and state.rules.queen_peek == QueenPeekRule.EITHER:
            return own_empty and their_empty
        return own_empty

    @staticmethod
    def _reveal(
        state: RoundState, viewer: int, owner: int, position: int, next_special
    ) -> RoundState:
        card = state.hand_of(owner)[position]
        marker = PeekMarker(viewer=viewer, owner=owner, position=position, card=card)
        own = owner == viewer
        kind = ActionKind.PEEK_OWN if own else ActionKind.PEEK_OPPONENT
        whose = "their own" if own else f"{_name(state, owner)}'s"
        new_state = replace(
            state,
            special_action=next_special,
            peek_markers=state.peek_markers + (marker,),
            last_action=ActionRecord(
                viewer,
                kind,
                own_position=position if own else None,
                opponent_position=None if own else position,
                text=f"{_name(state, viewer)} peeked at {whose} card {position + 1}",
            ),
        )
        _emit(
            EngineEventType.CARD_REVEALED,
            {
                "round_id": state.id,
                "viewer": viewer,
                "owner": owner,
                "position": position,
                "card": str(card),
            },
        )
        return new_state

    @staticmethod
    def _emit_action(state: RoundState) -> None:
        action = state.last_action
        _emit(
            EngineEventType.PLAYER_ACTION,
            {
                "round_id": state.id,
                "player_index": action.player_index,
                "action": action.kind.value,
                "own_position": action.own_position,
                "opponent_position": action.opponent_position,
                "card": str(action.card) if action.card else None,
                "text": action.text,
            },
        )

    @staticmethod
    def _complete_turn(state: RoundState) -> RoundState:
        """
        Clear the turn's transient state, then end the round or pass the turn.
        """
        state = replace(
            state,
            step=TurnStep.IDLE,
            drawn_card=None,
            special_action=None,
            peek_markers=(),
            timestamp=time.time(),
        )

        if state.phase == RoundPhase.FINAL_ROUND:
            remaining = state.final_round_turns_remaining - 1
            state = replace(state, final_round_turns_remaining=remaining)
            if remaining <= 0:
                return StateTransitionEngine.end_round(state, "Final round complete")

        if not state.deck:
            return StateTransitionEngine.end_round(state, "Deck is empty")

        for player in state.players:
            if len(player.hand) == 0:
                return StateTransitionEngine.end_round(
                    state, f"{player.name} has no cards left"
                )

        next_player = state.opponent_of(state.current_player_index)
        new_state = replace(
            state,
            current_player_index=next_player,
            turn_number=state.turn_number + 1,
        )
        _emit(
            EngineEventType.PLAYER_DECISION_NEEDED,
            {
                "round_id": state.id,
                "player_index": next_player,
                "turn_number": new_state.turn_number,
            },
        )
        return new_state


# Names accepted by ``apply_action``; keep in step with the methods above
ACTIONS = {
    "draw": StateTransitionEngine.draw,
    "discard": StateTransitionEngine.discard,
    "swap": StateTransitionEngine.swap_own,
    "peek_own": StateTransitionEngine.peek_own,
    "peek_opponent": StateTransitionEngine.peek_opponent,
    "cross_swap": StateTransitionEngine.cross_swap,
    "match": StateTransitionEngine.match_discard,
    "chukrum": StateTransitionEngine.call_chukrum,
}


def apply_action(state: RoundState, player_index: int, action, *args) -> RoundState:
    """
    Dispatch an action by name or by `ChukrumAction`.

    Raises:
        ValueError: If the action name is unknown
    """
    if isinstance(action, Enum):
        action = action.value
    transition: Optional[Callable] = ACTIONS.get(action)
    if transition is None:
        raise ValueError(f"Unknown action: {action}")
    return transition(state, player_index, *args)
