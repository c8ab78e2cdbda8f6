"""
Scripted opponent for single-player Chukrum.

The strategy plays from imperfect information: it knows the cards it has
peeked at or swapped in itself, and it watches the public actions of the
other player to guess which of their positions they value. One algorithm
serves every difficulty tier; the tier only changes thresholds.
"""

from typing import List, Optional
import logging
import random

from chukrum.bot.difficulty import (
    ChukrumMode,
    Difficulty,
    DifficultyProfile,
    TargetMode,
    get_profile,
)
from chukrum.bot.memory import OpponentMemory
from chukrum.common.card import Card
from chukrum.common.constants import get_card_value
from chukrum.common.hand import Hand
from chukrum.round.state import (
    ActionKind,
    Power,
    ReadyToResolve,
    RoundPhase,
    RoundState,
)
from chukrum.round.transitions import StateTransitionEngine

logger = logging.getLogger(__name__)

# Opponent swaps at or above this count mean they are still improving
IMPROVING_SWAP_COUNT = 4
# Turn after which the strict caller tolerates no unknown cards
MATURE_TURN = 12
# Deck size below which the strict caller feels time pressure
LOW_DECK = 8
# Assumed value of an unknown card when estimating an optimistic total
OPTIMISTIC_UNKNOWN_VALUE = 4


def should_call_chukrum(
    profile: DifficultyProfile,
    known_count: int,
    known_sum: int,
    unknown_count: int,
    turn: int,
    deck_remaining: int,
    opponent_swaps: int,
    has_improvable_pair: bool = False,
) -> bool:
    """
    Decide whether the bot believes it holds the lowest score.

    This is a pure threshold function; the STANDARD tier adds a random
    acceptance gate on top of it in :meth:`OpponentStrategy.take_turn`.

    Args:
        profile: Tier parameters
        known_count: Own cards whose value is remembered
        known_sum: Sum of the remembered values
        unknown_count: Own cards never seen
        turn: Own turns taken this round
        deck_remaining: Cards left in the draw pile
        opponent_swaps: Swaps observed from the other player
        has_improvable_pair: Two remembered cards of the same positive rank

    Returns:
        True if Chukrum should be called now
    """
    if profile.chukrum_mode == ChukrumMode.NEVER or known_count == 0:
        return False

    if profile.chukrum_mode == ChukrumMode.STANDARD:
        return unknown_count == 0 and known_sum <= 6

    # STRICT
    if has_improvable_pair:
        return False
    opponent_improving = opponent_swaps >= IMPROVING_SWAP_COUNT
    max_unknown = 0 if turn >= MATURE_TURN else 1

    if unknown_count == 0 and known_sum <= 5:
        return True
    if unknown_count == 0 and known_sum <= 8 and not opponent_improving:
        return True
    if (
        max_unknown >= 1
        and unknown_count == 1
        and known_count >= 3
        and known_sum <= 3
        and turn >= 6
        and known_sum + OPTIMISTIC_UNKNOWN_VALUE * unknown_count <= 7
    ):
        return True
    if (
        deck_remaining < LOW_DECK
        and unknown_count <= max_unknown
        and known_count >= 3
        and known_sum <= 6
        and not opponent_improving
    ):
        return True
    return False


def _value(card: Card) -> int:
    return get_card_value(card.rank)


def has_improvable_pair(known: dict) -> bool:
    """Two remembered cards of one rank that a future match could thin out."""
    seen = set()
    for card in known.values():
        if _value(card) <= 0:
            continue
        if card.rank in seen:
            return True
        seen.add(card.rank)
    return False


class OpponentStrategy:
    """
    Chooses and applies the bot's moves through the transition engine.

    Example:
        >>> strategy = OpponentStrategy(player_index=1, difficulty="normal")
        >>> state = strategy.take_turn(state)
    """

    def __init__(
        self,
        player_index: int = 1,
        difficulty=Difficulty.NORMAL,
        rng: Optional[random.Random] = None,
        profile: Optional[DifficultyProfile] = None,
    ):
        self.player_index = player_index
        self.profile = profile or get_profile(difficulty)
        self.rng = rng or random.Random()
        self.memory = OpponentMemory()

    @property
    def opponent_index(self) -> int:
        return 1 - self.player_index

    def new_round(self) -> None:
        """Forget everything from the previous round."""
        self.memory.reset()

    # Observation

    def observe(self, state: RoundState) -> None:
        """Record the other player's latest public action, once."""
        action = state.last_action
        if action is None or action is self.memory.last_observed:
            return
        self.memory.last_observed = action

        if action.card is not None and action.kind in (
            ActionKind.DISCARD,
            ActionKind.SWAP_OWN,
            ActionKind.CROSS_SWAP,
            ActionKind.MATCH_DISCARD,
            ActionKind.PANIC,
        ):
            self.memory.discard_history.append(action.card)

        if action.player_index == self.player_index:
            return

        if action.kind == ActionKind.SWAP_OWN:
            self.memory.record_opponent_swap(action.own_position)
        elif action.kind == ActionKind.CROSS_SWAP:
            self.memory.record_opponent_swap(action.own_position)
            self.memory.forget(action.opponent_position)
        elif action.kind == ActionKind.MATCH_DISCARD:
            self.memory.shift_opponent_history(action.own_position)

    # Turn

    def take_turn(self, state: RoundState) -> RoundState:
        """
        Play exactly one complete turn and return the resulting state.

        Returns the state unchanged when it is not the bot's turn.
        """
        if state.is_ended or state.current_player_index != self.player_index:
            return state
        if state.drawn_card is not None:
            return state

        self.observe(state)
        self.memory.turn_count += 1

        # Chained reactive matches before deciding anything else
        state = self._react_all(state)
        if state.is_ended:
            return state

        if state.phase == RoundPhase.PLAYING and self._wants_chukrum(state):
            return StateTransitionEngine.call_chukrum(state, self.player_index)

        state = StateTransitionEngine.draw(state, self.player_index)
        if state.is_ended or state.drawn_card is None:
            return state

        card = state.drawn_card
        power = Power.for_rank(card.rank)
        if power == Power.JACK:
            new_state = self._play_jack(state)
        elif power == Power.QUEEN:
            new_state = self._play_queen(state)
        elif power == Power.KING:
            new_state = self._play_king(state)
        else:
            new_state = self._play_plain(state, card)

        self.observe(new_state)
        return new_state

    def react(self, state: RoundState) -> RoundState:
        """
        Match-discard one remembered card against the top discard.

        Only tiers with reactive matching do this; it can happen outside
        the bot's own turn.
        """
        if not self.profile.reactive_match:
            return state
        if state.is_ended or state.drawn_card is not None or not state.discard_pile:
            return state

        hand = state.hand_of(self.player_index)
        top = state.top_discard
        for position, card in sorted(self.memory.known_positions(hand).items()):
            if card.rank != top.rank or _value(card) <= 0:
                continue
            new_state = StateTransitionEngine.match_discard(
                state, self.player_index, position
            )
            if new_state is not state:
                self.memory.forget(position)
                self.memory.shift_after_removal(position)
                self.memory.discard_history.append(card)
                self.memory.last_observed = new_state.last_action
                logger.debug(f"Bot matched {card} from position {position}")
            return new_state
        return state

    def _react_all(self, state: RoundState) -> RoundState:
        while True:
            new_state = self.react(state)
            if new_state is state or new_state.is_ended:
                return new_state
            state = new_state

    # Chukrum

    def _wants_chukrum(self, state: RoundState) -> bool:
        hand = state.hand_of(self.player_index)
        known = self.memory.known_positions(hand)
        decided = should_call_chukrum(
            self.profile,
            known_count=len(known),
            known_sum=sum(_value(c) for c in known.values()),
            unknown_count=len(hand) - len(known),
            turn=self.memory.turn_count,
            deck_remaining=state.deck_size,
            opponent_swaps=len(self.memory.opponent_swap_history),
            has_improvable_pair=has_improvable_pair(known),
        )
        if decided and self.profile.chukrum_mode == ChukrumMode.STANDARD:
            decided = self.rng.random() < self.profile.chukrum_acceptance
        if decided:
            logger.info(
                f"Bot ({self.profile.difficulty.value}) calls Chukrum on turn "
                f"{self.memory.turn_count}"
            )
        return decided

    # Card handling

    def _play_plain(self, state: RoundState, card: Card) -> RoundState:
        if self._wants_panic(state):
            self.memory.panic_used = True
            self.memory.opponent_swap_history.clear()
            logger.info("Bot uses its panic shuffle")
            return StateTransitionEngine.panic_shuffle(state, self.player_index, self.rng)

        hand = state.hand_of(self.player_index)
        position = self.choose_swap_position(hand, card)
        if position is None:
            return StateTransitionEngine.discard(state, self.player_index)
        new_state = StateTransitionEngine.swap_own(state, self.player_index, position)
        if new_state is not state:
            self.memory.remember(position, card)
        return new_state

    def _play_jack(self, state: RoundState) -> RoundState:
        hand = state.hand_of(self.player_index)
        position = self._choose_peek_position(hand)
        if position is not None:
            state = StateTransitionEngine.peek_own(state, self.player_index, position)
            self.memory.remember(position, hand[position])
        return StateTransitionEngine.discard(state, self.player_index)

    def _play_queen(self, state: RoundState) -> RoundState:
        hand = state.hand_of(self.player_index)
        position = self._choose_peek_position(hand)
        if position is None:
            return StateTransitionEngine.discard(state, self.player_index)
        state = StateTransitionEngine.peek_own(state, self.player_index, position)
        peeked = hand[position]
        self.memory.remember(position, peeked)

        if _value(peeked) <= self.profile.special_swap_threshold:
            return StateTransitionEngine.discard(state, self.player_index)

        target, certain = self.choose_opponent_target(state)
        if target is None:
            return StateTransitionEngine.discard(state, self.player_index)
        taken = state.hand_of(self.opponent_index)[target]
        if certain and _value(taken) >= _value(peeked):
            return StateTransitionEngine.discard(state, self.player_index)

        new_state = StateTransitionEngine.cross_swap(
            state, self.player_index, position, target
        )
        self.memory.forget(position)
        if certain:
            self.memory.remember(position, taken)
        return new_state

    def _play_king(self, state: RoundState) -> RoundState:
        hand = state.hand_of(self.player_index)
        position = self._choose_peek_position(hand)
        target, _ = self.choose_opponent_target(state)
        if position is None or target is None:
            return StateTransitionEngine.discard(state, self.player_index)

        state = StateTransitionEngine.peek_own(state, self.player_index, position)
        state = StateTransitionEngine.peek_opponent(state, self.player_index, target)
        own = hand[position]
        theirs = state.hand_of(self.opponent_index)[target]
        self.memory.remember(position, own)

        special = state.special_action
        if (
            isinstance(special, ReadyToResolve)
            and _value(own) > self.profile.special_swap_threshold
            and _value(theirs) < _value(own)
        ):
            new_state = StateTransitionEngine.cross_swap(
                state, self.player_index, position, target
            )
            self.memory.remember(position, theirs)
            return new_state
        return StateTransitionEngine.discard(state, self.player_index)

    def choose_swap_position(self, hand: Hand, card: Card) -> Optional[int]:
        """
        Pick the position a drawn plain card should replace, or None to discard.
        """
        if len(hand) == 0:
            return None
        profile = self.profile
        value = _value(card)
        known = self.memory.known_positions(hand)
        unknown = [p for p in hand.positions() if p not in known]

        if profile.compare_known and known:
            worst = max(known, key=lambda p: _value(known[p]))
            if _value(known[worst]) > value:
                return worst

        if value <= profile.low_card_value:
            # With nothing left unknown any position will do
            if profile.explore_any_position or not unknown:
                candidates = hand.positions()
            else:
                candidates = unknown
            if candidates and self.rng.random() < profile.low_card_probability:
                return self.rng.choice(candidates)

        if not unknown:
            return None
        if (
            profile.early_game_turns
            and self.memory.turn_count <= profile.early_game_turns
            and value <= profile.early_swap_ceiling
        ):
            return self.rng.choice(unknown)
        if profile.late_swap_ceiling is not None and value <= profile.late_swap_ceiling:
            return self.rng.choice(unknown)
        return None

    def choose_opponent_target(self, state: RoundState):
        """
        Pick the opponent position for a Queen or King.

        Returns:
            (position, certain) where ``certain`` is True when the card was
            chosen by looking at the opponent's true hand
        """
        their_hand = state.hand_of(self.opponent_index)
        if len(their_hand) == 0:
            return None, False

        profile = self.profile
        if profile.omniscient_probability and self.rng.random() < profile.omniscient_probability:
            lowest = min(their_hand.positions(), key=lambda p: _value(their_hand[p]))
            return lowest, True

        if profile.target_mode == TargetMode.RANDOM:
            return self.rng.choice(their_hand.positions()), False
        return self.rng.choice(self._least_swapped(len(their_hand))), False

    def _least_swapped(self, hand_size: int) -> List[int]:
        # Positions the opponent never replaces are probably ones they like
        counts = self.memory.swap_counts(hand_size)
        fewest = min(counts)
        return [p for p, count in enumerate(counts) if count == fewest]

    def _choose_peek_position(self, hand: Hand) -> Optional[int]:
        if len(hand) == 0:
            return None
        known = self.memory.known_positions(hand)
        unknown = [p for p in hand.positions() if p not in known]
        if unknown:
            return self.rng.choice(unknown)
        return max(known, key=lambda p: _value(known[p]))

    def _wants_panic(self, state: RoundState) -> bool:
        profile = self.profile
        if not profile.panic_enabled or self.memory.panic_used:
            return False
        if self.memory.turn_count < profile.panic_min_turns:
            return False
        if len(state.hand_of(self.opponent_index)) < 2:
            return False
        own = state.hand_of(self.player_index).score()
        theirs = state.hand_of(self.opponent_index).score()
        return own - theirs >= profile.panic_margin
