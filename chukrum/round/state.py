"""
Immutable state models for a Chukrum round.

This module provides dataclasses for representing the state of one round in
an immutable manner. These classes are designed to be used with the pure
transition functions in :mod:`chukrum.round.transitions`, which create new
state instances rather than modifying existing ones.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union
from enum import Enum, auto
import uuid
import time

from chukrum.common.card import Card, Rank
from chukrum.common.constants import DECK_SIZE, HAND_SIZE
from chukrum.common.hand import Hand


class RoundPhase(Enum):
    """Top-level phases of a round. ENDED is terminal."""

    PLAYING = auto()
    FINAL_ROUND = auto()
    ENDED = auto()


class TurnStep(Enum):
    """Micro-cycle inside a turn."""

    IDLE = auto()
    CARD_DRAWN = auto()


class Power(Enum):
    """Peek/swap power granted by a drawn special card."""

    JACK = Rank.JACK
    QUEEN = Rank.QUEEN
    KING = Rank.KING

    @classmethod
    def for_rank(cls, rank: Rank) -> Optional["Power"]:
        for power in cls:
            if power.value == rank:
                return power
        return None


class QueenPeekRule(Enum):
    """Which hands a Queen's single peek may target."""

    OWN_ONLY = "own_only"
    EITHER = "either"


class ActionKind(Enum):
    """Public actions recorded on the state for observers."""

    DRAW = "draw"
    DISCARD = "discard"
    SWAP_OWN = "swap_own"
    PEEK_OWN = "peek_own"
    PEEK_OPPONENT = "peek_opponent"
    CROSS_SWAP = "cross_swap"
    MATCH_DISCARD = "match_discard"
    MATCH_PENALTY = "match_penalty"
    MATCH_MISS = "match_miss"
    CALL_CHUKRUM = "call_chukrum"
    PANIC = "panic"


# Special-power sub-state. Each stage is its own type so that, for example,
# a resolved King without both peeks cannot be represented.


@dataclass(frozen=True)
class AwaitingFirstPeek:
    power: Power


@dataclass(frozen=True)
class AwaitingSecondPeek:
    """Only the King reaches this stage; exactly one side has been peeked."""

    power: Power
    own_position: Optional[int] = None
    opponent_position: Optional[int] = None


@dataclass(frozen=True)
class ReadyToResolve:
    power: Power
    own_position: Optional[int] = None
    opponent_position: Optional[int] = None


SpecialAction = Union[AwaitingFirstPeek, AwaitingSecondPeek, ReadyToResolve]


@dataclass(frozen=True)
class PeekMarker:
    """A card revealed to ``viewer`` only, until the viewer's turn completes."""

    viewer: int
    owner: int
    position: int
    card: Card


@dataclass(frozen=True)
class ActionRecord:
    """
    The last public action, as seen by both players.

    Attributes:
        player_index: Who acted
        kind: What they did
        own_position: Position in the actor's hand, if any
        opponent_position: Position in the other hand, if any
        card: The card that became public (discarded or matched), if any
        text: Human readable description
    """

    player_index: int
    kind: ActionKind
    own_position: Optional[int] = None
    opponent_position: Optional[int] = None
    card: Optional[Card] = None
    text: str = ""


@dataclass(frozen=True)
class RoundRules:
    """
    Immutable representation of the configurable round rules.

    Attributes:
        hand_size: Cards dealt to each player
        queen_peek: Whether a Queen may peek at the opponent's hand
        final_round_turns: Turns played after a Chukrum call
        match_discard_any_turn: Whether match-discards are allowed outside
            the actor's own turn
    """

    hand_size: int = HAND_SIZE
    queen_peek: QueenPeekRule = QueenPeekRule.OWN_ONLY
    final_round_turns: int = 2
    match_discard_any_turn: bool = True


@dataclass(frozen=True)
class PlayerState:
    """
    Immutable representation of a seat in the round.

    Attributes:
        id: Unique identifier for this player
        name: Display name of the player
        hand: Position-addressable cards in front of the player
        is_bot: Whether the seat is played by the strategy engine
    """

    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    name: str = "Player"
    hand: Hand = field(default_factory=Hand)
    is_bot: bool = False

    @property
    def card_count(self) -> int:
        return len(self.hand)

    @property
    def score(self) -> int:
        return self.hand.score()


@dataclass(frozen=True)
class RoundResult:
    """Final scores; ``winner_index`` is None on a tie."""

    scores: Tuple[int, int]
    winner_index: Optional[int]
    reason: str = ""

    @property
    def is_tie(self) -> bool:
        return self.winner_index is None


@dataclass(frozen=True)
class RoundState:
    """
    Immutable representation of one Chukrum round.

    Attributes:
        id: Unique identifier for this round
        players: Exactly two seats
        deck: Draw pile; the top card is the last element
        discard_pile: Discard pile; the top card is the last element
        phase: PLAYING, FINAL_ROUND or ENDED
        step: IDLE or CARD_DRAWN
        current_player_index: Seat whose turn it is
        drawn_card: The card held by the current player but not yet resolved
        special_action: Peek/swap sub-state of a drawn J, Q or K
        peek_markers: Cards revealed privately during the current turn
        chukrum_caller_index: Seat that called Chukrum, if any
        final_round_turns_remaining: Turns left once Chukrum was called
        turn_number: Completed turns plus one
        action_token: In-flight deferred action token, if one is pending
        last_action: Last public action
        notice: Transient status text
        result: Final scores once the round has ended
        rules: Round rules
        timestamp: Time when this state was created
    """

    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    players: Tuple[PlayerState, ...] = ()
    deck: Tuple[Card, ...] = ()
    discard_pile: Tuple[Card, ...] = ()
    phase: RoundPhase = RoundPhase.PLAYING
    step: TurnStep = TurnStep.IDLE
    current_player_index: int = 0
    drawn_card: Optional[Card] = None
    special_action: Optional[SpecialAction] = None
    peek_markers: Tuple[PeekMarker, ...] = ()
    chukrum_caller_index: Optional[int] = None
    final_round_turns_remaining: int = 0
    turn_number: int = 1
    action_token: Optional[str] = None
    last_action: Optional[ActionRecord] = None
    notice: str = ""
    result: Optional[RoundResult] = None
    rules: RoundRules = field(default_factory=RoundRules)
    timestamp: float = field(default_factory=lambda: time.time())

    @property
    def current_player(self) -> Optional[PlayerState]:
        if 0 <= self.current_player_index < len(self.players):
            return self.players[self.current_player_index]
        return None

    @property
    def top_discard(self) -> Optional[Card]:
        return self.discard_pile[-1] if self.discard_pile else None

    @property
    def deck_size(self) -> int:
        return len(self.deck)

    @property
    def is_ended(self) -> bool:
        return self.phase == RoundPhase.ENDED

    @staticmethod
    def opponent_of(player_index: int) -> int:
        return 1 - player_index

    def player_index(self, player_id: str) -> Optional[int]:
        for i, player in enumerate(self.players):
            if player.id == player_id:
                return i
        return None

    def hand_of(self, player_index: int) -> Hand:
        return self.players[player_index].hand

    def scores(self) -> Tuple[int, ...]:
        return tuple(player.score for player in self.players)

    def card_count(self) -> int:
        """Cards accounted for across piles, hands and the drawn card."""
        held = 1 if self.drawn_card is not None else 0
        return (
            len(self.deck)
            + len(self.discard_pile)
            + sum(len(p.hand) for p in self.players)
            + held
        )

    def has_full_deck(self) -> bool:
        return self.card_count() == DECK_SIZE

    def peeks_for(self, viewer: int) -> List[PeekMarker]:
        return [m for m in self.peek_markers if m.viewer == viewer]

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert the round state to a dictionary suitable for serialization.

        Hidden information is included; use :meth:`to_adapter_format` for a
        single player's view.
        """
        return {
            "id": self.id,
            "phase": self.phase.name,
            "step": self.step.name,
            "current_player_index": self.current_player_index,
            "drawn_card": str(self.drawn_card) if self.drawn_card else None,
            "special_action": _describe_special(self.special_action),
            "deck_remaining": len(self.deck),
            "discard_pile": [str(card) for card in self.discard_pile],
            "chukrum_caller_index": self.chukrum_caller_index,
            "final_round_turns_remaining": self.final_round_turns_remaining,
            "turn_number": self.turn_number,
            "notice": self.notice,
            "timestamp": self.timestamp,
            "players": [
                {
                    "id": player.id,
                    "name": player.name,
                    "is_bot": player.is_bot,
                    "hand": [str(card) for card in player.hand],
                    "score": player.score,
                }
                for player in self.players
            ],
            "result": (
                {
                    "scores": list(self.result.scores),
                    "winner_index": self.result.winner_index,
                    "reason": self.result.reason,
                }
                if self.result
                else None
            ),
            "rules": {
                "hand_size": self.rules.hand_size,
                "queen_peek": self.rules.queen_peek.value,
                "final_round_turns": self.rules.final_round_turns,
                "match_discard_any_turn": self.rules.match_discard_any_turn,
            },
        }

    def to_adapter_format(self, viewer: int) -> Dict[str, Any]:
        """
        Convert the state to what ``viewer`` is allowed to see.

        Cards stay face down unless peeked by the viewer this turn or the
        round has ended.
        """
        revealed = {(m.owner, m.position): m.card for m in self.peeks_for(viewer)}
        players = []
        for i, player in enumerate(self.players):
            cards = []
            for position, card in enumerate(player.hand):
                if self.is_ended or (i, position) in revealed:
                    cards.append(str(card))
                else:
                    cards.append("★")
            players.append(
                {
                    "name": player.name,
                    "id": player.id,
                    "cards": cards,
                    "hand_size": len(player.hand),
                    "score": player.score if self.is_ended else None,
                    "is_you": i == viewer,
                }
            )
        return {
            "round_id": self.id,
            "phase": self.phase.name,
            "your_turn": self.current_player_index == viewer and not self.is_ended,
            "drawn_card": (
                str(self.drawn_card)
                if self.drawn_card and self.current_player_index == viewer
                else None
            ),
            "special_action": (
                _describe_special(self.special_action)
                if self.current_player_index == viewer
                else None
            ),
            "top_discard": str(self.top_discard) if self.top_discard else None,
            "deck_remaining": len(self.deck),
            "turn_number": self.turn_number,
            "chukrum_called": self.chukrum_caller_index is not None,
            "last_action": self.last_action.text if self.last_action else None,
            "notice": self.notice,
            "winner": (
                self.players[self.result.winner_index].name
                if self.result and self.result.winner_index is not None
                else None
            ),
            "players": players,
        }


def _describe_special(special: Optional[SpecialAction]) -> Optional[Dict[str, Any]]:
    if special is None:
        return None
    return {
        "stage": type(special).__name__,
        "power": special.power.name,
        "own_position": getattr(special, "own_position", None),
        "opponent_position": getattr(special, "opponent_position", None),
    }
