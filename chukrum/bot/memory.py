"""
What the scripted opponent remembers during one round.

Remembered cards are lookups into the live hand, not ownership: positions
shift when cards are match-discarded and cards move when the other player
swaps with us, so every read re-checks the card identity first.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple
import logging

from chukrum.common.card import Card
from chukrum.common.hand import Hand

logger = logging.getLogger(__name__)


@dataclass
class OpponentMemory:
    """
    Mutable per-round memory of the bot.

    Attributes:
        known_cards: position -> card seen by our own peeks or swaps
        opponent_swap_history: (position, turn) of the opponent's own swaps
        discard_history: every card seen going to the discard pile
        turn_count: our completed-or-started turns this round
        panic_used: whether the panic shuffle has been spent
    """

    known_cards: Dict[int, Card] = field(default_factory=dict)
    opponent_swap_history: List[Tuple[int, int]] = field(default_factory=list)
    discard_history: List[Card] = field(default_factory=list)
    turn_count: int = 0
    panic_used: bool = False
    last_observed: Optional[object] = field(default=None, repr=False)

    def reset(self) -> None:
        self.known_cards.clear()
        self.opponent_swap_history.clear()
        self.discard_history.clear()
        self.turn_count = 0
        self.panic_used = False
        self.last_observed = None

    def remember(self, position: int, card: Card) -> None:
        self.known_cards[position] = card

    def forget(self, position: int) -> None:
        self.known_cards.pop(position, None)

    def lookup(self, position: int, hand: Hand) -> Optional[Card]:
        """
        Return the remembered card at a position if it is still there.

        A stale entry is dropped and reported as unknown.
        """
        card = self.known_cards.get(position)
        if card is None:
            return None
        if not hand.is_valid_position(position) or hand[position].card_id != card.card_id:
            logger.debug(f"Dropping stale memory of {card} at position {position}")
            del self.known_cards[position]
            return None
        return card

    def known_positions(self, hand: Hand) -> Dict[int, Card]:
        """All remembered cards that still match the live hand."""
        valid = {}
        for position in list(self.known_cards):
            card = self.lookup(position, hand)
            if card is not None:
                valid[position] = card
        return valid

    def unknown_positions(self, hand: Hand) -> List[int]:
        known = self.known_positions(hand)
        return [p for p in hand.positions() if p not in known]

    def shift_after_removal(self, position: int) -> None:
        """Re-key our own memory after the card at ``position`` left the hand."""
        shifted = {}
        for pos, card in self.known_cards.items():
            if pos < position:
                shifted[pos] = card
            elif pos > position:
                shifted[pos - 1] = card
        self.known_cards = shifted

    def record_opponent_swap(self, position: int) -> None:
        self.opponent_swap_history.append((position, self.turn_count))

    def shift_opponent_history(self, position: int) -> None:
        """Re-key the opponent's swap history after they lost ``position``."""
        shifted = []
        for pos, turn in self.opponent_swap_history:
            if pos < position:
                shifted.append((pos, turn))
            elif pos > position:
                shifted.append((pos - 1, turn))
        self.opponent_swap_history = shifted

    def swap_counts(self, hand_size: int) -> List[int]:
        """How often the opponent replaced each of their positions."""
        counts = [0] * hand_size
        for pos, _ in self.opponent_swap_history:
            if 0 <= pos < hand_size:
                counts[pos] += 1
        return counts
