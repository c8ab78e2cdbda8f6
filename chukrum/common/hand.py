"""
This module provides the `Hand` class: an ordered, position-addressable
sequence of cards.

Positions are meaningful in Chukrum. Peeks and swaps refer to a position, not
to a card, so every operation keeps the relative order of the untouched cards.
Hands are immutable values; each operation returns a new hand, which lets the
round state stay a frozen snapshot.
"""

from typing import Iterable, Iterator, List, Optional, Tuple

from chukrum.common.card import Card
from chukrum.common.constants import calculate_score


class Hand:
    """
    A hand of cards addressed by position.

    >>> from chukrum.common.card import Rank, Suit
    >>> hand = Hand([Card(Suit.CLUBS, Rank.SEVEN), Card(Suit.HEARTS, Rank.KING)])
    >>> hand.score()
    12
    """

    __slots__ = ("_cards",)

    def __init__(self, cards: Optional[Iterable[Card]] = None):
        self._cards: Tuple[Card, ...] = tuple(cards or ())

    @property
    def cards(self) -> List[Card]:
        """Returns a copy of the cards in the hand."""
        return list(self._cards)

    def __len__(self) -> int:
        return len(self._cards)

    def __iter__(self) -> Iterator[Card]:
        return iter(self._cards)

    def __getitem__(self, position: int) -> Card:
        return self._cards[position]

    def __eq__(self, other) -> bool:
        if isinstance(other, Hand):
            return self._cards == other._cards
        return NotImplemented

    def __hash__(self):
        return hash(self._cards)

    def is_valid_position(self, position) -> bool:
        return isinstance(position, int) and 0 <= position < len(self._cards)

    def positions(self) -> List[int]:
        return list(range(len(self._cards)))

    def replace_at(self, position: int, card: Card) -> Tuple["Hand", Card]:
        """
        Put a card at a position.

        Args:
            position: Position to replace
            card: The incoming card

        Returns:
            The new hand and the card that was replaced

        Raises:
            IndexError: If the position does not exist
        """
        if not self.is_valid_position(position):
            raise IndexError(f"No card at position {position}")
        cards = list(self._cards)
        old = cards[position]
        cards[position] = card
        return Hand(cards), old

    def remove_at(self, position: int) -> Tuple["Hand", Card]:
        """
        Remove the card at a position; later positions shift down by one.

        Raises:
            IndexError: If the position does not exist
        """
        if not self.is_valid_position(position):
            raise IndexError(f"No card at position {position}")
        cards = list(self._cards)
        removed = cards.pop(position)
        return Hand(cards), removed

    def append(self, card: Card) -> "Hand":
        return Hand(self._cards + (card,))

    def reordered(self, order: List[int]) -> "Hand":
        """Return a hand whose position ``i`` holds the card at ``order[i]``."""
        if sorted(order) != self.positions():
            raise ValueError(f"{order} is not a permutation of the hand positions")
        return Hand(self._cards[i] for i in order)

    def index_of(self, card: Card) -> Optional[int]:
        """Position of a card identity in this hand, or None."""
        for i, held in enumerate(self._cards):
            if held.card_id == card.card_id:
                return i
        return None

    def score(self) -> int:
        """Sum of the card values; always recomputed from the current cards."""
        return calculate_score(self._cards)

    def __repr__(self) -> str:
        return f"Hand({list(self._cards)!r})"

    def __str__(self) -> str:
        return ", ".join(str(card) for card in self._cards)
