"""
This module contains the Deck class, which represents a deck of cards.

>>> deck = Deck()
>>> deck.size
52
>>> deck.deal()
Card(Suit.CLUBS, Rank.KING)
>>> deck.size
51
"""

import random
from typing import List, Optional, Union

from chukrum.common.card import Card, Rank, Suit


class Deck:
    """
    A class representing a deck of cards. The top of the deck is the end of
    the card list.
    """

    # Precompute the default deck
    _default_deck = [Card(suit, rank) for suit in Suit for rank in Rank]

    def __init__(
        self,
        cards: Union[List[Card], None] = None,
        rng: Optional[random.Random] = None,
    ):
        """
        Initialize a Deck instance.

        :param cards: A list of Card instances to populate the deck (optional).
                      If not provided, a default deck will be constructed.
        :param rng: Random source used for shuffling (optional).
        >>> deck = Deck()
        >>> deck.size
        52
        """
        self.rng = rng or random.Random()
        if cards is None:
            self.cards: List[Card] = self.initialize_default_deck()
        else:
            self.cards = list(cards)

    def initialize_default_deck(self) -> List[Card]:
        """
        Construct a default deck with all possible combinations of suits and ranks.

        :return: A list of Card instances representing the default deck.
        """
        return self._default_deck.copy()

    def shuffle(self):
        """
        Shuffle the cards in place with a Fisher-Yates pass.

        For every index from the last down to 1 the card is swapped with a
        uniformly chosen card at or below it.
        >>> deck = Deck(rng=random.Random(7))
        >>> original = deck.cards.copy()
        >>> _ = deck.shuffle()
        >>> sorted(map(str, deck.cards)) == sorted(map(str, original))
        True
        """
        cards = self.cards
        for i in range(len(cards) - 1, 0, -1):
            j = self.rng.randint(0, i)
            cards[i], cards[j] = cards[j], cards[i]
        return self

    def deal(self, num_cards=1) -> Union[Card, List[Card]]:
        """
        Pop n cards from the top of the deck.

        :return: A card instance or a list of card instances.
        :raises IndexError: If the deck holds fewer than ``num_cards`` cards.
        >>> deck = Deck()
        >>> cards = deck.deal(5)
        >>> len(cards)
        5
        """
        if num_cards == 1:
            return self.cards.pop()
        if num_cards > len(self.cards):
            raise IndexError("Not enough cards left in the deck")
        return [self.cards.pop() for _ in range(num_cards)]

    @property
    def size(self) -> int:
        """
        Return the number of remaining cards in the deck.
        """
        return len(self.cards)

    def is_empty(self) -> bool:
        return len(self.cards) == 0

    def reset(self):
        """
        Reset the deck by recreating it in factory order.
        """
        self.cards = self.initialize_default_deck()

    def __repr__(self) -> str:
        return f"Deck({[repr(card) for card in self.cards]})"

    def __str__(self) -> str:
        return f"Deck of {len(self.cards)} cards"


def fresh_shuffled_deck(rng: Optional[random.Random] = None) -> List[Card]:
    """Return a newly shuffled 52-card list, top of the deck last."""
    return Deck(rng=rng).shuffle().cards
