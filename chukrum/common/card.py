"""
This module defines the `Suit`, `Rank`, and `Card` classes, which are used to represent playing cards.

- `Suit`: An enum representing the four suits of a standard deck of playing
cards: Spades, Hearts, Diamonds, and Clubs.

- `Rank`: An enum representing the thirteen ranks of a standard deck of playing
cards: Ace, Two through Ten, Jack, Queen and King.

- `Card`: An immutable playing card. A card has a suit, a rank and an identity
string that is unique inside one 52-card deck. Cards are created once per
shuffle and never mutated.

This module is part of the `chukrum` package.
"""

from dataclasses import dataclass
from enum import Enum, unique


@unique
class Suit(Enum):
    """
    Enum for suits in a card deck.
    """

    SPADES = "♠"
    HEARTS = "♥"
    DIAMONDS = "♦"
    CLUBS = "♣"

    @property
    def is_red(self) -> bool:
        return self in (Suit.HEARTS, Suit.DIAMONDS)

    def __str__(self) -> str:
        return self.value


@unique
class Rank(Enum):
    """
    Enum for ranks in a card deck. The value is the printed rank symbol.
    """

    ACE = "A"
    TWO = "2"
    THREE = "3"
    FOUR = "4"
    FIVE = "5"
    SIX = "6"
    SEVEN = "7"
    EIGHT = "8"
    NINE = "9"
    TEN = "10"
    JACK = "J"
    QUEEN = "Q"
    KING = "K"

    @property
    def rank_str(self) -> str:
        """A string representation of the rank."""
        return self.value

    @classmethod
    def from_str(cls, symbol: str) -> "Rank":
        for rank in cls:
            if rank.value == symbol:
                return rank
        raise ValueError(f"Invalid rank: {symbol}")

    def __str__(self) -> str:
        return self.rank_str


@dataclass(frozen=True)
class Card:
    """
    Class representing a playing card.

    >>> card = Card(Suit.HEARTS, Rank.TWO)
    >>> print(card)
    2♥
    >>> card.card_id
    '2♥'
    """

    suit: Suit
    rank: Rank

    def __post_init__(self):
        if not isinstance(self.suit, Suit):
            raise TypeError(f"Invalid suit: {self.suit}")
        if not isinstance(self.rank, Rank):
            raise TypeError(f"Invalid rank: {self.rank}")

    @property
    def card_id(self) -> str:
        """Identity of the card; unique inside a single deck."""
        return f"{self.rank.rank_str}{self.suit.value}"

    @property
    def code(self) -> str:
        """Wire code used when the card is stored in a shared record."""
        return self.card_id

    @classmethod
    def from_code(cls, code: str) -> "Card":
        """
        Parse a wire code such as ``"10♥"`` back into a card.

        :param code: The wire code produced by :attr:`code`.
        :return: The matching card.
        :raises ValueError: If the code does not name a card.
        """
        if not code or len(code) < 2:
            raise ValueError(f"Invalid card code: {code!r}")
        symbol, suit_symbol = code[:-1], code[-1]
        for suit in Suit:
            if suit.value == suit_symbol:
                return cls(suit, Rank.from_str(symbol))
        raise ValueError(f"Invalid card code: {code!r}")

    def __repr__(self) -> str:
        """
        Provide a machine-readable representation of the card.

        :return: A string representation of the card.
        """
        return f"Card(Suit.{self.suit.name}, Rank.{self.rank.name})"

    def __str__(self) -> str:
        """
        Provide a human-readable representation of the card.

        :return: A string representation of the card.
        """
        return self.card_id
