"""Chukrum-specific constants and value mappings."""

from typing import Iterable

from chukrum.common.card import Card, Rank

# Lowest score wins; a seven is the best card in the deck
CHUKRUM_VALUES = {
    Rank.ACE: 1,
    Rank.TWO: 2,
    Rank.THREE: 3,
    Rank.FOUR: 4,
    Rank.FIVE: 5,
    Rank.SIX: 6,
    Rank.SEVEN: -1,
    Rank.EIGHT: 8,
    Rank.NINE: 9,
    Rank.TEN: 10,
    Rank.JACK: 11,
    Rank.QUEEN: 12,
    Rank.KING: 13,
}

SPECIAL_RANKS = (Rank.JACK, Rank.QUEEN, Rank.KING)

DECK_SIZE = 52
HAND_SIZE = 4


def get_card_value(rank: Rank) -> int:
    """Get the chukrum value for a given rank."""
    return CHUKRUM_VALUES[rank]


def is_special(rank: Rank) -> bool:
    """Jacks, Queens and Kings grant a peek/swap power when drawn."""
    return rank in SPECIAL_RANKS


def calculate_score(cards: Iterable[Card]) -> int:
    """Total value of a collection of cards."""
    return sum(get_card_value(card.rank) for card in cards)
