"""
Tests for cards, ranks and Chukrum card values.
"""

import pytest

from chukrum.common.card import Card, Rank, Suit
from chukrum.common.constants import (
    CHUKRUM_VALUES,
    calculate_score,
    get_card_value,
    is_special,
)


class TestCard:
    """Tests for the Card value type."""

    def test_card_id_and_str(self):
        """A card's identity is its rank symbol followed by its suit symbol."""
        card = Card(Suit.HEARTS, Rank.TEN)
        assert card.card_id == "10♥"
        assert str(card) == "10♥"
        assert repr(card) == "Card(Suit.HEARTS, Rank.TEN)"

    def test_cards_are_immutable_and_hashable(self):
        card = Card(Suit.SPADES, Rank.ACE)
        with pytest.raises(Exception):
            card.rank = Rank.TWO
        assert len({card, Card(Suit.SPADES, Rank.ACE)}) == 1

    def test_invalid_suit_rejected(self):
        with pytest.raises(TypeError):
            Card("spades", Rank.ACE)

    @pytest.mark.parametrize("code", ["A♠", "7♣", "10♦", "K♥", "Q♣", "J♠"])
    def test_from_code_parses_wire_codes(self, code):
        """Wire codes parse back to the card that produced them."""
        assert Card.from_code(code).code == code

    @pytest.mark.parametrize("code", ["", "X", "11♠", "7x", "♠"])
    def test_from_code_rejects_garbage(self, code):
        with pytest.raises(ValueError):
            Card.from_code(code)

    def test_red_suits(self):
        assert Suit.HEARTS.is_red and Suit.DIAMONDS.is_red
        assert not Suit.SPADES.is_red and not Suit.CLUBS.is_red


class TestCardValues:
    """Tests for the Chukrum value table."""

    def test_documented_values(self):
        """Seven is -1, Ace 1, King 13 and number cards their face value."""
        assert get_card_value(Rank.SEVEN) == -1
        assert get_card_value(Rank.ACE) == 1
        assert get_card_value(Rank.KING) == 13
        assert get_card_value(Rank.FIVE) == 5
        assert get_card_value(Rank.JACK) == 11
        assert get_card_value(Rank.QUEEN) == 12

    def test_every_rank_has_a_value(self):
        assert set(CHUKRUM_VALUES) == set(Rank)

    def test_only_face_cards_are_special(self):
        assert {r for r in Rank if is_special(r)} == {Rank.JACK, Rank.QUEEN, Rank.KING}

    def test_score_of_seven_ace_king(self):
        """Scores add values; a seven lowers the total."""
        cards = [
            Card(Suit.CLUBS, Rank.SEVEN),
            Card(Suit.SPADES, Rank.ACE),
            Card(Suit.HEARTS, Rank.KING),
        ]
        assert calculate_score(cards) == 13

    def test_empty_score_is_zero(self):
        assert calculate_score([]) == 0
