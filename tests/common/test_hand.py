"""
Tests for the position-addressed Hand.
"""

import pytest

from chukrum.common.card import Card, Rank, Suit
from chukrum.common.hand import Hand

SEVEN_CLUBS = Card(Suit.CLUBS, Rank.SEVEN)
ACE_SPADES = Card(Suit.SPADES, Rank.ACE)
KING_HEARTS = Card(Suit.HEARTS, Rank.KING)
FIVE_DIAMONDS = Card(Suit.DIAMONDS, Rank.FIVE)


@pytest.fixture
def hand():
    return Hand([SEVEN_CLUBS, ACE_SPADES, KING_HEARTS])


class TestHand:
    """Tests for Hand operations."""

    def test_score(self, hand):
        assert hand.score() == 13

    def test_replace_at_returns_new_hand_and_old_card(self, hand):
        new_hand, old = hand.replace_at(2, FIVE_DIAMONDS)
        assert old == KING_HEARTS
        assert new_hand.cards == [SEVEN_CLUBS, ACE_SPADES, FIVE_DIAMONDS]
        # The original is untouched
        assert hand.cards == [SEVEN_CLUBS, ACE_SPADES, KING_HEARTS]

    def test_remove_at_shifts_later_positions(self, hand):
        new_hand, removed = hand.remove_at(0)
        assert removed == SEVEN_CLUBS
        assert new_hand.cards == [ACE_SPADES, KING_HEARTS]
        assert new_hand.score() == 14

    def test_append_grows_the_hand(self, hand):
        assert len(hand.append(FIVE_DIAMONDS)) == 4

    @pytest.mark.parametrize("position", [-1, 3, "1", None])
    def test_invalid_positions(self, hand, position):
        assert not hand.is_valid_position(position)

    def test_replace_invalid_position_raises(self, hand):
        with pytest.raises(IndexError):
            hand.replace_at(5, FIVE_DIAMONDS)

    def test_reordered(self, hand):
        assert hand.reordered([2, 0, 1]).cards == [KING_HEARTS, SEVEN_CLUBS, ACE_SPADES]

    def test_reordered_rejects_non_permutations(self, hand):
        with pytest.raises(ValueError):
            hand.reordered([0, 0, 1])

    def test_index_of_uses_identity(self, hand):
        assert hand.index_of(Card(Suit.HEARTS, Rank.KING)) == 2
        assert hand.index_of(FIVE_DIAMONDS) is None

    def test_equality(self, hand):
        assert hand == Hand([SEVEN_CLUBS, ACE_SPADES, KING_HEARTS])
        assert hand != Hand([SEVEN_CLUBS])
