"""
Pytest configuration shared by every test package.

This module resets the event bus between tests and provides a factory for
rounds with stacked hands and decks.
"""

from typing import Iterable, Optional, Sequence

import pytest

from chukrum.common.card import Card
from chukrum.common.deck import Deck
from chukrum.common.hand import Hand
from chukrum.events import EventBus
from chukrum.round import PlayerState, RoundRules, RoundState


# Reset event bus before each test
@pytest.fixture(scope="function", autouse=True)
def reset_event_bus():
    """Reset the event bus singleton before each test."""
    EventBus._instance = None
    yield
    EventBus._instance = None


def cards(codes: Iterable[str]):
    return [Card.from_code(code) for code in codes]


@pytest.fixture
def make_round():
    """
    Build a round from card codes.

    ``hands`` holds the two hands, ``top`` the next cards to be drawn in draw
    order, and ``discard`` the discard pile bottom to top. With ``full_deck``
    the rest of a 52-card deck is placed under ``top``.
    """

    def factory(
        hands: Sequence[Sequence[str]],
        top: Sequence[str] = (),
        discard: Sequence[str] = (),
        current: int = 0,
        rules: Optional[RoundRules] = None,
        full_deck: bool = True,
        **kwargs,
    ) -> RoundState:
        seat_cards = [cards(hand) for hand in hands]
        top_cards = cards(top)
        discard_cards = cards(discard)

        rest = []
        if full_deck:
            used = {c.card_id for c in top_cards + discard_cards}
            used.update(c.card_id for hand in seat_cards for c in hand)
            rest = [c for c in Deck().cards if c.card_id not in used]

        players = (
            PlayerState(id="alice", name="Alice", hand=Hand(seat_cards[0])),
            PlayerState(id="bob", name="Bob", hand=Hand(seat_cards[1]), is_bot=True),
        )
        return RoundState(
            players=players,
            deck=tuple(rest + list(reversed(top_cards))),
            discard_pile=tuple(discard_cards),
            current_player_index=current,
            rules=rules or RoundRules(),
            **kwargs,
        )

    return factory
