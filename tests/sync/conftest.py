"""
Fixtures for the shared-record tests: stores, stacked decks and two peers.
"""

from typing import Sequence

import pytest

from chukrum.common.card import Card
from chukrum.common.deck import Deck
from chukrum.sync import InMemoryRecordStore, PeerClient, SQLiteRecordStore, new_record_fields

ALICE_HAND = ["5♠", "9♥", "2♦", "K♣"]
BOB_HAND = ["3♠", "8♥", "A♦", "6♣"]


def stacked_deck(draw_order: Sequence[str]):
    """A full deck whose top cards come off in ``draw_order``."""
    top = [Card.from_code(code) for code in draw_order]
    rest = [card for card in Deck().cards if card not in top]
    return rest + list(reversed(top))


@pytest.fixture(params=["memory", "sqlite"])
def store(request):
    if request.param == "memory":
        yield InMemoryRecordStore()
    else:
        sqlite_store = SQLiteRecordStore()
        yield sqlite_store
        sqlite_store.close()


@pytest.fixture
def create_game(store):
    """Create a record for alice (host) and bob (guest) with a stacked deck."""

    def factory(draws: Sequence[str] = (), **kwargs) -> str:
        fields = new_record_fields(
            host_id="alice",
            guest_id="bob",
            deck=stacked_deck(list(ALICE_HAND) + list(BOB_HAND) + list(draws)),
            first_turn=kwargs.pop("first_turn", "alice"),
            host_name="Alice",
            guest_name="Bob",
            **kwargs,
        )
        return store.create(fields)

    return factory


@pytest.fixture
def peers(store):
    """Connect both players to a record; returns ``(alice, bob)``."""
    clients = []

    def factory(record_id: str, clock=None):
        kwargs = {"clock": clock} if clock else {}
        alice = PeerClient(store, record_id, "alice", **kwargs)
        bob = PeerClient(store, record_id, "bob", **kwargs)
        alice.connect()
        bob.connect()
        clients.extend([alice, bob])
        return alice, bob

    yield factory
    for client in clients:
        client.disconnect()
