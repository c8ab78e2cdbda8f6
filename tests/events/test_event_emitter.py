"""
Tests for the event system.

This module contains tests for the EventEmitter and EventBus classes used by
the round transitions, engines and peer clients.
"""

import threading
from unittest.mock import MagicMock

from chukrum.events import EventEmitter, EventBus, EngineEventType


def test_on_and_unsubscribe():
    """Test subscribing with a string event type and unsubscribing."""
    emitter = EventEmitter()
    callback = MagicMock()

    unsubscribe = emitter.on("ROUND_STARTED", callback)
    emitter.emit("ROUND_STARTED", {"round_id": "r1"})
    callback.assert_called_once_with({"round_id": "r1"})

    unsubscribe()
    emitter.emit("ROUND_STARTED", {"round_id": "r2"})
    assert callback.call_count == 1


def test_enum_and_string_names_are_interchangeable():
    """Test that enum members subscribe to their names."""
    emitter = EventEmitter()
    callback = MagicMock()

    emitter.on(EngineEventType.HAND_SHUFFLED, callback)
    emitter.emit("HAND_SHUFFLED", {"player_index": 1})
    emitter.emit(EngineEventType.HAND_SHUFFLED, {"player_index": 0})

    assert callback.call_count == 2


def test_on_any_receives_name_and_data():
    """Test the catch-all subscription."""
    emitter = EventEmitter()
    seen = []

    unsubscribe = emitter.on_any(seen.append)
    emitter.emit(EngineEventType.MATCH_DISCARD, {"card": "7♣"})
    unsubscribe()
    emitter.emit(EngineEventType.PENALTY_CARD, {})

    assert seen == [("MATCH_DISCARD", {"card": "7♣"})]


def test_failing_handler_does_not_stop_others():
    """Test that an exception in one handler is logged and contained."""
    emitter = EventEmitter()
    callback = MagicMock()

    emitter.on("RECORD_UPDATED", MagicMock(side_effect=RuntimeError("boom")))
    emitter.on("RECORD_UPDATED", callback)
    emitter.emit("RECORD_UPDATED", {"version": 3})

    callback.assert_called_once_with({"version": 3})


def test_event_bus_singleton():
    """Test that the bus hands out one shared emitter."""
    first = EventBus.get_instance()
    second = EventBus.get_instance()
    assert first is second
    assert isinstance(first, EventEmitter)


def test_concurrent_emits():
    """Test that emitting from several threads delivers every event."""
    emitter = EventEmitter()
    received = []
    lock = threading.Lock()

    def handler(data):
        with lock:
            received.append(data["n"])

    emitter.on("CHAT_MESSAGE", handler)

    threads = [
        threading.Thread(
            target=lambda start=start: [
                emitter.emit("CHAT_MESSAGE", {"n": start + i}) for i in range(50)
            ]
        )
        for start in range(0, 200, 50)
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert sorted(received) == list(range(200))


def test_handlers_run_in_subscription_order():
    """Test that type handlers run in the order they subscribed, before catch-alls."""
    emitter = EventEmitter()
    order = []

    emitter.on_any(lambda _: order.append("any"))
    emitter.on("ROUND_ENDED", lambda _: order.append("first"))
    emitter.on("ROUND_ENDED", lambda _: order.append("second"))
    emitter.emit("ROUND_ENDED", {})

    assert order == ["first", "second", "any"]


def test_payload_is_passed_through_unchanged():
    """Test that the emitter does not add fields to the payload."""
    emitter = EventEmitter()
    callback = MagicMock()
    emitter.on("CARD_DRAWN", callback)

    emitter.emit("CARD_DRAWN", {"card": "7♠"})

    callback.assert_called_once_with({"card": "7♠"})
