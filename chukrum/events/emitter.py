"""
Event system for the Chukrum engine.

Transitions, engines and peer clients publish what happened on a shared bus;
adapters, bots and external collaborators (for example a stats service that
counts wins and losses) subscribe to it.
"""

from collections import defaultdict
from typing import Any, Dict, Callable, Union
import threading
import logging
from enum import Enum

# Create a logger for the event system
logger = logging.getLogger("chukrum.events")


class EventEmitter:
    """
    Event emitter for the Chukrum engine.

    Features:
    - Supports subscribing to all events with event type filtering in handler
    - Thread-safe event emission
    """

    def __init__(self):
        """Initialize the event emitter."""
        self._listeners = defaultdict(list)
        self._global_listeners = []
        self._listener_lock = threading.RLock()

    def on(self, event_type: Union[str, Enum], callback: Callable) -> Callable:
        """
        Subscribe to an event type.

        Args:
            event_type: The event type to subscribe to (string or enum)
            callback: Function to call when event occurs, signature: fn(event_data)

        Returns:
            Unsubscribe function that can be called to remove this subscription
        """
        if isinstance(event_type, Enum):
            event_type = event_type.name

        with self._listener_lock:
            self._listeners[event_type].append(callback)

        def unsubscribe():
            with self._listener_lock:
                handlers = self._listeners[event_type]
                if callback in handlers:
                    handlers.remove(callback)

        return unsubscribe

    def on_any(self, callback: Callable) -> Callable:
        """
        Subscribe to all events.

        Args:
            callback: Function to call for any event, signature: fn((event_type, event_data))

        Returns:
            Unsubscribe function that can be called to remove this subscription
        """
        with self._listener_lock:
            self._global_listeners.append(callback)

        def unsubscribe():
            with self._listener_lock:
                if callback in self._global_listeners:
                    self._global_listeners.remove(callback)

        return unsubscribe

    def emit(self, event_type: Union[str, Enum], data: Dict[str, Any]) -> None:
        """
        Emit an event to all registered listeners.

        Args:
            event_type: The type of event to emit
            data: The data to include with the event
        """
        if isinstance(event_type, Enum):
            event_type = event_type.name

        with self._listener_lock:
            handlers_to_call = [
                (callback, data) for callback in self._listeners.get(event_type, [])
            ]
            handlers_to_call.extend(
                (callback, (event_type, data)) for callback in self._global_listeners
            )

        # Call handlers outside of the lock to avoid deadlocks
        for callback, args in handlers_to_call:
            try:
                callback(args)
            except Exception as e:
                logger.error(
                    f"Error in event handler for {event_type}: {e}", exc_info=True
                )


class EventBus:
    """
    Global event bus for the application.

    This singleton class provides a centralized event bus that can be accessed
    from anywhere in the application.
    """

    _instance = None
    _lock = threading.Lock()

    @classmethod
    def get_instance(cls) -> EventEmitter:
        """
        Get the singleton instance of the EventBus.

        Returns:
            EventEmitter instance
        """
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = EventEmitter()
        return cls._instance


class EngineEventType(Enum):
    """
    Event types for the Chukrum engine.

    These event types cover the round flow and provide hooks for platform
    adapters and external collaborators to respond to game state changes.
    """

    # Core lifecycle events
    ENGINE_INIT = "engine_init"
    ENGINE_SHUTDOWN = "engine_shutdown"

    # Round lifecycle
    ROUND_STARTED = "round_started"
    ROUND_ENDED = "round_ended"
    FINAL_ROUND_STARTED = "final_round_started"
    SERIES_ENDED = "series_ended"

    # Player events
    PLAYER_ACTION = "player_action"
    PLAYER_DECISION_NEEDED = "player_decision_needed"
    ACTION_REJECTED = "action_rejected"
    CHUKRUM_CALLED = "chukrum_called"

    # Card events
    CARD_DRAWN = "card_drawn"
    CARD_REVEALED = "card_revealed"
    CARDS_SWAPPED = "cards_swapped"
    MATCH_DISCARD = "match_discard"
    PENALTY_CARD = "penalty_card"
    HAND_SHUFFLED = "hand_shuffled"

    # Multiplayer events
    RECORD_UPDATED = "record_updated"
    STALE_RECORD_DISCARDED = "stale_record_discarded"
    PEER_DISCONNECTED = "peer_disconnected"
    CHAT_MESSAGE = "chat_message"
    REMATCH_REQUESTED = "rematch_requested"
    REMATCH_ACCEPTED = "rematch_accepted"

    # Error events
    ERROR = "error"
    WARNING = "warning"

    # Simulation events
    SIMULATION_PROGRESS = "simulation_progress"
    SIMULATION_RESULT = "simulation_result"

    # Platform adapter events
    UI_UPDATE_NEEDED = "ui_update_needed"
