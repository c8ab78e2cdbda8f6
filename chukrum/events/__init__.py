"""
Event system for the Chukrum engine.

This package provides the event bus that the round state machine, the bot,
the engines and the peer clients publish to.
"""

from chukrum.events.emitter import (
    EventEmitter,
    EventBus,
    EngineEventType,
)

__all__ = ["EventEmitter", "EventBus", "EngineEventType"]
