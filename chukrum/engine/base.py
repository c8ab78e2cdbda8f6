"""
Base engine class for the Chukrum package.

This module provides the abstract base class for engines that drive a round
through a platform adapter.
"""

from abc import ABC, abstractmethod
from typing import Dict, Any

from chukrum.adapters import PlatformAdapter
from chukrum.events import EventBus


class ChukrumEngine(ABC):
    """
    Abstract base class for all engines.

    This class defines the common interface that engines must implement,
    providing methods for starting rounds, handling player actions, and
    rendering the round state.
    """

    def __init__(self, adapter: PlatformAdapter, config: Dict[str, Any] = None):
        """
        Initialize the engine.

        Args:
            adapter: Platform adapter to use for rendering and input
            config: Configuration options for the game
        """
        self.adapter = adapter
        self.config = config or {}
        self.event_bus = EventBus.get_instance()
        self.state = None

    @abstractmethod
    async def initialize(self) -> None:
        """
        Initialize the engine and prepare for a game.
        """
        await self.adapter.initialize()

    @abstractmethod
    async def shutdown(self) -> None:
        """
        Shut down the engine and clean up resources.
        """
        await self.adapter.shutdown()

    @abstractmethod
    async def start_round(self) -> None:
        """
        Deal a new round.
        """
        pass

    @abstractmethod
    async def execute_player_action(self, player_id: str, action: str, **kwargs) -> bool:
        """
        Execute a player action.

        Args:
            player_id: ID of the player
            action: Action to perform

        Returns:
            True if the action was applied, False if it was rejected
        """
        pass

    @abstractmethod
    async def render_state(self) -> None:
        """
        Render the current round state.
        """
        pass
