"""
Base adapter interface for the Chukrum engine.

This module defines the interface that platform-specific adapters must implement
to interact with the Chukrum engine.
"""

from abc import ABC, abstractmethod
from typing import Dict, Any, List, Optional, Tuple, Union
from enum import Enum

from chukrum.round.actions import ActionChoice, ChukrumAction

ValidActions = Dict[ChukrumAction, List[Tuple[int, ...]]]


class PlatformAdapter(ABC):
    """
    Base interface for platform-specific adapters.

    This abstract class defines the methods that platform-specific adapters
    must implement to interact with the Chukrum engine. These methods handle
    rendering the round state, requesting player actions, and notifying of
    game events.

    Implementations of this interface bridge the gap between the platform-agnostic
    engine and a concrete front end such as a console or a transcript file.
    """

    @abstractmethod
    async def render_game_state(self, state: Dict[str, Any]) -> None:
        """
        Render the current round state to the platform.

        Args:
            state: One player's view of the round (see
                ``RoundState.to_adapter_format``)
        """
        pass

    @abstractmethod
    async def request_player_action(
        self,
        player_id: str,
        player_name: str,
        valid_actions: ValidActions,
        timeout_seconds: Optional[float] = None,
    ) -> ActionChoice:
        """
        Request an action from a player.

        Args:
            player_id: Unique identifier for the player
            player_name: Display name of the player
            valid_actions: Valid actions mapped to their valid position tuples
            timeout_seconds: Optional timeout for the player's decision

        Returns:
            The player's chosen action

        Raises:
            TimeoutError: If the player doesn't respond within the timeout period
        """
        pass

    @abstractmethod
    async def notify_game_event(
        self, event_type: Union[str, Enum], data: Dict[str, Any]
    ) -> None:
        """
        Notify the platform of a game event.

        Args:
            event_type: The type of event that occurred
            data: Data associated with the event
        """
        pass

    async def handle_timeout(
        self, player_id: str, player_name: str, valid_actions: ValidActions
    ) -> ActionChoice:
        """
        Choose the default action when a player times out.

        Drawing is preferred, then discarding, then the first valid option.
        """
        for action in (ChukrumAction.DRAW, ChukrumAction.DISCARD):
            if action in valid_actions:
                return ActionChoice(action, valid_actions[action][0])
        for action, options in valid_actions.items():
            if action != ChukrumAction.MATCH and options:
                return ActionChoice(action, options[0])
        raise ValueError("No valid actions available.")

    # The following methods have default implementations but can be overridden

    async def initialize(self) -> None:
        """
        Initialize the adapter.

        This method is called when the adapter is first connected to the engine.
        It can be used to set up resources, connections, etc.
        """
        pass

    async def shutdown(self) -> None:
        """
        Shutdown the adapter.

        This method is called when the engine is shutting down. It can be used
        to clean up resources, close connections, etc.
        """
        pass
