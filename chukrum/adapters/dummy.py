"""
Dummy adapter for the Chukrum engine, used for testing and simulation.

This module provides a non-interactive adapter that can be used for automated
testing, simulations, and benchmarks where no user interaction is needed.
"""

from typing import List, Dict, Any, Optional, Union
from enum import Enum

from chukrum.adapters.base import PlatformAdapter, ValidActions
from chukrum.round.actions import ActionChoice


class DummyAdapter(PlatformAdapter):
    """
    Dummy adapter for testing and simulation.

    This adapter doesn't interact with any real platform and is designed for
    automated tests, simulations, and benchmarks. It can be configured to
    answer action requests from a script or a strategy function.
    """

    def __init__(
        self,
        auto_actions: Optional[Dict[str, List[ActionChoice]]] = None,
        strategy_function: Optional[callable] = None,
        verbose: bool = False,
    ):
        """
        Initialize the dummy adapter.

        Args:
            auto_actions: Optional dictionary mapping player IDs to lists of
                         choices to make in sequence
            strategy_function: Optional function that takes (player_id, valid_actions)
                              and returns an ActionChoice
            verbose: Whether to print events to stdout (useful for debugging)
        """
        self.auto_actions = auto_actions or {}
        self.strategy_function = strategy_function
        self.verbose = verbose

        # Track action index for each player
        self.action_index = {}

        # Track events for later inspection
        self.events = []

        # Track rendered states for testing
        self.rendered_states = []

    async def render_game_state(self, state: Dict[str, Any]) -> None:
        """
        Store the round state for later inspection.

        Args:
            state: The current round state
        """
        self.rendered_states.append(state)

        if self.verbose:
            print("\n=== Round State ===")
            for player in state.get("players", []):
                print(f"{player.get('name')}: {' '.join(player.get('cards', []))}")
            print(f"Discard: {state.get('top_discard')}  Deck: {state.get('deck_remaining')}")
            print("===================\n")

    async def request_player_action(
        self,
        player_id: str,
        player_name: str,
        valid_actions: ValidActions,
        timeout_seconds: Optional[float] = None,
    ) -> ActionChoice:
        """
        Return a predefined choice or select one using the strategy function.

        Args:
            player_id: Unique identifier for the player
            player_name: Display name of the player
            valid_actions: Valid actions mapped to their valid position tuples
            timeout_seconds: Optional timeout (ignored in this adapter)

        Returns:
            A selected action
        """
        if player_id not in self.action_index:
            self.action_index[player_id] = 0

        selected = None

        # If player has predefined actions, use those
        if player_id in self.auto_actions:
            actions_list = self.auto_actions[player_id]
            if self.action_index[player_id] < len(actions_list):
                selected = actions_list[self.action_index[player_id]]
                self.action_index[player_id] += 1

        if selected is None and self.strategy_function:
            selected = self.strategy_function(player_id, valid_actions)

        if selected is None or not self._is_valid(selected, valid_actions):
            selected = await self.handle_timeout(player_id, player_name, valid_actions)

        if self.verbose:
            print(f"Player {player_name} selects {selected}")

        return selected

    @staticmethod
    def _is_valid(choice: ActionChoice, valid_actions: ValidActions) -> bool:
        return tuple(choice.positions) in valid_actions.get(choice.action, [])

    async def notify_game_event(
        self, event_type: Union[str, Enum], data: Dict[str, Any]
    ) -> None:
        """
        Store the event for later inspection.

        Args:
            event_type: The type of event that occurred
            data: Data associated with the event
        """
        event_type_str = event_type.name if isinstance(event_type, Enum) else event_type

        self.events.append((event_type_str, data))

        if self.verbose:
            print(f"Event: {event_type_str}")
            for key, value in data.items():
                print(f"  {key}: {value}")

    def get_events_by_type(self, event_type: Union[str, Enum]) -> List[Dict[str, Any]]:
        """
        Get all events of a specific type.

        Args:
            event_type: The type of events to retrieve

        Returns:
            A list of event data dictionaries
        """
        event_type_str = event_type.name if isinstance(event_type, Enum) else event_type
        return [data for typ, data in self.events if typ == event_type_str]

    def clear(self) -> None:
        """Clear all stored events and states."""
        self.events.clear()
        self.rendered_states.clear()
        self.action_index.clear()
