"""
Command-line interface adapter for the Chukrum engine.

This module provides an adapter for console-based play against the bot.
Players type an action name followed by 1-based card positions, for example
``swap 2`` or ``cross_swap 1 3``.
"""

import asyncio
from typing import Dict, Any, List, Optional, Tuple, Union
from enum import Enum

from chukrum.adapters.base import PlatformAdapter, ValidActions
from chukrum.common.io_interface import IOInterface, ConsoleIOInterface
from chukrum.round.actions import ActionChoice, ChukrumAction

# Position arguments each action expects, for the help line
_ARITY = {
    ChukrumAction.DRAW: "",
    ChukrumAction.DISCARD: "",
    ChukrumAction.CHUKRUM: "",
    ChukrumAction.SWAP: " <your card>",
    ChukrumAction.PEEK_OWN: " <your card>",
    ChukrumAction.MATCH: " <your card>",
    ChukrumAction.PEEK_OPPONENT: " <their card>",
    ChukrumAction.CROSS_SWAP: " <your card> <their card>",
}


class CLIAdapter(PlatformAdapter):
    """
    Command-line interface adapter for the Chukrum engine.

    This adapter uses the standard console for input/output, providing a
    simple text-based interface to the game.
    """

    def __init__(self, io_interface: Optional[IOInterface] = None):
        """
        Initialize the CLI adapter.

        Args:
            io_interface: Optional IOInterface to use for I/O. If None, a
                          console IOInterface is used.
        """
        self.io_interface = io_interface or ConsoleIOInterface()

    async def render_game_state(self, state: Dict[str, Any]) -> None:
        """
        Render the current round state to the console.

        Args:
            state: One player's view of the round
        """
        out = self.io_interface.output
        out("\n=== Chukrum ===")
        for player in state.get("players", []):
            cards = "  ".join(
                f"{i + 1}:{card}" for i, card in enumerate(player.get("cards", []))
            )
            label = f"{player.get('name')}{' (you)' if player.get('is_you') else ''}"
            score = player.get("score")
            suffix = f"  = {score}" if score is not None else ""
            out(f"{label}: {cards}{suffix}")

        out(
            f"Discard: {state.get('top_discard') or '-'}   "
            f"Deck: {state.get('deck_remaining', 0)}   "
            f"Turn: {state.get('turn_number', 1)}"
        )
        if state.get("drawn_card"):
            out(f"You drew: {state['drawn_card']}")
        if state.get("chukrum_called") and state.get("phase") != "ENDED":
            out("Final round!")
        if state.get("notice"):
            out(state["notice"])
        out("===============\n")

    async def request_player_action(
        self,
        player_id: str,
        player_name: str,
        valid_actions: ValidActions,
        timeout_seconds: Optional[float] = None,
    ) -> ActionChoice:
        """
        Request an action from a player via the console.

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
        self.io_interface.output(f"\n{player_name}, valid actions:")
        for action in valid_actions:
            self.io_interface.output(f"  {action.value}{_ARITY[action]}")

        loop = asyncio.get_running_loop()
        while True:
            try:
                pending = loop.run_in_executor(None, self.io_interface.input, "> ")
                if timeout_seconds:
                    line = await asyncio.wait_for(pending, timeout_seconds)
                else:
                    line = await pending
            except asyncio.TimeoutError:
                raise TimeoutError(f"Player {player_name} timed out")
            except (KeyboardInterrupt, EOFError):
                raise TimeoutError(f"Player {player_name} cancelled")

            choice = self.parse_choice(line, valid_actions)
            if choice is not None:
                return choice
            self.io_interface.output("Invalid choice. Please try again.")

    @staticmethod
    def parse_choice(line: str, valid_actions: ValidActions) -> Optional[ActionChoice]:
        """
        Parse ``"<action> [positions...]"`` with 1-based positions.

        Action names may be abbreviated to any unique prefix.
        """
        words = line.strip().lower().split()
        if not words:
            return None
        matches = [a for a in valid_actions if a.value.startswith(words[0])]
        exact = [a for a in matches if a.value == words[0]]
        if exact:
            matches = exact
        if len(matches) != 1:
            return None
        try:
            positions: Tuple[int, ...] = tuple(int(w) - 1 for w in words[1:])
        except ValueError:
            return None
        action = matches[0]
        if positions not in valid_actions[action]:
            return None
        return ActionChoice(action, positions)

    async def notify_game_event(
        self, event_type: Union[str, Enum], data: Dict[str, Any]
    ) -> None:
        """
        Notify the user of a game event via the console.

        Args:
            event_type: The type of event that occurred
            data: Data associated with the event
        """
        if isinstance(event_type, Enum):
            event_type = event_type.name

        message = self._format_event_message(event_type, data)
        if message:
            self.io_interface.output(message)

    def _format_event_message(
        self, event_type: str, data: Dict[str, Any]
    ) -> Optional[str]:
        """
        Format an event message based on the event type.

        Returns:
            Formatted message string or None if no message needed
        """
        if event_type == "PLAYER_ACTION":
            return data.get("text")

        elif event_type == "CARD_REVEALED":
            return f"You see card {data.get('position', 0) + 1}: {data.get('card')}"

        elif event_type == "MATCH_DISCARD":
            return f"Match! {data.get('card')} goes to the discard pile"

        elif event_type == "PENALTY_CARD":
            return "Wrong match, penalty card added"

        elif event_type == "CHUKRUM_CALLED":
            return f"{data.get('player_name', 'Someone')} called CHUKRUM!"

        elif event_type == "HAND_SHUFFLED":
            return "Your cards have been shuffled!"

        elif event_type == "ROUND_ENDED":
            scores: List[int] = data.get("scores", [])
            return f"Round over. Scores: {' / '.join(str(s) for s in scores)}"

        return None
