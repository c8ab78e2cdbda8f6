"""
Single-player Chukrum engine.

This module provides the SoloEngine class, which pits a human seat against
the scripted opponent. The opponent's moves run as deferred asyncio tasks
after a thinking delay. A task only applies its move if the round and the
in-flight token stored on the round state still match; anything else is
discarded.
"""

from dataclasses import replace
from typing import Any, Callable, Dict, List, Optional, Set, Tuple
import asyncio
import logging
import random
import time
import uuid

from chukrum.adapters import PlatformAdapter
from chukrum.bot import OpponentStrategy, get_profile
from chukrum.engine.base import ChukrumEngine
from chukrum.events import EngineEventType
from chukrum.round import (
    ActionChoice,
    ChukrumAction,
    PlayerState,
    Power,
    QueenPeekRule,
    ReadyToResolve,
    RoundRules,
    RoundState,
    StateTransitionEngine,
    apply_action,
    valid_actions,
)

logger = logging.getLogger(__name__)

# Events that reveal private information about the bot seat
_PRIVATE_EVENTS = {"CARD_DRAWN", "CARD_REVEALED"}


class SoloEngine(ChukrumEngine):
    """
    Engine for one human against the bot.

    The human always sits at index 0, the bot at index 1.
    """

    HUMAN = 0
    BOT = 1

    def __init__(self, adapter: PlatformAdapter, config: Dict[str, Any] = None):
        """
        Initialize the single-player engine.

        Args:
            adapter: Platform adapter to use for rendering and input
            config: Configuration options for the game
        """
        super().__init__(adapter, config)

        # Apply default configuration
        default_config = {
            "difficulty": "normal",
            "think_delay": 1.0,  # seconds before the bot moves
            "jack_reveal_delay": 2.0,  # seconds a Jack peek stays visible
            "hand_size": 4,
            "queen_peek": "own_only",  # or "either"
            "final_round_turns": 2,
            "seed": None,
            "player_name": "You",
            "bot_name": "Bot",
            "action_timeout": None,
        }

        # Merge with provided config
        if config:
            default_config.update(config)

        self.config = default_config

        self.rng = random.Random(self.config["seed"])
        self.rules = RoundRules(
            hand_size=self.config["hand_size"],
            queen_peek=QueenPeekRule(self.config["queen_peek"]),
            final_round_turns=self.config["final_round_turns"],
            match_discard_any_turn=True,
        )
        self.profile = get_profile(self.config["difficulty"])
        self.strategy = OpponentStrategy(
            player_index=self.BOT, profile=self.profile, rng=self.rng
        )
        self.players = (
            PlayerState(name=self.config["player_name"]),
            PlayerState(name=self.config["bot_name"], is_bot=True),
        )

        self.rounds_played = 0
        self._next_starter: Optional[int] = None
        self._tasks: Set[asyncio.Task] = set()
        self._jack_token: Optional[str] = None
        self._pending_events: List[Tuple[str, Dict[str, Any]]] = []
        self._unsubscribe: Optional[Callable] = None
        self._changed = asyncio.Event()

    @property
    def human_id(self) -> str:
        return self.players[self.HUMAN].id

    async def initialize(self) -> None:
        """
        Initialize the engine and prepare for a game.
        """
        await super().initialize()

        self._unsubscribe = self.event_bus.on_any(self._collect_event)

        self.event_bus.emit(
            EngineEventType.ENGINE_INIT,
            {
                "engine_type": "solo",
                "config": self.config,
                "timestamp": time.time(),
            },
        )

    async def shutdown(self) -> None:
        """
        Shut down the engine and clean up resources.
        """
        self.cancel_pending()

        self.event_bus.emit(EngineEventType.ENGINE_SHUTDOWN, {"timestamp": time.time()})

        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None

        await super().shutdown()

    def _collect_event(self, payload) -> None:
        event_type, data = payload
        if event_type in _PRIVATE_EVENTS and data.get("player_index", data.get("viewer")) != self.HUMAN:
            return
        self._pending_events.append((event_type, data))

    def cancel_pending(self) -> None:
        """Cancel every deferred action; their effects are never applied."""
        for task in list(self._tasks):
            task.cancel()
        self._tasks.clear()
        self._jack_token = None

    async def start_round(self) -> None:
        """
        Shuffle, deal and start a new round.

        Pending deferred actions from the previous round are cancelled.
        """
        self.cancel_pending()
        self.strategy.new_round()

        if self._next_starter is None:
            starter = self.BOT if self.profile.moves_first else self.HUMAN
        else:
            starter = self._next_starter
        self._next_starter = 1 - starter

        self.state = StateTransitionEngine.new_round(
            self.players, rules=self.rules, starting_index=starter, rng=self.rng
        )
        self.rounds_played += 1

        await self._after_change()

    async def start_game(self) -> None:
        await self.start_round()

    # Human operations

    async def draw(self) -> bool:
        return await self._apply_human(ChukrumAction.DRAW)

    async def discard(self) -> bool:
        return await self._apply_human(ChukrumAction.DISCARD)

    async def swap(self, position: int) -> bool:
        return await self._apply_human(ChukrumAction.SWAP, position)

    async def peek_own(self, position: int) -> bool:
        return await self._apply_human(ChukrumAction.PEEK_OWN, position)

    async def peek_opponent(self, position: int) -> bool:
        return await self._apply_human(ChukrumAction.PEEK_OPPONENT, position)

    async def cross_swap(self, own_position: int, opponent_position: int) -> bool:
        return await self._apply_human(
            ChukrumAction.CROSS_SWAP, own_position, opponent_position
        )

    async def match_discard(self, position: int) -> bool:
        return await self._apply_human(ChukrumAction.MATCH, position)

    async def call_chukrum(self) -> bool:
        return await self._apply_human(ChukrumAction.CHUKRUM)

    async def apply_choice(self, choice: ActionChoice) -> bool:
        return await self._apply_human(choice.action, *choice.positions)

    async def execute_player_action(self, player_id: str, action, **kwargs) -> bool:
        """
        Execute a player action by name.

        Args:
            player_id: ID of the player; must be the human seat
            action: A ``ChukrumAction`` or its name
            **kwargs: ``positions`` (tuple), or ``position``, or
                ``own_position`` and ``opponent_position``

        Returns:
            True if the action was applied
        """
        if player_id != self.human_id:
            raise ValueError(f"Player {player_id} not found")

        if not isinstance(action, ChukrumAction):
            try:
                action = ChukrumAction(str(action).lower())
            except ValueError:
                raise ValueError(f"Unknown action: {action}")

        if "positions" in kwargs:
            positions = tuple(kwargs["positions"])
        elif "own_position" in kwargs or "opponent_position" in kwargs:
            positions = (kwargs.get("own_position"), kwargs.get("opponent_position"))
        elif "position" in kwargs:
            positions = (kwargs["position"],)
        else:
            positions = ()

        return await self._apply_human(action, *positions)

    async def _apply_human(self, action: ChukrumAction, *args) -> bool:
        if self.state is None:
            raise ValueError("No round in progress")

        new_state = apply_action(self.state, self.HUMAN, action, *args)
        if new_state is self.state:
            self.state = replace(
                self.state, notice=f"You can't {action.value.replace('_', ' ')} right now"
            )
            await self.render_state()
            return False

        # An explicit move supersedes a pending automatic Jack discard
        if self._jack_token and new_state.action_token == self._jack_token:
            new_state = StateTransitionEngine.release_action_token(
                new_state, self._jack_token
            )
            self._jack_token = None

        self.state = new_state

        special = self.state.special_action
        if (
            isinstance(special, ReadyToResolve)
            and special.power == Power.JACK
            and self.state.current_player_index == self.HUMAN
        ):
            self._jack_token = self._schedule(
                lambda s: StateTransitionEngine.discard(s, self.HUMAN),
                self.config["jack_reveal_delay"],
            )

        await self._after_change()
        return True

    # Deferred actions

    def _schedule(self, action: Callable[[RoundState], RoundState], delay: float) -> Optional[str]:
        """
        Run ``action`` on the then-current state after ``delay`` seconds.

        Returns the in-flight token, or None if another action is pending.
        """
        token = uuid.uuid4().hex
        claimed = StateTransitionEngine.claim_action_token(self.state, token)
        if claimed is self.state:
            logger.debug("Deferred action refused: another one is in flight")
            return None
        self.state = claimed

        task = asyncio.create_task(self._run_deferred(token, claimed.id, delay, action))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return token

    async def _run_deferred(
        self, token: str, round_id: str, delay: float, action: Callable
    ) -> None:
        await asyncio.sleep(delay)
        if (
            self.state is None
            or self.state.id != round_id
            or self.state.action_token != token
        ):
            logger.debug(f"Discarding stale deferred action {token}")
            return

        if token == self._jack_token:
            self._jack_token = None
        state = StateTransitionEngine.release_action_token(self.state, token)
        self.state = action(state)
        await self._after_change()

    def _schedule_bot_turn(self) -> Optional[str]:
        return self._schedule(self.strategy.take_turn, self.config["think_delay"])

    async def _after_change(self) -> None:
        """Let the bot observe and react, render, then schedule its turn."""
        self.strategy.observe(self.state)
        while True:
            reacted = self.strategy.react(self.state)
            if reacted is self.state:
                break
            self.state = reacted

        await self.render_state()

        if (
            not self.state.is_ended
            and self.state.current_player_index == self.BOT
            and self.state.action_token is None
        ):
            self._schedule_bot_turn()

        self._changed.set()

    async def wait_for_change(self, timeout: Optional[float] = None) -> None:
        self._changed.clear()
        if timeout is None:
            await self._changed.wait()
        else:
            await asyncio.wait_for(self._changed.wait(), timeout)

    async def render_state(self) -> None:
        """
        Forward collected events, then render the human's view of the round.
        """
        events, self._pending_events = self._pending_events, []
        for event_type, data in events:
            await self.adapter.notify_game_event(event_type, data)
        if self.state is not None:
            await self.adapter.render_game_state(self.state.to_adapter_format(self.HUMAN))

    def get_valid_actions(self, player_id: str):
        if player_id != self.human_id or self.state is None:
            return {}
        return valid_actions(self.state, self.HUMAN)

    async def play_round(self) -> RoundState:
        """
        Play one full round, asking the adapter for every human decision.

        Returns:
            The ended round state
        """
        await self.start_round()
        name = self.players[self.HUMAN].name
        while not self.state.is_ended:
            if (
                self.state.current_player_index != self.HUMAN
                or self.state.action_token is not None
            ):
                await self.wait_for_change()
                continue

            actions = valid_actions(self.state, self.HUMAN)
            try:
                choice = await self.adapter.request_player_action(
                    self.human_id, name, actions, self.config["action_timeout"]
                )
            except TimeoutError:
                choice = await self.adapter.handle_timeout(self.human_id, name, actions)
            await self.apply_choice(choice)

        logger.info(f"Round {self.state.id} finished: {self.state.result}")
        return self.state
