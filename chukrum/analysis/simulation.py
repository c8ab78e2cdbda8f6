"""
Headless bot-vs-bot rounds.

Two scripted opponents play each other straight through the transition
engine, without delays or adapters. Used to compare difficulty tiers.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
import logging
import random
import time

from chukrum.analysis.statistics import score_summary, win_rate
from chukrum.bot import OpponentStrategy, get_profile
from chukrum.events import EventBus, EngineEventType
from chukrum.round import (
    PlayerState,
    RoundRules,
    RoundState,
    StateTransitionEngine,
)

logger = logging.getLogger(__name__)

# A round that runs this long has stalled
MAX_TURNS = 500


@dataclass
class SimulationResult:
    """Outcomes of a batch of simulated rounds, from the first tier's side."""

    first: str
    second: str
    outcomes: List[str] = field(default_factory=list)
    first_scores: List[int] = field(default_factory=list)
    second_scores: List[int] = field(default_factory=list)
    turns: List[int] = field(default_factory=list)
    reasons: Dict[str, int] = field(default_factory=dict)
    stalled: int = 0

    @property
    def rounds(self) -> int:
        return len(self.outcomes)

    def summary(self) -> Dict[str, Any]:
        return {
            "first": self.first,
            "second": self.second,
            "rounds": self.rounds,
            "first_win_rate": win_rate(self.outcomes),
            "first_scores": score_summary(self.first_scores),
            "second_scores": score_summary(self.second_scores),
            "average_turns": sum(self.turns) / len(self.turns) if self.turns else 0.0,
            "end_reasons": dict(self.reasons),
            "stalled": self.stalled,
        }


def play_round(
    strategies: List[OpponentStrategy],
    starting_index: int = 0,
    rng: Optional[random.Random] = None,
    rules: Optional[RoundRules] = None,
) -> RoundState:
    """
    Play one round between two strategies seated at index 0 and 1.

    Returns:
        The ended round state
    """
    players = tuple(
        PlayerState(name=f"{s.profile.difficulty.value}-{i}", is_bot=True)
        for i, s in enumerate(strategies)
    )
    for strategy in strategies:
        strategy.new_round()

    state = StateTransitionEngine.new_round(
        players, rules=rules, starting_index=starting_index, rng=rng
    )

    while not state.is_ended:
        if state.turn_number > MAX_TURNS:
            return StateTransitionEngine.end_round(state, "Turn limit")

        mover = strategies[state.current_player_index]
        before = state
        state = mover.take_turn(state)

        # A turn that could not finish leaves the drawn card in hand
        if not state.is_ended and state.drawn_card is not None:
            state = StateTransitionEngine.discard(state, state.current_player_index)
        if state is before or (
            not state.is_ended
            and state.current_player_index == before.current_player_index
            and state.turn_number == before.turn_number
        ):
            logger.warning(f"Round {state.id} stalled on turn {state.turn_number}")
            return StateTransitionEngine.end_round(state, "Stalled")

        for strategy in strategies:
            strategy.observe(state)
        for strategy in strategies:
            state = strategy.react(state)
            if state.is_ended:
                break

    return state


def simulate(
    first: str = "hard",
    second: str = "normal",
    rounds: int = 100,
    seed: Optional[int] = None,
    rules: Optional[RoundRules] = None,
    progress_every: int = 100,
) -> SimulationResult:
    """
    Play ``rounds`` rounds between two difficulty tiers.

    Seats alternate who starts each round. Emits SIMULATION_PROGRESS every
    ``progress_every`` rounds and SIMULATION_RESULT at the end.
    """
    rng = random.Random(seed)
    strategies = [
        OpponentStrategy(player_index=0, profile=get_profile(first), rng=rng),
        OpponentStrategy(player_index=1, profile=get_profile(second), rng=rng),
    ]
    event_bus = EventBus.get_instance()
    result = SimulationResult(first=first, second=second)
    started = time.time()

    for round_number in range(rounds):
        state = play_round(strategies, starting_index=round_number % 2, rng=rng, rules=rules)
        scores = state.result.scores
        if scores[0] < scores[1]:
            result.outcomes.append("win")
        elif scores[0] > scores[1]:
            result.outcomes.append("loss")
        else:
            result.outcomes.append("tie")
        result.first_scores.append(scores[0])
        result.second_scores.append(scores[1])
        result.turns.append(state.turn_number)
        reason = state.result.reason or "unknown"
        result.reasons[reason] = result.reasons.get(reason, 0) + 1
        if reason in ("Stalled", "Turn limit"):
            result.stalled += 1

        if progress_every and (round_number + 1) % progress_every == 0:
            event_bus.emit(
                EngineEventType.SIMULATION_PROGRESS,
                {"completed": round_number + 1, "total": rounds},
            )

    summary = result.summary()
    logger.info(
        f"Simulated {rounds} rounds {first} vs {second} in {time.time() - started:.2f}s: "
        f"{summary['first_win_rate']['win_rate']:.3f} win rate"
    )
    event_bus.emit(EngineEventType.SIMULATION_RESULT, summary)
    return result
