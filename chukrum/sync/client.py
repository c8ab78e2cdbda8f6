"""
One side of a two-player Chukrum game played over a shared record.

There is no server-side game logic. Each client reads the shared record,
applies the same pure transitions the single-player game uses, and writes
back only the fields that changed. The store broadcasts the merged record to
both clients, and the most recently confirmed record always replaces the
local view.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Set, Tuple
import asyncio
import logging
import random
import time

from chukrum.common.card import Card
from chukrum.common.deck import fresh_shuffled_deck
from chukrum.common.hand import Hand
from chukrum.events import EventBus, EngineEventType
from chukrum.round import (
    ChukrumAction,
    PlayerState,
    QueenPeekRule,
    RoundPhase,
    RoundRules,
    RoundState,
    TurnStep,
    apply_action,
    captured_events,
)
from chukrum.sync.record import (
    GUEST,
    HOST,
    ChatMessage,
    RecordStatus,
    SharedGameRecord,
    new_record_fields,
)
from chukrum.sync.store import (
    RecordNotFoundError,
    RecordStore,
    VersionConflictError,
    write_with_retry,
)

logger = logging.getLogger(__name__)

_PHASE_TO_STATUS = {
    RoundPhase.PLAYING: RecordStatus.PLAYING,
    RoundPhase.FINAL_ROUND: RecordStatus.FINAL_ROUND,
    RoundPhase.ENDED: RecordStatus.ENDED,
}


@dataclass(frozen=True)
class TurnContext:
    """
    The unsynchronised part of the acting player's turn.

    The drawn card, the special power sub-state and peeked cards are private
    to the acting client and never written to the shared record.
    """

    match_number: int = 0
    step: TurnStep = TurnStep.IDLE
    drawn_card: Optional[Card] = None
    special_action: Any = None
    peek_markers: Tuple = ()


@dataclass(frozen=True)
class SeriesOutcome:
    """Series standing once a round's scores are applied."""

    complete: bool
    winner_id: Optional[str]
    totals: Dict[str, int]

    @property
    def is_tie(self) -> bool:
        return self.complete and self.winner_id is None


def series_outcome(record: SharedGameRecord) -> SeriesOutcome:
    """
    Evaluate the series on a record.

    Without a target score the series is the single round. With one, the
    series completes when either cumulative total reaches the target;
    reaching it is a loss, and if both reach it the lower total wins.
    """
    if record.target_score is None:
        scores = record.scores()
        totals = {record.host_id: scores[HOST], record.guest_id: scores[GUEST]}
        complete = record.status == RecordStatus.ENDED
    else:
        totals = {
            record.host_id: record.host_cumulative_score,
            record.guest_id: record.guest_cumulative_score,
        }
        complete = record.cumulative_score_applied and any(
            total >= record.target_score for total in totals.values()
        )

    winner = None
    if complete:
        host_total, guest_total = totals[record.host_id], totals[record.guest_id]
        if host_total < guest_total:
            winner = record.host_id
        elif guest_total < host_total:
            winner = record.guest_id
    return SeriesOutcome(complete=complete, winner_id=winner, totals=totals)


def host_game(
    store: RecordStore,
    host_id: str,
    guest_id: str,
    host_name: str = "Host",
    guest_name: str = "Guest",
    target_score: Optional[int] = None,
    first_turn: Optional[str] = None,
    queen_peek: str = "either",
    hand_size: int = 4,
    rng: Optional[random.Random] = None,
) -> str:
    """
    Shuffle, deal and create a shared record for a new game.

    Returns:
        The id of the new record
    """
    fields = new_record_fields(
        host_id=host_id,
        guest_id=guest_id,
        deck=fresh_shuffled_deck(rng),
        first_turn=first_turn or host_id,
        hand_size=hand_size,
        host_name=host_name,
        guest_name=guest_name,
        target_score=target_score,
        queen_peek=queen_peek,
    )
    record_id = store.create(fields)
    logger.info(f"Created game record {record_id} ({host_name} vs {guest_name})")
    return record_id


class PeerClient:
    """
    A player's connection to one shared game record.

    Example:
        >>> client = PeerClient(store, record_id, "alice")
        >>> client.connect()
        >>> client.draw()
    """

    def __init__(
        self,
        store: RecordStore,
        record_id: str,
        player_id: str,
        config: Dict[str, Any] = None,
        rng: Optional[random.Random] = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize the client.

        Args:
            store: Shared record store
            record_id: Record to play on
            player_id: This client's identity in the record
            config: Configuration options
            rng: Random source for redeals
            clock: Time source for heartbeats and chat
        """
        default_config = {
            "heartbeat_interval": 5.0,
            "disconnect_after": 3,  # missed intervals before the warning
            "max_write_attempts": 5,
        }
        if config:
            default_config.update(config)
        self.config = default_config

        self.store = store
        self.record_id = record_id
        self.player_id = player_id
        self.rng = rng or random.Random()
        self.clock = clock
        self.event_bus = EventBus.get_instance()

        self.record: Optional[SharedGameRecord] = None
        self.context = TurnContext()
        self.notice = ""
        self.peer_warning = False

        self._unsubscribe: Optional[Callable] = None
        self._heartbeat_task: Optional[asyncio.Task] = None
        self._round_results_emitted: Set[Tuple[str, int]] = set()
        self._series_emitted: Set[str] = set()
        self._chat_seen = 0

    # Subscription

    def connect(self) -> None:
        """Subscribe to the record; the current record is delivered at once."""
        if self._unsubscribe is None:
            self._unsubscribe = self.store.subscribe(self.record_id, self.on_record)
        if self.record is None:
            self.on_record(self.store.get(self.record_id))

    def disconnect(self) -> None:
        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None
        self.stop_heartbeat()

    def on_record(self, record: SharedGameRecord) -> None:
        """
        Accept a confirmed broadcast unless it is stale.

        A record for another id, an older match number, or an older version
        of the current match is discarded.
        """
        current = self.record
        if (
            current is not None
            and record.record_id == current.record_id
            and record.version == current.version
        ):
            return

        stale = record.record_id != self.record_id
        if current is not None and not stale:
            stale = record.match_number < current.match_number or (
                record.match_number == current.match_number
                and record.version < current.version
            )
        if stale:
            logger.debug(
                f"Discarding stale record {record.record_id} v{record.version} "
                f"match {record.match_number}"
            )
            self.event_bus.emit(
                EngineEventType.STALE_RECORD_DISCARDED,
                {
                    "record_id": record.record_id,
                    "version": record.version,
                    "match_number": record.match_number,
                },
            )
            return

        self.record = record
        if (
            record.match_number != self.context.match_number
            or record.current_turn != self.player_id
            or not record.status.is_live
        ):
            self.context = TurnContext(match_number=record.match_number)

        self.event_bus.emit(
            EngineEventType.RECORD_UPDATED,
            {
                "record_id": record.record_id,
                "version": record.version,
                "status": record.status.value,
                "current_turn": record.current_turn,
                "match_number": record.match_number,
            },
        )
        self._announce_chat(record)
        self._announce_round_end(record)
        self._settle_round(record)

    def _confirm(self, record: SharedGameRecord) -> None:
        # The broadcast of a nested write may already have delivered a newer version
        current = self.record
        if (
            current is not None
            and record.record_id == current.record_id
            and (record.match_number, record.version)
            < (current.match_number, current.version)
        ):
            return
        self.on_record(record)

    def _settle_round(self, record: SharedGameRecord) -> None:
        if (
            record.status != RecordStatus.ENDED
            or record.target_score is None
            or record.cumulative_score_applied
        ):
            return
        try:
            self.apply_round_result()
        except VersionConflictError:
            # The next broadcast of the ended round tries again
            logger.warning(f"{self.player_id}: could not apply round {record.match_number} scores")

    def _publish(self, events) -> None:
        for event_type, data in events:
            # Each client announces its own round result
            if event_type == EngineEventType.ROUND_ENDED:
                continue
            self.event_bus.emit(event_type, data)

    def _announce_chat(self, record: SharedGameRecord) -> None:
        if len(record.chat_log) < self._chat_seen:
            self._chat_seen = 0
        for message in record.chat_log[self._chat_seen:]:
            self.event_bus.emit(
                EngineEventType.CHAT_MESSAGE,
                {
                    "record_id": record.record_id,
                    "sender": message.sender,
                    "sender_name": message.sender_name,
                    "text": message.text,
                    "timestamp": message.timestamp,
                    "mine": message.sender == self.player_id,
                },
            )
        self._chat_seen = len(record.chat_log)

    def _announce_round_end(self, record: SharedGameRecord) -> None:
        if record.status != RecordStatus.ENDED:
            return

        key = (record.record_id, record.match_number)
        if key not in self._round_results_emitted:
            self._round_results_emitted.add(key)
            scores = record.scores()
            mine = scores[record.seat_of(self.player_id)]
            theirs = scores[record.seat_of(record.opponent_id(self.player_id))]
            if mine < theirs:
                outcome = "win"
            elif mine > theirs:
                outcome = "loss"
            else:
                outcome = "tie"
            logger.info(
                f"Round {record.match_number} of {record.record_id} ended: "
                f"{mine} vs {theirs} ({outcome})"
            )
            # Stats collaborators count one result per client
            self.event_bus.emit(
                EngineEventType.ROUND_ENDED,
                {
                    "round_id": record.record_id,
                    "match_number": record.match_number,
                    "player_id": self.player_id,
                    "player_ids": [record.host_id, record.guest_id],
                    "scores": [scores[HOST], scores[GUEST]],
                    "my_score": mine,
                    "opponent_score": theirs,
                    "outcome": outcome,
                },
            )

        outcome = series_outcome(record)
        if outcome.complete and record.record_id not in self._series_emitted:
            self._series_emitted.add(record.record_id)
            logger.info(f"Series on {record.record_id} complete: winner {outcome.winner_id}")
            self.event_bus.emit(
                EngineEventType.SERIES_ENDED,
                {
                    "record_id": record.record_id,
                    "winner_id": outcome.winner_id,
                    "totals": outcome.totals,
                },
            )

    # Views

    @property
    def seat_index(self) -> int:
        return 0 if self.record.seat_of(self.player_id) == HOST else 1

    @property
    def is_my_turn(self) -> bool:
        return (
            self.record is not None
            and self.record.status.is_live
            and self.record.current_turn == self.player_id
        )

    def round_state(self) -> RoundState:
        """The local round view: the confirmed record plus the turn context."""
        if self.record is None:
            raise RecordNotFoundError(self.record_id)
        return self._state_from(self.record, self.context)

    def _state_from(self, record: SharedGameRecord, context: TurnContext) -> RoundState:
        phase = {
            RecordStatus.PLAYING: RoundPhase.PLAYING,
            RecordStatus.FINAL_ROUND: RoundPhase.FINAL_ROUND,
        }.get(record.status, RoundPhase.ENDED)

        remaining = 0
        if phase == RoundPhase.FINAL_ROUND:
            # The non-caller plays first, then the caller
            remaining = 1 if record.current_turn == record.chukrum_caller else 2

        players = (
            PlayerState(id=record.host_id, name=record.host_name, hand=Hand(record.host_hand)),
            PlayerState(id=record.guest_id, name=record.guest_name, hand=Hand(record.guest_hand)),
        )
        caller = None
        if record.chukrum_caller is not None:
            caller = 0 if record.chukrum_caller == record.host_id else 1

        own_turn = record.current_turn == self.player_id
        return RoundState(
            id=record.record_id,
            players=players,
            deck=tuple(record.deck),
            discard_pile=tuple(record.discard_pile),
            phase=phase,
            step=context.step if own_turn else TurnStep.IDLE,
            current_player_index=0 if record.current_turn == record.host_id else 1,
            drawn_card=context.drawn_card if own_turn else None,
            special_action=context.special_action if own_turn else None,
            peek_markers=context.peek_markers if own_turn else (),
            chukrum_caller_index=caller,
            final_round_turns_remaining=remaining,
            rules=RoundRules(
                hand_size=record.hand_size,
                queen_peek=QueenPeekRule(record.queen_peek),
                final_round_turns=2,
                match_discard_any_turn=False,
            ),
        )

    # Game operations

    def draw(self) -> bool:
        return self._submit(ChukrumAction.DRAW)

    def discard(self) -> bool:
        return self._submit(ChukrumAction.DISCARD)

    def swap(self, position: int) -> bool:
        return self._submit(ChukrumAction.SWAP, position)

    def peek_own(self, position: int) -> bool:
        return self._submit(ChukrumAction.PEEK_OWN, position)

    def peek_opponent(self, position: int) -> bool:
        return self._submit(ChukrumAction.PEEK_OPPONENT, position)

    def cross_swap(self, own_position: int, opponent_position: int) -> bool:
        return self._submit(ChukrumAction.CROSS_SWAP, own_position, opponent_position)

    def match_discard(self, position: int) -> bool:
        return self._submit(ChukrumAction.MATCH, position)

    def call_chukrum(self) -> bool:
        return self._submit(ChukrumAction.CHUKRUM)

    def _submit(self, action: ChukrumAction, *args) -> bool:
        """
        Apply a transition against the freshly read record and write the diff.

        Mutations are only computed while the record names this client as
        the turn owner.

        Returns:
            True if the action was applied
        """
        outcome: Dict[str, Any] = {}
        context = self.context
        seat = None

        def compute(record: SharedGameRecord) -> Optional[Dict[str, Any]]:
            outcome.clear()
            if record.match_number != context.match_number:
                self.notice = "The round has changed"
                return None
            if not record.status.is_live:
                self.notice = "The round is over"
                return None
            if record.current_turn != self.player_id:
                self.notice = "It's not your turn"
                return None

            state = self._state_from(record, context)
            index = 0 if record.seat_of(self.player_id) == HOST else 1
            with captured_events() as events:
                new_state = apply_action(state, index, action, *args)
            outcome["events"] = events
            if new_state is state:
                self.notice = f"You can't {action.value.replace('_', ' ')} right now"
                return None

            outcome["state"] = new_state
            fields = self._diff(record, state, new_state)
            # Private changes (peeks) need no write
            return fields or None

        record = write_with_retry(
            self.store,
            self.record_id,
            compute,
            max_attempts=self.config["max_write_attempts"],
        )
        self._publish(outcome.get("events", []))
        new_state = outcome.get("state")
        if new_state is None:
            logger.debug(f"{self.player_id}: {action.value} not applied ({self.notice})")
            return False

        if record is not None:
            self._confirm(record)
            seat = record.seat_of(self.player_id)

        self.notice = new_state.notice
        own_turn = (
            not new_state.is_ended
            and new_state.players[new_state.current_player_index].id == self.player_id
        )
        if own_turn:
            self.context = TurnContext(
                match_number=context.match_number,
                step=new_state.step,
                drawn_card=new_state.drawn_card,
                special_action=new_state.special_action,
                peek_markers=new_state.peek_markers,
            )
        else:
            self.context = TurnContext(match_number=context.match_number)

        logger.debug(f"{self.player_id} ({seat or 'local'}) applied {action.value}")
        return True

    def _diff(
        self, record: SharedGameRecord, old: RoundState, new: RoundState
    ) -> Dict[str, Any]:
        fields: Dict[str, Any] = {}
        for index, seat in enumerate((HOST, GUEST)):
            if new.players[index].hand != old.players[index].hand:
                fields[SharedGameRecord.field_for(seat, "hand")] = new.players[index].hand.cards
        if new.deck != old.deck:
            fields["deck"] = list(new.deck)
        if new.discard_pile != old.discard_pile:
            fields["discard_pile"] = list(new.discard_pile)

        new_turn = new.players[new.current_player_index].id
        if new_turn != record.current_turn:
            fields["current_turn"] = new_turn

        status = _PHASE_TO_STATUS[new.phase]
        if status != record.status:
            fields["status"] = status
        if new.chukrum_caller_index is not None and record.chukrum_caller is None:
            fields["chukrum_caller"] = new.players[new.chukrum_caller_index].id

        if fields and new.last_action is not None and new.last_action is not old.last_action:
            fields["last_action"] = {"by": self.player_id, "text": new.last_action.text}
        return fields

    # Liveness

    def send_heartbeat(self, now: Optional[float] = None) -> None:
        """Write this client's heartbeat field."""
        seat = self.record.seat_of(self.player_id) if self.record else self.store.get(
            self.record_id
        ).seat_of(self.player_id)
        self.store.update(
            self.record_id,
            {SharedGameRecord.field_for(seat, "heartbeat"): now if now is not None else self.clock()},
        )

    async def run_heartbeat(self) -> None:
        """Send a heartbeat every ``heartbeat_interval`` seconds until cancelled."""
        while True:
            try:
                self.send_heartbeat()
                self.peer_disconnected()
            except RecordNotFoundError:
                logger.warning(f"Record {self.record_id} disappeared; stopping heartbeat")
                return
            await asyncio.sleep(self.config["heartbeat_interval"])

    def start_heartbeat(self) -> asyncio.Task:
        if self._heartbeat_task is None or self._heartbeat_task.done():
            self._heartbeat_task = asyncio.create_task(self.run_heartbeat())
        return self._heartbeat_task

    def stop_heartbeat(self) -> None:
        if self._heartbeat_task is not None:
            self._heartbeat_task.cancel()
            self._heartbeat_task = None

    def peer_disconnected(self, now: Optional[float] = None) -> bool:
        """
        Whether the peer looks disconnected. A soft warning only.

        True while the round is live and the peer's heartbeat (or the record
        creation time, if the peer never sent one) is older than
        ``disconnect_after`` heartbeat intervals.
        """
        record = self.record
        if record is None or not record.status.is_live:
            self.peer_warning = False
            return False

        now = now if now is not None else self.clock()
        peer = record.opponent_id(self.player_id)
        last_seen = record.heartbeat_of(peer)
        if last_seen is None:
            last_seen = record.created_at
        threshold = self.config["heartbeat_interval"] * self.config["disconnect_after"]
        disconnected = now - last_seen > threshold

        if disconnected and not self.peer_warning:
            logger.warning(
                f"Peer {peer} silent for {now - last_seen:.1f}s on {record.record_id}"
            )
            self.event_bus.emit(
                EngineEventType.PEER_DISCONNECTED,
                {"record_id": record.record_id, "peer_id": peer, "silent_for": now - last_seen},
            )
        self.peer_warning = disconnected
        return disconnected

    # Round and series lifecycle

    def apply_round_result(self) -> bool:
        """
        Add the ended round's scores to the cumulative totals, exactly once.

        Returns:
            True if this call applied the scores
        """

        def compute(record: SharedGameRecord) -> Optional[Dict[str, Any]]:
            if record.status != RecordStatus.ENDED or record.cumulative_score_applied:
                return None
            scores = record.scores()
            return {
                "host_cumulative_score": record.host_cumulative_score + scores[HOST],
                "guest_cumulative_score": record.guest_cumulative_score + scores[GUEST],
                "cumulative_score_applied": True,
            }

        record = write_with_retry(
            self.store, self.record_id, compute, self.config["max_write_attempts"]
        )
        if record is None:
            return False
        self._confirm(record)
        return True

    def series_outcome(self) -> SeriesOutcome:
        return series_outcome(self.record or self.store.get(self.record_id))

    def start_next_round(self) -> bool:
        """
        Redeal into the same record if the series is still running.

        The side that did not start the previous round starts this one.
        """
        expected_match = self.record.match_number if self.record else None

        def compute(record: SharedGameRecord) -> Optional[Dict[str, Any]]:
            if record.status != RecordStatus.ENDED or not record.cumulative_score_applied:
                return None
            if record.target_score is None or series_outcome(record).complete:
                return None
            if expected_match is not None and record.match_number != expected_match:
                return None
            first = record.guest_id if record.first_turn == record.host_id else record.host_id
            dealt = new_record_fields(
                host_id=record.host_id,
                guest_id=record.guest_id,
                deck=fresh_shuffled_deck(self.rng),
                first_turn=first,
                hand_size=record.hand_size,
            )
            return {
                "host_hand": dealt["host_hand"],
                "guest_hand": dealt["guest_hand"],
                "deck": dealt["deck"],
                "discard_pile": [],
                "status": RecordStatus.PLAYING,
                "current_turn": first,
                "first_turn": first,
                "chukrum_caller": None,
                "match_number": record.match_number + 1,
                "cumulative_score_applied": False,
                "last_action": None,
                "rematch_requested_by": None,
                "rematch_record_id": None,
                "rematch_accepted": False,
            }

        record = write_with_retry(
            self.store, self.record_id, compute, self.config["max_write_attempts"]
        )
        if record is None:
            return False
        logger.info(f"Round {record.match_number} dealt on {record.record_id}")
        self._confirm(record)
        return True

    def _rematch_allowed(self, record: SharedGameRecord) -> bool:
        if record.status != RecordStatus.ENDED:
            return False
        return record.target_score is None or series_outcome(record).complete

    def request_rematch(self) -> bool:
        def compute(record: SharedGameRecord) -> Optional[Dict[str, Any]]:
            if not self._rematch_allowed(record) or record.rematch_requested_by:
                return None
            return {"rematch_requested_by": self.player_id}

        record = write_with_retry(
            self.store, self.record_id, compute, self.config["max_write_attempts"]
        )
        if record is None:
            return False
        self.event_bus.emit(
            EngineEventType.REMATCH_REQUESTED,
            {"record_id": self.record_id, "player_id": self.player_id},
        )
        self._confirm(record)
        return True

    def accept_rematch(self) -> Optional[str]:
        """
        Accept the peer's rematch request by creating a fresh record.

        Returns:
            The new record id, or None if there was nothing to accept
        """
        current = self.store.get(self.record_id)
        if (
            not self._rematch_allowed(current)
            or current.rematch_requested_by != current.opponent_id(self.player_id)
            or current.rematch_record_id
        ):
            return None

        first = current.guest_id if current.first_turn == current.host_id else current.host_id
        new_id = self.store.create(
            new_record_fields(
                host_id=current.host_id,
                guest_id=current.guest_id,
                deck=fresh_shuffled_deck(self.rng),
                first_turn=first,
                hand_size=current.hand_size,
                host_name=current.host_name,
                guest_name=current.guest_name,
                target_score=current.target_score,
                queen_peek=current.queen_peek,
            )
        )

        def compute(record: SharedGameRecord) -> Optional[Dict[str, Any]]:
            if record.rematch_record_id:
                return None
            return {"rematch_record_id": new_id, "rematch_accepted": True}

        record = write_with_retry(
            self.store, self.record_id, compute, self.config["max_write_attempts"]
        )
        if record is None:
            self.store.delete(new_id)
            return None

        self.event_bus.emit(
            EngineEventType.REMATCH_ACCEPTED,
            {"record_id": self.record_id, "rematch_record_id": new_id},
        )
        self._confirm(record)
        return new_id

    def follow_rematch(self) -> bool:
        """Move this client to the accepted rematch record."""
        record = self.record
        if record is None or not (record.rematch_accepted and record.rematch_record_id):
            return False

        self.disconnect()
        self.record_id = record.rematch_record_id
        self.record = None
        self.context = TurnContext()
        self.peer_warning = False
        self._chat_seen = 0
        self.connect()
        return True

    # Chat

    def send_chat(self, text: str, sender_name: str = "") -> bool:
        """
        Append a chat message. Blank messages are ignored.

        Timestamps from one sender always increase.
        """
        text = (text or "").strip()
        if not text:
            return False

        def compute(record: SharedGameRecord) -> Optional[Dict[str, Any]]:
            timestamp = self.clock()
            own = [m.timestamp for m in record.chat_log if m.sender == self.player_id]
            if own and timestamp <= own[-1]:
                timestamp = own[-1] + 0.001
            message = ChatMessage(
                sender=self.player_id,
                sender_name=sender_name or record.name_of(self.player_id),
                text=text,
                timestamp=timestamp,
            )
            return {"chat_log": record.chat_log + [message]}

        record = write_with_retry(
            self.store, self.record_id, compute, self.config["max_write_attempts"]
        )
        if record is not None:
            self._confirm(record)
        return record is not None

    # Leaving

    def leave(self) -> None:
        """
        Leave the game. A live round is marked abandoned; nothing is rolled back.
        """

        def compute(record: SharedGameRecord) -> Optional[Dict[str, Any]]:
            if not record.status.is_live:
                return None
            return {"status": RecordStatus.ABANDONED, "abandoned_by": self.player_id}

        try:
            record = write_with_retry(
                self.store, self.record_id, compute, self.config["max_write_attempts"]
            )
            if record is not None:
                logger.info(f"{self.player_id} abandoned {self.record_id}")
                self._confirm(record)
        finally:
            self.disconnect()
