"""
The shared game record two peers cooperate on.

One record represents one round (and, across ``start_next_round``, one
series). Cards are stored by their wire code so the record can live in any
JSON document store.
"""

from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Dict, List, Optional
import time
import uuid

from chukrum.common.card import Card
from chukrum.common.constants import calculate_score


class RecordStatus(Enum):
    PLAYING = "playing"
    FINAL_ROUND = "final_round"
    ENDED = "ended"
    ABANDONED = "abandoned"

    @property
    def is_live(self) -> bool:
        return self in (RecordStatus.PLAYING, RecordStatus.FINAL_ROUND)


HOST = "host"
GUEST = "guest"

# Fields made of cards; everything else is JSON-native
CARD_LIST_FIELDS = ("host_hand", "guest_hand", "deck", "discard_pile")


@dataclass(frozen=True)
class ChatMessage:
    sender: str
    text: str
    timestamp: float
    sender_name: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sender": self.sender,
            "sender_name": self.sender_name,
            "text": self.text,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChatMessage":
        return cls(
            sender=data["sender"],
            text=data["text"],
            timestamp=data["timestamp"],
            sender_name=data.get("sender_name", ""),
        )


@dataclass
class SharedGameRecord:
    """
    One shared round between a host and a guest.

    Attributes:
        record_id: Store key; assigned by the store on create
        version: Incremented by the store on every write
        host_id / guest_id: Player identities
        host_hand / guest_hand: Hands in position order
        deck: Draw pile, top card last
        discard_pile: Discard pile, top card last
        status: Round lifecycle status
        current_turn: Player id of the turn owner
        first_turn: Player id that started this round
        chukrum_caller: Player id that called Chukrum, if any
        match_number: Round number inside the series
        target_score: Series target; None for a single round
        host_cumulative_score / guest_cumulative_score: Series totals
        cumulative_score_applied: Guard so a round is added to the totals once
        host_heartbeat / guest_heartbeat: Last liveness timestamps
        chat_log: Append-only chat messages
        last_action: ``{"by": player_id, "text": description}``
        rematch_requested_by / rematch_record_id / rematch_accepted: Rematch
            handshake
        abandoned_by: Player id that left
        queen_peek / hand_size: Round rules for this record
        created_at: Creation timestamp
    """

    record_id: str = ""
    version: int = 0
    host_id: str = ""
    guest_id: str = ""
    host_name: str = "Host"
    guest_name: str = "Guest"
    host_hand: List[Card] = field(default_factory=list)
    guest_hand: List[Card] = field(default_factory=list)
    deck: List[Card] = field(default_factory=list)
    discard_pile: List[Card] = field(default_factory=list)
    status: RecordStatus = RecordStatus.PLAYING
    current_turn: str = ""
    first_turn: str = ""
    chukrum_caller: Optional[str] = None
    match_number: int = 1
    target_score: Optional[int] = None
    host_cumulative_score: int = 0
    guest_cumulative_score: int = 0
    cumulative_score_applied: bool = False
    host_heartbeat: Optional[float] = None
    guest_heartbeat: Optional[float] = None
    chat_log: List[ChatMessage] = field(default_factory=list)
    last_action: Optional[Dict[str, str]] = None
    rematch_requested_by: Optional[str] = None
    rematch_record_id: Optional[str] = None
    rematch_accepted: bool = False
    abandoned_by: Optional[str] = None
    queen_peek: str = "either"
    hand_size: int = 4
    created_at: float = field(default_factory=time.time)

    # Seats

    def seat_of(self, player_id: str) -> str:
        if player_id == self.host_id:
            return HOST
        if player_id == self.guest_id:
            return GUEST
        raise ValueError(f"Player {player_id} is not part of record {self.record_id}")

    def opponent_id(self, player_id: str) -> str:
        return self.guest_id if self.seat_of(player_id) == HOST else self.host_id

    def hand_of(self, player_id: str) -> List[Card]:
        return self.host_hand if self.seat_of(player_id) == HOST else self.guest_hand

    def heartbeat_of(self, player_id: str) -> Optional[float]:
        return self.host_heartbeat if self.seat_of(player_id) == HOST else self.guest_heartbeat

    def cumulative_of(self, player_id: str) -> int:
        if self.seat_of(player_id) == HOST:
            return self.host_cumulative_score
        return self.guest_cumulative_score

    def name_of(self, player_id: str) -> str:
        return self.host_name if self.seat_of(player_id) == HOST else self.guest_name

    @staticmethod
    def field_for(seat: str, suffix: str) -> str:
        """``field_for("host", "hand") == "host_hand"``"""
        return f"{seat}_{suffix}"

    def scores(self) -> Dict[str, int]:
        """Round scores by seat, always recomputed from the hands."""
        return {HOST: calculate_score(self.host_hand), GUEST: calculate_score(self.guest_hand)}

    def card_count(self) -> int:
        return (
            len(self.host_hand)
            + len(self.guest_hand)
            + len(self.deck)
            + len(self.discard_pile)
        )

    # Serialization

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-compatible document with card wire codes."""
        data: Dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if f.name in CARD_LIST_FIELDS:
                value = [card.code for card in value]
            elif f.name == "chat_log":
                value = [message.to_dict() for message in value]
            elif f.name == "status":
                value = value.value
            elif f.name == "last_action" and value is not None:
                value = dict(value)
            data[f.name] = value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SharedGameRecord":
        """Build a record from a stored document; unknown keys are ignored."""
        known = {f.name for f in fields(cls)}
        kwargs: Dict[str, Any] = {}
        for key, value in data.items():
            if key not in known:
                continue
            if key in CARD_LIST_FIELDS:
                value = [Card.from_code(code) for code in value or []]
            elif key == "chat_log":
                value = [ChatMessage.from_dict(m) for m in value or []]
            elif key == "status":
                value = RecordStatus(value)
            kwargs[key] = value
        return cls(**kwargs)


def encode_fields(updates: Dict[str, Any]) -> Dict[str, Any]:
    """Convert a partial update with model values into document values."""
    encoded = {}
    for key, value in updates.items():
        if key in CARD_LIST_FIELDS:
            value = [card.code if isinstance(card, Card) else card for card in value]
        elif key == "chat_log":
            value = [m.to_dict() if isinstance(m, ChatMessage) else m for m in value]
        elif isinstance(value, RecordStatus):
            value = value.value
        encoded[key] = value
    return encoded


def new_record_fields(
    host_id: str,
    guest_id: str,
    deck: List[Card],
    first_turn: str,
    hand_size: int = 4,
    host_name: str = "Host",
    guest_name: str = "Guest",
    target_score: Optional[int] = None,
    queen_peek: str = "either",
    match_number: int = 1,
    host_cumulative_score: int = 0,
    guest_cumulative_score: int = 0,
) -> Dict[str, Any]:
    """
    Deal a fresh round into a document suitable for ``RecordStore.create``.

    The host receives the first ``hand_size`` cards from the top of the deck
    and the guest the next ``hand_size``.
    """
    cards = list(deck)
    host_hand = [cards.pop() for _ in range(hand_size)]
    guest_hand = [cards.pop() for _ in range(hand_size)]
    record = SharedGameRecord(
        record_id="",
        host_id=host_id,
        guest_id=guest_id,
        host_name=host_name,
        guest_name=guest_name,
        host_hand=host_hand,
        guest_hand=guest_hand,
        deck=cards,
        current_turn=first_turn,
        first_turn=first_turn,
        match_number=match_number,
        target_score=target_score,
        host_cumulative_score=host_cumulative_score,
        guest_cumulative_score=guest_cumulative_score,
        queen_peek=queen_peek,
        hand_size=hand_size,
    )
    data = record.to_dict()
    del data["record_id"]
    del data["version"]
    return data


def new_record_id() -> str:
    return uuid.uuid4().hex
