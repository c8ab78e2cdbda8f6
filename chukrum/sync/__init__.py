"""
Two-player Chukrum over a shared record.

Both peers run the same round transitions locally and cooperate on one
versioned record in a store; there is no authoritative server.
"""

from chukrum.sync.record import (
    SharedGameRecord as SharedGameRecord,
    RecordStatus as RecordStatus,
    ChatMessage as ChatMessage,
    new_record_fields as new_record_fields,
)
from chukrum.sync.store import (
    RecordStore as RecordStore,
    InMemoryRecordStore as InMemoryRecordStore,
    SQLiteRecordStore as SQLiteRecordStore,
    VersionConflictError as VersionConflictError,
    RecordNotFoundError as RecordNotFoundError,
    write_with_retry as write_with_retry,
)
from chukrum.sync.client import (
    PeerClient as PeerClient,
    TurnContext as TurnContext,
    SeriesOutcome as SeriesOutcome,
    series_outcome as series_outcome,
    host_game as host_game,
)

__all__ = [
    "SharedGameRecord",
    "RecordStatus",
    "ChatMessage",
    "new_record_fields",
    "RecordStore",
    "InMemoryRecordStore",
    "SQLiteRecordStore",
    "VersionConflictError",
    "RecordNotFoundError",
    "write_with_retry",
    "PeerClient",
    "TurnContext",
    "SeriesOutcome",
    "series_outcome",
    "host_game",
]
