"""
Record stores for the multiplayer synchronizer.

A store offers atomic partial-field updates, push subscriptions that deliver
the full current record on every change, and create/delete. Each record has
an integer version; a write may name the version it was computed from and is
refused with :class:`VersionConflictError` if the record moved on.
"""

from abc import ABC, abstractmethod
from collections import defaultdict
from typing import Any, Callable, Dict, List, Optional
import copy
import json
import logging
import sqlite3
import threading
import time

from chukrum.sync.record import SharedGameRecord, encode_fields, new_record_id

logger = logging.getLogger(__name__)

Subscriber = Callable[[SharedGameRecord], None]


class VersionConflictError(Exception):
    """The record changed since it was read."""

    pass


class RecordNotFoundError(Exception):
    """No record exists under the given id."""

    pass


class RecordStore(ABC):
    """
    Interface of the remote record store.

    Subscribers are called synchronously after each committed write, outside
    of any store lock.
    """

    def __init__(self):
        self._subscribers: Dict[str, List[Subscriber]] = defaultdict(list)
        self._subscriber_lock = threading.RLock()

    @abstractmethod
    def create(self, fields: Dict[str, Any], record_id: Optional[str] = None) -> str:
        """Create a record and return its id."""
        pass

    @abstractmethod
    def get(self, record_id: str) -> SharedGameRecord:
        """
        Read the current record.

        Raises:
            RecordNotFoundError: If the record does not exist
        """
        pass

    @abstractmethod
    def update(
        self,
        record_id: str,
        fields: Dict[str, Any],
        expected_version: Optional[int] = None,
    ) -> SharedGameRecord:
        """
        Merge ``fields`` into the record atomically.

        Args:
            record_id: Record to update
            fields: Partial update; cards may be Card objects or wire codes
            expected_version: Refuse the write unless the record is still at
                this version

        Returns:
            The record after the write

        Raises:
            RecordNotFoundError: If the record does not exist
            VersionConflictError: If ``expected_version`` is stale
        """
        pass

    @abstractmethod
    def delete(self, record_id: str) -> None:
        pass

    def subscribe(self, record_id: str, callback: Subscriber) -> Callable[[], None]:
        """
        Receive the full record on every change, starting with the current one.

        Returns:
            Unsubscribe function
        """
        with self._subscriber_lock:
            self._subscribers[record_id].append(callback)

        try:
            callback(self.get(record_id))
        except RecordNotFoundError:
            pass

        def unsubscribe():
            with self._subscriber_lock:
                if callback in self._subscribers[record_id]:
                    self._subscribers[record_id].remove(callback)

        return unsubscribe

    def _notify(self, record: SharedGameRecord) -> None:
        with self._subscriber_lock:
            callbacks = list(self._subscribers.get(record.record_id, []))
        for callback in callbacks:
            try:
                callback(copy.deepcopy(record))
            except Exception as e:
                logger.error(
                    f"Error in subscriber for record {record.record_id}: {e}",
                    exc_info=True,
                )


class InMemoryRecordStore(RecordStore):
    """Thread-safe store keeping JSON documents in a dict."""

    def __init__(self):
        super().__init__()
        self._documents: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.RLock()

    def create(self, fields: Dict[str, Any], record_id: Optional[str] = None) -> str:
        record_id = record_id or new_record_id()
        document = SharedGameRecord(record_id=record_id).to_dict()
        document.update(encode_fields(fields))
        document["record_id"] = record_id
        document["version"] = 1
        with self._lock:
            self._documents[record_id] = document
            record = SharedGameRecord.from_dict(copy.deepcopy(document))
        self._notify(record)
        return record_id

    def get(self, record_id: str) -> SharedGameRecord:
        with self._lock:
            document = self._documents.get(record_id)
            if document is None:
                raise RecordNotFoundError(record_id)
            return SharedGameRecord.from_dict(copy.deepcopy(document))

    def update(
        self,
        record_id: str,
        fields: Dict[str, Any],
        expected_version: Optional[int] = None,
    ) -> SharedGameRecord:
        with self._lock:
            document = self._documents.get(record_id)
            if document is None:
                raise RecordNotFoundError(record_id)
            if expected_version is not None and document["version"] != expected_version:
                raise VersionConflictError(
                    f"Record {record_id} is at version {document['version']}, "
                    f"expected {expected_version}"
                )
            document.update(encode_fields(fields))
            document["version"] += 1
            record = SharedGameRecord.from_dict(copy.deepcopy(document))
        self._notify(record)
        return record

    def delete(self, record_id: str) -> None:
        with self._lock:
            self._documents.pop(record_id, None)


SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS records (
    record_id TEXT PRIMARY KEY,
    version INTEGER NOT NULL,
    document TEXT NOT NULL,
    updated_at REAL NOT NULL
);
"""


class SQLiteRecordStore(RecordStore):
    """
    Store records in SQLite, one row per record holding the JSON document.

    The conditional write is a single ``UPDATE ... WHERE version = ?`` so two
    processes sharing one database file cannot both win.
    """

    def __init__(self, db_path: Optional[str] = None):
        """
        Initialize the SQLite record store.

        Args:
            db_path: Optional path to the database file. If None, an
                in-memory database is used.
        """
        super().__init__()
        self.db_path = db_path
        self.conn = sqlite3.connect(
            db_path if db_path else ":memory:", check_same_thread=False
        )
        self.conn.row_factory = sqlite3.Row
        self._lock = threading.RLock()
        self.initialize_database()

    def initialize_database(self) -> None:
        cursor = self.conn.cursor()
        cursor.executescript(SCHEMA_SQL)
        self.conn.commit()

    def close(self) -> None:
        """Close the database connection."""
        if self.conn:
            self.conn.close()

    def _load(self, record_id: str) -> Dict[str, Any]:
        cursor = self.conn.cursor()
        cursor.execute(
            "SELECT version, document FROM records WHERE record_id = ?", (record_id,)
        )
        row = cursor.fetchone()
        if row is None:
            raise RecordNotFoundError(record_id)
        document = json.loads(row["document"])
        document["version"] = row["version"]
        return document

    def create(self, fields: Dict[str, Any], record_id: Optional[str] = None) -> str:
        record_id = record_id or new_record_id()
        document = SharedGameRecord(record_id=record_id).to_dict()
        document.update(encode_fields(fields))
        document["record_id"] = record_id
        document["version"] = 1
        with self._lock:
            self.conn.execute(
                "INSERT INTO records (record_id, version, document, updated_at) "
                "VALUES (?, ?, ?, ?)",
                (record_id, 1, json.dumps(document, ensure_ascii=False), time.time()),
            )
            self.conn.commit()
        self._notify(SharedGameRecord.from_dict(document))
        return record_id

    def get(self, record_id: str) -> SharedGameRecord:
        with self._lock:
            return SharedGameRecord.from_dict(self._load(record_id))

    def update(
        self,
        record_id: str,
        fields: Dict[str, Any],
        expected_version: Optional[int] = None,
    ) -> SharedGameRecord:
        with self._lock:
            document = self._load(record_id)
            current = document["version"]
            if expected_version is not None and current != expected_version:
                raise VersionConflictError(
                    f"Record {record_id} is at version {current}, "
                    f"expected {expected_version}"
                )
            document.update(encode_fields(fields))
            document["version"] = current + 1
            cursor = self.conn.execute(
                "UPDATE records SET version = ?, document = ?, updated_at = ? "
                "WHERE record_id = ? AND version = ?",
                (
                    current + 1,
                    json.dumps(document, ensure_ascii=False),
                    time.time(),
                    record_id,
                    current,
                ),
            )
            self.conn.commit()
            if cursor.rowcount != 1:
                raise VersionConflictError(f"Record {record_id} changed during write")
            record = SharedGameRecord.from_dict(document)
        self._notify(record)
        return record

    def delete(self, record_id: str) -> None:
        with self._lock:
            self.conn.execute("DELETE FROM records WHERE record_id = ?", (record_id,))
            self.conn.commit()


def write_with_retry(
    store: RecordStore,
    record_id: str,
    compute: Callable[[SharedGameRecord], Optional[Dict[str, Any]]],
    max_attempts: int = 5,
) -> Optional[SharedGameRecord]:
    """
    Read, compute a partial update, and write it conditionally.

    On a version conflict the record is re-read and ``compute`` runs again
    against the new version. This is the only retried operation.

    Args:
        store: Record store
        record_id: Record to update
        compute: Returns the fields to write, or None when there is nothing
            to do for the current record
        max_attempts: Attempts before giving up

    Returns:
        The written record, or None if ``compute`` declined

    Raises:
        VersionConflictError: If every attempt conflicted
    """
    for attempt in range(1, max_attempts + 1):
        record = store.get(record_id)
        updates = compute(record)
        if updates is None:
            return None
        try:
            return store.update(record_id, updates, expected_version=record.version)
        except VersionConflictError:
            logger.debug(f"Version conflict on {record_id}, attempt {attempt}")

    logger.warning(f"Giving up on record {record_id} after {max_attempts} conflicts")
    raise VersionConflictError(f"Could not write record {record_id}")
