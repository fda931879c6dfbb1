"""SQLite store for reassembling concatenated SMS and tracking message references."""

from __future__ import annotations

import contextlib
import sqlite3
import threading
from typing import Iterator, Optional, Tuple

MAX_DB_FIELD = 256
SMSDB_PAYLOAD_MAX_LEN = 4096
SMSDB_DST_MAX_LEN = 256

_SCHEMA = (
    "CREATE TABLE IF NOT EXISTS incoming (key VARCHAR(256), seqorder INTEGER, "
    "expiration TIMESTAMP DEFAULT CURRENT_TIMESTAMP, message VARCHAR(256), "
    "PRIMARY KEY(key, seqorder))",
    "CREATE INDEX IF NOT EXISTS incoming_key ON incoming(key)",
    "CREATE TABLE IF NOT EXISTS outgoing_ref (key VARCHAR(256), refid INTEGER, PRIMARY KEY(key))",
    "CREATE TABLE IF NOT EXISTS outgoing_msg (dev VARCHAR(256), dst VARCHAR(255), cnt INTEGER, "
    "expiration TIMESTAMP, srr BOOLEAN, payload BLOB)",
    "CREATE TABLE IF NOT EXISTS outgoing_part (key VARCHAR(256), msg INTEGER, status INTEGER, "
    "PRIMARY KEY(key))",
    "CREATE INDEX IF NOT EXISTS outgoing_part_msg ON outgoing_part(msg)",
)

_PUT_MESSAGE = (
    "INSERT OR REPLACE INTO incoming (key, seqorder, expiration, message) "
    "VALUES (?, ?, datetime(julianday(CURRENT_TIMESTAMP) + ? / 86400.0), ?)"
)
_GET_COUNT = "SELECT COUNT(seqorder) FROM incoming WHERE key = ?"
_GET_FULL_MESSAGE = "SELECT message FROM incoming WHERE key = ? ORDER BY seqorder"
_CLEAR_MESSAGES = "DELETE FROM incoming WHERE key = ?"
_GET_REFID = "SELECT refid FROM outgoing_ref WHERE key = ?"
_INSERT_REFID = "INSERT INTO outgoing_ref (refid, key) VALUES (?, ?)"
_UPDATE_REFID = "UPDATE outgoing_ref SET refid = ? WHERE key = ?"


class SmsDbError(Exception):
    """Raised when the SMS database cannot be used as asked."""


def make_key(*fields: object) -> str:
    """Join ``fields`` with '/' into a database key, enforcing the field size limit."""
    key = "/".join(str(f) for f in fields)
    if len(key) > MAX_DB_FIELD:
        raise SmsDbError(f"Key length must be less than {MAX_DB_FIELD + 1} bytes")
    return key


class SmsDb:
    """SMS database holding incoming parts and outgoing message state."""

    def __init__(self, path: str, csms_ttl: int) -> None:
        self.csms_ttl = csms_ttl
        self._lock = threading.RLock()
        self._conn: Optional[sqlite3.Connection] = None
        try:
            conn = sqlite3.connect(path, isolation_level=None, check_same_thread=False)
        except sqlite3.Error as exc:
            raise SmsDbError(f"Unable to open database {path!r}: {exc}") from exc
        try:
            for sql in _SCHEMA:
                conn.execute(sql)
        except sqlite3.Error as exc:
            conn.close()
            raise SmsDbError(f"Couldn't create smsdb tables: {exc}") from exc
        self._conn = conn

    @property
    def connection(self) -> sqlite3.Connection:
        """The open SQLite connection."""
        if self._conn is None:
            raise SmsDbError("database is closed")
        return self._conn

    @contextlib.contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Hold the database lock inside one transaction.

        Commits when the block ends normally and rolls back when it raises;
        SQLite errors leave it as SmsDbError.
        """
        with self._lock:
            conn = self.connection
            try:
                conn.execute("BEGIN TRANSACTION")
            except sqlite3.Error as exc:
                raise SmsDbError(f"Couldn't begin transaction: {exc}") from exc
            try:
                yield conn
            except BaseException as exc:
                with contextlib.suppress(sqlite3.Error):
                    conn.execute("ROLLBACK")
                if isinstance(exc, sqlite3.Error):
                    raise SmsDbError(str(exc)) from exc
                raise
            else:
                try:
                    conn.execute("COMMIT")
                except sqlite3.Error as exc:
                    raise SmsDbError(f"Couldn't commit transaction: {exc}") from exc

    def put(
        self, dev: str, addr: str, ref: int, parts: int, order: int, msg: str
    ) -> Tuple[int, Optional[str]]:
        """Store one part of a concatenated message.

        Returns the number of parts stored so far and, once all ``parts``
        are present, the whole message (the parts are then removed).
        """
        key = make_key(dev, addr, ref, parts)
        with self.transaction() as conn:
            conn.execute(_PUT_MESSAGE, (key, order, self.csms_ttl, msg))
            row = conn.execute(_GET_COUNT, (key,)).fetchone()
            count = row[0] if row else 0
            if count != parts:
                return count, None
            text = "".join(r[0] for r in conn.execute(_GET_FULL_MESSAGE, (key,)))
            conn.execute(_CLEAR_MESSAGES, (key,))
            return count, text

    def get_refid(self, dev: str, addr: str) -> int:
        """Return the next message reference (0..255) for ``dev`` and ``addr``."""
        key = make_key(dev, addr)
        with self.transaction() as conn:
            row = conn.execute(_GET_REFID, (key,)).fetchone()
            if row is None:
                current, statement = 255, _INSERT_REFID
            else:
                current, statement = row[0], _UPDATE_REFID
            refid = current + 1
            if refid >= 256:
                refid = 0
            conn.execute(statement, (refid, key))
            return refid

    def close(self) -> None:
        """Close the database; further use raises SmsDbError."""
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    def __enter__(self) -> "SmsDb":
        return self

    def __exit__(self, *args: object) -> None:
        self.close()