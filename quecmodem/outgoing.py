"""Tracking of outgoing SMS parts and their delivery reports."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from typing import Optional, Tuple

from .smsdb import SMSDB_PAYLOAD_MAX_LEN, SmsDb, SmsDbError, make_key

_PUT_MESSAGE = (
    "INSERT INTO outgoing_msg (dev, dst, cnt, expiration, srr, payload) "
    "VALUES (?, ?, ?, datetime(julianday(CURRENT_TIMESTAMP) + ? / 86400.0), ?, ?)"
)
_PUT_PART = "INSERT INTO outgoing_part (key, msg, status) VALUES (?, ?, NULL)"
_DEL_MESSAGE = "DELETE FROM outgoing_msg WHERE rowid = ?"
_DEL_PARTS = "DELETE FROM outgoing_part WHERE msg = ?"
_GET_MESSAGE = "SELECT dev, dst, srr FROM outgoing_msg WHERE rowid = ?"
_SET_PART_STATUS = "UPDATE outgoing_part SET status = ? WHERE rowid = ?"
_GET_PART = "SELECT rowid, msg FROM outgoing_part WHERE key = ?"
# Count finished parts: permanent failures and successes, but neither parts
# still waiting for a report nor temporary failures.
_COUNT_FINISHED_PARTS = (
    "SELECT m.cnt, (SELECT COUNT(p.rowid) FROM outgoing_part p WHERE p.msg = m.rowid "
    "AND (p.status & 64 != 0 OR p.status & 32 = 0)) FROM outgoing_msg m WHERE m.rowid = ?"
)
_COUNT_ALL_PARTS = (
    "SELECT m.cnt, (SELECT COUNT(p.rowid) FROM outgoing_part p WHERE p.msg = m.rowid) "
    "FROM outgoing_msg m WHERE m.rowid = ?"
)
_GET_PAYLOAD = "SELECT payload, dst FROM outgoing_msg WHERE rowid = ?"
_GET_ALL_STATUS = "SELECT status FROM outgoing_part WHERE msg = ? ORDER BY rowid"
# One expired row per call keeps each transaction short.
_GET_EXPIRED = (
    "SELECT rowid, payload, dst FROM outgoing_msg "
    "WHERE expiration < CURRENT_TIMESTAMP LIMIT 1"
)


@dataclass(frozen=True)
class OutgoingPayload:
    """What is handed back once an outgoing message is finished or dropped."""

    dst: str
    payload: bytes
    statuses: Tuple[Optional[int], ...] = ()


def _limit(payload: Optional[bytes]) -> bytes:
    return bytes(payload or b"")[:SMSDB_PAYLOAD_MAX_LEN]


class OutgoingStore:
    """Outgoing message bookkeeping on top of an SmsDb."""

    def __init__(self, db: SmsDb) -> None:
        self.db = db

    @staticmethod
    def _clear(conn: sqlite3.Connection, uid: int) -> None:
        conn.execute(_DEL_MESSAGE, (uid,))
        conn.execute(_DEL_PARTS, (uid,))

    @staticmethod
    def _payload(conn: sqlite3.Connection, uid: int) -> Tuple[bytes, str]:
        row = conn.execute(_GET_PAYLOAD, (uid,)).fetchone()
        if row is None:
            raise SmsDbError(f"no outgoing message {uid}")
        return _limit(row[0]), row[1]

    def add(self, dev: str, addr: str, cnt: int, ttl: int, srr: bool, payload: bytes) -> int:
        """Record a message of ``cnt`` parts; return its id.

        The message expires ``ttl`` seconds from now; the payload is cut
        to the maximum stored length.
        """
        with self.db.transaction() as conn:
            cursor = conn.execute(
                _PUT_MESSAGE,
                (dev, addr, cnt, ttl, int(bool(srr)), sqlite3.Binary(_limit(payload))),
            )
            return cursor.lastrowid

    def clear(self, uid: int) -> OutgoingPayload:
        """Remove message ``uid`` and its parts; return its destination and payload."""
        with self.db.transaction() as conn:
            payload, dst = self._payload(conn, uid)
            self._clear(conn, uid)
            return OutgoingPayload(dst=dst, payload=payload)

    def part_put(self, uid: int, refid: int) -> Optional[OutgoingPayload]:
        """Record that part ``refid`` of message ``uid`` was sent.

        Without a status report request, returns the payload and removes
        the message once every part was sent. Returns None while parts are
        outstanding, when reports are awaited, or when ``uid`` is unknown.
        """
        with self.db.transaction() as conn:
            row = conn.execute(_GET_MESSAGE, (uid,)).fetchone()
            if row is None:
                return None
            dev, dst, srr = row
            key = make_key(dev, dst, refid)
            conn.execute(_PUT_PART, (key, uid))
            if srr:
                return None
            counts = conn.execute(_COUNT_ALL_PARTS, (uid,)).fetchone()
            if counts is None:
                raise SmsDbError(f"no outgoing message {uid}")
            expected, sent = counts
            if expected != sent:
                return None
            payload, dst = self._payload(conn, uid)
            self._clear(conn, uid)
            return OutgoingPayload(dst=dst, payload=payload)

    def part_status(self, dev: str, addr: str, mr: int, st: int) -> Optional[OutgoingPayload]:
        """Store status ``st`` for the part sent to ``addr`` with reference ``mr``.

        Once every part has a final status, returns the payload with all
        part statuses in sending order and removes the message; otherwise
        returns None. Raises SmsDbError for an unknown part.
        """
        key = make_key(dev, addr, mr)
        with self.db.transaction() as conn:
            row = conn.execute(_GET_PART, (key,)).fetchone()
            if row is None:
                raise SmsDbError(f"no outgoing part {key!r}")
            partid, uid = row
            conn.execute(_SET_PART_STATUS, (st, partid))
            counts = conn.execute(_COUNT_FINISHED_PARTS, (uid,)).fetchone()
            if counts is None:
                raise SmsDbError(f"no outgoing message {uid}")
            expected, finished = counts
            if expected != finished:
                return None
            statuses = tuple(r[0] for r in conn.execute(_GET_ALL_STATUS, (uid,)))
            payload, dst = self._payload(conn, uid)
            self._clear(conn, uid)
            return OutgoingPayload(dst=dst, payload=payload, statuses=statuses)

    def purge_one(self) -> Optional[OutgoingPayload]:
        """Remove one expired message and return it, or None if none expired."""
        with self.db.transaction() as conn:
            row = conn.execute(_GET_EXPIRED).fetchone()
            if row is None:
                return None
            uid, payload, dst = row
            self._clear(conn, uid)
            return OutgoingPayload(dst=dst, payload=_limit(payload))