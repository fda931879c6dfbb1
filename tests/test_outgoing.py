import pytest

from quecmodem.outgoing import OutgoingPayload, OutgoingStore
from quecmodem.smsdb import SMSDB_PAYLOAD_MAX_LEN, SmsDb, SmsDbError


@pytest.fixture
def store():
    db = SmsDb(":memory:", csms_ttl=600)
    try:
        yield OutgoingStore(db)
    finally:
        db.close()


def test_add_returns_distinct_ids(store):
    first = store.add("dev", "12345678", 1, 3600, False, b"a")
    second = store.add("dev", "12345678", 1, 3600, False, b"b")
    assert first >= 1
    assert second > first


def test_clear_returns_payload_and_removes(store):
    uid = store.add("dev", "12345678", 2, 3600, False, b"payload-data")
    result = store.clear(uid)
    assert result == OutgoingPayload(dst="12345678", payload=b"payload-data")
    with pytest.raises(SmsDbError):
        store.clear(uid)


def test_clear_unknown_raises(store):
    with pytest.raises(SmsDbError):
        store.clear(999)


def test_payload_is_truncated(store):
    uid = store.add("dev", "12345678", 1, 3600, False, b"x" * (SMSDB_PAYLOAD_MAX_LEN + 10))
    assert len(store.clear(uid).payload) == SMSDB_PAYLOAD_MAX_LEN


def test_part_put_completes_without_report(store):
    uid = store.add("dev", "12345678", 2, 3600, False, b"data")
    assert store.part_put(uid, 1) is None
    result = store.part_put(uid, 2)
    assert result is not None
    assert result.dst == "12345678"
    assert result.payload == b"data"
    with pytest.raises(SmsDbError):
        store.clear(uid)


def test_part_put_unknown_uid(store):
    assert store.part_put(42, 1) is None


def test_part_put_duplicate_key_raises(store):
    uid = store.add("dev", "12345678", 3, 3600, False, b"data")
    assert store.part_put(uid, 7) is None
    with pytest.raises(SmsDbError):
        store.part_put(uid, 7)


def test_part_put_with_report_waits(store):
    uid = store.add("dev", "12345678", 1, 3600, True, b"data")
    assert store.part_put(uid, 3) is None
    assert store.clear(uid).payload == b"data"


def test_part_status_completes_in_order(store):
    uid = store.add("dev", "12345678", 2, 3600, True, b"data")
    store.part_put(uid, 5)
    store.part_put(uid, 7)
    assert store.part_status("dev", "12345678", 7, 64) is None
    result = store.part_status("dev", "12345678", 5, 0)
    assert result is not None
    assert result.statuses == (0, 64)
    assert result.payload == b"data"
    with pytest.raises(SmsDbError):
        store.part_status("dev", "12345678", 5, 0)


def test_temporary_failure_not_counted(store):
    uid = store.add("dev", "12345678", 1, 3600, True, b"data")
    store.part_put(uid, 9)
    assert store.part_status("dev", "12345678", 9, 32) is None
    result = store.part_status("dev", "12345678", 9, 0)
    assert result is not None
    assert result.statuses == (0,)


def test_part_status_unknown_raises(store):
    with pytest.raises(SmsDbError):
        store.part_status("dev", "12345678", 1, 0)


def test_purge_one(store):
    assert store.purge_one() is None
    store.add("dev", "12345678", 1, 3600, False, b"fresh")
    expired = store.add("dev", "87654321", 1, -60, False, b"old")
    result = store.purge_one()
    assert result == OutgoingPayload(dst="87654321", payload=b"old")
    assert store.purge_one() is None
    with pytest.raises(SmsDbError):
        store.clear(expired)