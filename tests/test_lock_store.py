from __future__ import annotations

import json
import os

from panelcore.core.locks.models import LockType, ResourceLock
from panelcore.core.locks.store import LockStore


def _lock(resource: str, sid: str = "s" * 64, ts: int = 5) -> ResourceLock:
    return ResourceLock(resource_id=resource, lock_type=LockType.EDITING_SCHEDULE, session_id=sid, username="alice", timestamp=ts)


def test_missing_store_is_a_load_failure(tmp_path):
    store = LockStore(str(tmp_path / "locks" / "active_locks.json"))
    ok, locks, err = store.load_all()
    assert (ok, locks, err) == (False, [], "missing")
    assert store.ensure() is True
    assert store.load_all() == (True, [], None)


def test_empty_file_reads_as_empty_store(lock_store, lock_store_path):
    with open(lock_store_path, "w", encoding="utf-8") as f:
        f.write("  \n")
    assert lock_store.load_all() == (True, [], None)


def test_non_array_document_is_rejected(lock_store, lock_store_path):
    with open(lock_store_path, "w", encoding="utf-8") as f:
        json.dump({"resourceId": "x"}, f)
    ok, _locks, err = lock_store.load_all()
    assert ok is False
    assert err == "not_array"


def test_invalid_entries_are_skipped(lock_store, lock_store_path):
    doc = [
        {"resourceId": "good", "lockType": "editing_template", "sessionId": "s1", "username": "bob", "timestamp": 10},
        {"resourceId": "", "lockType": "editing_schedule", "sessionId": "s2", "username": "x", "timestamp": 1},
        {"resourceId": "bad_type", "lockType": "painting", "sessionId": "s3", "username": "x", "timestamp": 1},
        {"resourceId": "bad_ts", "lockType": "editing_schedule", "sessionId": "s4", "username": "x", "timestamp": -1},
        "garbage",
    ]
    with open(lock_store_path, "w", encoding="utf-8") as f:
        json.dump(doc, f)
    ok, locks, err = lock_store.load_all()
    assert ok is True and err is None
    assert [l.resource_id for l in locks] == ["good"]
    assert locks[0].lock_type == LockType.EDITING_TEMPLATE


def test_save_writes_only_valid_entries_atomically(lock_store, lock_store_path):
    bad = _lock("bad").model_copy(update={"session_id": ""})
    assert lock_store.save_all([_lock("one"), bad, _lock("two")]) is True
    with open(lock_store_path, "r", encoding="utf-8") as f:
        doc = json.load(f)
    assert [d["resourceId"] for d in doc] == ["one", "two"]
    leftovers = [n for n in os.listdir(lock_store.directory) if n.startswith(".tmp_locks_")]
    assert leftovers == []


def test_save_failure_leaves_previous_document(lock_store, lock_store_path, monkeypatch):
    assert lock_store.save_all([_lock("one")]) is True

    def fail_replace(_src, _dst):
        raise OSError("disk full")

    monkeypatch.setattr(os, "replace", fail_replace)
    assert lock_store.save_all([_lock("two")]) is False
    monkeypatch.undo()

    ok, locks, _err = lock_store.load_all()
    assert ok is True
    assert [l.resource_id for l in locks] == ["one"]
    assert [n for n in os.listdir(lock_store.directory) if n.startswith(".tmp_locks_")] == []


def test_lock_type_is_matched_case_insensitively(lock_store, lock_store_path):
    doc = [{"resourceId": "schedule_1", "lockType": "EDITING_Schedule", "sessionId": "s1", "username": "bob", "timestamp": 3}]
    with open(lock_store_path, "w", encoding="utf-8") as f:
        json.dump(doc, f)
    ok, locks, _err = lock_store.load_all()
    assert ok is True
    assert [l.lock_type for l in locks] == [LockType.EDITING_SCHEDULE]

    # Rewriting keeps the entry, in canonical form.
    assert lock_store.save_all(locks) is True
    with open(lock_store_path, "r", encoding="utf-8") as f:
        assert json.load(f)[0]["lockType"] == "editing_schedule"
