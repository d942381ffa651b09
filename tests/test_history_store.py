"""Tests for services.history_store against an in-memory SQLite database."""

from datetime import datetime

import pytest
from sqlalchemy.exc import ProgrammingError

from conftest import make_result, run
from models.error_history import ErrorHistory
from services.exceptions import StoreError
from services.history_reconciler import HistoryReconciler
from services.history_store import SqlHistoryStore, build_history_row, stored_error_from_row
from shared.enums import FailureVariant, Severity


class PolicyError(Exception):
    pgcode = "42P17"


class ExplodingSession:
    """Session double whose every statement fails."""

    def __init__(self, error):
        self.error = error
        self.rolled_back = False
        self.closed = False

    def query(self, *args, **kwargs):
        raise self.error

    def add(self, obj):
        pass

    def commit(self):
        raise self.error

    def rollback(self):
        self.rolled_back = True

    def close(self):
        self.closed = True


class TestRowMapping:
    def test_build_row(self):
        result = make_result("X", job_name="load_customers")
        row = build_history_row("u1", result)
        assert row["id"] == result.id
        assert row["error_type"] == "java.lang.NullPointerException"
        assert row["full_result"]["fingerprint"] == "X"
        assert row["full_result"]["jobName"] == "load_customers"
        assert row["full_result"]["severity"] == "High"

    def test_row_round_trip(self):
        result = make_result("X")
        row = {**build_history_row("u1", result), "created_at": datetime(2024, 1, 2, 3, 4, 5)}
        entry = stored_error_from_row(row)
        assert entry.result == result
        assert entry.count == 1
        assert entry.timestamp == 1704164645000

    def test_missing_fingerprint_falls_back_to_unknown(self):
        row = {"id": "r1", "full_result": {"errorType": "X"}, "created_at": datetime.utcnow()}
        assert stored_error_from_row(row).fingerprint == "unknown"

    def test_malformed_payload_is_kept(self):
        row = {"id": "r1", "tool": "SSIS", "full_result": {"fingerprint": "F", "severity": "Catastrophic"},
               "created_at": "2024-01-02T03:04:05"}
        entry = stored_error_from_row(row)
        assert entry.fingerprint == "F"
        assert entry.result.tool == "SSIS"
        assert entry.result.severity == Severity.MEDIUM

    @pytest.mark.parametrize("payload", [["not", "an", "object"], "plain text", 42])
    def test_non_object_payload_is_kept(self, payload):
        row = {"id": "r1", "tool": "Pentaho", "full_result": payload, "created_at": datetime.utcnow()}
        entry = stored_error_from_row(row)
        assert entry.id == "r1"
        assert entry.fingerprint == "unknown"
        assert entry.result.id == "r1"
        assert entry.result.tool == "Pentaho"


class TestSqlHistoryStore:
    def test_insert_and_select_newest_first(self, session_factory):
        store = SqlHistoryStore(session_factory)
        first, second = make_result("A"), make_result("B")
        run(store.insert(build_history_row("u1", first)))
        run(store.insert(build_history_row("u1", second)))
        run(store.insert(build_history_row("u2", make_result("C"))))

        rows = run(store.select("u1"))

        assert [row["full_result"]["fingerprint"] for row in rows] == ["B", "A"]

    def test_select_limit(self, session_factory):
        store = SqlHistoryStore(session_factory)
        for i in range(4):
            run(store.insert(build_history_row("u1", make_result(str(i)))))
        assert len(run(store.select("u1", limit=2))) == 2

    def test_delete_one_and_all(self, session_factory):
        store = SqlHistoryStore(session_factory)
        a, b = make_result("A"), make_result("B")
        run(store.insert(build_history_row("u1", a)))
        run(store.insert(build_history_row("u1", b)))
        run(store.insert(build_history_row("u2", make_result("C"))))

        assert run(store.delete("u1", a.id)) == 1
        assert run(store.delete("u2", b.id)) == 0
        assert run(store.delete("u1")) == 1

        db = session_factory()
        try:
            assert [r.user_id for r in db.query(ErrorHistory).all()] == ["u2"]
        finally:
            db.close()

    def test_duplicate_id_raises_store_error(self, session_factory):
        store = SqlHistoryStore(session_factory)
        result = make_result("A")
        run(store.insert(build_history_row("u1", result)))
        with pytest.raises(StoreError):
            run(store.insert(build_history_row("u1", result)))

    def test_driver_code_is_preserved(self):
        session = ExplodingSession(ProgrammingError("SELECT", {}, PolicyError("infinite recursion")))
        store = SqlHistoryStore(lambda: session)

        with pytest.raises(StoreError) as info:
            run(store.select("u1"))

        assert info.value.code == "42P17"
        assert session.closed

    def test_failed_delete_rolls_back(self):
        session = ExplodingSession(ProgrammingError("DELETE", {}, PolicyError("infinite recursion")))
        with pytest.raises(StoreError):
            run(SqlHistoryStore(lambda: session).delete("u1"))
        assert session.rolled_back


class TestReconcilerWithSqlStore:
    def test_reload_sees_recorded_entries(self, session_factory):
        store = SqlHistoryStore(session_factory)
        reconciler = HistoryReconciler(store)
        run(reconciler.load("u1"))
        result = make_result("X")
        run(reconciler.record_new("u1", result))

        reconciler.reset()
        outcome = run(reconciler.load("u1"))

        assert [entry.id for entry in outcome.entries] == [result.id]
        assert outcome.entries[0].result == result

    def test_recorded_entry_can_be_deleted_by_id(self, session_factory):
        reconciler = HistoryReconciler(SqlHistoryStore(session_factory))
        run(reconciler.load("u1"))
        result = make_result("X")
        run(reconciler.record_new("u1", result))

        run(reconciler.delete(result.id))
        reconciler.reset()

        assert run(reconciler.load("u1")).entries == []

    def test_circular_policy_from_driver(self):
        session = ExplodingSession(ProgrammingError("SELECT", {}, PolicyError("infinite recursion")))
        reconciler = HistoryReconciler(SqlHistoryStore(lambda: session))

        outcome = run(reconciler.load("u1"))

        assert outcome.condition.variant == FailureVariant.CIRCULAR_POLICY
