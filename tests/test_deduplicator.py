"""Tests for services.deduplicator."""

from conftest import make_result
from schemas import StoredError
from services.deduplicator import classify, find_match
from shared.enums import Classification


def stored(result):
    return StoredError.from_result(result)


class TestClassify:
    def test_empty_history_is_new(self):
        result = make_result("X")
        decision = classify(result, [])
        assert decision.kind == Classification.NEW
        assert decision.shown is result
        assert decision.match is None

    def test_equal_fingerprint_is_duplicate_showing_stored_result(self):
        first = make_result("ORA-00942-tOracleInput_1", cause="table missing")
        again = make_result("ORA-00942-tOracleInput_1", cause="reworded by the model")

        decision = classify(again, [stored(first)])

        assert decision.is_duplicate
        assert decision.shown == first
        assert decision.shown.cause == "table missing"

    def test_different_fingerprint_is_new(self):
        decision = classify(make_result("B"), [stored(make_result("A"))])
        assert decision.kind == Classification.NEW

    def test_comparison_is_case_sensitive(self):
        decision = classify(make_result("npe-tmap_3"), [stored(make_result("NPE-tMap_3"))])
        assert decision.kind == Classification.NEW

    def test_no_whitespace_normalization(self):
        decision = classify(make_result("NPE "), [stored(make_result("NPE"))])
        assert decision.kind == Classification.NEW

    def test_unknown_fingerprints_collapse(self):
        timeout = make_result(None, error_type="SocketTimeoutException")
        overflow = make_result("", error_type="ArithmeticException")
        assert timeout.fingerprint == overflow.fingerprint == "unknown"

        decision = classify(overflow, [stored(timeout)])

        assert decision.is_duplicate
        assert decision.shown.error_type == "SocketTimeoutException"

    def test_most_recent_occurrence_wins(self):
        newer = make_result("X", fix="newer fix")
        older = make_result("X", fix="older fix")
        history = [stored(newer), stored(make_result("Y")), stored(older)]

        decision = classify(make_result("X"), history)

        assert decision.match.id == newer.id
        assert decision.shown.fix == "newer fix"


class TestFindMatch:
    def test_returns_none_without_match(self):
        assert find_match("Z", [stored(make_result("X"))]) is None

    def test_returns_first_entry(self):
        entries = [stored(make_result("X")), stored(make_result("X"))]
        assert find_match("X", entries) is entries[0]
