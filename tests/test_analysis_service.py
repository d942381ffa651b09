"""Tests for services.analysis_service.AnalysisService."""

import pytest

from conftest import OFFLINE, FakeAnalyzer, make_result, run
from services.analysis_service import EMPTY_LOG_MESSAGE, AnalysisService
from services.exceptions import AnalysisFailure, QuotaExceeded
from services.history_reconciler import HistoryReconciler
from shared.enums import Classification, ConditionKind

LOG = "Exception in component tMap_3\njava.lang.NullPointerException at row2Struct"


def service_for(store, *outcomes):
    reconciler = HistoryReconciler(store)
    run(reconciler.load("u1"))
    analyzer = FakeAnalyzer(*outcomes)
    return AnalysisService(analyzer, reconciler), analyzer, reconciler


class TestProcess:
    def test_new_result_is_recorded(self, store):
        result = make_result("X")
        service, analyzer, reconciler = service_for(store, result)

        response = run(service.process("u1", LOG, "Talend"))

        assert response.classification == Classification.NEW
        assert response.is_historical_match is False
        assert response.result == result
        assert response.advisory is None
        assert [e.id for e in reconciler.entries] == [result.id]
        assert analyzer.calls == [(LOG, "Talend")]

    def test_duplicate_shows_stored_result_without_write(self, store):
        first, repeat = make_result("X", fix="first fix"), make_result("X", fix="second fix")
        service, _, reconciler = service_for(store, first, repeat)
        run(service.process("u1", LOG))
        inserts_before = [c for c in store.calls if c[0] == "insert"]

        response = run(service.process("u1", LOG))

        assert response.classification == Classification.DUPLICATE
        assert response.is_historical_match is True
        assert response.result.fix == "first fix"
        assert len(reconciler.entries) == 1
        assert [c for c in store.calls if c[0] == "insert"] == inserts_before

    def test_insert_failure_surfaces_advisory(self, store):
        store.fail["insert"] = OFFLINE
        service, _, reconciler = service_for(store, make_result("X"))

        response = run(service.process("u1", LOG))

        assert response.advisory.kind == ConditionKind.RECORD_ADVISORY
        assert len(reconciler.entries) == 1

    def test_tool_defaults_to_talend(self, store):
        service, analyzer, _ = service_for(store, make_result("X"))
        run(service.process("u1", LOG, None))
        assert analyzer.calls[0][1] == "Talend"

    @pytest.mark.parametrize("text", ["", "   \n\t"])
    def test_empty_log_is_rejected(self, store, text):
        service, analyzer, _ = service_for(store)
        with pytest.raises(ValueError, match=EMPTY_LOG_MESSAGE):
            run(service.process("u1", text))
        assert analyzer.calls == []

    def test_quota_exceeded_propagates_and_records_nothing(self, store):
        service, _, reconciler = service_for(store, QuotaExceeded())
        with pytest.raises(QuotaExceeded) as info:
            run(service.process("u1", LOG))
        assert "Quota Exceeded" in str(info.value)
        assert reconciler.entries == []

    def test_analysis_failure_propagates(self, store):
        service, _, _ = service_for(store, AnalysisFailure("model down"))
        with pytest.raises(AnalysisFailure):
            run(service.process("u1", LOG))
