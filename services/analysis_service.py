"""Analysis flow: analyze a log, deduplicate by fingerprint, record new results"""
from typing import Optional, Protocol
import logging

from schemas import AnalysisResult, AnalyzeResponse
from shared.enums import Classification
from services.deduplicator import classify
from services.history_reconciler import HistoryReconciler
from services.llm_service import DEFAULT_TOOL

logger = logging.getLogger(__name__)

EMPTY_LOG_MESSAGE = "Please provide a log or error message."


class Analyzer(Protocol):
    async def analyze(self, log_content: str, tool_name: str = DEFAULT_TOOL) -> AnalysisResult: ...


class AnalysisService:
    """Runs one analysis against the session's history"""

    def __init__(self, analyzer: Analyzer, reconciler: HistoryReconciler):
        self.analyzer = analyzer
        self.reconciler = reconciler

    async def process(self, user_id: str, log_text: str, tool: Optional[str] = None) -> AnalyzeResponse:
        """
        Analyze `log_text` and reconcile the result with the history.

        A fingerprint already present in the history shows the stored result and
        writes nothing. Otherwise the fresh result is recorded; a failed remote
        insert comes back as the response advisory.

        Raises:
            ValueError: empty log text
            AnalysisFailure / QuotaExceeded: propagated from the analyzer
        """
        if not log_text or not log_text.strip():
            raise ValueError(EMPTY_LOG_MESSAGE)

        result = await self.analyzer.analyze(log_text, tool or DEFAULT_TOOL)
        decision = classify(result, self.reconciler.entries)

        if decision.is_duplicate:
            logger.info(f"Fingerprint '{result.fingerprint}' already in history of user {user_id}; reusing stored result")
            return AnalyzeResponse(
                result=decision.shown,
                classification=Classification.DUPLICATE,
                is_historical_match=True,
            )

        outcome = await self.reconciler.record_new(user_id, result)
        return AnalyzeResponse(
            result=decision.shown,
            classification=Classification.NEW,
            is_historical_match=False,
            advisory=outcome.condition,
        )
