"""Fingerprint deduplication of fresh analysis results against the history"""
from dataclasses import dataclass
from typing import Optional, Sequence

from schemas import AnalysisResult, StoredError
from shared.enums import Classification


@dataclass(frozen=True)
class DedupDecision:
    """Classification of one result and the result that should be shown"""
    kind: Classification
    shown: AnalysisResult
    match: Optional[StoredError] = None

    @property
    def is_duplicate(self) -> bool:
        return self.kind == Classification.DUPLICATE


def find_match(fingerprint: str, history: Sequence[StoredError]) -> Optional[StoredError]:
    """First entry with exactly this fingerprint; history is newest first"""
    for entry in history:
        if entry.fingerprint == fingerprint:
            return entry
    return None


def classify(result: AnalysisResult, history: Sequence[StoredError]) -> DedupDecision:
    """
    Decide whether `result` repeats an error already in `history`.

    Fingerprints are compared with plain case-sensitive equality, including the
    "unknown" fallback, so two unrelated results without a fingerprint collapse
    into a duplicate. On a match the stored result is shown instead of the fresh one.
    """
    match = find_match(result.fingerprint, history)
    if match is not None:
        return DedupDecision(kind=Classification.DUPLICATE, shown=match.result, match=match)
    return DedupDecision(kind=Classification.NEW, shown=result)
