"""
History reconciler: owns the in-memory, newest-first error history of the active
session and mirrors it to the remote history store on a best-effort basis.

Inserts are optimistic (the local collection always gains the entry), deletes
and clears are pessimistic (local removal only after the store confirms).
Store failures never escape; they come back as conditions on the outcome.
"""
from dataclasses import dataclass, field
from typing import List, Optional
import logging
import os

from schemas import AnalysisResult, HistoryCondition, HistoryOutcome, StoredError
from shared.enums import ReconcilerState
from services.exceptions import StoreError
from services.history_store import (
    DEFAULT_FETCH_LIMIT,
    HistoryStore,
    build_history_row,
    stored_error_from_row,
)
from services import store_errors

logger = logging.getLogger(__name__)


@dataclass
class HistoryContext:
    """Session-scoped state; replaced wholesale on reset, never shared between users"""
    user_id: Optional[str] = None
    entries: List[StoredError] = field(default_factory=list)
    state: ReconcilerState = ReconcilerState.UNINITIALIZED
    condition: Optional[HistoryCondition] = None


def _as_store_error(exc: Exception) -> StoreError:
    if isinstance(exc, StoreError):
        return exc
    logger.exception(f"Unexpected history store failure: {exc}")
    return StoreError(str(exc) or type(exc).__name__)


class HistoryReconciler:
    """Reconciles one session's history collection with the remote store"""

    def __init__(self, store: HistoryStore, fetch_limit: Optional[int] = None):
        self.store = store
        self.fetch_limit = fetch_limit or int(os.getenv("HISTORY_FETCH_LIMIT", str(DEFAULT_FETCH_LIMIT)))
        self._context = HistoryContext()

    @property
    def user_id(self) -> Optional[str]:
        return self._context.user_id

    @property
    def state(self) -> ReconcilerState:
        return self._context.state

    @property
    def condition(self) -> Optional[HistoryCondition]:
        return self._context.condition

    @property
    def entries(self) -> List[StoredError]:
        """Copy of the collection, newest first"""
        return list(self._context.entries)

    def find(self, entry_id: str) -> Optional[StoredError]:
        for entry in self._context.entries:
            if entry.id == entry_id:
                return entry
        return None

    def _snapshot(self, condition: Optional[HistoryCondition] = None,
                  entry: Optional[StoredError] = None) -> HistoryOutcome:
        return HistoryOutcome(entries=self.entries, condition=condition, entry=entry)

    def _is_stale(self, context: HistoryContext, operation: str) -> bool:
        if self._context is context:
            return False
        logger.info(f"Discarding {operation} result for user {context.user_id}: session changed while it was in flight")
        return True

    def _clear_condition(self, context: HistoryContext) -> None:
        # a failed load stays reported until the next load
        if context.state != ReconcilerState.LOAD_FAILED:
            context.condition = None

    def reset(self) -> None:
        """Drop the collection and any pending condition; back to Uninitialized"""
        if self._context.user_id is not None:
            logger.info(f"Resetting history for user {self._context.user_id}")
        self._context = HistoryContext()

    async def load(self, user_id: str) -> HistoryOutcome:
        """
        Fetch the newest rows of `user_id` and replace the collection with them.

        Any store failure empties the collection and records a HistoryLoadFailure
        condition (circular-policy or generic variant). Nothing is retried.
        """
        if self._context.user_id not in (None, user_id):
            self.reset()
        context = self._context
        context.user_id = user_id
        context.state = ReconcilerState.LOADING
        context.condition = None

        try:
            rows = await self.store.select(user_id, limit=self.fetch_limit)
            entries = [stored_error_from_row(row) for row in rows]
        except Exception as e:
            error = _as_store_error(e)
            if self._is_stale(context, "load"):
                return HistoryOutcome()
            condition = store_errors.load_failure(error)
            logger.warning(f"History load failed for user {user_id} ({condition.variant.value}): {error.message}")
            context.entries = []
            context.state = ReconcilerState.LOAD_FAILED
            context.condition = condition
            return self._snapshot(condition)

        if self._is_stale(context, "load"):
            return HistoryOutcome()
        context.entries = entries
        context.state = ReconcilerState.READY
        logger.info(f"Loaded {len(entries)} history entries for user {user_id}")
        return self._snapshot()

    async def record_new(self, user_id: str, result: AnalysisResult) -> HistoryOutcome:
        """
        Persist a result classified as new and prepend it to the collection.

        The local prepend happens whether or not the remote insert succeeds; a
        failed insert only adds a RecordAdvisory condition.
        """
        context = self._context
        if context.user_id is None:
            context.user_id = user_id
        elif context.user_id != user_id:
            raise ValueError(f"History belongs to user {context.user_id}, not {user_id}")

        entry = StoredError.from_result(result)
        condition = None
        try:
            await self.store.insert(build_history_row(user_id, result))
        except Exception as e:
            error = _as_store_error(e)
            condition = store_errors.record_advisory(error)
            logger.warning(f"History insert failed for user {user_id}, keeping entry {entry.id} locally: {error.message}")

        if self._is_stale(context, "record"):
            return HistoryOutcome(entry=entry, condition=condition)
        context.entries.insert(0, entry)
        if condition is not None:
            context.condition = condition
        else:
            self._clear_condition(context)
        return self._snapshot(condition, entry)

    async def delete(self, entry_id: str) -> HistoryOutcome:
        """Remove one entry, locally only after the store confirmed the delete"""
        context = self._context
        if context.user_id is None:
            condition = store_errors.delete_denied(StoreError("No active session"))
            return self._snapshot(condition)

        try:
            await self.store.delete(context.user_id, entry_id)
        except Exception as e:
            error = _as_store_error(e)
            if self._is_stale(context, "delete"):
                return HistoryOutcome()
            condition = store_errors.delete_denied(error)
            logger.warning(f"History delete of {entry_id} denied for user {context.user_id}: {error.message}")
            context.condition = condition
            return self._snapshot(condition)

        if self._is_stale(context, "delete"):
            return HistoryOutcome()
        context.entries = [entry for entry in context.entries if entry.id != entry_id]
        self._clear_condition(context)
        return self._snapshot()

    async def clear_all(self, user_id: str) -> HistoryOutcome:
        """Remove every entry of `user_id`, locally only after the store confirmed"""
        context = self._context
        if context.user_id not in (None, user_id):
            raise ValueError(f"History belongs to user {context.user_id}, not {user_id}")

        try:
            await self.store.delete(user_id)
        except Exception as e:
            error = _as_store_error(e)
            if self._is_stale(context, "clear"):
                return HistoryOutcome()
            condition = store_errors.clear_denied(error)
            logger.warning(f"History clear denied for user {user_id}: {error.message}")
            context.condition = condition
            return self._snapshot(condition)

        if self._is_stale(context, "clear"):
            return HistoryOutcome()
        context.entries = []
        self._clear_condition(context)
        return self._snapshot()
