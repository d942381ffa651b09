"""Remote history store: row-level access to the error_history table"""
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Protocol
import logging

from pydantic import ValidationError
from sqlalchemy import desc
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from models.error_history import ErrorHistory
from schemas import AnalysisResult, StoredError, UNKNOWN_FINGERPRINT
from services.store_errors import to_store_error
from utils.json_serializer import prepare_result_for_storage

logger = logging.getLogger(__name__)

DEFAULT_FETCH_LIMIT = 100


class HistoryStore(Protocol):
    """Keyed row store the reconciler mirrors its collection to.

    Every method raises StoreError on failure.
    """

    async def insert(self, row: Dict[str, Any]) -> None: ...

    async def select(self, user_id: str, limit: int = DEFAULT_FETCH_LIMIT) -> List[Dict[str, Any]]: ...

    async def delete(self, user_id: str, entry_id: Optional[str] = None) -> int: ...


def build_history_row(user_id: str, result: AnalysisResult) -> Dict[str, Any]:
    """Row inserted for a newly recorded result; the row id is the result id"""
    return {
        "id": result.id,
        "user_id": user_id,
        "tool": result.tool,
        "error_type": result.error_type,
        "component": result.component,
        "full_result": prepare_result_for_storage(result),
    }


def _to_epoch_ms(value: Any) -> int:
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return int(value.timestamp() * 1000)
    return int(value or 0)


def stored_error_from_row(row: Dict[str, Any]) -> StoredError:
    """Map a fetched row back to a history entry (count is always 1)"""
    full_result = row.get("full_result") or {}
    if not isinstance(full_result, dict):
        logger.warning(f"History row {row.get('id')} has a non-object result payload")
        full_result = {}
    fingerprint = full_result.get("fingerprint") or UNKNOWN_FINGERPRINT
    result = None
    if full_result:
        try:
            result = AnalysisResult.model_validate(full_result)
        except ValidationError as e:
            logger.warning(f"History row {row.get('id')} has a malformed result payload: {e}")
    if result is None:
        result = AnalysisResult(id=row["id"], tool=row.get("tool") or "Talend", fingerprint=fingerprint)
    return StoredError(
        id=row["id"],
        timestamp=_to_epoch_ms(row.get("created_at")),
        fingerprint=fingerprint,
        result=result,
        count=1,
    )


def record_to_row(record: ErrorHistory) -> Dict[str, Any]:
    return {
        "id": record.id,
        "user_id": record.user_id,
        "tool": record.tool,
        "error_type": record.error_type,
        "component": record.component,
        "full_result": record.full_result,
        "created_at": record.created_at,
    }


class SqlHistoryStore:
    """HistoryStore backed by the SQLAlchemy error_history table"""

    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory

    async def insert(self, row: Dict[str, Any]) -> None:
        db = self.session_factory()
        try:
            db.add(ErrorHistory(**row))
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise to_store_error(e, "insert")
        finally:
            db.close()

    async def select(self, user_id: str, limit: int = DEFAULT_FETCH_LIMIT) -> List[Dict[str, Any]]:
        db = self.session_factory()
        try:
            records = (
                db.query(ErrorHistory)
                .filter(ErrorHistory.user_id == user_id)
                .order_by(desc(ErrorHistory.created_at))
                .limit(limit)
                .all()
            )
            return [record_to_row(record) for record in records]
        except SQLAlchemyError as e:
            raise to_store_error(e, "select")
        finally:
            db.close()

    async def delete(self, user_id: str, entry_id: Optional[str] = None) -> int:
        """Delete one entry, or every entry of the user when entry_id is None"""
        db = self.session_factory()
        try:
            query = db.query(ErrorHistory).filter(ErrorHistory.user_id == user_id)
            if entry_id is not None:
                query = query.filter(ErrorHistory.id == entry_id)
            deleted = query.delete(synchronize_session=False)
            db.commit()
            return deleted
        except SQLAlchemyError as e:
            db.rollback()
            raise to_store_error(e, "delete")
        finally:
            db.close()
