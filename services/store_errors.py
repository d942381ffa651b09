"""Classification of remote history store failures into user-facing conditions"""
from typing import Optional
import logging

from sqlalchemy.exc import SQLAlchemyError

from schemas import HistoryCondition
from shared.enums import ConditionKind, FailureVariant
from services.exceptions import StoreError

logger = logging.getLogger(__name__)

# Postgres SQLSTATE codes
CIRCULAR_POLICY_CODE = "42P17"    # infinite recursion detected in policy
PERMISSION_DENIED_CODE = "42501"  # insufficient_privilege

CIRCULAR_POLICY_MESSAGE = (
    "Database Policy Error: Infinite Recursion detected. "
    "Please update the row-level access policies of the history table."
)
CIRCULAR_POLICY_REMEDIATION = (
    "A row-level policy on error_history (or on a table it references) queries the table it protects. "
    "Rewrite the policy to compare user_id with the authenticated user id directly."
)
PERMISSION_DENIED_REMEDIATION = (
    "Permission denied: the access policy of the history table does not allow this account "
    "to delete these rows. Ask an administrator to grant delete access on error_history."
)
RETRY_REMEDIATION = "The entry is still stored. Try again once the database is reachable."


def extract_error_code(exc: BaseException) -> Optional[str]:
    """Get the machine-readable code of a DBAPI error wrapped by SQLAlchemy

    psycopg2 exposes it as `pgcode`, psycopg 3 as `sqlstate`.
    """
    orig = getattr(exc, "orig", None)
    for attr in ("pgcode", "sqlstate"):
        code = getattr(orig, attr, None)
        if code:
            return str(code)
    return None


def to_store_error(exc: SQLAlchemyError, operation: str) -> StoreError:
    """Wrap a SQLAlchemy failure into a StoreError carrying the SQLSTATE"""
    orig = getattr(exc, "orig", None)
    message = str(orig) if orig is not None else str(exc)
    code = extract_error_code(exc)
    logger.error(f"History store {operation} failed: code={code} message={message}")
    return StoreError(message.strip() or f"{operation} failed", code=code)


def classify_variant(error: StoreError) -> FailureVariant:
    if error.code == CIRCULAR_POLICY_CODE:
        return FailureVariant.CIRCULAR_POLICY
    if error.code == PERMISSION_DENIED_CODE:
        return FailureVariant.PERMISSION_DENIED
    return FailureVariant.GENERIC


def load_failure(error: StoreError) -> HistoryCondition:
    """Condition for a failed history fetch; the collection is emptied by the caller"""
    variant = classify_variant(error)
    if variant == FailureVariant.CIRCULAR_POLICY:
        return HistoryCondition(
            kind=ConditionKind.HISTORY_LOAD_FAILURE,
            variant=variant,
            message=CIRCULAR_POLICY_MESSAGE,
            remediation=CIRCULAR_POLICY_REMEDIATION,
            code=error.code,
        )
    # Only the circular policy gets a dedicated message on load
    return HistoryCondition(
        kind=ConditionKind.HISTORY_LOAD_FAILURE,
        variant=FailureVariant.GENERIC,
        message=f"Could not load your history: {error.message}",
        remediation="Reload the history once the database is reachable.",
        code=error.code,
    )


def record_advisory(error: StoreError) -> HistoryCondition:
    """Non-blocking advisory for an insert that only landed locally"""
    return HistoryCondition(
        kind=ConditionKind.RECORD_ADVISORY,
        variant=classify_variant(error),
        message=f"Error saved locally only (DB sync failed: {error.message})",
        code=error.code,
    )


def _denied(kind: ConditionKind, message: str, error: StoreError) -> HistoryCondition:
    variant = classify_variant(error)
    if variant == FailureVariant.PERMISSION_DENIED:
        remediation = PERMISSION_DENIED_REMEDIATION
    elif variant == FailureVariant.CIRCULAR_POLICY:
        remediation = CIRCULAR_POLICY_REMEDIATION
    else:
        remediation = f"{RETRY_REMEDIATION} ({error.message})"
    return HistoryCondition(
        kind=kind,
        variant=variant,
        message=message,
        remediation=remediation,
        code=error.code,
    )


def delete_denied(error: StoreError) -> HistoryCondition:
    return _denied(ConditionKind.DELETE_DENIED, "Failed to delete history entry from database.", error)


def clear_denied(error: StoreError) -> HistoryCondition:
    return _denied(ConditionKind.CLEAR_DENIED, "Failed to clear history from database.", error)
