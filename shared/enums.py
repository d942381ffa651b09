"""Enum definitions for consistent type checking"""
from enum import Enum


class Severity(str, Enum):
    """Severity levels reported by the analyzer"""
    CRITICAL = "Critical"
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"

    @classmethod
    def get_valid_names(cls) -> list[str]:
        """Get list of valid severity labels"""
        return [severity.value for severity in cls]


class Classification(str, Enum):
    """Outcome of a fingerprint comparison against the history"""
    NEW = "new"
    DUPLICATE = "duplicate"


class ReconcilerState(str, Enum):
    """Lifecycle label of a history reconciler"""
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    READY = "ready"
    LOAD_FAILED = "load_failed"


class ConditionKind(str, Enum):
    """Conditions surfaced by the history reconciler"""
    HISTORY_LOAD_FAILURE = "history_load_failure"
    RECORD_ADVISORY = "record_advisory"
    DELETE_DENIED = "delete_denied"
    CLEAR_DENIED = "clear_denied"


class FailureVariant(str, Enum):
    """Store failure flavours that get their own remediation message"""
    CIRCULAR_POLICY = "circular-policy"
    PERMISSION_DENIED = "permission-denied"
    GENERIC = "generic"


class ProfileRole(str, Enum):
    """Supported profile roles"""
    USER = "user"
    ADMIN = "admin"
