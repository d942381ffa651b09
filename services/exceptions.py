"""Domain exceptions shared by the services"""
from typing import Optional


class AnalysisFailure(Exception):
    """The analyzer could not produce a result"""


class QuotaExceeded(AnalysisFailure):
    """The model provider refused the call because of rate or budget limits"""

    DEFAULT_MESSAGE = (
        "AI Quota Exceeded: The system is receiving too many requests. "
        "Please try again in a minute."
    )

    def __init__(self, message: str = DEFAULT_MESSAGE):
        super().__init__(message)


class StoreError(Exception):
    """A remote history store operation failed

    `code` carries the machine-readable error code reported by the store
    (a Postgres SQLSTATE for the SQL store), or None when unknown.
    """

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.code = code

    def __repr__(self):
        return f"<StoreError(code={self.code!r}, message={self.message!r})>"
