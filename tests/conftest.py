"""Shared test fixtures and doubles for the history core and the API."""

import asyncio
import os
from datetime import datetime, timedelta

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database import Base
import models  # noqa: F401
from schemas import AnalysisResult
from services.exceptions import StoreError


def run(coro):
    """Drive one coroutine to completion on a fresh event loop."""
    return asyncio.run(coro)


def make_result(fingerprint="NPE-tMap_3-rowStruct", **overrides) -> AnalysisResult:
    data = {
        "tool": "Talend",
        "error_type": "java.lang.NullPointerException",
        "component": "tMap_3",
        "line_of_code": "row2Struct.amount",
        "cause": "A lookup returned null for a non-nullable column.",
        "fix": "Add a null check in the tMap expression.",
        "optimized_solution": "Enable 'die on error' only on the final output.",
        "code_snippet": "row2.amount == null ? 0 : row2.amount",
        "fingerprint": fingerprint,
        "severity": "High",
        "confidence_score": 87,
    }
    data.update(overrides)
    return AnalysisResult(**data)


class FakeStore:
    """In-memory HistoryStore; `fail` maps an operation name to the error it raises."""

    def __init__(self, rows=None):
        self.rows = list(rows or [])
        self.fail = {}
        self.calls = []

    def _maybe_fail(self, operation):
        error = self.fail.get(operation)
        if error is not None:
            raise error

    async def insert(self, row):
        self.calls.append(("insert", row["user_id"], row["id"]))
        self._maybe_fail("insert")
        self.rows.insert(0, {**row, "created_at": datetime.utcnow()})

    async def select(self, user_id, limit=100):
        self.calls.append(("select", user_id))
        self._maybe_fail("select")
        return [row for row in self.rows if row["user_id"] == user_id][:limit]

    async def delete(self, user_id, entry_id=None):
        self.calls.append(("delete", user_id, entry_id))
        self._maybe_fail("delete")
        before = len(self.rows)
        self.rows = [
            row for row in self.rows
            if not (row["user_id"] == user_id and (entry_id is None or row["id"] == entry_id))
        ]
        return before - len(self.rows)


class GatedStore(FakeStore):
    """FakeStore whose select for gated users blocks until the gate is opened."""

    def __init__(self, rows=None, gated_users=()):
        super().__init__(rows)
        self.gates = {user_id: asyncio.Event() for user_id in gated_users}

    async def select(self, user_id, limit=100):
        gate = self.gates.get(user_id)
        if gate is not None:
            await gate.wait()
        return await super().select(user_id, limit)


class FakeAnalyzer:
    """Analyzer double returning queued results (or raising queued exceptions)."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls = []

    async def analyze(self, log_content, tool_name="Talend"):
        self.calls.append((log_content, tool_name))
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def history_row(user_id, result, minutes_ago=0):
    return {
        "id": result.id,
        "user_id": user_id,
        "tool": result.tool,
        "error_type": result.error_type,
        "component": result.component,
        "full_result": result.model_dump(mode="json", by_alias=True),
        "created_at": datetime.utcnow() - timedelta(minutes=minutes_ago),
    }


CIRCULAR = StoreError("infinite recursion detected in policy for relation \"error_history\"", code="42P17")
DENIED = StoreError("permission denied for table error_history", code="42501")
OFFLINE = StoreError("could not connect to server", code="08006")


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)
