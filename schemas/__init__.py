"""API schemas"""
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
from typing import Dict, List, Optional, Any
import time
import uuid

from shared.enums import Severity, Classification, ConditionKind, FailureVariant, ReconcilerState

UNKNOWN_FINGERPRINT = "unknown"


def now_ms() -> int:
    """Current instant in epoch milliseconds"""
    return int(time.time() * 1000)


def new_result_id() -> str:
    return str(uuid.uuid4())


# Analysis data structures
class AnalysisResult(BaseModel):
    """Structured diagnosis of one log excerpt.

    Serialized with camelCase keys, which is also how the result is kept in the
    `full_result` JSON column of the history table.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str = Field(default_factory=new_result_id)
    timestamp: int = Field(default_factory=now_ms)
    tool: str = "Talend"
    error_type: str = ""
    component: str = ""
    line_of_code: str = ""
    cause: str = ""
    fix: str = ""
    optimized_solution: str = ""
    code_snippet: str = ""
    fingerprint: str = UNKNOWN_FINGERPRINT
    job_name: Optional[str] = None
    severity: Severity = Severity.MEDIUM
    confidence_score: float = 0.0

    @field_validator('fingerprint', mode='before')
    @classmethod
    def default_missing_fingerprint(cls, v):
        if v is None or v == "":
            return UNKNOWN_FINGERPRINT
        return str(v)

    @field_validator('error_type', 'component', 'line_of_code', 'cause', 'fix',
                     'optimized_solution', 'code_snippet', mode='before')
    @classmethod
    def coerce_text(cls, v):
        if v is None:
            return ""
        return v if isinstance(v, str) else str(v)

    @field_validator('confidence_score', mode='before')
    @classmethod
    def clamp_confidence(cls, v):
        if v is None:
            return 0.0
        return min(100.0, max(0.0, float(v)))


class StoredError(BaseModel):
    """One history entry. `count` is always 1; occurrences are not aggregated."""
    id: str
    timestamp: int
    fingerprint: str
    result: AnalysisResult
    count: int = 1

    @classmethod
    def from_result(cls, result: AnalysisResult) -> "StoredError":
        return cls(
            id=result.id,
            timestamp=now_ms(),
            fingerprint=result.fingerprint,
            result=result,
            count=1,
        )


class HistoryCondition(BaseModel):
    """Advisory attached to a history operation outcome"""
    kind: ConditionKind
    variant: FailureVariant = FailureVariant.GENERIC
    message: str
    remediation: Optional[str] = None
    code: Optional[str] = None


class HistoryOutcome(BaseModel):
    """Result-plus-optional-condition pair returned by every reconciler operation"""
    entries: List[StoredError] = []
    condition: Optional[HistoryCondition] = None
    entry: Optional[StoredError] = None

    @property
    def ok(self) -> bool:
        return self.condition is None


# Analysis API schemas
class AnalyzeRequest(BaseModel):
    log_text: str
    tool: Optional[str] = None


class AnalyzeResponse(BaseModel):
    result: AnalysisResult
    classification: Classification
    is_historical_match: bool
    advisory: Optional[HistoryCondition] = None


class HistoryResponse(BaseModel):
    state: ReconcilerState
    entries: List[StoredError]
    condition: Optional[HistoryCondition] = None
    total_count: int


class HistorySelectResponse(BaseModel):
    result: AnalysisResult
    is_historical_match: bool


class ToolInfo(BaseModel):
    id: str
    name: str
    description: str


# Authentication schemas
class SignupRequest(BaseModel):
    email: str
    password: str
    first_name: Optional[str] = None
    mobile: Optional[str] = None


class SignupResponse(BaseModel):
    success: bool
    message: str
    user_info: Optional[dict] = None


class LoginRequest(BaseModel):
    email: str
    password: str


class LoginResponse(BaseModel):
    access_token: str
    token_type: str
    user_info: dict


class UserInfoResponse(BaseModel):
    user_id: str
    email: str
    first_name: Optional[str] = None
    role: str
    is_admin: bool


# Admin schemas
class AdminErrorEntry(BaseModel):
    id: str
    timestamp: int
    fingerprint: str
    result: AnalysisResult
    count: int = 1
    user_email: str
    user_name: str


class AdminOverviewResponse(BaseModel):
    total_users: int
    total_errors: int
    users: List[Dict[str, Any]]
    recent_feed: List[AdminErrorEntry]
    all_errors: List[AdminErrorEntry]
    error: Optional[str] = None
