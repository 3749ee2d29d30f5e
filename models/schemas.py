from pydantic import BaseModel, ConfigDict, Field, model_validator
from typing import Dict, Any, Optional
from datetime import datetime, timezone
from enum import Enum


class VariantType(str, Enum):
    SCAFFOLDING = "scaffolding"
    ORIGINAL = "original"
    ENRICHMENT = "enrichment"


class PedagogicalAction(str, Enum):
    MASTERED = "mastered"
    CHALLENGE = "challenge"
    REMEDIATE = "remediate"
    CONTINUE = "continue"


class RiskTier(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class CacheEntryStatus(str, Enum):
    ABSENT = "absent"
    PENDING = "pending"
    READY = "ready"
    ERROR = "error"


class WaiterState(str, Enum):
    IDLE = "idle"
    POLLING = "polling"
    READY = "ready"
    TIMED_OUT = "timed_out"
    ERRORED = "errored"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


TERMINAL_WAITER_STATES = frozenset({
    WaiterState.READY,
    WaiterState.TIMED_OUT,
    WaiterState.ERRORED,
})


# Core engine records

class Interaction(BaseModel):
    """One answered attempt, produced by the exercise-delivery side"""
    model_config = ConfigDict(frozen=True)

    is_correct: bool
    hints_used: int = Field(0, ge=0)
    response_time_sec: float = Field(0.0, ge=0)
    timestamp: datetime = Field(default_factory=_utcnow)


class MasteryState(BaseModel):
    """Mastery estimate for one (student, skill) pair"""
    model_config = ConfigDict(frozen=True)

    student_id: str
    skill_id: str
    probability: float = Field(..., ge=0.01, le=0.99)
    interaction_count: int = Field(0, ge=0)
    updated_at: datetime = Field(default_factory=_utcnow)


class PerformanceSignal(BaseModel):
    """Aggregate over a student's recent interactions"""
    model_config = ConfigDict(frozen=True)

    accuracy: float = Field(..., ge=0, le=1)
    hint_dependency: float = Field(..., ge=0, le=1)
    avg_mastery: float = Field(0.5, ge=0, le=1)
    total_attempts: int = Field(0, ge=0)
    avg_response_time_sec: float = Field(0.0, ge=0)


class VariantKey(BaseModel):
    """Identifies one generated content variant"""
    model_config = ConfigDict(frozen=True)

    content_id: str = Field(..., min_length=1)
    variant_type: VariantType

    def __str__(self) -> str:
        return f"{self.content_id}:{self.variant_type.value}"


class VariantCacheEntry(BaseModel):
    """Observed state of a variant in the content cache"""
    key: VariantKey
    status: CacheEntryStatus
    payload: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    generated_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _payload_matches_status(self):
        if self.status == CacheEntryStatus.READY and self.payload is None:
            raise ValueError("ready cache entry requires a payload")
        if self.status != CacheEntryStatus.READY and self.payload is not None:
            raise ValueError(f"{self.status.value} cache entry cannot carry a payload")
        return self

    @property
    def is_ready(self) -> bool:
        return self.status == CacheEntryStatus.READY


class VariantPollUpdate(BaseModel):
    """Snapshot emitted by the readiness waiter on every state change"""
    key: VariantKey
    state: WaiterState
    variant: Optional[Dict[str, Any]] = None
    is_loading: bool = False
    error: Optional[str] = None
    is_timeout: bool = False
    elapsed_ms: float = 0.0

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_WAITER_STATES


# API request/response schemas

class MasteryUpdateRequest(BaseModel):
    student_id: str
    skill_id: str
    prior: Optional[float] = Field(None, description="Stored mastery; omitted for a first interaction")
    interaction_count: int = Field(0, ge=0, description="Interactions already folded into prior")
    is_correct: bool
    hints_used: int = Field(0, ge=0)
    response_time_sec: float = Field(0.0, ge=0)
    accuracy: Optional[float] = Field(None, description="Recent accuracy, used to pick the next action")


class MasteryUpdateResponse(BaseModel):
    student_id: str
    skill_id: str
    prior: float
    mastery: float
    action: PedagogicalAction
    interaction_count: int


class ActionRequest(BaseModel):
    mastery: float
    accuracy: float


class ActionResponse(BaseModel):
    action: PedagogicalAction


class VariantSelectionRequest(BaseModel):
    mastery: float
    accuracy: float
    has_scaffolding: bool = False
    has_enrichment: bool = False


class InitialVariantRequest(BaseModel):
    topic_mastery: Optional[float] = None
    has_scaffolding: bool = False
    has_enrichment: bool = False


class VariantSelectionResponse(BaseModel):
    variant_type: VariantType


class RiskRequest(BaseModel):
    accuracy: float
    hint_dependency: float
    avg_mastery: float


class RiskResponse(BaseModel):
    risk_level: RiskTier


class VariantWaitRequest(BaseModel):
    content_id: str = Field(..., min_length=1)
    variant_type: VariantType
    interval_ms: Optional[int] = Field(None, gt=0)
    timeout_ms: Optional[int] = Field(None, gt=0)


class HealthCheckResponse(BaseModel):
    status: str
    timestamp: str
    services: Dict[str, str]
