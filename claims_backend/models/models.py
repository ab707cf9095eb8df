"""
Pydantic models for API request/response validation.

All models are explicit, documented, and enforce strict validation.
Payloads use camelCase on the wire, like the stored snapshot.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from claims_backend.models.entities import (
    CasePriority,
    CaseStatus,
    Document,
    PatientCase,
    User,
    UserRole,
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ApiModel(BaseModel):
    """Base for API payloads: camelCase aliases, snake_case accepted."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ============================================================================
# Auth and users
# ============================================================================

class LoginRequest(ApiModel):
    """Credentials for a login attempt."""
    email: str = Field(..., min_length=1, max_length=320, description="Account email")
    password: str = Field(..., min_length=1, max_length=256, description="Account password")

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip()


class UserProfile(ApiModel):
    """
    A user as exposed over the API.

    The password never leaves the service.
    """
    id: str
    email: str
    name: str
    role: UserRole
    created_at: str
    last_login: str | None = None
    is_active: bool
    specialization: str | None = None
    license_number: str | None = None

    @classmethod
    def from_user(cls, user: User) -> "UserProfile":
        return cls.model_validate(user.model_dump(exclude={"password"}))


class LoginResponse(ApiModel):
    """
    Successful login.

    Attributes:
        session_token: Value to send back in the ``X-Session-Token`` header.
        user: The authenticated user.
    """
    session_token: str = Field(..., description="Opaque session token")
    user: UserProfile


class UserCreateRequest(ApiModel):
    """New account details supplied by an administrator."""
    email: str = Field(..., min_length=3, max_length=320)
    name: str = Field(..., min_length=1, max_length=200)
    role: UserRole
    password: str = Field(..., min_length=6, max_length=256)
    specialization: str | None = None
    license_number: str | None = None

    @field_validator("email", "name")
    @classmethod
    def strip_text(cls, v: str) -> str:
        cleaned = v.strip()
        if not cleaned:
            raise ValueError("Value cannot be empty")
        return cleaned


class UserUpdateRequest(ApiModel):
    """Partial profile update."""
    name: str | None = Field(default=None, min_length=1, max_length=200)
    specialization: str | None = None
    license_number: str | None = None
    password: str | None = Field(default=None, min_length=6, max_length=256)


# ============================================================================
# Cases
# ============================================================================

class CaseCreateRequest(ApiModel):
    """Details for a new patient case."""
    patient_name: str = Field(..., min_length=1, max_length=200)
    accident_date: str = Field(..., description="ISO date of the accident")
    injury_type: str = Field(..., min_length=1, max_length=200)
    priority: CasePriority = CasePriority.MEDIUM
    claim_amount: str = Field(default="", max_length=50)
    doctor_id: str | None = Field(default=None, description="Doctor to assign immediately")
    patient_age: int | None = Field(default=None, ge=0, le=150)
    patient_gender: str | None = None
    contact_number: str | None = None
    email: str | None = None
    address: str | None = None
    description: str | None = Field(default=None, max_length=5000)
    insurance_policy: str | None = None
    accident_location: str | None = None


class CaseUpdateRequest(ApiModel):
    """Partial case update; omitted fields keep their values."""
    patient_name: str | None = Field(default=None, min_length=1, max_length=200)
    accident_date: str | None = None
    status: CaseStatus | None = None
    priority: CasePriority | None = None
    injury_type: str | None = None
    claim_amount: str | None = None
    evaluation_status: str | None = None
    patient_age: int | None = Field(default=None, ge=0, le=150)
    patient_gender: str | None = None
    contact_number: str | None = None
    email: str | None = None
    address: str | None = None
    description: str | None = Field(default=None, max_length=5000)
    insurance_policy: str | None = None
    accident_location: str | None = None


class AssignCaseRequest(ApiModel):
    """Doctor assignment for a case."""
    doctor_id: str = Field(..., min_length=1)


class EvaluationRequest(ApiModel):
    """Evaluation form contents (causality and disability assessment)."""
    evaluation: dict[str, Any] = Field(default_factory=dict)


class DashboardResponse(ApiModel):
    """Role-specific dashboard summary."""
    role: UserRole
    cases: list[PatientCase] = Field(default_factory=list)
    unread_messages: int = Field(default=0, ge=0)
    stats: "DataStats | None" = None


class DocumentUploadResponse(ApiModel):
    """
    Outcome of a multi-file upload.

    Attributes:
        uploaded: Documents that were stored.
        rejected: One message per file that failed validation.
    """
    uploaded: list[Document] = Field(default_factory=list)
    rejected: list[str] = Field(default_factory=list)


# ============================================================================
# Chat
# ============================================================================

class SendMessageRequest(ApiModel):
    """A chat message for a case."""
    message: str = Field(..., min_length=1, max_length=5000)
    recipient_role: UserRole | None = Field(
        default=None,
        description="Target role; omit to broadcast to every role"
    )

    @field_validator("message")
    @classmethod
    def validate_message(cls, v: str) -> str:
        """Validate and clean the message."""
        cleaned = v.strip()
        if not cleaned:
            raise ValueError("Message cannot be empty")
        return cleaned


class UnreadCountResponse(ApiModel):
    """Unread chat messages for the current user."""
    count: int = Field(..., ge=0)
    case_id: str | None = None


# ============================================================================
# AI rules
# ============================================================================

class AIRuleRequest(ApiModel):
    """Create or replace an AI evaluation rule."""
    title: str = Field(..., min_length=1, max_length=200)
    content: str = Field(..., min_length=1, max_length=10000)
    category: str = Field(default="", max_length=100)
    is_active: bool = True


# ============================================================================
# Data management
# ============================================================================

class DataStats(ApiModel):
    """Collection counts and persistence metadata."""
    users: int
    cases: int
    activity_logs: int
    chat_messages: int
    documents: int
    ai_rules: int
    last_backup: str
    version: str


class ImportResponse(ApiModel):
    """Outcome of a data import."""
    success: bool
    stats: DataStats | None = None


class VisibilityRequest(ApiModel):
    """Client visibility change, mirroring the browser's visibilityState."""
    state: Literal["visible", "hidden"]


class VisibilityResponse(ApiModel):
    """Whether a flush ran for the reported state."""
    flushed: bool


# ============================================================================
# Health and errors
# ============================================================================

class HealthStatus(str, Enum):
    """System health status levels."""
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


class HealthResponse(BaseModel):
    """
    Health check response for monitoring.

    Attributes:
        status: Overall system health status.
        version: Application version.
        environment: Deployment environment.
        checks: Individual component health checks.
    """
    status: HealthStatus = Field(..., description="Overall health status")
    version: str = Field(..., description="Application version")
    environment: str = Field(..., description="Deployment environment")
    timestamp: datetime = Field(default_factory=_utcnow, description="Check timestamp")
    checks: dict[str, bool] = Field(default_factory=dict, description="Component health checks")


class ErrorResponse(BaseModel):
    """
    Standardized error response.

    Attributes:
        error: Error type/code.
        message: Human-readable error message.
        details: Additional error details.
        request_id: Request ID for tracing.
    """
    error: str = Field(..., description="Error type")
    message: str = Field(..., description="Error message")
    details: dict | None = Field(default=None, description="Additional details")
    request_id: str | None = Field(default=None, description="Request ID for tracing")
    timestamp: datetime = Field(default_factory=_utcnow, description="Error timestamp")


DashboardResponse.model_rebuild()
