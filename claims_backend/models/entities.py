"""
Domain entities persisted in the application snapshot.

Field names are snake_case in Python and camelCase on the wire, matching the
JSON stored in the primary and backup slots. Unknown fields on stored
records are kept so a load/save cycle never drops data.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, ValidationError
from pydantic.alias_generators import to_camel


def now_iso() -> str:
    """Current UTC time as an ISO 8601 string."""
    return datetime.now(timezone.utc).isoformat()


def parse_timestamp(value: str | None) -> datetime:
    """
    Parse a stored timestamp for ordering.

    Accepts full ISO datetimes (with or without a trailing ``Z``) and bare
    dates. Unparseable values sort as the oldest possible instant.
    """
    if not value:
        return datetime.min.replace(tzinfo=timezone.utc)
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return datetime.min.replace(tzinfo=timezone.utc)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class UserRole(str, Enum):
    """Roles a platform user can hold."""
    ADMIN = "admin"
    DOCTOR = "doctor"
    SYSTEM_ADMIN = "system-admin"


class CaseStatus(str, Enum):
    """Lifecycle status of a patient case."""
    PENDING_EVALUATION = "pending-evaluation"
    UNDER_REVIEW = "under-review"
    COMPLETED = "completed"
    REJECTED = "rejected"


class CasePriority(str, Enum):
    """Handling priority of a patient case."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ActivityAction(str, Enum):
    """Closed vocabulary of audited operations."""
    LOGIN = "LOGIN"
    LOGOUT = "LOGOUT"
    CREATE_CASE = "CREATE_CASE"
    UPDATE_CASE = "UPDATE_CASE"
    DELETE_CASE = "DELETE_CASE"
    ASSIGN_CASE = "ASSIGN_CASE"
    UPLOAD_DOCUMENTS = "UPLOAD_DOCUMENTS"
    DELETE_DOCUMENT = "DELETE_DOCUMENT"
    SAVE_EVALUATION = "SAVE_EVALUATION"
    SUBMIT_EVALUATION = "SUBMIT_EVALUATION"
    CREATE_USER = "CREATE_USER"
    DEACTIVATE_USER = "DEACTIVATE_USER"
    SEND_MESSAGE = "SEND_MESSAGE"
    VIEW_DASHBOARD = "VIEW_DASHBOARD"
    OPEN_CASE = "OPEN_CASE"


UNASSIGNED_DOCTOR = "Unassigned"


class EntityModel(BaseModel):
    """Base for stored records: camelCase aliases, extra fields preserved."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
        use_enum_values=True,
    )

    def to_record(self) -> dict[str, Any]:
        """Serialize to the stored JSON shape."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class User(EntityModel):
    """
    A platform account.

    Passwords are stored in plaintext; this is demo data, not a security
    design.
    """
    id: str
    email: str
    name: str
    role: UserRole
    created_at: str
    last_login: str | None = None
    is_active: bool = True
    specialization: str | None = None
    license_number: str | None = None
    password: str | None = None


class PatientCase(EntityModel):
    """
    An insurance claim under medical evaluation.

    Attributes:
        doctor_id: Assigned doctor's user id, empty when unassigned.
        doctor_assigned: Assigned doctor's display name, ``"Unassigned"``
            whenever ``doctor_id`` is empty.
        documents_count: Number of documents whose ``case_id`` is this id.
        evaluation: Last saved evaluation form payload, if any.
    """
    id: str
    patient_name: str
    accident_date: str = ""
    submission_date: str = ""
    status: CaseStatus = CaseStatus.PENDING_EVALUATION
    priority: CasePriority = CasePriority.MEDIUM
    injury_type: str = ""
    doctor_assigned: str = UNASSIGNED_DOCTOR
    doctor_id: str = ""
    admin_assigned: str = ""
    admin_id: str = ""
    claim_amount: str = ""
    documents_count: int = 0
    evaluation_status: str = ""
    patient_age: int | None = None
    patient_gender: str | None = None
    contact_number: str | None = None
    email: str | None = None
    address: str | None = None
    description: str | None = None
    last_updated: str = Field(default_factory=now_iso)
    created_by: str = ""
    insurance_policy: str | None = None
    accident_location: str | None = None
    evaluation: dict[str, Any] | None = None


class Document(EntityModel):
    """An uploaded document attached to a case."""
    id: str
    name: str
    type: str
    upload_date: str
    uploaded_by: str
    uploaded_by_id: str
    size: str
    pages: int = 1
    category: str = ""
    case_id: str
    file_path: str = ""
    file_url: str | None = None
    preview_image_url: str | None = None
    content: str | None = None


class ChatMessage(EntityModel):
    """A case chat message; no ``recipient_role`` means broadcast."""
    id: str
    case_id: str
    sender_id: str
    sender_name: str
    sender_role: UserRole
    message: str
    timestamp: str = Field(default_factory=now_iso)
    is_read: bool = False
    recipient_role: UserRole | None = None


class ActivityLog(EntityModel):
    """
    Append-only audit record.

    ``action`` is one of :class:`ActivityAction` for records written here;
    imported logs may carry other action names and are kept as they are.
    """
    id: str
    user_id: str
    user_name: str
    user_role: str
    action: str
    case_id: str | None = None
    case_name: str | None = None
    timestamp: str = Field(default_factory=now_iso)
    details: str = ""
    ip_address: str | None = None


class AIRule(EntityModel):
    """Evaluation guidance supplied to the AI assistant."""
    id: str
    title: str
    content: str
    category: str = ""
    is_active: bool = True
    created_by: str = ""
    updated_at: str = Field(default_factory=now_iso)


SNAPSHOT_COLLECTIONS: dict[str, type[EntityModel]] = {
    "users": User,
    "activityLogs": ActivityLog,
    "cases": PatientCase,
    "chatMessages": ChatMessage,
    "documents": Document,
    "aiRules": AIRule,
}


class AppData(EntityModel):
    """
    The whole persisted snapshot.

    Stored rows that do not fit their entity model are carried as raw JSON
    next to the parsed records and written back unchanged, so loading a
    snapshot never loses data it cannot interpret.
    """
    users: list[User] = Field(default_factory=list)
    activity_logs: list[ActivityLog] = Field(default_factory=list)
    cases: list[PatientCase] = Field(default_factory=list)
    chat_messages: list[ChatMessage] = Field(default_factory=list)
    documents: list[Document] = Field(default_factory=list)
    ai_rules: list[AIRule] = Field(default_factory=list)
    version: str
    last_backup: str = ""

    _raw_rows: dict[str, list[Any]] = PrivateAttr(default_factory=dict)

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "AppData":
        """
        Build a snapshot from its stored JSON shape.

        The record must already have every collection as a list and a string
        ``version``. Each row is parsed on its own; rows that fail are kept
        raw instead of rejecting the snapshot.
        """
        values = {k: v for k, v in record.items() if k not in SNAPSHOT_COLLECTIONS}
        if not isinstance(values.get("lastBackup"), str):
            values.pop("lastBackup", None)

        raw_rows: dict[str, list[Any]] = {}
        for key, model in SNAPSHOT_COLLECTIONS.items():
            parsed = []
            for row in record[key]:
                try:
                    parsed.append(model.model_validate(row))
                except ValidationError:
                    raw_rows.setdefault(key, []).append(row)
            values[key] = parsed

        data = cls.model_validate(values)
        data._raw_rows = raw_rows
        return data

    @property
    def raw_rows(self) -> dict[str, list[Any]]:
        """Rows kept verbatim, by stored collection name."""
        return self._raw_rows

    def record_count(self, key: str) -> int:
        """Parsed plus raw rows of a stored collection."""
        field_name = next(name for name, f in type(self).model_fields.items() if f.alias == key)
        return len(getattr(self, field_name)) + len(self._raw_rows.get(key, []))

    def raw_ids(self, key: str) -> set[Any]:
        return {row.get("id") for row in self._raw_rows.get(key, []) if isinstance(row, dict)}

    def drop_raw_rows_for_case(self, case_id: str) -> None:
        """Remove raw case-owned rows along with their case."""
        for key in ("cases", "chatMessages", "documents"):
            owner = "id" if key == "cases" else "caseId"
            if key in self._raw_rows:
                self._raw_rows[key] = [
                    row for row in self._raw_rows[key]
                    if not (isinstance(row, dict) and row.get(owner) == case_id)
                ]

    def to_record(self) -> dict[str, Any]:
        record = super().to_record()
        for key, rows in self._raw_rows.items():
            record[key] = record.get(key, []) + rows
        return record
