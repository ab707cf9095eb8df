"""
Persistent data store for the claims platform.

This service handles:
- Loading the snapshot with primary -> backup -> defaults recovery
- Validating and merging loaded data with the seed accounts
- Mirroring every save to the primary and backup slots
- Retention cleanup and retry when a write fails
- Collection-level CRUD with persistence after every mutation
- Export, import and statistics for operational dashboards

The store never raises to its callers: failures are logged and degrade to
a safe default.
"""

import json
import threading
from typing import Any, TypeVar

from claims_backend.config.config import Settings, get_settings
from claims_backend.config.logging_config import get_logger
from claims_backend.database.storage import StorageError, StorageSlot, build_storage_slots
from claims_backend.models.entities import (
    ActivityLog,
    AIRule,
    AppData,
    CasePriority,
    CaseStatus,
    ChatMessage,
    Document,
    EntityModel,
    PatientCase,
    User,
    UserRole,
    now_iso,
    parse_timestamp,
)
from claims_backend.models.models import DataStats
from claims_backend.services.background import BackgroundPersistence

logger = get_logger(__name__)

SCHEMA_VERSION = "1.0.0"

REQUIRED_COLLECTIONS = (
    "users",
    "activityLogs",
    "cases",
    "chatMessages",
    "documents",
    "aiRules",
)

E = TypeVar("E", bound=EntityModel)


def default_users() -> list[User]:
    """The three demo accounts that must always exist."""
    return [
        User(
            id="1",
            email="admin@insurance.com",
            name="John Administrator",
            role=UserRole.ADMIN,
            created_at="2024-01-01",
            is_active=True,
            password="admin123",
        ),
        User(
            id="2",
            email="sysadmin@insurance.com",
            name="System Administrator",
            role=UserRole.SYSTEM_ADMIN,
            created_at="2024-01-01",
            is_active=True,
            password="sysadmin123",
        ),
        User(
            id="3",
            email="doctor@healthcare.com",
            name="Dr. Sarah Johnson",
            role=UserRole.DOCTOR,
            created_at="2024-01-01",
            is_active=True,
            password="doctor123",
            specialization="Orthopedics",
            license_number="MD12345",
        ),
    ]


def default_cases() -> list[PatientCase]:
    """Seed cases for a fresh installation."""
    return [
        PatientCase(
            id="CASE001",
            patient_name="John Smith",
            accident_date="2024-01-15",
            submission_date="2024-01-20",
            status=CaseStatus.PENDING_EVALUATION,
            priority=CasePriority.HIGH,
            injury_type="Back injury",
            doctor_assigned="Dr. Sarah Johnson",
            doctor_id="3",
            admin_assigned="John Administrator",
            admin_id="1",
            claim_amount="$15,000",
            documents_count=0,
            evaluation_status="Pending medical review",
            patient_age=45,
            patient_gender="Male",
            contact_number="+1-555-0123",
            email="john.smith@email.com",
            address="123 Main St, City, State 12345",
            description="Workplace accident resulting in lower back injury",
            last_updated="2024-01-20",
            created_by="1",
        ),
        PatientCase(
            id="CASE002",
            patient_name="Maria Garcia",
            accident_date="2024-01-10",
            submission_date="2024-01-18",
            status=CaseStatus.UNDER_REVIEW,
            priority=CasePriority.MEDIUM,
            injury_type="Knee injury",
            doctor_assigned="Dr. Sarah Johnson",
            doctor_id="3",
            admin_assigned="John Administrator",
            admin_id="1",
            claim_amount="$8,500",
            documents_count=0,
            evaluation_status="Under medical evaluation",
            patient_age=32,
            patient_gender="Female",
            contact_number="+1-555-0456",
            email="maria.garcia@email.com",
            address="456 Oak Ave, City, State 12345",
            description="Sports-related knee injury requiring surgery",
            last_updated="2024-01-22",
            created_by="1",
        ),
    ]


def default_data() -> AppData:
    """A fresh snapshot holding only the seed data."""
    return AppData(
        users=default_users(),
        cases=default_cases(),
        version=SCHEMA_VERSION,
        last_backup=now_iso(),
    )


def is_valid_app_data(data: Any) -> bool:
    """
    Shape check for a parsed snapshot.

    Every collection must be present as a list and ``version`` must be a
    string.
    """
    if not isinstance(data, dict):
        return False
    if not all(isinstance(data.get(key), list) for key in REQUIRED_COLLECTIONS):
        return False
    return isinstance(data.get("version"), str)


def parse_app_data(text: str) -> AppData | None:
    """
    Parse serialized snapshot text.

    Only the shape decides validity. Individual rows that do not match
    their entity model are kept raw inside the returned snapshot.

    Returns:
        The snapshot, or None when the text is not JSON or fails the shape
        check.
    """
    try:
        raw = json.loads(text)
    except (TypeError, ValueError) as e:
        logger.warning("Snapshot is not valid JSON", error=str(e))
        return None
    if not is_valid_app_data(raw):
        logger.warning("Snapshot failed validation")
        return None
    data = AppData.from_record(raw)
    if data.raw_rows:
        logger.warning(
            "Snapshot rows kept unparsed",
            **{key: len(rows) for key, rows in data.raw_rows.items()},
        )
    return data


class DataService:
    """
    Owner of the authoritative in-memory snapshot.

    All getters return deep copies; callers change data only through the
    named mutation methods, each of which persists the full snapshot.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        primary: StorageSlot | None = None,
        backup: StorageSlot | None = None,
        autosave: bool = False,
    ):
        """
        Initialize the store and run load/recovery.

        Args:
            settings: Application settings. Uses default if not provided.
            primary: Primary slot. Built from settings if not provided.
            backup: Backup slot. Built from settings if not provided.
            autosave: Start the periodic and teardown flush triggers.
        """
        self.settings = settings or get_settings()
        if primary is None or backup is None:
            primary, backup = build_storage_slots(self.settings)
        self._primary = primary
        self._backup = backup
        self._lock = threading.RLock()
        self._data = self._load_data()
        self._persistence: BackgroundPersistence | None = None
        if autosave:
            self._persistence = BackgroundPersistence(
                self.save_data,
                self.settings.autosave_interval_seconds,
            ).start()

    # -------------------------------------------------------------------------
    # Loading and recovery
    # -------------------------------------------------------------------------

    def _read_slot(self, slot: StorageSlot) -> AppData | None:
        try:
            stored = slot.read()
        except StorageError as e:
            logger.warning("Slot unreadable", slot=slot.name, error=str(e))
            return None
        if not stored:
            return None
        return parse_app_data(stored)

    def _load_data(self) -> AppData:
        data = self._read_slot(self._primary)
        if data is not None:
            logger.info("Data loaded from primary storage", slot=self._primary.name)
            return self._merge_with_defaults(data)

        data = self._read_slot(self._backup)
        if data is not None:
            logger.warning("Data restored from backup storage", slot=self._backup.name)
            self._data = self._merge_with_defaults(data)
            self.save_data()
            return self._data

        logger.info("No valid data found, initializing with defaults")
        self._data = default_data()
        self.save_data()
        return self._data

    def _merge_with_defaults(self, data: AppData) -> AppData:
        """Append any missing seed user and stamp the current schema version."""
        known_ids = {user.id for user in data.users} | data.raw_ids("users")
        for user in default_users():
            if user.id not in known_ids:
                data.users.append(user)
        data.version = SCHEMA_VERSION
        return data

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    def _serialize(self, indent: int | None = None) -> str:
        return json.dumps(self._data.to_record(), indent=indent)

    def save_data(self) -> bool:
        """
        Persist the snapshot to the primary and backup slots.

        On a failed write, old activity logs and chat messages are pruned and
        the primary write is retried once.

        Returns:
            True if at least the primary slot holds the current snapshot.
        """
        with self._lock:
            self._data.last_backup = now_iso()
            serialized = self._serialize()
            try:
                self._primary.write(serialized)
                self._backup.write(serialized)
                logger.debug("Data saved", last_backup=self._data.last_backup)
                return True
            except StorageError as e:
                logger.error("Error saving data", error=str(e))

            self._cleanup_old_data()
            try:
                self._primary.write(self._serialize())
                logger.info("Data saved after cleanup", last_backup=self._data.last_backup)
                return True
            except StorageError as e:
                logger.error("Failed to save data even after cleanup", error=str(e))
                return False

    def _cleanup_old_data(self) -> None:
        """Keep only the most recent activity logs and chat messages."""
        log_cap = self.settings.activity_log_retention
        message_cap = self.settings.chat_message_retention

        if len(self._data.activity_logs) > log_cap:
            self._data.activity_logs = sorted(
                self._data.activity_logs,
                key=lambda log: parse_timestamp(log.timestamp),
                reverse=True,
            )[:log_cap]
        if len(self._data.chat_messages) > message_cap:
            self._data.chat_messages = sorted(
                self._data.chat_messages,
                key=lambda message: parse_timestamp(message.timestamp),
                reverse=True,
            )[:message_cap]
        logger.info(
            "Old data cleaned up",
            activity_logs=len(self._data.activity_logs),
            chat_messages=len(self._data.chat_messages),
        )

    def handle_visibility_change(self, state: str) -> bool:
        """Flush when the client reports it was hidden."""
        if self._persistence is not None:
            return self._persistence.handle_visibility_change(state)
        if state == "hidden":
            return self.save_data()
        return False

    def close(self) -> None:
        """Stop background flushing and write the final snapshot."""
        if self._persistence is not None:
            self._persistence.shutdown()
            self._persistence = None
        else:
            self.save_data()

    # -------------------------------------------------------------------------
    # Collection helpers
    # -------------------------------------------------------------------------

    def _snapshot(self, items: list[E]) -> list[E]:
        with self._lock:
            return [item.model_copy(deep=True) for item in items]

    def _append(self, items: list[E], item: E) -> None:
        with self._lock:
            items.append(item.model_copy(deep=True))
            self.save_data()

    def _replace(self, items: list[E], item: E) -> bool:
        with self._lock:
            for index, existing in enumerate(items):
                if existing.id == item.id:
                    items[index] = item.model_copy(deep=True)
                    self.save_data()
                    return True
            return False

    def _remove(self, name: str, item_id: str) -> bool:
        with self._lock:
            items = getattr(self._data, name)
            kept = [item for item in items if item.id != item_id]
            setattr(self._data, name, kept)
            self.save_data()
            return len(kept) != len(items)

    # -------------------------------------------------------------------------
    # Users
    # -------------------------------------------------------------------------

    def get_users(self) -> list[User]:
        return self._snapshot(self._data.users)

    def add_user(self, user: User) -> None:
        self._append(self._data.users, user)

    def update_user(self, user: User) -> bool:
        return self._replace(self._data.users, user)

    def delete_user(self, user_id: str) -> bool:
        return self._remove("users", user_id)

    # -------------------------------------------------------------------------
    # Cases
    # -------------------------------------------------------------------------

    def get_cases(self) -> list[PatientCase]:
        return self._snapshot(self._data.cases)

    def add_case(self, case: PatientCase) -> None:
        self._append(self._data.cases, case)

    def update_case(self, case: PatientCase) -> bool:
        return self._replace(self._data.cases, case)

    def delete_case(self, case_id: str) -> bool:
        """Remove a case together with its chat messages and documents."""
        with self._lock:
            before = len(self._data.cases)
            self._data.cases = [c for c in self._data.cases if c.id != case_id]
            self._data.chat_messages = [
                m for m in self._data.chat_messages if m.case_id != case_id
            ]
            self._data.documents = [
                d for d in self._data.documents if d.case_id != case_id
            ]
            self._data.drop_raw_rows_for_case(case_id)
            self.save_data()
            return len(self._data.cases) != before

    # -------------------------------------------------------------------------
    # Activity logs
    # -------------------------------------------------------------------------

    def get_activity_logs(self) -> list[ActivityLog]:
        return self._snapshot(self._data.activity_logs)

    def add_activity_log(self, log: ActivityLog) -> None:
        self._append(self._data.activity_logs, log)

    # -------------------------------------------------------------------------
    # Chat messages
    # -------------------------------------------------------------------------

    def get_chat_messages(self) -> list[ChatMessage]:
        return self._snapshot(self._data.chat_messages)

    def add_chat_message(self, message: ChatMessage) -> None:
        self._append(self._data.chat_messages, message)

    def update_chat_message(self, message: ChatMessage) -> bool:
        return self._replace(self._data.chat_messages, message)

    def delete_chat_message(self, message_id: str) -> bool:
        return self._remove("chat_messages", message_id)

    # -------------------------------------------------------------------------
    # Documents
    # -------------------------------------------------------------------------

    def get_documents(self) -> list[Document]:
        return self._snapshot(self._data.documents)

    def add_document(self, document: Document) -> None:
        self._append(self._data.documents, document)

    def update_document(self, document: Document) -> bool:
        return self._replace(self._data.documents, document)

    def delete_document(self, document_id: str) -> bool:
        return self._remove("documents", document_id)

    # -------------------------------------------------------------------------
    # AI rules
    # -------------------------------------------------------------------------

    def get_ai_rules(self) -> list[AIRule]:
        return self._snapshot(self._data.ai_rules)

    def add_ai_rule(self, rule: AIRule) -> None:
        self._append(self._data.ai_rules, rule)

    def update_ai_rule(self, rule: AIRule) -> bool:
        return self._replace(self._data.ai_rules, rule)

    def delete_ai_rule(self, rule_id: str) -> bool:
        return self._remove("ai_rules", rule_id)

    # -------------------------------------------------------------------------
    # Backup and recovery
    # -------------------------------------------------------------------------

    def export_data(self) -> str:
        """Pretty-printed serialization of the current snapshot."""
        with self._lock:
            return self._serialize(indent=2)

    def import_data(self, text: str) -> bool:
        """
        Replace the snapshot with imported data.

        Invalid input leaves the current snapshot untouched.

        Returns:
            True if the data was valid and adopted.
        """
        imported = parse_app_data(text)
        if imported is None:
            logger.warning("Import rejected")
            return False
        with self._lock:
            self._data = self._merge_with_defaults(imported)
            self.save_data()
        logger.info("Data imported", **self.get_data_stats().model_dump(exclude={"last_backup"}))
        return True

    def get_data_stats(self) -> DataStats:
        with self._lock:
            return DataStats(
                users=self._data.record_count("users"),
                cases=self._data.record_count("cases"),
                activity_logs=self._data.record_count("activityLogs"),
                chat_messages=self._data.record_count("chatMessages"),
                documents=self._data.record_count("documents"),
                ai_rules=self._data.record_count("aiRules"),
                last_backup=self._data.last_backup,
                version=self._data.version,
            )


# Singleton instance for dependency injection
_data_service: DataService | None = None


def get_data_service() -> DataService:
    """
    Get the data service singleton.

    Returns:
        The shared DataService instance, with background persistence
        enabled according to the settings.
    """
    global _data_service
    if _data_service is None:
        settings = get_settings()
        _data_service = DataService(settings, autosave=settings.autosave_enabled)
    return _data_service


def reset_data_service() -> None:
    """Close and drop the shared instance."""
    global _data_service
    if _data_service is not None:
        _data_service.close()
        _data_service = None
