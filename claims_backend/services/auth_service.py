"""
Authentication, user management and activity auditing.

Sessions are explicit objects handed to every session-scoped call, so any
number of users can be logged in to one process at a time.
"""

import threading
from dataclasses import dataclass, field
from uuid import uuid4

from claims_backend.config.logging_config import get_logger
from claims_backend.models.entities import (
    UNASSIGNED_DOCTOR,
    ActivityAction,
    ActivityLog,
    User,
    UserRole,
    now_iso,
    parse_timestamp,
)
from claims_backend.services.data_service import DataService, get_data_service
from claims_backend.services.errors import ErrorKind, OperationResult

logger = get_logger(__name__)

DEFAULT_IP_ADDRESS = "127.0.0.1"


@dataclass
class Session:
    """
    One client's login state.

    Attributes:
        session_id: Opaque token identifying the session.
        user: The authenticated user, None until login succeeds.
        ip_address: Client address recorded on activity logs.
    """
    session_id: str = field(default_factory=lambda: uuid4().hex)
    user: User | None = None
    ip_address: str = DEFAULT_IP_ADDRESS

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None


class SessionRegistry:
    """Token -> Session lookup for the HTTP layer."""

    def __init__(self) -> None:
        self._sessions: dict[str, Session] = {}
        self._lock = threading.Lock()

    def create(self, ip_address: str | None = None) -> Session:
        session = Session(ip_address=ip_address or DEFAULT_IP_ADDRESS)
        with self._lock:
            self._sessions[session.session_id] = session
        return session

    def get(self, session_id: str) -> Session | None:
        with self._lock:
            return self._sessions.get(session_id)

    def discard(self, session_id: str) -> None:
        with self._lock:
            self._sessions.pop(session_id, None)

    def discard_user(self, user_id: str) -> int:
        """Drop every session of a user; returns how many were dropped."""
        with self._lock:
            stale = [
                sid for sid, s in self._sessions.items()
                if s.user is not None and s.user.id == user_id
            ]
            for sid in stale:
                del self._sessions[sid]
        return len(stale)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)


class AuthService:
    """
    Session-aware user operations on top of the data store.

    Login failures are deliberately undifferentiated: unknown email, wrong
    password and inactive account all produce the same result.
    """

    def __init__(self, data_service: DataService | None = None):
        self.data = data_service or get_data_service()

    # -------------------------------------------------------------------------
    # Sessions
    # -------------------------------------------------------------------------

    def login(self, session: Session, email: str, password: str) -> OperationResult[User]:
        """
        Authenticate and bind the user to the session.

        Args:
            session: Session to log in.
            email: Account email.
            password: Plaintext password.

        Returns:
            The logged-in user, or an authentication failure.
        """
        user = next(
            (
                u for u in self.data.get_users()
                if u.email == email and u.password == password and u.is_active
            ),
            None,
        )
        if user is None:
            logger.info("Login rejected", session_id=session.session_id)
            return OperationResult.failure(ErrorKind.AUTHENTICATION, "Invalid email or password")

        user.last_login = now_iso()
        self.data.update_user(user)
        session.user = user.model_copy(deep=True)
        self.log_activity(session, ActivityAction.LOGIN, details="User logged in")
        logger.info("User logged in", user_id=user.id, role=user.role)
        return OperationResult.success(user)

    def logout(self, session: Session) -> None:
        if session.user is None:
            return
        self.log_activity(session, ActivityAction.LOGOUT, details="User logged out")
        logger.info("User logged out", user_id=session.user.id)
        session.user = None

    def get_current_user(self, session: Session) -> User | None:
        return session.user.model_copy(deep=True) if session.user else None

    def refresh_session(self, session: Session) -> bool:
        """
        Re-read the session's user from the store.

        A user who was deleted or deactivated since login is signed out.

        Returns:
            True if the session is still authenticated.
        """
        if session.user is None:
            return False
        current = self.get_user(session.user.id)
        if current is None or not current.is_active:
            logger.info("Session ended for inactive user", user_id=session.user.id)
            session.user = None
            return False
        session.user = current
        return True

    # -------------------------------------------------------------------------
    # Users
    # -------------------------------------------------------------------------

    def get_all_users(self) -> list[User]:
        return self.data.get_users()

    def get_user(self, user_id: str) -> User | None:
        return next((u for u in self.data.get_users() if u.id == user_id), None)

    def get_doctors(self) -> list[User]:
        return [u for u in self.data.get_users() if u.role == UserRole.DOCTOR and u.is_active]

    def get_admins(self) -> list[User]:
        return [u for u in self.data.get_users() if u.role == UserRole.ADMIN and u.is_active]

    def create_user(
        self,
        session: Session,
        email: str,
        name: str,
        role: UserRole,
        password: str,
        specialization: str | None = None,
        license_number: str | None = None,
    ) -> OperationResult[User]:
        """Create an active account; emails are unique."""
        if any(u.email.lower() == email.lower() for u in self.data.get_users()):
            return OperationResult.failure(ErrorKind.CONFLICT, f"A user with email {email} already exists")

        user = User(
            id=uuid4().hex,
            email=email,
            name=name,
            role=role,
            created_at=now_iso(),
            is_active=True,
            password=password,
            specialization=specialization,
            license_number=license_number,
        )
        self.data.add_user(user)
        self.log_activity(
            session,
            ActivityAction.CREATE_USER,
            details=f"Created new user: {user.name} ({user.role})",
        )
        logger.info("User created", user_id=user.id, role=user.role)
        return OperationResult.success(user)

    def update_user(self, user: User) -> bool:
        return self.data.update_user(user)

    def deactivate_user(self, session: Session, user_id: str) -> OperationResult[User]:
        """
        Soft-delete a user.

        A deactivated doctor is removed from every case assigned to them.
        """
        user = self.get_user(user_id)
        if user is None:
            return OperationResult.failure(ErrorKind.NOT_FOUND, f"User {user_id} not found")

        user.is_active = False
        self.data.update_user(user)

        unassigned = 0
        if user.role == UserRole.DOCTOR:
            unassigned = self._unassign_doctor_cases(user.id)

        self.log_activity(
            session,
            ActivityAction.DEACTIVATE_USER,
            details=f"Deactivated user: {user.name}",
        )
        logger.info("User deactivated", user_id=user.id, cases_unassigned=unassigned)
        return OperationResult.success(user)

    def _unassign_doctor_cases(self, doctor_id: str) -> int:
        count = 0
        for case in self.data.get_cases():
            if case.doctor_id != doctor_id:
                continue
            case.doctor_id = ""
            case.doctor_assigned = UNASSIGNED_DOCTOR
            case.last_updated = now_iso()
            self.data.update_case(case)
            count += 1
        return count

    # -------------------------------------------------------------------------
    # Activity logs
    # -------------------------------------------------------------------------

    def log_activity(
        self,
        session: Session,
        action: ActivityAction,
        case_id: str | None = None,
        case_name: str | None = None,
        details: str = "",
    ) -> ActivityLog | None:
        """
        Append an audit entry for the session's user.

        Returns:
            The entry, or None when the session is not authenticated.
        """
        if session.user is None:
            return None
        log = ActivityLog(
            id=uuid4().hex,
            user_id=session.user.id,
            user_name=session.user.name,
            user_role=session.user.role,
            action=ActivityAction(action).value,
            case_id=case_id,
            case_name=case_name,
            timestamp=now_iso(),
            details=details,
            ip_address=session.ip_address,
        )
        self.data.add_activity_log(log)
        return log

    def get_activity_logs(self) -> list[ActivityLog]:
        """All activity logs, newest first."""
        return sorted(
            self.data.get_activity_logs(),
            key=lambda log: parse_timestamp(log.timestamp),
            reverse=True,
        )

    def get_user_activity_logs(self, user_id: str) -> list[ActivityLog]:
        return [log for log in self.get_activity_logs() if log.user_id == user_id]


# Singleton instances for dependency injection
_auth_service: AuthService | None = None
_session_registry: SessionRegistry | None = None


def get_auth_service() -> AuthService:
    """
    Get the auth service singleton.

    Returns:
        The shared AuthService instance.
    """
    global _auth_service
    if _auth_service is None:
        _auth_service = AuthService()
    return _auth_service


def get_session_registry() -> SessionRegistry:
    """Get the process-wide session registry."""
    global _session_registry
    if _session_registry is None:
        _session_registry = SessionRegistry()
    return _session_registry


def reset_auth_service() -> None:
    global _auth_service, _session_registry
    _auth_service = None
    _session_registry = None
