"""
Case lifecycle rules: creation, updates, doctor assignment and evaluation.

Every mutation stamps ``last_updated`` and is recorded in the activity log
of the acting session.
"""

import re
from datetime import date
from typing import Any

from claims_backend.config.logging_config import get_logger
from claims_backend.models.entities import (
    UNASSIGNED_DOCTOR,
    ActivityAction,
    CaseStatus,
    PatientCase,
    UserRole,
    now_iso,
)
from claims_backend.models.models import CaseCreateRequest, CaseUpdateRequest
from claims_backend.services.auth_service import AuthService, Session, get_auth_service
from claims_backend.services.data_service import DataService
from claims_backend.services.errors import ErrorKind, OperationResult

logger = get_logger(__name__)

_CASE_ID_PATTERN = re.compile(r"^CASE(\d+)$")


class CaseService:
    """Case operations for authenticated sessions."""

    def __init__(self, auth_service: AuthService | None = None):
        self.auth = auth_service or get_auth_service()

    @property
    def data(self) -> DataService:
        return self.auth.data

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def get_cases(self) -> list[PatientCase]:
        return self.data.get_cases()

    def get_case(self, case_id: str) -> OperationResult[PatientCase]:
        case = next((c for c in self.data.get_cases() if c.id == case_id), None)
        if case is None:
            return OperationResult.failure(ErrorKind.NOT_FOUND, f"Case {case_id} not found")
        return OperationResult.success(case)

    def get_cases_for_doctor(self, doctor_id: str) -> list[PatientCase]:
        return [c for c in self.data.get_cases() if c.doctor_id == doctor_id]

    def get_unassigned_cases(self) -> list[PatientCase]:
        return [c for c in self.data.get_cases() if not c.doctor_id]

    def get_cases_for_user(self, session: Session) -> list[PatientCase]:
        """Doctors see their own cases; administrators see every case."""
        user = session.user
        if user is None:
            return []
        if user.role == UserRole.DOCTOR:
            return self.get_cases_for_doctor(user.id)
        return self.get_cases()

    def open_case(self, session: Session, case_id: str) -> OperationResult[PatientCase]:
        result = self.get_case(case_id)
        if result.ok:
            self.auth.log_activity(
                session,
                ActivityAction.OPEN_CASE,
                case_id=case_id,
                case_name=result.value.patient_name,
                details=f"Opened case {case_id}",
            )
        return result

    def record_dashboard_view(self, session: Session) -> None:
        if session.user is None:
            return
        self.auth.log_activity(
            session,
            ActivityAction.VIEW_DASHBOARD,
            details=f"Viewed {session.user.role} dashboard",
        )

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def _next_case_id(self) -> str:
        numbers = [
            int(match.group(1))
            for case in self.data.get_cases()
            if (match := _CASE_ID_PATTERN.match(case.id))
        ]
        return f"CASE{max(numbers, default=0) + 1:03d}"

    def create_case(self, session: Session, request: CaseCreateRequest) -> OperationResult[PatientCase]:
        """Create a pending case, optionally assigning a doctor right away."""
        if session.user is None:
            return OperationResult.failure(ErrorKind.AUTHENTICATION, "Login required")

        creator = session.user
        fields = request.model_dump(exclude={"doctor_id"}, exclude_none=True)
        case = PatientCase(
            id=self._next_case_id(),
            submission_date=date.today().isoformat(),
            status=CaseStatus.PENDING_EVALUATION,
            doctor_assigned=UNASSIGNED_DOCTOR,
            doctor_id="",
            admin_assigned=creator.name if creator.role == UserRole.ADMIN else "",
            admin_id=creator.id if creator.role == UserRole.ADMIN else "",
            documents_count=0,
            evaluation_status="Pending medical review",
            last_updated=now_iso(),
            created_by=creator.id,
            **fields,
        )
        self.data.add_case(case)
        self.auth.log_activity(
            session,
            ActivityAction.CREATE_CASE,
            case_id=case.id,
            case_name=case.patient_name,
            details=f"Created case for {case.patient_name}",
        )
        logger.info("Case created", case_id=case.id, created_by=creator.id)

        if request.doctor_id:
            assigned = self.assign_case_to_doctor(session, case.id, request.doctor_id)
            if assigned.ok:
                return assigned
        return OperationResult.success(case)

    def update_case(
        self,
        session: Session,
        case_id: str,
        request: CaseUpdateRequest,
    ) -> OperationResult[PatientCase]:
        """Apply the supplied fields; assignment and document count are not editable here."""
        result = self.get_case(case_id)
        if not result.ok:
            return result

        case = result.value
        for name, value in request.model_dump(exclude_unset=True, exclude_none=True).items():
            setattr(case, name, value)
        case.documents_count = self._count_documents(case_id)
        case.last_updated = now_iso()
        self.data.update_case(case)
        self.auth.log_activity(
            session,
            ActivityAction.UPDATE_CASE,
            case_id=case.id,
            case_name=case.patient_name,
            details=f"Updated case {case.id}",
        )
        return OperationResult.success(case)

    def delete_case(self, session: Session, case_id: str) -> OperationResult[None]:
        """Delete a case together with its documents and chat messages."""
        result = self.get_case(case_id)
        if not result.ok:
            return OperationResult.failure(ErrorKind.NOT_FOUND, result.message)

        self.data.delete_case(case_id)
        self.auth.log_activity(
            session,
            ActivityAction.DELETE_CASE,
            case_id=case_id,
            case_name=result.value.patient_name,
            details=f"Deleted case {case_id}",
        )
        logger.info("Case deleted", case_id=case_id)
        return OperationResult.success()

    def assign_case_to_doctor(
        self,
        session: Session,
        case_id: str,
        doctor_id: str,
    ) -> OperationResult[PatientCase]:
        """
        Assign an active doctor to a case.

        The doctor id and display name are written together. Nothing is
        changed when the case or doctor cannot be used.
        """
        doctor = self.auth.get_user(doctor_id)
        if doctor is None or doctor.role != UserRole.DOCTOR or not doctor.is_active:
            logger.error("Case assignment aborted: doctor unavailable", case_id=case_id, doctor_id=doctor_id)
            return OperationResult.failure(ErrorKind.NOT_FOUND, f"Active doctor {doctor_id} not found")

        result = self.get_case(case_id)
        if not result.ok:
            logger.error("Case assignment aborted: case not found", case_id=case_id, doctor_id=doctor_id)
            return result

        case = result.value
        case.doctor_id = doctor.id
        case.doctor_assigned = doctor.name
        case.last_updated = now_iso()
        self.data.update_case(case)
        self.auth.log_activity(
            session,
            ActivityAction.ASSIGN_CASE,
            case_id=case.id,
            case_name=case.patient_name,
            details=f"Assigned case to {doctor.name}",
        )
        logger.info("Case assigned", case_id=case.id, doctor_id=doctor.id)
        return OperationResult.success(case)

    def save_evaluation(
        self,
        session: Session,
        case_id: str,
        evaluation: dict[str, Any],
    ) -> OperationResult[PatientCase]:
        """Store a draft evaluation; the case moves to review."""
        return self._record_evaluation(
            session,
            case_id,
            evaluation,
            status=CaseStatus.UNDER_REVIEW,
            evaluation_status="Evaluation in progress",
            action=ActivityAction.SAVE_EVALUATION,
            details="Saved evaluation draft",
        )

    def submit_evaluation(
        self,
        session: Session,
        case_id: str,
        evaluation: dict[str, Any],
    ) -> OperationResult[PatientCase]:
        """Store the final evaluation; the case is completed."""
        return self._record_evaluation(
            session,
            case_id,
            evaluation,
            status=CaseStatus.COMPLETED,
            evaluation_status="Evaluation submitted",
            action=ActivityAction.SUBMIT_EVALUATION,
            details="Submitted final evaluation",
        )

    def _record_evaluation(
        self,
        session: Session,
        case_id: str,
        evaluation: dict[str, Any],
        status: CaseStatus,
        evaluation_status: str,
        action: ActivityAction,
        details: str,
    ) -> OperationResult[PatientCase]:
        result = self.get_case(case_id)
        if not result.ok:
            return result

        case = result.value
        user = session.user
        if user is not None and user.role == UserRole.DOCTOR and case.doctor_id != user.id:
            return OperationResult.failure(ErrorKind.PERMISSION, "Case is not assigned to you")

        case.evaluation = dict(evaluation)
        case.status = status.value
        case.evaluation_status = evaluation_status
        case.last_updated = now_iso()
        self.data.update_case(case)
        self.auth.log_activity(
            session,
            action,
            case_id=case.id,
            case_name=case.patient_name,
            details=details,
        )
        return OperationResult.success(case)

    def refresh_documents_count(self, case_id: str) -> None:
        """Recompute the derived document count of a case."""
        result = self.get_case(case_id)
        if not result.ok:
            return
        case = result.value
        count = self._count_documents(case_id)
        if case.documents_count == count:
            return
        case.documents_count = count
        case.last_updated = now_iso()
        self.data.update_case(case)

    def _count_documents(self, case_id: str) -> int:
        return sum(1 for d in self.data.get_documents() if d.case_id == case_id)


# Singleton instance for dependency injection
_case_service: CaseService | None = None


def get_case_service() -> CaseService:
    """
    Get the case service singleton.

    Returns:
        The shared CaseService instance.
    """
    global _case_service
    if _case_service is None:
        _case_service = CaseService()
    return _case_service


def reset_case_service() -> None:
    global _case_service
    _case_service = None
