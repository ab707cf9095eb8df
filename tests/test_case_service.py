from __future__ import annotations

import pytest

from claims_backend.models.entities import UNASSIGNED_DOCTOR, ActivityAction, UserRole
from claims_backend.models.models import CaseCreateRequest, CaseUpdateRequest
from claims_backend.services.auth_service import Session
from claims_backend.services.case_service import CaseService
from claims_backend.services.errors import ErrorKind

from conftest import login


def _count(case_service: CaseService, action: ActivityAction) -> int:
    return sum(1 for log in case_service.auth.get_activity_logs() if log.action == action.value)


@pytest.fixture()
def second_doctor(case_service: CaseService, admin_session: Session):
    result = case_service.auth.create_user(
        admin_session,
        email="wilson@healthcare.com",
        name="Dr. James Wilson",
        role=UserRole.DOCTOR,
        password="oncology1",
        specialization="Oncology",
    )
    return result.value


def test_assign_case_to_doctor(case_service: CaseService, admin_session: Session, second_doctor) -> None:
    before = case_service.get_case("CASE001").value

    result = case_service.assign_case_to_doctor(admin_session, "CASE001", second_doctor.id)

    assert result.ok
    case = case_service.get_case("CASE001").value
    assert case.doctor_id == second_doctor.id
    assert case.doctor_assigned == "Dr. James Wilson"
    assert case.last_updated != before.last_updated
    assert _count(case_service, ActivityAction.ASSIGN_CASE) == 1
    assign_log = next(
        log for log in case_service.auth.get_activity_logs()
        if log.action == ActivityAction.ASSIGN_CASE.value
    )
    assert assign_log.case_id == "CASE001"
    assert [c.id for c in case_service.get_cases_for_doctor(second_doctor.id)] == ["CASE001"]
    assert [c.id for c in case_service.get_cases_for_doctor("3")] == ["CASE002"]


def test_reassigning_to_same_doctor_logs_once(case_service: CaseService, admin_session: Session) -> None:
    result = case_service.assign_case_to_doctor(admin_session, "CASE001", "3")

    assert result.ok
    assert result.value.doctor_assigned == "Dr. Sarah Johnson"
    assert _count(case_service, ActivityAction.ASSIGN_CASE) == 1


@pytest.mark.parametrize("doctor_id", ["missing", "1", "2"])
def test_assign_rejects_non_doctors(case_service: CaseService, admin_session: Session, doctor_id: str) -> None:
    before = case_service.get_case("CASE001").value

    result = case_service.assign_case_to_doctor(admin_session, "CASE001", doctor_id)

    assert result.error is ErrorKind.NOT_FOUND
    assert case_service.get_case("CASE001").value == before
    assert _count(case_service, ActivityAction.ASSIGN_CASE) == 0


def test_assign_rejects_inactive_doctor(
    case_service: CaseService,
    admin_session: Session,
    second_doctor,
) -> None:
    case_service.auth.deactivate_user(admin_session, second_doctor.id)

    result = case_service.assign_case_to_doctor(admin_session, "CASE001", second_doctor.id)

    assert not result.ok
    assert case_service.get_case("CASE001").value.doctor_id == "3"


def test_assign_rejects_missing_case(case_service: CaseService, admin_session: Session) -> None:
    result = case_service.assign_case_to_doctor(admin_session, "CASE999", "3")

    assert result.error is ErrorKind.NOT_FOUND
    assert _count(case_service, ActivityAction.ASSIGN_CASE) == 0


def test_create_case_defaults(case_service: CaseService, admin_session: Session) -> None:
    request = CaseCreateRequest(
        patient_name="Ana Lopez",
        accident_date="2024-03-02",
        injury_type="Wrist fracture",
        claim_amount="$4,200",
    )

    result = case_service.create_case(admin_session, request)

    assert result.ok
    case = result.value
    assert case.id == "CASE003"
    assert case.status == "pending-evaluation"
    assert case.priority == "medium"
    assert case.doctor_id == ""
    assert case.doctor_assigned == UNASSIGNED_DOCTOR
    assert case.admin_id == "1"
    assert case.created_by == "1"
    assert case.documents_count == 0
    assert _count(case_service, ActivityAction.CREATE_CASE) == 1
    assert [c.id for c in case_service.get_unassigned_cases()] == ["CASE003"]


def test_create_case_with_doctor(case_service: CaseService, admin_session: Session) -> None:
    request = CaseCreateRequest(
        patient_name="Tom Baker",
        accident_date="2024-03-05",
        injury_type="Whiplash",
        doctor_id="3",
    )

    result = case_service.create_case(admin_session, request)

    assert result.value.doctor_id == "3"
    assert result.value.doctor_assigned == "Dr. Sarah Johnson"
    assert _count(case_service, ActivityAction.ASSIGN_CASE) == 1


def test_update_case_applies_fields(case_service: CaseService, admin_session: Session) -> None:
    result = case_service.update_case(
        admin_session,
        "CASE002",
        CaseUpdateRequest(priority="high", claim_amount="$9,000"),
    )

    assert result.ok
    case = case_service.get_case("CASE002").value
    assert case.priority == "high"
    assert case.claim_amount == "$9,000"
    assert case.patient_name == "Maria Garcia"
    assert _count(case_service, ActivityAction.UPDATE_CASE) == 1


def test_update_missing_case(case_service: CaseService, admin_session: Session) -> None:
    result = case_service.update_case(admin_session, "CASE404", CaseUpdateRequest(priority="low"))

    assert result.error is ErrorKind.NOT_FOUND


def test_delete_case(case_service: CaseService, admin_session: Session) -> None:
    assert case_service.delete_case(admin_session, "CASE001").ok
    assert case_service.get_case("CASE001").error is ErrorKind.NOT_FOUND
    assert _count(case_service, ActivityAction.DELETE_CASE) == 1
    assert case_service.delete_case(admin_session, "CASE001").error is ErrorKind.NOT_FOUND


def test_evaluation_lifecycle(case_service: CaseService, doctor_session: Session) -> None:
    evaluation = {"causality": "probable", "disabilityPercent": 12}

    saved = case_service.save_evaluation(doctor_session, "CASE001", evaluation)
    assert saved.value.status == "under-review"
    assert saved.value.evaluation_status == "Evaluation in progress"

    submitted = case_service.submit_evaluation(doctor_session, "CASE001", evaluation)
    assert submitted.value.status == "completed"
    assert case_service.get_case("CASE001").value.evaluation == evaluation
    assert _count(case_service, ActivityAction.SAVE_EVALUATION) == 1
    assert _count(case_service, ActivityAction.SUBMIT_EVALUATION) == 1


def test_doctor_cannot_evaluate_other_doctors_case(
    case_service: CaseService,
    admin_session: Session,
    second_doctor,
) -> None:
    wilson = login(case_service.auth, "wilson@healthcare.com", "oncology1")

    result = case_service.submit_evaluation(wilson, "CASE001", {"causality": "unlikely"})

    assert result.error is ErrorKind.PERMISSION
    assert case_service.get_case("CASE001").value.status == "pending-evaluation"


def test_cases_for_user_depend_on_role(
    case_service: CaseService,
    admin_session: Session,
    second_doctor,
) -> None:
    wilson = login(case_service.auth, "wilson@healthcare.com", "oncology1")

    assert len(case_service.get_cases_for_user(admin_session)) == 2
    assert case_service.get_cases_for_user(wilson) == []
    assert case_service.get_cases_for_user(Session()) == []


def test_open_case_and_dashboard_are_logged(case_service: CaseService, doctor_session: Session) -> None:
    assert case_service.open_case(doctor_session, "CASE002").ok
    case_service.record_dashboard_view(doctor_session)

    assert _count(case_service, ActivityAction.OPEN_CASE) == 1
    assert _count(case_service, ActivityAction.VIEW_DASHBOARD) == 1
