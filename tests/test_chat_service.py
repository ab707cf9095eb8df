from __future__ import annotations

import pytest

from claims_backend.models.entities import ActivityAction, UserRole
from claims_backend.services.auth_service import Session
from claims_backend.services.chat_service import ChatService
from claims_backend.services.errors import ErrorKind


@pytest.fixture()
def conversation(
    chat_service: ChatService,
    admin_session: Session,
    doctor_session: Session,
    sysadmin_session: Session,
) -> dict[str, str]:
    to_doctor = chat_service.send_message(admin_session, "CASE001", "Please review the MRI", UserRole.DOCTOR)
    to_admin = chat_service.send_message(doctor_session, "CASE001", "Need the police report", UserRole.ADMIN)
    broadcast = chat_service.send_message(sysadmin_session, "CASE001", "Maintenance tonight")
    other_case = chat_service.send_message(admin_session, "CASE002", "New documents uploaded", UserRole.DOCTOR)
    return {
        "to_doctor": to_doctor.value.id,
        "to_admin": to_admin.value.id,
        "broadcast": broadcast.value.id,
        "other_case": other_case.value.id,
    }


def test_send_message_stores_unread_and_logs(chat_service: ChatService, admin_session: Session) -> None:
    result = chat_service.send_message(admin_session, "CASE001", "  Hello doctor  ", UserRole.DOCTOR)

    assert result.ok
    message = result.value
    assert message.message == "Hello doctor"
    assert message.is_read is False
    assert message.sender_role == "admin"
    assert message.recipient_role == "doctor"
    assert chat_service.data.get_chat_messages()[0].id == message.id
    actions = [log.action for log in chat_service.auth.get_activity_logs()]
    assert actions.count(ActivityAction.SEND_MESSAGE.value) == 1


def test_send_message_rejects_blank_text(chat_service: ChatService, admin_session: Session) -> None:
    result = chat_service.send_message(admin_session, "CASE001", "   ")

    assert result.error is ErrorKind.VALIDATION
    assert chat_service.data.get_chat_messages() == []


def test_send_message_requires_login(chat_service: ChatService) -> None:
    assert chat_service.send_message(Session(), "CASE001", "hi").error is ErrorKind.AUTHENTICATION


def test_visibility_by_role(chat_service: ChatService, conversation: dict[str, str]) -> None:
    doctor_view = [m.id for m in chat_service.get_messages_for_case("CASE001", UserRole.DOCTOR)]
    admin_view = [m.id for m in chat_service.get_messages_for_case("CASE001", "admin")]
    sysadmin_view = [m.id for m in chat_service.get_messages_for_case("CASE001", UserRole.SYSTEM_ADMIN)]
    everything = [m.id for m in chat_service.get_messages_for_case("CASE001")]

    assert doctor_view == [conversation["to_doctor"], conversation["to_admin"], conversation["broadcast"]]
    assert admin_view == [conversation["to_doctor"], conversation["to_admin"], conversation["broadcast"]]
    assert sysadmin_view == [conversation["broadcast"]]
    assert everything == [conversation["to_doctor"], conversation["to_admin"], conversation["broadcast"]]


def test_messages_are_oldest_first(chat_service: ChatService, conversation: dict[str, str]) -> None:
    timestamps = [m.timestamp for m in chat_service.get_messages_for_case("CASE001")]

    assert timestamps == sorted(timestamps)


def test_unread_counts(chat_service: ChatService, conversation: dict[str, str]) -> None:
    # Doctor: the admin's note to doctors on both cases plus the broadcast.
    assert chat_service.get_unread_count("3", UserRole.DOCTOR) == 3
    assert chat_service.get_unread_count_for_case("CASE001", "3", UserRole.DOCTOR) == 2
    # Admin: the doctor's reply plus the broadcast; own messages never count.
    assert chat_service.get_unread_count("1", UserRole.ADMIN) == 2
    # System admin sent the broadcast and is addressed by nothing else.
    assert chat_service.get_unread_count("2", UserRole.SYSTEM_ADMIN) == 0


def test_mark_as_read_is_idempotent(chat_service: ChatService, conversation: dict[str, str]) -> None:
    assert chat_service.mark_as_read(conversation["to_doctor"]) is True
    assert chat_service.mark_as_read(conversation["to_doctor"]) is True
    assert chat_service.mark_as_read("missing") is False

    assert chat_service.get_unread_count_for_case("CASE001", "3", UserRole.DOCTOR) == 1


def test_mark_case_read(
    chat_service: ChatService,
    doctor_session: Session,
    conversation: dict[str, str],
) -> None:
    marked = chat_service.mark_case_read("CASE001", doctor_session.user)

    assert marked == 2
    assert chat_service.get_unread_count_for_case("CASE001", "3", UserRole.DOCTOR) == 0
    assert chat_service.get_unread_count("3", UserRole.DOCTOR) == 1
    # The doctor's own message to the admins stays unread for them.
    assert chat_service.get_unread_count_for_case("CASE001", "1", UserRole.ADMIN) == 1
