"""
Case chat between administrators and doctors.

A message addressed to a role is delivered to that role and to its
sender's role; a message without a recipient role is a broadcast.
"""

from uuid import uuid4

from claims_backend.config.logging_config import get_logger
from claims_backend.models.entities import (
    ActivityAction,
    ChatMessage,
    User,
    UserRole,
    now_iso,
    parse_timestamp,
)
from claims_backend.services.auth_service import AuthService, Session, get_auth_service
from claims_backend.services.errors import ErrorKind, OperationResult

logger = get_logger(__name__)


def _role_value(role: UserRole | str | None) -> str | None:
    if role is None:
        return None
    return role.value if isinstance(role, UserRole) else str(role)


def is_visible_to(message: ChatMessage, role: UserRole | str | None) -> bool:
    """Visibility of a message to a viewer role; no role sees everything."""
    viewer = _role_value(role)
    if viewer is None:
        return True
    if message.sender_role == viewer:
        return True
    return message.recipient_role is None or message.recipient_role == viewer


def _is_unread_for(message: ChatMessage, user_id: str, role: UserRole | str) -> bool:
    viewer = _role_value(role)
    return (
        not message.is_read
        and message.sender_id != user_id
        and (message.recipient_role is None or message.recipient_role == viewer)
    )


class ChatService:
    """
    Service for case chat messages.

    Messages live in the data store, so they survive restarts and are
    included in exports.
    """

    def __init__(self, auth_service: AuthService | None = None):
        self.auth = auth_service or get_auth_service()

    @property
    def data(self):
        return self.auth.data

    def send_message(
        self,
        session: Session,
        case_id: str,
        message: str,
        recipient_role: UserRole | None = None,
    ) -> OperationResult[ChatMessage]:
        """
        Post a message to a case on behalf of the session user.

        Args:
            session: Authenticated sender session.
            case_id: Case the message belongs to.
            message: Message text, must not be blank.
            recipient_role: Target role; None broadcasts to every role.

        Returns:
            The stored message, unread.
        """
        sender = session.user
        if sender is None:
            return OperationResult.failure(ErrorKind.AUTHENTICATION, "Login required")

        text = message.strip()
        if not text:
            return OperationResult.failure(ErrorKind.VALIDATION, "Message cannot be empty")

        chat_message = ChatMessage(
            id=uuid4().hex,
            case_id=case_id,
            sender_id=sender.id,
            sender_name=sender.name,
            sender_role=sender.role,
            message=text,
            timestamp=now_iso(),
            is_read=False,
            recipient_role=recipient_role,
        )
        self.data.add_chat_message(chat_message)
        self.auth.log_activity(
            session,
            ActivityAction.SEND_MESSAGE,
            case_id=case_id,
            details=f"Sent message to {_role_value(recipient_role) or 'all'}",
        )
        logger.info(
            "Chat message sent",
            case_id=case_id,
            sender_id=sender.id,
            recipient_role=_role_value(recipient_role),
        )
        return OperationResult.success(chat_message)

    def get_messages_for_case(
        self,
        case_id: str,
        user_role: UserRole | str | None = None,
    ) -> list[ChatMessage]:
        """Messages of a case visible to the role, oldest first."""
        messages = [
            m for m in self.data.get_chat_messages()
            if m.case_id == case_id and is_visible_to(m, user_role)
        ]
        return sorted(messages, key=lambda m: parse_timestamp(m.timestamp))

    def mark_as_read(self, message_id: str) -> bool:
        """Mark one message read; unknown ids and read messages are no-ops."""
        message = next((m for m in self.data.get_chat_messages() if m.id == message_id), None)
        if message is None:
            return False
        if message.is_read:
            return True
        message.is_read = True
        return self.data.update_chat_message(message)

    def mark_case_read(self, case_id: str, user: User) -> int:
        """Mark every message of a case sent by someone else and visible to the user read."""
        marked = 0
        for message in self.data.get_chat_messages():
            if message.case_id != case_id or not _is_unread_for(message, user.id, user.role):
                continue
            message.is_read = True
            self.data.update_chat_message(message)
            marked += 1
        if marked:
            logger.debug("Case messages marked read", case_id=case_id, user_id=user.id, count=marked)
        return marked

    def get_unread_count(self, user_id: str, user_role: UserRole | str) -> int:
        return sum(
            1 for m in self.data.get_chat_messages()
            if _is_unread_for(m, user_id, user_role)
        )

    def get_unread_count_for_case(
        self,
        case_id: str,
        user_id: str,
        user_role: UserRole | str,
    ) -> int:
        return sum(
            1 for m in self.data.get_chat_messages()
            if m.case_id == case_id and _is_unread_for(m, user_id, user_role)
        )


# Singleton instance for dependency injection
_chat_service: ChatService | None = None


def get_chat_service() -> ChatService:
    """
    Get the chat service singleton.

    Returns:
        The shared ChatService instance.
    """
    global _chat_service
    if _chat_service is None:
        _chat_service = ChatService()
    return _chat_service


def reset_chat_service() -> None:
    global _chat_service
    _chat_service = None
