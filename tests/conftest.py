from __future__ import annotations

from pathlib import Path

import pytest

from claims_backend.config.config import Settings, reset_settings_cache
from claims_backend.database.storage import MemoryStorageSlot
from claims_backend.services.ai_service import reset_ai_service
from claims_backend.services.auth_service import AuthService, Session, reset_auth_service
from claims_backend.services.case_service import CaseService, reset_case_service
from claims_backend.services.chat_service import ChatService, reset_chat_service
from claims_backend.services.data_service import DataService, reset_data_service
from claims_backend.services.document_service import DocumentService, reset_document_service

ADMIN_CREDENTIALS = ("admin@insurance.com", "admin123")
SYSADMIN_CREDENTIALS = ("sysadmin@insurance.com", "sysadmin123")
DOCTOR_CREDENTIALS = ("doctor@healthcare.com", "doctor123")


def _reset_singletons() -> None:
    reset_document_service()
    reset_chat_service()
    reset_case_service()
    reset_auth_service()
    reset_data_service()
    reset_ai_service()
    reset_settings_cache()


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("STORAGE_BACKEND", "memory")
    monkeypatch.setenv("AUTOSAVE_ENABLED", "false")
    monkeypatch.setenv("DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("UPLOAD_DIR", str(tmp_path / "uploads"))
    monkeypatch.delenv("AI_FUNCTIONS_URL", raising=False)
    monkeypatch.delenv("AI_API_KEY", raising=False)
    _reset_singletons()
    yield
    _reset_singletons()


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    return Settings(
        storage_backend="memory",
        autosave_enabled=False,
        data_dir=tmp_path / "data",
        upload_dir=tmp_path / "uploads",
    )


@pytest.fixture()
def slots() -> tuple[MemoryStorageSlot, MemoryStorageSlot]:
    return MemoryStorageSlot("primary"), MemoryStorageSlot("backup")


@pytest.fixture()
def data_service(settings: Settings, slots) -> DataService:
    primary, backup = slots
    return DataService(settings, primary=primary, backup=backup)


@pytest.fixture()
def auth_service(data_service: DataService) -> AuthService:
    return AuthService(data_service)


@pytest.fixture()
def case_service(auth_service: AuthService) -> CaseService:
    return CaseService(auth_service)


@pytest.fixture()
def chat_service(auth_service: AuthService) -> ChatService:
    return ChatService(auth_service)


@pytest.fixture()
def document_service(case_service: CaseService, settings: Settings) -> DocumentService:
    return DocumentService(case_service, settings)


def login(auth_service: AuthService, email: str, password: str) -> Session:
    session = Session(ip_address="10.0.0.7")
    result = auth_service.login(session, email, password)
    assert result.ok, result.message
    return session


@pytest.fixture()
def admin_session(auth_service: AuthService) -> Session:
    return login(auth_service, *ADMIN_CREDENTIALS)


@pytest.fixture()
def sysadmin_session(auth_service: AuthService) -> Session:
    return login(auth_service, *SYSADMIN_CREDENTIALS)


@pytest.fixture()
def doctor_session(auth_service: AuthService) -> Session:
    return login(auth_service, *DOCTOR_CREDENTIALS)
