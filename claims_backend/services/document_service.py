"""
Document upload, storage and removal for patient cases.

Uploaded files are validated by extension and size, written under the
upload directory, and registered as Document records. The owning case's
``documents_count`` is kept equal to the number of its documents.
"""

import re
from datetime import date
from pathlib import Path
from uuid import uuid4

from claims_backend.config.config import Settings, get_settings
from claims_backend.config.logging_config import get_logger
from claims_backend.models.entities import ActivityAction, Document
from claims_backend.services.auth_service import Session
from claims_backend.services.case_service import CaseService, get_case_service
from claims_backend.services.errors import ErrorKind, OperationResult

logger = get_logger(__name__)

ALLOWED_EXTENSIONS = (".pdf", ".doc", ".docx", ".jpg", ".jpeg", ".png", ".tiff")

_EXTENSION_TYPES = {
    ".pdf": "application/pdf",
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ".doc": "application/msword",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".bmp": "image/bmp",
    ".webp": "image/webp",
    ".tiff": "image/tiff",
    ".txt": "text/plain",
    ".rtf": "application/rtf",
    ".csv": "text/csv",
    ".xml": "application/xml",
    ".json": "application/json",
}

_UNSAFE_NAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")
_PDF_PAGE_MARKER = re.compile(rb"/Type\s*/Page(?!s)")


def detect_file_type(filename: str, content_type: str | None = None) -> str:
    """
    Detect a MIME type, preferring the file extension.

    Falls back to the supplied content type, then to
    ``application/octet-stream``.
    """
    suffix = Path((filename or "unknown-file").lower()).suffix
    if suffix in _EXTENSION_TYPES:
        return _EXTENSION_TYPES[suffix]
    if content_type and content_type != "application/octet-stream":
        return content_type
    return "application/octet-stream"


def validate_file(filename: str, size: int, max_bytes: int) -> OperationResult[None]:
    """Check the extension against the allow-list and the size against the limit."""
    suffix = Path(filename.lower()).suffix
    if suffix not in ALLOWED_EXTENSIONS:
        return OperationResult.failure(
            ErrorKind.VALIDATION,
            f"{filename}: Invalid file type. Allowed: PDF, DOC, DOCX, JPG, PNG, TIFF",
        )
    if size > max_bytes:
        return OperationResult.failure(
            ErrorKind.VALIDATION,
            f"{filename}: File too large. Maximum size: {max_bytes // (1024 * 1024)}MB",
        )
    return OperationResult.success()


def format_size(size: int) -> str:
    """Human-readable byte count, e.g. ``2.4 MB``."""
    value = float(size)
    for unit in ("B", "KB", "MB"):
        if value < 1024 or unit == "MB":
            return f"{int(value)} {unit}" if unit == "B" else f"{value:.1f} {unit}"
        value /= 1024
    return f"{value:.1f} MB"


def count_pages(data: bytes, mime_type: str) -> int:
    """Best-effort page count; non-PDF files count as one page."""
    if mime_type != "application/pdf":
        return 1
    return max(1, len(_PDF_PAGE_MARKER.findall(data)))


def extract_text(filename: str, data: bytes, mime_type: str) -> str:
    """Text made available to the AI assistant for a stored file."""
    if mime_type.startswith("text/"):
        return data.decode("utf-8", errors="replace")
    if mime_type == "application/pdf":
        return f"PDF Document: {filename} ({len(data)} bytes)"
    return f"Document: {filename} ({len(data)} bytes)"


class DocumentService:
    """Upload and removal of case documents."""

    def __init__(
        self,
        case_service: CaseService | None = None,
        settings: Settings | None = None,
    ):
        self.cases = case_service or get_case_service()
        self.settings = settings or get_settings()

    @property
    def upload_dir(self) -> Path:
        return Path(self.settings.upload_dir)

    def get_documents_for_case(self, case_id: str) -> list[Document]:
        return [d for d in self.cases.data.get_documents() if d.case_id == case_id]

    def get_document(self, document_id: str) -> Document | None:
        return next((d for d in self.cases.data.get_documents() if d.id == document_id), None)

    def upload_document(
        self,
        session: Session,
        case_id: str,
        filename: str,
        data: bytes,
        category: str,
        content_type: str | None = None,
    ) -> OperationResult[Document]:
        """
        Validate, store and register one uploaded file.

        Args:
            session: Authenticated session of the uploader.
            case_id: Case the document belongs to.
            filename: Original file name.
            data: File contents.
            category: Document category (e.g. ``medical_report``).
            content_type: MIME type reported by the client.

        Returns:
            The registered document, or the validation/not-found failure.
        """
        if session.user is None:
            return OperationResult.failure(ErrorKind.AUTHENTICATION, "Login required")

        case_result = self.cases.get_case(case_id)
        if not case_result.ok:
            return OperationResult.failure(ErrorKind.NOT_FOUND, case_result.message)

        checked = validate_file(filename, len(data), self.settings.max_upload_bytes)
        if not checked.ok:
            logger.info("Upload rejected", case_id=case_id, filename=filename, reason=checked.message)
            return OperationResult.failure(checked.error, checked.message)

        document_id = uuid4().hex
        safe_name = _UNSAFE_NAME_CHARS.sub("_", Path(filename).name)
        target = self.upload_dir / case_id / f"{document_id}_{safe_name}"
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)

        mime_type = detect_file_type(filename, content_type)
        document = Document(
            id=document_id,
            name=filename,
            type=mime_type,
            upload_date=date.today().isoformat(),
            uploaded_by=session.user.name,
            uploaded_by_id=session.user.id,
            size=format_size(len(data)),
            pages=count_pages(data, mime_type),
            category=category,
            case_id=case_id,
            file_path=str(target),
            content=extract_text(filename, data, mime_type),
        )
        self.cases.data.add_document(document)
        self.cases.refresh_documents_count(case_id)
        self.cases.auth.log_activity(
            session,
            ActivityAction.UPLOAD_DOCUMENTS,
            case_id=case_id,
            case_name=f"Case {case_id}",
            details=f"Uploaded document: {filename} ({category})",
        )
        logger.info("Document uploaded", case_id=case_id, document_id=document_id, size=len(data))
        return OperationResult.success(document)

    def delete_document(self, session: Session, document_id: str) -> OperationResult[None]:
        """Remove a document record and its stored file."""
        document = self.get_document(document_id)
        if document is None:
            return OperationResult.failure(ErrorKind.NOT_FOUND, f"Document {document_id} not found")

        self.cases.data.delete_document(document_id)
        if document.file_path:
            Path(document.file_path).unlink(missing_ok=True)
        self.cases.refresh_documents_count(document.case_id)
        self.cases.auth.log_activity(
            session,
            ActivityAction.DELETE_DOCUMENT,
            case_id=document.case_id,
            details=f"Deleted document: {document.name}",
        )
        logger.info("Document deleted", document_id=document_id, case_id=document.case_id)
        return OperationResult.success()


# Singleton instance for dependency injection
_document_service: DocumentService | None = None


def get_document_service() -> DocumentService:
    """
    Get the document service singleton.

    Returns:
        The shared DocumentService instance.
    """
    global _document_service
    if _document_service is None:
        _document_service = DocumentService()
    return _document_service


def reset_document_service() -> None:
    global _document_service
    _document_service = None
