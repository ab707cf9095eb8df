"""
Client for the remote AI functions.

This service handles:
- Document analysis, with section and claim-validity extraction
- Evaluation-form suggestions
- Chat about a case's documents

Remote payloads are loosely shaped, so responses are normalized here
before reaching the API layer. Without a configured endpoint the service
answers in demo mode.
"""

import re
import time
from typing import Any

import httpx

from claims_backend.config.config import Settings, get_settings
from claims_backend.config.logging_config import get_logger
from claims_backend.models.ai_models import (
    AnalysisRequest,
    AnalysisResponse,
    AnalysisSection,
    DocumentChatRequest,
    DocumentChatResponse,
    DocumentReference,
    FormSuggestion,
    FormSuggestionRequest,
    HighlightPosition,
)

logger = get_logger(__name__)

ANALYZE_DOCUMENT_PATH = "analyze-document"
FORM_SUGGESTIONS_PATH = "generate-form-suggestions"
DOCUMENT_CHAT_PATH = "document-chat"

ANALYSIS_SECTION_TITLES = (
    "Document Summary",
    "Key Medical Information",
    "Missing Information",
    "Red Flags",
    "Recommendations",
)

DEFAULT_CONFIDENCE = 0.7

_CLAIM_VALIDITY_PATTERN = re.compile(
    r"(?:High|Medium|Low)(?:\s*/\s*(?:High|Medium|Low))*",
    re.IGNORECASE,
)


class AIServiceError(RuntimeError):
    """The remote AI function failed or returned an unusable response."""


# ============================================================================
# Response parsing
# ============================================================================

def parse_analysis_sections(analysis: str) -> list[AnalysisSection]:
    """
    Split a free-text analysis into its known sections.

    A section's content runs from its heading to the next blank line.
    """
    sections = []
    for title in ANALYSIS_SECTION_TITLES:
        if title not in analysis:
            continue
        content = analysis.split(title, 1)[1].split("\n\n", 1)[0].strip()
        sections.append(AnalysisSection(title=title, content=content))
    return sections


def extract_claim_validity_rating(analysis: str) -> str | None:
    """First High/Medium/Low rating in the text, lowercased (e.g. ``medium/high``)."""
    match = _CLAIM_VALIDITY_PATTERN.search(analysis)
    return match.group(0).lower() if match else None


def _first(record: dict[str, Any], *keys: str) -> Any:
    """First truthy value among the given keys."""
    for key in keys:
        value = record.get(key)
        if value:
            return value
    return None


def _first_present(record: dict[str, Any], *keys: str) -> Any:
    """First non-None value among the given keys."""
    for key in keys:
        if record.get(key) is not None:
            return record[key]
    return None


def _to_float(value: Any, default: float = 0.0) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _map_highlight(raw: Any) -> HighlightPosition | None:
    if not isinstance(raw, dict):
        return None
    return HighlightPosition(
        x=_to_float(_first_present(raw, "x", "left")),
        y=_to_float(_first_present(raw, "y", "top")),
        width=_to_float(_first_present(raw, "width", "w", "right")),
        height=_to_float(_first_present(raw, "height", "h", "bottom")),
    )


def map_document_reference(raw: Any) -> DocumentReference:
    """Normalize a remote document reference, accepting camel and snake keys."""
    if not isinstance(raw, dict):
        return DocumentReference(document_id="", document_name="Unknown document")

    page = _first(raw, "page", "pageNumber", "page_number")
    try:
        page = int(page) if page is not None else None
    except (TypeError, ValueError):
        page = None

    return DocumentReference(
        document_id=str(_first(raw, "documentId", "document_id", "id") or ""),
        document_name=str(_first(raw, "documentName", "document_name", "name") or "Document"),
        page=page,
        snippet=_first(raw, "snippet", "summary"),
        highlight_text=_first(raw, "highlightText", "highlight_text", "snippet"),
        highlight_position=_map_highlight(
            _first(raw, "highlightPosition", "highlight", "highlight_coordinates")
        ),
        viewer_url=_first(raw, "viewerUrl", "viewer_url"),
    )


def map_suggestion(raw: Any) -> FormSuggestion | None:
    """
    Normalize one remote form suggestion.

    Returns:
        The suggestion, or None when it has no field or no value.
    """
    if not isinstance(raw, dict):
        return None

    field = _first(raw, "field", "field_key", "fieldName")
    value = _first(raw, "value", "answer", "suggested_value")
    if not field or not value:
        return None

    confidence = _to_float(
        _first_present(raw, "confidence", "score", "confidence_score"),
        DEFAULT_CONFIDENCE,
    )
    references = _first(raw, "documentReferences", "references")

    return FormSuggestion(
        field=str(field),
        field_label=str(_first(raw, "fieldLabel", "field_label", "label") or field),
        value=str(value),
        confidence=min(max(confidence, 0.0), 1.0),
        reasoning=_first(raw, "reasoning", "explanation"),
        document_references=(
            [map_document_reference(ref) for ref in references]
            if isinstance(references, list) else []
        ),
    )


# ============================================================================
# Service
# ============================================================================

class AIService:
    """
    Async proxy to the remote AI functions.

    All remote failures surface as AIServiceError; callers decide how to
    present them.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        """
        Initialize the AI service.

        Args:
            settings: Application settings. Uses default if not provided.
            client: Preconfigured HTTP client, mainly for tests.
        """
        self.settings = settings or get_settings()
        self._client = client

    @property
    def is_configured(self) -> bool:
        return self._client is not None or self.settings.ai_configured

    @property
    def client(self) -> httpx.AsyncClient:
        """
        Get or create the HTTP client.

        Lazily initialized to avoid issues during testing.
        """
        if self._client is None:
            headers = {"Content-Type": "application/json"}
            if self.settings.ai_api_key:
                headers["Authorization"] = f"Bearer {self.settings.ai_api_key}"
            self._client = httpx.AsyncClient(
                base_url=self.settings.ai_functions_url,
                headers=headers,
                timeout=self.settings.ai_timeout_seconds,
            )
        return self._client

    async def _invoke(self, function: str, payload: dict[str, Any]) -> Any:
        start_time = time.perf_counter()
        try:
            response = await self.client.post(function, json=payload)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(
                "AI function returned an error",
                function=function,
                status_code=e.response.status_code,
            )
            raise AIServiceError(f"{function} failed with status {e.response.status_code}") from e
        except httpx.HTTPError as e:
            logger.error("AI function request failed", function=function, error=str(e))
            raise AIServiceError(f"{function} request failed: {e}") from e
        except ValueError as e:
            logger.error("AI function returned invalid JSON", function=function)
            raise AIServiceError(f"{function} returned invalid JSON") from e

        if isinstance(data, dict) and data.get("error"):
            logger.error("AI function reported an error", function=function, error=data["error"])
            raise AIServiceError(str(data["error"]))

        logger.info(
            "AI function completed",
            function=function,
            processing_time_ms=int((time.perf_counter() - start_time) * 1000),
        )
        return data

    async def analyze_document(self, request: AnalysisRequest) -> AnalysisResponse:
        """
        Analyze a document in the context of its case.

        Args:
            request: Document content, type and case context.

        Returns:
            The report with its parsed sections and claim validity rating.
        """
        logger.info(
            "Analyzing document",
            document_type=request.document_type,
            content_length=len(request.document_content),
        )
        if not self.is_configured:
            return self._mock_analysis()

        data = await self._invoke(
            ANALYZE_DOCUMENT_PATH,
            {
                "documentContent": request.document_content,
                "documentType": request.document_type,
                "caseContext": request.case_context,
            },
        )
        analysis = data.get("analysis") if isinstance(data, dict) else None
        if not isinstance(analysis, str) or not analysis:
            raise AIServiceError("Empty analysis from AI function")
        return self._build_analysis(analysis)

    async def generate_form_suggestions(self, request: FormSuggestionRequest) -> list[FormSuggestion]:
        """Suggest evaluation-form values; malformed suggestions are dropped."""
        logger.info(
            "Generating form suggestions",
            case_id=request.case_id,
            documents=len(request.documents),
        )
        if not self.is_configured:
            return self._mock_suggestions(request)

        data = await self._invoke(
            FORM_SUGGESTIONS_PATH,
            {
                "case_id": request.case_id,
                "documents": [d.model_dump(by_alias=True, exclude_none=True) for d in request.documents],
                "form_data": request.form_data,
            },
        )
        if isinstance(data, dict) and isinstance(data.get("suggestions"), list):
            raw_suggestions = data["suggestions"]
        elif isinstance(data, list):
            raw_suggestions = data
        else:
            raw_suggestions = []

        suggestions = [s for s in (map_suggestion(raw) for raw in raw_suggestions) if s is not None]
        logger.info(
            "Form suggestions normalized",
            case_id=request.case_id,
            received=len(raw_suggestions),
            kept=len(suggestions),
        )
        return suggestions

    async def send_document_chat_message(self, request: DocumentChatRequest) -> DocumentChatResponse:
        """Ask the assistant about a case's documents."""
        logger.info("Sending document chat", case_id=request.case_id, turns=len(request.history))
        if not self.is_configured:
            return self._mock_chat()

        data = await self._invoke(
            DOCUMENT_CHAT_PATH,
            {
                "case_id": request.case_id,
                "messages": [m.model_dump() for m in request.history],
            },
        )
        if not isinstance(data, dict) or not data:
            raise AIServiceError("Empty response from AI assistant")

        reply = _first(data, "reply", "answer", "content") or ""
        references = _first(data, "references", "citations", "documentReferences")
        return DocumentChatResponse(
            reply=str(reply),
            references=(
                [map_document_reference(ref) for ref in references]
                if isinstance(references, list) else []
            ),
        )

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def _build_analysis(self, analysis: str) -> AnalysisResponse:
        return AnalysisResponse(
            analysis=analysis,
            sections=parse_analysis_sections(analysis),
            claim_validity=extract_claim_validity_rating(analysis),
        )

    def _mock_analysis(self) -> AnalysisResponse:
        """
        Generate a mock analysis when the AI endpoint is not configured.

        Used for development and testing.
        """
        mock_analysis = (
            "Document Summary\n"
            "Running in demo mode without an AI backend configured.\n\n"
            "Key Medical Information\n"
            "Not available in demo mode.\n\n"
            "Missing Information\n"
            "Configure AI_FUNCTIONS_URL to enable document analysis.\n\n"
            "Red Flags\n"
            "None identified.\n\n"
            "Recommendations\n"
            "Review the document manually. Claim validity: Medium"
        )
        return self._build_analysis(mock_analysis)

    def _mock_suggestions(self, request: FormSuggestionRequest) -> list[FormSuggestion]:
        logger.warning("AI functions not configured, returning no suggestions", case_id=request.case_id)
        return []

    def _mock_chat(self) -> DocumentChatResponse:
        return DocumentChatResponse(
            reply=(
                "I'm running in demo mode. Configure the AI function endpoint "
                "to chat about this case's documents."
            ),
            references=[],
        )


# Singleton instance for dependency injection
_ai_service: AIService | None = None


def get_ai_service() -> AIService:
    """
    Get the AI service singleton.

    Returns:
        The shared AIService instance.
    """
    global _ai_service
    if _ai_service is None:
        _ai_service = AIService()
    return _ai_service


async def close_ai_service() -> None:
    global _ai_service
    if _ai_service is not None:
        await _ai_service.aclose()
        _ai_service = None


def reset_ai_service() -> None:
    """Drop the shared instance without closing its client."""
    global _ai_service
    _ai_service = None
