"""
Request/response contracts for the remote AI functions.

Covers document analysis, evaluation-form suggestions and document chat.
"""

from typing import Literal

from pydantic import Field

from claims_backend.models.models import ApiModel


class AnalysisRequest(ApiModel):
    """Document content to analyze in the context of a case."""
    document_content: str = Field(..., min_length=1, max_length=200_000)
    document_type: str = Field(default="medical_report")
    case_context: str = Field(default="", max_length=20_000)


class AnalysisSection(ApiModel):
    """A titled section extracted from the free-text analysis."""
    title: str
    content: str


class AnalysisResponse(ApiModel):
    """
    Document analysis result.

    Attributes:
        analysis: The full free-text report.
        sections: Known report sections found by heading match.
        claim_validity: Rating such as ``"high"`` or ``"medium/high"``.
    """
    analysis: str
    sections: list[AnalysisSection] = Field(default_factory=list)
    claim_validity: str | None = None


class HighlightPosition(ApiModel):
    """Rectangle to highlight on a rendered document page."""
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0


class DocumentReference(ApiModel):
    """Pointer from an AI answer back into a source document."""
    document_id: str = ""
    document_name: str = "Document"
    page: int | None = None
    snippet: str | None = None
    highlight_text: str | None = None
    highlight_position: HighlightPosition | None = None
    viewer_url: str | None = None


class DocumentSummary(ApiModel):
    """Document metadata sent along with a suggestion request."""
    id: str
    name: str
    category: str | None = None
    type: str | None = None


class FormSuggestionRequest(ApiModel):
    """Evaluation form state to complete from the case documents."""
    case_id: str = Field(..., min_length=1)
    documents: list[DocumentSummary] = Field(default_factory=list)
    form_data: dict[str, str] = Field(default_factory=dict)


class FormSuggestion(ApiModel):
    """A proposed value for one evaluation-form field."""
    field: str
    field_label: str
    value: str
    confidence: float = Field(default=0.7, ge=0.0, le=1.0)
    reasoning: str | None = None
    document_references: list[DocumentReference] = Field(default_factory=list)


class DocumentChatMessage(ApiModel):
    """One turn of a document chat."""
    role: Literal["user", "assistant", "system"]
    content: str = Field(..., min_length=1, max_length=10_000)


class DocumentChatRequest(ApiModel):
    """Chat history about a case's documents."""
    case_id: str = Field(..., min_length=1)
    history: list[DocumentChatMessage] = Field(..., min_length=1)


class DocumentChatResponse(ApiModel):
    """Assistant reply with the document passages it relied on."""
    reply: str
    references: list[DocumentReference] = Field(default_factory=list)
