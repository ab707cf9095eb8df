from __future__ import annotations

import json

import httpx
import pytest

from claims_backend.config.config import Settings
from claims_backend.models.ai_models import (
    AnalysisRequest,
    DocumentChatMessage,
    DocumentChatRequest,
    DocumentSummary,
    FormSuggestionRequest,
)
from claims_backend.services.ai_service import (
    AIService,
    AIServiceError,
    extract_claim_validity_rating,
    map_document_reference,
    map_suggestion,
    parse_analysis_sections,
)

ANALYSIS_TEXT = (
    "Document Summary\n"
    "Orthopedic consultation after a workplace fall.\n\n"
    "Key Medical Information\n"
    "L4-L5 disc herniation confirmed on MRI.\n\n"
    "Red Flags\n"
    "None.\n\n"
    "Claim validity: Medium/High"
)


def _service(handler, settings: Settings) -> tuple[AIService, list[httpx.Request]]:
    seen: list[httpx.Request] = []

    def recording_handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return handler(request)

    client = httpx.AsyncClient(
        transport=httpx.MockTransport(recording_handler),
        base_url="https://functions.example.test/v1/",
    )
    return AIService(settings, client=client), seen


def test_parse_analysis_sections() -> None:
    sections = {s.title: s.content for s in parse_analysis_sections(ANALYSIS_TEXT)}

    assert sections == {
        "Document Summary": "Orthopedic consultation after a workplace fall.",
        "Key Medical Information": "L4-L5 disc herniation confirmed on MRI.",
        "Red Flags": "None.",
    }


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        (ANALYSIS_TEXT, "medium/high"),
        ("Rating: HIGH", "high"),
        ("validity low / medium", "low / medium"),
        ("No rating given.", None),
    ],
)
def test_extract_claim_validity_rating(text: str, expected: str | None) -> None:
    assert extract_claim_validity_rating(text) == expected


def test_map_suggestion_accepts_aliases() -> None:
    suggestion = map_suggestion({
        "field_key": "injuryMechanism",
        "answer": "Fall from ladder",
        "label": "Injury mechanism",
        "score": 0.91,
        "explanation": "Stated in the ER note",
        "references": [{"document_id": "doc-1", "name": "ER note.pdf", "page_number": 2}],
    })

    assert suggestion.field == "injuryMechanism"
    assert suggestion.value == "Fall from ladder"
    assert suggestion.field_label == "Injury mechanism"
    assert suggestion.confidence == pytest.approx(0.91)
    assert suggestion.reasoning == "Stated in the ER note"
    assert suggestion.document_references[0].document_id == "doc-1"
    assert suggestion.document_references[0].document_name == "ER note.pdf"
    assert suggestion.document_references[0].page == 2


def test_map_suggestion_defaults_and_drops() -> None:
    suggestion = map_suggestion({"field": "diagnosis", "value": "Sprain"})

    assert suggestion.field_label == "diagnosis"
    assert suggestion.confidence == pytest.approx(0.7)
    assert suggestion.document_references == []
    assert map_suggestion({"field": "diagnosis"}) is None
    assert map_suggestion({"value": "Sprain"}) is None
    assert map_suggestion(None) is None


def test_map_document_reference_highlight_aliases() -> None:
    reference = map_document_reference({
        "documentId": "doc-9",
        "snippet": "tenderness over L5",
        "highlight": {"left": 10, "top": "20", "w": 100, "h": 15},
    })

    assert reference.document_name == "Document"
    assert reference.highlight_text == "tenderness over L5"
    position = reference.highlight_position
    assert (position.x, position.y, position.width, position.height) == (10.0, 20.0, 100.0, 15.0)
    assert map_document_reference(None).document_name == "Unknown document"


async def test_form_suggestions_request_and_normalization(settings: Settings) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"suggestions": [
            {"fieldName": "diagnosis", "suggested_value": "Lumbar strain", "confidence_score": 0.8},
            {"fieldName": "empty"},
        ]})

    service, seen = _service(handler, settings)
    request = FormSuggestionRequest(
        case_id="CASE001",
        documents=[DocumentSummary(id="doc-1", name="MRI.pdf", category="imaging")],
        form_data={"diagnosis": ""},
    )

    suggestions = await service.generate_form_suggestions(request)

    assert [(s.field, s.value) for s in suggestions] == [("diagnosis", "Lumbar strain")]
    assert seen[0].url.path == "/v1/generate-form-suggestions"
    body = json.loads(seen[0].content)
    assert body["case_id"] == "CASE001"
    assert body["form_data"] == {"diagnosis": ""}
    assert body["documents"][0]["name"] == "MRI.pdf"
    await service.aclose()


async def test_form_suggestions_accept_bare_list(settings: Settings) -> None:
    service, _ = _service(
        lambda request: httpx.Response(200, json=[{"field": "a", "value": "b", "confidence": 3}]),
        settings,
    )

    suggestions = await service.generate_form_suggestions(FormSuggestionRequest(case_id="CASE001"))

    assert suggestions[0].confidence == 1.0


async def test_document_chat_normalizes_reply(settings: Settings) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        payload = json.loads(request.content)
        assert payload["messages"] == [{"role": "user", "content": "What is the diagnosis?"}]
        return httpx.Response(200, json={
            "answer": "Lumbar strain.",
            "citations": [{"id": "doc-1", "highlightPosition": {"x": 1, "y": 2, "width": 3, "height": 4}}],
        })

    service, seen = _service(handler, settings)
    response = await service.send_document_chat_message(DocumentChatRequest(
        case_id="CASE001",
        history=[DocumentChatMessage(role="user", content="What is the diagnosis?")],
    ))

    assert seen[0].url.path == "/v1/document-chat"
    assert response.reply == "Lumbar strain."
    assert response.references[0].document_id == "doc-1"
    assert response.references[0].highlight_position.height == 4.0


async def test_analyze_document(settings: Settings) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        payload = json.loads(request.content)
        assert payload == {
            "documentContent": "MRI shows herniation",
            "documentType": "imaging",
            "caseContext": "Back injury",
        }
        return httpx.Response(200, json={"analysis": ANALYSIS_TEXT})

    service, _ = _service(handler, settings)
    result = await service.analyze_document(AnalysisRequest(
        document_content="MRI shows herniation",
        document_type="imaging",
        case_context="Back injury",
    ))

    assert result.analysis == ANALYSIS_TEXT
    assert len(result.sections) == 3
    assert result.claim_validity == "medium/high"


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(500, json={"message": "boom"}),
        httpx.Response(200, json={"error": "quota exhausted"}),
        httpx.Response(200, text="not json"),
        httpx.Response(200, json={"analysis": ""}),
    ],
)
async def test_analysis_failures_raise(settings: Settings, response: httpx.Response) -> None:
    service, _ = _service(lambda request: response, settings)

    with pytest.raises(AIServiceError):
        await service.analyze_document(AnalysisRequest(document_content="text"))


async def test_transport_errors_raise(settings: Settings) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    service, _ = _service(handler, settings)

    with pytest.raises(AIServiceError):
        await service.send_document_chat_message(DocumentChatRequest(
            case_id="CASE001",
            history=[DocumentChatMessage(role="user", content="hi")],
        ))


async def test_demo_mode_without_endpoint(settings: Settings) -> None:
    service = AIService(settings)
    assert not service.is_configured

    analysis = await service.analyze_document(AnalysisRequest(document_content="text"))
    suggestions = await service.generate_form_suggestions(FormSuggestionRequest(case_id="CASE001"))
    chat = await service.send_document_chat_message(DocumentChatRequest(
        case_id="CASE001",
        history=[DocumentChatMessage(role="user", content="hi")],
    ))

    assert [s.title for s in analysis.sections] == [
        "Document Summary",
        "Key Medical Information",
        "Missing Information",
        "Red Flags",
        "Recommendations",
    ]
    assert analysis.claim_validity == "medium"
    assert suggestions == []
    assert "demo mode" in chat.reply
