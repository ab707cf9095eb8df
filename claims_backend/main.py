"""
Claims Platform API - Medical Evaluation of Insurance Claims

Backend for administrators, doctors and system administrators working on
healthcare insurance claims.

This API provides:
- Session login with role-based access
- Case management, doctor assignment and evaluations
- Document upload and case chat
- Activity auditing, data export/import and backup recovery
- A proxy to the remote AI document functions
"""

import time
from contextlib import asynccontextmanager
from datetime import date
from typing import TypeVar
from uuid import uuid4

from fastapi import Depends, FastAPI, File, Form, Header, HTTPException, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from claims_backend.config.config import Settings, get_settings
from claims_backend.config.logging_config import (
    bind_user_context,
    configure_logging,
    get_logger,
    log_request_context,
)
from claims_backend.models.ai_models import (
    AnalysisRequest,
    AnalysisResponse,
    DocumentChatRequest,
    DocumentChatResponse,
    FormSuggestion,
    FormSuggestionRequest,
)
from claims_backend.models.entities import (
    ActivityLog,
    AIRule,
    ChatMessage,
    Document,
    PatientCase,
    UserRole,
    now_iso,
)
from claims_backend.models.models import (
    AIRuleRequest,
    AssignCaseRequest,
    CaseCreateRequest,
    CaseUpdateRequest,
    DashboardResponse,
    DataStats,
    DocumentUploadResponse,
    ErrorResponse,
    EvaluationRequest,
    HealthResponse,
    HealthStatus,
    ImportResponse,
    LoginRequest,
    LoginResponse,
    SendMessageRequest,
    UnreadCountResponse,
    UserCreateRequest,
    UserProfile,
    UserUpdateRequest,
    VisibilityRequest,
    VisibilityResponse,
)
from claims_backend.services.ai_service import AIServiceError, close_ai_service, get_ai_service
from claims_backend.services.auth_service import Session, get_auth_service, get_session_registry
from claims_backend.services.case_service import get_case_service
from claims_backend.services.chat_service import get_chat_service
from claims_backend.services.data_service import get_data_service, reset_data_service
from claims_backend.services.document_service import get_document_service
from claims_backend.services.errors import OperationResult, http_status_for_error

# Configure logging before anything else
configure_logging()
logger = get_logger(__name__)

T = TypeVar("T")

ADMIN_ROLES = (UserRole.ADMIN, UserRole.SYSTEM_ADMIN)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Loads the data store on startup and writes the final snapshot on
    shutdown.
    """
    settings = get_settings()

    # Startup
    logger.info(
        "Application starting",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
        config=settings.get_safe_config_dict(),
    )
    stats = get_data_service().get_data_stats()
    logger.info("Data store ready", users=stats.users, cases=stats.cases, version=stats.version)

    yield

    # Shutdown
    logger.info("Application shutting down")
    reset_data_service()
    await close_ai_service()


# ============================================================================
# Dependencies
# ============================================================================

def get_current_session(x_session_token: str | None = Header(default=None)) -> Session:
    """Resolve the ``X-Session-Token`` header to an authenticated session."""
    registry = get_session_registry()
    session = registry.get(x_session_token) if x_session_token else None
    if session is None or not get_auth_service().refresh_session(session):
        if session is not None:
            registry.discard(session.session_id)
        raise HTTPException(status_code=401, detail="Authentication required")
    bind_user_context(session.user.id, session.user.role)
    return session


def require_roles(*roles: UserRole):
    """Dependency factory restricting an endpoint to the given roles."""
    allowed = {role.value for role in roles}

    def dependency(session: Session = Depends(get_current_session)) -> Session:
        if session.user.role not in allowed:
            raise HTTPException(status_code=403, detail="Insufficient permissions")
        return session

    return dependency


def unwrap(result: OperationResult[T]) -> T:
    """Return the value of a successful result, or raise the mapped HTTP error."""
    if not result.ok:
        raise HTTPException(status_code=http_status_for_error(result.error), detail=result.message)
    return result.value


def ensure_case_access(session: Session, case: PatientCase) -> None:
    """Doctors may only reach the cases assigned to them."""
    if session.user.role == UserRole.DOCTOR.value and case.doctor_id != session.user.id:
        raise HTTPException(status_code=403, detail="Case is not assigned to you")


def create_app(settings: Settings | None = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Optional settings override for testing.

    Returns:
        Configured FastAPI application.
    """
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.app_name,
        description=__doc__,
        version=settings.app_version,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Content-Disposition", "X-Request-ID"],
    )

    # Request logging middleware
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log all requests with timing and context."""
        request_id = str(uuid4())
        start_time = time.perf_counter()

        # Bind request context for all logs in this request
        log_request_context(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )

        response = await call_next(request)

        processing_time = int((time.perf_counter() - start_time) * 1000)
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Processing-Time-Ms"] = str(processing_time)

        logger.info(
            "Request completed",
            status_code=response.status_code,
            processing_time_ms=processing_time,
        )

        return response

    # Exception handlers
    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        """Handle HTTP exceptions with structured response."""
        return JSONResponse(
            status_code=exc.status_code,
            content=ErrorResponse(
                error=f"HTTP_{exc.status_code}",
                message=str(exc.detail),
                request_id=request.headers.get("X-Request-ID"),
            ).model_dump(mode="json"),
        )

    @app.exception_handler(AIServiceError)
    async def ai_service_exception_handler(request: Request, exc: AIServiceError):
        """Remote AI failures are reported as a bad gateway."""
        return JSONResponse(
            status_code=502,
            content=ErrorResponse(
                error="AI_SERVICE_ERROR",
                message=str(exc),
                request_id=request.headers.get("X-Request-ID"),
            ).model_dump(mode="json"),
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle unexpected exceptions."""
        logger.exception("Unhandled exception", error=str(exc))
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(
                error="INTERNAL_ERROR",
                message="An unexpected error occurred",
                request_id=request.headers.get("X-Request-ID"),
            ).model_dump(mode="json"),
        )

    # Register routes
    register_routes(app)

    return app


def register_routes(app: FastAPI) -> None:
    """Register all API routes."""
    register_system_routes(app)
    register_auth_routes(app)
    register_user_routes(app)
    register_case_routes(app)
    register_document_routes(app)
    register_message_routes(app)
    register_admin_routes(app)
    register_ai_routes(app)


def register_system_routes(app: FastAPI) -> None:
    @app.get("/", tags=["Root"])
    async def root():
        """Root endpoint with API information."""
        settings = get_settings()
        return {
            "name": settings.app_name,
            "version": settings.app_version,
            "status": "operational",
            "docs": "/docs" if settings.debug else "disabled",
        }

    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health_check(settings: Settings = Depends(get_settings)) -> HealthResponse:
        """
        Health check endpoint for monitoring.

        Returns system health status and component checks.
        """
        checks = {
            "api": True,
            "data_store": get_data_service().get_data_stats().users > 0,
            "ai_configured": settings.ai_configured,
        }

        # Determine overall status
        if all(checks.values()):
            status = HealthStatus.HEALTHY
        elif checks["api"] and checks["data_store"]:
            status = HealthStatus.DEGRADED
        else:
            status = HealthStatus.UNHEALTHY

        return HealthResponse(
            status=status,
            version=settings.app_version,
            environment=settings.environment,
            checks=checks,
        )


def register_auth_routes(app: FastAPI) -> None:
    @app.post("/api/v1/auth/login", response_model=LoginResponse, tags=["Auth"])
    async def login(payload: LoginRequest, request: Request) -> LoginResponse:
        """
        Log in with email and password.

        The returned session token must be sent as ``X-Session-Token`` on
        every other call.
        """
        registry = get_session_registry()
        session = registry.create(request.client.host if request.client else None)
        result = get_auth_service().login(session, payload.email, payload.password)
        if not result.ok:
            registry.discard(session.session_id)
        user = unwrap(result)
        return LoginResponse(session_token=session.session_id, user=UserProfile.from_user(user))

    @app.post("/api/v1/auth/logout", tags=["Auth"])
    async def logout(session: Session = Depends(get_current_session)):
        get_auth_service().logout(session)
        get_session_registry().discard(session.session_id)
        return {"success": True}

    @app.get("/api/v1/auth/me", response_model=UserProfile, tags=["Auth"])
    async def me(session: Session = Depends(get_current_session)) -> UserProfile:
        return UserProfile.from_user(get_auth_service().get_current_user(session))


def register_user_routes(app: FastAPI) -> None:
    @app.get("/api/v1/users", response_model=list[UserProfile], tags=["Users"])
    async def list_users(session: Session = Depends(require_roles(*ADMIN_ROLES))) -> list[UserProfile]:
        return [UserProfile.from_user(u) for u in get_auth_service().get_all_users()]

    @app.get("/api/v1/users/doctors", response_model=list[UserProfile], tags=["Users"])
    async def list_doctors(session: Session = Depends(get_current_session)) -> list[UserProfile]:
        """Active doctors available for assignment."""
        return [UserProfile.from_user(u) for u in get_auth_service().get_doctors()]

    @app.post("/api/v1/users", response_model=UserProfile, status_code=201, tags=["Users"])
    async def create_user(
        payload: UserCreateRequest,
        session: Session = Depends(require_roles(*ADMIN_ROLES)),
    ) -> UserProfile:
        user = unwrap(get_auth_service().create_user(
            session,
            email=payload.email,
            name=payload.name,
            role=payload.role,
            password=payload.password,
            specialization=payload.specialization,
            license_number=payload.license_number,
        ))
        return UserProfile.from_user(user)

    @app.patch("/api/v1/users/{user_id}", response_model=UserProfile, tags=["Users"])
    async def update_user(
        user_id: str,
        payload: UserUpdateRequest,
        session: Session = Depends(get_current_session),
    ) -> UserProfile:
        """Update a profile; users may edit themselves, administrators anyone."""
        if session.user.id != user_id and session.user.role not in {r.value for r in ADMIN_ROLES}:
            raise HTTPException(status_code=403, detail="Insufficient permissions")

        auth = get_auth_service()
        user = auth.get_user(user_id)
        if user is None:
            raise HTTPException(status_code=404, detail=f"User {user_id} not found")
        for name, value in payload.model_dump(exclude_unset=True, exclude_none=True).items():
            setattr(user, name, value)
        auth.update_user(user)
        return UserProfile.from_user(user)

    @app.post("/api/v1/users/{user_id}/deactivate", response_model=UserProfile, tags=["Users"])
    async def deactivate_user(
        user_id: str,
        session: Session = Depends(require_roles(*ADMIN_ROLES)),
    ) -> UserProfile:
        user = unwrap(get_auth_service().deactivate_user(session, user_id))
        get_session_registry().discard_user(user.id)
        return UserProfile.from_user(user)


def register_case_routes(app: FastAPI) -> None:
    @app.get("/api/v1/dashboard", response_model=DashboardResponse, tags=["Cases"])
    async def dashboard(session: Session = Depends(get_current_session)) -> DashboardResponse:
        """Cases, unread messages and (for administrators) store statistics."""
        cases = get_case_service()
        cases.record_dashboard_view(session)
        user = session.user
        is_admin = user.role in {r.value for r in ADMIN_ROLES}
        return DashboardResponse(
            role=user.role,
            cases=cases.get_cases_for_user(session),
            unread_messages=get_chat_service().get_unread_count(user.id, user.role),
            stats=get_data_service().get_data_stats() if is_admin else None,
        )

    @app.get("/api/v1/cases", response_model=list[PatientCase], tags=["Cases"])
    async def list_cases(session: Session = Depends(get_current_session)) -> list[PatientCase]:
        """Doctors get their assigned cases; administrators get every case."""
        return get_case_service().get_cases_for_user(session)

    @app.get("/api/v1/cases/unassigned", response_model=list[PatientCase], tags=["Cases"])
    async def list_unassigned_cases(
        session: Session = Depends(require_roles(*ADMIN_ROLES)),
    ) -> list[PatientCase]:
        return get_case_service().get_unassigned_cases()

    @app.post("/api/v1/cases", response_model=PatientCase, status_code=201, tags=["Cases"])
    async def create_case(
        payload: CaseCreateRequest,
        session: Session = Depends(require_roles(*ADMIN_ROLES)),
    ) -> PatientCase:
        return unwrap(get_case_service().create_case(session, payload))

    @app.get("/api/v1/cases/{case_id}", response_model=PatientCase, tags=["Cases"])
    async def get_case(case_id: str, session: Session = Depends(get_current_session)) -> PatientCase:
        cases = get_case_service()
        ensure_case_access(session, unwrap(cases.get_case(case_id)))
        return unwrap(cases.open_case(session, case_id))

    @app.patch("/api/v1/cases/{case_id}", response_model=PatientCase, tags=["Cases"])
    async def update_case(
        case_id: str,
        payload: CaseUpdateRequest,
        session: Session = Depends(require_roles(*ADMIN_ROLES)),
    ) -> PatientCase:
        return unwrap(get_case_service().update_case(session, case_id, payload))

    @app.delete("/api/v1/cases/{case_id}", status_code=204, tags=["Cases"])
    async def delete_case(
        case_id: str,
        session: Session = Depends(require_roles(*ADMIN_ROLES)),
    ) -> Response:
        unwrap(get_case_service().delete_case(session, case_id))
        return Response(status_code=204)

    @app.post("/api/v1/cases/{case_id}/assign", response_model=PatientCase, tags=["Cases"])
    async def assign_case(
        case_id: str,
        payload: AssignCaseRequest,
        session: Session = Depends(require_roles(*ADMIN_ROLES)),
    ) -> PatientCase:
        return unwrap(get_case_service().assign_case_to_doctor(session, case_id, payload.doctor_id))

    @app.put("/api/v1/cases/{case_id}/evaluation", response_model=PatientCase, tags=["Evaluations"])
    async def save_evaluation(
        case_id: str,
        payload: EvaluationRequest,
        session: Session = Depends(get_current_session),
    ) -> PatientCase:
        """Save an evaluation draft."""
        return unwrap(get_case_service().save_evaluation(session, case_id, payload.evaluation))

    @app.post("/api/v1/cases/{case_id}/evaluation/submit", response_model=PatientCase, tags=["Evaluations"])
    async def submit_evaluation(
        case_id: str,
        payload: EvaluationRequest,
        session: Session = Depends(get_current_session),
    ) -> PatientCase:
        """Submit the final evaluation; the case is completed."""
        return unwrap(get_case_service().submit_evaluation(session, case_id, payload.evaluation))


def register_document_routes(app: FastAPI) -> None:
    @app.get("/api/v1/cases/{case_id}/documents", response_model=list[Document], tags=["Documents"])
    async def list_documents(case_id: str, session: Session = Depends(get_current_session)) -> list[Document]:
        ensure_case_access(session, unwrap(get_case_service().get_case(case_id)))
        return get_document_service().get_documents_for_case(case_id)

    @app.post(
        "/api/v1/cases/{case_id}/documents",
        response_model=DocumentUploadResponse,
        status_code=201,
        tags=["Documents"],
    )
    async def upload_documents(
        case_id: str,
        files: list[UploadFile] = File(...),
        category: str = Form(default="medical_report"),
        session: Session = Depends(get_current_session),
    ) -> DocumentUploadResponse:
        """
        Upload one or more files to a case.

        Files failing validation are reported in ``rejected``; the rest are
        stored. The request fails only when nothing could be stored.
        """
        ensure_case_access(session, unwrap(get_case_service().get_case(case_id)))
        documents = get_document_service()
        response = DocumentUploadResponse()
        for upload in files:
            data = await upload.read()
            result = documents.upload_document(
                session,
                case_id,
                upload.filename or "unknown-file",
                data,
                category,
                content_type=upload.content_type,
            )
            if result.ok:
                response.uploaded.append(result.value)
            else:
                response.rejected.append(result.message)

        if not response.uploaded:
            raise HTTPException(status_code=400, detail="; ".join(response.rejected) or "No files uploaded")
        return response

    @app.delete("/api/v1/documents/{document_id}", status_code=204, tags=["Documents"])
    async def delete_document(
        document_id: str,
        session: Session = Depends(require_roles(*ADMIN_ROLES)),
    ) -> Response:
        unwrap(get_document_service().delete_document(session, document_id))
        return Response(status_code=204)


def register_message_routes(app: FastAPI) -> None:
    @app.get("/api/v1/cases/{case_id}/messages", response_model=list[ChatMessage], tags=["Messages"])
    async def list_messages(case_id: str, session: Session = Depends(get_current_session)) -> list[ChatMessage]:
        """Messages of a case visible to the caller's role, oldest first."""
        ensure_case_access(session, unwrap(get_case_service().get_case(case_id)))
        return get_chat_service().get_messages_for_case(case_id, session.user.role)

    @app.post(
        "/api/v1/cases/{case_id}/messages",
        response_model=ChatMessage,
        status_code=201,
        tags=["Messages"],
    )
    async def send_message(
        case_id: str,
        payload: SendMessageRequest,
        session: Session = Depends(get_current_session),
    ) -> ChatMessage:
        ensure_case_access(session, unwrap(get_case_service().get_case(case_id)))
        return unwrap(get_chat_service().send_message(
            session,
            case_id,
            payload.message,
            payload.recipient_role,
        ))

    @app.post("/api/v1/cases/{case_id}/messages/read", tags=["Messages"])
    async def mark_case_read(case_id: str, session: Session = Depends(get_current_session)):
        ensure_case_access(session, unwrap(get_case_service().get_case(case_id)))
        return {"marked": get_chat_service().mark_case_read(case_id, session.user)}

    @app.post("/api/v1/messages/{message_id}/read", tags=["Messages"])
    async def mark_message_read(message_id: str, session: Session = Depends(get_current_session)):
        if not get_chat_service().mark_as_read(message_id):
            raise HTTPException(status_code=404, detail=f"Message {message_id} not found")
        return {"success": True}

    @app.get("/api/v1/messages/unread-count", response_model=UnreadCountResponse, tags=["Messages"])
    async def unread_count(
        case_id: str | None = None,
        session: Session = Depends(get_current_session),
    ) -> UnreadCountResponse:
        chat = get_chat_service()
        user = session.user
        if case_id:
            count = chat.get_unread_count_for_case(case_id, user.id, user.role)
        else:
            count = chat.get_unread_count(user.id, user.role)
        return UnreadCountResponse(count=count, case_id=case_id)


def register_admin_routes(app: FastAPI) -> None:
    @app.get("/api/v1/activity-logs", response_model=list[ActivityLog], tags=["Audit"])
    async def list_activity_logs(
        user_id: str | None = None,
        session: Session = Depends(require_roles(*ADMIN_ROLES)),
    ) -> list[ActivityLog]:
        """Activity logs, newest first, optionally for one user."""
        auth = get_auth_service()
        if user_id:
            return auth.get_user_activity_logs(user_id)
        return auth.get_activity_logs()

    @app.get("/api/v1/ai-rules", response_model=list[AIRule], tags=["AI Rules"])
    async def list_ai_rules(session: Session = Depends(get_current_session)) -> list[AIRule]:
        return get_data_service().get_ai_rules()

    @app.post("/api/v1/ai-rules", response_model=AIRule, status_code=201, tags=["AI Rules"])
    async def create_ai_rule(
        payload: AIRuleRequest,
        session: Session = Depends(require_roles(*ADMIN_ROLES)),
    ) -> AIRule:
        rule = AIRule(id=uuid4().hex, created_by=session.user.id, updated_at=now_iso(), **payload.model_dump())
        get_data_service().add_ai_rule(rule)
        logger.info("AI rule created", rule_id=rule.id)
        return rule

    @app.put("/api/v1/ai-rules/{rule_id}", response_model=AIRule, tags=["AI Rules"])
    async def update_ai_rule(
        rule_id: str,
        payload: AIRuleRequest,
        session: Session = Depends(require_roles(*ADMIN_ROLES)),
    ) -> AIRule:
        data = get_data_service()
        existing = next((r for r in data.get_ai_rules() if r.id == rule_id), None)
        if existing is None:
            raise HTTPException(status_code=404, detail=f"AI rule {rule_id} not found")
        rule = AIRule(id=rule_id, created_by=existing.created_by, updated_at=now_iso(), **payload.model_dump())
        data.update_ai_rule(rule)
        return rule

    @app.delete("/api/v1/ai-rules/{rule_id}", status_code=204, tags=["AI Rules"])
    async def delete_ai_rule(
        rule_id: str,
        session: Session = Depends(require_roles(*ADMIN_ROLES)),
    ) -> Response:
        if not get_data_service().delete_ai_rule(rule_id):
            raise HTTPException(status_code=404, detail=f"AI rule {rule_id} not found")
        return Response(status_code=204)

    @app.get("/api/v1/data/export", tags=["Data"])
    async def export_data(session: Session = Depends(require_roles(*ADMIN_ROLES))) -> Response:
        """Download the whole snapshot as an indented JSON file."""
        filename = f"claims-platform-backup-{date.today().isoformat()}.json"
        logger.info("Data exported", user_id=session.user.id)
        return Response(
            content=get_data_service().export_data(),
            media_type="application/json",
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )

    @app.post("/api/v1/data/import", response_model=ImportResponse, tags=["Data"])
    async def import_data(
        request: Request,
        session: Session = Depends(require_roles(UserRole.SYSTEM_ADMIN)),
    ) -> ImportResponse:
        """
        Replace the store with an exported snapshot sent as the raw body.

        Invalid content is rejected and the current data is kept.
        """
        body = (await request.body()).decode("utf-8", errors="replace")
        data = get_data_service()
        if not data.import_data(body):
            raise HTTPException(status_code=400, detail="Invalid data format")
        return ImportResponse(success=True, stats=data.get_data_stats())

    @app.get("/api/v1/data/stats", response_model=DataStats, tags=["Data"])
    async def data_stats(session: Session = Depends(require_roles(*ADMIN_ROLES))) -> DataStats:
        return get_data_service().get_data_stats()

    @app.post("/api/v1/data/visibility", response_model=VisibilityResponse, tags=["Data"])
    async def visibility_change(payload: VisibilityRequest) -> VisibilityResponse:
        """Client reports its page visibility; ``hidden`` flushes the store."""
        return VisibilityResponse(flushed=get_data_service().handle_visibility_change(payload.state))


def register_ai_routes(app: FastAPI) -> None:
    @app.post("/api/v1/ai/analyze", response_model=AnalysisResponse, tags=["AI"])
    async def analyze_document(
        payload: AnalysisRequest,
        session: Session = Depends(get_current_session),
    ) -> AnalysisResponse:
        """Analyze a medical document against its case context."""
        logger.info("Document analysis request received", user_id=session.user.id)
        return await get_ai_service().analyze_document(payload)

    @app.post("/api/v1/ai/form-suggestions", response_model=list[FormSuggestion], tags=["AI"])
    async def form_suggestions(
        payload: FormSuggestionRequest,
        session: Session = Depends(get_current_session),
    ) -> list[FormSuggestion]:
        ensure_case_access(session, unwrap(get_case_service().get_case(payload.case_id)))
        return await get_ai_service().generate_form_suggestions(payload)

    @app.post("/api/v1/ai/chat", response_model=DocumentChatResponse, tags=["AI"])
    async def document_chat(
        payload: DocumentChatRequest,
        session: Session = Depends(get_current_session),
    ) -> DocumentChatResponse:
        """Chat with the assistant about a case's documents."""
        ensure_case_access(session, unwrap(get_case_service().get_case(payload.case_id)))
        return await get_ai_service().send_document_chat_message(payload)


# Create the application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "claims_backend.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
