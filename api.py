# api.py
"""
FastAPI application for Gradely.
Exposes review, assistant, chat, assignment and grading-run endpoints.

Run with: uvicorn api:app --reload
"""

import logging
from typing import Any, List, Optional, Tuple

from dotenv import load_dotenv

# gradely configures logging on import from the environment; load .env first
load_dotenv()

from fastapi import BackgroundTasks, Depends, FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel, ConfigDict, Field

from gradely import __version__
from gradely.auth import authenticate, require_role
from gradely.chat import handle_chat
from gradely.config import load_settings
from gradely.errors import ForbiddenError, GradelyError, InvalidInputError, NotFoundError, UpstreamError
from gradely.jobs import GRADE_JOB, JobQueue, make_job_handler
from gradely.models import AssistantResult, ReviewResult, SessionConfig
from gradely.providers import call_groq_model, call_hf_model
from gradely.reviewer import assist, create_assignment, review_code, selftest, submit_assignment
from gradely.session import SESSION_COOKIE, SESSION_MAX_AGE, InMemorySessionStore, SessionStore, load_session
from gradely.store import Store
from gradely.streaming import stream_run_events

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    InvalidInputError: 400,
    ForbiddenError: 403,
    NotFoundError: 404,
}


# ── Request models ──────────────────────────────────────────────────────────

class ReviewRequest(BaseModel):
    # non-string code gets the "No code provided." review, not a 400
    code: Any = None
    language: Any = None
    models: Optional[List[str]] = None


class AssistantRequest(BaseModel):
    prompt: str = ""
    code: str = ""
    language: str = ""
    models: Optional[List[str]] = None


class ChatRequest(BaseModel):
    message: str = ""


class AssignmentRequest(BaseModel):
    title: str = ""
    description: Optional[str] = None
    language: str = ""


class SubmissionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    code: str = ""
    language: str = ""
    user_email: Optional[str] = Field(None, alias="userEmail")


class LoginRequest(BaseModel):
    email: str = ""
    password: str = ""
    role: str = "student"


class HealthResponse(BaseModel):
    status: str
    version: str


# ── Application ─────────────────────────────────────────────────────────────

def create_app(store: Optional[Store] = None, sessions: Optional[SessionStore] = None) -> FastAPI:
    """Build the app with its own store, session table and job queue."""
    app = FastAPI(
        title="Gradely",
        description="AI code review for assignments, backed by free LLM models",
        version=__version__,
    )
    app.state.store = store or Store()
    app.state.sessions = sessions or InMemorySessionStore()
    app.state.queue = JobQueue()

    @app.exception_handler(UpstreamError)
    async def upstream_error_handler(request: Request, exc: UpstreamError):
        return error_response(request, 502, {"error": str(exc), "info": exc.info})

    @app.exception_handler(GradelyError)
    async def gradely_error_handler(request: Request, exc: GradelyError):
        status = ERROR_STATUS.get(type(exc), 500)
        return error_response(request, status, {"error": str(exc)})

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return error_response(request, 400, {"error": describe_validation_error(exc)})

    _register_routes(app)
    return app


def describe_validation_error(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "invalid value")
    return f"Invalid {field}: {message}" if field else f"Invalid request: {message}"


def set_session_cookie(response: Response, session_id: str) -> None:
    response.set_cookie(SESSION_COOKIE, session_id, max_age=SESSION_MAX_AGE, path="/")


def error_response(request: Request, status_code: int, content: dict) -> JSONResponse:
    """JSON error body that still carries a session cookie issued for this request."""
    response = JSONResponse(status_code=status_code, content=content)
    issued = getattr(request.state, "issued_session", None)
    if issued:
        set_session_cookie(response, issued)
    return response


def current_session(request: Request, response: Response) -> Tuple[str, SessionConfig]:
    """Resolve the session cookie, issuing a new one when absent."""
    cookie = request.cookies.get(SESSION_COOKIE)
    session_id, config = load_session(request.app.state.sessions, cookie)
    if cookie != session_id:
        set_session_cookie(response, session_id)
        # error handlers build a fresh response and re-attach it from here
        request.state.issued_session = session_id
    return session_id, config


def _register_routes(app: FastAPI) -> None:

    @app.get("/", response_model=HealthResponse)
    def root():
        return {"status": "ok", "version": __version__}

    @app.get("/health", response_model=HealthResponse)
    def health():
        return {"status": "ok", "version": __version__}

    @app.post("/api/login")
    def login(body: LoginRequest, session=Depends(current_session)):
        session_id, config = session
        role = authenticate(body.email, body.password, body.role)
        if role is None:
            raise ForbiddenError("Invalid credentials")
        config.role = role
        app.state.sessions.set(session_id, config)
        return {"email": body.email.strip().lower(), "role": role}

    # ── Review / assistant / chat ───────────────────────────────────────────

    @app.post("/api/review", response_model=ReviewResult)
    def review(body: ReviewRequest, session=Depends(current_session)):
        _, config = session
        try:
            language = body.language if isinstance(body.language, str) else ""
            return review_code(body.code, language, models=body.models, api_key=config.hf_key)
        except Exception as e:
            logger.error(f"Review failed unexpectedly: {e}")
            return ReviewResult(summary="Unexpected error while analyzing code. Please try again.", issues=[])

    @app.post("/api/assistant", response_model=AssistantResult)
    def assistant(body: AssistantRequest, request: Request, session=Depends(current_session)):
        _, config = session
        try:
            return assist(body.prompt, body.code, body.language, models=body.models, api_key=config.hf_key)
        except GradelyError:
            raise
        except Exception as e:
            logger.error(f"Assistant failed unexpectedly: {e}")
            return error_response(request, 500, {"error": "Assistant route failure", "message": str(e)})

    @app.post("/api/chat")
    def chat(body: ChatRequest, session=Depends(current_session)):
        session_id, _ = session
        if not body.message:
            raise InvalidInputError("Missing message")
        reply = handle_chat(body.message, app.state.sessions, session_id)
        return {"reply": reply}

    # ── Assignments and submissions ─────────────────────────────────────────

    @app.get("/api/assignments")
    def list_assignments():
        return {"items": app.state.store.list_assignments()}

    @app.post("/api/assignments")
    def new_assignment(body: AssignmentRequest, session=Depends(current_session)):
        _, config = session
        require_role(config)
        return create_assignment(app.state.store, body.title, body.language, body.description)

    @app.get("/api/assignments/{assignment_id}/submissions")
    def list_submissions(assignment_id: str):
        app.state.store.get_assignment(assignment_id)
        return {"items": app.state.store.list_submissions(assignment_id)}

    @app.post("/api/assignments/{assignment_id}/submissions")
    def new_submission(assignment_id: str, body: SubmissionRequest):
        return submit_assignment(
            app.state.store,
            assignment_id,
            body.code,
            body.language,
            user_email=body.user_email,
        )

    # ── Grading runs ────────────────────────────────────────────────────────

    @app.post("/api/submissions/{submission_id}/run")
    def start_run(submission_id: str, background_tasks: BackgroundTasks):
        store = app.state.store
        store.get_submission(submission_id)

        run = store.create_run(submission_id)
        app.state.queue.add(GRADE_JOB, {"submission_id": submission_id, "run_id": run.id})
        background_tasks.add_task(app.state.queue.drain, make_job_handler(store))
        return run

    @app.get("/api/runs/{run_id}/logs")
    async def run_logs(run_id: str, request: Request):
        return StreamingResponse(
            stream_run_events(app.state.store, run_id, is_disconnected=request.is_disconnected),
            media_type="text/event-stream",
            headers={
                "Cache-Control": "no-cache, no-transform",
                "Connection": "keep-alive",
            },
        )

    # ── Diagnostics ─────────────────────────────────────────────────────────

    @app.get("/api/groq-selftest")
    def groq_selftest():
        return selftest(load_settings().chat_models, call_groq_model)

    @app.get("/api/hf-selftest")
    def hf_selftest():
        return selftest(load_settings().hf_selftest_models, call_hf_model)


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("api:app", host="0.0.0.0", port=8000)
