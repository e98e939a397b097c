"""FastAPI application for media verification."""
import json
import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from dotenv import load_dotenv

from media_gate.config.settings import GateSettings, get_settings
from media_gate.errors import AdmissionError, PayloadTooLarge, ProjectNotFound
from media_gate.notifications.mailer import ResendNotifier
from media_gate.orchestration.admission import admit_submission
from media_gate.storage.projects import InMemoryProjectStore, JsonFileProjectStore
from media_gate.storage.submissions import InMemorySubmissionStore, JsonlSubmissionStore
from media_gate.utils.logging_config import setup_logging

# Load environment variables from .env file
load_dotenv()

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Media Verification API",
    description="Metadata requirement checks and submission admission for photo/video projects",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure as needed for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Collaborators (created lazily from settings, replaceable via configure_services)
_projects = None
_submissions = None
_notifier: Optional[ResendNotifier] = None


def get_project_store():
    """Get or create the project store."""
    global _projects
    if _projects is None:
        settings = get_settings()
        if settings.projects_file:
            _projects = JsonFileProjectStore(settings.projects_file)
        else:
            logger.warning("PROJECTS_FILE not set; starting with an empty in-memory project store")
            _projects = InMemoryProjectStore()
    return _projects


def get_submission_store():
    """Get or create the submission store."""
    global _submissions
    if _submissions is None:
        settings = get_settings()
        if settings.submissions_file:
            _submissions = JsonlSubmissionStore(settings.submissions_file)
        else:
            logger.warning("SUBMISSIONS_FILE not set; submissions are kept in memory only")
            _submissions = InMemorySubmissionStore()
    return _submissions


def get_notifier() -> ResendNotifier:
    """Get or create the mail notifier."""
    global _notifier
    if _notifier is None:
        settings = get_settings()
        _notifier = ResendNotifier(
            api_key=settings.resend_api_key,
            sender=settings.resend_from,
            api_url=settings.resend_api_url,
        )
    return _notifier


def configure_services(projects=None, submissions=None, notifier: Optional[ResendNotifier] = None):
    """Swap collaborators (tests, embedding)."""
    global _projects, _submissions, _notifier
    _projects = projects
    _submissions = submissions
    _notifier = notifier


@app.on_event("startup")
async def startup_event():
    """Initialize services on application startup."""
    logger.info("Application startup: Initializing services...")
    settings = get_settings()
    get_project_store()
    get_submission_store()
    notifier = get_notifier()
    logger.info(f"Payload ceiling: {settings.max_payload_bytes} bytes")
    logger.info(f"Metadata ceiling: {settings.max_metadata_bytes_per_file} bytes/file")
    logger.info(f"Mail relay: {'configured' if notifier.configured else 'not configured'}")
    logger.info("Application startup complete")


@app.exception_handler(AdmissionError)
async def admission_error_handler(request: Request, exc: AdmissionError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


def _check_declared_length(request: Request, settings: GateSettings):
    declared = request.headers.get("content-length")
    if not declared:
        return
    try:
        length = int(declared)
    except ValueError:
        return
    if length > settings.max_payload_bytes:
        raise PayloadTooLarge(settings.max_payload_bytes)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Media Verification API",
        "version": "1.0.0",
        "endpoints": {
            "GET /api/project/{project_id}": "Public requirement config for a project",
            "POST /verify/{project_id}": "Submit verified media metadata",
            "GET /health": "Health check endpoint"
        }
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    settings = get_settings()
    return {
        "status": "healthy",
        "projects_loaded": len(get_project_store().list()),
        "mail_configured": get_notifier().configured,
        "max_payload_bytes": settings.max_payload_bytes,
        "max_metadata_bytes_per_file": settings.max_metadata_bytes_per_file,
    }


@app.get("/api/project/{project_id}")
async def get_public_project(project_id: str):
    """
    Public requirement config for an active project.

    The mail recipient is never included.
    """
    project = get_project_store().get(project_id)
    if project is None or not project.active:
        raise ProjectNotFound(project_id)
    return project.public_view()


@app.post("/verify/{project_id}")
async def verify_submission(project_id: str, request: Request):
    """
    Admit a submission for a project.

    - Declared and actual body size are checked against the payload ceiling
      before parsing.
    - The project, its mode, counts, allowed types and per-file metadata size
      are re-checked server-side.
    """
    settings = get_settings()
    _check_declared_length(request, settings)

    raw = await request.body()
    if len(raw) > settings.max_payload_bytes:
        raise PayloadTooLarge(settings.max_payload_bytes)

    try:
        body = json.loads(raw) if raw else None
    except (ValueError, RecursionError):
        body = None

    result = await run_in_threadpool(
        admit_submission,
        project_id,
        body,
        get_project_store(),
        get_submission_store(),
        settings,
        get_notifier(),
    )
    return JSONResponse(status_code=200, content=result.to_dict())


if __name__ == "__main__":
    import uvicorn
    setup_logging()
    uvicorn.run(app, host="0.0.0.0", port=8000)
