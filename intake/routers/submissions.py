"""Contact form endpoints: form sessions, photo staging, and submit."""

import logging

from fastapi import APIRouter, File, Form, HTTPException, UploadFile
from fastapi.responses import JSONResponse, Response

from intake.config import get_settings
from intake.middleware import current_request_id
from intake.models.submission import DraftSubmission, SessionView, SubmissionOutcome
from intake.services.attachments import MAX_PHOTO_BYTES, AttachmentError, StagedFile
from intake.services.blob_storage import AzureBlobStore
from intake.services.orchestrator import FormSession, SubmissionOrchestrator
from intake.services.postgrest import PostgrestBanRegistry, PostgrestRecordStore
from intake.services.sessions import SessionStore

router = APIRouter(prefix="/intake", tags=["intake"])
logger = logging.getLogger(__name__)

# HTTP status per outcome
OUTCOME_STATUS = {
    "succeeded": 200,
    "invalid": 422,
    "blocked": 403,
    "busy": 409,
    "failed": 502,
}

# Lazy singletons, live for the process lifetime
_sessions: SessionStore | None = None
_orchestrator: SubmissionOrchestrator | None = None


def get_sessions() -> SessionStore:
    global _sessions
    if _sessions is None:
        settings = get_settings()
        _sessions = SessionStore(
            ttl=settings.session_ttl_seconds, max_size=settings.max_sessions
        )
    return _sessions


def get_orchestrator() -> SubmissionOrchestrator:
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = SubmissionOrchestrator(
            ban_registry=PostgrestBanRegistry(),
            blob_store=AzureBlobStore(),
            record_store=PostgrestRecordStore(),
            timeout=get_settings().network_timeout_seconds,
        )
    return _orchestrator


def _preview_url(handle: str) -> str:
    return f"/api/intake/previews/{handle}"


def _session_or_404(session_id: str) -> FormSession:
    session = get_sessions().get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Form session not found")
    return session


def _idle_or_409(session: FormSession) -> None:
    if session.is_busy:
        raise HTTPException(status_code=409, detail="A submission is already in progress")


async def _read_uploads(photos: list[UploadFile]) -> list[StagedFile]:
    staged = []
    for upload in photos:
        # One byte past the limit is enough for the size check to reject it
        data = await upload.read(MAX_PHOTO_BYTES + 1)
        staged.append(
            StagedFile(
                filename=upload.filename or "",
                content_type=upload.content_type or "",
                data=data,
            )
        )
    return staged


def _stage(session: FormSession, files: list[StagedFile]) -> None:
    try:
        session.attachments.add_files(files)
    except AttachmentError as e:
        logger.info(
            "Rejected %d photos for session %s (request %s): %s",
            len(files),
            session.session_id,
            current_request_id(),
            e,
        )
        raise HTTPException(status_code=400, detail=e.message)


def _outcome_response(session: FormSession, outcome: SubmissionOutcome) -> JSONResponse:
    logger.info(
        "Submit for session %s finished %s (request %s)",
        session.session_id,
        outcome.status,
        current_request_id(),
    )
    return JSONResponse(
        content=outcome.model_dump(mode="json"),
        status_code=OUTCOME_STATUS[outcome.status],
    )


@router.post("/sessions", response_model=SessionView, status_code=201)
async def open_session():
    """Open a new, empty contact form."""
    session = get_sessions().create()
    return session.view(_preview_url)


@router.get("/sessions/{session_id}", response_model=SessionView)
async def get_session(session_id: str):
    return _session_or_404(session_id).view(_preview_url)


@router.put("/sessions/{session_id}/draft", response_model=SessionView)
async def update_draft(session_id: str, draft: DraftSubmission):
    """Replace the form fields."""
    session = _session_or_404(session_id)
    _idle_or_409(session)
    session.draft = draft
    return session.view(_preview_url)


@router.post("/sessions/{session_id}/photos", response_model=SessionView)
async def add_photos(session_id: str, photos: list[UploadFile] = File(...)):
    """Stage a batch of photos. The whole batch is rejected on any problem."""
    session = _session_or_404(session_id)
    _idle_or_409(session)
    _stage(session, await _read_uploads(photos))
    return session.view(_preview_url)


@router.delete("/sessions/{session_id}/photos/{index}", response_model=SessionView)
async def remove_photo(session_id: str, index: int):
    session = _session_or_404(session_id)
    _idle_or_409(session)
    try:
        session.attachments.remove(index)
    except IndexError:
        raise HTTPException(status_code=404, detail="Photo not found")
    return session.view(_preview_url)


@router.get("/previews/{handle}")
async def get_preview(handle: str):
    """Serve a staged photo while its preview handle is live."""
    file = get_sessions().previews.open(handle)
    if file is None:
        raise HTTPException(status_code=404, detail="Preview not found")
    return Response(content=file.data, media_type=file.content_type)


@router.post("/sessions/{session_id}/submit", response_model=SubmissionOutcome)
async def submit_session(session_id: str):
    """Validate, ban-check, upload and store the form."""
    session = _session_or_404(session_id)
    outcome = await get_orchestrator().submit(session)
    return _outcome_response(session, outcome)


@router.delete("/sessions/{session_id}", status_code=204)
async def close_session(session_id: str):
    if not get_sessions().discard(session_id):
        raise HTTPException(status_code=404, detail="Form session not found")
    return Response(status_code=204)


@router.post("/submissions", response_model=SubmissionOutcome)
async def submit_once(
    name: str = Form(""),
    email: str = Form(""),
    phone: str = Form(""),
    subject: str = Form(""),
    description: str = Form(""),
    photos: list[UploadFile] | None = File(None),
):
    """Submit fields and photos in a single request."""
    session = FormSession(previews=get_sessions().previews)
    try:
        session.draft = DraftSubmission(
            name=name, email=email, phone=phone, subject=subject, description=description
        )
        _stage(session, await _read_uploads(photos or []))
        outcome = await get_orchestrator().submit(session)
    finally:
        session.close()
    return _outcome_response(session, outcome)
