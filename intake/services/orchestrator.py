"""Submission orchestrator: ties validation, ban check, upload, and insert together.

One ``FormSession`` holds the draft, the staged photos, and the current
state. ``SubmissionOrchestrator.submit`` is the only thing that moves a
session between states:

    IDLE -> VALIDATING -> CHECKING_BAN -> UPLOADING -> PERSISTING -> SUCCEEDED -> IDLE

Any failure drops straight back to IDLE with the draft and photos left as
they were, so the user can retry. Blobs uploaded by a failed attempt are
not deleted.
"""

import asyncio
import logging
import re
import time
import uuid
from collections.abc import Callable

from intake.models.submission import (
    AttachmentView,
    DraftSubmission,
    SessionView,
    SubmissionOutcome,
    SubmissionRecord,
    SubmissionState,
)
from intake.services.attachments import AttachmentManager, PreviewRegistry, StagedFile
from intake.services.ban_gate import is_banned
from intake.services.phone import normalize_phone
from intake.services.ports import BanRegistry, BlobStore, RecordStore
from intake.services.validation import validate_submission

logger = logging.getLogger(__name__)

SUCCESS_MESSAGE = "Your message has been sent successfully!"
BLOCKED_MESSAGE = "You are not allowed to submit this form"
FAILURE_MESSAGE = "Failed to send your message. Please try again."
BUSY_MESSAGE = "A submission is already in progress"

_MIME_EXTENSIONS = {"image/jpeg": "jpg", "image/png": "png", "image/webp": "webp"}
_EXTENSION_RE = re.compile(r"^[a-z0-9]+$")

TransitionListener = Callable[["FormSession", SubmissionState], None]


def build_storage_key(filename: str, content_type: str, now: float | None = None) -> str:
    """Blob name for an uploaded photo: ``<epoch-ms>-<random>.<ext>``.

    The extension comes from the original filename, falling back to the
    MIME type when the filename has none (or an unusable one).
    """
    millis = int((time.time() if now is None else now) * 1000)
    suffix = uuid.uuid4().hex[:8]
    _, dot, ext = filename.rpartition(".")
    ext = ext.lower() if dot else ""
    if not _EXTENSION_RE.match(ext):
        ext = _MIME_EXTENSIONS.get(content_type, "bin")
    return f"{millis}-{suffix}.{ext}"


def build_record(draft: DraftSubmission, photo_urls: list[str]) -> SubmissionRecord:
    # A banned submitter never gets this far
    return SubmissionRecord(
        name=draft.name,
        email=draft.email,
        phone=normalize_phone(draft.phone),
        subject=draft.subject,
        description=draft.description,
        photo_urls=photo_urls,
        is_banned=False,
    )


class FormSession:
    """State for one open contact form: draft, staged photos, pipeline state."""

    def __init__(
        self, session_id: str | None = None, previews: PreviewRegistry | None = None
    ) -> None:
        self.session_id = session_id or uuid.uuid4().hex
        self.draft = DraftSubmission()
        self.attachments = AttachmentManager(previews)
        self.state = SubmissionState.IDLE
        self.errors: dict[str, str] = {}
        self.closed = False

    @property
    def is_busy(self) -> bool:
        return self.state is not SubmissionState.IDLE

    def close(self) -> None:
        """End the session, releasing every preview handle."""
        self.attachments.clear()
        self.closed = True

    def view(self, preview_url: Callable[[str], str] = lambda handle: handle) -> SessionView:
        photos = [
            AttachmentView(
                index=i,
                filename=a.file.filename,
                content_type=a.file.content_type,
                size=a.file.size,
                preview_url=preview_url(a.preview_handle),
            )
            for i, a in enumerate(self.attachments.attachments)
        ]
        return SessionView(
            session_id=self.session_id,
            state=self.state,
            draft=self.draft,
            photos=photos,
            photo_count=len(photos),
            max_photos=self.attachments.max_photos,
            remaining=self.attachments.remaining,
        )


class SubmissionOrchestrator:
    """Runs a session's submit attempt against the injected backends."""

    def __init__(
        self,
        ban_registry: BanRegistry,
        blob_store: BlobStore,
        record_store: RecordStore,
        *,
        timeout: float | None = None,
        listeners: list[TransitionListener] | None = None,
    ) -> None:
        self.ban_registry = ban_registry
        self.blob_store = blob_store
        self.record_store = record_store
        self.timeout = timeout
        self.listeners = list(listeners or [])

    def _transition(self, session: FormSession, state: SubmissionState) -> None:
        logger.debug("Session %s: %s -> %s", session.session_id, session.state.value, state.value)
        session.state = state
        for listener in self.listeners:
            listener(session, state)

    async def submit(self, session: FormSession) -> SubmissionOutcome:
        """Run one submit attempt. Never raises; the outcome says what happened."""
        if session.is_busy:
            logger.warning("Rejected submit for busy session %s", session.session_id)
            return SubmissionOutcome(status="busy", message=BUSY_MESSAGE)

        try:
            return await self._run(session)
        except Exception as e:
            logger.exception("Unexpected error submitting session %s: %s", session.session_id, e)
            return SubmissionOutcome(status="failed", message=FAILURE_MESSAGE)
        finally:
            if session.state is not SubmissionState.IDLE:
                self._transition(session, SubmissionState.IDLE)

    async def _run(self, session: FormSession) -> SubmissionOutcome:
        # Snapshot so edits made while awaiting don't leak into the record
        draft = session.draft.model_copy()
        files = session.attachments.files

        # 1. Validate
        self._transition(session, SubmissionState.VALIDATING)
        errors = validate_submission(draft, len(files))
        session.errors = errors
        if errors:
            return SubmissionOutcome(status="invalid", errors=errors)

        # 2. Ban check (fails open on registry errors)
        self._transition(session, SubmissionState.CHECKING_BAN)
        if await is_banned(self.ban_registry, draft.email, draft.phone, timeout=self.timeout):
            logger.warning("Blocked submission from session %s", session.session_id)
            return SubmissionOutcome(status="blocked", message=BLOCKED_MESSAGE)

        # 3. Upload photos in order
        self._transition(session, SubmissionState.UPLOADING)
        try:
            photo_urls = await self._upload(files)
        except Exception as e:
            logger.error("Error uploading photos for session %s: %s", session.session_id, e)
            return SubmissionOutcome(status="failed", message=FAILURE_MESSAGE)

        # 4. Persist
        self._transition(session, SubmissionState.PERSISTING)
        record = build_record(draft, photo_urls)
        try:
            await asyncio.wait_for(self.record_store.insert(record), self.timeout)
        except Exception as e:
            logger.error(
                "Error submitting form for session %s (%d uploaded photos orphaned): %s",
                session.session_id,
                len(photo_urls),
                e,
            )
            return SubmissionOutcome(status="failed", message=FAILURE_MESSAGE)

        # 5. Reset the form
        self._transition(session, SubmissionState.SUCCEEDED)
        session.draft = DraftSubmission()
        session.attachments.clear()
        session.errors = {}

        logger.info(
            "Submission stored from %s with %d photos",
            draft.email.rsplit("@", 1)[-1],
            len(photo_urls),
        )
        return SubmissionOutcome(status="succeeded", message=SUCCESS_MESSAGE, record=record)

    async def _upload(self, files: list[StagedFile]) -> list[str]:
        """Upload one at a time so URLs keep the staging order."""
        photo_urls: list[str] = []
        for file in files:
            key = build_storage_key(file.filename, file.content_type)
            await asyncio.wait_for(
                self.blob_store.put(key, file.data, file.content_type), self.timeout
            )
            photo_urls.append(self.blob_store.public_url(key))
        return photo_urls
