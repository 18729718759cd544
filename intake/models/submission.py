"""Contact submission models."""

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class SubmissionState(str, Enum):
    """Orchestrator states. Every failure returns to IDLE."""

    IDLE = "idle"
    VALIDATING = "validating"
    CHECKING_BAN = "checking_ban"
    UPLOADING = "uploading"
    PERSISTING = "persisting"
    SUCCEEDED = "succeeded"


class DraftSubmission(BaseModel):
    """Contact form fields as the user typed them.

    Owned by a single form session and reset to empty after a successful
    submit. Values are kept raw; only the phone is normalized, and only
    when the record is built.
    """

    name: str = ""
    email: str = ""
    phone: str = ""
    subject: str = ""
    description: str = ""


class NormalizedIdentity(BaseModel):
    """Identifiers used for the block-list lookup. Derived, never stored."""

    email: str | None = None
    phone: str | None = None  # canonical +91 form only

    @property
    def is_empty(self) -> bool:
        return not self.email and not self.phone


class SubmissionRecord(BaseModel):
    """Persisted contact submission. Immutable once built."""

    model_config = ConfigDict(frozen=True)

    name: str
    email: str
    phone: str
    subject: str
    description: str
    photo_urls: list[str] = []
    is_banned: bool = False

    def to_row(self) -> dict:
        """Column mapping for the submissions table."""
        return {
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "subject": self.subject,
            "description": self.description,
            "photos": list(self.photo_urls),
            "is_banned": self.is_banned,
        }


OutcomeStatus = Literal["succeeded", "invalid", "blocked", "failed", "busy"]


class SubmissionOutcome(BaseModel):
    """Result of one submit attempt, as surfaced to the user."""

    status: OutcomeStatus
    message: str = ""
    errors: dict[str, str] = {}
    record: SubmissionRecord | None = None

    @property
    def ok(self) -> bool:
        return self.status == "succeeded"


class AttachmentView(BaseModel):
    """A staged photo as the display layer sees it."""

    index: int
    filename: str
    content_type: str
    size: int
    preview_url: str


class SessionView(BaseModel):
    """Snapshot of a form session for rendering."""

    session_id: str
    state: SubmissionState
    draft: DraftSubmission
    photos: list[AttachmentView] = []
    photo_count: int = 0
    max_photos: int
    remaining: int = Field(..., ge=0)
