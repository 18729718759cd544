"""Backend capabilities the submission pipeline depends on.

Kept narrow and SDK-free so tests can pass in simple fakes.
"""

from dataclasses import dataclass
from typing import Any, Protocol

from intake.models.submission import SubmissionRecord


class StoreError(Exception):
    """A backend call failed."""


class UploadError(StoreError):
    """A photo could not be written to blob storage."""


class PersistError(StoreError):
    """A submission record could not be inserted."""


class RegistryError(StoreError):
    """The block-list could not be queried."""


@dataclass(frozen=True)
class BanFilter:
    """Existence check against the block-list.

    Matches active rows whose email equals ``email`` OR whose phone equals
    ``phone``; a None field takes no part in the match. At least one of the
    two is always set.
    """

    email: str | None = None
    phone: str | None = None
    is_active: bool = True
    limit: int = 1

    def __post_init__(self) -> None:
        if not self.email and not self.phone:
            raise ValueError("BanFilter needs an email or a phone")


class BanRegistry(Protocol):
    async def query(self, ban_filter: BanFilter) -> list[dict[str, Any]]:
        """Return matching block-list rows (at most ``ban_filter.limit``)."""
        ...


class BlobStore(Protocol):
    async def put(self, key: str, data: bytes, content_type: str) -> None:
        """Store *data* under *key*. Raises UploadError on failure."""
        ...

    def public_url(self, key: str) -> str: ...


class RecordStore(Protocol):
    async def insert(self, record: SubmissionRecord) -> None:
        """Persist *record*. Raises PersistError on failure."""
        ...
