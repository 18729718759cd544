"""In-memory staging of photo attachments before upload.

Each staged photo holds a preview handle from a ``PreviewRegistry``. The
manager is the only thing that acquires or releases those handles: on add,
remove, clear, and when the owning session ends.
"""

import logging
import uuid
from collections.abc import Sequence
from dataclasses import dataclass

logger = logging.getLogger(__name__)

ALLOWED_CONTENT_TYPES = ("image/jpeg", "image/png", "image/webp")
MAX_PHOTO_BYTES = 5 * 1024 * 1024
MIN_PHOTOS = 0
MAX_PHOTOS = 6


class AttachmentError(Exception):
    """A batch of selected files was rejected. Nothing from it was staged."""

    message = "These files could not be added"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.message)
        if message:
            self.message = message


class CapacityError(AttachmentError):
    message = f"You can upload a maximum of {MAX_PHOTOS} photos"


class UnsupportedTypeError(AttachmentError):
    message = "Only JPEG, PNG, and WebP images are allowed"


class FileTooLargeError(AttachmentError):
    message = "Each image must be less than 5MB"


@dataclass(frozen=True)
class StagedFile:
    """A user-selected file held in memory."""

    filename: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class Attachment:
    file: StagedFile
    preview_handle: str


class PreviewRegistry:
    """Revocable local references to staged files, for display.

    Usage::

        previews = PreviewRegistry()
        handle = previews.acquire(file)
        previews.open(handle)   # -> file, until released
        previews.release(handle)
    """

    def __init__(self) -> None:
        self._live: dict[str, StagedFile] = {}

    def acquire(self, file: StagedFile) -> str:
        handle = uuid.uuid4().hex
        self._live[handle] = file
        return handle

    def release(self, handle: str) -> None:
        """Revoke *handle*. Releasing twice is a no-op."""
        self._live.pop(handle, None)

    def open(self, handle: str) -> StagedFile | None:
        return self._live.get(handle)

    def __contains__(self, handle: object) -> bool:
        return handle in self._live

    def __len__(self) -> int:
        return len(self._live)


class AttachmentManager:
    """Ordered, capacity-bounded set of staged photos."""

    def __init__(
        self, previews: PreviewRegistry | None = None, max_photos: int = MAX_PHOTOS
    ) -> None:
        self.previews = previews if previews is not None else PreviewRegistry()
        self.max_photos = max_photos
        self._items: list[Attachment] = []

    @property
    def attachments(self) -> tuple[Attachment, ...]:
        return tuple(self._items)

    @property
    def files(self) -> list[StagedFile]:
        return [a.file for a in self._items]

    @property
    def remaining(self) -> int:
        return max(self.max_photos - len(self._items), 0)

    @property
    def is_full(self) -> bool:
        return len(self._items) >= self.max_photos

    def __len__(self) -> int:
        return len(self._items)

    def add_files(self, selected: Sequence[StagedFile]) -> list[Attachment]:
        """Stage *selected* as a whole batch, or raise and stage nothing.

        Checks run in order: capacity, MIME type, size.
        """
        if len(self._items) + len(selected) > self.max_photos:
            raise CapacityError(f"You can upload a maximum of {self.max_photos} photos")

        if any(f.content_type not in ALLOWED_CONTENT_TYPES for f in selected):
            raise UnsupportedTypeError()

        if any(f.size > MAX_PHOTO_BYTES for f in selected):
            raise FileTooLargeError()

        added = [Attachment(file=f, preview_handle=self.previews.acquire(f)) for f in selected]
        self._items.extend(added)
        return added

    def remove(self, index: int) -> StagedFile:
        """Unstage the photo at *index*; later photos shift down by one."""
        if index < 0 or index >= len(self._items):
            raise IndexError(f"No staged photo at index {index}")
        attachment = self._items.pop(index)
        self.previews.release(attachment.preview_handle)
        return attachment.file

    def clear(self) -> None:
        """Release every preview and empty the set."""
        for attachment in self._items:
            self.previews.release(attachment.preview_handle)
        self._items.clear()
