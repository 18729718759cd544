"""Azure Blob Storage service for contact photo uploads."""

import asyncio
import logging
import re

from azure.core.exceptions import AzureError
from azure.identity import ManagedIdentityCredential
from azure.storage.blob import ContainerClient, ContentSettings

from intake.config import get_settings
from intake.services.ports import UploadError

logger = logging.getLogger(__name__)

_SAFE_PATH_SEGMENT_RE = re.compile(r"^[a-zA-Z0-9][a-zA-Z0-9._-]*$")


def validate_blob_path_segment(segment: str) -> str:
    """Validate a blob name.

    Rejects inputs containing path traversal sequences (..), slashes,
    backslashes, or other unsafe characters. Returns the segment unchanged
    if valid; raises ValueError otherwise.
    """
    if not segment or ".." in segment or not _SAFE_PATH_SEGMENT_RE.match(segment):
        raise ValueError(f"Invalid blob path segment: {segment!r}")
    return segment


# Lazy singleton, lives for the process lifetime
_container_client: ContainerClient | None = None


def _get_credential() -> ManagedIdentityCredential:
    """Return Managed Identity credential."""
    settings = get_settings()
    return ManagedIdentityCredential(client_id=settings.managed_identity_client_id or None)


def create_container_client(container_name: str) -> ContainerClient:
    """Create a ContainerClient for the given container."""
    settings = get_settings()
    account_url = f"https://{settings.azure_storage_account}.blob.core.windows.net"
    return ContainerClient(
        account_url=account_url,
        container_name=container_name,
        credential=_get_credential(),
    )


def _get_container_client() -> ContainerClient:
    """Return a shared blob container client for photos (lazy singleton)."""
    global _container_client
    if _container_client is None:
        _container_client = create_container_client(
            get_settings().azure_photo_container
        )
    return _container_client


def check_storage_connectivity() -> bool:
    """Lightweight storage connectivity check (lists 1 blob)."""
    try:
        client = _get_container_client()
        next(client.list_blobs(results_per_page=1).__iter__())
        return True
    except StopIteration:
        # Container exists but is empty, still connected
        return True
    except Exception:
        return False


class AzureBlobStore:
    """BlobStore over a single public-read container."""

    def __init__(self, container: ContainerClient | None = None) -> None:
        self._container = container

    @property
    def container(self) -> ContainerClient:
        if self._container is None:
            self._container = _get_container_client()
        return self._container

    async def put(self, key: str, data: bytes, content_type: str) -> None:
        """Upload a new photo blob; existing blobs are never overwritten.

        The SDK call blocks, so it runs in a worker thread to keep the event
        loop (and the caller's timeout) live.
        """
        validate_blob_path_segment(key)
        try:
            blob = self.container.get_blob_client(key)
            await asyncio.to_thread(
                blob.upload_blob,
                data,
                overwrite=False,
                content_settings=ContentSettings(content_type=content_type),
                timeout=int(get_settings().network_timeout_seconds),
            )
        except AzureError as e:
            logger.warning("Azure API error uploading %s: %s", key, e)
            raise UploadError(f"Upload of {key} failed: {e}") from e

    def public_url(self, key: str) -> str:
        validate_blob_path_segment(key)
        return self.container.get_blob_client(key).url
