"""Submit the contact form from the command line.

Usage:
    python -m scripts.submit --name "Asha" --email asha@example.com \
        --phone 9876543210 --subject "Broken tap" --description "..." \
        [--photo kitchen.jpg --photo sink.png]
"""

import argparse
import asyncio
import logging
import mimetypes
import sys
from pathlib import Path

from intake.config import get_settings
from intake.models.submission import DraftSubmission
from intake.services.attachments import AttachmentError, StagedFile
from intake.services.blob_storage import AzureBlobStore
from intake.services.http_client import close_shared_client
from intake.services.orchestrator import FormSession, SubmissionOrchestrator
from intake.services.postgrest import PostgrestBanRegistry, PostgrestRecordStore

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

# Not registered by default on every platform
mimetypes.add_type("image/webp", ".webp")


def _parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Submit the contact form")
    parser.add_argument("--name", default="")
    parser.add_argument("--email", default="")
    parser.add_argument("--phone", default="")
    parser.add_argument("--subject", default="")
    parser.add_argument("--description", default="")
    parser.add_argument(
        "--photo", action="append", default=[], type=Path, help="Photo to attach (repeatable)"
    )
    return parser.parse_args(argv)


def load_photo(path: Path) -> StagedFile:
    content_type, _ = mimetypes.guess_type(path.name)
    return StagedFile(
        filename=path.name,
        content_type=content_type or "application/octet-stream",
        data=path.read_bytes(),
    )


async def main(argv: list[str]) -> int:
    args = _parse_args(argv)

    session = FormSession()
    session.draft = DraftSubmission(
        name=args.name,
        email=args.email,
        phone=args.phone,
        subject=args.subject,
        description=args.description,
    )

    try:
        session.attachments.add_files([load_photo(p) for p in args.photo])
    except AttachmentError as e:
        print(f"Error: {e.message}")
        return 1
    except OSError as e:
        print(f"Error reading photo: {e}")
        return 1

    orchestrator = SubmissionOrchestrator(
        ban_registry=PostgrestBanRegistry(),
        blob_store=AzureBlobStore(),
        record_store=PostgrestRecordStore(),
        timeout=get_settings().network_timeout_seconds,
    )
    try:
        outcome = await orchestrator.submit(session)
    finally:
        session.close()
        await close_shared_client()

    if outcome.message:
        print(outcome.message)
    for field, message in outcome.errors.items():
        print(f"  {field}: {message}")
    if outcome.record:
        for url in outcome.record.photo_urls:
            print(f"  photo: {url}")

    return 0 if outcome.ok else 1


if __name__ == "__main__":
    sys.exit(asyncio.run(main(sys.argv[1:])))
