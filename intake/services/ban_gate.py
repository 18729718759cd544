"""Block-list gate run before anything is uploaded or stored.

This is a UX gate, not a security boundary: when the registry can't be
reached the submission is allowed through (fail open).
"""

import asyncio
import logging

from intake.models.submission import NormalizedIdentity
from intake.services.phone import canonical_phone
from intake.services.ports import BanFilter, BanRegistry

logger = logging.getLogger(__name__)


def normalize_identity(email: str, raw_phone: str) -> NormalizedIdentity:
    """Identifiers as matched against the block-list.

    The email is used verbatim; a phone with no canonical form is dropped.
    """
    return NormalizedIdentity(
        email=email or None,
        phone=canonical_phone(raw_phone),
    )


def build_ban_filter(email: str, raw_phone: str) -> BanFilter | None:
    """Filter for the registry lookup, or None when there is nothing to check."""
    identity = normalize_identity(email, raw_phone)
    if identity.is_empty:
        return None
    return BanFilter(email=identity.email, phone=identity.phone)


async def is_banned(
    registry: BanRegistry,
    email: str,
    raw_phone: str,
    *,
    timeout: float | None = None,
) -> bool:
    """Return True iff an active block-list entry matches the email or phone."""
    ban_filter = build_ban_filter(email, raw_phone)
    if ban_filter is None:
        return False

    try:
        rows = await asyncio.wait_for(registry.query(ban_filter), timeout)
    except Exception as e:
        logger.error("Error checking banned status: %r", e)
        return False

    return bool(rows)
