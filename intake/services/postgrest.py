"""PostgREST-backed record store and block-list registry."""

import logging
from typing import Any

import httpx

from intake.config import get_settings
from intake.models.submission import SubmissionRecord
from intake.services.http_client import get_shared_client, postgrest_headers, table_url
from intake.services.ports import BanFilter, PersistError, RegistryError

logger = logging.getLogger(__name__)


def _quote(value: str) -> str:
    """Quote a value for use inside a PostgREST ``or=(...)`` list."""
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def ban_filter_params(ban_filter: BanFilter) -> dict[str, str]:
    """Render a BanFilter as PostgREST query parameters."""
    params = {
        "select": "*",
        "is_active": f"eq.{str(ban_filter.is_active).lower()}",
        "limit": str(ban_filter.limit),
    }
    if ban_filter.email and ban_filter.phone:
        params["or"] = (
            f"(email.eq.{_quote(ban_filter.email)},phone.eq.{_quote(ban_filter.phone)})"
        )
    elif ban_filter.email:
        params["email"] = f"eq.{ban_filter.email}"
    else:
        params["phone"] = f"eq.{ban_filter.phone}"
    return params


class PostgrestBanRegistry:
    """Queries the ``banned_users`` table."""

    def __init__(self, table: str | None = None) -> None:
        self.table = table or get_settings().banned_users_table

    async def query(self, ban_filter: BanFilter) -> list[dict[str, Any]]:
        client = get_shared_client()
        try:
            resp = await client.get(
                table_url(self.table),
                headers=postgrest_headers(),
                params=ban_filter_params(ban_filter),
            )
        except httpx.HTTPError as e:
            raise RegistryError(f"Block-list query failed: {e}") from e
        if resp.status_code != 200:
            raise RegistryError(f"Block-list query returned {resp.status_code}")
        return resp.json()


class PostgrestRecordStore:
    """Inserts rows into the ``contact_submissions`` table."""

    def __init__(self, table: str | None = None) -> None:
        self.table = table or get_settings().submissions_table

    async def insert(self, record: SubmissionRecord) -> None:
        client = get_shared_client()
        try:
            resp = await client.post(
                table_url(self.table),
                headers=postgrest_headers(prefer="return=minimal"),
                json=[record.to_row()],
            )
        except httpx.HTTPError as e:
            raise PersistError(f"Insert into {self.table} failed: {e}") from e
        if resp.status_code not in (200, 201, 204):
            logger.warning(
                "PostgREST %d inserting into %s: %s",
                resp.status_code,
                self.table,
                resp.text[:200],
            )
            raise PersistError(f"Insert into {self.table} returned {resp.status_code}")
