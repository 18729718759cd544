"""Tests for the block-list gate: filter building and fail-open behaviour."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from intake.services.ban_gate import build_ban_filter, is_banned, normalize_identity
from intake.services.ports import BanFilter, RegistryError


def test_identity_drops_phone_without_canonical_form():
    identity = normalize_identity("a@b.com", "12345")
    assert identity.email == "a@b.com"
    assert identity.phone is None


def test_filter_with_both_identifiers():
    assert build_ban_filter("a@b.com", "98765 43210") == BanFilter(
        email="a@b.com", phone="+919876543210"
    )


def test_filter_with_email_only():
    assert build_ban_filter("a@b.com", "") == BanFilter(email="a@b.com")


def test_filter_with_phone_only():
    assert build_ban_filter("", "919876543210") == BanFilter(phone="+919876543210")


def test_no_filter_without_identifiers():
    assert build_ban_filter("", "") is None
    assert build_ban_filter("", "123") is None


def test_ban_filter_requires_an_identifier():
    with pytest.raises(ValueError):
        BanFilter()


async def test_nothing_to_check_skips_query(ban_registry):
    assert await is_banned(ban_registry, "", "") is False
    ban_registry.query.assert_not_called()


async def test_matching_active_record_is_banned(ban_registry):
    ban_registry.query.return_value = [{"id": 1, "email": "a@b.com", "is_active": True}]

    assert await is_banned(ban_registry, "a@b.com", "9876543210") is True

    ban_filter = ban_registry.query.call_args[0][0]
    assert ban_filter.email == "a@b.com"
    assert ban_filter.phone == "+919876543210"
    assert ban_filter.is_active is True
    assert ban_filter.limit == 1


async def test_no_match_is_allowed(ban_registry):
    assert await is_banned(ban_registry, "a@b.com", "9876543210") is False


async def test_registry_error_fails_open(ban_registry, caplog):
    ban_registry.query.side_effect = RegistryError("503")

    assert await is_banned(ban_registry, "a@b.com", "9876543210") is False
    assert "Error checking banned status" in caplog.text


async def test_registry_timeout_fails_open(ban_registry):
    async def slow_query(ban_filter):
        await asyncio.sleep(1)
        return [{"id": 1}]

    ban_registry.query = AsyncMock(side_effect=slow_query)

    assert await is_banned(ban_registry, "a@b.com", "", timeout=0.01) is False
