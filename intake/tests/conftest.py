"""Shared fixtures for contact-intake tests."""

from unittest.mock import AsyncMock, MagicMock

import pytest


@pytest.fixture(autouse=True)
def _reset_global_state():
    """Reset all module-level singletons and caches between tests."""
    yield

    # 1. Settings LRU cache
    from intake.config import get_settings

    get_settings.cache_clear()

    # 2. Blob storage singleton
    import intake.services.blob_storage as blob_mod

    blob_mod._container_client = None

    # 3. HTTP client singleton
    import intake.services.http_client as http_mod

    http_mod._client = None

    # 4. Form sessions + orchestrator
    import intake.routers.submissions as submissions_mod

    if submissions_mod._sessions is not None:
        submissions_mod._sessions.clear()
    submissions_mod._sessions = None
    submissions_mod._orchestrator = None

    # 5. Health check cache
    import intake.main as main_mod

    main_mod._health_cache = None


@pytest.fixture
def mock_settings(monkeypatch):
    """Provide a Settings object with safe test defaults."""
    from intake.config import Settings, get_settings

    test_settings = Settings(
        azure_storage_account="teststorage",
        azure_photo_container="test-photos",
        managed_identity_client_id="test-client-id",
        postgrest_url="https://db.test/rest/v1",
        postgrest_api_key="test-key",
        network_timeout_seconds=5.0,
        session_ttl_seconds=60,
        max_sessions=10,
    )

    get_settings.cache_clear()
    monkeypatch.setattr("intake.config.get_settings", lambda: test_settings)

    # Patch get_settings in all modules that import it directly
    for mod_path in [
        "intake.main",
        "intake.routers.submissions",
        "intake.services.blob_storage",
        "intake.services.http_client",
        "intake.services.postgrest",
    ]:
        monkeypatch.setattr(f"{mod_path}.get_settings", lambda: test_settings)

    return test_settings


@pytest.fixture
def ban_registry():
    registry = MagicMock()
    registry.query = AsyncMock(return_value=[])
    return registry


@pytest.fixture
def blob_store():
    store = MagicMock()
    store.put = AsyncMock()
    store.public_url.side_effect = lambda key: f"https://photos.test/{key}"
    return store


@pytest.fixture
def record_store():
    store = MagicMock()
    store.insert = AsyncMock()
    return store
