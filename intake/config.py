"""Application configuration via environment variables."""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # App
    debug: bool = False
    environment: str = "development"

    # CORS
    cors_origins: list[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
        "http://localhost:8000",
    ]

    # Azure Blob Storage (photo attachments)
    azure_storage_account: str = "contactintakestorage"
    azure_photo_container: str = "contact-photos"

    # Azure User-Assigned Managed Identity
    managed_identity_client_id: str = ""

    # PostgREST (submission records + block-list)
    postgrest_url: str = ""  # https://<project>.supabase.co/rest/v1
    postgrest_api_key: str = ""
    submissions_table: str = "contact_submissions"
    banned_users_table: str = "banned_users"

    # Per-call timeout for ban check, upload and insert
    network_timeout_seconds: float = 15.0

    # Form sessions
    session_ttl_seconds: float = 1800
    max_sessions: int = 500

    model_config = {"env_file": ".env", "extra": "ignore"}


@lru_cache
def get_settings() -> Settings:
    return Settings()
