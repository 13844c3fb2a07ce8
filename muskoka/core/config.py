"""Application configuration (settings and environment).

Single source of truth for all configuration. Uses pydantic-settings
with .env support. Backend-specific requirements (Firestore credentials)
are validated at load time.
"""

from functools import lru_cache

from pydantic import SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment and .env.

    All settings are optional with defaults except those validated in
    validate_backends (Firestore credentials or emulator when the
    firestore backend is selected).
    """

    # App
    app_name: str = "muskoka"
    app_version: str = "1.0.0"
    debug: bool = False

    # Document store: "firestore" (REST API) or "memory" (single process, dev/tests)
    database_backend: str = "firestore"
    gcp_project: str | None = None
    firebase_service_account_key: SecretStr | None = None
    firebase_service_account_path: str | None = None  # Path to JSON file
    # host:port of a local Firestore emulator; no credentials needed when set
    firestore_emulator_host: str | None = None

    # Every store call runs under this deadline; conflicts are retried up to max attempts.
    store_timeout_seconds: float = 10.0
    store_max_attempts: int = 5

    # Listing
    listing_default_limit: int = 10
    listing_max_limit: int = 20

    # Uploads and results
    max_blocks: int = 16
    max_upload_size: int = 10 * 1024 * 1024  # 10MB per artifact
    # Comma-separated worker client names accepted by result ingestion. Empty accepts any valid name.
    allowed_clients: str = ""

    # Artifact storage
    storage_backend: str = "local"
    storage_root: str = "/var/muskoka/storage"

    # Redis task-ready stream
    redis_enabled: bool = True
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_db: int = 0
    redis_password: SecretStr | None = None
    task_stream_maxlen: int = 10_000
    # Socket timeout and per-publish deadline; a stalled Redis only costs published=false.
    task_stream_timeout_seconds: float = 2.0

    # CORS
    allowed_origins: str = "*"

    # Request / middleware
    request_timeout_seconds: int = 60
    request_id_header: str = "X-Request-ID"
    rate_limit_enabled: bool = True

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    @model_validator(mode="after")
    def validate_backends(self) -> "Settings":
        """Validate document store, storage and listing settings.

        - Firestore: emulator host, or FIREBASE_SERVICE_ACCOUNT_KEY / FIREBASE_SERVICE_ACCOUNT_PATH.
        - Memory: nothing required (data lives in the process).
        """
        if self.database_backend == "firestore":
            has_key = (
                self.firebase_service_account_key
                and self.firebase_service_account_key.get_secret_value()
            )
            if self.firestore_emulator_host:
                if not self.gcp_project:
                    raise ValueError(
                        "GCP_PROJECT is required when FIRESTORE_EMULATOR_HOST is set."
                    )
            elif not has_key and not self.firebase_service_account_path:
                raise ValueError(
                    "When database_backend is 'firestore', set FIREBASE_SERVICE_ACCOUNT_KEY (full JSON string), "
                    "FIREBASE_SERVICE_ACCOUNT_PATH (path to JSON file) or FIRESTORE_EMULATOR_HOST."
                )
        elif self.database_backend != "memory":
            raise ValueError(
                f"database_backend must be 'firestore' or 'memory', got: {self.database_backend!r}"
            )
        if self.storage_backend != "local":
            raise ValueError(
                f"Invalid storage_backend '{self.storage_backend}'. Must be: 'local'"
            )
        if not 1 <= self.listing_default_limit <= self.listing_max_limit:
            raise ValueError(
                "listing_default_limit must be between 1 and listing_max_limit"
            )
        if self.store_max_attempts < 1:
            raise ValueError("store_max_attempts must be at least 1")
        return self

    @property
    def allowed_client_names(self) -> frozenset[str]:
        """Parsed allowed_clients (empty set means any valid client name)."""
        return frozenset(c.strip() for c in self.allowed_clients.split(",") if c.strip())


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings (single instance per process).

    Validation runs on first call, not at import time. In tests, call
    get_settings.cache_clear() before overriding env vars so the next
    get_settings() uses the new values.

    Returns:
        Loaded and validated Settings instance.
    """
    return Settings()
