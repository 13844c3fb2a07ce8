"""Firestore client (REST-based, no firebase-admin).

Initialized at app startup using either FIREBASE_SERVICE_ACCOUNT_KEY (JSON string)
or FIREBASE_SERVICE_ACCOUNT_PATH (file path), or pointed at a local emulator
with FIRESTORE_EMULATOR_HOST. Uses the Firestore REST API with google-auth,
so neither grpcio nor firebase-admin is needed.
"""

import json
import logging
from pathlib import Path

from muskoka.core.config import Settings, get_settings
from muskoka.infrastructure.firebase._rest_client import (
    FirestoreRESTClient,
    _get_credentials,
)

logger = logging.getLogger(__name__)

_firestore_client: FirestoreRESTClient | None = None


def _load_key_dict(settings: Settings) -> dict | None:
    """Service account JSON from the inline key, else from the key file; None if neither is usable."""
    if settings.firebase_service_account_key is not None:
        raw = settings.firebase_service_account_key.get_secret_value()
        if raw:
            try:
                return json.loads(raw)
            except json.JSONDecodeError as e:
                raise ValueError("FIREBASE_SERVICE_ACCOUNT_KEY is not valid JSON") from e
    if not settings.firebase_service_account_path:
        return None
    key_file = Path(settings.firebase_service_account_path).expanduser()
    if not key_file.is_file():
        logger.warning("Service account key file not found: %s", key_file)
        return None
    return json.loads(key_file.read_text(encoding="utf-8"))


def init_firebase(settings: Settings | None = None) -> bool:
    """Initialize the Firestore client (REST API + google-auth).

    The emulator host takes precedence over service-account credentials.
    Idempotent if already initialized. On invalid/malformed credentials or
    any initialization error, logs the exception and returns False; the
    caller decides whether the app can start without Firestore.

    Returns:
        True if Firestore was initialized, False if unconfigured or on error.
    """
    global _firestore_client
    if _firestore_client is not None:
        return True
    s = settings or get_settings()
    try:
        if s.firestore_emulator_host:
            _firestore_client = FirestoreRESTClient(
                s.gcp_project or "muskoka-local",
                None,
                base_url=f"http://{s.firestore_emulator_host}/v1",
                timeout=s.store_timeout_seconds,
            )
            logger.info("Firestore client using emulator at %s", s.firestore_emulator_host)
            return True

        key_dict = _load_key_dict(s)
        if not key_dict:
            return False

        project_id = s.gcp_project or key_dict.get("project_id")
        if not project_id:
            logger.error("Firebase service account JSON missing 'project_id'")
            return False

        cred = _get_credentials(key_dict)
        _firestore_client = FirestoreRESTClient(project_id, cred, timeout=s.store_timeout_seconds)
        logger.info("Firestore client initialized for project %s", project_id)
        return True
    except Exception:
        logger.exception("Firebase initialization failed")
        return False


def get_firestore_client() -> FirestoreRESTClient | None:
    """Return the Firestore client, or None if not configured."""
    return _firestore_client


async def close_firebase() -> None:
    """Close the Firestore client's HTTP connection pool. Call from app shutdown."""
    global _firestore_client
    if _firestore_client is not None:
        await _firestore_client.aclose()
        _firestore_client = None
        logger.info("Firestore HTTP client closed")
