"""Thin Firestore REST API client (no firebase-admin).

Uses google-auth for service account tokens and Firestore REST v1.
Only the calls the document store needs: point reads, structured queries,
transactions (begin, commit, rollback). All HTTP calls use
httpx.AsyncClient so they do not block the event loop.

HTTP failures are mapped onto the store exception taxonomy here, so callers
never see httpx errors.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from muskoka.domain.exceptions import (
    DocumentAlreadyExistsException,
    DocumentMissingException,
    PermanentStoreException,
    TransientStoreException,
)

logger = logging.getLogger(__name__)

_FIRESTORE_SCOPE = "https://www.googleapis.com/auth/datastore"
_BASE = "https://firestore.googleapis.com/v1"
_EMULATOR_TOKEN = "owner"


class TransactionAbortedError(TransientStoreException):
    """Commit or read rejected with ABORTED: contention with another transaction."""

    def __init__(self) -> None:
        super().__init__("Transaction aborted due to contention")


def _get_credentials(key_dict: dict):
    """Return google.oauth2.service_account.Credentials for Firestore."""
    from google.oauth2 import service_account

    return service_account.Credentials.from_service_account_info(
        key_dict, scopes=[_FIRESTORE_SCOPE]
    )


def _get_access_token(credentials) -> str:
    from google.auth.transport.requests import Request

    if not credentials.valid:
        credentials.refresh(Request())
    return credentials.token


def _error_status(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return ""
    if isinstance(body, list) and body:
        body = body[0]
    if isinstance(body, dict):
        error = body.get("error") or {}
        if isinstance(error, dict):
            return str(error.get("status", ""))
    return ""


def _raise_for_response(resp: httpx.Response, operation: str) -> None:
    """Map a non-2xx Firestore response to a store exception."""
    if resp.is_success:
        return
    status = _error_status(resp)
    logger.warning(
        "Firestore %s failed: HTTP %s %s %s",
        operation,
        resp.status_code,
        status,
        resp.text[:500],
    )
    if status == "ABORTED":
        raise TransactionAbortedError()
    if status == "ALREADY_EXISTS":
        raise DocumentAlreadyExistsException()
    if resp.status_code == 404 or status == "NOT_FOUND":
        raise DocumentMissingException()
    if resp.status_code == 429 or resp.status_code >= 500 or status in (
        "UNAVAILABLE",
        "DEADLINE_EXCEEDED",
        "RESOURCE_EXHAUSTED",
    ):
        raise TransientStoreException()
    raise PermanentStoreException()


class FirestoreRESTClient:
    """Lightweight Firestore client using REST API (no firebase-admin).

    credentials=None talks to the emulator (base_url must point at it).
    """

    def __init__(
        self,
        project_id: str,
        credentials,
        *,
        http_client: httpx.AsyncClient | None = None,
        base_url: str = _BASE,
        timeout: float = 30.0,
    ) -> None:
        self._project_id = project_id
        self._credentials = credentials
        self._base = base_url.rstrip("/")
        self._database = f"projects/{project_id}/databases/(default)"
        self._prefix = f"{self._database}/documents"
        self._http = http_client if http_client is not None else httpx.AsyncClient(timeout=timeout)
        self._owns_http = http_client is None

    @property
    def project_id(self) -> str:
        return self._project_id

    async def aclose(self) -> None:
        """Close the HTTP client only if we created it (do not close injected client)."""
        if self._owns_http:
            await self._http.aclose()

    async def get_token(self) -> str:
        """Return a valid access token; refreshes in thread pool to avoid blocking."""
        if self._credentials is None:
            return _EMULATOR_TOKEN
        return await asyncio.to_thread(_get_access_token, self._credentials)

    def document_name(self, path: str) -> str:
        """Full resource name of a "collection/document" path."""
        return f"{self._prefix}/{path}"

    async def _request(
        self,
        method: str,
        url: str,
        operation: str,
        body: dict | None = None,
        params: dict[str, str] | None = None,
    ) -> httpx.Response:
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {await self.get_token()}",
        }
        try:
            resp = await self._http.request(method, url, headers=headers, json=body, params=params)
        except httpx.TimeoutException as e:
            logger.warning("Firestore %s timed out: %s", operation, e)
            raise TransientStoreException() from e
        except httpx.TransportError as e:
            logger.warning("Firestore %s transport error: %s", operation, e)
            raise TransientStoreException() from e
        return resp

    async def get_document(self, path: str, transaction: str | None = None) -> dict | None:
        """Fetch a document; None if it does not exist."""
        params = {"transaction": transaction} if transaction else None
        resp = await self._request(
            "GET", f"{self._base}/{self.document_name(path)}", "get", params=params
        )
        if resp.status_code == 404 and _error_status(resp) in ("", "NOT_FOUND"):
            return None
        _raise_for_response(resp, "get")
        return resp.json()

    async def run_query(
        self, structured_query: dict[str, Any], transaction: str | None = None
    ) -> list[dict]:
        """Execute a structured query at the database root; returns documents."""
        body: dict[str, Any] = {"structuredQuery": structured_query}
        if transaction:
            body["transaction"] = transaction
        resp = await self._request(
            "POST", f"{self._base}/{self._prefix}:runQuery", "runQuery", body=body
        )
        _raise_for_response(resp, "runQuery")
        items = resp.json()
        if not isinstance(items, list):
            items = [items] if items else []
        return [item["document"] for item in items if "document" in item]

    async def begin_transaction(
        self, read_only: bool = False, retry_transaction: str | None = None
    ) -> str:
        """Start a transaction and return its id."""
        if read_only:
            options: dict[str, Any] = {"readOnly": {}}
        else:
            options = {"readWrite": {"retryTransaction": retry_transaction} if retry_transaction else {}}
        resp = await self._request(
            "POST",
            f"{self._base}/{self._prefix}:beginTransaction",
            "beginTransaction",
            body={"options": options},
        )
        _raise_for_response(resp, "beginTransaction")
        return resp.json()["transaction"]

    async def commit(self, writes: list[dict], transaction: str | None = None) -> dict:
        """Apply writes atomically (within the transaction, if given)."""
        body: dict[str, Any] = {"writes": writes}
        if transaction:
            body["transaction"] = transaction
        resp = await self._request(
            "POST", f"{self._base}/{self._prefix}:commit", "commit", body=body
        )
        _raise_for_response(resp, "commit")
        return resp.json()

    async def rollback(self, transaction: str) -> None:
        resp = await self._request(
            "POST",
            f"{self._base}/{self._prefix}:rollback",
            "rollback",
            body={"transaction": transaction},
        )
        _raise_for_response(resp, "rollback")
