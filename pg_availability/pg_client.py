"""PG backend client utilities for the room availability board.

This module provides a small client for the read-only endpoints of the PG
REST backend (floors and rooms of a branch). It encapsulates bearer-token
handling, retry logic with exponential back-off for transient errors and the
validation of the response payloads into the models of
``pg_availability.models``. All settings are provided via the ``Settings``
object in ``pg_availability.config``.

The client is deliberately synchronous: the board only fetches on branch
selection or manual refresh, and FastAPI runs synchronous handlers in its
worker threads.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import requests
from pydantic import ValidationError

from .config import settings
from .errors import PgApiError, PgResponseError, PgTransportError
from .models import Floor, Room, RoomsPayload, ServerMetadata

logger = logging.getLogger(__name__)

# Status codes worth retrying: rate limiting and transient server errors.
RETRY_STATUSES: Tuple[int, ...] = (429, 500, 502, 503, 504)


class PgApiClient:
    """Client for the ``/api/pg`` endpoints of the PG backend.

    Args:
        base_url: backend root, e.g. ``http://localhost:5000``.
        token: bearer token used when no token file is configured.
        token_file: path to a file holding the bearer token. The file is
            read on every request so a rotated token is picked up without
            a restart.
        timeout: per-request timeout in seconds.
        max_retries: number of retries on rate-limit or 5xx responses.
        backoff_seconds: initial back-off delay, doubled on every retry.
        session: optional ``requests.Session`` (mainly for tests).
    """

    def __init__(
        self,
        base_url: str,
        *,
        token: str = "",
        token_file: str = "",
        timeout: float = 10.0,
        max_retries: int = 3,
        backoff_seconds: float = 1.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.token_file = token_file
        self.timeout = timeout
        self.max_retries = max_retries
        self.backoff_seconds = backoff_seconds
        self.session = session or requests.Session()

    def _load_token(self) -> str:
        if self.token_file:
            try:
                return Path(self.token_file).read_text(encoding="utf-8").strip()
            except OSError as exc:
                logger.error("Could not read access token from %s: %s", self.token_file, exc)
                raise PgApiError(f"Could not read access token: {exc}") from exc
        return self.token.strip()

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        token = self._load_token()
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    def _get(self, path: str, params: Dict[str, Any]) -> Dict[str, Any]:
        """Perform a GET request and return the decoded success envelope.

        Raises:
            PgTransportError: the backend could not be reached.
            PgApiError: the backend answered with an error or ``success: false``.
        """
        url = f"{self.base_url}{path}"
        attempt = 0
        while True:
            try:
                response = self.session.get(url, params=params, headers=self._headers(), timeout=self.timeout)
            except requests.RequestException as exc:
                logger.error("Request to %s failed: %s", url, exc)
                raise PgTransportError(f"Could not reach PG backend: {exc}") from exc

            status = response.status_code
            if status in RETRY_STATUSES and attempt < self.max_retries:
                attempt += 1
                delay = self.backoff_seconds * (2 ** (attempt - 1))
                logger.warning(
                    "PG backend transient error (status=%s), retrying in %.1fs (attempt %s/%s)",
                    status,
                    delay,
                    attempt,
                    self.max_retries,
                )
                time.sleep(delay)
                continue
            break

        try:
            body = response.json()
        except ValueError:
            logger.error("Non-JSON response from %s (status=%s)", url, status)
            raise PgApiError("PG backend returned an invalid response", status)

        if not isinstance(body, dict):
            raise PgApiError("PG backend returned an invalid response", status)
        if status >= 400 or not body.get("success"):
            message = body.get("message") or body.get("error") or "Request failed"
            logger.error("PG backend rejected %s (status=%s): %s", url, status, message)
            raise PgApiError(message, status)
        return body

    @staticmethod
    def _data_list(body: Dict[str, Any], what: str) -> List[Any]:
        data = body.get("data")
        if data is None:
            return []
        if not isinstance(data, list):
            raise PgResponseError(f"Malformed {what} data: expected a list, got {type(data).__name__}")
        return data

    def get_floors(self, branch_id: str) -> List[Floor]:
        """Return the floors of a branch."""
        body = self._get("/api/pg/floors", {"branchId": branch_id})
        items = self._data_list(body, "floor")
        try:
            return [Floor.model_validate(item) for item in items]
        except ValidationError as exc:
            logger.error("Malformed floor payload for branch %s: %s", branch_id, exc)
            raise PgResponseError(f"Malformed floor data: {exc}") from exc

    def get_rooms(self, branch_id: str) -> RoomsPayload:
        """Return the rooms of a branch together with the optional statistics block.

        An unusable metadata block is dropped rather than failing the rooms;
        the statistics are then computed locally.
        """
        body = self._get("/api/pg/rooms", {"branchId": branch_id})
        items = self._data_list(body, "room")
        try:
            rooms = [Room.model_validate(item) for item in items]
        except ValidationError as exc:
            logger.error("Malformed room payload for branch %s: %s", branch_id, exc)
            raise PgResponseError(f"Malformed room data: {exc}") from exc
        metadata = None
        raw_meta = body.get("metadata")
        if raw_meta:
            try:
                metadata = ServerMetadata.model_validate(raw_meta)
            except ValidationError as exc:
                logger.warning("Ignoring malformed statistics for branch %s: %s", branch_id, exc)
        logger.info("Fetched %s rooms for branch %s", len(rooms), branch_id)
        return RoomsPayload(rooms=rooms, metadata=metadata)


def get_client() -> PgApiClient:
    """Build a client from the application settings."""
    return PgApiClient(
        settings.pg_api_base_url,
        token=settings.pg_api_token,
        token_file=settings.pg_api_token_file,
        timeout=settings.request_timeout_seconds,
        max_retries=settings.max_retries,
        backoff_seconds=settings.retry_backoff_seconds,
    )
