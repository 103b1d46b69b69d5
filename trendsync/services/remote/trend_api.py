"""
Trend REST Backend Client

DESIGN DECISION: The Trend backend is a plain JSON REST API with
bearer-token auth. We talk to it with requests, run each blocking
call in a worker thread so the event loop stays cooperative, and
retry transient failures with tenacity.

TRADEOFFS:
- Response envelopes vary between endpoints and backend versions
  ({"transaction": {...}}, {"data": {...}} or the bare object), so
  every response goes through a tolerant unwrap step
- A 401 clears the stored token; the session is over until the app
  provides a new one
"""

import asyncio
from typing import Any, Optional

import requests
import structlog
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from trendsync.config import TrendApiSettings, get_settings
from trendsync.services.remote.interface import (
    AuthorityUnreachableError,
    NotAuthenticatedError,
    NotFoundError,
    RemoteAuthorityInterface,
    RemoteError,
    ServerError,
)


logger = structlog.get_logger(__name__)


def _unwrap_record(response: Any, key: str) -> dict:
    """Pull a single record out of whichever envelope the backend used."""
    if isinstance(response, dict):
        if isinstance(response.get(key), dict):
            return response[key]
        if isinstance(response.get("data"), dict):
            return response["data"]
        if "id" in response:
            return response
    raise RemoteError(f"Unexpected {key} response format: {response!r}")


def _unwrap_list(response: Any, key: str) -> Any:
    """Pull a list out of {key: [...]}, {"data": [...]} or a bare list."""
    if isinstance(response, list):
        return response
    if isinstance(response, dict):
        for candidate in (key, "data"):
            if candidate in response:
                return response[candidate]
    return None


class TrendApiClient(RemoteAuthorityInterface):
    """
    HTTP implementation of the remote authority.

    Handles authentication headers, status-code mapping and retry logic.
    """

    def __init__(
        self,
        settings: Optional[TrendApiSettings] = None,
        session: Optional[requests.Session] = None,
    ):
        self._settings = settings or get_settings().trend_api
        self._session = session or requests.Session()
        self._token: Optional[str] = self._settings.token

    # ------------------------------------------------------------------
    # Session token
    # ------------------------------------------------------------------

    def set_token(self, token: str) -> None:
        self._token = token

    def clear_token(self) -> None:
        self._token = None

    def is_authenticated(self) -> bool:
        return bool(self._token)

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _send(self, method: str, endpoint: str, body: Optional[dict] = None) -> Any:
        """
        Perform one blocking HTTP request and map failures to RemoteError.

        Returns the decoded JSON body, or None for empty / non-JSON bodies.
        """
        url = f"{self._settings.base_url}{endpoint}"
        headers = {"Content-Type": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"

        try:
            response = self._session.request(
                method,
                url,
                json=body,
                headers=headers,
                timeout=self._settings.timeout_seconds,
            )
        except requests.Timeout as e:
            raise AuthorityUnreachableError(f"Timed out: {method} {endpoint}") from e
        except requests.ConnectionError as e:
            raise AuthorityUnreachableError(f"Cannot reach backend: {e}") from e
        except requests.RequestException as e:
            raise RemoteError(f"Request failed: {method} {endpoint}: {e}") from e

        status = response.status_code
        if status == 401:
            self.clear_token()
            raise NotAuthenticatedError("Authentication required")
        if status == 404:
            raise NotFoundError(f"Not found: {endpoint}")
        if status >= 500:
            raise ServerError(f"API Error {status}: {response.text}")
        if not 200 <= status < 300:
            raise RemoteError(f"API Error {status}: {response.text}")

        content_type = response.headers.get("content-type", "")
        if "application/json" in content_type and response.content:
            try:
                return response.json()
            except ValueError as e:
                raise RemoteError(f"Invalid JSON from {method} {endpoint}: {e}") from e
        return None

    async def _request(self, method: str, endpoint: str, body: Optional[dict] = None) -> Any:
        """Send a request, retrying network failures and 5xx answers."""
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._settings.max_retry_attempts),
            wait=wait_exponential(
                multiplier=1,
                min=self._settings.retry_min_wait_seconds,
                max=self._settings.retry_max_wait_seconds,
            ),
            retry=retry_if_exception_type((AuthorityUnreachableError, ServerError)),
            reraise=True,
        )
        result = None
        async for attempt in retrying:
            with attempt:
                if attempt.retry_state.attempt_number > 1:
                    logger.warning(
                        "trend_api_retry",
                        method=method,
                        endpoint=endpoint,
                        attempt=attempt.retry_state.attempt_number,
                    )
                result = await asyncio.to_thread(self._send, method, endpoint, body)
        return result

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    async def fetch_transactions(self) -> list[dict]:
        response = await self._request("GET", "/transactions")
        records = _unwrap_list(response, "transactions")
        if records is None:
            # An unreadable list must not wipe the local collection
            raise RemoteError(f"Unexpected transactions response format: {response!r}")
        if not isinstance(records, list):
            raise RemoteError(f"Expected a list of transactions, got {type(records).__name__}")
        return records

    async def fetch_transaction_by_id(self, transaction_id: str) -> dict:
        response = await self._request("GET", f"/transactions/{transaction_id}")
        return _unwrap_record(response, "transaction")

    async def create_transaction(self, payload: dict) -> dict:
        response = await self._request("POST", "/transactions", payload)
        return _unwrap_record(response, "transaction")

    async def update_transaction(self, transaction_id: str, payload: dict) -> dict:
        response = await self._request("PATCH", f"/transactions/{transaction_id}", payload)
        try:
            return _unwrap_record(response, "transaction")
        except RemoteError:
            # Some backend versions answer PATCH without a body
            logger.info("trend_api_update_without_body", transaction_id=transaction_id)
            return await self.fetch_transaction_by_id(transaction_id)

    async def delete_transaction(self, transaction_id: str) -> None:
        await self._request("DELETE", f"/transactions/{transaction_id}")

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------

    async def fetch_categories(self) -> list[dict]:
        """
        Fetch the flat category list.

        A malformed body is passed through as-is; the hierarchy builder
        turns anything that isn't a list into "no categories".
        """
        response = await self._request("GET", "/categories")
        return _unwrap_list(response, "categories")

    async def create_category(self, payload: dict) -> dict:
        response = await self._request("POST", "/categories", payload)
        return _unwrap_record(response, "category")

    async def update_category(self, category_id: str, payload: dict) -> dict:
        response = await self._request("PUT", f"/categories/{category_id}", payload)
        return _unwrap_record(response, "category")

    async def delete_category(self, category_id: str) -> None:
        await self._request("DELETE", f"/categories/{category_id}")
