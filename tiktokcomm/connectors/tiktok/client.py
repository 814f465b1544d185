"""tiktokcomm — TikTok Research API Client.

Handles authentication, the single authenticated POST, and cursor pagination.
Requests are synchronous and strictly sequential; nothing is retried.
"""

import time
from enum import Enum
from typing import Any, Dict, Iterator, Optional, Sequence

import httpx

from tiktokcomm.auth.credentials import CredentialProvider
from tiktokcomm.auth.store import TokenStore
from tiktokcomm.auth.token import TokenManager
from tiktokcomm.config import Settings, settings as default_settings
from tiktokcomm.core.errors import HttpError
from tiktokcomm.core.logging import get_logger
from tiktokcomm.core.validation import validate_max_pages
from tiktokcomm.models.auth_models import Token

logger = get_logger("tiktok.client")


class PageState(str, Enum):
    """Pagination session states."""

    START = "start"
    FETCHING = "fetching"
    HAS_MORE = "has_more"
    EXHAUSTED = "exhausted"
    FAILED = "failed"


class TikTokClient:
    """Sync HTTP client for the TikTok Commercial Content API.

    Owns its transport and its token; independent instances share nothing
    unless they are given the same ``token_store``.
    """

    def __init__(
        self,
        credentials_provider: Optional[CredentialProvider] = None,
        token_store: Optional[TokenStore] = None,
        settings: Optional[Settings] = None,
        http_client: Optional[httpx.Client] = None,
    ):
        self.settings = settings or default_settings
        self.base_url = self.settings.research_base_url
        self._client = http_client or httpx.Client()
        self.tokens = TokenManager(
            self._client,
            self.settings.oauth_url,
            credentials_provider=credentials_provider,
            token_store=token_store,
        )

    def close(self) -> None:
        if not self._client.is_closed:
            self._client.close()

    def __enter__(self) -> "TikTokClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def authenticate(
        self, client_key: Optional[str] = None, client_secret: Optional[str] = None
    ) -> Token:
        return self.tokens.authenticate(client_key, client_secret)

    # ── Core Request Method ──

    def request(
        self,
        path: str,
        fields: Optional[Sequence[str]],
        body: Dict[str, Any],
    ) -> Dict[str, Any]:
        """POST ``body`` as JSON to ``path`` and return the parsed response.

        ``fields`` goes on the query string, comma-joined.

        Raises:
            AuthRequiredError: no token has been obtained yet.
            HttpError: non-200 status, an error object in the body, or a
                transport failure.
        """
        token = self.tokens.get_token()
        url = f"{self.base_url}/{path.strip('/')}/"
        params = {"fields": ",".join(fields)} if fields else None
        headers = {
            "Authorization": token.authorization,
            "Content-Type": "application/json",
        }

        started = time.perf_counter()
        try:
            resp = self._client.post(url, params=params, json=body, headers=headers)
        except httpx.RequestError as e:
            logger.error(f"Request to {path} failed: {e}", extra={"endpoint": path})
            raise HttpError(f"Connection to TikTok API failed: {e}") from e
        duration_ms = round((time.perf_counter() - started) * 1000, 1)

        if resp.status_code != 200:
            message, code, log_id = _error_details(resp)
            logger.error(
                f"Query failed: {message}",
                extra={"endpoint": path, "status_code": resp.status_code, "duration_ms": duration_ms},
            )
            raise HttpError(message, resp.status_code, code, log_id)

        try:
            content = resp.json()
        except ValueError as e:
            raise HttpError("Response body is not valid JSON", resp.status_code) from e

        if not isinstance(content, dict):
            raise HttpError("Response body is not a JSON object", resp.status_code)

        error = content.get("error")
        if isinstance(error, dict) and error.get("code") not in (None, "", "ok"):
            message = error.get("message") or str(error.get("code"))
            logger.error(f"Query failed: {message}", extra={"endpoint": path, "status_code": 200})
            raise HttpError(message, resp.status_code, str(error.get("code")), str(error.get("log_id", "")))

        logger.debug(
            f"POST {path} ok",
            extra={"endpoint": path, "status_code": 200, "duration_ms": duration_ms},
        )
        return content

    # ── Pagination ──

    def paginate(
        self,
        path: str,
        fields: Optional[Sequence[str]],
        body: Dict[str, Any],
        items_key: str,
        max_pages: Optional[float] = None,
        tolerant: bool = False,
    ) -> Iterator[Dict[str, Any]]:
        """Yield the ``data`` object of each page until the results run out.

        The session ends when a page has no items, ``has_more`` is false, or
        ``max_pages`` pages have been yielded. With ``max_pages=math.inf``
        only the server ends it. In ``tolerant`` mode a failed request ends
        the session instead of raising, keeping the pages already yielded.
        """
        limit = validate_max_pages(max_pages, self.settings.default_max_pages)
        session_body = dict(body)
        search_id: Optional[str] = None
        page = 1
        _log_state(PageState.START, path, page)

        while True:
            _log_state(PageState.FETCHING, path, page)
            logger.info(f"Retrieving page {page}...", extra={"endpoint": path, "page": page})

            request_body = dict(session_body)
            if search_id is not None:
                request_body["search_id"] = search_id

            try:
                content = self.request(path, fields, request_body)
            except HttpError as e:
                if not tolerant:
                    _log_state(PageState.FAILED, path, page)
                    raise
                _log_state(PageState.EXHAUSTED, path, page)
                logger.warning(
                    f"Stopping pagination after {page - 1} page(s): {e}",
                    extra={"endpoint": path, "page": page, "status_code": e.status_code},
                )
                return

            data = content.get("data") or {}
            items = data.get(items_key) or []
            logger.info(
                f"Retrieved {len(items)} {items_key} on page {page}.",
                extra={"endpoint": path, "page": page},
            )

            if not items:
                _log_state(PageState.EXHAUSTED, path, page)
                logger.info("No more results.", extra={"endpoint": path, "page": page})
                return

            yield data

            if not data.get("has_more") or page >= limit:
                _log_state(PageState.EXHAUSTED, path, page)
                logger.info(
                    "All pages retrieved or max_pages reached.",
                    extra={"endpoint": path, "page": page},
                )
                return

            search_id = data.get("search_id")
            if not search_id:
                _log_state(PageState.EXHAUSTED, path, page)
                logger.warning(
                    "Server reported more results without a search_id; stopping.",
                    extra={"endpoint": path, "page": page},
                )
                return

            _log_state(PageState.HAS_MORE, path, page)
            page += 1


def _log_state(state: PageState, path: str, page: int) -> None:
    logger.debug(f"Pagination state: {state.value}", extra={"endpoint": path, "page": page})


def _error_details(resp: httpx.Response) -> tuple[str, str, str]:
    """Extract (message, code, log_id) from an error response."""
    body: Any = {}
    if resp.headers.get("content-type", "").startswith("application/json"):
        try:
            body = resp.json()
        except ValueError:
            body = {}
    error = body.get("error", {}) if isinstance(body, dict) else {}
    if not isinstance(error, dict):
        error = {"message": str(error)}
    message = error.get("message") or resp.reason_phrase or f"HTTP {resp.status_code}"
    return message, str(error.get("code", "")), str(error.get("log_id", ""))
