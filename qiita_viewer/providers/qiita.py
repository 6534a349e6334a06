"""Qiita API v2 client."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Mapping
from urllib.parse import quote

import httpx

from qiita_viewer.providers.content_types import ArticleDetail, ArticleSummary, PageResult

logger = logging.getLogger(__name__)

QIITA_BASE_URL = "https://qiita.com/api/v2"

# Used when the list response carries no Total-Count header
DEFAULT_TOTAL_COUNT = 100


class QiitaError(Exception):
    """Base exception for Qiita API errors."""


class QiitaTransportError(QiitaError):
    """Network failure or a non-2xx response."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class QiitaAuthError(QiitaTransportError):
    """The access token was rejected."""


class QiitaNotFoundError(QiitaTransportError):
    """The requested item does not exist."""


class QiitaRateLimitError(QiitaTransportError):
    """Rate limit exhausted. reset_at is when requests are allowed again."""

    def __init__(self, message: str, reset_at: datetime | None = None) -> None:
        super().__init__(message, status_code=403)
        self.reset_at = reset_at


@dataclass(frozen=True)
class RateLimitInfo:
    """Rate-limit headers from the most recent response."""

    limit: int | None
    remaining: int | None
    reset_at: datetime | None


def _int_header(headers: Mapping[str, str], name: str) -> int | None:
    value = headers.get(name)
    if value is None:
        return None
    try:
        return int(value.strip())
    except ValueError:
        return None


def _epoch_header(headers: Mapping[str, str], name: str) -> datetime | None:
    seconds = _int_header(headers, name)
    if seconds is None:
        return None
    try:
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None


def parse_rate_limit(headers: Mapping[str, str]) -> RateLimitInfo:
    return RateLimitInfo(
        limit=_int_header(headers, "Rate-Limit"),
        remaining=_int_header(headers, "Rate-Remaining"),
        reset_at=_epoch_header(headers, "Rate-Reset"),
    )


def detect_rate_limit(status_code: int, headers: Mapping[str, str]) -> datetime | None:
    """Return the reset instant if the response is a rate-limit rejection.

    Qiita answers an exhausted quota with 403 and ``Rate-Remaining: 0``;
    ``Rate-Reset`` holds the reset time in epoch seconds. Returns None for
    any other response, including a 403 whose reset header is unusable.
    """
    if status_code != 403:
        return None
    if _int_header(headers, "Rate-Remaining") != 0:
        return None
    return _epoch_header(headers, "Rate-Reset")


def parse_total_count(headers: Mapping[str, str]) -> int:
    """Read Total-Count, falling back to DEFAULT_TOTAL_COUNT."""
    total = _int_header(headers, "Total-Count")
    if total is None or total < 0:
        return DEFAULT_TOTAL_COUNT
    return total


class QiitaClient:
    """Client for the Qiita API (v2).

    Owns a single httpx.AsyncClient for its lifetime. Token changes mutate
    that client's default headers, so every request sent afterwards picks
    up the new value.
    """

    def __init__(
        self,
        base_url: str = QIITA_BASE_URL,
        *,
        token: str = "",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers={"Content-Type": "application/json"},
            timeout=timeout,
            transport=transport,
        )
        self._rate_limit: RateLimitInfo | None = None
        self.set_token(token)

    async def close(self) -> None:
        if not self._client.is_closed:
            await self._client.aclose()

    async def __aenter__(self) -> "QiitaClient":
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()

    @property
    def headers(self) -> httpx.Headers:
        """Default headers sent with every request."""
        return self._client.headers

    @property
    def rate_limit(self) -> RateLimitInfo | None:
        return self._rate_limit

    def set_token(self, token: str) -> None:
        """Attach ``Authorization: Bearer <token>``, or drop the header when empty."""
        token = (token or "").strip()
        if token:
            self._client.headers["Authorization"] = f"Bearer {token}"
        else:
            self._client.headers.pop("Authorization", None)

    async def _get(self, url: str, *, params: dict[str, Any] | None = None) -> httpx.Response:
        """Issue a GET and map failures onto the QiitaError hierarchy.

        Raises:
            QiitaRateLimitError: 403 with an exhausted rate limit
            QiitaAuthError: 401
            QiitaNotFoundError: 404
            QiitaTransportError: any other non-2xx or a network failure
        """
        try:
            resp = await self._client.get(url, params=params)
        except httpx.HTTPError as e:
            logger.warning(f"GET {url} failed: {e}")
            raise QiitaTransportError(f"Request to {url} failed: {e}") from e

        if "Rate-Remaining" in resp.headers:
            self._rate_limit = parse_rate_limit(resp.headers)
            logger.debug(
                f"Rate limit: {self._rate_limit.remaining}/{self._rate_limit.limit} "
                f"remaining, resets at {self._rate_limit.reset_at}"
            )

        if resp.is_success:
            return resp

        status = resp.status_code
        if status == 403 and _int_header(resp.headers, "Rate-Remaining") == 0:
            reset_at = detect_rate_limit(status, resp.headers)
            logger.warning(f"Rate limited by Qiita until {reset_at}")
            raise QiitaRateLimitError("Qiita API rate limit exceeded", reset_at=reset_at)
        if status == 401:
            raise QiitaAuthError("Invalid Qiita access token", status_code=status)
        if status == 404:
            raise QiitaNotFoundError(f"Not found: {url}", status_code=status)
        logger.warning(f"GET {url} returned HTTP {status}")
        raise QiitaTransportError(f"HTTP {status} from {url}", status_code=status)

    async def list_items(self, page: int = 1, per_page: int = 20, query: str = "") -> PageResult:
        """Fetch one page of items.

        Args:
            page: 1-based page number
            per_page: Items per page
            query: Qiita search query; omitted from the request when empty

        Returns:
            PageResult whose total_count comes from the Total-Count header
        """
        params: dict[str, Any] = {"page": page, "per_page": per_page}
        if query:
            params["query"] = query

        resp = await self._get("/items", params=params)
        try:
            items = tuple(ArticleSummary.from_dict(doc) for doc in resp.json())
        except (KeyError, TypeError, ValueError) as e:
            raise QiitaTransportError(f"Unexpected item list payload: {e}", resp.status_code) from e

        return PageResult(
            items=items,
            total_count=parse_total_count(resp.headers),
            page=page,
            per_page=per_page,
        )

    async def get_item(self, item_id: str) -> ArticleDetail:
        """Fetch a single item with its rendered body."""
        resp = await self._get(f"/items/{quote(item_id, safe='')}")
        try:
            return ArticleDetail.from_dict(resp.json())
        except (KeyError, TypeError, ValueError) as e:
            raise QiitaTransportError(f"Unexpected item payload: {e}", resp.status_code) from e


_client: QiitaClient | None = None


def init_qiita_client(
    base_url: str = QIITA_BASE_URL,
    *,
    token: str = "",
    timeout: float = 30.0,
    transport: httpx.AsyncBaseTransport | None = None,
) -> QiitaClient:
    """Create the process-wide QiitaClient."""
    global _client
    _client = QiitaClient(base_url, token=token, timeout=timeout, transport=transport)
    return _client


def get_qiita_client() -> QiitaClient:
    """Get the process-wide QiitaClient. Must call init_qiita_client first."""
    if _client is None:
        raise RuntimeError("QiitaClient not initialized. Call init_qiita_client first.")
    return _client


async def close_qiita_client() -> None:
    global _client
    if _client is not None:
        await _client.close()
        _client = None
