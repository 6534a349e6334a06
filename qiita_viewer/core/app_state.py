"""Shared application state: credentials and the current list selection."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from qiita_viewer.providers.qiita import QiitaClient

logger = logging.getLogger(__name__)

DEFAULT_PER_PAGE = 20


def _positive_int(name: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ValueError(f"{name} must be a positive integer, got {value!r}")
    return value


@dataclass(frozen=True)
class QueryParameters:
    """Inputs of a list request; also the basis of its cache key."""

    page: int = 1
    per_page: int = DEFAULT_PER_PAGE
    search_query: str = ""

    def __post_init__(self) -> None:
        _positive_int("page", self.page)
        _positive_int("per_page", self.per_page)


@dataclass
class AppState:
    """State shared by the pages and read by the item queries.

    auth_epoch increases on every token change and is part of every cache
    key, so results fetched under one token are never served under another.
    """

    api_key: str = ""
    is_authenticated: bool = False
    current_page: int = 1
    items_per_page: int = DEFAULT_PER_PAGE
    search_query: str = ""
    auth_epoch: int = 0
    client: QiitaClient | None = field(default=None, repr=False)

    def __post_init__(self) -> None:
        _positive_int("current_page", self.current_page)
        _positive_int("items_per_page", self.items_per_page)

    def set_api_key(self, token: str) -> None:
        """Store the token and push it to the client's default headers.

        An empty token clears authentication.
        """
        token = (token or "").strip()
        self.api_key = token
        self.is_authenticated = bool(token)
        self.auth_epoch += 1
        if self.client is not None:
            self.client.set_token(token)
        logger.info(f"Access token {'set' if token else 'cleared'} (auth epoch {self.auth_epoch})")

    def set_current_page(self, page: int) -> None:
        self.current_page = _positive_int("current_page", page)

    def set_items_per_page(self, per_page: int) -> None:
        self.items_per_page = _positive_int("items_per_page", per_page)

    def set_search_query(self, query: str) -> None:
        """Set the search query and go back to page 1."""
        self.search_query = (query or "").strip()
        self.current_page = 1

    def query_parameters(self) -> QueryParameters:
        return QueryParameters(
            page=self.current_page,
            per_page=self.items_per_page,
            search_query=self.search_query,
        )


_state: AppState | None = None


def init_app_state(client: QiitaClient | None = None, token: str = "", per_page: int = DEFAULT_PER_PAGE) -> AppState:
    """Initialize the global AppState, applying an initial token if given."""
    global _state
    _state = AppState(items_per_page=per_page, client=client)
    if token:
        _state.set_api_key(token)
    return _state


def get_app_state() -> AppState:
    """Get the global AppState. Must call init_app_state first."""
    if _state is None:
        raise RuntimeError("AppState not initialized. Call init_app_state first.")
    return _state
