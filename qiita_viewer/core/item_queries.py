"""List and detail queries: cache keys plus the fetch calls behind them."""

from __future__ import annotations

from typing import TYPE_CHECKING

from qiita_viewer.core.app_state import AppState, QueryParameters
from qiita_viewer.core.query_cache import QueryCache, QueryKey, QueryResult

if TYPE_CHECKING:
    from qiita_viewer.providers.qiita import QiitaClient

ITEMS_KEY = "qiita-items"
ITEM_KEY = "qiita-item"


def items_key(params: QueryParameters, auth_epoch: int = 0) -> QueryKey:
    return (ITEMS_KEY, params.page, params.per_page, params.search_query, auth_epoch)


def item_key(item_id: str, auth_epoch: int = 0) -> QueryKey:
    return (ITEM_KEY, item_id, auth_epoch)


def _items_fetcher(client: QiitaClient, params: QueryParameters):
    async def _fetch():
        return await client.list_items(params.page, params.per_page, params.search_query)

    return _fetch


def _item_fetcher(client: QiitaClient, item_id: str):
    async def _fetch():
        return await client.get_item(item_id)

    return _fetch


async def load_items(cache: QueryCache, client: QiitaClient, state: AppState) -> QueryResult:
    """Page of items for the state's current page, page size and query."""
    params = state.query_parameters()
    return await cache.fetch(items_key(params, state.auth_epoch), _items_fetcher(client, params))


async def load_item(cache: QueryCache, client: QiitaClient, state: AppState, item_id: str) -> QueryResult:
    """Single item. Disabled (no request, idle status) when item_id is empty."""
    item_id = (item_id or "").strip()
    return await cache.fetch(
        item_key(item_id, state.auth_epoch),
        _item_fetcher(client, item_id),
        enabled=bool(item_id),
    )


async def refetch_items(cache: QueryCache, client: QiitaClient, state: AppState) -> QueryResult:
    params = state.query_parameters()
    return await cache.refetch(items_key(params, state.auth_epoch), _items_fetcher(client, params))


async def refetch_item(cache: QueryCache, client: QiitaClient, state: AppState, item_id: str) -> QueryResult:
    item_id = (item_id or "").strip()
    if not item_id:
        return await load_item(cache, client, state, item_id)
    return await cache.refetch(item_key(item_id, state.auth_epoch), _item_fetcher(client, item_id))
