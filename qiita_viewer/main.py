from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path

from fastapi import FastAPI, Form, Query, Request
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from jinja2 import Environment, FileSystemLoader, select_autoescape

from qiita_viewer.core.app_state import get_app_state, init_app_state
from qiita_viewer.core.item_queries import load_item, load_items, refetch_item, refetch_items
from qiita_viewer.core.query_cache import QueryResult, get_query_cache, init_query_cache
from qiita_viewer.core.search_query import build_search_query
from qiita_viewer.core.settings import Settings
from qiita_viewer.core.time_format import format_absolute, format_relative
from qiita_viewer.providers.qiita import (
    QiitaNotFoundError,
    close_qiita_client,
    get_qiita_client,
    init_qiita_client,
)

logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parent
TEMPLATES_DIR = BASE_DIR / "templates"
STATIC_DIR = BASE_DIR / "static"

jinja = Environment(
    loader=FileSystemLoader(str(TEMPLATES_DIR)),
    autoescape=select_autoescape(["html", "xml"]),
)
jinja.filters["absolute_time"] = format_absolute
jinja.filters["relative_time"] = format_relative

PER_PAGE_CHOICES = (10, 20, 50, 100)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    s = Settings.from_env()
    logging.getLogger("qiita_viewer").setLevel(s.log_level)
    client = init_qiita_client(s.qiita_base_url, timeout=s.qiita_timeout)
    init_query_cache(stale_time=s.cache_stale_seconds, gc_time=s.cache_gc_seconds)
    init_app_state(client=client, token=s.qiita_access_token, per_page=s.default_per_page)
    logger.info(f"qiita-viewer started ({s.app_env}) against {s.qiita_base_url}")
    yield
    await close_qiita_client()


app = FastAPI(title="qiita-viewer", lifespan=lifespan)
app.mount("/static", StaticFiles(directory=str(STATIC_DIR)), name="static")


def render(template_name: str, status_code: int = 200, **ctx) -> HTMLResponse:
    template = jinja.get_template(template_name)
    return HTMLResponse(template.render(**ctx), status_code=status_code)


def _retry_blocked(result: QueryResult) -> bool:
    reset = result.rate_limit_reset
    return reset is not None and reset > datetime.now(timezone.utc)


@app.get("/", response_class=HTMLResponse)
async def item_list(
    request: Request,
    page: int | None = Query(default=None, ge=1),
    per_page: int | None = Query(default=None, ge=1, le=100),
):
    state = get_app_state()
    if per_page is not None and per_page != state.items_per_page:
        state.set_items_per_page(per_page)
        state.set_current_page(1)
    if page is not None:
        state.set_current_page(page)

    result = await load_items(get_query_cache(), get_qiita_client(), state)
    status_code = 200
    if result.is_error:
        status_code = result.status_code or 502
    return render(
        "item_list.html",
        status_code=status_code,
        request=request,
        state=state,
        result=result,
        retry_blocked=_retry_blocked(result),
        per_page_choices=PER_PAGE_CHOICES,
    )


@app.get("/search")
def search(
    q: str = "",
    user: str = "",
    created_from: str = "",
    created_to: str = "",
):
    """Build the search query from the form fields and show its first page."""
    state = get_app_state()
    state.set_search_query(build_search_query(q, user, created_from, created_to))
    return RedirectResponse(url="/", status_code=303)


@app.get("/items/{item_id}", response_class=HTMLResponse)
async def item_detail(request: Request, item_id: str):
    state = get_app_state()
    result = await load_item(get_query_cache(), get_qiita_client(), state, item_id)
    status_code = 200
    if result.is_error:
        status_code = 404 if isinstance(result.error, QiitaNotFoundError) else result.status_code or 502
    return render(
        "item_detail.html",
        status_code=status_code,
        request=request,
        item_id=item_id,
        result=result,
        retry_blocked=_retry_blocked(result),
    )


@app.post("/refetch")
async def refetch(item_id: str = Form("")):
    """Manual retry for the current list, or for one item when item_id is set."""
    state = get_app_state()
    cache = get_query_cache()
    client = get_qiita_client()
    if item_id:
        await refetch_item(cache, client, state, item_id)
        return RedirectResponse(url=f"/items/{item_id}", status_code=303)
    await refetch_items(cache, client, state)
    return RedirectResponse(url="/", status_code=303)


@app.get("/settings", response_class=HTMLResponse)
def settings_page(request: Request):
    return render("settings.html", request=request, state=get_app_state(), error=None)


@app.post("/settings/token")
def settings_token(request: Request, api_key: str = Form("")):
    state = get_app_state()
    if not api_key.strip():
        return render(
            "settings.html",
            status_code=400,
            request=request,
            state=state,
            error="Please enter an access token",
        )
    state.set_api_key(api_key)
    return RedirectResponse(url="/", status_code=303)


@app.post("/settings/token/clear")
def settings_token_clear():
    get_app_state().set_api_key("")
    return RedirectResponse(url="/", status_code=303)


@app.get("/api/items")
async def api_items():
    """Status tuple of the current list query as JSON."""
    state = get_app_state()
    result = await load_items(get_query_cache(), get_qiita_client(), state)
    return JSONResponse(result.to_dict())


@app.get("/api/items/{item_id}")
async def api_item(item_id: str):
    state = get_app_state()
    result = await load_item(get_query_cache(), get_qiita_client(), state, item_id)
    return JSONResponse(result.to_dict())


@app.get("/health")
def health():
    state = get_app_state()
    rate_limit = get_qiita_client().rate_limit
    return {
        "status": "ok",
        "authenticated": state.is_authenticated,
        "cached_queries": len(get_query_cache()),
        "rate_remaining": rate_limit.remaining if rate_limit else None,
    }
