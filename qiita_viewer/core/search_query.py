"""Assemble Qiita search-query strings from the search form fields."""

from __future__ import annotations


def build_search_query(
    keyword: str = "",
    user_name: str = "",
    created_from: str = "",
    created_to: str = "",
) -> str:
    """Join the non-empty filter fields into one space-separated query.

    Order is fixed: keyword, ``user:``, ``created:>=``, ``created:<=``.
    An empty result means "no filter".
    """
    keyword = (keyword or "").strip()
    user_name = (user_name or "").strip()
    created_from = (created_from or "").strip()
    created_to = (created_to or "").strip()

    parts: list[str] = []
    if keyword:
        parts.append(keyword)
    if user_name:
        parts.append(f"user:{user_name}")
    if created_from:
        parts.append(f"created:>={created_from}")
    if created_to:
        parts.append(f"created:<={created_to}")
    return " ".join(parts)
