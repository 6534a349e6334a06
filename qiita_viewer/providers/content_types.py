"""Value records for Qiita articles and paginated list results."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any


def _count(value: Any) -> int:
    """Coerce an engagement counter to a non-negative int."""
    try:
        return max(int(value), 0)
    except (TypeError, ValueError):
        return 0


@dataclass(frozen=True)
class Tag:
    name: str
    versions: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: dict) -> Tag:
        return cls(
            name=data.get("name", ""),
            versions=tuple(data.get("versions") or ()),
        )


@dataclass(frozen=True)
class Author:
    id: str
    name: str | None = None
    profile_image_url: str | None = None

    @property
    def display_name(self) -> str:
        """``@id (name)`` when a name is set, otherwise ``@id``."""
        if self.name:
            return f"@{self.id} ({self.name})"
        return f"@{self.id}"

    @classmethod
    def from_dict(cls, data: dict | None) -> Author:
        data = data or {}
        return cls(
            id=data.get("id", ""),
            name=data.get("name") or None,
            profile_image_url=data.get("profile_image_url") or None,
        )


@dataclass(frozen=True)
class ArticleSummary:
    """An article as returned by the list endpoint."""

    id: str
    title: str
    url: str
    author: Author
    tags: tuple[Tag, ...] = ()
    created_at: str = ""
    updated_at: str = ""
    likes_count: int = 0
    comments_count: int = 0
    stocks_count: int = 0
    reactions_count: int = 0
    page_views_count: int | None = None  # only set for the token owner's items
    private: bool = False

    @property
    def tag_names(self) -> str:
        return ", ".join(tag.name for tag in self.tags)

    @classmethod
    def _fields_from_dict(cls, data: dict) -> dict[str, Any]:
        page_views = data.get("page_views_count")
        return {
            "id": data["id"],
            "title": data.get("title", ""),
            "url": data.get("url", ""),
            "author": Author.from_dict(data.get("user")),
            "tags": tuple(Tag.from_dict(t) for t in data.get("tags") or ()),
            "created_at": data.get("created_at", ""),
            "updated_at": data.get("updated_at", ""),
            "likes_count": _count(data.get("likes_count")),
            "comments_count": _count(data.get("comments_count")),
            "stocks_count": _count(data.get("stocks_count")),
            "reactions_count": _count(data.get("reactions_count")),
            "page_views_count": _count(page_views) if page_views is not None else None,
            "private": bool(data.get("private", False)),
        }

    @classmethod
    def from_dict(cls, data: dict) -> ArticleSummary:
        """Build from a decoded Qiita item payload."""
        return cls(**cls._fields_from_dict(data))


@dataclass(frozen=True)
class ArticleDetail(ArticleSummary):
    """An article with its full body, as returned by the detail endpoint."""

    rendered_body: str = ""
    body: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> ArticleDetail:
        return cls(
            **cls._fields_from_dict(data),
            rendered_body=data.get("rendered_body", ""),
            body=data.get("body", ""),
        )


@dataclass(frozen=True)
class PageResult:
    """One page of articles.

    total_count comes from the Total-Count header and falls back to 100 when
    the header is missing, so treat it as an upper-bound estimate.
    """

    items: tuple[ArticleSummary, ...]
    total_count: int
    page: int
    per_page: int

    @property
    def total_pages(self) -> int:
        return max(math.ceil(self.total_count / self.per_page), 1)

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_previous(self) -> bool:
        return self.page > 1
