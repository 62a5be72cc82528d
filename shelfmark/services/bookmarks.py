from __future__ import annotations

from dataclasses import dataclass, field, fields

from flask import current_app
from sqlalchemy import or_

from shelfmark.errors import ConflictError, NotFoundError, ValidationError
from shelfmark.extensions import db
from shelfmark.models import Bookmark, Category, Tag
from shelfmark.services.common import (
    canonicalize_url,
    normalize_name,
    normalize_tags,
    parse_tags,
)
from shelfmark.services.metadata import PageMetadata, fetch_metadata
from shelfmark.services.rules import load_rules, match_rules
from shelfmark.services.storage import unit_of_work, upsert_category, upsert_tags


class _Unset:
    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET = _Unset()


@dataclass
class BookmarkInput:
    url: str
    title: str = ""
    description: str = ""
    category: str = ""
    tags: list[str] = field(default_factory=list)


@dataclass
class BookmarkUpdate:
    url: str | _Unset = UNSET
    title: str | _Unset = UNSET
    description: str | _Unset = UNSET
    category: str | _Unset = UNSET
    tags: list[str] | _Unset = UNSET

    @classmethod
    def from_payload(cls, payload: dict) -> BookmarkUpdate:
        values = {}
        for name in ("url", "title", "description", "category"):
            if payload.get(name) is not None:
                values[name] = str(payload[name])
        if payload.get("tags") is not None:
            values["tags"] = parse_tags(payload["tags"])
        return cls(**values)

    def is_empty(self) -> bool:
        return all(getattr(self, item.name) is UNSET for item in fields(self))


@dataclass
class Suggestion:
    normalized_url: str
    title: str
    description: str
    category: str
    tags: list[str]


def _fetch_page_metadata(normalized_url: str) -> PageMetadata | None:
    if not current_app.config.get("METADATA_FETCH_ENABLED", True):
        return None
    try:
        return fetch_metadata(
            normalized_url,
            timeout=current_app.config["METADATA_FETCH_TIMEOUT"],
            max_bytes=current_app.config["METADATA_MAX_BYTES"],
        )
    except Exception as exc:
        current_app.logger.warning(
            "Metadata fetch failed for %s: %s", normalized_url, exc
        )
        return None


def _enrich(normalized_url: str, title: str, description: str) -> tuple[str, str]:
    if title.strip() and description.strip():
        return title, description
    metadata = _fetch_page_metadata(normalized_url)
    if metadata:
        title = title.strip() or metadata.title.strip()
        description = description.strip() or metadata.description.strip()
    return title, description


def find_by_normalized_url(normalized_url: str) -> Bookmark | None:
    return Bookmark.query.filter_by(normalized_url=normalized_url).first()


def get_bookmark(bookmark_id: int) -> Bookmark:
    bookmark = db.session.get(Bookmark, bookmark_id)
    if not bookmark:
        raise NotFoundError("bookmark not found")
    return bookmark


def lookup_bookmark(url: str) -> Bookmark:
    bookmark = find_by_normalized_url(canonicalize_url(url))
    if not bookmark:
        raise NotFoundError("bookmark not found")
    return bookmark


def suggest_for_url(url: str) -> Suggestion:
    normalized = canonicalize_url(url)
    metadata = _fetch_page_metadata(normalized) or PageMetadata("", "")
    suggestion = match_rules(load_rules(), normalized, metadata.title)
    return Suggestion(
        normalized_url=normalized,
        title=metadata.title,
        description=metadata.description,
        category=suggestion.category,
        tags=suggestion.tags,
    )


def _insert_bookmark(
    url: str,
    normalized_url: str,
    title: str,
    description: str,
    category_name: str,
    tag_names: list[str],
) -> Bookmark:
    with unit_of_work():
        bookmark = Bookmark(
            url=url.strip(),
            normalized_url=normalized_url,
            title=title,
            description=description,
        )
        if category_name:
            bookmark.category = upsert_category(category_name)
        db.session.add(bookmark)
        db.session.flush()
        bookmark.tags = upsert_tags(tag_names)
    current_app.logger.info("Created bookmark %s for %s", bookmark.id, normalized_url)
    return bookmark


def create_or_merge(data: BookmarkInput) -> Bookmark:
    normalized = canonicalize_url(data.url)
    title, description = _enrich(normalized, data.title or "", data.description or "")

    title = title.strip()
    if not title:
        raise ValidationError("title is required")
    description = description.strip()

    suggestion = match_rules(load_rules(), normalized, title)
    category = data.category if normalize_name(data.category) else suggestion.category
    tags = list(data.tags or []) + suggestion.tags

    existing = find_by_normalized_url(normalized)
    if existing:
        return update_bookmark(
            existing.id,
            BookmarkUpdate(
                url=data.url,
                title=title or existing.title,
                description=description or existing.description or "",
                category=category or "",
                tags=tags,
            ),
        )

    return _insert_bookmark(
        data.url,
        normalized,
        title,
        description,
        normalize_name(category),
        normalize_tags(tags),
    )


def upsert_from_import(data: BookmarkInput) -> Bookmark:
    normalized = canonicalize_url(data.url)
    existing = find_by_normalized_url(normalized)

    title = (data.title or "").strip()
    description = (data.description or "").strip()
    if not existing:
        title, description = _enrich(normalized, title, description)
        title = title.strip()
        description = description.strip()
        if not title:
            raise ValidationError("title is required")

    suggestion = match_rules(load_rules(), normalized, title or existing.title)
    category_name = normalize_name(data.category) or suggestion.category
    tag_names = normalize_tags(list(data.tags or []) + suggestion.tags)

    if not existing:
        return _insert_bookmark(
            data.url, normalized, title, description, category_name, tag_names
        )

    with unit_of_work():
        if title and not (existing.title or "").strip():
            existing.title = title
        if description and not (existing.description or "").strip():
            existing.description = description
        if category_name and existing.category is None:
            existing.category = upsert_category(category_name)
        current = [tag.name for tag in existing.tags]
        merged = current + [name for name in tag_names if name not in current]
        if merged != current:
            existing.tags = upsert_tags(merged)
    return existing


def update_bookmark(bookmark_id: int, data: BookmarkUpdate) -> Bookmark:
    bookmark = get_bookmark(bookmark_id)
    if data.is_empty():
        return bookmark

    normalized = None
    if data.url is not UNSET:
        if not data.url.strip():
            raise ValidationError("url is required")
        normalized = canonicalize_url(data.url)
        clash = Bookmark.query.filter(
            Bookmark.normalized_url == normalized, Bookmark.id != bookmark.id
        ).first()
        if clash:
            raise ConflictError(
                f"another bookmark already uses {normalized} (id {clash.id})"
            )

    title = None
    if data.title is not UNSET:
        title = data.title.strip()
        if not title:
            raise ValidationError("title is required")

    with unit_of_work():
        if normalized is not None:
            bookmark.url = data.url.strip()
            bookmark.normalized_url = normalized
        if title is not None:
            bookmark.title = title
        if data.description is not UNSET:
            bookmark.description = data.description.strip()
        if data.category is not UNSET:
            category_name = normalize_name(data.category)
            bookmark.category = (
                upsert_category(category_name) if category_name else None
            )
        if data.tags is not UNSET:
            bookmark.tags = upsert_tags(normalize_tags(data.tags))
    return bookmark


def delete_bookmark(bookmark_id: int) -> None:
    bookmark = get_bookmark(bookmark_id)
    with unit_of_work():
        bookmark.tags = []
        db.session.delete(bookmark)


def list_all_bookmarks() -> list[Bookmark]:
    return Bookmark.query.order_by(
        Bookmark.created_at.desc(), Bookmark.id.desc()
    ).all()


def list_bookmarks(
    query: str = "",
    category: str = "",
    tags: list[str] | None = None,
    page: int = 1,
    page_size: int | None = None,
) -> tuple[list[Bookmark], dict]:
    max_page_size = current_app.config["BOOKMARKS_MAX_PAGE_SIZE"]
    page = max(page or 1, 1)
    page_size = page_size or current_app.config["BOOKMARKS_PAGE_SIZE"]
    page_size = max(1, min(page_size, max_page_size))

    rows = Bookmark.query
    text = (query or "").strip()
    if text:
        pattern = f"%{text}%"
        rows = rows.filter(
            or_(
                Bookmark.title.ilike(pattern),
                Bookmark.description.ilike(pattern),
                Bookmark.url.ilike(pattern),
            )
        )
    category_name = normalize_name(category)
    if category_name:
        rows = rows.join(Bookmark.category).filter(Category.name == category_name)
    tag_names = normalize_tags(tags)
    if tag_names:
        rows = rows.filter(Bookmark.tags.any(Tag.name.in_(tag_names)))

    total = rows.count()
    items = (
        rows.order_by(Bookmark.created_at.desc(), Bookmark.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
        .all()
    )
    return items, {"page": page, "page_size": page_size, "total": total}
