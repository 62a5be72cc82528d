from __future__ import annotations

import html
from datetime import datetime, timezone

from shelfmark.models import Bookmark, utcnow

EXPORT_MIMETYPE = "text/html; charset=utf-8"


def _unix_seconds(value: datetime | None) -> int:
    if value is None:
        return 0
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(value.timestamp())


def _attr(value: str) -> str:
    return html.escape(value, quote=True)


def render_bookmark_html(bookmarks: list[Bookmark]) -> str:
    lines = [
        "<!DOCTYPE NETSCAPE-Bookmark-file-1>",
        "<!-- This is an automatically generated file.",
        "     It will be read and overwritten.",
        "     DO NOT EDIT! -->",
        '<META HTTP-EQUIV="Content-Type" CONTENT="text/html; charset=UTF-8">',
        "<TITLE>Bookmarks</TITLE>",
        "<H1>Bookmarks</H1>",
        "<DL><p>",
    ]

    for bookmark in bookmarks:
        attributes = [
            f'HREF="{_attr(bookmark.url)}"',
            f'ADD_DATE="{_unix_seconds(bookmark.created_at)}"',
            f'LAST_MODIFIED="{_unix_seconds(bookmark.updated_at)}"',
        ]
        tag_names = bookmark.tag_names
        if tag_names:
            attributes.append(f'TAGS="{_attr(",".join(tag_names))}"')
        if bookmark.category_name:
            attributes.append(f'CATEGORY="{_attr(bookmark.category_name)}"')

        lines.append(
            f"    <DT><A {' '.join(attributes)}>{html.escape(bookmark.title or '')}</A>"
        )
        description = (bookmark.description or "").strip()
        if description:
            lines.append(f"    <DD>{html.escape(description)}")

    lines.append("</DL><p>")
    return "\n".join(lines) + "\n"


def export_filename(now: datetime | None = None) -> str:
    timestamp = (now or utcnow()).strftime("%Y-%m-%d-%H-%M-%S")
    return f"bookmarks-{timestamp}.html"
