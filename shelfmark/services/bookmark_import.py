from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator

from bs4 import BeautifulSoup, NavigableString, Tag
from flask import current_app

from shelfmark.errors import InvalidInputError, ValidationError
from shelfmark.models import Bookmark
from shelfmark.services.bookmarks import BookmarkInput, upsert_from_import


@dataclass
class ImportCandidate:
    url: str
    title: str
    description: str = ""
    category: str = ""
    tags: list[str] = field(default_factory=list)


@dataclass
class SkippedEntry:
    url: str
    reason: str


@dataclass
class ImportSummary:
    imported: list[Bookmark] = field(default_factory=list)
    skipped: list[SkippedEntry] = field(default_factory=list)


STRUCTURAL_TAGS = {"dt", "dl", "dd"}


def _walk(node: Tag) -> Iterator[Tag]:
    for child in node.children:
        if not isinstance(child, Tag):
            continue
        name = (child.name or "").lower()
        yield child
        if name in {"dl", "a", "h3"}:
            continue
        if name == "dd":
            yield from _walk_structural(child)
            continue
        yield from _walk(child)


def _walk_structural(dd: Tag) -> Iterator[Tag]:
    # an unclosed <DD> may swallow the entries that follow it
    reached = False
    for child in dd.children:
        if not isinstance(child, Tag):
            continue
        reached = reached or (child.name or "").lower() in STRUCTURAL_TAGS
        if reached:
            yield child
            if (child.name or "").lower() not in {"dl", "a", "h3"}:
                yield from _walk(child)


def _own_text(dd: Tag) -> str:
    parts: list[str] = []
    for child in dd.children:
        if isinstance(child, NavigableString):
            parts.append(str(child))
        elif isinstance(child, Tag):
            if (child.name or "").lower() in STRUCTURAL_TAGS:
                break
            parts.append(child.get_text())
    return "".join(parts).strip()


def _attribute(node: Tag, name: str) -> str:
    value = node.get(name)
    return value.strip() if isinstance(value, str) else ""


def _split_tags(raw: str) -> list[str]:
    return [piece.strip() for piece in raw.split(",") if piece.strip()]


def _parse_dl(dl: Tag, category: str, out: list[ImportCandidate]) -> None:
    folder: str | None = None
    pending: ImportCandidate | None = None

    for node in _walk(dl):
        name = (node.name or "").lower()
        if name == "dt":
            folder = None
            pending = None
        elif name == "h3":
            folder = node.get_text().strip()
            pending = None
        elif name == "dl":
            _parse_dl(node, category if folder is None else folder, out)
            folder = None
            pending = None
        elif name == "a":
            href = _attribute(node, "href")
            if not href:
                pending = None
                continue
            pending = ImportCandidate(
                url=href,
                title=node.get_text().strip(),
                category=_attribute(node, "category") or category,
                tags=_split_tags(_attribute(node, "tags")),
            )
            out.append(pending)
        elif name == "dd":
            if pending is not None and not pending.description:
                pending.description = _own_text(node)
            pending = None


def parse_bookmark_html(html: str | bytes) -> list[ImportCandidate]:
    soup = BeautifulSoup(html, "lxml")
    root = soup.find("dl")
    if not isinstance(root, Tag):
        return []

    candidates: list[ImportCandidate] = []
    _parse_dl(root, "", candidates)
    return candidates


def import_bookmark_file(data: str | bytes) -> ImportSummary:
    summary = ImportSummary()
    for candidate in parse_bookmark_html(data):
        try:
            bookmark = upsert_from_import(
                BookmarkInput(
                    url=candidate.url,
                    title=candidate.title,
                    description=candidate.description,
                    category=candidate.category,
                    tags=candidate.tags,
                )
            )
        except (InvalidInputError, ValidationError) as exc:
            current_app.logger.warning(
                "Skipped imported bookmark %s: %s", candidate.url, exc
            )
            summary.skipped.append(SkippedEntry(url=candidate.url, reason=str(exc)))
            continue
        summary.imported.append(bookmark)

    current_app.logger.info(
        "Imported %d bookmarks, skipped %d",
        len(summary.imported),
        len(summary.skipped),
    )
    return summary
