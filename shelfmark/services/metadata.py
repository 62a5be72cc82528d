from __future__ import annotations

import warnings
from dataclasses import dataclass

import httpx
from bs4 import BeautifulSoup, XMLParsedAsHTMLWarning


DEFAULT_HEADERS = {
    "User-Agent": "ShelfmarkBot/1.0 (+https://shelfmark.local)",
    "Accept": "text/html,application/xhtml+xml;q=0.9,*/*;q=0.8",
}


class MetadataFetchError(Exception):
    pass


@dataclass
class PageMetadata:
    title: str
    description: str


def fetch_html(url: str, timeout: float, max_bytes: int) -> str:
    with httpx.Client(
        follow_redirects=True, timeout=timeout, headers=DEFAULT_HEADERS
    ) as client:
        with client.stream("GET", url) as response:
            if response.status_code >= 400:
                raise MetadataFetchError(
                    f"{url} answered with HTTP {response.status_code}"
                )
            chunks = []
            total = 0
            for chunk in response.iter_bytes():
                total += len(chunk)
                if total > max_bytes:
                    break
                chunks.append(chunk)
            encoding = response.encoding or "utf-8"
            return b"".join(chunks).decode(encoding, errors="ignore")


def extract_metadata(html: str) -> PageMetadata:
    with warnings.catch_warnings():
        warnings.filterwarnings("ignore", category=XMLParsedAsHTMLWarning)
        soup = BeautifulSoup(html, "lxml")

    title = ""
    if soup.title and soup.title.string:
        title = soup.title.string.strip()
    if not title:
        title = _meta_content(soup, property="og:title")

    description = _meta_content(soup, name="description")
    if not description:
        description = _meta_content(soup, property="og:description")

    return PageMetadata(title=title, description=description)


def _meta_content(soup: BeautifulSoup, **attrs) -> str:
    tag = soup.find("meta", attrs=attrs)
    if tag is None:
        return ""
    content = tag.get("content")
    return content.strip() if isinstance(content, str) else ""


def fetch_metadata(url: str, timeout: float, max_bytes: int) -> PageMetadata:
    try:
        html = fetch_html(url, timeout=timeout, max_bytes=max_bytes)
    except httpx.HTTPError as exc:
        message = str(exc).strip() or exc.__class__.__name__
        raise MetadataFetchError(message) from exc
    return extract_metadata(html)
