from __future__ import annotations

import ipaddress
import re
from typing import Iterable
from urllib.parse import urlsplit, urlunsplit

from shelfmark.errors import InvalidInputError, MalformedURLError

DEFAULT_PORTS = {"http": 80, "https": 443}

# RFC 3986 reg-name characters; non-ASCII is left for IDN hosts
HOST_PATTERN = re.compile(r"^(?:[a-z0-9._~!$&'()*+,;=%-]|[^\x00-\x7f])+$")


def canonicalize_url(url: str | None) -> str:
    trimmed = (url or "").strip()
    if not trimmed:
        raise InvalidInputError("url is required")

    try:
        parsed = urlsplit(trimmed)
        port = parsed.port
    except ValueError as exc:
        raise MalformedURLError(f"invalid url: {exc}") from exc

    scheme = parsed.scheme.lower()
    host = (parsed.hostname or "").lower()
    if not scheme or not host:
        raise MalformedURLError("url must include scheme and host")
    if not _valid_host(host):
        raise MalformedURLError(f"invalid host: {host!r}")

    if ":" in host:
        host = f"[{host}]"
    if port is not None and DEFAULT_PORTS.get(scheme) != port:
        host = f"{host}:{port}"

    userinfo, _, _ = parsed.netloc.rpartition("@")
    netloc = f"{userinfo}@{host}" if userinfo else host

    path = parsed.path.rstrip("/")
    return urlunsplit((scheme, netloc, path, parsed.query, ""))


def _valid_host(host: str) -> bool:
    if ":" in host:
        try:
            ipaddress.IPv6Address(host.split("%", 1)[0])
        except ValueError:
            return False
        return True
    return bool(HOST_PATTERN.match(host))


def url_host_and_path(canonical_url: str) -> tuple[str, str]:
    parsed = urlsplit(canonical_url)
    return (parsed.hostname or "").lower(), parsed.path


def normalize_name(name: str | None) -> str:
    return (name or "").strip().lower()


def normalize_tags(values: Iterable[str | None] | None) -> list[str]:
    seen: set[str] = set()
    result: list[str] = []
    for value in values or []:
        for piece in str(value or "").split(","):
            name = normalize_name(piece)
            if name and name not in seen:
                seen.add(name)
                result.append(name)
    return result


def parse_tags(raw) -> list[str]:
    if isinstance(raw, (list, tuple)):
        return normalize_tags(item for item in raw if item is not None)
    if not raw:
        return []
    return normalize_tags([str(raw)])
