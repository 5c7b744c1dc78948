"""URL normalization, text extraction and link classification."""

from __future__ import annotations

import logging
import re
from typing import Iterable, List, Tuple
from urllib.parse import quote, urlsplit, urlunsplit

from .errors import EmptyUrlError, InvalidUrlError, UnsupportedInputError, UnsupportedSchemeError

logger = logging.getLogger("fullpage_capture.urls")

ALLOWED_SCHEMES = ("http", "https")
DEFAULT_PORTS = {"http": 80, "https": 443}

_SCHEME_PREFIX = re.compile(r"^[a-z][a-z0-9+.\-]*:(?!\d)", re.I)
_PATH_SAFE = "/%:@!$&'()*+,;=-._~"
_QUERY_SAFE = _PATH_SAFE + "?"

# ---------- normalization ----------

def normalize_capture_url(raw: str) -> str:
    """Canonicalize a user-supplied URL into an absolute http(s) URL without fragment.

    Missing schemes default to https, scheme and host are lowercased, default
    ports are dropped and an empty path becomes "/". Applying it twice gives
    the same value as applying it once.
    """
    value = (raw or "").strip()
    if not value:
        raise EmptyUrlError()
    if not _SCHEME_PREFIX.match(value):
        value = "https://" + value

    try:
        parts = urlsplit(value)
    except ValueError:
        raise InvalidUrlError(value) from None
    scheme = parts.scheme.lower()
    if scheme not in ALLOWED_SCHEMES:
        raise UnsupportedSchemeError(value, scheme)

    try:
        host = parts.hostname
        port = parts.port
    except ValueError:
        raise InvalidUrlError(value) from None
    if not host or re.search(r"[\s<>\"{}|\\^`]", host):
        raise InvalidUrlError(value)

    netloc = f"[{host}]" if ":" in host else host
    userinfo, sep, _ = parts.netloc.rpartition("@")
    if sep:
        netloc = f"{userinfo}@{netloc}"
    if port is not None and port != DEFAULT_PORTS[scheme]:
        netloc = f"{netloc}:{port}"

    path = quote(parts.path, safe=_PATH_SAFE) or "/"
    query = quote(parts.query, safe=_QUERY_SAFE)
    return urlunsplit((scheme, netloc, path, query, ""))


def origin_of(url: str) -> str:
    """scheme://host[:port] with the default port elided."""
    parts = urlsplit(url)
    scheme = parts.scheme.lower()
    host = (parts.hostname or "").lower()
    try:
        port = parts.port
    except ValueError:
        port = None
    origin = f"{scheme}://{host}"
    if port is not None and port != DEFAULT_PORTS.get(scheme):
        origin += f":{port}"
    return origin

# ---------- list helpers ----------

def split_comma_list(value: str) -> List[str]:
    return [part.strip() for part in (value or "").split(",") if part.strip()]


def unique_ordered(values: Iterable[str]) -> List[str]:
    seen = set()
    out = []
    for v in values:
        if v in seen:
            continue
        seen.add(v)
        out.append(v)
    return out

# ---------- extraction ----------

_HTTP_TOKEN = re.compile(r"https?://[^\s<>\"'`\[\]]+", re.I)
_MARKDOWN_LINK = re.compile(r"\[[^\]]*\]\((https?://[^\s)]+)\)", re.I)
_LINE = re.compile(r"[^\r\n]+")
_BARE_DOMAIN_LINE = re.compile(
    r"^(?:[a-z0-9](?:[a-z0-9\-]*[a-z0-9])?\.)+[a-z]{2,}(?::\d+)?(?:[/?#]\S*)?$",
    re.I,
)
_TRAILING_PUNCTUATION = ").,;"


def _http_candidates(text: str) -> List[Tuple[int, str]]:
    found = []
    for m in _HTTP_TOKEN.finditer(text):
        token = m.group(0).rstrip(_TRAILING_PUNCTUATION)
        if token:
            found.append((m.start(), token))
    return found


def _markdown_candidates(text: str) -> List[Tuple[int, str]]:
    return [(m.start(1), m.group(1)) for m in _MARKDOWN_LINK.finditer(text)]


def _bare_domain_candidates(text: str) -> List[Tuple[int, str]]:
    found = []
    for m in _LINE.finditer(text):
        line = m.group(0).strip()
        if not line or "@" in line or re.search(r"\s", line):
            continue
        if _BARE_DOMAIN_LINE.match(line):
            found.append((m.start() + m.group(0).index(line), line))
    return found


def extract_urls_from_text(text: str) -> List[str]:
    """Pull every capture URL out of free-form text, in first-seen order.

    Plain http(s) tokens, Markdown link targets and bare "domain.tld/path"
    lines are collected, ordered by position, normalized and deduplicated.
    Candidates that do not normalize are dropped.
    """
    candidates = _http_candidates(text) + _markdown_candidates(text) + _bare_domain_candidates(text)
    candidates.sort(key=lambda item: item[0])

    urls = []
    for raw in unique_ordered(c for _, c in candidates):
        try:
            urls.append(normalize_capture_url(raw))
        except UnsupportedInputError as exc:
            logger.debug("Ignoring candidate %r: %s", raw, exc)
    return unique_ordered(urls)

# ---------- link classification ----------

ASSET_EXTS = {
    # images
    ".jpg", ".jpeg", ".png", ".gif", ".svg", ".ico", ".webp", ".avif", ".bmp", ".tif", ".tiff",
    # scripts & styles
    ".js", ".mjs", ".map", ".css",
    # fonts
    ".woff", ".woff2", ".ttf", ".otf", ".eot",
    # documents & data
    ".pdf", ".doc", ".docx", ".ppt", ".pptx", ".xls", ".xlsx", ".csv", ".tsv",
    ".json", ".xml", ".rss", ".atom", ".txt",
    # archives
    ".zip", ".tar", ".gz", ".tgz", ".bz2", ".7z", ".rar",
    # media
    ".mp4", ".mp3", ".webm", ".mov", ".avi", ".mkv", ".wav",
}

_SKIPPED_HREF_PREFIXES = ("#", "mailto:", "tel:", "javascript:")


def is_skipped_href(href: str) -> bool:
    """True for in-page anchors and non-navigational hrefs."""
    value = (href or "").strip().lower()
    return not value or value.startswith(_SKIPPED_HREF_PREFIXES)


def is_asset_url(url: str) -> bool:
    path = urlsplit(url).path.lower()
    return any(path.endswith(ext) for ext in ASSET_EXTS)
