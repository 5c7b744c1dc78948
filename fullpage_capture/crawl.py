"""Bounded breadth-first link discovery."""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, FrozenSet, List, Optional, Sequence, Set, Tuple
from urllib.parse import urljoin, urlsplit

from playwright.sync_api import Error as PWError

from .errors import NavigationError, UnsupportedInputError
from .urls import ALLOWED_SCHEMES, is_asset_url, is_skipped_href, normalize_capture_url, origin_of

logger = logging.getLogger("fullpage_capture.crawl")


@dataclass(frozen=True)
class PageLinks:
    """Raw href values found on a page and the URL they resolve against."""

    base_url: str
    hrefs: Tuple[str, ...]


LinkFetcher = Callable[[str], PageLinks]


def js_collect_links():
    return r"""
() => ({
  base: document.baseURI || location.href,
  hrefs: Array.from(document.querySelectorAll('a[href], area[href]'))
    .map(el => el.getAttribute('href') || '')
})
"""


class PlaywrightLinkCollector:
    """Navigates one shared page and reads its anchors."""

    def __init__(self, page, timeout_ms: int):
        self.page = page
        self.timeout_ms = timeout_ms

    def __call__(self, url: str) -> PageLinks:
        try:
            self.page.goto(url, wait_until="domcontentloaded", timeout=self.timeout_ms)
            found = self.page.evaluate(js_collect_links())
        except PWError as exc:
            raise NavigationError(url, str(exc).splitlines()[0] if str(exc) else type(exc).__name__) from exc
        return PageLinks(base_url=found.get("base") or url, hrefs=tuple(found.get("hrefs") or ()))


def resolve_link(href: str, base_url: str, allowed_origins: Optional[FrozenSet[str]]) -> Optional[str]:
    """Return the capture URL for an href, or None if it should not be followed."""
    if is_skipped_href(href):
        return None
    try:
        absolute = urljoin(base_url, href.strip())
        scheme = urlsplit(absolute).scheme.lower()
    except ValueError:
        return None
    if scheme not in ALLOWED_SCHEMES:
        return None
    if allowed_origins is not None and origin_of(absolute) not in allowed_origins:
        return None
    if is_asset_url(absolute):
        return None
    try:
        return normalize_capture_url(absolute)
    except UnsupportedInputError:
        return None


def crawl_site(seeds: Sequence[str], fetch_links: LinkFetcher, max_depth: int, max_pages: int,
               same_origin_only: bool = True) -> List[str]:
    """Discover pages reachable from the seeds, breadth first.

    Seeds sit at depth 0 and are always returned. Pages at ``max_depth`` are
    not expanded, and discovery stops once ``max_pages`` URLs are known. A page
    that fails to load is skipped. Returns seeds plus discoveries in the order
    they were found.
    """
    discovered: List[str] = list(seeds)
    visited: Set[str] = set(seeds)
    allowed_origins = frozenset(origin_of(s) for s in seeds) if same_origin_only else None
    frontier: Deque[Tuple[str, int]] = deque((s, 0) for s in seeds)

    while frontier and len(discovered) < max_pages:
        url, depth = frontier.popleft()
        if depth >= max_depth:
            continue
        try:
            links = fetch_links(url)
        except NavigationError as exc:
            logger.warning("Skipping %s during crawl: %s", url, exc.reason)
            continue

        found = 0
        for href in links.hrefs:
            if len(discovered) >= max_pages:
                break
            link = resolve_link(href, links.base_url, allowed_origins)
            if link is None or link in visited:
                continue
            visited.add(link)
            discovered.append(link)
            frontier.append((link, depth + 1))
            found += 1
        logger.debug("Crawled %s (depth %d): %d new link(s)", url, depth, found)

    logger.info("Crawl discovered %d page(s) from %d seed(s)", len(discovered), len(seeds))
    return discovered
