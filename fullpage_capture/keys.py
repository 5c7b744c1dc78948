"""Filesystem-safe output keys for captured URLs."""

from __future__ import annotations

import re
from datetime import datetime
from typing import Optional, Set
from urllib.parse import urlsplit

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def run_timestamp() -> str:
    # e.g., 2025-10-06 14:23:05 -> "20251006-142305"
    return datetime.now().strftime("%Y%m%d-%H%M%S")


def _slugify(value: str) -> str:
    return _NON_ALNUM.sub("-", (value or "").lower()).strip("-")


def resolve_page_key(url: str) -> str:
    """Key from the last path segment: /programs/SURP -> surp, / -> home."""
    parts = [seg for seg in urlsplit(url).path.split("/") if seg]
    if not parts:
        return "home"
    return _slugify(parts[-1]) or "page"


def host_key(url: str) -> str:
    host = (urlsplit(url).hostname or "").lower()
    host = re.sub(r"^www\.", "", host)
    return _slugify(host) or "site"


class OutputKeyResolver:
    """Hands out output keys that are unique for the lifetime of one run.

    A colliding key is retried as ``host-key``, then ``host-key-timestamp``,
    then ``host-key-timestamp-N``.
    """

    def __init__(self, timestamp: Optional[str] = None):
        self.timestamp = timestamp or run_timestamp()
        self.used: Set[str] = set()

    def _claim(self, key: str) -> Optional[str]:
        if key in self.used:
            return None
        self.used.add(key)
        return key

    def resolve(self, url: str) -> str:
        base = resolve_page_key(url)
        hosted = f"{host_key(url)}-{base}"
        stamped = f"{hosted}-{self.timestamp}"
        for cand in (base, hosted, stamped):
            if self._claim(cand):
                return cand
        n = 2
        while True:
            cand = self._claim(f"{stamped}-{n}")
            if cand:
                return cand
            n += 1
