"""Exclusion selectors hidden on every page before capture."""

from __future__ import annotations

from typing import Iterable, Tuple

from .urls import unique_ordered

# UI overlays and extension-injected nodes; <html>/<body> stay visible.
DEFAULT_EXCLUDED_SELECTORS = (
    ".weglot_switcher.country-selector.default.closed.wg-drop",
    ".weglot_switcher",
    ".vsc-initialized:not(html):not(body)",
    # id form the same extension stamps on its injected root node
    "#vsc-initialized",
)


def css_escape(ident: str) -> str:
    """Escape a class or id name for use in a selector, like CSS.escape()."""
    out = []
    for i, ch in enumerate(ident):
        code = ord(ch)
        if code == 0:
            out.append("\ufffd")
        elif 0x1 <= code <= 0x1F or code == 0x7F:
            out.append(f"\\{code:x} ")
        elif ch.isdigit() and code < 0x80 and (i == 0 or (i == 1 and ident[0] == "-")):
            out.append(f"\\{code:x} ")
        elif i == 0 and ch == "-" and len(ident) == 1:
            out.append("\\-")
        elif code >= 0x80 or ch in "-_" or (ch.isascii() and ch.isalnum()):
            out.append(ch)
        else:
            out.append("\\" + ch)
    return "".join(out)


def _names(values: Iterable[str], prefix: str):
    for value in values:
        name = (value or "").strip()
        if name.startswith(prefix):
            name = name[1:]
        if name:
            yield prefix + css_escape(name)


def build_excluded_selectors(exclude_classes: Iterable[str] = (), exclude_ids: Iterable[str] = ()) -> Tuple[str, ...]:
    """Defaults first, then one ``.class`` per class name and one ``#id`` per id."""
    return tuple(unique_ordered([
        *DEFAULT_EXCLUDED_SELECTORS,
        *_names(exclude_classes, "."),
        *_names(exclude_ids, "#"),
    ]))
