"""Seed URL resolution from positional arguments and URL files."""

from __future__ import annotations

import logging
import shutil
import subprocess
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .config import DEFAULT_URL
from .errors import EnvironmentUnavailableError, UnsupportedInputError
from .urls import extract_urls_from_text, normalize_capture_url, unique_ordered

logger = logging.getLogger("fullpage_capture.sources")

TEXT_EXTS = (".txt", ".md", ".markdown")
WORD_EXTS = (".doc", ".docx")

# Tried in order; the first one installed and exiting cleanly wins.
WORD_CONVERTERS: Dict[str, Tuple[Tuple[str, ...], ...]] = {
    ".doc": (
        ("textutil", "-convert", "txt", "-stdout"),
        ("antiword",),
        ("catdoc",),
    ),
    ".docx": (
        ("textutil", "-convert", "txt", "-stdout"),
        ("pandoc", "-t", "plain"),
        ("docx2txt",),
    ),
}
CONVERTER_TIMEOUT_S = 60

# ---------- file reading ----------

def _convert_word_document(path: Path) -> str:
    ext = path.suffix.lower()
    failures = []
    for cmd in WORD_CONVERTERS[ext]:
        if shutil.which(cmd[0]) is None:
            continue
        argv = [*cmd, str(path)]
        if cmd[0] == "docx2txt":
            argv.append("-")
        logger.debug("Converting %s with %s", path, cmd[0])
        try:
            proc = subprocess.run(argv, capture_output=True, text=True,
                                  timeout=CONVERTER_TIMEOUT_S, check=False)
        except (OSError, subprocess.TimeoutExpired) as exc:
            failures.append(f"{cmd[0]}: {exc}")
            continue
        if proc.returncode == 0:
            return proc.stdout
        failures.append(f"{cmd[0]}: exit {proc.returncode} {proc.stderr.strip()}".rstrip())

    if not failures:
        tools = ", ".join(sorted({c[0] for c in WORD_CONVERTERS[ext]}))
        raise EnvironmentUnavailableError(
            f"No converter available to read {ext} file: {path}",
            f"Install one of: {tools} (or save the file as .txt/.md).",
        )
    raise UnsupportedInputError(f"Could not extract text from {path}: " + "; ".join(failures))


def read_text_from_file(path: Path) -> str:
    """Return the text content of a URL file, converting Word documents first."""
    ext = path.suffix.lower()
    if ext not in TEXT_EXTS + WORD_EXTS:
        raise UnsupportedInputError(
            f"Unsupported URL file type '{ext or '(none)'}': {path} "
            f"(use {', '.join(TEXT_EXTS + WORD_EXTS)})"
        )
    if not path.is_file():
        raise UnsupportedInputError(f"URL file not found: {path}")
    if ext in WORD_EXTS:
        return _convert_word_document(path)
    try:
        return path.read_text(encoding="utf-8", errors="ignore")
    except OSError as exc:
        raise UnsupportedInputError(f"Could not read URL file {path}: {exc}") from exc


def read_urls_from_file(path: Path) -> List[str]:
    urls = extract_urls_from_text(read_text_from_file(path))
    if not urls:
        raise UnsupportedInputError(f"No URLs found in file: {path}")
    logger.debug("Read %d URL(s) from %s", len(urls), path)
    return urls

# ---------- seeds ----------

def resolve_seed_urls(positional_urls: Sequence[str], url_files: Iterable[Path],
                      default_url: Optional[str] = DEFAULT_URL) -> Tuple[str, ...]:
    """Positional URLs first, then each file's URLs in argument order, deduplicated."""
    url_files = [Path(p) for p in url_files]
    if not positional_urls and not url_files:
        return (normalize_capture_url(default_url),)

    seeds = [normalize_capture_url(u) for u in positional_urls]
    for path in url_files:
        seeds.extend(read_urls_from_file(path))
    return tuple(unique_ordered(seeds))
