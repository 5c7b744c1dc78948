#!/usr/bin/env python3
"""
fullpage-capture (desktop + mobile full-document screenshots)

- Seeds from positional URLs and --url-file (.txt/.md/.doc/.docx)
- Optional breadth-first crawl (--crawl, --crawl-depth, --max-pages, same-origin gate)
- Lazy-asset promotion, scroll-until-stable, image/font settle, animation freeze
- Hides default overlay selectors plus --exclude-class / --exclude-id
- Writes <key>-fullpage-document.png and <key>-fullpage-mobile-document.png
"""

import argparse
import logging
import os
import sys
import time
from pathlib import Path
from typing import List, Optional, Sequence

from playwright.sync_api import Error as PWError, sync_playwright

from .capture import (
    CaptureTarget,
    ScreenshotResult,
    build_capture_targets,
    capture_target,
    launch_browser,
)
from .config import (
    DEFAULT_CRAWL_DEPTH,
    DEFAULT_MAX_PAGES,
    DEFAULT_OUTPUT_DIR,
    DEFAULT_SCALE,
    DEFAULT_TIMEOUT_MS,
    DEFAULT_URL,
    CaptureSettings,
    CliOptions,
)
from .crawl import PlaywrightLinkCollector, crawl_site
from .errors import (
    CaptureError,
    InvalidArgumentError,
    NoTargetsResolvedError,
    UnknownOptionError,
    UnsupportedModeError,
)
from .exclusions import build_excluded_selectors
from .keys import OutputKeyResolver
from .sources import resolve_seed_urls
from .urls import split_comma_list

logger = logging.getLogger("fullpage_capture")

# ---------- utility formatting ----------

def _fmt_eta(seconds: Optional[float]) -> str:
    if seconds is None or seconds != seconds or seconds < 0:
        return "estimating…"
    seconds = int(round(seconds))
    h, r = divmod(seconds, 3600)
    m, s = divmod(r, 60)
    if h > 0:
        return f"{h:d}h {m:02d}m {s:02d}s"
    return f"{m:d}m {s:02d}s"


def _relative(path: Path) -> str:
    try:
        return os.path.relpath(path, Path.cwd())
    except ValueError:
        return str(path)

# ---------- CLI ----------

_TRUE_TOKENS = {"true", "1", "yes", "on"}
_FALSE_TOKENS = {"false", "0", "no", "off"}


class CliArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that raises instead of printing usage and exiting."""

    def error(self, message):
        raise InvalidArgumentError(message)


def _same_origin_flag(value: str) -> str:
    token = value.strip().lower()
    if token in _TRUE_TOKENS:
        return "--same-origin-only"
    if token in _FALSE_TOKENS:
        return "--no-same-origin-only"
    raise InvalidArgumentError(f"Invalid value for --same-origin-only: {value!r} (use true or false)")


def _rewrite_same_origin(argv: Sequence[str]) -> List[str]:
    """Fold --same-origin-only=<bool> and --same-origin-only <bool> into plain flags."""
    out = []
    i = 0
    while i < len(argv):
        arg = argv[i]
        if arg == "--":
            out.extend(argv[i:])
            break
        if arg.startswith("--same-origin-only="):
            out.append(_same_origin_flag(arg.split("=", 1)[1]))
        elif arg == "--same-origin-only" and i + 1 < len(argv) \
                and argv[i + 1].lower() in _TRUE_TOKENS | _FALSE_TOKENS:
            out.append(_same_origin_flag(argv[i + 1]))
            i += 1
        else:
            out.append(arg)
        i += 1
    return out


def _non_negative_int(value: str) -> int:
    try:
        n = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected an integer >= 0, got {value!r}")
    if n < 0:
        raise argparse.ArgumentTypeError(f"expected an integer >= 0, got {value!r}")
    return n


def _positive_int(value: str) -> int:
    try:
        n = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected an integer >= 1, got {value!r}")
    if n < 1:
        raise argparse.ArgumentTypeError(f"expected an integer >= 1, got {value!r}")
    return n


def _scale(value: str) -> float:
    try:
        x = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected a number, got {value!r}")
    if not 0 < x <= 4:
        raise argparse.ArgumentTypeError(f"scale must be in (0, 4], got {value!r}")
    return x


def _timeout_ms(value: str) -> int:
    try:
        n = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected milliseconds, got {value!r}")
    if n < 5000:
        raise argparse.ArgumentTypeError(f"timeout must be at least 5000ms, got {value!r}")
    return n


def build_parser() -> CliArgumentParser:
    ap = CliArgumentParser(
        prog="fullpage-capture",
        description="Take desktop & mobile full-document screenshots of one or more pages.",
        allow_abbrev=False,
        epilog=(
            "Examples:\n"
            f"  fullpage-capture {DEFAULT_URL}\n"
            "  fullpage-capture https://example.com --crawl --crawl-depth 2 --max-pages 40\n"
            "  fullpage-capture --url-file targets.md --exclude-class cookie-banner,chat-widget --scale 3"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    ap.add_argument("urls", nargs="*", help=f"Seed URLs (with or without http/https). Default: {DEFAULT_URL}")
    ap.add_argument("--url-file", dest="url_files", action="append", type=Path, default=[],
                    help="File of URLs (.txt, .md, .doc, .docx). Repeatable.")
    ap.add_argument("--crawl", "--loop", dest="crawl", action="store_const", const=True, default=False,
                    help="Discover more pages by following links from the seeds.")
    ap.add_argument("--no-crawl", dest="crawl", action="store_const", const=False, help="Capture the seeds only (default).")
    ap.add_argument("--crawl-depth", "--loop-depth", dest="crawl_depth", type=_non_negative_int,
                    default=DEFAULT_CRAWL_DEPTH, help=f"Link hops to follow from the seeds (default {DEFAULT_CRAWL_DEPTH}).")
    ap.add_argument("--max-pages", type=_positive_int, default=DEFAULT_MAX_PAGES,
                    help=f"Stop discovering once this many pages are known (default {DEFAULT_MAX_PAGES}).")
    ap.add_argument("--same-origin-only", dest="same_origin_only", action="store_const", const=True, default=True,
                    help="Only follow links on the seeds' origins (default). Accepts =true/=false.")
    ap.add_argument("--no-same-origin-only", dest="same_origin_only", action="store_const", const=False,
                    help="Follow links to any http(s) origin.")
    ap.add_argument("--exclude-class", dest="exclude_classes", action="append", default=[],
                    help="Class name(s) to hide before capture, comma-separated. Repeatable.")
    ap.add_argument("--exclude-id", dest="exclude_ids", action="append", default=[],
                    help="Element id(s) to hide before capture, comma-separated. Repeatable.")
    ap.add_argument("--output-dir", "--output", dest="output_dir", type=Path, default=Path(DEFAULT_OUTPUT_DIR),
                    help=f"Output directory (default: ./{DEFAULT_OUTPUT_DIR})")
    ap.add_argument("--scale", type=_scale, default=DEFAULT_SCALE,
                    help=f"Device pixel ratio (default {DEFAULT_SCALE:g}).")
    ap.add_argument("--timeout-ms", type=_timeout_ms, default=DEFAULT_TIMEOUT_MS,
                    help=f"Navigation timeout in ms, at least 5000 (default {DEFAULT_TIMEOUT_MS}).")
    ap.add_argument("--mode", default="full", help="Capture mode; only 'full' is supported.")
    ap.add_argument("--segments", action="store_true", help=argparse.SUPPRESS)
    ap.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    return ap


def parse_cli_arguments(argv: Sequence[str]) -> CliOptions:
    args, extras = build_parser().parse_known_intermixed_args(_rewrite_same_origin(argv))
    for extra in extras:
        if extra.startswith("-"):
            raise UnknownOptionError(extra.split("=", 1)[0])

    if args.segments:
        raise UnsupportedModeError("Only full-page mode is supported; --segments is not supported.")
    if args.mode.strip().lower() != "full":
        raise UnsupportedModeError(
            f"Only full-page mode is supported; --mode={args.mode} is not supported.")

    return CliOptions(
        positional_urls=list(args.urls),
        url_files=list(args.url_files),
        crawl=args.crawl,
        crawl_depth=args.crawl_depth,
        max_pages=args.max_pages,
        same_origin_only=args.same_origin_only,
        exclude_classes=[c for v in args.exclude_classes for c in split_comma_list(v)],
        exclude_ids=[i for v in args.exclude_ids for i in split_comma_list(v)],
        output_dir=args.output_dir,
        scale=args.scale,
        timeout_ms=args.timeout_ms,
        verbose=args.verbose,
    )

# ---------- orchestration ----------

def print_run_header(options: CliOptions, out_dir: Path, seeds: Sequence[str], selectors: Sequence[str]):
    print(f"Output dir: {out_dir}")
    print(f"Scale: {options.scale:g}x")
    if options.crawl:
        policy = "same-origin only" if options.same_origin_only else "any origin"
        print(f"Crawl: on (depth {options.crawl_depth}, max {options.max_pages} pages, {policy})")
    else:
        print("Crawl: off")
    print(f"Seeds ({len(seeds)}):")
    for u in seeds:
        print(f"   {u}")
    print(f"Excluded selectors ({len(selectors)}):")
    for s in selectors:
        print(f"   {s}")
    print()


def print_screenshot(result: ScreenshotResult):
    size = f", {result.image_size[0]}x{result.image_size[1]} px" if result.image_size else ""
    print(f"   {result.profile.name:<7} {result.url}")
    print(f"           viewport {result.profile.width}x{result.profile.height}"
          f" → {_relative(result.path)} ({result.bytes} bytes{size})")


def discover_urls(browser, seeds: Sequence[str], options: CliOptions, settings: CaptureSettings) -> List[str]:
    """Crawl with one shared context for every navigation."""
    context = browser.new_context()
    try:
        page = context.new_page()
        collector = PlaywrightLinkCollector(page, settings.navigation_timeout_ms)
        return crawl_site(seeds, collector, options.crawl_depth, options.max_pages, options.same_origin_only)
    finally:
        context.close()


def capture_all(browser, targets: Sequence[CaptureTarget], out_dir: Path,
                selectors: Sequence[str], settings: CaptureSettings) -> int:
    """Capture every target in order; a failed target does not stop the batch."""
    total = len(targets)
    failed: List[CaptureTarget] = []
    t_batch_start = time.time()
    avg_per_item: Optional[float] = None

    for idx, target in enumerate(targets, start=1):
        eta = (total - idx + 1) * avg_per_item if avg_per_item is not None else None
        print(f"[{idx}/{total}] {target.url}  (ETA {_fmt_eta(eta)})")
        t0 = time.time()
        try:
            for result in capture_target(browser, target, out_dir, selectors, settings):
                print_screenshot(result)
        except (CaptureError, PWError) as exc:
            failed.append(target)
            print(f"   ✗ failed: {exc}", file=sys.stderr)
            logger.debug("Capture of %s failed", target.url, exc_info=True)
        else:
            print(f"   ✓ captured in {_fmt_eta(time.time() - t0)}")
        avg_per_item = (time.time() - t_batch_start) / idx

    print(f"\nAll done in {_fmt_eta(time.time() - t_batch_start)}: "
          f"{total - len(failed)} captured, {len(failed)} failed")
    for target in failed:
        print(f"   failed: {target.url}", file=sys.stderr)
    return 1 if failed else 0


def run(options: CliOptions) -> int:
    settings = CaptureSettings.from_options(options)
    seeds = resolve_seed_urls(options.positional_urls, options.url_files)
    selectors = build_excluded_selectors(options.exclude_classes, options.exclude_ids)

    out_dir = options.output_dir.resolve()
    out_dir.mkdir(parents=True, exist_ok=True)
    print_run_header(options, out_dir, seeds, selectors)

    with sync_playwright() as p:
        browser = launch_browser(p)
        try:
            urls = discover_urls(browser, seeds, options, settings) if options.crawl else list(seeds)
            if not urls:
                raise NoTargetsResolvedError()
            targets = build_capture_targets(urls, OutputKeyResolver())
            return capture_all(browser, targets, out_dir, selectors, settings)
        finally:
            browser.close()


def main(argv: Optional[Sequence[str]] = None) -> int:
    try:
        options = parse_cli_arguments(sys.argv[1:] if argv is None else argv)
    except InvalidArgumentError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        print("Run with --help for usage.", file=sys.stderr)
        return 1

    logging.basicConfig(
        level=logging.DEBUG if options.verbose else logging.INFO,
        format="[%(levelname)s] %(message)s",
    )
    try:
        return run(options)
    except CaptureError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    except Exception:  # pylint: disable=broad-except
        logger.exception("Unexpected error")
        return 1

if __name__ == "__main__":
    sys.exit(main())
