"""Browser lifecycle and per-target screenshot capture."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple

from PIL import Image
from playwright.sync_api import Error as PWError

from .config import CaptureSettings, ViewportProfile
from .errors import EnvironmentUnavailableError, NavigationError
from .keys import OutputKeyResolver
from .readiness import prepare_page

logger = logging.getLogger("fullpage_capture.capture")

SETUP_HINT = "Run setup first:\n  python -m playwright install chromium"
SANDBOX_HINT = "Run this command from a normal local terminal session (not a restricted sandbox)."

_MISSING_RUNTIME_MARKERS = ("Executable doesn't exist", "Please run", "playwright install")
_BLOCKED_LAUNCH_MARKERS = (
    "Permission denied",
    "bootstrap_check_in",
    "Target page, context or browser has been closed",
)


@dataclass(frozen=True)
class CaptureTarget:
    url: str
    output_key: str

    def output_path(self, output_dir: Path, profile: ViewportProfile) -> Path:
        return output_dir / f"{self.output_key}-{profile.suffix}.png"


@dataclass
class ScreenshotResult:
    url: str
    profile: ViewportProfile
    path: Path
    bytes: int
    image_size: Optional[Tuple[int, int]] = None


def build_capture_targets(urls: Iterable[str], resolver: Optional[OutputKeyResolver] = None) -> List[CaptureTarget]:
    resolver = resolver or OutputKeyResolver()
    return [CaptureTarget(url=u, output_key=resolver.resolve(u)) for u in urls]

# ---------- browser ----------

def launch_browser(playwright):
    """Launch headless Chromium, translating setup problems into actionable errors."""
    try:
        return playwright.chromium.launch(headless=True)
    except PWError as exc:
        message = str(exc)
        if any(m in message for m in _MISSING_RUNTIME_MARKERS):
            raise EnvironmentUnavailableError(
                "Chromium runtime is not installed for Playwright.", SETUP_HINT) from exc
        if any(m in message for m in _BLOCKED_LAUNCH_MARKERS):
            raise EnvironmentUnavailableError(
                "Browser launch was blocked by the current environment.", SANDBOX_HINT) from exc
        raise


def navigate(page, url: str, timeout_ms: int):
    try:
        page.goto(url, wait_until="domcontentloaded", timeout=timeout_ms)
    except PWError as exc:
        reason = str(exc).splitlines()[0] if str(exc) else type(exc).__name__
        raise NavigationError(url, reason) from exc

# ---------- capture ----------

def take_fullpage_screenshot(page, path: str):
    page.screenshot(path=path, full_page=True)


def read_image_size(path: Path) -> Optional[Tuple[int, int]]:
    try:
        with Image.open(path) as img:
            return img.size
    except OSError as exc:
        logger.warning("Could not read back %s: %s", path, exc)
        return None


def capture_full_page(browser, url: str, output_path: Path, profile: ViewportProfile,
                      excluded_selectors: Sequence[str], settings: CaptureSettings) -> ScreenshotResult:
    """Capture one full-document screenshot in a fresh browser context."""
    context = browser.new_context(**profile.context_options(settings.scale))
    try:
        page = context.new_page()
        page.set_default_timeout(settings.navigation_timeout_ms)
        navigate(page, url, settings.navigation_timeout_ms)
        prepare_page(page, excluded_selectors, settings)
        take_fullpage_screenshot(page, str(output_path))
    finally:
        context.close()

    return ScreenshotResult(
        url=url,
        profile=profile,
        path=output_path,
        bytes=output_path.stat().st_size,
        image_size=read_image_size(output_path),
    )


def capture_target(browser, target: CaptureTarget, output_dir: Path,
                   excluded_selectors: Sequence[str], settings: CaptureSettings) -> List[ScreenshotResult]:
    """Desktop then mobile, each in its own context."""
    results = []
    for profile in settings.profiles:
        path = target.output_path(output_dir, profile)
        logger.debug("Capturing %s (%s) -> %s", target.url, profile.name, path)
        results.append(capture_full_page(browser, target.url, path, profile, excluded_selectors, settings))
    return results
