from pathlib import Path
from typing import Dict, List, Optional, Sequence

import pytest
from PIL import Image
from playwright.sync_api import Error as PWError, TimeoutError as PlaywrightTimeoutError

from fullpage_capture import crawl, readiness
from fullpage_capture.config import CaptureSettings
from fullpage_capture.crawl import PageLinks
from fullpage_capture.errors import NavigationError


class FakePage:
    """Stands in for a Playwright sync Page; records what the code asked it to do."""

    def __init__(self, heights: Sequence[int] = (), initial_height: int = 1000,
                 network_idle_fails: bool = False, dom_ready_fails: bool = False,
                 assets_settled: bool = True, asset_check_fails: bool = False,
                 links: Optional[Dict[str, List[str]]] = None, unreachable: Sequence[str] = (),
                 screenshot_size=(64, 48)):
        self.heights = list(heights)
        self.last_height = initial_height
        self.initial_height = initial_height
        self.network_idle_fails = network_idle_fails
        self.dom_ready_fails = dom_ready_fails
        self.assets_settled = assets_settled
        self.asset_check_fails = asset_check_fails
        self.links = links or {}
        self.unreachable = set(unreachable)
        self.screenshot_size = screenshot_size
        self.url = "about:blank"
        self.calls: List[tuple] = []
        self.styles: List[str] = []
        self.scroll_rounds = 0
        self.scroll_args = None
        self.enforced = None

    def set_default_timeout(self, timeout):
        self.calls.append(("set_default_timeout", timeout))

    def goto(self, url, wait_until=None, timeout=None):
        self.calls.append(("goto", url))
        if url in self.unreachable:
            raise PWError(f"net::ERR_NAME_NOT_RESOLVED at {url}")
        self.url = url

    def wait_for_load_state(self, state, timeout=None):
        self.calls.append(("wait_for_load_state", state))
        if state == "networkidle" and self.network_idle_fails:
            raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded.")
        if state == "domcontentloaded" and self.dom_ready_fails:
            raise PWError("Target page, context or browser has been closed")

    def wait_for_timeout(self, ms):
        self.calls.append(("wait_for_timeout", ms))

    def add_style_tag(self, content=None):
        self.calls.append(("add_style_tag",))
        self.styles.append(content)

    def screenshot(self, path=None, full_page=False):
        self.calls.append(("screenshot", path, full_page))
        Image.new("RGB", self.screenshot_size, "white").save(path)

    def evaluate(self, script, arg=None):
        if script == readiness.js_document_height():
            self.calls.append(("document_height",))
            return self.initial_height
        if script == readiness.js_scroll_round():
            self.calls.append(("scroll_round",))
            self.scroll_rounds += 1
            self.scroll_args = arg
            if self.heights:
                self.last_height = self.heights.pop(0)
            return self.last_height
        if script == readiness.js_promote_lazy_assets():
            self.calls.append(("promote_lazy_assets",))
            return {"eager": 0, "promoted": 0, "visible": 0}
        if script == readiness.js_wait_for_assets():
            self.calls.append(("wait_for_assets", arg))
            if self.asset_check_fails:
                raise PWError("Execution context was destroyed")
            return self.assets_settled
        if script == readiness.js_enforce_reveal_and_exclusions():
            self.calls.append(("enforce",))
            self.enforced = arg
            return {"revealed": 0, "excluded": 0}
        if script == crawl.js_collect_links():
            self.calls.append(("collect_links", self.url))
            return {"base": self.url, "hrefs": list(self.links.get(self.url, []))}
        if "scrollTo(0, 0)" in script:
            self.calls.append(("scroll_top",))
            return None
        raise AssertionError(f"unexpected script: {script[:60]}")

    def names(self):
        return [c[0] for c in self.calls]


class FakeContext:
    def __init__(self, page_factory, options):
        self.page_factory = page_factory
        self.options = options
        self.pages: List[FakePage] = []
        self.closed = False

    def new_page(self):
        page = self.page_factory()
        self.pages.append(page)
        return page

    def close(self):
        self.closed = True


class FakeBrowser:
    def __init__(self, page_factory=FakePage):
        self.page_factory = page_factory
        self.contexts: List[FakeContext] = []
        self.closed = False

    def new_context(self, **options):
        ctx = FakeContext(self.page_factory, options)
        self.contexts.append(ctx)
        return ctx

    def close(self):
        self.closed = True


def make_fetcher(graph: Dict[str, List[str]], failing: Sequence[str] = ()):
    """Link source over an in-memory site graph."""
    calls: List[str] = []

    def fetch(url):
        calls.append(url)
        if url in failing:
            raise NavigationError(url, "net::ERR_CONNECTION_REFUSED")
        return PageLinks(base_url=url, hrefs=tuple(graph.get(url, ())))

    fetch.calls = calls
    return fetch


@pytest.fixture
def settings():
    return CaptureSettings()


@pytest.fixture
def fake_browser():
    return FakeBrowser()


@pytest.fixture
def write_file(tmp_path):
    def _write(name: str, content: str) -> Path:
        path = tmp_path / name
        path.write_text(content, encoding="utf-8")
        return path

    return _write
