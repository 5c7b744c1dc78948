"""Run options and capture settings."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Dict, List, Optional, Tuple

DEFAULT_URL = "https://membershealth.ca/Discovery"
DEFAULT_OUTPUT_DIR = "screenshot-output"
DEFAULT_SCALE = 2.0
DEFAULT_TIMEOUT_MS = 60000
DEFAULT_CRAWL_DEPTH = 1
DEFAULT_MAX_PAGES = 50

MOBILE_USER_AGENT = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 14_0 like Mac OS X) "
    "AppleWebKit/605.1.15 (KHTML, like Gecko) Version/14.0 Mobile/15E148 Safari/604.1"
)


@dataclass
class CliOptions:
    """Parsed command line."""

    positional_urls: List[str] = field(default_factory=list)
    url_files: List[Path] = field(default_factory=list)
    crawl: bool = False
    crawl_depth: int = DEFAULT_CRAWL_DEPTH
    max_pages: int = DEFAULT_MAX_PAGES
    same_origin_only: bool = True
    exclude_classes: List[str] = field(default_factory=list)
    exclude_ids: List[str] = field(default_factory=list)
    output_dir: Path = Path(DEFAULT_OUTPUT_DIR)
    scale: float = DEFAULT_SCALE
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    verbose: bool = False


@dataclass(frozen=True)
class ViewportProfile:
    """One browser-context shape a target is captured with."""

    name: str
    suffix: str
    width: int
    height: int
    is_mobile: bool = False
    user_agent: Optional[str] = None

    def context_options(self, scale: float) -> Dict[str, object]:
        options: Dict[str, object] = {
            "viewport": {"width": self.width, "height": self.height},
            "device_scale_factor": scale,
        }
        if self.is_mobile:
            options["is_mobile"] = True
            options["has_touch"] = True
        if self.user_agent:
            options["user_agent"] = self.user_agent
        return options


DESKTOP_PROFILE = ViewportProfile(name="desktop", suffix="fullpage-document", width=1280, height=720)
MOBILE_PROFILE = ViewportProfile(
    name="mobile",
    suffix="fullpage-mobile-document",
    width=390,
    height=844,
    is_mobile=True,
    user_agent=MOBILE_USER_AGENT,
)


@dataclass(frozen=True)
class CaptureSettings:
    """Timeouts and thresholds shared by the crawl and readiness steps."""

    navigation_timeout_ms: int = DEFAULT_TIMEOUT_MS
    scale: float = DEFAULT_SCALE
    dom_ready_timeout_ms: int = 30000
    network_idle_timeout_ms: int = 15000
    grace_delay_ms: int = 1200
    scroll_min_step_px: int = 220
    scroll_step_delay_ms: int = 120
    scroll_max_steps_per_round: int = 400
    height_tolerance_px: int = 2
    stable_rounds_required: int = 3
    max_scroll_rounds: int = 36
    settle_network_idle_timeout_ms: int = 8000
    asset_settle_timeout_ms: int = 10000
    final_settle_delay_ms: int = 400
    profiles: Tuple[ViewportProfile, ...] = (DESKTOP_PROFILE, MOBILE_PROFILE)

    @classmethod
    def from_options(cls, options: CliOptions) -> "CaptureSettings":
        return replace(cls(), navigation_timeout_ms=options.timeout_ms, scale=options.scale)
