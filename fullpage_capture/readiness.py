"""Drive a loaded page to a stable, deterministic state before capture.

Steps, in order: DOM ready and network settle, lazy-asset promotion, scroll
passes until the document height stops growing, image and font settle, then
animation freeze and exclusion hiding. Every wait is bounded by a timeout or
a round cap; the network and asset waits are best effort.
"""

from __future__ import annotations

import logging
from typing import Sequence

from playwright.sync_api import Error as PWError

from .config import CaptureSettings

logger = logging.getLogger("fullpage_capture.readiness")

# Entry-animation patterns that start hidden and are revealed by scripts.
REVEAL_SELECTORS = (
    "[data-w-id]",
    '[style*="opacity:0"]',
    '[style*="opacity: 0"]',
    "[data-aos]",
    ".aos-init",
)


class HeightStabilizer:
    """Tracks document height across scroll rounds.

    A round whose height is within ``tolerance_px`` of the largest height seen
    so far counts as stable; any growth resets the count. Finished after
    ``stable_rounds_required`` consecutive stable rounds or ``max_rounds``
    rounds, whichever comes first.
    """

    def __init__(self, initial_height: int = 0, tolerance_px: int = 2,
                 stable_rounds_required: int = 3, max_rounds: int = 36):
        self.max_height = initial_height
        self.tolerance_px = tolerance_px
        self.stable_rounds_required = stable_rounds_required
        self.max_rounds = max_rounds
        self.stable_rounds = 0
        self.rounds = 0

    @property
    def stable(self) -> bool:
        return self.stable_rounds >= self.stable_rounds_required

    @property
    def exhausted(self) -> bool:
        return self.rounds >= self.max_rounds

    @property
    def done(self) -> bool:
        return self.stable or self.exhausted

    def observe(self, height: int) -> bool:
        """Record one round's height; returns True once finished."""
        self.rounds += 1
        if height <= self.max_height + self.tolerance_px:
            self.stable_rounds += 1
        else:
            self.stable_rounds = 0
            self.max_height = height
        return self.done

# ---------- JS helpers ----------

def js_document_height():
    return r"""
() => Math.max(
  document.body ? document.body.scrollHeight : 0,
  document.documentElement ? document.documentElement.scrollHeight : 0
)
"""


def js_promote_lazy_assets():
    return r"""
() => {
  let eager = 0, promoted = 0, visible = 0;
  document.querySelectorAll('img[loading="lazy"], iframe[loading="lazy"]').forEach(el => {
    el.setAttribute('loading', 'eager');
    eager += 1;
  });

  const promote = (from, to) => {
    document.querySelectorAll(`img[${from}], iframe[${from}], source[${from}], video[${from}]`).forEach(el => {
      const value = el.getAttribute(from);
      if (value && el.getAttribute(to) !== value) {
        el.setAttribute(to, value);
        promoted += 1;
      }
    });
  };
  promote('data-src', 'src');
  promote('data-lazy-src', 'src');
  promote('data-srcset', 'srcset');
  promote('data-lazy-srcset', 'srcset');

  ['data-bg', 'data-background-image'].forEach(attr => {
    document.querySelectorAll(`[${attr}]`).forEach(el => {
      const value = (el.getAttribute(attr) || '').trim();
      if (!value) return;
      el.style.backgroundImage = value.startsWith('url(') ? value : `url("${value}")`;
      promoted += 1;
    });
  });

  document.querySelectorAll('*').forEach(el => {
    if (getComputedStyle(el).contentVisibility === 'auto') {
      el.style.setProperty('content-visibility', 'visible', 'important');
      visible += 1;
    }
  });
  return { eager, promoted, visible };
}
"""


def js_scroll_round():
    # One top-to-bottom pass; returns the largest document height seen.
    return r"""
async ({ minStep, delayMs, maxSteps }) => {
  const delay = (ms) => new Promise(resolve => setTimeout(resolve, ms));
  const docHeight = () => Math.max(
    document.body ? document.body.scrollHeight : 0,
    document.documentElement ? document.documentElement.scrollHeight : 0
  );
  const step = Math.max(minStep, window.innerHeight);
  let maxHeight = docHeight();
  window.scrollTo(0, 0);
  for (let i = 0; i < maxSteps; i += 1) {
    window.scrollBy(0, step);
    await delay(delayMs);
    maxHeight = Math.max(maxHeight, docHeight());
    if (window.scrollY + window.innerHeight >= docHeight() - 2) break;
  }
  return maxHeight;
}
"""


def js_wait_for_assets():
    return r"""
async (timeoutMs) => {
  const pending = Array.from(document.images)
    .filter(img => !img.complete)
    .map(img => new Promise(resolve => {
      img.addEventListener('load', resolve, { once: true });
      img.addEventListener('error', resolve, { once: true });
    }));
  const fonts = document.fonts ? document.fonts.ready : Promise.resolve();
  const settled = Promise.all([...pending, fonts]).then(() => true);
  const timer = new Promise(resolve => setTimeout(() => resolve(false), timeoutMs));
  return Promise.race([settled, timer]);
}
"""


def js_enforce_reveal_and_exclusions():
    return r"""
({ reveal, hidden }) => {
  for (const root of [document.documentElement, document.body]) {
    if (root) root.classList.remove('vsc-initialized');
  }
  const apply = (selector, props) => {
    let nodes;
    try {
      nodes = document.querySelectorAll(selector);
    } catch (e) {
      return 0;
    }
    nodes.forEach(node => {
      for (const [name, value] of props) node.style.setProperty(name, value, 'important');
    });
    return nodes.length;
  };
  let revealed = 0, excluded = 0;
  for (const s of reveal) revealed += apply(s, [['opacity', '1'], ['transform', 'none']]);
  for (const s of hidden) {
    excluded += apply(s, [
      ['display', 'none'], ['visibility', 'hidden'], ['opacity', '0'], ['pointer-events', 'none'],
    ]);
  }
  return { revealed, excluded };
}
"""


def build_determinism_css(excluded_selectors: Sequence[str]) -> str:
    """Stylesheet that reveals entry animations, freezes motion and hides exclusions.

    Each exclusion gets its own rule so one invalid selector cannot void the rest.
    """
    rules = [
        ",\n".join(REVEAL_SELECTORS) + " {\n  opacity: 1 !important;\n  transform: none !important;\n}",
        "*,\n*::before,\n*::after {\n"
        "  transition-duration: 0s !important;\n"
        "  transition-delay: 0s !important;\n"
        "  animation-duration: 0s !important;\n"
        "  animation-delay: 0s !important;\n"
        "}",
    ]
    for sel in excluded_selectors:
        rules.append(
            f"{sel} {{\n"
            "  display: none !important;\n"
            "  visibility: hidden !important;\n"
            "  opacity: 0 !important;\n"
            "  pointer-events: none !important;\n"
            "}"
        )
    return "\n".join(rules) + "\n"

# ---------- steps ----------

def wait_for_network_idle(page, timeout_ms: int) -> bool:
    try:
        page.wait_for_load_state("networkidle", timeout=timeout_ms)
        return True
    except PWError as exc:
        logger.debug("Network did not go idle within %dms: %s", timeout_ms, exc)
        return False


def promote_lazy_assets(page):
    counts = page.evaluate(js_promote_lazy_assets())
    logger.debug("Lazy assets: %s", counts)


def stabilize_scroll_height(page, settings: CaptureSettings) -> HeightStabilizer:
    stabilizer = HeightStabilizer(
        initial_height=int(page.evaluate(js_document_height()) or 0),
        tolerance_px=settings.height_tolerance_px,
        stable_rounds_required=settings.stable_rounds_required,
        max_rounds=settings.max_scroll_rounds,
    )
    args = {
        "minStep": settings.scroll_min_step_px,
        "delayMs": settings.scroll_step_delay_ms,
        "maxSteps": settings.scroll_max_steps_per_round,
    }
    while not stabilizer.done:
        stabilizer.observe(int(page.evaluate(js_scroll_round(), args) or 0))
    page.evaluate("() => window.scrollTo(0, 0)")

    if stabilizer.stable:
        logger.debug("Height stable at %dpx after %d round(s)", stabilizer.max_height, stabilizer.rounds)
    else:
        logger.warning("Height still changing after %d scroll rounds (max %dpx); capturing anyway",
                       stabilizer.rounds, stabilizer.max_height)
    return stabilizer


def settle_assets(page, settings: CaptureSettings) -> bool:
    wait_for_network_idle(page, settings.settle_network_idle_timeout_ms)
    try:
        settled = bool(page.evaluate(js_wait_for_assets(), settings.asset_settle_timeout_ms))
    except PWError as exc:
        logger.debug("Asset settle check failed: %s", exc)
        return False
    if not settled:
        logger.debug("Images/fonts not settled after %dms", settings.asset_settle_timeout_ms)
    return settled


def apply_visual_determinism(page, excluded_selectors: Sequence[str]):
    page.add_style_tag(content=build_determinism_css(excluded_selectors))
    counts = page.evaluate(
        js_enforce_reveal_and_exclusions(),
        {"reveal": list(REVEAL_SELECTORS), "hidden": list(excluded_selectors)},
    )
    logger.debug("Determinism pass: %s", counts)


def prepare_page(page, excluded_selectors: Sequence[str], settings: CaptureSettings):
    """Bring a navigated page to a capture-ready state."""
    page.wait_for_load_state("domcontentloaded", timeout=settings.dom_ready_timeout_ms)
    wait_for_network_idle(page, settings.network_idle_timeout_ms)
    page.wait_for_timeout(settings.grace_delay_ms)

    promote_lazy_assets(page)
    stabilize_scroll_height(page, settings)
    settle_assets(page, settings)
    apply_visual_determinism(page, excluded_selectors)

    page.wait_for_timeout(settings.final_settle_delay_ms)
