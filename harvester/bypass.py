"""
Best-effort dismissal of cookie banners, consent dialogs and modal overlays.

The heuristics are a priority-ordered table of (selector, action) pairs. Every
heuristic is tried once; failures never stop the loop. They are logged at
debug level and summarised in a single warning per page.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Tuple

from playwright.async_api import Page

logger = logging.getLogger(__name__)

CLICK_TIMEOUT_MS = 500
SETTLE_DELAY_MS = 500

CLICKABLE_TAGS = frozenset({"BUTTON", "A"})
CONTAINER_TAGS = frozenset({"DIV", "SECTION"})

_REMOVE_OVERLAY_JS = """
el => {
    el.remove();
    document.body.style.overflow = 'auto';
}
"""


class BypassAction(Enum):
    CLICK = "click"     # Always click (text-based matches)
    AUTO = "auto"       # Click controls, remove containers, by tag name
    REMOVE = "remove"   # Overlay containers


@dataclass(frozen=True)
class ObstructionHeuristic:
    selector: str
    action: BypassAction = BypassAction.AUTO


OBSTRUCTION_HEURISTICS: Tuple[ObstructionHeuristic, ...] = (
    # Cookie banners (accept buttons)
    ObstructionHeuristic("text=/accept|i agree|ok|got it/i", BypassAction.CLICK),
    ObstructionHeuristic('[class*="cookie"] button'),
    ObstructionHeuristic('[id*="cookie"] button'),
    # Newsletter / modal close controls
    ObstructionHeuristic('[aria-label*="close"]'),
    ObstructionHeuristic('[class*="modal-close"]'),
    ObstructionHeuristic('[class*="popup-close"]'),
    ObstructionHeuristic('[class*="dismiss"]'),
    ObstructionHeuristic('button[title*="Close"]'),
    ObstructionHeuristic('button:has-text("No thanks")'),
    # Overlays (removing them works better than clicking)
    ObstructionHeuristic('div[style*="position: fixed"][style*="z-index: 9999"]', BypassAction.REMOVE),
    ObstructionHeuristic('div[id*="backdrop"]', BypassAction.REMOVE),
)


def resolve_action(heuristic: ObstructionHeuristic, tag_name: str) -> Optional[BypassAction]:
    """
    Decide what to do with a matched element.

    Returns:
        CLICK, REMOVE, or None when the element should be left alone
    """
    tag = tag_name.upper()
    if heuristic.action is BypassAction.CLICK or tag in CLICKABLE_TAGS:
        return BypassAction.CLICK
    if heuristic.action is BypassAction.REMOVE or tag in CONTAINER_TAGS:
        return BypassAction.REMOVE
    return None


async def dismiss_obstructions(
    page: Page,
    log: Callable[[str], None],
    heuristics: Tuple[ObstructionHeuristic, ...] = OBSTRUCTION_HEURISTICS,
    warn: Optional[Callable[[str], None]] = None
) -> int:
    """
    Try every heuristic against the page in priority order.

    Args:
        page: Loaded Playwright page
        log: Info-level log function for the current URL
        heuristics: Heuristic table to apply
        warn: Warn-level log function for the failure summary (defaults to log)

    Returns:
        Number of obstructions clicked or removed
    """
    log("Attempting to bypass common popups and overlays...")
    handled = 0
    failed = 0

    for heuristic in heuristics:
        try:
            element = page.locator(heuristic.selector).first
            if not await element.is_visible():
                continue

            tag_name = await element.evaluate("el => el.tagName")
            action = resolve_action(heuristic, tag_name)

            if action is BypassAction.CLICK:
                log(f"Bypassing by clicking selector: {heuristic.selector[:50]}")
                await element.click(timeout=CLICK_TIMEOUT_MS)
                await page.wait_for_timeout(SETTLE_DELAY_MS)
                handled += 1
            elif action is BypassAction.REMOVE:
                log(f"Bypassing by hiding overlay: {heuristic.selector[:50]}")
                await element.evaluate(_REMOVE_OVERLAY_JS)
                handled += 1
        except Exception as e:
            # Element gone, detached or click rejected
            logger.debug(f"Bypass heuristic {heuristic.selector!r} failed: {e}")
            failed += 1

    if failed:
        (warn or log)(f"{failed} popup bypass attempt(s) failed.")
    log("Popup bypass attempts finished.")
    return handled
