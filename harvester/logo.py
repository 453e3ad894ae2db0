"""
Logo detection and cropped capture.

Heuristic selectors are tried in order; the first one with any match wins and
its first element is screenshotted on its own. No scoring across heuristics.
"""

import logging
from pathlib import Path
from typing import Callable, Optional, Tuple

from playwright.async_api import ElementHandle, Page

from .files import LOGO, ensure_dir, image_path

logger = logging.getLogger(__name__)

LOGO_HEURISTICS: Tuple[str, ...] = (
    # Semantic clues (alt/aria/class/id) inside the header
    'header :is(img, svg)[alt*="logo" i], header :is(img, svg)[class*="logo" i]',
    'header :is(img, svg)[id*="logo" i], header :is(img, svg)[aria-label*="logo" i]',
    # Common logo container classes/ids anywhere
    '[class*="brand-logo" i], [id*="header-logo" i], [class*="site-logo" i]',
    # Images near the top of the page
    'body > header img, body > .nav img, body > .header img',
)


async def find_logo_candidate(
    page: Page,
    heuristics: Tuple[str, ...] = LOGO_HEURISTICS
) -> Tuple[Optional[ElementHandle], Optional[str]]:
    """
    Find the first element matched by the logo heuristics.

    Returns:
        (element, selector) or (None, None) when nothing matched
    """
    for selector in heuristics:
        try:
            elements = await page.query_selector_all(selector)
        except Exception as e:
            logger.debug(f"Logo selector {selector!r} failed: {e}")
            continue
        if elements:
            return elements[0], selector
    return None, None


async def capture_logo(
    page: Page,
    base_name: str,
    output_dir: Path,
    image_sub_folder: str,
    log: Callable[[str], None],
    warn: Optional[Callable[[str], None]] = None
) -> Optional[str]:
    """
    Find and capture the primary site logo.

    Args:
        page: Loaded Playwright page
        base_name: Row BaseName used for the file name
        output_dir: Root output directory
        image_sub_folder: Image folder under the output directory
        log: Info-level log function
        warn: Warning-level log function (defaults to ``log``)

    Returns:
        Table-relative path of the logo image, or None if not found/captured
    """
    warn = warn or log
    log("Attempting to find and capture primary logo...")

    element, selector = await find_logo_candidate(page)
    if element is None:
        log("No primary logo element found using heuristics.")
        return None

    log(f"Logo candidate found with selector: {selector[:50]}")
    target = image_path(output_dir, image_sub_folder, base_name, kind=LOGO, index=1)

    try:
        ensure_dir(target.full_path.parent)
        await element.screenshot(path=str(target.full_path))
    except Exception as e:
        warn(f"Failed to capture logo screenshot. {e}")
        return None

    log(f"Logo captured successfully: {target.relative_path}")
    return target.relative_path
