"""
Run-level browser capability.

One headless Chromium instance is shared by every worker of a run; each worker
opens its own page per URL. The browser is started on context entry and closed
exactly once on exit, whether the run finished, failed or was cancelled.
"""

import logging
from typing import Optional

from playwright.async_api import Browser, Error as PlaywrightError, Playwright, async_playwright

from .errors import BrowserLaunchError

logger = logging.getLogger(__name__)

LAUNCH_ARGS = [
    '--no-sandbox',
    '--disable-dev-shm-usage',
    '--disable-blink-features=AutomationControlled'
]


class BrowserSession:
    """
    Async context manager around a Playwright Chromium browser.

    Usage:
        async with BrowserSession(headless=True) as browser:
            page = await browser.new_page()
    """

    def __init__(self, headless: bool = True):
        self.headless = headless
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None

    async def __aenter__(self) -> Browser:
        """Launch the browser. Raises BrowserLaunchError if it cannot start."""
        try:
            self._playwright = await async_playwright().start()
            self._browser = await self._playwright.chromium.launch(
                headless=self.headless,
                args=LAUNCH_ARGS
            )
        except PlaywrightError as e:
            await self.close()
            raise BrowserLaunchError(f"Browser failed to launch: {e}") from e

        logger.info(f"Playwright browser launched (headless={self.headless})")
        return self._browser

    async def __aexit__(self, *args) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the browser and stop Playwright; safe to call more than once."""
        browser, self._browser = self._browser, None
        playwright, self._playwright = self._playwright, None

        if browser is not None:
            try:
                await browser.close()
            except PlaywrightError as e:
                logger.warning(f"Error while closing browser: {e}")
        if playwright is not None:
            await playwright.stop()
            logger.info("Playwright browser closed")


def launch_browser(headless: bool = True) -> BrowserSession:
    """Default browser factory used by HarvestEngine."""
    return BrowserSession(headless=headless)
