"""
Shared pytest fixtures: in-memory stand-ins for Playwright pages and browsers.

A FakeBrowser maps URLs to FakeSite descriptions. Pages opened on it pick
their site on ``goto`` and answer locator/screenshot/evaluate calls from it.
"""

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import pytest
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from harvester.config import HarvestConfig
from harvester.errors import BrowserLaunchError
from harvester.models import LogLevel


@dataclass
class FakeSite:
    texts: Dict[str, str] = field(default_factory=dict)     # locator query -> text content
    visible: Dict[str, str] = field(default_factory=dict)   # locator query -> tag name
    logo_selector: Optional[str] = None
    logo_selectors: Tuple[str, ...] = ()                   # further selectors that match a logo
    logo_error: Optional[Exception] = None                  # raised by the logo element screenshot
    html: str = "<body><h1>Acme</h1></body>"
    goto_error: Optional[Exception] = None
    screenshot_error: Optional[Exception] = None
    idle_timeout: bool = False
    delay: float = 0.0


class FakeElement:
    def __init__(self, page: "FakePage", selector: str = ""):
        self.page = page
        self.selector = selector

    async def screenshot(self, path: str) -> None:
        if self.page.site.logo_error is not None:
            raise self.page.site.logo_error
        Path(path).write_bytes(b"logo")
        self.page.screenshots.append(path)


class FakeLocator:
    def __init__(self, page: "FakePage", query: str):
        self.page = page
        self.query = query

    @property
    def first(self) -> "FakeLocator":
        return self

    async def count(self) -> int:
        site = self.page.site
        return int(self.query in site.texts or self.query in site.visible)

    async def text_content(self, timeout: Optional[int] = None) -> Optional[str]:
        if self.query not in self.page.site.texts:
            raise RuntimeError(f"Timeout waiting for {self.query}")
        return self.page.site.texts[self.query]

    async def is_visible(self) -> bool:
        return self.query in self.page.site.visible

    async def evaluate(self, script: str):
        if "tagName" in script:
            return self.page.site.visible[self.query]
        self.page.removed.append(self.query)
        return None

    async def click(self, timeout: Optional[int] = None) -> None:
        self.page.clicked.append(self.query)


class FakePage:
    def __init__(self, browser: "FakeBrowser"):
        self.browser = browser
        self.site = browser.default_site
        self.url = ""
        self.closed = False
        self.clicked: List[str] = []
        self.removed: List[str] = []
        self.screenshots: List[str] = []
        self.waits: List[int] = []

    async def goto(self, url: str, wait_until: str = "load", timeout: Optional[int] = None) -> None:
        self.url = url
        self.site = self.browser.sites.get(url, self.browser.default_site)
        self.browser.visited.append(url)
        if self.site.delay:
            await asyncio.sleep(self.site.delay)
        if self.site.goto_error is not None:
            raise self.site.goto_error

    async def wait_for_load_state(self, state: str = "load", timeout: Optional[int] = None) -> None:
        if self.site.idle_timeout:
            raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded.")

    async def wait_for_timeout(self, timeout: int) -> None:
        self.waits.append(timeout)

    def locator(self, query: str) -> FakeLocator:
        return FakeLocator(self, query)

    async def query_selector_all(self, selector: str) -> List[FakeElement]:
        if selector == self.site.logo_selector or selector in self.site.logo_selectors:
            return [FakeElement(self, selector)]
        return []

    async def screenshot(self, path: str, full_page: bool = False) -> None:
        if self.site.screenshot_error is not None:
            raise self.site.screenshot_error
        Path(path).write_bytes(b"page")
        self.screenshots.append(path)

    async def evaluate(self, script: str):
        return self.site.html

    async def close(self) -> None:
        self.closed = True
        self.browser.open_pages -= 1


class FakeBrowser:
    def __init__(self, sites: Optional[Dict[str, FakeSite]] = None, default_site: Optional[FakeSite] = None):
        self.sites = sites or {}
        self.default_site = default_site or FakeSite()
        self.visited: List[str] = []
        self.pages: List[FakePage] = []
        self.open_pages = 0
        self.peak_open_pages = 0
        self.launches = 0
        self.closes = 0

    async def new_page(self) -> FakePage:
        page = FakePage(self)
        self.pages.append(page)
        self.open_pages += 1
        self.peak_open_pages = max(self.peak_open_pages, self.open_pages)
        return page

    def factory(self, fail: bool = False):
        """Browser factory with the same shape as ``launch_browser``."""
        @asynccontextmanager
        async def session(headless: bool = True):
            if fail:
                raise BrowserLaunchError("Browser failed to launch: no chromium")
            self.launches += 1
            try:
                yield self
            finally:
                self.closes += 1
        return session


class RecordingLog:
    """WorkerLog stand-in that keeps (level, message) pairs."""

    def __init__(self):
        self.lines = []

    def info(self, message: str) -> None:
        self.lines.append((LogLevel.INFO, message))

    def warn(self, message: str) -> None:
        self.lines.append((LogLevel.WARN, message))

    def error(self, message: str) -> None:
        self.lines.append((LogLevel.ERROR, message))

    def messages(self, level: LogLevel) -> List[str]:
        return [message for lvl, message in self.lines if lvl == level]


@pytest.fixture
def fake_browser():
    return FakeBrowser()


@pytest.fixture
def recording_log():
    return RecordingLog()


@pytest.fixture
def make_config(tmp_path):
    """Build a HarvestConfig rooted in tmp_path (no API key unless given)."""
    def _make(**overrides) -> HarvestConfig:
        values = {
            "input_path": tmp_path / "sites.csv",
            "output_dir": tmp_path / "out",
        }
        values.update(overrides)
        return HarvestConfig(**values)
    return _make


@pytest.fixture
def write_csv(tmp_path):
    """Write CSV text to a file under tmp_path and return its path."""
    def _write(text: str, name: str = "sites.csv") -> Path:
        path = tmp_path / name
        path.write_text(text, encoding="utf-8")
        return path
    return _write
