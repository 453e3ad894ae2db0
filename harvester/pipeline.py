"""
Per-URL page pipeline.

Stages run in a fixed order:

    Navigate -> BypassObstructions -> CaptureScreenshot -> CaptureLogo
             -> ExtractData -> Finalize

Only Navigate and CaptureScreenshot can fail a URL. Every other stage is
best-effort: its failures are logged and the page still ends up SUCCESS. A
failure never escapes ``run``; it becomes an ERROR ScrapeResult. The page is
closed on every exit path.
"""

import json
import logging
from enum import Enum
from typing import Optional

from playwright.async_api import Browser, Page, TimeoutError as PlaywrightTimeoutError

from .ai_extractor import AIExtractor
from .bypass import dismiss_obstructions
from .config import HarvestConfig
from .extraction import extract_with_selectors, resolve_selector_specs, selectors_provided
from .files import SCREENSHOT, ensure_dir, image_path
from .logo import capture_logo
from .models import BASE_NAME_COLUMN, EMPTY_DATA, InputRow, ScrapeResult, ScrapeStatus

logger = logging.getLogger(__name__)


class PageStage(str, Enum):
    NAVIGATE = "navigate"
    BYPASS_OBSTRUCTIONS = "bypass_obstructions"
    CAPTURE_SCREENSHOT = "capture_screenshot"
    CAPTURE_LOGO = "capture_logo"
    EXTRACT_DATA = "extract_data"
    FINALIZE = "finalize"


class PagePipeline:
    """
    Runs the full capture/extraction procedure for one URL at a time.

    A single instance is shared by all workers of a run; it holds no per-URL
    state, so concurrent ``run`` calls are independent.
    """

    def __init__(
        self,
        browser: Browser,
        config: HarvestConfig,
        ai_extractor: Optional[AIExtractor] = None
    ):
        """
        Initialize the pipeline.

        Args:
            browser: Shared browser handle (one page per URL is opened on it)
            config: Run configuration
            ai_extractor: AI fallback; built from the config when omitted
        """
        self.browser = browser
        self.config = config
        self.ai_extractor = ai_extractor or AIExtractor(api_key=config.ai_api_key, model=config.ai_model)

    async def run(self, url: str, row: InputRow, log) -> ScrapeResult:
        """
        Scrape one URL.

        Args:
            url: Unique URL to visit
            row: First-seen input row for this URL
            log: WorkerLog for this worker/row

        Returns:
            Immutable ScrapeResult (SUCCESS or ERROR)
        """
        base_name = row.get(BASE_NAME_COLUMN) or "untitled"
        screenshot_file = ""
        logo_file = ""
        scraped_data = EMPTY_DATA
        stage = PageStage.NAVIGATE
        page: Optional[Page] = None

        try:
            log.info(f"Starting URL: {url}")
            page = await self.browser.new_page()

            await self._navigate(page, url, log)

            stage = PageStage.BYPASS_OBSTRUCTIONS
            try:
                await dismiss_obstructions(page, log.info, warn=log.warn)
            except Exception as e:
                log.warn(f"Popup bypass failed, continuing. {e}")

            stage = PageStage.CAPTURE_SCREENSHOT
            target = image_path(self.config.output_dir, self.config.image_sub_folder, base_name, kind=SCREENSHOT)
            ensure_dir(target.full_path.parent)
            await page.screenshot(path=str(target.full_path), full_page=True)
            screenshot_file = target.relative_path
            log.info(f"Screenshot captured: {screenshot_file}")

            stage = PageStage.CAPTURE_LOGO
            try:
                logo_file = await capture_logo(
                    page, base_name, self.config.output_dir, self.config.image_sub_folder,
                    log.info, log.warn
                ) or ""
            except Exception as e:
                log.warn(f"Logo capture failed, continuing. {e}")

            stage = PageStage.EXTRACT_DATA
            scraped_data = await self._extract_data(page, row, log)

            stage = PageStage.FINALIZE
            return ScrapeResult(
                screenshot_file=screenshot_file,
                logo_file=logo_file,
                scraped_data=scraped_data,
                status=ScrapeStatus.SUCCESS,
                error_message="",
            )

        except Exception as e:
            message = str(e) or type(e).__name__
            log.error(f"Scrape Failed for {url} at {stage.value}: {message}")
            return ScrapeResult.failed(
                message,
                screenshot_file=screenshot_file,
                logo_file=logo_file,
                scraped_data=scraped_data,
            )

        finally:
            if page is not None:
                try:
                    await page.close()
                except Exception as e:
                    logger.warning(f"Could not close page for {url}: {e}")

    async def _navigate(self, page: Page, url: str, log) -> None:
        """Load the URL (fatal on failure), then wait for a quieter network (non-fatal)."""
        await page.goto(url, wait_until="load", timeout=self.config.navigation_timeout_ms)
        try:
            await page.wait_for_load_state("networkidle", timeout=self.config.network_idle_timeout_ms)
        except PlaywrightTimeoutError:
            log.warn("Page network idle timeout reached. Proceeding.")

    async def _extract_data(self, page: Page, row: InputRow, log) -> str:
        """
        Pick and run the extraction strategy.

        Selector specs (row-level or global) always win; AI fallback only runs
        when no selector spec is supplied at all.

        Returns:
            JSON text for the ScrapedData column
        """
        scraped_data = EMPTY_DATA
        selector_data = {}

        if selectors_provided(row, self.config.selectors):
            specs = resolve_selector_specs(row, self.config.selectors)
            selector_data = await extract_with_selectors(page, specs, log.warn)
            log.info("Data scraped using custom selectors.")
        elif self.config.use_ai_fallback:
            try:
                ai_json = await self.ai_extractor.extract_from_page(page, log)
            except Exception as e:
                log.error(f"AI Smart Scrape failed. {e}")
                ai_json = None
            if ai_json:
                scraped_data = ai_json
                log.info("Data scraped using AI Smart Scrape.")

        if selector_data:
            scraped_data = json.dumps(selector_data, ensure_ascii=False)
        return scraped_data
