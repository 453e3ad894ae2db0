"""
Harvest run orchestration.

HarvestEngine owns at most one active run session. A run reads the input
table, deduplicates it, launches one browser, fans the unique URLs out to the
scheduler, then remaps the results onto every input row and writes the output
table. ``stop`` only raises the cancellation flag; in-flight pages finish.

Usage:
    engine = HarvestEngine(on_progress=display)
    output_path = await engine.start(load_config(input_path=..., output_dir=...))
"""

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Optional

from .aggregator import build_output_table
from .ai_extractor import AIExtractor
from .browser import launch_browser
from .config import HarvestConfig
from .dedup import deduplicate_rows
from .errors import AlreadyRunningError, HarvestError, OutputDirectoryError
from .files import ensure_dir
from .pipeline import PagePipeline
from .progress import (
    STATUS_CANCELLED,
    STATUS_COMPLETED,
    STATUS_ERROR,
    STATUS_INITIALIZING,
    ProgressReporter,
    ProgressSink,
)
from .scheduler import CancellationToken, Scheduler
from .table_io import read_input_table, write_output_table

logger = logging.getLogger(__name__)


class StopOutcome(Enum):
    STOPPED = "stopped"
    NOT_RUNNING = "not_running"


@dataclass(frozen=True)
class RunSession:
    """Immutable per-run context: the validated config and its cancellation token."""
    config: HarvestConfig
    token: CancellationToken


class HarvestEngine:
    """Runs one harvest at a time and reports progress to an observer."""

    def __init__(
        self,
        on_progress: Optional[ProgressSink] = None,
        state_file: Optional[Path] = None,
        browser_factory: Callable = launch_browser
    ):
        """
        Initialize the engine.

        Args:
            on_progress: ProgressCallback or callable receiving ProgressState snapshots
            state_file: Optional JSON file mirroring every snapshot
            browser_factory: ``factory(headless) -> async context manager`` yielding a Browser
        """
        self.reporter = ProgressReporter(callback=on_progress, state_file=state_file)
        self.browser_factory = browser_factory
        self.session: Optional[RunSession] = None

    @property
    def is_running(self) -> bool:
        return self.session is not None

    async def start(self, config: HarvestConfig) -> Path:
        """
        Run a full harvest.

        Args:
            config: Validated run configuration

        Returns:
            Path of the written output CSV

        Raises:
            AlreadyRunningError: Another run is active
            HarvestError: The run failed fatally. Unexpected exceptions are
                wrapped so callers only handle one error type.
        """
        if self.session is not None:
            raise AlreadyRunningError("A scraping job is already running.")

        session = RunSession(config=config, token=CancellationToken())
        self.session = session
        reporter = self.reporter
        reporter.start_run()
        reporter.emit(STATUS_INITIALIZING)

        try:
            return await self._run(session)

        except HarvestError as e:
            reporter.error("Fatal scraping error", str(e))
            reporter.emit(STATUS_ERROR)
            raise

        except Exception as e:
            logger.exception("Unexpected error during harvest")
            reporter.error("Fatal scraping error", f"{type(e).__name__}: {e}")
            reporter.emit(STATUS_ERROR)
            raise HarvestError(f"Unexpected error: {e}") from e

        finally:
            self.session = None
            reporter.finish_run()

    async def _run(self, session: RunSession) -> Path:
        config = session.config
        reporter = self.reporter

        rows = read_input_table(config.input_path)
        work = deduplicate_rows(rows)
        reporter.set_total(len(work))
        reporter.info(
            f"Found {len(work.rows)} total rows and {len(work)} unique URLs to scrape."
        )

        try:
            ensure_dir(config.image_dir)
        except OSError as e:
            raise OutputDirectoryError(f"Could not create image folder {config.image_dir}: {e}") from e

        async with self.browser_factory(config.headless) as browser:
            reporter.info("Browser launched.")
            pipeline = PagePipeline(
                browser,
                config,
                AIExtractor(api_key=config.ai_api_key, model=config.ai_model)
            )
            scheduler = Scheduler(pipeline, reporter, config.concurrency, session.token)
            results = await scheduler.run(work.unique_urls)

        columns, output_rows = build_output_table(work, results)
        output_path = write_output_table(output_rows, columns, config.output_table_path)

        if session.token.cancelled:
            reporter.warn(f"Scraping cancelled. Partial results saved to {output_path}")
            reporter.emit(STATUS_CANCELLED)
        else:
            reporter.info(f"Scraping completed. Results saved to {output_path}")
            reporter.emit(STATUS_COMPLETED)
        return output_path

    def stop(self) -> StopOutcome:
        """Request cancellation; workers stop before pulling their next URL."""
        session = self.session
        if session is None:
            return StopOutcome.NOT_RUNNING

        if not session.token.cancelled:
            session.token.cancel()
            self.reporter.warn("Stop requested. Waiting for in-flight pages to finish.")
        return StopOutcome.STOPPED
