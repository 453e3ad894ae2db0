#!/usr/bin/env python3
"""
CLI runner for the batch web-page harvester.

Reads a CSV of BaseName/URL rows, visits every unique URL with a pool of
headless browser pages and writes `{input}_output.csv` next to an images
folder holding full-page screenshots and logo crops.

Pipeline Stages:
1. Initialize - Load configuration, read and deduplicate the input table
2. Scrape - Fan unique URLs out to concurrent page workers
3. Aggregate - Remap results onto every input row (duplicates included)
4. Save - Write the output CSV and print a summary

Ctrl+C stops gracefully: pages already open finish, nothing new starts, and
the partial output table is still written.

Usage:
    # Basic run
    python run_harvest.py sites.csv --output-dir output

    # Global selectors, 5 workers
    python run_harvest.py sites.csv -o output --css "title=h1, price=.price" --concurrency 5

    # AI fallback for rows without selectors (key from AI_API_KEY in env/.env)
    python run_harvest.py sites.csv -o output --ai-fallback

    # Settings from a JSON file (camelCase keys), CLI flags win
    python run_harvest.py --config job.json
"""

import argparse
import asyncio
import logging
import signal
import sys
from collections import deque
from pathlib import Path
from typing import Dict, Optional

import pandas as pd
from pydantic import ValidationError
from rich.console import Console, Group
from rich.live import Live
from rich.panel import Panel
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.table import Table
from rich.text import Text

from harvester import HarvestConfig, HarvestEngine, HarvestError, ProgressCallback, StopOutcome, load_config
from harvester.models import LogLevel, ProgressState
from harvester.progress import STATUS_CANCELLED, STATUS_COMPLETED

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CANCELLED = 130

RECENT_LINES = 8

_LEVEL_STYLES = {
    LogLevel.INFO: "dim",
    LogLevel.WARN: "yellow",
    LogLevel.ERROR: "red",
}


# ============================================================================
# Terminal Display
# ============================================================================

class HarvestDisplay(ProgressCallback):
    """
    Rich terminal display for a harvest run.

    Shows:
    - Progress bar over unique URLs
    - Current status label
    - The most recent log lines
    """

    def __init__(self, console: Console, interactive: bool = True):
        self.console = console
        self.interactive = interactive
        self.final_state: Optional[ProgressState] = None
        self.recent = deque(maxlen=RECENT_LINES)

        self._live: Optional[Live] = None
        self._progress = Progress(
            SpinnerColumn(),
            TextColumn("[bold blue]{task.description}"),
            BarColumn(),
            TextColumn("{task.completed}/{task.total}"),
            TimeElapsedColumn(),
            console=console,
        )
        self._task_id = self._progress.add_task("Initializing...", total=None)

    def start(self) -> None:
        """Start the live display."""
        if not self.interactive:
            return
        self._live = Live(self._render(), refresh_per_second=4, console=self.console)
        self._live.start()

    def stop(self) -> None:
        """Stop the live display."""
        if self._live:
            self._live.stop()
            self._live = None

    def on_progress(self, state: ProgressState) -> None:
        self.final_state = state
        self.recent.clear()
        self.recent.extend(state.logs[-RECENT_LINES:])
        self._progress.update(
            self._task_id,
            description=state.status,
            completed=state.processed,
            total=state.total or None,
        )
        if self._live:
            self._live.update(self._render())

    def _render(self) -> Group:
        text = Text()
        for entry in self.recent:
            text.append(f"{entry.message[:160]}\n", style=_LEVEL_STYLES.get(entry.level, "white"))
        return Group(self._progress, Panel(text, title="Activity"))


# ============================================================================
# Logging
# ============================================================================

def setup_logging(output_dir: Path, verbose: bool = False, console_output: bool = True) -> logging.Logger:
    """Configure logging for the harvester package."""
    output_dir.mkdir(parents=True, exist_ok=True)
    log_file = output_dir / "harvest.log"

    logger = logging.getLogger("harvester")
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)

    # Replace handlers from an earlier run in the same process
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    # Console handler (off while the live display owns the terminal)
    if console_output:
        console = logging.StreamHandler(sys.stdout)
        console.setLevel(logging.INFO)
        console.setFormatter(logging.Formatter(
            '%(asctime)s | %(levelname)s | %(message)s',
            datefmt='%H:%M:%S'
        ))
        logger.addHandler(console)

    # File handler
    file_handler = logging.FileHandler(log_file, mode='a', encoding='utf-8')
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(
        '%(asctime)s | %(levelname)s | %(funcName)s:%(lineno)d | %(message)s'
    ))
    logger.addHandler(file_handler)

    return logger


# ============================================================================
# Summary
# ============================================================================

def status_counts(output_path: Path) -> Dict[str, int]:
    """Count output rows per Status value."""
    frame = pd.read_csv(output_path, dtype=str, keep_default_na=False)
    return {str(status): int(count) for status, count in frame["Status"].value_counts().items()}


def print_summary(console: Console, config: HarvestConfig, output_path: Path, state: Optional[ProgressState]) -> None:
    """Print the final run summary table."""
    table = Table(title="Harvest Summary")
    table.add_column("Metric", style="cyan", no_wrap=True)
    table.add_column("Value", style="green")

    table.add_row("Status", state.status if state else "unknown")
    if state:
        table.add_row("Unique URLs processed", f"{state.processed}/{state.total}")
    for status, count in sorted(status_counts(output_path).items()):
        table.add_row(f"Rows {status}", str(count))
    table.add_row("Output table", str(output_path))
    table.add_row("Images", str(config.image_dir))

    console.print(table)


# ============================================================================
# Interrupt Handling
# ============================================================================

class InterruptHandler:
    """
    SIGINT handler that asks the engine to stop.

    The stop request is scheduled on the event loop instead of running inside
    the interrupted frame, which may hold the progress reporter's lock. A
    second Ctrl+C aborts immediately.
    """

    def __init__(self, engine: HarvestEngine, loop: asyncio.AbstractEventLoop, logger: logging.Logger):
        self.engine = engine
        self.loop = loop
        self.logger = logger
        self.requested = False

    def __call__(self, signum, frame) -> None:
        if self.requested:
            raise KeyboardInterrupt
        self.requested = True
        self.loop.call_soon_threadsafe(self._stop)

    def _stop(self) -> None:
        if self.engine.stop() is StopOutcome.STOPPED:
            self.logger.warning("Interrupt received, finishing in-flight pages...")


async def run_engine(engine: HarvestEngine, config: HarvestConfig, logger: logging.Logger) -> Path:
    """Run the engine with Ctrl+C mapped to a graceful stop."""
    handler = InterruptHandler(engine, asyncio.get_running_loop(), logger)
    previous_handler = signal.signal(signal.SIGINT, handler)
    try:
        return await engine.start(config)
    finally:
        signal.signal(signal.SIGINT, previous_handler)


# ============================================================================
# CLI
# ============================================================================

def create_parser() -> argparse.ArgumentParser:
    """Create argument parser for CLI."""
    parser = argparse.ArgumentParser(
        description="Batch web-page harvester: screenshots, logos and structured data from a CSV of URLs",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Basic run
  python run_harvest.py sites.csv --output-dir output

  # Selectors applied to rows without their own CSSSelector/XPathSelector
  python run_harvest.py sites.csv -o output --css "title=h1" --xpath "phone=//a[starts-with(@href,'tel:')]"

  # AI fallback (needs AI_API_KEY in the environment or .env)
  python run_harvest.py sites.csv -o output --ai-fallback --ai-model claude-3-haiku-20240307
        """
    )

    # Input & output
    io_group = parser.add_argument_group("Input & Output")
    io_group.add_argument(
        "input_path",
        nargs="?",
        type=Path,
        help="Input CSV with BaseName and URL columns"
    )
    io_group.add_argument(
        "--output-dir", "-o",
        type=Path,
        help="Output directory (default: directory of the input CSV)"
    )
    io_group.add_argument(
        "--image-sub-folder",
        help="Image folder name inside the output directory (default: images)"
    )
    io_group.add_argument(
        "--config",
        type=Path,
        help="JSON config file (camelCase or snake_case keys)"
    )

    # Extraction
    extract_group = parser.add_argument_group("Extraction")
    extract_group.add_argument(
        "--css",
        dest="css_selectors",
        help='Global CSS selectors, e.g. "price=.price, .title"'
    )
    extract_group.add_argument(
        "--xpath",
        dest="xpath_selectors",
        help="Global XPath selectors, e.g. \"heading=//h1\""
    )
    extract_group.add_argument(
        "--ai-fallback",
        dest="use_ai_fallback",
        action="store_true",
        default=None,
        help="Use AI extraction for rows without any selector"
    )
    extract_group.add_argument(
        "--ai-model",
        help="AI model name (Claude models use Anthropic, others OpenAI)"
    )

    # Performance
    perf_group = parser.add_argument_group("Performance")
    perf_group.add_argument(
        "--concurrency", "-c",
        type=int,
        help="Number of concurrent browser pages (default: 3)"
    )
    perf_group.add_argument(
        "--headed",
        dest="headless",
        action="store_false",
        default=None,
        help="Show the browser window"
    )

    # Progress & UI
    ui_group = parser.add_argument_group("Progress & UI")
    ui_group.add_argument(
        "--no-interactive",
        action="store_true",
        help="Disable the live terminal display"
    )
    ui_group.add_argument(
        "--state-file",
        type=Path,
        help="Write every progress snapshot to this JSON file"
    )

    # Misc
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose logging"
    )

    return parser


def build_config(args: argparse.Namespace) -> HarvestConfig:
    """Merge the optional JSON config file with CLI flags."""
    output_dir = args.output_dir
    if output_dir is None and args.input_path is not None:
        output_dir = args.input_path.parent

    return load_config(
        args.config,
        input_path=args.input_path,
        output_dir=output_dir,
        image_sub_folder=args.image_sub_folder,
        css_selectors=args.css_selectors,
        xpath_selectors=args.xpath_selectors,
        use_ai_fallback=args.use_ai_fallback,
        ai_model=args.ai_model,
        concurrency=args.concurrency,
        headless=args.headless,
    )


def main(argv=None) -> int:
    """Main entry point. Returns the process exit code."""
    parser = create_parser()
    args = parser.parse_args(argv)
    console = Console()

    if args.input_path is None and args.config is None:
        parser.error("an input CSV or --config file is required")

    try:
        config = build_config(args)
    except (ValidationError, OSError, ValueError) as e:
        console.print(f"[red]Invalid configuration:[/] {e}")
        return EXIT_FAILED

    interactive = not args.no_interactive
    logger = setup_logging(config.output_dir, args.verbose, console_output=not interactive)

    display = HarvestDisplay(console, interactive=interactive)
    engine = HarvestEngine(on_progress=display, state_file=args.state_file)

    display.start()
    try:
        output_path = asyncio.run(run_engine(engine, config, logger))
    except HarvestError as e:
        display.stop()
        console.print(f"[red]Harvest failed:[/] {e}")
        return EXIT_FAILED
    except KeyboardInterrupt:
        display.stop()
        console.print("\n\nHarvest interrupted by user")
        return EXIT_CANCELLED
    finally:
        display.stop()

    state = display.final_state
    print_summary(console, config, output_path, state)

    if state and state.status == STATUS_CANCELLED:
        return EXIT_CANCELLED
    return EXIT_OK if state is None or state.status == STATUS_COMPLETED else EXIT_FAILED


if __name__ == "__main__":
    sys.exit(main())
