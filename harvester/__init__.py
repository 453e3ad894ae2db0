"""
Batch web-page harvester.

Components:
- HarvestEngine: Run orchestration (start/stop) over a CSV of URLs
- PagePipeline: Per-URL navigate, bypass, screenshot, logo and data extraction
- Scheduler: Bounded worker pool with cooperative cancellation
- ProgressReporter: Bounded run log and progress snapshots
"""

from .config import HarvestConfig, SelectorConfig, load_config
from .engine import HarvestEngine, RunSession, StopOutcome
from .errors import (
    AlreadyRunningError,
    BrowserLaunchError,
    HarvestError,
    InputTableError,
    OutputDirectoryError,
)
from .models import LogEntry, LogLevel, ProgressState, ScrapeResult, ScrapeStatus
from .pipeline import PagePipeline, PageStage
from .progress import ProgressCallback, ProgressReporter, WorkerLog, load_progress
from .scheduler import CancellationToken, Scheduler, WorkQueue

__all__ = [
    # Orchestration
    'HarvestEngine',
    'RunSession',
    'StopOutcome',
    # Configuration
    'HarvestConfig',
    'SelectorConfig',
    'load_config',
    # Pipeline & Scheduling
    'PagePipeline',
    'PageStage',
    'Scheduler',
    'WorkQueue',
    'CancellationToken',
    # Progress
    'ProgressReporter',
    'ProgressCallback',
    'WorkerLog',
    'ProgressState',
    'LogEntry',
    'LogLevel',
    'load_progress',
    # Results
    'ScrapeResult',
    'ScrapeStatus',
    # Errors
    'HarvestError',
    'InputTableError',
    'BrowserLaunchError',
    'OutputDirectoryError',
    'AlreadyRunningError',
]
