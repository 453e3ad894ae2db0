"""
Progress and log reporting for harvest runs.

Provides:
- A bounded run log (hard cap 500 entries, oldest 100 dropped on overflow)
- Progress snapshots (processed/total/status + last 50 log lines) pushed to a
  callback after every log line and every completed URL
- Optional JSON state file for external monitoring

Usage:
    reporter = ProgressReporter(callback=print_snapshot)
    reporter.start_run()
    reporter.set_total(12)
    reporter.info("Browser launched")
    reporter.mark_processed()
    reporter.emit("Completed")
"""

import json
import logging
import threading
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional, Union

from .models import LogEntry, LogLevel, ProgressState

logger = logging.getLogger("harvester")

MAX_LOG_ENTRIES = 500
LOG_TRIM_COUNT = 100
RECENT_LOG_COUNT = 50

STATUS_IDLE = "Idle"
STATUS_RUNNING = "Running..."
STATUS_INITIALIZING = "Initializing..."
STATUS_COMPLETED = "Completed"
STATUS_CANCELLED = "Cancelled"
STATUS_ERROR = "Error"

_PYTHON_LEVELS = {
    LogLevel.INFO: logging.INFO,
    LogLevel.WARN: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
}


class ProgressCallback(ABC):
    """Abstract base class for progress observers."""

    @abstractmethod
    def on_progress(self, state: ProgressState) -> None:
        """Called with a fresh snapshot after every state change."""
        pass


ProgressSink = Union[ProgressCallback, Callable[[ProgressState], None]]


class ProgressReporter:
    """
    Owns the run's ProgressState and log buffer.

    All mutation goes through this class; pipeline code only ever calls the
    logging helpers (usually via a WorkerLog) and the scheduler calls
    ``mark_processed``.
    """

    def __init__(
        self,
        callback: Optional[ProgressSink] = None,
        state_file: Optional[Path] = None
    ):
        """
        Initialize the reporter.

        Args:
            callback: ProgressCallback or plain callable receiving snapshots
            state_file: Optional JSON file rewritten on every emission
        """
        self.callback = callback
        self.state_file = Path(state_file) if state_file else None

        self.running = False
        self.processed = 0
        self.total = 0
        self._logs: List[LogEntry] = []
        self._lock = threading.RLock()

    # =========================================================================
    # Run lifecycle
    # =========================================================================

    def start_run(self) -> None:
        """Clear counters and the log buffer for a new run."""
        with self._lock:
            self.running = True
            self.processed = 0
            self.total = 0
            self._logs = []

    def finish_run(self) -> None:
        with self._lock:
            self.running = False

    def set_total(self, total: int) -> None:
        with self._lock:
            self.total = total

    def mark_processed(self) -> int:
        """Record one more completed URL. Returns the new processed count."""
        with self._lock:
            self.processed += 1
            return self.processed

    # =========================================================================
    # Logging
    # =========================================================================

    @property
    def logs(self) -> List[LogEntry]:
        """Copy of the full (trimmed) log buffer."""
        with self._lock:
            return list(self._logs)

    def log(self, level: LogLevel, message: str, detail: Optional[str] = None) -> LogEntry:
        """
        Append a log line, mirror it to Python logging and emit progress.

        Args:
            level: INFO, WARN or ERROR
            message: Log message
            detail: Optional detail appended in parentheses

        Returns:
            The stored LogEntry
        """
        full_message = f"{message} ({detail})" if detail else message
        entry = LogEntry(level=level, message=full_message)

        with self._lock:
            self._logs.append(entry)
            if len(self._logs) > MAX_LOG_ENTRIES:
                del self._logs[:LOG_TRIM_COUNT]

        logger.log(_PYTHON_LEVELS[level], full_message)
        self.emit()
        return entry

    def info(self, message: str, detail: Optional[str] = None) -> LogEntry:
        return self.log(LogLevel.INFO, message, detail)

    def warn(self, message: str, detail: Optional[str] = None) -> LogEntry:
        return self.log(LogLevel.WARN, message, detail)

    def error(self, message: str, detail: Optional[str] = None) -> LogEntry:
        return self.log(LogLevel.ERROR, message, detail)

    # =========================================================================
    # Snapshots
    # =========================================================================

    def snapshot(self, status: Optional[str] = None) -> ProgressState:
        """Build a ProgressState carrying the last 50 log lines."""
        with self._lock:
            label = status or (STATUS_RUNNING if self.running else STATUS_IDLE)
            return ProgressState(
                processed=self.processed,
                total=self.total,
                status=label,
                logs=self._logs[-RECENT_LOG_COUNT:],
                updated_at=datetime.now().isoformat(),
            )

    def emit(self, status: Optional[str] = None) -> ProgressState:
        """
        Push a snapshot to the callback and state file.

        Observer failures are logged and never propagate into the run.
        """
        state = self.snapshot(status)

        if self.callback is not None:
            try:
                if isinstance(self.callback, ProgressCallback):
                    self.callback.on_progress(state)
                else:
                    self.callback(state)
            except Exception as e:
                logger.warning(f"Progress callback failed: {e}")

        if self.state_file is not None:
            self._save_state(state)

        return state

    def _save_state(self, state: ProgressState) -> None:
        """Save the snapshot to the JSON state file."""
        try:
            with open(self.state_file, "w", encoding="utf-8") as f:
                json.dump(state.to_dict(), f, indent=2)
        except OSError as e:
            logger.warning(f"Could not save progress file: {e}")


class WorkerLog:
    """Log helper bound to one worker and the row it is processing."""

    def __init__(self, reporter: ProgressReporter, worker_id: int, base_name: str):
        self.reporter = reporter
        self.prefix = f"[Worker {worker_id} - {base_name}]"

    def info(self, message: str) -> None:
        self.reporter.info(f"{self.prefix} {message}")

    def warn(self, message: str) -> None:
        self.reporter.warn(f"{self.prefix} {message}")

    def error(self, message: str) -> None:
        self.reporter.error(f"{self.prefix} {message}")


def load_progress(state_file: Path) -> Optional[dict]:
    """
    Load a progress snapshot written by a ProgressReporter.

    Args:
        state_file: Path to the JSON state file

    Returns:
        Progress data dict or None if missing/unreadable
    """
    state_file = Path(state_file)
    if not state_file.exists():
        return None
    try:
        with open(state_file, encoding="utf-8") as f:
            return json.load(f)
    except (OSError, json.JSONDecodeError):
        return None
