"""
Data models shared by the harvesting pipeline.

Covers:
- Input rows (plain ordered dicts of column -> string value)
- Per-URL scrape results and their output-table columns
- Log entries and progress snapshots sent to observers
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

# An input row maps column name -> string value, in file column order.
InputRow = Dict[str, str]

BASE_NAME_COLUMN = "BaseName"
URL_COLUMN = "URL"
CSS_SELECTOR_COLUMN = "CSSSelector"
XPATH_SELECTOR_COLUMN = "XPathSelector"

RESULT_COLUMNS = ["ScreenshotFile", "LogoFile", "ScrapedData", "Status", "ErrorMessage"]

EMPTY_DATA = "{}"


# =============================================================================
# Enums
# =============================================================================

class ScrapeStatus(str, Enum):
    SUCCESS = "SUCCESS"
    ERROR = "ERROR"
    SKIPPED = "SKIPPED"
    DUPLICATE = "DUPLICATE"


class LogLevel(str, Enum):
    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"


# =============================================================================
# Scrape Results
# =============================================================================

@dataclass(frozen=True)
class ScrapeResult:
    """Outcome of running the page pipeline against one unique URL."""
    screenshot_file: str = ""
    logo_file: str = ""
    scraped_data: str = EMPTY_DATA
    status: ScrapeStatus = ScrapeStatus.ERROR
    error_message: str = ""

    @classmethod
    def failed(cls, message: str, **fields) -> "ScrapeResult":
        """Build an ERROR result carrying the given message."""
        return cls(status=ScrapeStatus.ERROR, error_message=message, **fields)

    def relabel(self, status: ScrapeStatus, message: str) -> "ScrapeResult":
        """Clone this result with a different status and error message."""
        return replace(self, status=status, error_message=message)

    def to_columns(self) -> Dict[str, str]:
        """Convert to the five output-table result columns."""
        return {
            "ScreenshotFile": self.screenshot_file,
            "LogoFile": self.logo_file,
            "ScrapedData": self.scraped_data,
            "Status": self.status.value,
            "ErrorMessage": self.error_message,
        }


# =============================================================================
# Logging & Progress
# =============================================================================

@dataclass(frozen=True)
class LogEntry:
    """A single line in the run log."""
    level: LogLevel
    message: str
    timestamp: str = field(default_factory=lambda: datetime.now().isoformat())

    def to_dict(self) -> Dict[str, str]:
        return {"level": self.level.value, "message": self.message, "timestamp": self.timestamp}


@dataclass
class ProgressState:
    """Progress snapshot emitted to observers after every state change."""
    processed: int = 0
    total: int = 0
    status: str = "Idle"
    logs: List[LogEntry] = field(default_factory=list)
    updated_at: Optional[str] = None

    @property
    def percentage(self) -> float:
        """Calculate completion percentage."""
        if self.total == 0:
            return 0.0
        return round((self.processed / self.total) * 100, 1)

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "processed": self.processed,
            "total": self.total,
            "status": self.status,
            "logs": [entry.to_dict() for entry in self.logs],
            "updated_at": self.updated_at,
        }
