"""
Run-level error types.

Only failures that abort a whole harvest run are modelled as exceptions here.
Per-URL failures are recorded as ERROR results instead of being raised.
"""


class HarvestError(Exception):
    """Base class for errors that abort an entire harvest run."""


class InputTableError(HarvestError):
    """The input table could not be read or is missing required columns."""


class BrowserLaunchError(HarvestError):
    """The browser capability failed to start."""


class OutputDirectoryError(HarvestError):
    """The output directory (or image folder) could not be created or written."""


class AlreadyRunningError(HarvestError):
    """A start was requested while another run is still active."""
