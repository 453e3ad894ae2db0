"""
CSV input/output for harvest runs.

Input tables are read as all-string frames so that values like ``00123`` or
``NA`` are preserved verbatim in the output.
"""

import csv
import logging
from pathlib import Path
from typing import Dict, List, Sequence

import pandas as pd

from .errors import InputTableError, OutputDirectoryError
from .models import BASE_NAME_COLUMN, URL_COLUMN, InputRow

logger = logging.getLogger(__name__)

DEFAULT_BASE_NAME = "untitled"
REQUIRED_COLUMNS = (BASE_NAME_COLUMN, URL_COLUMN)


def read_input_table(path: Path) -> List[InputRow]:
    """
    Load the input CSV into a list of rows.

    Header names and cell values are trimmed; blank BaseName cells default to
    ``untitled``.

    Args:
        path: Input CSV file

    Returns:
        Rows in file order

    Raises:
        InputTableError: File missing, unparseable or lacking BaseName/URL
    """
    try:
        frame = pd.read_csv(
            path,
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
            encoding="utf-8",
        )
    except (OSError, UnicodeDecodeError, pd.errors.ParserError, pd.errors.EmptyDataError) as e:
        raise InputTableError(f"Could not process CSV file {path}: {e}") from e

    frame.columns = [str(column).strip() for column in frame.columns]
    missing = [column for column in REQUIRED_COLUMNS if column not in frame.columns]
    if missing:
        raise InputTableError(f"Input CSV is missing required column(s): {', '.join(missing)}")

    rows: List[InputRow] = []
    for record in frame.to_dict(orient="records"):
        row = {column: str(value).strip() for column, value in record.items()}
        if not row[BASE_NAME_COLUMN]:
            row[BASE_NAME_COLUMN] = DEFAULT_BASE_NAME
        rows.append(row)

    logger.debug(f"Loaded {len(rows)} rows from {path}")
    return rows


def write_output_table(rows: Sequence[Dict[str, str]], columns: Sequence[str], path: Path) -> Path:
    """
    Write the output table with every cell quoted.

    Args:
        rows: Output rows, each holding a value for every column
        columns: Column order
        path: Destination CSV file

    Returns:
        The path written

    Raises:
        OutputDirectoryError: The file could not be written
    """
    frame = pd.DataFrame(list(rows), columns=list(columns)).fillna("")
    try:
        frame.to_csv(path, index=False, quoting=csv.QUOTE_ALL, encoding="utf-8")
    except OSError as e:
        raise OutputDirectoryError(f"Could not write output CSV {path}: {e}") from e

    logger.debug(f"Saved {len(frame)} rows to {path}")
    return path
