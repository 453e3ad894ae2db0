"""
Row deduplication.

Collapses input rows into a unique-URL work list while keeping the full row
sequence so results can be remapped onto every original row afterwards.
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Mapping, Sequence, Tuple

from .models import URL_COLUMN, InputRow


def row_url(row: InputRow) -> str:
    return (row.get(URL_COLUMN) or "").strip()


@dataclass(frozen=True)
class WorkList:
    """
    Deduplicated view of an input table.

    Attributes:
        rows: Every input row, in original order
        unique_urls: URL -> first row that introduced it, in first-seen order
        first_index: URL -> index of that first row within ``rows``
    """
    rows: Tuple[InputRow, ...]
    unique_urls: Mapping[str, InputRow]
    first_index: Mapping[str, int]

    def __len__(self) -> int:
        return len(self.unique_urls)

    def is_first_row(self, index: int) -> bool:
        """True if the row at ``index`` is the first-seen row for its URL."""
        url = row_url(self.rows[index])
        return bool(url) and self.first_index.get(url) == index


def deduplicate_rows(rows: Sequence[InputRow]) -> WorkList:
    """
    Build the unique-URL work list from input rows.

    Rows with a blank URL never enter the work list but stay in ``rows``.

    Args:
        rows: Input rows in file order

    Returns:
        WorkList holding the unique URLs and the untouched row sequence
    """
    unique: Dict[str, InputRow] = {}
    first_index: Dict[str, int] = {}

    for index, row in enumerate(rows):
        url = row_url(row)
        if url and url not in unique:
            unique[url] = row
            first_index[url] = index

    return WorkList(
        rows=tuple(rows),
        unique_urls=MappingProxyType(unique),
        first_index=MappingProxyType(first_index),
    )
