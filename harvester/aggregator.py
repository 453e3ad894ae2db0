"""
Result aggregation.

Maps the per-URL result table back onto every input row, in input order, and
builds the output table's column list.
"""

from typing import Dict, List, Mapping, Tuple

from .dedup import WorkList, row_url
from .models import RESULT_COLUMNS, ScrapeResult, ScrapeStatus

DUPLICATE_NOTE = "Result shared from first instance of this URL."
MISSING_RESULT_MESSAGE = "Internal error: URL not found in results map."


def remap_results(work: WorkList, results: Mapping[str, ScrapeResult]) -> List[ScrapeResult]:
    """
    Pick the result for every input row.

    Returns:
        One ScrapeResult per row of ``work.rows``, same order
    """
    mapped: List[ScrapeResult] = []
    for index, row in enumerate(work.rows):
        # Blank URLs are never queued, so they take the missing-result path
        result = results.get(row_url(row))
        if result is None:
            mapped.append(ScrapeResult.failed(MISSING_RESULT_MESSAGE))
        elif work.is_first_row(index):
            mapped.append(result)
        else:
            mapped.append(result.relabel(ScrapeStatus.DUPLICATE, DUPLICATE_NOTE))
    return mapped


def output_columns(work: WorkList) -> List[str]:
    """Union of input columns in first-seen order, then the result columns."""
    columns: List[str] = []
    for row in work.rows:
        for column in row:
            if column not in columns and column not in RESULT_COLUMNS:
                columns.append(column)
    return columns + RESULT_COLUMNS


def build_output_table(
    work: WorkList,
    results: Mapping[str, ScrapeResult]
) -> Tuple[List[str], List[Dict[str, str]]]:
    """
    Build the output rows.

    Input columns are passed through verbatim; result columns are appended.
    Every cell is a string.

    Returns:
        (columns, rows)
    """
    columns = output_columns(work)
    rows: List[Dict[str, str]] = []

    for row, result in zip(work.rows, remap_results(work, results)):
        output = {column: "" for column in columns}
        output.update({key: "" if value is None else str(value) for key, value in row.items()})
        output.update(result.to_columns())
        rows.append(output)

    return columns, rows
