"""
Tests for remapping unique-URL results onto input rows.
"""

from harvester.aggregator import (
    DUPLICATE_NOTE,
    MISSING_RESULT_MESSAGE,
    build_output_table,
    remap_results,
)
from harvester.dedup import deduplicate_rows
from harvester.models import RESULT_COLUMNS, ScrapeResult, ScrapeStatus


def _success(name: str) -> ScrapeResult:
    return ScrapeResult(
        screenshot_file=f"images/{name}.png",
        logo_file=f"images/{name}-1.png",
        scraped_data='{"data": "x"}',
        status=ScrapeStatus.SUCCESS,
    )


def test_duplicates_share_first_result():
    """Later rows of a URL become DUPLICATE with the first row's artifacts."""
    rows = [
        {"BaseName": "A", "URL": "u1"},
        {"BaseName": "B", "URL": "u1"},
        {"BaseName": "C", "URL": "u2"},
    ]
    work = deduplicate_rows(rows)
    results = {"u1": _success("A"), "u2": _success("C")}

    columns, output = build_output_table(work, results)

    assert [row["BaseName"] for row in output] == ["A", "B", "C"]
    assert output[0]["Status"] == "SUCCESS"
    assert output[1]["Status"] == "DUPLICATE"
    assert output[1]["ErrorMessage"] == DUPLICATE_NOTE
    assert output[1]["ScreenshotFile"] == output[0]["ScreenshotFile"] == "images/A.png"
    assert output[1]["ScrapedData"] == output[0]["ScrapedData"]
    assert output[2]["ScreenshotFile"] == "images/C.png"
    assert columns[-5:] == RESULT_COLUMNS


def test_error_results_are_shared_too():
    rows = [{"BaseName": "A", "URL": "u1"}, {"BaseName": "B", "URL": "u1"}]
    work = deduplicate_rows(rows)
    results = {"u1": ScrapeResult.failed("net::ERR_NAME_NOT_RESOLVED")}

    mapped = remap_results(work, results)

    assert mapped[0].status is ScrapeStatus.ERROR
    assert mapped[0].error_message == "net::ERR_NAME_NOT_RESOLVED"
    assert mapped[1].status is ScrapeStatus.DUPLICATE
    assert mapped[1].error_message == DUPLICATE_NOTE


def test_missing_result_becomes_internal_error():
    """URLs never scheduled (e.g. after cancellation) still produce a row."""
    rows = [{"BaseName": "A", "URL": "u1"}, {"BaseName": "B", "URL": "u2"}, {"BaseName": "C", "URL": "u2"}]
    work = deduplicate_rows(rows)

    mapped = remap_results(work, {"u1": _success("A")})

    assert mapped[0].status is ScrapeStatus.SUCCESS
    assert mapped[1].status is ScrapeStatus.ERROR
    assert mapped[1].error_message == MISSING_RESULT_MESSAGE
    assert mapped[2].status is ScrapeStatus.ERROR
    assert mapped[2].error_message == MISSING_RESULT_MESSAGE


def test_blank_url_rows_are_errors():
    rows = [{"BaseName": "A", "URL": ""}, {"BaseName": "B", "URL": "u1"}]
    work = deduplicate_rows(rows)

    _, output = build_output_table(work, {"u1": _success("B")})

    assert output[0]["Status"] == "ERROR"
    assert output[0]["ErrorMessage"] == MISSING_RESULT_MESSAGE
    assert output[0]["ScreenshotFile"] == ""
    assert output[1]["Status"] == "SUCCESS"


def test_columns_are_union_in_first_seen_order():
    """Ragged rows get every column, missing cells as empty strings."""
    rows = [
        {"BaseName": "A", "URL": "u1", "Region": "EU"},
        {"BaseName": "B", "URL": "u2", "Owner": "ops", "Region": "US"},
    ]
    work = deduplicate_rows(rows)

    columns, output = build_output_table(work, {"u1": _success("A"), "u2": _success("B")})

    assert columns == ["BaseName", "URL", "Region", "Owner"] + RESULT_COLUMNS
    assert output[0]["Owner"] == ""
    assert output[1]["Owner"] == "ops"
    for row in output:
        assert set(row) == set(columns)
        assert all(isinstance(value, str) for value in row.values())


def test_row_count_matches_input():
    rows = [{"BaseName": str(i), "URL": f"u{i % 3}"} for i in range(10)]
    work = deduplicate_rows(rows)
    results = {url: _success(url) for url in work.unique_urls}

    _, output = build_output_table(work, results)

    assert len(output) == 10
    assert [row["BaseName"] for row in output] == [str(i) for i in range(10)]
    assert sum(1 for row in output if row["Status"] == "SUCCESS") == 3
    assert sum(1 for row in output if row["Status"] == "DUPLICATE") == 7
