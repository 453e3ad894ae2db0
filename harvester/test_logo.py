"""
Tests for logo detection and capture.
"""

import asyncio

from harvester.conftest import FakeBrowser, FakeSite
from harvester.logo import LOGO_HEURISTICS, capture_logo, find_logo_candidate
from harvester.models import LogLevel


def _page(site):
    browser = FakeBrowser(default_site=site)
    return asyncio.run(browser.new_page())


def _capture(page, tmp_path, log):
    return asyncio.run(capture_logo(page, "Acme", tmp_path, "images", log.info, warn=log.warn))


def test_first_matching_heuristic_wins():
    page = _page(FakeSite(logo_selectors=(LOGO_HEURISTICS[3], LOGO_HEURISTICS[1])))

    element, selector = asyncio.run(find_logo_candidate(page))

    assert selector == LOGO_HEURISTICS[1]
    assert element.selector == LOGO_HEURISTICS[1]


def test_no_candidate():
    page = _page(FakeSite())

    assert asyncio.run(find_logo_candidate(page)) == (None, None)


def test_capture_writes_logo_file(tmp_path, recording_log):
    page = _page(FakeSite(logo_selector=LOGO_HEURISTICS[2]))

    relative = _capture(page, tmp_path, recording_log)

    assert relative == "images/Acme-1.png"
    assert (tmp_path / "images" / "Acme-1.png").read_bytes() == b"logo"
    infos = recording_log.messages(LogLevel.INFO)
    assert infos[0] == "Attempting to find and capture primary logo..."
    assert infos[-1] == "Logo captured successfully: images/Acme-1.png"
    assert recording_log.messages(LogLevel.WARN) == []


def test_capture_without_candidate(tmp_path, recording_log):
    page = _page(FakeSite())

    assert _capture(page, tmp_path, recording_log) is None
    assert "No primary logo element found using heuristics." in recording_log.messages(LogLevel.INFO)
    assert not (tmp_path / "images").exists()


def test_screenshot_failure_warns_and_returns_none(tmp_path, recording_log):
    page = _page(FakeSite(
        logo_selector=LOGO_HEURISTICS[0],
        logo_error=RuntimeError("Element is not visible"),
    ))

    assert _capture(page, tmp_path, recording_log) is None
    warnings = recording_log.messages(LogLevel.WARN)
    assert len(warnings) == 1
    assert warnings[0].startswith("Failed to capture logo screenshot.")
    assert "Element is not visible" in warnings[0]
    assert not any(message.startswith("Logo captured") for message in recording_log.messages(LogLevel.INFO))
