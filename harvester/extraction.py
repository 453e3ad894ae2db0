"""
Selector-driven data extraction.

Selector specs are comma- (or newline-) separated entries of ``name=query``.
A bare ``query`` is stored under the field name ``data``. CSS entries are
resolved before XPath entries, each independently: first match, trimmed text.

Example:
    parse_selector_list("price=.price, .title", "css")
    # -> price: ".price", data: ".title"
"""

import logging
import re
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from playwright.async_api import Page

from .config import SelectorConfig
from .models import CSS_SELECTOR_COLUMN, XPATH_SELECTOR_COLUMN, InputRow

logger = logging.getLogger(__name__)

CSS = "css"
XPATH = "xpath"
DEFAULT_FIELD_NAME = "data"
TEXT_TIMEOUT_MS = 2000

# A field name is word characters, dashes or spaces. Anything else before the
# first '=' (e.g. an attribute selector) means the entry is a bare query.
_FIELD_NAME = re.compile(r"^[\w\- ]+$")
_ENTRY_SEPARATOR = re.compile(r"[,\n]")


@dataclass(frozen=True)
class SelectorSpec:
    kind: str
    name: str
    query: str

    @property
    def locator_query(self) -> str:
        """Query string in Playwright locator syntax."""
        return f"xpath={self.query}" if self.kind == XPATH else self.query


def parse_selector_list(spec: Optional[str], kind: str) -> List[SelectorSpec]:
    """
    Parse a selector spec string into SelectorSpecs.

    Args:
        spec: Comma/newline separated ``name=query`` or bare ``query`` entries
        kind: ``css`` or ``xpath``

    Returns:
        Parsed specs in input order; entries with an empty query are dropped
    """
    specs: List[SelectorSpec] = []
    for entry in _ENTRY_SEPARATOR.split(spec or ""):
        entry = entry.strip()
        if not entry:
            continue

        name, sep, query = entry.partition("=")
        if sep and _FIELD_NAME.match(name.strip()):
            name, query = name.strip(), query.strip()
        else:
            name, query = DEFAULT_FIELD_NAME, entry

        if query:
            specs.append(SelectorSpec(kind=kind, name=name, query=query))
    return specs


def _row_or_global(row: InputRow, column: str, global_spec: str) -> str:
    return (row.get(column) or "").strip() or (global_spec or "").strip()


def selectors_provided(row: InputRow, selectors: SelectorConfig) -> bool:
    """True if the row or the global config supplies any CSS or XPath spec."""
    return bool(
        _row_or_global(row, CSS_SELECTOR_COLUMN, selectors.css)
        or _row_or_global(row, XPATH_SELECTOR_COLUMN, selectors.xpath)
    )


def resolve_selector_specs(row: InputRow, selectors: SelectorConfig) -> List[SelectorSpec]:
    """
    Combine row-level and global selector specs for one row.

    A row-level spec replaces the global spec of the same kind entirely;
    the two lists are never merged. CSS specs come first, then XPath.
    """
    css = parse_selector_list(_row_or_global(row, CSS_SELECTOR_COLUMN, selectors.css), CSS)
    xpath = parse_selector_list(_row_or_global(row, XPATH_SELECTOR_COLUMN, selectors.xpath), XPATH)
    return css + xpath


async def extract_with_selectors(
    page: Page,
    specs: List[SelectorSpec],
    warn: Callable[[str], None]
) -> Dict[str, Optional[str]]:
    """
    Resolve each selector spec against the page.

    Missing elements are recorded as None; empty text is left out. Neither
    fails the page.

    Args:
        page: Loaded Playwright page
        specs: Specs from resolve_selector_specs
        warn: Warning-level log function for the current URL

    Returns:
        Field name -> trimmed text (or None)
    """
    data: Dict[str, Optional[str]] = {}

    for spec in specs:
        try:
            locator = page.locator(spec.locator_query)
            if await locator.count() == 0:
                raise LookupError("no matching element")
            text = await locator.first.text_content(timeout=TEXT_TIMEOUT_MS)
        except Exception as e:
            logger.debug(f"Selector {spec.query!r} failed: {e}")
            warn(f"Selector for {spec.name} ({spec.query}) not found or failed to extract.")
            data[spec.name] = None
            continue

        text = (text or "").strip()
        if text:
            data[spec.name] = text
        else:
            warn(f"Selector for {spec.name} ({spec.query}) found element but text content was empty.")

    return data
