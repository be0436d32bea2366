"""
Shared fixtures for rentscout tests.

Extractors are exercised against FakePage, a tiny stand-in for a Playwright
page backed by BeautifulSoup, so no browser is launched anywhere in the suite.
Selectors that should never answer can be registered as "hanging" to check
that per-field time bounds hold.
"""
from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

import pytest
from bs4 import BeautifulSoup

from rentscout.config.production import ExtractionConfig

FIXTURES = Path(__file__).parent / "fixtures"

_INVISIBLE = ("script", "style", "noscript", "template")


class SelectorMissing(Exception):
    pass


def _visible_text(element) -> str:
    parts = [
        text for text in element.find_all(string=True)
        if text.parent is not None and text.parent.name not in _INVISIBLE
    ]
    return " ".join(" ".join(parts).split())


class FakeLocator:
    def __init__(self, page: "FakePage", selector: str):
        self.page = page
        self.selector = selector

    @property
    def first(self) -> "FakeLocator":
        return self

    async def _element(self):
        self.page.calls.append(self.selector)
        if self.selector in self.page.hanging:
            await asyncio.Event().wait()
        element = self.page.soup.select_one(self.selector)
        if element is None:
            raise SelectorMissing(f"Timeout waiting for {self.selector}")
        return element

    async def inner_text(self, timeout: Optional[float] = None) -> str:
        return _visible_text(await self._element())

    async def get_attribute(self, name: str, timeout: Optional[float] = None) -> Optional[str]:
        return (await self._element()).get(name)

    async def is_visible(self, timeout: Optional[float] = None) -> bool:
        return self.page.soup.select_one(self.selector) is not None

    async def click(self, timeout: Optional[float] = None) -> None:
        self.page.clicked.append(self.selector)


class FakePage:
    """Answers the subset of the Playwright page API the extractors touch."""

    def __init__(
        self,
        markup: str,
        *,
        url: str = "https://example.com/listing",
        titles: Optional[Iterable[str]] = None,
        hanging: Iterable[str] = (),
        content_error: Optional[Exception] = None,
    ):
        self.markup = markup
        self.soup = BeautifulSoup(markup, "html.parser")
        self.url = url
        self.hanging = set(hanging)
        self.calls: List[str] = []
        self.clicked: List[str] = []
        self._titles = list(titles) if titles is not None else None
        self._content_error = content_error

    def locator(self, selector: str) -> FakeLocator:
        return FakeLocator(self, selector)

    async def content(self) -> str:
        if self._content_error is not None:
            raise self._content_error
        return self.markup

    async def title(self) -> str:
        if self._titles:
            # Last title sticks once the sequence is exhausted
            return self._titles.pop(0) if len(self._titles) > 1 else self._titles[0]
        tag = self.soup.find("title")
        return tag.get_text(strip=True) if tag else ""

    async def wait_for_selector(self, selector: str, timeout: Optional[float] = None):
        if self.soup.select_one(selector) is None:
            raise SelectorMissing(f"Timeout waiting for {selector}")
        return selector

    async def eval_on_selector_all(self, selector: str, script: str) -> List[Any]:
        if selector in self.hanging:
            await asyncio.Event().wait()
        elements = self.soup.select(selector)
        if "naturalWidth" in script:
            return [
                {
                    "src": el.get("src"),
                    "dataSrc": el.get("data-src"),
                    "srcset": el.get("srcset"),
                    "content": el.get("content"),
                    "width": int(el.get("data-width") or 0),
                }
                for el in elements
            ]
        return [_visible_text(el) for el in elements]


@pytest.fixture
def fast_extraction() -> ExtractionConfig:
    return ExtractionConfig(field_timeout_ms=200, max_images=10, min_image_width=200)


@pytest.fixture
def test_logger() -> logging.Logger:
    return logging.getLogger("rentscout.tests")


@pytest.fixture
def airbnb_details() -> Dict[str, Any]:
    with open(FIXTURES / "airbnb_details.json", encoding="utf-8") as fh:
        return json.load(fh)


def embedded_page_markup(details: Dict[str, Any], *, api_key: str = "d306zoyjsyarp7ifhu67rjxn52tv0t20") -> str:
    """Listing page carrying ``details`` the way Airbnb inlines its deferred state."""
    state = {"niobeClientData": [["StaysPdpSections:abc", details]]}
    return (
        "<html><head><title>Cozy Cabin - Cabins for Rent in Asheville - Airbnb</title>"
        f'<script>window.__config = {{"language":"en","api_config":{{"key":"{api_key}"}}}};</script>'
        "</head><body>"
        f'<script id="data-deferred-state-0" type="application/json">{json.dumps(state)}</script>'
        "<h1>Cozy Cabin</h1>"
        "</body></html>"
    )


@pytest.fixture
def embedded_markup(airbnb_details) -> str:
    return embedded_page_markup(airbnb_details)
