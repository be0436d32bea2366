"""
Base utilities and shared functions for all site extractors.
"""
from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Sequence, TypeVar
from urllib.parse import urljoin

from ..config.production import ExtractionConfig

T = TypeVar("T")

Lookup = Callable[[], Awaitable[Optional[T]]]

EXCLUDED_IMAGE_MARKERS = ("logo", "icon", "avatar", "button")

IMAGE_SCRIPT = """
(els) => els.map(el => ({
    src: el.getAttribute('src'),
    dataSrc: el.getAttribute('data-src'),
    srcset: el.getAttribute('srcset'),
    content: el.getAttribute('content'),
    width: el.naturalWidth || 0
}))
"""

TEXT_SCRIPT = "(els) => els.map(el => (el.innerText || el.textContent || '').trim())"

BEDROOM_PATTERN = re.compile(r'(\d+)\s*(?:bedrooms?|bed)\b', re.IGNORECASE)
BATHROOM_PATTERN = re.compile(r'(\d+(?:\.\d+)?)\s*(?:bathrooms?|baths?)\b', re.IGNORECASE)
SLEEPS_PATTERNS = [
    re.compile(r'(?:sleeps|accommodates)\s*:?\s*(\d+)', re.IGNORECASE),
    re.compile(r'(\d+)\s*guests?\b', re.IGNORECASE),
]


def _log(logger: logging.Logger, level: str, message: str):
    """Centralized logging utility for all extractors."""
    getattr(logger, level.lower())(message)


@dataclass(frozen=True)
class Candidate:
    """One selector strategy for a field; reads text unless ``attribute`` is set."""
    selector: str
    attribute: Optional[str] = None


def _present(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, (str, list, dict)) and not value:
        return False
    return True


async def first_result(lookups: Iterable[Lookup], timeout: float) -> Optional[T]:
    """Run lookups in order, each bounded by ``timeout`` seconds.

    A lookup that raises, times out or yields an empty value is skipped.
    Returns the first non-empty value, or None.
    """
    for lookup in lookups:
        try:
            value = await asyncio.wait_for(lookup(), timeout=timeout)
        except Exception:
            continue
        if _present(value):
            return value
    return None


async def read_candidate(page, candidate: Candidate, timeout_ms: int) -> Optional[str]:
    locator = page.locator(candidate.selector).first
    if candidate.attribute:
        return await locator.get_attribute(candidate.attribute, timeout=timeout_ms)
    return await locator.inner_text(timeout=timeout_ms)


async def resolve_chain(
    page,
    candidates: Sequence[Candidate],
    parse: Callable[[str], Optional[T]],
    timeout_ms: int,
) -> Optional[T]:
    """Value of the first candidate whose raw read parses to something."""

    def make_lookup(candidate: Candidate) -> Lookup:
        async def lookup():
            raw = await read_candidate(page, candidate, timeout_ms)
            return parse(raw) if raw is not None else None
        return lookup

    # Outer bound leaves slack for the Playwright-level timeout to fire first
    return await first_result((make_lookup(c) for c in candidates), timeout=timeout_ms / 1000 + 0.5)


# ---------------------------------------------------------------------------
# Text and number parsing
# ---------------------------------------------------------------------------

def clean_text(text: Optional[str]) -> Optional[str]:
    if text is None:
        return None
    cleaned = re.sub(r'\s+', ' ', str(text)).strip()
    return cleaned or None


def parse_count(text: Optional[str]) -> Optional[int]:
    """First integer in text, tolerating thousands separators."""
    if not text:
        return None
    match = re.search(r'\d[\d,]*', str(text))
    if not match:
        return None
    try:
        return int(match.group(0).replace(',', ''))
    except ValueError:
        return None


def parse_decimal(text: Optional[str]) -> Optional[float]:
    if not text:
        return None
    match = re.search(r'\d+(?:\.\d+)?', str(text))
    return float(match.group(0)) if match else None


def parse_price_text(price_text: Optional[str]) -> Optional[float]:
    """Extract numeric price from text like '$1,284 / night'."""
    if not price_text:
        return None

    text = re.sub(r'From\s+|per\s+night|/\s*night|total|night', '', str(price_text), flags=re.IGNORECASE)
    numbers = re.findall(r'\d[\d,]*(?:\.\d+)?', text)
    if not numbers:
        return None
    try:
        price = float(numbers[0].replace(',', ''))
    except ValueError:
        return None
    return price if price > 0 else None


def parse_rating(rating_text: Optional[str]) -> Optional[float]:
    """Ratings are accepted on either a 5 or a 10 point scale."""
    rating = parse_decimal(rating_text)
    if rating is not None and 0 < rating <= 10:
        return rating
    return None


def count_from_text(text: Optional[str], pattern: re.Pattern) -> Optional[int]:
    if not text:
        return None
    match = pattern.search(text)
    if not match:
        return None
    value = int(float(match.group(1)))
    return value or None


def sleeps_from_text(text: Optional[str]) -> Optional[int]:
    for pattern in SLEEPS_PATTERNS:
        value = count_from_text(text, pattern)
        if value:
            return value
    return None


def bathrooms_from_text(text: Optional[str]) -> Optional[float]:
    if not text:
        return None
    match = BATHROOM_PATTERN.search(text)
    if not match:
        return None
    value = float(match.group(1))
    return value or None


# ---------------------------------------------------------------------------
# Images
# ---------------------------------------------------------------------------

def _fix_image_url(url: str, base_url: Optional[str]) -> str:
    url = url.strip()
    if url.startswith('//'):
        return 'https:' + url
    if base_url:
        return urljoin(base_url, url)
    return url


def filter_image_urls(urls: Iterable[Any], base_url: Optional[str] = None, limit: int = 10) -> List[str]:
    """Resolve, drop UI assets and data URIs, dedupe, cap at ``limit``."""
    images: List[str] = []
    seen = set()
    for raw in urls:
        if isinstance(raw, dict):
            raw = raw.get("url")
        if not raw or not isinstance(raw, str):
            continue
        if raw.strip().startswith("data:"):
            continue
        url = _fix_image_url(raw, base_url)
        lowered = url.lower()
        if any(marker in lowered for marker in EXCLUDED_IMAGE_MARKERS):
            continue
        if url in seen:
            continue
        seen.add(url)
        images.append(url)
        if len(images) >= limit:
            break
    return images


def pick_image_source(entry: Dict[str, Any]) -> Optional[str]:
    src = entry.get("content") or entry.get("src")
    if not src or src.startswith("data:"):
        src = entry.get("dataSrc") or src
    if (not src or src.startswith("data:")) and entry.get("srcset"):
        src = entry["srcset"].split(",")[0].strip().split(" ")[0]
    return src


class DomExtractor:
    """Selector-chain extractor for one platform.

    Subclasses list candidates per field; the first candidate producing a
    parsed, non-empty value wins. Every field fails independently to None.
    """

    name = "dom"
    ready_selector: Optional[str] = None

    title_candidates: Sequence[Candidate] = ()
    description_candidates: Sequence[Candidate] = ()
    price_candidates: Sequence[Candidate] = ()
    bedroom_candidates: Sequence[Candidate] = ()
    bathroom_candidates: Sequence[Candidate] = ()
    sleeps_candidates: Sequence[Candidate] = ()
    location_candidates: Sequence[Candidate] = ()
    rating_candidates: Sequence[Candidate] = ()
    image_selectors: Sequence[str] = ("img",)
    amenity_selectors: Sequence[str] = ()
    enforce_min_image_width = False

    def __init__(self, config: Optional[ExtractionConfig] = None, logger: Optional[logging.Logger] = None):
        self.config = config or ExtractionConfig()
        self.logger = logger or logging.getLogger(f"rentscout.tasks.{self.name}")

    @property
    def field_timeout_ms(self) -> int:
        return self.config.field_timeout_ms

    async def extract(self, page, url: str) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        try:
            await self._extract_fields(page, url, data)
        except Exception as e:
            _log(self.logger, "warning", f"⚠️ {self.name} extraction stopped early: {e}")
        found = sorted(k for k, v in data.items() if _present(v))
        _log(self.logger, "info", f"🔍 {self.name}: extracted {len(found)} fields {found}")
        return data

    async def _extract_fields(self, page, url: str, data: Dict[str, Any]) -> None:
        chains = [
            ("title", self.title_candidates, clean_text),
            ("description", self.description_candidates, clean_text),
            ("price", self.price_candidates, parse_price_text),
            ("bedrooms", self.bedroom_candidates, parse_count),
            ("bathrooms", self.bathroom_candidates, parse_decimal),
            ("sleeps", self.sleeps_candidates, parse_count),
            ("location", self.location_candidates, clean_text),
            ("rating", self.rating_candidates, parse_rating),
        ]
        for field_name, candidates, parse in chains:
            data[field_name] = await resolve_chain(page, candidates, parse, self.field_timeout_ms)

        if data.get("bedrooms") is None or data.get("bathrooms") is None or data.get("sleeps") is None:
            body = await self.body_text(page)
            if data.get("bedrooms") is None:
                data["bedrooms"] = count_from_text(body, BEDROOM_PATTERN)
            if data.get("bathrooms") is None:
                data["bathrooms"] = bathrooms_from_text(body)
            if data.get("sleeps") is None:
                data["sleeps"] = sleeps_from_text(body)

        data["images"] = await self.collect_images(page, url)
        data["amenities"] = await self.collect_texts(page, self.amenity_selectors)

    async def body_text(self, page) -> str:
        text = await first_result(
            [lambda: page.locator("body").first.inner_text(timeout=self.field_timeout_ms)],
            timeout=self.field_timeout_ms / 1000 + 0.5,
        )
        return text or ""

    async def collect_images(self, page, url: str) -> List[str]:
        min_width = self.config.min_image_width if self.enforce_min_image_width else 0
        sources: List[str] = []
        for selector in self.image_selectors:
            try:
                entries = await asyncio.wait_for(
                    page.eval_on_selector_all(selector, IMAGE_SCRIPT),
                    timeout=self.field_timeout_ms / 1000,
                )
            except Exception:
                continue
            for entry in entries or []:
                width = entry.get("width") or 0
                if min_width and width and width < min_width:
                    continue
                src = pick_image_source(entry)
                if src:
                    sources.append(src)
            images = filter_image_urls(sources, url, self.config.max_images)
            if len(images) >= self.config.max_images:
                return images
        return filter_image_urls(sources, url, self.config.max_images)

    async def collect_texts(self, page, selectors: Sequence[str]) -> List[str]:
        for selector in selectors:
            try:
                texts = await asyncio.wait_for(
                    page.eval_on_selector_all(selector, TEXT_SCRIPT),
                    timeout=self.field_timeout_ms / 1000,
                )
            except Exception:
                continue
            cleaned = []
            for text in texts or []:
                value = clean_text(text)
                if value and value not in cleaned:
                    cleaned.append(value)
            if cleaned:
                return cleaned
        return []
