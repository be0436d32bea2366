"""
Airbnb Listing Extractor
========================

Airbnb serves a thin, heavily obfuscated DOM, so the rendered page is the
last thing consulted. Extraction runs an ordered strategy chain:

- Embedded deferred state (full standardized record, price credentials, coordinates)
- Structured data (JSON-LD, legacy bootstrap state, raw listing blobs)
- Page title regex
- Live DOM selectors

Afterwards the nightly price is recovered through the persisted pricing query
and the location through rate-limited reverse geocoding.
"""

import asyncio
import logging
from typing import Any, Dict, Optional, Tuple

from ..config.production import ProductionConfig
from ..dispatcher import canonical_airbnb_url
from ..geocode import ReverseGeocoder, format_coordinates
from ..parsers.fallback import (
    ListingSource, ListingStrategy, ListingStrategyChain, StrategyResult, default_markup_strategies,
)
from ..parsers.price import PriceClient
from .base import Candidate, DomExtractor, _log


class AirbnbDomExtractor(DomExtractor):
    name = "airbnb"
    ready_selector = "[data-section-id='TITLE_DEFAULT'], [data-section-id='OVERVIEW_DEFAULT_V2']"

    title_candidates = [
        Candidate("[data-section-id='TITLE_DEFAULT'] h1"),
        Candidate("[data-testid='listing-title']"),
        Candidate("h1"),
        Candidate("meta[property='og:title']", "content"),
    ]
    description_candidates = [
        Candidate("[data-section-id='DESCRIPTION_DEFAULT'] span"),
        Candidate("[data-section-id='DESCRIPTION_DEFAULT']"),
        Candidate("meta[name='description']", "content"),
        Candidate("meta[property='og:description']", "content"),
    ]
    price_candidates = [
        Candidate("[data-testid='book-it-default'] span._1y74zjx"),
        Candidate("[data-section-id='BOOK_IT_SIDEBAR'] span[class*='price']"),
        Candidate("[data-testid='price-element']"),
    ]
    bedroom_candidates = [
        Candidate("[data-section-id='OVERVIEW_DEFAULT_V2'] li:nth-child(2)"),
    ]
    bathroom_candidates = [
        Candidate("[data-section-id='OVERVIEW_DEFAULT_V2'] li:nth-child(4)"),
    ]
    sleeps_candidates = [
        Candidate("[data-section-id='OVERVIEW_DEFAULT_V2'] li:nth-child(1)"),
    ]
    location_candidates = [
        Candidate("[data-section-id='LOCATION_DEFAULT'] h3"),
        Candidate("[data-section-id='OVERVIEW_DEFAULT_V2'] h2"),
    ]
    rating_candidates = [
        Candidate("[data-testid='pdp-reviews-highlight-banner-host-rating'] div[aria-hidden='true']"),
        Candidate("[data-section-id='GUEST_FAVORITE_BANNER'] div[data-testid]"),
        Candidate("span[aria-label*='rated']", "aria-label"),
    ]
    image_selectors = [
        "[data-section-id='HERO_DEFAULT'] img",
        "[data-testid='photo-viewer'] img",
        "picture img",
        "img[src*='muscache.com/im/pictures']",
    ]
    amenity_selectors = [
        "[data-section-id='AMENITIES_DEFAULT'] div[class*='_19xnuo97']",
        "[data-section-id='AMENITIES_DEFAULT'] [id*='amenity'] div",
    ]


class LiveDomStrategy(ListingStrategy):
    """Final chain link: selectors over the rendered page."""

    name = "live_dom"

    def __init__(self, extractor: AirbnbDomExtractor):
        self.extractor = extractor

    async def run(self, source: ListingSource) -> Optional[StrategyResult]:
        if source.page is None:
            return None
        fields = await self.extractor.extract(source.page, source.url)
        return StrategyResult(self.name, fields)


class AirbnbTask:
    """Runs the strategy chain and the price/location augmentation."""

    def __init__(
        self,
        config: ProductionConfig,
        *,
        price_client: Optional[PriceClient] = None,
        geocoder: Optional[ReverseGeocoder] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.config = config
        self.logger = logger or logging.getLogger("rentscout.tasks.airbnb")
        self.dom_extractor = AirbnbDomExtractor(config.extraction, self.logger)
        self.price_client = price_client or PriceClient(config.price, logger=self.logger)
        self.geocoder = geocoder or ReverseGeocoder(config.geocoding, logger=self.logger)
        self.last_details: Optional[Dict[str, Any]] = None

    @property
    def ready_selector(self) -> Optional[str]:
        return self.dom_extractor.ready_selector

    def build_chain(self) -> ListingStrategyChain:
        return ListingStrategyChain(
            default_markup_strategies() + [LiveDomStrategy(self.dom_extractor)],
            logger=self.logger,
        )

    async def run(self, page, url: str, cookies: Optional[Dict[str, str]] = None) -> Tuple[Dict[str, Any], str]:
        """Raw listing fields plus the canonical listing URL.

        Raises ExtractionExhaustedError when no strategy yields a title.
        """
        canonical_url = canonical_airbnb_url(url)
        timeout = self.config.extraction.field_timeout_ms / 1000 + 0.5
        try:
            markup = await asyncio.wait_for(page.content(), timeout=timeout)
        except Exception as e:
            _log(self.logger, "warning", f"⚠️ Could not read page markup: {e}")
            markup = ""

        source = ListingSource(markup=markup, url=canonical_url, cookies=dict(cookies or {}), page=page)
        result = await self.build_chain().run(source)
        self.last_details = result.record
        fields = dict(result.fields)

        if fields.get("price") in (None, "") and result.price_context is not None:
            fields["price"] = await self.price_client.nightly_price(result.price_context, locale=result.language)

        if not fields.get("location") and result.coordinates:
            fields["location"] = await self._locate(*result.coordinates)

        return fields, canonical_url

    async def _locate(self, lat: float, lng: float) -> str:
        await self.geocoder.gate.wait()
        place = await self.geocoder.resolve(lat, lng)
        if place:
            _log(self.logger, "info", f"📍 Location resolved: {place}")
            return place
        return format_coordinates(lat, lng)
