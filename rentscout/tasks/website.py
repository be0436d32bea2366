"""Generic extractor for rental sites without a dedicated extractor.

Works from semantic HTML, Open Graph / product meta tags and JSON-LD, with
regex scans over the visible text as the final resort for counts and price.
"""

import re
from typing import Any, Dict, Optional

from .base import (
    BEDROOM_PATTERN, Candidate, DomExtractor, _log, clean_text, count_from_text, first_result, parse_rating,
    resolve_chain,
)
from ..parsers.utils import json_ld_objects, ld_type_matches, strip_html

CURRENCY_PRICE = re.compile(
    r'[$€£]\s?(\d[\d,]*(?:\.\d+)?)(\s*(?:/|per|a)\s*night)?',
    re.IGNORECASE,
)

LISTING_LD_TYPES = (
    "Product", "Accommodation", "House", "Apartment", "LodgingBusiness", "VacationRental",
    "Hotel", "Residence", "SingleFamilyResidence", "Place",
)


def price_from_text(text: Optional[str]) -> Optional[float]:
    """Amount with a nightly qualifier if any, else the first currency amount."""
    if not text:
        return None
    matches = list(CURRENCY_PRICE.finditer(text))
    if not matches:
        return None
    nightly = [m for m in matches if m.group(2)]
    chosen = (nightly or matches)[0]
    try:
        value = float(chosen.group(1).replace(',', ''))
    except ValueError:
        return None
    return value or None


def _ld_price(obj: Dict[str, Any]) -> Optional[Any]:
    offers = obj.get("offers")
    if isinstance(offers, list):
        offers = offers[0] if offers else None
    if isinstance(offers, dict):
        return offers.get("price") or offers.get("lowPrice")
    return None


def _ld_address(obj: Dict[str, Any]) -> Optional[str]:
    address = obj.get("address")
    if isinstance(address, str):
        return clean_text(address)
    if isinstance(address, dict):
        parts = [address.get("addressLocality"), address.get("addressRegion")]
        joined = ", ".join(p for p in parts if p)
        return joined or clean_text(address.get("streetAddress"))
    return None


def structured_listing_data(markup: str) -> Dict[str, Any]:
    """Fields recoverable from JSON-LD; the first listing-like object wins per field."""
    data: Dict[str, Any] = {}
    for obj in json_ld_objects(markup):
        if not (ld_type_matches(obj, *LISTING_LD_TYPES) or obj.get("offers")):
            continue
        rating = obj.get("aggregateRating") if isinstance(obj.get("aggregateRating"), dict) else {}
        candidates = {
            "title": clean_text(obj.get("name")),
            "description": strip_html(obj.get("description")),
            "price": _ld_price(obj),
            "rating": parse_rating(str(rating.get("ratingValue"))) if rating.get("ratingValue") else None,
            "location": _ld_address(obj),
            "bedrooms": obj.get("numberOfBedrooms") or obj.get("numberOfRooms"),
            "bathrooms": obj.get("numberOfBathroomsTotal"),
            "sleeps": (obj.get("occupancy") or {}).get("maxValue") if isinstance(obj.get("occupancy"), dict) else None,
        }
        for key, value in candidates.items():
            if value not in (None, "") and data.get(key) in (None, ""):
                data[key] = value
    return data


class WebsiteExtractor(DomExtractor):
    name = "website"
    ready_selector = "main, article, [itemprop='name']"
    enforce_min_image_width = True

    title_candidates = [
        Candidate("h1"),
        Candidate("meta[property='og:title']", "content"),
        Candidate("meta[name='twitter:title']", "content"),
    ]
    description_candidates = [
        Candidate("meta[name='description']", "content"),
        Candidate("meta[property='og:description']", "content"),
        Candidate("[itemprop='description']"),
    ]
    meta_price_candidates = [
        Candidate("meta[property='og:price:amount']", "content"),
        Candidate("meta[property='product:price:amount']", "content"),
        Candidate("[itemprop='price']", "content"),
    ]
    location_candidates = [
        Candidate("[itemprop='address']"),
        Candidate("meta[property='og:locality']", "content"),
        Candidate("address"),
    ]
    rating_candidates = [
        Candidate("[itemprop='ratingValue']", "content"),
        Candidate("[itemprop='ratingValue']"),
    ]
    image_selectors = [
        "meta[property='og:image']",
        "main img",
        "article img",
        "img",
    ]
    amenity_selectors = [
        "[class*='amenit'] li",
        "[id*='amenit'] li",
        "[class*='feature'] li",
    ]

    async def _extract_fields(self, page, url: str, data: Dict[str, Any]) -> None:
        await super()._extract_fields(page, url, data)

        markup = await first_result([page.content], timeout=self.field_timeout_ms / 1000 + 0.5) or ""
        structured = structured_listing_data(markup)
        if structured:
            _log(self.logger, "debug", f"JSON-LD supplied {sorted(structured)}")

        for key in ("title", "description", "rating", "location", "bedrooms", "bathrooms", "sleeps"):
            if data.get(key) in (None, "") and structured.get(key) not in (None, ""):
                data[key] = structured[key]

        # Price priority: meta tags, JSON-LD offers, currency text
        meta_price = await resolve_chain(page, self.meta_price_candidates, _parse_amount, self.field_timeout_ms)
        if meta_price is not None:
            data["price"] = meta_price
        elif structured.get("price") not in (None, ""):
            data["price"] = structured["price"]
        else:
            body = await self.body_text(page)
            data["price"] = price_from_text(body)

        if data.get("title") is None:
            data["title"] = await resolve_chain(page, [Candidate("title")], clean_text, self.field_timeout_ms)

        if data.get("bedrooms") is None:
            data["bedrooms"] = count_from_text(data.get("title"), BEDROOM_PATTERN)


def _parse_amount(text: Optional[str]) -> Optional[float]:
    if not text:
        return None
    match = re.search(r'\d[\d,]*(?:\.\d+)?', text)
    if not match:
        return None
    value = float(match.group(0).replace(',', ''))
    return value or None
