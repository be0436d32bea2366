"""Ordered fallback chain for hardened listing pages.

Each strategy reads the page independently and either produces a result with
a title or gives way to the next one. Results are never merged field by
field: the first strategy with a non-empty title supplies the record.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..models import PriceQueryContext
from ..reliability.errors import EmbeddedStateError, ExtractionExhaustedError
from .embedded import parse_body_details_wrapper
from .standardize import coordinates_of, from_details, to_listing_fields
from .utils import first_non_empty, json_ld_objects, ld_type_matches, script_texts, strip_html, text_value

MAX_SEARCH_DEPTH = 10

STATE_MARKERS = ("__REACT_QUERY_STATE__", "__BOOTSTRAP_STATE__")
STATE_ASSIGNMENT = re.compile(r'(?:__REACT_QUERY_STATE__|__BOOTSTRAP_STATE__)\S*\s*=\s*')

TITLE_PATTERNS = [
    re.compile(r'<title>([^<]+)</title>', re.IGNORECASE),
    re.compile(r'<h1[^>]*>([^<]+)</h1>', re.IGNORECASE),
    re.compile(r'["\']name["\']:\s*["\']([^"\']+)["\']', re.IGNORECASE),
]
GENERIC_TITLE_MARKERS = ("Airbnb:", "Vacation Rentals")


@dataclass
class ListingSource:
    """Everything a strategy may read: final markup, URL, cookies and the live page."""
    markup: str
    url: str
    cookies: Dict[str, str] = field(default_factory=dict)
    page: Any = None


@dataclass
class StrategyResult:
    strategy: str
    fields: Dict[str, Any]
    price_context: Optional[PriceQueryContext] = None
    coordinates: Optional[Tuple[float, float]] = None
    record: Optional[Dict[str, Any]] = None
    language: str = "en"

    @property
    def has_title(self) -> bool:
        title = text_value(self.fields.get("title"))
        return bool(title and title.strip())


class ListingStrategy:
    name = "strategy"

    async def run(self, source: ListingSource) -> Optional[StrategyResult]:
        raise NotImplementedError


class EmbeddedStateStrategy(ListingStrategy):
    """Primary path: the deferred-state JSON node."""

    name = "embedded_state"

    async def run(self, source: ListingSource) -> Optional[StrategyResult]:
        details, language, context = parse_body_details_wrapper(source.markup, source.cookies)
        record = from_details(details)
        return StrategyResult(
            strategy=self.name,
            fields=to_listing_fields(record),
            price_context=context,
            coordinates=coordinates_of(record),
            record=record,
            language=language,
        )


def find_listing_node(obj: Any, depth: int = 0, max_depth: int = MAX_SEARCH_DEPTH) -> Optional[Dict[str, Any]]:
    """First object that looks like listing data, depth-first, bounded by ``max_depth``."""
    if depth > max_depth or not isinstance(obj, (dict, list)):
        return None

    if isinstance(obj, dict):
        detail = obj.get("pdpListingDetail")
        if isinstance(detail, dict):
            return detail
        if obj.get("name") or obj.get("title"):
            return obj
        if isinstance(obj.get("listing"), dict):
            return obj["listing"]
        nested = obj.get("data")
        if isinstance(nested, dict) and isinstance(nested.get("pdpListingDetail"), dict):
            return nested["pdpListingDetail"]
        children = list(obj.values())
    else:
        children = obj

    for child in children:
        found = find_listing_node(child, depth + 1, max_depth)
        if found is not None:
            return found
    return None


def _photo_url(photo: Any) -> Optional[str]:
    if isinstance(photo, str):
        return photo
    if isinstance(photo, dict):
        return first_non_empty(
            photo.get("large"), photo.get("xlarge"), photo.get("medium"), photo.get("picture"), photo.get("url")
        )
    return None


def _amenity_name(amenity: Any) -> Optional[str]:
    if isinstance(amenity, dict):
        return first_non_empty(amenity.get("name"), amenity.get("title"), amenity.get("label"))
    if amenity in (None, ""):
        return None
    return str(amenity)


def listing_fields_from_node(node: Dict[str, Any]) -> Dict[str, Any]:
    """Map the several known listing-node shapes onto listing fields."""
    price = node.get("price") if isinstance(node.get("price"), dict) else {}
    quote = node.get("pricingQuote") if isinstance(node.get("pricingQuote"), dict) else {}
    location = node.get("location") if isinstance(node.get("location"), dict) else {}
    nightly = node.get("nightlyPrice") if isinstance(node.get("nightlyPrice"), dict) else {}

    photos = first_non_empty(node.get("photos"), node.get("images"))
    photos = photos if isinstance(photos, list) else []
    amenities = first_non_empty(node.get("amenities"), node.get("amenityIds"))
    amenities = amenities if isinstance(amenities, list) else []

    return {
        "title": first_non_empty(*(
            text_value(node.get(key)) for key in ("name", "title", "heading", "publicName", "listingName")
        )),
        "description": strip_html(first_non_empty(*(
            text_value(node.get(key)) for key in ("description", "summary", "publicDescription", "space")
        ))),
        "price": first_non_empty(
            (price.get("rate") or {}).get("amount") if isinstance(price.get("rate"), dict) else None,
            ((quote.get("structuredStayDisplayPrice") or {}).get("primaryLine") or {}).get("price"),
            price.get("amount"),
            nightly.get("amount"),
        ),
        "bedrooms": first_non_empty(node.get("bedrooms"), node.get("bedroomCount")),
        "bathrooms": first_non_empty(node.get("bathrooms"), node.get("bathroomCount"), node.get("bathroomLabel")),
        "sleeps": first_non_empty(
            node.get("personCapacity"), node.get("guests"), node.get("accommodates"), node.get("guestCapacity")
        ),
        "location": first_non_empty(
            text_value(node.get("city")), text_value(location.get("city")),
            text_value(node.get("address")), text_value(location.get("address")),
        ),
        "images": [url for url in (_photo_url(p) for p in photos if p) if url],
        "amenities": [name for name in (_amenity_name(a) for a in amenities) if name],
    }


def _query_states(state: Dict[str, Any]) -> List[Any]:
    queries = state.get("queries")
    if queries is None and isinstance(state.get("queryClient"), dict):
        queries = state["queryClient"].get("queries")
    if isinstance(queries, dict):
        queries = list(queries.values())
    if not isinstance(queries, list):
        return []
    states = []
    for query in queries:
        if isinstance(query, dict):
            states.append((query.get("state") or {}).get("data") or query.get("data"))
    return states


def fields_from_state(state: Any) -> Optional[Dict[str, Any]]:
    node = find_listing_node(state)
    if node is None and isinstance(state, dict):
        for query_state in _query_states(state):
            node = find_listing_node(query_state)
            if node is not None:
                break
    return listing_fields_from_node(node) if node is not None else None


def _decode_after(text: str, start: int) -> Optional[Any]:
    brace = text.find("{", start)
    if brace < 0:
        return None
    try:
        value, _ = json.JSONDecoder().raw_decode(text, brace)
    except ValueError:
        return None
    return value


class StructuredDataStrategy(ListingStrategy):
    """JSON-LD, legacy state assignments and raw ``pdpListingDetail`` blobs."""

    name = "structured_data"

    async def run(self, source: ListingSource) -> Optional[StrategyResult]:
        for obj in json_ld_objects(source.markup):
            if ld_type_matches(obj, "Product") or obj.get("name"):
                offers = obj.get("offers") if isinstance(obj.get("offers"), dict) else {}
                fields = {
                    "title": text_value(obj.get("name")),
                    "description": strip_html(text_value(obj.get("description")) or ""),
                    "price": offers.get("price"),
                }
                if fields["title"]:
                    return StrategyResult(self.name, fields)

        for script in script_texts(source.markup):
            if any(marker in script for marker in STATE_MARKERS):
                match = STATE_ASSIGNMENT.search(script)
                state = _decode_after(script, match.end()) if match else None
                fields = fields_from_state(state) if state is not None else None
                if fields and fields.get("title"):
                    return StrategyResult(self.name, fields)

            if "pdpListingDetail" in script:
                try:
                    blob = json.loads(script)
                except ValueError:
                    blob = _decode_after(script, 0)
                fields = fields_from_state(blob) if blob is not None else None
                if fields and fields.get("title"):
                    return StrategyResult(self.name, fields)
        return None


class TitleRegexStrategy(ListingStrategy):
    """Last markup-only resort: a plausible page title."""

    name = "title_regex"

    async def run(self, source: ListingSource) -> Optional[StrategyResult]:
        for pattern in TITLE_PATTERNS:
            match = pattern.search(source.markup or "")
            if not match:
                continue
            title = match.group(1).strip()
            if title and not any(marker in title for marker in GENERIC_TITLE_MARKERS):
                return StrategyResult(self.name, {"title": title})
        return None


class ListingStrategyChain:
    def __init__(self, strategies: Sequence[ListingStrategy], logger: Optional[logging.Logger] = None):
        self.strategies = list(strategies)
        self.logger = logger or logging.getLogger("rentscout.fallback")

    async def run(self, source: ListingSource) -> StrategyResult:
        """Result of the first strategy yielding a title, else ExtractionExhaustedError.

        A price context found by an earlier, title-less strategy is kept for
        the winner since the pricing credentials do not depend on which
        strategy read the fields.
        """
        carried_context: Optional[PriceQueryContext] = None
        attempted: List[str] = []

        for strategy in self.strategies:
            attempted.append(strategy.name)
            try:
                result = await strategy.run(source)
            except EmbeddedStateError as e:
                self.logger.info(f"🔄 {strategy.name} unavailable: {e.message}")
                continue
            except Exception as e:
                self.logger.warning(f"⚠️ {strategy.name} failed: {e}")
                continue

            if result is None:
                self.logger.debug(f"{strategy.name} found nothing")
                continue
            if result.price_context is not None and carried_context is None:
                carried_context = result.price_context
            if result.has_title:
                if result.price_context is None:
                    result.price_context = carried_context
                self.logger.info(f"✅ Listing data from {strategy.name}")
                return result
            self.logger.info(f"🔄 {strategy.name} produced no title, trying next strategy")

        raise ExtractionExhaustedError(
            f"No strategy produced a title (tried: {', '.join(attempted)})"
        )


def default_markup_strategies() -> List[ListingStrategy]:
    return [EmbeddedStateStrategy(), StructuredDataStrategy(), TitleRegexStrategy()]
