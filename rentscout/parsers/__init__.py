"""Embedded-state mining for hardened listing pages."""

from .embedded import parse_body_details, parse_body_details_wrapper, find_api_key
from .standardize import from_details, to_listing_fields, coordinates_of
from .fallback import (
    ListingSource, StrategyResult, ListingStrategy, ListingStrategyChain,
    EmbeddedStateStrategy, StructuredDataStrategy, TitleRegexStrategy,
    find_listing_node, default_markup_strategies,
)
from .price import PriceClient, extract_price_amount, parse_price_symbol, parse_price_response
from .utils import get_nested, strip_html, remove_space

__all__ = [
    "parse_body_details", "parse_body_details_wrapper", "find_api_key",
    "from_details", "to_listing_fields", "coordinates_of",
    "ListingSource", "StrategyResult", "ListingStrategy", "ListingStrategyChain",
    "EmbeddedStateStrategy", "StructuredDataStrategy", "TitleRegexStrategy",
    "find_listing_node", "default_markup_strategies",
    "PriceClient", "extract_price_amount", "parse_price_symbol", "parse_price_response",
    "get_nested", "strip_html", "remove_space",
]
