"""Replays Airbnb's persisted ``StaysPdpSections`` query to recover the nightly price.

The rendered page rarely shows a price without dates, but the booking sidebar
section can be requested directly with the API key, listing id and impression
id found in the page's embedded state plus the session cookies.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, Optional, Tuple

import httpx

from ..config.production import PriceConfig
from ..models import PriceQueryContext
from ..reliability.errors import PriceLookupError
from .utils import get_nested

SECTION_IDS = [
    "BOOK_IT_FLOATING_FOOTER",
    "POLICIES_DEFAULT",
    "EDUCATION_FOOTER_BANNER_MODAL",
    "BOOK_IT_SIDEBAR",
    "URGENCY_COMMITMENT_SIDEBAR",
    "BOOK_IT_NAV",
    "MESSAGE_BANNER",
    "HIGHLIGHTS_DEFAULT",
    "EDUCATION_FOOTER_BANNER",
    "URGENCY_COMMITMENT",
    "BOOK_IT_CALENDAR_SHEET",
    "CANCELLATION_POLICY_PICKER_MODAL",
]

PRICE_SECTION_ID = "BOOK_IT_SIDEBAR"


def parse_price_symbol(price_raw: Any) -> Tuple[float, str]:
    """``("$1,284")`` -> ``(1284.0, "$")``; unparsable input gives ``(0, "")``."""
    if not price_raw or not isinstance(price_raw, str):
        return 0, ""
    cleaned = price_raw.replace(",", "")
    match = re.search(r'\d+', cleaned)
    if not match:
        return 0, ""
    number = match.group(0)
    currency = re.sub(r'\s+', '', cleaned.replace(number, "", 1)).replace("-", "")
    amount = float(number)
    if price_raw.strip().startswith("-"):
        amount = -amount
    return amount, currency


def extract_price_amount(price_string: Any) -> Optional[float]:
    """Signed magnitude of a display price, or None when it has no digits."""
    if not price_string or not isinstance(price_string, str):
        return None
    if not re.search(r'\d', price_string):
        return None
    amount, _ = parse_price_symbol(price_string)
    return amount


def build_price_params(
    context: PriceQueryContext,
    config: PriceConfig,
    *,
    check_in: Optional[str] = None,
    check_out: Optional[str] = None,
    locale: Optional[str] = None,
) -> Dict[str, str]:
    variables = {
        "id": context.product_id,
        "pdpSectionsRequest": {
            "adults": str(config.adults),
            "bypassTargetings": False,
            "categoryTag": None,
            "causeId": None,
            "children": None,
            "disasterId": None,
            "discountedGuestFeeVersion": None,
            "displayExtensions": None,
            "federatedSearchId": None,
            "forceBoostPriorityMessageType": None,
            "infants": None,
            "interactionType": None,
            "layouts": ["SIDEBAR", "SINGLE_COLUMN"],
            "pets": 0,
            "pdpTypeOverride": None,
            "photoId": None,
            "preview": False,
            "previousStateCheckIn": None,
            "previousStateCheckOut": None,
            "priceDropSource": None,
            "privateBooking": False,
            "promotionUuid": None,
            "relaxedAmenityIds": None,
            "searchId": None,
            "selectedCancellationPolicyId": None,
            "selectedRatePlanId": None,
            "splitStays": None,
            "staysBookingMigrationEnabled": False,
            "translateUgc": None,
            "useNewSectionWrapperApi": False,
            "sectionIds": SECTION_IDS,
            "checkIn": check_in,
            "checkOut": check_out,
            "p3ImpressionId": context.impression_id,
        },
    }
    extensions = {"persistedQuery": {"version": 1, "sha256Hash": config.query_hash}}
    return {
        "operationName": "StaysPdpSections",
        "locale": locale or config.locale,
        "currency": config.currency,
        "variables": json.dumps(variables, separators=(",", ":")),
        "extensions": json.dumps(extensions, separators=(",", ":")),
    }


def build_price_headers(context: PriceQueryContext, config: PriceConfig) -> Dict[str, str]:
    headers = {
        "Accept": "application/json",
        "Content-Type": "application/json",
        "User-Agent": config.user_agent,
        "X-Airbnb-Api-Key": context.api_key or "",
    }
    cookie = context.cookie_header()
    if cookie:
        headers["Cookie"] = cookie
    return headers


def parse_price_response(payload: Dict[str, Any]) -> Dict[str, Any]:
    root = get_nested(payload, "data", "presentation", "stayProductDetailPage", "sections", default={})
    result: Dict[str, Any] = {
        "raw": get_nested(
            root, "metadata", "bookingPrefetchData", "barPrice", "explanationData", "priceGroups", default=[]
        ),
    }
    for section in get_nested(root, "sections", default=[]):
        if section.get("sectionId") != PRICE_SECTION_ID:
            continue
        price_data = get_nested(section, "section", "structuredDisplayPrice", default={})
        result["main"] = {
            "price": get_nested(price_data, "primaryLine", "price", default=""),
            "discountedPrice": get_nested(price_data, "primaryLine", "discountedPrice", default=""),
            "originalPrice": get_nested(price_data, "primaryLine", "originalPrice", default=""),
            "qualifier": get_nested(price_data, "primaryLine", "qualifier", default=""),
        }
        details: Dict[str, str] = {}
        for detail in get_nested(price_data, "explanationData", "priceDetails", default=[]):
            for item in detail.get("items") or []:
                if item.get("description"):
                    details[item["description"]] = item.get("priceString", "")
        result["details"] = details
        break
    return result


def select_price_string(parsed: Dict[str, Any]) -> Optional[str]:
    main = parsed.get("main") or {}
    return main.get("discountedPrice") or main.get("price") or main.get("originalPrice") or None


class PriceClient:
    """Authenticated price lookup; every failure degrades to None."""

    def __init__(
        self,
        config: Optional[PriceConfig] = None,
        *,
        client: Optional[httpx.AsyncClient] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.config = config or PriceConfig()
        self._client = client
        self.logger = logger or logging.getLogger("rentscout.price")

    async def fetch(self, context: PriceQueryContext, *, locale: Optional[str] = None) -> Dict[str, Any]:
        """Raw parsed price sections. Raises PriceLookupError."""
        params = build_price_params(context, self.config, locale=locale)
        headers = build_price_headers(context, self.config)
        try:
            if self._client is not None:
                response = await self._client.get(
                    self.config.endpoint, params=params, headers=headers, timeout=self.config.timeout_seconds
                )
            else:
                async with httpx.AsyncClient(timeout=self.config.timeout_seconds) as client:
                    response = await client.get(self.config.endpoint, params=params, headers=headers)
            response.raise_for_status()
            return parse_price_response(response.json())
        except httpx.HTTPStatusError as e:
            raise PriceLookupError(f"Price API returned {e.response.status_code}", cause=e)
        except (httpx.HTTPError, ValueError) as e:
            raise PriceLookupError(f"Price API request failed: {e}", cause=e)

    async def nightly_price(self, context: PriceQueryContext, *, locale: Optional[str] = None) -> Optional[float]:
        if not context.is_complete:
            self.logger.info("⏭️ Skipping price lookup: api key, listing id or impression id missing")
            return None
        try:
            parsed = await self.fetch(context, locale=locale)
        except PriceLookupError as e:
            self.logger.warning(f"⚠️ Price lookup failed: {e.message}")
            return None

        price_string = select_price_string(parsed)
        amount = extract_price_amount(price_string)
        if amount is None or amount <= 0:
            self.logger.info(f"💲 No usable price in response ({price_string!r})")
            return None
        qualifier = (parsed.get("main") or {}).get("qualifier", "")
        self.logger.info(f"💲 Price found: {price_string} {qualifier}".rstrip())
        return amount
