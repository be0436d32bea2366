"""Canonical normalizer: any extractor's raw field dict -> RentalListing."""

from __future__ import annotations

import re
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from .models import RentalListing
from .parsers.utils import strip_html, text_value
from .tasks.base import filter_image_urls

MAX_IMAGES = 10


def _clean_text(value: Any) -> Optional[str]:
    text = text_value(value)
    if text is None:
        return None
    return re.sub(r'\s+', ' ', text).strip() or None


def coerce_number(value: Any) -> Optional[float]:
    """Numbers pass through; numeric-looking strings ("1,284", "$150", "4.5") are parsed."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        match = re.search(r'-?\d[\d,]*(?:\.\d+)?', value)
        if not match:
            return None
        try:
            return float(match.group(0).replace(',', ''))
        except ValueError:
            return None
    return None


def coerce_int(value: Any) -> Optional[int]:
    number = coerce_number(value)
    return int(number) if number is not None else None


def _as_list(value: Any) -> List[Any]:
    return list(value) if isinstance(value, (list, tuple)) else []


def _clean_amenities(values: Iterable[Any]) -> List[str]:
    amenities: List[str] = []
    for value in values or []:
        if isinstance(value, dict):
            value = value.get("title") or value.get("name")
        text = _clean_text(value)
        if text and text not in amenities:
            amenities.append(text)
    return amenities


def normalize_listing(
    raw: Dict[str, Any],
    *,
    url: str,
    source: str,
    scraped_at: datetime,
    max_images: int = MAX_IMAGES,
) -> RentalListing:
    description = strip_html(text_value(raw.get("description")))

    rating = coerce_number(raw.get("rating"))
    price = coerce_number(raw.get("price"))

    return RentalListing(
        url=url,
        source=source,
        title=_clean_text(raw.get("title")),
        description=_clean_text(description),
        price=price if price and price > 0 else None,
        bedrooms=coerce_int(raw.get("bedrooms")),
        bathrooms=coerce_number(raw.get("bathrooms")),
        sleeps=coerce_int(raw.get("sleeps")),
        location=_clean_text(raw.get("location")),
        images=filter_image_urls(_as_list(raw.get("images")), url, max_images),
        amenities=_clean_amenities(_as_list(raw.get("amenities"))),
        rating=rating if rating and rating > 0 else None,
        scraped_at=scraped_at,
    )
