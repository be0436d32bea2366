"""Hostname classification for incoming listing URLs."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional
from urllib.parse import urlparse

from .reliability.errors import InvalidURLError


class SiteKind(str, Enum):
    VRBO = "vrbo"
    BOOKING = "booking"
    AIRBNB = "airbnb"
    GENERIC = "generic"


@dataclass(frozen=True)
class SiteTarget:
    kind: SiteKind
    source: str
    hostname: str


# Order matters: first substring match wins
_KNOWN_SOURCES = [
    ("vrbo", "VRBO"),
    ("booking", "Booking.com"),
    ("airbnb", "Airbnb"),
    ("expedia", "Expedia"),
    ("tripadvisor", "TripAdvisor"),
    ("homeaway", "HomeAway"),
    ("rentals", "Rentals.com"),
]

_KIND_BY_KEYWORD = {
    "vrbo": SiteKind.VRBO,
    "homeaway": SiteKind.VRBO,
    "booking": SiteKind.BOOKING,
    "airbnb": SiteKind.AIRBNB,
}


def parse_hostname(url: str) -> str:
    """Lower-cased hostname of an http(s) URL, or InvalidURLError."""
    if not url or not isinstance(url, str):
        raise InvalidURLError("URL is required")
    try:
        parsed = urlparse(url.strip())
    except ValueError as e:
        raise InvalidURLError(f"Invalid URL format: {url}", cause=e)
    if parsed.scheme not in ("http", "https") or not parsed.hostname:
        raise InvalidURLError(f"Invalid URL format: {url}")
    return parsed.hostname.lower()


def source_label(hostname: str) -> str:
    host = hostname.lower()
    for keyword, label in _KNOWN_SOURCES:
        if keyword in host:
            return label
    if host.startswith("www."):
        host = host[4:]
    first = host.split(".")[0]
    return first[:1].upper() + first[1:]


def site_kind(hostname: str) -> SiteKind:
    host = hostname.lower()
    for keyword, kind in _KIND_BY_KEYWORD.items():
        if keyword in host:
            return kind
    return SiteKind.GENERIC


def classify(url: str) -> SiteTarget:
    hostname = parse_hostname(url)
    return SiteTarget(kind=site_kind(hostname), source=source_label(hostname), hostname=hostname)


def airbnb_listing_id(url: str) -> Optional[str]:
    """Numeric room id from an Airbnb ``/rooms/<id>`` URL."""
    path = urlparse(url).path
    parts = [p for p in path.split("/") if p]
    for i, part in enumerate(parts[:-1]):
        if part == "rooms" and parts[i + 1].isdigit():
            return parts[i + 1]
    return None


def canonical_airbnb_url(url: str) -> str:
    listing_id = airbnb_listing_id(url)
    if listing_id:
        return f"https://www.airbnb.com/rooms/{listing_id}"
    return url
