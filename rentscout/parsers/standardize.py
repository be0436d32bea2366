"""Flatten Airbnb's ``StaysPdpSections`` payload into one record.

Bedroom and bathroom counts are scattered over several section types and
change location between page versions, so they are resolved by a cascade:
logged event field, its alternate names, the overview items, the title
section, then the description text. The first non-zero value found wins and
later sources never overwrite it.
"""

from __future__ import annotations

import re
from typing import Any, Dict, List, Optional

from .utils import get_nested, strip_html

SECTIONS_ROOT = ("data", "presentation", "stayProductDetailPage", "sections")

BEDROOM_TEXT = re.compile(r'(\d+)\s+bedroom', re.IGNORECASE)
BATH_TEXT = re.compile(r'(\d+(?:\.\d+)?)\s+(?:shared\s+|private\s+)?bath', re.IGNORECASE)


def _number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return value or None
    if isinstance(value, str):
        match = re.search(r'\d+(?:\.\d+)?', value)
        if match:
            return float(match.group(0)) or None
    return None


def _from_text(text: Optional[str], pattern: re.Pattern) -> Optional[float]:
    if not text:
        return None
    match = pattern.search(text)
    if not match:
        return None
    return float(match.group(1)) or None


class CountCascade:
    """Keeps the first non-empty value offered."""

    def __init__(self) -> None:
        self.value: Optional[float] = None
        self.source: Optional[str] = None

    def offer(self, value: Any, source: str) -> None:
        if self.value is not None:
            return
        number = _number(value)
        if number is not None:
            self.value = number
            self.source = source

    @property
    def missing(self) -> bool:
        return self.value is None


def _blank_record(ev: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "coordinates": {
            "latitude": get_nested(ev, "listingLat"),
            "longitude": get_nested(ev, "listingLng"),
        },
        "room_type": get_nested(ev, "roomType", default=""),
        "is_super_host": bool(get_nested(ev, "isSuperhost", default=False)),
        "home_tier": get_nested(ev, "homeTier", default=""),
        "person_capacity": _number(get_nested(ev, "personCapacity")),
        "bedrooms": None,
        "bathrooms": None,
        "rating": {
            "accuracy": get_nested(ev, "accuracyRating"),
            "checkin": get_nested(ev, "checkinRating"),
            "cleanliness": get_nested(ev, "cleanlinessRating"),
            "communication": get_nested(ev, "communicationRating"),
            "location": get_nested(ev, "locationRating"),
            "value": get_nested(ev, "valueRating"),
            "guest_satisfaction": get_nested(ev, "guestSatisfactionOverall"),
            "review_count": get_nested(ev, "visibleReviewCount"),
        },
        "house_rules": {"additional": "", "general": []},
        "host": {"id": "", "name": "", "joined_on": "", "description": ""},
        "sub_description": {"title": "", "items": []},
        "amenities": [],
        "co_hosts": [],
        "images": [],
        "location_descriptions": [],
        "highlights": [],
        "title": "",
        "description": "",
        "is_guest_favorite": False,
    }


def from_details(details: Dict[str, Any]) -> Dict[str, Any]:
    """Standardized listing record from ``niobeClientData[0][1]``."""
    root = get_nested(details, *SECTIONS_ROOT, default={})
    ev = get_nested(root, "metadata", "loggingContext", "eventDataLogging", default={})
    sections: List[Dict[str, Any]] = get_nested(root, "sections", default=[])
    sbui_sections = get_nested(root, "sbuiData", "sectionConfiguration", "root", "sections", default=[])

    data = _blank_record(ev)
    bedrooms = CountCascade()
    bathrooms = CountCascade()

    bedrooms.offer(get_nested(ev, "bedrooms"), "event")
    bathrooms.offer(get_nested(ev, "bathrooms"), "event")
    bedrooms.offer(get_nested(ev, "bedroomCount") or get_nested(ev, "numBedrooms"), "event_alternate")
    bathrooms.offer(get_nested(ev, "bathroomCount") or get_nested(ev, "numBathrooms"), "event_alternate")

    for section in sbui_sections:
        type_name = get_nested(section, "sectionData", "__typename", default="")
        if type_name == "PdpHostOverviewDefaultSection":
            data["host"]["id"] = get_nested(
                section, "sectionData", "hostAvatar", "loggingEventData", "eventData", "pdpContext", "hostId",
                default="",
            )
            data["host"]["name"] = get_nested(section, "sectionData", "title", default="")
        elif type_name == "PdpOverviewV2Section":
            data["sub_description"]["title"] = get_nested(section, "sectionData", "title", default="")
            for item in get_nested(section, "sectionData", "overviewItems", default=[]):
                item_title = get_nested(item, "title", default="")
                data["sub_description"]["items"].append(item_title)
                bedrooms.offer(_from_text(item_title, BEDROOM_TEXT), "overview")
                bathrooms.offer(_from_text(item_title, BATH_TEXT), "overview")

    description_html = ""
    for section in sections:
        body = get_nested(section, "section", default={})
        if "isGuestFavorite" in body:
            data["is_guest_favorite"] = bool(body["isGuestFavorite"])

        type_name = get_nested(body, "__typename", default="")
        if type_name == "HostProfileSection":
            data["host"]["id"] = get_nested(body, "hostAvatar", "userID", default="")
            data["host"]["name"] = get_nested(body, "title", default="")
            data["host"]["joined_on"] = get_nested(body, "subtitle", default="")
            data["host"]["description"] = get_nested(body, "hostProfileDescription", "htmlText", default="")
            for cohost in get_nested(body, "additionalHosts", default=[]):
                data["co_hosts"].append({"id": cohost.get("id", ""), "name": cohost.get("name", "")})

        elif type_name == "PhotoTourModalSection":
            for media in get_nested(body, "mediaItems", default=[]):
                data["images"].append({
                    "title": media.get("accessibilityLabel") or "",
                    "url": media.get("baseUrl") or "",
                })

        elif type_name == "PoliciesSection":
            for rules_section in get_nested(body, "houseRulesSections", default=[]):
                rule = {"title": rules_section.get("title") or "", "values": []}
                for item in rules_section.get("items") or []:
                    if item.get("title") == "Additional rules":
                        data["house_rules"]["additional"] = get_nested(item, "html", "htmlText", default="")
                        continue
                    rule["values"].append({"title": item.get("title") or "", "icon": item.get("icon") or ""})
                data["house_rules"]["general"].append(rule)

        elif type_name == "LocationSection":
            for detail in get_nested(body, "seeAllLocationDetails", default=[]):
                data["location_descriptions"].append({
                    "title": detail.get("title") or "",
                    "content": get_nested(detail, "content", "htmlText", default=""),
                })

        elif type_name == "PdpTitleSection":
            data["title"] = section.get("title") or get_nested(body, "title", default="")
            bedrooms.offer(body.get("bedrooms") or body.get("bedroomCount"), "title_section")
            bathrooms.offer(body.get("bathrooms") or body.get("bathroomCount"), "title_section")

        elif type_name == "PdpHighlightsSection":
            for highlight in get_nested(body, "highlights", default=[]):
                data["highlights"].append({
                    "title": highlight.get("title") or "",
                    "subtitle": highlight.get("subtitle") or "",
                    "icon": highlight.get("icon") or "",
                })

        elif type_name == "PdpDescriptionSection":
            description_html = get_nested(body, "htmlDescription", "htmlText", default="")
            data["description"] = description_html

        elif type_name == "AmenitiesSection":
            for group in get_nested(body, "seeAllAmenitiesGroups", default=[]):
                data["amenities"].append({
                    "title": group.get("title") or "",
                    "values": [
                        {
                            "title": amenity.get("title") or "",
                            "subtitle": amenity.get("subtitle") or "",
                            "icon": amenity.get("icon") or "",
                            "available": amenity.get("available", True),
                        }
                        for amenity in group.get("amenities") or []
                    ],
                })

    # Description text is the last resort, after every structured source
    description_text = strip_html(description_html)
    bedrooms.offer(_from_text(description_text, BEDROOM_TEXT), "description")
    bathrooms.offer(_from_text(description_text, BATH_TEXT), "description")

    data["bedrooms"] = int(bedrooms.value) if bedrooms.value is not None else None
    data["bathrooms"] = bathrooms.value
    return data


def to_listing_fields(record: Dict[str, Any]) -> Dict[str, Any]:
    """Subset of a standardized record that feeds the normalizer."""
    amenities = [
        value["title"]
        for group in record.get("amenities", [])
        for value in group.get("values", [])
        if value.get("title") and value.get("available") is not False
    ]
    rating = get_nested(record, "rating", "guest_satisfaction")
    capacity = record.get("person_capacity")
    return {
        "title": record.get("title") or None,
        "description": record.get("description") or None,
        "bedrooms": record.get("bedrooms"),
        "bathrooms": record.get("bathrooms"),
        "sleeps": capacity or None,
        "images": [image["url"] for image in record.get("images", []) if image.get("url")],
        "amenities": amenities,
        "rating": rating or None,
    }


def coordinates_of(record: Dict[str, Any]):
    lat = get_nested(record, "coordinates", "latitude")
    lng = get_nested(record, "coordinates", "longitude")
    if lat in (None, 0) or lng in (None, 0):
        return None
    return float(lat), float(lng)
