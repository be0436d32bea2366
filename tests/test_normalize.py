"""Canonical record normalization."""
from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from rentscout.normalize import coerce_int, coerce_number, normalize_listing

SCRAPED_AT = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def _normalize(raw, url="https://www.vrbo.com/123", source="VRBO", **kwargs):
    return normalize_listing(raw, url=url, source=source, scraped_at=SCRAPED_AT, **kwargs)


class TestCoercion:
    @pytest.mark.parametrize("value,expected", [
        (150, 150.0),
        ("1,284", 1284.0),
        ("$150.50", 150.5),
        ("2.5 baths", 2.5),
        ("none", None),
        (None, None),
        (True, None),
    ])
    def test_number(self, value, expected):
        assert coerce_number(value) == expected

    def test_int(self):
        assert coerce_int("3 bedrooms") == 3
        assert coerce_int(2.0) == 2
        assert coerce_int("") is None


class TestNormalizeListing:
    def test_empty_raw_keeps_url_and_source(self):
        listing = _normalize({})
        assert listing.url == "https://www.vrbo.com/123"
        assert listing.source == "VRBO"
        assert listing.title is None
        assert listing.price is None
        assert listing.images == []
        assert listing.amenities == []

    def test_blank_strings_become_none(self):
        listing = _normalize({"title": "   ", "location": "\n", "description": "<p> </p>"})
        assert listing.title is None
        assert listing.location is None
        assert listing.description is None

    def test_non_text_values_become_none(self):
        listing = _normalize({
            "title": {"text": "Loft"}, "description": ["a"], "location": {"street": "1 Main"},
            "images": "https://a0.muscache.com/im/1.jpg", "amenities": [{"name": {"x": 1}}, "Wifi", True],
        })
        assert listing.title is None
        assert listing.description is None
        assert listing.location is None
        assert listing.images == []
        assert listing.amenities == ["Wifi"]

    def test_numeric_location_kept_as_text(self):
        assert _normalize({"location": 28801}).location == "28801"

    def test_non_positive_price_and_rating_dropped(self):
        listing = _normalize({"price": "-50", "rating": 0})
        assert listing.price is None
        assert listing.rating is None

    def test_values_coerced(self):
        listing = _normalize({
            "title": "  Blue   Ridge Retreat ",
            "description": "<b>Porch</b> &amp; fire pit",
            "price": "$1,284",
            "bedrooms": "4",
            "bathrooms": "2.5",
            "sleeps": 8.0,
            "rating": "4.9",
            "amenities": ["Wifi", {"title": "Hot tub"}, "Wifi", "  "],
        })
        assert listing.title == "Blue Ridge Retreat"
        assert listing.description == "Porch & fire pit"
        assert listing.price == 1284.0
        assert listing.bedrooms == 4
        assert listing.bathrooms == 2.5
        assert listing.sleeps == 8
        assert listing.rating == 4.9
        assert listing.amenities == ["Wifi", "Hot tub"]

    def test_images_filtered_and_capped(self):
        images = ["//cdn.example.com/logo.png"] + [f"//cdn.example.com/p{i}.jpg" for i in range(15)]
        listing = _normalize({"images": images}, max_images=10)
        assert len(listing.images) == 10
        assert listing.images[0] == "https://cdn.example.com/p0.jpg"

    def test_payload_uses_wire_names(self):
        payload = _normalize({"title": "Loft"}).to_payload()
        assert payload["scrapedAt"] == "2024-05-01T12:00:00Z"
        assert "scraped_at" not in payload
        assert set(payload) == {
            "url", "source", "title", "description", "price", "bedrooms", "bathrooms", "sleeps",
            "location", "images", "amenities", "rating", "scrapedAt",
        }

    def test_listing_is_frozen(self):
        listing = _normalize({"title": "Loft"})
        with pytest.raises(ValidationError):
            listing.title = "Other"
