"""Strategy chain ordering and the markup-only strategies."""
import json
from datetime import datetime, timezone

import pytest

from rentscout.models import PriceQueryContext
from rentscout.normalize import normalize_listing
from rentscout.parsers.fallback import (
    EmbeddedStateStrategy, ListingSource, ListingStrategy, ListingStrategyChain, StrategyResult,
    StructuredDataStrategy, TitleRegexStrategy, default_markup_strategies, fields_from_state, find_listing_node,
)
from rentscout.reliability.errors import ExtractionExhaustedError


class StaticStrategy(ListingStrategy):
    def __init__(self, name, result=None, error=None):
        self.name = name
        self._result = result
        self._error = error
        self.calls = 0

    async def run(self, source):
        self.calls += 1
        if self._error is not None:
            raise self._error
        return self._result


def _source(markup="", url="https://www.airbnb.com/rooms/1"):
    return ListingSource(markup=markup, url=url)


@pytest.mark.asyncio
class TestChain:
    async def test_first_titled_result_wins(self):
        first = StaticStrategy("first", StrategyResult("first", {"title": "From first"}))
        second = StaticStrategy("second", StrategyResult("second", {"title": "From second"}))
        result = await ListingStrategyChain([first, second]).run(_source())

        assert result.strategy == "first"
        assert second.calls == 0

    async def test_untitled_and_failing_strategies_are_skipped(self):
        strategies = [
            StaticStrategy("broken", error=RuntimeError("boom")),
            StaticStrategy("empty", None),
            StaticStrategy("untitled", StrategyResult("untitled", {"title": "  ", "price": 100})),
            StaticStrategy("good", StrategyResult("good", {"title": "Treehouse"})),
        ]
        result = await ListingStrategyChain(strategies).run(_source())

        assert result.strategy == "good"
        # fields are never merged across strategies
        assert "price" not in result.fields

    async def test_price_context_carried_to_winner(self):
        context = PriceQueryContext(api_key="k", product_id="p", impression_id="i")
        strategies = [
            StaticStrategy("state", StrategyResult("state", {"title": None}, price_context=context)),
            StaticStrategy("title", StrategyResult("title", {"title": "Treehouse"})),
        ]
        result = await ListingStrategyChain(strategies).run(_source())
        assert result.price_context is context

    async def test_exhausted(self):
        chain = ListingStrategyChain([StaticStrategy("a"), StaticStrategy("b", error=ValueError("bad"))])
        with pytest.raises(ExtractionExhaustedError, match="tried: a, b"):
            await chain.run(_source())

    async def test_missing_state_falls_through_to_structured_data(self):
        markup = """<html><head>
        <script type="application/ld+json">{"@type": "Product", "name": "A-Frame in the Woods",
          "offers": {"price": 210}}</script>
        </head><body></body></html>"""
        result = await ListingStrategyChain(default_markup_strategies()).run(_source(markup))

        assert result.strategy == "structured_data"
        assert result.fields["title"] == "A-Frame in the Woods"
        assert result.fields["price"] == 210

    async def test_embedded_state_strategy(self, embedded_markup):
        result = await EmbeddedStateStrategy().run(ListingSource(embedded_markup, "https://www.airbnb.com/rooms/1"))
        assert result.fields["title"] == "Cozy Cabin with Mountain Views"
        assert result.coordinates == (35.5951, -82.5515)
        assert result.price_context.is_complete
        assert result.record["bedrooms"] == 3


@pytest.mark.asyncio
class TestStructuredData:
    async def test_bootstrap_state_assignment(self):
        state = {"niobeMinimalClientData": [{"pdpListingDetail": {
            "name": "Harbor Loft", "bedrooms": 1, "bathrooms": 1,
            "personCapacity": 2, "photos": [{"large": "https://a0.muscache.com/im/pictures/h.jpg"}],
            "amenities": [{"name": "Wifi"}, {"name": "Kitchen"}], "city": "Portland",
        }}]}
        markup = f"<script>window.__BOOTSTRAP_STATE__ = {json.dumps(state)};</script>"
        result = await StructuredDataStrategy().run(_source(markup))

        assert result.fields["title"] == "Harbor Loft"
        assert result.fields["sleeps"] == 2
        assert result.fields["location"] == "Portland"
        assert result.fields["images"] == ["https://a0.muscache.com/im/pictures/h.jpg"]
        assert result.fields["amenities"] == ["Wifi", "Kitchen"]

    async def test_react_query_state(self):
        state = {"queries": [
            {"state": {"data": {"unrelated": True}}},
            {"state": {"data": {"listing": {"title": "Dune House", "bedroomCount": 3}}}},
        ]}
        markup = f"<script>window.__REACT_QUERY_STATE__ = {json.dumps(state)}</script>"
        result = await StructuredDataStrategy().run(_source(markup))
        assert result.fields["title"] == "Dune House"
        assert result.fields["bedrooms"] == 3

    async def test_raw_listing_blob(self):
        blob = {"data": {"pdpListingDetail": {"publicName": "Studio by the Park", "guests": 2}}}
        markup = f'<script type="application/json">{json.dumps(blob)}</script>'
        result = await StructuredDataStrategy().run(_source(markup))
        assert result.fields["title"] == "Studio by the Park"

    async def test_non_string_fields_dropped(self):
        state = {"pdpListingDetail": {
            "name": "Loft", "location": {"address": {"street": "1 Main"}},
            "description": {"html": "<p>x</p>"}, "photos": {"0": "https://a0.muscache.com/im/1.jpg"},
        }}
        markup = f"<script>window.__BOOTSTRAP_STATE__ = {json.dumps(state)};</script>"
        result = await StructuredDataStrategy().run(_source(markup))

        assert result.fields["title"] == "Loft"
        assert result.fields["location"] is None
        assert result.fields["description"] is None
        assert result.fields["images"] == []

        listing = normalize_listing(
            result.fields, url="https://www.airbnb.com/rooms/1", source="Airbnb",
            scraped_at=datetime(2024, 5, 1, tzinfo=timezone.utc),
        )
        assert listing.title == "Loft"
        assert listing.location is None

    async def test_json_ld_name_must_be_text(self):
        ld = {"@type": "Product", "name": {"@value": "Loft"}, "offers": {"price": "120"}}
        markup = f'<script type="application/ld+json">{json.dumps(ld)}</script>'
        assert await StructuredDataStrategy().run(_source(markup)) is None

    async def test_nothing_found(self):
        assert await StructuredDataStrategy().run(_source("<script>var x = 1;</script>")) is None


@pytest.mark.asyncio
class TestTitleRegex:
    async def test_generic_titles_rejected(self):
        markup = "<title>Airbnb: Vacation Rentals, Cabins</title><h1>Sunny Bungalow</h1>"
        result = await TitleRegexStrategy().run(_source(markup))
        assert result.fields == {"title": "Sunny Bungalow"}

    async def test_nothing_plausible(self):
        markup = "<title>Vacation Rentals &amp; more</title>"
        assert await TitleRegexStrategy().run(_source(markup)) is None


class TestListingNode:
    def test_depth_bounded(self):
        nested = {"name": "Deep"}
        for _ in range(15):
            nested = {"wrapper": nested}
        assert find_listing_node(nested) is None
        assert find_listing_node(nested, max_depth=20) == {"name": "Deep"}

    def test_state_without_listing(self):
        assert fields_from_state({"queries": {"a": {"data": {"x": 1}}}}) is None
