"""Reverse geocoding and the shared rate limit."""
import asyncio

import httpx
import pytest

from rentscout.config.production import GeocodingConfig
from rentscout.geocode import RateLimitGate, ReverseGeocoder, format_coordinates


class FakeClock:
    def __init__(self, start=100.0):
        self.now = start
        self.sleeps = []

    def __call__(self):
        return self.now

    async def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


def _geocoder(handler, gate=None):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    clock = FakeClock()
    gate = gate or RateLimitGate(1.1, clock=clock, sleep=clock.sleep)
    return ReverseGeocoder(GeocodingConfig(), gate, client=client), client


@pytest.mark.asyncio
class TestRateLimitGate:
    async def test_first_call_does_not_wait(self):
        clock = FakeClock()
        gate = RateLimitGate(1.1, clock=clock, sleep=clock.sleep)
        assert await gate.wait() == 0.0
        assert clock.sleeps == []

    async def test_back_to_back_calls_are_spaced(self):
        clock = FakeClock()
        gate = RateLimitGate(1.1, clock=clock, sleep=clock.sleep)
        await gate.wait()
        clock.now += 0.3
        waited = await gate.wait()
        assert waited == pytest.approx(0.8)
        assert clock.sleeps == [pytest.approx(0.8)]

    async def test_no_wait_after_interval(self):
        clock = FakeClock()
        gate = RateLimitGate(1.1, clock=clock, sleep=clock.sleep)
        await gate.wait()
        clock.now += 5
        assert await gate.wait() == 0.0

    async def test_concurrent_callers_serialized(self):
        clock = FakeClock()
        gate = RateLimitGate(1.1, clock=clock, sleep=clock.sleep)
        await asyncio.gather(gate.wait(), gate.wait(), gate.wait())
        assert clock.sleeps == [pytest.approx(1.1), pytest.approx(1.1)]


@pytest.mark.asyncio
class TestReverseGeocoder:
    async def test_city_and_state(self):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200, json={"address": {"city": "Asheville", "state": "North Carolina"}})

        geocoder, client = _geocoder(handler)
        async with client:
            assert await geocoder.resolve(35.5951, -82.5515) == "Asheville, North Carolina"

        assert len(requests) == 1
        assert requests[0].url.params["zoom"] == "18"
        assert requests[0].url.params["lon"] == "-82.5515"
        assert "rentscout" in requests[0].headers["User-Agent"]

    async def test_county_stripped_and_region_looked_up(self):
        zooms = []

        def handler(request):
            zoom = request.url.params["zoom"]
            zooms.append(zoom)
            if zoom == "18":
                return httpx.Response(200, json={"address": {"county": "Buncombe County"}})
            return httpx.Response(200, json={"address": {"state": "NC"}})

        geocoder, client = _geocoder(handler)
        async with client:
            assert await geocoder.resolve(35.6, -82.5) == "Buncombe, NC"
        assert zooms == ["18", "10"]

    async def test_second_tier_failure_keeps_city(self):
        def handler(request):
            if request.url.params["zoom"] == "18":
                return httpx.Response(200, json={"address": {"town": "Weaverville"}})
            return httpx.Response(500)

        geocoder, client = _geocoder(handler)
        async with client:
            assert await geocoder.resolve(35.7, -82.56) == "Weaverville"

    async def test_state_only(self):
        geocoder, client = _geocoder(lambda r: httpx.Response(200, json={"address": {"state": "Vermont"}}))
        async with client:
            assert await geocoder.resolve(44.0, -72.7) == "Vermont"

    @pytest.mark.parametrize("status", [403, 429])
    async def test_rate_limited_gives_none(self, status):
        geocoder, client = _geocoder(lambda r: httpx.Response(status))
        async with client:
            assert await geocoder.resolve(35.5, -82.5) is None

    async def test_empty_address(self):
        geocoder, client = _geocoder(lambda r: httpx.Response(200, json={"error": "Unable to geocode"}))
        async with client:
            assert await geocoder.resolve(0.5, 0.5) is None

    async def test_missing_coordinates_skip_request(self):
        calls = []
        geocoder, client = _geocoder(lambda r: calls.append(r) or httpx.Response(200, json={}))
        async with client:
            assert await geocoder.resolve(None, -82.5) is None
        assert calls == []


def test_format_coordinates():
    assert format_coordinates(35.5951, -82.5515) == "35.5951, -82.5515"
