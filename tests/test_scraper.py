"""End-to-end orchestration with the browser session replaced by a fake."""
import pytest

from rentscout import scraper
from rentscout.config.production import DeploymentEnvironment, ProductionConfig
from rentscout.reliability.challenge import ChallengeOutcome, ChallengeState
from rentscout.reliability.errors import InvalidURLError, NavigationTimeoutError

from conftest import FakePage


class FakeSession:
    """Stands in for BrowserSession; records what the orchestrator asked for."""

    instances = []

    def __init__(self, config, *, logger=None):
        self.page = FakeSession.next_page
        self.navigated = []
        self.diagnostics = []
        self.closed = False
        FakeSession.instances.append(self)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.closed = True

    async def navigate(self, url, ready_selector=None):
        self.navigated.append((url, ready_selector))
        if FakeSession.navigation_error is not None:
            raise FakeSession.navigation_error
        return FakeSession.outcome

    async def cookies(self):
        return {"bev": "abc"}

    async def dump_diagnostics(self, source):
        self.diagnostics.append(source)


@pytest.fixture
def fake_session(monkeypatch):
    FakeSession.instances = []
    FakeSession.next_page = None
    FakeSession.navigation_error = None
    FakeSession.outcome = ChallengeOutcome(ChallengeState.NAVIGATED, "")
    monkeypatch.setattr(scraper, "BrowserSession", FakeSession)
    return FakeSession


@pytest.fixture
def config():
    cfg = ProductionConfig(DeploymentEnvironment.DEVELOPMENT)
    cfg.extraction.field_timeout_ms = 200
    return cfg


GENERIC_PAGE = """
<html><head>
<meta property="og:title" content="Mesa Casita">
<meta name="description" content="Adobe casita with a view.">
</head><body><main>
<p>2 bedrooms, 1 bathroom. Sleeps 4. $130 per night.</p>
</main></body></html>
"""


@pytest.mark.asyncio
class TestExtractListing:
    async def test_generic_site(self, fake_session, config):
        fake_session.next_page = FakePage(GENERIC_PAGE)
        listing = await scraper.extract_listing("https://www.mesacasitas.com/stay/7", config=config)

        assert listing.source == "Mesacasitas"
        assert listing.url == "https://www.mesacasitas.com/stay/7"
        assert listing.title == "Mesa Casita"
        assert listing.description == "Adobe casita with a view."
        assert listing.price == 130.0
        assert listing.bedrooms == 2
        assert listing.bathrooms == 1.0
        assert listing.sleeps == 4
        assert listing.scraped_at.tzinfo is not None

        session = fake_session.instances[0]
        assert session.navigated == [("https://www.mesacasitas.com/stay/7", "main, article, [itemprop='name']")]
        assert session.diagnostics == ["Mesacasitas"]
        assert session.closed

    async def test_blocked_page_still_normalized(self, fake_session, config):
        fake_session.next_page = FakePage("<html><body><h1>Just a moment...</h1></body></html>")
        fake_session.outcome = ChallengeOutcome(ChallengeState.TIMED_OUT, "Just a moment...")
        listing = await scraper.extract_listing("https://www.vrbo.com/4455", config=config)

        assert listing.source == "VRBO"
        assert listing.price is None
        assert listing.images == []

    async def test_invalid_url_raises_before_launch(self, fake_session, config):
        with pytest.raises(InvalidURLError):
            await scraper.extract_listing("nonsense", config=config)
        assert fake_session.instances == []

    async def test_navigation_error_propagates(self, fake_session, config):
        fake_session.next_page = FakePage("<html></html>")
        fake_session.navigation_error = NavigationTimeoutError("Navigation timed out after 200ms")
        with pytest.raises(NavigationTimeoutError):
            await scraper.extract_listing("https://www.booking.com/hotel/x.html", config=config)
        assert fake_session.instances[0].closed
