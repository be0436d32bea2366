"""Browser session behavior that does not need a real browser."""
from unittest.mock import AsyncMock

import pytest
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from rentscout.config.production import DeploymentEnvironment, ProductionConfig
from rentscout.reliability.challenge import ChallengeState
from rentscout.reliability.errors import ErrorCategory, NavigationError, NavigationTimeoutError
from rentscout.reliability.stealth import StealthLevel, StealthManager
from rentscout.runtime import BrowserSession

from conftest import FakePage


class NavigablePage(FakePage):
    def __init__(self, markup, goto_error=None, **kwargs):
        super().__init__(markup, **kwargs)
        self.goto_error = goto_error
        self.gotos = []
        self.screenshots = []

    async def goto(self, url, wait_until=None, timeout=None):
        self.gotos.append((url, wait_until, timeout))
        if self.goto_error is not None:
            raise self.goto_error

    async def screenshot(self, path=None, full_page=False):
        self.screenshots.append(path)


def _session(environment=DeploymentEnvironment.DEVELOPMENT, **env):
    config = ProductionConfig(environment)
    config.browser.challenge_grace_ms = 100
    config.browser.challenge_extra_delay_ms = 10
    for key, value in env.items():
        setattr(config.system, key, value)
    return BrowserSession(config)


@pytest.mark.asyncio
class TestNavigate:
    async def test_clean_navigation(self):
        session = _session()
        session.page = NavigablePage("<title>Lake House</title>")
        outcome = await session.navigate("https://www.vrbo.com/1", "h1")

        assert outcome.state == ChallengeState.NAVIGATED
        assert session.page.gotos == [("https://www.vrbo.com/1", "domcontentloaded", 30000)]

    async def test_timeout(self):
        session = _session()
        session.page = NavigablePage("", goto_error=PlaywrightTimeoutError("Timeout 30000ms exceeded"))
        with pytest.raises(NavigationTimeoutError) as exc_info:
            await session.navigate("https://www.vrbo.com/1")
        assert exc_info.value.category == ErrorCategory.TIMEOUT
        assert exc_info.value.context.url == "https://www.vrbo.com/1"

    async def test_network_failure(self):
        session = _session()
        session.page = NavigablePage("", goto_error=RuntimeError("net::ERR_NAME_NOT_RESOLVED"))
        with pytest.raises(NavigationError) as exc_info:
            await session.navigate("https://nowhere.invalid/")
        assert not isinstance(exc_info.value, NavigationTimeoutError)
        assert exc_info.value.category == ErrorCategory.NETWORK


@pytest.mark.asyncio
class TestSessionHelpers:
    async def test_cookies(self):
        session = _session()
        session.context = AsyncMock()
        session.context.cookies.return_value = [{"name": "bev", "value": "abc"}, {"name": "cdn", "value": "1"}]
        assert await session.cookies() == {"bev": "abc", "cdn": "1"}

    async def test_cookies_failure(self):
        session = _session()
        session.context = AsyncMock()
        session.context.cookies.side_effect = RuntimeError("context closed")
        assert await session.cookies() == {}

    async def test_diagnostics_written_outside_production(self, tmp_path):
        session = _session(debug_dir=str(tmp_path))
        session.page = NavigablePage("<html><body>hi</body></html>")
        path = await session.dump_diagnostics("Booking.com")

        assert path.parent == tmp_path
        assert path.name.endswith("_booking_com.html")
        assert path.read_text(encoding="utf-8") == "<html><body>hi</body></html>"
        assert session.page.screenshots[0].endswith("_booking_com.png")

    async def test_no_diagnostics_in_production(self, tmp_path):
        session = _session(DeploymentEnvironment.PRODUCTION, debug_dir=str(tmp_path))
        session.page = NavigablePage("<html></html>")
        assert await session.dump_diagnostics("VRBO") is None
        assert list(tmp_path.iterdir()) == []

    async def test_stop_without_start(self):
        session = _session()
        await session.stop()
        assert session.page is None


class TestStealth:
    def test_scripts_by_level(self):
        assert len(StealthManager(StealthLevel.BASIC).init_scripts()) == 1
        assert len(StealthManager(StealthLevel.MODERATE).init_scripts()) == 2
        assert len(StealthManager(StealthLevel.AGGRESSIVE).init_scripts()) == 3

    def test_context_options(self):
        manager = StealthManager()
        options = manager.context_options(manager.new_profile())
        assert options["locale"] == "en-US"
        assert options["extra_http_headers"]["Sec-Fetch-Mode"] == "navigate"
        assert "Chrome" in options["user_agent"]
        assert options["viewport"]["width"] >= 1366

    @pytest.mark.asyncio
    async def test_scripts_installed(self):
        context = AsyncMock()
        await StealthManager(StealthLevel.AGGRESSIVE).apply_stealth_to_context(context)
        assert context.add_init_script.await_count == 3
