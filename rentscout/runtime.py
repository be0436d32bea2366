from __future__ import annotations

import logging
import pathlib
from datetime import datetime, timezone
from typing import Dict, Optional

from playwright.async_api import async_playwright, Browser, BrowserContext, Page
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from .config.production import ProductionConfig
from .reliability.challenge import ChallengeResolver, ChallengeOutcome
from .reliability.errors import (
    BrowserLaunchError, ErrorContext, NavigationError, NavigationTimeoutError,
)
from .reliability.stealth import StealthManager, StealthLevel


class BrowserSession:
    """One isolated Chromium instance for a single extraction request.

    Use as an async context manager; the page, context, browser and the
    Playwright driver are all closed on exit whatever happened inside.
    """

    def __init__(self, config: ProductionConfig, *, logger: Optional[logging.Logger] = None) -> None:
        self._config = config
        self._logger = logger or logging.getLogger("rentscout.browser")
        self._playwright = None
        self.browser: Optional[Browser] = None
        self.context: Optional[BrowserContext] = None
        self.page: Optional[Page] = None

        self.stealth_manager = StealthManager(StealthLevel(config.browser.stealth_level), self._logger)
        self.challenge_resolver = ChallengeResolver(
            config.browser.challenge_title_markers,
            grace_ms=config.browser.challenge_grace_ms,
            extra_delay_ms=config.browser.challenge_extra_delay_ms,
            logger=self._logger,
        )

    async def __aenter__(self) -> "BrowserSession":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()

    async def start(self) -> None:
        browser_cfg = self._config.browser
        launch_kwargs = {
            "headless": browser_cfg.headless,
            "args": self.stealth_manager.launch_args,
        }
        if browser_cfg.executable_path:
            launch_kwargs["executable_path"] = browser_cfg.executable_path

        try:
            self._playwright = await async_playwright().start()
            self.browser = await self._playwright.chromium.launch(**launch_kwargs)

            profile = self.stealth_manager.new_profile()
            self.context = await self.browser.new_context(**self.stealth_manager.context_options(profile))
            await self.stealth_manager.apply_stealth_to_context(self.context)
            self.page = await self.context.new_page()
        except Exception as e:
            self._logger.error(f"❌ Browser launch failed: {e}")
            await self.stop()
            raise BrowserLaunchError(f"Browser launch failed: {e}", cause=e)

        mode = "headless" if browser_cfg.headless else "headed"
        self._logger.info(
            f"🚀 Chromium launched ({mode}, stealth={self.stealth_manager.stealth_level.value})"
        )

    async def stop(self) -> None:
        for resource in (self.page, self.context, self.browser):
            if resource is None:
                continue
            try:
                await resource.close()
            except Exception:
                pass
        self.page = None
        self.context = None
        self.browser = None
        if self._playwright:
            try:
                await self._playwright.stop()
            except Exception:
                pass
            self._playwright = None

    async def navigate(self, url: str, ready_selector: Optional[str] = None) -> ChallengeOutcome:
        """Load ``url`` and wait out any bot challenge."""
        timeout_ms = self._config.browser.navigation_timeout_ms
        self._logger.info(f"🌐 Navigating to {url}")
        try:
            await self.page.goto(url, wait_until="domcontentloaded", timeout=timeout_ms)
        except PlaywrightTimeoutError as e:
            raise NavigationTimeoutError(
                f"Navigation timed out after {timeout_ms}ms",
                context=ErrorContext(timestamp=datetime.now(timezone.utc), url=url, stage="navigation"),
                cause=e,
            )
        except Exception as e:
            raise NavigationError(
                f"Navigation failed: {e}",
                context=ErrorContext(timestamp=datetime.now(timezone.utc), url=url, stage="navigation"),
                cause=e,
            )

        return await self.challenge_resolver.resolve(self.page, ready_selector)

    async def cookies(self) -> Dict[str, str]:
        try:
            return {c["name"]: c["value"] for c in await self.context.cookies()}
        except Exception as e:
            self._logger.debug(f"Could not read cookies: {e}")
            return {}

    async def dump_diagnostics(self, source: str) -> Optional[pathlib.Path]:
        """Write rendered HTML and a full-page screenshot outside production."""
        if self._config.is_production or self.page is None:
            return None

        debug_dir = pathlib.Path(self._config.system.debug_dir)
        stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S")
        label = source.lower().replace(".", "_").replace(" ", "_")
        html_path = debug_dir / f"{stamp}_{label}.html"
        try:
            debug_dir.mkdir(parents=True, exist_ok=True)
            html_path.write_text(await self.page.content(), encoding="utf-8")
            await self.page.screenshot(path=str(debug_dir / f"{stamp}_{label}.png"), full_page=True)
            self._logger.info(f"🧪 Diagnostics written to {html_path}")
        except Exception as e:
            self._logger.warning(f"⚠️ Could not write diagnostics: {e}")
            return None
        return html_path
