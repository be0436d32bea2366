"""Anti-detection measures applied to every browser session.

- Launch flags that hide the automation switch
- Realistic desktop fingerprint (user agent, viewport, locale, timezone)
- Navigator property masking via init scripts
- Document-navigation headers
"""

from __future__ import annotations

import random
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from playwright.async_api import BrowserContext


class StealthLevel(str, Enum):
    """How many fingerprint patches are installed per context."""
    BASIC = "basic"           # Navigator masking only
    MODERATE = "moderate"     # Adds plugin/permission/chrome runtime spoofing
    AGGRESSIVE = "aggressive" # Adds WebGL vendor masking


@dataclass
class UserAgentPool:
    """Pool of realistic desktop Chrome user agents."""
    desktop_chrome: List[str] = field(default_factory=lambda: [
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/119.0.0.0 Safari/537.36",
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/119.0.0.0 Safari/537.36",
    ])


@dataclass
class BrowserProfile:
    """Browser fingerprint used for one session."""
    user_agent: str
    viewport_width: int
    viewport_height: int
    locale: str = "en-US"
    timezone: str = "America/New_York"


LAUNCH_ARGS = [
    '--disable-blink-features=AutomationControlled',
    '--no-sandbox',
    '--disable-setuid-sandbox',
    '--disable-dev-shm-usage',
    '--disable-infobars',
    '--no-first-run',
    '--no-default-browser-check',
]

NAVIGATOR_SCRIPT = """
    Object.defineProperty(navigator, 'webdriver', {
        get: () => undefined,
    });

    Object.defineProperty(navigator, 'languages', {
        get: () => ['en-US', 'en'],
    });
"""

RUNTIME_SCRIPT = """
    Object.defineProperty(navigator, 'plugins', {
        get: () => [1, 2, 3, 4, 5],
    });

    const originalQuery = window.navigator.permissions && window.navigator.permissions.query;
    if (originalQuery) {
        window.navigator.permissions.query = (parameters) => (
            parameters.name === 'notifications'
                ? Promise.resolve({ state: Notification.permission })
                : originalQuery(parameters)
        );
    }

    window.chrome = window.chrome || {};
    window.chrome.runtime = window.chrome.runtime || {};
"""

WEBGL_SCRIPT = """
    const originalGetParameter = WebGLRenderingContext.prototype.getParameter;
    WebGLRenderingContext.prototype.getParameter = function(parameter) {
        if (parameter === 37445) {
            return 'Intel Inc.';
        }
        if (parameter === 37446) {
            return 'Intel Iris OpenGL Engine';
        }
        return originalGetParameter.apply(this, arguments);
    };
"""


class StealthManager:
    """Builds the fingerprint and masking scripts for a browser context."""

    def __init__(self,
                 stealth_level: StealthLevel = StealthLevel.MODERATE,
                 logger: Optional[logging.Logger] = None):
        self.stealth_level = StealthLevel(stealth_level)
        self.logger = logger or logging.getLogger(__name__)
        self.user_agent_pool = UserAgentPool()

    @property
    def launch_args(self) -> List[str]:
        return list(LAUNCH_ARGS)

    def new_profile(self) -> BrowserProfile:
        viewport = self._get_realistic_viewport()
        return BrowserProfile(
            user_agent=random.choice(self.user_agent_pool.desktop_chrome),
            viewport_width=viewport["width"],
            viewport_height=viewport["height"],
        )

    def context_options(self, profile: BrowserProfile) -> Dict[str, Any]:
        """Keyword arguments for ``browser.new_context``."""
        return {
            "user_agent": profile.user_agent,
            "viewport": {"width": profile.viewport_width, "height": profile.viewport_height},
            "locale": profile.locale,
            "timezone_id": profile.timezone,
            "extra_http_headers": self.navigation_headers(),
        }

    def navigation_headers(self) -> Dict[str, str]:
        return {
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.9",
            "Sec-Fetch-Dest": "document",
            "Sec-Fetch-Mode": "navigate",
            "Sec-Fetch-Site": "none",
            "Sec-Fetch-User": "?1",
            "Upgrade-Insecure-Requests": "1",
        }

    def init_scripts(self) -> List[str]:
        scripts = [NAVIGATOR_SCRIPT]
        if self.stealth_level in (StealthLevel.MODERATE, StealthLevel.AGGRESSIVE):
            scripts.append(RUNTIME_SCRIPT)
        if self.stealth_level == StealthLevel.AGGRESSIVE:
            scripts.append(WEBGL_SCRIPT)
        return scripts

    async def apply_stealth_to_context(self, context: BrowserContext) -> None:
        """Install the masking scripts on a fresh context."""
        self.logger.debug(f"Applying {self.stealth_level.value} level stealth measures")
        for script in self.init_scripts():
            await context.add_init_script(script)

    def _get_realistic_viewport(self) -> Dict[str, int]:
        viewports = [
            {"width": 1920, "height": 1080},  # desktop
            {"width": 1366, "height": 768},   # laptop
            {"width": 1536, "height": 864},   # scaled 1080p
            {"width": 1440, "height": 900},   # 15in
        ]
        return random.choice(viewports)
