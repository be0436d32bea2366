"""Bot-challenge detection and wait loop.

After navigation a page is either clean (NAVIGATED) or shows an interstitial
(CHALLENGED). A challenged page gets three concurrent waits: the title
changing away from the challenge, the site's content selector appearing, and
a grace timer. Whichever finishes first ends the race, but only the title
decides the verdict: if it still looks challenged, one extra fixed delay is
applied before the final call (RESOLVED or TIMED_OUT). Nothing in here
raises; a timed-out challenge just means the extractors will probably find
little.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence


class ChallengeState(str, Enum):
    NAVIGATED = "navigated"
    CHALLENGED = "challenged"
    RESOLVED = "resolved"
    TIMED_OUT = "timed_out"


@dataclass
class ChallengeOutcome:
    state: ChallengeState
    title: str = ""
    trigger: Optional[str] = None

    @property
    def blocked(self) -> bool:
        return self.state == ChallengeState.TIMED_OUT


class ChallengeResolver:
    """Waits out anti-bot interstitials for a single page."""

    def __init__(
        self,
        markers: Sequence[str],
        grace_ms: int = 15000,
        extra_delay_ms: int = 5000,
        poll_interval_ms: int = 500,
        logger: Optional[logging.Logger] = None,
    ):
        self.markers: List[str] = [m.lower() for m in markers]
        self.grace_ms = grace_ms
        self.extra_delay_ms = extra_delay_ms
        self.poll_interval_ms = poll_interval_ms
        self.logger = logger or logging.getLogger("rentscout.challenge")

    def is_challenge_title(self, title: Optional[str]) -> bool:
        lowered = (title or "").lower()
        return any(marker in lowered for marker in self.markers)

    async def resolve(self, page, ready_selector: Optional[str] = None) -> ChallengeOutcome:
        title = await self._safe_title(page)
        if not self.is_challenge_title(title):
            return ChallengeOutcome(ChallengeState.NAVIGATED, title)

        self.logger.warning(f"🛡️ Bot challenge detected: '{title}'")

        waiters = {
            asyncio.ensure_future(self._wait_title_change(page)): "title",
            asyncio.ensure_future(asyncio.sleep(self.grace_ms / 1000)): "grace",
        }
        if ready_selector:
            waiters[asyncio.ensure_future(self._wait_selector(page, ready_selector))] = "selector"

        done, pending = await asyncio.wait(list(waiters), return_when=asyncio.FIRST_COMPLETED)
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)

        trigger = next(waiters[task] for task in done)
        title = await self._safe_title(page)
        # judged by title only, even when the selector won
        if not self.is_challenge_title(title):
            self.logger.info(f"✅ Challenge cleared ({trigger})")
            return ChallengeOutcome(ChallengeState.RESOLVED, title, trigger)

        await asyncio.sleep(self.extra_delay_ms / 1000)
        title = await self._safe_title(page)
        if not self.is_challenge_title(title):
            self.logger.info("✅ Challenge cleared after extra delay")
            return ChallengeOutcome(ChallengeState.RESOLVED, title, "extra_delay")

        self.logger.warning(f"⚠️ Challenge still present after waiting: '{title}'")
        return ChallengeOutcome(ChallengeState.TIMED_OUT, title, trigger)

    async def _wait_title_change(self, page) -> None:
        while True:
            await asyncio.sleep(self.poll_interval_ms / 1000)
            if not self.is_challenge_title(await self._safe_title(page)):
                return

    async def _wait_selector(self, page, selector: str) -> None:
        try:
            await page.wait_for_selector(selector, timeout=self.grace_ms)
        except Exception as e:
            # A failed selector wait never wins the race
            self.logger.debug(f"Ready selector wait failed: {e}")
            await asyncio.get_running_loop().create_future()

    @staticmethod
    async def _safe_title(page) -> str:
        try:
            return await page.title() or ""
        except Exception:
            return ""
