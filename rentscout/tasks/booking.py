"""Booking.com property page extractor."""

from typing import Any, Dict

from .base import Candidate, DomExtractor, _log


class BookingExtractor(DomExtractor):
    name = "booking"
    ready_selector = "[data-testid='title'], #hp_hotel_name, h2.pp-header__title"

    title_candidates = [
        Candidate("[data-testid='title']"),
        Candidate("h2.pp-header__title"),
        Candidate("#hp_hotel_name"),
        Candidate("h1"),
        Candidate("meta[property='og:title']", "content"),
    ]
    description_candidates = [
        Candidate("[data-testid='property-description']"),
        Candidate("#property_description_content"),
        Candidate("meta[name='description']", "content"),
    ]
    price_candidates = [
        Candidate("[data-testid='price-and-discounted-price']"),
        Candidate("[data-testid='price-for-x-nights']"),
        Candidate(".prco-valign-middle-helper"),
        Candidate(".bui-price-display__value"),
    ]
    bedroom_candidates = [
        Candidate("[data-testid='property-highlights'] [data-testid='bedrooms']"),
        Candidate(".hprt-roomtype-bed"),
    ]
    bathroom_candidates = [
        Candidate("[data-testid='property-highlights'] [data-testid='bathrooms']"),
    ]
    sleeps_candidates = [
        Candidate("[data-testid='occupancy-config']"),
        Candidate(".hprt-occupancy-occupancy-info"),
    ]
    location_candidates = [
        Candidate("[data-testid='PropertyHeaderAddressDesktop-wrapper']"),
        Candidate("[data-node_tt_id='location_score_tooltip']"),
        Candidate(".hp_address_subtitle"),
    ]
    rating_candidates = [
        Candidate("[data-testid='review-score-component'] div"),
        Candidate("[data-testid='review-score-right-component']"),
        Candidate(".review-score-badge"),
    ]
    image_selectors = [
        "[data-testid='GalleryUnifiedDesktop-wrapper'] img",
        ".bh-photo-grid img",
        "a.bh-photo-grid-item img",
        "img",
    ]
    amenity_selectors = [
        "[data-testid='property-most-popular-facilities-wrapper'] li",
        "[data-testid='facility-group-icon'] + div",
        ".hotel-facilities-group li",
        ".important_facility",
    ]

    async def extract(self, page, url: str) -> Dict[str, Any]:
        await self._handle_popups(page)
        return await super().extract(page, url)

    async def _handle_popups(self, page):
        """Dismiss the cookie banner and sign-in prompt if present."""
        popup_selectors = [
            "#onetrust-accept-btn-handler",
            "button[aria-label='Dismiss sign-in info.']",
            "[data-testid='close-dialog']",
        ]
        for selector in popup_selectors:
            try:
                button = page.locator(selector).first
                if await button.is_visible(timeout=1000):
                    await button.click(timeout=2000)
                    _log(self.logger, "debug", f"Dismissed popup {selector}")
            except Exception:
                continue
