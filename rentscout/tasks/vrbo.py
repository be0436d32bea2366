"""VRBO / HomeAway listing page extractor."""

from .base import Candidate, DomExtractor


class VrboExtractor(DomExtractor):
    name = "vrbo"
    ready_selector = "[data-stid='content-hotel-title'], [data-stid='content-markup']"

    title_candidates = [
        Candidate("[data-stid='content-hotel-title'] h1"),
        Candidate("[data-stid='content-hotel-title']"),
        Candidate("h1"),
        Candidate("meta[property='og:title']", "content"),
    ]
    description_candidates = [
        Candidate("[data-stid='content-markup']"),
        Candidate("[data-stid='property-description']"),
        Candidate("#description"),
        Candidate("meta[name='description']", "content"),
        Candidate("meta[property='og:description']", "content"),
    ]
    price_candidates = [
        Candidate("[data-stid='price-summary'] [data-test-id='price-summary-message-line']"),
        Candidate("[data-stid='price-summary']"),
        Candidate("[data-stid='price-lockup-text']"),
        Candidate("[data-test-id='price-summary-message-line']"),
    ]
    bedroom_candidates = [
        Candidate("[data-stid='content-item'] [data-stid='bedrooms']"),
        Candidate("[data-stid='bedrooms']"),
    ]
    bathroom_candidates = [
        Candidate("[data-stid='bathrooms']"),
    ]
    sleeps_candidates = [
        Candidate("[data-stid='sleeps']"),
        Candidate("[data-stid='occupancy']"),
    ]
    location_candidates = [
        Candidate("[data-stid='content-hotel-address']"),
        Candidate("[data-stid='location-summary'] h3"),
        Candidate("meta[property='og:locality']", "content"),
    ]
    rating_candidates = [
        Candidate("[data-stid='content-hotel-reviewsummary'] h3"),
        Candidate("[data-stid='reviews-summary'] span"),
        Candidate("[itemprop='ratingValue']"),
    ]
    image_selectors = [
        "[data-stid='image-gallery'] img",
        "[data-stid='media-carousel'] img",
        "figure img",
        "img",
    ]
    amenity_selectors = [
        "[data-stid='amenities-list'] li",
        "[data-stid='sp-content-list'] li",
        "[data-stid='content-item'] li",
    ]
