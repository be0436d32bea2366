"""Rental listing extraction engine."""

from .models import RentalListing, PriceQueryContext
from .scraper import extract_listing

__all__ = ["RentalListing", "PriceQueryContext", "extract_listing"]
