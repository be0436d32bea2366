"""Single entry point: URL in, RentalListing out."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from .config.production import ProductionConfig, get_config
from .dispatcher import SiteKind, classify
from .geocode import ReverseGeocoder
from .models import RentalListing
from .normalize import normalize_listing
from .parsers.price import PriceClient
from .runtime import BrowserSession
from .tasks import AirbnbTask, extractor_for


async def extract_listing(
    url: str,
    *,
    config: Optional[ProductionConfig] = None,
    logger: Optional[logging.Logger] = None,
    geocoder: Optional[ReverseGeocoder] = None,
    price_client: Optional[PriceClient] = None,
) -> RentalListing:
    """Extract one listing.

    Raises InvalidURLError, BrowserLaunchError, NavigationError /
    NavigationTimeoutError, or ExtractionExhaustedError. Missing optional
    fields are never an error.
    """
    config = config or get_config()
    logger = logger or logging.getLogger("rentscout.scraper")
    scraped_at = datetime.now(timezone.utc)

    target = classify(url)
    logger.info(f"🏠 Extracting {target.source} listing: {url}")

    airbnb_task = None
    if target.kind == SiteKind.AIRBNB:
        airbnb_task = AirbnbTask(config, price_client=price_client, geocoder=geocoder, logger=logger)
        ready_selector = airbnb_task.ready_selector
    else:
        extractor = extractor_for(target.kind)(config.extraction, logger)
        ready_selector = extractor.ready_selector

    async with BrowserSession(config, logger=logger) as session:
        outcome = await session.navigate(url, ready_selector)
        if outcome.blocked:
            logger.warning(f"⚠️ Continuing despite unresolved challenge on {target.hostname}")
        await session.dump_diagnostics(target.source)

        if airbnb_task is not None:
            cookies = await session.cookies()
            raw, listing_url = await airbnb_task.run(session.page, url, cookies)
        else:
            raw = await extractor.extract(session.page, url)
            listing_url = url

    listing = normalize_listing(
        raw,
        url=listing_url,
        source=target.source,
        scraped_at=scraped_at,
        max_images=config.extraction.max_images,
    )
    logger.info(
        f"✅ {target.source}: '{listing.title}' | price={listing.price} | "
        f"{listing.bedrooms} bd / {listing.bathrooms} ba | {len(listing.images)} images"
    )
    return listing
