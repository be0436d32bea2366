"""Rental listing extraction micro-service.

This FastAPI app exposes:
- POST /api/scrape-rental to extract one listing synchronously
- /metrics for Prometheus and /healthz (alias /health) for liveness

Every request launches its own browser session; nothing is shared between
requests except the geocoding rate limit.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse, Response
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST

from .config.production import get_config
from .dispatcher import classify
from .reliability.errors import FATAL_ERRORS, ErrorContext, InvalidURLError, classify_error
from .scraper import extract_listing

# Resolved once at import
config = get_config()

URL_FIELDS = ("url", "rentalUrl", "link", "Rental URL", "Rental Link")

# ----------------------------------------------------------------------------
# Logging
# ----------------------------------------------------------------------------

def init_service_logger() -> logging.Logger:
    """Initialize the package logger and return the service logger."""
    config.setup_logging()
    logger = logging.getLogger("rentscout.service")
    logger.info(f"⚙️ Configuration: {config.get_configuration_summary()}")
    return logger


service_logger = init_service_logger()

# ----------------------------------------------------------------------------
# Metrics
# ----------------------------------------------------------------------------

REQUEST_COUNT = Counter(
    "rentscout_request_count",
    "HTTP requests handled by the rental service",
    labelnames=["endpoint", "method", "status"],
)
REQUEST_LATENCY = Histogram(
    "rentscout_request_latency_seconds",
    "Seconds spent serving each request",
    labelnames=["endpoint"],
)

SCRAPE_COUNT = Counter(
    "rentscout_scrape_count",
    "Number of listing extractions",
    labelnames=["source", "status"],
)

SCRAPE_DURATION = Histogram(
    "rentscout_scrape_duration_seconds",
    "Listing extraction duration in seconds",
    labelnames=["source"],
)

# ----------------------------------------------------------------------------
# App
# ----------------------------------------------------------------------------

app = FastAPI(title="Rental Listing Extraction Service", version="1.0.0")


@app.middleware("http")
async def prometheus_middleware(request: Request, call_next):
    """Count and time every HTTP request by path."""
    endpoint = request.url.path
    method = request.method
    with REQUEST_LATENCY.labels(endpoint).time():
        response = await call_next(request)
    REQUEST_COUNT.labels(endpoint, method, response.status_code).inc()
    return response


@app.get("/healthz")
@app.get("/health")
async def healthz() -> Dict[str, str]:
    """Liveness probe."""
    return {"status": "ok", "environment": config.environment.value}


@app.get("/metrics")
async def metrics():
    """Expose counters in the Prometheus text format."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


def _requested_url(body: Dict[str, Any]) -> Optional[str]:
    for key in URL_FIELDS:
        value = body.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


@app.post("/api/scrape-rental")
async def scrape_rental(request: Request):
    """Extract a listing and return it with a success envelope."""
    if config.security.api_key_required:
        api_key_header = request.headers.get("x-api-key")
        if not api_key_header or api_key_header != config.security.api_key:
            raise HTTPException(status_code=401, detail="Invalid or missing API key")

    try:
        body = await request.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}

    url = _requested_url(body)
    if not url:
        return JSONResponse(status_code=400, content={"error": "URL is required"})

    try:
        source = classify(url).source
    except InvalidURLError:
        return JSONResponse(status_code=400, content={"error": "Invalid URL format"})

    started = time.perf_counter()
    try:
        listing = await extract_listing(url, config=config, logger=service_logger)
    except Exception as e:
        error = classify_error(e, ErrorContext(timestamp=datetime.now(timezone.utc), url=url, site=source, stage="extract"))
        SCRAPE_COUNT.labels(source, "error").inc()
        # unexpected errors keep their traceback in the log
        service_logger.error(
            f"❌ Failed to scrape {url}: {error.message}", exc_info=not isinstance(e, FATAL_ERRORS)
        )
        return JSONResponse(
            status_code=500,
            content={"error": "Failed to scrape rental", "message": error.message, "details": error.to_dict()},
        )
    finally:
        SCRAPE_DURATION.labels(source).observe(time.perf_counter() - started)

    SCRAPE_COUNT.labels(source, "success").inc()
    payload = listing.to_payload()
    return {
        "success": True,
        "message": "Rental scraped successfully!",
        **payload,
        "pricePerNight": payload.get("price"),
    }


def run() -> None:
    import uvicorn

    uvicorn.run(app, host=config.system.service_host, port=config.system.service_port)
