"""Locate and decode the hydration state Airbnb inlines into listing pages."""

from __future__ import annotations

import json
import re
from typing import Any, Dict, Mapping, Optional, Tuple

from ..models import PriceQueryContext
from ..reliability.errors import EmbeddedStateError
from .utils import get_nested, remove_space, script_texts, soup_of

STATE_ELEMENT_ID = "data-deferred-state-0"

LANGUAGE_PATTERN = re.compile(r'"language":"([^"]+)"')
API_KEY_PATTERNS = [
    re.compile(r'"key":"([^"]+)"'),
    re.compile(r'["\']apiKey["\']\s*:\s*["\']([^"\']+)["\']'),
    re.compile(r'X-Airbnb-Api-Key["\']?\s*[:=]\s*["\']([^"\']+)["\']', re.IGNORECASE),
    re.compile(r'api_key["\']?\s*[:=]\s*["\']([^"\']+)["\']'),
]


def find_api_key(markup: str) -> Optional[str]:
    """Search the raw markup first, then each inline script on its own."""
    for pattern in API_KEY_PATTERNS:
        match = pattern.search(markup or "")
        if match:
            return match.group(1)
    for script in script_texts(markup):
        for pattern in API_KEY_PATTERNS:
            match = pattern.search(script)
            if match:
                return match.group(1)
    return None


def parse_body_details(markup: str) -> Tuple[Dict[str, Any], str, Optional[str]]:
    """Return ``(details, language, api_key)`` from a listing page.

    Raises EmbeddedStateError when the state node is missing, is not JSON,
    or lacks the ``niobeClientData[0][1]`` payload.
    """
    element = soup_of(markup).find(id=STATE_ELEMENT_ID)
    if element is None:
        raise EmbeddedStateError(f"Could not find #{STATE_ELEMENT_ID} element in HTML")

    state_text = remove_space(element.get_text())
    try:
        state = json.loads(state_text)
    except ValueError as e:
        raise EmbeddedStateError(f"Failed to parse JSON from {STATE_ELEMENT_ID}: {e}", cause=e)

    details = get_nested(state, "niobeClientData", 0, 1)
    if not isinstance(details, dict):
        raise EmbeddedStateError("Could not find details data in niobeClientData structure")

    language_match = LANGUAGE_PATTERN.search(markup)
    language = language_match.group(1) if language_match else "en"

    return details, language, find_api_key(markup)


def parse_body_details_wrapper(
    markup: str, cookies: Optional[Mapping[str, str]] = None
) -> Tuple[Dict[str, Any], str, PriceQueryContext]:
    details, language, api_key = parse_body_details(markup)

    product_id = get_nested(details, "variables", "id")
    impression_id = get_nested(details, "variables", "pdpSectionsRequest", "p3ImpressionId")

    context = PriceQueryContext(
        api_key=api_key,
        product_id=str(product_id) if product_id is not None else None,
        impression_id=str(impression_id) if impression_id is not None else None,
        cookies=dict(cookies or {}),
    )
    return details, language, context
