"""Data model shared by every extraction stage."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class RentalListing(BaseModel):
    """Normalized listing record.

    ``url`` and ``source`` are always present; everything else is
    best-effort and may be ``None`` (or empty for the list fields).
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    url: str
    source: str
    title: Optional[str] = None
    description: Optional[str] = None
    price: Optional[float] = None
    bedrooms: Optional[int] = None
    bathrooms: Optional[float] = None
    sleeps: Optional[int] = None
    location: Optional[str] = None
    images: List[str] = Field(default_factory=list)
    amenities: List[str] = Field(default_factory=list)
    rating: Optional[float] = None
    scraped_at: datetime = Field(alias="scrapedAt")

    def to_payload(self) -> Dict[str, Any]:
        """JSON-ready dict using wire names."""
        return self.model_dump(by_alias=True, mode="json")


class PriceQueryContext(BaseModel):
    """Credentials and identifiers needed to replay the pricing query."""

    api_key: Optional[str] = None
    product_id: Optional[str] = None
    impression_id: Optional[str] = None
    cookies: Dict[str, str] = Field(default_factory=dict)

    @property
    def is_complete(self) -> bool:
        return bool(self.api_key and self.product_id and self.impression_id)

    def cookie_header(self) -> str:
        return "; ".join(f"{name}={value}" for name, value in self.cookies.items())
