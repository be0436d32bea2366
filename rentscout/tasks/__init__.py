# Site extractors for listing pages
from typing import Callable, Dict

from ..dispatcher import SiteKind
from .base import DomExtractor
from .booking import BookingExtractor
from .vrbo import VrboExtractor
from .website import WebsiteExtractor
from .airbnb import AirbnbDomExtractor, AirbnbTask


# Extractor registry system
class ExtractorRegistry:
    def __init__(self) -> None:
        self._extractors: Dict[SiteKind, Callable[..., DomExtractor]] = {}

    def register(self, kind: SiteKind):
        def deco(factory):
            self._extractors[kind] = factory
            return factory
        return deco

    def resolve(self, kind: SiteKind) -> Callable[..., DomExtractor]:
        return self._extractors.get(kind, self._extractors[SiteKind.GENERIC])


_registry = ExtractorRegistry()
_registry.register(SiteKind.VRBO)(VrboExtractor)
_registry.register(SiteKind.BOOKING)(BookingExtractor)
_registry.register(SiteKind.GENERIC)(WebsiteExtractor)


def extractor_for(kind: SiteKind) -> Callable[..., DomExtractor]:
    return _registry.resolve(kind)


__all__ = [
    "DomExtractor",
    "VrboExtractor",
    "BookingExtractor",
    "WebsiteExtractor",
    "AirbnbDomExtractor",
    "AirbnbTask",
    "ExtractorRegistry",
    "extractor_for",
]
