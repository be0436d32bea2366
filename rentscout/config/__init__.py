"""Configuration management for the rental extraction service.

- Environment-based configuration system
- Browser, extraction, geocoding and price-lookup settings
"""

from .production import (
    ProductionConfig, DeploymentEnvironment, LogLevel,
    SecurityConfig, MonitoringConfig, SystemConfig,
    BrowserConfig, ExtractionConfig, GeocodingConfig, PriceConfig,
    get_config, reset_config
)

__all__ = [
    'ProductionConfig', 'DeploymentEnvironment', 'LogLevel',
    'SecurityConfig', 'MonitoringConfig', 'SystemConfig',
    'BrowserConfig', 'ExtractionConfig', 'GeocodingConfig', 'PriceConfig',
    'get_config', 'reset_config'
]
