"""Production configuration management for the rental extraction service.

- Defaults overridable through environment variables
- Browser, extraction, geocoding and price-lookup settings
- Monitoring and logging settings
"""

from __future__ import annotations

import os
import logging
from typing import Dict, Any, Optional, List
from dataclasses import dataclass, field
from enum import Enum


class DeploymentEnvironment(str, Enum):
    """Where the service runs; non-production enables diagnostics."""
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class LogLevel(str, Enum):
    """Accepted LOG_LEVEL values."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


STEALTH_LEVELS = ["basic", "moderate", "aggressive"]

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


@dataclass
class SecurityConfig:
    """Security configuration for the HTTP surface."""
    api_key_required: bool = False
    api_key: str = ""  # Set via SERVICE_API_KEY environment variable


@dataclass
class MonitoringConfig:
    """Metrics and log output settings."""
    prometheus_enabled: bool = True
    log_structured: bool = False
    log_level: LogLevel = LogLevel.INFO


@dataclass
class SystemConfig:
    """Service bind address and the debug artifact directory."""
    debug_dir: str = "/tmp/rentscout/debug"
    service_host: str = "0.0.0.0"
    service_port: int = 3000
    timezone: str = "UTC"


@dataclass
class BrowserConfig:
    """Chromium launch, navigation and bot-challenge settings."""
    headless: bool = True
    executable_path: Optional[str] = None
    stealth_level: str = "moderate"  # basic, moderate, aggressive
    navigation_timeout_ms: int = 60000
    challenge_grace_ms: int = 15000
    challenge_extra_delay_ms: int = 5000
    challenge_title_markers: List[str] = field(default_factory=lambda: [
        "just a moment",
        "attention required",
        "access denied",
        "bot or not",
        "pardon our interruption",
        "are you a robot",
        "security check",
    ])


@dataclass
class ExtractionConfig:
    """Per-field extraction limits."""
    field_timeout_ms: int = 3000
    max_images: int = 10
    min_image_width: int = 200


@dataclass
class GeocodingConfig:
    """Reverse geocoding (Nominatim-compatible) configuration."""
    base_url: str = "https://nominatim.openstreetmap.org/reverse"
    min_interval_seconds: float = 1.1
    detail_zoom: int = 18
    region_zoom: int = 10
    timeout_seconds: float = 10.0
    user_agent: str = "rentscout/1.0 (rental listing extraction)"


@dataclass
class PriceConfig:
    """Persisted-query price lookup configuration."""
    endpoint: str = (
        "https://www.airbnb.com/api/v3/StaysPdpSections/"
        "80c7889b4b0027d99ffea830f6c0d4911a6e863a957cbe1044823f0fc746bf1f"
    )
    query_hash: str = "80c7889b4b0027d99ffea830f6c0d4911a6e863a957cbe1044823f0fc746bf1f"
    currency: str = "USD"
    locale: str = "en"
    adults: int = 1
    timeout_seconds: float = 15.0
    user_agent: str = DEFAULT_USER_AGENT


class ProductionConfig:
    """All settings for one extraction process."""

    def __init__(self, environment: DeploymentEnvironment = DeploymentEnvironment.PRODUCTION):
        self.environment = environment
        self._load_configuration()

    def _load_configuration(self) -> None:
        """Defaults, then environment profile, then env var overrides."""
        self.system = SystemConfig()
        self.security = SecurityConfig()
        self.monitoring = MonitoringConfig()
        self.browser = BrowserConfig()
        self.extraction = ExtractionConfig()
        self.geocoding = GeocodingConfig()
        self.price = PriceConfig()

        # Development gets shorter navigation bounds and readable logs
        if self.environment != DeploymentEnvironment.PRODUCTION:
            self.browser.navigation_timeout_ms = 30000
            self.monitoring.log_structured = False
            self.monitoring.log_level = LogLevel.DEBUG

        self._load_from_environment()
        self._validate_configuration()

    @property
    def is_production(self) -> bool:
        return self.environment == DeploymentEnvironment.PRODUCTION

    def _load_from_environment(self) -> None:
        # System settings
        self.system.debug_dir = os.getenv("DEBUG_DIR", self.system.debug_dir)
        self.system.service_host = os.getenv("SERVICE_HOST", self.system.service_host)
        self.system.service_port = self._get_int_env("SERVICE_PORT", self.system.service_port)

        # Security settings
        self.security.api_key_required = self._get_bool_env("API_KEY_REQUIRED", self.security.api_key_required)
        self.security.api_key = os.getenv("SERVICE_API_KEY", self.security.api_key)

        # Monitoring settings
        self.monitoring.prometheus_enabled = self._get_bool_env("PROMETHEUS_ENABLED", self.monitoring.prometheus_enabled)
        self.monitoring.log_structured = self._get_bool_env("LOG_STRUCTURED", self.monitoring.log_structured)
        try:
            self.monitoring.log_level = LogLevel(os.getenv("LOG_LEVEL", self.monitoring.log_level.value).upper())
        except ValueError:
            pass

        # Browser settings
        self.browser.headless = self._get_bool_env("BROWSER_HEADLESS", self.browser.headless)
        self.browser.executable_path = os.getenv("BROWSER_EXECUTABLE_PATH") or self.browser.executable_path
        self.browser.stealth_level = os.getenv("STEALTH_LEVEL", self.browser.stealth_level).lower()
        self.browser.navigation_timeout_ms = self._get_int_env("NAVIGATION_TIMEOUT_MS", self.browser.navigation_timeout_ms)
        self.browser.challenge_grace_ms = self._get_int_env("CHALLENGE_GRACE_MS", self.browser.challenge_grace_ms)
        self.browser.challenge_extra_delay_ms = self._get_int_env(
            "CHALLENGE_EXTRA_DELAY_MS", self.browser.challenge_extra_delay_ms
        )

        # Extraction settings
        self.extraction.field_timeout_ms = self._get_int_env("FIELD_TIMEOUT_MS", self.extraction.field_timeout_ms)
        self.extraction.max_images = self._get_int_env("MAX_IMAGES", self.extraction.max_images)
        self.extraction.min_image_width = self._get_int_env("MIN_IMAGE_WIDTH", self.extraction.min_image_width)

        # Geocoding settings
        self.geocoding.base_url = os.getenv("GEOCODER_URL", self.geocoding.base_url)
        self.geocoding.min_interval_seconds = self._get_float_env(
            "GEOCODER_MIN_INTERVAL_S", self.geocoding.min_interval_seconds
        )
        self.geocoding.user_agent = os.getenv("GEOCODER_USER_AGENT", self.geocoding.user_agent)

        # Price lookup settings
        self.price.currency = os.getenv("PRICE_CURRENCY", self.price.currency)
        self.price.locale = os.getenv("PRICE_LOCALE", self.price.locale)

    def _get_bool_env(self, key: str, default: bool) -> bool:
        """Truthy/falsy env strings; anything else keeps the default."""
        value = os.getenv(key, "").lower()
        if value in ("true", "1", "yes", "on"):
            return True
        elif value in ("false", "0", "no", "off"):
            return False
        return default

    def _get_int_env(self, key: str, default: int) -> int:
        try:
            return int(os.getenv(key, str(default)))
        except ValueError:
            return default

    def _get_float_env(self, key: str, default: float) -> float:
        try:
            return float(os.getenv(key, str(default)))
        except ValueError:
            return default

    def _validate_configuration(self) -> None:
        if self.browser.stealth_level not in STEALTH_LEVELS:
            raise ValueError("Invalid stealth level. Must be: basic, moderate, or aggressive")

        if self.browser.navigation_timeout_ms <= 0:
            raise ValueError("navigation_timeout_ms must be positive")

        if self.extraction.field_timeout_ms <= 0:
            raise ValueError("field_timeout_ms must be positive")

        if self.extraction.max_images < 1:
            raise ValueError("max_images must be at least 1")

        if self.geocoding.min_interval_seconds < 0:
            raise ValueError("Geocoder minimum interval cannot be negative")

        if self.system.service_port < 1 or self.system.service_port > 65535:
            raise ValueError("Service port must be between 1 and 65535")

    def get_configuration_summary(self) -> Dict[str, Any]:
        """Non-secret settings, logged once at service start."""
        return {
            "environment": self.environment.value,
            "security": {
                "api_key_required": self.security.api_key_required,
            },
            "monitoring": {
                "prometheus_enabled": self.monitoring.prometheus_enabled,
                "log_level": self.monitoring.log_level.value,
            },
            "browser": {
                "headless": self.browser.headless,
                "stealth_level": self.browser.stealth_level,
                "navigation_timeout_ms": self.browser.navigation_timeout_ms,
                "custom_executable": bool(self.browser.executable_path),
            },
            "extraction": {
                "field_timeout_ms": self.extraction.field_timeout_ms,
                "max_images": self.extraction.max_images,
            },
            "geocoding": {
                "base_url": self.geocoding.base_url,
                "min_interval_seconds": self.geocoding.min_interval_seconds,
            },
            "diagnostics_enabled": not self.is_production,
        }

    def _log_format(self) -> str:
        if not self.monitoring.log_structured:
            return "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
        # One JSON object per line for log shippers
        return (
            '{"ts": "%(asctime)s", "level": "%(levelname)s", "logger": "%(name)s", '
            '"env": "' + self.environment.value + '", "msg": "%(message)s"}'
        )

    def setup_logging(self) -> logging.Logger:
        """Attach a single stderr handler to the rentscout logger tree."""
        logger = logging.getLogger("rentscout")
        logger.setLevel(self.monitoring.log_level.value)
        logger.handlers.clear()

        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(self._log_format()))
        logger.addHandler(handler)

        return logger


# Cached by get_config()
_config_instance: Optional[ProductionConfig] = None


def get_config(environment: Optional[DeploymentEnvironment] = None) -> ProductionConfig:
    """Process-wide configuration, rebuilt when a different environment is requested."""
    global _config_instance

    if _config_instance is None or (environment and environment != _config_instance.environment):
        if environment is None:
            env_str = os.getenv("DEPLOYMENT_ENVIRONMENT", "production").lower()
            try:
                environment = DeploymentEnvironment(env_str)
            except ValueError:
                environment = DeploymentEnvironment.PRODUCTION

        _config_instance = ProductionConfig(environment)

    return _config_instance


def reset_config() -> None:
    """Drop the cached instance so the next get_config() rereads the environment."""
    global _config_instance
    _config_instance = None
