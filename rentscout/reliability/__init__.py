"""Reliability module for listing extraction.

- Error taxonomy with context for logging and HTTP responses
- Anti-detection fingerprinting for browser sessions
- Bot-challenge detection and wait loop
"""

from .errors import (
    ErrorContext, EnhancedError, ErrorCategory, ErrorSeverity, RecoveryStrategy,
    InvalidURLError, BrowserLaunchError, NavigationError, NavigationTimeoutError,
    ExtractionExhaustedError, EmbeddedStateError, PriceLookupError, GeocodingError,
    FATAL_ERRORS, classify_error
)
from .stealth import StealthManager, StealthLevel, UserAgentPool, BrowserProfile
from .challenge import ChallengeResolver, ChallengeState, ChallengeOutcome

__all__ = [
    # Error Handling
    'ErrorContext', 'EnhancedError', 'ErrorCategory', 'ErrorSeverity', 'RecoveryStrategy',
    'InvalidURLError', 'BrowserLaunchError', 'NavigationError', 'NavigationTimeoutError',
    'ExtractionExhaustedError', 'EmbeddedStateError', 'PriceLookupError', 'GeocodingError',
    'FATAL_ERRORS', 'classify_error',

    # Stealth and Anti-Detection
    'StealthManager', 'StealthLevel', 'UserAgentPool', 'BrowserProfile',

    # Bot challenges
    'ChallengeResolver', 'ChallengeState', 'ChallengeOutcome',
]
