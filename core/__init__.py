"""
Core utilities and configuration for the analytics collector.

Modules:
    config: Application settings and the YAML source file loader
    exceptions: Custom exception hierarchy for error handling
    logging: Logging configuration

Usage:
    from core.config import settings, load_source_configs
    from core.exceptions import ConfigError, FetchError, ParseError
    from core.logging import setup_logging
"""

__all__ = [
    "settings",
    "load_source_configs",
    "setup_logging",
    # Exceptions
    "CollectorException",
    "ConfigError",
    "ScheduleError",
    "RetryableError",
    "FetchError",
    "AuthenticationError",
    "RateLimitError",
    "NetworkError",
    "SourceAPIError",
    "ParseError",
    "MetricValueError",
    "RowShapeError",
    "PublishError",
]
