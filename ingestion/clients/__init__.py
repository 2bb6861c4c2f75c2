"""
Source clients that fetch raw tabular responses from the analytics API.
"""

from ingestion.clients.base import SourceClient
from ingestion.clients.google_analytics import GoogleAnalyticsClient, ServiceAccountTokenProvider

__all__ = [
    "SourceClient",
    "GoogleAnalyticsClient",
    "ServiceAccountTokenProvider",
]
