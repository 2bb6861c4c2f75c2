"""
Collection job - validate one source, fetch its table and parse it into records.

The job is the error boundary of a collection cycle: configuration,
transport and parse failures all leave ``run`` as a single
``CollectorException`` with context. Callers do not tell them apart; the
cycle failed and the next scheduled fire tries again.
"""

import logging
import os
from datetime import date
from pathlib import Path
from typing import Callable, Dict, List, Optional

from core.config import settings
from core.exceptions import CollectorException, ConfigError, FetchError
from ingestion.clients.base import SourceClient
from ingestion.clients.google_analytics import GoogleAnalyticsClient, ServiceAccountTokenProvider
from ingestion.dates import resolve_date_expression
from ingestion.parser import parse_response
from schemas.record import Record
from schemas.response import RangedResponse, RealtimeResponse, Response
from schemas.source import SourceConfig, SourceMode

logger = logging.getLogger(__name__)

ClientFactory = Callable[[SourceConfig], SourceClient]

# Core Reporting needs both dates; used when a ranged source leaves one out
DEFAULT_START_TIME = "7daysAgo"
DEFAULT_END_TIME = "today"


def default_client_factory(
    cfg: SourceConfig,
    token_provider: ServiceAccountTokenProvider
) -> SourceClient:
    """Build a Google Analytics client authenticating through ``token_provider``"""
    return GoogleAnalyticsClient(
        cfg.name,
        token_provider,
        timeout=settings.FETCH_TIMEOUT,
        max_retries=settings.FETCH_MAX_RETRIES,
        retry_delay=settings.FETCH_RETRY_DELAY
    )


class CollectionJob:
    """
    Run one collection cycle for a source.

    Responsibilities:
    - Validate the source configuration (fail fast, first failure wins)
    - Fetch the realtime or ranged table through the source client
    - Parse the table into records in row order
    """

    def __init__(
        self,
        client_factory: Optional[ClientFactory] = None,
        today: Optional[Callable[[], date]] = None
    ):
        self.client_factory = client_factory or self._default_client
        self.today = today or date.today
        self._token_providers: Dict[str, ServiceAccountTokenProvider] = {}

    def _default_client(self, cfg: SourceConfig) -> SourceClient:
        # One provider per source, so cached tokens survive across runs
        provider = self._token_providers.get(cfg.name)
        if provider is None or provider.credentials_file != cfg.credentials_file:
            provider = ServiceAccountTokenProvider(cfg.credentials_file)
            self._token_providers[cfg.name] = provider
        return default_client_factory(cfg, provider)

    def validate(self, cfg: SourceConfig) -> None:
        """
        Check the configuration in a fixed order.

        Raises:
            ConfigError: for the first failing check
        """
        context = {"source_name": cfg.name}

        if not cfg.credentials_file:
            raise ConfigError(
                "Google credentials file must not be empty",
                context={**context, "field_name": "credentials_file"}
            )
        credentials = Path(cfg.credentials_file)
        if not credentials.is_file() or not os.access(credentials, os.R_OK):
            raise ConfigError(
                "Error reading google credentials file",
                context={
                    **context,
                    "field_name": "credentials_file",
                    "credentials_file": cfg.credentials_file
                }
            )

        for field_name, label in (
            ("ids", "google analytics IDs"),
            ("metrics", "google analytics metrics"),
            ("dimensions", "google analytics dimensions"),
        ):
            if not getattr(cfg, field_name):
                raise ConfigError(
                    f"Config value {label} must not be empty",
                    context={**context, "field_name": field_name}
                )

    async def run(self, cfg: SourceConfig) -> List[Record]:
        """
        Collect one batch of records for ``cfg``.

        Returns:
            Records in the row order of the parsed response; empty when the
            source had no data

        Raises:
            ConfigError: invalid configuration, nothing was fetched
            FetchError: transport or authentication failure
            ParseError: malformed response
        """
        self.validate(cfg)

        client = self.client_factory(cfg)
        response = await self._fetch(client, cfg)
        records = parse_response(response)

        logger.info(
            f"Collected {len(records)} records for {cfg.name} ({cfg.mode.value})"
        )
        return records

    async def _fetch(self, client: SourceClient, cfg: SourceConfig) -> Response:
        try:
            if cfg.mode == SourceMode.RANGED:
                today = self.today()
                start = resolve_date_expression(cfg.start_time or DEFAULT_START_TIME, today)
                end = resolve_date_expression(cfg.end_time or DEFAULT_END_TIME, today)
                logger.debug(f"Fetching ranged data for {cfg.name}: {start} .. {end}")
                table = await client.fetch_ranged(
                    cfg.ids, start, end, cfg.metrics, cfg.dimensions
                )
                return RangedResponse(table=table)

            logger.debug(f"Fetching realtime data for {cfg.name}")
            table = await client.fetch_realtime(cfg.ids, cfg.metrics, cfg.dimensions)
            return RealtimeResponse(table=table)

        except CollectorException:
            raise

        except Exception as e:
            raise FetchError(
                "Could not get Google Analytics data",
                context={"source_name": cfg.name, "mode": cfg.mode.value},
                original_exception=e
            )
