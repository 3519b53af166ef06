"""Abstract source adapter interface for pluggable supplier sources."""
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import httpx
import structlog

from fabric_ingestion.config import settings
from fabric_ingestion.errors.exceptions import SourceUnavailableError
from fabric_ingestion.models.parsing_rules import ParsingRules
from fabric_ingestion.models.source import ParseOutcome, SourceAnalysis
from fabric_ingestion.parsers.readers import SourceTable
from fabric_ingestion.parsers.row_reader import analyze_table, parse_table
from fabric_ingestion.parsers.vendor_profiles import FetchOptions, VendorProfile

logger = structlog.get_logger(__name__)

DEFAULT_HEADERS = {
    "User-Agent": "Mozilla/5.0 (compatible; fabric-ingestion/1.0)",
    "Accept": "*/*",
}


class SourceAdapter(ABC):
    """Abstract base class for all supplier source adapters.

    An adapter knows how to turn a supplier's ``source`` (a URL or a local
    file path) into decoded rows. Rule application is shared: every adapter
    feeds its rows through the same rule-driven walker, so adding a vendor
    never means writing a new normalizer.

    Implementations must provide:
    - load_table(): Fetch and decode the source into rows
    - get_adapter_name(): Return unique adapter identifier
    """

    def __init__(
        self,
        profile: Optional[VendorProfile] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.profile = profile
        self._http_client = http_client

    @property
    def fetch_options(self) -> FetchOptions:
        return self.profile.fetch if self.profile is not None else FetchOptions()

    @abstractmethod
    async def load_table(self, source: str) -> SourceTable:
        """Fetch and decode the source.

        Raises:
            SourceUnavailableError: If the source cannot be reached
            UnsupportedFormatError: If the payload cannot be decoded
        """
        pass

    @abstractmethod
    def get_adapter_name(self) -> str:
        """Return unique identifier for this adapter kind (e.g. "html_table")."""
        pass

    async def analyze(self, source: str) -> SourceAnalysis:
        """Sample the source for rule inference."""
        table = await self.load_table(source)
        analysis = analyze_table(table, settings.analyze_sample_rows)
        logger.info(
            "source_analyzed",
            adapter=self.get_adapter_name(),
            sample_rows=len(analysis.sample_rows),
            header_row=analysis.header_row,
        )
        return analysis

    async def parse(self, source: str, rules: ParsingRules) -> ParseOutcome:
        """Fetch the source and normalize every row with the given rules."""
        table = await self.load_table(source)
        return parse_table(table, rules)

    async def validate_file(self, path: str) -> bool:
        """Check that a staged file is a usable source for this adapter.

        Only adapters that consume staged files support this.
        """
        raise NotImplementedError(f"{self.get_adapter_name()} does not consume staged files")

    # ========================================================================
    # HTTP helpers
    # ========================================================================

    @asynccontextmanager
    async def http_session(self) -> AsyncIterator[httpx.AsyncClient]:
        """Yield the injected client, or a short-lived one closed on exit."""
        if self._http_client is not None:
            yield self._http_client
            return
        async with httpx.AsyncClient(
            timeout=settings.http_timeout,
            headers=DEFAULT_HEADERS,
            follow_redirects=True,
        ) as client:
            yield client

    async def fetch(
        self,
        client: httpx.AsyncClient,
        url: str,
        missing_ok: bool = False,
    ) -> Optional[httpx.Response]:
        """GET a URL, mapping transport and HTTP errors to SourceUnavailableError.

        With ``missing_ok`` a 404 answer returns None instead of raising.
        """
        try:
            response = await client.get(url)
            if missing_ok and response.status_code == 404:
                return None
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.warning(
                "source_http_error",
                adapter=self.get_adapter_name(),
                url=url,
                status_code=e.response.status_code,
            )
            raise SourceUnavailableError(
                f"Source returned HTTP {e.response.status_code}: {url}"
            ) from e
        except httpx.HTTPError as e:
            logger.warning("source_unreachable", adapter=self.get_adapter_name(), url=url, error=str(e))
            raise SourceUnavailableError(f"Source unreachable: {url}: {e}") from e
        return response
