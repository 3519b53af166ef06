"""HTML page adapter: the price list is a table on the supplier's page."""
import structlog

from fabric_ingestion.errors.exceptions import SourceUnavailableError
from fabric_ingestion.parsers.base_parser import SourceAdapter
from fabric_ingestion.parsers.readers import SourceTable, read_html_table

logger = structlog.get_logger(__name__)


class HtmlTableAdapter(SourceAdapter):
    """Reads the largest table of a web page."""

    def get_adapter_name(self) -> str:
        """Return adapter identifier."""
        return "html_table"

    async def load_table(self, source: str) -> SourceTable:
        if not source:
            raise SourceUnavailableError("Supplier has no parsing URL")
        async with self.http_session() as client:
            response = await self.fetch(client, source)
        logger.debug("html_page_downloaded", url=source, size=len(response.content))
        return read_html_table(response.text, source)
