"""
Abstract base class for provider pipelines (fetch -> normalize -> sink)
"""

from abc import ABC, abstractmethod
from typing import Any, AsyncIterator, Callable, ClassVar, Dict, List, Optional, Tuple, Type
import httpx
import logging

from core.config import Settings
from core.exceptions import ConfigMissing, NormalizationError, SyncException
from ingestion.archive import RawArchive
from ingestion.http import ProviderHTTP
from ingestion.loaders.base import Sink
from models.base import SourceId
from schemas.records import CanonicalRecord
from schemas.window import SyncWindow

logger = logging.getLogger(__name__)

RawRecord = Dict[str, Any]


class SourcePipeline(ABC):
    """
    One external provider.

    Responsibilities:
    - Declare the settings it cannot run without
    - Page through the provider for a window (`fetch`), in pagination order
    - Map each raw record to its canonical record (`normalize`)
    - Optionally enrich or aggregate a page before it is written (`prepare`)

    Instances are built per run; `log_lines` collects notes for the result.
    """

    source_id: ClassVar[SourceId]
    provider_name: ClassVar[str]
    record_type: ClassVar[Type[CanonicalRecord]]
    required_settings: ClassVar[Tuple[str, ...]] = ()

    def __init__(
        self,
        settings: Settings,
        http_client: httpx.AsyncClient,
        archive: Optional[RawArchive] = None
    ):
        self.settings = settings
        self.http_client = http_client
        self.archive = archive
        self.log_lines: List[str] = []
        self.records_fetched = 0

    def check_config(self):
        """Raise ConfigMissing when a required setting is empty"""
        missing = [name for name in self.required_settings if not getattr(self.settings, name, None)]
        if missing:
            raise ConfigMissing(
                f"Missing {', '.join(missing)}",
                context={"source": self.source_id.value, "missing": missing}
            )

    @abstractmethod
    def fetch(self, window: SyncWindow) -> AsyncIterator[List[RawRecord]]:
        """
        Yield pages of raw records for the window.

        Finite, lazy and not restartable.
        """

    @abstractmethod
    def normalize(self, raw: RawRecord) -> CanonicalRecord:
        """Pure mapping of one raw record"""

    async def prepare(self, records: List[CanonicalRecord]) -> List[CanonicalRecord]:
        return records

    async def sync_related(self, window: SyncWindow, sink: Sink) -> int:
        """Secondary collections written after the main one; returns rows written"""
        return 0

    def note(self, message: str):
        logger.warning(f"[{self.source_id.value}] {message}")
        self.log_lines.append(message)

    async def follow_links(
        self,
        http: ProviderHTTP,
        url: str,
        params: Any,
        next_link: Callable[[Any], Optional[str]],
        label: str
    ) -> AsyncIterator[Any]:
        """
        Yield response payloads, following the literal next URL each one
        carries. Stops quietly after MAX_LINK_PAGES pages.
        """
        max_pages = max(1, self.settings.MAX_LINK_PAGES)
        payload = await http.get_json(url, params=params)
        pages = 1

        while True:
            yield payload
            next_url = next_link(payload)
            if not next_url:
                return
            if pages >= max_pages:
                self.note(f"{label}: stopped after {max_pages} pages, more data is available")
                return
            payload = await http.get_json(next_url)
            pages += 1

    def _normalize_page(self, page: List[RawRecord]) -> List[CanonicalRecord]:
        records = []
        for raw in page:
            try:
                records.append(self.normalize(raw))
            except SyncException:
                raise
            except Exception as e:
                raise NormalizationError(
                    f"Failed to normalize {self.provider_name} record",
                    context={"source": self.source_id.value, "record_id": raw.get("id")},
                    original_exception=e
                )
        return records

    async def run(self, window: SyncWindow, sink: Sink, batch_size: int = 500) -> int:
        """
        Fetch, normalize and write every page of the window.

        Returns:
            Rows newly written or changed in the sink
        """
        self.check_config()

        record_type = self.record_type
        columns = record_type.columns()
        rows_written = 0
        page_no = 0

        async for page in self.fetch(window):
            page_no += 1
            self.records_fetched += len(page)

            if self.archive is not None:
                await self.archive.archive(self.source_id.value, window, page_no, page)

            records = await self.prepare(self._normalize_page(page))

            for i in range(0, len(records), batch_size):
                result = await sink.upsert(
                    record_type.COLLECTION,
                    record_type.KEY_COLUMNS,
                    columns,
                    records[i:i + batch_size]
                )
                rows_written += result.rows_written

        rows_written += await self.sync_related(window, sink)

        logger.info(
            f"{self.provider_name}: fetched {self.records_fetched} records "
            f"in {page_no} pages, wrote {rows_written} rows"
        )
        return rows_written
