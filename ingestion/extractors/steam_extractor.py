"""
Steam partner financials extractor (two-phase: changed dates, then detailed sales)
"""

from typing import AsyncIterator, List
from datetime import date
import logging

from ingestion.base import RawRecord, SourcePipeline
from ingestion.http import ProviderHTTP
from ingestion.transformers.normalizer import parse_day, to_int
from ingestion.transformers.sales import aggregate_sales, normalize_sale_line
from models.base import SourceId
from schemas.records import SteamSaleRecord
from schemas.window import SyncWindow

logger = logging.getLogger(__name__)


class SteamSource(SourcePipeline):
    """
    Phase 1 lists every date whose sales changed; dates outside the window
    are dropped. Phase 2 pages GetDetailedSales for each remaining date with
    `highwatermark_id`, until the returned `max_id` stops increasing.

    One page is yielded per date. Lines sharing a natural key are summed
    before the write.
    """

    source_id = SourceId.STEAM
    provider_name = "Steam"
    record_type = SteamSaleRecord
    required_settings = ("STEAM_PARTNER_KEY",)

    SERVICE_URL = "https://partner.steam-api.com/IPartnerFinancialsService"
    CHANGED_DATES_URL = f"{SERVICE_URL}/GetChangedDatesForPartner/v001/"
    DETAILED_SALES_URL = f"{SERVICE_URL}/GetDetailedSales/v001/"

    def _http(self) -> ProviderHTTP:
        return ProviderHTTP(self.provider_name, self.http_client)

    async def changed_dates(self, http: ProviderHTTP, window: SyncWindow) -> List[date]:
        payload = await http.get_json(
            self.CHANGED_DATES_URL,
            params={"key": self.settings.STEAM_PARTNER_KEY, "highwatermark": 0}
        )
        days = {parse_day(value) for value in (payload.get("response") or {}).get("dates") or []}
        return sorted(
            day for day in days
            if day is not None and window.since_date <= day <= window.until_date
        )

    async def fetch(self, window: SyncWindow) -> AsyncIterator[List[RawRecord]]:
        http = self._http()
        days = await self.changed_dates(http, window)
        logger.info(f"Steam: {len(days)} changed dates inside the window")

        for day in days:
            lines: List[RawRecord] = []
            highwater = 0
            while True:
                payload = await http.get_json(
                    self.DETAILED_SALES_URL,
                    params={
                        "key": self.settings.STEAM_PARTNER_KEY,
                        "date": day.strftime("%Y/%m/%d"),
                        "highwatermark_id": highwater,
                    }
                )
                response = payload.get("response") or {}
                lines.extend(response.get("results") or [])

                max_id = to_int(response.get("max_id"))
                if max_id <= highwater:
                    break
                highwater = max_id

            if lines:
                yield lines

    def normalize(self, raw: RawRecord) -> SteamSaleRecord:
        return normalize_sale_line(raw)

    async def prepare(self, records: List[SteamSaleRecord]) -> List[SteamSaleRecord]:
        app_id = self.settings.STEAM_APP_ID
        if app_id:
            records = [r for r in records if r.app_id == str(app_id)]
        return aggregate_sales(records)
