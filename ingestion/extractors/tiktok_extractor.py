"""
TikTok Business API integrated report extractor (page-number pagination)
"""

from typing import Any, AsyncIterator, List, Optional
import json
import logging

from ingestion.base import RawRecord, SourcePipeline
from ingestion.http import ProviderHTTP
from ingestion.transformers.insights import normalize_tiktok_insight
from ingestion.transformers.normalizer import to_int
from models.base import SourceId
from schemas.records import TikTokInsightRecord
from schemas.window import SyncWindow

logger = logging.getLogger(__name__)

DIMENSIONS = ["stat_time_day", "ad_id", "adgroup_id", "campaign_id"]
METRICS = ["spend", "impressions", "clicks", "conversion", "conversions_value"]


def tiktok_error_message(payload: Any) -> Optional[str]:
    """Every response carries {"code", "message"}; any non-zero code is an error"""
    if isinstance(payload, dict) and payload.get("code") not in (None, 0, "0"):
        return str(payload.get("message") or f"TikTok error code {payload['code']}")
    return None


class TikTokSource(SourcePipeline):
    """
    Daily ad-level report for one advertiser.

    TikTok reports failures with HTTP 200 and a non-zero `code`, so success
    bodies are checked too.
    """

    source_id = SourceId.TIKTOK
    provider_name = "TikTok"
    record_type = TikTokInsightRecord
    required_settings = ("TIKTOK_ACCESS_TOKEN", "TIKTOK_ADVERTISER_ID")

    REPORT_URL = "https://business-api.tiktok.com/open_api/v1.3/report/integrated/get/"

    async def fetch(self, window: SyncWindow) -> AsyncIterator[List[RawRecord]]:
        http = ProviderHTTP(
            self.provider_name,
            self.http_client,
            headers={"Access-Token": self.settings.TIKTOK_ACCESS_TOKEN},
            error_parser=tiktok_error_message,
            check_success_payload=True
        )
        page = 1

        while True:
            params = {
                "advertiser_id": self.settings.TIKTOK_ADVERTISER_ID,
                "report_type": "BASIC",
                "data_level": "AUCTION_AD",
                "dimensions": json.dumps(DIMENSIONS),
                "metrics": json.dumps(METRICS),
                "start_date": window.since_date.isoformat(),
                "end_date": window.until_date.isoformat(),
                "page": page,
                "page_size": self.settings.TIKTOK_PAGE_SIZE,
            }
            payload = await http.get_json(self.REPORT_URL, params=params)
            data = payload.get("data") or {}
            rows = data.get("list") or []
            if not rows:
                return

            yield rows

            total_page = to_int((data.get("page_info") or {}).get("total_page"), default=1)
            if page >= total_page:
                return
            page += 1

    def normalize(self, raw: RawRecord) -> TikTokInsightRecord:
        return normalize_tiktok_insight(raw, self.settings.TIKTOK_ADVERTISER_ID)
