"""
Meta (Graph API) ad-level insights extractor (page-link pagination)
"""

from typing import AsyncIterator, List, Optional
import json
import logging

from ingestion.base import RawRecord, SourcePipeline
from ingestion.http import ProviderHTTP, nested_error_message
from ingestion.transformers.insights import normalize_meta_insight, plain_account_id
from models.base import SourceId
from schemas.records import MetaInsightRecord
from schemas.window import SyncWindow

logger = logging.getLogger(__name__)

INSIGHT_FIELDS = [
    "date_start",
    "date_stop",
    "campaign_id",
    "adset_id",
    "ad_id",
    "spend",
    "impressions",
    "clicks",
    "purchase_roas",
    "actions",
    "action_values",
]


def next_page(payload) -> Optional[str]:
    return ((payload or {}).get("paging") or {}).get("next")


class MetaSource(SourcePipeline):
    """Daily ad-level insights for one ad account, windowed by calendar day"""

    source_id = SourceId.META
    provider_name = "Meta"
    record_type = MetaInsightRecord
    required_settings = ("FB_SYSTEM_USER_TOKEN", "FB_AD_ACCOUNT_ID")

    GRAPH_URL = "https://graph.facebook.com"
    PAGE_SIZE = 500

    def insights_url(self) -> str:
        account = f"act_{plain_account_id(self.settings.FB_AD_ACCOUNT_ID)}"
        return f"{self.GRAPH_URL}/{self.settings.META_API_VERSION}/{account}/insights"

    async def fetch(self, window: SyncWindow) -> AsyncIterator[List[RawRecord]]:
        http = ProviderHTTP(
            self.provider_name,
            self.http_client,
            headers={"Authorization": f"Bearer {self.settings.FB_SYSTEM_USER_TOKEN}"},
            error_parser=nested_error_message
        )
        params = {
            "level": "ad",
            "time_increment": "1",
            "time_range": json.dumps({
                "since": window.since_date.isoformat(),
                "until": window.until_date.isoformat(),
            }),
            "fields": ",".join(INSIGHT_FIELDS),
            "limit": str(self.PAGE_SIZE),
        }

        async for payload in self.follow_links(http, self.insights_url(), params, next_page, "Meta insights"):
            rows = payload.get("data") or []
            if rows:
                yield rows

    def normalize(self, raw: RawRecord) -> MetaInsightRecord:
        return normalize_meta_insight(raw, self.settings.FB_AD_ACCOUNT_ID)
