"""
Stripe Checkout Sessions extractor (opaque cursor pagination)
"""

from typing import Any, AsyncIterator, Dict, List
import logging

from ingestion.base import RawRecord, SourcePipeline
from ingestion.http import ProviderHTTP, nested_error_message
from ingestion.transformers.orders import normalize_stripe_session
from models.base import SourceId
from schemas.records import StripeOrderRecord
from schemas.window import SyncWindow

logger = logging.getLogger(__name__)


class StripeSource(SourcePipeline):
    """
    Pages through /v1/checkout/sessions created inside the window.

    Pagination: `starting_after=<last id of previous page>` while
    `has_more` is true; an empty page also ends the listing.
    """

    source_id = SourceId.STRIPE
    provider_name = "Stripe"
    record_type = StripeOrderRecord
    required_settings = ("STRIPE_SECRET_KEY",)

    SESSIONS_URL = "https://api.stripe.com/v1/checkout/sessions"
    PAGE_SIZE = 100

    def _http(self) -> ProviderHTTP:
        return ProviderHTTP(
            self.provider_name,
            self.http_client,
            headers={"Authorization": f"Bearer {self.settings.STRIPE_SECRET_KEY}"},
            error_parser=nested_error_message
        )

    def _params(self, window: SyncWindow) -> List[tuple]:
        return [
            ("limit", str(self.PAGE_SIZE)),
            ("created[gte]", str(int(window.since_utc.timestamp()))),
            ("created[lte]", str(int(window.until_utc.timestamp()))),
            ("expand[]", "data.line_items"),
        ]

    async def fetch(self, window: SyncWindow) -> AsyncIterator[List[RawRecord]]:
        http = self._http()
        starting_after = None

        while True:
            params = self._params(window)
            if starting_after:
                params.append(("starting_after", starting_after))

            payload: Dict[str, Any] = await http.get_json(self.SESSIONS_URL, params=params)
            sessions = payload.get("data") or []
            if not sessions:
                return

            yield sessions

            if not payload.get("has_more"):
                return
            starting_after = sessions[-1]["id"]

    def normalize(self, raw: RawRecord) -> StripeOrderRecord:
        return normalize_stripe_session(raw)
