"""
MailerLite subscribers and group memberships extractor
"""

from typing import Any, AsyncIterator, Dict, List, Optional
import logging

from core.exceptions import ExtractionError
from ingestion.base import RawRecord, SourcePipeline
from ingestion.http import ProviderHTTP, flat_error_message
from ingestion.loaders.base import Sink
from ingestion.transformers.geo import IpCountryResolver
from ingestion.transformers.subscribers import (
    enrich_countries,
    normalize_membership,
    normalize_subscriber,
    subscriber_created_at,
)
from models.base import SourceId
from schemas.records import GroupMembershipRecord, SubscriberRecord
from schemas.window import SyncWindow

logger = logging.getLogger(__name__)


def next_link(payload) -> Optional[str]:
    return ((payload or {}).get("links") or {}).get("next")


class MailerLiteSource(SourcePipeline):
    """
    Subscribers created inside the window, then a snapshot of group memberships.

    The subscriber feed is newest-first and has no usable date filter, so it
    is paged by number and cut client-side: rows newer than `until` are
    skipped, the first row older than `since` ends the walk.

    Memberships are best-effort: a failing group page stops that group and
    leaves a note on the result.
    """

    source_id = SourceId.MAILERLITE
    provider_name = "MailerLite"
    record_type = SubscriberRecord
    required_settings = ("MAILERLITE_API_KEY",)

    API_URL = "https://connect.mailerlite.com/api"

    def _http(self) -> ProviderHTTP:
        return ProviderHTTP(
            self.provider_name,
            self.http_client,
            headers={
                "Authorization": f"Bearer {self.settings.MAILERLITE_API_KEY}",
                "Accept": "application/json",
            },
            error_parser=flat_error_message
        )

    async def fetch(self, window: SyncWindow) -> AsyncIterator[List[RawRecord]]:
        http = self._http()
        page_size = max(1, self.settings.MAILERLITE_PAGE_SIZE)
        page = 1

        while True:
            payload = await http.get_json(
                f"{self.API_URL}/subscribers",
                params={"limit": page_size, "page": page}
            )
            subscribers = payload.get("data") or []

            in_window = []
            reached_older = False
            for subscriber in subscribers:
                created_at = subscriber_created_at(subscriber)
                if created_at is None:
                    in_window.append(subscriber)
                elif created_at > window.until_utc:
                    continue
                elif created_at < window.since_utc:
                    reached_older = True
                    break
                else:
                    in_window.append(subscriber)

            if in_window:
                yield in_window

            if reached_older or len(subscribers) < page_size:
                return
            page += 1

    def normalize(self, raw: RawRecord) -> SubscriberRecord:
        return normalize_subscriber(raw)

    async def prepare(self, records: List[SubscriberRecord]) -> List[SubscriberRecord]:
        if not self.settings.GEOIP_BATCH_URL:
            return records

        resolver = IpCountryResolver(
            self.http_client,
            self.settings.GEOIP_BATCH_URL,
            batch_size=self.settings.GEOIP_BATCH_SIZE
        )
        enriched = await enrich_countries(records, resolver)
        if resolver.failed_batches:
            self.note(f"IP country lookup failed for {resolver.failed_batches} batch(es); country left empty")
        return enriched

    async def list_groups(self, http: ProviderHTTP) -> List[Dict[str, Any]]:
        groups: List[Dict[str, Any]] = []
        async for payload in self.follow_links(
            http, f"{self.API_URL}/groups", {"limit": 250}, next_link, "MailerLite groups"
        ):
            groups.extend(payload.get("data") or [])
        return groups

    async def sync_related(self, window: SyncWindow, sink: Sink) -> int:
        http = self._http()
        groups = await self.list_groups(http)
        columns = GroupMembershipRecord.columns()
        written = 0

        for group in groups:
            group_id = str(group.get("id") or "")
            if not group_id:
                continue
            try:
                async for payload in self.follow_links(
                    http,
                    f"{self.API_URL}/groups/{group_id}/subscribers",
                    {"limit": self.settings.MAILERLITE_PAGE_SIZE},
                    next_link,
                    f"MailerLite group {group_id}"
                ):
                    members = [
                        normalize_membership(subscriber, group_id)
                        for subscriber in payload.get("data") or []
                        if subscriber.get("id")
                    ]
                    if not members:
                        continue
                    result = await sink.upsert(
                        GroupMembershipRecord.COLLECTION,
                        GroupMembershipRecord.KEY_COLUMNS,
                        columns,
                        members
                    )
                    written += result.rows_written
            except ExtractionError as e:
                self.note(f"Group {group_id} memberships incomplete: {e.message}")

        logger.info(f"MailerLite: {len(groups)} groups, {written} membership rows written")
        return written
