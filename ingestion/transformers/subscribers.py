"""
MailerLite subscribers and group memberships
"""

from typing import Any, Dict, List, Optional
from ingestion.transformers.geo import IpCountryResolver
from ingestion.transformers.normalizer import hash_email, parse_datetime, to_str
from schemas.records import GroupMembershipRecord, SubscriberRecord
from core.exceptions import NormalizationError


def subscriber_ip(subscriber: Dict[str, Any]) -> Optional[str]:
    return to_str(subscriber.get("ip_address") or subscriber.get("optin_ip"))


def subscriber_created_at(subscriber: Dict[str, Any]):
    return parse_datetime(subscriber.get("subscribed_at") or subscriber.get("created_at"))


def normalize_subscriber(subscriber: Dict[str, Any]) -> SubscriberRecord:
    """
    Field defaults:
    - email_hash: SHA-256 of the lower-cased email, None when absent
    - status: None when absent
    - created_at: subscribed_at, then created_at, else None
    - country: fields.country, then country, else None (may be enriched later)
    """
    if not subscriber.get("id"):
        raise NormalizationError(
            "Subscriber without id",
            context={"source": "mailerlite"}
        )

    fields = subscriber.get("fields") or {}
    return SubscriberRecord(
        subscriber_id=str(subscriber["id"]),
        email_hash=hash_email(subscriber.get("email")),
        status=to_str(subscriber.get("status")),
        created_at=subscriber_created_at(subscriber),
        country=to_str(fields.get("country") or subscriber.get("country")),
        raw=subscriber,
    )


def normalize_membership(subscriber: Dict[str, Any], group_id: str) -> GroupMembershipRecord:
    return GroupMembershipRecord(
        subscriber_id=str(subscriber["id"]),
        group_id=str(group_id),
        added_at=parse_datetime(subscriber.get("subscribed_at")),
    )


async def enrich_countries(
    records: List[SubscriberRecord],
    resolver: Optional[IpCountryResolver]
) -> List[SubscriberRecord]:
    """Fill missing countries from the subscriber's IP; unresolved stays None"""
    if resolver is None:
        return records

    pending = [r for r in records if r.country is None and subscriber_ip(r.raw)]
    if not pending:
        return records

    countries = await resolver.resolve(subscriber_ip(r.raw) for r in pending)
    enriched = []
    for record in records:
        if record.country is None:
            country = countries.get(subscriber_ip(record.raw) or "")
            if country:
                record = record.model_copy(update={"country": country})
        enriched.append(record)
    return enriched
