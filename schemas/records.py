"""
Canonical record shapes, one per sink collection, plus the sink batch envelope.

Records are built fresh on every fetch and never mutated: enrichment and
aggregation produce new instances via `model_copy(update=...)`.
"""

import datetime as dt
from typing import Any, ClassVar, Dict, List, Optional, Tuple
from pydantic import BaseModel, ConfigDict, Field, model_validator

INGESTED_AT = "ingested_at"


class CanonicalRecord(BaseModel):
    """
    Base for every normalized row.

    Subclasses declare the target collection and its natural key. The key
    columns always come first in `columns()`, `ingested_at` always last;
    the sink stamps `ingested_at` itself.
    """

    model_config = ConfigDict(frozen=True)

    COLLECTION: ClassVar[str] = ""
    KEY_COLUMNS: ClassVar[Tuple[str, ...]] = ()

    @classmethod
    def columns(cls) -> List[str]:
        keys = list(cls.KEY_COLUMNS)
        rest = [name for name in cls.model_fields if name not in cls.KEY_COLUMNS]
        return keys + rest + [INGESTED_AT]

    def key(self) -> Tuple[Any, ...]:
        return tuple(getattr(self, col) for col in self.KEY_COLUMNS)

    def to_row(self) -> Dict[str, Any]:
        return self.model_dump()


class StripeOrderRecord(CanonicalRecord):
    COLLECTION: ClassVar[str] = "stripe_orders"
    KEY_COLUMNS: ClassVar[Tuple[str, ...]] = ("id",)

    id: str
    created_at: dt.datetime
    amount: int = 0
    currency: str = "eur"
    status: str = "unknown"
    customer_email_hash: Optional[str] = None
    checkout_session_id: Optional[str] = None
    product_id: Optional[str] = None
    price_id: Optional[str] = None
    fbp: Optional[str] = None
    fbc: Optional[str] = None
    ttclid: Optional[str] = None
    country: Optional[str] = None
    checkout_metadata: Dict[str, Any] = Field(default_factory=dict)
    raw: Dict[str, Any] = Field(default_factory=dict)


class MetaInsightRecord(CanonicalRecord):
    COLLECTION: ClassVar[str] = "meta_insights"
    KEY_COLUMNS: ClassVar[Tuple[str, ...]] = ("date", "account_id", "ad_id")

    date: dt.date
    account_id: str
    ad_id: str
    campaign_id: Optional[str] = None
    adset_id: Optional[str] = None
    impressions: int = 0
    clicks: int = 0
    spend: float = 0.0
    purchases: float = 0.0
    purchase_value: float = 0.0
    cpm: Optional[float] = None
    cpc: Optional[float] = None
    roas: Optional[float] = None
    raw: Dict[str, Any] = Field(default_factory=dict)


class TikTokInsightRecord(CanonicalRecord):
    COLLECTION: ClassVar[str] = "tiktok_insights"
    KEY_COLUMNS: ClassVar[Tuple[str, ...]] = ("date", "advertiser_id", "ad_id")

    date: dt.date
    advertiser_id: str
    ad_id: str
    campaign_id: Optional[str] = None
    adgroup_id: Optional[str] = None
    impressions: int = 0
    clicks: int = 0
    spend: float = 0.0
    conversions: float = 0.0
    conversion_value: float = 0.0
    cpm: Optional[float] = None
    cpc: Optional[float] = None
    roas: Optional[float] = None
    raw: Dict[str, Any] = Field(default_factory=dict)


class SubscriberRecord(CanonicalRecord):
    COLLECTION: ClassVar[str] = "mailerlite_subscribers"
    KEY_COLUMNS: ClassVar[Tuple[str, ...]] = ("subscriber_id",)

    subscriber_id: str
    email_hash: Optional[str] = None
    status: Optional[str] = None
    created_at: Optional[dt.datetime] = None
    country: Optional[str] = None
    raw: Dict[str, Any] = Field(default_factory=dict)


class GroupMembershipRecord(CanonicalRecord):
    COLLECTION: ClassVar[str] = "mailerlite_group_memberships"
    KEY_COLUMNS: ClassVar[Tuple[str, ...]] = ("subscriber_id", "group_id")

    subscriber_id: str
    group_id: str
    added_at: Optional[dt.datetime] = None


class SteamSaleRecord(CanonicalRecord):
    COLLECTION: ClassVar[str] = "steam_sales"
    KEY_COLUMNS: ClassVar[Tuple[str, ...]] = ("date", "app_id", "country", "currency")

    date: dt.date
    app_id: str
    country: str = ""
    currency: str = ""
    units: int = 0
    gross_revenue: float = 0.0
    refunds: int = 0
    net_units: int = 0
    net_revenue: float = 0.0
    source: str = "api"
    raw: Dict[str, Any] = Field(default_factory=dict)


class SinkBatch(BaseModel):
    """One idempotent write: rows sharing a key projection are one entity"""

    collection: str = Field(..., min_length=1)
    key_columns: List[str] = Field(..., min_length=1)
    all_columns: List[str]
    rows: List[Any] = Field(default_factory=list)

    @model_validator(mode="after")
    def keys_within_columns(self):
        missing = [col for col in self.key_columns if col not in self.all_columns]
        if missing:
            raise ValueError(f"key columns {missing} are not in all_columns for {self.collection}")
        return self
