"""
SQLAlchemy ORM models for database tables.

Models:
    base: Declarative Base, portable column types and enums (SourceId, SyncStatus)
    cursor: Per-source synchronization cursor (etl_cursors)
    sync_run: Audit row per source per invocation (sync_runs)
    orders: Stripe checkout sessions (stripe_orders)
    insights: Meta and TikTok daily ad insights
    subscribers: MailerLite subscribers and group memberships
    sales: Steam storefront sales

Every canonical collection carries `content_hash` and `ingested_at`, both
maintained by the sink rather than by the normalizers.

Usage:
    from models import SyncCursor, StripeOrder
    from models.base import Base, SourceId
"""

from models.base import Base, SourceId, SyncStatus
from models.cursor import SyncCursor
from models.sync_run import SyncRun
from models.orders import StripeOrder
from models.insights import MetaInsight, TikTokInsight
from models.subscribers import MailerLiteSubscriber, MailerLiteGroupMembership
from models.sales import SteamSale

__all__ = [
    "Base",
    "SourceId",
    "SyncStatus",
    "SyncCursor",
    "SyncRun",
    "StripeOrder",
    "MetaInsight",
    "TikTokInsight",
    "MailerLiteSubscriber",
    "MailerLiteGroupMembership",
    "SteamSale",
]
