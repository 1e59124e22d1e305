from sqlalchemy import Column, String, BigInteger, Float, Date, Index
from models.base import Base, JSONType, UTCDateTime


class MetaInsight(Base):
    """Meta Ads daily insights at ad level"""
    __tablename__ = "meta_insights"

    date = Column(Date, primary_key=True)
    account_id = Column(String(64), primary_key=True)
    ad_id = Column(String(64), primary_key=True)
    campaign_id = Column(String(64), nullable=True)
    adset_id = Column(String(64), nullable=True)
    impressions = Column(BigInteger, default=0)
    clicks = Column(BigInteger, default=0)
    spend = Column(Float, default=0)
    purchases = Column(Float, default=0)
    purchase_value = Column(Float, default=0)
    cpm = Column(Float, nullable=True)
    cpc = Column(Float, nullable=True)
    roas = Column(Float, nullable=True)
    raw = Column(JSONType, nullable=True)

    content_hash = Column(String(64), nullable=True)
    ingested_at = Column(UTCDateTime, nullable=False)

    __table_args__ = (
        Index("idx_meta_insights_account", "account_id", "date"),
    )


class TikTokInsight(Base):
    """TikTok Ads daily insights at ad level"""
    __tablename__ = "tiktok_insights"

    date = Column(Date, primary_key=True)
    advertiser_id = Column(String(64), primary_key=True)
    ad_id = Column(String(64), primary_key=True)
    campaign_id = Column(String(64), nullable=True)
    adgroup_id = Column(String(64), nullable=True)
    impressions = Column(BigInteger, default=0)
    clicks = Column(BigInteger, default=0)
    spend = Column(Float, default=0)
    conversions = Column(Float, default=0)
    conversion_value = Column(Float, default=0)
    cpm = Column(Float, nullable=True)
    cpc = Column(Float, nullable=True)
    roas = Column(Float, nullable=True)
    raw = Column(JSONType, nullable=True)

    content_hash = Column(String(64), nullable=True)
    ingested_at = Column(UTCDateTime, nullable=False)

    __table_args__ = (
        Index("idx_tiktok_insights_adv", "advertiser_id", "date"),
    )
