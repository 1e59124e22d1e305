from sqlalchemy import Column, String, Integer, Float, Date, Index
from models.base import Base, JSONType, UTCDateTime


class SteamSale(Base):
    """
    Steam storefront sales aggregated per day, app, country and currency.

    Several detailed-sales lines (packages, platforms) can share one key;
    they are summed before being written.
    """
    __tablename__ = "steam_sales"

    date = Column(Date, primary_key=True)
    app_id = Column(String(32), primary_key=True)
    country = Column(String(8), primary_key=True)
    currency = Column(String(8), primary_key=True)
    units = Column(Integer, default=0)
    gross_revenue = Column(Float, default=0)
    refunds = Column(Integer, default=0)
    net_units = Column(Integer, default=0)
    net_revenue = Column(Float, default=0)
    source = Column(String(20), nullable=True)
    raw = Column(JSONType, nullable=True)

    content_hash = Column(String(64), nullable=True)
    ingested_at = Column(UTCDateTime, nullable=False)

    __table_args__ = (
        Index("idx_steam_sales_date", "date", "app_id"),
    )
