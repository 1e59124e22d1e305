from sqlalchemy import Column, String, BigInteger, Index
from models.base import Base, JSONType, UTCDateTime


class StripeOrder(Base):
    """
    Stripe Checkout Sessions, one row per session.

    Field Mapping:
    - id -> id, checkout_session_id
    - created (epoch seconds) -> created_at
    - amount_total -> amount (minor units)
    - payment_status -> status
    - customer_details.email -> customer_email_hash (SHA-256, lower-cased)
    - line_items.data[0].price -> product_id, price_id
    - metadata.fbp / fbc / ttclid -> attribution ids
    - customer_details.address.country -> country
    """
    __tablename__ = "stripe_orders"

    id = Column(String(255), primary_key=True)
    created_at = Column(UTCDateTime, nullable=False)
    amount = Column(BigInteger, nullable=False)
    currency = Column(String(10), nullable=False)
    status = Column(String(50), nullable=False)
    customer_email_hash = Column(String(64), nullable=True)
    checkout_session_id = Column(String(255), nullable=True)
    product_id = Column(String(255), nullable=True)
    price_id = Column(String(255), nullable=True)
    fbp = Column(String(255), nullable=True)
    fbc = Column(String(255), nullable=True)
    ttclid = Column(String(255), nullable=True)
    country = Column(String(8), nullable=True)
    checkout_metadata = Column(JSONType, nullable=True)
    raw = Column(JSONType, nullable=True)

    content_hash = Column(String(64), nullable=True)
    ingested_at = Column(UTCDateTime, nullable=False)

    __table_args__ = (
        Index("idx_stripe_orders_created", "created_at"),
    )
