from sqlalchemy import Column, String, Index
from models.base import Base, JSONType, UTCDateTime


class MailerLiteSubscriber(Base):
    """MailerLite subscribers; the email address is only kept as a hash"""
    __tablename__ = "mailerlite_subscribers"

    subscriber_id = Column(String(64), primary_key=True)
    email_hash = Column(String(64), nullable=True)
    status = Column(String(50), nullable=True)
    created_at = Column(UTCDateTime, nullable=True)
    country = Column(String(8), nullable=True)
    raw = Column(JSONType, nullable=True)

    content_hash = Column(String(64), nullable=True)
    ingested_at = Column(UTCDateTime, nullable=False)

    __table_args__ = (
        Index("idx_ml_subs_created", "created_at"),
    )


class MailerLiteGroupMembership(Base):
    """Snapshot of which subscriber belongs to which group"""
    __tablename__ = "mailerlite_group_memberships"

    subscriber_id = Column(String(64), primary_key=True)
    group_id = Column(String(64), primary_key=True)
    added_at = Column(UTCDateTime, nullable=True)

    content_hash = Column(String(64), nullable=True)
    ingested_at = Column(UTCDateTime, nullable=False)
