from sqlalchemy import Column, DateTime, Index, Integer, String

from app.core.database import Base


class SendRecordRow(Base):
    __tablename__ = "send_records"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(64), nullable=False)
    sent_at = Column(DateTime, nullable=False)
    recipient = Column(String(320), nullable=True)

    __table_args__ = (Index("ix_send_records_user_sent_at", "user_id", "sent_at"),)


class BounceRecordRow(Base):
    __tablename__ = "bounce_records"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(64), nullable=False)
    occurred_at = Column(DateTime, nullable=False)

    __table_args__ = (Index("ix_bounce_records_user_occurred_at", "user_id", "occurred_at"),)
