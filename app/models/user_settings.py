from sqlalchemy import Column, DateTime, Integer, String

from app.core.database import Base


class UserSettingsRow(Base):
    __tablename__ = "user_settings"

    user_id = Column(String(64), primary_key=True)

    application_mode = Column(String(16), nullable=False, default="MANUAL")
    account_status = Column(String(16), nullable=False, default="active")

    # NULL means "use the configured default"
    max_sends_per_day = Column(Integer, nullable=True)
    max_sends_per_hour = Column(Integer, nullable=True)
    send_delay_seconds = Column(Integer, nullable=True)
    bounce_pause_hours = Column(Integer, nullable=True)

    sending_paused_until = Column(DateTime, nullable=True)

    created_at = Column(DateTime, nullable=False)
    updated_at = Column(DateTime, nullable=False)
