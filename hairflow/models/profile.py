from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, Column, Date, DateTime, Integer, String, Text

from hairflow.models.base import Base


class Profile(Base):
    """Designer account: identity, public card, plan tier and daily usage."""

    __tablename__ = "profiles"

    id = Column(String(64), primary_key=True)
    email = Column(String, nullable=False, default="")
    name = Column(String)
    avatar_url = Column(String)
    shop_name = Column(String)
    designer_name = Column(String)
    instagram_id = Column(String)
    specialties = Column(JSON, nullable=False, default=list)
    bio = Column(Text)
    is_onboarded = Column(Boolean, nullable=False, default=False)
    portfolio_works = Column(JSON, nullable=False, default=list)
    plan = Column(String(16), nullable=False, default="free", server_default="free")
    # only meaningful when last_usage_date is today
    daily_usage = Column(Integer, nullable=False, default=0, server_default="0")
    last_usage_date = Column(Date, nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))


__all__ = ["Profile"]
