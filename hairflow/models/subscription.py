from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Enum, Integer, String

from hairflow.models.base import Base


class Subscription(Base):
    __tablename__ = "subscriptions"

    id = Column(Integer, primary_key=True)
    user_id = Column(String(64), nullable=False, index=True)
    plan = Column(String(16), nullable=False)
    status = Column(
        Enum("active", "cancelled", "expired", name="subscription_status"),
        nullable=False,
    )
    order_id = Column(String, nullable=False, unique=True)
    payment_key = Column(String, nullable=False)
    amount = Column(Integer, nullable=False)
    started_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    expires_at = Column(DateTime)


__all__ = ["Subscription"]
