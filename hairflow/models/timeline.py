from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import JSON, Boolean, Column, DateTime, String, Text

from hairflow.models.base import Base


class Timeline(Base):
    """Stored timeline prediction or single-photo analysis. Insert-only."""

    __tablename__ = "timelines"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    user_id = Column(String(64), nullable=False, index=True)
    customer_id = Column(String(36), nullable=True, index=True)
    treatment_image_url = Column(String)
    treatment_type = Column(String(32), nullable=False)
    result = Column(JSON, nullable=False, default=dict)
    revisit_recommendation = Column(Text)
    is_public = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))


class Recipe(Base):
    __tablename__ = "recipes"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    user_id = Column(String(64), nullable=False, index=True)
    customer_id = Column(String(36), nullable=True)
    current_image_url = Column(String)
    reference_image_url = Column(String)
    result = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))


__all__ = ["Timeline", "Recipe"]
