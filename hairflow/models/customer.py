from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, String, Text

from hairflow.models.base import Base


def _uuid() -> str:
    return str(uuid4())


class Customer(Base):
    __tablename__ = "customers"

    id = Column(String(36), primary_key=True, default=_uuid)
    designer_id = Column(String(64), nullable=False, index=True)
    name = Column(String, nullable=False)
    phone = Column(String)
    memo = Column(Text)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))


class Consultation(Base):
    """One AI session for a customer. Insert-only."""

    __tablename__ = "consultations"

    id = Column(String(36), primary_key=True, default=_uuid)
    customer_id = Column(
        String(36), ForeignKey("customers.id"), nullable=False, index=True
    )
    designer_id = Column(String(64), nullable=False)
    session_number = Column(Integer)
    treatment_type = Column(String(32), nullable=False)
    photos = Column(JSON, nullable=False, default=dict)
    result = Column(JSON, nullable=False, default=dict)
    notes = Column(Text, nullable=False, default="")
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))


class ChemicalRecord(Base):
    __tablename__ = "chemical_records"

    id = Column(String(36), primary_key=True, default=_uuid)
    consultation_id = Column(
        String(36), ForeignKey("consultations.id"), nullable=False, index=True
    )
    brand = Column(String, nullable=False)
    product_name = Column(String, nullable=False)
    ratio = Column(String, nullable=False)
    mixing_notes = Column(Text, nullable=False, default="")
    application_method = Column(Text, nullable=False, default="")
    processing_time = Column(String, nullable=False, default="")
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))


__all__ = ["Customer", "Consultation", "ChemicalRecord"]
