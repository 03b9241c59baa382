from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError

from hairflow import db as db_module
from hairflow.dependencies import ApiModel, ErrorResponse, api_error, envelope, rate_limit
from hairflow.models import (
    ChemicalRecord,
    Consultation,
    Customer,
    ErrorCode,
    Profile,
    Recipe,
    Timeline,
)

logger = logging.getLogger(__name__)

router = APIRouter()


class CustomerIn(ApiModel):
    name: str | None = None
    phone: str | None = None
    memo: str | None = None


class CustomerOut(ApiModel):
    id: str
    designer_id: str
    name: str
    phone: str | None = None
    memo: str | None = None
    created_at: datetime


class ChemicalRecordIn(ApiModel):
    consultation_id: str | None = None
    brand: str | None = None
    product_name: str | None = None
    ratio: str | None = None
    mixing_notes: str = ""
    application_method: str = ""
    processing_time: str = ""


class ChemicalRecordOut(ApiModel):
    id: str
    consultation_id: str
    brand: str
    product_name: str
    ratio: str
    mixing_notes: str = ""
    application_method: str = ""
    processing_time: str = ""
    created_at: datetime


class ConsultationOut(ApiModel):
    id: str
    customer_id: str
    designer_id: str
    session_number: int | None = None
    treatment_type: str
    photos: dict[str, str] = {}
    result: dict[str, Any] = {}
    notes: str = ""
    chemical_records: list[ChemicalRecordOut] = []
    created_at: datetime


class CustomerDetail(ApiModel):
    customer: CustomerOut
    consultations: list[ConsultationOut]


def _clean(value: str | None) -> str | None:
    return (value or "").strip() or None


def _db_error(exc: SQLAlchemyError, what: str):
    logger.exception("Failed to %s", what)
    return api_error(500, ErrorCode.DB_ERROR, f"Failed to {what}")


@router.get("/customers", responses={401: {"model": ErrorResponse}})
async def list_customers(user: Profile = Depends(rate_limit)):
    """Customers of the calling designer, newest first."""

    def _db() -> list[CustomerOut]:
        with db_module.SessionLocal() as db:
            rows = (
                db.query(Customer)
                .filter_by(designer_id=user.id)
                .order_by(Customer.created_at.desc())
                .all()
            )
            return [CustomerOut.model_validate(r) for r in rows]

    try:
        customers = await asyncio.to_thread(_db)
    except SQLAlchemyError as exc:
        raise _db_error(exc, "load customers") from exc
    return envelope(customers)


@router.post(
    "/customers",
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}},
)
async def create_customer(body: CustomerIn, user: Profile = Depends(rate_limit)):
    name = _clean(body.name)
    if not name:
        raise api_error(400, ErrorCode.MISSING_FIELDS, "Customer name is required")

    def _db() -> CustomerOut:
        with db_module.SessionLocal() as db:
            row = Customer(
                designer_id=user.id,
                name=name,
                phone=_clean(body.phone),
                memo=_clean(body.memo),
            )
            db.add(row)
            db.commit()
            return CustomerOut.model_validate(row)

    try:
        customer = await asyncio.to_thread(_db)
    except SQLAlchemyError as exc:
        raise _db_error(exc, "create customer") from exc
    return envelope(customer)


@router.get(
    "/customers/{customer_id}",
    responses={401: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def get_customer(customer_id: str, user: Profile = Depends(rate_limit)):
    """Customer card with every consultation and its chemical records."""

    def _db() -> CustomerDetail | None:
        with db_module.SessionLocal() as db:
            customer = (
                db.query(Customer)
                .filter_by(id=customer_id, designer_id=user.id)
                .one_or_none()
            )
            if customer is None:
                return None
            consultations = (
                db.query(Consultation)
                .filter_by(customer_id=customer_id, designer_id=user.id)
                .order_by(Consultation.created_at.desc())
                .all()
            )
            records: dict[str, list[ChemicalRecordOut]] = {}
            if consultations:
                for rec in (
                    db.query(ChemicalRecord)
                    .filter(
                        ChemicalRecord.consultation_id.in_(
                            [c.id for c in consultations]
                        )
                    )
                    .order_by(ChemicalRecord.created_at.desc())
                ):
                    records.setdefault(rec.consultation_id, []).append(
                        ChemicalRecordOut.model_validate(rec)
                    )
            return CustomerDetail(
                customer=CustomerOut.model_validate(customer),
                consultations=[
                    ConsultationOut(
                        id=c.id,
                        customer_id=c.customer_id,
                        designer_id=c.designer_id,
                        session_number=c.session_number,
                        treatment_type=c.treatment_type,
                        photos=c.photos or {},
                        result=c.result or {},
                        notes=c.notes or "",
                        chemical_records=records.get(c.id, []),
                        created_at=c.created_at,
                    )
                    for c in consultations
                ],
            )

    try:
        detail = await asyncio.to_thread(_db)
    except SQLAlchemyError as exc:
        raise _db_error(exc, "load customer") from exc
    if detail is None:
        raise api_error(404, ErrorCode.NOT_FOUND, "Customer not found")
    return envelope(detail)


@router.delete(
    "/customers/{customer_id}",
    responses={401: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def delete_customer(customer_id: str, user: Profile = Depends(rate_limit)):
    """Remove a customer with its consultations, chemical records, timelines and recipes."""

    def _db() -> bool:
        with db_module.SessionLocal() as db:
            owned = db.execute(
                select(Customer.id).where(
                    Customer.id == customer_id, Customer.designer_id == user.id
                )
            ).scalar_one_or_none()
            if owned is None:
                return False
            consultation_ids = select(Consultation.id).where(
                Consultation.customer_id == customer_id
            )
            db.execute(
                delete(ChemicalRecord).where(
                    ChemicalRecord.consultation_id.in_(consultation_ids)
                )
            )
            db.execute(
                delete(Consultation).where(Consultation.customer_id == customer_id)
            )
            db.execute(delete(Timeline).where(Timeline.customer_id == customer_id))
            db.execute(delete(Recipe).where(Recipe.customer_id == customer_id))
            db.execute(delete(Customer).where(Customer.id == customer_id))
            db.commit()
            return True

    try:
        deleted = await asyncio.to_thread(_db)
    except SQLAlchemyError as exc:
        raise _db_error(exc, "delete customer") from exc
    if not deleted:
        raise api_error(404, ErrorCode.NOT_FOUND, "Customer not found")
    return envelope({"deleted": True})


@router.post(
    "/customers/{customer_id}/chemicals",
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
    },
)
async def add_chemical_record(
    customer_id: str, body: ChemicalRecordIn, user: Profile = Depends(rate_limit)
):
    """Record the chemical mix used in one consultation."""
    if not (body.consultation_id and body.brand and body.product_name and body.ratio):
        raise api_error(
            400,
            ErrorCode.MISSING_FIELDS,
            "consultationId, brand, productName and ratio are required",
        )

    def _db() -> ChemicalRecordOut | None:
        with db_module.SessionLocal() as db:
            consultation = (
                db.query(Consultation)
                .filter_by(id=body.consultation_id, customer_id=customer_id)
                .one_or_none()
            )
            if consultation is None or consultation.designer_id != user.id:
                return None
            row = ChemicalRecord(
                consultation_id=consultation.id,
                brand=body.brand,
                product_name=body.product_name,
                ratio=body.ratio,
                mixing_notes=body.mixing_notes,
                application_method=body.application_method,
                processing_time=body.processing_time,
            )
            db.add(row)
            db.commit()
            return ChemicalRecordOut.model_validate(row)

    try:
        record = await asyncio.to_thread(_db)
    except SQLAlchemyError as exc:
        raise _db_error(exc, "save chemical record") from exc
    if record is None:
        raise api_error(404, ErrorCode.NOT_FOUND, "Consultation not found")
    return envelope(record)
