import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import SQLAlchemyError

from hairflow import db as db_module
from hairflow.config import Settings
from hairflow.dependencies import ApiModel, ErrorResponse, api_error, envelope, rate_limit
from hairflow.metrics import payment_fail_total
from hairflow.models import ErrorCode, Event, Profile, Subscription
from hairflow.services.toss import TossPaymentError, TossUnavailable, confirm_payment

settings = Settings()
logger = logging.getLogger(__name__)

router = APIRouter()


class PaymentConfirmRequest(ApiModel):
    payment_key: str | None = None
    order_id: str | None = None
    amount: int | None = None
    plan_id: Literal["basic", "pro"] | None = None


def plan_price(plan: str) -> int:
    return settings.pro_plan_price if plan == "pro" else settings.basic_plan_price


@router.post(
    "/payment",
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
async def confirm_plan_payment(
    body: PaymentConfirmRequest, user: Profile = Depends(rate_limit)
):
    """Confirm a checkout with the gateway and upgrade the caller's plan."""
    if not (body.payment_key and body.order_id and body.amount and body.plan_id):
        raise api_error(400, ErrorCode.MISSING_FIELDS, "Payment details are missing")

    expected = plan_price(body.plan_id)
    if body.amount != expected:
        logger.warning(
            "Payment amount mismatch for %s: plan=%s expected=%s got=%s",
            user.id,
            body.plan_id,
            expected,
            body.amount,
        )
        raise api_error(
            400,
            ErrorCode.AMOUNT_MISMATCH,
            f"Invalid amount for the {body.plan_id} plan ({expected} KRW)",
        )

    if not settings.toss_secret_key:
        raise api_error(500, ErrorCode.CONFIG_ERROR, "Payment gateway is not configured")

    try:
        await confirm_payment(
            settings.toss_secret_key,
            body.payment_key,
            body.order_id,
            body.amount,
            url=settings.toss_confirm_url,
        )
    except TossPaymentError as exc:
        payment_fail_total.inc()
        err = ErrorResponse(code=exc.code, message=exc.message)
        raise HTTPException(status_code=400, detail=err.model_dump()) from exc
    except TossUnavailable as exc:
        payment_fail_total.inc()
        raise api_error(
            500, ErrorCode.PAYMENT_FAILED, "Payment confirmation failed"
        ) from exc

    def _db_call() -> None:
        now = datetime.now(timezone.utc)
        with db_module.SessionLocal() as db:
            db.add(
                Subscription(
                    user_id=user.id,
                    plan=body.plan_id,
                    status="active",
                    order_id=body.order_id,
                    payment_key=body.payment_key,
                    amount=body.amount,
                    started_at=now,
                    expires_at=now + timedelta(days=settings.subscription_days),
                )
            )
            profile = db.get(Profile, user.id)
            profile.plan = body.plan_id
            db.add(Event(user_id=user.id, event="payment_confirmed"))
            db.commit()

    try:
        await asyncio.to_thread(_db_call)
    except SQLAlchemyError as exc:
        payment_fail_total.inc()
        logger.exception("Subscription save failed for order %s", body.order_id)
        raise api_error(500, ErrorCode.DB_ERROR, "Failed to save subscription") from exc

    logger.info("Payment confirmed: user=%s plan=%s order=%s", user.id, body.plan_id, body.order_id)
    return envelope({"orderId": body.order_id, "plan": body.plan_id})
