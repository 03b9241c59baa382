from __future__ import annotations

import asyncio
import logging
from datetime import date, datetime
from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy.exc import SQLAlchemyError

from hairflow import db as db_module
from hairflow.dependencies import ApiModel, ErrorResponse, api_error, envelope, rate_limit
from hairflow.models import ErrorCode, Profile, Timeline

logger = logging.getLogger(__name__)

PORTFOLIO_TIMELINES = 12

router = APIRouter()


class ProfileOut(ApiModel):
    id: str
    email: str
    name: str | None = None
    avatar_url: str | None = None
    plan: str
    daily_usage: int
    last_usage_date: date | None = None
    shop_name: str | None = None
    designer_name: str | None = None
    instagram_id: str | None = None
    specialties: list[str] = []
    bio: str | None = None
    is_onboarded: bool = False
    created_at: datetime | None = None


class ProfileUpdate(ApiModel):
    shop_name: str | None = None
    designer_name: str | None = None


class OnboardingIn(ApiModel):
    shop_name: str | None = None
    designer_name: str | None = None
    instagram_id: str | None = None
    specialties: list[str] | None = None
    bio: str | None = None


class DesignerCard(ApiModel):
    id: str
    name: str | None = None
    designer_name: str | None = None
    shop_name: str | None = None
    instagram_id: str | None = None
    specialties: list[str] = []
    bio: str | None = None
    avatar_url: str | None = None
    portfolio_works: list[dict[str, Any]] = []


class PublicTimeline(ApiModel):
    id: str
    treatment_type: str
    result: dict[str, Any] = {}
    revisit_recommendation: str | None = None
    created_at: datetime


class Portfolio(ApiModel):
    designer: DesignerCard
    timelines: list[PublicTimeline]


def _clean(value: str | None) -> str | None:
    return (value or "").strip() or None


def _update_profile(user_id: str, values: dict[str, Any]) -> ProfileOut:
    with db_module.SessionLocal() as db:
        profile = db.get(Profile, user_id)
        for key, value in values.items():
            setattr(profile, key, value)
        db.commit()
        return ProfileOut.model_validate(profile)


@router.get("/profile", responses={401: {"model": ErrorResponse}})
async def get_profile(user: Profile = Depends(rate_limit)):
    return envelope(ProfileOut.model_validate(user))


@router.patch("/profile", responses={401: {"model": ErrorResponse}})
async def update_profile(body: ProfileUpdate, user: Profile = Depends(rate_limit)):
    """Edit shop and designer names; blank values clear the field."""
    values = {
        "shop_name": _clean(body.shop_name),
        "designer_name": _clean(body.designer_name),
    }
    try:
        profile = await asyncio.to_thread(_update_profile, user.id, values)
    except SQLAlchemyError as exc:
        logger.exception("Profile update failed")
        raise api_error(500, ErrorCode.DB_ERROR, "Failed to save profile") from exc
    return envelope(profile)


@router.post(
    "/onboarding",
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}},
)
async def onboard(body: OnboardingIn, user: Profile = Depends(rate_limit)):
    shop_name = _clean(body.shop_name)
    designer_name = _clean(body.designer_name)
    if not shop_name or not designer_name:
        raise api_error(
            400, ErrorCode.VALIDATION_ERROR, "shopName and designerName are required"
        )
    instagram = _clean((body.instagram_id or "").strip().removeprefix("@"))
    values = {
        "shop_name": shop_name,
        "designer_name": designer_name,
        "instagram_id": instagram,
        "specialties": body.specialties or [],
        "bio": _clean(body.bio),
        "is_onboarded": True,
    }
    try:
        await asyncio.to_thread(_update_profile, user.id, values)
    except SQLAlchemyError as exc:
        logger.exception("Onboarding update failed")
        raise api_error(500, ErrorCode.DB_ERROR, "Failed to save profile") from exc
    return envelope({"success": True})


@router.get("/portfolio/{designer_id}", responses={404: {"model": ErrorResponse}})
async def get_portfolio(designer_id: str):
    """Public page of an onboarded designer with their latest public timelines."""

    def _db() -> Portfolio | None:
        with db_module.SessionLocal() as db:
            profile = db.get(Profile, designer_id)
            if profile is None or not profile.is_onboarded:
                return None
            timelines = (
                db.query(Timeline)
                .filter_by(user_id=designer_id, is_public=True)
                .order_by(Timeline.created_at.desc())
                .limit(PORTFOLIO_TIMELINES)
                .all()
            )
            return Portfolio(
                designer=DesignerCard(
                    id=profile.id,
                    name=profile.name,
                    designer_name=profile.designer_name,
                    shop_name=profile.shop_name,
                    instagram_id=profile.instagram_id,
                    specialties=profile.specialties or [],
                    bio=profile.bio,
                    avatar_url=profile.avatar_url,
                    portfolio_works=profile.portfolio_works or [],
                ),
                timelines=[PublicTimeline.model_validate(t) for t in timelines],
            )

    try:
        portfolio = await asyncio.to_thread(_db)
    except SQLAlchemyError as exc:
        logger.exception("Portfolio lookup failed")
        raise api_error(500, ErrorCode.DB_ERROR, "Failed to load portfolio") from exc
    if portfolio is None:
        raise api_error(404, ErrorCode.NOT_FOUND, "Designer not found")
    return envelope(portfolio)
