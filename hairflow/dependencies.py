from __future__ import annotations

import asyncio
import logging
from typing import Any

import jwt
import redis.asyncio as redis
from fastapi import Depends, Header, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from redis.exceptions import RedisError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from hairflow import db as db_module
from hairflow.config import Settings
from hairflow.models import ErrorCode, Profile
from hairflow.services.usage import UsageGuard

settings = Settings()
redis_client = redis.from_url(settings.redis_url, encoding="utf-8", decode_responses=True)


logger = logging.getLogger(__name__)


class ErrorResponse(BaseModel):
    code: str
    message: str


class ApiModel(BaseModel):
    """Request/response body with camelCase keys, readable from ORM rows."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )


def api_error(status_code: int, code: ErrorCode, message: str) -> HTTPException:
    """Build an ``HTTPException`` whose detail renders as the error envelope."""
    err = ErrorResponse(code=code.value, message=message)
    return HTTPException(status_code=status_code, detail=err.model_dump())


def envelope(data: Any) -> dict[str, Any]:
    """Wrap a successful result as ``{"data": ..., "error": None}``."""
    if isinstance(data, BaseModel):
        data = data.model_dump(by_alias=True, mode="json")
    return {"data": jsonable_encoder(data), "error": None}


def _claims_from_header(authorization: str | None) -> dict[str, Any]:
    if not authorization or not authorization.lower().startswith("bearer "):
        raise api_error(401, ErrorCode.UNAUTHORIZED, "Login required")
    token = authorization.split(" ", 1)[1].strip()
    try:
        claims = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=["HS256"],
            audience=settings.jwt_audience,
        )
    except jwt.PyJWTError as exc:
        logger.info("Rejected session token: %s", exc)
        raise api_error(401, ErrorCode.UNAUTHORIZED, "Invalid session") from exc
    if not claims.get("sub"):
        raise api_error(401, ErrorCode.UNAUTHORIZED, "Invalid session")
    return claims


def get_or_create_profile(claims: dict[str, Any]) -> Profile:
    """Return the caller's profile, creating it on first use."""
    user_id = str(claims["sub"])
    meta = claims.get("user_metadata") or {}
    with db_module.SessionLocal() as db:
        profile = db.get(Profile, user_id)
        if profile is not None:
            return profile
        profile = Profile(
            id=user_id,
            email=claims.get("email") or "",
            name=meta.get("full_name") or meta.get("name"),
            avatar_url=meta.get("avatar_url"),
            plan="free",
            daily_usage=0,
            last_usage_date=None,
            specialties=[],
            portfolio_works=[],
        )
        db.add(profile)
        try:
            db.commit()
        except IntegrityError:
            # concurrent first requests from the same account
            db.rollback()
            profile = db.get(Profile, user_id)
            if profile is None:
                raise
        logger.info("Created profile for %s", user_id)
        return profile


async def require_user(
    authorization: str | None = Header(None, alias="Authorization"),
) -> Profile:
    claims = _claims_from_header(authorization)
    try:
        return await asyncio.to_thread(get_or_create_profile, claims)
    except SQLAlchemyError as exc:
        logger.exception("Profile lookup failed")
        raise api_error(
            401, ErrorCode.UNAUTHORIZED, "Failed to load profile"
        ) from exc


async def rate_limit(request: Request, user: Profile = Depends(require_user)) -> Profile:
    """Throttle requests by IP and account via Redis."""
    client_host = request.client.host if request.client else ""
    ip = client_host
    xff = request.headers.get("X-Forwarded-For")
    if xff and client_host in settings.trusted_proxies:
        forwarded = [h.strip() for h in xff.split(",") if h.strip()]
        proxies = forwarded[1:] + [client_host]
        if forwarded and all(p in settings.trusted_proxies for p in proxies):
            ip = forwarded[0]
    ip_key = f"rate:ip:{ip}"
    user_key = f"rate:user:{user.id}"

    try:
        pipe = redis_client.pipeline()
        pipe.incr(ip_key)
        pipe.expire(ip_key, 60)
        pipe.incr(user_key)
        pipe.expire(user_key, 60)
        ip_count, _, user_count, _ = await pipe.execute()
    except RedisError as exc:
        logger.exception("Redis unavailable for rate limiting: %s", exc)
        raise api_error(
            503, ErrorCode.SERVICE_UNAVAILABLE, "Rate limiter unavailable"
        ) from exc
    if (
        ip_count > settings.rate_limit_ip_per_min
        or user_count > settings.rate_limit_user_per_min
    ):
        raise api_error(429, ErrorCode.TOO_MANY_REQUESTS, "Rate limit exceeded")

    return user


def get_usage_guard() -> UsageGuard:
    return UsageGuard.from_settings(settings)
