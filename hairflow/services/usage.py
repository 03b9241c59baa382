"""Daily usage quota shared by every AI capability.

One counter per account (``profiles.daily_usage``) stamped with the calendar
date of the last charge (``profiles.last_usage_date``). The counter only
counts when that date is today; any other date means the day rolled over and
the effective usage is zero. There is no reset job: rollover is detected
lazily on read.

Two enforcement modes:

* soft (default): check before the model call, increment after a usable
  result. Two concurrent requests from one account can both pass the check,
  so the cap may be exceeded by a small margin.
* strict: a single conditional ``UPDATE`` reserves one unit before the model
  call and the reservation is released if the request fails.
"""
from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import date, datetime, timezone
from typing import AsyncIterator, Callable, Mapping, NamedTuple
from zoneinfo import ZoneInfo

from sqlalchemy import case, or_, select, update
from sqlalchemy.exc import SQLAlchemyError

from hairflow import db as db_module
from hairflow.config import Settings
from hairflow.metrics import quota_reject_total
from hairflow.models import Event, Profile

logger = logging.getLogger(__name__)

FREE_PLAN = "free"
UNLIMITED = 999999

DAILY_LIMITS: dict[str, int] = {
    "free": 3,
    "basic": UNLIMITED,
    "pro": UNLIMITED,
}


class UsageDecision(NamedTuple):
    allowed: bool
    remaining: int


class UsageLimitExceeded(Exception):
    """Raised when the account has no quota left today."""

    def __init__(self, remaining: int = 0):
        super().__init__(f"daily usage limit reached (remaining={remaining})")
        self.remaining = remaining


def limit_for(plan: str | None, limits: Mapping[str, int] = DAILY_LIMITS) -> int:
    """Daily cap for ``plan``; unknown plans get the free cap."""
    return limits.get(plan or FREE_PLAN, limits[FREE_PLAN])


def decide(
    plan: str | None,
    daily_usage: int | None,
    last_usage_date: date | None,
    today: date,
    limits: Mapping[str, int] = DAILY_LIMITS,
) -> UsageDecision:
    limit = limit_for(plan, limits)
    if last_usage_date != today:
        return UsageDecision(True, limit)
    remaining = max(0, limit - (daily_usage or 0))
    return UsageDecision(remaining > 0, remaining)


def next_usage(
    daily_usage: int | None, last_usage_date: date | None, today: date
) -> tuple[int, date]:
    """Counter value and date to store after one more charge."""
    if last_usage_date != today:
        return 1, today
    return (daily_usage or 0) + 1, today


def _as_date(value) -> date | None:
    if value is None or isinstance(value, date) and not isinstance(value, datetime):
        return value
    if isinstance(value, datetime):
        return value.date()
    return date.fromisoformat(str(value)[:10])


class UsageCharge:
    """Handle yielded by :meth:`UsageGuard.hold`."""

    def __init__(self, guard: "UsageGuard", account_id: str):
        self._guard = guard
        self._account_id = account_id
        self.charged = False

    async def charge(self) -> None:
        """Charge one unit. Further calls on the same handle do nothing."""
        if self.charged:
            return
        self.charged = True
        if self._guard.strict:
            return
        try:
            await asyncio.to_thread(self._guard.increment, self._account_id)
        except SQLAlchemyError:
            logger.exception("Failed to record usage for %s", self._account_id)


class UsageGuard:
    def __init__(
        self,
        session_factory: Callable | None = None,
        *,
        limits: Mapping[str, int] | None = None,
        tz: str = "UTC",
        strict: bool = False,
        clock: Callable[[], datetime] | None = None,
    ):
        self._session_factory = session_factory or db_module.SessionLocal
        self.limits = dict(limits or DAILY_LIMITS)
        self.tz = ZoneInfo(tz)
        self.strict = strict
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    @classmethod
    def from_settings(cls, cfg: Settings, **kwargs) -> "UsageGuard":
        limits = {
            "free": cfg.free_daily_limit,
            "basic": cfg.paid_daily_limit,
            "pro": cfg.paid_daily_limit,
        }
        return cls(
            limits=limits,
            tz=cfg.usage_timezone,
            strict=cfg.usage_strict_cap,
            **kwargs,
        )

    def today(self) -> date:
        return self._clock().astimezone(self.tz).date()

    def check(self, account_id: str) -> UsageDecision:
        """Read-only quota decision. Fails closed when the profile is unavailable."""
        try:
            with self._session_factory() as db:
                row = db.execute(
                    select(
                        Profile.plan, Profile.daily_usage, Profile.last_usage_date
                    ).where(Profile.id == account_id)
                ).first()
        except SQLAlchemyError:
            logger.exception("Usage lookup failed for %s", account_id)
            return UsageDecision(False, 0)
        if row is None:
            logger.warning("No profile for %s, denying usage", account_id)
            return UsageDecision(False, 0)
        return decide(
            row.plan,
            row.daily_usage,
            _as_date(row.last_usage_date),
            self.today(),
            self.limits,
        )

    def increment(self, account_id: str) -> None:
        with self._session_factory() as db:
            profile = db.get(Profile, account_id)
            if profile is None:
                logger.warning("Cannot record usage for missing profile %s", account_id)
                return
            count, day = next_usage(
                profile.daily_usage, _as_date(profile.last_usage_date), self.today()
            )
            profile.daily_usage = count
            profile.last_usage_date = day
            db.commit()

    def try_consume(self, account_id: str) -> bool:
        """Atomically take one unit if the account is below its cap."""
        today = self.today()
        with self._session_factory() as db:
            plan = db.execute(
                select(Profile.plan).where(Profile.id == account_id)
            ).scalar_one_or_none()
            if plan is None:
                return False
            limit = limit_for(plan, self.limits)
            if limit <= 0:
                return False
            stmt = (
                update(Profile)
                .where(Profile.id == account_id, Profile.plan == plan)
                .where(
                    or_(
                        Profile.last_usage_date.is_(None),
                        Profile.last_usage_date != today,
                        Profile.daily_usage < limit,
                    )
                )
                .values(
                    daily_usage=case(
                        (Profile.last_usage_date == today, Profile.daily_usage + 1),
                        else_=1,
                    ),
                    last_usage_date=today,
                )
                .execution_options(synchronize_session=False)
            )
            result = db.execute(stmt)
            db.commit()
            return result.rowcount == 1

    def release(self, account_id: str) -> None:
        """Give back a unit taken by :meth:`try_consume` today."""
        with self._session_factory() as db:
            db.execute(
                update(Profile)
                .where(
                    Profile.id == account_id,
                    Profile.last_usage_date == self.today(),
                    Profile.daily_usage > 0,
                )
                .values(daily_usage=Profile.daily_usage - 1)
                .execution_options(synchronize_session=False)
            )
            db.commit()

    def record_rejection(self, account_id: str) -> None:
        with self._session_factory() as db:
            db.add(Event(user_id=account_id, event="usage_limit_reached"))
            db.commit()

    async def _reject(self, account_id: str, remaining: int) -> UsageLimitExceeded:
        quota_reject_total.inc()
        logger.info("Usage limit reached for %s", account_id)
        try:
            await asyncio.to_thread(self.record_rejection, account_id)
        except SQLAlchemyError:
            logger.exception("Failed to record usage rejection for %s", account_id)
        return UsageLimitExceeded(remaining)

    @asynccontextmanager
    async def hold(self, account_id: str) -> AsyncIterator[UsageCharge]:
        """Gate a capability invocation on the quota.

        Raises :class:`UsageLimitExceeded` on entry when the account is out of
        quota. The body must call ``charge()`` once it has a usable result.
        """
        if self.strict:
            try:
                taken = await asyncio.to_thread(self.try_consume, account_id)
            except SQLAlchemyError:
                logger.exception("Usage reservation failed for %s", account_id)
                taken = False
            if not taken:
                raise await self._reject(account_id, 0)
        else:
            decision = await asyncio.to_thread(self.check, account_id)
            if not decision.allowed:
                raise await self._reject(account_id, decision.remaining)

        handle = UsageCharge(self, account_id)
        try:
            yield handle
        finally:
            if self.strict and not handle.charged:
                try:
                    await asyncio.to_thread(self.release, account_id)
                except SQLAlchemyError:
                    logger.exception("Failed to release usage for %s", account_id)


__all__ = [
    "DAILY_LIMITS",
    "UsageDecision",
    "UsageLimitExceeded",
    "UsageCharge",
    "UsageGuard",
    "decide",
    "limit_for",
    "next_usage",
]
