from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.models.ai_usage import AiUsage
from app.services.subscriptions import effective_plan, utcnow


logger = logging.getLogger(__name__)


class UsageLimitExceeded(ValueError):
    def __init__(self, current_usage: int, limit: int) -> None:
        super().__init__("Monthly AI credit limit exceeded")
        self.current_usage = current_usage
        self.limit = limit


@dataclass(frozen=True)
class UsageSummary:
    month: int
    year: int
    used: int
    limit: int | None

    @property
    def remaining(self) -> int | None:
        if self.limit is None:
            return None
        return max(0, self.limit - self.used)


def usage_bucket(now: datetime | None = None) -> tuple[int, int]:
    now = now or utcnow()
    return now.month, now.year


def monthly_total(db: Session, user_id: str, month: int, year: int) -> int:
    total = (
        db.query(func.coalesce(func.sum(AiUsage.credits_used), 0))
        .filter(AiUsage.user_id == user_id, AiUsage.month == month, AiUsage.year == year)
        .scalar()
    )
    return int(total or 0)


def would_exceed(quota: int | None, current_usage: int, requested: int) -> bool:
    if quota is None:
        return False
    return current_usage + requested > quota


def usage_summary(db: Session, user_id: str, now: datetime | None = None) -> UsageSummary:
    now = now or utcnow()
    month, year = usage_bucket(now)
    plan, _sub = effective_plan(db, user_id, now=now)
    limit = plan.ai_credits_per_month if plan is not None else 0
    return UsageSummary(month=month, year=year, used=monthly_total(db, user_id, month, year), limit=limit)


def record_usage(
    db: Session,
    user_id: str,
    feature_type: str,
    credits: int = 1,
    now: datetime | None = None,
) -> AiUsage:
    credits = int(credits)
    if credits <= 0:
        raise ValueError("credits must be positive")
    now = now or utcnow()
    month, year = usage_bucket(now)

    plan, sub = effective_plan(db, user_id, now=now)
    quota = plan.ai_credits_per_month if plan is not None else 0
    current = monthly_total(db, user_id, month, year)
    if would_exceed(quota, current, credits):
        logger.info(
            "usage.rejected user_id=%s feature=%s current=%s requested=%s limit=%s",
            user_id,
            feature_type,
            current,
            credits,
            quota,
        )
        raise UsageLimitExceeded(current_usage=current, limit=int(quota or 0))

    entry = AiUsage(
        user_id=user_id,
        subscription_id=(sub.id if sub is not None else None),
        feature_type=feature_type,
        credits_used=credits,
        month=month,
        year=year,
    )
    try:
        db.add(entry)
        db.commit()
        db.refresh(entry)
    except Exception:
        db.rollback()
        raise
    return entry
