from __future__ import annotations

import calendar
import logging
from datetime import datetime, timezone

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.models.payment_transaction import PaymentTransaction, TransactionStatus
from app.models.subscription_plan import SubscriptionPlan
from app.models.user_subscription import BillingCycle, SubscriptionStatus, UserSubscription
from app.services.plan_catalog import get_free_plan


logger = logging.getLogger(__name__)

LIFETIME_YEARS = 100


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    # SQLite hands back naive datetimes even for timezone-aware columns.
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def add_months(value: datetime, months: int) -> datetime:
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def add_years(value: datetime, years: int) -> datetime:
    year = value.year + years
    day = min(value.day, calendar.monthrange(year, value.month)[1])
    return value.replace(year=year, day=day)


def compute_period_end(start: datetime, billing_cycle: str) -> datetime:
    cycle = BillingCycle(billing_cycle)
    if cycle is BillingCycle.MONTHLY:
        return add_months(start, 1)
    if cycle is BillingCycle.YEARLY:
        return add_years(start, 1)
    return add_years(start, LIFETIME_YEARS)


def get_transaction(db: Session, provider_reference: str, *, for_update: bool = False) -> PaymentTransaction | None:
    q = db.query(PaymentTransaction).filter(PaymentTransaction.provider_reference == provider_reference)
    if for_update:
        q = q.with_for_update()
    return q.first()


def get_current_subscription(db: Session, user_id: str, now: datetime | None = None) -> UserSubscription | None:
    """Return the user's subscription row, flipping an overdue active row to expired."""
    sub = db.query(UserSubscription).filter(UserSubscription.user_id == user_id).first()
    if sub is None:
        return None
    now = now or utcnow()
    end = as_utc(sub.current_period_end)
    if sub.status == SubscriptionStatus.ACTIVE.value and end is not None and end <= now:
        try:
            sub.status = SubscriptionStatus.EXPIRED.value
            db.commit()
        except Exception:
            db.rollback()
            raise
        logger.info("ledger.subscription.expired user_id=%s subscription_id=%s", user_id, sub.id)
    return sub


def grants_access(sub: UserSubscription | None, now: datetime | None = None) -> bool:
    if sub is None:
        return False
    now = now or utcnow()
    end = as_utc(sub.current_period_end)
    if sub.status == SubscriptionStatus.ACTIVE.value:
        return end is None or end > now
    if sub.status == SubscriptionStatus.CANCELLED.value:
        return end is not None and end > now
    return False


def effective_plan(
    db: Session, user_id: str, now: datetime | None = None
) -> tuple[SubscriptionPlan | None, UserSubscription | None]:
    """Plan that governs the user's entitlements right now.

    A paid plan applies while its subscription is active, or cancelled but
    still inside the paid period. Everyone else is on the Free tier.
    """
    now = now or utcnow()
    sub = get_current_subscription(db, user_id, now=now)
    if grants_access(sub, now=now):
        return sub.plan, sub
    return get_free_plan(db), None


def _apply_success(
    db: Session,
    tx: PaymentTransaction,
    *,
    provider_subscription_id: str | None,
    payment_method: str | None,
    now: datetime,
) -> UserSubscription:
    tx.status = TransactionStatus.SUCCEEDED.value
    if payment_method:
        tx.payment_method = payment_method

    sub = db.query(UserSubscription).filter(UserSubscription.user_id == tx.user_id).first()
    if sub is None:
        sub = UserSubscription(user_id=tx.user_id, plan_id=tx.plan_id)
        db.add(sub)

    cycle = tx.billing_cycle or BillingCycle.MONTHLY.value
    sub.plan_id = tx.plan_id
    sub.status = SubscriptionStatus.ACTIVE.value
    sub.billing_cycle = cycle
    sub.current_period_start = now
    sub.current_period_end = compute_period_end(now, cycle)
    sub.cancelled_at = None
    if provider_subscription_id:
        sub.provider_subscription_id = provider_subscription_id
    db.flush()
    tx.subscription_id = sub.id
    return sub


def record_payment_succeeded(
    db: Session,
    tx: PaymentTransaction,
    *,
    provider_subscription_id: str | None = None,
    payment_method: str | None = None,
    now: datetime | None = None,
) -> tuple[UserSubscription | None, bool]:
    """Mark the transaction paid and activate the user's single subscription row.

    Returns ``(subscription, applied)``; ``applied`` is False when the
    transaction had already been settled by an earlier delivery.
    """
    now = now or utcnow()
    tx_id = tx.id
    for attempt in range(2):
        if tx.status == TransactionStatus.SUCCEEDED.value:
            logger.info("ledger.payment_succeeded.duplicate transaction_id=%s", tx_id)
            sub = db.query(UserSubscription).filter(UserSubscription.user_id == tx.user_id).first()
            return sub, False
        try:
            sub = _apply_success(
                db,
                tx,
                provider_subscription_id=provider_subscription_id,
                payment_method=payment_method,
                now=now,
            )
            db.commit()
            db.refresh(sub)
        except IntegrityError:
            # A concurrent delivery created the user's row first; retry as an update.
            db.rollback()
            if attempt:
                raise
            logger.warning("ledger.payment_succeeded.conflict transaction_id=%s", tx_id)
            tx = db.query(PaymentTransaction).filter(PaymentTransaction.id == tx_id).one()
            continue
        except Exception:
            db.rollback()
            raise
        logger.info(
            "ledger.subscription.activated user_id=%s plan_id=%s cycle=%s period_end=%s",
            sub.user_id,
            sub.plan_id,
            sub.billing_cycle,
            sub.current_period_end,
        )
        return sub, True
    return None, False


def record_payment_status(db: Session, tx: PaymentTransaction, status: TransactionStatus) -> bool:
    """Move a pending transaction to a terminal non-success status."""
    if tx.status != TransactionStatus.PENDING.value:
        return False
    try:
        tx.status = status.value
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info("ledger.transaction.%s transaction_id=%s", status.value, tx.id)
    return True


def cancel_subscription(db: Session, user_id: str, now: datetime | None = None) -> UserSubscription | None:
    now = now or utcnow()
    sub = get_current_subscription(db, user_id, now=now)
    if sub is None or sub.status != SubscriptionStatus.ACTIVE.value:
        return None
    try:
        sub.status = SubscriptionStatus.CANCELLED.value
        sub.cancelled_at = now
        db.commit()
        db.refresh(sub)
    except Exception:
        db.rollback()
        raise
    logger.info("ledger.subscription.cancelled user_id=%s subscription_id=%s", user_id, sub.id)
    return sub
