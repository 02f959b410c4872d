from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any

from sqlalchemy.orm import Session

from app.models.subscription_plan import SubscriptionPlan
from app.models.user_subscription import BillingCycle
from app.services import airwallex


logger = logging.getLogger(__name__)

FREE_PLAN_NAME = "Free"

DEFAULT_PLANS: list[dict[str, Any]] = [
    {
        "name": FREE_PLAN_NAME,
        "monthly_price": Decimal("0.00"),
        "yearly_price": Decimal("0.00"),
        "lifetime_price": None,
        "features": [
            "Basic photo editing tools",
            "5 AI enhancements per month",
            "HD download (up to 1080p)",
            "Basic templates",
        ],
        "ai_credits_per_month": 5,
    },
    {
        "name": "Pro",
        "monthly_price": Decimal("10.00"),
        "yearly_price": Decimal("96.00"),
        "lifetime_price": Decimal("99.00"),
        "features": [
            "Unlimited AI enhancements",
            "Advanced editing tools",
            "4K downloads",
            "Premium templates & assets",
            "Batch processing",
            "Priority support",
        ],
        "ai_credits_per_month": None,
    },
    {
        "name": "Enterprise",
        "monthly_price": Decimal("25.00"),
        "yearly_price": Decimal("240.00"),
        "lifetime_price": None,
        "features": [
            "Everything in Pro",
            "Team collaboration",
            "Brand kit & assets",
            "Admin dashboard",
            "API access",
            "Dedicated support",
        ],
        "ai_credits_per_month": None,
    },
]


def seed_plans(db: Session) -> int:
    """Insert the default tiers when the catalog is empty. Returns the number of rows created."""
    existing = db.query(SubscriptionPlan.id).first()
    if existing is not None:
        return 0
    try:
        for fields in DEFAULT_PLANS:
            db.add(SubscriptionPlan(is_active=True, **fields))
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info("plans.seeded count=%s", len(DEFAULT_PLANS))
    return len(DEFAULT_PLANS)


def list_active_plans(db: Session) -> list[SubscriptionPlan]:
    return (
        db.query(SubscriptionPlan)
        .filter(SubscriptionPlan.is_active.is_(True))
        .order_by(SubscriptionPlan.monthly_price.asc(), SubscriptionPlan.name.asc())
        .all()
    )


def get_plan(db: Session, plan_id: str) -> SubscriptionPlan | None:
    if not plan_id:
        return None
    return db.query(SubscriptionPlan).filter(SubscriptionPlan.id == plan_id).first()


def get_free_plan(db: Session) -> SubscriptionPlan | None:
    return db.query(SubscriptionPlan).filter(SubscriptionPlan.name == FREE_PLAN_NAME).first()


def price_for_cycle(plan: SubscriptionPlan, billing_cycle: str) -> Decimal | None:
    cycle = BillingCycle(billing_cycle)
    if cycle is BillingCycle.MONTHLY:
        raw = plan.monthly_price
    elif cycle is BillingCycle.YEARLY:
        raw = plan.yearly_price
    else:
        raw = plan.lifetime_price
    if raw is None:
        return None
    return Decimal(raw)


def _price_id_attr(billing_cycle: str) -> str:
    return f"provider_{BillingCycle(billing_cycle).value}_price_id"


def provider_price_id(plan: SubscriptionPlan, billing_cycle: str) -> str | None:
    return getattr(plan, _price_id_attr(billing_cycle))


def ensure_provider_price(db: Session, plan: SubscriptionPlan, billing_cycle: str, currency: str) -> str:
    """Return the Airwallex price id for ``plan``/``billing_cycle``, creating it on first use.

    The product is created once per plan and reused for every cycle. Ids are
    committed as soon as they exist so a later failure does not orphan them.
    """
    price_id = provider_price_id(plan, billing_cycle)
    if price_id:
        return price_id

    amount = price_for_cycle(plan, billing_cycle)
    if amount is None or amount <= 0:
        raise ValueError("Invalid plan pricing")

    try:
        if not plan.provider_product_id:
            product = airwallex.create_product(plan.name, f"PhotoPro {plan.name} Plan")
            plan.provider_product_id = str(product["id"])
            db.commit()

        price = airwallex.create_price(
            product_id=plan.provider_product_id,
            plan_name=plan.name,
            amount=amount,
            currency=currency,
            billing_cycle=billing_cycle,
        )
        price_id = str(price["id"])
        setattr(plan, _price_id_attr(billing_cycle), price_id)
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info("plans.provider_price.created plan_id=%s cycle=%s price_id=%s", plan.id, billing_cycle, price_id)
    return price_id
