import enum
from uuid import uuid4

from sqlalchemy import Column, DateTime, ForeignKey, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.core.database import Base


class SubscriptionStatus(str, enum.Enum):
    PENDING = "pending"
    ACTIVE = "active"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


class BillingCycle(str, enum.Enum):
    MONTHLY = "monthly"
    YEARLY = "yearly"
    LIFETIME = "lifetime"


class UserSubscription(Base):
    __tablename__ = "user_subscriptions"

    id = Column(String, primary_key=True, index=True, default=lambda: str(uuid4()))
    # One row per user, updated in place.
    user_id = Column(String, ForeignKey("users.id"), unique=True, index=True, nullable=False)
    plan_id = Column(String, ForeignKey("subscription_plans.id"), index=True, nullable=False)
    status = Column(String, index=True, nullable=False, default=SubscriptionStatus.PENDING.value)
    billing_cycle = Column(String, nullable=True)
    provider_subscription_id = Column(String, index=True, nullable=True)
    current_period_start = Column(DateTime(timezone=True), nullable=True)
    current_period_end = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    plan = relationship("SubscriptionPlan", lazy="joined")
