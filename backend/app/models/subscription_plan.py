from uuid import uuid4

from sqlalchemy import JSON, Boolean, Column, DateTime, Integer, Numeric, String
from sqlalchemy.sql import func

from app.core.database import Base


class SubscriptionPlan(Base):
    __tablename__ = "subscription_plans"

    id = Column(String, primary_key=True, index=True, default=lambda: str(uuid4()))
    name = Column(String, unique=True, index=True, nullable=False)
    monthly_price = Column(Numeric(10, 2), nullable=True)
    yearly_price = Column(Numeric(10, 2), nullable=True)
    lifetime_price = Column(Numeric(10, 2), nullable=True)
    features = Column(JSON, nullable=False, default=list)
    # None means unlimited
    ai_credits_per_month = Column(Integer, nullable=True)
    is_active = Column(Boolean, default=True)
    # Airwallex catalog entries, created on first checkout for each cycle.
    provider_product_id = Column(String, nullable=True)
    provider_monthly_price_id = Column(String, nullable=True)
    provider_yearly_price_id = Column(String, nullable=True)
    provider_lifetime_price_id = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
