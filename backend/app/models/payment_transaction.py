import enum
from uuid import uuid4

from sqlalchemy import Column, DateTime, ForeignKey, Numeric, String
from sqlalchemy.sql import func

from app.core.database import Base


class TransactionStatus(str, enum.Enum):
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"


class PaymentTransaction(Base):
    __tablename__ = "payment_transactions"

    id = Column(String, primary_key=True, index=True, default=lambda: str(uuid4()))
    user_id = Column(String, ForeignKey("users.id"), index=True, nullable=False)
    plan_id = Column(String, ForeignKey("subscription_plans.id"), index=True, nullable=False)
    subscription_id = Column(String, ForeignKey("user_subscriptions.id"), nullable=True)
    # Airwallex checkout / payment intent id
    provider_reference = Column(String, unique=True, index=True, nullable=False)
    amount = Column(Numeric(10, 2), nullable=False)
    currency = Column(String, nullable=False, default="USD")
    status = Column(String, index=True, nullable=False, default=TransactionStatus.PENDING.value)
    payment_method = Column(String, nullable=True)
    billing_cycle = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
