from datetime import datetime
from decimal import Decimal
from typing import Literal, Optional

from app.schemas.account import SubscriptionResponse
from app.schemas.common import ApiModel


class CreatePaymentIntentRequest(ApiModel):
    plan_id: str
    billing_cycle: Literal["monthly", "yearly", "lifetime"]


class CheckoutResponse(ApiModel):
    checkout_url: str
    checkout_id: str
    amount: Decimal
    currency: str
    plan_name: str
    billing_cycle: str


class TransactionResponse(ApiModel):
    id: str
    plan_id: str
    subscription_id: Optional[str] = None
    provider_reference: str
    amount: Decimal
    currency: str
    status: str
    payment_method: Optional[str] = None
    billing_cycle: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class PaymentSuccessResponse(ApiModel):
    success: bool
    status: str
    message: str
    transaction: TransactionResponse
    subscription: Optional[SubscriptionResponse] = None
