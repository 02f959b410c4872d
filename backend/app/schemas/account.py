from datetime import datetime
from typing import Optional

from pydantic import Field

from app.schemas.common import ApiModel
from app.schemas.plan import PlanResponse


class RegisterRequest(ApiModel):
    username: str = Field(min_length=3)
    password: str = Field(min_length=6)
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None


class LoginRequest(ApiModel):
    username: str = Field(min_length=3)
    password: str = Field(min_length=6)


class SubscriptionResponse(ApiModel):
    id: str
    plan_id: str
    status: str
    billing_cycle: Optional[str] = None
    current_period_start: Optional[datetime] = None
    current_period_end: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    provider_subscription_id: Optional[str] = None
    plan: Optional[PlanResponse] = None


class UserResponse(ApiModel):
    id: str
    username: str
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    profile_image_url: Optional[str] = None
    billing_customer_id: Optional[str] = None
    created_at: Optional[datetime] = None


class AuthUserResponse(UserResponse):
    subscription: Optional[SubscriptionResponse] = None
    ai_usage_this_month: int = 0


class TokenResponse(ApiModel):
    access_token: str
    token_type: str = "bearer"
    user: UserResponse
