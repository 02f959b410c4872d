from datetime import datetime
from typing import Optional

from pydantic import Field

from app.schemas.common import ApiModel


class AiUsageRequest(ApiModel):
    feature_type: str = Field(min_length=1)
    credits_used: int = Field(default=1, ge=1)


class AiUsageResponse(ApiModel):
    id: str
    subscription_id: Optional[str] = None
    feature_type: str
    credits_used: int
    month: int
    year: int
    created_at: Optional[datetime] = None


class UsageSummaryResponse(ApiModel):
    month: int
    year: int
    used: int
    limit: Optional[int] = None
    remaining: Optional[int] = None
