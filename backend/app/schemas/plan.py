from decimal import Decimal
from typing import List, Optional

from app.schemas.common import ApiModel


class PlanResponse(ApiModel):
    id: str
    name: str
    monthly_price: Optional[Decimal] = None
    yearly_price: Optional[Decimal] = None
    lifetime_price: Optional[Decimal] = None
    features: List[str] = []
    ai_credits_per_month: Optional[int] = None
    is_active: bool = True
