from uuid import uuid4

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.sql import func

from app.core.database import Base


class AiUsage(Base):
    __tablename__ = "ai_usage"

    id = Column(String, primary_key=True, index=True, default=lambda: str(uuid4()))
    user_id = Column(String, ForeignKey("users.id"), index=True, nullable=False)
    subscription_id = Column(String, ForeignKey("user_subscriptions.id"), nullable=True)
    feature_type = Column(String, index=True, nullable=False)  # enhance, background_removal, ...
    credits_used = Column(Integer, nullable=False, default=1)
    month = Column(Integer, index=True, nullable=False)
    year = Column(Integer, index=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
