from uuid import uuid4

from sqlalchemy import JSON, Column, DateTime, ForeignKey, String
from sqlalchemy.sql import func

from app.core.database import Base


class UserProject(Base):
    __tablename__ = "user_projects"

    id = Column(String, primary_key=True, index=True, default=lambda: str(uuid4()))
    user_id = Column(String, ForeignKey("users.id"), index=True, nullable=False)
    name = Column(String, nullable=False)
    thumbnail_url = Column(String, nullable=True)
    project_data = Column(JSON, nullable=True)
    last_modified = Column(DateTime(timezone=True), server_default=func.now())
    created_at = Column(DateTime(timezone=True), server_default=func.now())
