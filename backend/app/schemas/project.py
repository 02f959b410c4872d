from datetime import datetime
from typing import Any, Optional

from pydantic import Field

from app.schemas.common import ApiModel


class ProjectCreate(ApiModel):
    name: str = Field(min_length=1)
    thumbnail_url: Optional[str] = None
    project_data: Optional[Any] = None


class ProjectUpdate(ApiModel):
    name: Optional[str] = Field(default=None, min_length=1)
    thumbnail_url: Optional[str] = None
    project_data: Optional[Any] = None


class ProjectResponse(ApiModel):
    id: str
    name: str
    thumbnail_url: Optional[str] = None
    project_data: Optional[Any] = None
    last_modified: Optional[datetime] = None
    created_at: Optional[datetime] = None
