"""Resume schemas."""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

from database.models.resumes import ExperienceLevel


class ResumeUpdate(BaseModel):
    """Schema for updating resume metadata."""

    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    experience_level: Optional[ExperienceLevel] = None
    is_active: Optional[bool] = None


class ResumeResponse(BaseModel):
    """Schema for resume response."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    filename: str
    original_name: str
    url: str
    file_size: int
    mime_type: str
    title: str
    description: Optional[str] = None
    experience_level: ExperienceLevel
    is_primary: bool
    is_active: bool
    created_at: datetime
    updated_at: datetime
