"""Project response schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class ProjectResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    project_folder: str
    project_name: str
    status: str | None
    created_at: datetime


class ProjectListItem(ProjectResponse):
    photo_count: int
