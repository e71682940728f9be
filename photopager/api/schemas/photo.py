"""Photo response schemas."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from photopager.api.schemas.common import CursorPage


class PhotoResponse(BaseModel):
    """Photo row fields as stored, plus the owning project."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    key: str
    project_folder: str
    project_name: str
    filename: str
    basename: str | None
    ext: str | None
    taken_at: str
    date_time_original: str | None
    created_at: str
    updated_at: str
    jpg_available: bool
    raw_available: bool
    other_available: bool
    keep_jpg: bool
    keep_raw: bool
    orientation: int | None
    width: int | None
    height: int | None
    visibility: str


class PhotoItem(PhotoResponse):
    tags: list[str] = []


class TargetSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    key: str
    project_folder: str
    filename: str
    taken_at: str


class PhotoPage(CursorPage[PhotoItem]):
    pass


class LocatedPhotoPage(CursorPage[PhotoItem]):
    position: int
    page_index: int
    idx_in_items: int
    target: TargetSummary
