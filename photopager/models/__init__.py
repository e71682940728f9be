"""SQLAlchemy ORM models — one file per table."""

from photopager.models.photo import Photo
from photopager.models.project import Project
from photopager.models.tag import PhotoTag, Tag

__all__ = [
    "Project",
    "Photo",
    "Tag",
    "PhotoTag",
]
