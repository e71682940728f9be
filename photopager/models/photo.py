"""photos table.

Capture and file timestamps are stored as ISO-8601 UTC strings, the same
representation the keyset cursor carries, so ``taken_at`` compares
lexicographically in every backend.
"""

from typing import Optional

from sqlalchemy import Boolean, ForeignKey, Index, Integer, Text, func, text
from sqlalchemy.orm import Mapped, column_property, mapped_column, relationship

from photopager.core.database import Base
from photopager.models.project import Project

JPG_EXTENSIONS = frozenset({"jpg", "jpeg"})
RAW_EXTENSIONS = frozenset({"arw", "cr2", "nef", "dng", "raw"})


class Photo(Base):
    __tablename__ = "photos"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    project_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
    )
    filename: Mapped[str] = mapped_column(Text, nullable=False)
    basename: Mapped[Optional[str]] = mapped_column(Text)
    ext: Mapped[Optional[str]] = mapped_column(Text)

    date_time_original: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[str] = mapped_column(Text, nullable=False)

    jpg_available: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    raw_available: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    other_available: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    keep_jpg: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    keep_raw: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # EXIF orientation 1-8; 5-8 mean the stored width/height are rotated.
    orientation: Mapped[Optional[int]] = mapped_column(Integer)
    width: Mapped[Optional[int]] = mapped_column(Integer)
    height: Mapped[Optional[int]] = mapped_column(Integer)

    visibility: Mapped[str] = mapped_column(
        Text, nullable=False, server_default=text("'private'"), default="private"
    )

    # Primary sort key: capture time, falling back to file creation time.
    taken_at: Mapped[str] = column_property(func.coalesce(date_time_original, created_at))

    project: Mapped[Project] = relationship(Project, lazy="raise")

    __table_args__ = (
        Index("idx_photos_project_filename", "project_id", "filename"),
        Index("idx_photos_project_basename", "project_id", "basename"),
        Index("idx_photos_project_taken", "project_id", "date_time_original", "id"),
        Index("idx_photos_created", "created_at", "id"),
    )

    @property
    def project_folder(self) -> str:
        return self.project.project_folder

    @property
    def project_name(self) -> str:
        return self.project.project_name

    @property
    def key(self) -> str:
        """Stable identity used by clients for de-duplication."""
        return f"{self.project_folder}::{self.filename}"
