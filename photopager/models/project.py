"""projects table."""

from typing import Optional

from sqlalchemy import Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from photopager.core.database import Base, TimestampMixin

ARCHIVED_STATUS = "canceled"


class Project(TimestampMixin, Base):
    __tablename__ = "projects"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    project_folder: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    project_name: Mapped[str] = mapped_column(Text, nullable=False)
    # NULL or 'active' are live; 'canceled' marks an archived project.
    status: Mapped[Optional[str]] = mapped_column(Text)

    @property
    def is_archived(self) -> bool:
        return self.status == ARCHIVED_STATUS
