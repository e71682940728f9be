"""ProjectDAO — projects table operations."""

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from photopager.dao.base import BaseDAO
from photopager.models.photo import Photo
from photopager.models.project import ARCHIVED_STATUS, Project


class ProjectDAO(BaseDAO[Project]):
    model = Project

    async def get_by_folder(self, session: AsyncSession, folder: str) -> Project | None:
        stmt = select(Project).where(Project.project_folder == folder)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_active(self, session: AsyncSession) -> list[Project]:
        """Projects that are not archived, newest first."""
        stmt = (
            select(Project)
            .where(or_(Project.status.is_(None), Project.status != ARCHIVED_STATUS))
            .order_by(Project.created_at.desc(), Project.id.desc())
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    async def photo_counts(self, session: AsyncSession, project_ids: list[int]) -> dict[int, int]:
        """Return photo count per project in a single aggregate query."""
        if not project_ids:
            return {}
        stmt = (
            select(Photo.project_id, func.count().label("cnt"))
            .where(Photo.project_id.in_(project_ids))
            .group_by(Photo.project_id)
        )
        result = await session.execute(stmt)
        counts = {row.project_id: row.cnt for row in result}
        return {pid: counts.get(pid, 0) for pid in project_ids}
