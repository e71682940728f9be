"""ProjectService — project lookup and listing."""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from photopager.dao.project_dao import ProjectDAO
from photopager.models.project import Project
from photopager.services import NotFoundError


class ProjectService:
    """Stateless service for project queries."""

    def __init__(self, project_dao: ProjectDAO) -> None:
        self._project_dao = project_dao

    async def get_by_folder(
        self, session: AsyncSession, folder: str, *, include_archived: bool = True
    ) -> Project:
        """Return the project stored under *folder*.

        Raises :class:`NotFoundError` (code ``project_not_found``) if it does
        not exist, or is archived and *include_archived* is false.
        """
        project = await self._project_dao.get_by_folder(session, folder)
        if project is None or (project.is_archived and not include_archived):
            raise NotFoundError(f"project '{folder}' not found", code="project_not_found")
        return project

    async def list(self, session: AsyncSession) -> list[dict]:
        """Return non-archived projects with their photo counts."""
        projects = await self._project_dao.list_active(session)
        counts = await self._project_dao.photo_counts(session, [p.id for p in projects])
        return [{"project": p, "photo_count": counts.get(p.id, 0)} for p in projects]
