"""TagDAO — tags and photo_tags tables."""

from collections import defaultdict

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from photopager.dao.base import BaseDAO
from photopager.models.tag import PhotoTag, Tag


class TagDAO(BaseDAO[Tag]):
    model = Tag

    async def get_or_create(self, session: AsyncSession, project_id: int, name: str) -> Tag:
        stmt = select(Tag).where(Tag.project_id == project_id, Tag.name == name)
        result = await session.execute(stmt)
        tag = result.scalar_one_or_none()
        if tag is None:
            tag = await self.create(session, project_id=project_id, name=name)
        return tag

    async def tag_photo(self, session: AsyncSession, photo_id: int, tag_id: int) -> None:
        """Attach a tag to a photo; attaching twice is a no-op."""
        existing = await session.get(PhotoTag, (photo_id, tag_id))
        if existing is None:
            session.add(PhotoTag(photo_id=photo_id, tag_id=tag_id))
            await session.flush()

    async def names_for_photos(
        self, session: AsyncSession, photo_ids: list[int]
    ) -> dict[int, list[str]]:
        """Return sorted tag names per photo id in one query."""
        if not photo_ids:
            return {}
        stmt = (
            select(PhotoTag.photo_id, Tag.name)
            .join(Tag, Tag.id == PhotoTag.tag_id)
            .where(PhotoTag.photo_id.in_(photo_ids))
            .order_by(PhotoTag.photo_id, Tag.name)
        )
        result = await session.execute(stmt)
        names: dict[int, list[str]] = defaultdict(list)
        for row in result:
            names[row.photo_id].append(row.name)
        return {pid: names.get(pid, []) for pid in photo_ids}
