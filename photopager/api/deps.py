"""Dependency injection — session and service singletons."""

from __future__ import annotations

from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from photopager.core.database import make_engine
from photopager.dao.photo_dao import PhotoDAO
from photopager.dao.project_dao import ProjectDAO
from photopager.dao.tag_dao import TagDAO
from photopager.services.photo_service import PhotoService
from photopager.services.project_service import ProjectService

# ---------------------------------------------------------------------------
# DAO singletons
# ---------------------------------------------------------------------------
_photo_dao = PhotoDAO()
_project_dao = ProjectDAO()
_tag_dao = TagDAO()

# ---------------------------------------------------------------------------
# Service singletons
# ---------------------------------------------------------------------------
_project_service = ProjectService(_project_dao)
_photo_service = PhotoService(_photo_dao, _tag_dao, _project_service)

# ---------------------------------------------------------------------------
# Engine / session factory (initialised by app lifespan)
# ---------------------------------------------------------------------------
_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def init_session_factory(database_url: str | None = None) -> async_sessionmaker[AsyncSession]:
    """Create the async engine and session factory. Called once at startup."""
    global _engine, _session_factory  # noqa: PLW0603
    _engine = make_engine(database_url)
    _session_factory = async_sessionmaker(_engine, expire_on_commit=False)
    return _session_factory


def get_engine() -> AsyncEngine | None:
    return _engine


async def dispose_engine() -> None:
    """Dispose the async engine, closing all pooled connections."""
    global _engine  # noqa: PLW0603
    if _engine is not None:
        await _engine.dispose()
        _engine = None


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Yield a per-request session with automatic commit/rollback."""
    if _session_factory is None:
        raise RuntimeError("call init_session_factory() before handling requests")
    async with _session_factory() as session:
        async with session.begin():
            yield session


# ---------------------------------------------------------------------------
# Service getters (for Depends())
# ---------------------------------------------------------------------------


def get_photo_service() -> PhotoService:
    return _photo_service


def get_project_service() -> ProjectService:
    return _project_service
