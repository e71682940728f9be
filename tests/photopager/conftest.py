"""Shared fixtures for photopager tests.

DAO and service tests run against an in-memory SQLite database through
aiosqlite; the schema is created fresh for every test. Override with the
``TEST_DATABASE_URL`` environment variable (any async SQLAlchemy URL).
"""

from __future__ import annotations

import os

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import photopager.models  # noqa: F401
from photopager.core.database import Base
from photopager.models.photo import Photo
from photopager.models.project import Project

DEFAULT_DB_URL = "sqlite+aiosqlite://"


@pytest.fixture(scope="session")
def db_url():
    return os.environ.get("TEST_DATABASE_URL", DEFAULT_DB_URL)


@pytest_asyncio.fixture
async def engine(db_url):
    """Async engine with all tables created; dropped again after the test."""
    kwargs = {}
    if db_url.startswith("sqlite"):
        # One shared connection, or each checkout would see its own empty DB.
        kwargs = {"poolclass": StaticPool, "connect_args": {"check_same_thread": False}}
    eng = create_async_engine(db_url, echo=False, **kwargs)
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await eng.dispose()


@pytest_asyncio.fixture
async def session(engine):
    """Provide a transactional session that rolls back after each test."""
    async with async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)() as sess:
        async with sess.begin():
            yield sess
            await sess.rollback()


@pytest.fixture
def add_project(session):
    async def _add(folder: str = "p1", *, status: str | None = None) -> Project:
        project = Project(project_folder=folder, project_name=folder.upper(), status=status)
        session.add(project)
        await session.flush()
        return project

    return _add


@pytest.fixture
def add_photo(session):
    """Insert one photo; ``taken`` is the capture time, ``created`` the file time."""

    async def _add(
        project: Project,
        filename: str,
        *,
        taken: str | None = None,
        created: str = "2020-01-01T00:00:00Z",
        **values,
    ) -> Photo:
        stem, dot, ext = filename.rpartition(".")
        photo = Photo(
            project_id=project.id,
            filename=filename,
            basename=stem if dot else filename,
            ext=ext.lower() if dot else None,
            date_time_original=taken,
            created_at=created,
            updated_at=created,
            **values,
        )
        session.add(photo)
        await session.flush()
        return photo

    return _add


@pytest.fixture
def settle(session):
    """Flush and detach everything so later queries load fresh rows."""

    async def _settle() -> None:
        await session.flush()
        session.expunge_all()

    return _settle
