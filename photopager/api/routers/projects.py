"""Projects router — project listing and single-project photo views."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from photopager.api.deps import get_photo_service, get_project_service, get_session
from photopager.api.params import photo_filters, sort_spec
from photopager.api.routers.photos import located_page, photo_page
from photopager.api.schemas.photo import LocatedPhotoPage, PhotoPage
from photopager.api.schemas.project import ProjectListItem, ProjectResponse
from photopager.filters import PhotoFilters, SortSpec
from photopager.services.photo_service import PhotoService
from photopager.services.project_service import ProjectService

router = APIRouter()


@router.get("", response_model=list[ProjectListItem])
async def list_projects(
    session: AsyncSession = Depends(get_session),
    svc: ProjectService = Depends(get_project_service),
) -> list[ProjectListItem]:
    result = await svc.list(session)
    return [
        ProjectListItem(
            **{k: getattr(item["project"], k) for k in ProjectResponse.model_fields},
            photo_count=item["photo_count"],
        )
        for item in result
    ]


@router.get("/{folder}/photos", response_model=PhotoPage)
async def list_project_photos(
    folder: str,
    response: Response,
    cursor: str | None = Query(None),
    before_cursor: str | None = Query(None),
    limit: int | None = Query(None, description="Clamped to 1..300"),
    filters: PhotoFilters = Depends(photo_filters),
    sort: SortSpec = Depends(sort_spec),
    session: AsyncSession = Depends(get_session),
    svc: PhotoService = Depends(get_photo_service),
) -> PhotoPage:
    result = await svc.list(
        session,
        folder=folder,
        union=False,
        filters=filters,
        sort=sort,
        cursor=cursor,
        before_cursor=before_cursor,
        limit=limit,
    )
    response.headers["Cache-Control"] = "no-store"
    return photo_page(result)


@router.get("/{folder}/photos/locate-page", response_model=LocatedPhotoPage)
async def locate_project_photo(
    folder: str,
    response: Response,
    filename: str | None = Query(None),
    name: str | None = Query(None),
    limit: int | None = Query(None, description="Clamped to 1..300"),
    filters: PhotoFilters = Depends(photo_filters),
    sort: SortSpec = Depends(sort_spec),
    session: AsyncSession = Depends(get_session),
    svc: PhotoService = Depends(get_photo_service),
) -> LocatedPhotoPage:
    result = await svc.locate(
        session,
        folder=folder,
        union=False,
        filename=filename,
        name=name,
        filters=filters,
        sort=sort,
        limit=limit,
    )
    response.headers["Cache-Control"] = "no-store"
    return located_page(result)
