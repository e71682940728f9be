"""Photos router — the all-projects union view."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from photopager.api.deps import get_photo_service, get_session
from photopager.api.params import photo_filters, sort_spec
from photopager.api.schemas.photo import (
    LocatedPhotoPage,
    PhotoItem,
    PhotoPage,
    PhotoResponse,
    TargetSummary,
)
from photopager.filters import PhotoFilters, SortSpec
from photopager.services.photo_service import PhotoService

router = APIRouter()


def _items(result: dict) -> list[PhotoItem]:
    return [
        PhotoItem(
            **{k: getattr(item["photo"], k) for k in PhotoResponse.model_fields},
            tags=item["tags"],
        )
        for item in result["items"]
    ]


def photo_page(result: dict) -> PhotoPage:
    return PhotoPage(
        items=_items(result),
        next_cursor=result["next_cursor"],
        prev_cursor=result["prev_cursor"],
        total=result["total"],
        unfiltered_total=result["unfiltered_total"],
        limit=result["limit"],
    )


def located_page(result: dict) -> LocatedPhotoPage:
    return LocatedPhotoPage(
        items=_items(result),
        next_cursor=result["next_cursor"],
        prev_cursor=result["prev_cursor"],
        total=result["total"],
        unfiltered_total=result["unfiltered_total"],
        limit=result["limit"],
        position=result["position"],
        page_index=result["page_index"],
        idx_in_items=result["idx_in_items"],
        target=TargetSummary.model_validate(result["target"]),
    )


@router.get("", response_model=PhotoPage)
async def list_photos(
    response: Response,
    cursor: str | None = Query(None),
    before_cursor: str | None = Query(None),
    limit: int | None = Query(None, description="Clamped to 1..300"),
    project_folder: str | None = Query(None),
    filters: PhotoFilters = Depends(photo_filters),
    sort: SortSpec = Depends(sort_spec),
    session: AsyncSession = Depends(get_session),
    svc: PhotoService = Depends(get_photo_service),
) -> PhotoPage:
    result = await svc.list(
        session,
        folder=project_folder,
        union=True,
        filters=filters,
        sort=sort,
        cursor=cursor,
        before_cursor=before_cursor,
        limit=limit,
    )
    response.headers["Cache-Control"] = "no-store"
    return photo_page(result)


@router.get("/locate-page", response_model=LocatedPhotoPage)
async def locate_photo(
    response: Response,
    project_folder: str = Query(...),
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
        folder=project_folder,
        union=True,
        filename=filename,
        name=name,
        filters=filters,
        sort=sort,
        limit=limit,
    )
    response.headers["Cache-Control"] = "no-store"
    return located_page(result)
