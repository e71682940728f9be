"""Tests for the API layer — photo and project routes.

Uses httpx.AsyncClient over ASGITransport. Services are mocked to isolate
the API layer from the database unless a test says otherwise.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import ASGITransport, AsyncClient

from photopager.dao.base import InvalidCursorError, encode_cursor
from photopager.filters import PhotoFilters, SortSpec
from photopager.models.photo import Photo
from photopager.models.project import Project
from photopager.services import NotFoundError, ValidationError

# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------

TS = "2024-05-01T10:00:00Z"


def _project(**overrides) -> Project:
    values = {"id": 1, "project_folder": "trip", "project_name": "Trip", "status": None}
    values.update(overrides)
    return Project(**values)


def _photo(photo_id: int = 1, project: Project | None = None, **overrides) -> Photo:
    values = {
        "id": photo_id,
        "project_id": 1,
        "project": project or _project(),
        "filename": f"img{photo_id}.jpg",
        "basename": f"img{photo_id}",
        "ext": "jpg",
        "date_time_original": TS,
        "taken_at": TS,
        "created_at": TS,
        "updated_at": TS,
        "jpg_available": True,
        "raw_available": False,
        "other_available": False,
        "keep_jpg": True,
        "keep_raw": False,
        "orientation": 1,
        "width": 6000,
        "height": 4000,
        "visibility": "private",
    }
    values.update(overrides)
    return Photo(**values)


def _list_result(photos: list[Photo], **overrides) -> dict:
    result = {
        "items": [{"photo": p, "tags": []} for p in photos],
        "next_cursor": None,
        "prev_cursor": None,
        "total": len(photos),
        "unfiltered_total": len(photos),
        "limit": 100,
    }
    result.update(overrides)
    return result


@pytest.fixture
def app():
    """Create a test app with mocked session (no real DB)."""
    from fastapi import FastAPI

    from photopager.api import deps
    from photopager.api.errors import register_error_handlers
    from photopager.api.routers import photos, projects

    mock_session = AsyncMock()
    mock_session.begin = MagicMock(return_value=mock_session)

    application = FastAPI()
    register_error_handlers(application)
    application.include_router(photos.router, prefix="/api/v1/photos")
    application.include_router(projects.router, prefix="/api/v1/projects")

    async def _mock_session():
        yield mock_session

    application.dependency_overrides[deps.get_session] = _mock_session
    return application


@pytest.fixture
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest.fixture
def photo_svc(app):
    from photopager.api import deps

    svc = AsyncMock()
    app.dependency_overrides[deps.get_photo_service] = lambda: svc
    return svc


# ---------------------------------------------------------------------------
# Union listing
# ---------------------------------------------------------------------------


class TestListPhotos:
    @pytest.mark.asyncio
    async def test_list_success(self, client, photo_svc):
        photo_svc.list = AsyncMock(
            return_value=_list_result([_photo(2), _photo(1)], next_cursor="abc", total=10)
        )
        resp = await client.get("/api/v1/photos", params={"limit": 2})

        assert resp.status_code == 200
        assert resp.headers["cache-control"] == "no-store"
        body = resp.json()
        assert [item["id"] for item in body["items"]] == [2, 1]
        assert body["items"][0]["key"] == "trip::img2.jpg"
        assert body["items"][0]["project_folder"] == "trip"
        assert body["items"][0]["taken_at"] == TS
        assert body["items"][0]["tags"] == []
        assert body["next_cursor"] == "abc"
        assert body["prev_cursor"] is None
        assert body["total"] == 10

        kwargs = photo_svc.list.await_args.kwargs
        assert kwargs["union"] is True
        assert kwargs["folder"] is None
        assert kwargs["limit"] == 2
        assert kwargs["filters"] == PhotoFilters()
        assert kwargs["sort"] == SortSpec()

    @pytest.mark.asyncio
    async def test_filters_and_sort_forwarded(self, client, photo_svc):
        photo_svc.list = AsyncMock(return_value=_list_result([]))
        resp = await client.get(
            "/api/v1/photos",
            params={
                "tags": "sunset,-blurry",
                "file_type": "jpg_only",
                "date_to": "2024-12-31",
                "sort": "filename",
                "dir": "asc",
                "project_folder": "trip",
            },
        )
        assert resp.status_code == 200
        kwargs = photo_svc.list.await_args.kwargs
        assert kwargs["filters"].include_tags == ("sunset",)
        assert kwargs["filters"].exclude_tags == ("blurry",)
        assert kwargs["filters"].file_type == "jpg_only"
        assert kwargs["sort"] == SortSpec(field="filename", direction="asc")
        assert kwargs["folder"] == "trip"

    @pytest.mark.asyncio
    async def test_out_of_range_limit_is_not_an_error(self, client, photo_svc):
        photo_svc.list = AsyncMock(return_value=_list_result([], limit=300))
        resp = await client.get("/api/v1/photos", params={"limit": 5000})
        assert resp.status_code == 200
        assert resp.json()["limit"] == 300

    @pytest.mark.asyncio
    async def test_unknown_enum_value(self, client, photo_svc):
        resp = await client.get("/api/v1/photos", params={"file_type": "png"})
        assert resp.status_code == 422
        assert resp.json()["code"] == "invalid_request"

    @pytest.mark.asyncio
    async def test_bad_date_filter(self, client, photo_svc):
        resp = await client.get("/api/v1/photos", params={"date_from": "last tuesday"})
        assert resp.status_code == 422
        assert resp.json()["code"] == "invalid_filter"

    @pytest.mark.asyncio
    async def test_invalid_cursor(self, client, photo_svc):
        photo_svc.list = AsyncMock(side_effect=InvalidCursorError("invalid cursor: 'x'"))
        resp = await client.get("/api/v1/photos", params={"cursor": "x"})
        assert resp.status_code == 422
        assert resp.json()["code"] == "invalid_cursor"
        assert resp.headers["cache-control"] == "no-store"

    @pytest.mark.asyncio
    async def test_conflicting_cursors(self, client, photo_svc):
        photo_svc.list = AsyncMock(
            side_effect=ValidationError("both", code="conflicting_cursors")
        )
        resp = await client.get("/api/v1/photos", params={"cursor": "a", "before_cursor": "b"})
        assert resp.status_code == 422
        assert resp.json()["code"] == "conflicting_cursors"


class TestRealServiceCursorErrors:
    """Malformed cursors are rejected before any query reaches the session."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "params",
        [
            {"cursor": "%%%not-base64"},
            {"before_cursor": encode_cursor("2024-01-01", 1)[:-3] + "!!!"},
            {"cursor": "eyJpZCI6MX0"},  # {"id":1}, no sortValue
        ],
    )
    async def test_rejected(self, client, params):
        resp = await client.get("/api/v1/photos", params=params)
        assert resp.status_code == 422
        assert resp.json()["code"] == "invalid_cursor"

    @pytest.mark.asyncio
    async def test_both_cursors(self, client):
        cur = encode_cursor("2024-01-01", 1)
        resp = await client.get("/api/v1/photos", params={"cursor": cur, "before_cursor": cur})
        assert resp.status_code == 422
        assert resp.json()["code"] == "conflicting_cursors"


# ---------------------------------------------------------------------------
# Locate
# ---------------------------------------------------------------------------


class TestLocatePhoto:
    @pytest.mark.asyncio
    async def test_locate_success(self, client, photo_svc):
        target = _photo(3)
        result = _list_result([_photo(4), target], prev_cursor="p", next_cursor="n", limit=2)
        result.update(position=5, page_index=2, idx_in_items=1, target=target)
        photo_svc.locate = AsyncMock(return_value=result)

        resp = await client.get(
            "/api/v1/photos/locate-page",
            params={"project_folder": "trip", "name": "img3", "limit": 2},
        )
        assert resp.status_code == 200
        assert resp.headers["cache-control"] == "no-store"
        body = resp.json()
        assert body["idx_in_items"] == 1
        assert body["position"] == 5
        assert body["page_index"] == 2
        assert body["target"] == {
            "id": 3,
            "key": "trip::img3.jpg",
            "project_folder": "trip",
            "filename": "img3.jpg",
            "taken_at": TS,
        }
        assert body["items"][body["idx_in_items"]]["id"] == 3

        kwargs = photo_svc.locate.await_args.kwargs
        assert kwargs["folder"] == "trip"
        assert kwargs["name"] == "img3"
        assert kwargs["union"] is True

    @pytest.mark.asyncio
    async def test_locate_requires_project_folder(self, client, photo_svc):
        resp = await client.get("/api/v1/photos/locate-page", params={"filename": "a.jpg"})
        assert resp.status_code == 422

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "code", ["project_not_found", "target_not_found", "target_filtered_out"]
    )
    async def test_locate_not_found(self, client, photo_svc, code):
        photo_svc.locate = AsyncMock(side_effect=NotFoundError("missing", code=code))
        resp = await client.get(
            "/api/v1/photos/locate-page", params={"project_folder": "trip", "filename": "x.jpg"}
        )
        assert resp.status_code == 404
        assert resp.json() == {"detail": "missing", "code": code}
        assert resp.headers["cache-control"] == "no-store"


# ---------------------------------------------------------------------------
# Projects
# ---------------------------------------------------------------------------


class TestProjects:
    @pytest.mark.asyncio
    async def test_list_projects(self, app, client):
        from datetime import datetime, timezone

        from photopager.api import deps

        svc = AsyncMock()
        created = datetime(2024, 1, 1, tzinfo=timezone.utc)
        svc.list = AsyncMock(
            return_value=[{"project": _project(created_at=created), "photo_count": 12}]
        )
        app.dependency_overrides[deps.get_project_service] = lambda: svc

        resp = await client.get("/api/v1/projects")
        assert resp.status_code == 200
        body = resp.json()
        assert body[0]["project_folder"] == "trip"
        assert body[0]["photo_count"] == 12

    @pytest.mark.asyncio
    async def test_project_photos_use_project_scope(self, client, photo_svc):
        photo_svc.list = AsyncMock(return_value=_list_result([_photo(1)]))
        resp = await client.get("/api/v1/projects/trip/photos", params={"visibility": "public"})
        assert resp.status_code == 200
        kwargs = photo_svc.list.await_args.kwargs
        assert kwargs["folder"] == "trip"
        assert kwargs["union"] is False
        assert kwargs["filters"].visibility == "public"

    @pytest.mark.asyncio
    async def test_project_locate(self, client, photo_svc):
        target = _photo(1)
        result = _list_result([target])
        result.update(position=0, page_index=0, idx_in_items=0, target=target)
        photo_svc.locate = AsyncMock(return_value=result)
        resp = await client.get(
            "/api/v1/projects/trip/photos/locate-page", params={"filename": "img1.jpg"}
        )
        assert resp.status_code == 200
        assert photo_svc.locate.await_args.kwargs["union"] is False

    @pytest.mark.asyncio
    async def test_unknown_project(self, client, photo_svc):
        photo_svc.list = AsyncMock(
            side_effect=NotFoundError("project 'nope' not found", code="project_not_found")
        )
        resp = await client.get("/api/v1/projects/nope/photos")
        assert resp.status_code == 404
        assert resp.json()["code"] == "project_not_found"


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------


class TestAppFactory:
    @pytest.mark.asyncio
    async def test_health_and_request_id(self):
        from photopager.api import create_app

        application = create_app()
        transport = ASGITransport(app=application)
        async with AsyncClient(transport=transport, base_url="http://test") as c:
            resp = await c.get("/health", headers={"X-Request-ID": "abc-123"})
            fresh = await c.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}
        assert resp.headers["x-request-id"] == "abc-123"
        assert len(fresh.headers["x-request-id"]) == 32


# ---------------------------------------------------------------------------
# Against a real database
# ---------------------------------------------------------------------------


class TestEndToEnd:
    @pytest.fixture
    async def db_client(self, app, session, add_project, add_photo, settle):
        from photopager.api import deps

        trip = await add_project("trip")
        old = await add_project("old", status="canceled")
        for n in range(1, 8):
            await add_photo(trip, f"t{n}.jpg", taken=f"2024-01-0{n}T00:00:00Z")
        await add_photo(old, "o1.jpg", taken="2024-01-05T12:00:00Z")
        await settle()

        async def _real_session():
            yield session

        app.dependency_overrides[deps.get_session] = _real_session
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as c:
            yield c

    @pytest.mark.asyncio
    async def test_scroll_down_then_back_up(self, db_client):
        first = (await db_client.get("/api/v1/photos", params={"limit": 3})).json()
        assert [i["filename"] for i in first["items"]] == ["t7.jpg", "t6.jpg", "t5.jpg"]
        assert first["total"] == 7
        assert first["prev_cursor"] is None

        second = (
            await db_client.get(
                "/api/v1/photos", params={"limit": 3, "cursor": first["next_cursor"]}
            )
        ).json()
        assert [i["filename"] for i in second["items"]] == ["t4.jpg", "t3.jpg", "t2.jpg"]

        back = (
            await db_client.get(
                "/api/v1/photos", params={"limit": 3, "before_cursor": second["prev_cursor"]}
            )
        ).json()
        assert back["items"] == first["items"]

    @pytest.mark.asyncio
    async def test_project_view_includes_archived(self, db_client):
        resp = await db_client.get("/api/v1/projects/old/photos")
        assert [i["key"] for i in resp.json()["items"]] == ["old::o1.jpg"]

    @pytest.mark.asyncio
    async def test_locate(self, db_client):
        resp = await db_client.get(
            "/api/v1/photos/locate-page",
            params={"project_folder": "trip", "name": "T2", "limit": 3},
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["position"] == 5
        assert body["page_index"] == 1
        assert body["items"][body["idx_in_items"]]["filename"] == "t2.jpg"

    @pytest.mark.asyncio
    async def test_locate_filtered_out(self, db_client):
        resp = await db_client.get(
            "/api/v1/photos/locate-page",
            params={"project_folder": "trip", "filename": "t2.jpg", "visibility": "public"},
        )
        assert resp.status_code == 404
        assert resp.json()["code"] == "target_filtered_out"

    @pytest.mark.asyncio
    async def test_archived_project_hidden_from_union_locate(self, db_client):
        resp = await db_client.get(
            "/api/v1/photos/locate-page", params={"project_folder": "old", "filename": "o1.jpg"}
        )
        assert resp.status_code == 404
        assert resp.json()["code"] == "project_not_found"


class TestUnionLocate:
    @pytest.fixture
    async def db_client(self, app, session, add_project, add_photo, settle):
        from photopager.api import deps

        trip = await add_project("trip")
        city = await add_project("city")
        for day in (1, 3, 5, 7):
            await add_photo(trip, f"t{day}.jpg", taken=f"2024-01-0{day}T00:00:00Z")
        for day in (2, 4, 6):
            await add_photo(city, f"c{day}.jpg", taken=f"2024-01-0{day}T00:00:00Z")
        await settle()

        async def _real_session():
            yield session

        app.dependency_overrides[deps.get_session] = _real_session
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as c:
            yield c

    @pytest.mark.asyncio
    async def test_rank_spans_all_projects(self, db_client):
        resp = await db_client.get(
            "/api/v1/photos/locate-page",
            params={"project_folder": "trip", "filename": "t3.jpg", "limit": 2},
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["position"] == 4
        assert body["page_index"] == 2
        assert [i["key"] for i in body["items"]] == ["trip::t3.jpg", "city::c2.jpg"]
        assert body["total"] == 7

    @pytest.mark.asyncio
    async def test_located_page_joins_its_neighbours(self, db_client):
        located = (
            await db_client.get(
                "/api/v1/photos/locate-page",
                params={"project_folder": "trip", "filename": "t3.jpg", "limit": 2},
            )
        ).json()

        after = (
            await db_client.get(
                "/api/v1/photos", params={"limit": 2, "cursor": located["next_cursor"]}
            )
        ).json()
        before = (
            await db_client.get(
                "/api/v1/photos", params={"limit": 2, "before_cursor": located["prev_cursor"]}
            )
        ).json()
        assert [i["key"] for i in after["items"]] == ["trip::t1.jpg"]
        assert [i["key"] for i in before["items"]] == ["trip::t5.jpg", "city::c4.jpg"]
