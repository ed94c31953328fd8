"""
Tests for Data Table APIs.

These tests verify:
- Mapping of HTTP methods and route ids onto verbs
- Access checks and write_log hooks around each verb
- Validation of pagination, sort, and the update route id
- The success/error response envelope
"""

import logging
from collections import Counter

import pytest
from fastapi import APIRouter, FastAPI
from fastapi.testclient import TestClient
from pydantic import BaseModel

from volunteer_manager.web.actions import (
    ActionDispatcher,
    DataTableApi,
    create_data_table_api,
    no_access,
)
from volunteer_manager.web.routing import mount_data_table

CONTEXT = {"context": {"event": "2024"}}


class Vendor(BaseModel):
    id: int
    title: str


class EventScope(BaseModel):
    event: str


class VendorContext(BaseModel):
    context: EventScope


class VendorApi(DataTableApi):
    """Implements every verb, recording what happens."""

    def __init__(self):
        self.calls = Counter()
        self.access_checks = []
        self.logs = []
        self.requests = {}

    def _record(self, verb, request):
        self.calls[verb] += 1
        self.requests[verb] = request

    def access_check(self, request, verb, context):
        self.access_checks.append(verb)
        if request.context.event == "forbidden":
            no_access()

    async def create(self, request, context):
        self._record("create", request)
        return {"success": True, "row": {"id": 7, "title": "New vendor"}}

    async def get(self, request, context):
        self._record("get", request)
        return {"success": True, "row": {"id": request.id, "title": "Vendor"}}

    async def list(self, request, context):
        self._record("list", request)
        return {
            "success": True,
            "rowCount": 2,
            "rows": [{"id": 1, "title": "First"}, {"id": 2, "title": "Second"}],
        }

    async def update(self, request, context):
        self._record("update", request)
        return {"success": True}

    async def reorder(self, request, context):
        self._record("reorder", request)
        return {"success": True}

    async def delete(self, request, context):
        self._record("delete", request)
        if request.id == 404:
            return {"success": False, "error": "Unknown vendor"}
        return {"success": True}

    async def write_log(self, request, mutation, context):
        self.logs.append(mutation)


class ListOnlyApi(DataTableApi):
    async def list(self, request, context):
        return {"success": True, "rowCount": 0, "rows": []}


def _build_client(implementation, row_model=Vendor, context_model=VendorContext, dispatcher=None):
    app = FastAPI()
    if dispatcher is not None:
        app.state.dispatcher = dispatcher

    router = APIRouter()
    mount_data_table(
        router, "/vendors", create_data_table_api(row_model, context_model, implementation)
    )
    app.include_router(router)
    return TestClient(app)


@pytest.fixture
def api():
    return VendorApi()


@pytest.fixture
def client(api):
    return _build_client(api)


def test_create_returns_the_new_row(api, client):
    response = client.post("/vendors", json=CONTEXT)

    assert response.status_code == 200
    assert response.json() == {"success": True, "row": {"id": 7, "title": "New vendor"}}
    assert api.access_checks == ["create"]
    assert api.logs == ["Created"]
    assert api.requests["create"].context.event == "2024"


def test_list_with_pagination_and_sort(api, client):
    response = client.get(
        "/vendors",
        params={
            "context.event": "2024",
            "pagination.page": "1",
            "pagination.pageSize": "25",
            "sort.field": "title",
            "sort.sort": "desc",
        },
    )

    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "rowCount": 2,
        "rows": [{"id": 1, "title": "First"}, {"id": 2, "title": "Second"}],
    }

    request = api.requests["list"]
    assert request.pagination.page == 1
    assert request.pagination.page_size == 25
    assert request.sort.field == "title"
    assert request.sort.sort == "desc"
    assert api.access_checks == ["list"]
    assert api.logs == []


def test_list_without_pagination_or_sort(api, client):
    response = client.get(
        "/vendors", params={"context.event": "2024", "sort.field": "id", "sort.sort": ""}
    )

    assert response.status_code == 200
    assert api.requests["list"].pagination is None
    assert api.requests["list"].sort.sort is None


def test_list_rejects_sort_on_unknown_fields(api, client):
    response = client.get(
        "/vendors",
        params={"context.event": "2024", "sort.field": "password", "sort.sort": "asc"},
    )

    assert response.status_code == 500
    body = response.json()
    assert body["success"] is False
    assert "request/sort/field" in body["error"]
    assert api.calls["list"] == 0


def test_list_rejects_unknown_page_sizes(api, client):
    response = client.get(
        "/vendors",
        params={"context.event": "2024", "pagination.page": "0", "pagination.pageSize": "30"},
    )

    assert response.status_code == 500
    assert "pageSize" in response.json()["error"]
    assert api.calls["list"] == 0


def test_context_is_required(api, client):
    response = client.get("/vendors")

    assert response.status_code == 500
    assert "(request/context): Required" in response.json()["error"]
    assert api.calls["list"] == 0


def test_get_returns_a_single_row(api, client):
    response = client.get("/vendors/12", params={"context.event": "2024"})

    assert response.status_code == 200
    assert response.json() == {"success": True, "row": {"id": 12, "title": "Vendor"}}
    assert api.access_checks == ["get"]


def test_update_with_matching_ids(api, client):
    response = client.put("/vendors/3", json={**CONTEXT, "row": {"id": 3, "title": "Renamed"}})

    assert response.status_code == 200
    assert response.json() == {"success": True}
    assert api.requests["update"].id == 3
    assert api.requests["update"].row.title == "Renamed"
    assert api.logs == ["Updated"]


def test_update_with_mismatching_ids_fails_before_update(api, client):
    response = client.put("/vendors/3", json={**CONTEXT, "row": {"id": 4, "title": "Renamed"}})

    assert response.status_code == 500
    assert response.json()["success"] is False
    assert api.calls["update"] == 0
    assert api.access_checks == []
    assert api.logs == []


def test_update_cannot_redirect_the_route_through_the_body(api, client):
    response = client.put(
        "/vendors/5", json={**CONTEXT, "id": 7, "row": {"id": 7, "title": "Renamed"}}
    )

    assert response.status_code == 500
    assert "through the route of row 5" in response.json()["error"]
    assert api.calls["update"] == 0
    assert api.logs == []


def test_delete_cannot_redirect_the_route_through_the_body(api, client):
    response = client.request("DELETE", "/vendors/5", json={**CONTEXT, "id": 7})

    assert response.status_code == 500
    assert api.calls["delete"] == 0
    assert api.logs == []


def test_body_id_matching_the_route_is_accepted(api, client):
    response = client.put(
        "/vendors/5", json={**CONTEXT, "id": 5, "row": {"id": 5, "title": "Renamed"}}
    )

    assert response.status_code == 200
    assert api.requests["update"].id == 5


def test_reorder(api, client):
    response = client.put("/vendors", json={**CONTEXT, "order": [3, 1, 2]})

    assert response.status_code == 200
    assert api.requests["reorder"].order == [3, 1, 2]
    assert api.logs == ["Reordered"]


def test_delete(api, client):
    response = client.request("DELETE", "/vendors/5", json=CONTEXT)

    assert response.status_code == 200
    assert response.json() == {"success": True}
    assert api.requests["delete"].id == 5
    assert api.logs == ["Deleted"]


def test_failed_mutations_are_not_logged(api, client):
    response = client.request("DELETE", "/vendors/404", json=CONTEXT)

    assert response.status_code == 200
    assert response.json() == {"success": False, "error": "Unknown vendor"}
    assert api.logs == []


def test_delete_requires_an_id(api, client):
    response = client.request("DELETE", "/vendors", json=CONTEXT)

    assert response.status_code == 500
    assert "(request/id): Required" in response.json()["error"]
    assert api.calls["delete"] == 0


def test_access_check_denies_with_forbidden(api, client):
    response = client.post("/vendors", json={"context": {"event": "forbidden"}})

    assert response.status_code == 403
    assert response.json() == {"success": False}
    assert api.calls["create"] == 0
    assert api.logs == []


def test_missing_verbs_fail():
    client = _build_client(ListOnlyApi())

    response = client.post("/vendors", json=CONTEXT)

    assert response.status_code == 500
    assert "without a create handler" in response.json()["error"]


def test_invalid_rows_fail_response_validation():
    class LeakyApi(VendorApi):
        async def list(self, request, context):
            return {
                "success": True,
                "rowCount": 1,
                "rows": [{"id": 1, "title": "First", "password": "hunter2"}],
            }

    client = _build_client(LeakyApi())

    response = client.get("/vendors", params={"context.event": "2024"})

    assert response.status_code == 500
    error = response.json()["error"]
    assert "Unrecognized key" in error
    assert "password" in error


def test_created_rows_require_an_id():
    class Note(BaseModel):
        text: str

    class NoteApi(DataTableApi):
        async def create(self, request, context):
            return {"success": True, "row": {"text": "Remember the hotel bookings"}}

        async def list(self, request, context):
            return {"success": True, "rowCount": 0, "rows": []}

    client = _build_client(NoteApi(), row_model=Note, context_model=None)

    response = client.post("/vendors", json={})

    assert response.status_code == 500
    error = response.json()["error"]
    assert "row/id" in error
    assert "Required" in error


def test_tables_without_context():
    client = _build_client(ListOnlyApi(), context_model=None)

    response = client.get("/vendors")

    assert response.status_code == 200
    assert response.json() == {"success": True, "rowCount": 0, "rows": []}


def test_write_log_failures_do_not_fail_committed_mutations(caplog):
    class FailingLogApi(VendorApi):
        async def write_log(self, request, mutation, context):
            raise RuntimeError("log table is gone")

    api = FailingLogApi()
    client = _build_client(api)

    with caplog.at_level(logging.ERROR):
        response = client.post("/vendors", json=CONTEXT)

    assert response.status_code == 200
    assert response.json()["success"] is True
    assert api.calls["create"] == 1
    assert "[table=Vendor mutation=Created] Unable to write the log entry" in caplog.text


def test_write_log_failures_can_be_surfaced():
    class FailingLogApi(VendorApi):
        async def write_log(self, request, mutation, context):
            raise RuntimeError("log table is gone")

    api = FailingLogApi()
    client = _build_client(api, dispatcher=ActionDispatcher(surface_write_log_errors=True))

    response = client.post("/vendors", json=CONTEXT)

    assert response.status_code == 500
    assert "log table is gone" in response.json()["error"]
    assert api.calls["create"] == 1


def test_async_access_checks_are_awaited():
    class AsyncCheckApi(VendorApi):
        async def access_check(self, request, verb, context):
            self.access_checks.append(verb)
            no_access()

    api = AsyncCheckApi()
    client = _build_client(api)

    response = client.put("/vendors/1", json={**CONTEXT, "row": {"id": 1, "title": "x"}})

    assert response.status_code == 403
    assert api.access_checks == ["update"]
    assert api.calls["update"] == 0


def test_row_models_without_fields_are_rejected():
    class Empty(BaseModel):
        pass

    with pytest.raises(ValueError, match="at least one field"):
        create_data_table_api(Empty, None, ListOnlyApi())
