import asyncio

import pytest
from fastapi import HTTPException
from fastapi.testclient import TestClient

from src.core.config import settings
from src.core.errors import TransportError
from src.features.listing.dependencies import get_store_registry
from src.features.listing.store import RecordStoreRegistry
from src.features.records.registry import STUDENT
from src.features.transfer.router import import_file as import_endpoint
from src.main import app


class FakeApiClient:
    def __init__(self, collections, fail=False):
        self.collections = collections
        self.fail = fail
        self.posts = []

    async def get_json(self, path, params=None):
        if self.fail:
            raise TransportError("Failed to fetch", path=path)
        return {"data": list(self.collections.get(path, [])), "last": True}

    async def post_json(self, path, payload):
        self.posts.append((path, payload))
        self.collections.setdefault(path.replace("/create", "/all"), []).append(payload)
        return payload


STUDENTS = [
    {"admissionNumber": f"A-{i}", "fullName": f"Student {i:02d}", "schoolEmail": f"s{i}@school.edu", "gradeLevel": str(5 + i % 3)}
    for i in range(25)
]


def _client(fake):
    registry = RecordStoreRegistry(fake)
    app.dependency_overrides[get_store_registry] = lambda: registry
    return TestClient(app)


def teardown_function():
    app.dependency_overrides.clear()


def test_health_check():
    client = TestClient(app)
    assert client.get("/").json()["status"] == "ok"


def test_list_returns_page_with_pagination_metadata():
    client = _client(FakeApiClient({"/midland/admin/students/all": STUDENTS}))

    response = client.get("/records/student", params={"page": 2, "page_size": 10})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["data"]["count"] == 10
    assert body["data"]["data"][0]["admissionNumber"] == "A-10"
    pagination = body["data"]["pagination"]
    assert pagination["total"] == 25
    assert pagination["total_pages"] == 3
    assert pagination["has_more"] is True
    assert pagination["pages"] == [1, 2, 3]


def test_list_applies_query_filters_and_sort():
    client = _client(FakeApiClient({"/midland/admin/students/all": STUDENTS}))

    response = client.get(
        "/records/student",
        params={"q": "student 1", "filter": "gradeLevel:6", "sort": "fullName", "direction": "desc"},
    )

    names = [r["fullName"] for r in response.json()["data"]["data"]]
    assert names == ["Student 19", "Student 16", "Student 13", "Student 10"]


def test_unknown_kind_is_404():
    client = _client(FakeApiClient({}))
    assert client.get("/records/parents").status_code == 404


def test_unreachable_backend_is_503():
    client = _client(FakeApiClient({}, fail=True))

    response = client.get("/records/teacher")

    assert response.status_code == 503


def test_facets_endpoint():
    client = _client(FakeApiClient({"/midland/admin/students/all": STUDENTS}))

    response = client.get("/records/student/facets/gradeLevel")

    assert response.json()["data"]["data"] == ["5", "6", "7"]


def test_import_endpoint_reports_row_errors():
    fake = FakeApiClient({"/midland/users/subjects/all": []})
    client = _client(fake)
    csv_bytes = b"Subject Code,Subject Name\nm101,Math\n,Art\n"

    response = client.post(
        "/records/subject/import",
        files={"file": ("subjects.csv", csv_bytes, "text/csv")},
    )

    assert response.status_code == 200
    result = response.json()["data"]["data"]
    assert result["success_count"] == 1
    assert result["error_count"] == 1
    assert result["errors"] == ['Row 3: Missing required field "subjectCode"']
    assert fake.posts[0] == ("/midland/users/subjects/create", {"subjectCode": "M101", "subjectName": "Math"})


def test_import_rejects_unsupported_file():
    client = _client(FakeApiClient({}))

    response = client.post(
        "/records/subject/import",
        files={"file": ("subjects.json", b"[]", "application/json")},
    )

    assert response.status_code == 400
    assert "Unsupported file type" in response.json()["detail"]


def test_export_streams_selected_rows_as_attachment():
    client = _client(FakeApiClient({"/midland/admin/students/all": STUDENTS}))

    response = client.get("/records/student/export", params=[("selected", "A-3"), ("selected", "a-4")])

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    disposition = response.headers["content-disposition"]
    assert disposition.startswith('attachment; filename="students_')
    assert disposition.endswith('.xlsx"')
    lines = response.text.splitlines()
    assert lines[0] == '"Admission Number","Full Name","School Email","Class","Section","Status"'
    assert len(lines) == 3


class CappedUpload:
    """UploadFile mínimo que registra cuántos bytes se pidieron."""

    filename = "students.csv"

    def __init__(self, data):
        self.data = data
        self.requested = []

    async def read(self, size=-1):
        self.requested.append(size)
        return self.data if size is None or size < 0 else self.data[:size]


def test_import_reads_at_most_one_byte_over_the_limit(monkeypatch):
    monkeypatch.setattr(settings, "IMPORT_MAX_BYTES", 16)
    upload = CappedUpload(b"Full Name,School Email\n" + b"Jane,jane@school.edu\n" * 100)
    registry = RecordStoreRegistry(FakeApiClient({"/midland/admin/students/all": []}))

    with pytest.raises(HTTPException) as excinfo:
        asyncio.run(import_endpoint(file=upload, definition=STUDENT, registry=registry))

    assert excinfo.value.status_code == 400
    assert "too large" in excinfo.value.detail
    assert upload.requested == [17]
