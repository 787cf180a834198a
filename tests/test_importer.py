import asyncio

import pytest

from src.core.errors import ImportFileError, RemoteStatusError
from src.features.records.registry import STUDENT, SUBJECT, TIMETABLE
from src.features.transfer.importer import (
    build_create_payload,
    build_import_rows,
    import_records,
    normalize_headers,
    read_table,
    username_from_email,
)


class FakeCreateClient:
    """Registra los POST y rechaza los correos indicados."""

    def __init__(self, reject=None):
        self.reject = reject or {}
        self.posts = []

    async def post_json(self, path, payload):
        self.posts.append((path, payload))
        for email, message in self.reject.items():
            if payload.get("schoolEmail") == email:
                raise RemoteStatusError(409, message, path=path)
        return {"id": len(self.posts)}


class RefreshSpy:
    def __init__(self):
        self.calls = 0

    async def __call__(self):
        self.calls += 1


STUDENTS_CSV = (
    "Full Name,Email,Class\n"
    "Jane Smith,jane@school.edu,5\n"
    "Bob Jones,bob-at-school,5\n"
    "Ann Lee,ann@school.edu,6\n"
)


def test_import_counts_valid_and_invalid_rows():
    client = FakeCreateClient()
    refresh = RefreshSpy()

    result = asyncio.run(import_records(client, STUDENT, "students.csv", STUDENTS_CSV.encode(), on_success=refresh))

    assert result.success_count == 2
    assert result.error_count == 1
    assert result.errors == ["Row 3: Please enter a valid email address"]
    assert refresh.calls == 1

    paths = {path for path, _ in client.posts}
    assert paths == {"/midland/admin/students/create"}
    sent = client.posts[0][1]
    assert sent["fullName"] == "Jane Smith"
    assert sent["gradeLevel"] == "5"
    assert sent["username"] == "jane"
    assert sent["status"] == "Active"
    assert sent["password"]


def test_rows_are_submitted_in_file_order():
    client = FakeCreateClient()

    asyncio.run(import_records(client, STUDENT, "students.csv", STUDENTS_CSV))

    assert [p["fullName"] for _, p in client.posts] == ["Jane Smith", "Ann Lee"]


def test_remote_rejection_does_not_stop_later_rows():
    client = FakeCreateClient(reject={"jane@school.edu": "Email already exists"})
    refresh = RefreshSpy()

    result = asyncio.run(import_records(client, STUDENT, "students.csv", STUDENTS_CSV, on_success=refresh))

    assert result.success_count == 1
    assert result.error_count == 2
    assert "Row 2: Email already exists" in result.errors
    assert refresh.calls == 1


def test_no_refresh_when_nothing_was_created():
    client = FakeCreateClient(reject={
        "jane@school.edu": "Email already exists",
        "ann@school.edu": "Email already exists",
    })
    refresh = RefreshSpy()

    result = asyncio.run(import_records(client, STUDENT, "students.csv", STUDENTS_CSV, on_success=refresh))

    assert result.success_count == 0
    assert result.error_count == 3
    assert refresh.calls == 0


def test_missing_required_field_message():
    rows = build_import_rows([{"fullName": "", "schoolEmail": "x@y.io"}], STUDENT)

    assert rows[0].line == 2
    assert rows[0].errors == ['Row 2: Missing required field "fullName"']


def test_duplicates_against_existing_and_within_file():
    existing = [{"admissionNumber": "A-1"}]
    records = [
        {"admissionNumber": "a-1", "fullName": "X", "schoolEmail": "x@s.edu"},
        {"admissionNumber": "A-2", "fullName": "Y", "schoolEmail": "y@s.edu"},
        {"admissionNumber": "A-2", "fullName": "Z", "schoolEmail": "z@s.edu"},
    ]

    rows = build_import_rows(records, STUDENT, existing=existing)

    assert rows[0].errors == ['Row 2: Duplicate admissionNumber "a-1"']
    assert rows[1].is_valid
    assert rows[2].errors == ['Row 4: Duplicate admissionNumber "a-2"']


@pytest.mark.parametrize("filename", ["students.txt", "students.pdf", "students"])
def test_unsupported_extension_is_fatal(filename):
    with pytest.raises(ImportFileError) as excinfo:
        read_table(filename, b"a,b\n1,2\n")
    assert "Unsupported file type" in str(excinfo.value)


def test_header_only_file_has_no_data_rows():
    with pytest.raises(ImportFileError) as excinfo:
        read_table("students.csv", b"Full Name,Email\n\n")
    assert str(excinfo.value) == "No data rows found in file"


def test_binary_spreadsheet_is_rejected():
    with pytest.raises(ImportFileError):
        read_table("students.xlsx", b"PK\x03\x04binary-zip-content")


def test_spreadsheet_extension_with_delimited_text_is_accepted():
    table = read_table("students.xls", "Full Name,Email\nJane,jane@s.edu\n".encode("utf-8-sig"))

    assert table.headers == ["Full Name", "Email"]
    assert len(table.rows) == 1


def test_size_and_row_limits():
    with pytest.raises(ImportFileError):
        read_table("a.csv", b"h\n" + b"x\n" * 10, max_bytes=5)
    with pytest.raises(ImportFileError):
        read_table("a.csv", b"h\n1\n2\n3\n", max_rows=2)


def test_latin1_bytes_are_decoded():
    table = read_table("a.csv", "name\nJosé\n".encode("latin-1"))
    assert table.rows == [{"name": "José"}]


def test_normalize_headers_maps_known_and_keeps_unknown():
    rows = normalize_headers([{" Subject Code ": "m101", "Notes": "x"}], SUBJECT.field_mapping)
    assert rows == [{"subjectCode": "m101", "Notes": "x"}]


def test_create_payload_uppercases_and_trims():
    payload = build_create_payload(
        {"section": " a ", "dayOfWeek": "monday", "subjectCode": "m101", "teacherCode": "T1"},
        TIMETABLE,
    )

    assert payload["section"] == "A"
    assert payload["dayOfWeek"] == "MONDAY"
    assert payload["subjectCode"] == "M101"
    assert "password" not in payload


def test_explicit_username_and_password_are_kept():
    payload = build_create_payload(
        {"fullName": "Jane", "schoolEmail": "jane@s.edu", "username": "jsmith", "password": "Secret1!"},
        STUDENT,
    )
    assert payload["username"] == "jsmith"
    assert payload["password"] == "Secret1!"


def test_username_from_email_strips_unsafe_characters():
    assert username_from_email("jane.o'neil+x@school.edu") == "jane.oneilx"
    assert username_from_email("") == ""


def test_row_limit_comes_from_settings(monkeypatch):
    from src.core.config import settings

    monkeypatch.setattr(settings, "IMPORT_MAX_ROWS", 1)

    with pytest.raises(ImportFileError) as excinfo:
        read_table("a.csv", b"h\n1\n2\n")
    assert "Maximum allowed is 1" in str(excinfo.value)
