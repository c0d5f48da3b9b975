from __future__ import annotations

import base64
from typing import Sequence

import pytest
from fastapi.testclient import TestClient

from sheet_intake.api import create_app
from sheet_intake.drive_ops import StoredFile
from sheet_intake.errors import ValidationError
from sheet_intake.locking import ThreadLockProvider
from sheet_intake.notifications import NotificationComposer
from sheet_intake.processor import SubmissionCoordinator
from sheet_intake.service import IntakeService
from sheet_intake.session import MemoryCache, SessionGuard
from sheet_intake.uploads import UploadGateway

# -----------------------------------------------------------------------------
# Minimal fakes
# -----------------------------------------------------------------------------


class FakeTable:
    def __init__(self, title: str):
        self.title = title
        self.rows: list[list[str]] = []

    def last_row_index(self) -> int:
        return len(self.rows)

    def read_range(self, row1: int, col1: int, row2: int, col2: int) -> list[list[str]]:
        return [r[col1 - 1 : col2] for r in self.rows[row1 - 1 : row2]]

    def write_range(self, row: int, col: int, rows: Sequence[Sequence[str]]) -> None:
        for offset, values in enumerate(rows):
            idx = row - 1 + offset
            while len(self.rows) <= idx:
                self.rows.append([""] * 11)
            self.rows[idx] = list(values)


class FakeStore:
    def __init__(self, *titles: str):
        self.tables = {t: FakeTable(t) for t in titles}

    def get_by_name(self, name: str) -> FakeTable:
        if name not in self.tables:
            raise ValidationError(f"Sheet '{name}' not found.")
        return self.tables[name]

    def sheet_names(self) -> list[str]:
        return list(self.tables)


class FakeBlobStore:
    def create_file(self, content: bytes, mime_type: str, name: str) -> StoredFile:
        return StoredFile(file_id="b" * 30, name=name, url=f"https://drive.google.com/file/d/{'b' * 30}/view")

    def get_file(self, file_id: str) -> StoredFile:
        return StoredFile(file_id=file_id, name="doc.pdf", url="https://drive.google.com/x")


class FakeMailer:
    def __init__(self):
        self.sent = []

    def send_email(self, to, subject, html_body, sender_name):
        self.sent.append(to)


@pytest.fixture
def store():
    return FakeStore("Acme", "Globex", "Consolidated")


@pytest.fixture
def client(store):
    blobs = FakeBlobStore()
    coordinator = SubmissionCoordinator(
        store=store,
        lock=ThreadLockProvider(),
        notifier=NotificationComposer(FakeMailer(), blobs),
        consolidated_sheet="Consolidated",
    )
    service = IntakeService(
        store=store,
        coordinator=coordinator,
        uploads=UploadGateway(blobs),
        sessions=SessionGuard(MemoryCache()),
    )
    return TestClient(create_app(service))


# -----------------------------------------------------------------------------
# Tests
# -----------------------------------------------------------------------------


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_sheet_names_exclude_consolidated(client):
    assert client.get("/api/sheets").json() == ["Acme", "Globex"]


def test_upload_round_trip(client):
    resp = client.post(
        "/api/upload",
        json={
            "fileName": "report.PDF",
            "mimeType": "application/pdf",
            "data": base64.b64encode(b"pdf").decode(),
        },
    )
    body = resp.json()
    assert resp.status_code == 200
    assert body["success"] is True
    assert body["name"] == "report.PDF"
    assert "error" not in body


def test_upload_bad_extension(client):
    body = client.post(
        "/api/upload", json={"fileName": "report.exe", "mimeType": "", "data": ""}
    ).json()
    assert body["success"] is False
    assert "Invalid file type" in body["error"]


def test_submit_writes_both_tables(client, store):
    body = client.post(
        "/api/submit",
        json={
            "email": "a@example.com",
            "selectedSheet": "Acme",
            "note": "",
            "startDate": "2026-03-01",
            "endDate": "2026-03-31",
            "sendCopy": True,
            "entries": [{"checkboxLabel": "Invoices"}, {"checkboxLabel": "Receipts"}],
        },
    ).json()

    assert body == {"success": True, "message": "Data submitted successfully!"}
    assert len(store.tables["Acme"].rows) == 2
    assert store.tables["Acme"].rows == store.tables["Consolidated"].rows


def test_submit_malformed_payload(client, store):
    body = client.post("/api/submit", json={"email": "a@example.com"}).json()
    assert body["success"] is False
    assert body["error"].startswith("Invalid submission")
    assert store.tables["Consolidated"].rows == []


def test_session_endpoints_are_keyed_by_user(client):
    headers = {"X-User-Email": "A@example.com"}
    assert client.get("/api/session/check", headers=headers).json() == {"expired": True}
    assert client.post("/api/session/start", headers=headers).json() == {"success": True}
    assert client.get("/api/session/check", headers=headers).json() == {"expired": False}
    assert client.get(
        "/api/session/check", headers={"X-User-Email": "b@example.com"}
    ).json() == {"expired": True}
