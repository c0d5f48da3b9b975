from __future__ import annotations

import base64
import email
from datetime import datetime
from email import policy

import pytest

from sheet_intake.drive_ops import StoredFile, extract_drive_file_id
from sheet_intake.errors import NotificationError
from sheet_intake.notifications import GmailMailer, NotificationComposer
from sheet_intake.submission_schema import Entry, Submission

GOOD_ID = "1AbCdEfGhIjKlMnOpQrStUvWxYz_-0"
BROKEN_ID = "1BrokenBrokenBrokenBroken_99"

# -----------------------------------------------------------------------------
# Minimal fakes
# -----------------------------------------------------------------------------


class FakeBlobStore:
    def get_file(self, file_id: str) -> StoredFile:
        if file_id == BROKEN_ID:
            raise RuntimeError("404 file not found")
        return StoredFile(
            file_id=file_id,
            name=f"doc-{file_id[:4]}.pdf",
            url=f"https://drive.google.com/file/d/{file_id}/view?usp=drivesdk",
        )

    def create_file(self, content: bytes, mime_type: str, name: str) -> StoredFile:  # pragma: no cover
        raise NotImplementedError


class FakeMailer:
    def __init__(self, error: Exception | None = None):
        self.error = error
        self.sent: list[tuple[str, str, str, str]] = []

    def send_email(self, to: str, subject: str, html_body: str, sender_name: str) -> None:
        if self.error:
            raise self.error
        self.sent.append((to, subject, html_body, sender_name))


class _Exec:
    def __init__(self, outer, body):
        self.outer = outer
        self.body = body

    def execute(self):
        self.outer.sent_bodies.append(self.body)
        return {"id": "msg_1"}


class FakeGmail:
    """users().messages().send(...).execute() surface of the Gmail v1 resource."""

    def __init__(self):
        self.sent_bodies: list[dict] = []
        self.user_ids: list[str] = []

    def users(self):
        return self

    def messages(self):
        return self

    def send(self, *, userId: str, body: dict):
        self.user_ids.append(userId)
        return _Exec(self, body)


def _submission() -> Submission:
    return Submission(
        email="a@example.com",
        selected_sheet="Acme",
        note="Q1 <draft>",
        start_date="2026-01-01",
        end_date="2026-03-31",
        send_copy=True,
        entries=(
            Entry(
                checkbox_label="Invoices",
                file1=f"https://drive.google.com/file/d/{GOOD_ID}/view",
                file2=f"https://drive.google.com/file/d/{BROKEN_ID}/view",
                file3="https://example.com/short",
                date="2026-02-15",
            ),
            Entry(checkbox_label="Receipts"),
        ),
    )


# -----------------------------------------------------------------------------
# Tests
# -----------------------------------------------------------------------------


@pytest.mark.parametrize(
    "value, expected",
    [
        (f"https://drive.google.com/file/d/{GOOD_ID}/view", GOOD_ID),
        (f"https://drive.google.com/open?id={GOOD_ID}", GOOD_ID),
        (GOOD_ID, GOOD_ID),
        ("https://example.com/short", None),
        ("", None),
    ],
)
def test_extract_drive_file_id(value, expected):
    assert extract_drive_file_id(value) == expected


def test_file_links_degrade_per_link():
    composer = NotificationComposer(FakeMailer(), FakeBlobStore())

    links = composer.file_links(_submission().entries[0])

    assert len(links) == 3
    assert links[0].startswith("File 1: <a href=")
    assert f"doc-{GOOD_ID[:4]}.pdf" in links[0]
    assert "File 2: link unavailable" in links[1]
    assert "File 3: link unavailable" in links[2]


def test_entry_without_files_has_no_links():
    composer = NotificationComposer(FakeMailer(), FakeBlobStore())
    assert composer.file_links(_submission().entries[1]) == []


def test_send_composes_and_delivers_to_submitter():
    mailer = FakeMailer()
    composer = NotificationComposer(mailer, FakeBlobStore(), sender_name="Billing Desk")

    composer.send(_submission(), datetime(2026, 4, 1, 8, 0, 0))

    assert len(mailer.sent) == 1
    to, subject, body, sender = mailer.sent[0]
    assert to == "a@example.com"
    assert subject == "Submission confirmation - Acme"
    assert sender == "Billing Desk"
    assert "2026-04-01 08:00:00" in body
    assert "Q1 &lt;draft&gt;" in body
    assert "2026-01-01 - 2026-03-31" in body
    assert "Invoices (billing date: 2026-02-15)" in body
    assert "<li>Receipts</li>" in body


def test_delivery_fault_raises_notification_error():
    composer = NotificationComposer(FakeMailer(error=RuntimeError("quota")), FakeBlobStore())
    with pytest.raises(NotificationError):
        composer.send(_submission(), datetime(2026, 4, 1))


def test_gmail_mailer_sends_raw_mime():
    gmail = FakeGmail()
    GmailMailer(gmail, from_addr="intake@example.com").send_email(
        "a@example.com", "Hello", "<p>hi</p>", "Billing Desk"
    )

    assert gmail.user_ids == ["me"]
    raw = base64.urlsafe_b64decode(gmail.sent_bodies[0]["raw"])
    msg = email.message_from_bytes(raw, policy=policy.default)
    assert msg["To"] == "a@example.com"
    assert msg["Subject"] == "Hello"
    assert "Billing Desk" in msg["From"]
    assert "<p>hi</p>" in msg.get_body(preferencelist=("html",)).get_content()
