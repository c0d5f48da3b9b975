from __future__ import annotations

import base64
import smtplib
import ssl
from datetime import datetime
from email.message import EmailMessage
from email.utils import formataddr
from html import escape
from typing import Protocol

from . import logger as log
from .drive_ops import BlobStore, extract_drive_file_id
from .errors import NotificationError
from .submission_schema import Entry, Submission, format_timestamp


class Mailer(Protocol):
    def send_email(self, to: str, subject: str, html_body: str, sender_name: str) -> None: ...


def _build_message(
    *, to: str, subject: str, html_body: str, sender_name: str, from_addr: str
) -> EmailMessage:
    msg = EmailMessage()
    msg["From"] = formataddr((sender_name, from_addr)) if from_addr else sender_name
    msg["To"] = to
    msg["Subject"] = subject
    msg.set_content("This message requires an HTML-capable mail client.")
    msg.add_alternative(html_body, subtype="html")
    return msg


class GmailMailer:
    """Send as the service account's delegated user through the Gmail v1 API."""

    def __init__(self, gmail, from_addr: str = ""):
        self._gmail = gmail
        self.from_addr = from_addr

    def send_email(self, to: str, subject: str, html_body: str, sender_name: str) -> None:
        msg = _build_message(
            to=to,
            subject=subject,
            html_body=html_body,
            sender_name=sender_name,
            from_addr=self.from_addr,
        )
        raw = base64.urlsafe_b64encode(msg.as_bytes()).decode("ascii")
        self._gmail.users().messages().send(userId="me", body={"raw": raw}).execute()


class SmtpMailer:
    def __init__(
        self,
        *,
        host: str,
        port: int = 587,
        user: str = "",
        password: str = "",
        from_addr: str = "",
        use_ssl: bool = False,
    ):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.from_addr = from_addr or user
        self.use_ssl = use_ssl

    def send_email(self, to: str, subject: str, html_body: str, sender_name: str) -> None:
        msg = _build_message(
            to=to,
            subject=subject,
            html_body=html_body,
            sender_name=sender_name,
            from_addr=self.from_addr,
        )
        context = ssl.create_default_context()
        if self.use_ssl:
            with smtplib.SMTP_SSL(self.host, self.port, context=context, timeout=30) as s:
                if self.user and self.password:
                    s.login(self.user, self.password)
                s.send_message(msg)
        else:
            with smtplib.SMTP(self.host, self.port, timeout=30) as s:
                s.ehlo()
                s.starttls(context=context)
                s.ehlo()
                if self.user and self.password:
                    s.login(self.user, self.password)
                s.send_message(msg)


class NotificationComposer:
    def __init__(self, mailer: Mailer, blobs: BlobStore, *, sender_name: str = "Data Intake"):
        self._mailer = mailer
        self._blobs = blobs
        self.sender_name = sender_name

    def file_links(self, entry: Entry) -> list[str]:
        """HTML links for the entry's stored files; a failed lookup becomes an inline error."""
        links: list[str] = []
        for n, url in enumerate(entry.files, start=1):
            if not url:
                continue
            label = f"File {n}"
            file_id = extract_drive_file_id(url)
            if not file_id:
                log.warning("Could not extract file id: label=%s url=%s", label, url)
                links.append(f'<span style="color:#b00">{label}: link unavailable</span>')
                continue
            try:
                stored = self._blobs.get_file(file_id)
            except Exception as e:
                log.warning("Could not resolve file: label=%s file_id=%s err=%s", label, file_id, e)
                links.append(f'<span style="color:#b00">{label}: link unavailable</span>')
                continue
            links.append(
                f'{label}: <a href="{escape(stored.url, quote=True)}">{escape(stored.name)}</a>'
            )
        return links

    def compose(self, sub: Submission, timestamp: datetime) -> tuple[str, str]:
        """Return (subject, html_body)."""
        subject = f"Submission confirmation - {sub.selected_sheet}"

        entry_items = []
        for entry in sub.entries:
            line = escape(entry.checkbox_label)
            if entry.date:
                line += f" (billing date: {escape(entry.date)})"
            links = self.file_links(entry)
            if links:
                line += "<ul>" + "".join(f"<li>{link}</li>" for link in links) + "</ul>"
            entry_items.append(f"<li>{line}</li>")

        html_body = (
            "<h2>Submission received</h2>"
            "<table>"
            f"<tr><td><b>Timestamp</b></td><td>{format_timestamp(timestamp)}</td></tr>"
            f"<tr><td><b>Email</b></td><td>{escape(sub.email)}</td></tr>"
            f"<tr><td><b>Sheet</b></td><td>{escape(sub.selected_sheet)}</td></tr>"
            f"<tr><td><b>Note</b></td><td>{escape(sub.note)}</td></tr>"
            f"<tr><td><b>Period</b></td><td>{escape(sub.start_date)} - {escape(sub.end_date)}</td></tr>"
            "</table>"
            "<h3>Entries</h3>"
            f"<ul>{''.join(entry_items)}</ul>"
        )
        return subject, html_body

    def send(self, sub: Submission, timestamp: datetime) -> None:
        subject, html_body = self.compose(sub, timestamp)
        try:
            self._mailer.send_email(sub.email, subject, html_body, self.sender_name)
        except Exception as e:
            raise NotificationError(f"Unable to send confirmation to {sub.email}: {e}") from e
        log.info("Sent confirmation email: to=%s sheet=%s", sub.email, sub.selected_sheet)
