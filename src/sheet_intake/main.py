from __future__ import annotations

import sys

import gspread
import uvicorn
from google.oauth2 import service_account
from googleapiclient.discovery import build

from . import logger as log
from .api import create_app
from .config import Settings
from .drive_ops import DriveBlobStore
from .locking import FileLockProvider, ThreadLockProvider
from .notifications import GmailMailer, NotificationComposer, SmtpMailer
from .processor import SubmissionCoordinator
from .service import IntakeService
from .session import MemoryCache, SessionGuard
from .sheet_state import GspreadStore
from .uploads import UploadGateway

SCOPES = [
    "https://www.googleapis.com/auth/spreadsheets",
    "https://www.googleapis.com/auth/drive",
]
GMAIL_SCOPES = ["https://www.googleapis.com/auth/gmail.send"]


def build_mailer(settings: Settings, credentials):
    if settings.mailer == "smtp":
        return SmtpMailer(
            host=settings.smtp_host,
            port=settings.smtp_port,
            user=settings.smtp_user,
            password=settings.smtp_password,
            from_addr=settings.smtp_from,
            use_ssl=settings.smtp_use_ssl,
        )

    gmail_creds = credentials.with_scopes(GMAIL_SCOPES)
    if settings.delegated_user:
        gmail_creds = gmail_creds.with_subject(settings.delegated_user)
    gmail = build("gmail", "v1", credentials=gmail_creds, cache_discovery=False)
    return GmailMailer(gmail, from_addr=settings.delegated_user or "")


def build_service(settings: Settings) -> IntakeService:
    credentials = service_account.Credentials.from_service_account_file(
        settings.credentials_file, scopes=SCOPES
    )
    sheets = gspread.authorize(credentials)
    drive = build("drive", "v3", credentials=credentials, cache_discovery=False)

    store = GspreadStore(sheets.open_by_key(settings.spreadsheet_id))
    blobs = DriveBlobStore(drive, settings.upload_folder_id)
    lock = (
        FileLockProvider(settings.lock_file)
        if settings.lock_file
        else ThreadLockProvider()
    )
    notifier = NotificationComposer(
        build_mailer(settings, credentials), blobs, sender_name=settings.sender_name
    )

    coordinator = SubmissionCoordinator(
        store=store,
        lock=lock,
        notifier=notifier,
        consolidated_sheet=settings.consolidated_sheet,
        lock_timeout=settings.lock_timeout,
    )
    return IntakeService(
        store=store,
        coordinator=coordinator,
        uploads=UploadGateway(blobs),
        sessions=SessionGuard(MemoryCache(), ttl=settings.session_ttl),
    )


def main() -> int:
    settings = Settings.from_env(require_google=True)
    log.setup_logging(settings.log_level)

    log.info(
        "Starting intake service: spreadsheet_id=%s consolidated=%s upload_folder_id=%s lock=%s",
        settings.spreadsheet_id,
        settings.consolidated_sheet,
        settings.upload_folder_id,
        settings.lock_file or "thread",
    )

    app = create_app(build_service(settings))
    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)
    return 0


if __name__ == "__main__":
    sys.exit(main())
