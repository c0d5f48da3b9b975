from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

DEFAULT_CONSOLIDATED_SHEET = "Consolidated"
DEFAULT_LOCK_TIMEOUT_SECONDS = 30.0
DEFAULT_SESSION_TTL_SECONDS = 30 * 60

_TRUTHY = ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    spreadsheet_id: str = ""
    upload_folder_id: str = ""
    consolidated_sheet: str = DEFAULT_CONSOLIDATED_SHEET
    lock_timeout: float = DEFAULT_LOCK_TIMEOUT_SECONDS
    lock_file: Optional[str] = None
    session_ttl: int = DEFAULT_SESSION_TTL_SECONDS
    sender_name: str = "Data Intake"
    mailer: str = "gmail"
    credentials_file: str = ""
    delegated_user: Optional[str] = None
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: str = ""
    smtp_from: str = ""
    smtp_use_ssl: bool = False
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 8080

    @classmethod
    def from_env(
        cls, env: Optional[Mapping[str, str]] = None, *, require_google: bool = False
    ) -> "Settings":
        """Build settings from environment variables (defaults for anything unset)."""
        env = os.environ if env is None else env

        settings = cls(
            spreadsheet_id=env.get("INTAKE_SPREADSHEET_ID", "").strip(),
            upload_folder_id=env.get("INTAKE_UPLOAD_FOLDER_ID", "").strip(),
            consolidated_sheet=env.get(
                "INTAKE_CONSOLIDATED_SHEET", DEFAULT_CONSOLIDATED_SHEET
            ),
            lock_timeout=float(
                env.get("INTAKE_LOCK_TIMEOUT", DEFAULT_LOCK_TIMEOUT_SECONDS)
            ),
            lock_file=env.get("INTAKE_LOCK_FILE") or None,
            session_ttl=int(env.get("INTAKE_SESSION_TTL", DEFAULT_SESSION_TTL_SECONDS)),
            sender_name=env.get("INTAKE_SENDER_NAME", "Data Intake"),
            mailer=env.get("INTAKE_MAILER", "gmail").strip().lower(),
            credentials_file=env.get("GOOGLE_APPLICATION_CREDENTIALS", ""),
            delegated_user=env.get("INTAKE_DELEGATED_USER") or None,
            smtp_host=env.get("SMTP_HOST", ""),
            smtp_port=int(env.get("SMTP_PORT", "587")),
            smtp_user=env.get("SMTP_USER", ""),
            smtp_password=env.get("SMTP_PASS", ""),
            smtp_from=env.get("SMTP_FROM", env.get("SMTP_USER", "")),
            smtp_use_ssl=env.get("SMTP_USE_SSL", "").lower() in _TRUTHY,
            log_level=env.get("LOG_LEVEL", "INFO").upper(),
            host=env.get("INTAKE_HOST", "0.0.0.0"),
            port=int(env.get("INTAKE_PORT", "8080")),
        )

        if settings.mailer not in ("gmail", "smtp"):
            raise ValueError(f"INTAKE_MAILER must be 'gmail' or 'smtp', got {settings.mailer!r}")

        if require_google:
            missing = [
                name
                for name, value in (
                    ("INTAKE_SPREADSHEET_ID", settings.spreadsheet_id),
                    ("INTAKE_UPLOAD_FOLDER_ID", settings.upload_folder_id),
                    ("GOOGLE_APPLICATION_CREDENTIALS", settings.credentials_file),
                )
                if not value
            ]
            # A service account can only send Gmail on behalf of a delegated user.
            if settings.mailer == "gmail" and not settings.delegated_user:
                missing.append("INTAKE_DELEGATED_USER")
            if missing:
                raise ValueError(f"Missing required settings: {', '.join(missing)}")

        return settings
