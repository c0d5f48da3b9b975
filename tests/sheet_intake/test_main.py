from sheet_intake.config import Settings
from sheet_intake.main import build_mailer
from sheet_intake.notifications import SmtpMailer


def test_smtp_mailer_selected_from_settings():
    settings = Settings.from_env(
        {"INTAKE_MAILER": "smtp", "SMTP_HOST": "smtp.example.com", "SMTP_PORT": "465", "SMTP_USE_SSL": "1"}
    )
    mailer = build_mailer(settings, credentials=None)
    assert isinstance(mailer, SmtpMailer)
    assert (mailer.host, mailer.port, mailer.use_ssl) == ("smtp.example.com", 465, True)
