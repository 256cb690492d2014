"""
Send notification emails via SMTP (Google Gmail or other).
Set SMTP_USER, SMTP_PASSWORD (and optionally NOTIFY_FROM) in .env. Use a Gmail App Password (not your normal password).

Mailer.send raises MailTransportError on any failure so the delivery processor can record
the error and schedule a retry.
"""
import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Protocol

from app.config import settings
from app.core.errors import MailTransportError

logger = logging.getLogger(__name__)


class Mailer(Protocol):
    def send(self, to: str, subject: str, html: str) -> None: ...


def _from_address() -> str:
    if settings.notify_from:
        return settings.notify_from
    if settings.smtp_user:
        return f"Notifications <{settings.smtp_user}>"
    return "Notifications <noreply@localhost>"


class SmtpMailer:
    def __init__(
        self,
        host: str | None = None,
        port: int | None = None,
        user: str | None = None,
        password: str | None = None,
        from_address: str | None = None,
        timeout: float = 10,
    ):
        self.host = host or settings.smtp_host
        self.port = port or settings.smtp_port
        self.user = (user if user is not None else settings.smtp_user).strip()
        self.password = (password if password is not None else settings.smtp_password).strip()
        self.from_address = (from_address or "").strip() or _from_address()
        self.timeout = timeout

    def send(self, to: str, subject: str, html: str) -> None:
        to = (to or "").strip()
        if not to:
            raise MailTransportError("Recipient has no email address")
        if not self.user or not self.password:
            raise MailTransportError("SMTP_USER or SMTP_PASSWORD not set")
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = self.from_address
        msg["To"] = to
        msg.attach(MIMEText(html, "html"))
        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
                server.starttls()
                server.login(self.user, self.password)
                server.sendmail(self.user, [to], msg.as_string())
        except (smtplib.SMTPException, OSError) as e:
            raise MailTransportError(f"SMTP send to {to} failed: {e}") from e
        logger.info("Email sent to %s: %s", to, subject)


_mailer: Mailer | None = None


def get_mailer() -> Mailer:
    global _mailer
    if _mailer is None:
        _mailer = SmtpMailer()
    return _mailer
