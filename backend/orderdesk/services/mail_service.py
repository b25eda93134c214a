# Overview: Outbound transactional mail; SMTP in deployments, an in-memory outbox otherwise.

from __future__ import annotations

import smtplib
from dataclasses import dataclass
from email.message import EmailMessage

from flask import current_app

from ..errors import MailError


OUTBOX_KEY = "mail_outbox"


@dataclass(frozen=True)
class SentMail:
    to: str
    subject: str
    html: str


def outbox() -> list[SentMail]:
    """Messages captured by the "memory" backend for this app."""
    return current_app.extensions.setdefault(OUTBOX_KEY, [])


def _build_message(to: str, subject: str, html: str) -> EmailMessage:
    msg = EmailMessage()
    msg["From"] = current_app.config.get("MAIL_DEFAULT_SENDER") or "no-reply@localhost"
    msg["To"] = to
    msg["Subject"] = subject
    msg.set_content("This message requires an HTML capable mail client.")
    msg.add_alternative(html, subtype="html")
    return msg


def _send_smtp(msg: EmailMessage) -> None:
    cfg = current_app.config
    with smtplib.SMTP(cfg["MAIL_SERVER"], cfg["MAIL_PORT"], timeout=30) as smtp:
        if cfg.get("MAIL_USE_TLS"):
            smtp.starttls()
        if cfg.get("MAIL_USERNAME"):
            smtp.login(cfg["MAIL_USERNAME"], cfg.get("MAIL_PASSWORD") or "")
        smtp.send_message(msg)


def send_mail(to: str, subject: str, html: str) -> None:
    """Deliver one HTML message. Any transport failure raises MailError."""
    if not to:
        raise MailError("Recipient is required", status_code=400)

    backend = current_app.config.get("MAIL_BACKEND", "memory")
    if backend == "memory":
        outbox().append(SentMail(to=to, subject=subject, html=html))
        current_app.logger.info("Mail queued in memory outbox to=%s subject=%r", to, subject)
        return

    if backend != "smtp":
        raise MailError(f"Unknown mail backend: {backend}")

    try:
        _send_smtp(_build_message(to, subject, html))
    except (smtplib.SMTPException, OSError):
        current_app.logger.exception("Mail delivery failed to=%s", to)
        raise MailError("Failed to send email. Please try again later.")
    current_app.logger.info("Mail sent to=%s subject=%r", to, subject)
