from __future__ import annotations

import logging
import smtplib
import ssl
from email.message import EmailMessage

from app.core.config import settings

logger = logging.getLogger(__name__)


def _smtp_ready() -> bool:
    return bool(settings.smtp_host and settings.role_request_notify_email)


def _smtp_password() -> str | None:
    if not settings.smtp_password:
        return None
    # Gmail app passwords are often copied with spaces every 4 chars.
    return settings.smtp_password.replace(" ", "")


def _smtp_login_if_needed(server: smtplib.SMTP) -> None:
    if settings.smtp_user and _smtp_password():
        server.login(settings.smtp_user, _smtp_password())


def _send_via_smtp_with(host: str, port: int, use_tls: bool, msg: EmailMessage, context: ssl.SSLContext) -> None:
    if use_tls:
        with smtplib.SMTP(host, port, timeout=15) as server:
            server.starttls(context=context)
            _smtp_login_if_needed(server)
            server.send_message(msg)
        return

    with smtplib.SMTP_SSL(host, port, context=context, timeout=15) as server:
        _smtp_login_if_needed(server)
        server.send_message(msg)


def send_role_request_notice(*, email: str, role: str) -> bool:
    if not _smtp_ready():
        logger.info("Role request email notification is not configured; skipping.")
        return False

    recipient = settings.role_request_notify_email
    sender = settings.smtp_from or settings.smtp_user or recipient

    msg = EmailMessage()
    msg["Subject"] = f"New Simulation Request: {role}"
    msg["From"] = sender
    msg["To"] = recipient
    msg["Reply-To"] = email

    body = "\n".join(
        [
            "New Simulation Request",
            "",
            f"Requested Role: {role}",
            f"User Email: {email}",
            "",
            f"A user asked to be notified when the {role} simulation is available.",
            "Please create the simulation within 24-48 hours and notify the user.",
        ]
    ).strip()
    msg.set_content(body)

    context = ssl.create_default_context()
    primary_mode = "STARTTLS" if settings.smtp_use_tls else "SSL"
    try:
        _send_via_smtp_with(
            host=settings.smtp_host or "",
            port=settings.smtp_port,
            use_tls=settings.smtp_use_tls,
            msg=msg,
            context=context,
        )
        return True
    except Exception as exc:  # noqa: BLE001 - keep waitlist flow alive
        logger.exception(
            "Role request email via SMTP failed (host=%s port=%s mode=%s): %s",
            settings.smtp_host,
            settings.smtp_port,
            primary_mode,
            exc,
        )

    if not settings.smtp_fallback_ssl:
        return False

    fallback_host = settings.smtp_host or ""
    fallback_port = 465 if settings.smtp_use_tls else 587
    fallback_tls = not settings.smtp_use_tls
    fallback_mode = "STARTTLS" if fallback_tls else "SSL"
    try:
        _send_via_smtp_with(
            host=fallback_host,
            port=fallback_port,
            use_tls=fallback_tls,
            msg=msg,
            context=context,
        )
        logger.info(
            "Role request email sent with SMTP fallback (host=%s port=%s mode=%s).",
            fallback_host,
            fallback_port,
            fallback_mode,
        )
        return True
    except Exception as exc:  # noqa: BLE001 - keep waitlist flow alive
        logger.exception(
            "Role request email SMTP fallback failed (host=%s port=%s mode=%s): %s",
            fallback_host,
            fallback_port,
            fallback_mode,
            exc,
        )
        return False
