"""SMTP delivery of HTML change reports."""

from __future__ import annotations

import smtplib
from email.message import EmailMessage
from email.utils import formataddr

import structlog

from ..config import NotifierConfig
from ..errors import NotificationError


class SMTPNotifier:
    """Send the aggregated report to a comma-separated recipient list."""

    def __init__(self, config: NotifierConfig, logger: structlog.BoundLogger | None = None) -> None:
        self.config = config
        self.logger = logger or structlog.get_logger("catalog_crawler.notifier")

    def send(self, recipients: str, subject: str, html_body: str) -> bool:
        addresses = [item.strip() for item in (recipients or "").split(",") if item.strip()]
        if not addresses or not (subject or "").strip() or not (html_body or "").strip():
            self.logger.warning(
                "notification_skipped",
                has_recipients=bool(addresses),
                has_subject=bool((subject or "").strip()),
                has_body=bool((html_body or "").strip()),
            )
            return False
        try:
            self._deliver(self._build_message(addresses, subject, html_body), addresses)
        except NotificationError as exc:
            self.logger.error("notification_failed", recipients=addresses, error=str(exc))
            return False
        self.logger.info("notification_sent", recipients=addresses, subject=subject)
        return True

    def _build_message(self, addresses: list[str], subject: str, html_body: str) -> EmailMessage:
        message = EmailMessage()
        message["Subject"] = subject
        message["From"] = formataddr((self.config.sender_name, self.config.sender_address))
        message["To"] = ", ".join(addresses)
        message.set_content(html_body, subtype="html", charset="utf-8")
        return message

    def _deliver(self, message: EmailMessage, addresses: list[str]) -> None:
        cfg = self.config
        try:
            with smtplib.SMTP(cfg.smtp_host, cfg.smtp_port, timeout=cfg.timeout) as smtp:
                if cfg.use_tls:
                    smtp.starttls()
                if cfg.username:
                    smtp.login(cfg.username, cfg.password)
                refused = smtp.send_message(message, to_addrs=addresses)
        except (smtplib.SMTPException, OSError) as exc:
            raise NotificationError(f"SMTP delivery failed: {exc}") from exc
        if refused and len(refused) == len(addresses):
            raise NotificationError(f"All recipients refused: {sorted(refused)}")


__all__ = ["SMTPNotifier"]
