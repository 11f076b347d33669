"""
Outbound email for the onboarding flow.

Gateways never retry and never raise for transport problems: every outcome
comes back as a SendResult so callers can record it and decide what a failed
send means for them.
"""
import logging
import smtplib
import ssl
from dataclasses import dataclass
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import make_msgid
from typing import Any, Dict, Optional

import requests

from app.core import email_templates
from app.core.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)


@dataclass
class SendResult:
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None


class NotificationGateway:
    """Send a templated message to one recipient."""

    def __init__(self, config: Optional[Settings] = None):
        self.config = config or default_settings

    def send(self, template: str, recipient: str, params: Dict[str, Any]) -> SendResult:
        try:
            subject, html_content, text_content = email_templates.render(template, params)
        except KeyError as e:
            logger.error(f"Could not render {template} for {recipient}: {e}")
            return SendResult(success=False, error=f"template error: {e}")

        if not self.config.SEND_EMAILS:
            logger.info(f"Email sending disabled. Would send: {subject} to {recipient}")
            return SendResult(success=True)

        return self._deliver(recipient, subject, html_content, text_content, tags=[template])

    def _deliver(self, recipient: str, subject: str, html_content: str, text_content: str, tags: list) -> SendResult:
        raise NotImplementedError


class SmtpNotificationGateway(NotificationGateway):
    def _deliver(self, recipient, subject, html_content, text_content, tags):
        config = self.config
        message_id = make_msgid(domain=config.FROM_EMAIL.split("@")[-1])

        message = MIMEMultipart("alternative")
        message["Subject"] = subject
        message["From"] = f"{config.FROM_NAME} <{config.FROM_EMAIL}>"
        message["To"] = recipient
        message["Message-ID"] = message_id
        message.attach(MIMEText(text_content, "plain"))
        message.attach(MIMEText(html_content, "html"))

        try:
            context = ssl.create_default_context()
            with smtplib.SMTP(config.SMTP_SERVER, config.SMTP_PORT, timeout=config.EMAIL_TIMEOUT) as server:
                server.starttls(context=context)
                if config.SMTP_USERNAME:
                    server.login(config.SMTP_USERNAME, config.SMTP_PASSWORD or "")
                server.sendmail(config.FROM_EMAIL, [recipient], message.as_string())
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"SMTP send to {recipient} failed: {e}")
            return SendResult(success=False, error=str(e))

        logger.info(f"Email sent successfully to {recipient}")
        return SendResult(success=True, message_id=message_id)


class BrevoNotificationGateway(NotificationGateway):
    """Brevo (Sendinblue) transactional email API."""

    def _deliver(self, recipient, subject, html_content, text_content, tags):
        config = self.config
        if not config.BREVO_API_KEY:
            logger.warning("Brevo not configured, skipping email send")
            return SendResult(success=False, error="Brevo not configured")

        payload = {
            "sender": {"name": config.FROM_NAME, "email": config.FROM_EMAIL},
            "to": [{"email": recipient}],
            "subject": subject,
            "htmlContent": html_content,
            "textContent": text_content,
            "tags": ["onboarding", *tags],
        }

        try:
            response = requests.post(
                f"{config.BREVO_API_URL.rstrip('/')}/smtp/email",
                json=payload,
                headers={"api-key": config.BREVO_API_KEY, "Content-Type": "application/json"},
                timeout=config.EMAIL_TIMEOUT,
            )
            response.raise_for_status()
        except requests.exceptions.HTTPError as e:
            detail = e.response.text if e.response is not None else str(e)
            logger.error(f"Brevo email send to {recipient} failed: {detail}")
            return SendResult(success=False, error=detail)
        except requests.exceptions.RequestException as e:
            logger.error(f"Brevo unreachable while sending to {recipient}: {e}")
            return SendResult(success=False, error=str(e))

        message_id = response.json().get("messageId")
        logger.info(f"Email sent successfully via Brevo: {message_id}")
        return SendResult(success=True, message_id=message_id)


def get_notification_gateway(config: Optional[Settings] = None) -> NotificationGateway:
    config = config or default_settings
    if config.EMAIL_BACKEND.lower() == "brevo":
        return BrevoNotificationGateway(config)
    return SmtpNotificationGateway(config)
