import smtplib
from unittest.mock import MagicMock, patch

import pytest
import requests

from app.core import email_templates
from app.services.notification_gateway import (
    BrevoNotificationGateway,
    SmtpNotificationGateway,
    get_notification_gateway,
)

INVITE_PARAMS = {
    "full_name": "Sarah Johnson",
    "tenant_name": "Elite Properties",
    "invited_by": "Platform Owner",
    "setup_link": "https://app.leadestate.io/setup-account?token=abc&type=manager",
    "expires_in": "2 days",
}


@pytest.fixture
def brevo_config(config):
    config.EMAIL_BACKEND = "brevo"
    config.BREVO_API_KEY = "xkeysib-test"
    return config


def test_render_all_templates():
    reminder = dict(INVITE_PARAMS, stage="second")
    created = {"full_name": "Sarah", "tenant_name": "Elite", "role": "administrator", "login_url": "https://x/login"}

    for template, params in [
        (email_templates.MANAGER_INVITATION, INVITE_PARAMS),
        (email_templates.MEMBER_INVITATION, dict(INVITE_PARAMS, role="member")),
        (email_templates.SETUP_REMINDER, reminder),
        (email_templates.ACCOUNT_CREATED, created),
    ]:
        subject, html, text = email_templates.render(template, params)
        assert subject
        assert "<html>" in html
        assert text.strip()


def test_html_escapes_names():
    _, html, _ = email_templates.render(
        email_templates.MANAGER_INVITATION, dict(INVITE_PARAMS, tenant_name="<script>x</script>")
    )
    assert "<script>" not in html


def test_disabled_sending_reports_success(config):
    config.SEND_EMAILS = False
    with patch("app.services.notification_gateway.requests.post") as mock_post:
        result = BrevoNotificationGateway(config).send(email_templates.MANAGER_INVITATION, "s@x.io", INVITE_PARAMS)
    assert result.success is True
    mock_post.assert_not_called()


def test_unknown_template_fails(config):
    result = SmtpNotificationGateway(config).send("birthday_card", "s@x.io", {})
    assert result.success is False
    assert "birthday_card" in result.error


def test_missing_parameter_fails(config):
    result = SmtpNotificationGateway(config).send(email_templates.MANAGER_INVITATION, "s@x.io", {"full_name": "S"})
    assert result.success is False


def test_brevo_send(brevo_config):
    response = MagicMock()
    response.json.return_value = {"messageId": "<202601050900.123@smtp-relay.brevo.com>"}

    with patch("app.services.notification_gateway.requests.post", return_value=response) as mock_post:
        result = BrevoNotificationGateway(brevo_config).send(
            email_templates.MANAGER_INVITATION, "sarah@eliteproperties.co.ke", INVITE_PARAMS
        )

    assert result.success is True
    assert result.message_id == "<202601050900.123@smtp-relay.brevo.com>"

    args, kwargs = mock_post.call_args
    assert args[0] == "https://api.brevo.com/v3/smtp/email"
    assert kwargs["headers"]["api-key"] == "xkeysib-test"
    assert kwargs["timeout"] == brevo_config.EMAIL_TIMEOUT
    assert kwargs["json"]["to"] == [{"email": "sarah@eliteproperties.co.ke"}]
    assert "manager_invitation" in kwargs["json"]["tags"]


def test_brevo_http_error(brevo_config):
    response = MagicMock()
    response.raise_for_status.side_effect = requests.exceptions.HTTPError(response=MagicMock(text="Key not found"))

    with patch("app.services.notification_gateway.requests.post", return_value=response):
        result = BrevoNotificationGateway(brevo_config).send(
            email_templates.MANAGER_INVITATION, "s@x.io", INVITE_PARAMS
        )

    assert result.success is False
    assert result.error == "Key not found"


def test_brevo_timeout(brevo_config):
    with patch(
        "app.services.notification_gateway.requests.post",
        side_effect=requests.exceptions.Timeout("read timed out"),
    ):
        result = BrevoNotificationGateway(brevo_config).send(
            email_templates.MANAGER_INVITATION, "s@x.io", INVITE_PARAMS
        )
    assert result.success is False
    assert "timed out" in result.error


def test_brevo_without_key(config):
    config.BREVO_API_KEY = None
    with patch("app.services.notification_gateway.requests.post") as mock_post:
        result = BrevoNotificationGateway(config).send(email_templates.MANAGER_INVITATION, "s@x.io", INVITE_PARAMS)
    assert result.success is False
    mock_post.assert_not_called()


def test_smtp_send(config):
    config.SMTP_USERNAME = "mailer"
    config.SMTP_PASSWORD = "secret"

    with patch("app.services.notification_gateway.smtplib.SMTP") as mock_smtp:
        server = mock_smtp.return_value.__enter__.return_value
        result = SmtpNotificationGateway(config).send(
            email_templates.MANAGER_INVITATION, "sarah@eliteproperties.co.ke", INVITE_PARAMS
        )

    assert result.success is True
    assert result.message_id.endswith("@leadestate.com>")
    mock_smtp.assert_called_once_with(config.SMTP_SERVER, config.SMTP_PORT, timeout=config.EMAIL_TIMEOUT)
    server.login.assert_called_once_with("mailer", "secret")
    from_addr, to_addrs, _ = server.sendmail.call_args[0]
    assert to_addrs == ["sarah@eliteproperties.co.ke"]


def test_smtp_failure(config):
    with patch(
        "app.services.notification_gateway.smtplib.SMTP",
        side_effect=smtplib.SMTPConnectError(421, "service not available"),
    ):
        result = SmtpNotificationGateway(config).send(email_templates.MANAGER_INVITATION, "s@x.io", INVITE_PARAMS)
    assert result.success is False


def test_gateway_selection(config):
    config.EMAIL_BACKEND = "brevo"
    assert isinstance(get_notification_gateway(config), BrevoNotificationGateway)
    config.EMAIL_BACKEND = "smtp"
    assert isinstance(get_notification_gateway(config), SmtpNotificationGateway)
