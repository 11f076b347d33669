# File: app/core/email_templates.py
from html import escape
from typing import Any, Dict, Tuple

MANAGER_INVITATION = "manager_invitation"
MEMBER_INVITATION = "member_invitation"
SETUP_REMINDER = "setup_reminder"
ACCOUNT_CREATED = "account_created"

ROLE_DISPLAY_NAMES = {
    "administrator": "Agency Manager",
    "senior_member": "Super Agent",
    "member": "Agent",
}

REMINDER_HEADLINES = {
    "first": "Your account setup is waiting",
    "second": "Don't miss out on joining {tenant_name}",
    "final": "Last chance: your invitation expires soon",
}


class TemplateError(KeyError):
    pass


def _layout(title: str, body: str) -> str:
    title = escape(title)
    return f"""
        <!DOCTYPE html>
        <html>
        <head>
            <meta charset="utf-8">
            <title>{title}</title>
            <style>
                body {{ font-family: Arial, sans-serif; margin: 0; padding: 20px; background-color: #f5f5f5; }}
                .container {{ max-width: 600px; margin: 0 auto; background-color: white; padding: 30px; border-radius: 10px; box-shadow: 0 2px 10px rgba(0,0,0,0.1); }}
                .header {{ text-align: center; margin-bottom: 30px; }}
                .logo {{ color: #2563eb; font-size: 24px; font-weight: bold; }}
                .title {{ color: #1f2937; font-size: 20px; margin: 20px 0; }}
                .message {{ color: #4b5563; line-height: 1.6; margin: 20px 0; }}
                .button {{ display: inline-block; background-color: #2563eb; color: white; padding: 12px 24px; text-decoration: none; border-radius: 6px; margin: 20px 0; }}
                .footer {{ text-align: center; margin-top: 30px; padding-top: 20px; border-top: 1px solid #e5e7eb; color: #6b7280; font-size: 14px; }}
            </style>
        </head>
        <body>
            <div class="container">
                <div class="header">
                    <div class="logo">LeadEstate</div>
                </div>
                <h2 class="title">{title}</h2>
                {body}
                <div class="footer">
                    <p>This is an automated message from LeadEstate</p>
                </div>
            </div>
        </body>
        </html>
        """


def _button(url: str, label: str) -> str:
    return f'<div style="text-align: center;"><a href="{escape(url, quote=True)}" class="button">{label}</a></div>'


def _manager_invitation(p: Dict[str, Any]) -> Tuple[str, str, str]:
    tenant_name = escape(p["tenant_name"])
    subject = f"You're invited to manage {p['tenant_name']} on LeadEstate"
    body = f"""
                <div class="message">
                    <p>Dear {escape(p['full_name'])},</p>
                    <p>{escape(p['invited_by'])} has set up <strong>{tenant_name}</strong> on LeadEstate and invited you to manage it.</p>
                    <p>Click below to create your password and activate the agency:</p>
                </div>
                {_button(p['setup_link'], 'Set Up My Agency')}
                <div class="message">
                    <p><strong>Note:</strong> This invitation will expire in {escape(p['expires_in'])}.</p>
                </div>
    """
    text = f"""
Dear {p['full_name']},

{p['invited_by']} has set up {p['tenant_name']} on LeadEstate and invited you to manage it.

Set up your account: {p['setup_link']}

This invitation will expire in {p['expires_in']}.
"""
    return subject, _layout(subject, body), text


def _member_invitation(p: Dict[str, Any]) -> Tuple[str, str, str]:
    role_name = ROLE_DISPLAY_NAMES.get(p["role"], "Agent")
    subject = f"Join {p['tenant_name']} as a {role_name} - LeadEstate Invitation"
    body = f"""
                <div class="message">
                    <p>Dear {escape(p['full_name'])},</p>
                    <p>{escape(p['invited_by'])} invited you to join <strong>{escape(p['tenant_name'])}</strong> as a {role_name}.</p>
                </div>
                {_button(p['setup_link'], 'Accept Invitation')}
                <div class="message">
                    <p><strong>Note:</strong> This invitation will expire in {escape(p['expires_in'])}.</p>
                </div>
    """
    text = f"""
Dear {p['full_name']},

{p['invited_by']} invited you to join {p['tenant_name']} as a {role_name}.

Accept the invitation: {p['setup_link']}

This invitation will expire in {p['expires_in']}.
"""
    return subject, _layout(subject, body), text


def _setup_reminder(p: Dict[str, Any]) -> Tuple[str, str, str]:
    headline = REMINDER_HEADLINES.get(p["stage"], REMINDER_HEADLINES["first"]).format(tenant_name=p["tenant_name"])
    subject = f"Reminder: Complete your {p['tenant_name']} account setup"
    body = f"""
                <div class="message">
                    <p>Hi {escape(p['full_name'])},</p>
                    <p>{escape(headline)}. Your invitation to <strong>{escape(p['tenant_name'])}</strong> is still pending.</p>
                </div>
                {_button(p['setup_link'], 'Complete Setup')}
                <div class="message">
                    <p><strong>Your invitation expires in {escape(p['expires_in'])}.</strong></p>
                </div>
    """
    text = f"""
Hi {p['full_name']},

{headline}. Your invitation to {p['tenant_name']} is still pending.

Complete setup: {p['setup_link']}

Your invitation expires in {p['expires_in']}.
"""
    return subject, _layout(subject, body), text


def _account_created(p: Dict[str, Any]) -> Tuple[str, str, str]:
    subject = f"Welcome to {p['tenant_name']}! Your account is ready"
    body = f"""
                <div class="message">
                    <p>Hi {escape(p['full_name'])},</p>
                    <p>Your {ROLE_DISPLAY_NAMES.get(p['role'], 'Agent')} account for <strong>{escape(p['tenant_name'])}</strong> is now active.</p>
                </div>
                {_button(p['login_url'], 'Go to Dashboard')}
    """
    text = f"""
Hi {p['full_name']},

Your account for {p['tenant_name']} is now active.

Log in: {p['login_url']}
"""
    return subject, _layout(subject, body), text


_RENDERERS = {
    MANAGER_INVITATION: _manager_invitation,
    MEMBER_INVITATION: _member_invitation,
    SETUP_REMINDER: _setup_reminder,
    ACCOUNT_CREATED: _account_created,
}


def render(template: str, params: Dict[str, Any]) -> Tuple[str, str, str]:
    """Return (subject, html, text) for a named template."""
    renderer = _RENDERERS.get(template)
    if renderer is None:
        raise TemplateError(f"Unknown email template: {template}")
    return renderer(params)
