"""
Invitation token material and expiry policy.

Everything here is a pure function of "now" and the invitation role, so the
saga, the lifecycle service and the reminder scheduler agree on what an
expired invitation is.
"""
import hashlib
import secrets
from datetime import datetime, timedelta
from typing import Optional

from app.core.config import Settings, settings as default_settings
from app.models.invitation import Invitation, InvitationRole, InvitationStatus
from app.utils.time_utils import ensure_utc

TOKEN_BYTES = 32  # 256 bits


def generate_token() -> str:
    return secrets.token_hex(TOKEN_BYTES)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def invitation_window(role: InvitationRole, config: Optional[Settings] = None) -> timedelta:
    """Administrators get 48 hours by default, every other role 7 days."""
    config = config or default_settings
    if role == InvitationRole.ADMINISTRATOR:
        return config.admin_invitation_window
    return config.member_invitation_window


def compute_expiry(issued_at: datetime, role: InvitationRole, config: Optional[Settings] = None) -> datetime:
    return ensure_utc(issued_at) + invitation_window(role, config)


def is_expired(invitation: Invitation, now: datetime) -> bool:
    """An invitation is expired while it is still invited and past its expiry."""
    if invitation.status != InvitationStatus.INVITED:
        return False
    return ensure_utc(now) > ensure_utc(invitation.expires_at)


def setup_link(token: str, role: InvitationRole, config: Optional[Settings] = None) -> str:
    config = config or default_settings
    link_type = "manager" if role == InvitationRole.ADMINISTRATOR else "agent"
    return f"{config.frontend_url}/setup-account?token={token}&type={link_type}"


def humanize_remaining(remaining: timedelta) -> str:
    """'5 hours' when a day or less is left, otherwise whole days rounded up."""
    hours = max(1, -(-int(remaining.total_seconds()) // 3600))
    if hours <= 24:
        return f"{hours} hour" if hours == 1 else f"{hours} hours"
    return f"{-(-hours // 24)} days"
