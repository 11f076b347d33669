from .base import BaseModel
from .tenant import Tenant, TenantStatus, ProvisioningStatus
from .invitation import Invitation, InvitationRole, InvitationStatus
from .invitation_reminder import InvitationReminder, ReminderStage
from .notification_log import NotificationLog

__all__ = [
    "BaseModel", "Tenant", "TenantStatus", "ProvisioningStatus",
    "Invitation", "InvitationRole", "InvitationStatus",
    "InvitationReminder", "ReminderStage", "NotificationLog",
]
