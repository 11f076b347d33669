from .tenant import tenant
from .invitation import invitation
from .invitation_reminder import invitation_reminder
from .notification_log import notification_log

__all__ = ["tenant", "invitation", "invitation_reminder", "notification_log"]
