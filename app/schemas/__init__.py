# File: app/schemas/__init__.py
from .invitation import (
    InvitationCreate, InvitationResponse, PendingInvitationResponse,
    TokenVerificationResponse, CompleteSetupRequest, CompleteSetupResponse,
    ResendInvitationRequest, InvitationSentResponse,
)
from .tenant import TenantProvisionRequest, TenantResponse, ProvisionTenantResponse
from .reminder import ReminderRunSummary

__all__ = [
    "InvitationCreate", "InvitationResponse", "PendingInvitationResponse",
    "TokenVerificationResponse", "CompleteSetupRequest", "CompleteSetupResponse",
    "ResendInvitationRequest", "InvitationSentResponse",
    "TenantProvisionRequest", "TenantResponse", "ProvisionTenantResponse",
    "ReminderRunSummary",
]
