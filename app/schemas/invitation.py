# File: app/schemas/invitation.py
from pydantic import BaseModel, EmailStr
from typing import Optional
from datetime import datetime

from app.models.invitation import InvitationRole, InvitationStatus


class InvitationCreate(BaseModel):
    email: EmailStr
    full_name: str
    role: InvitationRole = InvitationRole.MEMBER
    tenant_id: int
    invited_by: Optional[str] = None  # filled from the caller when omitted


class InvitationResponse(BaseModel):
    id: int
    email: str
    full_name: str
    role: InvitationRole
    status: InvitationStatus
    tenant_id: Optional[int] = None
    tenant_name: Optional[str] = None
    invited_by: Optional[str] = None
    token_generation: int
    issued_at: datetime
    expires_at: datetime
    activated_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PendingInvitationResponse(InvitationResponse):
    invitation_status: str  # pending | expired


class TokenVerificationResponse(BaseModel):
    email: str
    full_name: str
    role: InvitationRole
    tenant_name: Optional[str] = None
    invited_by: Optional[str] = None
    expires_at: datetime


class CompleteSetupRequest(BaseModel):
    token: str
    password: str
    first_name: str
    last_name: Optional[str] = None
    phone: Optional[str] = None


class CompleteSetupResponse(BaseModel):
    success: bool = True
    invitation: InvitationResponse
    access_token: str
    token_type: str = "bearer"
    welcome_email_sent: bool


class ResendInvitationRequest(BaseModel):
    email: EmailStr


class InvitationSentResponse(BaseModel):
    success: bool = True
    invitation: InvitationResponse
    email_sent: bool
