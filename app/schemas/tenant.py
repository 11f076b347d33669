# File: app/schemas/tenant.py
from pydantic import BaseModel, EmailStr
from typing import Any, Dict, Optional
from datetime import datetime

from app.schemas.invitation import InvitationResponse


class TenantProvisionRequest(BaseModel):
    agency_name: str
    manager_name: str
    manager_email: EmailStr
    plan: str = "standard"  # basic | standard | premium | enterprise | custom
    city: Optional[str] = None
    description: Optional[str] = None
    invited_by: str = "Platform Owner"

    # Branding
    domain: Optional[str] = None
    logo_url: Optional[str] = None
    primary_color: Optional[str] = None
    secondary_color: Optional[str] = None

    # Billing
    billing_cycle: str = "monthly"  # monthly | quarterly | yearly
    custom_price: Optional[float] = None
    payment_method: Optional[str] = None
    billing_email: Optional[EmailStr] = None
    billing_address: Optional[str] = None
    tax_id: Optional[str] = None
    notes: Optional[str] = None


class TenantResponse(BaseModel):
    id: int
    name: str
    slug: str
    contact_email: str
    city: Optional[str] = None
    description: Optional[str] = None
    status: str
    plan: str
    billing: Optional[Dict[str, Any]] = None
    branding: Optional[Dict[str, Any]] = None
    manager_id: Optional[int] = None
    provisioning_status: str
    provisioning_resources: Optional[Dict[str, Any]] = None
    provisioning_error: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ProvisionTenantResponse(BaseModel):
    success: bool = True
    message: str
    tenant: TenantResponse
    manager_invitation: InvitationResponse
    resources: Dict[str, Any]
    placeholder: bool
    placeholder_reason: Optional[str] = None
    notification_sent: bool
    notification_error: Optional[str] = None
