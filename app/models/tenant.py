from sqlalchemy import Column, String, Text, Integer, JSON
from sqlalchemy.orm import relationship
from app.models.base import BaseModel
import enum


class TenantStatus(enum.Enum):
    ACTIVE = "active"
    SUSPENDED = "suspended"


class ProvisioningStatus(enum.Enum):
    PROVISIONED = "provisioned"
    PLACEHOLDER = "placeholder"  # Fallback values, needs operator remediation


class Tenant(BaseModel):
    __tablename__ = "tenants"

    name = Column(String(255), nullable=False)
    slug = Column(String(100), unique=True, nullable=False, index=True)
    contact_email = Column(String(255), nullable=False)
    city = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default=TenantStatus.ACTIVE.value)

    plan = Column(String(50), nullable=False, default="standard")
    billing = Column(JSON, nullable=True)
    branding = Column(JSON, nullable=True)

    # Invitation id of the administrator, set when they complete account setup
    manager_id = Column(Integer, nullable=True, index=True)

    # Embedded provisioning record
    provisioning_status = Column(String(20), nullable=False, default=ProvisioningStatus.PROVISIONED.value)
    provisioning_resources = Column(JSON, nullable=True)
    provisioning_error = Column(Text, nullable=True)

    invitations = relationship(
        "Invitation",
        back_populates="tenant",
        foreign_keys="Invitation.tenant_id",
    )
