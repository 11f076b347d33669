from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, Enum
from sqlalchemy.orm import relationship
from app.models.base import BaseModel
import enum


class InvitationRole(enum.Enum):
    ADMINISTRATOR = "administrator"
    SENIOR_MEMBER = "senior_member"
    MEMBER = "member"


class InvitationStatus(enum.Enum):
    # "expired" is never stored, see app.services.token_service.is_expired
    INVITED = "invited"
    ACTIVE = "active"
    CANCELLED = "cancelled"


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class Invitation(BaseModel):
    __tablename__ = "invitations"

    email = Column(String(255), unique=True, index=True, nullable=False)
    full_name = Column(String(255), nullable=False)
    role = Column(
        Enum(InvitationRole, name="invitation_role", values_callable=_enum_values),
        nullable=False,
        default=InvitationRole.MEMBER,
    )
    status = Column(
        Enum(InvitationStatus, name="invitation_status", values_callable=_enum_values),
        nullable=False,
        default=InvitationStatus.INVITED,
        index=True,
    )

    tenant_id = Column(Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=True, index=True)
    tenant_name = Column(String(255), nullable=True)
    invited_by = Column(String(255), nullable=True)

    # Token material, only present while status == invited
    token = Column(String(128), unique=True, index=True, nullable=True)
    token_generation = Column(Integer, nullable=False, default=1)
    # sha256 of the token retired by activation or cancellation, so a reused link reads as "already used"
    retired_token_hash = Column(String(64), index=True, nullable=True)
    issued_at = Column(DateTime(timezone=True), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)

    # Account fields written on activation
    first_name = Column(String(255), nullable=True)
    last_name = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    hashed_password = Column(String(255), nullable=True)
    activated_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)

    tenant = relationship("Tenant", back_populates="invitations", foreign_keys=[tenant_id])
    reminders = relationship("InvitationReminder", back_populates="invitation", cascade="all, delete-orphan")

    @property
    def is_administrator(self) -> bool:
        return self.role == InvitationRole.ADMINISTRATOR
