# File: app/services/invitation_service.py
"""
Invitation token lifecycle: issue, verify, complete setup, resend, cancel.

States are invited, active and cancelled. "expired" is never stored; it is
derived with token_service.is_expired. Every public method takes an explicit
`now` so callers and tests control the clock.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Tuple
import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app import crud
from app.core import email_templates
from app.core.config import Settings, settings as default_settings
from app.core.exceptions import (
    ConflictError,
    ExpiredError,
    NotFoundError,
    TransactionError,
    ValidationError,
)
from app.core.security import MAX_PASSWORD_BYTES, create_access_token, get_password_hash
from app.models.invitation import Invitation, InvitationRole, InvitationStatus
from app.models.tenant import Tenant
from app.schemas.invitation import CompleteSetupRequest, InvitationCreate
from app.services import token_service
from app.services.notification_gateway import NotificationGateway, SendResult
from app.utils.time_utils import ensure_utc, utcnow

logger = logging.getLogger(__name__)


@dataclass
class InvitationDispatch:
    invitation: Invitation
    email_sent: bool
    email_error: Optional[str] = None


@dataclass
class SetupResult:
    invitation: Invitation
    access_token: str
    welcome_email_sent: bool


def issue_invitation(
    db: Session,
    *,
    email: str,
    full_name: str,
    role: InvitationRole,
    tenant: Tenant,
    invited_by: str,
    now: datetime,
    config: Optional[Settings] = None
) -> Invitation:
    """Flush a new invited row. The caller commits."""
    issued_at = ensure_utc(now)
    return crud.invitation.create(db, obj_in={
        "email": email.lower(),
        "full_name": full_name.strip(),
        "role": role,
        "status": InvitationStatus.INVITED,
        "tenant_id": tenant.id,
        "tenant_name": tenant.name,
        "invited_by": invited_by,
        "token": token_service.generate_token(),
        "token_generation": 1,
        "issued_at": issued_at,
        "expires_at": token_service.compute_expiry(issued_at, role, config),
    })


def record_notification(
    db: Session, email_type: str, recipient: str, result: SendResult, invitation_id: Optional[int] = None
) -> None:
    """Write the audit row in its own commit. Never raises."""
    try:
        crud.notification_log.log(
            db,
            email_type=email_type,
            recipient=recipient,
            success=result.success,
            invitation_id=invitation_id,
            message_id=result.message_id,
            error=result.error,
        )
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.warning(f"Could not record {email_type} notification for {recipient}: {e}")


def send_invitation_email(
    db: Session,
    gateway: NotificationGateway,
    invitation: Invitation,
    now: datetime,
    config: Optional[Settings] = None
) -> SendResult:
    template = (
        email_templates.MANAGER_INVITATION if invitation.is_administrator else email_templates.MEMBER_INVITATION
    )
    params = {
        "full_name": invitation.full_name,
        "tenant_name": invitation.tenant_name or "",
        "invited_by": invitation.invited_by or "",
        "role": invitation.role.value,
        "setup_link": token_service.setup_link(invitation.token, invitation.role, config),
        "expires_in": token_service.humanize_remaining(ensure_utc(invitation.expires_at) - ensure_utc(now)),
    }
    result = gateway.send(template, invitation.email, params)
    if result.success:
        logger.info(f"Invitation email ({template}) sent to {invitation.email}")
    else:
        logger.warning(f"Invitation email ({template}) to {invitation.email} failed: {result.error}")
    record_notification(db, template, invitation.email, result, invitation_id=invitation.id)
    return result


class InvitationService:
    def __init__(self, db: Session, gateway: NotificationGateway, config: Optional[Settings] = None):
        self.db = db
        self.gateway = gateway
        self.config = config or default_settings

    # ------------------------------------------------------------------
    # Issue
    # ------------------------------------------------------------------

    def invite_member(self, request: InvitationCreate, now: Optional[datetime] = None) -> InvitationDispatch:
        now = ensure_utc(now or utcnow())
        if not request.full_name.strip():
            raise ValidationError("Full name is required")
        if not (request.invited_by or "").strip():
            raise ValidationError("Inviter name is required")

        tenant = crud.tenant.get(self.db, request.tenant_id)
        if tenant is None:
            raise NotFoundError(f"Tenant {request.tenant_id} not found")

        if crud.invitation.get_by_email(self.db, email=request.email):
            raise ConflictError(
                f"An invitation or user already exists for {request.email}",
                {"email": request.email},
            )

        try:
            invitation = issue_invitation(
                self.db,
                email=request.email,
                full_name=request.full_name,
                role=request.role,
                tenant=tenant,
                invited_by=request.invited_by,
                now=now,
                config=self.config,
            )
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise ConflictError(f"An invitation already exists for {request.email}", {"email": request.email}) from e
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to store invitation for {request.email}: {e}")
            raise TransactionError("Could not store invitation") from e

        logger.info(f"Invited {invitation.email} to tenant {tenant.id} as {invitation.role.value}")
        result = send_invitation_email(self.db, self.gateway, invitation, now, self.config)
        return InvitationDispatch(invitation=invitation, email_sent=result.success, email_error=result.error)

    # ------------------------------------------------------------------
    # Verify / complete
    # ------------------------------------------------------------------

    def _find_invited(self, token: Optional[str], now: datetime) -> Invitation:
        if not token or not token.strip():
            raise ValidationError("Token is required")

        invitation = crud.invitation.get_by_token(self.db, token=token)
        if invitation is None:
            retired = crud.invitation.get_by_retired_token(self.db, token_hash=token_service.hash_token(token))
            if retired is not None:
                raise ConflictError(
                    "Invitation has already been used or cancelled",
                    {"status": retired.status.value},
                )
            raise NotFoundError("Invalid invitation token")

        if invitation.status != InvitationStatus.INVITED:
            raise ConflictError(
                "Invitation has already been used or cancelled",
                {"status": invitation.status.value},
            )
        if token_service.is_expired(invitation, now):
            raise ExpiredError(
                "Invitation has expired",
                {"email": invitation.email, "expired_at": ensure_utc(invitation.expires_at).isoformat()},
            )
        return invitation

    def verify_token(self, token: str, now: Optional[datetime] = None) -> Invitation:
        return self._find_invited(token, ensure_utc(now or utcnow()))

    def _validate_setup(self, request: CompleteSetupRequest) -> None:
        if not request.token or not request.token.strip():
            raise ValidationError("Token is required")
        if not request.first_name or not request.first_name.strip():
            raise ValidationError("First name is required")
        if len(request.password or "") < self.config.MIN_PASSWORD_LENGTH:
            raise ValidationError(
                f"Password must be at least {self.config.MIN_PASSWORD_LENGTH} characters long"
            )
        if len(request.password.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValidationError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes long")

    def complete_setup(self, request: CompleteSetupRequest, now: Optional[datetime] = None) -> SetupResult:
        now = ensure_utc(now or utcnow())
        self._validate_setup(request)
        invitation = self._find_invited(request.token, now)

        values = {
            "status": InvitationStatus.ACTIVE,
            "token": None,
            "retired_token_hash": token_service.hash_token(request.token),
            "activated_at": now,
            "first_name": request.first_name.strip(),
            "last_name": (request.last_name or "").strip() or None,
            "phone": request.phone,
            "hashed_password": get_password_hash(request.password),
        }

        try:
            if not crud.invitation.consume_token(
                self.db, invitation_id=invitation.id, token=request.token, values=values
            ):
                self.db.rollback()
                raise ConflictError("Invitation has already been used or cancelled")
            if invitation.is_administrator and invitation.tenant_id is not None:
                crud.tenant.set_manager(self.db, tenant_id=invitation.tenant_id, manager_id=invitation.id)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to activate invitation {invitation.id}: {e}")
            raise TransactionError("Could not activate account") from e

        self.db.refresh(invitation)
        logger.info(f"Account activated for {invitation.email} ({invitation.role.value})")

        welcome = self._send_account_created(invitation)
        access_token = create_access_token(
            str(invitation.id),
            claims={"email": invitation.email, "role": invitation.role.value, "tenant_id": invitation.tenant_id},
        )
        return SetupResult(invitation=invitation, access_token=access_token, welcome_email_sent=welcome.success)

    def _send_account_created(self, invitation: Invitation) -> SendResult:
        full_name = " ".join(part for part in (invitation.first_name, invitation.last_name) if part)
        result = self.gateway.send(email_templates.ACCOUNT_CREATED, invitation.email, {
            "full_name": full_name or invitation.full_name,
            "tenant_name": invitation.tenant_name or "",
            "role": invitation.role.value,
            "login_url": f"{self.config.frontend_url}/login",
        })
        if not result.success:
            logger.warning(f"Welcome email to {invitation.email} failed: {result.error}")
        record_notification(self.db, email_templates.ACCOUNT_CREATED, invitation.email, result, invitation.id)
        return result

    # ------------------------------------------------------------------
    # Resend / cancel
    # ------------------------------------------------------------------

    def _get(self, invitation_id: int) -> Invitation:
        invitation = crud.invitation.get(self.db, invitation_id)
        if invitation is None:
            raise NotFoundError(f"Invitation {invitation_id} not found")
        return invitation

    def resend(self, invitation_id: int, now: Optional[datetime] = None) -> InvitationDispatch:
        """
        Replace the token and expiry, even when the invitation already expired.

        The old token stops working immediately. token_generation moves on,
        which gives the new token its own reminder history.
        """
        now = ensure_utc(now or utcnow())
        invitation = self._get(invitation_id)
        if invitation.status != InvitationStatus.INVITED:
            raise ConflictError(
                f"Cannot resend an invitation that is {invitation.status.value}",
                {"status": invitation.status.value},
            )

        try:
            if not crud.invitation.update_if_invited(self.db, invitation_id=invitation.id, values={
                "token": token_service.generate_token(),
                "token_generation": Invitation.token_generation + 1,
                "issued_at": now,
                "expires_at": token_service.compute_expiry(now, invitation.role, self.config),
            }):
                self.db.rollback()
                raise ConflictError("Invitation has already been used or cancelled")
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to resend invitation {invitation_id}: {e}")
            raise TransactionError("Could not resend invitation") from e

        self.db.refresh(invitation)
        logger.info(f"Resent invitation {invitation.id} to {invitation.email} (generation {invitation.token_generation})")
        result = send_invitation_email(self.db, self.gateway, invitation, now, self.config)
        return InvitationDispatch(invitation=invitation, email_sent=result.success, email_error=result.error)

    def resend_by_email(self, email: str, now: Optional[datetime] = None) -> InvitationDispatch:
        invitation = crud.invitation.get_by_email(self.db, email=email)
        if invitation is None or invitation.status != InvitationStatus.INVITED:
            raise NotFoundError(f"No pending invitation found for {email}")
        return self.resend(invitation.id, now)

    def cancel(self, invitation_id: int, now: Optional[datetime] = None) -> Invitation:
        now = ensure_utc(now or utcnow())
        invitation = self._get(invitation_id)
        if invitation.status != InvitationStatus.INVITED:
            raise ConflictError(
                f"Cannot cancel an invitation that is {invitation.status.value}",
                {"status": invitation.status.value},
            )

        try:
            if not crud.invitation.update_if_invited(self.db, invitation_id=invitation.id, values={
                "status": InvitationStatus.CANCELLED,
                "retired_token_hash": token_service.hash_token(invitation.token),
                "token": None,
                "cancelled_at": now,
            }):
                self.db.rollback()
                raise ConflictError("Invitation has already been used or cancelled")
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise TransactionError("Could not cancel invitation") from e

        self.db.refresh(invitation)
        logger.info(f"Cancelled invitation {invitation.id} for {invitation.email}")
        return invitation

    # ------------------------------------------------------------------
    # Listing
    # ------------------------------------------------------------------

    def list_pending(
        self, tenant_id: Optional[int] = None, now: Optional[datetime] = None
    ) -> List[Tuple[Invitation, str]]:
        """Invited rows paired with their view status, 'pending' or 'expired'."""
        now = ensure_utc(now or utcnow())
        return [
            (invitation, "expired" if token_service.is_expired(invitation, now) else "pending")
            for invitation in crud.invitation.get_invited(self.db, tenant_id=tenant_id)
        ]
