# File: app/api/v1/endpoints/account_setup.py
from typing import Any
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
import logging

from app import schemas
from app.core import deps
from app.db.database import get_db
from app.services.invitation_service import InvitationService
from app.services.notification_gateway import NotificationGateway

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/verify-token", response_model=schemas.TokenVerificationResponse)
def verify_token(
    *,
    db: Session = Depends(get_db),
    token: str = Query(...),
    gateway: NotificationGateway = Depends(deps.get_gateway)
) -> Any:
    """Check a setup link before showing the password form."""
    invitation = InvitationService(db, gateway).verify_token(token)
    return schemas.TokenVerificationResponse(
        email=invitation.email,
        full_name=invitation.full_name,
        role=invitation.role,
        tenant_name=invitation.tenant_name,
        invited_by=invitation.invited_by,
        expires_at=invitation.expires_at,
    )


@router.post("/complete", response_model=schemas.CompleteSetupResponse)
def complete_setup(
    *,
    db: Session = Depends(get_db),
    setup_in: schemas.CompleteSetupRequest,
    gateway: NotificationGateway = Depends(deps.get_gateway)
) -> Any:
    result = InvitationService(db, gateway).complete_setup(setup_in)
    return schemas.CompleteSetupResponse(
        invitation=schemas.InvitationResponse.model_validate(result.invitation),
        access_token=result.access_token,
        welcome_email_sent=result.welcome_email_sent,
    )


@router.post("/resend-invitation", response_model=schemas.InvitationSentResponse)
def resend_invitation(
    *,
    db: Session = Depends(get_db),
    resend_in: schemas.ResendInvitationRequest,
    gateway: NotificationGateway = Depends(deps.get_gateway)
) -> Any:
    """Fresh link for someone whose invitation expired."""
    dispatch = InvitationService(db, gateway).resend_by_email(resend_in.email)
    return schemas.InvitationSentResponse(
        invitation=schemas.InvitationResponse.model_validate(dispatch.invitation),
        email_sent=dispatch.email_sent,
    )
