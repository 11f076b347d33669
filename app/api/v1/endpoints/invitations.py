# File: app/api/v1/endpoints/invitations.py
from typing import Any, List, Optional
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
import logging

from app import crud, schemas
from app.core import deps
from app.core.exceptions import NotFoundError
from app.db.database import get_db
from app.services.invitation_service import InvitationService
from app.services.notification_gateway import NotificationGateway

logger = logging.getLogger(__name__)
router = APIRouter()


def _check_tenant_access(inviter: deps.Inviter, tenant_id: Optional[int]) -> None:
    if not inviter.can_manage(tenant_id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Can only manage invitations for your own agency",
        )


def _get_invitation_for(db: Session, invitation_id: int, inviter: deps.Inviter):
    invitation = crud.invitation.get(db, invitation_id)
    if invitation is None:
        raise NotFoundError(f"Invitation {invitation_id} not found")
    _check_tenant_access(inviter, invitation.tenant_id)
    return invitation


@router.post("/", response_model=schemas.InvitationSentResponse, status_code=status.HTTP_201_CREATED)
def create_invitation(
    *,
    db: Session = Depends(get_db),
    invitation_in: schemas.InvitationCreate,
    inviter: deps.Inviter = Depends(deps.get_inviter),
    gateway: NotificationGateway = Depends(deps.get_gateway)
) -> Any:
    """Invite someone to an existing agency."""
    _check_tenant_access(inviter, invitation_in.tenant_id)
    if not invitation_in.invited_by:
        invitation_in = invitation_in.model_copy(update={"invited_by": inviter.name})

    dispatch = InvitationService(db, gateway).invite_member(invitation_in)
    return schemas.InvitationSentResponse(
        invitation=schemas.InvitationResponse.model_validate(dispatch.invitation),
        email_sent=dispatch.email_sent,
    )


@router.get("/pending", response_model=List[schemas.PendingInvitationResponse])
def list_pending_invitations(
    *,
    db: Session = Depends(get_db),
    tenant_id: Optional[int] = None,
    inviter: deps.Inviter = Depends(deps.get_inviter),
    gateway: NotificationGateway = Depends(deps.get_gateway)
) -> Any:
    """Invitations still waiting for setup, flagged pending or expired."""
    if not inviter.is_owner:
        tenant_id = inviter.tenant_id

    pending = InvitationService(db, gateway).list_pending(tenant_id=tenant_id)
    return [
        schemas.PendingInvitationResponse(
            **schemas.InvitationResponse.model_validate(invitation).model_dump(),
            invitation_status=view_status,
        )
        for invitation, view_status in pending
    ]


@router.post("/{invitation_id}/resend", response_model=schemas.InvitationSentResponse)
def resend_invitation(
    *,
    db: Session = Depends(get_db),
    invitation_id: int,
    inviter: deps.Inviter = Depends(deps.get_inviter),
    gateway: NotificationGateway = Depends(deps.get_gateway)
) -> Any:
    _get_invitation_for(db, invitation_id, inviter)
    dispatch = InvitationService(db, gateway).resend(invitation_id)
    return schemas.InvitationSentResponse(
        invitation=schemas.InvitationResponse.model_validate(dispatch.invitation),
        email_sent=dispatch.email_sent,
    )


@router.post("/{invitation_id}/cancel", response_model=schemas.InvitationResponse)
def cancel_invitation(
    *,
    db: Session = Depends(get_db),
    invitation_id: int,
    inviter: deps.Inviter = Depends(deps.get_inviter),
    gateway: NotificationGateway = Depends(deps.get_gateway)
) -> Any:
    _get_invitation_for(db, invitation_id, inviter)
    invitation = InvitationService(db, gateway).cancel(invitation_id)
    logger.info(f"Invitation {invitation_id} cancelled by {inviter.name}")
    return invitation
