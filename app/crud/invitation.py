# File: app/crud/invitation.py
from typing import Any, Dict, List, Optional
from sqlalchemy.orm import Session
from sqlalchemy import func
from app.crud.base import CRUDBase
from app.models.invitation import Invitation, InvitationStatus


class CRUDInvitation(CRUDBase[Invitation, dict, dict]):

    def get_by_email(self, db: Session, *, email: str) -> Optional[Invitation]:
        return db.query(Invitation).filter(func.lower(Invitation.email) == email.lower()).first()

    def get_by_token(self, db: Session, *, token: str) -> Optional[Invitation]:
        """Exact token match, whatever the status or expiry."""
        return db.query(Invitation).filter(Invitation.token == token).first()

    def get_by_retired_token(self, db: Session, *, token_hash: str) -> Optional[Invitation]:
        return db.query(Invitation).filter(Invitation.retired_token_hash == token_hash).first()

    def get_invited(self, db: Session, *, tenant_id: Optional[int] = None) -> List[Invitation]:
        query = db.query(Invitation).filter(Invitation.status == InvitationStatus.INVITED)
        if tenant_id is not None:
            query = query.filter(Invitation.tenant_id == tenant_id)
        return query.order_by(Invitation.issued_at.desc(), Invitation.id).all()

    def consume_token(self, db: Session, *, invitation_id: int, token: str, values: Dict[str, Any]) -> bool:
        """
        Move an invited row to active in one conditional UPDATE.

        Returns False when another caller already consumed or cancelled it.
        """
        updated = (
            db.query(Invitation)
            .filter(
                Invitation.id == invitation_id,
                Invitation.token == token,
                Invitation.status == InvitationStatus.INVITED,
            )
            .update(values, synchronize_session=False)
        )
        return updated == 1

    def update_if_invited(self, db: Session, *, invitation_id: int, values: Dict[str, Any]) -> bool:
        """Conditional UPDATE on (id, status=invited). False when the row moved on meanwhile."""
        updated = (
            db.query(Invitation)
            .filter(Invitation.id == invitation_id, Invitation.status == InvitationStatus.INVITED)
            .update(values, synchronize_session=False)
        )
        return updated == 1


invitation = CRUDInvitation(Invitation)
