from typing import Optional
from datetime import datetime
from sqlalchemy.orm import Session
from app.crud.base import CRUDBase
from app.models.invitation_reminder import InvitationReminder, ReminderStage


class CRUDInvitationReminder(CRUDBase[InvitationReminder, dict, dict]):

    def get_for_stage(
        self, db: Session, *, invitation_id: int, token_generation: int, stage: ReminderStage
    ) -> Optional[InvitationReminder]:
        return db.query(InvitationReminder).filter(
            InvitationReminder.invitation_id == invitation_id,
            InvitationReminder.token_generation == token_generation,
            InvitationReminder.stage == stage.value,
        ).first()

    def record(
        self,
        db: Session,
        *,
        invitation_id: int,
        token_generation: int,
        stage: ReminderStage,
        sent_at: datetime,
        message_id: Optional[str] = None
    ) -> InvitationReminder:
        return self.create(db, obj_in={
            "invitation_id": invitation_id,
            "token_generation": token_generation,
            "stage": stage.value,
            "sent_at": sent_at,
            "message_id": message_id,
        })


invitation_reminder = CRUDInvitationReminder(InvitationReminder)
