from typing import List, Optional
from sqlalchemy.orm import Session
from app.crud.base import CRUDBase
from app.models.notification_log import NotificationLog


class CRUDNotificationLog(CRUDBase[NotificationLog, dict, dict]):

    def get_by_invitation(self, db: Session, *, invitation_id: int) -> List[NotificationLog]:
        return (
            db.query(NotificationLog)
            .filter(NotificationLog.invitation_id == invitation_id)
            .order_by(NotificationLog.id)
            .all()
        )

    def log(
        self,
        db: Session,
        *,
        email_type: str,
        recipient: str,
        success: bool,
        invitation_id: Optional[int] = None,
        message_id: Optional[str] = None,
        error: Optional[str] = None
    ) -> NotificationLog:
        return self.create(db, obj_in={
            "invitation_id": invitation_id,
            "email_type": email_type,
            "recipient": recipient,
            "status": "sent" if success else "failed",
            "message_id": message_id,
            "error": error,
        })


notification_log = CRUDNotificationLog(NotificationLog)
