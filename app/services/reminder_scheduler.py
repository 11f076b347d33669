# File: app/services/reminder_scheduler.py
from datetime import datetime, timedelta
from typing import Optional
import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app import crud
from app.core import email_templates
from app.core.config import Settings, settings as default_settings
from app.db.database import SessionLocal
from app.models.invitation import Invitation
from app.models.invitation_reminder import ReminderStage
from app.schemas.reminder import ReminderRunSummary
from app.services import token_service
from app.services.invitation_service import record_notification
from app.services.notification_gateway import NotificationGateway, get_notification_gateway
from app.utils.time_utils import ensure_utc, utcnow

logger = logging.getLogger(__name__)


def determine_stage(invitation: Invitation, now: datetime, config: Optional[Settings] = None) -> Optional[ReminderStage]:
    """
    Pick the reminder stage due for an invitation, first match wins:
    little time left -> final, long ago issued -> second, a day old -> first.
    """
    config = config or default_settings
    now = ensure_utc(now)
    elapsed = now - ensure_utc(invitation.issued_at)
    remaining = ensure_utc(invitation.expires_at) - now

    if remaining <= timedelta(hours=config.REMINDER_FINAL_WITHIN_HOURS):
        return ReminderStage.FINAL
    if elapsed >= timedelta(hours=config.REMINDER_SECOND_AFTER_HOURS):
        return ReminderStage.SECOND
    if elapsed >= timedelta(hours=config.REMINDER_FIRST_AFTER_HOURS):
        return ReminderStage.FIRST
    return None


class ReminderScheduler:
    """Sends staged setup reminders to pending invitees, at most once per stage and token."""

    def __init__(self, db: Session, gateway: NotificationGateway, config: Optional[Settings] = None):
        self.db = db
        self.gateway = gateway
        self.config = config or default_settings

    def run(self, now: Optional[datetime] = None) -> ReminderRunSummary:
        now = ensure_utc(now or utcnow())
        summary = ReminderRunSummary()

        try:
            invitations = [
                (invitation.id, invitation)
                for invitation in crud.invitation.get_invited(self.db)
                if not token_service.is_expired(invitation, now)
            ]
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Reminder run could not load pending invitations: {e}")
            return summary

        logger.info(f"Checking {len(invitations)} pending invitations for reminders")

        for invitation_id, invitation in invitations:
            summary.total_checked += 1
            try:
                outcome = self._remind(invitation, now)
            except Exception as e:
                self.db.rollback()
                logger.error(f"Reminder for invitation {invitation_id} failed: {e}")
                outcome = "failed"
            setattr(summary, outcome, getattr(summary, outcome) + 1)

        logger.info(
            f"Reminder run complete: {summary.sent} sent, {summary.failed} failed, "
            f"{summary.skipped} skipped, {summary.total_checked} checked"
        )
        return summary

    def _remind(self, invitation: Invitation, now: datetime) -> str:
        stage = determine_stage(invitation, now, self.config)
        if stage is None:
            return "skipped"

        if crud.invitation_reminder.get_for_stage(
            self.db,
            invitation_id=invitation.id,
            token_generation=invitation.token_generation,
            stage=stage,
        ):
            return "skipped"

        result = self.gateway.send(email_templates.SETUP_REMINDER, invitation.email, {
            "full_name": invitation.full_name,
            "tenant_name": invitation.tenant_name or "",
            "setup_link": token_service.setup_link(invitation.token, invitation.role, self.config),
            "expires_in": token_service.humanize_remaining(ensure_utc(invitation.expires_at) - now),
            "stage": stage.value,
        })
        if not result.success:
            logger.warning(f"{stage.value} reminder to {invitation.email} failed: {result.error}")
            record_notification(self.db, email_templates.SETUP_REMINDER, invitation.email, result, invitation.id)
            return "failed"

        try:
            crud.invitation_reminder.record(
                self.db,
                invitation_id=invitation.id,
                token_generation=invitation.token_generation,
                stage=stage,
                sent_at=now,
                message_id=result.message_id,
            )
            crud.notification_log.log(
                self.db,
                email_type=email_templates.SETUP_REMINDER,
                recipient=invitation.email,
                success=True,
                invitation_id=invitation.id,
                message_id=result.message_id,
            )
            self.db.commit()
        except IntegrityError:
            # Another scheduler instance recorded this stage first
            self.db.rollback()
            logger.info(f"{stage.value} reminder for invitation {invitation.id} already recorded elsewhere")
            return "skipped"

        logger.info(f"Sent {stage.value} reminder to {invitation.email}")
        return "sent"


def run_reminder_job() -> ReminderRunSummary:
    """Scheduler entry point, one session per run."""
    db = SessionLocal()
    try:
        return ReminderScheduler(db, get_notification_gateway()).run()
    except Exception as e:
        logger.error(f"Error in reminder job: {e}")
        return ReminderRunSummary()
    finally:
        db.close()
