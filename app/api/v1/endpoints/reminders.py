# File: app/api/v1/endpoints/reminders.py
from typing import Any
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app import schemas
from app.core import deps
from app.db.database import get_db
from app.services.notification_gateway import NotificationGateway
from app.services.reminder_scheduler import ReminderScheduler

router = APIRouter()


@router.post(
    "/run",
    response_model=schemas.ReminderRunSummary,
    dependencies=[Depends(deps.require_owner_api_key)],
)
def run_reminders(
    *,
    db: Session = Depends(get_db),
    gateway: NotificationGateway = Depends(deps.get_gateway)
) -> Any:
    """Run one reminder pass now instead of waiting for the scheduler."""
    return ReminderScheduler(db, gateway).run()
