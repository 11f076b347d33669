from pydantic import BaseModel


class ReminderRunSummary(BaseModel):
    sent: int = 0
    failed: int = 0
    skipped: int = 0
    total_checked: int = 0
