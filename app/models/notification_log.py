from sqlalchemy import Column, Integer, String, ForeignKey, Text
from app.models.base import BaseModel


class NotificationLog(BaseModel):
    """One row per onboarding email attempt, successful or not."""
    __tablename__ = "notification_logs"

    invitation_id = Column(Integer, ForeignKey("invitations.id", ondelete="SET NULL"), nullable=True, index=True)
    email_type = Column(String(50), nullable=False)
    recipient = Column(String(255), nullable=False)
    status = Column(String(20), nullable=False)  # sent, failed
    message_id = Column(String(255), nullable=True)
    error = Column(Text, nullable=True)
