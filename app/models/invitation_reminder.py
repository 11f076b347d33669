from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, UniqueConstraint
from sqlalchemy.orm import relationship
from app.models.base import BaseModel
import enum


class ReminderStage(enum.Enum):
    FIRST = "first"
    SECOND = "second"
    FINAL = "final"


class InvitationReminder(BaseModel):
    __tablename__ = "invitation_reminders"
    __table_args__ = (
        UniqueConstraint(
            "invitation_id", "token_generation", "stage",
            name="uq_invitation_reminders_invitation_generation_stage",
        ),
    )

    invitation_id = Column(Integer, ForeignKey("invitations.id", ondelete="CASCADE"), nullable=False, index=True)
    token_generation = Column(Integer, nullable=False, default=1)
    stage = Column(String(20), nullable=False)
    sent_at = Column(DateTime(timezone=True), nullable=False)
    message_id = Column(String(255), nullable=True)

    invitation = relationship("Invitation", back_populates="reminders")
