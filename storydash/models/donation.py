from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from storydash.database import Base
from storydash.models.user import new_id

# Only settled payments count toward earnings
DONATION_COLLECTED = "collected"
DONATION_PENDING = "pending"
DONATION_FAILED = "failed"


class Donation(Base):
    __tablename__ = "donations"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    amount_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    message: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(20), default=DONATION_PENDING, index=True)
    donor_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False)
    recipient_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False)
    story_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("stories.id", ondelete="SET NULL"), nullable=True, index=True
    )
    payment_method: Mapped[str | None] = mapped_column(String(20), nullable=True)  # 'stripe' | 'paypal'
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    donor: Mapped["User"] = relationship("User", foreign_keys=[donor_id])
    story: Mapped["Story"] = relationship("Story")

    def __repr__(self) -> str:
        return f"<Donation {self.id}: {self.amount_cents} ({self.status})>"
