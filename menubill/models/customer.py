"""StripeCustomer model — provider customer id mapped 1:1 to a local user."""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from menubill.utils import now_utc
from .base import Base


class StripeCustomer(Base):
    __tablename__ = "stripe_customers"

    customer_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_id: Mapped[str] = mapped_column(ForeignKey("user_profiles.id"), unique=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=now_utc)
