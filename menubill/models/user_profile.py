"""UserProfile model — local user with optional reseller attribution."""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from menubill.utils import now_utc
from .base import Base


class UserProfile(Base):
    __tablename__ = "user_profiles"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    full_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    role: Mapped[str] = mapped_column(String(32), nullable=False, default="client")
    # Set when a client was brought in by a reseller (invite or promo code)
    reseller_id: Mapped[str | None] = mapped_column(ForeignKey("user_profiles.id"), nullable=True, index=True)
    promo_code_id: Mapped[str | None] = mapped_column(
        ForeignKey("reseller_promo_codes.id", use_alter=True, name="fk_user_profiles_promo_code_id"), nullable=True
    )
    source: Mapped[str | None] = mapped_column(String(32), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=now_utc)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)
