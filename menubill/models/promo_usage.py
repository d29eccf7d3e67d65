"""PromoCodeUsage model — append-only ledger, one row per completed checkout."""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from menubill.utils import now_utc
from .base import Base


class PromoCodeUsage(Base):
    __tablename__ = "promo_code_usage"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    checkout_session_id: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
    customer_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    user_id: Mapped[str] = mapped_column(ForeignKey("user_profiles.id"), nullable=False)
    # Null when the Stripe promotion code is not one of ours
    promo_code_id: Mapped[str | None] = mapped_column(ForeignKey("reseller_promo_codes.id"), nullable=True)
    promo_code_stripe_id: Mapped[str] = mapped_column(String(64), nullable=False)
    discount_amount: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    applied_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=now_utc)
