"""ResellerPromoCode model — a reseller's Stripe promotion code and its commission rate."""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import Boolean, DateTime, ForeignKey, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from menubill.utils import now_utc
from .base import Base


class ResellerPromoCode(Base):
    __tablename__ = "reseller_promo_codes"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    reseller_id: Mapped[str] = mapped_column(ForeignKey("user_profiles.id"), nullable=False, index=True)
    promo_code_stripe_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    promo_code_text: Mapped[str] = mapped_column(String(64), nullable=False)
    coupon_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    discount_percent: Mapped[Decimal | None] = mapped_column(Numeric(5, 2), nullable=True)
    commission_rate: Mapped[Decimal | None] = mapped_column(Numeric(5, 2), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=now_utc)
