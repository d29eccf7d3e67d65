"""ResellerClient model — link between a reseller and a client they brought in."""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from menubill.utils import now_utc
from .base import Base


class ResellerClient(Base):
    __tablename__ = "reseller_clients"
    __table_args__ = (UniqueConstraint("reseller_id", "client_id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    reseller_id: Mapped[str] = mapped_column(ForeignKey("user_profiles.id"), nullable=False, index=True)
    client_id: Mapped[str] = mapped_column(ForeignKey("user_profiles.id"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=now_utc)
