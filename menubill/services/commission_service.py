"""Reseller commissions — created once per subscription, cancelled when it fails."""

import logging
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from menubill.config import Settings
from menubill.models.commission import CommissionStatus, ResellerCommission
from menubill.models.promo_code import ResellerPromoCode
from menubill.models.subscription import StripeSubscription
from menubill.services.customer_service import get_user_id_for_customer, get_user_profile

logger = logging.getLogger(__name__)


def calculate_commission_amount(base_price: int, discount_amount: int, commission_rate: Decimal) -> int:
    """Commission in minor units: rate% of the discounted price, half-up to the cent.

    Rates above 100 or discounts above the base price are not rejected here.
    """
    final_amount = Decimal(base_price - discount_amount)
    amount = final_amount * Decimal(commission_rate) / Decimal(100)
    return int(amount.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


async def resolve_commission_rate(db: AsyncSession, promo_code_id: str | None, default_rate: Decimal) -> Decimal:
    """The promo code's own rate when it has one, otherwise the platform default."""
    if not promo_code_id:
        return default_rate

    result = await db.execute(
        select(ResellerPromoCode.commission_rate).where(ResellerPromoCode.id == promo_code_id)
    )
    rate = result.scalar_one_or_none()
    return Decimal(rate) if rate else default_rate


async def cancel_pending_commissions(db: AsyncSession, subscription_id: str) -> int:
    """Move every pending commission of a subscription to cancelled. Paid rows are left alone."""
    result = await db.execute(
        update(ResellerCommission)
        .where(
            ResellerCommission.subscription_id == subscription_id,
            ResellerCommission.status == CommissionStatus.PENDING,
        )
        .values(status=CommissionStatus.CANCELLED)
    )
    await db.commit()

    if result.rowcount:
        logger.info(f"Cancelled {result.rowcount} pending commission(s) for subscription {subscription_id}")
    return result.rowcount


async def create_commission_if_absent(
    db: AsyncSession,
    settings: Settings,
    subscription: StripeSubscription,
    customer_id: str,
    promo_code_id: str | None = None,
    discount_amount: int = 0,
) -> ResellerCommission | None:
    """Create the pending commission for a reseller's client subscription (idempotent).

    Returns the new row, or None when nothing was owed or a commission
    already exists for this subscription.
    """
    # Read before any write: a duplicate-key rollback expires loaded rows
    subscription_id = subscription.subscription_id

    user_id = await get_user_id_for_customer(db, customer_id)
    if not user_id:
        logger.error(f"Customer not found for {customer_id}, skipping commission")
        return None

    profile = await get_user_profile(db, user_id)
    if not profile or not profile.reseller_id:
        logger.info(f"User {user_id} has no reseller - no commission needed")
        return None

    existing = await db.execute(
        select(ResellerCommission.id).where(ResellerCommission.subscription_id == subscription_id)
    )
    if existing.scalar_one_or_none() is not None:
        logger.info(f"Commission already exists for subscription {subscription_id}")
        return None

    commission_rate = await resolve_commission_rate(db, promo_code_id, settings.default_commission_rate)
    commission_amount = calculate_commission_amount(
        settings.subscription_base_price, discount_amount, commission_rate
    )

    commission = ResellerCommission(
        reseller_id=profile.reseller_id,
        user_id=user_id,
        subscription_id=subscription_id,
        promo_code_id=promo_code_id,
        commission_amount=commission_amount,
        commission_rate=commission_rate,
        currency=settings.commission_currency,
        status=CommissionStatus.PENDING,
        period_start=subscription.current_period_start,
        period_end=subscription.current_period_end,
    )
    db.add(commission)
    try:
        await db.commit()
    except IntegrityError:
        # A concurrent delivery inserted it between the check and the insert
        await db.rollback()
        logger.info(f"Commission already exists for subscription {subscription_id}")
        return None

    logger.info(
        f"Commission created for subscription {subscription_id}: {commission_amount} cents "
        f"({commission_rate}% of {settings.subscription_base_price - discount_amount} cents)"
    )
    return commission
