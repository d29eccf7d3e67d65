"""Promo code attribution for completed checkouts.

Records which promotion code a checkout used and, when the code belongs to a
reseller, ties the paying user to that reseller. Attribution is best effort:
failures are logged and never block subscription reconciliation.
"""

import logging
from typing import Any

from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from menubill.config import Settings
from menubill.constants import RESELLER_SOURCE
from menubill.models.promo_code import ResellerPromoCode
from menubill.models.promo_usage import PromoCodeUsage
from menubill.models.reseller_client import ResellerClient
from menubill.models.user_profile import UserProfile
from menubill.services.customer_service import get_user_id_for_customer
from menubill.services.stripe_gateway import StripeGateway

logger = logging.getLogger(__name__)


def _ref_id(value: Any) -> str | None:
    """Stripe references are either an id string or an expanded object."""
    if value is None or isinstance(value, str):
        return value
    return value.get("id")


def _discount_lines(session: Any) -> list[Any]:
    total_details = session.get("total_details") or {}
    breakdown = total_details.get("breakdown") or {}
    return list(breakdown.get("discounts") or [])


async def record_promo_usage(db: AsyncSession, usage: PromoCodeUsage) -> bool:
    """Insert a ledger row; returns False when the checkout session was already recorded."""
    db.add(usage)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        return False
    return True


async def ensure_reseller_client(db: AsyncSession, reseller_id: str, client_id: str) -> None:
    result = await db.execute(
        select(ResellerClient.id).where(
            ResellerClient.reseller_id == reseller_id,
            ResellerClient.client_id == client_id,
        )
    )
    if result.scalar_one_or_none() is not None:
        return

    db.add(ResellerClient(reseller_id=reseller_id, client_id=client_id))
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()


async def backfill_reseller_attribution(db: AsyncSession, user_id: str, promo_code_id: str, reseller_id: str) -> bool:
    """Attach a reseller promo code to a profile that has no promo code yet.

    A profile already linked to a different reseller keeps that reseller.
    """
    result = await db.execute(
        update(UserProfile)
        .where(
            UserProfile.id == user_id,
            UserProfile.promo_code_id.is_(None),
            or_(UserProfile.reseller_id.is_(None), UserProfile.reseller_id == reseller_id),
        )
        .values(
            promo_code_id=promo_code_id,
            reseller_id=reseller_id,
            source=RESELLER_SOURCE,
        )
    )
    await db.commit()
    return bool(result.rowcount)


async def _process_discount(
    db: AsyncSession,
    gateway: StripeGateway,
    session_id: str,
    customer_id: str,
    user_id: str,
    currency: str,
    discount_line: Any,
) -> None:
    discount = discount_line.get("discount") or {}
    promotion_code_id = _ref_id(discount.get("promotion_code"))
    if not promotion_code_id:
        logger.info(f"Discount found but no promotion code ID for session {session_id}")
        return

    promotion_code = await gateway.retrieve_promotion_code(promotion_code_id)
    logger.info(f"Promotion code retrieved: {promotion_code.get('code')}")

    result = await db.execute(
        select(ResellerPromoCode).where(ResellerPromoCode.promo_code_stripe_id == promotion_code_id)
    )
    promo_code = result.scalar_one_or_none()
    # Read before the insert: a duplicate-key rollback expires loaded rows
    promo_code_pk = promo_code.id if promo_code else None
    reseller_id = promo_code.reseller_id if promo_code else None

    inserted = await record_promo_usage(
        db,
        PromoCodeUsage(
            checkout_session_id=session_id,
            customer_id=customer_id,
            user_id=user_id,
            promo_code_id=promo_code_pk,
            promo_code_stripe_id=promotion_code_id,
            discount_amount=discount_line.get("amount") or 0,
            currency=currency,
        ),
    )
    if inserted:
        logger.info(f"Promo code usage recorded for session {session_id}")
    else:
        logger.info(f"Promo code usage already recorded for session {session_id}")

    if promo_code_pk and reseller_id:
        if await backfill_reseller_attribution(db, user_id, promo_code_pk, reseller_id):
            logger.info(f"User {user_id} attributed to reseller {reseller_id}")
        current = await db.execute(select(UserProfile.reseller_id).where(UserProfile.id == user_id))
        if current.scalar_one_or_none() == reseller_id:
            await ensure_reseller_client(db, reseller_id, user_id)
        else:
            logger.info(f"User {user_id} belongs to another reseller, keeping existing attribution")


async def attribute_promo_usage(
    session_id: str,
    customer_id: str,
    db: AsyncSession,
    gateway: StripeGateway,
    settings: Settings,
) -> None:
    """Capture promo code usage from a completed checkout session. Never raises."""
    try:
        session = await gateway.retrieve_checkout_session(session_id)
        logger.info(f"Checkout session retrieved: {session_id}")

        discount_lines = _discount_lines(session)
        if not discount_lines:
            logger.info(f"No discounts applied to session: {session_id}")
            return

        user_id = await get_user_id_for_customer(db, customer_id)
        if not user_id:
            logger.error(f"No user found for customer {customer_id}, skipping promo attribution")
            return

        currency = session.get("currency") or settings.default_currency
    except Exception:
        logger.exception(f"Error capturing promo code usage for session {session_id}")
        return

    for discount_line in discount_lines:
        try:
            await _process_discount(db, gateway, session_id, customer_id, user_id, currency, discount_line)
        except Exception:
            await db.rollback()
            logger.exception(f"Error processing discount line for session {session_id}")
