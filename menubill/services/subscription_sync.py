"""Subscription reconciliation — re-derive local subscription state from Stripe.

Safe to run any number of times, in any order: the local row is upserted by
customer id from whatever Stripe reports now (last write wins), and the
commission side effects are idempotent.
"""

import logging
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import inspect, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from menubill.config import Settings
from menubill.constants import COMMISSIONABLE_STATUSES, TERMINAL_FAILURE_STATUSES
from menubill.models.promo_usage import PromoCodeUsage
from menubill.models.subscription import StripeSubscription, SubscriptionStatus
from menubill.services.commission_service import cancel_pending_commissions, create_commission_if_absent
from menubill.services.customer_service import get_user_id_for_customer
from menubill.services.stripe_gateway import StripeGateway
from menubill.utils import from_timestamp

logger = logging.getLogger(__name__)


class CustomerNotFound(Exception):
    """The Stripe customer has no local user; reconciliation cannot proceed."""


@dataclass
class SyncReport:
    synced: int = 0
    skipped: int = 0
    errors: int = 0
    error_details: list[dict[str, str]] = field(default_factory=list)

    def add_error(self, subscription_id: str, customer_id: str, error: str) -> None:
        self.errors += 1
        self.error_details.append(
            {"subscription_id": subscription_id, "customer_id": customer_id, "error": error}
        )


def _get_period_timestamps(stripe_sub) -> tuple[int | None, int | None]:
    """Extract current_period_start/end, handling Stripe API version differences.

    Newer API versions (2024-06-20+) moved these fields to items.data[0].
    """
    # Try top-level first (older API versions / webhook event data)
    try:
        return stripe_sub["current_period_start"], stripe_sub["current_period_end"]
    except (KeyError, TypeError):
        pass
    # Try items.data[0] (newer API versions)
    try:
        item = stripe_sub["items"]["data"][0]
        return item["current_period_start"], item["current_period_end"]
    except (KeyError, TypeError, IndexError):
        pass
    return None, None


def _get_price_id(stripe_sub) -> str | None:
    try:
        return stripe_sub["items"]["data"][0]["price"]["id"]
    except (KeyError, TypeError, IndexError):
        return None


def _subscription_values(stripe_sub) -> dict[str, Any]:
    """Column values for a StripeSubscription row from Stripe subscription data."""
    period_start, period_end = _get_period_timestamps(stripe_sub)
    values: dict[str, Any] = {
        "subscription_id": stripe_sub["id"],
        "price_id": _get_price_id(stripe_sub),
        "status": stripe_sub["status"],
        "current_period_start": from_timestamp(period_start),
        "current_period_end": from_timestamp(period_end),
        "cancel_at_period_end": bool(stripe_sub.get("cancel_at_period_end", False)),
    }
    # Only an expanded payment method carries card details; a bare id leaves the stored card as-is
    payment_method = stripe_sub.get("default_payment_method")
    if payment_method and not isinstance(payment_method, str):
        card = payment_method.get("card") or {}
        values["payment_method_brand"] = card.get("brand")
        values["payment_method_last4"] = card.get("last4")
    return values


async def latest_promo_usage(db: AsyncSession, customer_id: str) -> PromoCodeUsage | None:
    result = await db.execute(
        select(PromoCodeUsage)
        .where(PromoCodeUsage.customer_id == customer_id)
        .order_by(PromoCodeUsage.applied_at.desc(), PromoCodeUsage.id.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def upsert_subscription(
    db: AsyncSession, customer_id: str, user_id: str, values: dict[str, Any]
) -> StripeSubscription:
    """Insert or update the customer's subscription row (keyed by customer_id)."""

    async def _load() -> StripeSubscription | None:
        result = await db.execute(
            select(StripeSubscription).where(StripeSubscription.customer_id == customer_id)
        )
        return result.scalar_one_or_none()

    sub = await _load()
    if sub is None:
        sub = StripeSubscription(customer_id=customer_id, user_id=user_id, **values)
        db.add(sub)
        try:
            await db.commit()
            return sub
        except IntegrityError:
            # Another delivery created the row first; fall through and update it
            await db.rollback()
            sub = await _load()
            if sub is None:
                raise

    sub.user_id = user_id
    for key, value in values.items():
        setattr(sub, key, value)
    await db.commit()
    return sub


async def apply_subscription(
    db: AsyncSession,
    settings: Settings,
    customer_id: str,
    user_id: str,
    stripe_sub,
) -> StripeSubscription:
    """Store one Stripe subscription for a customer and settle its commission."""
    promo_usage = await latest_promo_usage(db, customer_id)
    promo_code_id = promo_usage.promo_code_id if promo_usage else None
    discount_amount = promo_usage.discount_amount if promo_usage else None

    values = _subscription_values(stripe_sub)
    values["promo_code_id"] = promo_code_id
    values["discount_amount"] = discount_amount or None

    sub = await upsert_subscription(db, customer_id, user_id, values)
    logger.info(f"Successfully synced subscription for customer: {customer_id}")

    if sub.status in TERMINAL_FAILURE_STATUSES:
        await cancel_pending_commissions(db, sub.subscription_id)
    elif sub.status in COMMISSIONABLE_STATUSES:
        await create_commission_if_absent(
            db, settings, sub, customer_id, promo_code_id, discount_amount or 0
        )

    if inspect(sub).expired_attributes:
        # Rolled back by a duplicate commission insert; callers read the row afterwards
        await db.refresh(sub)
    return sub


async def sync_customer_from_stripe(
    customer_id: str,
    db: AsyncSession,
    gateway: StripeGateway,
    settings: Settings,
) -> StripeSubscription:
    """Reconcile one customer's subscription from Stripe.

    Raises:
        CustomerNotFound: no local user for this customer.
        stripe.StripeError / SQLAlchemyError: propagated to the caller.
    """
    user_id = await get_user_id_for_customer(db, customer_id)
    if not user_id:
        raise CustomerNotFound(f"No user_id found for customer: {customer_id}")

    # Assumes a customer has a single subscription; Stripe returns the newest first
    subscriptions = await gateway.latest_subscriptions(customer_id)

    if not subscriptions:
        logger.info(f"No subscriptions found for customer: {customer_id}")
        return await upsert_subscription(
            db, customer_id, user_id, {"status": SubscriptionStatus.NOT_STARTED}
        )

    return await apply_subscription(db, settings, customer_id, user_id, subscriptions[0])


async def sync_all_subscriptions(
    db: AsyncSession,
    gateway: StripeGateway,
    settings: Settings,
) -> SyncReport:
    """Walk every Stripe subscription and reconcile its customer.

    Stripe lists newest first, so only the first subscription seen per
    customer is applied; older ones would overwrite newer state.
    """
    report = SyncReport()
    seen_customers: set[str] = set()
    starting_after: str | None = None

    while True:
        page, has_more = await gateway.list_subscriptions_page(starting_after)
        logger.info(f"Fetched {len(page)} subscriptions from Stripe")

        for stripe_sub in page:
            subscription_id = stripe_sub["id"]
            customer_id = stripe_sub.get("customer")
            if customer_id is not None and not isinstance(customer_id, str):
                customer_id = customer_id.get("id")

            if not customer_id:
                logger.error(f"No customer ID for subscription {subscription_id}")
                report.add_error(subscription_id, "N/A", "No customer ID found")
                continue

            if customer_id in seen_customers:
                report.skipped += 1
                continue
            seen_customers.add(customer_id)

            try:
                user_id = await get_user_id_for_customer(db, customer_id)
                if not user_id:
                    logger.warning(
                        f"No user found for customer {customer_id}, skipping subscription {subscription_id}"
                    )
                    report.add_error(subscription_id, customer_id, "No user found in stripe_customers table")
                    continue

                await apply_subscription(db, settings, customer_id, user_id, stripe_sub)
                report.synced += 1
            except Exception as e:
                await db.rollback()
                logger.exception(f"Error processing subscription {subscription_id}")
                report.add_error(subscription_id, customer_id, str(e) or type(e).__name__)

        if not has_more or not page:
            break
        starting_after = page[-1]["id"]

    logger.info(f"Sync complete. Synced: {report.synced}, Errors: {report.errors}")
    return report
