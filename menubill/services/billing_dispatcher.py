"""Route verified Stripe events to promo attribution and subscription reconciliation."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from menubill.config import Settings
from menubill.constants import EVENT_CHECKOUT_COMPLETED, EVENT_PAYMENT_INTENT_SUCCEEDED
from menubill.schemas.events import (
    BillingEvent,
    CheckoutCompleted,
    CustomerActivity,
    IgnoredEvent,
    StripeEventEnvelope,
)
from menubill.services.promo_attribution import attribute_promo_usage
from menubill.services.stripe_gateway import StripeGateway
from menubill.services.subscription_sync import sync_customer_from_stripe

logger = logging.getLogger(__name__)


def classify_event(envelope: StripeEventEnvelope) -> BillingEvent:
    """Reduce a Stripe event to the billing work it implies."""
    payload = envelope.payload
    base = {"event_id": envelope.id, "event_type": envelope.type}

    if "customer" not in payload:
        return IgnoredEvent(**base, reason="no customer reference")

    # One-time payments are handled through checkout.session.completed only
    if envelope.type == EVENT_PAYMENT_INTENT_SUCCEEDED and payload.get("invoice") is None:
        return IgnoredEvent(**base, reason="one-time payment intent")

    customer_id = payload.get("customer")
    if not customer_id or not isinstance(customer_id, str):
        logger.error(f"No customer received on event {envelope.id} ({envelope.type})")
        return IgnoredEvent(**base, reason="customer reference is not an id")

    if envelope.type == EVENT_CHECKOUT_COMPLETED:
        if not payload.get("id"):
            return IgnoredEvent(**base, reason="checkout session without id")
        return CheckoutCompleted(
            **base,
            customer_id=customer_id,
            session_id=payload.get("id"),
            mode=payload.get("mode"),
        )

    return CustomerActivity(**base, customer_id=customer_id)


async def dispatch_event(
    event: BillingEvent,
    db: AsyncSession,
    gateway: StripeGateway,
    settings: Settings,
) -> None:
    """Run the billing work for one event. Reconciliation errors propagate."""
    if isinstance(event, IgnoredEvent):
        logger.debug(f"Ignoring {event.event_type}: {event.reason}")
        return

    if isinstance(event, CheckoutCompleted):
        if not event.is_subscription:
            logger.info(f"Processing one-time payment checkout session {event.session_id}, nothing to sync")
            return
        logger.info("Processing subscription checkout session")
        await attribute_promo_usage(event.session_id, event.customer_id, db, gateway, settings)

    logger.info(f"Starting subscription sync for customer: {event.customer_id} ({event.event_type})")
    await sync_customer_from_stripe(event.customer_id, db, gateway, settings)


async def run_billing_event(
    event: BillingEvent,
    session_factory: async_sessionmaker[AsyncSession],
    gateway: StripeGateway,
    settings: Settings,
    reraise: bool = False,
) -> bool:
    """Deferred entry point: dispatch in a fresh session and log failures with context.

    Returns True on success. With ``reraise`` the exception is re-raised after
    logging so a job runner can record the failure.
    """
    customer_id = getattr(event, "customer_id", None)
    try:
        async with session_factory() as db:
            await dispatch_event(event, db, gateway, settings)
        return True
    except Exception:
        logger.exception(
            f"Billing event failed: id={event.event_id} type={event.event_type} customer={customer_id}"
        )
        if reraise:
            raise
        return False
