"""Stripe API access — the three reads the reconciliation pipeline needs, plus a full listing."""

import asyncio
from typing import Any

import stripe

from menubill.config import Settings
from menubill.constants import (
    CHECKOUT_SESSION_EXPAND,
    CUSTOMER_SUBSCRIPTION_EXPAND,
    FULL_SYNC_PAGE_SIZE,
    FULL_SYNC_SUBSCRIPTION_EXPAND,
)


def init_stripe(settings: Settings) -> None:
    """Set the Stripe API key from settings. Call once at startup."""
    stripe.api_key = settings.stripe_secret_key


class StripeGateway:
    """Async facade over the blocking Stripe SDK.

    Every call runs in a worker thread and may raise ``stripe.StripeError``;
    callers decide whether that is fatal.
    """

    async def retrieve_checkout_session(self, session_id: str) -> Any:
        return await asyncio.to_thread(
            stripe.checkout.Session.retrieve, session_id, expand=CHECKOUT_SESSION_EXPAND
        )

    async def latest_subscriptions(self, customer_id: str) -> list[Any]:
        """Most recent subscription for a customer, any status, with payment method expanded."""
        result = await asyncio.to_thread(
            stripe.Subscription.list,
            customer=customer_id,
            limit=1,
            status="all",
            expand=CUSTOMER_SUBSCRIPTION_EXPAND,
        )
        return list(result["data"])

    async def retrieve_promotion_code(self, promotion_code_id: str) -> Any:
        return await asyncio.to_thread(stripe.PromotionCode.retrieve, promotion_code_id)

    async def list_subscriptions_page(self, starting_after: str | None = None) -> tuple[list[Any], bool]:
        """One page of all subscriptions (any status), customer and payment method expanded."""
        params: dict[str, Any] = {
            "limit": FULL_SYNC_PAGE_SIZE,
            "status": "all",
            "expand": FULL_SYNC_SUBSCRIPTION_EXPAND,
        }
        if starting_after:
            params["starting_after"] = starting_after
        page = await asyncio.to_thread(stripe.Subscription.list, **params)
        return list(page["data"]), bool(page["has_more"])
