"""Builders for Stripe payloads, seeded rows and a fake Stripe gateway."""

import hashlib
import hmac
import json
import time
from decimal import Decimal

from menubill.models import ResellerPromoCode, StripeCustomer, UserProfile

WEBHOOK_SECRET = "whsec_test_secret"

PERIOD_START = 1_760_000_000
PERIOD_END = 1_791_536_000


def sign(payload: bytes, secret: str = WEBHOOK_SECRET, timestamp: int | None = None) -> str:
    """Build a Stripe-Signature header for a raw body."""
    ts = int(time.time()) if timestamp is None else timestamp
    signature = hmac.new(secret.encode(), f"{ts}.".encode() + payload, hashlib.sha256).hexdigest()
    return f"t={ts},v1={signature}"


def make_event(event_type: str, obj: dict, event_id: str = "evt_1") -> bytes:
    return json.dumps({"id": event_id, "object": "event", "type": event_type, "data": {"object": obj}}).encode()


def make_subscription(
    subscription_id: str = "sub_1",
    customer: str | dict = "cus_1",
    status: str = "active",
    price_id: str = "price_menu_yearly",
    card: tuple[str, str] | None = ("visa", "4242"),
    cancel_at_period_end: bool = False,
) -> dict:
    return {
        "id": subscription_id,
        "object": "subscription",
        "customer": customer,
        "status": status,
        "current_period_start": PERIOD_START,
        "current_period_end": PERIOD_END,
        "cancel_at_period_end": cancel_at_period_end,
        "items": {"data": [{"price": {"id": price_id}}]},
        "default_payment_method": (
            {"id": "pm_1", "card": {"brand": card[0], "last4": card[1]}} if card else None
        ),
    }


def make_checkout_session(
    session_id: str = "cs_1",
    discounts: list[tuple[int, str | None]] | None = None,
    currency: str = "eur",
) -> dict:
    """Checkout session with total_details.breakdown expanded; discounts are (amount, promotion_code)."""
    lines = [
        {"amount": amount, "discount": {"id": f"di_{i}", "promotion_code": promo}}
        for i, (amount, promo) in enumerate(discounts or [])
    ]
    return {
        "id": session_id,
        "object": "checkout.session",
        "currency": currency,
        "total_details": {"breakdown": {"discounts": lines}},
    }


class FakeGateway:
    """In-memory stand-in for StripeGateway."""

    def __init__(self):
        self.sessions: dict[str, dict] = {}
        self.subscriptions: dict[str, list[dict]] = {}
        self.promotion_codes: dict[str, dict] = {}
        self.failing_promotion_codes: set[str] = set()
        self.all_subscriptions: list[dict] = []
        self.page_size = 2
        self.calls: list[tuple[str, str | None]] = []

    async def retrieve_checkout_session(self, session_id: str) -> dict:
        self.calls.append(("retrieve_checkout_session", session_id))
        return self.sessions[session_id]

    async def latest_subscriptions(self, customer_id: str) -> list[dict]:
        self.calls.append(("latest_subscriptions", customer_id))
        return self.subscriptions.get(customer_id, [])[:1]

    async def retrieve_promotion_code(self, promotion_code_id: str) -> dict:
        self.calls.append(("retrieve_promotion_code", promotion_code_id))
        if promotion_code_id in self.failing_promotion_codes:
            raise RuntimeError("Stripe unavailable")
        return self.promotion_codes.get(promotion_code_id, {"id": promotion_code_id, "code": "MENU20"})

    async def list_subscriptions_page(self, starting_after: str | None = None) -> tuple[list[dict], bool]:
        self.calls.append(("list_subscriptions_page", starting_after))
        start = 0
        if starting_after:
            ids = [s["id"] for s in self.all_subscriptions]
            start = ids.index(starting_after) + 1
        page = self.all_subscriptions[start:start + self.page_size]
        return page, start + self.page_size < len(self.all_subscriptions)


async def seed_reseller(db, reseller_id: str = "reseller_1") -> UserProfile:
    reseller = UserProfile(id=reseller_id, full_name="Reseller One", role="reseller")
    db.add(reseller)
    await db.commit()
    return reseller


async def seed_client(
    db,
    user_id: str = "user_1",
    customer_id: str | None = "cus_1",
    reseller_id: str | None = None,
) -> UserProfile:
    profile = UserProfile(id=user_id, full_name="Bistro Client", role="client", reseller_id=reseller_id)
    db.add(profile)
    if customer_id:
        db.add(StripeCustomer(customer_id=customer_id, user_id=user_id))
    await db.commit()
    return profile


async def seed_promo_code(
    db,
    promo_id: str = "promo_1",
    reseller_id: str = "reseller_1",
    stripe_id: str = "promo_stripe_1",
    commission_rate: Decimal | None = Decimal("30.00"),
) -> ResellerPromoCode:
    promo = ResellerPromoCode(
        id=promo_id,
        reseller_id=reseller_id,
        promo_code_stripe_id=stripe_id,
        promo_code_text="MENU20",
        commission_rate=commission_rate,
    )
    db.add(promo)
    await db.commit()
    return promo
