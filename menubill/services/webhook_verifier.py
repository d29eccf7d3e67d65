"""Stripe webhook authenticity check.

Runs in the request path before anything is acknowledged. The signature covers
the raw request bytes, so the body must never be parsed and re-serialized
before it gets here.
"""

import logging

import stripe
from pydantic import ValidationError

from menubill.schemas.events import StripeEventEnvelope

logger = logging.getLogger(__name__)


class WebhookVerificationError(Exception):
    """Base class for deliveries rejected before any processing."""


class MissingSignature(WebhookVerificationError):
    pass


class InvalidSignature(WebhookVerificationError):
    pass


class MalformedPayload(WebhookVerificationError):
    pass


class WebhookNotConfigured(Exception):
    """No signing secret configured; nothing can be verified."""


def verify_event(
    raw_body: bytes,
    signature_header: str | None,
    secret: str,
    tolerance: int = stripe.Webhook.DEFAULT_TOLERANCE,
) -> StripeEventEnvelope:
    """Verify a Stripe-Signature header against the raw body and parse the event.

    Raises:
        MissingSignature: header absent or empty.
        InvalidSignature: HMAC mismatch, stale timestamp, or undecodable body.
        MalformedPayload: signature valid but the body is not a Stripe event envelope.
        WebhookNotConfigured: no signing secret configured.
    """
    if not secret:
        raise WebhookNotConfigured("Stripe webhook secret is not configured")

    if not signature_header:
        raise MissingSignature("No signature found")

    try:
        payload = raw_body.decode("utf-8")
    except UnicodeDecodeError as e:
        raise InvalidSignature("Request body is not valid UTF-8") from e

    try:
        stripe.WebhookSignature.verify_header(payload, signature_header, secret, tolerance)
    except stripe.SignatureVerificationError as e:
        raise InvalidSignature(str(e)) from e

    try:
        return StripeEventEnvelope.model_validate_json(raw_body)
    except ValidationError as e:
        logger.warning(f"Verified webhook body is not a valid event envelope: {e.error_count()} error(s)")
        raise MalformedPayload("Payload is not a valid Stripe event") from e
