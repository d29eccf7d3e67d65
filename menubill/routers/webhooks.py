"""Webhook routes — Stripe."""

import logging

from fastapi import APIRouter, BackgroundTasks, Header, Request, Response
from fastapi.responses import JSONResponse, PlainTextResponse

from menubill.constants import STRIPE_SIGNATURE_HEADER
from menubill.schemas.events import IgnoredEvent
from menubill.services.billing_dispatcher import classify_event
from menubill.services.webhook_verifier import MissingSignature, WebhookVerificationError, verify_event

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/webhooks", tags=["webhooks"])


@router.post("/stripe")
async def stripe_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    stripe_signature: str | None = Header(default=None, alias=STRIPE_SIGNATURE_HEADER),
):
    settings = request.app.state.settings
    payload = await request.body()

    try:
        try:
            envelope = verify_event(
                payload,
                stripe_signature,
                settings.stripe_webhook_secret,
                settings.stripe_webhook_tolerance,
            )
        except MissingSignature as e:
            return PlainTextResponse(str(e), status_code=400)
        except WebhookVerificationError as e:
            logger.error(f"Webhook signature verification failed: {e}")
            return PlainTextResponse(f"Webhook signature verification failed: {e}", status_code=400)

        event = classify_event(envelope)
        logger.info(f"Stripe webhook: {envelope.type}")

        if isinstance(event, IgnoredEvent):
            logger.debug(f"Ignoring {event.event_type}: {event.reason}")
        else:
            await request.app.state.billing_queue.submit(event, background_tasks)
    except Exception as e:
        logger.exception("Error processing webhook")
        return JSONResponse({"error": str(e)}, status_code=500)

    return {"received": True}


@router.options("/stripe")
async def stripe_webhook_options():
    return Response(status_code=204)


@router.api_route("/stripe", methods=["GET", "HEAD", "PUT", "PATCH", "DELETE"], include_in_schema=False)
async def stripe_webhook_method_not_allowed():
    return PlainTextResponse("Method not allowed", status_code=400)
