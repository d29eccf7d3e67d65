"""Hand verified billing events to deferred processing.

The webhook acknowledges Stripe as soon as the event is queued; reconciliation
runs afterwards, either on the ARQ worker or as a post-response background task.
"""

import logging
from typing import Protocol

from arq import ArqRedis
from fastapi import BackgroundTasks
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from menubill.config import Settings
from menubill.constants import EVENT_JOB_ID_PREFIX, JOB_PROCESS_BILLING_EVENT
from menubill.schemas.events import BillingEvent
from menubill.services.billing_dispatcher import run_billing_event
from menubill.services.stripe_gateway import StripeGateway

logger = logging.getLogger(__name__)


class BillingQueue(Protocol):
    async def submit(self, event: BillingEvent, background_tasks: BackgroundTasks) -> None: ...


class ArqBillingQueue:
    """Enqueue billing events on Redis for the ARQ worker."""

    def __init__(self, redis: ArqRedis):
        self.redis = redis

    async def submit(self, event: BillingEvent, background_tasks: BackgroundTasks) -> None:
        # A redelivered event that is still queued maps to the same job
        job_id = f"{EVENT_JOB_ID_PREFIX}:{event.event_id}" if event.event_id else None
        job = await self.redis.enqueue_job(
            JOB_PROCESS_BILLING_EVENT, event.model_dump(mode="json"), _job_id=job_id
        )
        if job is None:
            logger.info(f"Event {event.event_id} already queued, skipping")
        else:
            logger.info(f"Enqueued {event.event_type} for customer {event.customer_id}")


class InlineBillingQueue:
    """Run billing events in-process after the response is sent (dev / single instance)."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        gateway: StripeGateway,
        settings: Settings,
    ):
        self.session_factory = session_factory
        self.gateway = gateway
        self.settings = settings

    async def submit(self, event: BillingEvent, background_tasks: BackgroundTasks) -> None:
        background_tasks.add_task(
            run_billing_event, event, self.session_factory, self.gateway, self.settings
        )
