"""ARQ worker — deferred billing reconciliation."""

import logging

from arq import cron
from arq.connections import RedisSettings

from menubill.config import get_settings
from menubill.constants import ARQ_FULL_SYNC_TIMEOUT, ARQ_JOB_TIMEOUT, ARQ_MAX_JOBS

logger = logging.getLogger(__name__)


async def startup(ctx: dict) -> None:
    """Build the shared dependencies every job receives through ctx."""
    from menubill.db.session import async_session_factory
    from menubill.services.stripe_gateway import StripeGateway, init_stripe
    from menubill.utils import setup_logging

    settings = get_settings()
    setup_logging(settings.debug)
    init_stripe(settings)

    ctx["settings"] = settings
    ctx["session_factory"] = async_session_factory
    ctx["gateway"] = StripeGateway()


async def shutdown(ctx: dict) -> None:
    from menubill.db.session import engine

    await engine.dispose()


async def process_billing_event_job(ctx: dict, event_data: dict) -> None:
    """ARQ job: attribute promo usage and reconcile the customer for one Stripe event."""
    from menubill.schemas.events import billing_event_adapter
    from menubill.services.billing_dispatcher import run_billing_event

    event = billing_event_adapter.validate_python(event_data)
    await run_billing_event(
        event, ctx["session_factory"], ctx["gateway"], ctx["settings"], reraise=True
    )


async def sync_customer_job(ctx: dict, customer_id: str) -> str:
    """ARQ job: reconcile a single customer on demand."""
    from menubill.services.subscription_sync import sync_customer_from_stripe

    async with ctx["session_factory"]() as db:
        sub = await sync_customer_from_stripe(customer_id, db, ctx["gateway"], ctx["settings"])
        logger.info(f"Customer {customer_id} reconciled: {sub.status}")
        return sub.status


async def full_sync_job(ctx: dict) -> dict:
    """Cron job: reconcile every Stripe subscription, catching missed webhooks."""
    from menubill.services.subscription_sync import sync_all_subscriptions

    async with ctx["session_factory"]() as db:
        report = await sync_all_subscriptions(db, ctx["gateway"], ctx["settings"])
    return {"synced": report.synced, "errors": report.errors, "error_details": report.error_details}


class WorkerSettings:
    """ARQ worker configuration."""

    functions = [process_billing_event_job, sync_customer_job]
    cron_jobs = [
        cron(full_sync_job, hour=get_settings().full_sync_hour, minute=0, timeout=ARQ_FULL_SYNC_TIMEOUT)
    ]

    on_startup = startup
    on_shutdown = shutdown

    redis_settings = RedisSettings.from_dsn(get_settings().redis_url)

    max_jobs = ARQ_MAX_JOBS
    job_timeout = ARQ_JOB_TIMEOUT
