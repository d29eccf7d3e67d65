"""Operator CLI for manual billing reconciliation, using Typer."""

import asyncio
import logging
from pathlib import Path
from typing import Annotated, Optional

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

from menubill.utils import setup_logging

# Load .env from project directory only
_env_path = Path(__file__).parent.parent / ".env"
load_dotenv(_env_path, override=False)

# CLI styles
STYLE_HEADER = "bold blue"
STYLE_SUCCESS = "bold green"
STYLE_WARNING = "bold yellow"
STYLE_ERROR = "bold red"

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="menubill",
    help="Menu Billing - reconcile Stripe subscriptions and reseller commissions by hand.",
    add_completion=False,
    no_args_is_help=True,
)
console = Console()


def _configure_logging(verbose: bool) -> None:
    """Configure logging based on verbose flag."""
    setup_logging(verbose)


async def _with_session(func):
    """Run ``func(db, gateway, settings)`` against the configured database and Stripe account."""
    from menubill.config import get_settings
    from menubill.db.session import async_session_factory, engine
    from menubill.services.stripe_gateway import StripeGateway, init_stripe

    settings = get_settings()
    init_stripe(settings)
    try:
        async with async_session_factory() as db:
            return await func(db, StripeGateway(), settings)
    finally:
        await engine.dispose()


async def _enqueue_customer_sync(customer_id: str) -> bool:
    from arq import create_pool
    from arq.connections import RedisSettings

    from menubill.config import get_settings
    from menubill.constants import JOB_SYNC_CUSTOMER

    redis = await create_pool(RedisSettings.from_dsn(get_settings().redis_url))
    try:
        job = await redis.enqueue_job(JOB_SYNC_CUSTOMER, customer_id)
        return job is not None
    finally:
        await redis.aclose()


@app.command("sync-customer")
def sync_customer(
    customer_id: Annotated[str, typer.Argument(help="Stripe customer id (cus_...)")],
    enqueue: Annotated[bool, typer.Option("--enqueue", help="Hand off to the worker instead of running here")] = False,
    verbose: Annotated[bool, typer.Option(help="Verbose output")] = False,
):
    """
    Reconcile one customer's subscription from Stripe.

    Upserts the local subscription row and creates or cancels the reseller
    commission exactly as a webhook delivery would.
    """
    from menubill.services.subscription_sync import CustomerNotFound, sync_customer_from_stripe

    _configure_logging(verbose)

    if enqueue:
        if asyncio.run(_enqueue_customer_sync(customer_id)):
            console.print(f"[{STYLE_SUCCESS}]Queued sync for {customer_id}[/{STYLE_SUCCESS}]")
        else:
            console.print(f"[{STYLE_WARNING}]A sync for {customer_id} is already queued[/{STYLE_WARNING}]")
        return

    async def _run(db, gateway, settings):
        return await sync_customer_from_stripe(customer_id, db, gateway, settings)

    try:
        sub = asyncio.run(_with_session(_run))
    except CustomerNotFound as e:
        console.print(f"[{STYLE_ERROR}]{e}[/{STYLE_ERROR}]")
        raise typer.Exit(1)

    table = Table(title=f"Subscription for {customer_id}", show_header=False)
    table.add_row("subscription_id", sub.subscription_id or "-")
    table.add_row("status", sub.status)
    table.add_row("price_id", sub.price_id or "-")
    table.add_row("period", f"{sub.current_period_start} → {sub.current_period_end}")
    table.add_row("cancel_at_period_end", str(sub.cancel_at_period_end))
    table.add_row("promo_code_id", sub.promo_code_id or "-")
    table.add_row("discount_amount", str(sub.discount_amount or 0))
    console.print(table)


@app.command("sync-all")
def sync_all(
    verbose: Annotated[bool, typer.Option(help="Verbose output")] = False,
):
    """
    Reconcile every subscription in the Stripe account.

    Use after an outage or a webhook misconfiguration; each customer is
    processed independently and failures are listed at the end.
    """
    from menubill.services.subscription_sync import sync_all_subscriptions

    _configure_logging(verbose)
    console.print(f"[{STYLE_HEADER}]Syncing all Stripe subscriptions...[/{STYLE_HEADER}]")

    report = asyncio.run(_with_session(sync_all_subscriptions))

    console.print(f"[{STYLE_SUCCESS}]Synced: {report.synced}[/{STYLE_SUCCESS}]  Skipped (older): {report.skipped}")
    if report.errors:
        table = Table(title=f"{report.errors} error(s)")
        table.add_column("Subscription")
        table.add_column("Customer")
        table.add_column("Error", style="red")
        for detail in report.error_details:
            table.add_row(detail["subscription_id"], detail["customer_id"], detail["error"])
        console.print(table)
        raise typer.Exit(1)


@app.command("attribute-session")
def attribute_session(
    session_id: Annotated[str, typer.Argument(help="Stripe checkout session id (cs_...)")],
    customer_id: Annotated[str, typer.Argument(help="Stripe customer id (cus_...)")],
    verbose: Annotated[bool, typer.Option(help="Verbose output")] = False,
):
    """
    Replay promo code attribution for a completed checkout session.

    Safe to repeat: a session already in the usage ledger is not recorded twice.
    """
    from menubill.services.promo_attribution import attribute_promo_usage

    _configure_logging(verbose)

    async def _run(db, gateway, settings):
        await attribute_promo_usage(session_id, customer_id, db, gateway, settings)

    asyncio.run(_with_session(_run))
    console.print(f"[{STYLE_SUCCESS}]Attribution finished for {session_id}[/{STYLE_SUCCESS}] (see log for details)")


@app.command("commissions")
def list_commissions(
    reseller_id: Annotated[Optional[str], typer.Option(help="Only this reseller")] = None,
    status: Annotated[Optional[str], typer.Option(help="pending, paid or cancelled")] = None,
    limit: Annotated[int, typer.Option(help="Maximum rows")] = 50,
):
    """
    List reseller commissions, newest first.
    """
    from sqlalchemy import select

    from menubill.models.commission import ResellerCommission

    async def _run(db, gateway, settings):
        query = select(ResellerCommission).order_by(ResellerCommission.created_at.desc()).limit(limit)
        if reseller_id:
            query = query.where(ResellerCommission.reseller_id == reseller_id)
        if status:
            query = query.where(ResellerCommission.status == status)
        result = await db.execute(query)
        return result.scalars().all()

    rows = asyncio.run(_with_session(_run))
    if not rows:
        console.print(f"[{STYLE_WARNING}]No commissions found[/{STYLE_WARNING}]")
        return

    table = Table(title="Reseller commissions")
    table.add_column("Subscription")
    table.add_column("Reseller")
    table.add_column("Client")
    table.add_column("Rate", justify="right")
    table.add_column("Amount", justify="right")
    table.add_column("Status")
    for row in rows:
        table.add_row(
            row.subscription_id,
            row.reseller_id,
            row.user_id,
            f"{row.commission_rate}%",
            f"{row.commission_amount / 100:.2f} {row.currency.upper()}",
            row.status,
        )
    console.print(table)


if __name__ == "__main__":
    app()
