"""Commission engine tests: math, rate resolution, idempotency, cancellation."""

from decimal import Decimal

import pytest
from sqlalchemy import func, select

from factories import seed_client, seed_promo_code, seed_reseller
from menubill.models import CommissionStatus, ResellerCommission, StripeSubscription
from menubill.services.commission_service import (
    calculate_commission_amount,
    cancel_pending_commissions,
    create_commission_if_absent,
)
from menubill.utils import now_utc


def _subscription(subscription_id: str = "sub_1") -> StripeSubscription:
    now = now_utc()
    return StripeSubscription(
        customer_id="cus_1",
        user_id="user_1",
        subscription_id=subscription_id,
        status="active",
        current_period_start=now,
        current_period_end=now,
    )


def _add_commission(db, subscription_id: str, status: str) -> None:
    db.add(
        ResellerCommission(
            reseller_id="reseller_1",
            user_id="user_1",
            subscription_id=subscription_id,
            commission_amount=19950,
            commission_rate=Decimal("50.00"),
            currency="eur",
            status=status,
        )
    )


async def _commissions(factory) -> list[ResellerCommission]:
    async with factory() as db:
        result = await db.execute(select(ResellerCommission))
        return list(result.scalars().all())


def test_commission_math_example():
    assert calculate_commission_amount(39900, 4000, Decimal("50")) == 17950


@pytest.mark.parametrize(
    "base_price, discount, rate, expected",
    [
        (39900, 0, Decimal("50"), 19950),
        (39900, 4001, Decimal("50"), 17950),  # 17949.5 rounds half up
        (101, 0, Decimal("50"), 51),
        (39900, 0, Decimal("33.33"), 13299),
        (39900, 39900, Decimal("50"), 0),
    ],
)
def test_commission_rounding(base_price, discount, rate, expected):
    assert calculate_commission_amount(base_price, discount, rate) == expected


def test_creates_pending_commission_with_default_rate(run_db, settings):
    async def _run(factory):
        async with factory() as db:
            await seed_reseller(db)
            await seed_client(db, reseller_id="reseller_1")
            commission = await create_commission_if_absent(db, settings, _subscription(), "cus_1")
            assert commission is not None
        return await _commissions(factory)

    rows = run_db(_run)

    assert len(rows) == 1
    row = rows[0]
    assert row.reseller_id == "reseller_1"
    assert row.user_id == "user_1"
    assert row.subscription_id == "sub_1"
    assert row.status == CommissionStatus.PENDING
    assert row.commission_rate == Decimal("50")
    assert row.commission_amount == 19950
    assert row.currency == "eur"
    assert row.period_start is not None


def test_rate_and_discount_from_promo_code(run_db, settings):
    async def _run(factory):
        async with factory() as db:
            await seed_reseller(db)
            await seed_promo_code(db, commission_rate=Decimal("30.00"))
            await seed_client(db, reseller_id="reseller_1")
            await create_commission_if_absent(
                db, settings, _subscription(), "cus_1", promo_code_id="promo_1", discount_amount=4000
            )
        return await _commissions(factory)

    rows = run_db(_run)

    assert rows[0].commission_rate == Decimal("30")
    assert rows[0].commission_amount == 10770  # 30% of 35900
    assert rows[0].promo_code_id == "promo_1"


def test_promo_code_without_rate_falls_back_to_default(run_db, settings):
    async def _run(factory):
        async with factory() as db:
            await seed_reseller(db)
            await seed_promo_code(db, commission_rate=None)
            await seed_client(db, reseller_id="reseller_1")
            await create_commission_if_absent(
                db, settings, _subscription(), "cus_1", promo_code_id="promo_1", discount_amount=4000
            )
        return await _commissions(factory)

    rows = run_db(_run)

    assert rows[0].commission_rate == Decimal("50")
    assert rows[0].commission_amount == 17950


def test_no_reseller_means_no_commission(run_db, settings):
    async def _run(factory):
        async with factory() as db:
            await seed_client(db, reseller_id=None)
            result = await create_commission_if_absent(db, settings, _subscription(), "cus_1")
            assert result is None
        return await _commissions(factory)

    assert run_db(_run) == []


def test_unknown_customer_means_no_commission(run_db, settings):
    async def _run(factory):
        async with factory() as db:
            result = await create_commission_if_absent(db, settings, _subscription(), "cus_unknown")
            assert result is None
        return await _commissions(factory)

    assert run_db(_run) == []


def test_repeated_creation_yields_one_commission(run_db, settings):
    async def _run(factory):
        async with factory() as db:
            await seed_reseller(db)
            await seed_client(db, reseller_id="reseller_1")
        created = []
        for _ in range(5):
            async with factory() as db:
                created.append(await create_commission_if_absent(db, settings, _subscription(), "cus_1"))
        async with factory() as db:
            count = await db.scalar(select(func.count()).select_from(ResellerCommission))
        return created, count

    created, count = run_db(_run)

    assert count == 1
    assert created[0] is not None
    assert created[1:] == [None, None, None, None]


def test_cancel_only_touches_pending_rows(run_db):
    async def _run(factory):
        async with factory() as db:
            _add_commission(db, "sub_pending", CommissionStatus.PENDING)
            _add_commission(db, "sub_paid", CommissionStatus.PAID)
            await db.commit()
        async with factory() as db:
            cancelled = await cancel_pending_commissions(db, "sub_pending")
            untouched = await cancel_pending_commissions(db, "sub_paid")
        rows = await _commissions(factory)
        return cancelled, untouched, {r.subscription_id: r.status for r in rows}

    cancelled, untouched, statuses = run_db(_run)

    assert cancelled == 1
    assert untouched == 0
    assert statuses == {"sub_pending": CommissionStatus.CANCELLED, "sub_paid": CommissionStatus.PAID}


def test_cancel_without_commissions_is_a_noop(run_db):
    async def _run(factory):
        async with factory() as db:
            return await cancel_pending_commissions(db, "sub_missing")

    assert run_db(_run) == 0
