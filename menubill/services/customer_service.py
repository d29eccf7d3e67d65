"""Lookups shared by the billing services: customer → user → reseller."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from menubill.models.customer import StripeCustomer
from menubill.models.user_profile import UserProfile


async def get_user_id_for_customer(db: AsyncSession, customer_id: str) -> str | None:
    result = await db.execute(
        select(StripeCustomer.user_id).where(StripeCustomer.customer_id == customer_id)
    )
    return result.scalar_one_or_none()


async def get_user_profile(db: AsyncSession, user_id: str) -> UserProfile | None:
    result = await db.execute(select(UserProfile).where(UserProfile.id == user_id))
    return result.scalar_one_or_none()
