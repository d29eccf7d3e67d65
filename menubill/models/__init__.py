"""SQLAlchemy models for the billing service (PostgreSQL)."""

from .base import Base
from .user_profile import UserProfile
from .customer import StripeCustomer
from .promo_code import ResellerPromoCode
from .promo_usage import PromoCodeUsage
from .subscription import StripeSubscription, SubscriptionStatus
from .commission import CommissionStatus, ResellerCommission
from .reseller_client import ResellerClient

__all__ = [
    "Base",
    "UserProfile",
    "StripeCustomer",
    "ResellerPromoCode",
    "PromoCodeUsage",
    "StripeSubscription",
    "SubscriptionStatus",
    "ResellerCommission",
    "CommissionStatus",
    "ResellerClient",
]
