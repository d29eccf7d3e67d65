"""Centralized billing constants — single source of truth for hardcoded values."""

# --- Webhook ---
STRIPE_SIGNATURE_HEADER = "stripe-signature"
WEBHOOK_ALLOWED_METHODS = ["POST", "OPTIONS"]

# --- Stripe event types ---
EVENT_CHECKOUT_COMPLETED = "checkout.session.completed"
EVENT_PAYMENT_INTENT_SUCCEEDED = "payment_intent.succeeded"

CHECKOUT_MODE_SUBSCRIPTION = "subscription"

# --- Stripe expansions ---
CHECKOUT_SESSION_EXPAND = ["total_details.breakdown", "line_items.data.discounts"]
CUSTOMER_SUBSCRIPTION_EXPAND = ["data.default_payment_method"]
FULL_SYNC_SUBSCRIPTION_EXPAND = ["data.customer", "data.default_payment_method"]
FULL_SYNC_PAGE_SIZE = 100

# --- Subscription status groups (drive commission handling) ---
COMMISSIONABLE_STATUSES = frozenset({"active", "trialing"})
TERMINAL_FAILURE_STATUSES = frozenset({"canceled", "unpaid", "incomplete_expired"})

# --- Attribution ---
RESELLER_SOURCE = "reseller"

# --- Worker ---
ARQ_MAX_JOBS = 10
ARQ_JOB_TIMEOUT = 300  # seconds (5 min)
ARQ_FULL_SYNC_TIMEOUT = 3600  # seconds (1 hour)
JOB_PROCESS_BILLING_EVENT = "process_billing_event_job"
JOB_SYNC_CUSTOMER = "sync_customer_job"
EVENT_JOB_ID_PREFIX = "stripe-event"
