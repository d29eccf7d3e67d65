"""Stripe webhook event schemas — raw envelope and the billing events derived from it."""

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter

from menubill.constants import CHECKOUT_MODE_SUBSCRIPTION


class StripeEventData(BaseModel):
    object: dict[str, Any]

    model_config = {"extra": "allow"}


class StripeEventEnvelope(BaseModel):
    """The parts of a Stripe event this service reads."""

    id: str | None = None
    type: str
    data: StripeEventData

    model_config = {"extra": "allow"}

    @property
    def payload(self) -> dict[str, Any]:
        return self.data.object


class CheckoutCompleted(BaseModel):
    kind: Literal["checkout_completed"] = "checkout_completed"
    event_id: str | None = None
    event_type: str
    customer_id: str
    session_id: str
    mode: str | None = None

    @property
    def is_subscription(self) -> bool:
        return self.mode == CHECKOUT_MODE_SUBSCRIPTION


class CustomerActivity(BaseModel):
    """Any other event that references a customer; triggers a full resync of that customer."""

    kind: Literal["customer_activity"] = "customer_activity"
    event_id: str | None = None
    event_type: str
    customer_id: str


class IgnoredEvent(BaseModel):
    kind: Literal["ignored"] = "ignored"
    event_id: str | None = None
    event_type: str
    reason: str


BillingEvent = Annotated[
    Union[CheckoutCompleted, CustomerActivity, IgnoredEvent],
    Field(discriminator="kind"),
]

billing_event_adapter: TypeAdapter[BillingEvent] = TypeAdapter(BillingEvent)
