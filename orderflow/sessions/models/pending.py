"""Pending-input sub-states.

A scene that is waiting for a specific kind of user input records it as
exactly one PendingInput variant on the session. Using a discriminated
union instead of independent boolean flags makes contradictory
combinations (awaiting a phone and a cutlery choice at once)
unrepresentable.
"""

from datetime import datetime
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field

from orderflow.clock import utc_now
from orderflow.sessions.models.enums import SceneName


class _Pending(BaseModel):
    model_config = ConfigDict(frozen=True)

    owner: SceneName = Field(..., description="Scene whose flow set this input")
    since: datetime = Field(default_factory=utc_now, description="When waiting started")


class AwaitingContact(_Pending):
    """Registration is waiting for a shared contact."""

    kind: Literal["contact"] = "contact"


class AwaitingName(_Pending):
    kind: Literal["name"] = "name"


class AwaitingPhone(_Pending):
    """A typed phone number is expected (profile number change)."""

    kind: Literal["phone"] = "phone"


class AwaitingAddress(_Pending):
    """Delivery is waiting for a typed address or a location."""

    kind: Literal["address"] = "address"


class AwaitingTimeSlot(_Pending):
    kind: Literal["time_slot"] = "time_slot"
    slots: tuple[str, ...] = Field(default=(), description="Slots offered to the user")


class AwaitingAdditionalPhone(_Pending):
    kind: Literal["additional_phone"] = "additional_phone"


class AwaitingCutleryChoice(_Pending):
    kind: Literal["cutlery_choice"] = "cutlery_choice"


class AwaitingOrderConfirmation(_Pending):
    kind: Literal["order_confirmation"] = "order_confirmation"


class AwaitingQuantity(_Pending):
    """Products scene is waiting for the quantity of a chosen product."""

    kind: Literal["quantity"] = "quantity"
    product_id: int


class AwaitingCode(_Pending):
    """Authentication is waiting for the one-time code sent to the phone."""

    kind: Literal["code"] = "code"
    resume: SceneName | None = Field(
        default=None, description="Scene to continue with once verified"
    )


class AwaitingReview(_Pending):
    kind: Literal["review"] = "review"


PendingInput = Annotated[
    AwaitingContact
    | AwaitingName
    | AwaitingPhone
    | AwaitingAddress
    | AwaitingTimeSlot
    | AwaitingAdditionalPhone
    | AwaitingCutleryChoice
    | AwaitingOrderConfirmation
    | AwaitingQuantity
    | AwaitingReview
    | AwaitingCode,
    Field(discriminator="kind"),
]
