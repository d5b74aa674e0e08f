"""Session models for the conversation domain."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from orderflow.cart import Cart, CartItem
from orderflow.clock import utc_now
from orderflow.sessions.models.enums import (
    DeliveryType,
    Language,
    PaymentMethod,
    SceneName,
)
from orderflow.sessions.models.pending import PendingInput


class SessionKey(BaseModel):
    """Identity of a session: one per (user, chat) pair.

    Rendered as ``"<user_id>:<chat_id>"`` in the backing store.
    """

    model_config = ConfigDict(frozen=True)

    user_id: int
    chat_id: int

    def __str__(self) -> str:
        return f"{self.user_id}:{self.chat_id}"

    @classmethod
    def parse(cls, raw: str) -> "SessionKey":
        """Parse a ``"<user_id>:<chat_id>"`` record id."""
        user_part, sep, chat_part = raw.partition(":")
        if not sep:
            raise ValueError(f"Invalid session key: {raw!r}")
        return cls(user_id=int(user_part), chat_id=int(chat_part))


class SceneState(BaseModel):
    """Where the user currently is in the conversation."""

    model_config = ConfigDict(frozen=False, validate_assignment=True)

    current: SceneName = Field(
        default=SceneName.LANGUAGE_SELECT, description="Current scene"
    )
    previous: SceneName | None = Field(default=None, description="Scene before current")
    history: list[SceneName] = Field(
        default_factory=list, description="Recently visited scenes, oldest first"
    )
    pending: PendingInput | None = Field(
        default=None, description="Input the current flow is waiting for"
    )


class TransientSelection(BaseModel):
    """Short-lived browsing state, bounded in time and size by compaction."""

    model_config = ConfigDict(frozen=False, validate_assignment=True)

    selected_category: dict[str, Any] | None = Field(
        default=None, description="Category being browsed"
    )
    selected_product: dict[str, Any] | None = Field(
        default=None, description="Product being viewed"
    )
    product_quantities: dict[str, int] = Field(
        default_factory=dict,
        description="product_id -> chosen quantity, most recent last",
    )
    catalog_cache: dict[str, list[dict[str, Any]]] = Field(
        default_factory=dict,
        description="Catalog listings fetched for the current screen (refetchable)",
    )
    touched_at: datetime | None = Field(default=None, description="Last change")

    def remember_quantity(self, product_id: int, quantity: int) -> None:
        """Record a quantity choice, moving the product to the most-recent end."""
        key = str(product_id)
        self.product_quantities.pop(key, None)
        self.product_quantities[key] = quantity
        self.touched_at = utc_now()

    def is_empty(self) -> bool:
        return (
            self.selected_category is None
            and self.selected_product is None
            and not self.product_quantities
            and not self.catalog_cache
        )


class Coordinates(BaseModel):
    """Geographic point shared by the user."""

    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


class OrderDraft(BaseModel):
    """Checkout data collected while the order is in progress."""

    model_config = ConfigDict(frozen=False, validate_assignment=True)

    delivery_type: DeliveryType | None = None
    address: str | None = None
    coordinates: Coordinates | None = None
    pickup_time: str | None = None
    payment_method: PaymentMethod | None = None
    additional_phone: str | None = None
    include_cutlery: bool | None = None


class PlacedOrder(BaseModel):
    """Snapshot of a confirmed order kept for order history."""

    model_config = ConfigDict(frozen=True)

    number: str
    items: tuple[CartItem, ...]
    total: float = Field(..., ge=0)
    delivery_type: DeliveryType | None = None
    branch_id: int | None = None
    address: str | None = None
    pickup_time: str | None = None
    payment_method: PaymentMethod | None = None
    phone: str | None = None
    include_cutlery: bool | None = None
    placed_at: datetime = Field(default_factory=utc_now)


class Session(BaseModel):
    """Durable per-(user, chat) conversation state.

    Holds registration data, catalog selections (as references), the
    embedded cart, scene state and in-progress checkout data.
    """

    model_config = ConfigDict(frozen=False, validate_assignment=True, extra="ignore")

    language: Language = Field(default=Language.EN, description="Interface language")
    registered: bool = Field(default=False, description="Contact shared")
    phone: str | None = Field(default=None, description="Registered phone")
    name: str | None = Field(default=None, description="Display name")
    is_authenticated: bool = Field(default=False, description="OTP confirmed")
    otp_retries: int = Field(default=0, ge=0, description="Failed OTP attempts")
    last_otp_sent: datetime | None = Field(default=None, description="Last OTP time")
    current_city: str | None = Field(default=None, description="City display name")
    selected_city: int | None = Field(default=None, description="Catalog city id")
    selected_branch: int | None = Field(default=None, description="Catalog branch id")
    cart: Cart = Field(default_factory=Cart, description="Embedded cart")
    scene: SceneState = Field(default_factory=SceneState, description="Scene state")
    selection: TransientSelection = Field(
        default_factory=TransientSelection, description="Transient browsing state"
    )
    order: OrderDraft = Field(default_factory=OrderDraft, description="Checkout draft")
    orders: list[PlacedOrder] = Field(
        default_factory=list, description="Recent placed orders, oldest first"
    )
    last_viewed_order: str | None = Field(
        default=None, description="Order number last opened in history"
    )
    created_at: datetime | None = Field(
        default=None, description="Creation time, the base of the absolute age limit"
    )


def default_session(
    language: Language | str = Language.EN,
    now: datetime | None = None,
) -> Session:
    """Create a fresh session whose cart is stamped as just touched."""
    stamp = now or utc_now()
    return Session(language=Language(language), cart=Cart(updated_at=stamp), created_at=stamp)
