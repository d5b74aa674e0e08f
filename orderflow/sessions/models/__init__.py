"""Session domain models.

Contains all Pydantic models for persisted conversation state:
- Session and its SessionKey identity
- SceneState with the PendingInput sub-state union
- TransientSelection, OrderDraft and PlacedOrder
"""

from orderflow.sessions.models.enums import (
    DeliveryType,
    Language,
    PaymentMethod,
    SceneName,
)
from orderflow.sessions.models.pending import (
    AwaitingAddress,
    AwaitingAdditionalPhone,
    AwaitingCode,
    AwaitingContact,
    AwaitingCutleryChoice,
    AwaitingName,
    AwaitingOrderConfirmation,
    AwaitingPhone,
    AwaitingQuantity,
    AwaitingReview,
    AwaitingTimeSlot,
    PendingInput,
)
from orderflow.sessions.models.session import (
    Coordinates,
    OrderDraft,
    PlacedOrder,
    SceneState,
    Session,
    SessionKey,
    TransientSelection,
    default_session,
)

__all__ = [
    # Enums
    "DeliveryType",
    "Language",
    "PaymentMethod",
    "SceneName",
    # Pending inputs
    "AwaitingAddress",
    "AwaitingAdditionalPhone",
    "AwaitingCode",
    "AwaitingContact",
    "AwaitingCutleryChoice",
    "AwaitingName",
    "AwaitingOrderConfirmation",
    "AwaitingPhone",
    "AwaitingQuantity",
    "AwaitingReview",
    "AwaitingTimeSlot",
    "PendingInput",
    # Session models
    "Coordinates",
    "OrderDraft",
    "PlacedOrder",
    "SceneState",
    "Session",
    "SessionKey",
    "TransientSelection",
    "default_session",
]
