"""Conversation flow configuration models."""

from pydantic import BaseModel, Field


class FlowConfig(BaseModel):
    """Tunables of the conversation state machine."""

    breadcrumb_depth: int = Field(
        default=10,
        gt=0,
        description="Visited scenes kept for back navigation",
    )
    max_redirects: int = Field(
        default=5,
        gt=0,
        description="Guard redirects followed before giving up on an entry",
    )
    phone_pattern: str = Field(
        default=r"^\+998\d{9}$",
        description="Accepted phone number format after normalization",
    )
    order_history_limit: int = Field(
        default=5,
        gt=0,
        description="Placed orders remembered per session",
    )
    first_slot_hour: int = Field(
        default=10,
        ge=0,
        le=23,
        description="First same-day pickup slot hour",
    )
    last_slot_hour: int = Field(
        default=2,
        ge=0,
        le=23,
        description="Last next-day pickup slot hour",
    )
    timezone: str = Field(
        default="Asia/Tashkent",
        description="Local time zone of the pickup slots",
    )
    otp_length: int = Field(
        default=6,
        gt=0,
        description="Digits in a one-time verification code",
    )
    otp_resend_seconds: int = Field(
        default=60,
        ge=0,
        description="Minimum interval between verification code requests",
    )
    otp_max_attempts: int = Field(
        default=3,
        gt=0,
        description="Wrong codes accepted before authentication is abandoned",
    )
