"""Inbound conversation events.

The transport layer translates whatever it receives (commands, button
presses, free text, shared contacts and locations) into an Event before
handing it to the conversation machine.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class EventKind(str, Enum):
    """Kinds of inbound events."""

    COMMAND = "command"
    ACTION = "action"
    TEXT = "text"
    CONTACT = "contact"
    LOCATION = "location"


class Event(BaseModel):
    """A single user event.

    ``name`` identifies commands and actions, ``value`` carries the text or
    the action argument, ``payload`` carries structured data such as a
    shared phone number or coordinates.
    """

    model_config = ConfigDict(frozen=True)

    kind: EventKind
    name: str | None = Field(default=None, description="Command or action name")
    value: str | None = Field(default=None, description="Text or action argument")
    payload: dict[str, Any] = Field(default_factory=dict, description="Structured data")

    @classmethod
    def command(cls, name: str) -> "Event":
        return cls(kind=EventKind.COMMAND, name=name.lstrip("/"))

    @classmethod
    def action(cls, name: str, value: str | int | None = None) -> "Event":
        return cls(
            kind=EventKind.ACTION,
            name=name,
            value=str(value) if value is not None else None,
        )

    @classmethod
    def text(cls, value: str) -> "Event":
        return cls(kind=EventKind.TEXT, value=value)

    @classmethod
    def contact(cls, phone: str, first_name: str | None = None) -> "Event":
        payload: dict[str, Any] = {"phone": phone}
        if first_name:
            payload["first_name"] = first_name
        return cls(kind=EventKind.CONTACT, payload=payload)

    @classmethod
    def location(
        cls, latitude: float, longitude: float, address: str | None = None
    ) -> "Event":
        payload: dict[str, Any] = {"latitude": latitude, "longitude": longitude}
        if address:
            payload["address"] = address
        return cls(kind=EventKind.LOCATION, payload=payload)

    def is_command(self, name: str) -> bool:
        return self.kind == EventKind.COMMAND and self.name == name

    def is_action(self, name: str) -> bool:
        return self.kind == EventKind.ACTION and self.name == name
