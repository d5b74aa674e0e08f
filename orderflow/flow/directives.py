"""Renderer-neutral output of the conversation machine."""

from typing import Any

from pydantic import BaseModel, Field

from orderflow.sessions.models import SceneName


class Effect(BaseModel):
    """Side effect for the transport layer to carry out (send an order, forward a review)."""

    kind: str
    data: dict[str, Any] = Field(default_factory=dict)


class RenderDirective(BaseModel):
    """What the transport should show for a scene.

    ``template`` and ``notice`` are i18n keys; ``options`` are the action
    names the user can choose from.
    """

    scene: SceneName
    template: str
    options: list[str] = Field(default_factory=list)
    data: dict[str, Any] = Field(default_factory=dict)
    breadcrumbs: list[SceneName] = Field(default_factory=list)
    allows_back: bool = False
    notice: str | None = Field(default=None, description="One-off message shown above the scene")
    effects: list[Effect] = Field(default_factory=list)


class FlowOutcome(BaseModel):
    """Result of dispatching one event for a session key."""

    scene: SceneName
    directive: RenderDirective
    persisted: bool = Field(..., description="Session changes were saved")
    error: str | None = Field(default=None, description="Collaborator failure, if any")
