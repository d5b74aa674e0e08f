"""Conversation flow: scene graph, guards, scene handlers and the state machine."""

from orderflow.flow.catalog import CatalogClient, InMemoryCatalog
from orderflow.flow.directives import Effect, FlowOutcome, RenderDirective
from orderflow.flow.events import Event, EventKind
from orderflow.flow.graph import SCENE_GRAPH, SceneGraph, SceneNode
from orderflow.flow.guards import Guard
from orderflow.flow.machine import COMMAND_TARGETS, ConversationMachine
from orderflow.flow.verification import InMemoryVerificationClient, VerificationClient

__all__ = [
    "COMMAND_TARGETS",
    "CatalogClient",
    "ConversationMachine",
    "Effect",
    "Event",
    "EventKind",
    "FlowOutcome",
    "Guard",
    "InMemoryCatalog",
    "InMemoryVerificationClient",
    "RenderDirective",
    "SCENE_GRAPH",
    "SceneGraph",
    "SceneNode",
    "VerificationClient",
]
