"""Scene handler base class and the per-event flow context."""

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, ClassVar
from zoneinfo import ZoneInfo

from orderflow.compaction.optimizer import resolve_name
from orderflow.config.models.flow import FlowConfig
from orderflow.flow.catalog import CatalogClient
from orderflow.flow.directives import Effect, RenderDirective
from orderflow.flow.events import Event, EventKind
from orderflow.flow.graph import SceneGraph
from orderflow.flow.verification import VerificationClient
from orderflow.sessions.models import SceneName, Session


@dataclass
class FlowContext:
    """Everything a scene handler may use while handling one event."""

    session: Session
    catalog: CatalogClient
    verifier: VerificationClient
    config: FlowConfig
    graph: SceneGraph
    now: datetime
    redirected_from: SceneName | None = None
    notice: str | None = None
    effects: list[Effect] = field(default_factory=list)

    @property
    def local_now(self) -> datetime:
        return self.now.astimezone(ZoneInfo(self.config.timezone))

    @property
    def language(self) -> str:
        return self.session.language.value

    def emit(self, kind: str, **data: Any) -> None:
        self.effects.append(Effect(kind=kind, data=data))


@dataclass(frozen=True)
class Transition:
    """Outcome of a handled event. A None target re-renders the current scene."""

    target: SceneName | None = None
    notice: str | None = None


def goto(scene: SceneName, notice: str | None = None) -> Transition:
    return Transition(target=scene, notice=notice)


def stay(notice: str | None = None) -> Transition:
    return Transition(target=None, notice=notice)


class Scene(ABC):
    """A conversation scene.

    ``on_enter`` must be idempotent: it runs on first entry, on back
    navigation, on refresh and after ignored events, with a fresh or a
    partially filled session.
    """

    name: ClassVar[SceneName]

    @abstractmethod
    async def on_enter(self, ctx: FlowContext) -> RenderDirective:
        """Prepare the scene and describe what to render."""
        pass

    async def handle(self, ctx: FlowContext, event: Event) -> Transition | None:
        """Handle an event addressed to this scene. None means not handled."""
        return None

    def render(
        self,
        ctx: FlowContext,
        template: str,
        options: list[str] | None = None,
        data: dict[str, Any] | None = None,
    ) -> RenderDirective:
        node = ctx.graph.node(self.name)
        return RenderDirective(
            scene=self.name,
            template=template,
            options=options or [],
            data=data or {},
            breadcrumbs=ctx.graph.breadcrumbs(self.name) if node.shows_breadcrumbs else [],
            allows_back=node.allows_back,
            notice=ctx.notice,
            effects=list(ctx.effects),
        )

    def expect(self, ctx: FlowContext, pending_type: type, **fields: Any) -> None:
        """Record the input this scene waits for, keeping an identical one."""
        current = ctx.session.scene.pending
        if (
            isinstance(current, pending_type)
            and current.owner == self.name
            and all(getattr(current, key) == value for key, value in fields.items())
        ):
            return
        ctx.session.scene.pending = pending_type(owner=self.name, since=ctx.now, **fields)

    def awaiting(self, ctx: FlowContext, pending_type: type) -> Any | None:
        """The pending input if this scene set one of the given type."""
        pending = ctx.session.scene.pending
        if isinstance(pending, pending_type) and pending.owner == self.name:
            return pending
        return None


async def fetch_listing(
    ctx: FlowContext,
    cache_key: str,
    fetch: Callable[[], Awaitable[list[dict[str, Any]]]],
) -> list[dict[str, Any]]:
    """Fetch a catalog listing and keep it for resolving the user's choice."""
    listing = await fetch()
    selection = ctx.session.selection
    selection.catalog_cache = {**selection.catalog_cache, cache_key: listing}
    selection.touched_at = ctx.now
    return listing


async def choose_entity(
    ctx: FlowContext,
    event: Event,
    action: str,
    cache_key: str,
    fetch: Callable[[], Awaitable[list[dict[str, Any]]]],
) -> dict[str, Any] | None:
    """Resolve a pick from a listing by action id or by typed name.

    Falls back to refetching when the cached listing was compacted away.
    """
    if event.is_action(action):
        wanted_id = _as_int(event.value)
        if wanted_id is None:
            return None

        def matches(entity: dict[str, Any]) -> bool:
            return entity.get("id") == wanted_id

    elif event.kind == EventKind.TEXT and event.value:
        wanted_name = event.value.strip().casefold()

        def matches(entity: dict[str, Any]) -> bool:
            return (resolve_name(entity, ctx.language) or "").casefold() == wanted_name

    else:
        return None

    listing = ctx.session.selection.catalog_cache.get(cache_key)
    if listing is None:
        listing = await fetch_listing(ctx, cache_key, fetch)
    return next((entity for entity in listing if matches(entity)), None)


def listing_options(ctx: FlowContext, listing: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Renderable ``{id, name}`` pairs of a listing."""
    return [
        {"id": entity.get("id"), "name": resolve_name(entity, ctx.language)}
        for entity in listing
    ]


def _as_int(value: str | None) -> int | None:
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None
