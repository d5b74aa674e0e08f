"""Conversation state machine.

A single transition function drives every event:

1. Global interrupts (restart, back, home, refresh and the menu shortcuts)
   preempt the current scene's own handling.
2. Otherwise the current scene handles the event. An event it does not
   understand re-renders the scene.
3. Entering a scene checks its guards; a failing guard redirects to its
   recovery scene, up to ``max_redirects`` hops.

Handlers work on a copy of the session. The caller's session only changes
when the whole event succeeded.
"""

from datetime import datetime

from orderflow.clock import utc_now
from orderflow.config.models.flow import FlowConfig
from orderflow.config.settings import Settings
from orderflow.errors import ExternalServiceError
from orderflow.flow.catalog import CatalogClient
from orderflow.flow.directives import FlowOutcome, RenderDirective
from orderflow.flow.events import Event, EventKind
from orderflow.flow.graph import SceneGraph
from orderflow.flow.scenes import FlowContext, Scene, Transition, build_scenes
from orderflow.flow.verification import VerificationClient
from orderflow.observability.logging import get_logger, session_log_context
from orderflow.observability.metrics import EVENTS_HANDLED, GUARD_REDIRECTS
from orderflow.sessions.models import SceneName, Session
from orderflow.sessions.service import SessionService

logger = get_logger(__name__)

RESTART_COMMAND = "start"
BACK = "back"
REFRESH_COMMAND = "refresh"

# Commands that jump straight to a scene from anywhere, subject to guards
COMMAND_TARGETS: dict[str, SceneName] = {
    "home": SceneName.MAIN_MENU,
    "menu": SceneName.MAIN_MENU,
    "order": SceneName.DELIVERY_TYPE,
    "categories": SceneName.CATEGORIES,
    "cart": SceneName.CART,
    "history": SceneName.ORDER_HISTORY,
    "settings": SceneName.SETTINGS,
    "feedback": SceneName.FEEDBACK,
}

SERVICE_UNAVAILABLE_TEMPLATE = "errors.service_unavailable"


class ConversationMachine:
    """Drives sessions through the scene graph one event at a time."""

    def __init__(
        self,
        sessions: SessionService,
        catalog: CatalogClient,
        verifier: VerificationClient,
        config: FlowConfig | None = None,
        graph: SceneGraph | None = None,
        scenes: dict[SceneName, Scene] | None = None,
    ) -> None:
        """Initialize the machine.

        Args:
            sessions: Session store used by dispatch and for restarts
            catalog: External catalog of cities, branches and products
            verifier: One-time code sender and checker
            config: Flow tunables (defaults when omitted)
            graph: Static scene graph (the built-in table when omitted)
            scenes: Scene handlers by name (all built-in scenes when omitted)
        """
        self._sessions = sessions
        self._catalog = catalog
        self._verifier = verifier
        self._config = config or FlowConfig()
        self._graph = graph or SceneGraph()
        self._scenes = scenes if scenes is not None else build_scenes()

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        sessions: SessionService,
        catalog: CatalogClient,
        verifier: VerificationClient,
    ) -> "ConversationMachine":
        return cls(sessions, catalog, verifier, config=settings.flow)

    @property
    def graph(self) -> SceneGraph:
        return self._graph

    @property
    def config(self) -> FlowConfig:
        return self._config

    async def dispatch(self, user_id: int, chat_id: int, event: Event) -> FlowOutcome:
        """Handle one event for a session key inside a locked transaction.

        A collaborator failure leaves the stored session untouched and
        yields an error directive for the current scene. Storage errors
        propagate to the caller.
        """
        with session_log_context(user_id, chat_id):
            try:
                async with self._sessions.transaction(user_id, chat_id) as tx:
                    scene, directive = await self.handle_event(tx.session, event)
            except ExternalServiceError as e:
                session = await self._sessions.get(user_id, chat_id)
                directive = self._error_directive(session.scene.current)
                return FlowOutcome(
                    scene=directive.scene, directive=directive, persisted=False, error=str(e)
                )

        return FlowOutcome(scene=scene, directive=directive, persisted=True)

    async def handle_event(
        self,
        session: Session,
        event: Event,
        now: datetime | None = None,
    ) -> tuple[SceneName, RenderDirective]:
        """Apply one event to a session in place.

        Returns:
            Tuple of (scene now current, what to render)

        Raises:
            ExternalServiceError: A collaborator failed; the session is unchanged
        """
        working = session.model_copy(deep=True)
        ctx = FlowContext(
            session=working,
            catalog=self._catalog,
            verifier=self._verifier,
            config=self._config,
            graph=self._graph,
            now=now or utc_now(),
        )
        origin = working.scene.current

        try:
            scene, directive, outcome = await self._transition(ctx, event)
        except ExternalServiceError as e:
            EVENTS_HANDLED.labels(scene=origin.value, outcome="error").inc()
            logger.warning(
                "collaborator_failed",
                scene=origin.value,
                event_kind=event.kind.value,
                error=str(e),
            )
            raise

        for field_name in Session.model_fields:
            setattr(session, field_name, getattr(working, field_name))

        EVENTS_HANDLED.labels(scene=origin.value, outcome=outcome).inc()
        return scene, directive

    async def _transition(
        self, ctx: FlowContext, event: Event
    ) -> tuple[SceneName, RenderDirective, str]:
        current = ctx.session.scene.current

        if event.is_command(RESTART_COMMAND):
            self._restart(ctx)
            scene, directive = await self._enter(ctx, SceneName.LANGUAGE_SELECT)
            return scene, directive, "interrupt"

        if event.is_command(BACK) or event.is_action(BACK):
            target = self._graph.back_target(current, ctx.session.scene)
            if target is None:
                return current, await self._render(ctx, current), "interrupt"
            scene, directive = await self._enter(ctx, target, navigating_back=True)
            return scene, directive, "interrupt"

        if event.is_command(REFRESH_COMMAND):
            return current, await self._render(ctx, current), "interrupt"

        if event.kind == EventKind.COMMAND and event.name in COMMAND_TARGETS:
            scene, directive = await self._enter(ctx, COMMAND_TARGETS[event.name])
            return scene, directive, "interrupt"

        transition = await self._scenes[current].handle(ctx, event)
        if transition is None:
            logger.debug(
                "event_ignored",
                scene=current.value,
                event_kind=event.kind.value,
                event_name=event.name,
            )
            return current, await self._render(ctx, current), "ignored"

        scene, directive = await self._follow(ctx, transition)
        return scene, directive, "handled"

    async def _follow(
        self, ctx: FlowContext, transition: Transition
    ) -> tuple[SceneName, RenderDirective]:
        if transition.notice:
            ctx.notice = transition.notice
        if transition.target is None or transition.target == ctx.session.scene.current:
            current = ctx.session.scene.current
            return current, await self._render(ctx, current)
        return await self._enter(ctx, transition.target)

    async def _enter(
        self,
        ctx: FlowContext,
        target: SceneName,
        navigating_back: bool = False,
    ) -> tuple[SceneName, RenderDirective]:
        """Enter a scene, following guard redirects."""
        requested = target
        for _ in range(self._config.max_redirects + 1):
            failed = next(
                (guard for guard in self._graph.node(target).guards if not guard(ctx.session)),
                None,
            )
            if failed is None:
                break
            GUARD_REDIRECTS.labels(guard=failed.name).inc()
            logger.info(
                "guard_redirect",
                guard=failed.name,
                target=target.value,
                redirect=failed.redirect.value,
            )
            ctx.redirected_from = target
            target = failed.redirect
        else:
            logger.error("guard_redirect_loop", requested=requested.value)
            target = SceneName.LANGUAGE_SELECT

        state = ctx.session.scene
        current = state.current
        if target != current:
            if navigating_back and state.history and state.history[-1] == target:
                state.history = state.history[:-1]
            elif not navigating_back:
                state.history = [*state.history, current][-self._config.breadcrumb_depth :]
            state.previous = current
            state.current = target
            if state.pending is not None and state.pending.owner != target:
                state.pending = None
            logger.debug("scene_entered", scene=target.value, previous=current.value)

        return target, await self._render(ctx, target)

    async def _render(self, ctx: FlowContext, scene: SceneName) -> RenderDirective:
        return await self._scenes[scene].on_enter(ctx)

    def _restart(self, ctx: FlowContext) -> None:
        """Reset the working session to defaults, keeping only its identity."""
        fresh = self._sessions.new_session()
        for field_name in Session.model_fields:
            setattr(ctx.session, field_name, getattr(fresh, field_name))
        logger.info("session_restarted")

    def _error_directive(self, scene: SceneName) -> RenderDirective:
        node = self._graph.node(scene)
        return RenderDirective(
            scene=scene,
            template=SERVICE_UNAVAILABLE_TEMPLATE,
            options=[BACK] if node.allows_back else [],
            breadcrumbs=self._graph.breadcrumbs(scene) if node.shows_breadcrumbs else [],
            allows_back=node.allows_back,
        )


__all__ = ["COMMAND_TARGETS", "ConversationMachine"]
