"""Onboarding scenes: language, registration, city choice, main menu and authentication."""

from datetime import timedelta

from orderflow.clock import ensure_aware
from orderflow.compaction.optimizer import resolve_name
from orderflow.flow.directives import RenderDirective
from orderflow.flow.events import Event, EventKind
from orderflow.flow.inputs import parse_code, parse_name, parse_phone
from orderflow.flow.scenes.base import (
    FlowContext,
    Scene,
    Transition,
    choose_entity,
    fetch_listing,
    goto,
    listing_options,
    stay,
)
from orderflow.observability.logging import get_logger
from orderflow.sessions.models import (
    AwaitingCode,
    AwaitingContact,
    Language,
    SceneName,
)

logger = get_logger(__name__)

LANGUAGE_LABELS = {
    Language.EN: "English",
    Language.RU: "Русский",
    Language.UZ: "O'zbekcha",
}


def pick_language(event: Event) -> Language | None:
    """Language chosen by an action or by its code or label typed as text."""
    if event.is_action("language"):
        raw = event.value or ""
    elif event.kind == EventKind.TEXT and event.value:
        raw = event.value
    else:
        return None

    wanted = raw.strip().casefold()
    for language, label in LANGUAGE_LABELS.items():
        if wanted in (language.value, label.casefold()):
            return language
    return None


def after_onboarding(ctx: FlowContext) -> SceneName:
    """Next scene once the user is known: city choice or the main menu."""
    session = ctx.session
    if not (session.registered and session.phone):
        return SceneName.REGISTRATION
    if session.selected_city is None:
        return SceneName.WELCOME
    return SceneName.MAIN_MENU


class LanguageSelectScene(Scene):
    name = SceneName.LANGUAGE_SELECT

    async def on_enter(self, ctx: FlowContext) -> RenderDirective:
        return self.render(
            ctx,
            "language.select",
            options=[f"language:{language.value}" for language in Language],
            data={"labels": {lang.value: label for lang, label in LANGUAGE_LABELS.items()}},
        )

    async def handle(self, ctx: FlowContext, event: Event) -> Transition | None:
        language = pick_language(event)
        if language is None:
            return None
        ctx.session.language = language
        return goto(after_onboarding(ctx))


class RegistrationScene(Scene):
    """Registration by shared contact (or a typed phone number)."""

    name = SceneName.REGISTRATION

    async def on_enter(self, ctx: FlowContext) -> RenderDirective:
        self.expect(ctx, AwaitingContact)
        return self.render(ctx, "registration.share_contact", options=["share_contact"])

    async def handle(self, ctx: FlowContext, event: Event) -> Transition | None:
        if event.kind == EventKind.CONTACT:
            raw_phone = str(event.payload.get("phone", ""))
        elif event.kind == EventKind.TEXT and event.value:
            raw_phone = event.value
        else:
            return None

        phone = parse_phone(raw_phone, ctx.config.phone_pattern)
        if phone is None:
            return stay("registration.invalid_phone")

        session = ctx.session
        session.phone = phone
        session.registered = True
        if session.name is None:
            first_name = event.payload.get("first_name")
            session.name = parse_name(first_name) if isinstance(first_name, str) else None
        session.scene.pending = None

        logger.info("user_registered", phone=phone)
        return goto(after_onboarding(ctx), "registration.completed")


class CitySelectionScene(Scene):
    """Shared behaviour of the scenes that pick a city."""

    template = "city.select"

    async def on_enter(self, ctx: FlowContext) -> RenderDirective:
        cities = await fetch_listing(ctx, "cities", ctx.catalog.list_cities)
        return self.render(
            ctx,
            self.template,
            options=[f"city:{city.get('id')}" for city in cities],
            data={"cities": listing_options(ctx, cities), "current": ctx.session.current_city},
        )

    async def handle(self, ctx: FlowContext, event: Event) -> Transition | None:
        city = await choose_entity(ctx, event, "city", "cities", ctx.catalog.list_cities)
        if city is None:
            return None

        session = ctx.session
        city_id = city.get("id")
        if session.selected_city != city_id:
            session.selected_branch = None
        session.selected_city = city_id
        session.current_city = resolve_name(city, ctx.language)
        session.selection.catalog_cache = {}
        return goto(self.next_scene(ctx), "city.selected")

    def next_scene(self, ctx: FlowContext) -> SceneName:
        return SceneName.MAIN_MENU


class WelcomeScene(CitySelectionScene):
    name = SceneName.WELCOME
    template = "welcome.select_city"


class MainMenuScene(Scene):
    name = SceneName.MAIN_MENU

    ACTIONS = {
        "order": SceneName.DELIVERY_TYPE,
        "cart": SceneName.CART,
        "history": SceneName.ORDER_HISTORY,
        "settings": SceneName.SETTINGS,
        "feedback": SceneName.FEEDBACK,
    }

    async def on_enter(self, ctx: FlowContext) -> RenderDirective:
        options = [action for action in self.ACTIONS if action != "cart"]
        if not ctx.session.cart.is_empty():
            options.insert(1, "cart")
        return self.render(
            ctx,
            "main_menu",
            options=options,
            data={"name": ctx.session.name, "city": ctx.session.current_city},
        )

    async def handle(self, ctx: FlowContext, event: Event) -> Transition | None:
        if event.kind == EventKind.ACTION and event.name in self.ACTIONS:
            return goto(self.ACTIONS[event.name])
        return None


class AuthenticationScene(Scene):
    """One-time code verification of the registered phone.

    Entered from any scene guarded by authentication; on success the flow
    resumes with the scene that required it.
    """

    name = SceneName.AUTHENTICATION

    async def on_enter(self, ctx: FlowContext) -> RenderDirective:
        session = ctx.session
        pending = self.awaiting(ctx, AwaitingCode)
        resume = ctx.redirected_from or (pending.resume if pending else None)

        if pending is None:
            await self._send_code(ctx)
        self.expect(ctx, AwaitingCode, resume=resume)

        return self.render(
            ctx,
            "auth.enter_code",
            options=["resend"],
            data={"phone": session.phone, "length": ctx.config.otp_length},
        )

    async def handle(self, ctx: FlowContext, event: Event) -> Transition | None:
        pending = self.awaiting(ctx, AwaitingCode)

        if event.is_action("resend"):
            if not await self._send_code(ctx):
                return stay("auth.wait_before_resend")
            return stay("auth.code_sent")

        if event.kind != EventKind.TEXT or not event.value or pending is None:
            return None

        session = ctx.session
        code = parse_code(event.value, ctx.config.otp_length)
        if code is not None and await ctx.verifier.verify_code(session.phone or "", code):
            session.is_authenticated = True
            session.otp_retries = 0
            session.scene.pending = None
            logger.info("user_authenticated")
            return goto(pending.resume or SceneName.MAIN_MENU, "auth.success")

        session.otp_retries += 1
        if session.otp_retries >= ctx.config.otp_max_attempts:
            session.otp_retries = 0
            session.scene.pending = None
            logger.warning("authentication_abandoned", attempts=ctx.config.otp_max_attempts)
            return goto(SceneName.MAIN_MENU, "auth.too_many_attempts")
        return stay("auth.invalid_code")

    async def _send_code(self, ctx: FlowContext) -> bool:
        """Request a new code unless one was sent within the resend window."""
        session = ctx.session
        window = timedelta(seconds=ctx.config.otp_resend_seconds)
        last_sent = session.last_otp_sent
        if last_sent is not None and ctx.now - ensure_aware(last_sent) < window:
            return False

        await ctx.verifier.send_code(session.phone or "")
        session.last_otp_sent = ctx.now
        ctx.emit("verification_code_sent")
        return True
