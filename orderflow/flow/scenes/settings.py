"""Settings and its sub-scenes."""

from orderflow.flow.directives import RenderDirective
from orderflow.flow.events import Event, EventKind
from orderflow.flow.inputs import parse_name, parse_phone
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
from orderflow.flow.scenes.onboarding import (
    LANGUAGE_LABELS,
    CitySelectionScene,
    pick_language,
)
from orderflow.sessions.models import AwaitingName, AwaitingPhone, Language, SceneName


class SettingsScene(Scene):
    name = SceneName.SETTINGS

    ACTIONS = {
        "change_name": SceneName.CHANGE_NAME,
        "change_number": SceneName.CHANGE_NUMBER,
        "change_city": SceneName.CHANGE_CITY,
        "change_language": SceneName.CHANGE_LANGUAGE,
        "branch_info": SceneName.BRANCH_INFO,
        "profile": SceneName.PROFILE,
    }

    async def on_enter(self, ctx: FlowContext) -> RenderDirective:
        return self.render(ctx, "settings", options=list(self.ACTIONS))

    async def handle(self, ctx: FlowContext, event: Event) -> Transition | None:
        if event.kind == EventKind.ACTION and event.name in self.ACTIONS:
            return goto(self.ACTIONS[event.name])
        return None


class ChangeNameScene(Scene):
    name = SceneName.CHANGE_NAME

    async def on_enter(self, ctx: FlowContext) -> RenderDirective:
        self.expect(ctx, AwaitingName)
        return self.render(ctx, "change_name.prompt", data={"current": ctx.session.name})

    async def handle(self, ctx: FlowContext, event: Event) -> Transition | None:
        if event.kind != EventKind.TEXT or not event.value:
            return None
        name = parse_name(event.value)
        if name is None:
            return stay("change_name.invalid")
        ctx.session.name = name
        ctx.session.scene.pending = None
        return goto(SceneName.SETTINGS, "change_name.saved")


class ChangeNumberScene(Scene):
    """Phone number change. A new number has to be verified again."""

    name = SceneName.CHANGE_NUMBER

    async def on_enter(self, ctx: FlowContext) -> RenderDirective:
        self.expect(ctx, AwaitingPhone)
        return self.render(ctx, "change_number.prompt", options=["share_contact"])

    async def handle(self, ctx: FlowContext, event: Event) -> Transition | None:
        if event.kind == EventKind.CONTACT:
            raw_phone = str(event.payload.get("phone", ""))
        elif event.kind == EventKind.TEXT and event.value:
            raw_phone = event.value
        else:
            return None

        phone = parse_phone(raw_phone, ctx.config.phone_pattern)
        if phone is None:
            return stay("change_number.invalid")

        session = ctx.session
        if phone != session.phone:
            session.phone = phone
            session.is_authenticated = False
            session.last_otp_sent = None
        session.scene.pending = None
        return goto(SceneName.SETTINGS, "change_number.saved")


class ChangeCityScene(CitySelectionScene):
    """City change, also the recovery scene when an order needs a city."""

    name = SceneName.CHANGE_CITY
    template = "change_city.select"

    def next_scene(self, ctx: FlowContext) -> SceneName:
        if ctx.session.scene.previous == SceneName.SETTINGS:
            return SceneName.SETTINGS
        return SceneName.MAIN_MENU


class ChangeLanguageScene(Scene):
    name = SceneName.CHANGE_LANGUAGE

    async def on_enter(self, ctx: FlowContext) -> RenderDirective:
        return self.render(
            ctx,
            "change_language.select",
            options=[f"language:{language.value}" for language in Language],
            data={
                "labels": {lang.value: label for lang, label in LANGUAGE_LABELS.items()},
                "current": ctx.language,
            },
        )

    async def handle(self, ctx: FlowContext, event: Event) -> Transition | None:
        language = pick_language(event)
        if language is None:
            return None
        ctx.session.language = language
        return goto(SceneName.SETTINGS, "change_language.saved")


class BranchInfoScene(Scene):
    """Branches of the selected city; choosing one makes it the pickup branch."""

    name = SceneName.BRANCH_INFO

    async def on_enter(self, ctx: FlowContext) -> RenderDirective:
        branches = await fetch_listing(ctx, "branches", self._fetch(ctx))
        return self.render(
            ctx,
            "branch_info.list",
            options=[f"branch:{branch.get('id')}" for branch in branches],
            data={"branches": listing_options(ctx, branches), "city": ctx.session.current_city},
        )

    async def handle(self, ctx: FlowContext, event: Event) -> Transition | None:
        branch = await choose_entity(ctx, event, "branch", "branches", self._fetch(ctx))
        if branch is None:
            return None
        ctx.session.selected_branch = branch.get("id")
        ctx.emit("branch_details", branch=branch)
        return goto(SceneName.SETTINGS, "branch_info.selected")

    @staticmethod
    def _fetch(ctx: FlowContext):
        city_id = ctx.session.selected_city or 0
        return lambda: ctx.catalog.list_branches(city_id)


class ProfileScene(Scene):
    name = SceneName.PROFILE

    async def on_enter(self, ctx: FlowContext) -> RenderDirective:
        session = ctx.session
        return self.render(
            ctx,
            "profile",
            data={
                "name": session.name,
                "phone": session.phone,
                "city": session.current_city,
                "language": session.language.value,
                "orders": len(session.orders),
            },
        )
