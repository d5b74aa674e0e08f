"""Checkout scenes: time, payment, contact phone, cutlery, confirmation."""

from orderflow.flow.checkout import generate_time_slots, place_order
from orderflow.flow.directives import RenderDirective
from orderflow.flow.events import Event, EventKind
from orderflow.flow.inputs import parse_phone
from orderflow.flow.scenes.base import FlowContext, Scene, Transition, goto, stay
from orderflow.observability.logging import get_logger
from orderflow.sessions.models import (
    AwaitingAdditionalPhone,
    AwaitingCutleryChoice,
    AwaitingOrderConfirmation,
    AwaitingTimeSlot,
    OrderDraft,
    PaymentMethod,
    SceneName,
)

logger = get_logger(__name__)

ASAP = "asap"


class CheckoutTimeScene(Scene):
    """Pickup or delivery time: as soon as possible or a specific slot."""

    name = SceneName.CHECKOUT_TIME

    async def on_enter(self, ctx: FlowContext) -> RenderDirective:
        pending = self.awaiting(ctx, AwaitingTimeSlot)
        if pending is not None:
            return self.render(
                ctx,
                "checkout.time_slots",
                options=[*(f"slot:{slot}" for slot in pending.slots), "nearest"],
                data={"slots": list(pending.slots)},
            )
        return self.render(ctx, "checkout.time", options=["nearest", "specific"])

    async def handle(self, ctx: FlowContext, event: Event) -> Transition | None:
        order = ctx.session.order

        if event.is_action("nearest"):
            order.pickup_time = ASAP
            ctx.session.scene.pending = None
            return goto(SceneName.CHECKOUT_PAYMENT)

        if event.is_action("specific"):
            slots = generate_time_slots(
                ctx.local_now, ctx.config.first_slot_hour, ctx.config.last_slot_hour
            )
            if not slots:
                return stay("checkout.no_slots")
            self.expect(ctx, AwaitingTimeSlot, slots=tuple(slots))
            return stay()

        pending = self.awaiting(ctx, AwaitingTimeSlot)
        if pending is None:
            return None

        if event.is_action("slot"):
            chosen = event.value
        elif event.kind == EventKind.TEXT and event.value:
            chosen = event.value.strip()
        else:
            return None

        if chosen not in pending.slots:
            return stay("checkout.invalid_slot")
        order.pickup_time = chosen
        ctx.session.scene.pending = None
        return goto(SceneName.CHECKOUT_PAYMENT)


class CheckoutPaymentScene(Scene):
    name = SceneName.CHECKOUT_PAYMENT

    async def on_enter(self, ctx: FlowContext) -> RenderDirective:
        return self.render(
            ctx,
            "checkout.payment",
            options=[f"payment:{method.value}" for method in PaymentMethod],
            data={"total": ctx.session.cart.total},
        )

    async def handle(self, ctx: FlowContext, event: Event) -> Transition | None:
        if not event.is_action("payment"):
            return None
        try:
            method = PaymentMethod(event.value)
        except ValueError:
            return stay("checkout.invalid_payment")
        ctx.session.order.payment_method = method
        return goto(SceneName.CHECKOUT_PHONE)


class CheckoutPhoneScene(Scene):
    """Optional additional contact phone for the order."""

    name = SceneName.CHECKOUT_PHONE

    async def on_enter(self, ctx: FlowContext) -> RenderDirective:
        self.expect(ctx, AwaitingAdditionalPhone)
        return self.render(
            ctx,
            "checkout.additional_phone",
            options=["skip"],
            data={"phone": ctx.session.phone},
        )

    async def handle(self, ctx: FlowContext, event: Event) -> Transition | None:
        order = ctx.session.order
        if event.is_action("skip"):
            order.additional_phone = None
            ctx.session.scene.pending = None
            return goto(SceneName.CHECKOUT_CUTLERY)

        if event.kind == EventKind.CONTACT:
            raw_phone = str(event.payload.get("phone", ""))
        elif event.kind == EventKind.TEXT and event.value:
            raw_phone = event.value
        else:
            return None

        phone = parse_phone(raw_phone, ctx.config.phone_pattern)
        if phone is None:
            return stay("checkout.invalid_phone")
        order.additional_phone = phone
        ctx.session.scene.pending = None
        return goto(SceneName.CHECKOUT_CUTLERY)


class CheckoutCutleryScene(Scene):
    name = SceneName.CHECKOUT_CUTLERY

    async def on_enter(self, ctx: FlowContext) -> RenderDirective:
        self.expect(ctx, AwaitingCutleryChoice)
        return self.render(ctx, "checkout.cutlery", options=["yes", "no"])

    async def handle(self, ctx: FlowContext, event: Event) -> Transition | None:
        if event.kind != EventKind.ACTION or event.name not in ("yes", "no"):
            return None
        ctx.session.order.include_cutlery = event.name == "yes"
        ctx.session.scene.pending = None
        return goto(SceneName.CHECKOUT_CONFIRM)


class CheckoutConfirmScene(Scene):
    name = SceneName.CHECKOUT_CONFIRM

    async def on_enter(self, ctx: FlowContext) -> RenderDirective:
        self.expect(ctx, AwaitingOrderConfirmation)
        session = ctx.session
        return self.render(
            ctx,
            "checkout.confirm",
            options=["confirm", "cancel"],
            data={
                "cart": session.cart.to_summary(),
                "order": session.order.model_dump(mode="json"),
                "phone": session.order.additional_phone or session.phone,
                "branch_id": session.selected_branch,
            },
        )

    async def handle(self, ctx: FlowContext, event: Event) -> Transition | None:
        session = ctx.session

        if event.is_action("cancel"):
            session.order = OrderDraft(
                delivery_type=session.order.delivery_type, address=session.order.address
            )
            session.scene.pending = None
            return goto(SceneName.MAIN_MENU, "checkout.cancelled")

        if not event.is_action("confirm"):
            return None

        session.scene.pending = None
        order = place_order(session, ctx.now, ctx.config.order_history_limit)
        ctx.emit("order_placed", order=order.model_dump(mode="json"))
        logger.info("order_placed", order_number=order.number, total=order.total)
        return goto(SceneName.ORDER_PLACED)


class OrderPlacedScene(Scene):
    name = SceneName.ORDER_PLACED

    async def on_enter(self, ctx: FlowContext) -> RenderDirective:
        orders = ctx.session.orders
        last = orders[-1] if orders else None
        return self.render(
            ctx,
            "order_placed",
            options=["main_menu", "new_order"],
            data={"number": last.number, "total": last.total} if last else {},
        )

    async def handle(self, ctx: FlowContext, event: Event) -> Transition | None:
        if event.is_action("main_menu"):
            return goto(SceneName.MAIN_MENU)
        if event.is_action("new_order"):
            return goto(SceneName.DELIVERY_TYPE)
        return None
