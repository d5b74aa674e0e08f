"""Order history and feedback scenes."""

from orderflow.flow.checkout import find_order, repeat_order
from orderflow.flow.directives import RenderDirective
from orderflow.flow.events import Event, EventKind
from orderflow.flow.scenes.base import FlowContext, Scene, Transition, goto, stay
from orderflow.sessions.models import AwaitingReview, SceneName

MAX_REVIEW_LENGTH = 1000


class OrderHistoryScene(Scene):
    """Recent orders; an opened order can be repeated into the cart."""

    name = SceneName.ORDER_HISTORY

    async def on_enter(self, ctx: FlowContext) -> RenderDirective:
        session = ctx.session
        viewed = find_order(session, session.last_viewed_order)
        orders = list(reversed(session.orders))
        options = [f"order:{order.number}" for order in orders]
        if viewed is not None:
            options.append("repeat")

        return self.render(
            ctx,
            "order_history.detail" if viewed else "order_history.list",
            options=options,
            data={
                "orders": [
                    {
                        "number": order.number,
                        "total": order.total,
                        "placed_at": order.placed_at.isoformat(),
                    }
                    for order in orders
                ],
                "viewed": viewed.model_dump(mode="json") if viewed else None,
            },
        )

    async def handle(self, ctx: FlowContext, event: Event) -> Transition | None:
        session = ctx.session

        if event.is_action("order"):
            order = find_order(session, event.value)
            if order is None:
                return stay("order_history.not_found")
            session.last_viewed_order = order.number
            return stay()

        if event.is_action("repeat"):
            order = find_order(session, session.last_viewed_order)
            if order is None:
                return stay("order_history.nothing_to_repeat")
            repeat_order(session, order)
            return goto(SceneName.CART, "order_history.repeated")

        return None


class FeedbackScene(Scene):
    name = SceneName.FEEDBACK

    async def on_enter(self, ctx: FlowContext) -> RenderDirective:
        return self.render(ctx, "feedback", options=["review", "write_us"])

    async def handle(self, ctx: FlowContext, event: Event) -> Transition | None:
        if event.is_action("review"):
            return goto(SceneName.REVIEW)
        if event.is_action("write_us"):
            return stay("feedback.contacts")
        return None


class ReviewScene(Scene):
    """Free-text review, forwarded to the transport as an effect."""

    name = SceneName.REVIEW

    async def on_enter(self, ctx: FlowContext) -> RenderDirective:
        self.expect(ctx, AwaitingReview)
        return self.render(ctx, "review.prompt")

    async def handle(self, ctx: FlowContext, event: Event) -> Transition | None:
        if event.kind != EventKind.TEXT or not event.value or not event.value.strip():
            return None
        ctx.emit(
            "review_submitted",
            text=event.value.strip()[:MAX_REVIEW_LENGTH],
            name=ctx.session.name,
            phone=ctx.session.phone,
        )
        ctx.session.scene.pending = None
        return goto(SceneName.FEEDBACK, "review.thanks")
