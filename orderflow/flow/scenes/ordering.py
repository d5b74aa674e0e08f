"""Order flow scenes: delivery type, pickup or delivery, browsing and the cart."""

from typing import Any

from pydantic import ValidationError

from orderflow.compaction.optimizer import resolve_name
from orderflow.flow.directives import RenderDirective
from orderflow.flow.events import Event, EventKind
from orderflow.flow.inputs import parse_address, parse_quantity
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
    AwaitingAddress,
    AwaitingQuantity,
    Coordinates,
    DeliveryType,
    SceneName,
)

logger = get_logger(__name__)


class DeliveryTypeScene(Scene):
    name = SceneName.DELIVERY_TYPE

    async def on_enter(self, ctx: FlowContext) -> RenderDirective:
        return self.render(
            ctx,
            "delivery_type.select",
            options=[delivery.value for delivery in DeliveryType],
            data={"city": ctx.session.current_city},
        )

    async def handle(self, ctx: FlowContext, event: Event) -> Transition | None:
        if event.kind != EventKind.ACTION or event.name not in {d.value for d in DeliveryType}:
            return None
        delivery_type = DeliveryType(event.name)
        ctx.session.order.delivery_type = delivery_type
        if delivery_type == DeliveryType.PICKUP:
            return goto(SceneName.PICKUP)
        return goto(SceneName.DELIVERY)


class PickupScene(Scene):
    name = SceneName.PICKUP

    async def on_enter(self, ctx: FlowContext) -> RenderDirective:
        branches = await fetch_listing(ctx, "branches", self._fetch(ctx))
        return self.render(
            ctx,
            "pickup.select_branch",
            options=[f"branch:{branch.get('id')}" for branch in branches],
            data={"branches": listing_options(ctx, branches)},
        )

    async def handle(self, ctx: FlowContext, event: Event) -> Transition | None:
        branch = await choose_entity(ctx, event, "branch", "branches", self._fetch(ctx))
        if branch is None:
            return None
        ctx.session.selected_branch = branch.get("id")
        ctx.session.order.delivery_type = DeliveryType.PICKUP
        return goto(SceneName.CATEGORIES)

    @staticmethod
    def _fetch(ctx: FlowContext):
        city_id = ctx.session.selected_city or 0
        return lambda: ctx.catalog.list_branches(city_id)


class DeliveryScene(Scene):
    """Delivery address, typed or shared as a location."""

    name = SceneName.DELIVERY

    async def on_enter(self, ctx: FlowContext) -> RenderDirective:
        self.expect(ctx, AwaitingAddress)
        return self.render(
            ctx,
            "delivery.address",
            options=["share_location"],
            data={"current": ctx.session.order.address},
        )

    async def handle(self, ctx: FlowContext, event: Event) -> Transition | None:
        order = ctx.session.order
        if event.kind == EventKind.LOCATION:
            try:
                coordinates = Coordinates(
                    latitude=event.payload.get("latitude"),
                    longitude=event.payload.get("longitude"),
                )
            except ValidationError:
                return stay("delivery.invalid_location")
            order.coordinates = coordinates
            order.address = event.payload.get("address") or (
                f"{coordinates.latitude:.6f}, {coordinates.longitude:.6f}"
            )
        elif event.kind == EventKind.TEXT and event.value:
            address = parse_address(event.value)
            if address is None:
                return stay("delivery.invalid_address")
            order.address = address
            order.coordinates = None
        else:
            return None

        order.delivery_type = DeliveryType.DELIVERY
        ctx.session.scene.pending = None
        return goto(SceneName.CATEGORIES)


class CategoriesScene(Scene):
    name = SceneName.CATEGORIES

    async def on_enter(self, ctx: FlowContext) -> RenderDirective:
        categories = await fetch_listing(ctx, "categories", self._fetch(ctx))
        options = [f"category:{category.get('id')}" for category in categories]
        if not ctx.session.cart.is_empty():
            options.append("cart")
        return self.render(
            ctx,
            "categories.list",
            options=options,
            data={
                "categories": listing_options(ctx, categories),
                "cart": ctx.session.cart.to_summary(),
            },
        )

    async def handle(self, ctx: FlowContext, event: Event) -> Transition | None:
        if event.is_action("cart"):
            return goto(SceneName.CART)

        category = await choose_entity(ctx, event, "category", "categories", self._fetch(ctx))
        if category is None:
            return None

        selection = ctx.session.selection
        selection.selected_category = category
        selection.selected_product = None
        selection.touched_at = ctx.now
        return goto(SceneName.PRODUCTS)

    @staticmethod
    def _fetch(ctx: FlowContext):
        city_id = ctx.session.selected_city or 0
        return lambda: ctx.catalog.list_categories(city_id)


class ProductsScene(Scene):
    """Products of the selected category and the quantity picker."""

    name = SceneName.PRODUCTS

    async def on_enter(self, ctx: FlowContext) -> RenderDirective:
        selection = ctx.session.selection
        pending = self.awaiting(ctx, AwaitingQuantity)

        if pending is not None and selection.selected_product is not None:
            product = selection.selected_product
            return self.render(
                ctx,
                "products.detail",
                options=["decrease", "increase", "add", "back_to_products"],
                data={
                    "product": {
                        "id": product.get("id"),
                        "name": resolve_name(product, ctx.language),
                        "price": product.get("price"),
                        "description": product.get("description"),
                    },
                    "quantity": self._quantity(ctx, pending.product_id),
                },
            )

        products = await fetch_listing(ctx, "products", self._fetch(ctx))
        options = [f"product:{product.get('id')}" for product in products]
        if not ctx.session.cart.is_empty():
            options.append("cart")
        return self.render(
            ctx,
            "products.list",
            options=options,
            data={
                "category": resolve_name(selection.selected_category or {}, ctx.language),
                "products": [
                    {**option, "price": product.get("price")}
                    for option, product in zip(listing_options(ctx, products), products)
                ],
            },
        )

    async def handle(self, ctx: FlowContext, event: Event) -> Transition | None:
        selection = ctx.session.selection
        pending = self.awaiting(ctx, AwaitingQuantity)

        if event.is_action("cart"):
            return goto(SceneName.CART)

        if pending is not None:
            if event.is_action("increase"):
                selection.remember_quantity(
                    pending.product_id, min(self._quantity(ctx, pending.product_id) + 1, 99)
                )
                return stay()
            if event.is_action("decrease"):
                selection.remember_quantity(
                    pending.product_id, max(self._quantity(ctx, pending.product_id) - 1, 1)
                )
                return stay()
            if event.is_action("add"):
                quantity = self._quantity(ctx, pending.product_id)
                return self._add_to_cart(ctx, pending.product_id, quantity)
            if event.is_action("back_to_products"):
                ctx.session.scene.pending = None
                selection.selected_product = None
                return stay()
            if event.kind == EventKind.TEXT and event.value and event.value.strip().isdigit():
                quantity = parse_quantity(event.value)
                if quantity is None:
                    return stay("products.invalid_quantity")
                return self._add_to_cart(ctx, pending.product_id, quantity)

        product = await choose_entity(ctx, event, "product", "products", self._fetch(ctx))
        if product is None and event.is_action("product") and event.value and event.value.isdigit():
            product = await ctx.catalog.get_product(int(event.value))
        if product is None:
            return None

        selection.selected_product = product
        selection.touched_at = ctx.now
        self.expect(ctx, AwaitingQuantity, product_id=product.get("id"))
        return stay()

    def _quantity(self, ctx: FlowContext, product_id: int) -> int:
        return ctx.session.selection.product_quantities.get(str(product_id), 1)

    def _add_to_cart(self, ctx: FlowContext, product_id: int, quantity: int) -> Transition:
        session = ctx.session
        product: dict[str, Any] = session.selection.selected_product or {}
        price = product.get("price")
        name = resolve_name(product, ctx.language)
        if product.get("id") != product_id or price is None or not name:
            session.scene.pending = None
            return stay("products.unavailable")

        session.cart = session.cart.add_item(product_id, name, float(price), quantity)
        session.selection.remember_quantity(product_id, quantity)
        session.selection.selected_product = None
        session.scene.pending = None
        logger.debug("cart_item_added", product_id=product_id, quantity=quantity)
        return stay("products.added_to_cart")

    @staticmethod
    def _fetch(ctx: FlowContext):
        category = ctx.session.selection.selected_category or {}
        category_id = category.get("id") or 0
        return lambda: ctx.catalog.list_products(category_id)


class CartScene(Scene):
    name = SceneName.CART

    async def on_enter(self, ctx: FlowContext) -> RenderDirective:
        cart = ctx.session.cart
        options = ["checkout", "continue", "clear"]
        for item in cart.items:
            options.extend([f"increase:{item.id}", f"decrease:{item.id}", f"remove:{item.id}"])
        return self.render(ctx, "cart.summary", options=options, data=cart.to_summary())

    async def handle(self, ctx: FlowContext, event: Event) -> Transition | None:
        if event.kind != EventKind.ACTION:
            return None

        session = ctx.session
        if event.name == "checkout":
            return goto(SceneName.CHECKOUT_TIME)
        if event.name == "continue":
            return goto(SceneName.CATEGORIES)
        if event.name == "clear":
            session.cart = session.cart.clear()
            return goto(SceneName.CATEGORIES, "cart.cleared")

        item_id = int(event.value) if event.value and event.value.isdigit() else None
        item = session.cart.get_item(item_id) if item_id is not None else None
        if item is None:
            return None

        if event.name == "increase":
            session.cart = session.cart.set_quantity(item.id, item.quantity + 1)
        elif event.name == "decrease":
            session.cart = session.cart.set_quantity(item.id, item.quantity - 1)
        elif event.name == "remove":
            session.cart = session.cart.remove_item(item.id)
        else:
            return None

        if session.cart.is_empty():
            return goto(SceneName.CATEGORIES, "cart.empty")
        return stay()
