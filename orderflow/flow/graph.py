"""Static scene graph.

Every scene is described once by an immutable SceneNode. Breadcrumbs and
back navigation are derived from the parent links in this table rather
than coded per scene.
"""

from dataclasses import dataclass

from orderflow.flow.guards import (
    CART_NOT_EMPTY,
    CATEGORY_SELECTED,
    CITY_SELECTED,
    DELIVERY_CHOSEN,
    IS_AUTHENTICATED,
    REGISTERED,
    Guard,
)
from orderflow.sessions.models import SceneName, SceneState


@dataclass(frozen=True)
class SceneNode:
    """Static definition of a scene.

    ``custom_back_target`` overrides the parent for scenes entered from
    several origins.
    """

    name: SceneName
    parent: SceneName | None = None
    allows_back: bool = True
    shows_breadcrumbs: bool = True
    custom_back_target: SceneName | None = None
    guards: tuple[Guard, ...] = ()


def _node(name: SceneName, **kwargs) -> tuple[SceneName, SceneNode]:
    return name, SceneNode(name=name, **kwargs)


S = SceneName

SCENE_GRAPH: dict[SceneName, SceneNode] = dict(
    [
        # Onboarding
        _node(S.LANGUAGE_SELECT, allows_back=False, shows_breadcrumbs=False),
        _node(S.REGISTRATION, allows_back=False, shows_breadcrumbs=False),
        _node(
            S.WELCOME,
            allows_back=False,
            shows_breadcrumbs=False,
            guards=(REGISTERED,),
        ),
        _node(
            S.MAIN_MENU,
            allows_back=False,
            shows_breadcrumbs=False,
            guards=(REGISTERED,),
        ),
        _node(
            S.AUTHENTICATION,
            shows_breadcrumbs=False,
            custom_back_target=S.MAIN_MENU,
            guards=(REGISTERED,),
        ),
        # Settings
        _node(S.SETTINGS, parent=S.MAIN_MENU, guards=(REGISTERED,)),
        _node(S.CHANGE_NAME, parent=S.SETTINGS),
        _node(S.CHANGE_NUMBER, parent=S.SETTINGS),
        _node(S.CHANGE_CITY, parent=S.SETTINGS, guards=(REGISTERED,)),
        _node(S.CHANGE_LANGUAGE, parent=S.SETTINGS),
        _node(S.BRANCH_INFO, parent=S.SETTINGS, guards=(CITY_SELECTED,)),
        _node(S.PROFILE, parent=S.SETTINGS, guards=(REGISTERED,)),
        # Ordering
        _node(S.DELIVERY_TYPE, parent=S.MAIN_MENU, guards=(REGISTERED, CITY_SELECTED)),
        _node(S.PICKUP, parent=S.DELIVERY_TYPE, guards=(CITY_SELECTED,)),
        _node(S.DELIVERY, parent=S.DELIVERY_TYPE),
        _node(S.CATEGORIES, parent=S.DELIVERY_TYPE, guards=(CITY_SELECTED, DELIVERY_CHOSEN)),
        _node(S.PRODUCTS, parent=S.CATEGORIES, guards=(CATEGORY_SELECTED,)),
        _node(S.CART, parent=S.CATEGORIES, guards=(CART_NOT_EMPTY,)),
        # Checkout
        _node(S.CHECKOUT_TIME, parent=S.CART, guards=(CART_NOT_EMPTY, DELIVERY_CHOSEN)),
        _node(S.CHECKOUT_PAYMENT, parent=S.CHECKOUT_TIME, guards=(CART_NOT_EMPTY,)),
        _node(S.CHECKOUT_PHONE, parent=S.CHECKOUT_PAYMENT, guards=(CART_NOT_EMPTY,)),
        _node(S.CHECKOUT_CUTLERY, parent=S.CHECKOUT_PHONE, guards=(CART_NOT_EMPTY,)),
        _node(
            S.CHECKOUT_CONFIRM,
            parent=S.CHECKOUT_CUTLERY,
            guards=(CART_NOT_EMPTY, IS_AUTHENTICATED),
        ),
        _node(S.ORDER_PLACED, allows_back=False, shows_breadcrumbs=False),
        # History and feedback
        _node(S.ORDER_HISTORY, parent=S.MAIN_MENU, guards=(REGISTERED, IS_AUTHENTICATED)),
        _node(S.FEEDBACK, parent=S.MAIN_MENU),
        _node(S.REVIEW, parent=S.FEEDBACK),
    ]
)


class SceneGraph:
    """Navigation queries over the static scene table."""

    def __init__(self, nodes: dict[SceneName, SceneNode] | None = None):
        self._nodes = nodes if nodes is not None else SCENE_GRAPH
        missing = set(SceneName) - set(self._nodes)
        if missing:
            raise ValueError(f"Scene graph is missing nodes: {sorted(m.value for m in missing)}")

    def node(self, scene: SceneName) -> SceneNode:
        return self._nodes[scene]

    def breadcrumbs(self, scene: SceneName) -> list[SceneName]:
        """Path from the root to the scene, following parent links."""
        path: list[SceneName] = []
        current: SceneName | None = scene
        while current is not None and current not in path:
            path.append(current)
            current = self._nodes[current].parent
        path.reverse()
        return path

    def back_target(self, scene: SceneName, state: SceneState) -> SceneName | None:
        """Where 'back' leads from a scene, or None if the scene has no back.

        Resolution order: custom target, parent, previous scene, main menu.
        """
        node = self._nodes[scene]
        if not node.allows_back:
            return None
        if node.custom_back_target is not None:
            return node.custom_back_target
        if node.parent is not None:
            return node.parent
        if state.previous is not None and state.previous != scene:
            return state.previous
        return SceneName.MAIN_MENU
