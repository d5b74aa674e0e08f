"""Scene handlers of the conversation, one per SceneName."""

from orderflow.flow.scenes.base import FlowContext, Scene, Transition, goto, stay
from orderflow.flow.scenes.checkout import (
    CheckoutConfirmScene,
    CheckoutCutleryScene,
    CheckoutPaymentScene,
    CheckoutPhoneScene,
    CheckoutTimeScene,
    OrderPlacedScene,
)
from orderflow.flow.scenes.history import FeedbackScene, OrderHistoryScene, ReviewScene
from orderflow.flow.scenes.onboarding import (
    AuthenticationScene,
    LanguageSelectScene,
    MainMenuScene,
    RegistrationScene,
    WelcomeScene,
)
from orderflow.flow.scenes.ordering import (
    CartScene,
    CategoriesScene,
    DeliveryScene,
    DeliveryTypeScene,
    PickupScene,
    ProductsScene,
)
from orderflow.flow.scenes.settings import (
    BranchInfoScene,
    ChangeCityScene,
    ChangeLanguageScene,
    ChangeNameScene,
    ChangeNumberScene,
    ProfileScene,
    SettingsScene,
)
from orderflow.sessions.models import SceneName

SCENE_TYPES: tuple[type[Scene], ...] = (
    LanguageSelectScene,
    RegistrationScene,
    WelcomeScene,
    MainMenuScene,
    AuthenticationScene,
    SettingsScene,
    ChangeNameScene,
    ChangeNumberScene,
    ChangeCityScene,
    ChangeLanguageScene,
    BranchInfoScene,
    ProfileScene,
    DeliveryTypeScene,
    PickupScene,
    DeliveryScene,
    CategoriesScene,
    ProductsScene,
    CartScene,
    CheckoutTimeScene,
    CheckoutPaymentScene,
    CheckoutPhoneScene,
    CheckoutCutleryScene,
    CheckoutConfirmScene,
    OrderPlacedScene,
    OrderHistoryScene,
    FeedbackScene,
    ReviewScene,
)


def build_scenes() -> dict[SceneName, Scene]:
    """Instantiate every scene handler, keyed by scene name."""
    scenes = {scene_type.name: scene_type() for scene_type in SCENE_TYPES}
    missing = set(SceneName) - set(scenes)
    if missing:
        raise ValueError(f"No handler for scenes: {sorted(m.value for m in missing)}")
    return scenes


__all__ = [
    "FlowContext",
    "SCENE_TYPES",
    "Scene",
    "Transition",
    "build_scenes",
    "goto",
    "stay",
]
