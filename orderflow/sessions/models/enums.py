"""Enums for session state."""

from enum import Enum


class Language(str, Enum):
    """Interface languages."""

    EN = "en"
    RU = "ru"
    UZ = "uz"


class SceneName(str, Enum):
    """Named states (screens) of the conversation."""

    LANGUAGE_SELECT = "language_select"
    REGISTRATION = "registration"
    WELCOME = "welcome"
    MAIN_MENU = "main_menu"
    AUTHENTICATION = "authentication"

    SETTINGS = "settings"
    CHANGE_NAME = "change_name"
    CHANGE_NUMBER = "change_number"
    CHANGE_CITY = "change_city"
    CHANGE_LANGUAGE = "change_language"
    BRANCH_INFO = "branch_info"
    PROFILE = "profile"

    DELIVERY_TYPE = "delivery_type"
    PICKUP = "pickup"
    DELIVERY = "delivery"
    CATEGORIES = "categories"
    PRODUCTS = "products"
    CART = "cart"
    CHECKOUT_TIME = "checkout_time"
    CHECKOUT_PAYMENT = "checkout_payment"
    CHECKOUT_PHONE = "checkout_phone"
    CHECKOUT_CUTLERY = "checkout_cutlery"
    CHECKOUT_CONFIRM = "checkout_confirm"
    ORDER_PLACED = "order_placed"

    ORDER_HISTORY = "order_history"
    FEEDBACK = "feedback"
    REVIEW = "review"


class DeliveryType(str, Enum):
    """How an order reaches the customer."""

    PICKUP = "pickup"
    DELIVERY = "delivery"


class PaymentMethod(str, Enum):
    """Supported payment methods."""

    CASH = "cash"
    CLICK = "click"
    PAYME = "payme"
