"""Locator intents for the storefront pages.

Each ``Target`` pairs a human description (used in failure messages) with a
factory that resolves it against a page, so the same intent works for any
page the session hands out.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from playwright.async_api import Locator, Page


@dataclass(frozen=True)
class Target:
    description: str
    locate: Callable[[Page], Locator]

    def __str__(self) -> str:
        return self.description


def _css(description: str, selector: str) -> Target:
    return Target(description, lambda page: page.locator(selector))


def _role(description: str, role: str, name: str) -> Target:
    return Target(description, lambda page: page.get_by_role(role, name=name, exact=True))


# Navigation
LOGIN_LINK = _role("Login link", "link", "Log in")
CART_LINK = _role("Cart link", "link", "Cart")

# Login modal
LOGIN_MODAL = _css("Login modal", "#logInModal")
LOGIN_USERNAME_INPUT = _css("Username field", "#loginusername")
LOGIN_PASSWORD_INPUT = _css("Password field", "#loginpassword")
LOGIN_BUTTON = _role("Login button", "button", "Log in")
LOGGED_IN_USER = _css("Logged in user", "#nameofuser")

# Product page
PRODUCT_TITLE = _css("Product title", "h2.name")
PRODUCT_PRICE = _css("Product price", "h3.price-container")
ADD_TO_CART_BUTTON = _role("Add to cart button", "link", "Add to cart")

# Cart
CART_TABLE = _css("Cart table", "#tbodyid")
CART_ITEM_ROW = _css("Cart items", "#tbodyid tr")
PLACE_ORDER_BUTTON = _role("Place order button", "button", "Place Order")

# Checkout modal
ORDER_MODAL = _css("Order modal", "#orderModal")
ORDER_NAME_INPUT = _css("Name field", "#name")
ORDER_COUNTRY_INPUT = _css("Country field", "#country")
ORDER_CITY_INPUT = _css("City field", "#city")
ORDER_CARD_INPUT = _css("Credit card field", "#card")
ORDER_MONTH_INPUT = _css("Month field", "#month")
ORDER_YEAR_INPUT = _css("Year field", "#year")
PURCHASE_BUTTON = _role("Purchase button", "button", "Purchase")

# Order confirmation
SWEET_ALERT = _css("Order confirmation modal", ".sweet-alert")
SWEET_ALERT_TITLE = _css("Order success message", ".sweet-alert h2")
SWEET_ALERT_MESSAGE = _css("Order details", ".sweet-alert p")
SWEET_ALERT_OK_BUTTON = _role("OK button", "button", "OK")


def product_link(product_name: str) -> Target:
    return _role(f"Product link '{product_name}'", "link", product_name)


def cart_item_named(product_name: str) -> Target:
    return Target(
        f"Cart item with product '{product_name}'",
        lambda page: page.locator("#tbodyid tr").filter(has_text=product_name),
    )
