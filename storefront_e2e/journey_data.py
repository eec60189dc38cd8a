"""Fixed fixture data for the checkout journey."""
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Credentials:
    username: str
    password: str


@dataclass(frozen=True)
class CheckoutDetails:
    """Order form values; the storefront is the source of truth for rejecting them."""

    name: str
    country: str
    city: str
    card_number: str
    month: str
    year: str


LOGIN_CREDENTIALS = Credentials(username="test", password="test")

CHECKOUT_DETAILS = CheckoutDetails(
    name="John Doe",
    country="United States",
    city="New York",
    card_number="1234567890123456",
    month="12",
    year="2025",
)

TEST_PRODUCT = "Samsung galaxy s6"

PRODUCT_ADDED_MESSAGE = "added"
ORDER_SUCCESS_MESSAGE = "Thank you for your purchase!"

# Dialog texts the storefront raises when login is rejected
LOGIN_FAILURE_MARKERS = ("wrong password", "user does not exist")

ENTRIES_ENDPOINT = "/entries"
MIN_PRODUCTS = 5
