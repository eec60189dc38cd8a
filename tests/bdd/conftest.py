"""Step definitions for features/checkout.feature.

pytest-bdd steps are synchronous; each one hands its coroutine to a blocking
portal so every Playwright object lives on the portal's event loop for the
whole scenario.
"""
import pytest
from anyio.from_thread import start_blocking_portal
from pytest_bdd import given, parsers, then, when

from storefront_e2e.config import get_settings
from storefront_e2e.journey import CheckoutJourney
from storefront_e2e.journey_data import CHECKOUT_DETAILS, LOGIN_CREDENTIALS
from storefront_e2e.playwright_client import PlaywrightClient


@pytest.fixture
def portal():
    with start_blocking_portal() as portal:
        yield portal


@pytest.fixture
def journey(portal):
    """One browser session shared by every step of the scenario."""
    settings = get_settings()
    client = PlaywrightClient(settings)
    try:
        yield portal.call(CheckoutJourney.start, client, settings)
    finally:
        portal.call(client.release)


@given("I am on the DemoBlaze home page")
def on_home_page(portal, journey):
    portal.call(journey.open_home)


@when("I log in with valid credentials")
def log_in(portal, journey):
    portal.call(journey.log_in, LOGIN_CREDENTIALS)


@then("I should be successfully authenticated")
def authenticated(portal, journey):
    portal.call(journey.verify_authenticated)


@when(parsers.parse('I navigate to and select "{product}"'))
def select_product(portal, journey, product):
    portal.call(journey.select_product, product)


@then("the product details should be displayed")
def product_details_displayed(portal, journey):
    portal.call(journey.verify_product_details)


@when("I add the product to cart")
def add_to_cart(portal, journey):
    portal.call(journey.add_to_cart)


@then("a success message should appear")
def success_message(portal, journey):
    portal.call(journey.verify_added_to_cart)


@then("the cart items should be verified")
def cart_items_verified(portal, journey):
    portal.call(journey.verify_cart_items)


@when("I complete the checkout form with valid details")
def complete_checkout_form(portal, journey):
    portal.call(journey.fill_checkout_form, CHECKOUT_DETAILS)


@when("I submit the order")
def submit_order(portal, journey):
    portal.call(journey.submit_order)


@then("the order should be placed successfully")
def order_placed(portal, journey):
    portal.call(journey.verify_order_placed)


@then(parsers.parse('I should see the "{message}" modal'))
def confirmation_modal(portal, journey, message):
    portal.call(journey.verify_confirmation_message, message)
