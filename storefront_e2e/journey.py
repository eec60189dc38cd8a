"""
Checkout journey
================

``CheckoutJourney`` drives one scenario through a fixed plan of steps:

    START → AUTHENTICATED → PRODUCT_SELECTED → IN_CART
          → CHECKOUT_FORM_FILLED → ORDER_SUBMITTED → CONFIRMED

Every step names the state it needs and the state it leaves behind. Steps
only move forward through the plan; the first failure halts the scenario and
every later step is reported as not executed.

Usage:
    async with checkout_journey(settings) as journey:
        await journey.run()
        results = journey.report()
"""
from __future__ import annotations

import enum
import logging
import re
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Awaitable, Callable, Dict, List, Optional, Tuple

import anyio

from storefront_e2e import selectors
from storefront_e2e.browser import Browser
from storefront_e2e.config import Settings, get_settings
from storefront_e2e.dialogs import DialogExpectation, DialogSynchronizer, PendingDialog
from storefront_e2e.errors import (
    ActionFailure,
    JourneyError,
    ScenarioHalted,
    StepFailure,
    StepOrderError,
    ValidationFailure,
)
from storefront_e2e.journey_data import (
    CHECKOUT_DETAILS,
    LOGIN_CREDENTIALS,
    LOGIN_FAILURE_MARKERS,
    ORDER_SUCCESS_MESSAGE,
    PRODUCT_ADDED_MESSAGE,
    TEST_PRODUCT,
    CheckoutDetails,
    Credentials,
)
from storefront_e2e.playwright_client import PlaywrightClient

logger = logging.getLogger(__name__)


class ScenarioState(enum.IntEnum):
    START = 0
    AUTHENTICATED = 1
    PRODUCT_SELECTED = 2
    IN_CART = 3
    CHECKOUT_FORM_FILLED = 4
    ORDER_SUBMITTED = 5
    CONFIRMED = 6


class StepStatus(str, enum.Enum):
    PASSED = "passed"
    FAILED = "failed"
    NOT_EXECUTED = "not_executed"


@dataclass(frozen=True)
class StepSpec:
    name: str
    phrase: str
    requires: ScenarioState
    produces: ScenarioState
    budget: float  # seconds
    expectation: str
    retryable: bool = False


@dataclass
class StepResult:
    name: str
    phrase: str
    status: StepStatus = StepStatus.NOT_EXECUTED
    duration: float = 0.0
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, object]:
        return {
            "name": self.name,
            "phrase": self.phrase,
            "status": self.status.value,
            "duration": round(self.duration, 3),
            "error": self.error,
        }


S = ScenarioState

STEP_PLAN: Tuple[StepSpec, ...] = (
    StepSpec("open_home", "I am on the DemoBlaze home page", S.START, S.START, 60,
             "the storefront home page is loaded", retryable=True),
    StepSpec("log_in", "I log in with valid credentials", S.START, S.START, 60,
             "the login form is submitted without a rejection dialog"),
    StepSpec("verify_authenticated", "I should be successfully authenticated", S.START, S.AUTHENTICATED, 30,
             "the navigation bar greets the logged in user", retryable=True),
    StepSpec("select_product", 'I navigate to and select "{product}"', S.AUTHENTICATED, S.AUTHENTICATED, 60,
             "the product link opens the product page"),
    StepSpec("verify_product_details", "the product details should be displayed",
             S.AUTHENTICATED, S.PRODUCT_SELECTED, 30,
             "title, price and add to cart button are shown", retryable=True),
    StepSpec("add_to_cart", "I add the product to cart", S.PRODUCT_SELECTED, S.PRODUCT_SELECTED, 30,
             "the add to cart button is clicked"),
    StepSpec("verify_added_to_cart", "a success message should appear", S.PRODUCT_SELECTED, S.PRODUCT_SELECTED, 30,
             f"a dialog containing {PRODUCT_ADDED_MESSAGE!r} appears"),
    StepSpec("verify_cart_items", "the cart items should be verified", S.PRODUCT_SELECTED, S.IN_CART, 30,
             "the cart holds exactly one row for the product", retryable=True),
    StepSpec("fill_checkout_form", "I complete the checkout form with valid details",
             S.IN_CART, S.CHECKOUT_FORM_FILLED, 60,
             "the order form is open and every field is filled"),
    StepSpec("submit_order", "I submit the order", S.CHECKOUT_FORM_FILLED, S.ORDER_SUBMITTED, 30,
             "the purchase button is clicked"),
    StepSpec("verify_order_placed", "the order should be placed successfully",
             S.ORDER_SUBMITTED, S.ORDER_SUBMITTED, 30,
             "the confirmation modal shows a title, order details and an OK button", retryable=True),
    StepSpec("verify_confirmation_message", 'I should see the "{message}" modal', S.ORDER_SUBMITTED, S.CONFIRMED, 30,
             "the confirmation title equals the expected message", retryable=True),
    StepSpec("close_confirmation", "I close the order confirmation", S.CONFIRMED, S.CONFIRMED, 30,
             "the confirmation modal is dismissed"),
)

del S

_PLAN_INDEX: Dict[str, int] = {spec.name: index for index, spec in enumerate(STEP_PLAN)}

_DIGITS = re.compile(r"\d")


def order_details_look_complete(text: str) -> bool:
    """Heuristic check that the confirmation paragraph carries real order data."""
    stripped = text.strip()
    if not stripped:
        return False
    lowered = stripped.lower()
    has_amount = "amount" in lowered or "$" in lowered or bool(_DIGITS.search(stripped))
    has_order_info = any(marker in lowered for marker in ("id", "card", "number"))
    return has_amount or has_order_info or len(stripped) >= 10


class CheckoutJourney:
    """Sequential scenario driver over one shared browser session."""

    def __init__(
        self,
        browser: Browser,
        dialogs: DialogSynchronizer,
        settings: Optional[Settings] = None,
        client: Optional[PlaywrightClient] = None,
    ):
        self.browser = browser
        self.dialogs = dialogs
        self.settings = settings or get_settings()
        self.client = client

        self.state = ScenarioState.START
        self._position = -1
        self._halted_at: Optional[str] = None
        self._results: Dict[str, StepResult] = {}

        self._credentials: Credentials = LOGIN_CREDENTIALS
        self._product: str = TEST_PRODUCT
        self._add_to_cart_dialog: Optional[PendingDialog] = None

    @classmethod
    async def start(cls, client: PlaywrightClient, settings: Optional[Settings] = None) -> "CheckoutJourney":
        """Build a journey on the client's page, acquiring it if needed."""
        settings = settings or client.settings
        page = await client.acquire_page()
        return cls(Browser(page, settings), DialogSynchronizer(page, settings.timeouts), settings, client)

    @property
    def halted(self) -> bool:
        return self._halted_at is not None

    # -- step execution --------------------------------------------------------------

    def _check_order(self, spec: StepSpec) -> None:
        if self._halted_at is not None:
            raise ScenarioHalted(step=spec.name, failed_step=self._halted_at)
        if _PLAN_INDEX[spec.name] <= self._position:
            raise StepOrderError(step=spec.name, reason="steps run once, in plan order")
        if self.state is not spec.requires:
            raise StepOrderError(
                step=spec.name,
                reason=f"requires state {spec.requires.name}, scenario is in {self.state.name}",
            )

    async def _run_step(self, name: str, action: Callable[[], Awaitable[None]], **phrase_args: str) -> None:
        spec = STEP_PLAN[_PLAN_INDEX[name]]
        self._check_order(spec)
        phrase = spec.phrase.format(**phrase_args) if phrase_args else spec.phrase
        logger.info(f"→ {phrase}")

        started = anyio.current_time()
        errors: List[JourneyError] = []
        try:
            with anyio.fail_after(spec.budget):
                await self._attempt(spec, action, errors)
        except TimeoutError as exc:
            cause = f"exceeded the {spec.budget:g}s step budget"
            if errors:
                cause += f"; last attempt failed: {errors[-1]}"
            await self._fail_step(spec, phrase, started, cause, exc)
        except JourneyError as exc:
            await self._fail_step(spec, phrase, started, str(exc), exc)

        self.state = spec.produces
        self._position = _PLAN_INDEX[name]
        self._results[name] = StepResult(name, phrase, StepStatus.PASSED, anyio.current_time() - started)
        logger.info(f"✓ {phrase}")

    async def _attempt(
        self, spec: StepSpec, action: Callable[[], Awaitable[None]], errors: List[JourneyError]
    ) -> None:
        """Run ``action`` with bounded retries, collecting each attempt's failure in ``errors``."""
        retries = self.settings.retries
        attempts = 1 + (retries.max_retries if spec.retryable else 0)
        for attempt in range(1, attempts + 1):
            try:
                await action()
                return
            except JourneyError as exc:
                errors.append(exc)
                if attempt == attempts:
                    raise
                logger.warning(
                    f"{spec.name}: attempt {attempt}/{attempts} failed ({exc}), "
                    f"retrying in {retries.retry_delay}ms"
                )
                await anyio.sleep(retries.retry_delay / 1000)

    async def _fail_step(self, spec: StepSpec, phrase: str, started: float, cause: str, exc: BaseException) -> None:
        """Halt the scenario, record the failure and raise it as a StepFailure."""
        self._halted_at = spec.name
        self._position = _PLAN_INDEX[spec.name]
        self._results[spec.name] = StepResult(
            spec.name, phrase, StepStatus.FAILED, anyio.current_time() - started, cause
        )
        logger.error(f"✗ {phrase}: {cause}")
        if self.client is not None:
            self.client.mark_failed()
        await self._capture_failure(spec)
        raise StepFailure(step=spec.name, expectation=spec.expectation, cause=cause) from exc

    async def _capture_failure(self, spec: StepSpec) -> None:
        screenshots = self.settings.screenshots
        if not (screenshots.enabled and screenshots.on_failure):
            return
        with anyio.move_on_after(self.settings.timeouts.long / 1000):
            try:
                path = await self.browser.screenshot(f"{spec.name}-failure")
                logger.info(f"Failure screenshot saved: {path}")
            except (JourneyError, OSError) as exc:
                logger.warning(f"Could not capture failure screenshot: {exc}")

    # -- steps -----------------------------------------------------------------------

    async def open_home(self) -> None:
        async def action() -> None:
            await self.browser.goto(self.settings.base_url)
            await self.browser.assert_visible(selectors.LOGIN_LINK)

        await self._run_step("open_home", action)

    async def log_in(self, credentials: Credentials = LOGIN_CREDENTIALS) -> None:
        async def action() -> None:
            await self.browser.click(selectors.LOGIN_LINK)
            await self.browser.assert_visible(selectors.LOGIN_MODAL)
            await self.browser.fill(selectors.LOGIN_USERNAME_INPUT, credentials.username)
            await self.browser.fill(selectors.LOGIN_PASSWORD_INPUT, credentials.password)

            pending = self.dialogs.arm()
            try:
                await self.browser.click(selectors.LOGIN_BUTTON)
            except BaseException:
                await pending.dispose()
                raise
            # No dialog is the success path; a dialog here means the login was rejected.
            dialog = await pending.wait(expectation=DialogExpectation.OPTIONAL)
            if dialog is not None and any(marker in dialog.message.lower() for marker in LOGIN_FAILURE_MARKERS):
                raise ActionFailure(
                    operation=f"Log in as {credentials.username!r}",
                    cause=f"the storefront rejected the login: {dialog.message}",
                    hint="Please verify credentials and that the site is accessible.",
                )

        self._credentials = credentials
        await self._run_step("log_in", action)

    async def verify_authenticated(self) -> None:
        username = self._credentials.username

        async def action() -> None:
            await self.browser.assert_visible(selectors.LOGGED_IN_USER)
            await self.browser.assert_contains_text(selectors.LOGGED_IN_USER, username)

        await self._run_step("verify_authenticated", action)

    async def select_product(self, product: str = TEST_PRODUCT) -> None:
        async def action() -> None:
            await self.browser.click(selectors.product_link(product))

        self._product = product
        await self._run_step("select_product", action, product=product)

    async def verify_product_details(self) -> None:
        product = self._product

        async def action() -> None:
            await self.browser.assert_contains_text(selectors.PRODUCT_TITLE, product)
            await self.browser.assert_visible(selectors.PRODUCT_PRICE)
            await self.browser.assert_visible(selectors.ADD_TO_CART_BUTTON)

        await self._run_step("verify_product_details", action)

    async def add_to_cart(self) -> None:
        async def action() -> None:
            pending = self.dialogs.arm()
            try:
                await self.browser.click(selectors.ADD_TO_CART_BUTTON)
            except BaseException:
                await pending.dispose()
                raise
            self._add_to_cart_dialog = pending

        await self._run_step("add_to_cart", action)

    async def verify_added_to_cart(self) -> None:
        pending = self._add_to_cart_dialog
        if pending is None and not self.halted:
            raise StepOrderError(step="verify_added_to_cart", reason="add_to_cart has not been run")
        self._add_to_cart_dialog = None

        async def action() -> None:
            await pending.wait(PRODUCT_ADDED_MESSAGE, DialogExpectation.REQUIRED)

        await self._run_step("verify_added_to_cart", action)

    async def verify_cart_items(self) -> None:
        product = self._product

        async def action() -> None:
            await self.browser.click(selectors.CART_LINK)
            await self.browser.assert_visible(selectors.CART_TABLE)
            item = selectors.cart_item_named(product)
            await self.browser.assert_visible(item)
            found = await self.browser.count(item)
            if found != 1:
                raise ValidationFailure(
                    f"Expected exactly 1 cart row for {product!r}, found {found}", found=found, required=1
                )
            logger.info(f"✓ Cart verification passed: Found {found} item(s) for {product}")

        await self._run_step("verify_cart_items", action)

    async def fill_checkout_form(self, details: CheckoutDetails = CHECKOUT_DETAILS) -> None:
        async def action() -> None:
            await self.browser.click(selectors.PLACE_ORDER_BUTTON)
            await self.browser.assert_visible(selectors.ORDER_MODAL)
            await self.browser.fill(selectors.ORDER_NAME_INPUT, details.name)
            await self.browser.fill(selectors.ORDER_COUNTRY_INPUT, details.country)
            await self.browser.fill(selectors.ORDER_CITY_INPUT, details.city)
            await self.browser.fill(selectors.ORDER_CARD_INPUT, details.card_number)
            await self.browser.fill(selectors.ORDER_MONTH_INPUT, details.month)
            await self.browser.fill(selectors.ORDER_YEAR_INPUT, details.year)

        await self._run_step("fill_checkout_form", action)

    async def submit_order(self) -> None:
        async def action() -> None:
            await self.browser.click(selectors.PURCHASE_BUTTON)

        await self._run_step("submit_order", action)

    async def verify_order_placed(self) -> None:
        async def action() -> None:
            await self.browser.assert_visible(selectors.SWEET_ALERT_TITLE)
            details = await self.browser.read_text(selectors.SWEET_ALERT_MESSAGE)
            if not order_details_look_complete(details):
                raise ValidationFailure(f"Order confirmation message appears incomplete: {details!r}")
            await self.browser.assert_visible(selectors.SWEET_ALERT_OK_BUTTON)

        await self._run_step("verify_order_placed", action)

    async def verify_confirmation_message(self, message: str = ORDER_SUCCESS_MESSAGE) -> None:
        async def action() -> None:
            await self.browser.assert_contains_text(selectors.SWEET_ALERT_TITLE, message)
            title = await self.browser.read_text(selectors.SWEET_ALERT_TITLE)
            if title != message:
                raise ValidationFailure(f"Confirmation title is {title!r}, expected exactly {message!r}")

        await self._run_step("verify_confirmation_message", action, message=message)

    async def close_confirmation(self) -> None:
        async def action() -> None:
            await self.browser.click(selectors.SWEET_ALERT_OK_BUTTON)
            await self.browser.assert_hidden(selectors.SWEET_ALERT)

        await self._run_step("close_confirmation", action)

    # -- whole scenario --------------------------------------------------------------

    async def run(
        self,
        credentials: Credentials = LOGIN_CREDENTIALS,
        product: str = TEST_PRODUCT,
        details: CheckoutDetails = CHECKOUT_DETAILS,
        confirmation: str = ORDER_SUCCESS_MESSAGE,
    ) -> List[StepResult]:
        """Run every planned step; raises StepFailure at the first failing one."""
        await self.open_home()
        await self.log_in(credentials)
        await self.verify_authenticated()
        await self.select_product(product)
        await self.verify_product_details()
        await self.add_to_cart()
        await self.verify_added_to_cart()
        await self.verify_cart_items()
        await self.fill_checkout_form(details)
        await self.submit_order()
        await self.verify_order_placed()
        await self.verify_confirmation_message(confirmation)
        await self.close_confirmation()
        return self.report()

    def report(self) -> List[StepResult]:
        """One result per planned step, in plan order."""
        return [
            self._results.get(spec.name) or StepResult(spec.name, spec.phrase)
            for spec in STEP_PLAN
        ]


@asynccontextmanager
async def checkout_journey(settings: Optional[Settings] = None) -> AsyncIterator[CheckoutJourney]:
    """Yield a journey on a fresh browser session, released on exit."""
    settings = settings or get_settings()
    async with PlaywrightClient(settings) as client:
        yield await CheckoutJourney.start(client, settings)
