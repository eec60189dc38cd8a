"""Network response interception.

Like dialogs, the listener is registered before the request is triggered:

    pending = gate.arm("/entries", 200)
    await browser.goto(settings.base_url)
    body = await pending.wait()
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, List, Optional, Tuple

import anyio
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page, Response, Route

from storefront_e2e.config import Timeouts
from storefront_e2e.errors import InterceptionTimeout, ValidationFailure

logger = logging.getLogger(__name__)


class PendingExchange:
    """One-shot handle for the first response matching URL fragment + status."""

    def __init__(self, page: Page, url_fragment: str, expected_status: int, timeout: float) -> None:
        self._page = page
        self.url_fragment = url_fragment
        self.expected_status = expected_status
        self.timeout = timeout
        self._future: asyncio.Future[Response] = asyncio.get_running_loop().create_future()
        self._attached = True
        self._consumed = False
        page.on("response", self._on_response)

    def matches(self, response: Response) -> bool:
        return self.url_fragment in response.url and response.status == self.expected_status

    def _on_response(self, response: Response) -> None:
        if self._future.done() or not self.matches(response):
            return
        self._future.set_result(response)
        self._detach()

    def _detach(self) -> None:
        if self._attached:
            self._page.remove_listener("response", self._on_response)
            self._attached = False

    async def wait(self) -> Any:
        """Await the matching response and return its decoded JSON body.

        Raises:
            InterceptionTimeout: nothing matched within the armed timeout
            ValidationFailure: the body could not be decoded as JSON
        """
        if self._consumed:
            raise RuntimeError("PendingExchange can only be awaited once")
        self._consumed = True

        try:
            with anyio.fail_after(self.timeout / 1000):
                response = await self._future
        except TimeoutError:
            raise InterceptionTimeout(
                url_fragment=self.url_fragment,
                expected_status=self.expected_status,
                timeout_ms=self.timeout,
            ) from None
        finally:
            self._detach()

        logger.info(f"✓ API request intercepted: {response.url} (status {response.status})")

        content_type = response.headers.get("content-type", "")
        if "application/json" not in content_type:
            logger.warning(f"Expected JSON response, got content-type {content_type!r}")

        try:
            return await response.json()
        except (ValueError, PlaywrightError) as exc:
            raise ValidationFailure(f"Response from {response.url} is not valid JSON: {exc}") from exc

    def dispose(self) -> None:
        self._detach()
        self._consumed = True
        if not self._future.done():
            self._future.cancel()


class InterceptionGate:
    """Arms response listeners and installs logging-only request routes."""

    def __init__(self, page: Page, timeouts: Timeouts) -> None:
        self._page = page
        self._timeouts = timeouts
        self._routes: List[Tuple[Callable[[str], bool], Callable[[Route], Awaitable[None]]]] = []

    def arm(self, url_fragment: str, expected_status: int = 200, timeout: Optional[float] = None) -> PendingExchange:
        """Register for the next matching response. Call before navigating."""
        return PendingExchange(
            self._page,
            url_fragment,
            expected_status,
            self._timeouts.long if timeout is None else timeout,
        )

    async def await_exchange(
        self,
        trigger: Callable[[], Awaitable[Any]],
        url_fragment: str,
        expected_status: int = 200,
        timeout: Optional[float] = None,
    ) -> Any:
        """Arm, run ``trigger`` and wait for the matching response body."""
        pending = self.arm(url_fragment, expected_status, timeout)
        try:
            await trigger()
        except BaseException:
            pending.dispose()
            raise
        return await pending.wait()

    async def observe(self, url_fragment: str) -> None:
        """Log every request whose URL contains ``url_fragment``; requests pass through untouched."""

        def matcher(url: str) -> bool:
            return url_fragment in url

        async def handler(route: Route) -> None:
            logger.info(f"Intercepting request to: {route.request.url}")
            await route.continue_()

        await self._page.route(matcher, handler)
        self._routes.append((matcher, handler))

    async def close(self) -> None:
        """Remove the observer routes."""
        for matcher, handler in self._routes:
            try:
                await self._page.unroute(matcher, handler)
            except PlaywrightError as exc:
                logger.warning(f"Error removing route: {exc}")
        self._routes.clear()
