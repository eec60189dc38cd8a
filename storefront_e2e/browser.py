"""Thin wrapper around Playwright with bounded waits and uniform failures."""
from __future__ import annotations

import enum
import logging
import os
from typing import Optional

import anyio
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Locator, Page
from playwright.async_api import TimeoutError as PlaywrightTimeout

from storefront_e2e.config import Settings, Timeouts, get_settings
from storefront_e2e.errors import ActionFailure
from storefront_e2e.selectors import Target

logger = logging.getLogger(__name__)

TEXT_POLL_INTERVAL = 0.25


class ActionKind(str, enum.Enum):
    CLICK = "click"
    FILL = "fill"
    ASSERT_VISIBLE = "assert_visible"
    ASSERT_HIDDEN = "assert_hidden"
    ASSERT_CONTAINS_TEXT = "assert_contains_text"
    READ_TEXT = "read_text"
    COUNT = "count"


_HINTS = {
    ActionKind.CLICK: "Please verify the element is visible and actionable.",
    ActionKind.FILL: "Please verify the field is visible and editable.",
    ActionKind.ASSERT_VISIBLE: "Please verify the element exists and is displayed.",
    ActionKind.ASSERT_HIDDEN: "Please verify the element should be hidden.",
    ActionKind.ASSERT_CONTAINS_TEXT: "Please verify the element text matches the expected value.",
    ActionKind.READ_TEXT: "Please verify the element is visible and contains text.",
    ActionKind.COUNT: "Please verify the locator is correct.",
}


def describe(kind: ActionKind, target: Target, value: Optional[str] = None) -> str:
    """Human readable name of the UI expectation being exercised."""
    if kind is ActionKind.CLICK:
        return f"Click {target}"
    if kind is ActionKind.FILL:
        return f"Fill {target}"
    if kind is ActionKind.ASSERT_VISIBLE:
        return f"{target} is visible"
    if kind is ActionKind.ASSERT_HIDDEN:
        return f"{target} is hidden"
    if kind is ActionKind.ASSERT_CONTAINS_TEXT:
        return f"{target} contains {value!r}"
    if kind is ActionKind.READ_TEXT:
        return f"Read text of {target}"
    return f"Count {target}"


def _first_line(exc: BaseException) -> str:
    text = str(exc).strip()
    return text.splitlines()[0] if text else exc.__class__.__name__


class Browser:
    """Convenience wrapper over a Playwright page for the journey steps."""

    def __init__(self, page: Page, settings: Optional[Settings] = None) -> None:
        self._page = page
        self._settings = settings or get_settings()

    @property
    def page(self) -> Page:
        return self._page

    @property
    def timeouts(self) -> Timeouts:
        return self._settings.timeouts

    async def perform(
        self,
        target: Target,
        kind: ActionKind,
        value: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> str | int | None:
        """Run one automation primitive against ``target`` within ``timeout`` ms.

        Returns the text for READ_TEXT / ASSERT_CONTAINS_TEXT, the number of
        matches for COUNT and None otherwise. Raises ActionFailure when the
        element does not satisfy the kind's predicate in time.
        """
        timeout = self.timeouts.medium if timeout is None else timeout
        operation = describe(kind, target, value)
        if kind in (ActionKind.FILL, ActionKind.ASSERT_CONTAINS_TEXT) and value is None:
            raise ValueError(f"{kind.value} requires a value")

        locator = target.locate(self._page)
        try:
            result = await self._dispatch(locator, kind, value, timeout)
        except PlaywrightError as exc:
            raise ActionFailure(operation=operation, cause=_first_line(exc), hint=_HINTS[kind]) from exc

        if kind is ActionKind.READ_TEXT and not result:
            raise ActionFailure(
                operation=operation, cause="element text is empty or null", hint=_HINTS[kind]
            )
        logger.debug(f"✓ {operation}")
        return result

    async def _dispatch(self, locator: Locator, kind: ActionKind, value: Optional[str], timeout: float):
        if kind is ActionKind.CLICK:
            await locator.click(timeout=timeout)
        elif kind is ActionKind.FILL:
            await locator.fill(value, timeout=timeout)
        elif kind is ActionKind.ASSERT_VISIBLE:
            await locator.first.wait_for(state="visible", timeout=timeout)
        elif kind is ActionKind.ASSERT_HIDDEN:
            await locator.wait_for(state="hidden", timeout=timeout)
        elif kind is ActionKind.ASSERT_CONTAINS_TEXT:
            return await self._wait_for_text(locator, value, timeout)
        elif kind is ActionKind.READ_TEXT:
            await locator.first.wait_for(state="visible", timeout=timeout)
            text = await locator.first.text_content(timeout=timeout)
            return (text or "").strip()
        elif kind is ActionKind.COUNT:
            return await locator.count()
        return None

    async def _wait_for_text(self, locator: Locator, expected: str, timeout: float) -> str:
        """Poll text content until it contains the expected substring."""
        deadline = anyio.current_time() + timeout / 1000
        last_content: Optional[str] = None
        last_error: Optional[PlaywrightError] = None

        while True:
            remaining = deadline - anyio.current_time()
            if remaining <= 0:
                break
            try:
                content = await locator.first.text_content(timeout=max(remaining * 1000, 1))
            except PlaywrightTimeout as exc:
                content = None
                last_error = exc
            if content is not None:
                last_content = content
                if expected in content:
                    return content.strip()
            await anyio.sleep(min(TEXT_POLL_INTERVAL, max(remaining, 0)))

        if last_content is None and last_error is not None:
            raise last_error
        raise PlaywrightTimeout(f"Timeout {timeout:.0f}ms exceeded, last text was {last_content!r}")

    # -- convenience wrappers --------------------------------------------------------

    async def click(self, target: Target, timeout: Optional[float] = None) -> None:
        await self.perform(target, ActionKind.CLICK, timeout=timeout)

    async def fill(self, target: Target, value: str, timeout: Optional[float] = None) -> None:
        await self.perform(target, ActionKind.FILL, value, timeout=timeout)

    async def assert_visible(self, target: Target, timeout: Optional[float] = None) -> None:
        await self.perform(target, ActionKind.ASSERT_VISIBLE, timeout=timeout)

    async def assert_hidden(self, target: Target, timeout: Optional[float] = None) -> None:
        await self.perform(target, ActionKind.ASSERT_HIDDEN, timeout=timeout)

    async def assert_contains_text(self, target: Target, text: str, timeout: Optional[float] = None) -> str:
        return await self.perform(target, ActionKind.ASSERT_CONTAINS_TEXT, text, timeout=timeout)

    async def read_text(self, target: Target, timeout: Optional[float] = None) -> str:
        return await self.perform(target, ActionKind.READ_TEXT, timeout=timeout)

    async def count(self, target: Target) -> int:
        return await self.perform(target, ActionKind.COUNT)

    # -- navigation & capture --------------------------------------------------------

    async def goto(self, url: str, wait_until: str = "domcontentloaded", timeout: Optional[float] = None) -> None:
        """Navigate to URL.

        Note: "networkidle" can time out on pages with long-polling connections,
        so DOM content loaded is the default.
        """
        timeout = self.timeouts.long if timeout is None else timeout
        try:
            await self._page.goto(url, wait_until=wait_until, timeout=timeout)
        except PlaywrightError as exc:
            raise ActionFailure(
                operation=f"Navigate to {url}",
                cause=_first_line(exc),
                hint="Please verify the site is accessible.",
            ) from exc
        logger.info(f"Navigated to: {url}")

    async def screenshot(self, name: str) -> str:
        """Save a full-page PNG into the configured screenshot directory."""
        screenshot_dir = self._settings.screenshots.path
        os.makedirs(screenshot_dir, exist_ok=True)
        path = os.path.join(screenshot_dir, f"{name}.png")
        try:
            await self._page.screenshot(path=path, type="png", full_page=True)
        except PlaywrightError as exc:
            raise ActionFailure(operation=f"Screenshot {name}", cause=_first_line(exc)) from exc
        return path
