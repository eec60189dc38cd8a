"""Native dialog synchronisation.

A dialog can fire synchronously with the click that causes it, so the
listener has to exist *before* the click. ``DialogSynchronizer.arm()`` returns
a ``PendingDialog`` whose constructor registers the listener; there is no way
to hold an un-armed handle. Usage:

    pending = dialogs.arm()
    await browser.click(selectors.ADD_TO_CART_BUTTON)
    message = await pending.wait("added", DialogExpectation.REQUIRED)
"""
from __future__ import annotations

import asyncio
import enum
import logging
from dataclasses import dataclass
from typing import Optional

import anyio
from playwright.async_api import Dialog, Page
from playwright.async_api import Error as PlaywrightError

from storefront_e2e.config import Timeouts
from storefront_e2e.errors import ActionFailure, MissingSignal, UnexpectedSignal

logger = logging.getLogger(__name__)


class DialogExpectation(enum.Enum):
    """What the call site concludes when no dialog shows up in time."""

    OPTIONAL = "optional"  # absence is the success path
    REQUIRED = "required"  # absence is a failure


@dataclass(frozen=True)
class DialogMessage:
    type: str
    message: str


class PendingDialog:
    """One-shot handle for the next dialog on a page. Created armed."""

    def __init__(self, page: Page, timeout: float) -> None:
        self._page = page
        self.timeout = timeout
        self._future: asyncio.Future[Dialog] = asyncio.get_running_loop().create_future()
        self._attached = True
        self._consumed = False
        page.on("dialog", self._on_dialog)

    @property
    def fired(self) -> bool:
        return self._future.done() and not self._future.cancelled()

    def _on_dialog(self, dialog: Dialog) -> None:
        # The listener is detached once the future settles, so this runs at most once.
        self._future.set_result(dialog)
        self._detach()

    def _detach(self) -> None:
        if self._attached:
            self._page.remove_listener("dialog", self._on_dialog)
            self._attached = False

    @staticmethod
    async def _dismiss(dialog: Dialog) -> None:
        try:
            await dialog.dismiss()
        except PlaywrightError as exc:
            logger.warning(f"Could not dismiss dialog {dialog.message!r}: {exc}")

    async def wait(
        self,
        expected_substring: Optional[str] = None,
        expectation: DialogExpectation = DialogExpectation.OPTIONAL,
    ) -> Optional[DialogMessage]:
        """Await the dialog, accept it, and check its message.

        Returns None when no dialog appeared and the expectation is OPTIONAL.

        Raises:
            MissingSignal: no dialog in time and the expectation is REQUIRED
            UnexpectedSignal: message lacks ``expected_substring`` (raised after accepting)
        """
        if self._consumed:
            raise RuntimeError("PendingDialog can only be awaited once")
        self._consumed = True

        dialog: Optional[Dialog] = None
        try:
            with anyio.move_on_after(self.timeout / 1000):
                dialog = await self._future
        finally:
            self._detach()

        if dialog is None:
            if expectation is DialogExpectation.REQUIRED:
                raise MissingSignal(got=None, expected_substring=expected_substring, timeout_ms=self.timeout)
            logger.debug(f"No dialog appeared within {self.timeout:.0f}ms")
            return None

        received = DialogMessage(type=dialog.type, message=dialog.message)
        try:
            await dialog.accept()
        except PlaywrightError as exc:
            raise ActionFailure(operation=f"Accept dialog {received.message!r}", cause=str(exc)) from exc

        if expected_substring and expected_substring.lower() not in received.message.lower():
            raise UnexpectedSignal(got=received.message, expected_substring=expected_substring)

        logger.info(f"✓ Dialog handled: {received.message}")
        return received

    async def dispose(self) -> None:
        """Release a handle that will never be awaited."""
        self._detach()
        if self._consumed:
            return
        self._consumed = True
        if self.fired:
            await self._dismiss(self._future.result())
        elif not self._future.done():
            self._future.cancel()


class DialogSynchronizer:
    """Arms dialog listeners on the session page."""

    def __init__(self, page: Page, timeouts: Timeouts) -> None:
        self._page = page
        self._timeouts = timeouts

    def arm(self, timeout: Optional[float] = None) -> PendingDialog:
        """Register for the next dialog. Call before the triggering action."""
        return PendingDialog(self._page, self._timeouts.medium if timeout is None else timeout)
