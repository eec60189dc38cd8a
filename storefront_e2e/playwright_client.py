"""
Browser session lifecycle
=========================

``PlaywrightClient`` owns the engine → context → page chain for one scenario
run. Links are acquired lazily and only when missing, so every step can call
``acquire_page()`` and receive the same page. Teardown is best effort: each
link is closed even if closing the previous one failed, and failures are
logged instead of raised so they never mask the scenario's own result.

Usage:
    async with PlaywrightClient(settings) as client:
        page = await client.acquire_page()
        await page.goto(settings.base_url)
"""
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from playwright.async_api import Browser, BrowserContext, Page, Playwright, async_playwright

from storefront_e2e.config import Settings, get_settings
from storefront_e2e.errors import ResourceLifecycleFailure

logger = logging.getLogger(__name__)

DEFAULT_ENGINE = "chromium"


class SessionState(enum.IntEnum):
    UNSTARTED = 0
    ENGINE_READY = 1
    CONTEXT_READY = 2
    PAGE_READY = 3
    CLOSED = 4


@dataclass(frozen=True)
class EngineChoice:
    engine: str
    channel: Optional[str] = None


_ENGINES: Dict[str, EngineChoice] = {
    "chromium": EngineChoice("chromium"),
    "firefox": EngineChoice("firefox"),
    "webkit": EngineChoice("webkit"),
    "chrome": EngineChoice("chromium", "chrome"),
    "msedge": EngineChoice("chromium", "msedge"),
}


def resolve_engine(channel: str | None) -> EngineChoice:
    """Map a configured browser channel to an engine (+ branded channel).

    Unknown channels fall back to chromium instead of failing the run.
    """
    key = (channel or "").strip().lower()
    choice = _ENGINES.get(key)
    if choice is None:
        logger.warning(f"Unknown browser channel {channel!r}, falling back to {DEFAULT_ENGINE}")
        return _ENGINES[DEFAULT_ENGINE]
    return choice


class PlaywrightClient:
    """
    Lazily acquired, idempotently released Playwright session.

    The client is created per orchestrator (journey) instance and passed by
    reference into the steps; nothing here is a module-level global.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        playwright_factory: Callable[[], Any] = async_playwright,
    ):
        """
        Args:
            settings: Configuration (defaults to the process-wide settings)
            playwright_factory: Callable returning an object with ``start()``
        """
        self.settings = settings or get_settings()
        self._playwright_factory = playwright_factory

        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None
        self._page: Optional[Page] = None
        self._state = SessionState.UNSTARTED
        self._failed = False

    async def __aenter__(self) -> "PlaywrightClient":
        try:
            await self.acquire_page()
        except BaseException:
            # __aexit__ is not called when entering fails; tear down the partial chain here.
            self.mark_failed()
            await self.release()
            raise
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        if exc_type is not None:
            self.mark_failed()
        await self.release()

    @property
    def state(self) -> SessionState:
        return self._state

    def mark_failed(self) -> None:
        """Record that the run failed (keeps the video when recording on failure only)."""
        self._failed = True

    async def acquire_page(self) -> Page:
        """Advance the missing links of the chain and return the active page."""
        if self._state is SessionState.PAGE_READY and self._page is not None:
            return self._page
        if self._state is SessionState.CLOSED:
            logger.debug("Re-acquiring a released session")
            self._state = SessionState.UNSTARTED
            self._failed = False

        if self._browser is None:
            await self._launch_engine()
        if self._context is None:
            await self._open_context()
        if self._page is None:
            try:
                self._page = await self._context.new_page()
            except Exception as exc:
                raise ResourceLifecycleFailure(stage="page", cause=str(exc)) from exc
            self._state = SessionState.PAGE_READY
            logger.debug("New page created")
        return self._page

    async def _launch_engine(self) -> None:
        browser_settings = self.settings.browser
        choice = resolve_engine(browser_settings.channel)
        launch_options: Dict[str, Any] = {
            "headless": browser_settings.headless,
            "timeout": browser_settings.timeout,
        }
        if choice.engine == "chromium":
            launch_options["args"] = ["--start-maximized"]
        if choice.channel:
            launch_options["channel"] = choice.channel

        try:
            if self._playwright is None:
                self._playwright = await self._playwright_factory().start()
            launcher = getattr(self._playwright, choice.engine)
            self._browser = await launcher.launch(**launch_options)
        except Exception as exc:
            raise ResourceLifecycleFailure(stage=f"{choice.engine} browser", cause=str(exc)) from exc

        self._state = SessionState.ENGINE_READY
        logger.info(
            f"Browser launched: {choice.engine}"
            + (f" (channel={choice.channel})" if choice.channel else "")
            + f", headless={browser_settings.headless}"
        )

    async def _open_context(self) -> None:
        context_options: Dict[str, Any] = {"no_viewport": True}
        if self.settings.videos.enabled:
            context_options["record_video_dir"] = self.settings.videos.path

        try:
            self._context = await self._browser.new_context(**context_options)
        except Exception as exc:
            raise ResourceLifecycleFailure(stage="browser context", cause=str(exc)) from exc
        self._context.set_default_timeout(self.settings.timeouts.medium)
        self._state = SessionState.CONTEXT_READY
        logger.debug("Browser context created")

    async def release(self) -> None:
        """Tear down page → context → engine; never raises."""
        if self._state in (SessionState.UNSTARTED, SessionState.CLOSED) and self._playwright is None:
            self._state = SessionState.CLOSED
            return

        video_path = await self._video_path()

        if self._page is not None:
            try:
                await self._page.close()
                logger.debug("Page closed")
            except Exception as exc:
                logger.warning(f"Error closing page: {exc}")
            self._page = None

        if self._context is not None:
            try:
                await self._context.close()
                logger.debug("Browser context closed")
            except Exception as exc:
                logger.warning(f"Error closing browser context: {exc}")
            self._context = None

        if self._browser is not None:
            try:
                await self._browser.close()
                logger.info("Browser closed")
            except Exception as exc:
                logger.warning(f"Error closing browser: {exc}")
            self._browser = None

        if self._playwright is not None:
            try:
                await self._playwright.stop()
            except Exception as exc:
                logger.warning(f"Error stopping Playwright: {exc}")
            self._playwright = None

        self._state = SessionState.CLOSED
        self._discard_video(video_path)

    async def _video_path(self) -> Optional[Path]:
        videos = self.settings.videos
        if not (videos.enabled and videos.on_failure) or self._failed or self._page is None:
            return None
        video = getattr(self._page, "video", None)
        if video is None:
            return None
        try:
            return Path(await video.path())
        except Exception as exc:
            logger.warning(f"Could not resolve video path: {exc}")
            return None

    def _discard_video(self, path: Optional[Path]) -> None:
        # The file only exists once the context is closed.
        if path is None:
            return
        try:
            path.unlink(missing_ok=True)
            logger.debug(f"Discarded video of passing run: {path}")
        except OSError as exc:
            logger.warning(f"Could not discard video {path}: {exc}")

    @property
    def page(self) -> Page:
        """Get the active page."""
        if self._page is None:
            raise RuntimeError("Session not acquired. Call acquire_page() first")
        return self._page

    @property
    def context(self) -> BrowserContext:
        if self._context is None:
            raise RuntimeError("Session not acquired")
        return self._context
