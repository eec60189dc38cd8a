"""Shared configuration for the checkout journey.

Values resolve in this order:
1. process environment (e.g. ``BASE_URL=... storefront-e2e journey``)
2. ``.env.defaults`` in the repository root, then in the current directory
3. built-in fallback

All timeouts are in milliseconds, like Playwright's own API.
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Dict, Mapping, Optional
from urllib.parse import urljoin

BROWSER_CHANNELS = ("chromium", "firefox", "webkit", "chrome", "msedge")

_TRUE_VALUES = {"1", "true", "yes", "on"}


def _parse_env_file(path: Path) -> Dict[str, str]:
    values: Dict[str, str] = {}
    for raw in path.read_text(encoding="utf-8").splitlines():
        line = raw.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        value = value.strip()
        if len(value) >= 2 and value[0] in ('"', "'") and value[-1] == value[0]:
            value = value[1:-1]
        values[key.strip()] = value
    return values


@lru_cache(maxsize=1)
def load_env_defaults() -> Dict[str, str]:
    """Load key/value defaults from ``.env.defaults`` (repo root, then CWD)."""
    dirs: list[Path] = [Path(__file__).resolve().parent.parent]
    try:
        cwd = Path.cwd()
        if cwd.resolve() != dirs[0]:
            dirs.append(cwd)
    except OSError:
        pass

    merged: Dict[str, str] = {}
    for directory in dirs:
        defaults_path = directory / ".env.defaults"
        if defaults_path.exists():
            merged.update(_parse_env_file(defaults_path))
    return merged


@dataclass(frozen=True)
class Timeouts:
    short: int = 5000
    medium: int = 10000
    long: int = 30000
    extra_long: int = 60000


@dataclass(frozen=True)
class BrowserSettings:
    channel: str = "chromium"
    headless: bool = True
    timeout: int = 60000


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded retry for retryable (idempotent) journey steps."""

    max_retries: int = 2
    retry_delay: int = 1000


@dataclass(frozen=True)
class CaptureSettings:
    enabled: bool
    on_failure: bool
    path: str


@dataclass(frozen=True)
class Settings:
    base_url: str = "https://www.demoblaze.com"
    browser: BrowserSettings = field(default_factory=BrowserSettings)
    timeouts: Timeouts = field(default_factory=Timeouts)
    retries: RetryPolicy = field(default_factory=RetryPolicy)
    screenshots: CaptureSettings = field(
        default_factory=lambda: CaptureSettings(True, True, "test-results/screenshots")
    )
    videos: CaptureSettings = field(
        default_factory=lambda: CaptureSettings(False, True, "test-results/videos")
    )
    log_level: str = "INFO"

    def url(self, path: str) -> str:
        """Return an absolute URL for the provided path."""
        return urljoin(self.base_url.rstrip("/") + "/", path.lstrip("/"))


class _Source:
    """Lookup over environment first, then ``.env.defaults``."""

    def __init__(self, environ: Mapping[str, str], defaults: Mapping[str, str]) -> None:
        self._environ = environ
        self._defaults = defaults

    def get_str(self, key: str, fallback: str) -> str:
        value = self._environ.get(key)
        if value is None or value == "":
            value = self._defaults.get(key)
        return fallback if value is None or value == "" else value

    def get_int(self, key: str, fallback: int) -> int:
        raw = self.get_str(key, str(fallback))
        try:
            return int(raw)
        except ValueError:
            raise ValueError(f"{key} must be an integer, got {raw!r}") from None

    def get_bool(self, key: str, fallback: bool) -> bool:
        return self.get_str(key, "true" if fallback else "false").strip().lower() in _TRUE_VALUES


def load_settings(
    environ: Optional[Mapping[str, str]] = None,
    defaults: Optional[Mapping[str, str]] = None,
) -> Settings:
    """Build settings from the environment and ``.env.defaults``.

    Args:
        environ: Mapping to read instead of ``os.environ`` (tests)
        defaults: Mapping to use instead of the ``.env.defaults`` file
    """
    source = _Source(
        os.environ if environ is None else environ,
        load_env_defaults() if defaults is None else defaults,
    )
    return Settings(
        base_url=source.get_str("BASE_URL", "https://www.demoblaze.com"),
        browser=BrowserSettings(
            # Unknown channels are kept as-is; engine resolution falls back to chromium.
            channel=source.get_str("BROWSER", "chromium").strip().lower(),
            headless=source.get_bool("HEADLESS", True),
            timeout=source.get_int("BROWSER_TIMEOUT", 60000),
        ),
        timeouts=Timeouts(
            short=source.get_int("TIMEOUT_SHORT", 5000),
            medium=source.get_int("TIMEOUT_MEDIUM", 10000),
            long=source.get_int("TIMEOUT_LONG", 30000),
            extra_long=source.get_int("TIMEOUT_EXTRA_LONG", 60000),
        ),
        retries=RetryPolicy(
            max_retries=max(0, source.get_int("MAX_RETRIES", 2)),
            retry_delay=max(0, source.get_int("RETRY_DELAY", 1000)),
        ),
        screenshots=CaptureSettings(
            enabled=source.get_bool("SCREENSHOTS_ENABLED", True),
            on_failure=source.get_bool("SCREENSHOTS_ON_FAILURE", True),
            path=source.get_str("SCREENSHOTS_PATH", "test-results/screenshots"),
        ),
        videos=CaptureSettings(
            enabled=source.get_bool("VIDEOS_ENABLED", False),
            on_failure=source.get_bool("VIDEOS_ON_FAILURE", True),
            path=source.get_str("VIDEOS_PATH", "test-results/videos"),
        ),
        log_level=source.get_str("LOG_LEVEL", "INFO").upper(),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Process-wide settings, loaded on first use."""
    return load_settings()
