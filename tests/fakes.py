"""In-memory stand-ins for the Playwright objects the engine talks to."""
from collections import defaultdict
from pathlib import Path

from playwright.async_api import TimeoutError as PlaywrightTimeout


def _timeout(timeout):
    return PlaywrightTimeout(f"Timeout {timeout}ms exceeded.\n=========================== logs ===")


class FakeLocator:
    """Element that is either there (visible) or not.

    ``texts`` feeds successive ``text_content`` reads; the last one repeats.
    """

    def __init__(self, visible=True, text="", texts=None, count=None):
        self.visible = visible
        self.texts = list(texts) if texts else [text]
        self._count = count
        self.clicks = 0
        self.filled = []

    @property
    def first(self):
        return self

    async def click(self, timeout=None):
        if not self.visible:
            raise _timeout(timeout)
        self.clicks += 1

    async def fill(self, value, timeout=None):
        if not self.visible:
            raise _timeout(timeout)
        self.filled.append(value)

    async def wait_for(self, state="visible", timeout=None):
        if (state == "visible") != self.visible:
            raise _timeout(timeout)

    async def text_content(self, timeout=None):
        if not self.visible:
            raise _timeout(timeout)
        if len(self.texts) > 1:
            return self.texts.pop(0)
        return self.texts[0]

    async def count(self):
        if self._count is not None:
            return self._count
        return 1 if self.visible else 0


class FakeDialog:
    def __init__(self, message, type="alert"):
        self.message = message
        self.type = type
        self.accepted = 0
        self.dismissed = 0

    async def accept(self):
        self.accepted += 1

    async def dismiss(self):
        self.dismissed += 1


class FakeResponse:
    def __init__(self, url, status=200, body=None, content_type="application/json", json_error=None):
        self.url = url
        self.status = status
        self.headers = {"content-type": content_type}
        self._body = body
        self._json_error = json_error

    async def json(self):
        if self._json_error is not None:
            raise self._json_error
        return self._body


class FakeRequest:
    def __init__(self, url):
        self.url = url


class FakeRoute:
    def __init__(self, url):
        self.request = FakeRequest(url)
        self.continued = 0

    async def continue_(self):
        self.continued += 1


class FakeVideo:
    def __init__(self, path):
        self._path = path

    async def path(self):
        return str(self._path)


class FakePage:
    def __init__(self):
        self.listeners = defaultdict(list)
        self.routes = []
        self.locators = {}
        self.visited = []
        self.screenshots = []
        self.goto_error = None
        self.after_goto = None
        self.close_error = None
        self.closed = False
        self.video = None

    def on(self, event, handler):
        self.listeners[event].append(handler)

    def remove_listener(self, event, handler):
        self.listeners[event].remove(handler)

    def emit(self, event, payload):
        for handler in list(self.listeners[event]):
            handler(payload)

    def locator(self, selector):
        return self.locators.setdefault(selector, FakeLocator(visible=False))

    def get_by_role(self, role, name=None, exact=False):
        return self.locator(f"role={role}[name={name!r}]")

    async def route(self, matcher, handler):
        self.routes.append((matcher, handler))

    async def unroute(self, matcher, handler=None):
        self.routes.remove((matcher, handler))

    async def goto(self, url, wait_until=None, timeout=None):
        if self.goto_error is not None:
            raise self.goto_error
        self.visited.append(url)
        if self.after_goto is not None:
            self.after_goto(url)

    async def screenshot(self, path, type="png", full_page=False):
        Path(path).write_bytes(b"\x89PNG")
        self.screenshots.append(path)

    async def close(self):
        self.closed = True
        if self.close_error is not None:
            raise self.close_error


class FakeContext:
    def __init__(self, options, on_new_page=None):
        self.options = options
        self.on_new_page = on_new_page
        self.default_timeout = None
        self.pages = []
        self.closed = False

    def set_default_timeout(self, timeout):
        self.default_timeout = timeout

    async def new_page(self):
        page = FakePage()
        if self.on_new_page is not None:
            self.on_new_page(page)
        self.pages.append(page)
        return page

    async def close(self):
        self.closed = True


class FakeEngine:
    def __init__(self, options, on_new_page=None):
        self.options = options
        self.on_new_page = on_new_page
        self.contexts = []
        self.closed = False

    async def new_context(self, **options):
        context = FakeContext(options, self.on_new_page)
        self.contexts.append(context)
        return context

    async def close(self):
        self.closed = True


class FakeBrowserType:
    def __init__(self, name):
        self.name = name
        self.launches = []
        self.launch_error = None
        self.on_new_page = None

    async def launch(self, **options):
        self.launches.append(options)
        if self.launch_error is not None:
            raise self.launch_error
        return FakeEngine(options, self.on_new_page)


class FakePlaywright:
    def __init__(self):
        self.chromium = FakeBrowserType("chromium")
        self.firefox = FakeBrowserType("firefox")
        self.webkit = FakeBrowserType("webkit")
        self.starts = 0
        self.stopped = 0

    def __call__(self):
        # Stands in for ``async_playwright``: calling it returns the context manager.
        return self

    async def start(self):
        self.starts += 1
        return self

    async def stop(self):
        self.stopped += 1


