import pytest

from storefront_e2e.config import load_settings
from tests.fakes import FakePage, FakePlaywright


@pytest.fixture
def settings(tmp_path):
    """Settings with short timeouts so timeout paths finish quickly."""
    return load_settings(
        environ={
            "TIMEOUT_SHORT": "100",
            "TIMEOUT_MEDIUM": "200",
            "TIMEOUT_LONG": "300",
            "TIMEOUT_EXTRA_LONG": "400",
            "RETRY_DELAY": "10",
            "SCREENSHOTS_PATH": str(tmp_path / "screenshots"),
            "VIDEOS_PATH": str(tmp_path / "videos"),
        },
        defaults={},
    )


@pytest.fixture
def page():
    return FakePage()


@pytest.fixture
def fake_playwright():
    return FakePlaywright()
