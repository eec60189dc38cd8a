import functools
import json

import pytest
from playwright.async_api import Error as PlaywrightError

from storefront_e2e import cli
from storefront_e2e.journey import STEP_PLAN, StepResult, StepStatus
from storefront_e2e.playwright_client import PlaywrightClient
from tests.fakes import FakeResponse

ENTRIES = "https://api.demoblaze.com/entries"


@pytest.fixture
def fake_runs(monkeypatch, settings):
    calls = {}

    async def run_journey(run_settings, product):
        calls["journey"] = (run_settings, product)
        return [
            StepResult("open_home", "I am on the DemoBlaze home page", StepStatus.PASSED, 1.2),
            StepResult("log_in", "I log in with valid credentials", StepStatus.FAILED, 0.4, "Login rejected"),
            StepResult("verify_authenticated", "I should be successfully authenticated"),
        ]

    async def run_catalog(run_settings, endpoint, status, min_products):
        calls["catalog"] = (run_settings, endpoint, status, min_products)
        return [StepResult("verify_catalog_api", "/entries returns products", StepStatus.PASSED, 0.8)]

    monkeypatch.setattr(cli, "get_settings", lambda: settings)
    monkeypatch.setattr(cli, "run_journey", run_journey)
    monkeypatch.setattr(cli, "run_catalog", run_catalog)
    return calls


def test_overrides_win_over_configuration(settings):
    args = cli.build_parser().parse_args(
        ["--base-url", "https://shop.test", "--browser", "firefox", "--headed", "journey"]
    )

    overridden = cli.apply_overrides(settings, args)

    assert overridden.base_url == "https://shop.test"
    assert overridden.browser.channel == "firefox"
    assert overridden.browser.headless is False
    assert overridden.timeouts == settings.timeouts


def test_no_overrides_keeps_settings(settings):
    args = cli.build_parser().parse_args(["catalog"])

    assert cli.apply_overrides(settings, args) == settings


def test_unknown_browser_is_rejected():
    with pytest.raises(SystemExit):
        cli.build_parser().parse_args(["--browser", "netscape", "journey"])


def test_failed_journey_exits_nonzero_and_writes_report(fake_runs, tmp_path, capsys):
    report = tmp_path / "out" / "journey.json"

    code = cli.main(["--report", str(report), "journey", "--product", "Nokia lumia 1520"])

    assert code == 1
    assert fake_runs["journey"][1] == "Nokia lumia 1520"
    output = capsys.readouterr().out
    assert "✓ I am on the DemoBlaze home page" in output
    assert "✗ I log in with valid credentials" in output
    assert "Login rejected" in output
    assert "1/3 steps passed" in output

    written = json.loads(report.read_text(encoding="utf-8"))
    assert [step["status"] for step in written] == ["passed", "failed", "not_executed"]
    assert written[1]["error"] == "Login rejected"


def test_catalog_command(fake_runs):
    code = cli.main(["catalog", "--endpoint", "/entries", "--min-products", "3"])

    assert code == 0
    _, endpoint, status, min_products = fake_runs["catalog"]
    assert (endpoint, status, min_products) == ("/entries", 200, 3)


@pytest.fixture
def client_factory(fake_playwright):
    return functools.partial(PlaywrightClient, playwright_factory=fake_playwright)


@pytest.mark.asyncio
async def test_journey_that_cannot_start_reports_first_step_failed(settings, fake_playwright, client_factory):
    fake_playwright.chromium.launch_error = PlaywrightError("Executable doesn't exist")

    results = await cli.run_journey(settings, "Samsung galaxy s6", client_factory)

    assert [result.name for result in results] == [spec.name for spec in STEP_PLAN]
    assert results[0].status is StepStatus.FAILED
    assert "Executable doesn't exist" in results[0].error
    assert {result.status for result in results[1:]} == {StepStatus.NOT_EXECUTED}
    assert fake_playwright.stopped == 1


@pytest.mark.asyncio
async def test_journey_failure_is_reported_and_session_released(settings, fake_playwright, client_factory):
    pages = []
    fake_playwright.chromium.on_new_page = pages.append

    results = await cli.run_journey(settings, "Samsung galaxy s6", client_factory)

    assert results[0].status is StepStatus.FAILED
    assert "Login link is visible failed" in results[0].error
    assert {result.status for result in results[1:]} == {StepStatus.NOT_EXECUTED}
    assert pages[0].visited == [settings.base_url] * 3
    assert pages[0].closed
    assert fake_playwright.stopped == 1


@pytest.mark.asyncio
async def test_catalog_run_passes(settings, fake_playwright, client_factory):
    items = [{"id": i} for i in range(6)]

    def serve_listing(page):
        page.after_goto = lambda url: page.emit("response", FakeResponse(ENTRIES, body={"Items": items}))

    fake_playwright.chromium.on_new_page = serve_listing

    [result] = await cli.run_catalog(settings, "/entries", 200, 5, client_factory)

    assert result.status is StepStatus.PASSED
    assert result.error is None
    assert result.phrase == "/entries returns at least 5 products"
    assert fake_playwright.stopped == 1


@pytest.mark.asyncio
async def test_catalog_run_records_failure_and_duration(settings, fake_playwright, client_factory):
    def serve_error(page):
        page.after_goto = lambda url: page.emit("response", FakeResponse(ENTRIES, status=500))

    fake_playwright.chromium.on_new_page = serve_error

    [result] = await cli.run_catalog(settings, "/entries", 200, 5, client_factory)

    assert result.status is StepStatus.FAILED
    assert "/entries" in result.error
    assert result.duration >= settings.timeouts.long / 1000
    assert fake_playwright.stopped == 1


@pytest.mark.asyncio
async def test_catalog_run_without_browser(settings, fake_playwright, client_factory):
    fake_playwright.chromium.launch_error = PlaywrightError("Executable doesn't exist")

    [result] = await cli.run_catalog(settings, "/entries", 200, 5, client_factory)

    assert result.status is StepStatus.FAILED
    assert "Failed to acquire chromium browser" in result.error
    assert fake_playwright.stopped == 1
