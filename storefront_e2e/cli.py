"""Command line entry point: run the checkout journey or the catalog API check.

Examples:
    storefront-e2e journey --headed --report test-results/journey.json
    BASE_URL=https://staging.example storefront-e2e catalog --min-products 3
"""
from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import sys
from pathlib import Path
from typing import Callable, List, Optional, Sequence

import anyio

from storefront_e2e.catalog import verify_catalog_api
from storefront_e2e.config import BROWSER_CHANNELS, Settings, get_settings
from storefront_e2e.errors import JourneyError, ResourceLifecycleFailure
from storefront_e2e.journey import STEP_PLAN, CheckoutJourney, StepResult, StepStatus
from storefront_e2e.journey_data import ENTRIES_ENDPOINT, MIN_PRODUCTS, TEST_PRODUCT
from storefront_e2e.playwright_client import PlaywrightClient

logger = logging.getLogger("storefront_e2e")

_MARKS = {StepStatus.PASSED: "✓", StepStatus.FAILED: "✗", StepStatus.NOT_EXECUTED: "-"}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="storefront-e2e",
        description="Drive the storefront checkout journey in a real browser",
    )
    parser.add_argument("--base-url", help="Storefront URL (default: $BASE_URL)")
    parser.add_argument("--browser", choices=BROWSER_CHANNELS, help="Browser channel (default: $BROWSER)")
    parser.add_argument("--headed", action="store_true", help="Show the browser window")
    parser.add_argument("--report", type=Path, help="Write step results as JSON to this file")

    commands = parser.add_subparsers(dest="command", required=True)

    journey = commands.add_parser("journey", help="Login → product → cart → checkout → confirmation")
    journey.add_argument("--product", default=TEST_PRODUCT, help=f"Product to buy (default: {TEST_PRODUCT})")

    catalog = commands.add_parser("catalog", help="Validate the product listing API response")
    catalog.add_argument("--endpoint", default=ENTRIES_ENDPOINT, help="URL fragment of the listing request")
    catalog.add_argument("--status", type=int, default=200, help="Expected HTTP status")
    catalog.add_argument("--min-products", type=int, default=MIN_PRODUCTS, help="Minimum product count")
    return parser


def apply_overrides(settings: Settings, args: argparse.Namespace) -> Settings:
    """Command line options win over environment and .env.defaults."""
    if args.base_url:
        settings = dataclasses.replace(settings, base_url=args.base_url)
    browser = settings.browser
    if args.browser:
        browser = dataclasses.replace(browser, channel=args.browser)
    if args.headed:
        browser = dataclasses.replace(browser, headless=False)
    return dataclasses.replace(settings, browser=browser)


async def run_journey(
    settings: Settings,
    product: str,
    client_factory: Callable[[Settings], PlaywrightClient] = PlaywrightClient,
) -> List[StepResult]:
    try:
        async with client_factory(settings) as client:
            journey = await CheckoutJourney.start(client, settings)
            try:
                await journey.run(product=product)
            except JourneyError as exc:
                logger.error(f"Journey failed: {exc}")
            return journey.report()
    except ResourceLifecycleFailure as exc:
        logger.error(f"Browser session could not be started: {exc}")
        results = [StepResult(spec.name, spec.phrase) for spec in STEP_PLAN]
        results[0].status, results[0].error = StepStatus.FAILED, str(exc)
        return results


async def run_catalog(
    settings: Settings,
    endpoint: str,
    status: int,
    min_products: int,
    client_factory: Callable[[Settings], PlaywrightClient] = PlaywrightClient,
) -> List[StepResult]:
    result = StepResult("verify_catalog_api", f"{endpoint} returns at least {min_products} products")
    started = anyio.current_time()
    try:
        async with client_factory(settings) as client:
            products = await verify_catalog_api(client.page, settings, endpoint, status, min_products)
    except JourneyError as exc:
        result.status, result.error = StepStatus.FAILED, str(exc)
        logger.error(f"Catalog check failed: {exc}")
    else:
        result.status = StepStatus.PASSED
        logger.info(f"Catalog returned {len(products)} products")
    result.duration = anyio.current_time() - started
    return [result]


def print_summary(results: Sequence[StepResult]) -> None:
    for result in results:
        line = f"{_MARKS[result.status]} {result.phrase} ({result.duration:.1f}s)"
        if result.error:
            line += f"\n    {result.error}"
        print(line)
    passed = sum(1 for result in results if result.status is StepStatus.PASSED)
    print(f"\n{passed}/{len(results)} steps passed")


def write_report(path: Path, results: Sequence[StepResult]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps([result.to_dict() for result in results], indent=2), encoding="utf-8")
    logger.info(f"Report written to {path}")


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = apply_overrides(get_settings(), args)

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s - %(levelname)s - %(message)s",
    )

    if args.command == "journey":
        results = anyio.run(run_journey, settings, args.product)
    else:
        results = anyio.run(run_catalog, settings, args.endpoint, args.status, args.min_products)

    print_summary(results)
    if args.report:
        write_report(args.report, results)
    return 0 if all(result.status is StepStatus.PASSED for result in results) else 1


if __name__ == "__main__":
    sys.exit(main())
