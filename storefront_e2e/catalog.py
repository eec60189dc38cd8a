"""Product catalog API check: the listing request the home page makes."""
from __future__ import annotations

import logging
from typing import Any, List, Optional

from playwright.async_api import Page

from storefront_e2e.browser import Browser
from storefront_e2e.config import Settings, get_settings
from storefront_e2e.journey_data import ENTRIES_ENDPOINT, MIN_PRODUCTS
from storefront_e2e.network import InterceptionGate
from storefront_e2e.validation import validate_product_collection

logger = logging.getLogger(__name__)


async def verify_catalog_api(
    page: Page,
    settings: Optional[Settings] = None,
    endpoint: str = ENTRIES_ENDPOINT,
    expected_status: int = 200,
    min_products: int = MIN_PRODUCTS,
) -> List[Any]:
    """Load the home page and validate the product list it fetches.

    The response listener is armed before navigation so a fast response
    cannot be missed.
    """
    settings = settings or get_settings()
    browser = Browser(page, settings)
    gate = InterceptionGate(page, settings.timeouts)

    await gate.observe(endpoint)
    try:
        body = await gate.await_exchange(lambda: browser.goto(settings.base_url), endpoint, expected_status)
    finally:
        await gate.close()

    products = validate_product_collection(body, min_products)
    logger.info(f"✓ Catalog API check passed for {endpoint}")
    return products
