"""Checks on data observed over the network."""
from __future__ import annotations

import logging
from typing import Any, List, Mapping

from storefront_e2e.errors import ValidationFailure
from storefront_e2e.journey_data import MIN_PRODUCTS

logger = logging.getLogger(__name__)


def extract_product_collection(body: Any) -> List[Any]:
    """Return the product list: the body itself, or its first list-valued field."""
    if isinstance(body, list):
        return body
    if isinstance(body, Mapping):
        for value in body.values():
            if isinstance(value, list):
                return value
        raise ValidationFailure(
            f"Response is not an array and no array property found. Keys: {', '.join(map(str, body)) or '(none)'}"
        )
    raise ValidationFailure(f"Response is not an array or object. Received type: {type(body).__name__}")


def validate_product_collection(body: Any, min_products: int = MIN_PRODUCTS) -> List[Any]:
    """Validate that the response holds at least ``min_products`` product objects."""
    products = extract_product_collection(body)
    found = len(products)
    if found < min_products:
        raise ValidationFailure(
            f"Product list validation failed: found {found} products, expected at least {min_products}",
            found=found,
            required=min_products,
        )
    if products and not isinstance(products[0], Mapping):
        raise ValidationFailure(
            f"Products in response are not valid objects (first item is {type(products[0]).__name__})"
        )
    logger.info(f"✓ Product list validation passed: Found {found} products (minimum: {min_products})")
    return products
