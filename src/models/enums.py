"""
Enumerations for catalog products.

This module contains enums used across catalog models:
- ProductStatus: Lifecycle state of a product row
- ProductType: Whether a product is sold on its own or only as a component
"""

from enum import Enum

from src.utils.constants import (
    PRODUCT_STATUS_ACTIVE,
    PRODUCT_STATUS_DISCONTINUED,
    PRODUCT_STATUS_SUNSET,
    PRODUCT_TYPE_COMPONENT,
    PRODUCT_TYPE_STANDALONE,
)


class ProductStatus(str, Enum):
    """
    Product lifecycle status.

    Values:
        ACTIVE: Sellable and editable (directly, or by version fork once ordered)
        SUNSET: No longer sold; kept for order history, may point at a replacement
        DISCONTINUED: Withdrawn; only reachable for products never ordered

    Transitions:
        ACTIVE -> SUNSET, ACTIVE -> DISCONTINUED. Both targets are terminal.
    """

    ACTIVE = PRODUCT_STATUS_ACTIVE
    SUNSET = PRODUCT_STATUS_SUNSET
    DISCONTINUED = PRODUCT_STATUS_DISCONTINUED

    @property
    def is_terminal(self) -> bool:
        return self is not ProductStatus.ACTIVE


class ProductType(str, Enum):
    """Product type."""

    STANDALONE = PRODUCT_TYPE_STANDALONE
    COMPONENT = PRODUCT_TYPE_COMPONENT
