"""Utilities package for the storefront catalog core."""

from .sku import (
    InvalidSKUError,
    generate_sku,
    parse_sku,
    increment_version,
    is_valid_sku,
)

__all__ = [
    "InvalidSKUError",
    "generate_sku",
    "parse_sku",
    "increment_version",
    "is_valid_sku",
]
