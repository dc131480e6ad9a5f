"""
Input validation functions for catalog products.

This module provides validation functions for admin product input including:
- Numeric validation (non-negative prices and stock)
- String validation (length, required fields)
- SKU and slug format validation
- Product type validation
"""

from decimal import Decimal, InvalidOperation
from typing import Any, Optional, Tuple

from .constants import (
    ERROR_INVALID_NON_NEGATIVE,
    ERROR_REQUIRED_FIELD,
    MAX_NAME_LENGTH,
    MAX_PRODUCT_ID_LENGTH,
    MAX_SLUG_LENGTH,
    PRODUCT_TYPES,
)
from .sku import InvalidSKUError, generate_sku, is_valid_sku
from .slug_utils import validate_slug_format

ERROR_INVALID_NUMBER = "Must be a valid number"


def validate_required_string(value: Optional[str], field_name: str = "Field") -> Tuple[bool, str]:
    """
    Validate that a string field is not empty.

    Args:
        value: The string value to validate
        field_name: Name of the field for error messages

    Returns:
        Tuple of (is_valid, error_message)
    """
    if value is None or (isinstance(value, str) and value.strip() == ""):
        return False, f"{field_name}: {ERROR_REQUIRED_FIELD}"
    return True, ""


def validate_string_length(
    value: str, max_length: int, field_name: str = "Field"
) -> Tuple[bool, str]:
    """
    Validate that a string doesn't exceed maximum length.

    Returns:
        Tuple of (is_valid, error_message)
    """
    if value and len(value) > max_length:
        return False, f"{field_name}: Must be {max_length} characters or less"
    return True, ""


def validate_non_negative_price(value: Any, field_name: str = "Price") -> Tuple[bool, str]:
    """
    Validate that a value is a non-negative decimal amount.

    Floats are accepted but converted through str() so 19.99 stays 19.99.

    Returns:
        Tuple of (is_valid, error_message)
    """
    if isinstance(value, bool):
        return False, f"{field_name}: {ERROR_INVALID_NUMBER}"
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        return False, f"{field_name}: {ERROR_INVALID_NUMBER}"
    if not amount.is_finite():
        return False, f"{field_name}: {ERROR_INVALID_NUMBER}"
    if amount < 0:
        return False, f"{field_name}: {ERROR_INVALID_NON_NEGATIVE}"
    return True, ""


def validate_non_negative_int(value: Any, field_name: str = "Field") -> Tuple[bool, str]:
    if isinstance(value, bool) or not isinstance(value, int):
        return False, f"{field_name}: Must be a whole number"
    if value < 0:
        return False, f"{field_name}: {ERROR_INVALID_NON_NEGATIVE}"
    return True, ""


def validate_product_type(value: str, field_name: str = "Product Type") -> Tuple[bool, str]:
    if value not in PRODUCT_TYPES:
        return False, f"{field_name}: Must be one of {', '.join(PRODUCT_TYPES)}"
    return True, ""


def sanitize_string(value: Optional[str]) -> Optional[str]:
    """
    Sanitize a string value by stripping whitespace and converting empty strings to None.
    """
    if value is None:
        return None
    stripped = value.strip()
    return stripped if stripped else None


def _validate_sku_fields(data: dict) -> Optional[str]:
    sku = data.get("sku")
    if sku:
        if not is_valid_sku(sku):
            return f"SKU: Invalid format {sku!r}, expected XXX-XXXX-XXX-VNN"
        return None

    if not data.get("sku_category") or not data.get("sku_product_code"):
        return "SKU: Provide a sku, or sku_category and sku_product_code"

    try:
        generate_sku(
            category=data["sku_category"],
            product_code=data["sku_product_code"],
            **({"prefix": data["sku_prefix"]} if data.get("sku_prefix") else {}),
        )
    except InvalidSKUError as e:
        return f"SKU: {e}"
    return None


def validate_product_data(data: dict) -> Tuple[bool, list]:  # noqa: C901
    """
    Validate all fields for a new catalog product.

    Args:
        data: Dictionary containing product fields

    Returns:
        Tuple of (is_valid, list_of_errors)

    Required fields:
        - id (str): Natural product key
        - name (str): Display name
        - price (Decimal/str/float): Standalone price (>= 0)
        - sku (str), or sku_category + sku_product_code (+ optional sku_prefix)

    Optional fields:
        - slug (str): URL slug, derived from name when absent
        - component_price, original_price: Prices (>= 0)
        - product_type (str): standalone | component
        - stock_quantity (int): Units in stock (>= 0)
    """
    errors = []

    # Required: Product id
    is_valid, error = validate_required_string(data.get("id"), "ID")
    if not is_valid:
        errors.append(error)
    else:
        is_valid, error = validate_string_length(data["id"], MAX_PRODUCT_ID_LENGTH, "ID")
        if not is_valid:
            errors.append(error)

    # Required: Name
    is_valid, error = validate_required_string(data.get("name"), "Name")
    if not is_valid:
        errors.append(error)
    else:
        is_valid, error = validate_string_length(data["name"], MAX_NAME_LENGTH, "Name")
        if not is_valid:
            errors.append(error)

    # Required: Price
    if data.get("price") is None:
        errors.append(f"Price: {ERROR_REQUIRED_FIELD}")
    else:
        is_valid, error = validate_non_negative_price(data["price"], "Price")
        if not is_valid:
            errors.append(error)

    # Required: SKU (given, or derivable from segments)
    sku_error = _validate_sku_fields(data)
    if sku_error:
        errors.append(sku_error)

    # Optional: Slug
    if data.get("slug"):
        if not validate_slug_format(data["slug"]):
            errors.append("Slug: Use lowercase letters, digits and single hyphens")
        else:
            is_valid, error = validate_string_length(data["slug"], MAX_SLUG_LENGTH, "Slug")
            if not is_valid:
                errors.append(error)

    # Optional: Secondary prices
    for field_name, label in (("component_price", "Component Price"), ("original_price", "Original Price")):
        if data.get(field_name) is not None:
            is_valid, error = validate_non_negative_price(data[field_name], label)
            if not is_valid:
                errors.append(error)

    if data.get("product_type") is not None:
        is_valid, error = validate_product_type(data["product_type"])
        if not is_valid:
            errors.append(error)

    if data.get("stock_quantity") is not None:
        is_valid, error = validate_non_negative_int(data["stock_quantity"], "Stock Quantity")
        if not is_valid:
            errors.append(error)

    return len(errors) == 0, errors
