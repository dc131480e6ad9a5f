"""SKU utilities for versioned catalog products.

SKU Format: XXX-XXXX-XXX-VNN (16 characters)
Example: TPC-PUMP-A01-V01

Structure:
- PREFIX: 3 letters (TPC)
- CATEGORY: 4 letters (PUMP, MOTR, RADI, CLNT)
- PRODUCT_CODE: 3 letters/digits (A01, M01, R02)
- VERSION: "V" + 2 digits (V01..V99)

Examples:
    >>> generate_sku(category="PUMP", product_code="A01")
    'TPC-PUMP-A01-V01'

    >>> increment_version("TPC-PUMP-A01-V01")
    'TPC-PUMP-A01-V02'

    >>> get_base_sku("TPC-PUMP-A01-V07")
    'TPC-PUMP-A01'
"""

import re
from dataclasses import dataclass

from .constants import (
    SKU_CATEGORY_LENGTH,
    SKU_DEFAULT_PREFIX,
    SKU_MAX_VERSION,
    SKU_MIN_VERSION,
    SKU_PREFIX_LENGTH,
    SKU_PRODUCT_CODE_LENGTH,
)

SKU_PATTERN = re.compile(r"^([A-Z]{3})-([A-Z]{4})-([A-Z0-9]{3})-V(\d{2})$")


class InvalidSKUError(ValueError):
    """Raised when a SKU or one of its segments is malformed."""

    def __init__(self, message: str, sku: str = None):
        self.sku = sku
        super().__init__(message)


@dataclass(frozen=True)
class SKUComponents:
    """Parsed segments of a SKU."""

    prefix: str
    category: str
    product_code: str
    version: int

    @property
    def version_string(self) -> str:
        return format_version(self.version)

    @property
    def base(self) -> str:
        return f"{self.prefix}-{self.category}-{self.product_code}"


def format_version(version: int) -> str:
    """Format a version number as the SKU version segment ("V01")."""
    return f"V{version:02d}"


def generate_sku(
    category: str,
    product_code: str,
    prefix: str = SKU_DEFAULT_PREFIX,
    version: int = 1,
) -> str:
    """
    Build a SKU from its segments.

    Args:
        category: 4-letter category code
        product_code: 3-character product code
        prefix: 3-letter prefix (default "TPC")
        version: Version number, 1..99

    Returns:
        SKU string

    Raises:
        InvalidSKUError: If any segment has the wrong length or the version
            is out of range
    """
    if len(prefix) != SKU_PREFIX_LENGTH:
        raise InvalidSKUError(f"SKU prefix must be {SKU_PREFIX_LENGTH} characters, got: {prefix}")
    if len(category) != SKU_CATEGORY_LENGTH:
        raise InvalidSKUError(
            f"SKU category must be {SKU_CATEGORY_LENGTH} characters, got: {category}"
        )
    if len(product_code) != SKU_PRODUCT_CODE_LENGTH:
        raise InvalidSKUError(
            f"SKU product code must be {SKU_PRODUCT_CODE_LENGTH} characters, got: {product_code}"
        )
    if not SKU_MIN_VERSION <= version <= SKU_MAX_VERSION:
        raise InvalidSKUError(
            f"SKU version must be between {SKU_MIN_VERSION} and {SKU_MAX_VERSION}, got: {version}"
        )

    sku = f"{prefix}-{category}-{product_code}-{format_version(version)}"
    # Segment lengths are right but the alphabet may not be
    parse_sku(sku)
    return sku


def parse_sku(sku: str) -> SKUComponents:
    """
    Parse a SKU into its segments.

    Raises:
        InvalidSKUError: If the SKU does not match XXX-XXXX-XXX-VNN
    """
    match = SKU_PATTERN.match(sku or "")
    if not match:
        raise InvalidSKUError(
            f"Invalid SKU format: {sku}. Expected format: XXX-XXXX-XXX-VNN", sku=sku
        )

    return SKUComponents(
        prefix=match.group(1),
        category=match.group(2),
        product_code=match.group(3),
        version=int(match.group(4)),
    )


def increment_version(current_sku: str) -> str:
    """Return the SKU for the next version of the same product."""
    components = parse_sku(current_sku)
    return generate_sku(
        prefix=components.prefix,
        category=components.category,
        product_code=components.product_code,
        version=components.version + 1,
    )


def get_base_sku(sku: str) -> str:
    """SKU without its version segment."""
    return parse_sku(sku).base


def is_same_product(sku1: str, sku2: str) -> bool:
    """True if both SKUs are versions of the same product."""
    try:
        return get_base_sku(sku1) == get_base_sku(sku2)
    except InvalidSKUError:
        return False


def is_valid_sku(sku: str) -> bool:
    try:
        parse_sku(sku)
        return True
    except InvalidSKUError:
        return False


def get_version_string(sku: str) -> str:
    """Version segment of a SKU, e.g. "V01"."""
    return parse_sku(sku).version_string


def get_version_number(sku: str) -> int:
    return parse_sku(sku).version
