"""Slug generation utilities for catalog products.

This module provides utilities for generating URL-safe, deterministic slugs
from product names with Unicode support and uniqueness guarantees.

Examples:
    >>> create_slug("Thermal Pump A1")
    'thermal-pump-a1'

    >>> create_slug("360mm Radiator (Black)")
    '360mm-radiator-black'
"""

import re
import unicodedata
from typing import Optional

from sqlalchemy.orm import Session


def create_slug(name: str, session: Optional[Session] = None) -> str:
    """Generate URL-safe slug from a product name.

    Algorithm:
        1. Normalize Unicode to NFD (decompose accented characters)
        2. Encode to ASCII, ignoring non-ASCII characters
        3. Convert to lowercase
        4. Replace whitespace and underscores with hyphens
        5. Remove all non-alphanumeric characters except hyphens
        6. Collapse multiple consecutive hyphens
        7. Strip leading/trailing hyphens
        8. Check uniqueness and auto-increment if needed

    Args:
        name: Product name to convert to slug
        session: Optional database session for uniqueness checking.
                If None, no uniqueness check is performed.

    Returns:
        URL-safe slug string (lowercase, alphanumeric + hyphens only)

    Note:
        Empty or whitespace-only input results in an empty slug (caller should validate)
    """
    normalized = unicodedata.normalize("NFD", name)
    slug = normalized.encode("ascii", "ignore").decode("ascii")
    slug = slug.lower()
    slug = re.sub(r"[\s_]+", "-", slug)
    slug = re.sub(r"[^a-z0-9-]", "", slug)
    slug = re.sub(r"-+", "-", slug)
    slug = slug.strip("-")

    if session is None:
        return slug

    from ..models import Product

    if not session.query(Product).filter_by(slug=slug).first():
        return slug

    counter = 1
    while True:
        candidate = f"{slug}-{counter}"
        if not session.query(Product).filter_by(slug=candidate).first():
            return candidate
        counter += 1


def validate_slug_format(slug: str) -> bool:
    """Validate that a slug follows the expected format.

    Examples:
        >>> validate_slug_format("thermal-pump-a1")
        True
        >>> validate_slug_format("Thermal Pump")
        False
        >>> validate_slug_format("-pump")
        False
    """
    if not slug:
        return False
    if not re.match(r"^[a-z0-9-]+$", slug):
        return False
    if slug.startswith("-") or slug.endswith("-"):
        return False
    if "--" in slug:
        return False
    return True
