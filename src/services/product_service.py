"""Product Service - Admin create/read/update/delete for catalog products.

This module is the edit surface for products. Edits to a product that order
history references never touch the ordered row: they are routed through the
versioning service, which forks a new version and forwards the old one.

Key Features:
- Input validation before any database work
- SKU segments derived from the SKU (or the SKU built from its segments)
- Slug derived from the name when not supplied, unique across products
- Version-aware updates (in-place when unordered, fork when ordered)
- Delete refused for ordered products and for components still in use

Example Usage:
  >>> from src.services.product_service import create_product, update_product
  >>>
  >>> pump = create_product({
  ...     "id": "pump-a1",
  ...     "name": "Thermal Pump A1",
  ...     "price": "89.00",
  ...     "sku_category": "PUMP",
  ...     "sku_product_code": "A01",
  ... })
  >>> pump.sku
  'TPC-PUMP-A01-V01'
  >>> result = update_product("pump-a1", {"price": "95.00"})
  >>> result["versioned"]
  False
"""

import logging
from decimal import Decimal
from typing import Any, Dict, Optional

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from src.models import Product, ProductStatus, ProductType
from src.services.component_service import get_parent_products
from src.services.database import session_scope
from src.services.exceptions import (
    DatabaseError,
    ProductInOrdersError,
    ProductInUse,
    ProductNotFound,
    ValidationError,
)
from src.services.logging_utils import get_service_logger, log_operation
from src.services.versioning_service import (
    VERSION_OVERRIDABLE_FIELDS,
    create_product_version,
    is_product_in_orders,
)
from src.utils.constants import DEFAULT_CURRENCY
from src.utils.sku import format_version, generate_sku, parse_sku
from src.utils.slug_utils import create_slug, validate_slug_format
from src.utils.validators import validate_non_negative_price, validate_product_data

logger = get_service_logger(__name__)

# Optional catalog fields accepted by create_product as given
_OPTIONAL_CREATE_FIELDS = (
    "original_price",
    "component_price",
    "currency",
    "description",
    "short_description",
    "features",
    "specifications",
    "images",
    "categories",
    "tags",
    "meta_title",
    "meta_description",
    "in_stock",
    "stock_quantity",
    "estimated_shipping",
)

_PRICE_FIELDS = ("price", "original_price", "component_price")


def _to_decimal(value) -> Optional[Decimal]:
    if value is None:
        return None
    return Decimal(str(value))


def _create_product_impl(data: Dict[str, Any], session: Session) -> Product:
    is_valid, errors = validate_product_data(data)
    if not is_valid:
        raise ValidationError(errors)

    if session.get(Product, data["id"]) is not None:
        raise ValidationError(f"ID: Product {data['id']} already exists")

    if data.get("sku"):
        sku = data["sku"]
    else:
        sku_kwargs = {"category": data["sku_category"], "product_code": data["sku_product_code"]}
        if data.get("sku_prefix"):
            sku_kwargs["prefix"] = data["sku_prefix"]
        sku = generate_sku(**sku_kwargs)
    sku_parts = parse_sku(sku)

    if session.query(Product.id).filter(Product.sku == sku).first() is not None:
        raise ValidationError(f"SKU: {sku} is already in use")

    if data.get("slug"):
        slug = data["slug"]
        if session.query(Product.id).filter(Product.slug == slug).first() is not None:
            raise ValidationError(f"Slug: {slug} is already in use")
    else:
        slug = create_slug(data["name"], session)
        if not validate_slug_format(slug):
            raise ValidationError("Slug: Could not derive a slug from the name")

    optional = {name: data[name] for name in _OPTIONAL_CREATE_FIELDS if name in data}
    for price_field in ("original_price", "component_price"):
        if price_field in optional:
            optional[price_field] = _to_decimal(optional[price_field])
    optional.setdefault("currency", DEFAULT_CURRENCY)

    product = Product(
        id=data["id"],
        name=data["name"].strip(),
        slug=slug,
        sku=sku,
        sku_prefix=sku_parts.prefix,
        sku_category=sku_parts.category,
        sku_product_code=sku_parts.product_code,
        sku_version=format_version(sku_parts.version),
        version=sku_parts.version,
        price=_to_decimal(data["price"]),
        product_type=data.get("product_type", ProductType.STANDALONE.value),
        status=ProductStatus.ACTIVE.value,
        is_available_for_purchase=True,
        **optional,
    )
    session.add(product)
    session.flush()

    log_operation(
        logger,
        operation="create_product",
        outcome="success",
        product_id=product.id,
        sku=product.sku,
        product_type=product.product_type,
    )
    return product


def create_product(data: Dict[str, Any], session: Session = None) -> Product:
    """Create a new catalog product.

    Args:
        data: Dictionary containing:
            - id (str, required): Natural product key
            - name (str, required): Display name
            - price (Decimal/str, required): Standalone price
            - sku (str, optional): Full SKU; otherwise built from
              sku_category, sku_product_code and optional sku_prefix
            - slug (str, optional): Derived from name when absent
            - product_type (str, optional): standalone (default) | component
            - component_price, original_price, description, images, ...
        session: Optional SQLAlchemy session

    Returns:
        Product: Created product, active and available for purchase

    Raises:
        ValidationError: If required fields are missing or invalid, or the
            id, SKU or slug is already taken
        DatabaseError: If database operation fails
    """
    if session is not None:
        return _create_product_impl(data, session)

    try:
        with session_scope() as session:
            return _create_product_impl(data, session)
    except SQLAlchemyError as e:
        logger.error(f"Database error creating product: {e}")
        raise DatabaseError("Failed to create product", original_error=e)


def get_product(product_id: str, session: Session = None) -> Product:
    """Retrieve product by ID.

    Raises:
        ProductNotFound: If product_id doesn't exist
    """
    if session is not None:
        product = session.get(Product, product_id)
        if product is None:
            raise ProductNotFound(product_id)
        return product

    with session_scope() as session:
        product = session.get(Product, product_id)
        if product is None:
            raise ProductNotFound(product_id)
        return product


def get_product_by_slug(slug: str, session: Session = None) -> Product:
    """Retrieve product by URL slug.

    Raises:
        ProductNotFound: If no product has this slug
    """
    if session is not None:
        product = session.query(Product).filter(Product.slug == slug).first()
        if product is None:
            raise ProductNotFound(slug)
        return product

    with session_scope() as session:
        product = session.query(Product).filter(Product.slug == slug).first()
        if product is None:
            raise ProductNotFound(slug)
        return product


def _validate_updates(updates: Dict[str, Any]) -> Dict[str, Any]:
    errors = []

    rejected = sorted(set(updates) - VERSION_OVERRIDABLE_FIELDS)
    if rejected:
        errors.append(f"Field(s) cannot be edited: {', '.join(rejected)}")

    for price_field in _PRICE_FIELDS:
        value = updates.get(price_field)
        if value is None:
            if price_field == "price" and "price" in updates:
                errors.append("Price: Cannot be empty")
            continue
        is_valid, error = validate_non_negative_price(value, price_field)
        if not is_valid:
            errors.append(error)

    if "name" in updates and not (updates["name"] or "").strip():
        errors.append("Name: This field is required")
    if "slug" in updates and not validate_slug_format(updates["slug"] or ""):
        errors.append("Slug: Use lowercase letters, digits and single hyphens")

    if errors:
        raise ValidationError(errors)

    cleaned = dict(updates)
    for price_field in _PRICE_FIELDS:
        if cleaned.get(price_field) is not None:
            cleaned[price_field] = _to_decimal(cleaned[price_field])
    return cleaned


def _update_product_impl(
    product_id: str, updates: Dict[str, Any], version_notes: Optional[str], session: Session
) -> Dict[str, Any]:
    updates = _validate_updates(updates)

    product = session.get(Product, product_id)
    if product is None:
        raise ProductNotFound(product_id)

    if is_product_in_orders(product_id, session=session):
        new_version = create_product_version(
            product_id,
            version_notes=version_notes,
            update_fields=updates,
            session=session,
        )
        log_operation(
            logger,
            operation="update_product",
            outcome="versioned",
            product_id=product_id,
            new_product_id=new_version.id,
            fields=sorted(updates),
        )
        return {"versioned": True, "product": new_version}

    if "slug" in updates and updates["slug"] != product.slug:
        taken = (
            session.query(Product.id)
            .filter(Product.slug == updates["slug"], Product.id != product_id)
            .first()
        )
        if taken is not None:
            raise ValidationError(f"Slug: {updates['slug']} is already in use")

    for field_name, value in updates.items():
        setattr(product, field_name, value)
    session.flush()

    log_operation(
        logger,
        operation="update_product",
        outcome="updated_in_place",
        product_id=product_id,
        fields=sorted(updates),
    )
    return {"versioned": False, "product": product}


def update_product(
    product_id: str,
    updates: Dict[str, Any],
    version_notes: Optional[str] = None,
    session: Session = None,
) -> Dict[str, Any]:
    """Update product catalog fields, versioning when order history requires it.

    A product no order references is edited in place. A referenced product
    is left untouched and the edit is applied to a new version instead
    (see versioning_service.create_product_version).

    Args:
        product_id: Product identifier
        updates: Catalog fields to change (name, price, description, slug, ...)
        version_notes: Notes stored on the new version when one is created
        session: Optional SQLAlchemy session

    Returns:
        {"versioned": bool, "product": Product} where product is the new
        version when versioned is True

    Raises:
        ProductNotFound: If product_id doesn't exist
        ValidationError: If a field cannot be edited or a value is invalid
        VersioningError: If the ordered product was already replaced
    """
    if session is not None:
        return _update_product_impl(product_id, updates, version_notes, session)

    try:
        with session_scope() as session:
            return _update_product_impl(product_id, updates, version_notes, session)
    except SQLAlchemyError as e:
        logger.error(f"Database error updating product {product_id}: {e}")
        raise DatabaseError(f"Failed to update product {product_id}", original_error=e)


def _delete_product_impl(product_id: str, session: Session) -> bool:
    product = session.get(Product, product_id)
    if product is None:
        raise ProductNotFound(product_id)

    if is_product_in_orders(product_id, session=session):
        log_operation(
            logger,
            operation="delete_product",
            outcome="product_in_orders",
            level=logging.WARNING,
            product_id=product_id,
        )
        raise ProductInOrdersError(product_id, "delete")

    parents = get_parent_products(product_id, session=session)
    if parents:
        raise ProductInUse(product_id, {"parent_products": len(parents)})

    version_references = (
        session.query(Product)
        .filter(or_(Product.replaced_by == product_id, Product.previous_version_id == product_id))
        .filter(Product.id != product_id)
        .count()
    )
    if version_references:
        raise ProductInUse(product_id, {"version_references": version_references})

    session.delete(product)
    session.flush()

    log_operation(logger, operation="delete_product", outcome="success", product_id=product_id)
    return True


def delete_product(product_id: str, session: Session = None) -> bool:
    """Delete a product that no order and no other product references.

    The product's own component edges are deleted with it; the component
    products are not.

    Returns:
        bool: True if deletion successful

    Raises:
        ProductNotFound: If product_id doesn't exist
        ProductInOrdersError: If any order references the product (use sunset)
        ProductInUse: If other products include it as a component or point to it
            through replaced_by or previous_version_id

    Example:
        >>> delete_product("pc-build")
        Traceback (most recent call last):
        ...
        ProductInOrdersError: Cannot delete product pc-build that exists in orders. Use sunset instead.
    """
    if session is not None:
        return _delete_product_impl(product_id, session)

    try:
        with session_scope() as session:
            return _delete_product_impl(product_id, session)
    except SQLAlchemyError as e:
        logger.error(f"Database error deleting product {product_id}: {e}")
        raise DatabaseError(f"Failed to delete product {product_id}", original_error=e)
