"""
Versioning Service - Product versions and lifecycle for ordered products.

Once a product appears in order history (sold on its own, or bundled inside
something that was sold) it is never mutated in place. Edits fork a new
product row with an incremented SKU version; the old row stays intact and
forwards to the successor through replaced_by.

Lifecycle:
    active -> sunset        (always allowed; the safe retirement path)
    active -> discontinued  (only for products no order references)
    sunset and discontinued are terminal.

Session Management Pattern:
- All public functions accept session=None parameter
- If session provided, use it directly
- If session is None, create a new session via session_scope()
"""

import copy
import json
import logging
import re
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import Text, cast, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from src.models import OrderItem, Product, ProductComponent, ProductStatus
from src.services.database import session_scope
from src.services.exceptions import (
    DatabaseError,
    InvalidLifecycleTransition,
    ProductInOrdersError,
    ProductNotFound,
    ValidationError,
    VersioningError,
)
from src.services.logging_utils import get_service_logger, log_operation
from src.services.order_snapshot_service import snapshot_references_product
from src.utils.constants import CYCLE_SEARCH_MAX_HOPS, VERSION_COPIED_FIELDS
from src.utils.datetime_utils import utc_now
from src.utils.sku import InvalidSKUError, format_version, increment_version, parse_sku
from src.utils.validators import validate_non_negative_price

logger = get_service_logger(__name__)

# Fields a caller may override when forking a version
VERSION_OVERRIDABLE_FIELDS = set(VERSION_COPIED_FIELDS) | {"slug"}

_PRICE_FIELDS = ("price", "original_price", "component_price")


# =============================================================================
# Order history check
# =============================================================================


def _is_product_in_orders_impl(product_id: str, session: Session) -> bool:
    sold_directly = (
        session.query(OrderItem.id).filter(OrderItem.product_id == product_id).first()
    )
    if sold_directly is not None:
        return True

    # Text prefilter on the JSON column; the snapshot reader confirms depth 1/2
    needle = json.dumps(product_id)
    candidates = (
        session.query(OrderItem.id, OrderItem.component_tree, OrderItem.snapshot_version)
        .filter(cast(OrderItem.component_tree, Text).contains(needle, autoescape=True))
        .all()
    )

    for order_item_id, tree, schema_version in candidates:
        if isinstance(tree, str):
            tree = json.loads(tree)
        if snapshot_references_product(tree, schema_version, product_id):
            logger.debug(f"Product {product_id} found in snapshot of order item {order_item_id}")
            return True

    return False


def is_product_in_orders(product_id: str, session: Session = None) -> bool:
    """
    Check if a product is referenced by any order, at any snapshot depth.

    True when the product was sold directly (OrderItem.product_id) or appears
    at depth 1 or depth 2 of any OrderItem.component_tree snapshot. A product
    never sold on its own can still be locked because it was bundled inside
    something that was sold.

    Args:
        product_id: Product to look for
        session: Optional SQLAlchemy session

    Returns:
        True if any order references the product

    Raises:
        SnapshotFormatError: If a candidate snapshot cannot be read
    """
    if session is not None:
        return _is_product_in_orders_impl(product_id, session)

    try:
        with session_scope() as session:
            return _is_product_in_orders_impl(product_id, session)
    except SQLAlchemyError as e:
        logger.error(f"Database error checking orders for {product_id}: {e}")
        raise DatabaseError(f"Failed to check order history: {e}", original_error=e)


def should_create_version(product_id: str, session: Session = None) -> bool:
    """Whether an edit to this product must go through create_product_version."""
    return is_product_in_orders(product_id, session=session)


# =============================================================================
# Version fork
# =============================================================================


def _get_product_or_raise(session: Session, product_id: str, role: str = "Product") -> Product:
    product = session.get(Product, product_id)
    if product is None:
        raise ProductNotFound(product_id, role=role)
    return product


def _version_slug(slug: str, current_version: int, new_version: int) -> str:
    base_slug = re.sub(rf"-v{current_version}$", "", slug) if current_version > 1 else slug
    return f"{base_slug}-v{new_version}"


def _validate_update_fields(update_fields: Dict[str, Any]) -> None:
    rejected = sorted(set(update_fields) - VERSION_OVERRIDABLE_FIELDS)
    if rejected:
        raise ValidationError(
            f"Field(s) cannot be set on a new version: {', '.join(rejected)}"
        )


def _copy_component_edges(session: Session, source: Product, target: Product) -> int:
    edges = (
        session.query(ProductComponent)
        .filter(ProductComponent.parent_product_id == source.id)
        .all()
    )
    for edge in edges:
        session.add(
            ProductComponent(
                parent_product_id=target.id,
                component=edge.component,
                quantity=edge.quantity,
                is_required=edge.is_required,
                is_included=edge.is_included,
                price_override=edge.price_override,
                display_name=edge.display_name,
                display_order=edge.display_order,
                sort_order=edge.sort_order,
                notes=edge.notes,
            )
        )
    return len(edges)


def _relink_parent_edges(session: Session, source: Product, target: Product) -> int:
    edges = (
        session.query(ProductComponent)
        .filter(ProductComponent.component_product_id == source.id)
        .all()
    )
    for edge in edges:
        edge.component = target
    return len(edges)


def _create_product_version_impl(
    product_id: str,
    version_notes: Optional[str],
    price,
    component_price,
    update_fields: Optional[Dict[str, Any]],
    copy_components: bool,
    relink_parents: bool,
    session: Session,
) -> Product:
    update_fields = dict(update_fields or {})
    _validate_update_fields(update_fields)

    current = _get_product_or_raise(session, product_id)

    if current.replaced_by is not None:
        raise VersioningError(
            f"Product {product_id} was already replaced by {current.replaced_by}; "
            f"version the latest product instead"
        )

    try:
        new_sku = increment_version(current.sku)
    except InvalidSKUError as e:
        raise VersioningError(f"Cannot version product {product_id}: {e}")
    sku_parts = parse_sku(new_sku)
    new_version = sku_parts.version

    base_id = current.base_product_id or current.id
    new_id = f"{base_id}_v{new_version}"
    if session.get(Product, new_id) is not None:
        raise VersioningError(f"Product version {new_id} already exists")

    data = {name: copy.deepcopy(getattr(current, name)) for name in VERSION_COPIED_FIELDS}
    data["slug"] = _version_slug(current.slug, current.version, new_version)
    if price is not None:
        data["price"] = price
    if component_price is not None:
        data["component_price"] = component_price
    data.update(update_fields)
    for price_field in _PRICE_FIELDS:
        if data.get(price_field) is None:
            continue
        is_valid, error = validate_non_negative_price(data[price_field], price_field)
        if not is_valid:
            raise ValidationError(error)
        data[price_field] = Decimal(str(data[price_field]))
    if data.get("price") is None:
        raise ValidationError("price: A version must have a price")
    if session.query(Product.id).filter(Product.slug == data["slug"]).first() is not None:
        raise VersioningError(f"Slug {data['slug']} is already in use")

    new_product = Product(
        id=new_id,
        sku=new_sku,
        sku_prefix=sku_parts.prefix,
        sku_category=sku_parts.category,
        sku_product_code=sku_parts.product_code,
        sku_version=format_version(new_version),
        version=new_version,
        base_product_id=base_id,
        previous_version_id=current.id,
        version_notes=version_notes,
        status=ProductStatus.ACTIVE.value,
        is_available_for_purchase=True,
        **data,
    )
    session.add(new_product)
    session.flush()

    copied = _copy_component_edges(session, current, new_product) if copy_components else 0
    relinked = _relink_parent_edges(session, current, new_product) if relink_parents else 0

    current.replaced_by = new_product.id
    session.flush()

    log_operation(
        logger,
        operation="create_product_version",
        outcome="success",
        product_id=product_id,
        new_product_id=new_product.id,
        new_sku=new_sku,
        copied_components=copied,
        relinked_parents=relinked,
    )
    return new_product


def create_product_version(
    product_id: str,
    version_notes: Optional[str] = None,
    price=None,
    component_price=None,
    update_fields: Optional[Dict[str, Any]] = None,
    copy_components: bool = True,
    relink_parents: bool = True,
    session: Session = None,
) -> Product:
    """
    Fork a new version of a product.

    The new row gets the next SKU version, id "{base_id}_v{n}" (base_id is
    the lineage root, or the product itself on its first fork), every catalog
    field of the current row, then the price/component price overrides and
    update_fields. It is active and available for purchase. The current row
    is left intact except for replaced_by, which points at the new row.

    With copy_components the new version receives the current row's component
    edges; with relink_parents, products that include the current row as a
    component include the new version instead. Order snapshots are never
    touched.

    Args:
        product_id: Product to fork
        version_notes: Free-form notes stored on the new version
        price: New standalone price
        component_price: New component price
        update_fields: Catalog field overrides (name, description, slug, ...)
        copy_components: Copy the product's own component edges
        relink_parents: Point parent products' edges at the new version
        session: Optional SQLAlchemy session

    Returns:
        The new Product

    Raises:
        ProductNotFound: If the product does not exist
        ValidationError: If update_fields touches version or lifecycle fields
        VersioningError: If the product was already replaced, its SKU cannot
            be incremented, or the new id is taken
    """
    args = (
        product_id,
        version_notes,
        price,
        component_price,
        update_fields,
        copy_components,
        relink_parents,
    )

    if session is not None:
        return _create_product_version_impl(*args, session)

    try:
        with session_scope() as session:
            return _create_product_version_impl(*args, session)
    except SQLAlchemyError as e:
        logger.error(f"Database error versioning product {product_id}: {e}")
        raise DatabaseError(f"Failed to create product version: {e}", original_error=e)


# =============================================================================
# Lifecycle
# =============================================================================


def _require_active(product: Product, target: ProductStatus) -> None:
    if product.status != ProductStatus.ACTIVE.value:
        raise InvalidLifecycleTransition(product.id, product.status, target.value)


def _sunset_product_impl(
    product_id: str, reason: str, replacement_id: Optional[str], session: Session
) -> Product:
    product = _get_product_or_raise(session, product_id)
    _require_active(product, ProductStatus.SUNSET)

    if replacement_id is not None:
        if replacement_id == product_id:
            raise ValidationError("A product cannot replace itself")
        _get_product_or_raise(session, replacement_id, role="Replacement product")
        product.replaced_by = replacement_id

    product.status = ProductStatus.SUNSET.value
    product.is_available_for_purchase = False
    product.sunset_date = utc_now()
    product.sunset_reason = reason
    session.flush()

    log_operation(
        logger,
        operation="sunset_product",
        outcome="success",
        product_id=product_id,
        replacement_id=replacement_id,
        reason=reason,
    )
    return product


def sunset_product(
    product_id: str,
    reason: str,
    replacement_id: Optional[str] = None,
    session: Session = None,
) -> Product:
    """
    Stop selling a product without touching its order history.

    Order references are not checked: sunset is the safe alternative to
    editing or deleting a referenced product.

    Args:
        product_id: Product to sunset
        reason: Why it is retired
        replacement_id: Optional product that replaces it
        session: Optional SQLAlchemy session

    Returns:
        The updated Product

    Raises:
        ProductNotFound: If the product or the replacement does not exist
        InvalidLifecycleTransition: If the product is not active
    """
    if session is not None:
        return _sunset_product_impl(product_id, reason, replacement_id, session)

    try:
        with session_scope() as session:
            return _sunset_product_impl(product_id, reason, replacement_id, session)
    except SQLAlchemyError as e:
        logger.error(f"Database error sunsetting product {product_id}: {e}")
        raise DatabaseError(f"Failed to sunset product: {e}", original_error=e)


def _discontinue_product_impl(product_id: str, reason: str, session: Session) -> Product:
    product = _get_product_or_raise(session, product_id)

    if _is_product_in_orders_impl(product_id, session):
        log_operation(
            logger,
            operation="discontinue_product",
            outcome="product_in_orders",
            level=logging.WARNING,
            product_id=product_id,
        )
        raise ProductInOrdersError(product_id, "discontinue")

    _require_active(product, ProductStatus.DISCONTINUED)

    product.status = ProductStatus.DISCONTINUED.value
    product.is_available_for_purchase = False
    product.discontinued_date = utc_now()
    product.discontinued_reason = reason
    session.flush()

    log_operation(
        logger,
        operation="discontinue_product",
        outcome="success",
        product_id=product_id,
        reason=reason,
    )
    return product


def discontinue_product(product_id: str, reason: str, session: Session = None) -> Product:
    """
    Withdraw a product that no order has ever referenced.

    Raises:
        ProductNotFound: If the product does not exist
        ProductInOrdersError: If any order references the product (use sunset)
        InvalidLifecycleTransition: If the product is not active
    """
    if session is not None:
        return _discontinue_product_impl(product_id, reason, session)

    try:
        with session_scope() as session:
            return _discontinue_product_impl(product_id, reason, session)
    except SQLAlchemyError as e:
        logger.error(f"Database error discontinuing product {product_id}: {e}")
        raise DatabaseError(f"Failed to discontinue product: {e}", original_error=e)


# =============================================================================
# Version queries
# =============================================================================


def _get_product_versions_impl(base_product_id: str, session: Session) -> List[Product]:
    return (
        session.query(Product)
        .filter(or_(Product.base_product_id == base_product_id, Product.id == base_product_id))
        .order_by(Product.version)
        .all()
    )


def get_product_versions(base_product_id: str, session: Session = None) -> List[Product]:
    """
    Get every version of a product, oldest first.

    Args:
        base_product_id: Lineage root id (the first version's own id)

    Returns:
        List of Products ordered by version number
    """
    if session is not None:
        return _get_product_versions_impl(base_product_id, session)

    with session_scope() as session:
        return _get_product_versions_impl(base_product_id, session)


def get_latest_version(base_product_id: str, session: Session = None) -> Optional[Product]:
    """Get the highest version of a product, or None if the lineage is unknown."""
    versions = get_product_versions(base_product_id, session=session)
    return versions[-1] if versions else None


def _resolve_current_product_impl(product_id: str, session: Session) -> Product:
    product = _get_product_or_raise(session, product_id)
    seen = {product.id}

    for _ in range(CYCLE_SEARCH_MAX_HOPS):
        if product.replaced_by is None:
            return product
        successor = session.get(Product, product.replaced_by)
        if successor is None or successor.id in seen:
            break
        seen.add(successor.id)
        product = successor

    logger.warning(f"Replacement chain from {product_id} stopped at {product.id}")
    return product


def resolve_current_product(product_id: str, session: Session = None) -> Product:
    """
    Follow replaced_by pointers to the product new purchases should use.

    Returns:
        The last product of the forwarding chain (the product itself if it
        was never replaced)

    Raises:
        ProductNotFound: If product_id does not exist
    """
    if session is not None:
        return _resolve_current_product_impl(product_id, session)

    with session_scope() as session:
        return _resolve_current_product_impl(product_id, session)
