"""
Order Snapshot Service - Immutable product snapshots for order items.

Captures a product and its two-level component tree at purchase time so that
order history stays accurate after the product is versioned or sunset. The
snapshot is also what the versioning service searches to decide whether a
product is locked by order history.

Snapshot contract (snapshot_version 1), stored in OrderItem.component_tree:

    [
        {
            "component_id": "pump-a1",
            "component_sku": "TPC-PUMP-A01-V01",
            "component_name": "Thermal Pump A1",
            "component_version": 1,
            "quantity": 1,
            "price": "89.00",            # unit price as a decimal string
            "is_included": true,
            "is_required": true,
            "components": [ ...depth-2 entries, same keys, no "components"... ]
        },
        ...
    ]

Readers must go through read_component_snapshot(), which dispatches on the
schema version and rejects versions it does not know.

Session Management Pattern:
- All public functions accept session=None parameter
- If session provided, use it directly
- If session is None, create a new session via session_scope()
"""

from dataclasses import dataclass, field, replace
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from src.models import OrderItem, Product, ProductComponent, ProductStatus
from src.services.component_service import get_component_tree
from src.services.database import session_scope
from src.services.exceptions import (
    DatabaseError,
    ProductNotFound,
    SnapshotFormatError,
    ValidationError,
)
from src.services.logging_utils import get_service_logger, log_operation
from src.services.pricing_service import resolve_unit_price, sum_component_tree
from src.utils.constants import (
    CURRENT_SNAPSHOT_SCHEMA_VERSION,
    SNAPSHOT_SCHEMA_V1,
    SUPPORTED_SNAPSHOT_SCHEMA_VERSIONS,
)

logger = get_service_logger(__name__)


# =============================================================================
# Snapshot contract
# =============================================================================


@dataclass(frozen=True)
class ComponentSnapshot:
    """One component entry of an order item snapshot.

    `components` is populated only for depth-1 entries.
    """

    component_id: str
    component_sku: str
    component_name: str
    component_version: int
    quantity: int
    price: Decimal
    is_included: bool
    is_required: bool
    components: List["ComponentSnapshot"] = field(default_factory=list)

    def to_json(self, include_components: bool = True) -> Dict[str, Any]:
        data = {
            "component_id": self.component_id,
            "component_sku": self.component_sku,
            "component_name": self.component_name,
            "component_version": self.component_version,
            "quantity": self.quantity,
            "price": str(self.price),
            "is_included": self.is_included,
            "is_required": self.is_required,
        }
        if include_components:
            data["components"] = [sub.to_json(include_components=False) for sub in self.components]
        return data


def _entry_from_relationship(
    component: Product, relationship: ProductComponent
) -> ComponentSnapshot:
    return ComponentSnapshot(
        component_id=component.id,
        component_sku=component.sku,
        component_name=relationship.display_name or component.name,
        component_version=component.version,
        quantity=relationship.quantity,
        price=resolve_unit_price(component, relationship),
        is_included=relationship.is_included,
        is_required=relationship.is_required,
    )


def _read_int(entry: dict, key: str, component_id: str) -> int:
    value = entry.get(key, 1)
    if isinstance(value, bool):
        raise SnapshotFormatError(f"Snapshot entry {component_id} has invalid {key}: {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise SnapshotFormatError(f"Snapshot entry {component_id} has invalid {key}: {value!r}")


def _read_flag(entry: dict, key: str, component_id: str) -> bool:
    value = entry.get(key, True)
    if not isinstance(value, bool):
        raise SnapshotFormatError(f"Snapshot entry {component_id} has invalid {key}: {value!r}")
    return value


def _read_v1_entry(entry: Any, depth: int) -> ComponentSnapshot:
    if not isinstance(entry, dict):
        raise SnapshotFormatError(f"Snapshot entry at depth {depth} is not an object: {entry!r}")

    component_id = entry.get("component_id")
    if not isinstance(component_id, str) or not component_id:
        raise SnapshotFormatError(f"Snapshot entry at depth {depth} has no component_id")

    try:
        price = Decimal(str(entry.get("price", "0")))
    except InvalidOperation:
        raise SnapshotFormatError(f"Snapshot entry {component_id} has invalid price")

    sub_entries = []
    if depth == 1:
        raw_subs = entry.get("components") or []
        if not isinstance(raw_subs, list):
            raise SnapshotFormatError(f"Snapshot entry {component_id} components is not a list")
        sub_entries = [_read_v1_entry(sub, depth=2) for sub in raw_subs]

    return ComponentSnapshot(
        component_id=component_id,
        component_sku=entry.get("component_sku", ""),
        component_name=entry.get("component_name", ""),
        component_version=_read_int(entry, "component_version", component_id),
        quantity=_read_int(entry, "quantity", component_id),
        price=price,
        is_included=_read_flag(entry, "is_included", component_id),
        is_required=_read_flag(entry, "is_required", component_id),
        components=sub_entries,
    )


def read_component_snapshot(tree: Any, schema_version: int) -> List[ComponentSnapshot]:
    """
    Parse a stored component tree snapshot.

    Only depth 1 and depth 2 are read; anything nested deeper is ignored.

    Args:
        tree: Decoded JSON value of OrderItem.component_tree
        schema_version: OrderItem.snapshot_version

    Returns:
        List of depth-1 ComponentSnapshot entries

    Raises:
        SnapshotFormatError: If the version is unknown or the data is malformed
    """
    if schema_version not in SUPPORTED_SNAPSHOT_SCHEMA_VERSIONS:
        raise SnapshotFormatError(f"Unsupported component snapshot version: {schema_version}")

    if tree is None:
        return []
    if not isinstance(tree, list):
        raise SnapshotFormatError("Component snapshot must be a list")

    if schema_version == SNAPSHOT_SCHEMA_V1:
        return [_read_v1_entry(entry, depth=1) for entry in tree]

    raise SnapshotFormatError(f"No reader for component snapshot version: {schema_version}")


def iter_snapshot_component_ids(tree: Any, schema_version: int) -> Iterable[str]:
    """Yield every component id at depth 1 and depth 2 of a snapshot."""
    for entry in read_component_snapshot(tree, schema_version):
        yield entry.component_id
        for sub in entry.components:
            yield sub.component_id


def snapshot_references_product(tree: Any, schema_version: int, product_id: str) -> bool:
    """True if product_id appears at depth 1 or depth 2 of the snapshot."""
    return any(
        component_id == product_id
        for component_id in iter_snapshot_component_ids(tree, schema_version)
    )


# =============================================================================
# Snapshot creation
# =============================================================================


def _create_order_item_snapshot_impl(product_id: str, quantity: int, session: Session) -> dict:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise ValidationError(f"Order quantity must be a positive integer, got: {quantity!r}")

    product = session.get(Product, product_id)
    if product is None:
        raise ProductNotFound(product_id)

    tree = get_component_tree(product_id, session=session)

    entries = []
    for node in tree:
        subs = [
            _entry_from_relationship(leaf.component, leaf.relationship)
            for leaf in node.sub_components
        ]
        entry = _entry_from_relationship(node.component, node.relationship)
        entries.append(replace(entry, components=subs))

    pricing = sum_component_tree(tree)
    base_price = Decimal(product.price)
    price_per_unit = base_price + pricing["included_price"] + pricing["optional_price"]

    images = product.images or []
    product_image = images[0] if images else ""

    return {
        "product_id": product.id,
        "product_sku": product.sku,
        "product_slug": product.slug,
        "product_name": product.name,
        "product_version": product.version,
        "product_type": product.product_type,
        "product_image": product_image,
        "component_tree": [entry.to_json() for entry in entries],
        "snapshot_version": CURRENT_SNAPSHOT_SCHEMA_VERSION,
        "quantity": quantity,
        "base_price": base_price,
        "included_components_price": pricing["included_price"],
        "optional_components_price": pricing["optional_price"],
        "price": price_per_unit,
        "line_total": price_per_unit * quantity,
        "current_product_id": product.id,
    }


def create_order_item_snapshot(product_id: str, quantity: int, session: Session = None) -> dict:
    """
    Build an immutable snapshot of a product and its component tree.

    The per-unit price is the product price plus the included and optional
    component prices.

    Args:
        product_id: Product being purchased
        quantity: Units purchased (positive integer)
        session: Optional SQLAlchemy session

    Returns:
        dict with OrderItem column values

    Raises:
        ProductNotFound: If the product does not exist
        ValidationError: If quantity is invalid
    """
    if session is not None:
        return _create_order_item_snapshot_impl(product_id, quantity, session)

    try:
        with session_scope() as session:
            return _create_order_item_snapshot_impl(product_id, quantity, session)
    except SQLAlchemyError as e:
        logger.error(f"Database error creating snapshot for {product_id}: {e}")
        raise DatabaseError(f"Failed to create order item snapshot: {e}", original_error=e)


def _create_order_item_snapshots_impl(items: List[dict], session: Session) -> List[dict]:
    snapshots = []
    for item in items:
        try:
            product_id = item["product_id"]
            quantity = item["quantity"]
        except (KeyError, TypeError):
            raise ValidationError(f"Order item needs product_id and quantity, got: {item!r}")
        snapshots.append(_create_order_item_snapshot_impl(product_id, quantity, session))

    log_operation(
        logger,
        operation="create_order_item_snapshots",
        outcome="success",
        item_count=len(snapshots),
    )
    return snapshots


def create_order_item_snapshots(items: List[dict], session: Session = None) -> List[dict]:
    """
    Snapshot every line of a cart in one session.

    Args:
        items: [{"product_id": str, "quantity": int}, ...]
        session: Optional SQLAlchemy session

    Returns:
        List of snapshot dicts, in the order of items

    Raises:
        ProductNotFound: If any product does not exist
        ValidationError: If an item is malformed or its quantity is invalid
    """
    if session is not None:
        return _create_order_item_snapshots_impl(items, session)

    try:
        with session_scope() as session:
            return _create_order_item_snapshots_impl(items, session)
    except SQLAlchemyError as e:
        logger.error(f"Database error creating order item snapshots: {e}")
        raise DatabaseError(f"Failed to create order item snapshots: {e}", original_error=e)


def _record_order_item_impl(
    order_id: int, product_id: str, quantity: int, session: Session
) -> OrderItem:
    product = session.get(Product, product_id)
    if product is None:
        raise ProductNotFound(product_id)
    if not _is_available(product):
        raise ValidationError(f"Product {product_id} is not available for purchase")

    snapshot = _create_order_item_snapshot_impl(product_id, quantity, session)
    order_item = OrderItem(order_id=order_id, **snapshot)
    session.add(order_item)
    session.flush()

    log_operation(
        logger,
        operation="record_order_item",
        outcome="success",
        order_id=order_id,
        product_id=product_id,
        quantity=quantity,
        component_count=len(snapshot["component_tree"]),
    )
    return order_item


def record_order_item(
    order_id: int, product_id: str, quantity: int, session: Session = None
) -> OrderItem:
    """
    Persist an order item with its component snapshot.

    Raises:
        ProductNotFound: If the product does not exist
        ValidationError: If the product is not purchasable or quantity is invalid
    """
    if session is not None:
        return _record_order_item_impl(order_id, product_id, quantity, session)

    try:
        with session_scope() as session:
            return _record_order_item_impl(order_id, product_id, quantity, session)
    except SQLAlchemyError as e:
        logger.error(f"Database error recording order item for {product_id}: {e}")
        raise DatabaseError(f"Failed to record order item: {e}", original_error=e)


# =============================================================================
# Checkout helpers
# =============================================================================


def _is_available(product: Product) -> bool:
    return product.is_available_for_purchase and product.status == ProductStatus.ACTIVE.value


def _validate_products_available_impl(product_ids: List[str], session: Session) -> dict:
    products = []
    if product_ids:
        products = session.query(Product).filter(Product.id.in_(product_ids)).all()
    by_id = {product.id: product for product in products}

    unavailable = [
        product_id
        for product_id in product_ids
        if product_id not in by_id or not _is_available(by_id[product_id])
    ]

    return {"valid": len(unavailable) == 0, "unavailable": unavailable}


def validate_products_available(product_ids: List[str], session: Session = None) -> dict:
    """
    Check that every product can still be purchased.

    Returns:
        {"valid": bool, "unavailable": [product ids missing, inactive, or unavailable]}
    """
    if session is not None:
        return _validate_products_available_impl(product_ids, session)

    with session_scope() as session:
        return _validate_products_available_impl(product_ids, session)


def calculate_order_totals(snapshots: List[dict]) -> dict:
    """Subtotal and item count across order item snapshots."""
    subtotal = sum((Decimal(snapshot["line_total"]) for snapshot in snapshots), Decimal("0.00"))
    item_count = sum(snapshot["quantity"] for snapshot in snapshots)
    return {"subtotal": subtotal, "item_count": item_count}
