"""
Component Service - Product composition (bill of materials) management.

This service manages ProductComponent edges between products: a standalone
product (e.g. a PC build) is composed of component products (CPU, pump,
radiator), and a component may itself have components, but no deeper.

Key Features:
- Cycle and depth validation before an edge is written
- Validation and insert in a single transaction, retried on serialization failure
- Two-level component tree reads (deeper data is never traversed)
- Reverse lookup of the products that use a component
- Integrity report for existing composition data

Session Management Pattern:
- All public functions accept session=None parameter
- If session provided, use it directly (caller owns the transaction)
- If session is None, create a new session via session_scope()
"""

import logging
from collections import defaultdict
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Set

from sqlalchemy.exc import DBAPIError, IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from src.models import Product, ProductComponent
from src.services.database import session_scope
from src.services.dto import ComponentLeaf, ComponentTreeNode
from src.services.exceptions import (
    CircularReferenceError,
    ComponentRelationshipNotFound,
    DatabaseError,
    DepthLimitExceededError,
    DuplicateComponentError,
    ProductNotFound,
    ValidationError,
)
from src.services.logging_utils import get_service_logger, log_operation
from src.utils.constants import (
    ADD_COMPONENT_MAX_ATTEMPTS,
    COMPONENT_UPDATABLE_FIELDS,
    CYCLE_SEARCH_MAX_HOPS,
    MAX_COMPONENT_DEPTH,
    SERIALIZATION_FAILURE_SQLSTATE,
)

logger = get_service_logger(__name__)


# =============================================================================
# Graph walks
# =============================================================================


def _child_ids(session: Session, parent_ids: Iterable[str]) -> Set[str]:
    rows = (
        session.query(ProductComponent.component_product_id)
        .filter(ProductComponent.parent_product_id.in_(list(parent_ids)))
        .all()
    )
    return {row[0] for row in rows}


def _parent_ids(session: Session, component_ids: Iterable[str]) -> Set[str]:
    rows = (
        session.query(ProductComponent.parent_product_id)
        .filter(ProductComponent.component_product_id.in_(list(component_ids)))
        .all()
    )
    return {row[0] for row in rows}


def _count_levels(session: Session, start_id: str, step, max_levels: int) -> int:
    """
    Count non-empty levels reachable from start_id, stopping at max_levels.

    `step` maps a frontier of ids to the next frontier (children or parents).
    Ids already seen are not revisited, so malformed cyclic data terminates.
    """
    levels = 0
    seen = {start_id}
    frontier = {start_id}

    while frontier and levels < max_levels:
        next_frontier = step(session, frontier) - seen
        if not next_frontier:
            break
        levels += 1
        seen |= next_frontier
        frontier = next_frontier

    return levels


def _would_create_cycle_impl(
    parent_product_id: str, component_product_id: str, session: Session
) -> bool:
    if parent_product_id == component_product_id:
        return True

    # Descendants of the candidate component, level by level
    visited: Set[str] = set()
    frontier = {component_product_id}

    for _ in range(CYCLE_SEARCH_MAX_HOPS):
        children = _child_ids(session, frontier)
        if parent_product_id in children:
            return True
        visited |= frontier
        frontier = children - visited
        if not frontier:
            break

    return False


def _would_exceed_depth_impl(
    parent_product_id: str, component_product_id: str, session: Session
) -> bool:
    walk_limit = MAX_COMPONENT_DEPTH + 1

    # Levels already hanging below the candidate (2 = it has grandchildren)
    component_height = _count_levels(session, component_product_id, _child_ids, walk_limit)
    # Levels above the parent (1 = the parent is itself a component)
    parent_depth = _count_levels(session, parent_product_id, _parent_ids, walk_limit)

    return parent_depth + 1 + component_height > MAX_COMPONENT_DEPTH


def would_create_cycle(
    parent_product_id: str, component_product_id: str, session: Session = None
) -> bool:
    """
    Check if adding component_product_id under parent_product_id would form a cycle.

    Walks the descendants of the candidate component, bounded to
    CYCLE_SEARCH_MAX_HOPS levels as a guard against malformed data, and
    reports a cycle if the parent is among them. A product can never be its
    own component.

    Args:
        parent_product_id: Product that would include the component
        component_product_id: Product being added
        session: Optional SQLAlchemy session

    Returns:
        True if the edge would create a cycle
    """
    if session is not None:
        return _would_create_cycle_impl(parent_product_id, component_product_id, session)

    with session_scope() as session:
        return _would_create_cycle_impl(parent_product_id, component_product_id, session)


def would_exceed_depth(
    parent_product_id: str, component_product_id: str, session: Session = None
) -> bool:
    """
    Check if adding the edge would produce a path longer than MAX_COMPONENT_DEPTH.

    A candidate that already has components with their own components is
    always rejected. The parent's position is also taken into account: a
    parent that is itself a sub-component cannot receive any component.

    Args:
        parent_product_id: Product that would include the component
        component_product_id: Product being added
        session: Optional SQLAlchemy session

    Returns:
        True if the edge would exceed the depth limit
    """
    if session is not None:
        return _would_exceed_depth_impl(parent_product_id, component_product_id, session)

    with session_scope() as session:
        return _would_exceed_depth_impl(parent_product_id, component_product_id, session)


# =============================================================================
# Edge writes
# =============================================================================


def _validate_quantity(quantity) -> None:
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise ValidationError(f"Component quantity must be an integer, got: {quantity!r}")
    if quantity <= 0:
        raise ValidationError("Component quantity must be positive")


def _validate_price_override(price_override) -> Optional[Decimal]:
    if price_override is None:
        return None
    try:
        value = Decimal(str(price_override))
    except (ArithmeticError, ValueError):
        raise ValidationError(f"Price override must be a number, got: {price_override!r}")
    if value < 0:
        raise ValidationError("Price override must be zero or greater")
    return value


def _is_serialization_failure(error: DBAPIError) -> bool:
    orig = getattr(error, "orig", None)
    code = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    return code == SERIALIZATION_FAILURE_SQLSTATE


def _get_edge(
    session: Session, parent_product_id: str, component_product_id: str
) -> Optional[ProductComponent]:
    return (
        session.query(ProductComponent)
        .filter(
            ProductComponent.parent_product_id == parent_product_id,
            ProductComponent.component_product_id == component_product_id,
        )
        .first()
    )


def _add_component_impl(
    parent_product_id: str,
    component_product_id: str,
    quantity: int,
    is_required: bool,
    is_included: bool,
    price_override,
    display_name: Optional[str],
    sort_order: int,
    display_order: int,
    notes: Optional[str],
    session: Session,
) -> ProductComponent:
    _validate_quantity(quantity)
    price_override = _validate_price_override(price_override)

    parent = session.get(Product, parent_product_id)
    if parent is None:
        raise ProductNotFound(parent_product_id, role="Parent product")

    component = session.get(Product, component_product_id)
    if component is None:
        raise ProductNotFound(component_product_id, role="Component product")

    if _would_create_cycle_impl(parent_product_id, component_product_id, session):
        log_operation(
            logger,
            operation="add_component",
            outcome="cycle_detected",
            level=logging.WARNING,
            parent_product_id=parent_product_id,
            component_product_id=component_product_id,
        )
        raise CircularReferenceError(parent_product_id, component_product_id)

    if _would_exceed_depth_impl(parent_product_id, component_product_id, session):
        log_operation(
            logger,
            operation="add_component",
            outcome="depth_exceeded",
            level=logging.WARNING,
            parent_product_id=parent_product_id,
            component_product_id=component_product_id,
        )
        raise DepthLimitExceededError(
            parent_product_id, component_product_id, MAX_COMPONENT_DEPTH
        )

    if _get_edge(session, parent_product_id, component_product_id) is not None:
        raise DuplicateComponentError(parent_product_id, component_product_id)

    relationship = ProductComponent(
        parent_product_id=parent_product_id,
        component=component,
        quantity=quantity,
        is_required=is_required,
        is_included=is_included,
        price_override=price_override,
        display_name=display_name,
        sort_order=sort_order,
        display_order=display_order,
        notes=notes,
    )
    session.add(relationship)

    try:
        session.flush()
    except IntegrityError:
        # A concurrent writer inserted the same pair after our duplicate check
        raise DuplicateComponentError(parent_product_id, component_product_id)

    log_operation(
        logger,
        operation="add_component",
        outcome="success",
        parent_product_id=parent_product_id,
        component_product_id=component_product_id,
        quantity=quantity,
        is_included=is_included,
    )
    return relationship


def add_component(
    parent_product_id: str,
    component_product_id: str,
    quantity: int = 1,
    is_required: bool = True,
    is_included: bool = True,
    price_override=None,
    display_name: Optional[str] = None,
    sort_order: int = 0,
    display_order: int = 0,
    notes: Optional[str] = None,
    session: Session = None,
) -> ProductComponent:
    """
    Add a component product to a parent product.

    Existence, cycle, depth, and duplicate checks run in the same transaction
    as the insert. When this function owns the transaction and the engine
    reports a serialization failure (SERIALIZABLE isolation under concurrent
    edits), the whole validate-and-insert is retried up to
    ADD_COMPONENT_MAX_ATTEMPTS times.

    Args:
        parent_product_id: Product that includes the component
        component_product_id: Product being included
        quantity: Units of the component per parent (positive integer)
        is_required: Component cannot be deselected
        is_included: Bundled (True) or optional add-on (False)
        price_override: Unit price for this relationship
        display_name: Label overriding the component name
        sort_order: Traversal order
        display_order: Presentation order
        notes: Admin notes
        session: Optional SQLAlchemy session (caller owns commit/rollback)

    Returns:
        Created ProductComponent

    Raises:
        ValidationError: If quantity or price override is invalid
        ProductNotFound: If the parent or the component does not exist
        CircularReferenceError: If the edge would create a cycle
        DepthLimitExceededError: If the edge would exceed the depth limit
        DuplicateComponentError: If the parent already includes the component
        DatabaseError: On database failure
    """
    args = (
        parent_product_id,
        component_product_id,
        quantity,
        is_required,
        is_included,
        price_override,
        display_name,
        sort_order,
        display_order,
        notes,
    )

    if session is not None:
        return _add_component_impl(*args, session)

    attempt = 1
    while True:
        try:
            with session_scope() as session:
                return _add_component_impl(*args, session)
        except DBAPIError as e:
            if _is_serialization_failure(e) and attempt < ADD_COMPONENT_MAX_ATTEMPTS:
                log_operation(
                    logger,
                    operation="add_component",
                    outcome="serialization_retry",
                    level=logging.WARNING,
                    parent_product_id=parent_product_id,
                    component_product_id=component_product_id,
                    attempt=attempt,
                )
                attempt += 1
                continue
            logger.error(f"Database error adding component: {e}")
            raise DatabaseError(f"Failed to add component: {e}", original_error=e)
        except SQLAlchemyError as e:
            logger.error(f"Database error adding component: {e}")
            raise DatabaseError(f"Failed to add component: {e}", original_error=e)


def _remove_component_impl(
    parent_product_id: str, component_product_id: str, session: Session
) -> bool:
    relationship = _get_edge(session, parent_product_id, component_product_id)
    if relationship is None:
        logger.debug(
            f"Component {component_product_id} not in {parent_product_id}; nothing to remove"
        )
        return False

    session.delete(relationship)
    session.flush()

    log_operation(
        logger,
        operation="remove_component",
        outcome="success",
        parent_product_id=parent_product_id,
        component_product_id=component_product_id,
    )
    return True


def remove_component(
    parent_product_id: str, component_product_id: str, session: Session = None
) -> bool:
    """
    Remove a component from a parent product.

    Neither product is affected; only the edge is deleted.

    Returns:
        True if deleted, False if the edge did not exist
    """
    if session is not None:
        return _remove_component_impl(parent_product_id, component_product_id, session)

    try:
        with session_scope() as session:
            return _remove_component_impl(parent_product_id, component_product_id, session)
    except SQLAlchemyError as e:
        logger.error(f"Database error removing component: {e}")
        raise DatabaseError(f"Failed to remove component: {e}", original_error=e)


def _update_component_impl(
    parent_product_id: str, component_product_id: str, updates: Dict, session: Session
) -> ProductComponent:
    unknown = sorted(set(updates) - set(COMPONENT_UPDATABLE_FIELDS))
    if unknown:
        raise ValidationError(f"Cannot update component field(s): {', '.join(unknown)}")

    if "quantity" in updates:
        _validate_quantity(updates["quantity"])
    if "price_override" in updates:
        updates = dict(updates, price_override=_validate_price_override(updates["price_override"]))
    if "sort_order" in updates and updates["sort_order"] < 0:
        raise ValidationError("Sort order must be zero or greater")

    relationship = _get_edge(session, parent_product_id, component_product_id)
    if relationship is None:
        raise ComponentRelationshipNotFound(parent_product_id, component_product_id)

    for field_name, value in updates.items():
        setattr(relationship, field_name, value)

    session.flush()

    log_operation(
        logger,
        operation="update_component",
        outcome="success",
        parent_product_id=parent_product_id,
        component_product_id=component_product_id,
        fields=sorted(updates),
    )
    return relationship


def update_component(
    parent_product_id: str, component_product_id: str, /, session: Session = None, **updates
) -> ProductComponent:
    """
    Update the attributes of an existing component relationship.

    Only relationship attributes (quantity, flags, price override, labels,
    ordering, notes) can change; the endpoints of an edge are fixed.

    Returns:
        Updated ProductComponent

    Raises:
        ComponentRelationshipNotFound: If the edge does not exist
        ValidationError: If an update is not allowed or invalid
    """
    if session is not None:
        return _update_component_impl(parent_product_id, component_product_id, updates, session)

    try:
        with session_scope() as session:
            return _update_component_impl(
                parent_product_id, component_product_id, updates, session
            )
    except SQLAlchemyError as e:
        logger.error(f"Database error updating component: {e}")
        raise DatabaseError(f"Failed to update component: {e}", original_error=e)


# =============================================================================
# Tree reads
# =============================================================================


def _edges_for_parents(session: Session, parent_ids: List[str]) -> List[ProductComponent]:
    if not parent_ids:
        return []
    return (
        session.query(ProductComponent)
        .options(joinedload(ProductComponent.component))
        .filter(ProductComponent.parent_product_id.in_(parent_ids))
        .order_by(ProductComponent.sort_order, ProductComponent.id)
        .all()
    )


def _get_component_tree_impl(
    product_id: str, session: Session, include_sub_components: bool = True
) -> List[ComponentTreeNode]:
    level1 = _edges_for_parents(session, [product_id])
    nodes = [
        ComponentTreeNode(component=edge.component, relationship=edge) for edge in level1
    ]

    if include_sub_components and nodes:
        by_parent: Dict[str, List[ComponentLeaf]] = defaultdict(list)
        level1_ids = [node.component.id for node in nodes]
        for edge in _edges_for_parents(session, level1_ids):
            by_parent[edge.parent_product_id].append(
                ComponentLeaf(component=edge.component, relationship=edge)
            )
        for node in nodes:
            node.sub_components = list(by_parent.get(node.component.id, []))

    logger.debug(f"Read {len(nodes)} level-1 components for product {product_id}")
    return nodes


def get_component_tree(product_id: str, session: Session = None) -> List[ComponentTreeNode]:
    """
    Get the two-level component tree of a product.

    Level 1 is every edge where the product is the parent, ordered by
    sort_order. Level 2 is, for each level-1 component, its own edges in the
    same order. Nothing below level 2 is read even if the data contains it.

    Args:
        product_id: Root product
        session: Optional SQLAlchemy session

    Returns:
        List of ComponentTreeNode (empty if the product has no components)
    """
    if session is not None:
        return _get_component_tree_impl(product_id, session)

    try:
        with session_scope() as session:
            return _get_component_tree_impl(product_id, session)
    except SQLAlchemyError as e:
        logger.error(f"Database error reading component tree for {product_id}: {e}")
        raise DatabaseError(f"Failed to read component tree: {e}", original_error=e)


def get_direct_components(product_id: str, session: Session = None) -> List[ComponentTreeNode]:
    """Get level-1 components only; every node has empty sub_components."""
    if session is not None:
        return _get_component_tree_impl(product_id, session, include_sub_components=False)

    try:
        with session_scope() as session:
            return _get_component_tree_impl(product_id, session, include_sub_components=False)
    except SQLAlchemyError as e:
        logger.error(f"Database error reading components for {product_id}: {e}")
        raise DatabaseError(f"Failed to read direct components: {e}", original_error=e)


def _get_parent_products_impl(component_product_id: str, session: Session) -> List[Product]:
    return (
        session.query(Product)
        .join(ProductComponent, ProductComponent.parent_product_id == Product.id)
        .filter(ProductComponent.component_product_id == component_product_id)
        .order_by(Product.id)
        .all()
    )


def get_parent_products(component_product_id: str, session: Session = None) -> List[Product]:
    """
    Get the products that use this product as a direct component.

    Returns:
        Flat list of parent products
    """
    if session is not None:
        return _get_parent_products_impl(component_product_id, session)

    try:
        with session_scope() as session:
            return _get_parent_products_impl(component_product_id, session)
    except SQLAlchemyError as e:
        logger.error(f"Database error reading parents of {component_product_id}: {e}")
        raise DatabaseError(f"Failed to read parent products: {e}", original_error=e)


# =============================================================================
# Integrity
# =============================================================================


def _check_component_integrity_impl(product_id: str, session: Session) -> dict:
    issues = []

    for node in _get_component_tree_impl(product_id, session):
        if node.relationship.quantity <= 0:
            issues.append(
                f"Component {node.component.id} has invalid quantity {node.relationship.quantity}"
            )
        if _would_create_cycle_impl(product_id, node.component.id, session):
            issues.append(f"Circular reference detected through component {node.component.id}")
            continue
        for leaf in node.sub_components:
            if _child_ids(session, [leaf.component.id]):
                issues.append(
                    f"Sub-component {leaf.component.id} of {node.component.id} has its own "
                    f"components (deeper than {MAX_COMPONENT_DEPTH} levels)"
                )

    walk_limit = MAX_COMPONENT_DEPTH + 1
    parent_depth = _count_levels(session, product_id, _parent_ids, walk_limit)
    height = _count_levels(session, product_id, _child_ids, walk_limit)
    if parent_depth > 0 and parent_depth + height > MAX_COMPONENT_DEPTH:
        issues.append(
            f"Product {product_id} sits on a path longer than {MAX_COMPONENT_DEPTH} levels"
        )

    return {
        "product_id": product_id,
        "is_valid": len(issues) == 0,
        "issues_count": len(issues),
        "issues": issues,
    }


def check_component_integrity(product_id: str, session: Session = None) -> dict:
    """
    Report composition rule violations already present in the data.

    Writes through add_component cannot create these; the report exists for
    data loaded by other means (imports, manual SQL).

    Returns:
        Dictionary with is_valid, issues_count, and issue messages
    """
    if session is not None:
        return _check_component_integrity_impl(product_id, session)

    with session_scope() as session:
        return _check_component_integrity_impl(product_id, session)
