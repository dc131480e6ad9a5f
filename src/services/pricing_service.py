"""
Pricing Service - Component price aggregation.

Sums the prices of a product's two-level component tree, split into bundled
(included) and optional add-on components.

Unit price precedence for every node and every sub-node:
    relationship.price_override -> component.component_price -> component.price
and the unit price is multiplied by the relationship quantity.

Included/optional partitioning is decided per entry by its own
relationship.is_included; a sub-node is counted even when its parent node
falls in the other bucket.
"""

from decimal import Decimal
from typing import Dict, List

from sqlalchemy.orm import Session

from src.models import Product, ProductComponent
from src.services.component_service import get_component_tree
from src.services.dto import ComponentTreeNode
from src.services.logging_utils import get_service_logger

logger = get_service_logger(__name__)

ZERO = Decimal("0.00")


def resolve_unit_price(component: Product, relationship: ProductComponent) -> Decimal:
    """Effective unit price of a component within one relationship."""
    if relationship.price_override is not None:
        return Decimal(relationship.price_override)
    return component.effective_component_price


def sum_component_tree(tree: List[ComponentTreeNode]) -> Dict[str, Decimal]:
    """
    Aggregate component prices from an already-fetched tree.

    Pure function: no database access.

    Args:
        tree: Output of get_component_tree()

    Returns:
        Dictionary with included_price, optional_price, total_price (Decimal)
    """
    included = ZERO
    optional = ZERO

    entries = []
    for node in tree:
        entries.append((node.component, node.relationship))
        entries.extend((leaf.component, leaf.relationship) for leaf in node.sub_components)

    for component, relationship in entries:
        line = resolve_unit_price(component, relationship) * relationship.quantity
        if relationship.is_included:
            included += line
        else:
            optional += line

    return {
        "included_price": included,
        "optional_price": optional,
        "total_price": included + optional,
    }


def calculate_components_price(product_id: str, session: Session = None) -> Dict[str, Decimal]:
    """
    Calculate included, optional, and total component prices for a product.

    Args:
        product_id: Root product
        session: Optional SQLAlchemy session

    Returns:
        Dictionary with included_price, optional_price, total_price (Decimal);
        all zero for a product without components
    """
    tree = get_component_tree(product_id, session=session)
    pricing = sum_component_tree(tree)

    logger.debug(
        f"Component pricing for {product_id}: included={pricing['included_price']} "
        f"optional={pricing['optional_price']}"
    )
    return pricing
