"""
OrderItem model for purchased products.

This module contains the OrderItem model which stores an immutable snapshot
of a product (including its two-level component tree) at the moment of
purchase. Order history stays accurate even when products are later
versioned, sunset, or relinked.

The catalog core reads order items but does not own checkout; rows are
written once through the order snapshot service and never updated.
"""

import json

from sqlalchemy import Column, Index, Integer, JSON, Numeric, String

from .base import BaseModel
from src.utils.constants import CURRENT_SNAPSHOT_SCHEMA_VERSION, MAX_PRODUCT_ID_LENGTH


class OrderItem(BaseModel):
    """
    Immutable record of a purchased product.

    Attributes:
        order_id: Order the line belongs to
        product_id: Product sold (not a foreign key; history outlives edits)
        product_sku/product_slug/product_name/product_version/product_type/product_image:
            Product fields at purchase time
        component_tree: JSON snapshot of the component tree at purchase time
        snapshot_version: Schema version of component_tree
        quantity: Units purchased
        base_price: Product price without components
        included_components_price: Sum of bundled component prices
        optional_components_price: Sum of optional add-on prices
        price: Per-unit total
        line_total: price * quantity
        current_product_id: Product id the storefront currently links to
    """

    __tablename__ = "order_items"

    order_id = Column(Integer, nullable=False, index=True)

    product_id = Column(String(MAX_PRODUCT_ID_LENGTH), nullable=False, index=True)
    product_sku = Column(String(16), nullable=False)
    product_slug = Column(String(200), nullable=True)
    product_name = Column(String(200), nullable=False)
    product_version = Column(Integer, nullable=False, default=1)
    product_type = Column(String(20), nullable=False)
    product_image = Column(String(500), nullable=False, default="")

    component_tree = Column(JSON, nullable=False, default=list)
    snapshot_version = Column(Integer, nullable=False, default=CURRENT_SNAPSHOT_SCHEMA_VERSION)

    quantity = Column(Integer, nullable=False)
    base_price = Column(Numeric(10, 2), nullable=False)
    included_components_price = Column(Numeric(10, 2), nullable=False, default=0)
    optional_components_price = Column(Numeric(10, 2), nullable=False, default=0)
    price = Column(Numeric(10, 2), nullable=False)
    line_total = Column(Numeric(12, 2), nullable=False)

    current_product_id = Column(String(MAX_PRODUCT_ID_LENGTH), nullable=True)

    __table_args__ = (Index("idx_order_items_order_product", "order_id", "product_id"),)

    def get_component_tree(self) -> list:
        """Return the component tree snapshot as a list."""
        tree = self.component_tree
        if isinstance(tree, str):
            return json.loads(tree) if tree else []
        return tree or []

    def __repr__(self) -> str:
        return (
            f"OrderItem(id={self.id}, order_id={self.order_id}, "
            f"product_id='{self.product_id}', qty={self.quantity})"
        )
