"""
ProductComponent junction model for product composition (bill of materials).

Each row states "parent product includes component product", with the
quantity, whether the component is bundled or an optional add-on, and an
optional price override for this relationship.

Graph rules (enforced by the component service at write time):
- No cycles
- No path longer than two edges from any root
"""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from .base import BaseModel
from src.utils.constants import MAX_NAME_LENGTH, MAX_PRODUCT_ID_LENGTH


class ProductComponent(BaseModel):
    """
    Composition edge between two products.

    Attributes:
        parent_product_id: Product that includes the component
        component_product_id: Product being included
        quantity: Units of the component per parent unit
        is_required: Component cannot be removed by the buyer
        is_included: Bundled in the parent price (False = optional add-on)
        price_override: Unit price for this relationship, beats component pricing
        display_name: Label shown instead of the component's own name
        display_order: Presentation order on product pages
        sort_order: Traversal order for trees and snapshots (lower = earlier)
        notes: Free-form admin notes
    """

    __tablename__ = "product_components"

    parent_product_id = Column(
        String(MAX_PRODUCT_ID_LENGTH),
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    component_product_id = Column(
        String(MAX_PRODUCT_ID_LENGTH),
        ForeignKey("products.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    quantity = Column(Integer, nullable=False, default=1)
    is_required = Column(Boolean, nullable=False, default=True)
    is_included = Column(Boolean, nullable=False, default=True)
    price_override = Column(Numeric(10, 2), nullable=True)
    display_name = Column(String(MAX_NAME_LENGTH), nullable=True)
    display_order = Column(Integer, nullable=False, default=0)
    sort_order = Column(Integer, nullable=False, default=0)
    notes = Column(Text, nullable=True)

    parent = relationship(
        "Product", foreign_keys=[parent_product_id], back_populates="components"
    )
    component = relationship("Product", foreign_keys=[component_product_id], lazy="joined")

    __table_args__ = (
        Index("idx_product_components_sort", "parent_product_id", "sort_order"),
        UniqueConstraint(
            "parent_product_id", "component_product_id", name="uq_product_components_pair"
        ),
        CheckConstraint(
            "parent_product_id != component_product_id",
            name="ck_product_components_no_self_reference",
        ),
        CheckConstraint("quantity > 0", name="ck_product_components_quantity_positive"),
        CheckConstraint("sort_order >= 0", name="ck_product_components_sort_order_non_negative"),
    )

    @property
    def label(self) -> str:
        if self.display_name:
            return self.display_name
        return self.component.name if self.component else "Unknown Component"

    def __repr__(self) -> str:
        kind = "included" if self.is_included else "optional"
        return (
            f"ProductComponent(parent='{self.parent_product_id}', "
            f"component='{self.component_product_id}', qty={self.quantity}, {kind})"
        )
