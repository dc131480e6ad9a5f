"""
Product model for sellable catalog entries.

A product is either sold on its own (standalone) or offered inside other
products as a component. Products referenced by order history are never
edited in place: edits fork a new row (a new version) and the old row
forwards to it through replaced_by.

Example: "TPC-PUMP-A01-V01 Thermal Pump A1" is a component of the
         "TPC-SYST-B01-V01 Standalone PC Build" product.
"""

from decimal import Decimal

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    JSON,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from .base import BaseModel
from .enums import ProductStatus, ProductType
from src.utils.constants import (
    DEFAULT_CURRENCY,
    MAX_NAME_LENGTH,
    MAX_PRODUCT_ID_LENGTH,
    MAX_SLUG_LENGTH,
    PRODUCT_STATUSES,
    PRODUCT_TYPES,
)


def _in_list(column: str, values) -> str:
    quoted = ", ".join(f"'{value}'" for value in values)
    return f"{column} IN ({quoted})"


class Product(BaseModel):
    """
    Product model representing a sellable catalog entry.

    Attributes:
        id: Natural string key (forks use "{base_id}_v{n}")
        name: Display name
        slug: URL slug (unique)
        sku: Structured SKU XXX-XXXX-XXX-VNN (unique)
        sku_prefix/sku_category/sku_product_code/sku_version: SKU segments
        price: Standalone price
        component_price: Price used when sold inside another product
        version: Version number, mirrors the SKU version segment
        base_product_id: Lineage root shared by all versions
        previous_version_id: Product this row was forked from
        replaced_by: Successor version, or sunset replacement
        status: active | sunset | discontinued
        is_available_for_purchase: Cleared when sunset or discontinued
        product_type: standalone | component
    """

    __tablename__ = "products"

    id = Column(String(MAX_PRODUCT_ID_LENGTH), primary_key=True)

    # Identity
    name = Column(String(MAX_NAME_LENGTH), nullable=False)
    slug = Column(String(MAX_SLUG_LENGTH), nullable=False, unique=True, index=True)
    sku = Column(String(16), nullable=False, unique=True)

    # SKU segments (denormalized for lookups by product family)
    sku_prefix = Column(String(3), nullable=False)
    sku_category = Column(String(4), nullable=False)
    sku_product_code = Column(String(3), nullable=False)
    sku_version = Column(String(3), nullable=False)

    # Pricing
    price = Column(Numeric(10, 2), nullable=False)
    original_price = Column(Numeric(10, 2), nullable=True)
    component_price = Column(Numeric(10, 2), nullable=True)
    currency = Column(String(3), nullable=False, default=DEFAULT_CURRENCY)

    # Catalog content
    description = Column(Text, nullable=False, default="")
    short_description = Column(Text, nullable=False, default="")
    features = Column(JSON, nullable=False, default=list)
    specifications = Column(JSON, nullable=False, default=dict)
    images = Column(JSON, nullable=False, default=list)
    categories = Column(JSON, nullable=False, default=list)
    tags = Column(JSON, nullable=False, default=list)
    meta_title = Column(String(200), nullable=True)
    meta_description = Column(Text, nullable=True)

    # Stock
    in_stock = Column(Boolean, nullable=False, default=True)
    stock_quantity = Column(Integer, nullable=False, default=0)
    estimated_shipping = Column(String(100), nullable=True)

    # Versioning
    version = Column(Integer, nullable=False, default=1)
    base_product_id = Column(String(MAX_PRODUCT_ID_LENGTH), nullable=True, index=True)
    previous_version_id = Column(
        String(MAX_PRODUCT_ID_LENGTH), ForeignKey("products.id"), nullable=True
    )
    replaced_by = Column(String(MAX_PRODUCT_ID_LENGTH), ForeignKey("products.id"), nullable=True)
    version_notes = Column(Text, nullable=True)

    # Lifecycle
    status = Column(String(20), nullable=False, default=ProductStatus.ACTIVE.value)
    is_available_for_purchase = Column(Boolean, nullable=False, default=True)
    sunset_date = Column(DateTime, nullable=True)
    discontinued_date = Column(DateTime, nullable=True)
    sunset_reason = Column(Text, nullable=True)
    discontinued_reason = Column(Text, nullable=True)

    product_type = Column(String(20), nullable=False, default=ProductType.STANDALONE.value)

    # Edges where this product is the parent
    components = relationship(
        "ProductComponent",
        foreign_keys="ProductComponent.parent_product_id",
        back_populates="parent",
        cascade="all, delete-orphan",
        order_by="ProductComponent.sort_order",
    )

    __table_args__ = (
        Index("idx_products_sku_components", "sku_prefix", "sku_category", "sku_product_code"),
        Index("idx_products_status", "status"),
        CheckConstraint(_in_list("status", PRODUCT_STATUSES), name="ck_products_status_valid"),
        CheckConstraint(
            _in_list("product_type", PRODUCT_TYPES), name="ck_products_product_type_valid"
        ),
        CheckConstraint("price >= 0", name="ck_products_price_non_negative"),
        CheckConstraint("stock_quantity >= 0", name="ck_products_stock_non_negative"),
        CheckConstraint("version >= 1", name="ck_products_version_positive"),
    )

    @property
    def lineage_id(self) -> str:
        """Base product id of the version chain (self for first versions)."""
        return self.base_product_id or self.id

    @property
    def is_replaced(self) -> bool:
        return self.replaced_by is not None

    @property
    def is_active(self) -> bool:
        return self.status == ProductStatus.ACTIVE.value

    @property
    def effective_component_price(self) -> Decimal:
        """Price used when this product is included in another product."""
        if self.component_price is not None:
            return Decimal(self.component_price)
        return Decimal(self.price)

    def __repr__(self) -> str:
        return (
            f"Product(id='{self.id}', sku='{self.sku}', version={self.version}, "
            f"status='{self.status}')"
        )
