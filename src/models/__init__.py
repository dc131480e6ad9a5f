"""
Database models package.

This package contains all SQLAlchemy ORM models for the catalog core.
"""

from .base import Base, BaseModel
from .enums import ProductStatus, ProductType
from .product import Product
from .product_component import ProductComponent
from .order_item import OrderItem

__all__ = [
    "Base",
    "BaseModel",
    # Catalog
    "Product",
    "ProductComponent",
    "ProductStatus",
    "ProductType",
    # Order history (read by versioning)
    "OrderItem",
]
