"""Services package - Business logic layer for the storefront catalog core.

This package contains the service modules that own product composition,
pricing, versioning, and order snapshots.

Architecture:
- Services: Stateless functions organized by domain
- Transactions: Managed via session_scope() context manager, or a caller
  supplied session
- Exceptions: Consistent error handling via ServiceError hierarchy
- Validation: Input validation before database operations

Service Modules:
- component_service: Composition edges, cycle/depth validation, tree reads
- pricing_service: Included/optional component price aggregation
- versioning_service: Version forks and product lifecycle
- product_service: Admin product create/read/update/delete
- order_snapshot_service: Purchase-time component snapshots

Infrastructure:
- exceptions: Custom exception classes for service layer errors
- database: Session management and database utilities
- logging_utils: Structured operation logging
"""

from . import (
    database,
    component_service,
    pricing_service,
    versioning_service,
    product_service,
    order_snapshot_service,
)

from .component_service import (
    add_component,
    remove_component,
    update_component,
    would_create_cycle,
    would_exceed_depth,
    get_component_tree,
    get_direct_components,
    get_parent_products,
    check_component_integrity,
)
from .pricing_service import calculate_components_price, sum_component_tree
from .versioning_service import (
    is_product_in_orders,
    should_create_version,
    create_product_version,
    sunset_product,
    discontinue_product,
    get_product_versions,
    get_latest_version,
    resolve_current_product,
)
from .exceptions import (
    ServiceError,
    ProductNotFound,
    ComponentRelationshipNotFound,
    CircularReferenceError,
    DepthLimitExceededError,
    DuplicateComponentError,
    ProductInOrdersError,
    ProductInUse,
    InvalidLifecycleTransition,
    VersioningError,
    SnapshotFormatError,
    ValidationError,
    DatabaseError,
)

__all__ = [
    # Modules
    "database",
    "component_service",
    "pricing_service",
    "versioning_service",
    "product_service",
    "order_snapshot_service",
    # Composition
    "add_component",
    "remove_component",
    "update_component",
    "would_create_cycle",
    "would_exceed_depth",
    "get_component_tree",
    "get_direct_components",
    "get_parent_products",
    "check_component_integrity",
    # Pricing
    "calculate_components_price",
    "sum_component_tree",
    # Versioning
    "is_product_in_orders",
    "should_create_version",
    "create_product_version",
    "sunset_product",
    "discontinue_product",
    "get_product_versions",
    "get_latest_version",
    "resolve_current_product",
    # Exceptions
    "ServiceError",
    "ProductNotFound",
    "ComponentRelationshipNotFound",
    "CircularReferenceError",
    "DepthLimitExceededError",
    "DuplicateComponentError",
    "ProductInOrdersError",
    "ProductInUse",
    "InvalidLifecycleTransition",
    "VersioningError",
    "SnapshotFormatError",
    "ValidationError",
    "DatabaseError",
]
