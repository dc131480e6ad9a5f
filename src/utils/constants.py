"""
Constants for the storefront catalog composition core.

This module defines system-wide constants including:
- Application metadata
- Product lifecycle and type values
- Composition graph limits
- SKU format rules
- Order snapshot schema versions
"""

from typing import List

# ============================================================================
# Application Metadata
# ============================================================================

APP_NAME = "Storefront Catalog"
APP_VERSION = "0.1.0"
DATABASE_VERSION = "1.0"
DATABASE_FILENAME = "storefront_catalog.db"

# ============================================================================
# Product Lifecycle
# ============================================================================

PRODUCT_STATUS_ACTIVE = "active"
PRODUCT_STATUS_SUNSET = "sunset"
PRODUCT_STATUS_DISCONTINUED = "discontinued"

PRODUCT_STATUSES: List[str] = [
    PRODUCT_STATUS_ACTIVE,
    PRODUCT_STATUS_SUNSET,
    PRODUCT_STATUS_DISCONTINUED,
]

PRODUCT_TYPE_STANDALONE = "standalone"
PRODUCT_TYPE_COMPONENT = "component"

PRODUCT_TYPES: List[str] = [
    PRODUCT_TYPE_STANDALONE,
    PRODUCT_TYPE_COMPONENT,
]

DEFAULT_CURRENCY = "USD"

# ============================================================================
# Composition Graph
# ============================================================================

# Root -> component -> sub-component; sub-components are leaves
MAX_COMPONENT_DEPTH = 2

# Safety cutoff for descendant/ancestor walks over malformed data
CYCLE_SEARCH_MAX_HOPS = 10

# Attempts for add_component when the engine reports a serialization failure
ADD_COMPONENT_MAX_ATTEMPTS = 3

# SQLSTATE for serialization_failure (PostgreSQL)
SERIALIZATION_FAILURE_SQLSTATE = "40001"

# Relationship attributes that update_component may change
COMPONENT_UPDATABLE_FIELDS: List[str] = [
    "quantity",
    "is_required",
    "is_included",
    "price_override",
    "display_name",
    "display_order",
    "sort_order",
    "notes",
]

# ============================================================================
# SKU Format
# ============================================================================

SKU_DEFAULT_PREFIX = "TPC"
SKU_PREFIX_LENGTH = 3
SKU_CATEGORY_LENGTH = 4
SKU_PRODUCT_CODE_LENGTH = 3
SKU_MIN_VERSION = 1
SKU_MAX_VERSION = 99

# ============================================================================
# Versioning
# ============================================================================

# Product columns owned by the version chain; never copied or overridden
VERSION_LINEAGE_FIELDS: List[str] = [
    "id",
    "sku",
    "sku_prefix",
    "sku_category",
    "sku_product_code",
    "sku_version",
    "version",
    "base_product_id",
    "previous_version_id",
    "replaced_by",
    "version_notes",
    "created_at",
    "updated_at",
]

# Catalog columns carried from one version to the next
VERSION_COPIED_FIELDS: List[str] = [
    "name",
    "price",
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
    "product_type",
    "in_stock",
    "stock_quantity",
    "estimated_shipping",
]

# ============================================================================
# Order Snapshots
# ============================================================================

SNAPSHOT_SCHEMA_V1 = 1
CURRENT_SNAPSHOT_SCHEMA_VERSION = SNAPSHOT_SCHEMA_V1
SUPPORTED_SNAPSHOT_SCHEMA_VERSIONS: List[int] = [SNAPSHOT_SCHEMA_V1]

# ============================================================================
# Validation
# ============================================================================

MAX_NAME_LENGTH = 200
MAX_SLUG_LENGTH = 200
MAX_PRODUCT_ID_LENGTH = 100

ERROR_REQUIRED_FIELD = "This field is required"
ERROR_INVALID_NON_NEGATIVE = "Must be zero or greater"
ERROR_INVALID_POSITIVE = "Must be greater than zero"
