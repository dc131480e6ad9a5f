"""Service layer exception classes for the storefront catalog core.

This module defines all custom exceptions used by the service layer to provide
consistent error handling. Callers (HTTP handlers, admin tools) map them to
user-facing responses: not-found to 404, rule violations to 400/409, database
failures to 500.

Exception Hierarchy:
    ServiceError (base)
    ├── ProductNotFound
    ├── ComponentRelationshipNotFound
    ├── CircularReferenceError
    ├── DepthLimitExceededError
    ├── DuplicateComponentError
    ├── ProductInOrdersError
    ├── ProductInUse
    ├── InvalidLifecycleTransition
    ├── VersioningError
    ├── SnapshotFormatError
    ├── ValidationError
    └── DatabaseError
"""

from typing import List, Union


class ServiceError(Exception):
    """Base exception for all service layer errors.

    All service-specific exceptions should inherit from this class.
    """

    pass


class ProductNotFound(ServiceError):
    """Raised when a product cannot be found by ID.

    Args:
        product_id: The product ID that was not found
        role: What the product was needed as ("Parent product", "Component product")

    Example:
        >>> raise ProductNotFound("pc-build", role="Parent product")
        ProductNotFound: Parent product not found: pc-build
    """

    def __init__(self, product_id: str, role: str = "Product"):
        self.product_id = product_id
        self.role = role
        super().__init__(f"{role} not found: {product_id}")


class ComponentRelationshipNotFound(ServiceError):
    """Raised when a parent/component edge does not exist."""

    def __init__(self, parent_product_id: str, component_product_id: str):
        self.parent_product_id = parent_product_id
        self.component_product_id = component_product_id
        super().__init__(
            f"Component relationship not found: {component_product_id} in {parent_product_id}"
        )


class CircularReferenceError(ServiceError):
    """Raised when adding an edge would make a component contain its own ancestor."""

    def __init__(self, parent_product_id: str, component_product_id: str):
        self.parent_product_id = parent_product_id
        self.component_product_id = component_product_id
        super().__init__(
            f"Cannot add component: would create circular reference "
            f"({component_product_id} -> {parent_product_id})"
        )


class DepthLimitExceededError(ServiceError):
    """Raised when adding an edge would exceed the composition depth limit."""

    def __init__(self, parent_product_id: str, component_product_id: str, max_depth: int):
        self.parent_product_id = parent_product_id
        self.component_product_id = component_product_id
        self.max_depth = max_depth
        super().__init__(
            f"Cannot add component {component_product_id} to {parent_product_id}: "
            f"would exceed maximum depth of {max_depth} levels"
        )


class DuplicateComponentError(ServiceError):
    """Raised when the parent already includes the component."""

    def __init__(self, parent_product_id: str, component_product_id: str):
        self.parent_product_id = parent_product_id
        self.component_product_id = component_product_id
        super().__init__(
            f"Product {parent_product_id} already includes component {component_product_id}"
        )


class ProductInOrdersError(ServiceError):
    """Raised when a product referenced by order history would be destroyed.

    Args:
        product_id: The product ID
        action: The refused action ("discontinue", "delete")

    Example:
        >>> raise ProductInOrdersError("pump-a1", "discontinue")
        ProductInOrdersError: Cannot discontinue product pump-a1 that exists in orders. Use sunset instead.
    """

    def __init__(self, product_id: str, action: str):
        self.product_id = product_id
        self.action = action
        super().__init__(
            f"Cannot {action} product {product_id} that exists in orders. Use sunset instead."
        )


class ProductInUse(ServiceError):
    """Raised when attempting to delete a product that other products include.

    Args:
        product_id: The product ID being deleted
        dependencies: Dictionary of dependency counts {entity_type: count}

    Example:
        >>> raise ProductInUse("pump-a1", {"parent_products": 2})
        ProductInUse: Cannot delete product pump-a1: used in 2 parent_products
    """

    def __init__(self, product_id: str, dependencies: dict):
        self.product_id = product_id
        self.dependencies = dependencies

        details = ", ".join(
            f"{count} {entity_type}" for entity_type, count in dependencies.items() if count > 0
        )

        super().__init__(f"Cannot delete product {product_id}: used in {details}")


class InvalidLifecycleTransition(ServiceError):
    """Raised when a lifecycle change starts from a terminal status."""

    def __init__(self, product_id: str, current_status: str, target_status: str):
        self.product_id = product_id
        self.current_status = current_status
        self.target_status = target_status
        super().__init__(
            f"Cannot change product {product_id} from '{current_status}' to '{target_status}'"
        )


class VersioningError(ServiceError):
    """Raised when a version fork cannot be created."""

    pass


class SnapshotFormatError(ServiceError):
    """Raised when an order component snapshot cannot be read."""

    pass


class ValidationError(ServiceError):
    """Raised when data validation fails.

    Args:
        errors: A message or list of messages
    """

    def __init__(self, errors: Union[str, List[str]]):
        if isinstance(errors, str):
            errors = [errors]
        self.errors = errors
        super().__init__(f"Validation failed: {'; '.join(errors)}")


class DatabaseError(ServiceError):
    """Raised when a database operation fails."""

    def __init__(self, message: str, original_error: Exception = None):
        self.original_error = original_error
        super().__init__(f"Database error: {message}")
