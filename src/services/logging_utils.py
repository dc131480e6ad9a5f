"""Service layer logging utilities.

Provides structured logging functions for service operations, enabling
consistent log format and context across composition, pricing, and
versioning operations.

Usage:
    from src.services.logging_utils import get_service_logger, log_operation

    logger = get_service_logger(__name__)

    log_operation(
        logger,
        operation="add_component",
        outcome="success",
        parent_product_id="pc-build",
        component_product_id="pump-a1",
    )

    log_operation(
        logger,
        operation="add_component",
        outcome="cycle_detected",
        level=logging.WARNING,
        parent_product_id="pump-a1",
        component_product_id="pc-build",
    )
"""

import logging
from typing import Any

LOGGER_PREFIX = "storefront_catalog.services"


def get_service_logger(name: str) -> logging.Logger:
    """
    Get a logger configured for service operations.

    Args:
        name: Logger name (typically __name__ of the calling module)

    Returns:
        Logger named under the 'storefront_catalog.services' prefix.

    Example:
        >>> logger = get_service_logger("src.services.component_service")
        >>> logger.name
        'storefront_catalog.services.component_service'
    """
    if "." in name:
        name = name.split(".")[-1]
    return logging.getLogger(f"{LOGGER_PREFIX}.{name}")


def log_operation(
    logger: logging.Logger,
    operation: str,
    outcome: str,
    level: int = logging.INFO,
    **context: Any,
) -> None:
    """
    Log a service operation with structured context.

    The context is passed via the 'extra' parameter for structured logging.

    Args:
        logger: Logger instance to use
        operation: Operation name (e.g., "add_component", "create_product_version")
        outcome: Outcome description (e.g., "success", "cycle_detected", "error")
        level: Log level (default: INFO). Use DEBUG for verbose/frequent logs.
        **context: Additional context fields (product IDs, error details, etc.)
    """
    extra = {
        "operation": operation,
        "outcome": outcome,
        **context,
    }
    logger.log(level, f"{operation}: {outcome}", extra=extra)
