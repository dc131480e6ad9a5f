"""
Configuration management for the storefront catalog core.

This module handles:
- Database URL configuration
- Transaction isolation level
- Environment-specific configuration (development vs. production)
"""

import logging
import os
from pathlib import Path
from typing import Optional

from .constants import (
    APP_NAME,
    APP_VERSION,
    DATABASE_FILENAME,
    DATABASE_VERSION,
)

logger = logging.getLogger(__name__)

ENV_VAR_ENVIRONMENT = "STOREFRONT_ENV"
ENV_VAR_DATABASE_URL = "STOREFRONT_DATABASE_URL"
ENV_VAR_ISOLATION_LEVEL = "STOREFRONT_ISOLATION_LEVEL"


class Config:
    """
    Application configuration manager.

    Handles database location, environment mode, and the transaction
    isolation level used for composition writes.
    """

    def __init__(self, environment: str = "production"):
        """
        Initialize configuration.

        Args:
            environment: Environment mode - 'production' or 'development'
        """
        self.environment = environment
        self._app_name = APP_NAME
        self._app_version = APP_VERSION
        self._database_version = DATABASE_VERSION

        if environment == "development":
            self._data_dir = self._get_project_data_dir()
        else:
            self._data_dir = self._get_user_data_dir()

        self._database_path = self._data_dir / DATABASE_FILENAME
        self._database_url_override = os.environ.get(ENV_VAR_DATABASE_URL)
        self._isolation_level_override = os.environ.get(ENV_VAR_ISOLATION_LEVEL)

    def _get_project_data_dir(self) -> Path:
        """Project data/ directory, used in development."""
        project_root = Path(__file__).parent.parent.parent
        return project_root / "data"

    def _get_user_data_dir(self) -> Path:
        """Per-user data directory, used in production."""
        return Path.home() / ".storefront_catalog"

    def ensure_data_dir(self) -> None:
        """Create the SQLite data directory if the default URL is in use."""
        if self._database_url_override is None:
            self._data_dir.mkdir(parents=True, exist_ok=True)

    @property
    def app_name(self) -> str:
        return self._app_name

    @property
    def app_version(self) -> str:
        return self._app_version

    @property
    def database_version(self) -> str:
        return self._database_version

    @property
    def database_path(self) -> Path:
        """Full path to the default SQLite database file."""
        return self._database_path

    @property
    def database_url(self) -> str:
        """
        SQLAlchemy database URL.

        STOREFRONT_DATABASE_URL wins when set (e.g. a PostgreSQL URL);
        otherwise a SQLite file inside the environment data directory.
        """
        if self._database_url_override:
            return self._database_url_override
        db_path_str = str(self._database_path).replace("\\", "/")
        return f"sqlite:///{db_path_str}"

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    @property
    def isolation_level(self) -> Optional[str]:
        """
        Transaction isolation level for the engine.

        Defaults to SERIALIZABLE on server databases so that concurrent
        composition edits cannot jointly create a cycle. SQLite serializes
        writers already and keeps the driver default.
        """
        if self._isolation_level_override:
            return self._isolation_level_override.upper()
        if self.is_sqlite:
            return None
        return "SERIALIZABLE"

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    def database_exists(self) -> bool:
        """
        Check if the SQLite database file exists.

        Server databases are assumed to exist.
        """
        if not self.is_sqlite:
            return True
        return self._database_path.exists()

    def __repr__(self) -> str:
        return f"Config(environment='{self.environment}', database_url='{self.database_url}')"


_config_instance: Optional[Config] = None


def get_config(environment: Optional[str] = None) -> Config:
    """
    Get the global configuration instance.

    Once created, the singleton's environment cannot be changed by passing
    a different environment argument.

    Args:
        environment: Optional environment for initial creation. If None, uses
                    STOREFRONT_ENV or defaults to production. Ignored if
                    singleton already exists.

    Returns:
        Config instance
    """
    global _config_instance

    if _config_instance is None:
        if environment is None:
            environment = os.environ.get(ENV_VAR_ENVIRONMENT, "production")
        _config_instance = Config(environment)
    elif environment is not None and environment != _config_instance.environment:
        logger.warning(
            f"get_config() called with environment='{environment}' but singleton "
            f"already exists with environment='{_config_instance.environment}'. "
            f"Returning existing singleton."
        )

    return _config_instance


def reset_config():
    """
    Reset the global configuration instance.

    Useful for testing.
    """
    global _config_instance
    _config_instance = None
