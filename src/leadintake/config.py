"""Lead intake service configuration module.

This module provides centralized configuration management for the intake
pipeline, loading settings from environment variables with validation.

Configuration is loaded from:
1. .env file (if present)
2. Environment variables

API keys should be provided via environment variables, never hardcoded.

Usage:
    >>> from leadintake.config import config
    >>> print(config.QUEUE_POLL_INTERVAL_SECONDS)
    60
"""

import logging
import os
from typing import Optional

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


class ConfigError(Exception):
    """Raised when configuration validation fails."""

    pass


class Config:
    """Application configuration class that loads settings from environment variables.

    Attributes:
        DATABASE_URL: PostgreSQL (or other async-driver) connection string.
        SENDGRID_API_KEY: SendGrid API key for email delivery. When unset,
            notifications are queued but every delivery attempt fails as
            unconfigured.
        SENDGRID_FROM_EMAIL: Sender address stamped on queued messages.
        ADMIN_EMAIL: Operator address that receives high-priority lead alerts.
        QUEUE_POLL_INTERVAL_SECONDS: Interval between scheduled queue drains.
        QUEUE_SWEEP_INTERVAL_SECONDS: Interval of the slower reporting sweep.
        QUEUE_BATCH_SIZE: Maximum messages delivered per drain.

    Example:
        >>> config = Config()
        >>> print(config.APP_ENV)
        dev
    """

    def __init__(self) -> None:
        """Initialize configuration by loading from environment variables."""
        self.logger = logging.getLogger(__name__)

        # Application environment
        self.APP_ENV = self._get_optional("APP_ENV", "dev")
        self.DEBUG = self._get_bool("DEBUG")
        self.LOG_LEVEL = self._get_optional("LOG_LEVEL", "INFO")

        # Database Configuration
        self.DATABASE_URL = self._get_optional("DATABASE_URL")
        self.DATABASE_POOL_SIZE = int(self._get_optional("DATABASE_POOL_SIZE", "5"))
        self.DATABASE_MAX_OVERFLOW = int(
            self._get_optional("DATABASE_MAX_OVERFLOW", "10")
        )

        # SendGrid Configuration
        self.SENDGRID_API_KEY = self._get_optional("SENDGRID_API_KEY")
        self.SENDGRID_FROM_EMAIL = self._get_optional(
            "SENDGRID_FROM_EMAIL", "noreply@terraindustries.com"
        )
        self.SENDGRID_FROM_NAME = self._get_optional("SENDGRID_FROM_NAME")
        self.SENDGRID_TIMEOUT_SECONDS = int(
            self._get_optional("SENDGRID_TIMEOUT_SECONDS", "30")
        )

        # Internal alerts
        self.ADMIN_EMAIL = self._get_optional(
            "ADMIN_EMAIL", "admin@terraindustries.com"
        )

        # Notification queue scheduling
        self.QUEUE_POLL_INTERVAL_SECONDS = float(
            self._get_optional("QUEUE_POLL_INTERVAL_SECONDS", "60")
        )
        self.QUEUE_SWEEP_INTERVAL_SECONDS = float(
            self._get_optional("QUEUE_SWEEP_INTERVAL_SECONDS", "1800")
        )
        self.QUEUE_BATCH_SIZE = int(self._get_optional("QUEUE_BATCH_SIZE", "10"))

        # Branding used by email templates
        self.COMPANY_NAME = self._get_optional("COMPANY_NAME", "Terra Industries")
        self.COMPANY_TAGLINE = self._get_optional(
            "COMPANY_TAGLINE", "Advanced Defense Technology & Aerospace Solutions"
        )
        self.CONTACT_EMAIL = self._get_optional(
            "CONTACT_EMAIL", "contact@terraindustries.com"
        )
        self.COMPANY_WEBSITE = self._get_optional(
            "COMPANY_WEBSITE", "terraindustries.com"
        )
        self.DASHBOARD_BASE_URL = self._get_optional(
            "DASHBOARD_BASE_URL", "http://localhost:4000/api/v1"
        )

    def _get_required(self, name: str, default: Optional[str] = None) -> str:
        """Get a required configuration value from environment variables.

        Args:
            name: The name of the environment variable.
            default: Optional default value if not found.

        Returns:
            The value of the environment variable or default if provided.

        Raises:
            ConfigError: If the environment variable is not found and no default provided.
        """
        if name in os.environ:
            return os.environ[name]
        if default is not None:
            self.logger.warning(
                "Environment variable %s not found, using default value", name
            )
            return default
        raise ConfigError(
            f"Required environment variable {name} not found and no default provided"
        )

    def _get_optional(self, name: str, default: str = "") -> str:
        """Get an optional configuration value from environment variables."""
        if name in os.environ:
            return os.environ[name]
        return default

    def _get_bool(self, name: str) -> bool:
        """Return True if the variable exists and is set to 'true' or '1'."""
        return name in os.environ and os.environ[name].lower() in ["true", "1"]

    def validate_for_email(self) -> None:
        """Validate configuration required for email delivery.

        Raises:
            ConfigError: If required email configuration is missing.
        """
        if not self.SENDGRID_API_KEY:
            raise ConfigError("SENDGRID_API_KEY is required for email delivery")
        if not self.SENDGRID_FROM_EMAIL:
            raise ConfigError("SENDGRID_FROM_EMAIL is required for email delivery")

    def validate_for_database(self) -> None:
        """Validate configuration required for database operations.

        Raises:
            ConfigError: If required database configuration is missing.
        """
        if not self.DATABASE_URL:
            raise ConfigError("DATABASE_URL is required for database operations")

    def validate_for_worker(self) -> None:
        """Validate configuration required to run the queue worker.

        The worker can run without SendGrid credentials (messages then fail
        as unconfigured), so only the database and intervals are checked.

        Raises:
            ConfigError: If required worker configuration is missing.
        """
        self.validate_for_database()
        if self.QUEUE_POLL_INTERVAL_SECONDS <= 0:
            raise ConfigError("QUEUE_POLL_INTERVAL_SECONDS must be positive")
        if self.QUEUE_SWEEP_INTERVAL_SECONDS <= 0:
            raise ConfigError("QUEUE_SWEEP_INTERVAL_SECONDS must be positive")
        if self.QUEUE_BATCH_SIZE <= 0:
            raise ConfigError("QUEUE_BATCH_SIZE must be positive")

    def get_database_connection_args(self) -> dict:
        """Get database connection arguments for SQLAlchemy.

        Returns:
            Dictionary of connection arguments.
        """
        return {
            "pool_size": self.DATABASE_POOL_SIZE,
            "max_overflow": self.DATABASE_MAX_OVERFLOW,
            "pool_pre_ping": True,
        }

    def is_email_configured(self) -> bool:
        """Check whether outbound email delivery is configured."""
        return bool(self.SENDGRID_API_KEY)

    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.APP_ENV.lower() in ["prod", "production"]

    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.APP_ENV.lower() in ["dev", "development"]

    def get_log_level(self) -> int:
        """Get logging level as integer.

        Returns:
            Logging level constant (e.g., logging.INFO).
        """
        level_map = {
            "DEBUG": logging.DEBUG,
            "INFO": logging.INFO,
            "WARNING": logging.WARNING,
            "ERROR": logging.ERROR,
            "CRITICAL": logging.CRITICAL,
        }
        return level_map.get(self.LOG_LEVEL.upper(), logging.INFO)


# Create global singleton instance
config = Config()
