"""
Application Configuration
Load settings from environment variables (.env file)
"""

import logging

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Define all config here so it can be used throughout the app.
    Example: from bop_stack.config import settings
    """

    # ========================================================================
    # DATABASE CONFIGURATION
    # ========================================================================

    DATABASE_URL: str = "sqlite:///./bop_stack.db"
    """SQLAlchemy connection string (PostgreSQL in production)"""

    DATABASE_POOL_SIZE: int = 10
    """Number of database connections to keep in pool"""

    DATABASE_MAX_OVERFLOW: int = 20
    """Additional connections beyond pool_size when needed"""

    # ========================================================================
    # STACK & REPORT CONFIGURATION
    # ========================================================================

    DEFAULT_STACK_TITLE: str = "B.O.P Stack"
    """Title given to stacks created without one"""

    REPORTS_DIR: str = "reports"
    """Directory where rendered PDF reports are written"""

    MAX_UPLOAD_MB: int = 10
    """Maximum size of an uploaded flange catalog file"""

    # ========================================================================
    # APPLICATION CONFIGURATION
    # ========================================================================

    ENVIRONMENT: str = "development"
    """Environment: development, staging, or production"""

    LOG_LEVEL: str = "INFO"
    """Logging level: DEBUG, INFO, WARNING, ERROR, CRITICAL"""

    LOG_DIR: str = ""
    """Directory for rotating log files (empty = console only)"""

    # ========================================================================
    # FRONTEND CONFIGURATION
    # ========================================================================

    FRONTEND_URL: str = "http://localhost:5173"
    """Frontend application URL for CORS"""

    # ========================================================================
    # PYDANTIC CONFIGURATION
    # ========================================================================

    class Config:
        """Load from .env file"""
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"  # Ignore extra env variables


# ============================================================================
# INSTANTIATE SETTINGS
# ============================================================================

settings = Settings()

# ============================================================================
# VALIDATION
# ============================================================================

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def validate_settings():
    """Validate that configured values are usable"""
    problems = []

    if settings.LOG_LEVEL.upper() not in VALID_LOG_LEVELS:
        problems.append(f"LOG_LEVEL must be one of {', '.join(VALID_LOG_LEVELS)}")

    if settings.MAX_UPLOAD_MB <= 0:
        problems.append("MAX_UPLOAD_MB must be positive")

    if not settings.DATABASE_URL:
        problems.append("DATABASE_URL is empty")

    if problems:
        raise ValueError(
            f"Invalid configuration: {'; '.join(problems)}. "
            f"Please check your .env file."
        )


# Validate on import (warn only so tooling can still import the package)
try:
    validate_settings()
except ValueError as e:
    logging.getLogger(__name__).warning(f"⚠️  {str(e)}")
