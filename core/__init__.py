"""
Core shared library for Opsboard.

This package contains the logic behind the web service and scripts/:
- config: Centralized configuration
- exceptions: Custom exception hierarchy
- models: Record domains and field definitions
- validators: Input validation functions
- store: DuckDB record store
- analytics: Dashboard view derivation
- llm_client: Text generation client
"""

# Import in dependency order
from core.exceptions import (
    OpsboardError,
    StoreError,
    QueryTimeoutError,
    ProviderError,
    ChatConfigurationError,
    ValidationError,
)

from core.models import Domain

from core.validators import (
    require_fields,
    validate_form,
    validate_limit,
    validate_date_range_days,
)

from core.config import AppConfig, load_config

__all__ = [
    # Exceptions
    "OpsboardError",
    "StoreError",
    "QueryTimeoutError",
    "ProviderError",
    "ChatConfigurationError",
    "ValidationError",
    # Models
    "Domain",
    # Validators
    "require_fields",
    "validate_form",
    "validate_limit",
    "validate_date_range_days",
    # Config
    "AppConfig",
    "load_config",
]
