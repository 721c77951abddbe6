"""
Custom exception hierarchy for Opsboard.

Exception Hierarchy:
    OpsboardError (base)
    ├── StoreError              - Database connectivity or constraint failure
    │   └── QueryTimeoutError   - Query exceeded its timeout
    ├── ProviderError           - External LLM call failed
    └── ChatConfigurationError  - LLM credential missing

    ValidationError             - Input validation failed
"""


class OpsboardError(Exception):
    """Base exception for all Opsboard errors."""

    def __init__(self, message: str, details: str = None):
        self.message = message
        self.details = details
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message}: {self.details}"
        return self.message


class StoreError(OpsboardError):
    """
    Record store operation failed.

    The underlying driver message is kept in `details` and surfaced to the
    caller as-is. Store errors are never retried.
    """

    def __init__(self, message: str, details: str = None, table: str = None):
        super().__init__(message, details)
        self.table = table


class QueryTimeoutError(StoreError):
    """Database query exceeded timeout."""

    def __init__(self, query: str, timeout: float, table: str = None):
        self.query = query[:200] + "..." if len(query) > 200 else query
        self.timeout = timeout
        super().__init__(f"Query timed out after {timeout}s", table=table)


class ProviderError(OpsboardError):
    """
    The external generation provider failed or returned an error.

    The message shown to callers is generic; the cause is logged.
    """


class ChatConfigurationError(OpsboardError):
    """The assistant has no model credential configured."""


class ValidationError(Exception):
    """
    Input validation failed.

    Used for validating user input before any store access.
    """

    def __init__(self, field: str, message: str, value: any = None):
        self.field = field
        self.message = message
        self.value = value
        super().__init__(f"{field}: {message}")

    def __str__(self) -> str:
        if self.value is not None:
            return f"{self.field}: {self.message} (got: {self.value!r})"
        return f"{self.field}: {self.message}"
