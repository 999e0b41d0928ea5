"""
Gateway error taxonomy.

Every error carries a ``public_message`` which is safe to return to API
clients. Internal details (driver messages, stack traces) stay in the logs.
Not-found lookups are not errors: single-record reads return ``None``.
"""


class ChatGraphError(Exception):
    """Base exception for gateway errors."""

    public_message = "Internal server error"
    code = "INTERNAL_SERVER_ERROR"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.public_message)
        if message is not None:
            self.public_message = message


class SchemaValidationError(ChatGraphError):
    """Raised at startup when type definitions and resolver bindings disagree."""

    code = "SCHEMA_VALIDATION_FAILED"

    def __init__(self, problems: list[str]):
        self.problems = list(problems)
        super().__init__("Schema validation failed: " + "; ".join(self.problems))


class ConnectionTimeoutError(ChatGraphError):
    """A store call could not obtain a pooled connection in time."""

    public_message = "Timed out waiting for a store connection"
    code = "CONNECTION_TIMEOUT"

    def __init__(self, store: str, timeout: float):
        self.store = store
        self.timeout = timeout
        super().__init__()
        self.args = (f"{store}: no connection available after {timeout}s",)


class StoreOperationError(ChatGraphError):
    """Wraps any failure raised by an underlying store driver."""

    public_message = "Store operation failed"
    code = "STORE_OPERATION_FAILED"

    def __init__(self, store: str, operation: str, cause: BaseException | None = None):
        self.store = store
        self.operation = operation
        self.cause = cause
        super().__init__()
        self.args = (f"{store}.{operation} failed: {cause!r}",)


class InputValidationError(ChatGraphError):
    """Mutation arguments failed validation."""

    code = "BAD_USER_INPUT"


class OperationError(ChatGraphError):
    """The operation document is malformed or cannot be executed."""

    code = "GRAPHQL_VALIDATION_FAILED"
