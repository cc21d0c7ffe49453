"""
Custom exceptions for template storage.

Both backends raise these exceptions so callers can handle
failures the same way regardless of which backend answered.
"""


class TemplateStoreError(Exception):
    """Base exception for all template storage errors."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class RemoteUnavailableError(TemplateStoreError):
    """Raised when a remote store call fails (network, auth, backend).

    Never retried by the storage layer; the caller decides whether to
    fall back to local behavior for the action at hand.
    """

    def __init__(
        self,
        operation: str,
        cause: Exception | None = None,
        message: str | None = None,
    ):
        details = {"operation": operation}
        if cause:
            details["cause"] = str(cause)
        if message is None:
            message = f"Remote store unavailable during {operation}"
            if cause:
                message += f": {cause}"
        super().__init__(message, details)
        self.operation = operation
        self.cause = cause


class AuthenticationError(RemoteUnavailableError):
    """Raised when the remote store rejects our credentials."""

    def __init__(self, endpoint: str, reason: str | None = None):
        super().__init__("authenticate", message=f"Authentication failed for {endpoint}")
        self.details["endpoint"] = endpoint
        if reason:
            self.details["reason"] = reason
        self.endpoint = endpoint
        self.reason = reason


class IndexMissingError(TemplateStoreError):
    """Raised when an ordered query has no composite index to serve it.

    Only the query fallback strategy sees this error.
    """

    def __init__(self, query: str, cause: Exception | None = None):
        details = {"query": query}
        if cause:
            details["cause"] = str(cause)
        super().__init__("Ordered query requires a missing composite index", details)
        self.query = query
        self.cause = cause


class RecordNotFoundError(TemplateStoreError):
    """Raised when a record does not exist for the given owner."""

    def __init__(self, record_id: str, owner_id: str | None = None):
        details = {"record_id": record_id}
        if owner_id:
            details["owner_id"] = owner_id
        super().__init__(f"Record not found: {record_id}", details)
        self.record_id = record_id
        self.owner_id = owner_id


class LocalStorageFailure(TemplateStoreError):
    """Raised by the local medium when a read or write fails.

    LocalCacheStore swallows this and degrades to an empty read
    or a no-op write.
    """

    def __init__(self, operation: str, key: str, cause: Exception | None = None):
        details = {"operation": operation, "key": key}
        if cause:
            details["cause"] = str(cause)
        super().__init__(f"Local storage error during {operation}: {key}", details)
        self.operation = operation
        self.key = key
        self.cause = cause


class ValidationError(TemplateStoreError):
    """Raised when record data validation fails."""

    def __init__(self, field: str, reason: str, value: str | None = None):
        details = {"field": field, "reason": reason}
        if value is not None:
            details["value"] = value
        super().__init__(f"Validation failed for {field}: {reason}", details)
        self.field = field
        self.reason = reason
        self.value = value
