"""Domain-specific exceptions — framework-independent."""


class SurveySyncError(Exception):
    """Base class for every error raised by the synchronization core."""


class IdentityError(SurveySyncError):
    """Raised when no identity could be resolved.

    The session stays blocked for the lifetime of the process; no data
    operation proceeds without an identity.
    """

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(SurveySyncError):
    """Raised when a local precondition fails before any store call."""

    def __init__(self, field: str, message: str):
        self.field = field
        self.message = message
        super().__init__(f"{field}: {message}")


class StoreError(SurveySyncError):
    """Raised when a call to the document store fails.

    ``status_code`` is set when the store answered with an error status.
    """

    def __init__(
        self,
        operation: str,
        message: str,
        *,
        document_id: str | None = None,
        status_code: int | None = None,
    ):
        self.operation = operation
        self.message = message
        self.document_id = document_id
        self.status_code = status_code
        target = f" '{document_id}'" if document_id else ""
        super().__init__(f"{operation}{target} failed: {message}")


class StoreWriteError(StoreError):
    """Raised when a create, replace or delete call to the store fails."""


class FeedError(SurveySyncError):
    """Raised (or delivered to the error callback) when the live feed fails."""

    def __init__(self, message: str, status_code: int | None = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class EntityNotFoundError(SurveySyncError):
    """Raised when a requested entity does not exist."""

    def __init__(self, entity_type: str, entity_id: int | str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} with id '{entity_id}' not found")
