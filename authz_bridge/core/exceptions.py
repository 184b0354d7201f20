"""Exceptions raised by the authorization engine."""


class AuthorizationError(Exception):
    """Base exception for authorization management operations."""
    pass


class MatrixValidationError(AuthorizationError):
    """Submitted matrix breaks a structural or tenancy rule (client input error)."""
    pass


class ReconciliationCancelled(AuthorizationError):
    """The caller cancelled the operation before it completed."""
    pass


class AuthorizationStoreError(AuthorizationError):
    """The local authorization store failed (connection, statement or commit).

    Attributes:
        operation: Store operation that failed (e.g. "commit")
    """

    def __init__(self, operation: str, cause: Exception):
        self.operation = operation
        self.cause = cause
        super().__init__(f"Authorization store failed during {operation}: {cause}")
