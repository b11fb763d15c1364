"""Exceptions raised by the record store repositories."""


class RecordStoreError(Exception):
    """Base exception for record store errors."""
    pass


class RecordStoreConnectionError(RecordStoreError):
    """The record store could not be reached or is not initialized."""
    pass


class RecordConstraintError(RecordStoreError):
    """A write violated a store constraint (duplicate key, foreign key)."""
    pass


class RecordOperationError(RecordStoreError):
    """A read or write failed for any other reason."""
    pass


class RecordNotFoundError(RecordStoreError):
    """The addressed record does not exist in the given scope."""
    pass


class RecordValidationError(RecordStoreError):
    """Data was rejected before reaching the store."""
    pass
