"""Errors raised on the client portal request paths."""


class PortalError(Exception):
    """Base exception for portal requests. status_code is the HTTP status to answer with."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class PortalNotFoundError(PortalError):
    """The record does not exist or is not visible to the client."""
    status_code = 404


class PortalValidationError(PortalError):
    """The client's payload or requested transition was rejected."""
    status_code = 400


class SignatureConflictError(PortalError):
    """The signature request is already signed or declined."""
    status_code = 409
