"""Client portal services."""

from .errors import PortalError, PortalNotFoundError, PortalValidationError, SignatureConflictError
from .portal import PortalService, get_portal_service, client_ip

__all__ = [
    "PortalError",
    "PortalNotFoundError",
    "PortalValidationError",
    "SignatureConflictError",
    "PortalService",
    "get_portal_service",
    "client_ip",
]
