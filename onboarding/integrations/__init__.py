"""External service integrations."""

from .email import EmailClient

__all__ = ["EmailClient"]
