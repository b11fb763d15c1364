"""Helpers for reporting pydantic validation failures to callers."""

from pydantic import ValidationError


def describe_validation_error(exc: ValidationError) -> str:
    """
    First validation problem as a plain sentence.

    Errors raised from our own validators carry the original ValueError in
    ctx, so the caller sees that message without pydantic's prefix.
    """
    errors = exc.errors()
    if not errors:
        return str(exc)

    error = errors[0]
    original = (error.get("ctx") or {}).get("error")
    if original is not None:
        return str(original)

    location = ".".join(str(part) for part in error.get("loc", ()))
    if error.get("type") == "missing" and location:
        return f"{location} is required"
    return f"{location}: {error['msg']}" if location else error["msg"]
