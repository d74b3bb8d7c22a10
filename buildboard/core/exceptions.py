"""
BuildBoard exception hierarchy.

Services raise these on write paths; the application factory registers one
Flask error handler per type so every blueprint answers with the same
status codes and a ``{"error": message}`` body.

Usage:
    from buildboard.core.exceptions import NotFoundError, AccessDeniedError

    raise NotFoundError(resource="Activity", resource_id=42)
    raise AccessDeniedError("Only Control Center can create projects")
"""


class NotFoundError(Exception):
    """Raised when a referenced project, scope, activity, entry or profile is missing.

    Maps to HTTP 404.

    Args:
        resource: Human-readable entity name (e.g. "Activity", "Entry").
        resource_id: The PK that was looked up.
    """

    def __init__(self, resource: str, resource_id: int | str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        super().__init__(msg)


class ValidationError(Exception):
    """Raised when input is well-formed JSON but violates a business rule.

    Maps to HTTP 422.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown, keyed by field name.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class ConflictError(Exception):
    """Raised when an operation would duplicate a unique value.

    Maps to HTTP 409.
    """

    def __init__(self, resource: str, field: str, value: str | None = None) -> None:
        self.resource = resource
        self.field = field
        self.value = value
        msg = f"{resource} with {field}={value!r} already exists"
        super().__init__(msg)


class AuthenticationRequiredError(Exception):
    """Raised by write operations when no current user can be resolved.

    Maps to HTTP 401.
    """

    def __init__(self, message: str = "Not authenticated") -> None:
        super().__init__(message)


class AccessDeniedError(Exception):
    """Raised by write operations when the access gate or a role check refuses.

    Maps to HTTP 403. Read operations never raise this; they answer with an
    empty result instead.
    """

    def __init__(self, message: str = "Access denied") -> None:
        super().__init__(message)
